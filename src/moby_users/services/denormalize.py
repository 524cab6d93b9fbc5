"""Expansion of link ids into readable records."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from moby_users.adapters.airtable_client import RecordStore
from moby_users.adapters.airtable_formulas import RecordIdIn
from moby_users.domain import fields
from moby_users.domain.errors import StoreError
from moby_users.domain.models import StoreRecord, TableNames, UserReference

_logger = logging.getLogger(__name__)


@dataclass
class Denormalizer:
    """Replaces link ids with the linked records' display attributes.

    Lookups are presentation enrichment: a failed lookup is logged and
    yields an empty result instead of failing the caller.
    """

    store: RecordStore
    tables: TableNames

    async def expand_linked_ids(
        self,
        ids: Sequence[str] | None,
        table: str,
        projection: list[str],
    ) -> list[StoreRecord]:
        """Fetch the records for ``ids`` in a single query, in store order."""
        if not ids:
            return []
        try:
            return await self.store.select(
                table, formula=RecordIdIn(tuple(ids)), fields=projection
            )
        except StoreError as exc:
            _logger.warning(
                "Lookup of %s linked ids in %s failed: %s",
                len(ids),
                table,
                exc,
                exc_info=True,
            )
            return []

    async def linked_field_values(
        self, ids: Sequence[str] | None, table: str, field_name: str
    ) -> list[object]:
        """Return ``field_name`` of each linked record, skipping empty values."""
        records = await self.expand_linked_ids(ids, table, [field_name])
        return [
            record.fields[field_name]
            for record in records
            if record.fields.get(field_name)
        ]

    async def project_names(self, ids: Sequence[str] | None) -> list[str]:
        """Return the names of the linked app projects."""
        names = await self.linked_field_values(
            ids, self.tables.proyectos_app, fields.PROJECT_NAME
        )
        return [str(name) for name in names]

    async def user_references(self, ids: Sequence[str] | None) -> list[UserReference]:
        """Project linked users without expanding their own links."""
        records = await self.expand_linked_ids(
            ids, self.tables.users_app, fields.USER_REFERENCE_FIELDS
        )
        return [to_user_reference(record) for record in records]

    async def first_user_reference(
        self, ids: Sequence[str] | None
    ) -> UserReference | None:
        """Resolve a single-user link to its reference, if any."""
        references = await self.user_references(ids[:1] if ids else None)
        return references[0] if references else None


def to_user_reference(record: StoreRecord) -> UserReference:
    """Build a reference with nested links cut at depth one."""
    row = record.fields
    return UserReference(
        id=record.id,
        name=_text(row.get(fields.USER_NAME)),
        last_name=_text(row.get(fields.USER_LAST_NAME)),
        email=_text(row.get(fields.USER_EMAIL)),
        picture_url=_text(row.get(fields.USER_PICTURE_URL)),
        province=_text(row.get(fields.USER_PROVINCE)),
        locality=_text(row.get(fields.USER_LOCALITY)),
        current_tech=_text(row.get(fields.USER_CURRENT_TECH)),
        is_referent=bool(row.get(fields.USER_IS_REFERENT)),
        is_talent_partner=bool(row.get(fields.USER_IS_TALENT_PARTNER)),
    )


def _text(value: object) -> str | None:
    return value if isinstance(value, str) else None
