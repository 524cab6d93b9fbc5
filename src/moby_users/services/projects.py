"""Reconciliation of legacy projects with the app projects table."""

import logging
from dataclasses import dataclass, field

from moby_users.adapters.airtable_client import RecordStore
from moby_users.adapters.airtable_formulas import FieldEquals
from moby_users.domain import fields
from moby_users.domain.models import (
    DateRange,
    ProjectResolution,
    StoreRecord,
    TableNames,
)
from moby_users.services.locks import KeyedLocks

_logger = logging.getLogger(__name__)

# The legacy data holds a few projects sharing a name.
_NAME_MATCH_LIMIT = 10


@dataclass
class ProjectLinkService:
    """Find-or-create app projects and maintain their user links."""

    store: RecordStore
    tables: TableNames
    locks: KeyedLocks = field(default_factory=KeyedLocks)

    async def resolve_or_create_project(
        self,
        name: str,
        client_name: str | None,
        date_range: DateRange,
    ) -> ProjectResolution:
        """Return the app project for ``name``/``client_name``, creating it if needed.

        Projects are matched by exact name. When a clients table is configured
        the client name is resolved to a client record and used to pick among
        same-named projects; otherwise the first same-named project wins,
        preferring one whose client label matches.
        """
        async with self.locks.hold(("project", name)):
            candidates = await self.store.select(
                self.tables.proyectos_app,
                formula=FieldEquals(fields.PROJECT_NAME, name),
                max_records=_NAME_MATCH_LIMIT,
            )
            client_id = await self._resolve_client_id(client_name)

            if client_id is not None:
                for candidate in candidates:
                    client_links = link_ids(candidate.fields.get(fields.PROJECT_CLIENT))
                    if client_id in client_links:
                        return ProjectResolution(id=candidate.id, was_created=False)
            elif candidates:
                chosen = _match_client_label(candidates, client_name) or candidates[0]
                return ProjectResolution(id=chosen.id, was_created=False)

            created = await self.store.create(
                self.tables.proyectos_app,
                _project_fields(name, client_name, client_id, date_range),
            )
            _logger.info("Created app project %s (%s)", created.id, name)
            return ProjectResolution(id=created.id, was_created=True)

    async def link_user_to_project(self, project_id: str, user_id: str) -> None:
        """Add ``user_id`` to the project's user links, keeping existing links."""
        async with self.locks.hold(("links", project_id)):
            project = await self.store.find(self.tables.proyectos_app, project_id)
            current = link_ids(project.fields.get(fields.PROJECT_USERS))
            if user_id in current:
                return
            await self.store.update(
                self.tables.proyectos_app,
                project_id,
                {fields.PROJECT_USERS: [*current, user_id]},
            )

    async def _resolve_client_id(self, client_name: str | None) -> str | None:
        if not client_name or not self.tables.clientes:
            return None
        matches = await self.store.select(
            self.tables.clientes,
            formula=FieldEquals(fields.CLIENT_NAME, client_name),
            fields=[fields.CLIENT_NAME],
            max_records=1,
        )
        if not matches:
            _logger.info("Client %r not found; project stays unlinked", client_name)
            return None
        return matches[0].id


def link_ids(value: object) -> list[str]:
    """Normalize a link cell (ids or ``{"id": ...}`` objects) to unique ids."""
    if not isinstance(value, list):
        return []
    ids: list[str] = []
    for item in value:
        record_id = item.get("id") if isinstance(item, dict) else item
        if isinstance(record_id, str) and record_id not in ids:
            ids.append(record_id)
    return ids


def _match_client_label(
    candidates: list[StoreRecord], client_name: str | None
) -> StoreRecord | None:
    if not client_name:
        return None
    for candidate in candidates:
        if candidate.fields.get(fields.PROJECT_CLIENT) == client_name:
            return candidate
    return None


def _project_fields(
    name: str,
    client_name: str | None,
    client_id: str | None,
    date_range: DateRange,
) -> dict[str, object]:
    payload: dict[str, object] = {fields.PROJECT_NAME: name}
    if date_range.start:
        payload[fields.PROJECT_START] = date_range.start
    if date_range.end:
        payload[fields.PROJECT_END] = date_range.end
    if client_id is not None:
        payload[fields.PROJECT_CLIENT] = [client_id]
    elif client_name:
        payload[fields.PROJECT_CLIENT] = client_name
    return payload
