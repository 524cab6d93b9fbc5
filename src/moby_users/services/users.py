"""User migration, update and query use cases."""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from moby_users.adapters.airtable_client import RecordStore
from moby_users.adapters.airtable_formulas import FieldContains, FieldEquals
from moby_users.domain import fields
from moby_users.domain.errors import ConflictError, NotFoundError, ValidationError
from moby_users.domain.models import (
    DateRange,
    MigrationResult,
    StoreRecord,
    TableNames,
    UserProfile,
    UserSummary,
)
from moby_users.services.denormalize import Denormalizer
from moby_users.services.field_mapping import map_update_fields
from moby_users.services.locks import KeyedLocks
from moby_users.services.projects import ProjectLinkService, link_ids

_logger = logging.getLogger(__name__)


@dataclass
class UserService:
    """Application service for app users backed by Airtable."""

    store: RecordStore
    tables: TableNames
    project_links: ProjectLinkService
    denormalizer: Denormalizer
    locks: KeyedLocks = field(default_factory=KeyedLocks)

    async def migrate_user(
        self,
        email: str | None,
        first_name: str | None,
        last_name: str | None,
        picture_url: str | None,
    ) -> MigrationResult:
        """Create an app user from the legacy payroll record for ``email``.

        Legacy projects are resolved against the app projects table, created
        when missing, and linked back to the new user. Migrating an email that
        already has an app user raises ``ConflictError``.
        """
        if not all(
            isinstance(value, str) and value.strip()
            for value in (email, first_name, last_name, picture_url)
        ):
            raise ValidationError(
                "'email', 'firstName', 'lastName' and 'pictureUrl' are required."
            )
        email = email.strip()
        async with self.locks.hold(("migrate", email.lower())):
            return await self._migrate(email, first_name, last_name, picture_url)

    async def _migrate(
        self, email: str, first_name: str, last_name: str, picture_url: str
    ) -> MigrationResult:
        existing = await self._find_one(self.tables.users_app, fields.USER_EMAIL, email)
        if existing is not None:
            raise ConflictError(f"User {email} is already registered.")

        legacy = await self._find_one(
            self.tables.personales, fields.LEGACY_EMAIL, email
        )
        if legacy is None:
            raise NotFoundError(f"User {email} not found in the active payroll.")

        legacy_project_ids = link_ids(legacy.fields.get(fields.LEGACY_PROJECT_LINKS))
        legacy_projects = await asyncio.gather(
            *(
                self.store.find(self.tables.proyectos, project_id)
                for project_id in legacy_project_ids
            )
        )

        project_ids: list[str] = []
        projects_created = 0
        for legacy_project in legacy_projects:
            name = _first_text(legacy_project.fields.get(fields.LEGACY_PROJECT_NAME))
            if not name:
                continue
            resolution = await self.project_links.resolve_or_create_project(
                name,
                _first_text(legacy_project.fields.get(fields.LEGACY_PROJECT_CLIENT)),
                _assignment_dates(legacy_project),
            )
            if resolution.was_created:
                projects_created += 1
            if resolution.id not in project_ids:
                project_ids.append(resolution.id)

        user_fields: dict[str, object] = {
            fields.USER_EMAIL: email,
            fields.USER_NAME: first_name.strip(),
            fields.USER_LAST_NAME: last_name.strip(),
            fields.USER_PICTURE_URL: picture_url.strip(),
            fields.USER_IS_TALENT_PARTNER: False,
            fields.USER_IS_REFERENT: False,
            fields.USER_PROJECTS: project_ids,
        }
        onboarding_date = _first_text(legacy.fields.get(fields.LEGACY_ONBOARDING_DATE))
        if onboarding_date:
            user_fields[fields.USER_ONBOARDING_DATE] = onboarding_date

        created = await self.store.create(self.tables.users_app, user_fields)
        for project_id in project_ids:
            await self.project_links.link_user_to_project(project_id, created.id)

        _logger.info(
            "Migrated user %s as %s (%s projects, %s created)",
            email,
            created.id,
            len(project_ids),
            projects_created,
        )
        return MigrationResult(record=created, projects_created=projects_created)

    async def update_user(
        self, email: str | None, dto_fields: Mapping[str, object]
    ) -> StoreRecord:
        """Apply a partial DTO update and return the denormalized record."""
        fields_to_update = map_update_fields(dto_fields)
        if not fields_to_update:
            raise ValidationError("No valid fields to update were provided.")

        user = await self._require_user(email)
        updated = await self.store.update(
            self.tables.users_app, user.id, fields_to_update
        )

        row = dict(updated.fields)
        row[fields.USER_PROJECTS] = await self.denormalizer.project_names(
            link_ids(row.get(fields.USER_PROJECTS))
        )
        referent = await self.denormalizer.first_user_reference(
            link_ids(row.get(fields.USER_REFERENT))
        )
        partner = await self.denormalizer.first_user_reference(
            link_ids(row.get(fields.USER_TALENT_PARTNER))
        )
        row[fields.USER_REFERENT] = referent.to_dto() if referent else None
        row[fields.USER_TALENT_PARTNER] = partner.to_dto() if partner else None
        return StoreRecord(id=updated.id, fields=row)

    async def get_user_by_email(self, email: str | None) -> UserProfile:
        """Return the full profile of a user with links denormalized."""
        user = await self._require_user(email)
        row = user.fields
        return UserProfile(
            id=user.id,
            email=_first_text(row.get(fields.USER_EMAIL)),
            name=_first_text(row.get(fields.USER_NAME)),
            last_name=_first_text(row.get(fields.USER_LAST_NAME)),
            picture_url=_first_text(row.get(fields.USER_PICTURE_URL)),
            province=_first_text(row.get(fields.USER_PROVINCE)),
            locality=_first_text(row.get(fields.USER_LOCALITY)),
            current_tech=_first_text(row.get(fields.USER_CURRENT_TECH)),
            onboarding_date=_first_text(row.get(fields.USER_ONBOARDING_DATE)),
            signature_url=_first_text(row.get(fields.USER_SIGNATURE_URL)),
            is_referent=bool(row.get(fields.USER_IS_REFERENT)),
            is_talent_partner=bool(row.get(fields.USER_IS_TALENT_PARTNER)),
            projects=await self.denormalizer.project_names(
                link_ids(row.get(fields.USER_PROJECTS))
            ),
            referent=await self.denormalizer.first_user_reference(
                link_ids(row.get(fields.USER_REFERENT))
            ),
            talent_partner=await self.denormalizer.first_user_reference(
                link_ids(row.get(fields.USER_TALENT_PARTNER))
            ),
        )

    async def check_user_exists(self, email: str | None) -> StoreRecord | None:
        """Return the app user for ``email``, if present."""
        return await self._find_one(
            self.tables.users_app, fields.USER_EMAIL, _require_email(email)
        )

    async def get_user_full_name(self, email: str | None) -> str:
        """Return ``"<first> <last>"`` for the user."""
        user = await self._require_user(email)
        first = _first_text(user.fields.get(fields.USER_NAME)) or ""
        last = _first_text(user.fields.get(fields.USER_LAST_NAME)) or ""
        return f"{first.strip()} {last.strip()}".strip()

    async def check_email_in_legacy(self, email: str | None) -> bool:
        """Return whether ``email`` belongs to someone in the active payroll."""
        record = await self._find_one(
            self.tables.personales, fields.LEGACY_EMAIL, _require_email(email)
        )
        return record is not None

    async def list_users(self) -> list[UserSummary]:
        """Return every app user."""
        records = await self.store.select(self.tables.users_app)
        return [_to_summary(record) for record in records]

    async def list_referents(self) -> list[UserSummary]:
        """Return app users flagged as referents."""
        records = await self.store.select(self.tables.users_app)
        return [
            _to_summary(record)
            for record in records
            if record.fields.get(fields.USER_IS_REFERENT) is True
        ]

    async def list_partners(self) -> list[UserSummary]:
        """Return app users flagged as talent partners."""
        records = await self.store.select(self.tables.users_app)
        return [
            _to_summary(record)
            for record in records
            if record.fields.get(fields.USER_IS_TALENT_PARTNER) is True
        ]

    async def list_by_technology(self, term: object) -> list[UserSummary]:
        """Return users whose current technology contains ``term``.

        No match is reported as :class:`NotFoundError`, not as an empty list.
        """
        if not isinstance(term, str) or not term.strip():
            raise ValidationError("A valid technology must be provided.")
        search = term.strip()
        records = await self.store.select(
            self.tables.users_app,
            formula=FieldContains(fields.USER_CURRENT_TECH, search),
            fields=fields.USER_SUMMARY_FIELDS,
        )
        if not records:
            raise NotFoundError(
                f"No users found with a technology matching '{search}'."
            )
        return [_to_summary(record) for record in records]

    async def _require_user(self, email: str | None) -> StoreRecord:
        address = _require_email(email)
        user = await self._find_one(self.tables.users_app, fields.USER_EMAIL, address)
        if user is None:
            raise NotFoundError(f"User {address} not found in the users table.")
        return user

    async def _find_one(
        self, table: str, field_name: str, value: str
    ) -> StoreRecord | None:
        records = await self.store.select(
            table, formula=FieldEquals(field_name, value), max_records=1
        )
        return records[0] if records else None


def _require_email(email: str | None) -> str:
    if not isinstance(email, str) or not email.strip():
        raise ValidationError("An email must be provided.")
    return email.strip()


def _first_text(value: object) -> str | None:
    """Return a text cell, unwrapping single-value lookup lists."""
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, str):
        return value
    return None


def _assignment_dates(legacy_project: StoreRecord) -> DateRange:
    return DateRange(
        start=_first_text(legacy_project.fields.get(fields.LEGACY_PROJECT_START)),
        end=_first_text(legacy_project.fields.get(fields.LEGACY_PROJECT_END)),
    )


def _to_summary(record: StoreRecord) -> UserSummary:
    return UserSummary(
        id=record.id,
        email=_first_text(record.fields.get(fields.USER_EMAIL)),
        name=_first_text(record.fields.get(fields.USER_NAME)),
        last_name=_first_text(record.fields.get(fields.USER_LAST_NAME)),
    )
