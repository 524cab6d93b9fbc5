"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from moby_users.adapters.airtable_client import HttpxAirtableClient, RecordStore
from moby_users.config import Settings
from moby_users.domain.models import TableNames
from moby_users.services.denormalize import Denormalizer
from moby_users.services.projects import ProjectLinkService
from moby_users.services.users import UserService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    tables: TableNames
    store: RecordStore
    user_service: UserService
    close_resources: Callable[[], Awaitable[None]]


def build_user_service(store: RecordStore, tables: TableNames) -> UserService:
    """Wire the user service and its collaborators around a record store."""
    return UserService(
        store=store,
        tables=tables,
        project_links=ProjectLinkService(store=store, tables=tables),
        denormalizer=Denormalizer(store=store, tables=tables),
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    tables = resolved_settings.tables()
    airtable_client = HttpxAirtableClient.create(
        api_key=resolved_settings.airtable_api_key,
        base_id=resolved_settings.airtable_base_id,
        base_url=resolved_settings.airtable_base_url,
        timeout_seconds=resolved_settings.airtable_timeout_seconds,
        retry_attempts=resolved_settings.airtable_retry_attempts,
        retry_delay_seconds=resolved_settings.airtable_retry_delay_seconds,
    )

    async def close_resources() -> None:
        await airtable_client.close()

    return AppContainer(
        settings=resolved_settings,
        tables=tables,
        store=airtable_client,
        user_service=build_user_service(airtable_client, tables),
        close_resources=close_resources,
    )
