"""Shared test fixtures."""

import asyncio
import itertools
from dataclasses import dataclass, field

import pytest

from moby_users.adapters.airtable_client import RecordStore
from moby_users.adapters.airtable_formulas import (
    FieldContains,
    FieldEquals,
    Formula,
    RecordIdIn,
)
from moby_users.config import Settings
from moby_users.containers import AppContainer, build_user_service
from moby_users.domain.errors import StoreError
from moby_users.domain.models import StoreRecord, TableNames
from moby_users.services.users import UserService

TABLES = TableNames(
    personales="Nomina",
    proyectos="Proyectos",
    users_app="Usuarios App",
    proyectos_app="Proyectos App",
)


def _matches(formula: Formula | None, record_id: str, row: dict[str, object]) -> bool:
    if formula is None:
        return True
    if isinstance(formula, FieldEquals):
        value = row.get(formula.field)
        if isinstance(value, list):
            return formula.value in value
        return value == formula.value
    if isinstance(formula, RecordIdIn):
        return record_id in formula.ids
    if isinstance(formula, FieldContains):
        value = row.get(formula.field)
        return isinstance(value, str) and formula.term.lower() in value.lower()
    raise AssertionError(f"Unsupported formula {formula!r}")


@dataclass
class InMemoryRecordStore(RecordStore):
    """In-memory record store that interprets structured formulas."""

    tables: dict[str, dict[str, dict[str, object]]] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)
    failing: set[tuple[str, str]] = field(default_factory=set)
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    def add(self, table: str, record_id: str, **row: object) -> str:
        self.tables.setdefault(table, {})[record_id] = dict(row)
        return record_id

    def row(self, table: str, record_id: str) -> dict[str, object]:
        return self.tables[table][record_id]

    def calls_to(self, action: str, table: str | None = None) -> int:
        return sum(
            1
            for call_action, call_table in self.calls
            if call_action == action and (table is None or call_table == table)
        )

    async def _record(self, action: str, table: str) -> None:
        # Yield like a real network call so concurrent callers interleave.
        await asyncio.sleep(0)
        self.calls.append((action, table))
        if (action, table) in self.failing:
            raise StoreError(f"{action} on {table} failed", status_code=500)

    async def select(
        self,
        table: str,
        *,
        formula: Formula | None = None,
        fields: list[str] | None = None,
        max_records: int | None = None,
    ) -> list[StoreRecord]:
        await self._record("select", table)
        records = [
            StoreRecord(
                id=record_id,
                fields={
                    key: value
                    for key, value in row.items()
                    if fields is None or key in fields
                },
            )
            for record_id, row in self.tables.get(table, {}).items()
            if _matches(formula, record_id, row)
        ]
        return records[:max_records] if max_records is not None else records

    async def find(self, table: str, record_id: str) -> StoreRecord:
        await self._record("find", table)
        try:
            row = self.tables[table][record_id]
        except KeyError as exc:
            raise StoreError(f"{record_id} not found", status_code=404) from exc
        return StoreRecord(id=record_id, fields=dict(row))

    async def create(self, table: str, fields: dict[str, object]) -> StoreRecord:
        await self._record("create", table)
        record_id = f"rec{next(self._ids):04d}"
        self.add(table, record_id, **fields)
        return StoreRecord(id=record_id, fields=dict(fields))

    async def update(
        self, table: str, record_id: str, fields: dict[str, object]
    ) -> StoreRecord:
        await self._record("update", table)
        row = self.tables[table][record_id]
        row.update(fields)
        return StoreRecord(id=record_id, fields=dict(row))


@pytest.fixture
def tables() -> TableNames:
    return TABLES


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def user_service(store: InMemoryRecordStore, tables: TableNames) -> UserService:
    return build_user_service(store, tables)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        airtable_api_key="test-key",
        airtable_base_id="appTest",
        airtable_table_name_personales=TABLES.personales,
        airtable_table_name_proyectos=TABLES.proyectos,
        airtable_table_name_users_app=TABLES.users_app,
        airtable_table_name_proyectos_app=TABLES.proyectos_app,
    )


@pytest.fixture
def container(
    settings: Settings,
    store: InMemoryRecordStore,
    user_service: UserService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        tables=TABLES,
        store=store,
        user_service=user_service,
        close_resources=close_resources,
    )
