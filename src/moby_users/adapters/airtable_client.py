"""Airtable REST API client."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote

import httpx

from moby_users.adapters.airtable_formulas import Formula
from moby_users.domain.errors import StoreError
from moby_users.domain.models import StoreRecord

_logger = logging.getLogger(__name__)

_PAGE_SIZE = 100
_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class RecordStore(Protocol):
    """Interface for hosted-table record operations."""

    async def select(
        self,
        table: str,
        *,
        formula: Formula | None = None,
        fields: list[str] | None = None,
        max_records: int | None = None,
    ) -> list[StoreRecord]:
        """Return every record in ``table`` matching ``formula``."""

    async def find(self, table: str, record_id: str) -> StoreRecord:
        """Fetch a single record by id."""

    async def create(self, table: str, fields: dict[str, object]) -> StoreRecord:
        """Create a record and return it as stored."""

    async def update(
        self, table: str, record_id: str, fields: dict[str, object]
    ) -> StoreRecord:
        """Patch the given fields of a record and return it."""


@dataclass
class HttpxAirtableClient(RecordStore):
    """HTTPX-backed Airtable client."""

    api_key: str
    base_id: str
    http_client: httpx.AsyncClient
    base_url: str = "https://api.airtable.com/v0"
    timeout_seconds: float = 30
    retry_attempts: int = 2
    retry_delay_seconds: float = 0.5

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        api_key: str,
        base_id: str,
        base_url: str = "https://api.airtable.com/v0",
        timeout_seconds: float = 30,
        retry_attempts: int = 2,
        retry_delay_seconds: float = 0.5,
    ) -> "HttpxAirtableClient":
        """Create an Airtable client with a managed httpx session."""
        return cls(
            api_key=api_key,
            base_id=base_id,
            http_client=httpx.AsyncClient(),
            base_url=base_url,
            timeout_seconds=timeout_seconds,
            retry_attempts=retry_attempts,
            retry_delay_seconds=retry_delay_seconds,
        )

    async def select(
        self,
        table: str,
        *,
        formula: Formula | None = None,
        fields: list[str] | None = None,
        max_records: int | None = None,
    ) -> list[StoreRecord]:
        """List records, following pagination offsets until exhausted."""
        base_params: list[tuple[str, str | int]] = [("pageSize", _PAGE_SIZE)]
        if formula is not None:
            base_params.append(("filterByFormula", formula.render()))
        if max_records is not None:
            base_params.append(("maxRecords", max_records))
        for name in fields or []:
            base_params.append(("fields[]", name))

        records: list[StoreRecord] = []
        offset: str | None = None
        while True:
            params = list(base_params)
            if offset:
                params.append(("offset", offset))
            payload = await self._request(
                "GET", self._table_url(table), action=f"select:{table}", params=params
            )
            records.extend(_parse_record(row) for row in _records_of(payload))
            offset = payload.get("offset")
            if not offset:
                return records
            if max_records is not None and len(records) >= max_records:
                return records[:max_records]

    async def find(self, table: str, record_id: str) -> StoreRecord:
        """Fetch a record by id."""
        url = f"{self._table_url(table)}/{quote(record_id, safe='')}"
        payload = await self._request("GET", url, action=f"find:{table}")
        return _parse_record(payload)

    async def create(self, table: str, fields: dict[str, object]) -> StoreRecord:
        """Create a single record."""
        payload = await self._request(
            "POST",
            self._table_url(table),
            action=f"create:{table}",
            json={"records": [{"fields": fields}]},
        )
        return _single_record(payload, action=f"create:{table}")

    async def update(
        self, table: str, record_id: str, fields: dict[str, object]
    ) -> StoreRecord:
        """Patch a single record."""
        payload = await self._request(
            "PATCH",
            self._table_url(table),
            action=f"update:{table}",
            json={"records": [{"id": record_id, "fields": fields}]},
        )
        return _single_record(payload, action=f"update:{table}")

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}/{self.base_id}/{quote(table, safe='')}"

    async def _request(
        self, method: str, url: str, *, action: str, **kwargs: object
    ) -> dict[str, object]:
        async def send() -> httpx.Response:
            response = await self.http_client.request(
                method,
                url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout_seconds,
                **kwargs,
            )
            response.raise_for_status()
            return response

        response = await self._call_with_retry(send, action=action)
        try:
            payload = response.json()
        except ValueError as exc:
            raise StoreError(f"Airtable {action} returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise StoreError(f"Airtable {action} returned an unexpected body")
        return payload

    async def _call_with_retry(
        self, func: Callable[[], Awaitable[httpx.Response]], *, action: str
    ) -> httpx.Response:
        """Call the request, retrying rate limits, server and transport errors."""
        attempt = 0
        while True:
            try:
                return await func()
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                attempt += 1
                if (
                    status_code not in _RETRYABLE_STATUS
                    or attempt > self.retry_attempts
                ):
                    raise StoreError(
                        f"Airtable {action} failed with status {status_code}: "
                        f"{_error_message(exc.response)}",
                        status_code=status_code,
                    ) from exc
                _logger.warning(
                    "Airtable %s failed (attempt %s/%s, status=%s), retrying",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    status_code,
                )
            except httpx.HTTPError as exc:
                attempt += 1
                if attempt > self.retry_attempts:
                    raise StoreError(f"Airtable {action} failed: {exc}") from exc
                _logger.warning(
                    "Airtable %s failed (attempt %s/%s): %s, retrying",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    exc,
                )
            await asyncio.sleep(self.retry_delay_seconds)


def _records_of(payload: dict[str, object]) -> list[dict[str, object]]:
    records = payload.get("records")
    if not isinstance(records, list):
        raise StoreError("Airtable response is missing 'records'")
    return records


def _single_record(payload: dict[str, object], *, action: str) -> StoreRecord:
    records = _records_of(payload)
    if not records:
        raise StoreError(f"Airtable {action} returned no records")
    return _parse_record(records[0])


def _parse_record(row: object) -> StoreRecord:
    if not isinstance(row, dict) or not isinstance(row.get("id"), str):
        raise StoreError("Airtable returned a record without an id")
    fields = row.get("fields")
    return StoreRecord(id=row["id"], fields=dict(fields) if fields else {})


def _error_message(response: httpx.Response) -> str:
    """Extract Airtable's error message from a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error.get("type") or error)
    if error:
        return str(error)
    return response.text
