"""Search telemetry store backends (Appwrite documents or a SQL table)."""

from __future__ import annotations

import json
from typing import Any, Protocol

import httpx
from pydantic import ValidationError
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from cinescope.config import AppSettings, AppwriteSettings
from cinescope.db.models.core import SearchRecordRow
from cinescope.db.session import Database
from cinescope.domain.models import NewSearchRecord, SearchRecord
from cinescope.logging import logger
from cinescope.services.exceptions import (
    ConfigurationError,
    StoreDecodeError,
    StoreOperationError,
)


class SearchRecordStore(Protocol):
    async def find(self, term: str) -> SearchRecord | None: ...

    async def create(self, record: NewSearchRecord) -> SearchRecord: ...

    async def increment(self, record: SearchRecord) -> SearchRecord: ...

    async def top(self, limit: int) -> list[SearchRecord]: ...


def decode_record(document: Any) -> SearchRecord:
    try:
        return SearchRecord.model_validate(document)
    except ValidationError as exc:
        raise StoreDecodeError(f"Malformed search record: {exc}") from exc


class AppwriteSearchStore:
    """Search records kept as documents in an Appwrite collection.

    ``increment`` writes back ``count + 1`` computed from the record the caller
    read, so two overlapping increments of the same term can lose one update.
    """

    def __init__(self, http_client: httpx.AsyncClient, settings: AppwriteSettings) -> None:
        self._client = http_client
        self._settings = settings

    async def find(self, term: str) -> SearchRecord | None:
        documents = await self._list(
            {"method": "equal", "attribute": "searchTerm", "values": [term]},
            {"method": "limit", "values": [1]},
        )
        return decode_record(documents[0]) if documents else None

    async def create(self, record: NewSearchRecord) -> SearchRecord:
        payload = await self._request(
            "POST",
            "",
            json={"documentId": "unique()", "data": record.to_document()},
        )
        return decode_record(payload)

    async def increment(self, record: SearchRecord) -> SearchRecord:
        payload = await self._request(
            "PATCH",
            f"/{record.id}",
            json={"data": {"count": record.count + 1}},
        )
        return decode_record(payload)

    async def top(self, limit: int) -> list[SearchRecord]:
        documents = await self._list(
            {"method": "limit", "values": [limit]},
            {"method": "orderDesc", "attribute": "count"},
        )
        return [decode_record(document) for document in documents]

    async def _list(self, *queries: dict[str, Any]) -> list[Any]:
        params = [("queries[]", json.dumps(query)) for query in queries]
        payload = await self._request("GET", "", params=params)
        documents = payload.get("documents")
        if not isinstance(documents, list):
            raise StoreDecodeError("Document list response has no documents array.")
        return documents

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self._collection_url()}{path}"
        try:
            response = await self._client.request(
                method,
                url,
                headers=self._headers(),
                timeout=self._settings.request_timeout_seconds,
                **kwargs,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text[:500]
            raise StoreOperationError(
                f"Appwrite {method} failed ({exc.response.status_code}): {detail}"
            ) from exc
        except httpx.RequestError as exc:
            raise StoreOperationError(f"Appwrite {method} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise StoreDecodeError("Appwrite response is not valid JSON.") from exc
        if not isinstance(payload, dict):
            raise StoreDecodeError("Appwrite response is not a JSON object.")
        return payload

    def _collection_url(self) -> str:
        cfg = self._settings
        if not cfg.database_id or not cfg.collection_id:
            raise ConfigurationError("Appwrite database and collection ids are not configured.")
        endpoint = str(cfg.endpoint).rstrip("/")
        return f"{endpoint}/databases/{cfg.database_id}/collections/{cfg.collection_id}/documents"

    def _headers(self) -> dict[str, str]:
        if not self._settings.project_id:
            raise ConfigurationError("Appwrite project id is not configured.")
        headers = {
            "Content-Type": "application/json",
            "X-Appwrite-Project": self._settings.project_id,
        }
        if self._settings.api_key:
            headers["X-Appwrite-Key"] = self._settings.api_key.get_secret_value()
        return headers


class SqlSearchStore:
    """Search records in the ``search_records`` table.

    Increments are a single ``UPDATE`` and the unique ``search_term`` index folds
    a concurrent duplicate create into an increment of the existing row.
    """

    def __init__(self, database: Database) -> None:
        self._database = database

    async def find(self, term: str) -> SearchRecord | None:
        stmt = select(SearchRecordRow).where(SearchRecordRow.search_term == term).limit(1)
        try:
            async with self._database.session() as session:
                result = await session.execute(stmt)
                row = result.scalars().first()
        except SQLAlchemyError as exc:
            raise StoreOperationError(f"Search record lookup failed: {exc}") from exc
        return decode_record(row.to_document()) if row is not None else None

    async def create(self, record: NewSearchRecord) -> SearchRecord:
        row = SearchRecordRow(
            search_term=record.search_term,
            movie_id=record.movie_id,
            title=record.title,
            count=record.count,
            poster_url=record.poster_url,
        )
        try:
            async with self._database.session() as session:
                session.add(row)
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    row = None
        except SQLAlchemyError as exc:
            raise StoreOperationError(f"Search record create failed: {exc}") from exc

        if row is not None:
            return decode_record(row.to_document())

        logger.info("search_record_create_conflict", search_term=record.search_term)
        existing = await self.find(record.search_term)
        if existing is None:
            raise StoreOperationError(
                f"Search record for {record.search_term!r} conflicted but cannot be found."
            )
        return await self.increment(existing)

    async def increment(self, record: SearchRecord) -> SearchRecord:
        row_id = int(record.id)
        stmt = (
            update(SearchRecordRow)
            .where(SearchRecordRow.id == row_id)
            .values(count=func.coalesce(SearchRecordRow.count, 0) + 1)
        )
        reload = (
            select(SearchRecordRow)
            .where(SearchRecordRow.id == row_id)
            .execution_options(populate_existing=True)
        )
        try:
            async with self._database.session() as session:
                result = await session.execute(stmt)
                await session.commit()
                if result.rowcount == 0:
                    raise StoreOperationError(f"Search record {record.id} no longer exists.")
                row = (await session.execute(reload)).scalars().one()
        except SQLAlchemyError as exc:
            raise StoreOperationError(f"Search record update failed: {exc}") from exc
        return decode_record(row.to_document())

    async def top(self, limit: int) -> list[SearchRecord]:
        stmt = select(SearchRecordRow).order_by(SearchRecordRow.count.desc()).limit(limit)
        try:
            async with self._database.session() as session:
                result = await session.execute(stmt)
                rows = result.scalars().all()
        except SQLAlchemyError as exc:
            raise StoreOperationError(f"Trending query failed: {exc}") from exc
        return [decode_record(row.to_document()) for row in rows]


def build_search_store(
    settings: AppSettings,
    *,
    http_client: httpx.AsyncClient,
    database: Database | None = None,
) -> SearchRecordStore:
    backend = settings.telemetry.backend
    if backend == "database":
        return SqlSearchStore(database or Database(settings.database))
    return AppwriteSearchStore(http_client, settings.telemetry.appwrite)


__all__ = [
    "AppwriteSearchStore",
    "SearchRecordStore",
    "SqlSearchStore",
    "build_search_store",
    "decode_record",
]
