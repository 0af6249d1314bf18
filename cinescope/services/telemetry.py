"""Search telemetry: per-term search counts and the trending leaderboard."""

from __future__ import annotations

from cinescope.domain.models import CatalogItem, NewSearchRecord, TrendingEntry
from cinescope.logging import logger
from cinescope.services.stores import SearchRecordStore

DEFAULT_TRENDING_LIMIT = 5


class SearchTelemetryService:
    def __init__(self, store: SearchRecordStore, *, image_base_url: str) -> None:
        self._store = store
        self._image_base_url = image_base_url

    async def record_search(self, term: str, subject: CatalogItem) -> None:
        """Count one search of ``term``; failures are logged, never raised."""

        try:
            existing = await self._store.find(term)
            if existing is not None:
                updated = await self._store.increment(existing)
                logger.info("search_recorded", search_term=term, count=updated.count)
                return

            created = await self._store.create(
                NewSearchRecord(
                    search_term=term,
                    movie_id=subject.id,
                    title=subject.title,
                    count=1,
                    poster_url=self._poster_url(subject.poster_path),
                )
            )
            logger.info("search_recorded", search_term=term, count=created.count)
        except Exception:
            logger.exception("search_record_failed", search_term=term, movie_id=subject.id)

    async def get_trending(
        self, limit: int = DEFAULT_TRENDING_LIMIT
    ) -> list[TrendingEntry] | None:
        """Return the most searched terms, or ``None`` when the store is unavailable.

        A ``limit`` of zero or less yields an empty leaderboard without a store call.
        """

        if limit <= 0:
            return []
        try:
            records = await self._store.top(limit)
        except Exception:
            logger.exception("trending_fetch_failed", limit=limit)
            return None

        records = sorted(records, key=lambda record: record.count, reverse=True)[:limit]
        return [TrendingEntry.from_record(record) for record in records]

    def _poster_url(self, poster_path: str | None) -> str | None:
        if not poster_path:
            return None
        return f"{self._image_base_url}{poster_path}"


__all__ = ["DEFAULT_TRENDING_LIMIT", "SearchTelemetryService"]
