"""Application entrypoint.

``python -m cinescope.main`` loads the home view (popular movies and the
trending leaderboard); ``python -m cinescope.main <query>`` runs a search and
records it before refreshing trending.
"""

from __future__ import annotations

import asyncio
import sys

import httpx

from cinescope.config import AppSettings, get_settings
from cinescope.db.session import Database
from cinescope.domain.models import CatalogItem, TrendingEntry
from cinescope.logging import configure_logging, logger
from cinescope.services.catalog import CatalogClient
from cinescope.services.fetch import FetchController, FetchState
from cinescope.services.stores import build_search_store
from cinescope.services.telemetry import SearchTelemetryService


async def load_home(
    catalog: CatalogClient,
    telemetry: SearchTelemetryService,
    *,
    trending_limit: int,
) -> tuple[FetchState[list[CatalogItem]], FetchState[list[TrendingEntry] | None]]:
    movies = FetchController(lambda: catalog.fetch_movies(""))
    trending = FetchController(lambda: telemetry.get_trending(trending_limit))
    await asyncio.gather(movies.wait(), trending.wait())
    return movies.state, trending.state


async def search_movies(
    query: str,
    catalog: CatalogClient,
    telemetry: SearchTelemetryService,
) -> FetchState[list[CatalogItem]]:
    async def _search() -> list[CatalogItem]:
        movies = await catalog.fetch_movies(query)
        if query and movies:
            await telemetry.record_search(query, movies[0])
        return movies

    controller = FetchController(_search)
    await controller.wait()
    return controller.state


def _log_movies(event: str, state: FetchState[list[CatalogItem]]) -> None:
    if state.error is not None:
        logger.error(event, status=state.status.value, error=str(state.error))
        return
    movies = state.data or []
    logger.info(
        event,
        status=state.status.value,
        count=len(movies),
        titles=[movie.title for movie in movies[:10]],
    )


async def run(settings: AppSettings, query: str) -> None:
    database = Database(settings.database) if settings.telemetry.backend == "database" else None
    async with httpx.AsyncClient() as http_client:
        catalog = CatalogClient(http_client, settings.catalog)
        store = build_search_store(settings, http_client=http_client, database=database)
        telemetry = SearchTelemetryService(store, image_base_url=settings.catalog.image_base_url)
        limit = settings.telemetry.trending_limit

        try:
            if database is not None:
                await database.create_schema()

            if query:
                _log_movies("search_results", await search_movies(query, catalog, telemetry))
                trending = await telemetry.get_trending(limit)
            else:
                movies_state, trending_state = await load_home(
                    catalog, telemetry, trending_limit=limit
                )
                _log_movies("popular_movies", movies_state)
                trending = trending_state.data

            if trending is None:
                logger.warning("trending_unavailable")
            else:
                logger.info(
                    "trending_movies",
                    entries=[
                        {"term": entry.search_term, "title": entry.title, "count": entry.count}
                        for entry in trending
                    ],
                )
        finally:
            if database is not None:
                await database.dispose()


async def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, environment=settings.environment)
    query = " ".join(sys.argv[1:])
    logger.info("cinescope_starting", environment=settings.environment, query=query or None)
    await run(settings, query)


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
