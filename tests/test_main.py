"""Tests for logging configuration and the home/search composition."""

from __future__ import annotations

import json

import httpx
import pytest
import structlog
from pydantic import SecretStr
from structlog.testing import capture_logs

from cinescope import main as main_module
from cinescope.config import AppSettings, CatalogSettings
from cinescope.domain.models import NewSearchRecord, SearchRecord
from cinescope.logging import configure_logging
from cinescope.services.catalog import CatalogClient
from cinescope.services.exceptions import CatalogRequestError
from cinescope.services.fetch import FetchStatus
from cinescope.services.telemetry import SearchTelemetryService


def test_configure_logging_outputs_json(capsys):
    configure_logging("DEBUG", environment="staging")
    logger = structlog.get_logger()
    logger.info("unit-test", foo="bar")
    entry = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert entry["event"] == "unit-test"
    assert entry["foo"] == "bar"
    assert entry["service"] == "cinescope"
    assert entry["environment"] == "staging"
    assert entry["level"] == "info"


class RecordingStore:
    def __init__(self) -> None:
        self.created: list[NewSearchRecord] = []

    async def find(self, term: str) -> SearchRecord | None:
        return None

    async def create(self, record: NewSearchRecord) -> SearchRecord:
        self.created.append(record)
        return SearchRecord(id=str(len(self.created)), **record.model_dump())

    async def increment(self, record: SearchRecord) -> SearchRecord:
        raise AssertionError("not expected")

    async def top(self, limit: int) -> list[SearchRecord]:
        return [
            SearchRecord(id="1", search_term="Avatar", movie_id=19995, title="Avatar", count=3)
        ]


def _catalog(client: httpx.AsyncClient) -> CatalogClient:
    return CatalogClient(client, CatalogSettings(api_token=SecretStr("token")))


def _telemetry(store) -> SearchTelemetryService:
    return SearchTelemetryService(store, image_base_url="https://img.example/w500")


def _catalog_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/search/movie"):
        return httpx.Response(
            200,
            json={"results": [{"id": 19995, "title": "Avatar", "poster_path": "/a.jpg"},
                              {"id": 76600, "title": "Avatar: The Way of Water"}]},
        )
    return httpx.Response(200, json={"results": [{"id": 1, "title": "Popular"}]})


@pytest.mark.asyncio
async def test_load_home_fills_movies_and_trending():
    transport = httpx.MockTransport(_catalog_handler)
    async with httpx.AsyncClient(transport=transport) as client:
        movies, trending = await main_module.load_home(
            _catalog(client), _telemetry(RecordingStore()), trending_limit=5
        )

    assert movies.status is FetchStatus.SUCCEEDED
    assert [movie.title for movie in movies.data] == ["Popular"]
    assert trending.status is FetchStatus.SUCCEEDED
    assert [entry.search_term for entry in trending.data] == ["Avatar"]


@pytest.mark.asyncio
async def test_load_home_surfaces_catalog_errors_as_state():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport) as client:
        movies, trending = await main_module.load_home(
            _catalog(client), _telemetry(RecordingStore()), trending_limit=5
        )

    assert movies.status is FetchStatus.FAILED
    assert isinstance(movies.error, CatalogRequestError)
    assert movies.loading is False
    assert trending.status is FetchStatus.SUCCEEDED


@pytest.mark.asyncio
async def test_search_records_first_result_against_query():
    store = RecordingStore()
    transport = httpx.MockTransport(_catalog_handler)
    async with httpx.AsyncClient(transport=transport) as client:
        state = await main_module.search_movies("Avatar", _catalog(client), _telemetry(store))

    assert [movie.id for movie in state.data] == [19995, 76600]
    assert len(store.created) == 1
    assert store.created[0].search_term == "Avatar"
    assert store.created[0].movie_id == 19995
    assert store.created[0].poster_url == "https://img.example/w500/a.jpg"


@pytest.mark.asyncio
async def test_search_without_results_records_nothing():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"results": []})

    store = RecordingStore()
    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport) as client:
        state = await main_module.search_movies("zzzz", _catalog(client), _telemetry(store))

    assert state.data == []
    assert store.created == []


@pytest.mark.asyncio
async def test_main_bootstrap(monkeypatch):
    settings = AppSettings(catalog=CatalogSettings(api_token=SecretStr("token")))
    calls = {}

    async def fake_run(run_settings, query):
        calls["run"] = (run_settings, query)

    monkeypatch.setattr(
        main_module,
        "configure_logging",
        lambda level, environment: calls.update(level=level, environment=environment),
    )
    monkeypatch.setattr(main_module, "get_settings", lambda: settings)
    monkeypatch.setattr(main_module, "run", fake_run)
    monkeypatch.setattr(main_module.sys, "argv", ["cinescope", "the", "matrix"])

    await main_module.main()

    assert calls["level"] == "INFO"
    assert calls["environment"] == settings.environment
    assert calls["run"] == (settings, "the matrix")


@pytest.mark.asyncio
async def test_run_logs_home_view(monkeypatch):
    settings = AppSettings(catalog=CatalogSettings(api_token=SecretStr("token")))
    store = RecordingStore()
    transport = httpx.MockTransport(_catalog_handler)
    real_client = httpx.AsyncClient

    monkeypatch.setattr(
        main_module.httpx, "AsyncClient", lambda: real_client(transport=transport)
    )
    monkeypatch.setattr(main_module, "build_search_store", lambda *args, **kwargs: store)

    with capture_logs() as logs:
        await main_module.run(settings, "")

    events = {entry["event"]: entry for entry in logs}
    assert events["popular_movies"]["count"] == 1
    assert events["trending_movies"]["entries"] == [
        {"term": "Avatar", "title": "Avatar", "count": 3}
    ]
