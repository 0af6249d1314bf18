"""TMDB catalog client: popular discovery and free-text movie search."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from cinescope.config import CatalogSettings
from cinescope.domain.models import CatalogItem
from cinescope.logging import logger
from cinescope.services.exceptions import (
    CatalogParseError,
    CatalogRequestError,
    CatalogTransportError,
    ConfigurationError,
)

_ITEMS = TypeAdapter(list[CatalogItem])


class CatalogClient:
    """Single-attempt reads against the movie catalog.

    An empty query lists movies by popularity; anything else is sent as a
    search term exactly as given.
    """

    def __init__(self, http_client: httpx.AsyncClient, settings: CatalogSettings) -> None:
        self._client = http_client
        self._settings = settings

    async def fetch_movies(self, query: str = "") -> list[CatalogItem]:
        url = self._endpoint(query)
        try:
            response = await self._client.get(
                url,
                headers=self._headers(),
                timeout=self._settings.request_timeout_seconds,
            )
        except httpx.RequestError as exc:
            logger.warning("catalog_request_failed", query=query, error=str(exc))
            raise CatalogTransportError(f"Failed to fetch movies: {exc}") from exc

        if not response.is_success:
            reason = response.reason_phrase
            logger.warning(
                "catalog_bad_status", query=query, status_code=response.status_code, reason=reason
            )
            raise CatalogRequestError(
                f"Failed to fetch movies: {reason}",
                status_code=response.status_code,
                reason=reason,
            )

        return self._parse(response)

    def _endpoint(self, query: str) -> str:
        base = str(self._settings.base_url).rstrip("/")
        if query:
            return f"{base}/search/movie?query={quote(query, safe='')}"
        return f"{base}/discover/movie?sort_by=popularity.desc"

    def _headers(self) -> dict[str, str]:
        token = self._settings.api_token
        if token is None or not token.get_secret_value():
            raise ConfigurationError("Catalog API token is not configured.")
        return {
            "accept": "application/json",
            "Authorization": f"Bearer {token.get_secret_value()}",
        }

    @staticmethod
    def _parse(response: httpx.Response) -> list[CatalogItem]:
        try:
            payload: Any = response.json()
        except ValueError as exc:
            raise CatalogParseError("Catalog response is not valid JSON.") from exc

        if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
            raise CatalogParseError("Catalog response has no results list.")

        try:
            return _ITEMS.validate_python(payload["results"])
        except ValidationError as exc:
            raise CatalogParseError(f"Unexpected catalog item shape: {exc}") from exc


__all__ = ["CatalogClient"]
