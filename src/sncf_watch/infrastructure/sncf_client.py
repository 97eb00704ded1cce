from __future__ import annotations

import logging
from datetime import date
from typing import Any

import httpx

from sncf_watch.domain.exceptions import FetchError
from sncf_watch.infrastructure.headers import make_headers
from sncf_watch.infrastructure.time_utils import format_departure_param

logger = logging.getLogger(__name__)

BASE_URL = "https://www.maxjeune-tgvinoui.sncf"
FREEPLACES_PATH = "/api/public/refdata/search-freeplaces-proposals"
DEFAULT_TIMEOUT = 15.0  # seconds


class SncfClient:
    """HTTP client for the SNCF free-places endpoint.

    A single httpx.AsyncClient instance is used throughout the process lifetime
    so that connections are reused between polls.
    """

    def __init__(self, http_client: httpx.AsyncClient, base_url: str = BASE_URL) -> None:
        self._http = http_client
        self._base_url = base_url.rstrip("/")

    async def search_freeplaces(
        self, origin: str, destination: str, travel_date: date
    ) -> dict[str, Any]:
        """GET /api/public/refdata/search-freeplaces-proposals for one route and day.

        Raises FetchError on transport failure, non-2xx status or a body that is
        not a JSON object.
        """
        url = f"{self._base_url}{FREEPLACES_PATH}"
        params = {
            "origin": origin,
            "destination": destination,
            "departureDateTime": format_departure_param(travel_date),
        }
        logger.debug("Fetching free places %s -> %s on %s", origin, destination, travel_date)
        try:
            response = await self._http.get(url, params=params, headers=make_headers())
        except httpx.TimeoutException as exc:
            raise FetchError(f"Request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Request failed: {exc}") from exc

        self._raise_for_status(response)
        try:
            data = response.json()
        except ValueError as exc:
            raise FetchError("Upstream returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise FetchError(f"Unexpected payload type: {type(data).__name__}")
        return data

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Raise FetchError for non-2xx responses."""
        if response.status_code == 404:
            raise FetchError(f"Resource not found (404): {response.url}", status_code=404)
        if response.status_code >= 400:
            raise FetchError(status_code=response.status_code)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()
