"""Single-page calls to the external scrape service."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from airsweep.exceptions import DecodeError, HttpStatusError, TransportError

logger = logging.getLogger(__name__)

_HEADERS = {"Content-Type": "application/json"}


class PageFetcher:
    """Wraps one shared ``httpx.AsyncClient`` for scrape-service requests.

    Use as an async context manager so the connection pool is closed::

        async with PageFetcher(timeout=60) as fetcher:
            entries = await fetcher.fetch(scrape_url, query_url, 0)
    """

    def __init__(
        self,
        timeout: float | None = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        # timeout 0 / None means "no timeout beyond the transport's own"
        self._client = client or httpx.AsyncClient(timeout=timeout or None)

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch(
        self, scrape_url: str, query_url: str, page: int
    ) -> list[dict[str, Any]]:
        """POST one page request and return its raw listing entries.

        Raises ``TransportError``, ``HttpStatusError`` or ``DecodeError``.
        """
        payload = {"page": page, "airbnbUrl": query_url}
        try:
            resp = await self._client.post(scrape_url, json=payload, headers=_HEADERS)
        except httpx.TransportError as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc

        if not resp.is_success:
            raise HttpStatusError(resp.status_code)

        return _decode_entries(resp)


def _decode_entries(resp: httpx.Response) -> list[dict[str, Any]]:
    try:
        body = resp.json()
    except ValueError as exc:
        preview = resp.text[:200].replace("\n", " ")
        raise DecodeError(f"response is not JSON; body starts: {preview!r}") from exc

    if not isinstance(body, dict) or not isinstance(body.get("data"), list):
        raise DecodeError("response has no 'data' list")

    entries = body["data"]
    for entry in entries:
        if not isinstance(entry, dict):
            raise DecodeError(f"listing entry is not an object: {entry!r}")
    logger.debug("Decoded %d entries.", len(entries))
    return entries
