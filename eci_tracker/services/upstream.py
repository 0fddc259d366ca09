"""
Client for the ECI progression endpoint.

The payload is untrusted: anything that is not JSON with a non-negative integer
signatureCount raises UpstreamError, which fails the current tick only.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp
from pydantic import ValidationError

from eci_tracker.core.config import settings
from eci_tracker.db.schemas import Snapshot

logger = logging.getLogger("eci.upstream")


class UpstreamError(Exception):
    """Raised when the progression API cannot be fetched or parsed."""


def parse_progress(payload: Any) -> Snapshot:
    """Validate a decoded progression payload into a raw (not overridden) Snapshot."""
    if not isinstance(payload, dict):
        raise UpstreamError(f"Unexpected payload type: {type(payload).__name__}")
    if "signatureCount" not in payload:
        raise UpstreamError("Payload missing signatureCount")
    count = payload["signatureCount"]
    if isinstance(count, bool):
        raise UpstreamError("signatureCount must be a number, got a boolean")
    goal = payload.get("goal")
    if isinstance(goal, bool) or not isinstance(goal, (int, float)):
        goal = None
    elif isinstance(goal, float) and not goal.is_integer():
        goal = None
    try:
        return Snapshot.model_validate(
            {"signatureCount": count, "goal": goal}
        )
    except ValidationError as exc:
        raise UpstreamError(f"Malformed progression payload: {exc}") from exc


class UpstreamClient:
    """Fetches the current progress; owns a lazily created aiohttp session."""

    def __init__(
        self,
        url: str | None = None,
        timeout_sec: float | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.url = url or settings.UPSTREAM_URL
        self._timeout = aiohttp.ClientTimeout(
            total=timeout_sec if timeout_sec is not None else settings.UPSTREAM_TIMEOUT_SEC
        )
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"Accept": "application/json"},
            )
            self._owns_session = True
        return self._session

    async def fetch(self) -> Snapshot:
        session = await self._get_session()
        try:
            async with session.get(self.url) as response:
                if response.status != 200:
                    raise UpstreamError(f"HTTP {response.status} from {self.url}")
                body = await response.text()
        except aiohttp.ClientError as exc:
            raise UpstreamError(f"Request failed: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise UpstreamError(f"Request timed out after {self._timeout.total}s") from exc
        try:
            payload = json.loads(body)
        except (TypeError, json.JSONDecodeError) as exc:
            raise UpstreamError("Response is not valid JSON") from exc
        snapshot = parse_progress(payload)
        logger.debug("Fetched progress: %d signatures, goal %s", snapshot.signature_count, snapshot.goal)
        return snapshot

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
