"""HTTP gateway to the tournament snapshot endpoints.

GET  /tournament        -> snapshot or null
POST /tournament        -> {"success": true}
POST /tournament/reset  -> {"success": true}
"""

import logging
from typing import Optional

import httpx

from bracket_live.config import Settings
from bracket_live.utils.errors import ErrorCode, PersistenceError
from bracket_live.utils.http_client import AsyncHttpClient
from bracket_live.utils.json_utils import json_dumps_bytes, json_loads

from .snapshot import TournamentSnapshot

logger = logging.getLogger(__name__)

TOURNAMENT_PATH = "/tournament"
RESET_PATH = "/tournament/reset"


class TournamentApiClient:
    """Reads and writes whole tournament snapshots over HTTP.

    Every failure surfaces as PersistenceError; nothing is retried here.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._http = AsyncHttpClient(base_url=base_url, timeout=timeout, transport=transport)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "TournamentApiClient":
        return cls(settings.api_base_url, timeout=settings.http_timeout, transport=transport)

    async def __aenter__(self) -> "TournamentApiClient":
        await self._http.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self._http.aclose()

    async def fetch_snapshot(self) -> Optional[TournamentSnapshot]:
        """Fetch the current snapshot, or None if nothing is stored."""
        try:
            response = await self._http.get(TOURNAMENT_PATH)
            payload = json_loads(response.content)
        except (httpx.HTTPError, ValueError) as e:
            raise PersistenceError(
                "Failed to fetch tournament data",
                code=ErrorCode.SNAPSHOT_READ_FAILED,
                details={"reason": str(e)},
            )

        if payload is None:
            return None

        try:
            return TournamentSnapshot.from_dict(payload)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise PersistenceError(
                "Stored tournament data is malformed",
                code=ErrorCode.SNAPSHOT_READ_FAILED,
                details={"reason": str(e)},
            )

    async def save_snapshot(self, snapshot: TournamentSnapshot) -> None:
        try:
            await self._http.post(
                TOURNAMENT_PATH,
                content=json_dumps_bytes(snapshot.to_dict()),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise PersistenceError(
                "Failed to save tournament data",
                details={"reason": str(e)},
            )
        logger.debug(f"Tournament snapshot saved (lastUpdated={snapshot.last_updated})")

    async def reset(self) -> None:
        try:
            await self._http.post(RESET_PATH)
        except httpx.HTTPError as e:
            raise PersistenceError(
                "Failed to reset tournament data",
                details={"reason": str(e)},
            )
