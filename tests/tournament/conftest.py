"""Tournament test fixtures and utilities."""

from __future__ import annotations

import asyncio
from typing import Optional

from bracket_live.tournament.snapshot import TournamentSnapshot
from bracket_live.utils.errors import ErrorCode, PersistenceError


class FakeSnapshotGateway:
    """In-memory stand-in for the tournament HTTP API."""

    def __init__(self, snapshot: Optional[TournamentSnapshot] = None):
        self.snapshot = snapshot
        self.saved: list[TournamentSnapshot] = []
        self.fetch_count = 0
        self.reset_count = 0
        self.fail_fetch = False
        self.fail_save = False
        self.fail_reset = False
        self.save_delay = 0.0

    async def fetch_snapshot(self) -> Optional[TournamentSnapshot]:
        self.fetch_count += 1
        if self.fail_fetch:
            raise PersistenceError("fetch failed", code=ErrorCode.SNAPSHOT_READ_FAILED)
        if self.snapshot is None:
            return None
        # A fresh instance every time, as a real poll would return
        return TournamentSnapshot.from_dict(self.snapshot.to_dict())

    async def save_snapshot(self, snapshot: TournamentSnapshot) -> None:
        if self.save_delay:
            await asyncio.sleep(self.save_delay)
        if self.fail_save:
            raise PersistenceError("save failed")
        self.saved.append(snapshot)
        self.snapshot = snapshot

    async def reset(self) -> None:
        if self.fail_reset:
            raise PersistenceError("reset failed")
        self.reset_count += 1
        self.snapshot = None
