"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest

from bracket_live.config import Settings
from bracket_live.tournament.engine import BracketEngine
from bracket_live.tournament.models import Bracket
from bracket_live.tournament.snapshot import TournamentSnapshot


# =============================================================================
# Test Settings
# =============================================================================


def get_test_settings(**overrides: Any) -> Settings:
    """Settings with short timers so debounce and polling run quickly."""
    values: dict[str, Any] = {
        "app_env": "test",
        "api_base_url": "http://testserver/api",
        "ws_url": "ws://testserver/ws",
        "reconnect_base_delay": 0.01,
        "reconnect_max_delay": 0.05,
        "auth_timeout_seconds": 0.5,
        "save_debounce_seconds": 0.05,
        "poll_interval_seconds": 0.05,
        "tournament_admin_ids": "discord-admin",
        "panel_admin_ids": "discord-panel",
        "redis_url": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def test_settings() -> Settings:
    return get_test_settings()


@pytest.fixture
def engine() -> BracketEngine:
    return BracketEngine()


# =============================================================================
# Bracket Helpers
# =============================================================================


def play_match(
    engine: BracketEngine,
    bracket: Bracket,
    round_name: str,
    index: int,
    player1: tuple[str, float],
    player2: tuple[str, float],
) -> Bracket:
    """Fill both slots of a match and decide it."""
    bracket = engine.record_slot(bracket, round_name, index, "player1", "name", player1[0])
    bracket = engine.record_slot(bracket, round_name, index, "player1", "score", player1[1])
    bracket = engine.record_slot(bracket, round_name, index, "player2", "name", player2[0])
    bracket = engine.record_slot(bracket, round_name, index, "player2", "score", player2[1])
    return engine.decide_winner(bracket, round_name, index)


def make_snapshot(
    size: int = 4,
    last_updated: str = "2024-05-01T12:00:00Z",
) -> TournamentSnapshot:
    return TournamentSnapshot(bracket=BracketEngine().initialize(size), last_updated=last_updated)


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Yield to the loop until predicate() holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.001)
