"""Per-login client context.

A LiveSession is created when a user signs in and closed when they sign out.
It owns the realtime connection, the event dispatcher and the tournament
sync coordinator, so nothing lives in module-level globals.

Usage:
    async with login(identity, settings) as live:
        live.coordinator.on_change(render)
        ...
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

import httpx

from bracket_live.auth.policy import AdminPolicy, Role, UserIdentity
from bracket_live.config import Settings, get_settings
from bracket_live.logging_config import bind_context, clear_context
from bracket_live.tournament.api_client import TournamentApiClient
from bracket_live.tournament.coordinator import SyncCoordinator
from bracket_live.ws.dispatcher import EventDispatcher
from bracket_live.ws.events import EventType
from bracket_live.ws.session import ConnectionSession, Connector

logger = logging.getLogger(__name__)


class LiveSession:
    """Everything one signed-in user needs, torn down together."""

    def __init__(
        self,
        identity: UserIdentity,
        settings: Optional[Settings] = None,
        *,
        api_client: Optional[TournamentApiClient] = None,
        connector: Optional[Connector] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.identity = identity
        self.settings = settings or get_settings()
        self.role = AdminPolicy.for_tournament(self.settings).role_for(identity)

        self.dispatcher = EventDispatcher()
        self.api_client = api_client or TournamentApiClient.from_settings(
            self.settings, transport=http_transport
        )
        self.coordinator = SyncCoordinator.from_settings(self.api_client, self.role, self.settings)
        self.connection = ConnectionSession(
            self.settings.ws_url,
            identity.user_id,
            on_message=self.dispatcher.dispatch_envelope,
            base_delay=self.settings.reconnect_base_delay,
            max_delay=self.settings.reconnect_max_delay,
            connector=connector,
        )

        self._unsubscribers: list[Callable[[], None]] = []
        self._started = False
        self._closed = False

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        bind_context(user_id=self.identity.user_id, role=self.role.value)

        self._unsubscribers.append(
            self.dispatcher.subscribe(
                EventType.TOURNAMENT_UPDATED, self.coordinator.handle_tournament_updated
            )
        )
        self._unsubscribers.append(
            self.dispatcher.subscribe(
                EventType.TOURNAMENT_RESET, self.coordinator.handle_tournament_reset
            )
        )

        await self.api_client.__aenter__()
        await self.connection.connect()
        await self.coordinator.start()
        logger.info(f"Live session started (user={self.identity.user_id}, role={self.role.value})")

    async def close(self) -> None:
        """Cancel every timer and task and close the socket once."""
        if self._closed:
            return
        self._closed = True

        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

        await self.coordinator.close()
        await self.connection.close()
        await self.api_client.__aexit__(None, None, None)
        self.dispatcher.clear()

        logger.info(f"Live session closed (user={self.identity.user_id})")
        clear_context()

    async def __aenter__(self) -> LiveSession:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


@asynccontextmanager
async def login(
    identity: UserIdentity,
    settings: Optional[Settings] = None,
    **kwargs,
) -> AsyncIterator[LiveSession]:
    """Create a LiveSession for the duration of a sign-in."""
    session = LiveSession(identity, settings, **kwargs)
    try:
        await session.start()
        yield session
    finally:
        await session.close()
