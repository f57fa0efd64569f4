"""
Tournament sync coordinator.

Keeps one client's local bracket in step with the persisted snapshot.

Admin write path:
    edit → local bracket replaced → debounce timer (re)started
    quiet window expires → whole snapshot persisted

Viewer read path:
    poll timer / tournament:updated → fingerprint compared → replace wholesale

Concurrent admins are last-writer-wins: whichever debounce window closes
last overwrites the others.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional, Protocol, Set

from bracket_live.auth.policy import Role
from bracket_live.config import Settings
from bracket_live.utils.async_utils import cancel_task_safe, cancel_timer, create_safe_task
from bracket_live.utils.errors import (
    AuthorizationError,
    ErrorCode,
    PersistenceError,
    ValidationError,
)

from .engine import BracketEngine
from .models import Bracket
from .snapshot import TournamentSnapshot

logger = logging.getLogger(__name__)

ChangeListener = Callable[[Optional[Bracket]], None]


class SnapshotGateway(Protocol):
    """Where snapshots are read from and written to."""

    async def fetch_snapshot(self) -> Optional[TournamentSnapshot]: ...

    async def save_snapshot(self, snapshot: TournamentSnapshot) -> None: ...

    async def reset(self) -> None: ...


class SyncCoordinator:
    """Owns the local bracket for one signed-in user."""

    def __init__(
        self,
        gateway: SnapshotGateway,
        role: Role,
        *,
        engine: Optional[BracketEngine] = None,
        save_debounce: float = 1.0,
        poll_interval: float = 5.0,
        default_size: int = 8,
    ):
        self.gateway = gateway
        self.role = role
        self.engine = engine or BracketEngine()
        self.save_debounce = save_debounce
        self.poll_interval = poll_interval
        self.default_size = default_size

        self._bracket: Optional[Bracket] = None
        self._loading = True
        self._last_fingerprint: Optional[str] = None
        self._listeners: List[ChangeListener] = []
        self._closed = False

        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._save_tasks: Set[asyncio.Task] = set()
        # Saves run one at a time, in the order their windows closed
        self._save_lock = asyncio.Lock()
        self._poll_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(
        cls,
        gateway: SnapshotGateway,
        role: Role,
        settings: Settings,
        engine: Optional[BracketEngine] = None,
    ) -> "SyncCoordinator":
        return cls(
            gateway,
            role,
            engine=engine,
            save_debounce=settings.save_debounce_seconds,
            poll_interval=settings.poll_interval_seconds,
            default_size=settings.default_bracket_size,
        )

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def bracket(self) -> Optional[Bracket]:
        return self._bracket

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def save_pending(self) -> bool:
        return self._debounce_handle is not None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Load the current snapshot; viewers then start polling."""
        await self.bootstrap()
        if not self.is_admin and self._poll_task is None and not self._closed:
            self._poll_task = create_safe_task(self._poll_loop(), name="tournament_poll")

    async def bootstrap(self) -> None:
        """Initial load.

        With nothing stored, an admin starts a default-size bracket and saves
        it right away; a viewer stays in the loading state.
        """
        fetch_failed = False
        try:
            snapshot = await self.gateway.fetch_snapshot()
        except PersistenceError as e:
            logger.error(f"Failed to load tournament: {e.message}")
            snapshot = None
            fetch_failed = True

        if snapshot is not None:
            self.apply_snapshot(snapshot)
            return

        if not self.is_admin:
            return

        self._replace(self.engine.initialize(self.default_size))
        if fetch_failed:
            # The store may hold a bracket we could not read; do not clobber it
            return
        await self._persist_in_order()

    async def close(self) -> None:
        """Cancel every pending timer and task."""
        if self._closed:
            return
        self._closed = True
        cancel_timer(self._debounce_handle)
        self._debounce_handle = None
        await cancel_task_safe(self._poll_task)
        self._poll_task = None
        for task in list(self._save_tasks):
            await cancel_task_safe(task)
        self._save_tasks.clear()
        self._listeners.clear()

    # =========================================================================
    # Listeners
    # =========================================================================

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        """Call listener(bracket) after every local or remote replacement."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in tuple(self._listeners):
            try:
                listener(self._bracket)
            except Exception:
                logger.exception("Bracket change listener failed")

    def _replace(self, bracket: Optional[Bracket]) -> None:
        self._bracket = bracket
        self._loading = bracket is None
        self._notify()

    # =========================================================================
    # Read path
    # =========================================================================

    def apply_snapshot(self, snapshot: TournamentSnapshot) -> bool:
        """Replace local state if the snapshot differs from the last one seen.

        An admin with an unsaved edit keeps the local bracket.

        Returns:
            True if local state was replaced
        """
        snapshot_fingerprint = snapshot.fingerprint()
        if snapshot_fingerprint == self._last_fingerprint:
            return False

        if self.is_admin and self.save_pending:
            logger.debug("Ignoring remote snapshot while a local edit is unsaved")
            return False

        self._last_fingerprint = snapshot_fingerprint
        self._replace(snapshot.bracket)
        logger.info(
            f"Tournament updated from remote (size={snapshot.size}, "
            f"lastUpdated={snapshot.last_updated})"
        )
        return True

    def handle_tournament_updated(self, event: Any) -> None:
        """Channel handler for tournament:updated."""
        self.apply_snapshot(event.snapshot)

    def handle_tournament_reset(self, event: Any) -> None:
        """Channel handler for tournament:reset.

        Viewers drop back to the loading state until the next snapshot. The
        admin who reset has already reinitialized locally.
        """
        if self.is_admin:
            return
        self._last_fingerprint = None
        self._replace(None)

    async def refresh(self) -> bool:
        """Fetch once and apply. Failures and empty results keep local state."""
        try:
            snapshot = await self.gateway.fetch_snapshot()
        except PersistenceError as e:
            logger.warning(f"Tournament poll failed: {e.message}")
            return False
        if snapshot is None:
            return False
        return self.apply_snapshot(snapshot)

    async def _poll_loop(self) -> None:
        while not self._closed:
            await asyncio.sleep(self.poll_interval)
            await self.refresh()

    # =========================================================================
    # Write path (admin only)
    # =========================================================================

    def record_slot(
        self,
        round_name: str,
        match_index: int,
        slot: str,
        field: str,
        value: Any,
    ) -> Bracket:
        self._require_admin("edit tournament data")
        return self._commit(
            self.engine.record_slot(
                self._require_bracket(), round_name, match_index, slot, field, value
            )
        )

    def decide_winner(self, round_name: str, match_index: int) -> Bracket:
        self._require_admin("decide winners")
        return self._commit(
            self.engine.decide_winner(self._require_bracket(), round_name, match_index)
        )

    def change_size(self, size: int) -> Bracket:
        """Start over with a bracket of a different size."""
        self._require_admin("change the tournament size")
        return self._commit(self.engine.initialize(size))

    async def reset(self) -> Bracket:
        """Delete the stored snapshot, then start over at the current size.

        Raises:
            AuthorizationError: caller is not an admin
            PersistenceError: the stored snapshot could not be removed
        """
        self._require_admin("reset the tournament")
        size = self._bracket.size if self._bracket is not None else self.default_size
        await self.gateway.reset()
        return self._commit(self.engine.reset(size))

    def _require_admin(self, action: str) -> None:
        if not self.is_admin:
            raise AuthorizationError(action)

    def _require_bracket(self) -> Bracket:
        if self._bracket is None:
            raise ValidationError(
                "Tournament is still loading.",
                code=ErrorCode.TOURNAMENT_NOT_LOADED,
            )
        return self._bracket

    def _commit(self, bracket: Bracket) -> Bracket:
        if bracket is self._bracket:
            return bracket
        self._replace(bracket)
        self._schedule_save()
        return bracket

    def _schedule_save(self) -> None:
        if self._closed:
            return
        cancel_timer(self._debounce_handle)
        self._debounce_handle = asyncio.get_running_loop().call_later(
            self.save_debounce, self._on_debounce_expired
        )

    def _on_debounce_expired(self) -> None:
        self._debounce_handle = None
        if self._closed:
            return
        task = create_safe_task(self._persist_in_order(), name="tournament_save")
        self._save_tasks.add(task)
        task.add_done_callback(self._save_tasks.discard)

    async def _persist_in_order(self) -> bool:
        async with self._save_lock:
            if self._closed:
                return False
            return await self._persist_now()

    async def _persist_now(self) -> bool:
        """Save the whole local bracket. Failures are logged, local state kept."""
        if self._bracket is None:
            return False
        snapshot = TournamentSnapshot.capture(self._bracket)
        # Recorded before the write so the broadcast echo is recognized
        self._last_fingerprint = snapshot.fingerprint()
        try:
            await self.gateway.save_snapshot(snapshot)
        except PersistenceError as e:
            logger.error(f"Failed to save tournament: {e.message}")
            return False
        logger.debug(f"Tournament saved (lastUpdated={snapshot.last_updated})")
        return True
