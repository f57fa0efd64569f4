"""
Single-elimination tournament bracket.

This module provides:
- Immutable bracket models and the rules that advance them
- The whole-snapshot wire format
- Snapshot stores and the HTTP gateway to them
- Client-side sync: debounced admin saves, viewer polling
"""

from .coordinator import SnapshotGateway, SyncCoordinator
from .engine import BracketEngine
from .models import Bracket, Match, PlayerSlot, Round, sorted_round_names
from .snapshot import TournamentSnapshot

__all__ = [
    "BracketEngine",
    "Bracket",
    "Match",
    "PlayerSlot",
    "Round",
    "sorted_round_names",
    "TournamentSnapshot",
    "SnapshotGateway",
    "SyncCoordinator",
]
