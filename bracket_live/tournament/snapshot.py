"""
Tournament snapshot codec.

A snapshot is the whole persisted unit: size, bracket, champion and the
time of the last admin write. It is always read and written as a whole.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bracket_live.config import BRACKET_SIZES
from bracket_live.utils.json_utils import fingerprint

from .models import Bracket, Match, Round, sorted_round_names


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def serialize_bracket(bracket: Bracket) -> Dict[str, Any]:
    """Bracket rounds as the wire mapping: round name -> list of matches."""
    return {r.name: [m.to_dict() for m in r.matches] for r in bracket.rounds}


def deserialize_bracket(
    size: int,
    rounds: Dict[str, Any],
    champion: Optional[str] = None,
) -> Bracket:
    """Rebuild a Bracket from its wire mapping.

    Raises:
        ValueError: if the size or round layout is not a valid bracket
    """
    if size not in BRACKET_SIZES:
        raise ValueError(f"Invalid bracket size: {size}")
    if not isinstance(rounds, dict):
        raise ValueError("bracket must be a mapping of round name to matches")

    expected_rounds = int(math.log2(size))
    names = sorted_round_names(rounds.keys())
    if len(names) != expected_rounds:
        raise ValueError(
            f"Bracket of size {size} needs {expected_rounds} rounds, got {len(names)}"
        )

    parsed = []
    expected_matches = size // 2
    for name in names:
        matches = tuple(Match.from_dict(m) for m in rounds[name])
        if len(matches) != expected_matches:
            raise ValueError(
                f"{name} needs {expected_matches} matches, got {len(matches)}"
            )
        for match in matches:
            _check_match(match)
        parsed.append(Round(name=name, matches=matches))
        expected_matches //= 2

    champion = champion or None
    final = parsed[-1].matches[0]
    if champion is not None and not (final.completed and final.winner == champion):
        raise ValueError(f"Champion {champion!r} is not the winner of a completed Final")

    return Bracket(size=size, rounds=tuple(parsed), champion=champion)


def _check_match(match: Match) -> None:
    for player in (match.player1, match.player2):
        if player.score is not None and not math.isfinite(player.score):
            raise ValueError(f"{match.id}: score must be a finite number")
    if match.completed and (
        not match.winner or match.winner not in (match.player1.name, match.player2.name)
    ):
        raise ValueError(f"{match.id}: a completed match needs one of its players as winner")


@dataclass(frozen=True)
class TournamentSnapshot:
    """The persisted {size, bracket, champion, lastUpdated} unit."""

    bracket: Bracket
    last_updated: str = ""

    @property
    def size(self) -> int:
        return self.bracket.size

    @property
    def champion(self) -> Optional[str]:
        return self.bracket.champion

    @classmethod
    def capture(cls, bracket: Bracket) -> "TournamentSnapshot":
        """Snapshot the bracket as of now."""
        return cls(bracket=bracket, last_updated=utc_now_iso())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": self.size,
            "bracket": serialize_bracket(self.bracket),
            "champion": self.champion,
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TournamentSnapshot":
        """Parse a wire snapshot.

        Raises:
            ValueError, KeyError, TypeError: on a malformed snapshot
        """
        if not isinstance(d, dict):
            raise TypeError("snapshot must be an object")
        bracket = deserialize_bracket(
            int(d["size"]),
            d.get("bracket") or {},
            d.get("champion") or None,
        )
        return cls(bracket=bracket, last_updated=d.get("lastUpdated") or "")

    def fingerprint(self) -> str:
        """Value-based content fingerprint of the whole snapshot."""
        return fingerprint(self.to_dict())
