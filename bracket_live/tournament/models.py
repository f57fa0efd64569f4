"""
Bracket Data Models.

Immutable state representations for single-elimination brackets.
All mutations go through the BracketEngine.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple

FINAL_ROUND = "Final"
ROUND_PREFIX = "Round "

SlotKey = Literal["player1", "player2"]
SlotField = Literal["name", "score"]

SLOT_KEYS: Tuple[str, ...] = ("player1", "player2")
SLOT_FIELDS: Tuple[str, ...] = ("name", "score")


def round_name(round_number: int, total_rounds: int) -> str:
    """Display name for a 1-based round number."""
    if round_number == total_rounds:
        return FINAL_ROUND
    return f"{ROUND_PREFIX}{round_number}"


def match_id(round_number: int, index: int) -> str:
    return f"R{round_number}-{index}"


def _round_sort_key(name: str) -> Tuple[int, int]:
    if name == FINAL_ROUND:
        return (1, 0)
    if not name.startswith(ROUND_PREFIX):
        raise ValueError(f"Unknown round name: {name!r}")
    return (0, int(name[len(ROUND_PREFIX):]))


def sorted_round_names(names: Iterable[str]) -> List[str]:
    """Order round names: "Round N" ascending by N, "Final" last."""
    return sorted(names, key=_round_sort_key)


@dataclass(frozen=True)
class PlayerSlot:
    """One contestant slot of a match."""

    name: str = ""
    score: Optional[float] = None

    @property
    def is_ready(self) -> bool:
        return bool(self.name) and self.score is not None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "score": self.score}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PlayerSlot":
        # Older snapshots call the score "multiplier"
        score = d.get("score", d.get("multiplier"))
        return cls(
            name=d.get("name") or "",
            score=float(score) if score is not None else None,
        )


@dataclass(frozen=True)
class Match:
    """
    A pairing of two slots.

    Once completed, winner is one of the two slot names and the match is
    only replaced by a full bracket reset.
    """

    id: str
    player1: PlayerSlot = field(default_factory=PlayerSlot)
    player2: PlayerSlot = field(default_factory=PlayerSlot)
    winner: Optional[str] = None
    completed: bool = False

    def slot(self, key: str) -> PlayerSlot:
        return self.player1 if key == "player1" else self.player2

    def with_slot(self, key: str, slot: PlayerSlot) -> "Match":
        """Return new instance with one slot replaced."""
        if key == "player1":
            return replace(self, player1=slot)
        return replace(self, player2=slot)

    def decided(self, winner: str) -> "Match":
        """Return new instance marked completed."""
        return replace(self, winner=winner, completed=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "player1": self.player1.to_dict(),
            "player2": self.player2.to_dict(),
            "winner": self.winner,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Match":
        return cls(
            id=d["id"],
            player1=PlayerSlot.from_dict(d.get("player1") or {}),
            player2=PlayerSlot.from_dict(d.get("player2") or {}),
            winner=d.get("winner") or None,
            completed=bool(d.get("completed", False)),
        )


@dataclass(frozen=True)
class Round:
    """Named, ordered group of matches."""

    name: str
    matches: Tuple[Match, ...] = ()

    def get_match(self, index: int) -> Optional[Match]:
        if 0 <= index < len(self.matches):
            return self.matches[index]
        return None

    def with_match(self, index: int, match: Match) -> "Round":
        matches = list(self.matches)
        matches[index] = match
        return replace(self, matches=tuple(matches))


@dataclass(frozen=True)
class Bracket:
    """
    Full single-elimination structure - immutable.

    rounds are ordered first round to Final; champion is set only when the
    Final match is completed.
    """

    size: int
    rounds: Tuple[Round, ...] = ()
    champion: Optional[str] = None

    @property
    def round_names(self) -> List[str]:
        return [r.name for r in self.rounds]

    @property
    def final(self) -> Optional[Match]:
        final_round = self.get_round(FINAL_ROUND)
        return final_round.get_match(0) if final_round else None

    def get_round(self, name: str) -> Optional[Round]:
        for r in self.rounds:
            if r.name == name:
                return r
        return None

    def get_match(self, round_name: str, index: int) -> Optional[Match]:
        r = self.get_round(round_name)
        return r.get_match(index) if r else None

    def next_round_name(self, name: str) -> Optional[str]:
        names = self.round_names
        if name not in names:
            return None
        position = names.index(name)
        if position + 1 < len(names):
            return names[position + 1]
        return None

    def with_match(self, round_name: str, index: int, match: Match) -> "Bracket":
        """Return new instance with one match replaced."""
        rounds = tuple(
            r.with_match(index, match) if r.name == round_name else r
            for r in self.rounds
        )
        return replace(self, rounds=rounds)

    def with_champion(self, champion: Optional[str]) -> "Bracket":
        return replace(self, champion=champion)
