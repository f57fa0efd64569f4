"""
Bracket Engine - single-elimination state transitions.

Every operation takes a Bracket and returns a Bracket; nothing is mutated
in place. Operations on a round or match that does not exist return the
input unchanged.
"""

import logging
import math
from typing import Any, Optional

from bracket_live.config import BRACKET_SIZES
from bracket_live.utils.errors import (
    ErrorCode,
    InvalidBracketSizeError,
    ValidationError,
)

from .models import (
    FINAL_ROUND,
    SLOT_FIELDS,
    SLOT_KEYS,
    Bracket,
    Match,
    PlayerSlot,
    Round,
    match_id,
    round_name,
)

logger = logging.getLogger(__name__)


class BracketEngine:
    """
    Single-elimination bracket rules.

    Round 1 holds size/2 matches and each later round half of the previous
    one, ending in a one-match "Final". A decided match pushes its winner
    into slot (index % 2) of match (index // 2) of the next round; deciding
    the Final crowns the champion instead.
    """

    def __init__(self, sizes: tuple = BRACKET_SIZES):
        self.sizes = tuple(sizes)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize(self, size: int) -> Bracket:
        """Build an empty bracket for size contestants.

        Raises:
            InvalidBracketSizeError: if size is not a supported bracket size
        """
        if size not in self.sizes:
            raise InvalidBracketSizeError(size, self.sizes)

        total_rounds = int(math.log2(size))
        rounds = []
        match_count = size // 2
        for number in range(1, total_rounds + 1):
            rounds.append(
                Round(
                    name=round_name(number, total_rounds),
                    matches=tuple(Match(id=match_id(number, i)) for i in range(match_count)),
                )
            )
            match_count //= 2

        return Bracket(size=size, rounds=tuple(rounds))

    def reset(self, size: int) -> Bracket:
        """Discard all results and start over."""
        bracket = self.initialize(size)
        logger.info(f"Bracket reset (size={size})")
        return bracket

    # =========================================================================
    # Edits
    # =========================================================================

    def record_slot(
        self,
        bracket: Bracket,
        round_name: str,
        match_index: int,
        slot: str,
        field: str,
        value: Any,
    ) -> Bracket:
        """Write a contestant name or score into an open match.

        A score given as text is parsed; empty text clears it.

        Raises:
            ValidationError: unknown slot or field, or an unparsable score
        """
        if slot not in SLOT_KEYS:
            raise ValidationError(
                f"Unknown slot: {slot}",
                code=ErrorCode.INVALID_SLOT,
                details={"slot": slot},
            )
        if field not in SLOT_FIELDS:
            raise ValidationError(
                f"Unknown field: {field}",
                code=ErrorCode.INVALID_SLOT,
                details={"field": field},
            )

        match = bracket.get_match(round_name, match_index)
        if match is None or match.completed:
            return bracket

        current = match.slot(slot)
        if field == "name":
            updated = PlayerSlot(name=str(value or ""), score=current.score)
        else:
            updated = PlayerSlot(name=current.name, score=self._parse_score(value))

        return bracket.with_match(round_name, match_index, match.with_slot(slot, updated))

    def decide_winner(self, bracket: Bracket, round_name: str, match_index: int) -> Bracket:
        """Close a match and move its winner on.

        Ties go to player1. Deciding an already completed match is a no-op.

        Raises:
            ValidationError: a name or score is missing
        """
        match = bracket.get_match(round_name, match_index)
        if match is None or match.completed:
            return bracket

        if not (match.player1.is_ready and match.player2.is_ready):
            raise ValidationError(
                "Please enter both player names and scores.",
                code=ErrorCode.MATCH_NOT_READY,
                details={"round": round_name, "matchIndex": match_index},
            )

        if match.player1.score >= match.player2.score:
            winner = match.player1.name
        else:
            winner = match.player2.name

        bracket = bracket.with_match(round_name, match_index, match.decided(winner))
        logger.info(f"Winner decided: {round_name} #{match_index} -> {winner}")

        if round_name == FINAL_ROUND:
            logger.info(f"Champion crowned: {winner}")
            return bracket.with_champion(winner)

        return self.advance_winner(bracket, round_name, match_index, winner)

    def advance_winner(
        self,
        bracket: Bracket,
        round_name: str,
        match_index: int,
        winner: str,
    ) -> Bracket:
        """Seat winner in the next round's pending slot.

        Only the name and score of that slot change; a decided next-round
        match keeps its winner and completed flag.
        """
        next_name = bracket.next_round_name(round_name)
        if next_name is None:
            return bracket

        next_index = match_index // 2
        target = bracket.get_match(next_name, next_index)
        if target is None:
            return bracket

        slot = "player1" if match_index % 2 == 0 else "player2"
        advanced = target.with_slot(slot, PlayerSlot(name=winner, score=None))
        return bracket.with_match(next_name, next_index, advanced)

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _parse_score(value: Any) -> Optional[float]:
        if value is None:
            return None
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
        try:
            score = float(value)
        except (TypeError, ValueError):
            score = None
        # NaN and infinity cannot be compared or sent as JSON
        if score is None or not math.isfinite(score):
            raise ValidationError(
                f"Invalid score: {value!r}",
                code=ErrorCode.INVALID_SLOT,
                details={"value": str(value)},
            )
        return score
