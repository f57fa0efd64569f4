"""Tests for bracket rules."""

import math

import pytest

from bracket_live.tournament.engine import BracketEngine
from bracket_live.tournament.models import FINAL_ROUND, sorted_round_names
from bracket_live.utils.errors import ErrorCode, InvalidBracketSizeError, ValidationError
from tests.conftest import play_match


class TestInitialize:
    """Tests for bracket construction."""

    @pytest.mark.parametrize("size", [4, 8, 16, 32])
    def test_round_layout(self, engine: BracketEngine, size: int):
        bracket = engine.initialize(size)

        assert len(bracket.rounds) == int(math.log2(size))
        assert len(bracket.rounds[0].matches) == size // 2
        assert bracket.rounds[-1].name == FINAL_ROUND
        assert len(bracket.rounds[-1].matches) == 1
        for previous, current in zip(bracket.rounds, bracket.rounds[1:]):
            assert len(current.matches) == len(previous.matches) // 2

    def test_round_names_and_match_ids(self, engine: BracketEngine):
        bracket = engine.initialize(8)

        assert bracket.round_names == ["Round 1", "Round 2", "Final"]
        assert [m.id for m in bracket.rounds[0].matches] == ["R1-0", "R1-1", "R1-2", "R1-3"]
        assert bracket.final.id == "R3-0"

    def test_slots_start_empty(self, engine: BracketEngine):
        bracket = engine.initialize(4)

        for r in bracket.rounds:
            for match in r.matches:
                assert match.player1.name == ""
                assert match.player1.score is None
                assert match.player2.score is None
                assert match.winner is None
                assert match.completed is False
        assert bracket.champion is None

    @pytest.mark.parametrize("size", [0, 2, 6, 64, -8])
    def test_unsupported_size_rejected(self, engine: BracketEngine, size: int):
        with pytest.raises(InvalidBracketSizeError) as exc_info:
            engine.initialize(size)

        assert isinstance(exc_info.value, ValidationError)
        assert exc_info.value.code == ErrorCode.INVALID_BRACKET_SIZE

    def test_reset_clears_results(self, engine: BracketEngine):
        bracket = play_match(engine, engine.initialize(4), "Round 1", 0, ("Alice", 3), ("Bob", 1))

        fresh = engine.reset(4)

        assert fresh == engine.initialize(4)
        assert fresh != bracket


class TestRecordSlot:
    """Tests for writing names and scores."""

    def test_record_name_and_score(self, engine: BracketEngine):
        bracket = engine.initialize(4)

        bracket = engine.record_slot(bracket, "Round 1", 1, "player2", "name", "Carol")
        bracket = engine.record_slot(bracket, "Round 1", 1, "player2", "score", "4.5")

        match = bracket.get_match("Round 1", 1)
        assert match.player2.name == "Carol"
        assert match.player2.score == 4.5

    def test_empty_score_clears(self, engine: BracketEngine):
        bracket = engine.record_slot(engine.initialize(4), "Round 1", 0, "player1", "score", 2)

        bracket = engine.record_slot(bracket, "Round 1", 0, "player1", "score", "")

        assert bracket.get_match("Round 1", 0).player1.score is None

    def test_missing_match_is_noop(self, engine: BracketEngine):
        bracket = engine.initialize(4)

        assert engine.record_slot(bracket, "Round 1", 9, "player1", "name", "X") is bracket
        assert engine.record_slot(bracket, "Round 7", 0, "player1", "name", "X") is bracket

    def test_completed_match_is_noop(self, engine: BracketEngine):
        bracket = play_match(engine, engine.initialize(4), "Round 1", 0, ("Alice", 3), ("Bob", 1))

        unchanged = engine.record_slot(bracket, "Round 1", 0, "player1", "name", "Mallory")

        assert unchanged is bracket

    @pytest.mark.parametrize(
        "slot, field",
        [("player3", "name"), ("player1", "multiplier"), ("", "score")],
    )
    def test_unknown_slot_or_field(self, engine: BracketEngine, slot: str, field: str):
        with pytest.raises(ValidationError) as exc_info:
            engine.record_slot(engine.initialize(4), "Round 1", 0, slot, field, "x")

        assert exc_info.value.code == ErrorCode.INVALID_SLOT

    def test_unparsable_score(self, engine: BracketEngine):
        with pytest.raises(ValidationError):
            engine.record_slot(engine.initialize(4), "Round 1", 0, "player1", "score", "abc")

    @pytest.mark.parametrize("value", ["nan", "inf", "-Infinity", float("nan"), float("inf")])
    def test_non_finite_score_rejected(self, engine: BracketEngine, value):
        bracket = engine.initialize(4)

        with pytest.raises(ValidationError) as exc_info:
            engine.record_slot(bracket, "Round 1", 0, "player1", "score", value)

        assert exc_info.value.code == ErrorCode.INVALID_SLOT
        assert bracket.get_match("Round 1", 0).player1.score is None

    def test_input_bracket_not_mutated(self, engine: BracketEngine):
        original = engine.initialize(4)

        engine.record_slot(original, "Round 1", 0, "player1", "name", "Alice")

        assert original.get_match("Round 1", 0).player1.name == ""


class TestDecideWinner:
    """Tests for closing matches and advancing winners."""

    def test_winner_advances_to_final(self, engine: BracketEngine):
        bracket = play_match(engine, engine.initialize(4), "Round 1", 0, ("Alice", 2.5), ("Bob", 1.0))

        match = bracket.get_match("Round 1", 0)
        assert match.winner == "Alice"
        assert match.completed is True
        assert bracket.final.player1.name == "Alice"
        assert bracket.final.player1.score is None
        assert bracket.final.player2.name == ""

    def test_decide_twice_changes_nothing(self, engine: BracketEngine):
        bracket = play_match(engine, engine.initialize(4), "Round 1", 0, ("Alice", 2.5), ("Bob", 1.0))

        again = engine.decide_winner(bracket, "Round 1", 0)

        assert again is bracket
        assert again.final.player1.name == "Alice"

    def test_tie_goes_to_player1(self, engine: BracketEngine):
        bracket = play_match(engine, engine.initialize(4), "Round 1", 1, ("Dana", 2.0), ("Eve", 2.0))

        assert bracket.get_match("Round 1", 1).winner == "Dana"
        assert bracket.final.player2.name == "Dana"

    def test_player2_wins_with_higher_score(self, engine: BracketEngine):
        bracket = play_match(engine, engine.initialize(4), "Round 1", 0, ("Alice", 1), ("Bob", 7))

        assert bracket.get_match("Round 1", 0).winner == "Bob"

    @pytest.mark.parametrize(
        "slots",
        [
            [("player1", "name", "Alice"), ("player2", "name", "Bob"), ("player1", "score", 1)],
            [("player1", "name", "Alice"), ("player1", "score", 1), ("player2", "score", 2)],
            [],
        ],
    )
    def test_incomplete_match_rejected(self, engine: BracketEngine, slots):
        bracket = engine.initialize(4)
        for slot, field, value in slots:
            bracket = engine.record_slot(bracket, "Round 1", 0, slot, field, value)

        with pytest.raises(ValidationError) as exc_info:
            engine.decide_winner(bracket, "Round 1", 0)

        assert exc_info.value.code == ErrorCode.MATCH_NOT_READY
        assert exc_info.value.message == "Please enter both player names and scores."
        assert bracket.get_match("Round 1", 0).completed is False

    def test_odd_index_advances_to_player2(self, engine: BracketEngine):
        bracket = play_match(engine, engine.initialize(8), "Round 1", 3, ("Gus", 5), ("Hal", 4))

        target = bracket.get_match("Round 2", 1)
        assert target.player2.name == "Gus"
        assert target.player1.name == ""

    def test_final_crowns_champion(self, engine: BracketEngine):
        bracket = engine.initialize(4)
        bracket = play_match(engine, bracket, "Round 1", 0, ("Alice", 3), ("Bob", 1))
        bracket = play_match(engine, bracket, "Round 1", 1, ("Carol", 2), ("Dan", 4))
        bracket = engine.record_slot(bracket, FINAL_ROUND, 0, "player1", "score", 10)
        bracket = engine.record_slot(bracket, FINAL_ROUND, 0, "player2", "score", 12)

        bracket = engine.decide_winner(bracket, FINAL_ROUND, 0)

        assert bracket.final.winner == "Dan"
        assert bracket.champion == "Dan"

    def test_full_bracket_of_eight(self, engine: BracketEngine):
        bracket = engine.initialize(8)
        names = ["A", "B", "C", "D", "E", "F", "G", "H"]
        for i in range(4):
            bracket = play_match(
                engine, bracket, "Round 1", i, (names[2 * i], 2), (names[2 * i + 1], 1)
            )
        assert [
            (m.player1.name, m.player2.name) for m in bracket.get_round("Round 2").matches
        ] == [("A", "C"), ("E", "G")]

        for i in range(2):
            m = bracket.get_match("Round 2", i)
            bracket = play_match(engine, bracket, "Round 2", i, (m.player1.name, 1), (m.player2.name, 3))
        assert (bracket.final.player1.name, bracket.final.player2.name) == ("C", "G")

        bracket = play_match(engine, bracket, FINAL_ROUND, 0, ("C", 9), ("G", 9))
        assert bracket.champion == "C"

    def test_advance_keeps_decided_next_match(self, engine: BracketEngine):
        bracket = engine.initialize(4)
        bracket = play_match(engine, bracket, "Round 1", 0, ("Alice", 3), ("Bob", 1))
        bracket = play_match(engine, bracket, "Round 1", 1, ("Carol", 3), ("Dan", 1))
        bracket = play_match(engine, bracket, FINAL_ROUND, 0, ("Alice", 5), ("Carol", 1))

        bracket = engine.advance_winner(bracket, "Round 1", 0, "Bob")

        assert bracket.final.player1.name == "Bob"
        assert bracket.final.winner == "Alice"
        assert bracket.final.completed is True

    def test_missing_match_is_noop(self, engine: BracketEngine):
        bracket = engine.initialize(4)

        assert engine.decide_winner(bracket, "Round 5", 0) is bracket


class TestRoundOrdering:
    def test_sorted_round_names(self):
        names = ["Final", "Round 10", "Round 2", "Round 1"]

        assert sorted_round_names(names) == ["Round 1", "Round 2", "Round 10", "Final"]

    def test_unknown_round_name(self):
        with pytest.raises(ValueError):
            sorted_round_names(["Semis", "Final"])
