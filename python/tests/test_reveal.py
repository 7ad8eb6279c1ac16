"""
Tests for the reveal scheduler and its boundary helpers.
"""

from __future__ import annotations

import pytest

from career_chat.models import Granularity, RevealState
from career_chat.reveal import (
    RevealScheduler,
    RevealTiming,
    reveal_boundaries,
    reveal_prefixes,
)
from tests.mock_data import ManualScheduler


def _recording_reveal(
    scheduler: ManualScheduler, timing: RevealTiming | None = None
) -> tuple[RevealScheduler, list[RevealState], list[RevealState]]:
    updates: list[RevealState] = []
    completions: list[RevealState] = []
    reveal = RevealScheduler(
        scheduler,
        timing=timing,
        on_update=updates.append,
        on_complete=completions.append,
    )
    return reveal, updates, completions


# =============================================================================
# Boundary Tests
# =============================================================================


class TestRevealBoundaries:
    """Tests for the prefix lengths a reveal stops at."""

    def test_character_stops_after_every_character(self) -> None:
        assert reveal_boundaries("abc", Granularity.CHARACTER) == [1, 2, 3]

    def test_word_stops_never_split_words(self) -> None:
        assert reveal_prefixes("Hello big world", Granularity.WORD) == [
            "Hello",
            "Hello big",
            "Hello big world",
        ]

    def test_trailing_whitespace_delivered_with_final_stop(self) -> None:
        assert reveal_boundaries("hi  there ", "word") == [2, 9, 10]

    def test_whitespace_only_text_has_single_stop(self) -> None:
        assert reveal_boundaries("   ", Granularity.WORD) == [3]

    @pytest.mark.parametrize("granularity", [Granularity.CHARACTER, Granularity.WORD])
    def test_empty_text_has_no_stops(self, granularity: Granularity) -> None:
        assert reveal_boundaries("", granularity) == []

    def test_unknown_granularity_rejected(self) -> None:
        with pytest.raises(ValueError):
            reveal_boundaries("text", "sentence")


class TestRevealTiming:
    """Tests for reveal interval validation."""

    def test_defaults(self) -> None:
        timing = RevealTiming()
        assert timing.interval_for(Granularity.CHARACTER) == pytest.approx(0.03)
        assert timing.interval_for(Granularity.WORD) == pytest.approx(0.05)
        assert timing.initial_delay == pytest.approx(0.15)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"character_interval": 0},
            {"word_interval": -0.01},
            {"initial_delay": -1},
        ],
    )
    def test_invalid_values_rejected(self, kwargs: dict[str, float]) -> None:
        with pytest.raises(ValueError):
            RevealTiming(**kwargs)


# =============================================================================
# RevealScheduler Tests
# =============================================================================


class TestRevealScheduler:
    """Tests for incremental disclosure on a virtual clock."""

    def test_word_reveal_follows_timing(self) -> None:
        scheduler = ManualScheduler()
        reveal, updates, completions = _recording_reveal(scheduler)

        state = reveal.start("Hello big world", Granularity.WORD, message_id="m1")
        assert state.revealed_prefix == ""
        assert state.active

        scheduler.advance(0.14)
        assert updates == []

        scheduler.advance(0.01)
        assert reveal.revealed_text == "Hello"
        scheduler.advance(0.05)
        assert reveal.revealed_text == "Hello big"
        scheduler.advance(0.05)
        assert reveal.revealed_text == "Hello big world"

        assert [u.revealed_prefix for u in updates] == ["Hello", "Hello big", "Hello big world"]
        assert len(completions) == 1
        assert completions[0].message_id == "m1"
        assert not reveal.active
        assert scheduler.pending_count == 0

    def test_character_reveal_every_prefix(self) -> None:
        scheduler = ManualScheduler()
        reveal, updates, _ = _recording_reveal(scheduler)

        reveal.start("Hey!", Granularity.CHARACTER)
        scheduler.run_until_idle()

        assert [u.revealed_prefix for u in updates] == ["H", "He", "Hey", "Hey!"]

    def test_prefix_is_always_a_prefix(self) -> None:
        scheduler = ManualScheduler()
        text = "Tell me about a time you disagreed with a teammate."
        reveal, updates, _ = _recording_reveal(scheduler)

        reveal.start(text, Granularity.WORD)
        scheduler.run_until_idle()

        lengths = [len(u.revealed_prefix) for u in updates]
        assert lengths == sorted(set(lengths))
        assert all(text.startswith(u.revealed_prefix) for u in updates)
        assert updates[-1].is_complete

    def test_empty_text_completes_without_ticks(self) -> None:
        scheduler = ManualScheduler()
        reveal, updates, completions = _recording_reveal(scheduler)

        state = reveal.start("", message_id="empty")

        assert not state.active
        assert state.is_complete
        assert len(completions) == 1
        assert updates == []
        assert scheduler.pending_count == 0

    def test_restart_cancels_previous_reveal(self) -> None:
        scheduler = ManualScheduler()
        reveal, updates, completions = _recording_reveal(scheduler)

        reveal.start("first message here", Granularity.WORD, message_id="a")
        scheduler.advance(0.15)
        reveal.start("second", Granularity.WORD, message_id="b")
        scheduler.run_until_idle()

        assert [u.message_id for u in updates] == ["a", "b"]
        assert [c.message_id for c in completions] == ["b"]
        assert reveal.revealed_text == "second"

    def test_cancel_stops_in_place(self) -> None:
        scheduler = ManualScheduler()
        reveal, updates, completions = _recording_reveal(scheduler)

        reveal.start("one two three", Granularity.WORD)
        scheduler.advance(0.15)
        assert reveal.cancel() is True
        scheduler.run_until_idle()

        assert reveal.revealed_text == "one"
        assert not reveal.active
        assert completions == []
        assert reveal.cancel() is False

    def test_complete_jumps_to_full_text(self) -> None:
        scheduler = ManualScheduler()
        reveal, updates, completions = _recording_reveal(scheduler)

        reveal.start("one two three", Granularity.WORD)
        state = reveal.complete()
        scheduler.run_until_idle()

        assert state is not None and state.is_complete
        assert len(completions) == 1
        assert len(updates) == 1
        assert reveal.complete() is None

    def test_update_source_restarts_active_reveal(self) -> None:
        scheduler = ManualScheduler()
        reveal, _, _ = _recording_reveal(scheduler)

        reveal.start("draft text", Granularity.WORD, message_id="m")
        scheduler.advance(0.15)
        assert reveal.update_source("draft text") is None

        restarted = reveal.update_source("final text")
        assert restarted is not None
        assert restarted.revealed_prefix == ""
        assert restarted.message_id == "m"

        scheduler.run_until_idle()
        assert reveal.revealed_text == "final text"

    def test_update_source_ignored_when_idle(self) -> None:
        reveal, _, _ = _recording_reveal(ManualScheduler())
        assert reveal.update_source("anything") is None

    def test_state_is_a_snapshot(self) -> None:
        scheduler = ManualScheduler()
        reveal, _, _ = _recording_reveal(scheduler)

        reveal.start("abc", Granularity.CHARACTER)
        snapshot = reveal.state
        scheduler.run_until_idle()

        assert snapshot is not None
        assert snapshot.revealed_prefix == ""
        assert reveal.state.revealed_prefix == "abc"
