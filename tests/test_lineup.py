"""Tests for lineup reconstruction."""

from collections import Counter

import pandas as pd
import pytest

from scouting.lineup import LineupReplay, reconstruct_seconds, replay_match
from scouting.normalize import ENTER, EXIT, OTHER, TWO_MADE, normalize_events

PERIOD_MINUTES = 10


def _events(rows: list[tuple]) -> pd.DataFrame:
    """Build normalized events from (player_id, period, 'M:SS', type_code) tuples."""
    raw = pd.DataFrame({
        "event_id": [str(i + 1) for i in range(len(rows))],
        "match_id": ["m1"] * len(rows),
        "player_id": [r[0] for r in rows],
        "type_code": [r[3] for r in rows],
        "description": [None] * len(rows),
        "minute": [r[2] for r in rows],
        "second": [None] * len(rows),
        "period": [r[1] for r in rows],
        "score": [None] * len(rows),
    })
    return normalize_events(raw)


class TestReconstructSeconds:
    """Tests for reconstruct_seconds."""

    def test_single_stint(self):
        """Test an entry at 10:00 and an exit at 4:00 credits 360 seconds."""
        events = _events([("p1", 1, "10:00", 112), ("p1", 1, "4:00", 115)])
        seconds = reconstruct_seconds(events, ["p1"], PERIOD_MINUTES)

        assert seconds["p1"][1] == 360

    def test_full_period_fallback(self):
        """Test a player seen only through other events gets the full period."""
        diagnostics = Counter()
        events = _events([("p1", 2, "7:00", 93), ("p1", 2, "3:00", 160)])
        seconds = reconstruct_seconds(events, ["p1"], PERIOD_MINUTES, diagnostics)

        assert seconds["p1"] == {2: 600}
        assert diagnostics["full_period_fallback"] == 1

    def test_stint_across_periods(self):
        """Test a stint spanning a period boundary."""
        events = _events([("p1", 1, "3:00", 112), ("p1", 3, "8:00", 115)])
        seconds = reconstruct_seconds(events, ["p1"], PERIOD_MINUTES)

        assert seconds["p1"] == {1: 180, 2: 600, 3: 120}

    def test_open_stint_closed_at_period_end(self):
        """Test a player never substituted out plays until the end of their last period."""
        diagnostics = Counter()
        events = _events([
            ("p1", 1, "5:00", 112),
            ("p1", 2, "6:00", 93),
        ])
        seconds = reconstruct_seconds(events, ["p1"], PERIOD_MINUTES, diagnostics)

        assert seconds["p1"] == {1: 300, 2: 600}
        assert diagnostics["closed_at_period_end"] == 1

    def test_orphan_exit_credits_from_period_start(self):
        """Test an exit without entry credits from the start of the period."""
        diagnostics = Counter()
        events = _events([("p1", 1, "6:00", 115)])
        seconds = reconstruct_seconds(events, ["p1"], PERIOD_MINUTES, diagnostics)

        assert seconds["p1"] == {1: 240}
        assert diagnostics["orphan_exit"] == 1

    def test_orphan_exit_bounded_by_last_exit(self):
        """Test a second orphan exit only credits time since the previous exit."""
        events = _events([("p1", 1, "8:00", 115), ("p1", 1, "5:00", 115)])
        seconds = reconstruct_seconds(events, ["p1"], PERIOD_MINUTES)

        assert seconds["p1"] == {1: 300}

    def test_orphan_exit_after_implicit_presence(self):
        """Test an orphan exit credits from the period the player first showed up."""
        events = _events([("p1", 1, "4:00", 93), ("p1", 2, "5:00", 115)])
        seconds = reconstruct_seconds(events, ["p1"], PERIOD_MINUTES)

        assert seconds["p1"] == {1: 600, 2: 300}

    def test_duplicate_enter_ignored(self):
        """Test a second entry while on court does not restart the stint."""
        diagnostics = Counter()
        events = _events([
            ("p1", 1, "10:00", 112),
            ("p1", 1, "6:00", 112),
            ("p1", 1, "2:00", 115),
        ])
        seconds = reconstruct_seconds(events, ["p1"], PERIOD_MINUTES, diagnostics)

        assert seconds["p1"] == {1: 480}
        assert diagnostics["duplicate_enter"] == 1

    def test_filters_to_team(self):
        """Test only the team's players are reported."""
        events = _events([("p1", 1, "10:00", 112), ("o1", 1, "9:00", 112)])

        assert set(reconstruct_seconds(events, ["p1"], PERIOD_MINUTES)) == {"p1"}
        assert set(reconstruct_seconds(events, None, PERIOD_MINUTES)) == {"p1", "o1"}

    def test_no_period_exceeds_length(self):
        """Test every credited period is within [0, period length]."""
        events = _events([
            ("p1", 1, "10:00", 112),
            ("p1", 1, "9:00", 115),
            ("p1", 1, "8:00", 115),
            ("p1", 2, "10:00", 112),
            ("p2", 1, "7:00", 93),
            ("p2", 3, "1:00", 115),
        ])
        seconds = reconstruct_seconds(events, None, PERIOD_MINUTES)

        for periods in seconds.values():
            for secs in periods.values():
                assert 0 <= secs <= PERIOD_MINUTES * 60
            assert sum(periods.values()) <= 3 * PERIOD_MINUTES * 60

    def test_idempotent(self, sample_raw_events):
        """Test that replaying the same events twice gives the same result."""
        events = normalize_events(sample_raw_events)

        first = reconstruct_seconds(events, ["p1", "p2"], PERIOD_MINUTES)
        second = reconstruct_seconds(events, ["p1", "p2"], PERIOD_MINUTES)

        assert first == second

    def test_empty_events(self):
        """Test that a match without events reports nobody."""
        assert reconstruct_seconds(_events([]), ["p1"], PERIOD_MINUTES) == {}


class TestLineupReplay:
    """Tests for the per-player state machine."""

    def test_conservation(self):
        """Test that credited time equals the sum of the stint lengths."""
        replay = LineupReplay(600)
        replay.apply("p1", 1, 600, ENTER)
        replay.apply("p1", 1, 450, EXIT)
        replay.apply("p1", 1, 300, ENTER)
        replay.apply("p1", 2, 420, EXIT)

        seconds = replay.finalize()

        assert sum(seconds["p1"].values()) == (600 - 450) + (300 + 600 - 420)

    def test_other_events_do_not_change_status(self):
        """Test that non-substitution events never move a player on court."""
        replay = LineupReplay(600)
        replay.apply("p1", 1, 500, TWO_MADE)
        replay.apply("p1", 1, 400, OTHER)

        assert replay.players["p1"].status == "bench"
        assert replay.players["p1"].implicit_period == 1

    def test_clock_clamped(self):
        """Test clock values outside the period are clamped."""
        replay = LineupReplay(600)
        replay.apply("p1", 1, 700, ENTER)
        replay.apply("p1", 1, -5, EXIT)

        assert replay.finalize()["p1"] == {1: pytest.approx(600)}

    def test_missing_player_ignored(self):
        """Test events without a player are ignored."""
        replay = LineupReplay(600)
        replay.apply("", 1, 300, ENTER)

        assert replay.finalize() == {}


class TestReplayMatchBaskets:
    """Tests for made-basket plus/minus credited during the replay."""

    def test_baskets_credit_players_on_court(self):
        """Test two players splitting a period each get only their own baskets."""
        events = _events([
            ("p1", 1, "10:00", 112),
            ("p1", 1, "9:00", 93),
            ("p1", 1, "8:00", 115),
            ("p2", 1, "8:00", 112),
            ("o1", 1, "5:00", 94),
        ])

        seconds, baskets = replay_match(events, ["p1", "p2"], PERIOD_MINUTES)

        assert baskets == {"p1": 2, "p2": -3}
        assert seconds == {"p1": {1: 120}, "p2": {1: 480}}

    def test_implicit_presence_counts_in_same_period(self):
        """Test a player seen without an entry counts as on court in that period only."""
        events = _events([
            ("p1", 1, "9:00", 92),
            ("o1", 1, "6:00", 93),
            ("o1", 2, "6:00", 93),
        ])

        _, baskets = replay_match(events, ["p1"], PERIOD_MINUTES)

        assert baskets == {"p1": 1 - 2}

    def test_no_team_tracks_no_baskets(self):
        """Test basket plus/minus is only tracked for a given team."""
        events = _events([("p1", 1, "10:00", 112), ("p1", 1, "9:00", 93)])

        _, baskets = replay_match(events, None, PERIOD_MINUTES)

        assert baskets == {}
