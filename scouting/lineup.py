"""Lineup reconstruction: seconds on court per player per period.

Replays one match's normalized events through a per-player state machine
(bench / on court). Substitution records are often incomplete, so the
replay recovers from orphan exits, duplicate entries and players that only
show up through other events, then applies explicit end-of-match closure
rules in a finalization pass.
"""

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional

import pandas as pd

from .normalize import ENTER, EXIT, POINTS

BENCH = "bench"
ON_COURT = "on_court"


@dataclass
class PlayerState:
    """Replay state of one player within one match."""

    status: str = BENCH
    entry_period: int = 0
    entry_clock: float = 0.0
    last_exit: Optional[tuple] = None
    # First period in which the player showed up while tracked on the bench
    implicit_period: Optional[int] = None
    last_period: int = 0
    periods_seen: set = field(default_factory=set)
    periods_with_sub: set = field(default_factory=set)
    seconds: dict = field(default_factory=lambda: defaultdict(float))


class LineupReplay:
    """
    Single-pass replay of a match's events.

    Args:
        period_seconds: Nominal period length in seconds
        diagnostics: Optional Counter collecting recovered inconsistencies
        team_player_ids: Team whose made-basket plus/minus is tracked (None skips it)
    """

    def __init__(
        self,
        period_seconds: float,
        diagnostics: Optional[Counter] = None,
        team_player_ids: Optional[Iterable[str]] = None,
    ):
        self.period_seconds = period_seconds
        self.diagnostics = diagnostics if diagnostics is not None else Counter()
        self.players: dict[str, PlayerState] = {}
        self.team = {str(pid) for pid in team_player_ids} if team_player_ids is not None else None
        self.basket_plus_minus: dict[str, int] = defaultdict(int)

    def _clamp(self, clock: float) -> float:
        return min(max(float(clock), 0.0), self.period_seconds)

    def _credit(
        self, state: PlayerState, from_period: int, from_clock: float,
        to_period: int, to_clock: float,
    ) -> None:
        """Credit time between two countdown clock positions."""
        if to_period < from_period:
            return
        if from_period == to_period:
            state.seconds[to_period] += max(0.0, from_clock - to_clock)
            return
        state.seconds[from_period] += from_clock
        for period in range(from_period + 1, to_period):
            state.seconds[period] += self.period_seconds
        state.seconds[to_period] += self.period_seconds - to_clock

    def apply(self, player_id: str, period: int, clock: float, event_type: str) -> None:
        """Advance one player's state machine with one event."""
        if not player_id:
            return
        state = self.players.setdefault(player_id, PlayerState())
        clock = self._clamp(clock)
        state.periods_seen.add(period)
        state.last_period = max(state.last_period, period)

        if event_type == ENTER:
            state.periods_with_sub.add(period)
            if state.status == ON_COURT:
                self.diagnostics["duplicate_enter"] += 1
                return
            state.status = ON_COURT
            state.entry_period = period
            state.entry_clock = clock
            state.implicit_period = None

        elif event_type == EXIT:
            state.periods_with_sub.add(period)
            if state.status == ON_COURT:
                self._credit(state, state.entry_period, state.entry_clock, period, clock)
            else:
                self.diagnostics["orphan_exit"] += 1
                start_period = state.implicit_period or period
                start_clock = self.period_seconds
                if state.last_exit is not None and state.last_exit[0] >= start_period:
                    start_period, start_clock = state.last_exit
                self._credit(state, start_period, start_clock, period, clock)
            state.status = BENCH
            state.last_exit = (period, clock)
            state.implicit_period = None

        elif state.status == BENCH and state.implicit_period is None:
            state.implicit_period = period

    def on_court(self, player_id: str, period: int) -> bool:
        """On court now: an open stint, or implicit presence in this period."""
        state = self.players.get(player_id)
        if state is None:
            return False
        if state.status == ON_COURT:
            return True
        return state.implicit_period is not None and state.last_period == period

    def credit_basket(self, scorer_id: str, period: int, points: int) -> None:
        """
        Add a made basket to the tracked team's players on court right now:
        +points when one of them scored, -points when the opponent did.
        """
        if self.team is None or not scorer_id:
            return
        sign = 1 if scorer_id in self.team else -1
        for player_id in self.players:
            if player_id in self.team and self.on_court(player_id, period):
                self.basket_plus_minus[player_id] += sign * points

    def finalize(self) -> dict[str, dict[int, float]]:
        """
        Apply the terminal transitions and return seconds per player per period.

        1. Players still on court are closed at the end of the last period in
           which they appear.
        2. A period with events for the player, no substitution record and no
           credited time counts as a full period.
        3. No period exceeds the nominal period length.
        """
        result = {}
        for player_id, state in self.players.items():
            if state.status == ON_COURT:
                self.diagnostics["closed_at_period_end"] += 1
                end_period = max(state.last_period, state.entry_period)
                self._credit(state, state.entry_period, state.entry_clock, end_period, 0.0)
                state.status = BENCH

            for period in sorted(state.periods_seen):
                if period in state.periods_with_sub:
                    continue
                if state.seconds.get(period, 0) == 0:
                    self.diagnostics["full_period_fallback"] += 1
                    state.seconds[period] = float(self.period_seconds)

            per_period = {}
            for period, secs in sorted(state.seconds.items()):
                if secs > self.period_seconds:
                    self.diagnostics["capped_period"] += 1
                    secs = float(self.period_seconds)
                per_period[period] = secs
            result[player_id] = per_period
        return result


def replay_match(
    events: pd.DataFrame,
    team_player_ids: Optional[Iterable[str]],
    period_minutes: float,
    diagnostics: Optional[Counter] = None,
) -> tuple[dict[str, dict[int, float]], dict[str, int]]:
    """
    Replay one match: seconds on court and made-basket plus/minus in one pass.

    Each made basket is credited to the team's players on court at that
    instant (after the scoring event itself is applied, so the scorer
    counts). This is the plus/minus of matches without scoreboard snapshots.

    Args:
        events: Normalized events of a single match, in total order
        team_player_ids: Player IDs to report (None reports every player
                         and tracks no basket plus/minus)
        period_minutes: Nominal period length in minutes
        diagnostics: Optional Counter collecting recovered inconsistencies

    Returns:
        ({player_id: {period: seconds}}, {player_id: basket plus/minus})
    """
    replay = LineupReplay(period_minutes * 60, diagnostics=diagnostics, team_player_ids=team_player_ids)
    for event in events.itertuples(index=False):
        period = int(event.period)
        replay.apply(event.player_id, period, event.clock_seconds, event.event_type)
        if event.event_type in POINTS:
            replay.credit_basket(event.player_id, period, int(event.points))

    seconds = replay.finalize()
    baskets = dict(replay.basket_plus_minus)
    if team_player_ids is None:
        return seconds, baskets
    wanted = {str(pid) for pid in team_player_ids}
    return {pid: periods for pid, periods in seconds.items() if pid in wanted}, baskets


def reconstruct_seconds(
    events: pd.DataFrame,
    team_player_ids: Optional[Iterable[str]],
    period_minutes: float,
    diagnostics: Optional[Counter] = None,
) -> dict[str, dict[int, float]]:
    """
    Reconstruct seconds on court per period for one match.

    Args:
        events: Normalized events of a single match, in total order
        team_player_ids: Player IDs to report (None reports every player)
        period_minutes: Nominal period length in minutes
        diagnostics: Optional Counter collecting recovered inconsistencies

    Returns:
        {player_id: {period: seconds}}
    """
    seconds, _ = replay_match(events, team_player_ids, period_minutes, diagnostics=diagnostics)
    return seconds
