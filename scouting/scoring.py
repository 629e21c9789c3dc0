"""Period-delta scorer: net scoring margin per period for one team."""

from typing import Optional

import pandas as pd

from .normalize import PERIOD_SCORE


def parse_score(score_str) -> Optional[tuple[int, int]]:
    """
    Parse a 'home-away' scoreboard string.

    Returns:
        (home, away) tuple, or None if the string is malformed
    """
    if score_str is None or pd.isna(score_str) or "-" not in str(score_str):
        return None
    try:
        parts = str(score_str).split("-")
        return int(parts[0].strip()), int(parts[1].strip())
    except (ValueError, IndexError):
        return None


def snapshot_scores(events: pd.DataFrame) -> dict[int, tuple[int, int]]:
    """Scoreboard snapshot per period; the last snapshot of a period wins."""
    scores = {}
    snapshots = events[events["event_type"] == PERIOD_SCORE]
    for snap in snapshots.itertuples(index=False):
        parsed = parse_score(snap.score)
        if parsed is None:
            continue
        scores[int(snap.period)] = parsed
    return scores


def snapshot_deltas(
    events: pd.DataFrame, is_home: bool, cumulative: bool = True
) -> dict[int, int]:
    """
    Derive per-period margins from period-end scoreboard snapshots.

    Args:
        events: Normalized events of one match
        is_home: True if the team of interest is the home side
        cumulative: Snapshots carry the running score (standard format);
                    False means each snapshot is already the period's score
                    (short-format competitions)

    Returns:
        {period: own points - opponent points} for periods with a snapshot
    """
    scores = snapshot_scores(events)
    deltas = {}
    prev_home, prev_away = 0, 0
    for period in sorted(scores):
        home, away = scores[period]
        home_points, away_points = home, away
        if cumulative:
            home_points -= prev_home
            away_points -= prev_away
        prev_home, prev_away = home, away

        if is_home:
            deltas[period] = home_points - away_points
        else:
            deltas[period] = away_points - home_points
    return deltas


def has_snapshots(events: pd.DataFrame) -> bool:
    return not events.empty and bool((events["event_type"] == PERIOD_SCORE).any())


def period_deltas(events: pd.DataFrame, is_home: bool, cumulative: bool = True) -> dict[int, int]:
    """
    Per-period margin for the team of interest from scoreboard snapshots.

    Returns {} when the match has no snapshot; made baskets are then
    credited player by player during the lineup replay
    (lineup.replay_match). Periods missing from the result count as 0.
    """
    if not has_snapshots(events):
        return {}
    return snapshot_deltas(events, is_home, cumulative=cumulative)
