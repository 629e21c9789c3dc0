"""Plus/minus aggregation from on-court seconds and period margins."""

from collections import Counter
from typing import Iterable, Optional

import pandas as pd

from .lineup import replay_match
from .normalize import parse_time_played
from .scoring import has_snapshots, period_deltas

SHORT_FORMAT_PERIOD_MINUTES = 6
STANDARD_PERIOD_MINUTES = 10


def _seconds_to_clock(seconds) -> str:
    """Convert seconds to M:SS format."""
    seconds = int(round(seconds))
    minutes = seconds // 60
    secs = seconds % 60
    return f"{minutes}:{secs:02d}"


def period_minutes_for(match: dict, short_format: bool) -> float:
    """Period length of a match: its own setting, else the competition format's."""
    minutes = match.get("period_minutes")
    if minutes is not None and not pd.isna(minutes) and float(minutes) > 0:
        return float(minutes)
    return SHORT_FORMAT_PERIOD_MINUTES if short_format else STANDARD_PERIOD_MINUTES


def match_plus_minus(
    seconds_by_player: dict[str, dict[int, float]], deltas: dict[int, int]
) -> dict[str, dict]:
    """
    Combine on-court time and period margins for one match.

    A player on court for any part of a period receives that period's whole
    margin (period-level plus/minus, not possession-level).

    Returns:
        {player_id: {"plusMinus": int, "seconds": float}}
    """
    result = {}
    for player_id, periods in seconds_by_player.items():
        total_plus_minus = 0
        total_seconds = 0.0
        for period, secs in periods.items():
            if secs > 0:
                total_seconds += secs
                total_plus_minus += deltas.get(period, 0)
        result[player_id] = {"plusMinus": total_plus_minus, "seconds": total_seconds}
    return result


def basket_plus_minus(
    seconds_by_player: dict[str, dict[int, float]], baskets: dict[str, int]
) -> dict[str, dict]:
    """Results for a match without snapshots, from baskets credited during the replay."""
    return {
        player_id: {
            "plusMinus": int(baskets.get(player_id, 0)),
            "seconds": float(sum(secs for secs in periods.values() if secs > 0)),
        }
        for player_id, periods in seconds_by_player.items()
    }


def compute_match_plus_minus(
    events: pd.DataFrame,
    matches: pd.DataFrame,
    team_id,
    team_player_ids: Iterable[str],
    short_format: bool,
    diagnostics: Optional[Counter] = None,
) -> dict[tuple[str, str], dict]:
    """
    Reconstruct seconds and plus/minus for every match of a team.

    Matches with scoreboard snapshots use period-level margins; matches
    without them use made baskets credited to the players on court.

    Args:
        events: Normalized events of all matches
        matches: Matches of the team
        team_id: Team of interest
        team_player_ids: The team's roster
        short_format: Short-format (mini) competition flag
        diagnostics: Optional Counter collecting recovered inconsistencies

    Returns:
        {(match_id, player_id): {"plusMinus": int, "seconds": float}}
    """
    team_players = {str(pid) for pid in team_player_ids}
    results = {}
    if events.empty:
        return results

    events_by_match = {mid: group for mid, group in events.groupby("match_id", sort=False)}
    for match in matches.to_dict("records"):
        match_id = str(match["match_id"])
        match_events = events_by_match.get(match_id)
        if match_events is None or match_events.empty:
            continue

        is_home = str(match["home_team_id"]) == str(team_id)
        seconds, baskets = replay_match(
            match_events, team_players, period_minutes_for(match, short_format),
            diagnostics=diagnostics,
        )
        if has_snapshots(match_events):
            deltas = period_deltas(match_events, is_home, cumulative=not short_format)
            values_by_player = match_plus_minus(seconds, deltas)
        else:
            values_by_player = basket_plus_minus(seconds, baskets)
        for player_id, values in values_by_player.items():
            results[(match_id, player_id)] = values
    return results


def apply_to_boxscore(boxscore: pd.DataFrame, results: dict[tuple[str, str], dict]) -> pd.DataFrame:
    """
    Write recomputed seconds and plus/minus back into box-score rows.

    Plus/minus falls back to the stored value, then 0. Time played is only
    replaced when the replay credited some time. Given statistics are left
    untouched.
    """
    df = boxscore.copy()
    plus_minus = []
    seconds_played = []
    time_played = []
    for row in df.to_dict("records"):
        computed = results.get((str(row["match_id"]), str(row["player_id"])))
        stored = row.get("plus_minus")
        stored = 0 if stored is None or pd.isna(stored) else int(stored)

        if computed is None:
            plus_minus.append(stored)
            seconds_played.append(0.0)
            time_played.append(row.get("time_played"))
            continue

        plus_minus.append(int(computed["plusMinus"]))
        seconds = computed["seconds"]
        seconds_played.append(float(seconds))
        time_played.append(_seconds_to_clock(seconds) if seconds > 0 else row.get("time_played"))

    df["plus_minus"] = plus_minus
    df["seconds_played"] = seconds_played
    df["time_played"] = time_played
    return df


def season_plus_minus(rows: pd.DataFrame) -> dict:
    """
    Roll a player's per-match plus/minus and minutes up to season totals.

    Args:
        rows: The player's box-score rows (after apply_to_boxscore)

    Returns:
        Dict with totalPlusMinus, avgPlusMinus, totalMinutes, minutesPerGame
    """
    games = rows["match_id"].nunique() if not rows.empty else 0
    total_plus_minus = int(pd.to_numeric(rows["plus_minus"], errors="coerce").fillna(0).sum()) if games else 0
    total_minutes = float(sum(parse_time_played(v) for v in rows["time_played"])) if games else 0.0
    return {
        "totalPlusMinus": total_plus_minus,
        "avgPlusMinus": total_plus_minus / games if games else 0.0,
        "totalMinutes": total_minutes,
        "minutesPerGame": total_minutes / games if games else 0.0,
    }
