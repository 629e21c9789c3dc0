"""Team game log and scouting report for one competition."""

from collections import Counter
from typing import Optional

import pandas as pd

from .aggregate import (
    career_stats,
    key_players,
    parallel_stats,
    player_aggregates,
    team_aggregates,
)
from .fetch import (
    fetch_boxscore_rows,
    fetch_calendar,
    fetch_competition_meta,
    fetch_events,
    fetch_matches,
    fetch_player_history,
    fetch_roster,
    fetch_team_names,
)
from .insights import NOT_ENOUGH_DATA, generate_insights, match_analysis
from .normalize import normalize_events
from .plus_minus import apply_to_boxscore, compute_match_plus_minus
from .schedule import apply_calendar_rounds, merge_calendar


def _period_limits(matches: pd.DataFrame) -> dict:
    return {
        str(m["match_id"]): int(m["periods_total"])
        for m in matches.to_dict("records")
        if not pd.isna(m["periods_total"])
    }


def compute_team_game_log(competition_id, team_id, meta: Optional[dict] = None) -> dict:
    """
    Fetch a team's matches and recompute seconds played and plus/minus.

    Args:
        competition_id: Competition ID
        team_id: Team ID
        meta: Competition metadata, fetched when not given

    Returns:
        Dict with meta, matches, roster, rosterStats (box-score rows of both
        teams with recomputed seconds_played/time_played/plus_minus) and the
        normalized events

    Raises:
        fetch.UpstreamFetchError: if any read fails
    """
    if meta is None:
        meta = fetch_competition_meta(competition_id)

    print(f"Fetching matches for team {team_id}...")
    matches = fetch_matches(competition_id, team_id)
    matches = apply_calendar_rounds(matches, fetch_calendar(competition_id))
    roster = fetch_roster(team_id)

    match_ids = matches["match_id"].tolist()
    print(f"Fetching box scores and movements for {len(match_ids)} matches...")
    boxscore = fetch_boxscore_rows(match_ids)
    events = normalize_events(fetch_events(match_ids), max_periods=_period_limits(matches))

    diagnostics: Counter = Counter()
    results = compute_match_plus_minus(
        events, matches, team_id, roster["player_id"].tolist(),
        meta["is_short_format"], diagnostics=diagnostics,
    )
    if diagnostics:
        summary = ", ".join(f"{k}={v}" for k, v in sorted(diagnostics.items()))
        print(f"  Lineup recoveries for team {team_id}: {summary}")

    return {
        "meta": meta,
        "matches": matches,
        "roster": roster,
        "rosterStats": apply_to_boxscore(boxscore, results),
        "events": events,
    }


def _team_rows(game_log: dict) -> pd.DataFrame:
    player_ids = set(game_log["roster"]["player_id"])
    stats = game_log["rosterStats"]
    return stats[stats["player_id"].isin(player_ids)]


def _empty_report() -> dict:
    return {
        "teamStats": {"ppg": 0, "papg": 0, "t3PerGame": 0, "ftPct": 0, "last5Form": []},
        "keyPlayers": {"topScorer": None, "topShooter": None, "badFreeThrowShooter": None},
        "rosterStats": [],
        "insights": [NOT_ENOUGH_DATA],
        "matchAnalysis": None,
    }


def _rival_analysis(competition_id, rival_id, meta: dict, team_agg: dict, top_scorer) -> Optional[dict]:
    rival_log = compute_team_game_log(competition_id, rival_id, meta=meta)
    rival_rows = _team_rows(rival_log)
    rival_ids = rival_log["roster"]["player_id"].tolist()
    rival_agg = team_aggregates(rival_log["matches"], rival_rows, rival_id, rival_ids)
    if rival_agg is None:
        return None

    rival_players = [
        p for p in player_aggregates(rival_log["roster"], rival_rows, rival_log["events"], rival_agg)
        if p["gamesPlayed"] > 0
    ]
    rival_top = max(rival_players, key=lambda p: p["ppg"]) if rival_players else None
    return match_analysis(team_agg, rival_agg, top_scorer, rival_top)


def compute_scouting_report(
    competition_id, team_id, rival_id=None, game_log: Optional[dict] = None
) -> dict:
    """
    Build the scouting report of a team, optionally against a rival.

    Args:
        competition_id: Competition ID
        team_id: Team to scout
        rival_id: Optional opponent for the head-to-head analysis
        game_log: Already computed game log of the team, computed when not given

    Returns:
        Dict with teamStats, keyPlayers, rosterStats (sorted by PPG),
        insights and matchAnalysis

    Raises:
        fetch.UpstreamFetchError: if any read fails
    """
    if game_log is None:
        game_log = compute_team_game_log(competition_id, team_id)
    meta = game_log["meta"]

    roster = game_log["roster"]
    player_ids = roster["player_id"].tolist()
    rows = _team_rows(game_log)
    team_agg = team_aggregates(game_log["matches"], rows, team_id, player_ids)
    if team_agg is None:
        print(f"No played matches for team {team_id}")
        return _empty_report()

    print(f"Fetching history for {len(player_ids)} players...")
    history = fetch_player_history(player_ids)
    current_games = rows.groupby("player_id")["match_id"].nunique().to_dict()
    career = career_stats(history)
    parallel = parallel_stats(history, meta["season_id"], competition_id, current_games)

    players = player_aggregates(roster, rows, game_log["events"], team_agg, career, parallel)
    key = key_players(players)

    analysis = None
    if rival_id is not None:
        analysis = _rival_analysis(competition_id, rival_id, meta, team_agg, key["topScorer"])

    return {
        "teamStats": {
            "ppg": team_agg["ppg"],
            "papg": team_agg["papg"],
            "t3PerGame": team_agg["t3PerGame"],
            "ftPct": team_agg["ftPct"],
            "last5Form": team_agg["form"],
        },
        "keyPlayers": key,
        "rosterStats": sorted(players, key=lambda p: p["ppg"], reverse=True),
        "insights": generate_insights(team_agg, players),
        "matchAnalysis": analysis,
    }


def compute_calendar(competition_id) -> pd.DataFrame:
    """
    Full competition calendar: planned fixtures merged with recorded matches,
    with home_team_name and away_team_name columns.
    """
    print(f"Fetching calendar for competition {competition_id}...")
    merged = merge_calendar(fetch_matches(competition_id), fetch_calendar(competition_id))
    if merged.empty:
        return merged.assign(home_team_name=[], away_team_name=[])

    team_ids = sorted(set(merged["home_team_id"].astype(str)) | set(merged["away_team_id"].astype(str)))
    names = fetch_team_names(team_ids)
    merged["home_team_name"] = merged["home_team_id"].astype(str).map(lambda t: names.get(t, ""))
    merged["away_team_name"] = merged["away_team_id"].astype(str).map(lambda t: names.get(t, ""))
    return merged
