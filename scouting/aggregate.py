"""Season, career and parallel-competition aggregates for scouting."""

from typing import Iterable, Optional

import pandas as pd

from .normalize import SHOOTING_FOUL, parse_time_played
from .plus_minus import season_plus_minus

RECENT_GAMES = 3
FORM_GAMES = 5


def _pct(made, attempted) -> float:
    return made / attempted * 100 if attempted > 0 else 0.0


def _per_game(total, games) -> float:
    return total / games if games > 0 else 0.0


def career_stats(rows: pd.DataFrame) -> dict[str, dict]:
    """
    Aggregate box-score rows per player.

    Called on all of a player's rows this gives career stats; called on the
    current competition's rows it gives season stats.

    Args:
        rows: Box-score rows with player_id, match_id, points, ft_made,
              ft_attempted, three_made, time_played

    Returns:
        {player_id: {gamesPlayed, totalPoints, ppg, avgT3Made, t1Pct,
                     bestScoringGame, totalMinutes, mpg}}
    """
    stats = {}
    if rows.empty:
        return stats

    for player_id, group in rows.groupby("player_id", sort=False):
        games = int(group["match_id"].nunique())
        total_points = int(group["points"].sum())
        total_minutes = float(sum(parse_time_played(v) for v in group["time_played"]))
        stats[str(player_id)] = {
            "gamesPlayed": games,
            "totalPoints": total_points,
            "ppg": _per_game(total_points, games),
            "avgT3Made": _per_game(int(group["three_made"].sum()), games),
            "t1Pct": _pct(int(group["ft_made"].sum()), int(group["ft_attempted"].sum())),
            "bestScoringGame": int(group["points"].max()),
            "totalMinutes": total_minutes,
            "mpg": _per_game(total_minutes, games),
        }
    return stats


def season_stats(boxscore: pd.DataFrame, player_ids: Iterable[str]) -> dict[str, dict]:
    """Season stats for the given players from this competition's box score."""
    wanted = {str(pid) for pid in player_ids}
    return career_stats(boxscore[boxscore["player_id"].isin(wanted)])


def parallel_stats(
    history: pd.DataFrame,
    season_id,
    competition_id,
    current_games: dict[str, int],
) -> dict[str, dict]:
    """
    Stats from the same season in other competitions.

    A player is flagged with isPrimaryContext when they played more games
    elsewhere than in the current competition, i.e. a linked or guest player
    whose sample here is misleadingly small.
    """
    stats = {}
    if history.empty or season_id is None:
        return stats

    scoped = history[
        (history["season_id"] == str(season_id))
        & (history["competition_id"] != str(competition_id))
    ]
    for player_id, group in scoped.groupby("player_id", sort=False):
        games = int(group["match_id"].nunique())
        names = [n for n in dict.fromkeys(group["competition_name"]) if isinstance(n, str) and n]
        stats[str(player_id)] = {
            "gamesPlayed": games,
            "ppg": _per_game(int(group["points"].sum()), games),
            "competitionNames": names,
            "isPrimaryContext": games > current_games.get(str(player_id), 0),
        }
    return stats


def _played(matches: pd.DataFrame) -> pd.DataFrame:
    return matches[matches["home_score"].notna() & matches["away_score"].notna()]


def _sort_recent_first(matches: pd.DataFrame) -> pd.DataFrame:
    dates = pd.to_datetime(matches["scheduled_at"], errors="coerce", utc=True)
    return matches.assign(_date=dates).sort_values(
        "_date", ascending=False, na_position="last", kind="mergesort"
    ).drop(columns="_date")


def team_aggregates(
    matches: pd.DataFrame,
    boxscore: pd.DataFrame,
    team_id,
    team_player_ids: Optional[Iterable[str]] = None,
) -> Optional[dict]:
    """
    Team-level season aggregates over played matches.

    Args:
        matches: The team's matches
        boxscore: Box-score rows of those matches
        team_id: Team of interest
        team_player_ids: Restrict shooting totals to these players

    Returns:
        Dict with ppg, papg, ftPct, t3PerGame, form, totalMatches,
        totalPoints and sortedMatchIds (most recent first), or None when
        the team has no played match
    """
    played = _played(matches)
    if played.empty:
        return None

    team_id = str(team_id)
    played = _sort_recent_first(played)
    total_points = 0
    total_against = 0
    form = []
    for match in played.to_dict("records"):
        is_home = str(match["home_team_id"]) == team_id
        own = int(match["home_score"] if is_home else match["away_score"])
        opp = int(match["away_score"] if is_home else match["home_score"])
        total_points += own
        total_against += opp
        if len(form) < FORM_GAMES:
            form.append("W" if own > opp else ("L" if own < opp else "D"))

    played_ids = set(played["match_id"].astype(str))
    rows = boxscore[boxscore["match_id"].isin(played_ids)]
    if team_player_ids is not None:
        rows = rows[rows["player_id"].isin({str(pid) for pid in team_player_ids})]

    total_matches = len(played)
    return {
        "ppg": total_points / total_matches,
        "papg": total_against / total_matches,
        "ftPct": _pct(int(rows["ft_made"].sum()), int(rows["ft_attempted"].sum())),
        "t3PerGame": int(rows["three_made"].sum()) / total_matches,
        "form": form,
        "totalMatches": total_matches,
        "totalPoints": total_points,
        "sortedMatchIds": played["match_id"].astype(str).tolist(),
    }


def recent_form(
    rows: pd.DataFrame, sorted_match_ids: list[str], n: int = RECENT_GAMES
) -> tuple[float, int]:
    """
    Average points over the player's own most recent appearances.

    Args:
        rows: The player's box-score rows
        sorted_match_ids: Team match IDs, most recent first
        n: Number of appearances to average

    Returns:
        (points per game, number of games averaged)
    """
    if rows.empty:
        return 0.0, 0
    rank = {mid: i for i, mid in enumerate(sorted_match_ids)}
    ordered = rows.assign(
        _rank=rows["match_id"].map(lambda mid: rank.get(str(mid), len(rank)))
    ).sort_values("_rank", kind="mergesort")
    last = ordered.head(n)
    return _per_game(int(last["points"].sum()), len(last)), len(last)


def points_share(player_points, team_points) -> float:
    """Player's share of the team's points, as a percentage."""
    return _pct(player_points, team_points)


def shooting_foul_counts(events: pd.DataFrame) -> dict[str, int]:
    if events.empty:
        return {}
    fouls = events[events["event_type"] == SHOOTING_FOUL]
    return {str(pid): int(n) for pid, n in fouls.groupby("player_id").size().items()}


def player_aggregates(
    roster: pd.DataFrame,
    boxscore: pd.DataFrame,
    events: pd.DataFrame,
    team_agg: Optional[dict],
    career: Optional[dict] = None,
    parallel: Optional[dict] = None,
) -> list[dict]:
    """
    Per-player season aggregates for a roster.

    Args:
        roster: Roster entries (player_id, jersey, name, photo_url)
        boxscore: Box-score rows with recomputed plus/minus and time played
        events: Normalized events (for shooting fouls)
        team_agg: Output of team_aggregates, or None
        career: Output of career_stats over the players' full history
        parallel: Output of parallel_stats

    Returns:
        List of player aggregate dicts in roster order
    """
    career = career or {}
    parallel = parallel or {}
    sorted_ids = team_agg["sortedMatchIds"] if team_agg else []
    team_points = team_agg["totalPoints"] if team_agg else 0
    shooting_fouls = shooting_foul_counts(events)

    players = []
    for entry in roster.to_dict("records"):
        player_id = str(entry["player_id"])
        rows = boxscore[boxscore["player_id"] == player_id]
        games = int(rows["match_id"].nunique()) if not rows.empty else 0

        total_points = int(rows["points"].sum())
        ft_made = int(rows["ft_made"].sum())
        ft_attempted = int(rows["ft_attempted"].sum())
        three_made = int(rows["three_made"].sum())
        total_fouls = int(
            rows["fouls_personal"].sum()
            + rows["fouls_technical"].sum()
            + rows["fouls_unsportsmanlike"].sum()
        )
        pm = season_plus_minus(rows)
        total_minutes = pm["totalMinutes"]
        last_ppg, last_games = recent_form(rows, sorted_ids)

        players.append({
            "playerId": player_id,
            "name": entry.get("name") or "",
            "jersey": entry.get("jersey") or "",
            "photoUrl": entry.get("photo_url"),
            "gamesPlayed": games,
            "totalPoints": total_points,
            "totalMinutes": total_minutes,
            "totalFouls": total_fouls,
            "totalShootingFouls": shooting_fouls.get(player_id, 0),
            "totalFtMade": ft_made,
            "totalFtAttempted": ft_attempted,
            "totalTwoMade": int(rows["two_made"].sum()),
            "totalTwoAttempted": int(rows["two_attempted"].sum()),
            "totalThreeMade": three_made,
            "totalThreeAttempted": int(rows["three_attempted"].sum()),
            "totalPlusMinus": pm["totalPlusMinus"],
            "avgPlusMinus": pm["avgPlusMinus"],
            "ppg": _per_game(total_points, games),
            "mpg": pm["minutesPerGame"],
            "fpg": _per_game(total_fouls, games),
            "ppm": total_points / total_minutes if games > 0 and total_minutes > 0 else 0.0,
            "t1Pct": _pct(ft_made, ft_attempted),
            "last3PPG": last_ppg,
            "lastGamesPlayed": last_games,
            "pointsShare": points_share(total_points, team_points),
            "careerStats": career.get(player_id),
            "parallelStats": parallel.get(player_id),
        })
    return players


def key_players(players: list[dict]) -> dict:
    """
    Pick the top scorer, the volume three-point shooter and the weakest
    free-throw shooter (at least 5 attempts, under 60%).
    """
    by_ppg = sorted(players, key=lambda p: p["ppg"], reverse=True)

    shooters = [
        p for p in players
        if p["totalThreeMade"] > 2
        and p["gamesPlayed"] > 0
        and p["totalThreeMade"] / p["gamesPlayed"] >= 1.0
    ]
    shooters.sort(key=lambda p: p["totalThreeMade"], reverse=True)

    bad_ft = [p for p in players if p["totalFtAttempted"] >= 5 and p["t1Pct"] < 60]
    bad_ft.sort(key=lambda p: p["t1Pct"])

    return {
        "topScorer": by_ppg[0] if by_ppg else None,
        "topShooter": shooters[0] if shooters else None,
        "badFreeThrowShooter": bad_ft[0] if bad_ft else None,
    }
