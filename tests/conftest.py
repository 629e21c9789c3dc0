"""Shared test fixtures for mocked database reads."""

from unittest.mock import patch

import pandas as pd
import pytest


@pytest.fixture
def sample_raw_events() -> pd.DataFrame:
    """
    Raw movements of match m1 (t1 at home against t2), as returned by
    fetch_events: p1 plays 10:00-4:00 of period 1, p2 only shows up through
    a basket and a foul, scoreboard snapshots close periods 1 and 2.
    """
    return pd.DataFrame({
        "event_id": ["1", "2", "3", "4", "5", "6", "7"],
        "match_id": ["m1"] * 7,
        "player_id": ["p1", "p1", "p2", "", "o1", "", "p2"],
        "type_code": [112, 115, 93, 116, 94, 116, 160],
        "description": [None] * 7,
        "minute": ["10:00", "4:00", "7:00", None, "5:00", None, "3:00"],
        "second": [None] * 7,
        "period": [1, 1, 1, 1, 2, 2, 2],
        "score": [None, None, None, "20-15", None, "35-30", None],
    })


@pytest.fixture
def sample_matches() -> pd.DataFrame:
    """Matches of team t1: a home win, an away loss and a pending match."""
    return pd.DataFrame({
        "match_id": ["m1", "m2", "m3"],
        "competition_id": ["c1", "c1", "c1"],
        "round": [1, 2, 3],
        "home_team_id": ["t1", "t3", "t1"],
        "away_team_id": ["t2", "t1", "t3"],
        "scheduled_at": [
            "2025-10-04T18:00:00", "2025-10-11T18:00:00", "2025-10-18T18:00:00",
        ],
        "home_score": [60, 70, None],
        "away_score": [55, 50, None],
        "periods_total": [4, 4, None],
        "period_minutes": [None, None, None],
        "from_calendar": [False, False, False],
    })


@pytest.fixture
def sample_boxscore() -> pd.DataFrame:
    """Box-score rows of m1 (both teams) and m2 (t1 only)."""
    return pd.DataFrame({
        "row_id": ["b1", "b2", "b3", "b4", "b5"],
        "match_id": ["m1", "m1", "m1", "m2", "m2"],
        "player_id": ["p1", "p2", "o1", "p1", "p2"],
        "points": [20, 10, 15, 30, 4],
        "ft_made": [4, 2, 3, 6, 0],
        "ft_attempted": [5, 4, 4, 8, 0],
        "two_made": [5, 4, 3, 9, 2],
        "two_attempted": [10, 8, 7, 15, 5],
        "three_made": [2, 0, 2, 2, 0],
        "three_attempted": [5, 1, 4, 6, 2],
        "fouls_personal": [2, 3, 1, 4, 1],
        "fouls_technical": [0, 0, 0, 1, 0],
        "fouls_unsportsmanlike": [0, 0, 0, 0, 0],
        "time_played": ["25:00", "20:00", "30:00", "32:30", "10:00"],
        "plus_minus": [None, None, None, 7, -3],
    })


@pytest.fixture
def sample_roster() -> pd.DataFrame:
    """Roster of t1; p3 has not played yet."""
    return pd.DataFrame({
        "team_id": ["t1", "t1", "t1"],
        "player_id": ["p1", "p2", "p3"],
        "jersey": ["7", "12", "5"],
        "name": ["Anna Puig", "Berta Soler", "Carla Vidal"],
        "photo_url": [None, None, None],
    })


@pytest.fixture
def rival_roster() -> pd.DataFrame:
    """Roster of t2."""
    return pd.DataFrame({
        "team_id": ["t2"],
        "player_id": ["o1"],
        "jersey": ["4"],
        "name": ["Olga Roca"],
        "photo_url": [None],
    })


@pytest.fixture
def sample_history() -> pd.DataFrame:
    """
    Full history of p1: the two c1 games plus three games of the same
    season in c9, where p1 mainly plays.
    """
    return pd.DataFrame({
        "player_id": ["p1"] * 5,
        "match_id": ["m1", "m2", "x1", "x2", "x3"],
        "points": [20, 30, 18, 18, 18],
        "ft_made": [4, 6, 2, 2, 2],
        "ft_attempted": [5, 8, 2, 2, 2],
        "three_made": [2, 2, 1, 1, 1],
        "three_attempted": [5, 6, 3, 3, 3],
        "time_played": ["25:00", "32:30", "30:00", "30:00", "30:00"],
        "competition_id": ["c1", "c1", "c9", "c9", "c9"],
        "competition_name": ["Senior A", "Senior A", "Senior B", "Senior B", "Senior B"],
        "season_id": ["s1"] * 5,
    })


@pytest.fixture
def empty_calendar() -> pd.DataFrame:
    return pd.DataFrame(columns=[
        "calendar_id", "competition_id", "round", "home_team_id",
        "away_team_id", "scheduled_at",
    ])


@pytest.fixture
def sample_meta() -> dict:
    return {
        "competition_id": "c1",
        "name": "Senior A",
        "season_id": "s1",
        "is_short_format": False,
    }


@pytest.fixture
def mock_fetches(
    sample_meta, sample_matches, empty_calendar, sample_roster, rival_roster,
    sample_boxscore, sample_raw_events, sample_history,
):
    """Patch every database read used by scouting.report."""
    rosters = {"t1": sample_roster, "t2": rival_roster}

    def _matches(competition_id, team_id=None, delay=0.0):
        if team_id is None:
            return sample_matches.copy()
        mask = (sample_matches["home_team_id"] == team_id) | (sample_matches["away_team_id"] == team_id)
        return sample_matches[mask].reset_index(drop=True)

    with patch("scouting.report.fetch_competition_meta") as mock_meta, \
            patch("scouting.report.fetch_matches") as mock_matches, \
            patch("scouting.report.fetch_calendar") as mock_calendar, \
            patch("scouting.report.fetch_roster") as mock_roster, \
            patch("scouting.report.fetch_boxscore_rows") as mock_boxscore, \
            patch("scouting.report.fetch_events") as mock_events, \
            patch("scouting.report.fetch_player_history") as mock_history, \
            patch("scouting.report.fetch_team_names") as mock_names:
        mock_meta.return_value = dict(sample_meta)
        mock_matches.side_effect = _matches
        mock_calendar.return_value = empty_calendar
        mock_roster.side_effect = lambda team_id, delay=0.0: rosters[team_id].copy()
        mock_boxscore.return_value = sample_boxscore
        mock_events.return_value = sample_raw_events
        mock_history.return_value = sample_history
        mock_names.return_value = {"t1": "Club Alpha", "t2": "Club Beta", "t3": "Club Gamma"}
        yield {
            "meta": mock_meta,
            "matches": mock_matches,
            "calendar": mock_calendar,
            "roster": mock_roster,
            "boxscore": mock_boxscore,
            "events": mock_events,
            "history": mock_history,
            "names": mock_names,
        }
