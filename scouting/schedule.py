"""Merge planned fixtures with recorded matches."""

import pandas as pd

MATCH_FIELDS = [
    "match_id", "competition_id", "round", "home_team_id", "away_team_id",
    "scheduled_at", "home_score", "away_score", "periods_total",
    "period_minutes", "from_calendar",
]


def _pairing(row: dict) -> tuple[str, str]:
    return str(row["home_team_id"]), str(row["away_team_id"])


def merge_calendar(matches: pd.DataFrame, calendar: pd.DataFrame) -> pd.DataFrame:
    """
    Merge the planned calendar with the recorded matches.

    Every fixture is paired with a recorded match between the same home and
    away teams (each recorded match is used once). A paired fixture keeps
    the recorded data with the calendar's round; an unpaired one becomes a
    pending match with id 'cal_<id>' and no score. Recorded matches missing
    from the calendar are appended with from_calendar=False.

    Args:
        matches: Recorded matches (fetch.fetch_matches)
        calendar: Planned fixtures (fetch.fetch_calendar)

    Returns:
        Matches sorted by round, then date
    """
    available = matches.to_dict("records")
    merged = []

    for fixture in calendar.to_dict("records"):
        pairing = _pairing(fixture)
        index = next((i for i, m in enumerate(available) if _pairing(m) == pairing), None)
        if index is not None:
            match = available.pop(index)
            merged.append({**match, "round": fixture["round"], "from_calendar": True})
        else:
            merged.append({
                "match_id": f"cal_{fixture['calendar_id']}",
                "competition_id": fixture["competition_id"],
                "round": fixture["round"],
                "home_team_id": fixture["home_team_id"],
                "away_team_id": fixture["away_team_id"],
                "scheduled_at": fixture["scheduled_at"],
                "home_score": None,
                "away_score": None,
                "periods_total": None,
                "period_minutes": None,
                "from_calendar": True,
            })

    for match in available:
        merged.append({**match, "from_calendar": False})

    if not merged:
        return pd.DataFrame(columns=MATCH_FIELDS)

    df = pd.DataFrame(merged)
    df["_round"] = pd.to_numeric(df["round"], errors="coerce").fillna(0)
    df["_date"] = pd.to_datetime(df["scheduled_at"], errors="coerce", utc=True)
    df = df.sort_values(["_round", "_date"], kind="mergesort", na_position="first")
    return df.drop(columns=["_round", "_date"]).reset_index(drop=True)


def apply_calendar_rounds(matches: pd.DataFrame, calendar: pd.DataFrame) -> pd.DataFrame:
    """Overwrite each match's round with the calendar's round for the same pairing."""
    if calendar.empty or matches.empty:
        return matches
    rounds = {}
    for fixture in calendar.to_dict("records"):
        rounds.setdefault(_pairing(fixture), fixture["round"])

    df = matches.copy()
    df["round"] = [
        rounds.get(_pairing(m), m["round"]) for m in df.to_dict("records")
    ]
    return df
