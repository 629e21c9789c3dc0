"""Event normalizer: raw movement rows to a canonical, ordered event frame."""

import sys
from datetime import datetime
from typing import Optional, Union

import pandas as pd

ENTER = "enter"
EXIT = "exit"
FT_MADE = "ft_made"
TWO_MADE = "two_made"
THREE_MADE = "three_made"
PERIOD_SCORE = "period_score"
SHOOTING_FOUL = "shooting_foul"
OTHER = "other"

SHOOTING_FOUL_CODES = (160, 161, 162, 165, 166, 537, 540, 544, 549)

TYPE_CODES = {
    112: ENTER,
    115: EXIT,
    116: PERIOD_SCORE,
    92: FT_MADE,
    93: TWO_MADE,
    94: THREE_MADE,
    **{code: SHOOTING_FOUL for code in SHOOTING_FOUL_CODES},
}

POINTS = {FT_MADE: 1, TWO_MADE: 2, THREE_MADE: 3}

EVENT_COLUMNS = [
    "event_id", "match_id", "player_id", "period", "clock_seconds",
    "event_type", "points", "score",
]


def _log_warning(msg: str) -> None:
    timestamp = datetime.now().isoformat()
    print(f"[{timestamp}] Warning: {msg}", file=sys.stderr, flush=True)


def _is_missing(val) -> bool:
    if val is None:
        return True
    try:
        return bool(pd.isna(val))
    except (TypeError, ValueError):
        return False


def parse_clock(minute, second=None) -> float:
    """
    Parse a countdown clock position into minutes.

    The minute field may be an 'M:SS' string (its own seconds win over the
    separate second field) or a number of minutes, optionally completed by
    a separate seconds field. Missing or unparseable values count as 0.

    Args:
        minute: 'M:SS' string, number or numeric string
        second: Optional seconds field

    Returns:
        Clock position in minutes
    """
    if _is_missing(minute):
        minutes = 0.0
    elif isinstance(minute, str) and ":" in minute:
        parts = minute.strip().split(":")
        try:
            return int(parts[0]) + int(parts[1]) / 60
        except (ValueError, IndexError):
            return 0.0
    else:
        try:
            minutes = float(minute)
        except (ValueError, TypeError):
            return 0.0

    if not _is_missing(second):
        try:
            minutes += float(second) / 60
        except (ValueError, TypeError):
            pass
    return minutes


def parse_time_played(value) -> float:
    """
    Parse a box-score time-played value into minutes.

    Stored either as an 'M:SS' string (e.g. '23:54') or as a number of
    minutes; anything unparseable counts as 0.
    """
    if _is_missing(value) or value == "":
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    s = str(value).strip()
    if ":" in s:
        parts = s.split(":")
        try:
            return int(parts[0]) + int(parts[1]) / 60
        except (ValueError, IndexError):
            return 0.0
    try:
        return float(s)
    except ValueError:
        return 0.0


def _type_code(val) -> Optional[int]:
    if _is_missing(val):
        return None
    try:
        return int(float(val))
    except (ValueError, TypeError):
        return None


def classify_event(type_code) -> str:
    """
    Map a numeric movement code to a canonical event type.

    Unknown or malformed codes classify as OTHER; this never raises.
    """
    code = _type_code(type_code)
    if code is None:
        return OTHER
    return TYPE_CODES.get(code, OTHER)


def _classify_description(description) -> str:
    """
    Legacy free-text classifier for rows whose code is not in the table.

    Old imports only carried a Catalan/Spanish description ("Entra a pista",
    "Sale", "Cistella de 2"...). Only consulted when legacy_text is enabled.
    """
    if _is_missing(description):
        return OTHER
    text = str(description).lower()
    if "entra" in text:
        return ENTER
    if "sale" in text or "surt" in text:
        return EXIT
    if "cistella" in text or "canasta" in text or "anota" in text:
        if "3" in text or "triple" in text:
            return THREE_MADE
        if "1" in text or "lliure" in text or "libre" in text:
            return FT_MADE
        return TWO_MADE
    return OTHER


def _coerce_id(val) -> str:
    """Coerce an ID value to string for safe comparison."""
    if _is_missing(val):
        return ""
    return str(int(val)) if isinstance(val, float) else str(val).strip()


def _period_limit(max_periods: Union[int, dict, None], match_id: str) -> Optional[int]:
    if isinstance(max_periods, dict):
        limit = max_periods.get(match_id)
    else:
        limit = max_periods
    if _is_missing(limit):
        return None
    return int(limit) if int(limit) > 0 else None


def normalize_events(
    raw: pd.DataFrame,
    max_periods: Union[int, dict, None] = None,
    legacy_text: bool = False,
) -> pd.DataFrame:
    """
    Parse raw movement rows into canonical events in total order.

    Args:
        raw: Raw movement rows (event_id, match_id, player_id, type_code,
             description, minute, second, period, score)
        max_periods: Configured number of periods, either one value for all
                     matches or a dict keyed by match_id. Events beyond it
                     are dropped.
        legacy_text: Also classify OTHER rows from their free-text description

    Returns:
        DataFrame with EVENT_COLUMNS sorted by match, period ascending, clock
        descending and event id ascending
    """
    records = []
    skipped = 0
    beyond = 0

    for position, row in enumerate(raw.to_dict("records")):
        match_id = _coerce_id(row.get("match_id"))
        if not match_id:
            skipped += 1
            continue

        try:
            period = int(float(row.get("period")))
        except (ValueError, TypeError):
            skipped += 1
            continue
        if period < 1:
            skipped += 1
            continue

        limit = _period_limit(max_periods, match_id)
        if limit is not None and period > limit:
            beyond += 1
            continue

        event_type = classify_event(row.get("type_code"))
        if event_type == OTHER and legacy_text:
            event_type = _classify_description(row.get("description"))

        player_id = _coerce_id(row.get("player_id"))
        if not player_id and event_type != PERIOD_SCORE:
            skipped += 1
            continue

        clock_minutes = parse_clock(row.get("minute"), row.get("second"))
        event_id = row.get("event_id")
        try:
            order = float(event_id)
        except (ValueError, TypeError):
            order = None

        records.append({
            "event_id": _coerce_id(event_id),
            "match_id": match_id,
            "player_id": player_id,
            "period": period,
            "clock_seconds": round(clock_minutes * 60, 3),
            "event_type": event_type,
            "points": POINTS.get(event_type, 0),
            "score": None if _is_missing(row.get("score")) else str(row.get("score")),
            "_order": position if _is_missing(order) else order,
        })

    if skipped:
        _log_warning(f"Skipped {skipped} malformed movement rows")
    if beyond:
        _log_warning(f"Dropped {beyond} movement rows beyond the configured periods")

    if not records:
        return pd.DataFrame(columns=EVENT_COLUMNS)

    events = pd.DataFrame(records)
    events = events.sort_values(
        ["match_id", "period", "clock_seconds", "_order"],
        ascending=[True, True, False, True],
        kind="mergesort",
    )
    return events[EVENT_COLUMNS].reset_index(drop=True)
