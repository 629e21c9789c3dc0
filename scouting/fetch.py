"""Hosted-database fetch module with retry logic.

Reads competition data from the Supabase PostgREST endpoint and maps the
database's column names to the canonical snake_case names used by the rest of
the pipeline.
"""

import os
import sys
import time
from datetime import datetime
from typing import Optional

import pandas as pd
import requests

DEFAULT_TIMEOUT = 20


class UpstreamFetchError(RuntimeError):
    """Raised when the hosted database cannot be read after retrying."""


def _log_error(msg: str) -> None:
    """Log timestamped error to stderr."""
    timestamp = datetime.now().isoformat()
    print(f"[{timestamp}] {msg}", file=sys.stderr, flush=True)


def _rest_url(table: str) -> str:
    base_url = os.environ.get("SUPABASE_URL", "").rstrip("/")
    if not base_url:
        raise UpstreamFetchError("SUPABASE_URL is not configured")
    return f"{base_url}/rest/v1/{table}"


def _headers() -> dict:
    key = os.environ.get("SUPABASE_KEY", "")
    return {
        "apikey": key,
        "Authorization": f"Bearer {key}",
        "Accept": "application/json",
    }


def _in_filter(ids: list) -> str:
    """Build a PostgREST ``in.(...)`` filter value."""
    return "in.(" + ",".join(str(i) for i in ids) + ")"


def _get_rows(table: str, params: dict, delay: float = 0.0) -> list[dict]:
    """
    GET rows from a table with retry logic.

    Args:
        table: Table name
        params: PostgREST query parameters (select, filters, order)
        delay: Delay in seconds before making the request (default 0)

    Returns:
        List of row dicts

    Raises:
        UpstreamFetchError: when the request keeps failing or the response
            is not a JSON list
    """
    max_retries = 1
    for attempt in range(max_retries + 1):
        try:
            time.sleep(delay)
            response = requests.get(
                _rest_url(table), params=params, headers=_headers(), timeout=DEFAULT_TIMEOUT
            )
            response.raise_for_status()
            rows = response.json()
            if not isinstance(rows, list):
                raise UpstreamFetchError(f"Unexpected response shape from {table}")
            return rows
        except requests.exceptions.RequestException as e:
            _log_error(f"Error fetching {table}: {e}")

            if attempt < max_retries:
                time.sleep(5)
            else:
                raise UpstreamFetchError(f"Could not fetch {table}: {e}") from e
        except ValueError as e:
            _log_error(f"Invalid JSON fetching {table}: {e}")
            raise UpstreamFetchError(f"Invalid JSON from {table}") from e
    return []


def _to_frame(rows: list[dict], column_map: dict) -> pd.DataFrame:
    """Build a DataFrame with canonical columns, even when no rows came back."""
    df = pd.DataFrame(rows)
    df = df.rename(columns=column_map)
    for col in column_map.values():
        if col not in df.columns:
            df[col] = None
    return df[list(column_map.values())]


def _id_str(value) -> str:
    """Render an ID as text; whole floats from null-padded columns lose the '.0'."""
    if value is None or pd.isna(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _coerce_ids(df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    for col in columns:
        df[col] = df[col].apply(_id_str)
    return df



MATCH_COLUMNS = {
    "id": "match_id",
    "competicion_id": "competition_id",
    "jornada": "round",
    "equipo_local_id": "home_team_id",
    "equipo_visitante_id": "away_team_id",
    "fecha_hora": "scheduled_at",
    "puntos_local": "home_score",
    "puntos_visitante": "away_score",
    "periodos_totales": "periods_total",
    "duracion_periodo": "period_minutes",
}

CALENDAR_COLUMNS = {
    "id": "calendar_id",
    "competicion_id": "competition_id",
    "jornada": "round",
    "equipo_local_id": "home_team_id",
    "equipo_visitante_id": "away_team_id",
    "fecha_hora": "scheduled_at",
}

BOXSCORE_COLUMNS = {
    "id": "row_id",
    "partido_id": "match_id",
    "jugador_id": "player_id",
    "puntos": "points",
    "t1_anotados": "ft_made",
    "t1_intentados": "ft_attempted",
    "t2_anotados": "two_made",
    "t2_intentados": "two_attempted",
    "t3_anotados": "three_made",
    "t3_intentados": "three_attempted",
    "faltas_cometidas": "fouls_personal",
    "tecnicas": "fouls_technical",
    "antideportivas": "fouls_unsportsmanlike",
    "tiempo_jugado": "time_played",
    "mas_menos": "plus_minus",
}

EVENT_COLUMNS = {
    "id": "event_id",
    "partido_id": "match_id",
    "jugador_id": "player_id",
    "tipo_movimiento": "type_code",
    "descripcion": "description",
    "minuto": "minute",
    "segundo": "second",
    "periodo": "period",
    "marcador": "score",
}

ROSTER_COLUMNS = {
    "equipo_id": "team_id",
    "jugador_id": "player_id",
    "dorsal": "jersey",
    "nombre_completo": "name",
    "foto_url": "photo_url",
}

HISTORY_COLUMNS = {
    "jugador_id": "player_id",
    "partido_id": "match_id",
    "puntos": "points",
    "t1_anotados": "ft_made",
    "t1_intentados": "ft_attempted",
    "t3_anotados": "three_made",
    "t3_intentados": "three_attempted",
    "tiempo_jugado": "time_played",
    "competicion_id": "competition_id",
    "competicion_nombre": "competition_name",
    "temporada_id": "season_id",
}

_NUMERIC_BOXSCORE = [
    "points", "ft_made", "ft_attempted", "two_made", "two_attempted",
    "three_made", "three_attempted", "fouls_personal", "fouls_technical",
    "fouls_unsportsmanlike",
]


def fetch_competition_meta(competition_id, delay: float = 0.0) -> dict:
    """
    Fetch competition metadata (season and short-format flag).

    Args:
        competition_id: Competition ID
        delay: Delay in seconds before the request

    Returns:
        Dict with competition_id, name, season_id and is_short_format
    """
    rows = _get_rows(
        "competiciones",
        {"select": "id,nombre,temporada_id,categorias(es_mini)", "id": f"eq.{competition_id}"},
        delay=delay,
    )
    if not rows:
        raise UpstreamFetchError(f"Competition {competition_id} not found")
    row = rows[0]
    category = row.get("categorias") or {}
    if isinstance(category, list):
        category = category[0] if category else {}
    season_id = row.get("temporada_id")
    return {
        "competition_id": str(row.get("id", competition_id)),
        "name": row.get("nombre") or "",
        "season_id": str(season_id) if season_id is not None else None,
        "is_short_format": bool(category.get("es_mini", False)),
    }


def fetch_matches(competition_id, team_id=None, delay: float = 0.0) -> pd.DataFrame:
    """
    Fetch matches of a competition, optionally only those of one team.

    Ordered by date ascending. Null scores mean the match is not played yet.
    """
    params = {
        "select": ",".join(MATCH_COLUMNS),
        "competicion_id": f"eq.{competition_id}",
        "order": "fecha_hora.asc",
    }
    if team_id is not None:
        params["or"] = f"(equipo_local_id.eq.{team_id},equipo_visitante_id.eq.{team_id})"

    df = _to_frame(_get_rows("partidos", params, delay=delay), MATCH_COLUMNS)
    df = _coerce_ids(df, ["match_id", "competition_id", "home_team_id", "away_team_id"])
    for col in ["home_score", "away_score", "round", "periods_total", "period_minutes"]:
        df[col] = pd.to_numeric(df[col], errors="coerce")
    df["from_calendar"] = False
    return df


def fetch_calendar(competition_id, delay: float = 0.0) -> pd.DataFrame:
    """Fetch the planned fixtures of a competition."""
    params = {
        "select": ",".join(CALENDAR_COLUMNS),
        "competicion_id": f"eq.{competition_id}",
        "order": "jornada.asc,fecha_hora.asc",
    }
    df = _to_frame(_get_rows("calendario", params, delay=delay), CALENDAR_COLUMNS)
    df = _coerce_ids(df, ["calendar_id", "competition_id", "home_team_id", "away_team_id"])
    df["round"] = pd.to_numeric(df["round"], errors="coerce")
    return df


def fetch_boxscore_rows(match_ids: list, delay: float = 0.0) -> pd.DataFrame:
    """
    Fetch box-score rows for both teams of the given matches.

    Args:
        match_ids: Match IDs
        delay: Delay in seconds before the request

    Returns:
        DataFrame with canonical box-score columns
    """
    if not match_ids:
        return _to_frame([], BOXSCORE_COLUMNS)
    params = {"select": ",".join(BOXSCORE_COLUMNS), "partido_id": _in_filter(match_ids)}
    df = _to_frame(_get_rows("estadisticas_jugador_partido", params, delay=delay), BOXSCORE_COLUMNS)
    df = _coerce_ids(df, ["row_id", "match_id", "player_id"])
    for col in _NUMERIC_BOXSCORE:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0).astype(int)
    df["plus_minus"] = pd.to_numeric(df["plus_minus"], errors="coerce")
    return df


def fetch_events(match_ids: list, delay: float = 0.0) -> pd.DataFrame:
    """
    Fetch raw play-by-play movements for the given matches, ordered by id.

    Returns the raw fields untouched apart from renaming; parsing is the
    normalizer's job.
    """
    if not match_ids:
        return _to_frame([], EVENT_COLUMNS)
    params = {
        "select": ",".join(EVENT_COLUMNS),
        "partido_id": _in_filter(match_ids),
        "order": "id.asc",
    }
    df = _to_frame(_get_rows("partido_movimientos", params, delay=delay), EVENT_COLUMNS)
    return _coerce_ids(df, ["match_id", "player_id"])


def fetch_roster(team_id, delay: float = 0.0) -> pd.DataFrame:
    """Fetch roster entries (player, jersey, name) of a team."""
    params = {
        "select": "equipo_id,jugador_id,dorsal,jugadores(nombre_completo,foto_url)",
        "equipo_id": f"eq.{team_id}",
    }
    rows = []
    for row in _get_rows("plantillas", params, delay=delay):
        player = row.get("jugadores") or {}
        # The join may come back as a one-element list
        if isinstance(player, list):
            player = player[0] if player else {}
        rows.append({
            "equipo_id": row.get("equipo_id"),
            "jugador_id": row.get("jugador_id"),
            "dorsal": row.get("dorsal"),
            "nombre_completo": player.get("nombre_completo"),
            "foto_url": player.get("foto_url"),
        })
    df = _to_frame(rows, ROSTER_COLUMNS)
    df = _coerce_ids(df, ["team_id", "player_id"])
    df = df[df["player_id"] != ""].reset_index(drop=True)
    df["jersey"] = df["jersey"].apply(_id_str)
    df["name"] = df["name"].apply(lambda v: "" if v is None or pd.isna(v) else str(v))
    df["photo_url"] = df["photo_url"].apply(lambda v: None if v is None or pd.isna(v) else str(v))
    return df


def fetch_player_history(player_ids: list, delay: float = 0.0) -> pd.DataFrame:
    """
    Fetch every box-score row of the given players across all competitions.

    Each row is joined with its match's competition so that career and
    parallel-competition statistics can be derived from a single read.
    """
    if not player_ids:
        return _to_frame([], HISTORY_COLUMNS)
    params = {
        "select": (
            "jugador_id,partido_id,puntos,t1_anotados,t1_intentados,t3_anotados,"
            "t3_intentados,tiempo_jugado,"
            "partido:partidos(id,competicion_id,competiciones(id,nombre,temporada_id))"
        ),
        "jugador_id": _in_filter(player_ids),
    }
    rows = []
    for row in _get_rows("estadisticas_jugador_partido", params, delay=delay):
        match = row.pop("partido", None) or {}
        competition = match.get("competiciones") or {}
        if isinstance(competition, list):
            competition = competition[0] if competition else {}
        row["competicion_id"] = match.get("competicion_id")
        row["competicion_nombre"] = competition.get("nombre")
        row["temporada_id"] = competition.get("temporada_id")
        rows.append(row)

    df = _to_frame(rows, HISTORY_COLUMNS)
    df = _coerce_ids(df, ["player_id", "match_id", "competition_id", "season_id"])
    for col in ["points", "ft_made", "ft_attempted", "three_made", "three_attempted"]:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0).astype(int)
    return df


def fetch_team_names(team_ids: list, delay: float = 0.0) -> dict:
    """Map team IDs to display names (the club's short name when available)."""
    if not team_ids:
        return {}
    params = {
        "select": "id,nombre_especifico,clubs(nombre_corto)",
        "id": _in_filter(team_ids),
    }
    names = {}
    for row in _get_rows("equipos", params, delay=delay):
        club: Optional[dict] = row.get("clubs") or {}
        if isinstance(club, list):
            club = club[0] if club else {}
        names[str(row.get("id"))] = row.get("nombre_especifico") or club.get("nombre_corto") or ""
    return names
