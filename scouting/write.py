"""Write module for outputting game logs, reports and calendars to JSON files."""

import json
import os
import tempfile
from pathlib import Path

import pandas as pd


def _records(df: pd.DataFrame) -> list[dict]:
    """Convert a DataFrame to JSON-safe records (NaN becomes null)."""
    if df.empty:
        return []
    return json.loads(df.to_json(orient="records"))


def _team_dir(competition_id, team_id, data_dir: str) -> Path:
    return Path(data_dir) / "competitions" / str(competition_id) / "teams" / str(team_id)


def write_game_log(competition_id, team_id, game_log: dict, data_dir: str = "data") -> Path:
    """
    Write data/competitions/{c}/teams/{t}/gamelog.json.

    Events are left out; matches and box-score rows are written as records.

    Args:
        competition_id: Competition ID
        team_id: Team ID
        game_log: Output of report.compute_team_game_log
        data_dir: Base data directory (default "data")

    Returns:
        Path of the written file
    """
    team_dir = _team_dir(competition_id, team_id, data_dir)
    team_dir.mkdir(parents=True, exist_ok=True)

    data = {
        "meta": game_log["meta"],
        "matches": _records(game_log["matches"]),
        "roster": _records(game_log["roster"]),
        "rosterStats": _records(game_log["rosterStats"]),
    }
    path = team_dir / "gamelog.json"
    _write_json_atomic(path, data)
    return path


def write_scouting_report(competition_id, team_id, report: dict, data_dir: str = "data") -> Path:
    """
    Write data/competitions/{c}/teams/{t}/report.json.

    Args:
        competition_id: Competition ID
        team_id: Team ID
        report: Output of report.compute_scouting_report
        data_dir: Base data directory (default "data")

    Returns:
        Path of the written file
    """
    team_dir = _team_dir(competition_id, team_id, data_dir)
    team_dir.mkdir(parents=True, exist_ok=True)

    path = team_dir / "report.json"
    _write_json_atomic(path, report)
    return path


def write_calendar(competition_id, calendar: pd.DataFrame, data_dir: str = "data") -> Path:
    """Write data/competitions/{c}/calendar.json with the merged calendar."""
    path = Path(data_dir) / "competitions" / str(competition_id) / "calendar.json"
    _write_json_atomic(path, {"competitionId": str(competition_id), "matches": _records(calendar)})
    return path


def _write_json_atomic(file_path: Path, data: dict | list) -> None:
    """
    Write JSON to file atomically using temp file + rename.

    Args:
        file_path: Target file path
        data: Data to write
    """
    file_path.parent.mkdir(parents=True, exist_ok=True)

    temp_fd, temp_path = tempfile.mkstemp(
        dir=file_path.parent, prefix=".tmp_", suffix=".json"
    )

    try:
        with os.fdopen(temp_fd, "w") as f:
            json.dump(data, f, indent=2)

        os.replace(temp_path, file_path)
    except (OSError, IOError):
        # Clean up temp file on error
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise
