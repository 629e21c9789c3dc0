"""Scouting pipeline entry point."""

import argparse
import os

from .fetch import UpstreamFetchError, _log_error
from .report import compute_calendar, compute_scouting_report, compute_team_game_log
from .write import write_calendar, write_game_log, write_scouting_report


def main(
    competition: str,
    team: str,
    rival: str | None = None,
    data_dir: str = "data",
    calendar: bool = False,
) -> int:
    """
    Build and write the game log and scouting report of one team.

    Everything is computed before the first write, so a failed read leaves
    the data directory untouched.

    Args:
        competition: Competition ID
        team: Team ID to scout
        rival: Optional rival team ID for the head-to-head analysis
        data_dir: Base data directory (default "data")
        calendar: Also write the competition's merged calendar (default False)

    Returns:
        Process exit status (0 on success, 1 when the database could not be read)
    """
    print(f"Running scouting pipeline for team {team} in competition {competition}")

    try:
        game_log = compute_team_game_log(competition, team)
        print("Building scouting report...")
        report = compute_scouting_report(competition, team, rival_id=rival, game_log=game_log)
        merged_calendar = compute_calendar(competition) if calendar else None
    except UpstreamFetchError as e:
        _log_error(f"Pipeline aborted: {e}")
        return 1

    write_game_log(competition, team, game_log, data_dir)
    write_scouting_report(competition, team, report, data_dir)
    print(f"Wrote game log and report for team {team}")

    if merged_calendar is not None:
        write_calendar(competition, merged_calendar, data_dir)
        print(f"Wrote calendar with {len(merged_calendar)} matches")

    print(
        f"Pipeline complete for team {team}. {len(game_log['matches'])} matches, "
        f"{len(report['insights'])} insights."
    )
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Basketball play-by-play scouting pipeline")
    parser.add_argument("--competition", type=str, required=True, help="Competition ID")
    parser.add_argument("--team", type=str, required=True, help="Team ID to scout")
    parser.add_argument(
        "--rival",
        type=str,
        default=None,
        help="Rival team ID for the head-to-head analysis (optional)",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default="data",
        help="Base data directory (default: data)",
    )
    parser.add_argument(
        "--calendar",
        action="store_true",
        help="Also write the competition's merged calendar",
    )
    parser.add_argument(
        "--supabase-url",
        type=str,
        default=None,
        help="Database URL (default: SUPABASE_URL environment variable)",
    )
    parser.add_argument(
        "--supabase-key",
        type=str,
        default=None,
        help="Database API key (default: SUPABASE_KEY environment variable)",
    )

    args = parser.parse_args()
    if args.supabase_url:
        os.environ["SUPABASE_URL"] = args.supabase_url
    if args.supabase_key:
        os.environ["SUPABASE_KEY"] = args.supabase_key

    raise SystemExit(
        main(
            competition=args.competition,
            team=args.team,
            rival=args.rival,
            data_dir=args.data_dir,
            calendar=args.calendar,
        )
    )
