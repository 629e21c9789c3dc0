"""Threshold rules turning aggregates into scouting bullets."""

from typing import Optional

HIGH_PACE_PPG = 75
LOW_PACE_PPG = 55
OUTSIDE_DEPENDENCE_T3 = 7
THREAT_PPG = 11.5
HELIOCENTRIC_SHARE = 30

NOT_ENOUGH_DATA = "Not enough data to build a report."


def _tag(player: dict) -> str:
    return f"{player['name']} (#{player['jersey']})"


def _career(player: dict) -> Optional[dict]:
    return player.get("careerStats")


def _is_linked(player: dict) -> bool:
    parallel = player.get("parallelStats")
    return bool(parallel and parallel["isPrimaryContext"])


def _is_threat(player: dict) -> bool:
    games = player["gamesPlayed"]
    career = _career(player)
    if player["ppg"] >= THREAT_PPG and games >= 3:
        return True
    if 0 < games < 3 and player["ppg"] >= THREAT_PPG and career and career["ppg"] > 10:
        return True
    return bool(career and career["ppg"] >= THREAT_PPG and career["gamesPlayed"] > 10)


def _threat_level(player: dict) -> float:
    career = _career(player)
    return max(player["ppg"], career["ppg"] if career else 0)


def _offense_rules(team_agg: dict) -> list[str]:
    insights = []
    if team_agg["ppg"] > HIGH_PACE_PPG:
        insights.append(f"High pace: an up-tempo offense (>{HIGH_PACE_PPG} PPG).")
    elif team_agg["ppg"] < LOW_PACE_PPG:
        insights.append("Slow pace: low scoring, few possessions and short scorelines.")
    if team_agg["t3PerGame"] > OUTSIDE_DEPENDENCE_T3:
        insights.append(
            f"Outside dependence: the offense lives on the three (>{OUTSIDE_DEPENDENCE_T3} made per game)."
        )
    return insights


def _threat_rules(players: list[dict], top_scorer: Optional[dict]) -> list[str]:
    threats = sorted(
        (p for p in players if _is_threat(p)), key=_threat_level, reverse=True
    )
    if len(threats) >= 3:
        names = ", ".join(f"{p['name']} #{p['jersey']}" for p in threats[:3])
        return [f"Three-headed offense: three players with a proven >{THREAT_PPG} PPG ({names})."]
    if len(threats) == 2:
        return [f"Dynamic duo: {_tag(threats[0])} and {_tag(threats[1])} carry all the scoring threat."]
    if len(threats) == 1:
        if top_scorer and top_scorer["pointsShare"] > HELIOCENTRIC_SHARE:
            return [
                f"Heliocentric system: {_tag(top_scorer)} scores "
                f"{top_scorer['pointsShare']:.0f}% of the team's points. Stop them and you win."
            ]
        return [f"Clear reference: {_tag(threats[0])} is their only consistent scorer."]
    return [f"Balanced scoring: nobody above {THREAT_PPG} PPG, the danger is collective."]


def _impact_rules(players: list[dict]) -> list[str]:
    insights = []
    regulars = [p for p in players if p["gamesPlayed"] >= 3]

    impact = next((p for p in regulars if p["avgPlusMinus"] > 8), None)
    if impact:
        insights.append(
            f"Winning factor: with {_tag(impact)} on court the team dominates "
            f"(+{impact['avgPlusMinus']:.1f} average differential)."
        )

    empty = next((p for p in regulars if p["ppg"] > 10 and p["avgPlusMinus"] < -2), None)
    if empty:
        insights.append(
            f"Empty stats: {_tag(empty)} scores a lot ({empty['ppg']:.1f}) but the team "
            f"loses with them on court ({empty['avgPlusMinus']:.1f})."
        )

    glue = next((p for p in regulars if p["ppg"] < 6 and p["avgPlusMinus"] > 5), None)
    if glue:
        insights.append(
            f"Glue player: {_tag(glue)} does not score much but the team wins with them "
            f"(+{glue['avgPlusMinus']:.1f})."
        )
    return insights


def _archetype_rules(players: list[dict], by_ppg: list[dict]) -> list[str]:
    insights = []

    linked = next((p for p in players if _is_linked(p)), None)
    if linked:
        parallel = linked["parallelStats"]
        insights.append(
            f"Linked player: {_tag(linked)} mainly plays in another category "
            f"({parallel['gamesPlayed']} games there). Do not trust their small sample here."
        )
        if parallel["ppg"] > 15:
            insights.append(
                f"Reinforcement alert: {_tag(linked)} averages {parallel['ppg']:.1f} points "
                "in their main category. Far more dangerous than it looks."
            )

    sleeping = next(
        (
            p for p in players
            if p["ppg"] < 8 and _career(p) and _career(p)["ppg"] > 12
            and _career(p)["gamesPlayed"] > 15 and not _is_linked(p)
        ),
        None,
    )
    if sleeping:
        insights.append(
            f"Sleeping giant: watch {_tag(sleeping)}. Only {sleeping['ppg']:.1f} this season "
            f"but a {sleeping['careerStats']['ppg']:.1f} PPG scorer over their career."
        )

    returning = next(
        (
            p for p in players
            if 0 < p["gamesPlayed"] < 3 and p["ppg"] > 12 and _career(p)
            and _career(p)["ppg"] > 10 and not _is_linked(p)
        ),
        None,
    )
    if returning:
        insights.append(
            f"X factor: {_tag(returning)} has played little this phase but averages "
            f"{returning['ppg']:.1f} and their history confirms it."
        )

    def _dormant_shooter(p: dict) -> bool:
        career = _career(p)
        if not career:
            return False
        current = p["totalThreeMade"] / p["gamesPlayed"] if p["gamesPlayed"] > 0 else 0
        return career["avgT3Made"] > 1.5 and current < 1.0 and career["gamesPlayed"] > 20

    shooter = next((p for p in players if _dormant_shooter(p)), None)
    if shooter:
        insights.append(
            f"Dormant shooter: do not sag off {_tag(shooter)}. Historically "
            f"{shooter['careerStats']['avgT3Made']:.1f} threes per game, even if cold now."
        )

    engine = next(
        (
            p for p in players
            if _career(p) and _career(p)["mpg"] > 24 and _career(p)["ppg"] < 8
            and _career(p)["gamesPlayed"] > 15
        ),
        None,
    )
    if engine:
        insights.append(
            f"Floor general: {_tag(engine)} is key, playing "
            f"{engine['careerStats']['mpg']:.0f} min per game historically without scoring much."
        )

    veteran = next((p for p in players if _career(p) and _career(p)["gamesPlayed"] > 50), None)
    if veteran:
        career = veteran["careerStats"]
        insights.append(
            f"Veteran presence: {_tag(veteran)} brings experience "
            f"({career['gamesPlayed']} games and {career['totalMinutes']:.0f} minutes recorded)."
        )

    hot = next(
        (p for p in by_ppg if p["last3PPG"] and p["ppg"] > 5 and p["last3PPG"] > p["ppg"] * 1.35),
        None,
    )
    if hot:
        insights.append(
            f"Hot streak: {_tag(hot)} averages {hot['last3PPG']:.1f} over the last "
            f"{hot['lastGamesPlayed']} games (season {hot['ppg']:.1f})."
        )

    microwave = next(
        (p for p in players if p["mpg"] < 22 and p["ppm"] > 0.45 and p["gamesPlayed"] > 2),
        None,
    )
    if microwave:
        insights.append(
            f"Microwave: {_tag(microwave)} produces a lot in few minutes. "
            "Watch out when they come off the bench."
        )
    return insights


def generate_insights(team_agg: Optional[dict], players: list[dict]) -> list[str]:
    """
    Apply the rule table, in order, to the team and player aggregates.

    Args:
        team_agg: Output of aggregate.team_aggregates (None without games)
        players: Output of aggregate.player_aggregates

    Returns:
        List of triggered messages
    """
    if team_agg is None:
        return [NOT_ENOUGH_DATA]

    by_ppg = sorted(players, key=lambda p: p["ppg"], reverse=True)
    top_scorer = by_ppg[0] if by_ppg else None

    insights = _offense_rules(team_agg)
    insights += _threat_rules(players, top_scorer)
    insights += _impact_rules(players)
    insights += _archetype_rules(players, by_ppg)
    return insights


def match_analysis(
    team_agg: dict,
    rival_agg: dict,
    top_scorer: Optional[dict],
    rival_top_scorer: Optional[dict],
) -> dict:
    """
    Head-to-head outlook against a rival.

    Returns:
        Dict with prediction, tempoAnalysis and keyMatchup strings
    """
    diff = team_agg["ppg"] - rival_agg["ppg"]
    if diff > 8:
        prediction = "Clear favourite on scoring volume (+8 PPG difference)."
    elif diff < -8:
        prediction = "Very tough game. The rival scores significantly more."
    elif abs(diff) < 3:
        prediction = "Statistical draw. Three-point shooting and rebounding will decide it."
    elif diff > 0:
        prediction = "Slight offensive edge."
    else:
        prediction = "Theoretical offensive disadvantage."

    pace = team_agg["ppg"] + rival_agg["ppg"]
    if pace > 150:
        tempo = "High pace: expect a fast transition game (>150 combined points)."
    elif pace < 110:
        tempo = "Grind-it-out: defensive game with long possessions (<110 combined points)."
    else:
        tempo = "Standard pace: controlling turnovers will be the difference."

    key_matchup = ""
    if top_scorer and rival_top_scorer:
        key_matchup = f"{_tag(top_scorer)} vs {_tag(rival_top_scorer)}."
        if abs(top_scorer["ppg"] - rival_top_scorer["ppg"]) < 2:
            key_matchup += " Evenly matched star duel."
        elif top_scorer["ppg"] > rival_top_scorer["ppg"]:
            key_matchup += " You have the best scorer on the floor."
        else:
            key_matchup += " Their go-to scorer is statistically better."

    return {"prediction": prediction, "tempoAnalysis": tempo, "keyMatchup": key_matchup}
