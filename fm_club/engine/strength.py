"""Attribute and team strength model.

Turns a player's attribute vector into an effective skill and a roster into
a single team strength:
- Position-specific attribute weights
- Best-XI selection by positional quota
- Starter / reserve / rotation role weighting
- Damped "visible" strength that follows the raw value by at most 0.5
- Wage, market value and squad status derived from skill
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from fm_club.core.models import (
    ATTRIBUTE_NAMES,
    Player,
    Position,
    SquadStatus,
    Team,
)

logger = logging.getLogger(__name__)


_FULLBACK_WEIGHTS = {
    "pace": 1.5, "stamina": 1.4, "acceleration": 1.4, "crossing": 1.3, "tackling": 1.3,
    "positioning": 1.2, "marking": 1.2, "agility": 1.1, "work_rate": 1.1,
    "teamwork": 1.0, "passing": 1.0,
    "dribbling": 0.9, "first_touch": 0.9, "technique": 0.9,
    "composure": 0.8, "anticipation": 0.8, "physical": 0.8,
    "balance": 0.7, "jumping": 0.7, "decisions": 0.7, "aggression": 0.7,
    "off_the_ball": 0.6, "long_shots": 0.5, "finishing": 0.4, "heading": 0.4,
    "vision": 0.3, "flair": 0.3,
    "penalty": 0.2, "corners": 0.2, "free_kick": 0.2, "long_throws": 0.1,
}

_WINGER_WEIGHTS = {
    "pace": 1.5, "acceleration": 1.4, "dribbling": 1.4, "agility": 1.3,
    "crossing": 1.2, "off_the_ball": 1.2, "technique": 1.1, "first_touch": 1.0,
    "stamina": 0.9, "passing": 0.9, "vision": 0.8, "decisions": 0.8,
    "composure": 0.7, "finishing": 0.7, "balance": 0.7,
    "long_shots": 0.6, "physical": 0.6, "flair": 0.6,
    "teamwork": 0.5, "work_rate": 0.5, "jumping": 0.5,
    "aggression": 0.4, "positioning": 0.4, "corners": 0.3, "free_kick": 0.3,
    "tackling": 0.2, "marking": 0.2, "penalty": 0.2, "long_throws": 0.1,
}

STAT_WEIGHTS: Dict[Position, Dict[str, float]] = {
    Position.GK: {
        "agility": 1.5, "concentration": 1.5, "positioning": 1.4, "composure": 1.4,
        "anticipation": 1.3, "decisions": 1.3, "bravery": 1.2,
        "acceleration": 1.0, "balance": 1.0, "physical": 0.9, "jumping": 0.8,
        "passing": 0.7, "first_touch": 0.6, "technique": 0.6, "pace": 0.5, "stamina": 0.5,
        "teamwork": 0.4, "leadership": 0.4, "aggression": 0.3, "vision": 0.3,
        "penalty": 0.2, "free_kick": 0.2, "corners": 0.1, "long_throws": 0.1,
    },
    Position.CB: {
        "positioning": 1.5, "marking": 1.5, "tackling": 1.4, "heading": 1.4,
        "physical": 1.3, "concentration": 1.3, "decisions": 1.2, "anticipation": 1.2,
        "composure": 1.1, "jumping": 1.1, "aggression": 1.0,
        "pace": 0.9, "acceleration": 0.8, "stamina": 0.8, "passing": 0.7,
        "technique": 0.6, "first_touch": 0.6, "balance": 0.6,
        "agility": 0.5, "teamwork": 0.5, "work_rate": 0.5, "vision": 0.4,
        "long_shots": 0.3, "finishing": 0.3, "dribbling": 0.3,
        "penalty": 0.2, "corners": 0.2, "free_kick": 0.2, "long_throws": 0.1,
    },
    Position.LB: _FULLBACK_WEIGHTS,
    Position.RB: _FULLBACK_WEIGHTS,
    Position.CM: {
        "passing": 1.5, "stamina": 1.4, "decisions": 1.4, "vision": 1.3, "technique": 1.3,
        "positioning": 1.2, "tackling": 1.2, "work_rate": 1.1, "teamwork": 1.1,
        "composure": 1.0, "anticipation": 1.0,
        "dribbling": 0.9, "first_touch": 0.9, "aggression": 0.9, "physical": 0.9,
        "long_shots": 0.8, "off_the_ball": 0.8,
        "pace": 0.7, "acceleration": 0.7, "agility": 0.7, "balance": 0.7,
        "finishing": 0.5, "flair": 0.5, "heading": 0.4, "jumping": 0.4,
        "penalty": 0.2, "corners": 0.2, "free_kick": 0.2, "long_throws": 0.1,
    },
    Position.AM: {
        "technique": 1.5, "vision": 1.5, "passing": 1.4, "decisions": 1.4,
        "composure": 1.3, "off_the_ball": 1.3, "dribbling": 1.2, "first_touch": 1.2,
        "flair": 1.1, "finishing": 1.0,
        "long_shots": 0.9, "positioning": 0.9, "anticipation": 0.9,
        "agility": 0.8, "balance": 0.8, "acceleration": 0.8,
        "stamina": 0.7, "work_rate": 0.7, "teamwork": 0.7,
        "physical": 0.6, "pace": 0.6, "aggression": 0.5, "heading": 0.3, "jumping": 0.3,
        "tackling": 0.2, "marking": 0.2, "penalty": 0.2, "corners": 0.2,
        "free_kick": 0.2, "long_throws": 0.1,
    },
    Position.LW: _WINGER_WEIGHTS,
    Position.RW: _WINGER_WEIGHTS,
    Position.ST: {
        "finishing": 1.5, "off_the_ball": 1.4, "positioning": 1.3, "composure": 1.3,
        "heading": 1.2,
        "pace": 1.0, "acceleration": 0.9, "physical": 0.9, "jumping": 0.8, "technique": 0.8,
        "dribbling": 0.7, "first_touch": 0.7, "passing": 0.4,
        "vision": 0.3, "teamwork": 0.3, "aggression": 0.3, "stamina": 0.3, "balance": 0.3,
        "penalty": 0.2, "long_shots": 0.3, "flair": 0.3,
    },
}

# Squad role weights
STARTER_WEIGHT = 1.00
RESERVE_WEIGHT = 0.35
ROTATION_WEIGHT = 0.10
KEY_RESERVES = 7

# Positional importance coefficients
POSITION_IMPORTANCE = {
    Position.CM: 1.10,
    Position.AM: 1.10,
    Position.ST: 1.05,
    Position.GK: 1.00,
    Position.CB: 0.95,
    Position.LW: 0.90,
    Position.RW: 0.90,
    Position.LB: 0.80,
    Position.RB: 0.80,
}

# Best-XI quotas, filled in this order
STARTING_QUOTAS: List[Tuple[Position, int]] = [
    (Position.GK, 1),
    (Position.LB, 1),
    (Position.RB, 1),
    (Position.CB, 2),
    (Position.LW, 1),
    (Position.RW, 1),
    (Position.CM, 1),
    (Position.AM, 1),
]

MAX_VISIBLE_STEP = 0.5

WAGE_STATUS_MULTIPLIERS = {
    SquadStatus.STAR: 1.6,
    SquadStatus.IMPORTANT: 1.3,
    SquadStatus.FIRST_XI: 1.0,
    SquadStatus.ROTATION: 0.7,
    SquadStatus.IMPACT: 0.6,
    SquadStatus.JOKER: 0.5,
    SquadStatus.SURPLUS: 0.3,
}


def _weighted_attribute_score(player: Player) -> float | None:
    weights = STAT_WEIGHTS.get(player.position)
    if not weights:
        return None
    total_score = 0.0
    total_weight = 0.0
    for name, weight in weights.items():
        value = player.attributes.get(name) or 10
        total_score += value * 5 * weight
        total_weight += weight
    if total_weight == 0:
        return None
    return total_score / total_weight


def effective_skill(player: Player) -> float:
    """Blend the position-weighted attribute score with flat skill, 80/20."""
    weighted = _weighted_attribute_score(player)
    if weighted is None:
        return float(player.skill)
    return weighted * 0.8 + player.skill * 0.2


def overall_from_attributes(player: Player) -> int:
    """Recompute the 1-99 overall rating purely from attributes."""
    all_values = [player.attributes.get(name, 0) for name in ATTRIBUTE_NAMES]
    baseline = sum(all_values) / len(ATTRIBUTE_NAMES) * 5
    weighted = _weighted_attribute_score(player)
    if weighted is None:
        return max(1, min(99, round(baseline)))
    return max(1, min(99, round(weighted * 0.7 + baseline * 0.3)))


def select_squad_roles(players: List[Player]) -> Tuple[List[Player], List[Player], List[Player]]:
    """Split a roster into starters, key reserves and rotation players.

    Players are sorted by effective skill and picked greedily into the
    positional quotas. A missing position simply leaves its slot open.
    """
    pool = sorted(players, key=effective_skill, reverse=True)
    starters: List[Player] = []

    def pick(position: Position, count: int) -> None:
        for _ in range(count):
            for i, candidate in enumerate(pool):
                if candidate.position == position:
                    starters.append(pool.pop(i))
                    break

    for position, count in STARTING_QUOTAS:
        pick(position, count)

    midfielders = sum(1 for p in starters if p.position in (Position.CM, Position.AM))
    if midfielders < 2:
        for i, candidate in enumerate(pool):
            if candidate.position in (Position.CM, Position.AM):
                starters.append(pool.pop(i))
                break

    pick(Position.ST, 2)

    while len(starters) < 11 and pool:
        starters.append(pool.pop(0))

    reserves = pool[:KEY_RESERVES]
    rotation = pool[KEY_RESERVES:]
    return starters, reserves, rotation


def team_strength(players: List[Player]) -> float:
    """Raw weighted team strength on the 1-99 skill scale."""
    if not players:
        return 0.0

    starters, reserves, rotation = select_squad_roles(players)
    if len(starters) < 11:
        logger.debug("Roster only fills %d starting slots", len(starters))

    total_contribution = 0.0
    total_weight = 0.0
    for group, role_weight in (
        (starters, STARTER_WEIGHT),
        (reserves, RESERVE_WEIGHT),
        (rotation, ROTATION_WEIGHT),
    ):
        for player in group:
            weight = POSITION_IMPORTANCE.get(player.position, 1.0) * role_weight
            total_contribution += effective_skill(player) * weight
            total_weight += weight

    if total_weight == 0:
        return 0.0
    return round(total_contribution / total_weight, 1)


def recalculate_team_strength(team: Team) -> Team:
    """Refresh raw strength and move visible strength toward it.

    Visible strength targets raw + strength_delta and moves by at most 0.5
    per call, so a single transfer never swings it instantly.
    """
    team.raw_strength = team_strength(team.players)
    target = team.raw_strength + team.strength_delta
    visible = team.strength
    if target > visible:
        visible = min(target, visible + MAX_VISIBLE_STEP)
    elif target < visible:
        visible = max(target, visible - MAX_VISIBLE_STEP)
    team.strength = round(visible, 1)
    return team


def transfer_strength_impact(visible_strength: float, player_skill: int, buying: bool) -> float:
    """Immediate strength_delta shift caused by signing or selling a player."""
    reference = visible_strength - 4
    if buying:
        if player_skill > reference:
            return 0.3 + (player_skill - reference) * 0.05
        return 0.0
    if player_skill < reference:
        return -0.1
    return -(0.4 + (player_skill - reference) * 0.1)


def squad_status_for_skill(skill: int) -> SquadStatus:
    if skill >= 85:
        return SquadStatus.STAR
    if skill >= 80:
        return SquadStatus.IMPORTANT
    if skill >= 75:
        return SquadStatus.FIRST_XI
    if skill >= 70:
        return SquadStatus.ROTATION
    return SquadStatus.JOKER


def calculate_wage(player: Player) -> float:
    """Annual wage in millions from value, skill floor, status and age."""
    wage = player.value * 0.20

    if player.skill >= 90:
        floor = 12.0
    elif player.skill >= 85:
        floor = 8.0
    elif player.skill >= 80:
        floor = 4.0
    elif player.skill >= 75:
        floor = 1.5
    else:
        floor = 0.0
    wage = max(wage, floor)

    status = player.squad_status or squad_status_for_skill(player.skill)
    wage *= WAGE_STATUS_MULTIPLIERS.get(status, 1.0)

    if player.age <= 21:
        wage *= 0.6
    elif player.age >= 33:
        wage *= 1.3 if player.skill >= 80 else 0.9

    return round(max(0.05, wage), 2)


def market_value(player: Player) -> float:
    """Market value in millions from skill, age, potential and position."""
    base = max(0.05, ((max(player.skill, 40) - 40) / 10) ** 3 * 0.5)

    if player.age <= 21:
        age_factor = 1.3
    elif player.age <= 24:
        age_factor = 1.15
    elif player.age <= 29:
        age_factor = 1.0
    elif player.age <= 31:
        age_factor = 0.8
    elif player.age <= 33:
        age_factor = 0.55
    else:
        age_factor = 0.3

    value = base * age_factor
    if player.age <= 23:
        value *= 1 + max(0, player.potential - player.skill) * 0.02

    if player.position == Position.GK:
        value *= 0.8
    elif player.position in (Position.ST, Position.AM, Position.LW, Position.RW):
        value *= 1.1

    return round(max(0.05, value), 2)
