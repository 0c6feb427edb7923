"""Data generators for creating game content."""

import random
import uuid
from datetime import date
from typing import List, Optional

from fm_club.config import SimulationConfig
from fm_club.core.models import (
    ATTRIBUTE_NAMES,
    BoardExpectation,
    LeagueId,
    Personality,
    Player,
    Position,
    Sponsors,
    Team,
)
from fm_club.data.templates import (
    FIRST_NAMES,
    FOREIGN_CITIES,
    LAST_NAMES,
    TEAM_CITIES,
    TEAM_PREFIXES,
)
from fm_club.engine.strength import (
    STAT_WEIGHTS,
    calculate_wage,
    market_value,
    recalculate_team_strength,
    squad_status_for_skill,
)


# 30-man squad: (position, skill offset from the club's target strength)
SQUAD_TEMPLATE = [
    # Starting eleven
    (Position.GK, 0), (Position.LB, 0), (Position.CB, 0), (Position.CB, 0),
    (Position.RB, 0), (Position.LW, 0), (Position.CM, 0), (Position.CM, 0),
    (Position.RW, 0), (Position.ST, 0), (Position.ST, 0),
    # Bench
    (Position.GK, -5), (Position.CB, -5), (Position.LB, -5), (Position.CM, -5),
    (Position.AM, -5), (Position.LW, -5), (Position.ST, -5),
    # Reserves
    (Position.GK, -10), (Position.RB, -8), (Position.CB, -8), (Position.CM, -8),
    (Position.RW, -8), (Position.ST, -8),
    (Position.LB, -9), (Position.CB, -9), (Position.CM, -9), (Position.AM, -9),
    (Position.LW, -9), (Position.ST, -9),
]

MARKET_POSITIONS = [
    Position.GK,
    Position.CB, Position.CB, Position.LB, Position.RB,
    Position.CM, Position.CM, Position.AM,
    Position.LW, Position.RW, Position.ST,
]

PERSONALITY_WEIGHTS = {
    Personality.PROFESSIONAL: 15,
    Personality.HARDWORKING: 20,
    Personality.AMBITIOUS: 15,
    Personality.BALANCED: 40,
    Personality.LAZY: 10,
}

FREE_AGENT = "free_agent"
FOREIGN = "foreign"


def new_player_id() -> str:
    return uuid.uuid4().hex[:12]


def _attributes_for(position: Position, skill: int, rng: random.Random) -> dict:
    """Attribute vector around skill / 5, shaped by the position's weights."""
    weights = STAT_WEIGHTS.get(position, {})
    base = skill / 5
    attributes = {}
    for name in ATTRIBUTE_NAMES:
        weight = weights.get(name, 0.3)
        value = base + rng.uniform(-2, 2)
        if weight >= 1.2:
            value += rng.uniform(0, 3)
        elif weight < 0.5:
            value -= rng.uniform(0, 4)
        attributes[name] = max(1, min(20, round(value)))
    return attributes


def _potential_for(skill: int, age: int, rng: random.Random) -> int:
    if age <= 21:
        potential = skill + rng.randint(5, 18)
    elif age <= 24:
        potential = skill + rng.randint(2, 10)
    elif age <= 29:
        potential = skill + rng.randint(0, 3)
    else:
        potential = skill
    return min(94, max(skill, potential))


def generate_player(
    rng: random.Random,
    position: Position,
    target_skill: int,
    team_id: str = "",
    age: Optional[int] = None,
    season_year: int = 2025,
) -> Player:
    """Generate a player of roughly the given skill."""
    skill = max(30, min(94, target_skill))
    if age is None:
        age = rng.randint(18, 34)

    player = Player(
        id=new_player_id(),
        name=f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}",
        position=position,
        age=age,
        skill=skill,
        potential=_potential_for(skill, age, rng),
        attributes=_attributes_for(position, skill, rng),
        team_id=team_id,
        morale=float(rng.randint(60, 80)),
        injury_susceptibility=rng.randint(5, 60),
        personality=rng.choices(
            list(PERSONALITY_WEIGHTS), weights=list(PERSONALITY_WEIGHTS.values())
        )[0],
        contract_expiry=season_year + rng.randint(1, 5),
    )
    player.squad_status = squad_status_for_skill(skill)
    player.value = market_value(player)
    player.wage = calculate_wage(player)
    return player


def generate_market_player(rng: random.Random, today: date) -> Player:
    """A player offered on the shared transfer market.

    Mostly journeymen, one in seven a 70+ target. Veterans are often free
    agents. January prices carry a 1.5x premium.
    """
    position = rng.choice(MARKET_POSITIONS)
    if rng.random() > 0.85:
        skill = rng.randint(70, 85)
    else:
        skill = rng.randint(40, 65)

    roll = rng.random()
    if roll < 0.15:
        age = rng.randint(18, 22)
    elif roll < 0.75:
        age = rng.randint(23, 32)
    else:
        age = rng.randint(33, 39)

    free_agent = rng.random() < (0.30 if age >= 33 else 0.05)
    player = generate_player(
        rng, position, skill,
        team_id=FREE_AGENT if free_agent else FOREIGN,
        age=age,
        season_year=today.year,
    )

    price_multiplier = 1.5 if today.month == 1 else 1.0
    player.value = round(player.value * (0.8 + rng.random() * 0.4) * price_multiplier, 1)
    player.value = max(0.1, player.value)

    if not free_agent:
        player.is_transfer_listed = True
        loan_chance = 0.1
        if age <= 22:
            loan_chance += 0.4
        if skill < 70:
            loan_chance += 0.1
        player.is_loan_listed = rng.random() < loan_chance
    return player


def generate_market(rng: random.Random, count: int, today: date) -> List[Player]:
    return [generate_market_player(rng, today) for _ in range(count)]


def _reputation_for(target: float) -> float:
    return round(max(0.5, min(4.8, 1.0 + (target - 58) * 0.12)), 1)


def _sponsors_for(reputation: float, rng: random.Random) -> Sponsors:
    scale = reputation * reputation
    return Sponsors(
        main=round(scale * rng.uniform(0.8, 1.2), 2),
        stadium=round(scale * rng.uniform(0.3, 0.5), 2),
        sleeve=round(scale * rng.uniform(0.15, 0.25), 2),
    )


def _board_expectation_for(target: float) -> BoardExpectation:
    if target > 80:
        return BoardExpectation.TITLE
    if target > 75:
        return BoardExpectation.UPPER
    return BoardExpectation.SURVIVE


def generate_team(
    rng: random.Random,
    name: str,
    league_id: LeagueId,
    target_strength: int,
    season_year: int = 2025,
) -> Team:
    """Generate a club whose visible strength starts at the target."""
    team_id = uuid.uuid4().hex[:8]
    players = []
    for position, offset in SQUAD_TEMPLATE:
        skill = target_strength + offset + rng.randint(-3, 3)
        age = rng.randint(19, 33)
        players.append(generate_player(rng, position, skill, team_id, age, season_year))

    reputation = _reputation_for(target_strength)
    team = Team(
        id=team_id,
        name=name,
        league_id=league_id,
        players=players,
        budget=round(reputation * reputation * rng.uniform(1.5, 3.0), 1),
        initial_debt=round(rng.uniform(0, reputation * 8), 1),
        sponsors=_sponsors_for(reputation, rng),
        fan_base=int(reputation * 900_000 * rng.uniform(0.7, 1.3)),
        stadium_capacity=int(15_000 + reputation * 10_000 * rng.uniform(0.7, 1.2)),
        reputation=reputation,
        initial_reputation=reputation,
        board_expectation=_board_expectation_for(target_strength),
        board_patience=rng.randint(10, 19),
    )
    team.wage_budget = round(team.wage_bill * 1.1, 1)

    taker = max(
        (p for p in players if p.position != Position.GK), key=lambda p: p.attr("penalty")
    )
    captain = max(players[:11], key=lambda p: p.attr("leadership"))
    team.set_piece_takers = {"penalty": taker.id, "captain": captain.id}

    recalculate_team_strength(team)
    team.strength_delta = round(target_strength - team.raw_strength, 1)
    team.strength = float(target_strength)
    return team


def initialize_teams(
    rng: random.Random, config: Optional[SimulationConfig] = None
) -> List[Team]:
    """Top flight, second division and foreign clubs, strongest first."""
    config = config or SimulationConfig()
    season_year = config.start_date.year
    teams = []

    top = config.top_flight_teams
    second = config.second_division_teams
    for i in range(top + second):
        name = f"{TEAM_PREFIXES[i % len(TEAM_PREFIXES)]} {TEAM_CITIES[i % len(TEAM_CITIES)]}"
        if i < top:
            league_id = LeagueId.LEAGUE
            target = round(86 - i * 20 / max(1, top - 1))
        else:
            league_id = LeagueId.LEAGUE_1
            target = round(72 - (i - top) * 14 / max(1, second - 1))
        teams.append(generate_team(rng, name, league_id, target + rng.randint(-1, 1), season_year))

    for i in range(config.foreign_teams):
        city = FOREIGN_CITIES[i % len(FOREIGN_CITIES)]
        name = f"{TEAM_PREFIXES[(i + 3) % len(TEAM_PREFIXES)]} {city}"
        target = rng.randint(70, 88)
        teams.append(generate_team(rng, name, LeagueId.EUROPE_LEAGUE, target, season_year))

    return teams
