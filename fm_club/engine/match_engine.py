"""Minute-by-minute match simulation.

Each minute draws one uniform number against ordered cumulative thresholds:
1. Rare events first (pitch invasion, fight, argument)
2. Injuries, elevated when a starter is tired
3. Penalties scaled by live possession
4. Shots, fouls (more in derbies), corners and offsides

In-match state (bookings, dismissals, injuries) is derived from the events
recorded so far, so a minute can be replayed from any prefix of the match.
"""

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Callable

from fm_club.core.models import (
    Fixture,
    MatchEvent,
    MatchEventType,
    MatchStats,
    Player,
    Position,
    Team,
    position_group,
)
from fm_club.core.models.match import RED_CARD_EVENTS
from fm_club.core.models.team import DefensiveLine, Mentality, Pressing, Tackling, Tempo
from fm_club.data.templates import fill_template, is_rivalry, pick_template
from fm_club.engine.match_rating import build_match_ratings, select_mvp
from fm_club.engine.strength import team_strength

logger = logging.getLogger(__name__)


# Base per-minute probabilities
P_PITCH_INVASION = 0.00005
P_FIGHT = 0.0001
P_ARGUMENT = 0.0001
P_INJURY = 0.0015
P_INJURY_TIRED = 0.03
P_SHOT = 0.20
P_FOUL = 0.15
P_CORNER = 0.10
P_OFFSIDE = 0.05

RIVALRY_FOUL_MULTIPLIER = 1.10
TIRED_CONDITION = 60

AGGRAVATION_MINUTES = 40
AGGRAVATION_CHANCE = 0.45

WARNING_EVENT_CHANCE = 0.05
SAVE_WINDOW = 0.30
BASE_GOAL_PROBABILITY = 0.14

# (red, yellow) per foul
DEFAULT_CARD_ODDS = (0.02, 0.15)
CARD_ODDS = {
    Tackling.AGGRESSIVE: (0.03, 0.25),
    Tackling.CAUTIOUS: (0.005, 0.05),
}
BOOKED_YELLOW_FACTOR = 0.7

SCORER_WEIGHTS = {"FWD": 4, "MID": 2, "DEF": 1}

HOME_ODDS_ADVANTAGE = 5
BOOKMAKER_MARGIN = 1.12

SHOOTOUT_ROUNDS = 5

MATCH_MINUTES = 90


@dataclass
class PitchState:
    """Who is booked, sent off or hurt, as implied by the events so far."""
    booked: set[str] = field(default_factory=set)
    sent_off: set[str] = field(default_factory=set)
    injured_at: dict[str, int] = field(default_factory=dict)
    injury_team: dict[str, str] = field(default_factory=dict)
    out_injured: set[str] = field(default_factory=set)

    @classmethod
    def from_events(cls, events: list[MatchEvent]) -> "PitchState":
        state = cls()
        for event in events:
            pid = event.player_id
            if pid is None:
                continue
            if event.event_type == MatchEventType.CARD_YELLOW:
                state.booked.add(pid)
            elif event.event_type in RED_CARD_EVENTS:
                state.sent_off.add(pid)
            elif event.event_type == MatchEventType.INJURY:
                if pid in state.injured_at:
                    state.out_injured.add(pid)
                else:
                    state.injured_at[pid] = event.minute
                    state.injury_team[pid] = event.team_id
        return state

    def unavailable(self) -> set[str]:
        return self.sent_off | self.out_injured


@dataclass
class MatchSide:
    """One team as it takes the field."""
    team: Team
    lineup: list[Player]
    strength: float

    @classmethod
    def from_team(cls, team: Team, competition_id: str | None = None) -> "MatchSide":
        strength = team.strength or team.raw_strength or team_strength(team.players)
        return cls(team=team, lineup=pick_lineup(team, competition_id), strength=strength)

    def available(self, pitch: PitchState) -> list[Player]:
        gone = pitch.unavailable()
        players = [p for p in self.lineup if p.id not in gone]
        return players or self.lineup[:1]

    def keeper(self, pitch: PitchState) -> Player | None:
        players = self.available(pitch)
        for player in players:
            if player.position == Position.GK:
                return player
        return players[0] if players else None


@dataclass
class MatchResult:
    """Final result of a simulated match."""
    home_score: int
    away_score: int
    events: list[MatchEvent] = field(default_factory=list)
    stats: MatchStats | None = None
    pk_home: int | None = None
    pk_away: int | None = None
    home_lineup: list[str] = field(default_factory=list)
    away_lineup: list[str] = field(default_factory=list)

    @property
    def went_to_penalties(self) -> bool:
        return self.pk_home is not None


@dataclass
class MatchOdds:
    """Decimal odds for a fixture."""
    home: float
    draw: float
    away: float

    def __str__(self) -> str:
        return f"{self.home:.2f} / {self.draw:.2f} / {self.away:.2f}"


def pick_lineup(team: Team, competition_id: str | None = None) -> list[Player]:
    """First eleven fit, unsuspended players in roster order.

    Short squads are topped up with unavailable players so a side never
    takes the field with fewer than eleven names while it has them.
    """
    eligible = [
        p for p in team.players
        if not p.is_injured and not p.is_suspended(competition_id)
    ]
    lineup = eligible[:11]
    if len(lineup) < 11:
        for player in team.players:
            if len(lineup) >= 11:
                break
            if player not in lineup:
                lineup.append(player)
    return lineup


def penalty_conversion_chance(taker: Player) -> float:
    skill = taker.attr("penalty")
    if skill >= 20:
        return 0.80
    if skill >= 15:
        return 0.70
    if skill >= 10:
        return 0.60
    return 0.30


def select_penalty_taker(team: Team, players: list[Player]) -> Player | None:
    """Designated taker if on the pitch, else the best outfield striker of a ball."""
    if not players:
        return None
    designated = team.set_piece_takers.get("penalty")
    for player in players:
        if player.id == designated:
            return player
    outfield = [p for p in players if p.position != Position.GK] or players
    return max(
        outfield,
        key=lambda p: (p.attr("penalty"), p.attr("finishing"), p.attr("composure")),
    )


def aggregate_score(second_leg: Fixture, first_leg: Fixture) -> tuple[int, int]:
    """Aggregate from the second-leg home side's point of view.

    The first leg was played with the sides reversed, so its away goals
    belong to the second-leg home team.
    """
    home = (second_leg.home_score or 0) + (first_leg.away_score or 0)
    away = (second_leg.away_score or 0) + (first_leg.home_score or 0)
    return home, away


def requires_shootout(
    home_score: int,
    away_score: int,
    knockout: bool,
    first_leg: Fixture | None = None,
) -> bool:
    """True when a knockout tie is level after normal time."""
    if not knockout:
        return False
    if first_leg is None:
        return home_score == away_score
    return home_score + (first_leg.away_score or 0) == away_score + (first_leg.home_score or 0)


def calculate_odds(home: Team, away: Team) -> MatchOdds:
    """Bookmaker odds from visible strengths, home side given +5."""
    home_strength = home.strength + HOME_ODDS_ADVANTAGE
    away_strength = away.strength
    total = home_strength + away_strength
    if total <= 0:
        home_strength = away_strength = 1.0
        total = 2.0

    stronger = max(home_strength, away_strength)
    draw = 0.15 + 0.15 * (min(home_strength, away_strength) / stronger)
    remaining = 1 - draw
    home_p = remaining * home_strength / total
    away_p = remaining * away_strength / total

    def price(p: float) -> float:
        if p <= 0:
            return 100.0
        return max(1.01, round(BOOKMAKER_MARGIN / p, 2))

    return MatchOdds(home=price(home_p), draw=price(draw), away=price(away_p))


def live_possession(home_strength: float, away_strength: float, score: tuple[int, int]) -> int:
    """Home possession share from strength, conceding ground while ahead."""
    total = home_strength + away_strength
    base = 50 if total <= 0 else math.floor(home_strength / total * 100)
    base -= 2 * (score[0] - score[1])
    return max(20, min(80, base))


def _penalty_rate(possession: int | None) -> float:
    if possession is None:
        return 0.001
    if possession > 70:
        return 0.015
    if possession > 60:
        return 0.01
    return 0.005


class MatchSimulator:
    """Probabilistic per-minute match simulator.

    Usage:
        sim = MatchSimulator(seed=42)
        result = sim.simulate_match(home_team, away_team)
    """

    def __init__(
        self,
        seed: int | None = None,
        rivalry_check: Callable[[str, str], bool] = is_rivalry,
    ):
        self.rng = random.Random(seed)
        self.rivalry_check = rivalry_check

    # ------------------------------------------------------------------
    # Single minute
    # ------------------------------------------------------------------

    def simulate_minute(
        self,
        minute: int,
        home: Team,
        away: Team,
        score: tuple[int, int],
        prior_events: list[MatchEvent],
        possession: int | None = None,
        competition_id: str | None = None,
    ) -> MatchEvent | None:
        """Generate at most one event for this minute."""
        home_side = MatchSide.from_team(home, competition_id)
        away_side = MatchSide.from_team(away, competition_id)
        if possession is None:
            possession = live_possession(home_side.strength, away_side.strength, score)
        derby = self.rivalry_check(home.name, away.name)
        return self._step(minute, home_side, away_side, score, prior_events, possession, derby)

    def _step(
        self,
        minute: int,
        home: MatchSide,
        away: MatchSide,
        score: tuple[int, int],
        prior_events: list[MatchEvent],
        possession: int | None,
        derby: bool,
    ) -> MatchEvent | None:
        pitch = PitchState.from_events(prior_events)

        aggravated = self._check_aggravation(minute, pitch, home, away)
        if aggravated is not None:
            return aggravated

        tired = any(
            p.condition < TIRED_CONDITION
            for side in (home, away)
            for p in side.available(pitch)
        )
        p_injury = P_INJURY_TIRED if tired else P_INJURY

        home_pen = _penalty_rate(possession)
        away_pen = _penalty_rate(None if possession is None else 100 - possession)
        p_penalty = home_pen + away_pen
        p_foul = P_FOUL * (RIVALRY_FOUL_MULTIPLIER if derby else 1.0)

        t_invasion = P_PITCH_INVASION
        t_fight = t_invasion + P_FIGHT
        t_argument = t_fight + P_ARGUMENT
        t_injury = t_argument + p_injury
        t_penalty = t_injury + p_penalty * 0.5
        t_shot = t_penalty + P_SHOT
        t_foul = t_shot + p_foul
        t_corner = t_foul + P_CORNER
        t_offside = t_corner + P_OFFSIDE

        roll = self.rng.random()
        if roll > t_offside:
            return None

        goal_diff = score[0] - score[1]
        home_eff, home_warning = self.tactical_efficiency(home, minute, goal_diff, pitch)
        away_eff, away_warning = self.tactical_efficiency(away, minute, -goal_diff, pitch)

        if home_warning and self.rng.random() < WARNING_EVENT_CHANCE:
            return MatchEvent(minute, MatchEventType.INFO, home.team.id, description=home_warning)
        if away_warning and self.rng.random() < WARNING_EVENT_CHANCE:
            return MatchEvent(minute, MatchEventType.INFO, away.team.id, description=away_warning)

        home_power = max(0.1, home.strength * home_eff)
        away_power = max(0.1, (away.strength - self._crowd_malus(home, away, pitch)) * away_eff)

        if roll <= t_invasion:
            return self._pitch_invasion(minute, home)
        if roll <= t_fight:
            return self._fight(minute, home, away, pitch)
        if roll <= t_argument:
            return self._argument(minute, home, away, pitch)
        if roll <= t_injury:
            return self._injury(minute, home, away, pitch)
        if roll <= t_penalty:
            return self._penalty(minute, home, away, pitch, home_pen, away_pen)
        if roll <= t_shot:
            return self._shot(minute, home, away, pitch, home_power, away_power)
        if roll <= t_foul:
            return self._foul(minute, home, away, pitch)
        if roll <= t_corner:
            return self._corner(minute, home, away, pitch, home_power, away_power)
        return self._offside(minute, home, away, pitch, home_power, away_power)

    # ------------------------------------------------------------------
    # Modifiers
    # ------------------------------------------------------------------

    def tactical_efficiency(
        self,
        side: MatchSide,
        minute: int,
        goal_diff: int,
        pitch: PitchState | None = None,
    ) -> tuple[float, str | None]:
        """Efficiency multiplier and an optional fatigue warning text."""
        tactics = side.team.tactics
        efficiency = 1.0
        warning = None

        if tactics.tempo == Tempo.BEAST_MODE and minute > 70:
            efficiency *= 0.85
            warning = fill_template(pick_template("fatigue", self.rng), {"team": side.team.name})

        if goal_diff > 0 and tactics.mentality in (Mentality.DEFENSIVE, Mentality.VERY_DEFENSIVE):
            efficiency *= 1.1
        elif goal_diff < 0 and tactics.mentality in (Mentality.ATTACKING, Mentality.VERY_ATTACKING):
            efficiency *= 1.05

        if goal_diff < 0:
            leadership = self._leadership(side, pitch or PitchState())
            if leadership >= 18:
                efficiency += 0.04
            elif leadership >= 14:
                efficiency += 0.02
            elif leadership <= 7:
                efficiency -= 0.02

        return efficiency, warning

    def _leadership(self, side: MatchSide, pitch: PitchState) -> int:
        players = side.available(pitch)
        if not players:
            return 10
        captain_id = side.team.set_piece_takers.get("captain")
        for player in players:
            if player.id == captain_id:
                return player.attr("leadership")
        return max(p.attr("leadership") for p in players)

    def _crowd_malus(self, home: MatchSide, away: MatchSide, pitch: PitchState) -> float:
        if home.team.fan_base <= 1_500_000:
            return 0.0
        players = away.available(pitch)
        if not players:
            return 0.0
        composure = sum(p.attr("composure") for p in players) / len(players)
        return 1.0 if composure < 14 else 0.0

    def _choose_side(
        self, home: MatchSide, away: MatchSide, home_weight: float, away_weight: float
    ) -> tuple[MatchSide, MatchSide]:
        total = home_weight + away_weight
        if total <= 0 or self.rng.random() < home_weight / total:
            return home, away
        return away, home

    # ------------------------------------------------------------------
    # Event builders
    # ------------------------------------------------------------------

    def _describe(self, category: str, **variables) -> str:
        return fill_template(pick_template(category, self.rng), variables)

    def _check_aggravation(
        self, minute: int, pitch: PitchState, home: MatchSide, away: MatchSide
    ) -> MatchEvent | None:
        for player_id, first_minute in pitch.injured_at.items():
            if player_id in pitch.out_injured or player_id in pitch.sent_off:
                continue
            if minute - first_minute < AGGRAVATION_MINUTES:
                continue
            if self.rng.random() >= AGGRAVATION_CHANCE:
                continue
            team_id = pitch.injury_team.get(player_id, home.team.id)
            side = home if team_id == home.team.id else away
            name = next((p.name for p in side.lineup if p.id == player_id), "A player")
            return MatchEvent(
                minute,
                MatchEventType.INJURY,
                team_id,
                player_id,
                description=self._describe("injury_aggravated", player=name),
            )
        return None

    def _pitch_invasion(self, minute: int, home: MatchSide) -> MatchEvent:
        return MatchEvent(
            minute,
            MatchEventType.PITCH_INVASION,
            home.team.id,
            description=self._describe("pitch_invasion", team=home.team.name),
        )

    def _fight(
        self, minute: int, home: MatchSide, away: MatchSide, pitch: PitchState
    ) -> MatchEvent:
        side = home if self.rng.random() < 0.5 else away
        players = side.available(pitch)
        hotheads = [p for p in players if p.attr("aggression") >= 18]
        if hotheads and self.rng.random() < 0.3:
            player = self.rng.choice(hotheads)
        else:
            player = self.rng.choice(players)
        return MatchEvent(
            minute,
            MatchEventType.FIGHT,
            side.team.id,
            player.id,
            description=self._describe("fight", player=player.name),
        )

    def _argument(
        self, minute: int, home: MatchSide, away: MatchSide, pitch: PitchState
    ) -> MatchEvent:
        side = home if self.rng.random() < 0.5 else away
        player = self.rng.choice(side.available(pitch))
        return MatchEvent(
            minute,
            MatchEventType.ARGUMENT,
            side.team.id,
            player.id,
            description=self._describe("argument", player=player.name),
        )

    def _injury(
        self, minute: int, home: MatchSide, away: MatchSide, pitch: PitchState
    ) -> MatchEvent:
        home_risk = any(p.condition < TIRED_CONDITION for p in home.available(pitch))
        away_risk = any(p.condition < TIRED_CONDITION for p in away.available(pitch))
        if home_risk and not away_risk:
            home_chance = 0.8
        elif away_risk and not home_risk:
            home_chance = 0.2
        else:
            home_chance = 0.5
        side = home if self.rng.random() < home_chance else away

        players = side.available(pitch)
        outfield = [p for p in players if p.position != Position.GK] or players
        victim = self.rng.choice(outfield)
        return MatchEvent(
            minute,
            MatchEventType.INJURY,
            side.team.id,
            victim.id,
            description=self._describe("injury", player=victim.name),
        )

    def _penalty(
        self,
        minute: int,
        home: MatchSide,
        away: MatchSide,
        pitch: PitchState,
        home_rate: float,
        away_rate: float,
    ) -> MatchEvent:
        attack, defence = self._choose_side(home, away, home_rate, away_rate)
        attackers = attack.available(pitch)
        forwards = [p for p in attackers if position_group(p.position) == "FWD"] or attackers
        defenders = defence.available(pitch)
        backs = [p for p in defenders if position_group(p.position) == "DEF"] or defenders
        victim = self.rng.choice(forwards)
        fouler = self.rng.choice(backs)
        return MatchEvent(
            minute,
            MatchEventType.PENALTY,
            attack.team.id,
            victim.id,
            fouler.id,
            description=self._describe("penalty", fouler=fouler.name, victim=victim.name),
        )

    def _shot(
        self,
        minute: int,
        home: MatchSide,
        away: MatchSide,
        pitch: PitchState,
        home_power: float,
        away_power: float,
    ) -> MatchEvent:
        attack, defence = self._choose_side(home, away, home_power, away_power)
        attackers = attack.available(pitch)

        pool: list[Player] = []
        for player in attackers:
            pool.extend([player] * SCORER_WEIGHTS.get(position_group(player.position), 0))
        scorer = self.rng.choice(pool or attackers)

        others = [p for p in attackers if p.id != scorer.id]
        assister = self.rng.choice(others) if others else None

        keeper = defence.keeper(pitch)
        keeper_skill = keeper.skill if keeper else 50
        goal_prob = BASE_GOAL_PROBABILITY + (scorer.skill - keeper_skill) * 0.005
        if attack.team.tactics.mentality == Mentality.VERY_ATTACKING:
            goal_prob += 0.05
        defence_tactics = defence.team.tactics
        if (
            defence_tactics.mentality == Mentality.VERY_DEFENSIVE
            or defence_tactics.defensive_line == DefensiveLine.VERY_DEEP
        ):
            goal_prob -= 0.05

        roll = self.rng.random()
        if roll < goal_prob:
            return MatchEvent(
                minute,
                MatchEventType.GOAL,
                attack.team.id,
                scorer.id,
                assister.id if assister else None,
                description=self._describe("goal", scorer=scorer.name),
            )
        if roll < goal_prob + SAVE_WINDOW and keeper is not None:
            return MatchEvent(
                minute,
                MatchEventType.SAVE,
                defence.team.id,
                keeper.id,
                scorer.id,
                description=self._describe("save", keeper=keeper.name, attacker=scorer.name),
            )
        defender = self.rng.choice(defence.available(pitch))
        return MatchEvent(
            minute,
            MatchEventType.MISS,
            attack.team.id,
            scorer.id,
            description=self._describe("miss", player=scorer.name, defender=defender.name),
        )

    def card_odds(self, side: MatchSide, already_booked: bool) -> tuple[float, float]:
        """(red, yellow) probabilities for one foul by this side."""
        tactics = side.team.tactics
        red, yellow = CARD_ODDS.get(tactics.tackling, DEFAULT_CARD_ODDS)
        if tactics.pressing == Pressing.VERY_HIGH:
            yellow += 0.05
            red += 0.005
        if already_booked:
            yellow *= BOOKED_YELLOW_FACTOR
        return red, yellow

    def _foul(
        self, minute: int, home: MatchSide, away: MatchSide, pitch: PitchState
    ) -> MatchEvent:
        side, other = (home, away) if self.rng.random() < 0.5 else (away, home)
        players = side.available(pitch)
        outfield = [p for p in players if p.position != Position.GK] or players
        fouler = self.rng.choice(outfield)
        victim = self.rng.choice(other.available(pitch))

        booked = fouler.id in pitch.booked
        red, yellow = self.card_odds(side, booked)
        roll = self.rng.random()

        if roll < red:
            return MatchEvent(
                minute,
                MatchEventType.CARD_RED,
                side.team.id,
                fouler.id,
                victim.id,
                description=self._describe("red", player=fouler.name),
            )
        if roll < red + yellow:
            if booked:
                return MatchEvent(
                    minute,
                    MatchEventType.CARD_RED,
                    side.team.id,
                    fouler.id,
                    victim.id,
                    description=self._describe("second_yellow", player=fouler.name),
                    is_second_yellow=True,
                )
            category = (
                "yellow_aggressive" if side.team.tactics.tackling == Tackling.AGGRESSIVE
                else "yellow"
            )
            return MatchEvent(
                minute,
                MatchEventType.CARD_YELLOW,
                side.team.id,
                fouler.id,
                victim.id,
                description=self._describe(category, player=fouler.name),
            )
        return MatchEvent(
            minute,
            MatchEventType.FOUL,
            side.team.id,
            fouler.id,
            victim.id,
            description=self._describe("foul", player=fouler.name, victim=victim.name),
        )

    def _corner(
        self,
        minute: int,
        home: MatchSide,
        away: MatchSide,
        pitch: PitchState,
        home_power: float,
        away_power: float,
    ) -> MatchEvent:
        attack, _ = self._choose_side(home, away, home_power, away_power)
        taker = self.rng.choice(attack.available(pitch))
        return MatchEvent(
            minute,
            MatchEventType.CORNER,
            attack.team.id,
            taker.id,
            description=self._describe("corner", team=attack.team.name, player=taker.name),
        )

    def _offside(
        self,
        minute: int,
        home: MatchSide,
        away: MatchSide,
        pitch: PitchState,
        home_power: float,
        away_power: float,
    ) -> MatchEvent:
        attack, _ = self._choose_side(home, away, home_power, away_power)
        players = attack.available(pitch)
        forwards = [p for p in players if position_group(p.position) == "FWD"] or players
        player = self.rng.choice(forwards)
        return MatchEvent(
            minute,
            MatchEventType.OFFSIDE,
            attack.team.id,
            player.id,
            description=self._describe("offside", player=player.name),
        )

    # ------------------------------------------------------------------
    # Full match
    # ------------------------------------------------------------------

    def simulate_match(
        self,
        home: Team,
        away: Team,
        competition_id: str | None = None,
        knockout: bool = False,
        first_leg: Fixture | None = None,
        background: bool = True,
    ) -> MatchResult:
        """Simulate 90 minutes, resolving penalties and a shootout if needed.

        Args:
            home: Home team
            away: Away team
            competition_id: Competition used for suspension checks
            knockout: Whether a winner must be found
            first_leg: First leg of a two-leg tie, sides reversed
            background: Record fights and arguments as red cards and
                drop pitch invasions

        Returns:
            MatchResult with events, box score and ratings
        """
        home_side = MatchSide.from_team(home, competition_id)
        away_side = MatchSide.from_team(away, competition_id)
        derby = self.rivalry_check(home.name, away.name)

        events: list[MatchEvent] = []
        home_score = away_score = 0

        for minute in range(1, MATCH_MINUTES + 1):
            possession = live_possession(
                home_side.strength, away_side.strength, (home_score, away_score)
            )
            event = self._step(
                minute, home_side, away_side, (home_score, away_score),
                events, possession, derby,
            )
            if event is None:
                continue
            for resolved in self._resolve(event, home_side, away_side, events, background):
                events.append(resolved)
                if resolved.event_type == MatchEventType.GOAL:
                    if resolved.team_id == home.id:
                        home_score += 1
                    else:
                        away_score += 1

        pk_home = pk_away = None
        if requires_shootout(home_score, away_score, knockout, first_leg):
            pk_home, pk_away = self.simulate_shootout(home_side.strength, away_side.strength)

        result = MatchResult(
            home_score=home_score,
            away_score=away_score,
            events=events,
            pk_home=pk_home,
            pk_away=pk_away,
            home_lineup=[p.id for p in home_side.lineup],
            away_lineup=[p.id for p in away_side.lineup],
        )
        result.stats = self.generate_match_stats(
            home_side.strength, away_side.strength, home.id, away.id,
            home_score, away_score, events,
        )
        home_ratings, away_ratings = build_match_ratings(
            events, home_side.lineup, away_side.lineup,
            home_score, away_score,
        )
        result.stats.home_ratings = home_ratings
        result.stats.away_ratings = away_ratings
        mvp = select_mvp(home_ratings + away_ratings)
        if mvp is not None:
            result.stats.mvp_player_id = mvp.player_id
            result.stats.mvp_player_name = mvp.name
        logger.debug(
            "%s %d-%d %s (%d events)", home.name, home_score, away_score, away.name, len(events)
        )
        return result

    def _resolve(
        self,
        event: MatchEvent,
        home: MatchSide,
        away: MatchSide,
        events: list[MatchEvent],
        background: bool,
    ) -> list[MatchEvent]:
        """Expand or convert a raw minute event into recorded events."""
        if event.event_type == MatchEventType.PENALTY:
            return [event, self._take_penalty(event, home, away, events)]
        if background and event.event_type in (MatchEventType.FIGHT, MatchEventType.ARGUMENT):
            return [MatchEvent(
                event.minute,
                MatchEventType.CARD_RED,
                event.team_id,
                event.player_id,
                description=event.description,
            )]
        if background and event.event_type == MatchEventType.PITCH_INVASION:
            return []
        return [event]

    def _take_penalty(
        self,
        event: MatchEvent,
        home: MatchSide,
        away: MatchSide,
        events: list[MatchEvent],
    ) -> MatchEvent:
        side = home if event.team_id == home.team.id else away
        pitch = PitchState.from_events(events)
        taker = select_penalty_taker(side.team, side.available(pitch))
        if taker is None:
            taker = side.lineup[0]
        scored = self.rng.random() < penalty_conversion_chance(taker)
        return MatchEvent(
            event.minute,
            MatchEventType.GOAL if scored else MatchEventType.MISS,
            side.team.id,
            taker.id,
            description=self._describe(
                "penalty_goal" if scored else "penalty_miss", player=taker.name
            ),
            penalty_scored=scored,
        )

    def simulate_shootout(self, home_strength: float, away_strength: float) -> tuple[int, int]:
        """Five kicks each, then sudden death. Never ends level."""
        home_prob = max(0.05, min(0.95, 0.5 + (home_strength - away_strength) * 0.005))
        away_prob = 1 - home_prob

        home_goals = away_goals = 0
        for _ in range(SHOOTOUT_ROUNDS):
            if self.rng.random() < home_prob:
                home_goals += 1
            if self.rng.random() < away_prob:
                away_goals += 1

        while home_goals == away_goals:
            if self.rng.random() < home_prob:
                home_goals += 1
            if self.rng.random() < away_prob:
                away_goals += 1

        return home_goals, away_goals

    def generate_match_stats(
        self,
        home_strength: float,
        away_strength: float,
        home_id: str,
        away_id: str,
        home_score: int,
        away_score: int,
        events: list[MatchEvent],
    ) -> MatchStats:
        """Box score from strengths and the final score.

        Cards are counted from the events; everything else is generated
        holistically around the score.
        """
        total = home_strength + away_strength
        base = 50 if total <= 0 else math.floor(home_strength / total * 100)
        possession = base + self.rng.randint(-5, 5) - 2 * (home_score - away_score)
        possession = max(30, min(70, possession))

        home_shots = self.rng.randint(0, 7) + 10 + 2 * home_score
        away_shots = self.rng.randint(0, 7) + 8 + 2 * away_score
        home_on_target = min(
            home_shots, home_score + self.rng.randint(0, 3) + math.floor(home_shots * 0.1)
        )
        away_on_target = min(
            away_shots, away_score + self.rng.randint(0, 2) + math.floor(away_shots * 0.1)
        )

        stats = MatchStats(
            home_possession=possession,
            away_possession=100 - possession,
            home_shots=home_shots,
            away_shots=away_shots,
            home_shots_on_target=home_on_target,
            away_shots_on_target=away_on_target,
            home_corners=home_shots // 3 + self.rng.randint(0, 2),
            away_corners=away_shots // 3 + self.rng.randint(0, 2),
            home_fouls=8 + self.rng.randint(0, 7),
            away_fouls=9 + self.rng.randint(0, 8),
            home_offsides=self.rng.randint(0, 3),
            away_offsides=self.rng.randint(0, 3),
        )

        for event in events:
            is_home = event.team_id == home_id
            if event.team_id not in (home_id, away_id):
                continue
            if event.event_type == MatchEventType.CARD_YELLOW:
                if is_home:
                    stats.home_yellow_cards += 1
                else:
                    stats.away_yellow_cards += 1
            elif event.event_type in RED_CARD_EVENTS:
                if is_home:
                    stats.home_red_cards += 1
                    stats.home_yellow_cards += int(event.is_second_yellow)
                else:
                    stats.away_red_cards += 1
                    stats.away_yellow_cards += int(event.is_second_yellow)
        return stats
