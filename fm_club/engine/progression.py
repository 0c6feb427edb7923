"""Player progression for FM Club.

Daily, per-player development:
- Injury countdown and random training-ground injuries
- Condition recovery shaped by stamina and the last injury's length
- Age-related decline for players 30 and over
- Growth towards potential for players 29 and under
- Individual training programs for the user's squad
- Team training sessions and the assistant's delegated session
- AI lineup ordering
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

from fm_club.core.models import (
    ATTRIBUTE_NAMES,
    PHYSICAL_ATTRIBUTES,
    IndividualTraining,
    Injury,
    InjuryRecord,
    Personality,
    Player,
    Position,
    Team,
    TrainingFocus,
    TrainingIntensity,
)
from fm_club.engine.post_match import weighted_injury
from fm_club.engine.strength import market_value, overall_from_attributes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainingProgram:
    """An individual program drilling a few attributes."""
    id: str
    label: str
    attributes: Tuple[str, ...]
    # Positions that get the synergy bonus; empty means everyone
    positions: Tuple[Position, ...] = ()


INDIVIDUAL_PROGRAMS: Dict[str, TrainingProgram] = {
    program.id: program for program in (
        TrainingProgram(
            "finishing", "Finishing",
            ("finishing", "composure", "off_the_ball"),
            (Position.ST, Position.LW, Position.RW, Position.AM),
        ),
        TrainingProgram(
            "playmaking", "Playmaking",
            ("passing", "vision", "decisions"),
            (Position.CM, Position.AM),
        ),
        TrainingProgram(
            "defending", "Defending",
            ("marking", "tackling", "positioning"),
            (Position.CB, Position.LB, Position.RB, Position.CM),
        ),
        TrainingProgram(
            "dribbling", "Ball Control",
            ("dribbling", "technique", "first_touch"),
            (Position.LW, Position.RW, Position.AM),
        ),
        TrainingProgram(
            "aerial", "Aerial Ability",
            ("heading", "jumping", "bravery"),
            (Position.CB, Position.ST),
        ),
        TrainingProgram(
            "goalkeeping", "Goalkeeping",
            ("agility", "concentration", "positioning"),
            (Position.GK,),
        ),
        TrainingProgram("fitness", "Fitness", ("stamina", "pace", "acceleration")),
        TrainingProgram("set_pieces", "Set Pieces", ("free_kick", "corners", "penalty")),
    )
}

FOCUS_ATTRIBUTES: Dict[TrainingFocus, Tuple[str, ...]] = {
    TrainingFocus.ATTACK: ("finishing", "off_the_ball", "first_touch"),
    TrainingFocus.DEFENSE: ("marking", "tackling", "positioning"),
    TrainingFocus.PHYSICAL: ("stamina", "pace", "physical"),
    TrainingFocus.TACTICAL: ("teamwork", "decisions", "anticipation"),
    TrainingFocus.MATCH_PREP: ("concentration", "composure"),
    TrainingFocus.SET_PIECES: ("free_kick", "corners", "penalty", "heading"),
}

# (progress per session, condition cost)
INTENSITY_EFFECTS: Dict[TrainingIntensity, Tuple[float, float]] = {
    TrainingIntensity.LOW: (0.3, 3.0),
    TrainingIntensity.STANDARD: (0.5, 8.0),
    TrainingIntensity.HIGH: (0.8, 15.0),
}

PROGRAM_BOOST_CHANCE = 0.005
PROGRAM_DAILY_GAIN = 0.8
BASE_INJURY_RISK = 0.001
SUSCEPTIBILITY_RISK = 0.00005
DEFAULT_INJURY_DAYS = 14


def improvement_threshold(value: int) -> float:
    """Progress points needed to raise an attribute from its current value."""
    if value < 5:
        return 80
    if value < 10:
        return 150
    if value < 14:
        return 300
    if value < 16:
        return 600
    if value < 18:
        return 1200
    if value < 19:
        return 2500
    return 99999


def age_growth_factor(age: int) -> float:
    if age <= 20:
        return 1.2
    if age <= 24:
        return 1.0
    if age <= 27:
        return 0.8
    if age <= 30:
        return 0.3
    return 0.0


def potential_factor(skill: int, potential: int) -> float:
    gap = potential - skill
    if gap > 10:
        return 1.5
    if gap > 5:
        return 1.2
    if gap > 2:
        return 1.0
    if gap > 0:
        return 0.5
    return 0.0


def program_cycle_days(personality: Personality) -> int:
    """Length of an individual program; hard workers finish sooner."""
    if personality in (Personality.HARDWORKING, Personality.AMBITIOUS):
        weeks = 8
    elif personality == Personality.PROFESSIONAL:
        weeks = 9
    elif personality == Personality.LAZY:
        weeks = 12
    else:
        weeks = 10
    return weeks * 7


def recovery_multiplier(last_injury_days: int, trained: bool) -> float:
    multiplier = 1.0
    if last_injury_days > 0:
        if last_injury_days <= 10:
            multiplier = 1.35
        elif last_injury_days >= 56:
            multiplier = 0.45
        elif last_injury_days >= 28:
            multiplier = 0.7
    return multiplier * (0.5 if trained else 1.2)


def _shift_skill_with_attributes(player: Player, before: int) -> None:
    """Carry an attribute-driven overall change into skill, capped at potential."""
    delta = overall_from_attributes(player) - before
    if delta:
        player.skill = max(1, min(player.potential, player.skill + delta))
        player.value = market_value(player)


def optimize_ai_squad(team: Team) -> Team:
    """Order the roster as [GK, best ten outfielders, the rest, unavailable].

    With no fit goalkeeper an unavailable one is used, failing that the
    best outfield player goes in goal.
    """
    available = [p for p in team.players if not p.is_injured and not p.is_suspended()]
    unavailable = [p for p in team.players if p not in available]
    available.sort(key=lambda p: p.skill, reverse=True)

    keeper = next((p for p in available if p.position == Position.GK), None)
    if keeper is not None:
        available.remove(keeper)
    else:
        keeper = next((p for p in unavailable if p.position == Position.GK), None)
        if keeper is not None:
            unavailable.remove(keeper)
        elif available:
            keeper = available.pop(0)
        else:
            return team

    team.players = [keeper] + available[:10] + available[10:] + unavailable
    return team


@dataclass
class TrainingReport:
    """One line of the training report."""
    player_id: str
    player_name: str
    message: str
    score: float = 0.0


@dataclass
class DailyProgress:
    """What happened to a squad over one day."""
    new_injuries: List[Player] = field(default_factory=list)
    reports: List[TrainingReport] = field(default_factory=list)


class ProgressionEngine:
    """Daily player progression and training."""

    def __init__(self, seed: Optional[int] = None):
        self.rng = random.Random(seed)

    # ------------------------------------------------------------------
    # Daily update
    # ------------------------------------------------------------------

    def daily_update(
        self, team: Team, trained: bool, today: date, individual: bool = False
    ) -> DailyProgress:
        """Advance every player of a squad by one day.

        Args:
            team: The squad to progress
            trained: Whether the squad had a training session today
            today: The day being simulated
            individual: Run individual programs (user's squad only)
        """
        result = DailyProgress()
        for player in team.players:
            if self._tick_injury(player, today):
                result.new_injuries.append(player)
            if not player.is_injured:
                self._recover(player, trained)
            self.develop_and_age(player, trained)
            if individual and player.individual_training is not None:
                report = self.individual_training_day(player)
                if report is not None:
                    result.reports.append(report)
            player.clamp()
        return result

    def _tick_injury(self, player: Player, today: date) -> bool:
        """Count an injury down or roll a new one; True for a new injury."""
        if player.injury is not None:
            player.condition = 0.0
            player.injury.days_remaining -= 1
            if player.injury.days_remaining <= 0:
                last = player.injury_history[-1] if player.injury_history else None
                player.last_injury_duration_days = (
                    last.duration_days if last else DEFAULT_INJURY_DAYS
                )
                player.injury = None
            return False

        risk = BASE_INJURY_RISK + player.injury_susceptibility * SUSCEPTIBILITY_RISK
        if self.rng.random() >= risk:
            return False

        injury_type = weighted_injury(self.rng)
        days = self.rng.randint(injury_type.min_days, injury_type.max_days)
        player.injury = Injury(type=injury_type.name, days_remaining=days)
        player.injury_history.append(
            InjuryRecord(type=injury_type.name, start_date=today, duration_days=days)
        )
        player.condition = 0.0
        logger.debug("%s injured in training (%s, %d days)", player.name, injury_type.name, days)
        return True

    @staticmethod
    def _recover(player: Player, trained: bool) -> None:
        base = 10 + player.attr("stamina") * 0.5
        gain = base * recovery_multiplier(player.last_injury_duration_days, trained)
        player.condition = min(100.0, player.condition + gain)

    def develop_and_age(self, player: Player, trained: bool) -> bool:
        """Daily development roll. Returns True if anything changed."""
        changed = False

        program = (
            INDIVIDUAL_PROGRAMS.get(player.individual_training.program_id)
            if player.individual_training else None
        )
        if program is not None and trained:
            for name in program.attributes:
                if player.attr(name) < 20 and self.rng.random() < PROGRAM_BOOST_CHANCE:
                    player.attributes[name] = player.attr(name) + 1
                    changed = True

        if player.age >= 30:
            if player.age >= 38:
                drop_chance, overall_chance = 0.05, 1.0
            elif player.age >= 35:
                drop_chance, overall_chance = 0.015, 0.7
            elif player.age >= 33:
                drop_chance, overall_chance = 0.005, 0.4
            else:
                drop_chance, overall_chance = 0.001, 0.1

            if self.rng.random() < drop_chance:
                if self.rng.random() < 0.80:
                    name = self.rng.choice(PHYSICAL_ATTRIBUTES)
                else:
                    name = self.rng.choice(ATTRIBUTE_NAMES)
                if player.attr(name) > 1:
                    player.attributes[name] = player.attr(name) - 1
                    changed = True
                    if self.rng.random() < overall_chance:
                        player.skill = max(1, player.skill - 1)

        elif player.skill < player.potential and player.age <= 29:
            if player.age <= 21:
                growth_chance = 0.015
            elif player.age <= 23:
                growth_chance = 0.010
            else:
                growth_chance = 0.005
            if trained:
                growth_chance *= 1.5
            if player.potential - player.skill > 10:
                growth_chance *= 1.2

            if self.rng.random() < growth_chance:
                name = self.rng.choice(ATTRIBUTE_NAMES)
                if player.attr(name) < 20:
                    player.attributes[name] = player.attr(name) + 1
                    changed = True
                    if self.rng.random() < 0.30:
                        player.skill = min(player.potential, player.skill + 1)

        if changed:
            player.value = market_value(player)
        return changed

    # ------------------------------------------------------------------
    # Individual programs
    # ------------------------------------------------------------------

    def assign_program(self, player: Player, program_id: str) -> IndividualTraining:
        program = INDIVIDUAL_PROGRAMS.get(program_id)
        if program is None:
            raise KeyError(f"Unknown training program: {program_id}")
        player.individual_training = IndividualTraining(
            program_id=program.id, attributes=list(program.attributes)
        )
        return player.individual_training

    def individual_training_day(self, player: Player) -> Optional[TrainingReport]:
        """Accumulate a day of drills; roll for level-ups when the cycle ends."""
        training = player.individual_training
        program = INDIVIDUAL_PROGRAMS.get(training.program_id) if training else None
        if program is None:
            player.individual_training = None
            return None

        training.days_active += 1
        synergy = 1.2 if not program.positions or player.position in program.positions else 1.0
        gain = (
            PROGRAM_DAILY_GAIN
            * age_growth_factor(player.age)
            * potential_factor(player.skill, player.potential)
            * synergy
        )
        for name in program.attributes:
            if player.attr(name) < 20:
                training.progress[name] = training.progress.get(name, 0.0) + gain

        if training.days_active < program_cycle_days(player.personality):
            return None

        before = overall_from_attributes(player)
        levelled = progressed = False
        attributes = list(program.attributes)
        self.rng.shuffle(attributes)
        for name in attributes:
            value = player.attr(name)
            if value <= 16:
                chance = 0.80
            elif value <= 18:
                chance = 0.45
            elif value == 19:
                chance = 0.10
            else:
                chance = 0.0
            if player.skill >= player.potential:
                chance *= 0.2

            if value < 20 and self.rng.random() < chance:
                player.attributes[name] = value + 1
                player.attribute_progress[name] = 0.0
                levelled = True
            else:
                target = improvement_threshold(value) * 0.75
                if player.attribute_progress.get(name, 0.0) < target:
                    player.attribute_progress[name] = target
                    progressed = True

        if levelled:
            message = f"{program.label} program complete: attributes improved."
            player.morale += 10
            _shift_skill_with_attributes(player, before)
        elif progressed:
            message = f"{program.label} program complete: good progress, no level-up yet."
            player.morale += 5
        else:
            message = f"{program.label} program complete."
        player.individual_training = None
        player.clamp()
        return TrainingReport(player.id, player.name, message, 8.0)

    # ------------------------------------------------------------------
    # Team sessions
    # ------------------------------------------------------------------

    def run_team_training(
        self,
        team: Team,
        intensity: Optional[TrainingIntensity] = None,
        focus: Optional[TrainingFocus] = None,
        sub_focus: Optional[TrainingFocus] = None,
    ) -> List[TrainingReport]:
        """One team session: condition cost, attribute progress, report.

        Returns:
            Level-ups plus the five best trainers of the day
        """
        intensity = intensity or team.training_intensity
        focus = focus or team.training_focus
        base_progress, fatigue = INTENSITY_EFFECTS[intensity]
        coach_bonus = (team.reputation * 10 + 50) / 100

        report: List[TrainingReport] = []
        scores: List[Tuple[float, Player]] = []
        for player in team.players:
            score = 7.0 + self.rng.random() * 2.5
            if player.morale < 50:
                score -= 1.5 + self.rng.random() * 1.5
            elif player.morale >= 90:
                score += 0.3
            if player.condition < 60:
                score -= 1.0 + self.rng.random()
            elif player.condition >= 90:
                score += 0.2
            score = max(1.0, min(10.0, round(score, 1)))
            scores.append((score, player))

            personality_mod = 1.0
            if player.personality in (Personality.HARDWORKING, Personality.AMBITIOUS):
                personality_mod = 1.2 if intensity == TrainingIntensity.HIGH else 1.0
            elif player.personality == Personality.LAZY and intensity == TrainingIntensity.HIGH:
                personality_mod = 0.7

            player.condition = max(
                0.0, player.condition - fatigue * (1 + self.rng.random() * 0.2)
            )

            pot = potential_factor(player.skill, player.potential)
            if player.age >= 31 or player.skill >= player.potential or pot <= 0:
                continue

            before = overall_from_attributes(player)
            focuses = [(focus, 1.0)]
            if sub_focus is not None:
                focuses.append((sub_focus, 0.5))
            for session_focus, weight in focuses:
                name = self.rng.choice(FOCUS_ATTRIBUTES[session_focus])
                amount = base_progress * weight * 0.15
                gain = (
                    amount * age_growth_factor(player.age) * pot
                    * coach_bonus * personality_mod * score / 6.0
                )
                value = player.attr(name)
                if value >= 20:
                    continue
                progress = player.attribute_progress.get(name, 0.0) + gain
                if progress >= improvement_threshold(value):
                    player.attributes[name] = value + 1
                    player.attribute_progress[name] = 0.0
                    report.append(TrainingReport(
                        player.id, player.name,
                        f"{name.replace('_', ' ').title()} improved ({value} -> {value + 1})",
                        score,
                    ))
                else:
                    player.attribute_progress[name] = progress
            _shift_skill_with_attributes(player, before)

        scores.sort(key=lambda item: item[0], reverse=True)
        reported = {r.player_id for r in report}
        for score, player in scores[:5]:
            if player.id not in reported:
                report.append(TrainingReport(
                    player.id, player.name, f"One of the hardest workers today ({score})", score
                ))
        return report

    def assistant_session(self, team: Team) -> List[TrainingReport]:
        """Delegated session: intensity follows the squad's average condition."""
        if not team.players:
            return []
        avg_condition = sum(p.condition for p in team.players) / len(team.players)
        if avg_condition < 70:
            intensity = TrainingIntensity.LOW
        elif avg_condition > 90:
            intensity = TrainingIntensity.HIGH
        else:
            intensity = TrainingIntensity.STANDARD
        return self.run_team_training(team, intensity, team.training_focus, TrainingFocus.MATCH_PREP)
