"""Random Tournament Generator (RTG): internal testing system for the pairing engines.

Generates complete simulated events, pairing every round with the real
engines and recording simulated results, then audits every round with the
round checker.
"""

# TCG Pairing
# Copyright (C) 2025  TCG Pairing developers
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

import json
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from tcgpairing.config import PairingConfig
from tcgpairing.constants import STATUS_READY, TOURNAMENT_SWISS
from tcgpairing.exceptions import TournamentStateException
from tcgpairing.models.tournament import MatchRecord, TournamentConfig
from tcgpairing.tournament.tournament import Tournament
from tcgpairing.utils import setup_logger
from tcgpairing.validation.round_checker import ValidationReport

logger = setup_logger(__name__)


class SkillDistribution(Enum):
    """Hidden skill distribution of the simulated field."""

    UNIFORM = "uniform"
    NORMAL = "normal"
    SKEWED = "skewed"


class ResultPattern(Enum):
    """Result generation patterns for tournaments."""

    REALISTIC = "realistic"
    BALANCED = "balanced"
    PREDICTABLE = "predictable"
    RANDOM = "random"


@dataclass
class RTGConfig:
    """Configuration for Random Tournament Generator."""

    num_players: int
    num_rounds: int
    tournament_type: str = TOURNAMENT_SWISS
    skill_distribution: SkillDistribution = SkillDistribution.NORMAL
    skill_range: Tuple[int, int] = (800, 2200)
    result_pattern: ResultPattern = ResultPattern.REALISTIC
    seed: Optional[int] = None
    draw_percentage: int = 10
    drop_rate: float = 0.0
    static_seat_rate: float = 0.0
    validate: bool = True


class PlayerFactory:
    """Factory for creating simulated players with a hidden skill value."""

    def __init__(self, config: RTGConfig, rng: random.Random):
        self.config = config
        self.random = rng

    def create_players(self, tournament: Tournament) -> Dict[str, int]:
        """Register the field in ``tournament``.

        Returns:
            Player id mapped to hidden skill
        """
        skills = {}
        for i in range(self.config.num_players):
            skill = self._generate_skill()
            player = tournament.add_player(
                name=f"Player {i + 1:03d}", player_id=f"p{i + 1:03d}"
            )
            if self.random.random() < self.config.static_seat_rate:
                tournament.set_static_seat(player.id, i + 1)
            skills[player.id] = skill

        logger.info(
            "Created %s players with %s distribution",
            len(skills),
            self.config.skill_distribution.value,
        )
        return skills

    def _generate_skill(self) -> int:
        low, high = self.config.skill_range
        if self.config.skill_distribution == SkillDistribution.UNIFORM:
            return self.random.randint(low, high)
        if self.config.skill_distribution == SkillDistribution.SKEWED:
            if self.random.random() < 0.7:
                return self.random.randint(low, (low + high) // 2)
            return self.random.randint((low + high) // 2, high)
        mean = (low + high) / 2
        std_dev = (high - low) / 6
        return max(low, min(high, int(self.random.gauss(mean, std_dev))))


class ResultSimulator:
    """Simulates match results from hidden skills."""

    def __init__(self, config: RTGConfig, rng: random.Random, draws_allowed: bool = True):
        self.config = config
        self.random = rng
        self.draws_allowed = draws_allowed

    def simulate_match(
        self, record: MatchRecord, skills: Dict[str, int]
    ) -> Tuple[Optional[str], Optional[str]]:
        """Return the winner id (None for a draw) and a game score."""
        skill1 = skills.get(record.player1_id, 0)
        skill2 = skills.get(record.player2_id, 0)
        pattern = self.config.result_pattern

        if pattern == ResultPattern.RANDOM:
            outcome = self.random.choice([1.0, 0.5, 0.0])
        elif pattern == ResultPattern.PREDICTABLE:
            outcome = 1.0 if skill1 >= skill2 else 0.0
        elif pattern == ResultPattern.BALANCED:
            outcome = self._outcome(0.5, 0.1)
        else:
            diff = skill1 - skill2
            expected = math.erfc(-diff * 7.0 / math.sqrt(2.0) / 2000.0) / 2.0
            draw_probability = min(
                self.config.draw_percentage / 100.0, 2.0 - 2.0 * max(expected, 1 - expected)
            )
            outcome = self._outcome(expected, draw_probability)

        if outcome == 0.5 and not self.draws_allowed:
            outcome = 1.0 if skill1 >= skill2 else 0.0
        if outcome == 0.5:
            return None, None
        winner = record.player1_id if outcome == 1.0 else record.player2_id
        return winner, self.random.choice(["2-0", "2-1"])

    def _outcome(self, win_probability: float, draw_probability: float) -> float:
        value = self.random.random()
        if value < draw_probability:
            return 0.5
        return 1.0 if value < draw_probability + (1 - draw_probability) * win_probability else 0.0


class RandomTournamentGenerator:
    """Runs a complete simulated event through the real engines."""

    def __init__(self, config: RTGConfig, pairing_config: Optional[PairingConfig] = None):
        self.config = config
        self.pairing_config = pairing_config
        self.random = (
            random.Random(config.seed) if config.seed is not None else random.Random()
        )
        self.player_factory = PlayerFactory(config, self.random)
        self.result_simulator = ResultSimulator(
            config,
            self.random,
            draws_allowed=config.tournament_type == TOURNAMENT_SWISS,
        )

    def generate_complete_tournament(self) -> Dict[str, Any]:
        """Simulate every round.

        Returns:
            Dictionary with the ``tournament`` object, ``players``, ``rounds``
            (match dictionaries per round), ``standings`` and, when validation
            is enabled, ``validation``
        """
        tournament = Tournament(
            TournamentConfig(
                name=f"RTG {self.config.seed if self.config.seed is not None else 'unseeded'}",
                num_rounds=self.config.num_rounds,
                tournament_type=self.config.tournament_type,
            ),
            self.pairing_config,
        )
        skills = self.player_factory.create_players(tournament)

        for round_number in range(1, self.config.num_rounds + 1):
            try:
                records = tournament.create_next_round(rng=self.random)
            except TournamentStateException as e:
                logger.info("Stopping after round %d: %s", round_number - 1, e)
                break
            for record in records:
                if record.status != STATUS_READY:
                    continue
                winner, score = self.result_simulator.simulate_match(record, skills)
                tournament.record_result(round_number, record.match_number, winner, score)
            self._apply_drops(tournament)

        data: Dict[str, Any] = {
            "tournament": tournament,
            "players": [p.to_dict() for p in tournament.players.values()],
            "rounds": [
                [m.to_dict() for m in tournament.get_round(r)]
                for r in range(1, tournament.current_round_number + 1)
            ],
            "standings": [s.to_dict() for s in tournament.standings()],
        }
        if self.config.validate:
            reports = tournament.validate_rounds()
            data["validation"] = summarize_reports(reports)
        return data

    def _apply_drops(self, tournament: Tournament) -> None:
        if self.config.drop_rate <= 0:
            return
        for player in list(tournament.active_players):
            if len(tournament.active_players) <= 2:
                return
            if self.random.random() < self.config.drop_rate:
                tournament.set_dropped(player.id)

    def export_json_format(self, tournament_data: Dict[str, Any]) -> str:
        """Serialize generated data; the result loads back with ``Tournament.load``."""
        payload = tournament_data["tournament"].to_dict()
        payload["standings"] = tournament_data["standings"]
        if "validation" in tournament_data:
            payload["validation"] = tournament_data["validation"]
        return json.dumps(payload, indent=2)


def summarize_reports(reports: List[ValidationReport]) -> Dict[str, Any]:
    """Collapse per-round validation reports into one summary dictionary."""
    absolute = [
        f"R{r.round_number}:{v.criterion}" for r in reports for v in r.violations
    ]
    warnings = [
        f"R{r.round_number}:{w.criterion}" for r in reports for w in r.quality_warnings
    ]
    if absolute:
        summary = f"{len(absolute)} absolute violations across {len(reports)} rounds"
    else:
        summary = f"All {len(reports)} rounds valid; {len(warnings)} quality warnings"
    return {
        "absolute_violations": absolute,
        "warnings": warnings,
        "summary": summary,
        "reports": [r.to_dict() for r in reports],
    }


def create_small_tournament(seed: Optional[int] = None) -> RandomTournamentGenerator:
    """8 players, 3 rounds."""
    return RandomTournamentGenerator(RTGConfig(num_players=8, num_rounds=3, seed=seed))
