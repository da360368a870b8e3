"""In-memory tournament: players, rounds, results and standings.

The tournament keeps the authoritative match records. Before every round it
derives a standings snapshot from them, hands that to the pairing engine and
writes the returned pairings back as match records.
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
import random
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from tcgpairing.config import PairingConfig
from tcgpairing.constants import (
    RESULT_DRAW,
    SAVE_FILE_EXTENSION,
    STATUS_BYE,
    STATUS_COMPLETED,
    STATUS_READY,
    TOURNAMENT_SINGLE_ELIMINATION,
    TOURNAMENT_SWISS,
    TOURNAMENT_TYPES,
)
from tcgpairing.exceptions import (
    DuplicatePlayerException,
    FileLoadException,
    FileSaveException,
    InvalidConfigurationException,
    InvalidResultException,
    MatchNotFoundException,
    PlayerException,
    PlayerNotFoundException,
    RoundNotFoundException,
    TournamentStateException,
)
from tcgpairing.models.pairing import PairingDecisionLog, PairingHistory
from tcgpairing.models.standing import PlayerStanding, PlayerWithTieBreakers
from tcgpairing.models.tournament import MatchRecord, RegisteredPlayer, TournamentConfig
from tcgpairing.pairing.single_elimination import (
    generate_elimination_round,
    generate_round1_pairings,
)
from tcgpairing.pairing.swiss import generate_swiss_pairings
from tcgpairing.tournament.seating import assign_match_numbers
from tcgpairing.tournament.standings import (
    build_standings_from_matches,
    previous_pairings_from_matches,
)
from tcgpairing.tournament.tiebreak_calculator import TiebreakCalculator
from tcgpairing.utils import generate_id, setup_logger
from tcgpairing.validation.round_checker import RoundChecker, ValidationReport

logger = setup_logger(__name__)


class Tournament:
    """A single Swiss or single elimination event.

    Args:
        config: Name, round count and tournament type
        pairing_config: Search limits for the pairing engine
    """

    def __init__(
        self, config: TournamentConfig, pairing_config: Optional[PairingConfig] = None
    ):
        if config.tournament_type not in TOURNAMENT_TYPES:
            raise InvalidConfigurationException(
                f"Unknown tournament type: {config.tournament_type}"
            )
        if config.num_rounds < 1:
            raise InvalidConfigurationException(
                f"A tournament needs at least one round, got {config.num_rounds}"
            )
        if config.created_at is None:
            config.created_at = datetime.now(timezone.utc)
        self.config = config
        self.pairing_config = pairing_config or PairingConfig()
        self.players: Dict[str, RegisteredPlayer] = {}
        self.matches: List[MatchRecord] = []

    # --- players ---

    def add_player(
        self,
        name: str,
        static_seat: Optional[int] = None,
        player_id: Optional[str] = None,
    ) -> RegisteredPlayer:
        """Register a player. Late entries join the next round with an empty record."""
        if not name or not name.strip():
            raise PlayerException("Player name must not be empty")
        player_id = player_id or generate_id("player")
        if player_id in self.players:
            raise DuplicatePlayerException(f"Player id {player_id} already registered")
        player = RegisteredPlayer(id=player_id, name=name.strip())
        self.players[player_id] = player
        if static_seat is not None:
            self.set_static_seat(player_id, static_seat)
        logger.info("Added player %s (%s)", player.name, player_id)
        return player

    def get_player(self, player_id: str) -> RegisteredPlayer:
        try:
            return self.players[player_id]
        except KeyError:
            raise PlayerNotFoundException(f"Player {player_id} not found") from None

    def set_dropped(self, player_id: str, dropped: bool = True) -> None:
        """Drop a player from future rounds, or bring them back."""
        self.get_player(player_id).dropped = dropped
        logger.info("Player %s %s", player_id, "dropped" if dropped else "reinstated")

    def set_static_seat(self, player_id: str, seat: Optional[int]) -> None:
        """Fix a player to a table number, None clears it."""
        if seat is not None and seat < 1:
            raise PlayerException(f"Static seat must be a positive table number, got {seat}")
        self.get_player(player_id).static_seat = seat

    @property
    def active_players(self) -> List[RegisteredPlayer]:
        return [p for p in self.players.values() if not p.dropped]

    # --- rounds ---

    @property
    def current_round_number(self) -> int:
        """Highest round created so far, 0 before the first round."""
        return max((m.round_number for m in self.matches), default=0)

    def get_round(self, round_number: int) -> List[MatchRecord]:
        """Match records of a round ordered by table number."""
        records = [m for m in self.matches if m.round_number == round_number]
        if not records:
            raise RoundNotFoundException(f"Round {round_number} does not exist")
        return sorted(records, key=lambda m: m.match_number)

    def is_round_complete(self, round_number: int) -> bool:
        return all(m.is_finished for m in self.get_round(round_number))

    def decision_log(self, round_number: int) -> Optional[PairingDecisionLog]:
        """The decision log stored with a round, if any."""
        for record in self.get_round(round_number):
            if record.decision_log is not None:
                return record.decision_log
        return None

    def standings_snapshot(
        self, before_round: Optional[int] = None
    ) -> List[PlayerStanding]:
        """Unranked standings of every registered player."""
        return build_standings_from_matches(
            self.matches, list(self.players.values()), before_round=before_round
        )

    def create_next_round(
        self, rng: Optional[random.Random] = None
    ) -> List[MatchRecord]:
        """Pair and persist the next round.

        Args:
            rng: Random source for first round shuffles

        Returns:
            The new match records in pairing order

        Raises:
            TournamentStateException: If the previous round is unfinished, the
                round cap is reached or fewer than two players are active
        """
        current = self.current_round_number
        next_round = current + 1
        if next_round > self.config.num_rounds:
            raise TournamentStateException(
                f"All {self.config.num_rounds} rounds have already been paired"
            )
        if current and not self.is_round_complete(current):
            raise TournamentStateException(f"Round {current} still has unfinished matches")
        active = self.active_players
        if len(active) < 2:
            raise TournamentStateException("At least two active players are required")

        if self.config.tournament_type == TOURNAMENT_SWISS:
            active_ids = {p.id for p in active}
            snapshot = [s for s in self.standings_snapshot() if s.id in active_ids]
            result = generate_swiss_pairings(
                snapshot,
                next_round,
                previous_pairings_from_matches(self.matches),
                rng=rng,
                config=self.pairing_config,
            )
        elif next_round == 1:
            result = generate_round1_pairings(TOURNAMENT_SINGLE_ELIMINATION, active, rng=rng)
        else:
            result = generate_elimination_round(self.get_round(current), next_round)

        static_seats = {p.id: p.static_seat for p in active if p.static_seat is not None}
        assignments = assign_match_numbers(result.pairings, static_seats)
        created_at = datetime.now(timezone.utc)
        records = []
        for assignment in assignments:
            pairing = assignment.pairing
            if pairing.is_bye:
                record = MatchRecord.bye(
                    next_round,
                    assignment.match_number,
                    pairing.player1_id,
                    pairing.player1_name,
                    created_at=created_at,
                )
            else:
                record = MatchRecord(
                    round_number=next_round,
                    match_number=assignment.match_number,
                    player1_id=pairing.player1_id,
                    player1_name=pairing.player1_name,
                    player2_id=pairing.player2_id,
                    player2_name=pairing.player2_name,
                    status=STATUS_READY,
                    created_at=created_at,
                )
            records.append(record)

        if records and result.decision_log is not None:
            records[0].decision_log = result.decision_log
        self.matches.extend(records)
        logger.info("Created round %d with %d matches", next_round, len(records))
        return records

    def _find_match(self, round_number: int, match_number: int) -> MatchRecord:
        for record in self.get_round(round_number):
            if record.match_number == match_number:
                return record
        raise MatchNotFoundException(
            f"Match {match_number} not found in round {round_number}"
        )

    def record_result(
        self,
        round_number: int,
        match_number: int,
        winner_id: Optional[str],
        result: Optional[str] = None,
    ) -> MatchRecord:
        """Record the outcome of a match.

        Args:
            round_number: Round of the match
            match_number: Table number
            winner_id: The winner, None for a draw
            result: Optional game score such as ``"2-1"``

        Returns:
            The updated record
        """
        if round_number != self.current_round_number:
            raise TournamentStateException(
                f"Results can only be changed in the current round ({self.current_round_number})"
            )
        record = self._find_match(round_number, match_number)
        if record.is_bye:
            raise InvalidResultException(f"Match {match_number} is a bye")
        if winner_id is None:
            if self.config.tournament_type == TOURNAMENT_SINGLE_ELIMINATION:
                raise InvalidResultException("Single elimination matches cannot be drawn")
            record.winner_id = None
            record.result = RESULT_DRAW
        elif winner_id in (record.player1_id, record.player2_id):
            record.winner_id = winner_id
            record.result = result
        else:
            raise InvalidResultException(
                f"Player {winner_id} is not seated at match {match_number}"
            )
        record.status = STATUS_COMPLETED
        logger.info(
            "Round %d match %d: %s", round_number, match_number, record.result or winner_id
        )
        return record

    def swap_players(self, round_number: int, player_a: str, player_b: str) -> None:
        """Exchange the seats of two players in a round without results.

        Rematches created this way are allowed but logged.
        """
        if round_number != self.current_round_number:
            raise TournamentStateException("Only the current round can be edited")
        records = self.get_round(round_number)
        if any(r.status == STATUS_COMPLETED for r in records):
            raise TournamentStateException(
                f"Round {round_number} already has results and cannot be edited"
            )
        record_a = self._record_of(records, player_a)
        record_b = self._record_of(records, player_b)
        if record_a is None or record_b is None:
            missing = player_a if record_a is None else player_b
            raise PlayerNotFoundException(
                f"Player {missing} is not paired in round {round_number}"
            )
        if record_a is record_b:
            raise TournamentStateException(
                f"{player_a} and {player_b} already play each other"
            )

        name_a = self.get_player(player_a).name
        name_b = self.get_player(player_b).name
        self._replace_seat(record_a, player_a, player_b, name_b)
        self._replace_seat(record_b, player_b, player_a, name_a)

        history = PairingHistory.from_pairings(
            previous_pairings_from_matches(self.matches, before_round=round_number)
        )
        for record in (record_a, record_b):
            if not record.is_bye and history.have_played(record.player1_id, record.player2_id):
                logger.warning(
                    "Manual edit creates a rematch in round %d: %s vs %s",
                    round_number,
                    record.player1_name,
                    record.player2_name,
                )

    @staticmethod
    def _record_of(records: List[MatchRecord], player_id: str) -> Optional[MatchRecord]:
        return next(
            (r for r in records if player_id in (r.player1_id, r.player2_id)), None
        )

    @staticmethod
    def _replace_seat(
        record: MatchRecord, old_id: str, new_id: str, new_name: str
    ) -> None:
        if record.player1_id == old_id:
            record.player1_id = new_id
            record.player1_name = new_name
            if record.status == STATUS_BYE:
                record.winner_id = new_id
        else:
            record.player2_id = new_id
            record.player2_name = new_name

    # --- standings and validation ---

    def standings(
        self, as_of_round: Optional[int] = None
    ) -> List[PlayerWithTieBreakers]:
        """Ranked standings, dropped players included.

        Args:
            as_of_round: Only count rounds up to and including this one
        """
        before_round = as_of_round + 1 if as_of_round is not None else None
        calculator = TiebreakCalculator(self.pairing_config.tiebreak_tolerance)
        return calculator.sort_by_tiebreakers(self.standings_snapshot(before_round))

    def validate_rounds(self) -> List[ValidationReport]:
        """Check every round against the round criteria."""
        checker = RoundChecker()
        swiss = self.config.tournament_type == TOURNAMENT_SWISS
        reports = []
        for round_number in range(1, self.current_round_number + 1):
            records = self.get_round(round_number)
            seated = {pid for r in records for pid in (r.player1_id, r.player2_id) if pid}
            snapshot = [
                s for s in self.standings_snapshot(before_round=round_number) if s.id in seated
            ]
            previous = previous_pairings_from_matches(self.matches, before_round=round_number)
            pairings = [
                p
                for p in previous_pairings_from_matches(self.matches)
                if p.round_number == round_number
            ]
            reports.append(
                checker.validate_round(
                    pairings,
                    snapshot,
                    round_number,
                    history=PairingHistory.from_pairings(previous),
                    swiss=swiss,
                )
            )
        return reports

    # --- persistence ---

    def to_dict(self) -> Dict[str, Any]:
        """Serialize tournament to dictionary."""
        return {
            "config": self.config.to_dict(),
            "pairing_config": self.pairing_config.to_dict(),
            "players": [p.to_dict() for p in self.players.values()],
            "matches": [m.to_dict() for m in self.matches],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tournament":
        """Deserialize tournament from dictionary."""
        tournament = cls(
            TournamentConfig.from_dict(data["config"]),
            PairingConfig.from_dict(data.get("pairing_config", {})),
        )
        for player_data in data.get("players", []):
            player = RegisteredPlayer.from_dict(player_data)
            tournament.players[player.id] = player
        tournament.matches = [MatchRecord.from_dict(m) for m in data.get("matches", [])]
        return tournament

    def save(self, path: Union[str, Path]) -> None:
        """Write the tournament to a JSON file, adding the extension when missing."""
        path = Path(path)
        if not path.suffix:
            path = path.with_suffix(SAVE_FILE_EXTENSION)
        try:
            path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        except OSError as e:
            raise FileSaveException(f"Could not save tournament to {path}: {e}") from e
        logger.info("Saved tournament to %s", path)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Tournament":
        """Read a tournament from a JSON file."""
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise FileLoadException(f"Could not load tournament from {path}: {e}") from e
        try:
            tournament = cls.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise FileLoadException(f"Malformed tournament file {path}: {e}") from e
        logger.info("Loaded tournament from %s", path)
        return tournament
