"""Round helpers shared by both tournament types, and single elimination pairing."""

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

import math
import random
from typing import List, Optional, Sequence, Tuple

from tcgpairing.constants import (
    SWISS_MAX_SUGGESTED_ROUNDS,
    SWISS_ROUND_THRESHOLDS,
    TOURNAMENT_SINGLE_ELIMINATION,
    TOURNAMENT_SWISS,
)
from tcgpairing.exceptions import InvalidConfigurationException, TournamentStateException
from tcgpairing.models.pairing import Pairing, PairingResult
from tcgpairing.models.standing import PlayerStanding
from tcgpairing.models.tournament import MatchRecord, RegisteredPlayer
from tcgpairing.pairing.swiss import generate_swiss_pairings
from tcgpairing.utils import setup_logger

logger = setup_logger(__name__)


def calculate_suggested_rounds(player_count: int, tournament_type: str) -> int:
    """Suggest how many rounds an event of this size should run.

    Args:
        player_count: Number of registered players
        tournament_type: ``"swiss"`` or ``"single_elimination"``

    Returns:
        Suggested round count, 0 for fewer than two players
    """
    if player_count < 2:
        return 0
    if tournament_type == TOURNAMENT_SINGLE_ELIMINATION:
        return math.ceil(math.log2(player_count))
    if tournament_type != TOURNAMENT_SWISS:
        raise InvalidConfigurationException(f"Unknown tournament type: {tournament_type}")
    for max_players, rounds in SWISS_ROUND_THRESHOLDS:
        if player_count <= max_players:
            return rounds
    return SWISS_MAX_SUGGESTED_ROUNDS


def _pair_in_order(
    seats: Sequence[Tuple[str, str]], round_number: int
) -> List[Pairing]:
    """Pair consecutive seats; an odd seat out gets a bye."""
    pairings = []
    for i in range(0, len(seats) - 1, 2):
        (id1, name1), (id2, name2) = seats[i], seats[i + 1]
        pairings.append(
            Pairing(
                player1_id=id1,
                player1_name=name1,
                player2_id=id2,
                player2_name=name2,
                round_number=round_number,
            )
        )
    if len(seats) % 2:
        bye_id, bye_name = seats[-1]
        pairings.append(
            Pairing(
                player1_id=bye_id,
                player1_name=bye_name,
                player2_id=None,
                player2_name=None,
                round_number=round_number,
            )
        )
    return pairings


def generate_round1_pairings(
    tournament_type: str,
    players: Sequence[RegisteredPlayer],
    rng: Optional[random.Random] = None,
) -> PairingResult:
    """Pair the first round of a fresh event.

    Swiss events go through the Swiss engine with empty records. Single
    elimination events shuffle the field and pair it in order.
    """
    if tournament_type == TOURNAMENT_SWISS:
        standings = [PlayerStanding(id=p.id, name=p.name) for p in players]
        return generate_swiss_pairings(standings, 1, [], rng=rng)
    if tournament_type != TOURNAMENT_SINGLE_ELIMINATION:
        raise InvalidConfigurationException(f"Unknown tournament type: {tournament_type}")

    rng = rng if rng is not None else random.Random()
    seats = [(p.id, p.name) for p in players]
    rng.shuffle(seats)
    pairings = _pair_in_order(seats, 1)
    logger.info("Single elimination round 1: %d pairings", len(pairings))
    return PairingResult(pairings=pairings)


def generate_elimination_round(
    previous_round: Sequence[MatchRecord], round_number: int
) -> PairingResult:
    """Advance the winners of the previous elimination round.

    The winner of table 1 meets the winner of table 2 and so on. An odd
    winner out receives a bye.

    Raises:
        TournamentStateException: If a previous match has no winner yet
    """
    winners = []
    for record in sorted(previous_round, key=lambda r: r.match_number):
        if not record.is_finished or record.winner_id is None:
            raise TournamentStateException(
                f"Match {record.match_number} of round {record.round_number} has no winner"
            )
        name = (
            record.player1_name
            if record.winner_id == record.player1_id
            else record.player2_name
        )
        winners.append((record.winner_id, name))

    if len(winners) < 2:
        raise TournamentStateException("Single elimination is already decided")
    pairings = _pair_in_order(winners, round_number)
    logger.info(
        "Single elimination round %d: %d pairings", round_number, len(pairings)
    )
    return PairingResult(pairings=pairings)
