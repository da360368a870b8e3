"""Build standings snapshots and pairing history from match records."""

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

from typing import Dict, Iterable, List, Optional, Sequence

from tcgpairing.constants import RESULT_DRAW, STATUS_BYE, STATUS_COMPLETED
from tcgpairing.models.pairing import Pairing
from tcgpairing.models.standing import PlayerStanding, calculate_match_points
from tcgpairing.models.tournament import MatchRecord, RegisteredPlayer
from tcgpairing.utils import setup_logger

logger = setup_logger(__name__)


def _record_order(record: MatchRecord):
    created = record.created_at.timestamp() if record.created_at else float("-inf")
    return (record.round_number, created, record.match_number)


def _before(record: MatchRecord, before_round: Optional[int]) -> bool:
    return before_round is None or record.round_number < before_round


def build_standings_from_matches(
    matches: Iterable[MatchRecord],
    players: Optional[Sequence[RegisteredPlayer]] = None,
    before_round: Optional[int] = None,
) -> List[PlayerStanding]:
    """Replay finished matches into a standings snapshot.

    Args:
        matches: Match records of the event
        players: Registered players, seeded at zero in this order. Players that
            only appear in the matches are appended as they are met.
        before_round: Only replay rounds strictly before this one

    Returns:
        One standing per player, byes counted as wins without an opponent
    """
    standings: Dict[str, PlayerStanding] = {}
    for player in players or []:
        standings[player.id] = PlayerStanding(id=player.id, name=player.name)

    def standing_for(player_id: str, name: Optional[str]) -> PlayerStanding:
        if player_id not in standings:
            standings[player_id] = PlayerStanding(id=player_id, name=name or player_id)
        return standings[player_id]

    for record in sorted(matches, key=_record_order):
        if not _before(record, before_round):
            continue
        player1 = standing_for(record.player1_id, record.player1_name)

        if record.status == STATUS_BYE or (
            record.player2_id is None and record.status == STATUS_COMPLETED
        ):
            player1.wins += 1
            player1.matches_played += 1
            player1.byes_received += 1
            continue
        if record.status != STATUS_COMPLETED or record.player2_id is None:
            continue

        player2 = standing_for(record.player2_id, record.player2_name)
        if record.winner_id is None:
            if record.result != RESULT_DRAW:
                logger.warning(
                    "Completed match %d of round %d has neither winner nor draw, skipped",
                    record.match_number,
                    record.round_number,
                )
                continue
            player1.draws += 1
            player2.draws += 1
        elif record.winner_id == player1.id:
            player1.wins += 1
            player2.losses += 1
        elif record.winner_id == player2.id:
            player2.wins += 1
            player1.losses += 1
        else:
            logger.warning(
                "Winner %s is not seated in match %d of round %d, skipped",
                record.winner_id,
                record.match_number,
                record.round_number,
            )
            continue

        player1.matches_played += 1
        player2.matches_played += 1
        player1.opponents.append(player2.id)
        player2.opponents.append(player1.id)

    for standing in standings.values():
        standing.match_points = calculate_match_points(standing.wins, standing.draws)
    return list(standings.values())


def previous_pairings_from_matches(
    matches: Iterable[MatchRecord], before_round: Optional[int] = None
) -> List[Pairing]:
    """Pairings of earlier rounds, byes included, in the order they were made."""
    return [
        Pairing(
            player1_id=record.player1_id,
            player1_name=record.player1_name,
            player2_id=record.player2_id,
            player2_name=record.player2_name,
            round_number=record.round_number,
        )
        for record in sorted(matches, key=_record_order)
        if _before(record, before_round)
    ]
