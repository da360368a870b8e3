"""Static seating: turn pairings into table numbers."""

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

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set

from tcgpairing.models.pairing import Pairing
from tcgpairing.utils import setup_logger

logger = setup_logger(__name__)


@dataclass
class SeatAssignment:
    """Table number of one pairing.

    Attributes:
        pairing: The pairing seated
        match_number: Its table number
        warning: Set when two statically seated players met
    """

    pairing: Pairing
    match_number: int
    warning: Optional[str] = None


def _static_seat(pairing: Pairing, static_seats: Dict[str, int]) -> Optional[int]:
    seats = [static_seats[pid] for pid in pairing.player_ids if pid in static_seats]
    return min(seats) if seats else None


def assign_match_numbers(
    pairings: Sequence[Pairing], static_seats: Dict[str, int]
) -> List[SeatAssignment]:
    """Number the tables of a round, honouring static seats.

    A pairing with a statically seated player plays at that table; when both
    players are seated the lower table wins and a warning is recorded. A
    table claimed twice goes to the first claim. Every other pairing takes
    the lowest free number in order.

    Args:
        pairings: The round in display order
        static_seats: Player id mapped to a fixed table number

    Returns:
        One assignment per pairing, in input order
    """
    numbers: List[Optional[int]] = [None] * len(pairings)
    warnings: List[Optional[str]] = [None] * len(pairings)
    taken: Set[int] = set()

    for index, pairing in enumerate(pairings):
        seat = _static_seat(pairing, static_seats)
        if seat is None:
            continue
        if not pairing.is_bye and all(
            pid in static_seats for pid in pairing.player_ids
        ):
            warnings[index] = (
                f"{pairing.player1_name} (table {static_seats[pairing.player1_id]}) and "
                f"{pairing.player2_name} (table {static_seats[pairing.player2_id]}) "
                f"both have static seats; using table {seat}"
            )
            logger.warning("Static seat conflict: %s", warnings[index])
        if seat in taken:
            logger.warning(
                "Table %d already taken, %s gets the next free table", seat, pairing.key
            )
            continue
        numbers[index] = seat
        taken.add(seat)

    next_number = 1
    for index in range(len(pairings)):
        if numbers[index] is not None:
            continue
        while next_number in taken:
            next_number += 1
        numbers[index] = next_number
        taken.add(next_number)

    return [
        SeatAssignment(pairing=pairing, match_number=number, warning=warning)
        for pairing, number, warning in zip(pairings, numbers, warnings)
    ]
