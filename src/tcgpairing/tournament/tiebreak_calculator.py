"""Tie-break calculation for tournament standings.

Players are ranked by match points, then Opponent Match Win percentage
(OMW%), then Opponent's Opponent Match Win percentage (OOMW%). Values
closer than the tolerance compare equal and remaining ties keep their input
order.

Head-to-head is a known further tier used by some organizers. It is not
applied here.
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

from functools import cmp_to_key
from typing import Dict, Iterable, List, Optional

from tcgpairing.constants import TIEBREAK_TOLERANCE
from tcgpairing.models.standing import PlayerStanding, PlayerWithTieBreakers
from tcgpairing.utils import setup_logger

logger = setup_logger(__name__)


def _compare_with_tolerance(a: float, b: float, tolerance: float) -> int:
    """Descending comparison that treats values within ``tolerance`` as equal."""
    if abs(a - b) <= tolerance:
        return 0
    return -1 if a > b else 1


class TiebreakCalculator:
    """Calculates OMW% and OOMW% and sorts standings by them.

    Every call recomputes from the standings it is given; nothing is cached
    between calls.
    """

    def __init__(self, tolerance: float = TIEBREAK_TOLERANCE):
        self.tolerance = tolerance

    def opponent_match_win_percentage(
        self, standing: PlayerStanding, standings_by_id: Dict[str, PlayerStanding]
    ) -> float:
        """Mean match-win rate of a player's opponents.

        Unknown opponents and opponents without completed matches are skipped.

        Args:
            standing: The player to evaluate
            standings_by_id: Every standing of the snapshot, keyed by id

        Returns:
            OMW% as a fraction in [0, 1], 0 when no opponent counts
        """
        rates = []
        for opponent_id in standing.opponents:
            opponent = standings_by_id.get(opponent_id)
            if opponent is None or opponent.matches_played <= 0:
                continue
            rates.append(opponent.match_win_percentage)
        if not rates:
            return 0.0
        return sum(rates) / len(rates)

    def opponent_opponent_match_win_percentage(
        self,
        standing: PlayerStanding,
        standings_by_id: Dict[str, PlayerStanding],
        omw_cache: Optional[Dict[str, float]] = None,
    ) -> float:
        """Mean OMW% of a player's opponents, with the same skipping rules as OMW%."""
        values = []
        for opponent_id in standing.opponents:
            opponent = standings_by_id.get(opponent_id)
            if opponent is None or opponent.matches_played <= 0:
                continue
            if omw_cache is not None and opponent_id in omw_cache:
                values.append(omw_cache[opponent_id])
            else:
                values.append(
                    self.opponent_match_win_percentage(opponent, standings_by_id)
                )
        if not values:
            return 0.0
        return sum(values) / len(values)

    def add_tiebreakers(
        self, standings: Iterable[PlayerStanding]
    ) -> List[PlayerWithTieBreakers]:
        """Decorate every standing with its OMW% and OOMW%, keeping input order."""
        standings = list(standings)
        standings_by_id = {s.id: s for s in standings}
        omw_cache = {
            s.id: self.opponent_match_win_percentage(s, standings_by_id)
            for s in standings
        }
        return [
            PlayerWithTieBreakers.from_standing(
                s,
                omw_cache[s.id],
                self.opponent_opponent_match_win_percentage(
                    s, standings_by_id, omw_cache
                ),
            )
            for s in standings
        ]

    def compare(self, a: PlayerWithTieBreakers, b: PlayerWithTieBreakers) -> int:
        """Order two players: negative when ``a`` ranks above ``b``."""
        if a.match_points != b.match_points:
            return -1 if a.match_points > b.match_points else 1
        result = _compare_with_tolerance(
            a.opponent_match_win_percentage,
            b.opponent_match_win_percentage,
            self.tolerance,
        )
        if result:
            return result
        return _compare_with_tolerance(
            a.opponent_opponent_match_win_percentage,
            b.opponent_opponent_match_win_percentage,
            self.tolerance,
        )

    def sort_by_tiebreakers(
        self, standings: Iterable[PlayerStanding]
    ) -> List[PlayerWithTieBreakers]:
        """Rank standings by match points, OMW% and OOMW%.

        The sort is stable: players tied on every tier keep their input order.
        """
        decorated = self.add_tiebreakers(standings)
        ranked = sorted(decorated, key=cmp_to_key(self.compare))
        logger.debug("Ranked %d players by tie-breakers", len(ranked))
        return ranked


def sort_by_tiebreakers(
    standings: Iterable[PlayerStanding], tolerance: float = TIEBREAK_TOLERANCE
) -> List[PlayerWithTieBreakers]:
    """Rank standings with a default :class:`TiebreakCalculator`."""
    return TiebreakCalculator(tolerance).sort_by_tiebreakers(standings)
