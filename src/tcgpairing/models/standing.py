"""Player standing snapshots used as pairing and ranking input."""

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

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from tcgpairing.constants import DRAW_POINTS, WIN_POINTS


def calculate_match_points(wins: int, draws: int) -> int:
    """Return the match points for a record (3 per win, 1 per draw)."""
    return wins * WIN_POINTS + draws * DRAW_POINTS


@dataclass
class PlayerStanding:
    """A player's record at a point in time.

    Byes count as a win and a match played but add no opponent.

    Attributes:
        id: Unique player id
        name: Display name
        match_points: ``wins * 3 + draws``
        wins: Match wins, byes included
        losses: Match losses
        draws: Drawn matches
        matches_played: Completed matches, byes included
        opponents: Opponent ids, one entry per completed non-bye match
        byes_received: Number of byes so far
    """

    id: str
    name: str
    match_points: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    matches_played: int = 0
    opponents: List[str] = field(default_factory=list)
    byes_received: int = 0

    @classmethod
    def from_record(
        cls,
        player_id: str,
        name: str,
        wins: int = 0,
        losses: int = 0,
        draws: int = 0,
        opponents: Optional[List[str]] = None,
        byes_received: int = 0,
    ) -> "PlayerStanding":
        """Build a standing whose derived fields are consistent with the record."""
        return cls(
            id=player_id,
            name=name,
            match_points=calculate_match_points(wins, draws),
            wins=wins,
            losses=losses,
            draws=draws,
            matches_played=wins + losses + draws,
            opponents=list(opponents or []),
            byes_received=byes_received,
        )

    @property
    def match_win_percentage(self) -> float:
        """Wins over matches played, 0 when nothing has been played."""
        if self.matches_played <= 0:
            return 0.0
        return self.wins / self.matches_played

    def to_dict(self) -> Dict[str, Any]:
        """Serialize standing to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "match_points": self.match_points,
            "wins": self.wins,
            "losses": self.losses,
            "draws": self.draws,
            "matches_played": self.matches_played,
            "opponents": list(self.opponents),
            "byes_received": self.byes_received,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlayerStanding":
        """Deserialize standing from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            match_points=data.get("match_points", 0),
            wins=data.get("wins", 0),
            losses=data.get("losses", 0),
            draws=data.get("draws", 0),
            matches_played=data.get("matches_played", 0),
            opponents=list(data.get("opponents", [])),
            byes_received=data.get("byes_received", 0),
        )


@dataclass
class PlayerWithTieBreakers(PlayerStanding):
    """A standing decorated with its tie-breakers for one ranking pass.

    Attributes:
        opponent_match_win_percentage: Mean match-win rate of the opponents (OMW%)
        opponent_opponent_match_win_percentage: Mean OMW% of the opponents (OOMW%)
    """

    opponent_match_win_percentage: float = 0.0
    opponent_opponent_match_win_percentage: float = 0.0

    @classmethod
    def from_standing(
        cls, standing: PlayerStanding, omw: float, oomw: float
    ) -> "PlayerWithTieBreakers":
        """Copy ``standing`` and attach its tie-breakers."""
        return cls(
            id=standing.id,
            name=standing.name,
            match_points=standing.match_points,
            wins=standing.wins,
            losses=standing.losses,
            draws=standing.draws,
            matches_played=standing.matches_played,
            opponents=list(standing.opponents),
            byes_received=standing.byes_received,
            opponent_match_win_percentage=omw,
            opponent_opponent_match_win_percentage=oomw,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["opponent_match_win_percentage"] = self.opponent_match_win_percentage
        data["opponent_opponent_match_win_percentage"] = (
            self.opponent_opponent_match_win_percentage
        )
        return data
