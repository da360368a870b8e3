"""Pairing output models: pairings, decision log and pairing history."""

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
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set

from tcgpairing.constants import STAGE_BRACKET


@dataclass
class Pairing:
    """One table of a round, or a bye when ``player2_id`` is None.

    Attributes:
        player1_id: First seat
        player1_name: Display name of the first seat
        player2_id: Second seat, None for a bye
        player2_name: Display name of the second seat, None for a bye
        round_number: Round this pairing belongs to (1-indexed)
    """

    player1_id: str
    player1_name: str
    player2_id: Optional[str]
    player2_name: Optional[str]
    round_number: int

    @property
    def is_bye(self) -> bool:
        return self.player2_id is None

    @property
    def player_ids(self) -> List[str]:
        """Ids seated at this pairing."""
        if self.player2_id is None:
            return [self.player1_id]
        return [self.player1_id, self.player2_id]

    @property
    def key(self) -> str:
        """The ``"player1-player2"`` key used for deterministic ordering."""
        return f"{self.player1_id}-{self.player2_id or 'BYE'}"

    def involves(self, player_id: str) -> bool:
        return player_id == self.player1_id or player_id == self.player2_id

    def opponent_of(self, player_id: str) -> Optional[str]:
        """Return the other seat, None for a bye."""
        if player_id == self.player1_id:
            return self.player2_id
        if player_id == self.player2_id:
            return self.player1_id
        raise ValueError(f"Player {player_id} is not part of pairing {self.key}")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize pairing to dictionary."""
        return {
            "player1_id": self.player1_id,
            "player1_name": self.player1_name,
            "player2_id": self.player2_id,
            "player2_name": self.player2_name,
            "round_number": self.round_number,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Pairing":
        """Deserialize pairing from dictionary."""
        return cls(
            player1_id=data["player1_id"],
            player1_name=data["player1_name"],
            player2_id=data.get("player2_id"),
            player2_name=data.get("player2_name"),
            round_number=data["round_number"],
        )


@dataclass
class FloatDetail:
    """A floated player, in list form for display."""

    player_id: str
    player_name: str
    player_points: int
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_id": self.player_id,
            "player_name": self.player_name,
            "player_points": self.player_points,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FloatDetail":
        return cls(
            player_id=data["player_id"],
            player_name=data["player_name"],
            player_points=data["player_points"],
            reason=data["reason"],
        )


@dataclass
class PairingDecisionLog:
    """Explains how a round was paired.

    Purely diagnostic: nothing in the pairing algorithm reads it back.

    Attributes:
        bye_reason: Why the bye recipient was chosen, None without a bye
        bye_player_id: Bye recipient id
        bye_player_name: Bye recipient name
        bye_player_points: Bye recipient match points when paired
        float_reasons: Floated player id mapped to a free-text reason
        max_float_distance: Largest point gap between paired opponents
        rematch_count: Number of pairings that repeat an earlier meeting
        stage_used: Which pairing stage produced the round (see constants)
        float_details: ``float_reasons`` in list form, with names and points
    """

    bye_reason: Optional[str] = None
    bye_player_id: Optional[str] = None
    bye_player_name: Optional[str] = None
    bye_player_points: Optional[int] = None
    float_reasons: Dict[str, str] = field(default_factory=dict)
    max_float_distance: int = 0
    rematch_count: int = 0
    stage_used: int = STAGE_BRACKET
    float_details: List[FloatDetail] = field(default_factory=list)

    @property
    def rematch_occurred(self) -> bool:
        return self.rematch_count > 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize decision log to dictionary."""
        return {
            "bye_reason": self.bye_reason,
            "bye_player_id": self.bye_player_id,
            "bye_player_name": self.bye_player_name,
            "bye_player_points": self.bye_player_points,
            "float_reasons": dict(self.float_reasons),
            "max_float_distance": self.max_float_distance,
            "rematch_count": self.rematch_count,
            "stage_used": self.stage_used,
            "float_details": [d.to_dict() for d in self.float_details],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PairingDecisionLog":
        """Deserialize decision log from dictionary."""
        return cls(
            bye_reason=data.get("bye_reason"),
            bye_player_id=data.get("bye_player_id"),
            bye_player_name=data.get("bye_player_name"),
            bye_player_points=data.get("bye_player_points"),
            float_reasons=dict(data.get("float_reasons", {})),
            max_float_distance=data.get("max_float_distance", 0),
            rematch_count=data.get("rematch_count", 0),
            stage_used=data.get("stage_used", STAGE_BRACKET),
            float_details=[
                FloatDetail.from_dict(d) for d in data.get("float_details", [])
            ],
        )


@dataclass
class PairingResult:
    """Pairings for one round plus the optional decision log."""

    pairings: List[Pairing] = field(default_factory=list)
    decision_log: Optional[PairingDecisionLog] = None

    @property
    def bye(self) -> Optional[Pairing]:
        for pairing in self.pairings:
            if pairing.is_bye:
                return pairing
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pairings": [p.to_dict() for p in self.pairings],
            "decision_log": (
                self.decision_log.to_dict() if self.decision_log is not None else None
            ),
        }


class PairingHistory:
    """Tracks which pairs of players have already met.

    Byes are not meetings and are ignored.
    """

    def __init__(self):
        self._pairs: Set[FrozenSet[str]] = set()

    @classmethod
    def from_pairings(cls, pairings: Iterable[Pairing]) -> "PairingHistory":
        history = cls()
        for pairing in pairings:
            if not pairing.is_bye:
                history.add_pairing(pairing.player1_id, pairing.player2_id)
        return history

    def add_pairing(self, player1_id: str, player2_id: str) -> None:
        """Record that two players have met."""
        self._pairs.add(frozenset((player1_id, player2_id)))

    def have_played(self, player1_id: str, player2_id: str) -> bool:
        """Check if two players have met before."""
        return frozenset((player1_id, player2_id)) in self._pairs

    def __len__(self) -> int:
        return len(self._pairs)
