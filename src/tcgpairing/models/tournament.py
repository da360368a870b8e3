"""Tournament records: configuration, registered players and match records."""

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
from datetime import datetime
from typing import Any, Dict, Optional

from dateutil.parser import isoparse

from tcgpairing.constants import (
    RESULT_BYE,
    MATCH_STATUSES,
    RESULT_DRAW,
    STATUS_BYE,
    STATUS_COMPLETED,
    STATUS_READY,
    TOURNAMENT_SWISS,
)
from tcgpairing.models.pairing import PairingDecisionLog


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, None stays None."""
    if not value:
        return None
    return isoparse(value)


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class TournamentConfig:
    """Configuration settings for a tournament.

    Attributes:
        name: Tournament name
        num_rounds: Number of rounds in the tournament
        tournament_type: ``"swiss"`` or ``"single_elimination"``
        created_at: Creation time
    """

    name: str
    num_rounds: int
    tournament_type: str = TOURNAMENT_SWISS
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize configuration to dictionary."""
        return {
            "name": self.name,
            "num_rounds": self.num_rounds,
            "tournament_type": self.tournament_type,
            "created_at": _format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TournamentConfig":
        """Deserialize configuration from dictionary."""
        return cls(
            name=data.get("name", "Untitled Tournament"),
            num_rounds=data["num_rounds"],
            tournament_type=data.get("tournament_type", TOURNAMENT_SWISS),
            created_at=_parse_timestamp(data.get("created_at")),
        )


@dataclass
class RegisteredPlayer:
    """A player entered in a tournament.

    Attributes:
        id: Unique player id
        name: Display name
        static_seat: Fixed table number, if any
        dropped: Dropped players are no longer paired but still ranked
    """

    id: str
    name: str
    static_seat: Optional[int] = None
    dropped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "static_seat": self.static_seat,
            "dropped": self.dropped,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegisteredPlayer":
        return cls(
            id=data["id"],
            name=data["name"],
            static_seat=data.get("static_seat"),
            dropped=data.get("dropped", False),
        )


@dataclass
class MatchRecord:
    """Persisted form of a pairing plus its outcome.

    Attributes:
        round_number: Round the match belongs to
        match_number: Table number
        player1_id: First seat
        player1_name: Display name of the first seat
        player2_id: Second seat, None for a bye
        player2_name: Display name of the second seat
        winner_id: Winner, None for a draw or an unplayed match
        result: ``"Draw"``, ``"bye"``, a game score such as ``"2-1"`` or None
        status: ``pending``, ``ready``, ``completed`` or ``bye``
        decision_log: Pairing explanation, stored on the first match of a round
        created_at: When the record was written
    """

    round_number: int
    match_number: int
    player1_id: str
    player1_name: str
    player2_id: Optional[str] = None
    player2_name: Optional[str] = None
    winner_id: Optional[str] = None
    result: Optional[str] = None
    status: str = STATUS_READY
    decision_log: Optional[PairingDecisionLog] = None
    created_at: Optional[datetime] = field(default=None, compare=False)

    @property
    def is_bye(self) -> bool:
        return self.player2_id is None

    @property
    def is_draw(self) -> bool:
        return (
            self.status == STATUS_COMPLETED
            and self.winner_id is None
            and self.result == RESULT_DRAW
        )

    @property
    def is_finished(self) -> bool:
        """A bye or a completed match."""
        return self.status in (STATUS_BYE, STATUS_COMPLETED)

    @classmethod
    def bye(
        cls,
        round_number: int,
        match_number: int,
        player_id: str,
        player_name: str,
        created_at: Optional[datetime] = None,
    ) -> "MatchRecord":
        """Create an auto-finalized bye record."""
        return cls(
            round_number=round_number,
            match_number=match_number,
            player1_id=player_id,
            player1_name=player_name,
            winner_id=player_id,
            result=RESULT_BYE,
            status=STATUS_BYE,
            created_at=created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize match record to dictionary."""
        return {
            "round_number": self.round_number,
            "match_number": self.match_number,
            "player1_id": self.player1_id,
            "player1_name": self.player1_name,
            "player2_id": self.player2_id,
            "player2_name": self.player2_name,
            "winner_id": self.winner_id,
            "result": self.result,
            "status": self.status,
            "decision_log": (
                self.decision_log.to_dict() if self.decision_log is not None else None
            ),
            "created_at": _format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatchRecord":
        """Deserialize match record from dictionary."""
        log_data = data.get("decision_log")
        status = data.get("status", STATUS_READY)
        if status not in MATCH_STATUSES:
            raise ValueError(f"Unknown match status: {status}")
        return cls(
            round_number=data["round_number"],
            match_number=data["match_number"],
            player1_id=data["player1_id"],
            player1_name=data["player1_name"],
            player2_id=data.get("player2_id"),
            player2_name=data.get("player2_name"),
            winner_id=data.get("winner_id"),
            result=data.get("result"),
            status=status,
            decision_log=(
                PairingDecisionLog.from_dict(log_data) if log_data else None
            ),
            created_at=_parse_timestamp(data.get("created_at")),
        )
