"""Round checker: audits the pairings of a single round.

Absolute criteria (R1 to R5) must never be violated. Quality criteria (Q1, Q2)
describe how good a legal round is and are reported, not enforced.

R1  Every player is paired exactly once and the round has ceil(n / 2) pairings
R2  One bye for an odd field, none for an even field
R3  Nobody is paired against themselves
R4  No pair of players appears twice in the round
R5  The bye went to the player with the highest bye priority
Q1  Rematches against the pairing history
Q2  Point gap between opponents, and floats spanning more than one bracket
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

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from tcgpairing.exceptions import PairingInvariantException
from tcgpairing.models.pairing import Pairing, PairingHistory
from tcgpairing.models.standing import PlayerStanding
from tcgpairing.utils import setup_logger

logger = setup_logger(__name__)


class CriterionStatus(Enum):
    """Status of criterion validation."""

    COMPLIANT = "COMPLIANT"
    VIOLATION = "VIOLATION"
    NOT_APPLICABLE = "NOT_APPLICABLE"


class ViolationType(Enum):
    """Types of criterion violations."""

    ABSOLUTE = "ABSOLUTE"  # R1-R5: Must not violate
    QUALITY = "QUALITY"  # Q1-Q2: Should minimize


@dataclass
class CriterionResult:
    """Result of validating a single criterion."""

    criterion: str
    status: CriterionStatus
    violation_type: Optional[ViolationType] = None
    description: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_violation(self) -> bool:
        return self.status == CriterionStatus.VIOLATION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "criterion": self.criterion,
            "status": self.status.value,
            "violation_type": (
                self.violation_type.value if self.violation_type else None
            ),
            "description": self.description,
            "details": self.details,
        }


@dataclass
class ValidationReport:
    """Validation report for one round."""

    round_number: int
    criteria_results: List[CriterionResult] = field(default_factory=list)

    @property
    def violations(self) -> List[CriterionResult]:
        """Absolute criteria that failed."""
        return [
            r
            for r in self.criteria_results
            if r.is_violation and r.violation_type == ViolationType.ABSOLUTE
        ]

    @property
    def quality_warnings(self) -> List[CriterionResult]:
        return [
            r
            for r in self.criteria_results
            if r.is_violation and r.violation_type == ViolationType.QUALITY
        ]

    @property
    def overall_status(self) -> CriterionStatus:
        return CriterionStatus.VIOLATION if self.violations else CriterionStatus.COMPLIANT

    @property
    def is_valid(self) -> bool:
        return not self.violations

    @property
    def compliance_percentage(self) -> float:
        """Share of applicable criteria that passed."""
        applicable = [
            r
            for r in self.criteria_results
            if r.status != CriterionStatus.NOT_APPLICABLE
        ]
        if not applicable:
            return 100.0
        compliant = sum(1 for r in applicable if r.status == CriterionStatus.COMPLIANT)
        return (compliant / len(applicable)) * 100.0

    @property
    def summary(self) -> str:
        if self.is_valid:
            return (
                f"Round {self.round_number}: absolute criteria satisfied; "
                f"{len(self.quality_warnings)} quality criteria flagged"
            )
        failed = ", ".join(r.criterion for r in self.violations)
        return (
            f"Round {self.round_number}: absolute violations detected ({failed}); "
            f"{len(self.quality_warnings)} quality warnings"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round_number": self.round_number,
            "overall_status": self.overall_status.value,
            "compliance_percentage": self.compliance_percentage,
            "summary": self.summary,
            "absolute_violations": [r.criterion for r in self.violations],
            "warnings": [r.criterion for r in self.quality_warnings],
            "criteria": [r.to_dict() for r in self.criteria_results],
        }


def _compliant(criterion: str, description: str, **details: Any) -> CriterionResult:
    return CriterionResult(
        criterion=criterion,
        status=CriterionStatus.COMPLIANT,
        description=description,
        details=details,
    )


def _violation(
    criterion: str, violation_type: ViolationType, description: str, **details: Any
) -> CriterionResult:
    return CriterionResult(
        criterion=criterion,
        status=CriterionStatus.VIOLATION,
        violation_type=violation_type,
        description=description,
        details=details,
    )


def _not_applicable(criterion: str, description: str) -> CriterionResult:
    return CriterionResult(
        criterion=criterion,
        status=CriterionStatus.NOT_APPLICABLE,
        description=description,
    )


class RoundChecker:
    """Checks one round of pairings against the absolute and quality criteria."""

    def check_r1_coverage(
        self, pairings: Sequence[Pairing], player_ids: Iterable[str]
    ) -> CriterionResult:
        """R1: every player is seated exactly once, ceil(n / 2) pairings."""
        expected = set(player_ids)
        expected_count = (len(expected) + 1) // 2
        seen = Counter(pid for p in pairings for pid in p.player_ids)
        missing = sorted(expected - set(seen))
        unknown = sorted(set(seen) - expected)
        repeated = sorted(pid for pid, count in seen.items() if count > 1)
        if len(pairings) != expected_count or missing or unknown or repeated:
            return _violation(
                "R1",
                ViolationType.ABSOLUTE,
                f"Expected {expected_count} pairings covering {len(expected)} players, "
                f"got {len(pairings)}",
                missing=missing,
                unknown=unknown,
                repeated=repeated,
            )
        return _compliant("R1", "Every player paired exactly once")

    def check_r2_bye_count(
        self, pairings: Sequence[Pairing], player_ids: Iterable[str]
    ) -> CriterionResult:
        """R2: one bye for an odd field, none otherwise."""
        expected = len(set(player_ids)) % 2
        byes = [p.player1_id for p in pairings if p.is_bye]
        if len(byes) != expected:
            return _violation(
                "R2",
                ViolationType.ABSOLUTE,
                f"Expected {expected} bye(s), found {len(byes)}",
                byes=byes,
            )
        return _compliant("R2", f"{expected} bye(s) as required")

    def check_r3_no_self_pairing(self, pairings: Sequence[Pairing]) -> CriterionResult:
        """R3: nobody plays themselves."""
        offenders = [p.player1_id for p in pairings if p.player1_id == p.player2_id]
        if offenders:
            return _violation(
                "R3",
                ViolationType.ABSOLUTE,
                f"Players paired against themselves: {', '.join(offenders)}",
                players=offenders,
            )
        return _compliant("R3", "No self pairings")

    def check_r4_no_duplicates(self, pairings: Sequence[Pairing]) -> CriterionResult:
        """R4: no unordered pair occurs twice in the round."""
        keys = Counter(
            "-".join(sorted(p.player_ids)) for p in pairings if not p.is_bye
        )
        duplicates = sorted(key for key, count in keys.items() if count > 1)
        if duplicates:
            return _violation(
                "R4",
                ViolationType.ABSOLUTE,
                f"Duplicate pairings: {', '.join(duplicates)}",
                pairs=duplicates,
            )
        return _compliant("R4", "No duplicate pairings")

    def check_r5_bye_priority(
        self,
        pairings: Sequence[Pairing],
        standings: Sequence[PlayerStanding],
        round_number: int,
    ) -> CriterionResult:
        """R5: the bye went to a player with the best bye priority.

        From round 2 on that is the lowest score, then the fewest byes. In
        round 1 byes received decide first and score second.
        """
        byes = [p for p in pairings if p.is_bye]
        if len(byes) != 1 or not standings:
            return _not_applicable("R5", "No single bye to check")
        by_id = {s.id: s for s in standings}
        recipient = by_id.get(byes[0].player1_id)
        if recipient is None:
            return _violation(
                "R5",
                ViolationType.ABSOLUTE,
                f"Bye recipient {byes[0].player1_id} is not in the standings",
            )

        if round_number == 1:

            def priority(s: PlayerStanding):
                return (s.byes_received, s.match_points)

        else:

            def priority(s: PlayerStanding):
                return (s.match_points, s.byes_received)

        best = min(priority(s) for s in standings)
        if priority(recipient) != best:
            return _violation(
                "R5",
                ViolationType.ABSOLUTE,
                f"Bye given to {recipient.name} ({recipient.match_points} pts, "
                f"{recipient.byes_received} byes) although a higher priority "
                "player was available",
                player=recipient.id,
            )
        return _compliant("R5", f"Bye given to {recipient.name}", player=recipient.id)

    def check_q1_rematches(
        self, pairings: Sequence[Pairing], history: PairingHistory
    ) -> CriterionResult:
        """Q1: pairings that repeat an earlier meeting."""
        rematches = [
            p.key
            for p in pairings
            if not p.is_bye and history.have_played(p.player1_id, p.player2_id)
        ]
        if rematches:
            return _violation(
                "Q1",
                ViolationType.QUALITY,
                f"{len(rematches)} rematch(es): {', '.join(rematches)}",
                pairs=rematches,
            )
        return _compliant("Q1", "No rematches")

    def check_q2_float_distance(
        self, pairings: Sequence[Pairing], standings: Sequence[PlayerStanding]
    ) -> CriterionResult:
        """Q2: opponents from different brackets, at most one bracket apart."""
        points = {s.id: s.match_points for s in standings}
        real = [p for p in pairings if not p.is_bye]
        if not real or any(pid not in points for p in real for pid in p.player_ids):
            return _not_applicable("Q2", "Standings unavailable for float check")

        brackets = sorted(
            {points[pid] for p in real for pid in p.player_ids}, reverse=True
        )
        index = {pts: i for i, pts in enumerate(brackets)}
        max_distance = 0
        wide = []
        for p in real:
            a, b = points[p.player1_id], points[p.player2_id]
            max_distance = max(max_distance, abs(a - b))
            if abs(index[a] - index[b]) > 1:
                wide.append(p.key)
        if wide:
            return _violation(
                "Q2",
                ViolationType.QUALITY,
                f"Floats spanning more than one bracket: {', '.join(wide)}",
                pairs=wide,
                max_float_distance=max_distance,
            )
        return _compliant(
            "Q2",
            f"Max float distance {max_distance} pts",
            max_float_distance=max_distance,
        )

    def validate_round(
        self,
        pairings: Sequence[Pairing],
        standings: Sequence[PlayerStanding],
        round_number: int,
        history: Optional[PairingHistory] = None,
        swiss: bool = True,
    ) -> ValidationReport:
        """Run every applicable criterion on a round.

        Args:
            pairings: The round to check
            standings: Snapshot taken before the round was paired
            round_number: The round number (1-indexed)
            history: Meetings before this round
            swiss: Bye priority and float checks only apply to Swiss rounds

        Returns:
            The validation report
        """
        player_ids = [s.id for s in standings]
        results = [
            self.check_r1_coverage(pairings, player_ids),
            self.check_r2_bye_count(pairings, player_ids),
            self.check_r3_no_self_pairing(pairings),
            self.check_r4_no_duplicates(pairings),
        ]
        if swiss:
            results.append(self.check_r5_bye_priority(pairings, standings, round_number))
            results.append(self.check_q1_rematches(pairings, history or PairingHistory()))
            results.append(self.check_q2_float_distance(pairings, standings))

        report = ValidationReport(round_number=round_number, criteria_results=results)
        logger.info("Round validation complete: %s", report.summary)
        return report

    def assert_round_integrity(
        self, pairings: Sequence[Pairing], player_ids: Iterable[str], round_number: int
    ) -> None:
        """Raise when a round breaks R1 to R4.

        Raises:
            PairingInvariantException: Listing every failed criterion
        """
        player_ids = list(player_ids)
        results = [
            self.check_r1_coverage(pairings, player_ids),
            self.check_r2_bye_count(pairings, player_ids),
            self.check_r3_no_self_pairing(pairings),
            self.check_r4_no_duplicates(pairings),
        ]
        failed = [r for r in results if r.is_violation]
        if failed:
            details = "; ".join(f"{r.criterion}: {r.description}" for r in failed)
            logger.error("Round %d failed integrity check: %s", round_number, details)
            raise PairingInvariantException(
                f"Round {round_number} failed integrity check: {details}"
            )
