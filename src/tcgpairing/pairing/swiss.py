"""Swiss pairing engine.

Round 1 is random apart from the bye. From round 2 on players are grouped in
score brackets that are paired top-down, floating one player to the next
bracket whenever a bracket has an odd size. Rematches are avoided whenever
the bracket search finds a way to, and every round audits itself before it
is returned.
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

import random
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from tcgpairing.config import PairingConfig
from tcgpairing.constants import (
    FNV_OFFSET_BASIS,
    FNV_PRIME,
    STAGE_BOUNDED_SEARCH,
    STAGE_BRACKET,
    STAGE_FIRST_ROUND,
    STAGE_FORCED_REMATCH,
)
from tcgpairing.exceptions import (
    InvalidStandingsException,
    PairingInvariantException,
    SwissConstraintException,
)
from tcgpairing.models.pairing import (
    FloatDetail,
    Pairing,
    PairingDecisionLog,
    PairingHistory,
    PairingResult,
)
from tcgpairing.models.standing import PlayerStanding, calculate_match_points
from tcgpairing.pairing.bracket_matching import (
    BracketMatcher,
    BracketMatching,
    find_improving_swap,
)
from tcgpairing.utils import setup_logger
from tcgpairing.validation.round_checker import RoundChecker

logger = setup_logger(__name__)


@dataclass
class _PoolOutcome:
    """How one bracket pool was paired, kept for the self audit."""

    points: int
    carry_over: Optional[PlayerStanding]
    matching: BracketMatching
    floater_search_truncated: bool = False


def have_played_before(
    player1_id: str, player2_id: str, previous_pairings: Iterable[Pairing]
) -> bool:
    """Check whether two players met in any earlier pairing, in either seat order.

    Byes never count as a meeting.
    """
    for pairing in previous_pairings:
        if pairing.is_bye:
            continue
        if (pairing.player1_id == player1_id and pairing.player2_id == player2_id) or (
            pairing.player1_id == player2_id and pairing.player2_id == player1_id
        ):
            return True
    return False


def fnv1a_32(text: str) -> int:
    """32-bit FNV-1a hash of the UTF-8 bytes of ``text``."""
    value = FNV_OFFSET_BASIS
    for byte in text.encode("utf-8"):
        value ^= byte
        value = (value * FNV_PRIME) & 0xFFFFFFFF
    return value


def bye_seed(round_number: int, player_id: str) -> int:
    """Deterministic per-round tie-break value for bye selection."""
    return fnv1a_32(f"bye:r{round_number}:{player_id}")


def _validate_standings(standings: Sequence[PlayerStanding], round_number: int) -> None:
    if round_number < 1:
        raise InvalidStandingsException(
            f"Round number must be at least 1, got {round_number}"
        )
    seen = set()
    for standing in standings:
        if not standing.id:
            raise InvalidStandingsException("Player id must not be empty")
        if not standing.name:
            raise InvalidStandingsException(f"Player {standing.id} has an empty name")
        if standing.id in seen:
            raise InvalidStandingsException(f"Duplicate player id {standing.id}")
        seen.add(standing.id)
        for attr in ("wins", "losses", "draws", "matches_played", "byes_received"):
            if getattr(standing, attr) < 0:
                raise InvalidStandingsException(
                    f"Player {standing.id} has negative {attr}"
                )
        expected = calculate_match_points(standing.wins, standing.draws)
        if standing.match_points != expected:
            raise InvalidStandingsException(
                f"Player {standing.id} has {standing.match_points} match points, "
                f"expected {expected} from {standing.wins}W/{standing.draws}D"
            )


# --- Bye selection ---


def _select_bye(
    standings: Sequence[PlayerStanding], round_number: int
) -> Tuple[PlayerStanding, str]:
    """Pick the bye recipient and explain which criterion decided it."""
    by_points = ("lowest score", lambda s: s.match_points)
    by_byes = ("fewest byes", lambda s: s.byes_received)
    criteria = [by_byes, by_points] if round_number == 1 else [by_points, by_byes]

    ordered = sorted(
        standings,
        key=lambda s: tuple(f(s) for _, f in criteria)
        + (bye_seed(round_number, s.id),),
    )
    chosen = ordered[0]

    contenders = list(standings)
    parts = []
    for label, value in criteria:
        contenders = [s for s in contenders if value(s) == value(chosen)]
        if label == "lowest score":
            parts.append(f"{label} ({chosen.match_points} pts)")
        else:
            parts.append(f"{label} ({chosen.byes_received})")
        if len(contenders) == 1:
            break
    reason = ", ".join(parts)
    if len(contenders) > 1:
        reason += f", seeded tie-break among {len(contenders)} tied players"
    return chosen, reason


# --- Ordering ---


def _display_order(
    pairings: List[Pairing], points_by_id: Dict[str, int]
) -> List[Pairing]:
    """Top tables first, byes last."""
    real = [p for p in pairings if not p.is_bye]
    byes = [p for p in pairings if p.is_bye]

    def table_key(p: Pairing):
        a, b = points_by_id[p.player1_id], points_by_id[p.player2_id]
        return (-max(a, b), -(a + b), p.key)

    real.sort(key=table_key)
    byes.sort(key=lambda p: (points_by_id[p.player1_id], p.player1_id))
    return real + byes


def _to_pairing(a: PlayerStanding, b: PlayerStanding, round_number: int) -> Pairing:
    return Pairing(
        player1_id=a.id,
        player1_name=a.name,
        player2_id=b.id,
        player2_name=b.name,
        round_number=round_number,
    )


# --- Bracket pairing ---


def _group_brackets(pool: Sequence[PlayerStanding]) -> List[Tuple[int, List[PlayerStanding]]]:
    brackets: Dict[int, List[PlayerStanding]] = {}
    for standing in pool:
        brackets.setdefault(standing.match_points, []).append(standing)
    return [(points, brackets[points]) for points in sorted(brackets, reverse=True)]


def _choose_floater(
    pool: List[PlayerStanding],
    natives: List[PlayerStanding],
    matcher: BracketMatcher,
    candidate_limit: int,
) -> Tuple[PlayerStanding, BracketMatching, bool]:
    """Pick the member floated out of an odd pool.

    Only native members float; a carry-over stays. Candidates go by fewest
    byes, lowest score, then id, and the first one whose absence lets the
    rest pair without rematches wins. Every candidate is tried while the
    remaining pool is small enough for the exhaustive search. Larger pools
    stop after ``candidate_limit`` candidates.

    Returns:
        The floater, the matching of the rest, and whether candidates were
        left untried while every tried one forced a rematch
    """
    candidates = sorted(natives, key=lambda s: (s.byes_received, s.match_points, s.id))
    capped = len(pool) - 1 > matcher.exhaustive_pool_limit
    best: Optional[Tuple[PlayerStanding, BracketMatching]] = None
    for tried, candidate in enumerate(candidates):
        if capped and tried >= candidate_limit:
            logger.info(
                "Floater search stopped after %d of %d candidates",
                tried,
                len(candidates),
            )
            return best[0], best[1], True
        matching = matcher.pair([m for m in pool if m.id != candidate.id])
        if matching.rematches == 0:
            return candidate, matching, False
        if best is None or matching.rematches < best[1].rematches:
            best = (candidate, matching)
    return best[0], best[1], False


def _pair_brackets(
    pool: List[PlayerStanding],
    history: PairingHistory,
    config: PairingConfig,
    log: PairingDecisionLog,
) -> List[_PoolOutcome]:
    matcher = BracketMatcher(
        history,
        exhaustive_pool_limit=config.exhaustive_pool_limit,
        search_budget=config.search_budget,
    )
    brackets = _group_brackets(pool)
    outcomes: List[_PoolOutcome] = []
    carry: Optional[PlayerStanding] = None

    for index, (points, natives) in enumerate(brackets):
        members = ([carry] if carry is not None else []) + natives
        floater = None
        truncated = False
        if len(members) % 2:
            if index == len(brackets) - 1:
                raise PairingInvariantException(
                    f"Lowest bracket ({points} pts) has an odd pool of {len(members)}"
                )
            floater, matching, truncated = _choose_floater(
                members, natives, matcher, config.float_candidate_limit
            )
            if carry is not None:
                reason = (
                    f"odd mixed bracket ({carry.match_points}->{points}), "
                    f"floated from {points} bracket"
                )
            else:
                reason = (
                    f"odd bracket ({points} pts, {len(members)} players), "
                    "one player floats to next bracket"
                )
            log.float_reasons[floater.id] = reason
            log.float_details.append(
                FloatDetail(
                    player_id=floater.id,
                    player_name=floater.name,
                    player_points=floater.match_points,
                    reason=reason,
                )
            )
            logger.debug("Floating %s out of the %d pts bracket", floater.id, points)
        else:
            matching = matcher.pair(members)

        outcomes.append(
            _PoolOutcome(
                points=points,
                carry_over=carry,
                matching=matching,
                floater_search_truncated=truncated,
            )
        )
        carry = floater

    if carry is not None:
        raise PairingInvariantException(
            f"Floater {carry.id} ({carry.match_points} pts) left unpaired"
        )
    return outcomes


def _audit_brackets(
    outcomes: List[_PoolOutcome], pool: Sequence[PlayerStanding], history: PairingHistory
) -> None:
    """Check float span and rematch use of a bracket-paired round.

    Raises:
        SwissConstraintException: On a float over more than one bracket, a
            floater count mismatch or a rematch a partner swap would remove
    """
    bracket_index = {
        points: i for i, (points, _) in enumerate(_group_brackets(pool))
    }
    cross = 0
    for outcome in outcomes:
        for a, b in outcome.matching.pairs:
            step = abs(bracket_index[a.match_points] - bracket_index[b.match_points])
            if step > 1:
                raise SwissConstraintException(
                    f"{a.id} ({a.match_points} pts) paired with {b.id} "
                    f"({b.match_points} pts) across {step} brackets"
                )
            cross += 1 if step else 0
        swap = find_improving_swap(outcome.matching.pairs, history)
        if swap is not None:
            x, y = swap
            raise SwissConstraintException(
                f"Avoidable rematch in the {outcome.points} pts bracket: pairs "
                f"{outcome.matching.pairs[x][0].id}-{outcome.matching.pairs[x][1].id} and "
                f"{outcome.matching.pairs[y][0].id}-{outcome.matching.pairs[y][1].id} "
                "can swap partners"
            )

    floats = sum(1 for outcome in outcomes if outcome.carry_over is not None)
    if cross != floats:
        raise SwissConstraintException(
            f"{cross} cross-bracket pairings for {floats} floated players"
        )


# --- Engine entry point ---


def generate_swiss_pairings(
    standings: Iterable[PlayerStanding],
    round_number: int,
    previous_pairings: Iterable[Pairing],
    rng: Optional[random.Random] = None,
    config: Optional[PairingConfig] = None,
) -> PairingResult:
    """Generate the pairings of one Swiss round.

    Args:
        standings: Current standings of every player to pair
        round_number: Round to pair (1-indexed)
        previous_pairings: Every pairing of the earlier rounds, byes included
        rng: Random source for the first-round shuffle, a fresh
            ``random.Random()`` when omitted
        config: Search limits, defaults when omitted

    Returns:
        Pairings in display order (top tables first, byes last) and the
        decision log

    Raises:
        InvalidStandingsException: If the standings are malformed
        PairingInvariantException: If the produced round fails its audit
    """
    config = config or PairingConfig()
    standings = list(standings)
    previous_pairings = list(previous_pairings)
    _validate_standings(standings, round_number)

    history = PairingHistory.from_pairings(previous_pairings)
    points_by_id = {s.id: s.match_points for s in standings}
    log = PairingDecisionLog(
        stage_used=STAGE_FIRST_ROUND if round_number == 1 else STAGE_BRACKET
    )

    pool = list(standings)
    bye_pairing = None
    if len(pool) % 2:
        recipient, reason = _select_bye(pool, round_number)
        pool = [s for s in pool if s.id != recipient.id]
        bye_pairing = Pairing(
            player1_id=recipient.id,
            player1_name=recipient.name,
            player2_id=None,
            player2_name=None,
            round_number=round_number,
        )
        log.bye_reason = reason
        log.bye_player_id = recipient.id
        log.bye_player_name = recipient.name
        log.bye_player_points = recipient.match_points
        logger.info("Round %d bye: %s (%s)", round_number, recipient.id, reason)

    if round_number == 1:
        rng = rng if rng is not None else random.Random()
        shuffled = list(pool)
        rng.shuffle(shuffled)
        pairs = [(shuffled[i], shuffled[i + 1]) for i in range(0, len(shuffled), 2)]
    else:
        outcomes = _pair_brackets(pool, history, config, log)
        _audit_brackets(outcomes, pool, history)
        pairs = [pair for outcome in outcomes for pair in outcome.matching.pairs]
        if any(
            o.matching.budget_exhausted or o.floater_search_truncated
            for o in outcomes
        ):
            log.stage_used = STAGE_BOUNDED_SEARCH
        elif any(o.matching.rematches for o in outcomes):
            log.stage_used = STAGE_FORCED_REMATCH

    pairings = [_to_pairing(a, b, round_number) for a, b in pairs]
    if bye_pairing is not None:
        pairings.append(bye_pairing)
    pairings = _display_order(pairings, points_by_id)

    log.rematch_count = sum(
        1 for a, b in pairs if history.have_played(a.id, b.id)
    )
    log.max_float_distance = max(
        (abs(a.match_points - b.match_points) for a, b in pairs), default=0
    )

    RoundChecker().assert_round_integrity(pairings, points_by_id, round_number)
    logger.info(
        "Round %d paired: %d pairings, %d float(s), %d rematch(es), stage %d",
        round_number,
        len(pairings),
        len(log.float_reasons),
        log.rematch_count,
        log.stage_used,
    )
    return PairingResult(pairings=pairings, decision_log=log)
