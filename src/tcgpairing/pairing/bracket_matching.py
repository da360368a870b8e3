"""Pairing inside a single score-bracket pool.

Members are ranked by pairing priority and each unpaired member, in rank
order, takes the best remaining opponent by tier:

1. same score, never met
2. same score, rematch
3. different score, never met
4. different score, rematch

That greedy scan is the first path of a backtracking search. Small pools are
searched exhaustively (memoised branch and bound) for the first matching in
scan order with the fewest rematches. Large pools get a budgeted depth-first
search for a rematch-free matching and fall back to the greedy scan improved
by pairwise partner swaps.
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

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from tcgpairing.constants import EXHAUSTIVE_POOL_LIMIT, SEARCH_BUDGET
from tcgpairing.exceptions import PairingInvariantException
from tcgpairing.models.pairing import PairingHistory
from tcgpairing.models.standing import PlayerStanding
from tcgpairing.utils import setup_logger

logger = setup_logger(__name__)

IndexPairs = List[Tuple[int, int]]


def pairing_priority_key(standing: PlayerStanding) -> Tuple[int, int, str]:
    """Rank key inside a pool: most points, fewest byes, then id."""
    return (-standing.match_points, standing.byes_received, standing.id)


@dataclass
class BracketMatching:
    """Outcome of pairing one pool.

    Attributes:
        pairs: (higher ranked, lower ranked) member pairs
        rematches: Pairs that already met before
        exhaustive: The rematch count is proven to be the minimum
        budget_exhausted: A large pool hit the search budget before finding a
            rematch-free matching or proving there is none
    """

    pairs: List[Tuple[PlayerStanding, PlayerStanding]]
    rematches: int
    exhaustive: bool = True
    budget_exhausted: bool = False


def count_rematches(
    pairs: Sequence[Tuple[PlayerStanding, PlayerStanding]], history: PairingHistory
) -> int:
    return sum(1 for a, b in pairs if history.have_played(a.id, b.id))


def find_improving_swap(
    pairs: Sequence[Tuple[PlayerStanding, PlayerStanding]], history: PairingHistory
) -> Optional[Tuple[int, int]]:
    """Find two pairs that could swap partners and lose a rematch.

    Returns:
        Indexes of the two pairs, or None when no swap reduces rematches
    """

    def cost(a: PlayerStanding, b: PlayerStanding) -> int:
        return 1 if history.have_played(a.id, b.id) else 0

    for x in range(len(pairs)):
        a, b = pairs[x]
        for y in range(x + 1, len(pairs)):
            c, d = pairs[y]
            current = cost(a, b) + cost(c, d)
            if current == 0:
                continue
            if cost(a, c) + cost(b, d) < current or cost(a, d) + cost(b, c) < current:
                return x, y
    return None


class BracketMatcher:
    """Pairs the members of one bracket pool with as few rematches as it can find."""

    def __init__(
        self,
        history: PairingHistory,
        exhaustive_pool_limit: int = EXHAUSTIVE_POOL_LIMIT,
        search_budget: int = SEARCH_BUDGET,
    ):
        self.history = history
        self.exhaustive_pool_limit = exhaustive_pool_limit
        self.search_budget = search_budget

    def pair(self, members: Sequence[PlayerStanding]) -> BracketMatching:
        """Pair every member of an even-sized pool.

        Args:
            members: Pool members, in any order

        Returns:
            The matching with its rematch count

        Raises:
            PairingInvariantException: If the pool has an odd size
        """
        if len(members) % 2:
            raise PairingInvariantException(
                f"Cannot pair an odd pool of {len(members)} players"
            )
        ranked = sorted(members, key=pairing_priority_key)
        if not ranked:
            return BracketMatching(pairs=[], rematches=0)

        fresh = [
            [
                i != j and not self.history.have_played(a.id, b.id)
                for j, b in enumerate(ranked)
            ]
            for i, a in enumerate(ranked)
        ]

        budget_exhausted = False
        if len(ranked) <= self.exhaustive_pool_limit:
            rematches, index_pairs = self._minimum_rematch_search(ranked, fresh)
            exhaustive = True
        else:
            index_pairs, budget_exhausted = self._rematch_free_search(ranked, fresh)
            if index_pairs is not None:
                rematches, exhaustive = 0, True
            else:
                index_pairs = self._swap_repair(fresh, self._greedy(ranked, fresh))
                rematches = count_rematches(
                    [(ranked[i], ranked[j]) for i, j in index_pairs], self.history
                )
                exhaustive = False
                logger.warning(
                    "Pool of %d players paired by greedy scan with %d rematch(es)%s",
                    len(ranked),
                    rematches,
                    " after exhausting the search budget" if budget_exhausted else "",
                )

        pairs = [(ranked[i], ranked[j]) for i, j in index_pairs]
        logger.debug(
            "Paired pool of %d players with %d rematch(es)", len(ranked), rematches
        )
        return BracketMatching(
            pairs=pairs,
            rematches=rematches,
            exhaustive=exhaustive,
            budget_exhausted=budget_exhausted,
        )

    # --- candidate ordering ---

    @staticmethod
    def _candidate_order(
        ranked: Sequence[PlayerStanding],
        fresh: List[List[bool]],
        first: int,
        others: Sequence[int],
    ) -> List[int]:
        """Order possible opponents of ``first`` by tier, then rank."""
        points = ranked[first].match_points

        def tier(j: int) -> Tuple[int, int]:
            base = 0 if ranked[j].match_points == points else 2
            return (base + (0 if fresh[first][j] else 1), j)

        return sorted(others, key=tier)

    # --- small pools ---

    def _minimum_rematch_search(
        self, ranked: Sequence[PlayerStanding], fresh: List[List[bool]]
    ) -> Tuple[int, IndexPairs]:
        memo: Dict[Tuple[int, ...], Tuple[int, Tuple[Tuple[int, int], ...]]] = {}

        def lower_bound(remaining: Tuple[int, ...]) -> int:
            # every member without a fresh partner left sits in a rematch pair
            isolated = sum(
                1 for i in remaining if not any(fresh[i][j] for j in remaining)
            )
            return (isolated + 1) // 2

        def solve(remaining: Tuple[int, ...]) -> Tuple[int, Tuple[Tuple[int, int], ...]]:
            if not remaining:
                return 0, ()
            cached = memo.get(remaining)
            if cached is not None:
                return cached

            bound = lower_bound(remaining)
            first, rest = remaining[0], remaining[1:]
            best: Optional[Tuple[int, Tuple[Tuple[int, int], ...]]] = None
            for other in self._candidate_order(ranked, fresh, first, rest):
                cost = 0 if fresh[first][other] else 1
                sub_remaining = tuple(i for i in rest if i != other)
                if best is not None and cost + lower_bound(sub_remaining) >= best[0]:
                    continue
                sub_cost, sub_pairs = solve(sub_remaining)
                total = cost + sub_cost
                if best is None or total < best[0]:
                    best = (total, ((first, other),) + sub_pairs)
                    if total <= bound:
                        break

            memo[remaining] = best
            return best

        rematches, pairs = solve(tuple(range(len(ranked))))
        return rematches, list(pairs)

    # --- large pools ---

    def _rematch_free_search(
        self, ranked: Sequence[PlayerStanding], fresh: List[List[bool]]
    ) -> Tuple[Optional[IndexPairs], bool]:
        """Depth-first search for a matching without rematches.

        Returns:
            (pairs or None, whether the budget ran out)
        """
        n = len(ranked)
        neighbours = [[j for j in range(n) if fresh[i][j]] for i in range(n)]
        # fresh partners still unpaired, per member
        degree = [len(nb) for nb in neighbours]
        if any(d == 0 for d in degree):
            return None, False

        unpaired = [True] * n
        failed: Set[FrozenSet[int]] = set()
        pairs: IndexPairs = []
        state = {"expansions": 0, "exhausted": False}

        def take(i: int) -> None:
            unpaired[i] = False
            for k in neighbours[i]:
                degree[k] -= 1

        def release(i: int) -> None:
            unpaired[i] = True
            for k in neighbours[i]:
                degree[k] += 1

        def stranded(i: int, j: int) -> bool:
            return any(
                unpaired[k] and degree[k] == 0 for k in neighbours[i] + neighbours[j]
            )

        def dfs() -> bool:
            first = next((i for i in range(n) if unpaired[i]), None)
            if first is None:
                return True
            key = frozenset(i for i in range(n) if unpaired[i])
            if key in failed:
                return False

            candidates = [j for j in neighbours[first] if unpaired[j]]
            for other in self._candidate_order(ranked, fresh, first, candidates):
                if state["expansions"] >= self.search_budget:
                    state["exhausted"] = True
                    return False
                state["expansions"] += 1
                take(first)
                take(other)
                if not stranded(first, other) and dfs():
                    pairs.append((first, other))
                    return True
                release(other)
                release(first)
                if state["exhausted"]:
                    return False

            failed.add(key)
            return False

        if dfs():
            pairs.reverse()
            return pairs, False
        return None, state["exhausted"]

    def _greedy(
        self, ranked: Sequence[PlayerStanding], fresh: List[List[bool]]
    ) -> IndexPairs:
        remaining = list(range(len(ranked)))
        pairs: IndexPairs = []
        while remaining:
            first = remaining.pop(0)
            other = self._candidate_order(ranked, fresh, first, remaining)[0]
            remaining.remove(other)
            pairs.append((first, other))
        return pairs

    @staticmethod
    def _swap_repair(fresh: List[List[bool]], pairs: IndexPairs) -> IndexPairs:
        """Swap partners between two pairs while that removes rematches."""

        def cost(i: int, j: int) -> int:
            return 0 if fresh[i][j] else 1

        pairs = list(pairs)
        improved = True
        while improved:
            improved = False
            for x in range(len(pairs)):
                for y in range(x + 1, len(pairs)):
                    a, b = pairs[x]
                    c, d = pairs[y]
                    current = cost(a, b) + cost(c, d)
                    if current == 0:
                        continue
                    for first, second in (((a, c), (b, d)), ((a, d), (b, c))):
                        if cost(*first) + cost(*second) < current:
                            pairs[x] = tuple(sorted(first))
                            pairs[y] = tuple(sorted(second))
                            improved = True
                            break
        return sorted(pairs)
