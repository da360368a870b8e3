"""Human readable rendering of a pairing decision log."""

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

from typing import List

from tcgpairing.constants import (
    STAGE_BOUNDED_SEARCH,
    STAGE_BRACKET,
    STAGE_FIRST_ROUND,
    STAGE_FORCED_REMATCH,
    WIN_POINTS,
)
from tcgpairing.models.pairing import PairingDecisionLog

STAGE_DESCRIPTIONS = {
    STAGE_FIRST_ROUND: "random first round",
    STAGE_BRACKET: "score brackets without rematches",
    STAGE_FORCED_REMATCH: "score brackets with unavoidable rematches",
    STAGE_BOUNDED_SEARCH: "score brackets, search budget exhausted",
}


def describe_decision_log(log: PairingDecisionLog, round_number: int) -> List[str]:
    """Render a decision log as display lines.

    Args:
        log: The decision log of a round
        round_number: The round it belongs to

    Returns:
        One line per fact, bye first
    """
    lines = [f"Round {round_number} pairing decisions"]
    if log.bye_player_id is not None:
        lines.append(
            f"Bye: {log.bye_player_name} ({log.bye_player_points} pts): {log.bye_reason}"
        )
    else:
        lines.append("Bye: none")

    for detail in log.float_details:
        lines.append(
            f"Float: {detail.player_name} ({detail.player_points} pts): {detail.reason}"
        )

    distance = f"Max float distance: {log.max_float_distance} pts"
    # more than one win apart
    if log.max_float_distance > WIN_POINTS:
        distance += " (multi-step)"
    lines.append(distance)

    if log.rematch_count:
        lines.append(f"Rematches: {log.rematch_count}")
    else:
        lines.append("Rematches: none")

    lines.append(
        "Method: " + STAGE_DESCRIPTIONS.get(log.stage_used, f"stage {log.stage_used}")
    )
    return lines
