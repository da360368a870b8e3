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

# --- Constants ---
SAVE_FILE_EXTENSION = ".json"

# Match points
WIN_POINTS = 3
DRAW_POINTS = 1

# Tie-breakers closer than this are considered equal
TIEBREAK_TOLERANCE = 0.0001

# Tournament types
TOURNAMENT_SWISS = "swiss"
TOURNAMENT_SINGLE_ELIMINATION = "single_elimination"
TOURNAMENT_TYPES = (TOURNAMENT_SWISS, TOURNAMENT_SINGLE_ELIMINATION)

# Match record statuses
STATUS_PENDING = "pending"
STATUS_READY = "ready"
STATUS_COMPLETED = "completed"
STATUS_BYE = "bye"
MATCH_STATUSES = (STATUS_PENDING, STATUS_READY, STATUS_COMPLETED, STATUS_BYE)

# Result strings
RESULT_DRAW = "Draw"
RESULT_BYE = "bye"

# Pairing stages reported in the decision log
STAGE_FIRST_ROUND = 0  # random first round
STAGE_BRACKET = 1  # bracket pairing without rematches
STAGE_FORCED_REMATCH = 2  # at least one unavoidable rematch
STAGE_BOUNDED_SEARCH = 3  # a large bracket ran out of search budget

# Bracket matching limits
EXHAUSTIVE_POOL_LIMIT = 12
SEARCH_BUDGET = 20000
FLOAT_CANDIDATE_LIMIT = 6

# FNV-1a 32-bit parameters used for the seeded bye tie-break
FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193

# Suggested Swiss round counts: (max players, rounds)
SWISS_ROUND_THRESHOLDS = (
    (8, 3),
    (16, 4),
    (32, 5),
    (64, 6),
    (128, 7),
    (226, 8),
)
SWISS_MAX_SUGGESTED_ROUNDS = 9

# Environment variables
ENV_LOG_DIR = "TCGPAIRING_LOG_DIR"
ENV_LOG_LEVEL = "TCGPAIRING_LOG_LEVEL"
ENV_CONFIG = "TCGPAIRING_CONFIG"
