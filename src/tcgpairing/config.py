"""Engine configuration.

Holds the tunable limits of the pairing and tie-break engines. Values can be
loaded from a JSON file, either given explicitly or through the
``TCGPAIRING_CONFIG`` environment variable.
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

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from tcgpairing.constants import (
    ENV_CONFIG,
    EXHAUSTIVE_POOL_LIMIT,
    FLOAT_CANDIDATE_LIMIT,
    SEARCH_BUDGET,
    TIEBREAK_TOLERANCE,
)
from tcgpairing.exceptions import FileLoadException, InvalidConfigurationException
from tcgpairing.utils import setup_logger

logger = setup_logger(__name__)


@dataclass
class PairingConfig:
    """Tunable limits for the pairing engines.

    Attributes:
        exhaustive_pool_limit: Largest bracket pool searched exhaustively for
            the minimum number of rematches
        search_budget: Node expansions allowed when looking for a rematch-free
            matching in a larger pool
        float_candidate_limit: How many floater candidates are tried in an odd
            bracket whose remaining pool is too large for the exhaustive search
        tiebreak_tolerance: Tie-breakers closer than this compare equal
    """

    exhaustive_pool_limit: int = EXHAUSTIVE_POOL_LIMIT
    search_budget: int = SEARCH_BUDGET
    float_candidate_limit: int = FLOAT_CANDIDATE_LIMIT
    tiebreak_tolerance: float = TIEBREAK_TOLERANCE

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            InvalidConfigurationException: If a value is out of range
        """
        if self.exhaustive_pool_limit < 2:
            raise InvalidConfigurationException(
                f"exhaustive_pool_limit must be at least 2, got {self.exhaustive_pool_limit}"
            )
        if self.search_budget < 1:
            raise InvalidConfigurationException(
                f"search_budget must be positive, got {self.search_budget}"
            )
        if self.float_candidate_limit < 1:
            raise InvalidConfigurationException(
                f"float_candidate_limit must be positive, got {self.float_candidate_limit}"
            )
        if not 0 <= self.tiebreak_tolerance < 1:
            raise InvalidConfigurationException(
                f"tiebreak_tolerance must be in [0, 1), got {self.tiebreak_tolerance}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize configuration to dictionary."""
        return {
            "exhaustive_pool_limit": self.exhaustive_pool_limit,
            "search_budget": self.search_budget,
            "float_candidate_limit": self.float_candidate_limit,
            "tiebreak_tolerance": self.tiebreak_tolerance,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PairingConfig":
        """Deserialize configuration from dictionary.

        Unknown keys are rejected so that typos do not go unnoticed.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidConfigurationException(
                f"Unknown configuration keys: {', '.join(unknown)}"
            )
        try:
            return cls(
                exhaustive_pool_limit=int(
                    data.get("exhaustive_pool_limit", EXHAUSTIVE_POOL_LIMIT)
                ),
                search_budget=int(data.get("search_budget", SEARCH_BUDGET)),
                float_candidate_limit=int(
                    data.get("float_candidate_limit", FLOAT_CANDIDATE_LIMIT)
                ),
                tiebreak_tolerance=float(
                    data.get("tiebreak_tolerance", TIEBREAK_TOLERANCE)
                ),
            )
        except (TypeError, ValueError) as e:
            raise InvalidConfigurationException(f"Invalid configuration value: {e}") from e


def load_config(path: Optional[Union[str, Path]] = None) -> PairingConfig:
    """Load a :class:`PairingConfig`.

    Args:
        path: JSON file to read. When omitted the ``TCGPAIRING_CONFIG``
            environment variable is consulted, and defaults are used when
            neither is set.

    Returns:
        The loaded configuration

    Raises:
        FileLoadException: If the file cannot be read or parsed
        InvalidConfigurationException: If the values are invalid
    """
    if path is None:
        path = os.environ.get(ENV_CONFIG)
    if not path:
        return PairingConfig()

    config_path = Path(path)
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise FileLoadException(f"Could not read config file {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise InvalidConfigurationException(
            f"Config file {config_path} must contain a JSON object"
        )

    config = PairingConfig.from_dict(data)
    logger.info("Loaded pairing configuration from %s", config_path)
    return config
