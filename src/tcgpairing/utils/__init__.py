"""Shared helpers: logger setup and id generation."""

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

import uuid

from tcgpairing.utils.logging import setup_logger


def generate_id(prefix: str = "") -> str:
    """Generate a short unique identifier.

    Args:
        prefix: Optional prefix such as ``"player"`` or ``"match"``

    Returns:
        A string like ``player_3f2a9c1d0b7e``
    """
    token = uuid.uuid4().hex[:12]
    return f"{prefix}_{token}" if prefix else token


__all__ = ["generate_id", "setup_logger"]
