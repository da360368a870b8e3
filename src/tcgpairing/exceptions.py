"""Exceptions for use in TCG Pairing"""

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


# ========== Base Application Exception ==========


class TCGPairingException(Exception):
    """Base exception for all TCG Pairing errors.

    All custom exceptions in the application should inherit from this class.
    This enables catching all application-specific errors with a single except clause.
    """

    pass


# ========== Pairing Exceptions ==========


class PairingException(TCGPairingException):
    """Base exception for pairing-related errors."""

    pass


class InvalidStandingsException(PairingException):
    """Raised when the standings handed to a pairing engine are malformed.

    Duplicate or empty ids, negative counters and match points that do not
    agree with wins and draws all end up here.
    """

    pass


class PairingInvariantException(PairingException):
    """Raised when a generated round fails its own integrity audit.

    This always points at a defect in the pairing algorithm, never at the input.
    """

    pass


class SwissConstraintException(PairingInvariantException):
    """Raised when a Swiss round contains an avoidable rematch or a multi-step float."""

    pass


# ========== Tournament Exceptions ==========


class TournamentException(TCGPairingException):
    """Base exception for tournament-related errors."""

    pass


class TournamentStateException(TournamentException):
    """Raised when an operation is not allowed in the tournament's current state."""

    pass


class RoundNotFoundException(TournamentException):
    """Raised when a requested round does not exist."""

    pass


class DuplicatePlayerException(TournamentException):
    """Raised when a player id is registered twice."""

    pass


# ========== Player Exceptions ==========


class PlayerException(TCGPairingException):
    """Base exception for player-related errors."""

    pass


class PlayerNotFoundException(PlayerException):
    """Raised when a player cannot be found."""

    pass


# ========== Result Exceptions ==========


class ResultException(TCGPairingException):
    """Base exception for result-related errors."""

    pass


class InvalidResultException(ResultException):
    """Raised when a recorded result is invalid."""

    pass


class MatchNotFoundException(ResultException):
    """Raised when a match cannot be found in a round."""

    pass


# ========== Configuration Exceptions ==========


class ConfigurationException(TCGPairingException):
    """Base exception for configuration errors."""

    pass


class InvalidConfigurationException(ConfigurationException):
    """Raised when configuration values are invalid."""

    pass


# ========== Resource Exceptions ==========


class ResourceException(TCGPairingException):
    """Base exception for file and resource errors."""

    pass


class FileLoadException(ResourceException):
    """Raised when a tournament or configuration file cannot be read."""

    pass


class FileSaveException(ResourceException):
    """Raised when a tournament file cannot be written."""

    pass
