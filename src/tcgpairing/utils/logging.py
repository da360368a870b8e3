"""Logging utilities."""

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


import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from tcgpairing.constants import ENV_LOG_DIR, ENV_LOG_LEVEL

# the logger format used
LOG_FMT = "LVL: %(levelname)s | FILE PATH: %(pathname)s | FUN: %(funcName)s | msg: %(message)s | ln#:%(lineno)d"

LOG_FILE_NAME = "tcg-pairing.log"


def _resolve_level(value: Optional[str]) -> int:
    """Map a level name such as ``"debug"`` to its logging constant."""
    if not value:
        return logging.INFO
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else logging.INFO


# --- Logging Setup ---
def setup_logger(logger_name: str) -> logging.Logger:
    """Set up logger for a python module.

    Sets up a console handler and, when ``TCGPAIRING_LOG_DIR`` is set,
    a rotating file handler inside that folder.

    Parameters
    ----------
    logger_name : str
        The name for the logger, __name__ is idiomatic

    Returns
    -------
    logging.Logger
        the created logger
    """
    lgr = logging.getLogger(name=logger_name)
    lgr.setLevel(_resolve_level(os.environ.get(ENV_LOG_LEVEL)))
    # Remove any existing handlers on this logger to avoid duplicates
    for _h in list(lgr.handlers):
        lgr.removeHandler(_h)
    log_formatter = logging.Formatter(LOG_FMT)

    # Console Handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(log_formatter)
    console_handler.setLevel(logging.WARNING)
    lgr.addHandler(console_handler)

    # File Handler
    log_folder = os.environ.get(ENV_LOG_DIR)
    if log_folder:
        log_path = os.path.join(log_folder, LOG_FILE_NAME)
        try:
            os.makedirs(log_folder, exist_ok=True)
            # Use RotatingFileHandler to prevent unbounded log growth
            file_handler = RotatingFileHandler(
                log_path, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
            )
        except OSError as e:
            lgr.warning("Could not open log file %s: %s", log_path, e)
        else:
            file_handler.setFormatter(log_formatter)
            lgr.addHandler(file_handler)

    lgr.debug("logger %s initialized", logger_name)
    return lgr
