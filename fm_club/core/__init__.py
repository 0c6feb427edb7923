"""Core module for FM Club."""

from fm_club.core.config import settings, get_settings
from fm_club.core.errors import (
    FMClubError,
    FixtureAlreadyPlayedError,
    GameOverError,
    InsufficientFundsError,
    ResourceViolation,
    SaveFileCorruptedError,
    SaveNotFoundError,
    SquadSizeViolation,
    TransferWindowClosedError,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Errors
    "FMClubError",
    "FixtureAlreadyPlayedError",
    "GameOverError",
    "InsufficientFundsError",
    "ResourceViolation",
    "SaveFileCorruptedError",
    "SaveNotFoundError",
    "SquadSizeViolation",
    "TransferWindowClosedError",
]
