"""Exception hierarchy for FM Club.

- Resource violations block a user action and leave the state untouched
- Game over is the only terminal condition
- Save errors cover missing and corrupted save files
"""


class FMClubError(Exception):
    """Base class for all FM Club errors."""


class ResourceViolation(FMClubError):
    """A user action was refused because the club cannot afford it."""


class InsufficientFundsError(ResourceViolation):
    """Transfer budget does not cover the requested spend."""

    def __init__(self, required: float, available: float):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient funds: need {required:.2f}M, have {available:.2f}M"
        )


class SquadSizeViolation(ResourceViolation):
    """Squad would fall below the minimum viable size."""

    def __init__(self, squad_size: int, minimum: int):
        self.squad_size = squad_size
        self.minimum = minimum
        super().__init__(
            f"Squad too small: {squad_size} players, minimum is {minimum}"
        )


class TransferWindowClosedError(FMClubError):
    """Transfers are only allowed while a window is open."""


class FixtureAlreadyPlayedError(FMClubError):
    """A fixture result was recorded twice."""


class GameOverError(FMClubError):
    """The manager has been dismissed."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class SaveNotFoundError(FMClubError):
    """Requested save file does not exist."""


class SaveFileCorruptedError(FMClubError):
    """Save file failed its checksum."""
