"""Exception hierarchy for parking_jam."""

from __future__ import annotations


class ParkingJamError(Exception):
    """Base exception for all parking_jam errors."""


class LevelConfigError(ParkingJamError):
    """Level data is malformed or references an unknown color."""

    def __init__(self, message: str, *, level: str = "") -> None:
        self.level = level
        if level:
            message = f"{level}: {message}"
        super().__init__(message)
