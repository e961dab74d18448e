"""Car parking / passenger matching puzzle."""

from parking_jam.animation import ImmediatePresenter, Join, Presenter, TweenAnimator
from parking_jam.board import Board, ParkedVehicle, Passenger, PassengerQueue, Vehicle
from parking_jam.engine import PuzzleEngine
from parking_jam.exceptions import LevelConfigError, ParkingJamError
from parking_jam.levels import BUILTIN_LEVELS, Level, get_level, load_level

__all__ = [
    "BUILTIN_LEVELS",
    "Board",
    "ImmediatePresenter",
    "Join",
    "Level",
    "LevelConfigError",
    "ParkedVehicle",
    "ParkingJamError",
    "Passenger",
    "PassengerQueue",
    "Presenter",
    "PuzzleEngine",
    "TweenAnimator",
    "Vehicle",
    "get_level",
    "load_level",
]
