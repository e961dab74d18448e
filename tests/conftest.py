from __future__ import annotations

import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")

import pytest

from parking_jam.animation import ImmediatePresenter, Presenter
from parking_jam.board import Board
from parking_jam.engine import PuzzleEngine
from parking_jam.levels import Level


class ManualPresenter(Presenter):
    """Holds every animation until the test completes it."""

    def __init__(self) -> None:
        super().__init__()
        self.pending: list[tuple] = []
        self.released: list[object] = []
        self.placed: list[tuple] = []

    def place(self, ref, pos):
        self.placed.append((ref, pos, len(self.pending)))

    def animate_move(self, ref, from_pos, to_pos, duration_ms, on_complete):
        self.pending.append(("move", ref, from_pos, to_pos, on_complete))

    def animate_fade_out(self, ref, duration_ms, on_complete):
        self.pending.append(("fade", ref, None, None, on_complete))

    def release(self, ref):
        self.released.append(ref)

    def complete_next(self) -> None:
        *_, on_complete = self.pending.pop(0)
        on_complete()

    def complete_all(self) -> None:
        while self.pending:
            self.complete_next()


@pytest.fixture
def scenario_level() -> Level:
    return Level(
        name="scenario",
        vacancy=2,
        initial_matrix=[[[1, 2], 0], [0, 0]],
        item_queue=[1, 1, 1],
    )


@pytest.fixture
def immediate_presenter() -> ImmediatePresenter:
    return ImmediatePresenter()


@pytest.fixture
def manual_presenter() -> ManualPresenter:
    return ManualPresenter()


@pytest.fixture
def make_engine():
    def _make(level: Level, presenter: Presenter | None = None, queue_capacity: int | None = None) -> PuzzleEngine:
        board = Board.from_level(level, queue_capacity=queue_capacity)
        return PuzzleEngine(board, presenter if presenter is not None else ImmediatePresenter())

    return _make
