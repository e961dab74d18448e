"""Level definitions and loading.

A level is a plain mapping::

    {
        "vacancy": 3,
        "initial_matrix": [[[1, 2], 0], [0, [2, 1]]],
        "item_queue": [1, 1, 2],
    }

``initial_matrix`` is square; each cell is ``0`` or ``[color_id, capacity]``.
``item_queue`` lists upcoming passenger colors front to back, ``0`` meaning
no passenger. Color ``0`` never denotes a vehicle or a passenger.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

from parking_jam.exceptions import LevelConfigError

_logger = logging.getLogger(__name__)

MAX_COLOR_ID = 9


def _check_color(color_id, what, name):
    if not isinstance(color_id, int) or isinstance(color_id, bool):
        raise LevelConfigError(f"{what} color must be an integer, got {color_id!r}", level=name)
    if not 0 <= color_id <= MAX_COLOR_ID:
        raise LevelConfigError(f"{what} color {color_id} is outside 0..{MAX_COLOR_ID}", level=name)


@dataclass
class Level:
    vacancy: int
    initial_matrix: list
    item_queue: list = field(default_factory=list)
    name: str = ""

    def __post_init__(self):
        self.validate()

    @classmethod
    def from_dict(cls, data, name=""):
        if not isinstance(data, dict):
            raise LevelConfigError("level data must be a mapping", level=name)
        missing = [key for key in ("vacancy", "initial_matrix") if key not in data]
        if missing:
            raise LevelConfigError(f"missing keys: {', '.join(missing)}", level=name)
        matrix = data["initial_matrix"]
        if not isinstance(matrix, (list, tuple)):
            raise LevelConfigError(f"initial_matrix must be a list of rows, got {matrix!r}", level=name)
        for r, row in enumerate(matrix):
            if not isinstance(row, (list, tuple)):
                raise LevelConfigError(f"row {r} of initial_matrix must be a list, got {row!r}", level=name)
        item_queue = data.get("item_queue", [])
        if not isinstance(item_queue, (list, tuple)):
            raise LevelConfigError(f"item_queue must be a list of colors, got {item_queue!r}", level=name)
        return cls(
            vacancy=data["vacancy"],
            initial_matrix=[list(row) for row in matrix],
            item_queue=list(item_queue),
            name=data.get("name", name),
        )

    def to_dict(self):
        return {
            "name": self.name,
            "vacancy": self.vacancy,
            "initial_matrix": [list(row) for row in self.initial_matrix],
            "item_queue": list(self.item_queue),
        }

    @property
    def size(self):
        return len(self.initial_matrix)

    def validate(self):
        name = self.name
        if isinstance(self.vacancy, bool) or not isinstance(self.vacancy, int) or self.vacancy < 1:
            raise LevelConfigError(f"vacancy must be a positive integer, got {self.vacancy!r}", level=name)
        size = len(self.initial_matrix)
        if size == 0:
            raise LevelConfigError("initial_matrix is empty", level=name)
        for r, row in enumerate(self.initial_matrix):
            if len(row) != size:
                raise LevelConfigError(
                    f"initial_matrix must be square: row {r} has {len(row)} cells, expected {size}",
                    level=name,
                )
            for c, entry in enumerate(row):
                if entry == 0 or entry is None:
                    continue
                if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                    raise LevelConfigError(
                        f"cell ({r}, {c}) must be 0 or [color, capacity], got {entry!r}", level=name
                    )
                color_id, capacity = entry
                _check_color(color_id, f"vehicle at ({r}, {c})", name)
                if color_id and (
                    isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1
                ):
                    raise LevelConfigError(
                        f"vehicle at ({r}, {c}) needs a positive capacity, got {capacity!r}", level=name
                    )
        for index, color_id in enumerate(self.item_queue):
            _check_color(color_id, f"passenger #{index}", name)

    def seat_balance(self):
        """Seats minus passengers per color; all zeros means every seat gets filled."""
        balance = Counter()
        for row in self.initial_matrix:
            for entry in row:
                if entry and entry[0]:
                    balance[entry[0]] += entry[1]
        for color_id in self.item_queue:
            if color_id:
                balance[color_id] -= 1
        return {color_id: diff for color_id, diff in sorted(balance.items()) if diff}


def load_level(path):
    name = Path(path).stem
    with open(path, encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as exc:
            raise LevelConfigError(f"invalid JSON: {exc}", level=name) from exc
    level = Level.from_dict(data, name=name)
    _logger.info("Loaded level %s (%dx%d grid, %d slots)", level.name, level.size, level.size, level.vacancy)
    unbalanced = level.seat_balance()
    if unbalanced:
        _logger.warning("Level %s has unmatched seats per color: %s", level.name, unbalanced)
    return level


BUILTIN_LEVELS = {
    "tutorial": Level(
        name="tutorial",
        vacancy=3,
        initial_matrix=[
            [[1, 2], [2, 2], [1, 2]],
            [[2, 2], 0, [3, 2]],
            [[3, 2], [3, 2], 0],
        ],
        item_queue=[1, 1, 2, 2, 1, 1, 2, 2, 3, 3, 3, 3, 3, 3],
    ),
    "classic": Level(
        name="classic",
        vacancy=5,
        initial_matrix=[
            [[4, 2], [7, 2], [5, 2], [7, 2], [9, 2], [6, 2]],
            [[5, 2], [7, 2], [6, 2], [4, 2], [9, 2], [9, 2]],
            [[5, 2], [9, 2], [9, 2], [9, 2], [1, 2], [4, 2]],
            [[4, 2], [7, 2], [4, 2], [5, 2], [8, 2], [8, 2]],
            [[8, 2], [1, 2], [5, 2], [5, 2], [4, 2], [3, 2]],
            [[8, 2], [8, 2], [7, 2], [1, 2], [7, 2], [7, 2]],
        ],
        item_queue=[
            4, 4, 7, 7, 5, 5, 7, 7, 9, 9, 6, 6,
            5, 5, 7, 7, 6, 6, 4, 4, 9, 9, 9, 9,
            5, 5, 9, 9, 9, 9, 9, 9, 1, 1, 4, 4,
            4, 4, 7, 7, 4, 4, 5, 5, 8, 8, 8, 8,
            8, 8, 1, 1, 5, 5, 5, 5, 4, 4, 3, 3,
            8, 8, 8, 8, 7, 7, 1, 1, 7, 7, 7, 7,
        ],
    ),
    "mixed": Level(
        name="mixed",
        vacancy=4,
        initial_matrix=[
            [[2, 3], [1, 1], 0, [3, 2]],
            [[1, 2], [2, 1], [3, 1], [2, 2]],
            [[3, 3], 0, [1, 3], [4, 2]],
            [[4, 1], [2, 1], [4, 3], [1, 1]],
        ],
        item_queue=[
            2, 2, 1, 2, 3, 3, 1, 1, 0, 2, 2, 3,
            3, 3, 4, 4, 1, 1, 1, 2, 3, 4, 4, 4,
            1, 2, 4,
        ],
    ),
}


def get_level(name):
    try:
        return BUILTIN_LEVELS[name]
    except KeyError:
        raise LevelConfigError(
            f"unknown level, choose one of: {', '.join(sorted(BUILTIN_LEVELS))}", level=name
        ) from None
