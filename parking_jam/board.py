"""Board state: vehicle grid, parking slots and the passenger queue.

Nothing in here knows about pixels or animation. The engine mutates a
``Board`` and the presentation layer only ever reads it.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

import numpy as np

# Arrival sequence reported by a slot with nothing parked in it.
EMPTY_SEQ = -1

NEIGHBOURS = ((0, 1), (0, -1), (1, 0), (-1, 0))


@dataclass(eq=False)
class Vehicle:
    color_id: int
    capacity: int


@dataclass(eq=False)
class ParkedVehicle:
    vehicle: Vehicle
    boarded: int = 0
    arrival_seq: int = EMPTY_SEQ

    @property
    def color_id(self):
        return self.vehicle.color_id

    @property
    def capacity(self):
        return self.vehicle.capacity

    @property
    def is_full(self):
        return self.boarded >= self.vehicle.capacity


@dataclass(eq=False)
class Passenger:
    color_id: int


class PassengerQueue:
    """FIFO of waiting passengers fed from a bounded list of upcoming colors.

    ``capacity`` limits how many passengers wait in the visible queue at once;
    the rest stay in the source until a place frees up. A color of ``0`` in
    the source is skipped.
    """

    def __init__(self, source, capacity=None):
        self._source = deque(source)
        self._waiting = deque()
        self.capacity = capacity
        self._refill()

    def _refill(self):
        while self._source and (self.capacity is None or len(self._waiting) < self.capacity):
            color_id = self._source.popleft()
            if color_id:
                self._waiting.append(Passenger(color_id))

    @property
    def head(self):
        return self._waiting[0] if self._waiting else None

    def pop(self):
        """Remove the head passenger and pull the next one in from the source."""
        passenger = self._waiting.popleft()
        self._refill()
        return passenger

    @property
    def upcoming(self):
        return sum(1 for color_id in self._source if color_id)

    @property
    def exhausted(self):
        return not self._waiting and not self.upcoming

    def colors(self):
        return [p.color_id for p in self._waiting]

    def __len__(self):
        return len(self._waiting)

    def __iter__(self):
        return iter(list(self._waiting))

    def __getitem__(self, index):
        return self._waiting[index]


class Board:
    def __init__(self, grid, vacancy, queue):
        self.grid = grid
        self.slots = [None] * vacancy
        self.queue = queue

    @classmethod
    def from_level(cls, level, queue_capacity=None):
        grid = []
        for row in level.initial_matrix:
            cells = []
            for entry in row:
                if entry and entry[0]:
                    cells.append(Vehicle(color_id=entry[0], capacity=entry[1]))
                else:
                    cells.append(None)
            grid.append(cells)
        return cls(grid, level.vacancy, PassengerQueue(level.item_queue, capacity=queue_capacity))

    @property
    def size(self):
        return len(self.grid)

    @property
    def vacancy(self):
        return len(self.slots)

    def in_bounds(self, row, col):
        return 0 <= row < self.size and 0 <= col < self.size

    def vehicle_at(self, row, col):
        if not self.in_bounds(row, col):
            return None
        return self.grid[row][col]

    def grid_vehicles(self):
        for row in range(self.size):
            for col in range(self.size):
                vehicle = self.grid[row][col]
                if vehicle is not None:
                    yield row, col, vehicle

    # --- Slots ---

    def first_free_slot(self):
        for index, parked in enumerate(self.slots):
            if parked is None:
                return index
        return None

    @property
    def free_slots(self):
        return sum(1 for parked in self.slots if parked is None)

    def parked(self):
        for index, parked in enumerate(self.slots):
            if parked is not None:
                yield index, parked

    def arrival_seq(self, slot):
        parked = self.slots[slot]
        return EMPTY_SEQ if parked is None else parked.arrival_seq

    # --- Movability ---

    def is_movable(self, row, col):
        if self.vehicle_at(row, col) is None:
            return False
        if self.first_free_slot() is None:
            return False
        if row == 0:
            return True
        for dr, dc in NEIGHBOURS:
            nr, nc = row + dr, col + dc
            if self.in_bounds(nr, nc) and self.grid[nr][nc] is None:
                return True
        return False

    def movable_mask(self):
        mask = np.zeros((self.size, self.size), dtype=bool)
        for row, col, _ in self.grid_vehicles():
            mask[row, col] = self.is_movable(row, col)
        return mask

    def movable_cells(self):
        return [tuple(int(v) for v in cell) for cell in np.argwhere(self.movable_mask())]

    # --- Mutation ---

    def take_vehicle(self, row, col):
        vehicle = self.grid[row][col]
        self.grid[row][col] = None
        return vehicle

    def park(self, slot, vehicle, arrival_seq):
        parked = ParkedVehicle(vehicle=vehicle, boarded=0, arrival_seq=arrival_seq)
        self.slots[slot] = parked
        return parked

    def clear_slot(self, slot):
        parked = self.slots[slot]
        self.slots[slot] = None
        return parked

    # --- Boarding ---

    def boarding_candidate(self, color_id):
        """Slot of the earliest-arrived parked vehicle of ``color_id`` with a seat left."""
        candidates = [
            (parked.arrival_seq, index)
            for index, parked in self.parked()
            if parked.color_id == color_id and not parked.is_full
        ]
        if not candidates:
            return None
        return min(candidates)[1]

    def can_board(self):
        head = self.queue.head
        return head is not None and self.boarding_candidate(head.color_id) is not None

    def color_matrix(self):
        colors = np.zeros((self.size, self.size), dtype=np.int64)
        for row, col, vehicle in self.grid_vehicles():
            colors[row, col] = vehicle.color_id
        return colors
