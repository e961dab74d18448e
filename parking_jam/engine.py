"""Puzzle state machine: dispatch, boarding and departure.

At most one transition runs at a time. A transition takes the lock when its
animation starts and gives it back in the animation's continuation, which
then starts the next step of the pipeline::

    IDLE -> DISPATCHING -> BOARDING* -> (DEPARTING -> BOARDING*)? -> IDLE

Invalid requests are ignored and reported as ``False``; every precondition is
checked before the board is touched.
"""

from __future__ import annotations

import logging
from functools import partial

from parking_jam.animation import Join

_logger = logging.getLogger(__name__)

IDLE = "IDLE"
DISPATCHING = "DISPATCHING"
BOARDING = "BOARDING"
DEPARTING = "DEPARTING"


class PuzzleEngine:
    ANIMATION_DURATION = {
        "CAR_MOVE_TO_SLOT": 300,
        "PERSON_MOVE_TO_CAR": 100,
        "PERSON_QUEUE_SHIFT": 100,
        "CAR_LEAVE": 300,
    }

    def __init__(self, board, presenter):
        self.board = board
        self.presenter = presenter
        self.phase = IDLE
        self.arrival_counter = 0
        # (kind, slot, amount) tuples for whoever is keeping score
        self.events = []

    @property
    def is_animating(self):
        return self.phase != IDLE

    def _lock(self, phase):
        self.phase = phase

    def _unlock(self):
        self.phase = IDLE

    def drain_events(self):
        events, self.events = self.events, []
        return events

    # --- Dispatch ---

    def dispatch(self, row, col):
        if self.is_animating:
            _logger.debug("Dispatch of (%d, %d) refused: %s in progress", row, col, self.phase)
            return False
        if not self.board.is_movable(row, col):
            _logger.debug("Dispatch of (%d, %d) refused: not movable", row, col)
            return False
        slot = self.board.first_free_slot()
        if slot is None:
            return False

        vehicle = self.board.take_vehicle(row, col)
        self.arrival_counter += 1
        self.board.park(slot, vehicle, self.arrival_counter)
        self._lock(DISPATCHING)
        self.events.append(("dispatch", slot, 0))
        _logger.debug(
            "Dispatched color %d from (%d, %d) to slot %d (arrival %d)",
            vehicle.color_id, row, col, slot, self.arrival_counter,
        )

        self.presenter.animate_move(
            vehicle,
            self.presenter.cell_position(row, col),
            self.presenter.slot_position(slot),
            self.ANIMATION_DURATION["CAR_MOVE_TO_SLOT"],
            self._after_dispatch,
        )
        return True

    def _after_dispatch(self):
        self._unlock()
        self.try_board()

    # --- Boarding ---

    def try_board(self):
        if self.is_animating:
            return False
        head = self.board.queue.head
        if head is None:
            return False
        slot = self.board.boarding_candidate(head.color_id)
        if slot is None:
            return False

        parked = self.board.slots[slot]
        parked.boarded += 1
        self.board.queue.pop()
        self._lock(BOARDING)
        self.events.append(("board", slot, 1))
        _logger.debug(
            "Passenger of color %d boarded slot %d (%d/%d)",
            head.color_id, slot, parked.boarded, parked.capacity,
        )

        # The rest of the queue keeps its old places until the shift
        for index, passenger in enumerate(self.board.queue):
            self.presenter.place(passenger, self.presenter.queue_position(index + 1))
        self.presenter.animate_move(
            head,
            self.presenter.queue_position(0),
            self.presenter.slot_position(slot),
            self.ANIMATION_DURATION["PERSON_MOVE_TO_CAR"],
            partial(self._shift_queue, head, slot),
        )
        return True

    def _shift_queue(self, boarded, slot):
        self.presenter.release(boarded)
        waiting = list(self.board.queue)
        join = Join(range(len(waiting)), partial(self._after_boarding, slot))
        for index, passenger in enumerate(waiting):
            self.presenter.animate_move(
                passenger,
                self.presenter.queue_position(index + 1),
                self.presenter.queue_position(index),
                self.ANIMATION_DURATION["PERSON_QUEUE_SHIFT"],
                join.signal(index),
            )
        join.wait()

    def _after_boarding(self, slot):
        self._unlock()
        parked = self.board.slots[slot]
        if parked is not None and parked.is_full:
            self.depart(slot)
        else:
            self.try_board()

    # --- Departure ---

    def depart(self, slot):
        if self.is_animating:
            return False
        parked = self.board.slots[slot]
        if parked is None:
            _logger.debug("Departure from slot %d ignored: slot is empty", slot)
            return False

        self._lock(DEPARTING)
        vehicle = parked.vehicle
        join = Join(("move", "fade"), partial(self._after_depart, slot))
        self.presenter.animate_move(
            vehicle,
            self.presenter.slot_position(slot),
            self.presenter.exit_position(slot),
            self.ANIMATION_DURATION["CAR_LEAVE"],
            join.signal("move"),
        )
        self.presenter.animate_fade_out(
            vehicle, self.ANIMATION_DURATION["CAR_LEAVE"], join.signal("fade"),
        )
        join.wait()
        return True

    def _after_depart(self, slot):
        parked = self.board.clear_slot(slot)
        self.presenter.release(parked.vehicle)
        self.events.append(("depart", slot, parked.capacity))
        _logger.debug("Vehicle of color %d left slot %d", parked.color_id, slot)
        self._unlock()
        self.try_board()
