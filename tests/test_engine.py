from __future__ import annotations

from parking_jam.board import Vehicle
from parking_jam.engine import BOARDING, DEPARTING, DISPATCHING, IDLE
from parking_jam.levels import Level, get_level


def _board_slots(events):
    return [slot for kind, slot, _ in events if kind == "board"]


def test_end_to_end_scenario(make_engine, scenario_level, immediate_presenter) -> None:
    engine = make_engine(scenario_level, immediate_presenter)
    board = engine.board

    assert engine.dispatch(0, 0) is True

    assert board.vehicle_at(0, 0) is None
    assert board.slots == [None, None]
    assert board.queue.colors() == [1]
    assert engine.phase == IDLE
    events = engine.drain_events()
    assert [kind for kind, _, _ in events] == ["dispatch", "board", "board", "depart"]
    assert _board_slots(events) == [0, 0]
    # The vehicle and both boarded passengers left the board
    assert len(immediate_presenter.released) == 3


def test_first_dispatch_lands_in_slot_zero(make_engine) -> None:
    level = Level(vacancy=3, initial_matrix=[[[2, 2], [3, 1]], [0, 0]], item_queue=[])
    engine = make_engine(level)

    assert engine.dispatch(0, 1)
    parked = engine.board.slots[0]
    assert parked.color_id == 3
    assert parked.boarded == 0
    assert parked.arrival_seq == 1
    assert engine.board.vehicle_at(0, 1) is None
    assert engine.board.slots[1:] == [None, None]


def test_dispatch_moves_vehicle_from_cell_to_slot(make_engine) -> None:
    level = Level(vacancy=2, initial_matrix=[[[2, 2], 0], [0, 0]], item_queue=[])
    engine = make_engine(level)
    vehicle = engine.board.vehicle_at(0, 0)

    engine.dispatch(0, 0)

    locations = [v for _, _, v in engine.board.grid_vehicles()]
    locations += [p.vehicle for _, p in engine.board.parked()]
    assert locations == [vehicle]


def test_dispatch_animates_from_cell_to_slot(make_engine, immediate_presenter) -> None:
    level = Level(vacancy=2, initial_matrix=[[[2, 2], 0], [0, 0]], item_queue=[])
    engine = make_engine(level, immediate_presenter)
    vehicle = engine.board.vehicle_at(0, 0)

    engine.dispatch(0, 0)

    assert immediate_presenter.calls == [
        ("move", vehicle, ("cell", 0, 0), ("slot", 0), engine.ANIMATION_DURATION["CAR_MOVE_TO_SLOT"]),
    ]


def test_dispatch_of_blocked_vehicle_is_ignored(make_engine) -> None:
    level = Level(
        vacancy=2,
        initial_matrix=[
            [[1, 1], [1, 1], [1, 1]],
            [[1, 1], [2, 1], [1, 1]],
            [[1, 1], [1, 1], [1, 1]],
        ],
        item_queue=[],
    )
    engine = make_engine(level)

    assert engine.dispatch(1, 1) is False
    assert engine.board.vehicle_at(1, 1).color_id == 2
    assert engine.board.slots == [None, None]
    assert engine.arrival_counter == 0


def test_dispatch_of_empty_cell_is_ignored(make_engine, scenario_level) -> None:
    engine = make_engine(scenario_level)

    assert engine.dispatch(0, 1) is False
    assert engine.dispatch(5, 5) is False


def test_dispatch_refused_while_transition_in_flight(make_engine, manual_presenter) -> None:
    level = Level(vacancy=3, initial_matrix=[[[1, 1], [2, 1]], [0, 0]], item_queue=[])
    engine = make_engine(level, manual_presenter)

    assert engine.dispatch(0, 0)
    assert engine.phase == DISPATCHING
    assert engine.dispatch(0, 1) is False
    assert engine.board.vehicle_at(0, 1) is not None

    manual_presenter.complete_all()
    assert engine.phase == IDLE
    assert engine.dispatch(0, 1)
    assert engine.board.slots[1].arrival_seq == 2


def test_board_and_depart_refused_in_every_phase(make_engine, manual_presenter) -> None:
    level = Level(vacancy=2, initial_matrix=[[[1, 2]]], item_queue=[1, 1])
    engine = make_engine(level, manual_presenter)
    board = engine.board

    assert engine.dispatch(0, 0)
    assert engine.phase == DISPATCHING
    assert engine.try_board() is False
    assert engine.depart(0) is False
    assert board.slots[0].boarded == 0
    assert board.queue.colors() == [1, 1]

    manual_presenter.complete_next()
    assert engine.phase == BOARDING
    assert engine.try_board() is False
    assert engine.depart(0) is False
    assert board.slots[0].boarded == 1
    assert board.queue.colors() == [1]

    # Head walk, queue shift, then the second passenger fills the car
    for _ in range(3):
        manual_presenter.complete_next()
    assert engine.phase == DEPARTING
    assert engine.try_board() is False
    assert engine.depart(0) is False
    assert board.slots[0] is not None
    assert board.slots[0].boarded == 2
    assert len(manual_presenter.pending) == 2

    manual_presenter.complete_all()
    assert engine.phase == IDLE
    assert board.slots == [None, None]


def test_waiting_passengers_keep_their_places_while_head_boards(
    make_engine, scenario_level, manual_presenter
) -> None:
    engine = make_engine(scenario_level, manual_presenter)

    engine.dispatch(0, 0)
    manual_presenter.complete_next()

    waiting = list(engine.board.queue)
    assert [(ref, pos) for ref, pos, _ in manual_presenter.placed] == [
        (waiting[0], ("queue", 1)),
        (waiting[1], ("queue", 2)),
    ]
    # Placed before the head starts walking
    assert all(pending == 0 for *_, pending in manual_presenter.placed)
    kind, ref, from_pos, to_pos, _ = manual_presenter.pending[0]
    assert (kind, from_pos, to_pos) == ("move", ("queue", 0), ("slot", 0))


def test_arrival_sequence_is_strictly_increasing(make_engine) -> None:
    level = Level(vacancy=3, initial_matrix=[[[1, 1], [2, 1], [3, 1]], [0, 0, 0], [0, 0, 0]], item_queue=[])
    engine = make_engine(level)

    for col in (2, 0, 1):
        assert engine.dispatch(0, col)

    seqs = [engine.board.arrival_seq(slot) for slot in range(3)]
    assert seqs == [1, 2, 3]
    assert [p.color_id for _, p in engine.board.parked()] == [3, 1, 2]


def test_boarding_follows_arrival_order_not_slot_order(make_engine) -> None:
    level = Level(vacancy=3, initial_matrix=[[0]], item_queue=[1, 1, 1])
    engine = make_engine(level)
    board = engine.board
    board.park(2, Vehicle(1, 1), 1)
    board.park(0, Vehicle(1, 1), 2)
    board.park(1, Vehicle(1, 1), 3)
    engine.arrival_counter = 3

    assert engine.try_board()

    assert _board_slots(engine.drain_events()) == [2, 0, 1]
    assert board.slots == [None, None, None]
    assert board.queue.exhausted


def test_head_passenger_blocks_queue_without_candidate(make_engine) -> None:
    level = Level(vacancy=2, initial_matrix=[[0]], item_queue=[2, 1, 1])
    engine = make_engine(level)
    engine.board.park(0, Vehicle(1, 2), 1)

    assert engine.try_board() is False
    assert engine.board.slots[0].boarded == 0
    assert engine.board.queue.colors() == [2, 1, 1]


def test_try_board_on_empty_queue_is_noop(make_engine) -> None:
    level = Level(vacancy=1, initial_matrix=[[0]], item_queue=[])
    engine = make_engine(level)
    engine.board.park(0, Vehicle(1, 2), 1)

    assert engine.try_board() is False
    assert engine.phase == IDLE


def test_queue_shift_waits_for_every_passenger(make_engine, manual_presenter) -> None:
    level = Level(vacancy=2, initial_matrix=[[[1, 3]]], item_queue=[1, 2, 2, 2])
    engine = make_engine(level, manual_presenter)

    engine.dispatch(0, 0)
    manual_presenter.complete_next()  # car reaches its slot
    assert engine.phase == BOARDING
    manual_presenter.complete_next()  # head reaches the car

    shifts = [entry for entry in manual_presenter.pending if entry[0] == "move"]
    assert len(shifts) == 3
    assert [entry[3] for entry in shifts] == [("queue", 0), ("queue", 1), ("queue", 2)]

    manual_presenter.complete_next()
    manual_presenter.complete_next()
    assert engine.phase == BOARDING

    manual_presenter.complete_next()
    assert engine.phase == IDLE
    assert manual_presenter.pending == []
    assert engine.board.slots[0].boarded == 1


def test_last_passenger_filling_car_still_departs(make_engine) -> None:
    level = Level(vacancy=1, initial_matrix=[[[1, 1]]], item_queue=[1])
    engine = make_engine(level)

    engine.dispatch(0, 0)

    assert engine.board.slots == [None]
    assert engine.board.queue.exhausted
    assert engine.phase == IDLE


def test_departure_waits_for_move_and_fade(make_engine, manual_presenter) -> None:
    level = Level(vacancy=1, initial_matrix=[[[1, 1]]], item_queue=[])
    engine = make_engine(level, manual_presenter)
    engine.dispatch(0, 0)
    manual_presenter.complete_all()

    assert engine.depart(0)
    assert engine.phase == DEPARTING
    assert [entry[0] for entry in manual_presenter.pending] == ["move", "fade"]
    assert manual_presenter.pending[0][3] == ("exit", 0)

    manual_presenter.complete_next()
    assert engine.board.slots[0] is not None
    manual_presenter.complete_next()
    assert engine.board.slots[0] is None
    assert engine.phase == IDLE


def test_departure_frees_slot_for_next_dispatch(make_engine) -> None:
    level = Level(vacancy=1, initial_matrix=[[[1, 2], [2, 1]], [0, 0]], item_queue=[1, 1, 2])
    engine = make_engine(level)

    assert engine.dispatch(0, 0)
    assert engine.board.slots == [None]
    assert engine.board.is_movable(0, 1)

    assert engine.dispatch(0, 1)
    assert engine.board.slots == [None]
    assert engine.board.queue.exhausted
    assert engine.arrival_counter == 2


def test_depart_empty_slot_is_noop(make_engine, scenario_level, immediate_presenter) -> None:
    engine = make_engine(scenario_level, immediate_presenter)

    assert engine.depart(1) is False
    assert immediate_presenter.calls == []


def test_capacity_invariant_holds_through_a_level(make_engine) -> None:
    engine = make_engine(get_level("mixed"), queue_capacity=20)
    board = engine.board

    while True:
        movable = board.movable_cells()
        if not movable:
            break
        # Prefer a car the head passenger can use
        head = board.queue.head
        preferred = [c for c in movable if head and board.vehicle_at(*c).color_id == head.color_id]
        engine.dispatch(*(preferred or movable)[0])
        for _, parked in board.parked():
            assert 0 <= parked.boarded <= parked.capacity
        seqs = [parked.arrival_seq for _, parked in board.parked()]
        assert len(set(seqs)) == len(seqs)

    assert engine.phase == IDLE


def test_long_boarding_chain_does_not_recurse(make_engine) -> None:
    level = Level(vacancy=1, initial_matrix=[[[1, 400]]], item_queue=[1] * 400)
    engine = make_engine(level)

    engine.dispatch(0, 0)

    assert engine.board.slots == [None]
    assert engine.board.queue.exhausted
