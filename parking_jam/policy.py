def _pick_target(env):
    board = env.board
    movable = board.movable_cells()
    if not movable:
        return None

    # Earliest position in the queue at which each color is wanted
    wanted = {}
    for index, color_id in enumerate(board.queue.colors()):
        wanted.setdefault(color_id, index)

    def rank(cell):
        color_id = board.vehicle_at(*cell).color_id
        return (wanted.get(color_id, len(wanted) + 1), cell)

    return min(movable, key=rank)


def policy(env):
    # Strategy: wait out running transitions, then steer the cursor to the movable car whose
    # color is wanted soonest by the passenger queue and press space on it. Cursor moves are
    # separated by a no-op because the env only acts on newly pressed directions.
    if env.game_over or env.engine.is_animating:
        return [0, 0, 0]

    target = _pick_target(env)
    if target is None:
        return [0, 0, 0]

    row, col = target
    cursor_x, cursor_y = env.cursor_pos
    dx = col - cursor_x
    dy = row - cursor_y

    if env.previous_action[0] != 0 or env.previous_action[1] != 0:
        return [0, 0, 0]  # Release keys before the next press

    if dx > 0:
        return [4, 0, 0]  # Move right
    elif dx < 0:
        return [3, 0, 0]  # Move left
    elif dy > 0:
        return [2, 0, 0]  # Move down
    elif dy < 0:
        return [1, 0, 0]  # Move up
    else:
        return [0, 1, 0]  # Dispatch the car under the cursor
