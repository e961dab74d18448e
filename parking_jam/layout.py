"""Where things sit on screen.

The engine never computes positions itself; it asks its presenter, which
delegates to one of these layouts.
"""

from __future__ import annotations

# Passenger waiting area. False cells are cut out of the snake.
PEOPLE_MASK = (
    (True, True, True, True, True, True),
    (True, False, False, False, False, False),
    (True, True, True, True, True, True),
    (False, False, False, False, False, True),
    (True, True, True, True, True, True),
)


def snake_index_map(mask):
    """Order the visible cells of ``mask`` as a snake starting at the bottom row.

    Direction flips only after a row with more than one visible cell, so
    single-cell rows act as the bends of the snake. Returns ``(row, col)``
    pairs; queue position ``i`` is drawn in the ``i``-th pair.
    """
    order = []
    direction = 1
    for row in range(len(mask) - 1, -1, -1):
        cols = [col for col, visible in enumerate(mask[row]) if visible]
        if direction == -1:
            cols.reverse()
        order.extend((row, col) for col in cols)
        if len(cols) > 1:
            direction *= -1
    return order


class IndexLayout:
    """Opaque index positions, for headless play."""

    queue_capacity = None

    def cell_position(self, row, col):
        return ("cell", row, col)

    def slot_position(self, slot):
        return ("slot", slot)

    def queue_position(self, index):
        return ("queue", index)

    def exit_position(self, slot):
        return ("exit", slot)


class ScreenLayout:
    """Pixel centers for the three stacked areas: queue, slots, grid."""

    EXIT_RISE = 200

    def __init__(self, width, height, grid_size, vacancy, people_mask=PEOPLE_MASK,
                 cell_size=40, margin=20):
        self.cell_size = cell_size
        self.grid_size = grid_size
        self.vacancy = vacancy
        self.people_mask = people_mask
        self.people_rows = len(people_mask)
        self.people_cols = len(people_mask[0])
        self.queue_cells = snake_index_map(people_mask)

        total_w = max(grid_size, vacancy, self.people_cols) * cell_size
        total_h = (self.people_rows + 1 + grid_size) * cell_size + 2 * margin
        start_x = (width - total_w) // 2
        top = (height - total_h) // 2

        self.people_origin = (start_x + (total_w - self.people_cols * cell_size) // 2, top)
        slots_y = top + self.people_rows * cell_size + margin
        self.slot_origin = (start_x + (total_w - vacancy * cell_size) // 2, slots_y)
        grid_y = slots_y + cell_size + margin
        self.grid_origin = (start_x + (total_w - grid_size * cell_size) // 2, grid_y)

    @property
    def queue_capacity(self):
        return len(self.queue_cells)

    def _center(self, origin, row, col):
        x0, y0 = origin
        half = self.cell_size / 2
        return (x0 + col * self.cell_size + half, y0 + row * self.cell_size + half)

    def cell_position(self, row, col):
        return self._center(self.grid_origin, row, col)

    def slot_position(self, slot):
        return self._center(self.slot_origin, 0, slot)

    def queue_position(self, index):
        # Positions past the end of the snake collapse onto its last cell.
        index = min(index, len(self.queue_cells) - 1)
        row, col = self.queue_cells[index]
        return self._center(self.people_origin, row, col)

    def exit_position(self, slot):
        x, y = self.slot_position(slot)
        return (x, y - self.EXIT_RISE)

    def cell_rect(self, origin, row, col):
        x0, y0 = origin
        return (x0 + col * self.cell_size, y0 + row * self.cell_size, self.cell_size, self.cell_size)
