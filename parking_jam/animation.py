"""Presentation side of the puzzle: animations and their continuations.

The engine hands every animation an ``on_complete`` callback and never looks
at the result. A presenter guarantees each animation finishes exactly once and
that callbacks run in the order the animations finish.
"""

from __future__ import annotations

from collections import deque

from parking_jam.layout import IndexLayout


class Join:
    """Run ``then`` once every key in ``keys`` has signalled completion.

    Each parallel animation gets its own ``signal(key)`` callback. Call
    ``wait()`` after all of them are registered so an empty join still fires.
    """

    def __init__(self, keys, then):
        self._pending = set(keys)
        self._then = then
        self._fired = False

    def signal(self, key):
        def done():
            self._pending.discard(key)
            self._maybe_fire()
        return done

    def wait(self):
        self._maybe_fire()

    @property
    def done(self):
        return self._fired

    def _maybe_fire(self):
        if self._pending or self._fired:
            return
        self._fired = True
        self._then()


class Presenter:
    """Base presenter. Positions come from ``layout``; subclasses animate."""

    def __init__(self, layout=None):
        self.layout = layout if layout is not None else IndexLayout()

    def cell_position(self, row, col):
        return self.layout.cell_position(row, col)

    def slot_position(self, slot):
        return self.layout.slot_position(slot)

    def queue_position(self, index):
        return self.layout.queue_position(index)

    def exit_position(self, slot):
        return self.layout.exit_position(slot)

    def animate_move(self, ref, from_pos, to_pos, duration_ms, on_complete):
        raise NotImplementedError

    def animate_fade_out(self, ref, duration_ms, on_complete):
        raise NotImplementedError

    def place(self, ref, pos):
        """Show ``ref`` at ``pos`` without animating it."""

    def release(self, ref):
        """Forget ``ref``; it has left the board."""


class ImmediatePresenter(Presenter):
    """Completes every animation at once and records what was asked of it.

    Completions are run from a queue rather than recursively, so long boarding
    chains do not grow the stack.
    """

    def __init__(self, layout=None):
        super().__init__(layout)
        self.calls = []
        self.released = []
        self._completions = deque()
        self._draining = False

    def animate_move(self, ref, from_pos, to_pos, duration_ms, on_complete):
        self.calls.append(("move", ref, from_pos, to_pos, duration_ms))
        self._finish(on_complete)

    def animate_fade_out(self, ref, duration_ms, on_complete):
        self.calls.append(("fade", ref, duration_ms))
        self._finish(on_complete)

    def release(self, ref):
        self.released.append(ref)

    def _finish(self, on_complete):
        self._completions.append(on_complete)
        if self._draining:
            return
        self._draining = True
        try:
            while self._completions:
                self._completions.popleft()()
        except Exception:
            self._completions.clear()
            raise
        finally:
            self._draining = False


class Tween:
    def __init__(self, ref, prop, start, end, duration_ms, on_complete):
        self.ref = ref
        self.prop = prop
        self.start = start
        self.end = end
        self.duration_ms = max(1, duration_ms)
        self.elapsed_ms = 0
        self.on_complete = on_complete

    @property
    def progress(self):
        return min(1.0, self.elapsed_ms / self.duration_ms)

    @property
    def finished(self):
        return self.elapsed_ms >= self.duration_ms

    def value(self):
        t = self.progress
        if self.prop == "pos":
            (x1, y1), (x2, y2) = self.start, self.end
            return (x1 + (x2 - x1) * t, y1 + (y2 - y1) * t)
        return self.start + (self.end - self.start) * t


class TweenAnimator(Presenter):
    """Frame-stepped linear tweens of position and alpha.

    ``update(dt_ms)`` advances every running tween; the continuations of the
    tweens that finished during that frame run afterwards, in start order.
    """

    def __init__(self, layout):
        super().__init__(layout)
        self.positions = {}
        self.alphas = {}
        self.tweens = []

    @property
    def busy(self):
        return bool(self.tweens)

    def position_of(self, ref, default=None):
        return self.positions.get(ref, default)

    def alpha_of(self, ref):
        return self.alphas.get(ref, 255)

    def moving_refs(self):
        return [t.ref for t in self.tweens if t.prop == "pos"]

    def animate_move(self, ref, from_pos, to_pos, duration_ms, on_complete):
        self.positions[ref] = from_pos
        self.tweens.append(Tween(ref, "pos", from_pos, to_pos, duration_ms, on_complete))

    def animate_fade_out(self, ref, duration_ms, on_complete):
        self.tweens.append(Tween(ref, "alpha", self.alpha_of(ref), 0, duration_ms, on_complete))

    def place(self, ref, pos):
        self.positions[ref] = pos

    def release(self, ref):
        self.positions.pop(ref, None)
        self.alphas.pop(ref, None)

    def update(self, dt_ms):
        finished = []
        for tween in self.tweens[:]:
            tween.elapsed_ms += dt_ms
            if tween.prop == "pos":
                self.positions[tween.ref] = tween.value()
            else:
                self.alphas[tween.ref] = int(tween.value())
            if tween.finished:
                self.tweens.remove(tween)
                finished.append(tween)

        for tween in finished:
            if tween.on_complete:
                tween.on_complete()
        return len(finished)
