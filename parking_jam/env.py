import gymnasium as gym
from gymnasium.spaces import MultiDiscrete
import numpy as np
import pygame
import pygame.gfxdraw
import logging
import os

from parking_jam.animation import TweenAnimator
from parking_jam.board import Board, Passenger
from parking_jam.engine import PuzzleEngine
from parking_jam.layout import ScreenLayout
from parking_jam.levels import Level, get_level

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")

_logger = logging.getLogger(__name__)


class GameEnv(gym.Env):
    metadata = {"render_modes": ["rgb_array"]}

    user_guide = (
        "Controls: Use arrow keys to move the cursor over the car park. "
        "Press space to send the car under the cursor to the first free slot."
    )

    game_description = (
        "Send cars from the lot to the parking slots. Passengers board the earliest parked car of "
        "their color, full cars drive away. Seat everyone before the slots jam up."
    )

    auto_advance = True

    # --- Constants ---
    SCREEN_WIDTH, SCREEN_HEIGHT = 640, 600
    CELL_SIZE = 40
    MARGIN = 20
    FPS = 30
    FRAME_MS = 1000 / FPS
    MAX_STEPS = 5000
    DEFAULT_LEVEL = "classic"

    # --- Rewards ---
    REWARD_BOARD = 1
    REWARD_WIN = 100
    REWARD_DEADLOCK = -10

    # --- Colors ---
    COLOR_BG = (182, 227, 182)
    COLOR_PANEL = (255, 255, 255)
    COLOR_GRID = (170, 170, 170)
    COLOR_SLOT_LINE = (204, 204, 204)
    COLOR_LABEL = (212, 56, 13)
    COLOR_OUTLINE = (255, 255, 255)
    COLOR_MOVABLE = (0, 0, 0)
    COLOR_TEXT = (34, 34, 34)
    COLOR_UI_TEXT = (30, 60, 30)
    COLOR_CURSOR = (255, 255, 0, 120)

    COLOR_MAP = {
        1: (255, 77, 79),    # Red
        2: (24, 144, 255),   # Blue
        3: (255, 224, 102),  # Yellow
        4: (82, 196, 26),    # Green
        5: (250, 140, 22),   # Orange
        6: (114, 46, 209),   # Purple
        7: (140, 140, 140),  # Gray
        8: (255, 173, 210),  # Pink
        9: (135, 232, 222),  # Light blue
    }

    def __init__(self, render_mode="rgb_array", level=None):
        super().__init__()
        self.render_mode = render_mode

        self.observation_space = gym.spaces.Box(
            low=0, high=255, shape=(self.SCREEN_HEIGHT, self.SCREEN_WIDTH, 3), dtype=np.uint8
        )
        self.action_space = MultiDiscrete([5, 2, 2])

        pygame.init()
        pygame.font.init()
        self.screen = pygame.Surface((self.SCREEN_WIDTH, self.SCREEN_HEIGHT))
        self.clock = pygame.time.Clock()
        self.font_small = pygame.font.SysFont("Arial", 12, bold=True)
        self.font_car = pygame.font.SysFont("Arial", 14, bold=True)
        self.font_ui = pygame.font.SysFont("Arial", 20, bold=True)
        self.font_game_over = pygame.font.SysFont("Arial", 48, bold=True)

        self.default_level = self._resolve_level(level if level is not None else self.DEFAULT_LEVEL)

        # Initialize state variables
        self.level = None
        self.layout = None
        self.board = None
        self.animator = None
        self.engine = None
        self.cursor_pos = None
        self.score = 0
        self.steps = 0
        self.game_over = False
        self.win_condition_met = False
        self.previous_action = np.zeros(3, dtype=np.int64)

    @staticmethod
    def _resolve_level(level):
        if isinstance(level, Level):
            return level
        if isinstance(level, dict):
            return Level.from_dict(level)
        return get_level(level)

    def reset(self, seed=None, options=None):
        super().reset(seed=seed)

        level = self.default_level
        if options and "level" in options:
            level = self._resolve_level(options["level"])
        self.level = level

        self.layout = ScreenLayout(
            self.SCREEN_WIDTH, self.SCREEN_HEIGHT, level.size, level.vacancy,
            cell_size=self.CELL_SIZE, margin=self.MARGIN,
        )
        self.board = Board.from_level(level, queue_capacity=self.layout.queue_capacity)
        self.animator = TweenAnimator(self.layout)
        self.engine = PuzzleEngine(self.board, self.animator)

        self.cursor_pos = [0, 0]
        self.score = 0
        self.steps = 0
        self.game_over = False
        self.win_condition_met = False
        self.previous_action = np.zeros(3, dtype=np.int64)
        _logger.info("Started level %s", level.name or "<custom>")

        return self._get_observation(), self._get_info()

    def step(self, action):
        if self.auto_advance:
            self.clock.tick(self.FPS)

        self.steps += 1
        reward = 0

        if not self.game_over:
            self.animator.update(self.FRAME_MS)
            reward += self._collect_rewards()
            self._handle_input(action)

        self.previous_action = action

        if not self.game_over and not self.engine.is_animating:
            if self.board.queue.exhausted:
                self.win_condition_met = True
                self.game_over = True
                reward += self.REWARD_WIN
            elif self._is_deadlocked():
                self.game_over = True
                reward += self.REWARD_DEADLOCK
        terminated = self.game_over
        truncated = not terminated and self.steps >= self.MAX_STEPS

        return (
            self._get_observation(),
            reward,
            terminated,
            truncated,
            self._get_info()
        )

    def _collect_rewards(self):
        reward = 0
        for kind, _slot, amount in self.engine.drain_events():
            if kind == "board":
                reward += self.REWARD_BOARD
                self.score += amount
            elif kind == "depart":
                reward += amount
        return reward

    def _is_deadlocked(self):
        if self.board.can_board():
            return False
        return not self.board.movable_cells()

    def _handle_input(self, action):
        movement, space_held = action[0], action[1] == 1
        prev_movement, prev_space_held = self.previous_action[0], self.previous_action[1] == 1

        space_pressed = space_held and not prev_space_held
        movement_pressed = movement != 0 and movement != prev_movement

        # --- Cursor Movement ---
        size = self.board.size
        if movement_pressed:
            if movement == 1: self.cursor_pos[1] = max(0, self.cursor_pos[1] - 1)
            elif movement == 2: self.cursor_pos[1] = min(size - 1, self.cursor_pos[1] + 1)
            elif movement == 3: self.cursor_pos[0] = max(0, self.cursor_pos[0] - 1)
            elif movement == 4: self.cursor_pos[0] = min(size - 1, self.cursor_pos[0] + 1)

        # --- Dispatch ---
        if space_pressed:
            col, row = self.cursor_pos
            self.engine.dispatch(row, col)

    def _get_observation(self):
        self.screen.fill(self.COLOR_BG)
        self._render_game()
        self._render_ui()

        arr = pygame.surfarray.array3d(self.screen)
        return np.transpose(arr, (1, 0, 2)).astype(np.uint8)

    def render(self):
        if self.render_mode == "rgb_array":
            return self._get_observation()

    def _render_game(self):
        if self.board is None:
            return
        self._render_people_area()
        self._render_slots()
        self._render_grid()

    def _render_people_area(self):
        layout = self.layout
        x0, y0 = layout.people_origin
        size = layout.cell_size
        width, height = layout.people_cols * size, layout.people_rows * size
        pygame.draw.rect(self.screen, self.COLOR_PANEL, (x0, y0, width, height), border_radius=10)

        numbers = {cell: index + 1 for index, cell in enumerate(layout.queue_cells)}
        for row in range(layout.people_rows):
            for col in range(layout.people_cols):
                rect = layout.cell_rect(layout.people_origin, row, col)
                if not layout.people_mask[row][col]:
                    pygame.draw.rect(self.screen, self.COLOR_BG, rect)
                    continue
                pygame.draw.rect(self.screen, self.COLOR_SLOT_LINE, rect, 1)
                self._draw_label(str(numbers[(row, col)]), rect)

        for index, passenger in enumerate(self.board.queue):
            pos = self.animator.position_of(passenger, layout.queue_position(index))
            self._draw_person(passenger, pos)

        # Passengers on their way to a car are no longer in the queue
        for ref in self.animator.moving_refs():
            if isinstance(ref, Passenger) and ref not in self.board.queue:
                self._draw_person(ref, self.animator.position_of(ref))

    def _render_slots(self):
        layout = self.layout
        for slot in range(self.board.vacancy):
            rect = layout.cell_rect(layout.slot_origin, 0, slot)
            pygame.draw.rect(self.screen, self.COLOR_PANEL, rect)
            pygame.draw.rect(self.screen, self.COLOR_SLOT_LINE, rect, 1)
            self._draw_label(str(slot + 1), rect)

        for slot, parked in self.board.parked():
            pos = self.animator.position_of(parked.vehicle, layout.slot_position(slot))
            alpha = self.animator.alpha_of(parked.vehicle)
            self._draw_car(parked.vehicle, pos, f"{parked.boarded}/{parked.capacity}", alpha=alpha)

    def _render_grid(self):
        layout = self.layout
        x0, y0 = layout.grid_origin
        span = self.board.size * layout.cell_size
        pygame.draw.rect(self.screen, self.COLOR_PANEL, (x0, y0, span, span), border_radius=12)
        for i in range(self.board.size + 1):
            offset = i * layout.cell_size
            pygame.draw.line(self.screen, self.COLOR_GRID, (x0 + offset, y0), (x0 + offset, y0 + span))
            pygame.draw.line(self.screen, self.COLOR_GRID, (x0, y0 + offset), (x0 + span, y0 + offset))

        movable = self.board.movable_mask()
        for row, col, vehicle in self.board.grid_vehicles():
            pos = self.animator.position_of(vehicle, layout.cell_position(row, col))
            self._draw_car(vehicle, pos, str(vehicle.capacity), highlight=bool(movable[row, col]))

        if not self.game_over:
            col, row = self.cursor_pos
            rect = pygame.Rect(layout.cell_rect(layout.grid_origin, row, col))
            s = pygame.Surface(rect.size, pygame.SRCALPHA)
            s.fill(self.COLOR_CURSOR)
            self.screen.blit(s, rect.topleft)

    def _draw_label(self, text, rect):
        x, y, w, _ = rect
        label = self.font_small.render(text, True, self.COLOR_LABEL)
        label.set_alpha(128)
        self.screen.blit(label, label.get_rect(topright=(x + w - 4, y + 4)))

    def _draw_person(self, passenger, pos):
        radius = (self.layout.cell_size - 20) // 2
        cx, cy = int(pos[0]), int(pos[1])
        color = self.COLOR_MAP[passenger.color_id]
        pygame.gfxdraw.filled_circle(self.screen, cx, cy, radius, color)
        pygame.gfxdraw.aacircle(self.screen, cx, cy, radius, self.COLOR_OUTLINE)

    def _draw_car(self, vehicle, pos, text, highlight=False, alpha=255):
        if alpha <= 0:
            return
        size = self.layout.cell_size - 16
        car = pygame.Surface((size, size), pygame.SRCALPHA)
        car.fill(self.COLOR_MAP[vehicle.color_id])
        pygame.draw.rect(car, self.COLOR_OUTLINE, (0, 0, size, size), 2)
        if highlight:
            pygame.draw.rect(car, self.COLOR_MOVABLE, (0, 0, size, size), 4)
        label = self.font_car.render(text, True, self.COLOR_TEXT)
        car.blit(label, label.get_rect(center=(size / 2, size / 2)))
        car.set_alpha(alpha)
        self.screen.blit(car, (int(pos[0] - size / 2), int(pos[1] - size / 2)))

    def _render_ui(self):
        if self.board is None:
            return
        score_text = self.font_ui.render(f"Seated: {self.score}", True, self.COLOR_UI_TEXT)
        self.screen.blit(score_text, (10, 10))
        waiting = len(self.board.queue) + self.board.queue.upcoming
        waiting_text = self.font_ui.render(f"Waiting: {waiting}", True, self.COLOR_UI_TEXT)
        self.screen.blit(waiting_text, (10, 36))

        if self.game_over:
            s = pygame.Surface((self.SCREEN_WIDTH, self.SCREEN_HEIGHT), pygame.SRCALPHA)
            s.fill((0, 0, 0, 150))
            self.screen.blit(s, (0, 0))

            if self.win_condition_met:
                end_text = self.font_game_over.render("ALL ABOARD!", True, (100, 255, 100))
            else:
                end_text = self.font_game_over.render("JAMMED", True, (255, 100, 100))
            text_rect = end_text.get_rect(center=(self.SCREEN_WIDTH / 2, self.SCREEN_HEIGHT / 2))
            self.screen.blit(end_text, text_rect)

    def _get_info(self):
        return {
            "score": self.score,
            "steps": self.steps,
            "queue_length": len(self.board.queue),
            "slots_free": self.board.free_slots,
            "movable": len(self.board.movable_cells()),
        }

    def close(self):
        pygame.quit()

    def validate_implementation(self):
        """Smoke-check the spaces and one reset/step round."""
        assert self.action_space.shape == (3,)
        assert self.action_space.nvec.tolist() == [5, 2, 2]

        obs, info = self.reset()
        assert obs.shape == (self.SCREEN_HEIGHT, self.SCREEN_WIDTH, 3)
        assert obs.dtype == np.uint8
        assert isinstance(info, dict)

        test_action = self.action_space.sample()
        obs, reward, term, trunc, info = self.step(test_action)
        assert obs.shape == (self.SCREEN_HEIGHT, self.SCREEN_WIDTH, 3)
        assert isinstance(reward, (int, float))
        assert isinstance(term, bool)
        assert trunc == False
        assert isinstance(info, dict)

        _logger.info("Implementation validated successfully")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    # To play the game manually
    env = GameEnv()
    obs, info = env.reset()
    done = False

    pygame.display.set_caption("Parking Jam")
    screen = pygame.display.set_mode((env.SCREEN_WIDTH, env.SCREEN_HEIGHT))

    print(env.game_description)
    print(env.user_guide)

    while not done:
        movement = 0
        space = 0

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                done = True

        keys = pygame.key.get_pressed()
        if keys[pygame.K_UP]: movement = 1
        elif keys[pygame.K_DOWN]: movement = 2
        elif keys[pygame.K_LEFT]: movement = 3
        elif keys[pygame.K_RIGHT]: movement = 4
        if keys[pygame.K_SPACE]: space = 1

        obs, reward, terminated, truncated, info = env.step([movement, space, 0])
        if reward:
            print(f"Reward: {reward}, Info: {info}")
        done = done or terminated or truncated

        frame = np.transpose(obs, (1, 0, 2))
        surf = pygame.surfarray.make_surface(frame)
        screen.blit(surf, (0, 0))
        pygame.display.flip()

    print("Game Over!")
    pygame.time.wait(2000)
    env.close()
