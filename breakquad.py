#!/usr/bin/env python3
#
# Copyright (c) 2025, 7th software Ltd.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations
import argparse
import pygame
import traceback
import numpy as np
from enum import Enum
from typing import NamedTuple, Optional, Sequence


class Rect(NamedTuple):
    """Axis-aligned rectangle, `(x, y)` is the top-left corner."""

    x: float
    y: float
    w: float
    h: float


class Circle(NamedTuple):
    """Circle, `(x, y)` is the centre."""

    x: float
    y: float
    r: float


def circle_rectangle_collision(c: Circle, r: Rect) -> bool:
    """
    Test whether a circle overlaps a rectangle.

    Args:
        c: The circle.
        r: The rectangle.

    Returns:
        bool: True if the shapes touch or overlap (the boundary counts as touching), else False.
    """

    half_w, half_h = r.w / 2, r.h / 2

    # Distances between the circle centre and the rectangle centre on each axis
    dist_x = abs(c.x - (r.x + half_w))
    dist_y = abs(c.y - (r.y + half_h))

    # Too far apart on at least one axis
    if dist_x > half_w + c.r:
        return False
    if dist_y > half_h + c.r:
        return False

    # The centre lies within the rectangle's band on at least one axis
    if dist_x <= half_w:
        return True
    if dist_y <= half_h:
        return True

    # Otherwise the only candidate is the nearest corner
    dx = dist_x - half_w
    dy = dist_y - half_h
    return dx * dx + dy * dy <= c.r * c.r


def circle_rectangles_collision(c: Circle, rects: np.ndarray | Sequence[Rect]) -> np.ndarray:
    """
    Vectorised form of `circle_rectangle_collision()` over many rectangles at once.

    Args:
        c: The circle.
        rects: Array-like of shape (N, 4) holding `(x, y, w, h)` rows.

    Returns:
        np.ndarray: Boolean array of length N, element-wise identical to the scalar test.
    """

    rects = np.asarray(rects, dtype=np.float64).reshape(-1, 4)
    half_w = rects[:, 2] / 2
    half_h = rects[:, 3] / 2

    dist_x = np.abs(c.x - (rects[:, 0] + half_w))
    dist_y = np.abs(c.y - (rects[:, 1] + half_h))

    far = (dist_x > half_w + c.r) | (dist_y > half_h + c.r)
    band = (dist_x <= half_w) | (dist_y <= half_h)
    dx = dist_x - half_w
    dy = dist_y - half_h
    corner = dx * dx + dy * dy <= c.r * c.r

    return ~far & (band | corner)


class Action(Enum):
    NONE = "none"
    MOVE_LEFT = "move-left"
    MOVE_RIGHT = "move-right"
    SET_X = "set-x"


class InputAction(NamedTuple):
    """One resolved paddle action per frame. `x` is only meaningful for `Action.SET_X`."""

    kind: Action = Action.NONE
    x: float = 0.0


class Controls(NamedTuple):
    """Snapshot of the player's input for a single frame, as polled by the backend."""

    quit: bool = False
    left: bool = False
    right: bool = False
    launch: bool = False
    restart: bool = False
    pointer: Optional[tuple[float, float]] = None


class PaddleBounce(Enum):
    # Reflect on any overlap with the paddle
    ALWAYS = "always"

    # Reflect only once the ball's bottom is below the paddle top and the ball lies within the paddle span
    POSITIONAL = "positional"


class Paddle():
    # Size of the paddle (pixels)
    width: float = 128
    height: float = 18

    # Distance moved by a single discrete move (pixels per frame)
    step: float = 10

    # Distance from the bottom of the screen to the paddle's vertical centre
    floor_offset: float = 64

    def __init__(self, screen_width: float, screen_height: float) -> None:
        """
        Create the player's paddle, horizontally centred near the bottom of the screen.

        Args:
            screen_width: Width of the playing area in pixels.
            screen_height: Height of the playing area in pixels.
        """

        self.screen_width = screen_width
        self.screen_height = screen_height
        self.w = type(self).width
        self.h = type(self).height
        self.colour = Graphics.colours['blue']
        self.x, self.y = self.home()  # Top-left corner (pixels)

    def home(self) -> tuple[float, float]:
        """Initial top-left position of the paddle."""

        x = self.screen_width / 2 - self.w / 2
        y = self.screen_height - type(self).floor_offset - self.h / 2
        return x, y

    def rect(self) -> Rect:
        """Rectangle used for collision tests and drawing."""

        return Rect(self.x, self.y, self.w, self.h)

    def centre_x(self) -> float:
        return self.x + self.w / 2

    def update(self, action: InputAction) -> None:
        """
        Apply a single resolved input action, then keep the paddle on screen.

        Args:
            action: Discrete moves shift the paddle by `step`; `Action.SET_X` centres it on `action.x`.
        """

        if action.kind is Action.MOVE_LEFT:
            self.x -= type(self).step
        elif action.kind is Action.MOVE_RIGHT:
            self.x += type(self).step
        elif action.kind is Action.SET_X:
            self.x = action.x - self.w / 2

        self.x = max(0.0, min(self.x, self.screen_width - self.w))

    def reset(self) -> None:
        """Move the paddle back to its starting position. Size and colour are left alone."""

        self.x, self.y = self.home()

    def draw(self, surface: pygame.Surface) -> None:
        pygame.draw.rect(surface, self.colour, pygame.Rect(int(self.x), int(self.y), int(self.w), int(self.h)))


class Ball():
    # Radius of the ball (pixels)
    radius: float = 18

    # Pixels moved per frame along each axis
    speed: float = 10

    # Launch direction: right and up
    start_direction: tuple[int, int] = (1, -1)

    def __init__(self, x: float, y: float) -> None:
        """
        Create a ball resting on a surface.

        Args:
            x: Horizontal centre position in pixels.
            y: Vertical position of the surface the ball rests on, in pixels.
        """

        self.x = x                  # Horizontal centre of ball (pixels)
        self.y = y - self.r         # Vertical centre of ball (pixels)
        self.vx, self.vy = type(self).start_direction  # Direction of travel, each component is +1 or -1
        self.colour = Graphics.colours['red']

    @property
    def r(self) -> float:
        """Radius of the ball."""

        return type(self).radius

    @property
    def velocity(self) -> tuple[float, float]:
        """Displacement applied per frame while in flight."""

        return self.vx * type(self).speed, self.vy * type(self).speed

    def circle(self) -> Circle:
        return Circle(self.x, self.y, self.r)

    def advance(self) -> None:
        """Move the ball one frame along its current direction."""

        dx, dy = self.velocity
        self.x += dx
        self.y += dy

    def follow_paddle(self, centre_x: float, top_y: float) -> None:
        """
        Sit the ball on top of the paddle.

        Args:
            centre_x: Horizontal centre of the paddle in pixels.
            top_y: Top edge of the paddle in pixels.
        """

        self.x = centre_x
        self.y = top_y - self.r

    def reflect_x(self) -> None:
        self.vx = -self.vx

    def reflect_y(self) -> None:
        self.vy = -self.vy

    def reset(self) -> None:
        """
        Restore the launch direction.

        Notes:
            Position is untouched; the ball snaps back onto the paddle on the next frame it is not launched.
        """

        self.vx, self.vy = type(self).start_direction

    def draw(self, surface: pygame.Surface) -> None:
        pygame.draw.circle(surface, self.colour, (round(self.x), round(self.y)), int(self.r))


class Block(NamedTuple):
    rect: Rect
    colour: tuple[int, int, int]


class BlockField():
    # Horizontal pitch of the block grid, including the gutter (pixels)
    quad_width: float = 96
    quad_height: float = 28

    # Gap left between neighbouring blocks (pixels)
    gutter: float = 4

    # Vertical position of the top edge of the row (pixels)
    top: float = 32

    # Score awarded per destroyed block
    points: int = 100

    @classmethod
    def generate(cls, screen_width: float) -> list[Block]:
        """
        Lay out a fresh row of blocks, centred horizontally.

        Args:
            screen_width: Width of the playing area in pixels.

        Returns:
            list[Block]: Blocks from left to right. The same width always produces the same layout.
        """

        columns = int(screen_width / cls.quad_width) - 1
        left_margin = (screen_width - cls.quad_width * columns) / 2

        w = cls.quad_width - cls.gutter
        h = cls.quad_height
        colour = Graphics.colours['green']

        blocks = []
        for column in range(columns):
            x = left_margin + cls.quad_width * column
            blocks.append(Block(Rect(x, cls.top, w, h), colour))
        return blocks

    def __init__(self, screen_width: float) -> None:
        self.screen_width = screen_width
        self.blocks = type(self).generate(screen_width)

    def __len__(self) -> int:
        return len(self.blocks)

    def regenerate(self) -> None:
        """Replace the live blocks with a complete new row."""

        self.blocks = type(self).generate(self.screen_width)

    def rects(self) -> np.ndarray:
        """Live block rectangles as an (N, 4) array of `(x, y, w, h)` rows."""

        return np.array([block.rect for block in self.blocks], dtype=np.float64).reshape(-1, 4)

    def sweep(self, circle: Circle) -> int:
        """
        Remove every block the circle touches.

        Args:
            circle: The ball's collision circle.

        Returns:
            int: Number of blocks removed. Any number of blocks can go in a single sweep.
        """

        if not self.blocks:
            return 0

        hits = circle_rectangles_collision(circle, self.rects())
        self.blocks = [block for block, hit in zip(self.blocks, hits) if not hit]

        return int(np.count_nonzero(hits))

    def draw(self, surface: pygame.Surface) -> None:
        for block in self.blocks:
            x, y, w, h = block.rect
            pygame.draw.rect(surface, block.colour, pygame.Rect(int(x), int(y), int(w), int(h)))


class GameState():
    def __init__(
        self,
        screen_width: float = 640,
        screen_height: float = 480,
        paddle_bounce: PaddleBounce | str = PaddleBounce.ALWAYS,
        pointer: tuple[float, float] | None = None,
    ) -> None:
        """
        Create the whole mutable world for a game session.

        Args:
            screen_width: Width of the playing area in pixels.
            screen_height: Height of the playing area in pixels.
            paddle_bounce: How the ball responds to touching the paddle.
            pointer: Pointer position at start-up. Pointer movement is detected relative to this.
        """

        self.screen_width = screen_width
        self.screen_height = screen_height
        self.paddle_bounce = PaddleBounce(paddle_bounce)

        self.paddle = Paddle(screen_width, screen_height)
        self.ball = Ball(self.paddle.centre_x(), self.paddle.y)
        self.field = BlockField(screen_width)

        self.launched = False   # True while the ball is in free flight
        self.score = 0
        self.pointer = pointer  # Pointer position seen on the previous frame

        # Transitions that happened during the latest frame ("launch", "restart", "miss")
        self.events: list[str] = []

    def reset_round(self) -> None:
        """Put the ball back on the paddle, recentre the paddle and rebuild the blocks. Score is kept."""

        self.launched = False
        self.paddle.reset()
        self.ball.reset()
        self.field.regenerate()


def resolve_action(state: GameState, controls: Controls) -> InputAction:
    """
    Turn this frame's controls into a single paddle action, launching or restarting on the way.

    Args:
        state: The game state. `launched`, `pointer` and (on restart) the entities may be updated.
        controls: This frame's input.

    Returns:
        InputAction: The action to apply to the paddle.

    Behaviour:
        - Priority is move left, move right, launch (only while the ball is on the paddle), then restart.
        - Pointer movement since the previous frame replaces whatever action was chosen.
    """

    action = InputAction()
    if controls.left:
        action = InputAction(Action.MOVE_LEFT)
    elif controls.right:
        action = InputAction(Action.MOVE_RIGHT)
    elif not state.launched and controls.launch:
        state.launched = True
        state.events.append("launch")
    elif controls.restart:
        state.reset_round()
        state.events.append("restart")

    if controls.pointer is not None and controls.pointer != state.pointer:
        action = InputAction(Action.SET_X, controls.pointer[0])
        state.pointer = controls.pointer

    return action


def check_walls(state: GameState) -> None:
    """
    Bounce the ball off the side and top walls, or end the round if it fell off the bottom.

    Only the first matching condition applies: sides, then top, then bottom.
    """

    ball = state.ball
    if ball.x - ball.r <= 0 or state.screen_width <= ball.x + ball.r:
        ball.reflect_x()
    elif ball.y - ball.r <= 0:
        ball.reflect_y()
    elif state.screen_height <= ball.y:
        state.reset_round()
        state.events.append("miss")


def check_paddle(state: GameState) -> bool:
    """
    Bounce the ball off the paddle.

    Returns:
        bool: True if the ball was reflected.
    """

    ball, paddle = state.ball, state.paddle
    if state.paddle_bounce is PaddleBounce.POSITIONAL:
        touching = (
            paddle.y < ball.y + ball.r
            and paddle.x < ball.x
            and ball.x + ball.r < paddle.x + paddle.w
        )
    else:
        touching = circle_rectangle_collision(ball.circle(), paddle.rect())

    if not touching:
        return False

    ball.reflect_y()
    return True


def check_blocks(state: GameState) -> int:
    """Destroy the blocks the ball touches and score them. Returns the number destroyed."""

    removed = state.field.sweep(state.ball.circle())
    state.score += removed * BlockField.points
    return removed


def update(state: GameState, controls: Controls) -> GameState:
    """
    Advance the game by one frame.

    Args:
        state: The game state, updated in place.
        controls: This frame's input. Quitting is the caller's concern and is not looked at here.

    Returns:
        GameState: The same state object, for chaining.
    """

    state.events = []

    # Input first, then movement, then collisions (walls, paddle, blocks) in that order
    action = resolve_action(state, controls)
    state.paddle.update(action)

    if state.launched:
        state.ball.advance()
    else:
        state.ball.follow_paddle(state.paddle.centre_x(), state.paddle.y)

    check_walls(state)
    check_paddle(state)
    check_blocks(state)

    return state


class Graphics():
    colours = {
        'black': (0, 0, 0),
        'white': (255, 255, 255),
        'blue': (0, 121, 241),
        'red': (230, 41, 55),
        'green': (0, 228, 48),
    }

    def __init__(self, width: int, height: int, title: str = "Break Quad") -> None:
        """
        Open the game window.

        Args:
            width: Window width in pixels.
            height: Window height in pixels.
            title: Window caption.

        Raises:
            RuntimeError: If no displays are available, which implies a headless environment.
        """

        if pygame.display.get_num_displays() == 0:
            raise RuntimeError("Break Quad cannot run on a headless system")

        self.window_width, self.window_height = width, height
        print(f"Resolution {self.window_width}x{self.window_height}")

        # Fixed size window
        self.display = pygame.display.set_mode((self.window_width, self.window_height))
        pygame.display.set_caption(title)

        self.font = pygame.font.Font(None, 32)
        self.clock = pygame.time.Clock()

    def get_mouse_pos(self) -> tuple[int, int]:
        """
        Query the current mouse position.

        Returns:
            tuple[int, int]: (x, y) in window pixels.
        """

        return pygame.mouse.get_pos()

    def poll_controls(self) -> Controls:
        """
        Drain pending events and sample the keyboard and mouse.

        Returns:
            Controls: The player's input for this frame.
        """

        quitting = launch = restart = False
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                quitting = True
            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                launch = True
            elif event.type == pygame.KEYUP and event.key == pygame.K_r:
                restart = True

        keys = pygame.key.get_pressed()
        return Controls(
            quit=quitting or bool(keys[pygame.K_ESCAPE]),
            left=bool(keys[pygame.K_a] or keys[pygame.K_LEFT]),
            right=bool(keys[pygame.K_d] or keys[pygame.K_RIGHT]),
            launch=launch or bool(keys[pygame.K_SPACE]),
            restart=restart,
            pointer=self.get_mouse_pos(),
        )

    def draw_state(self, state: GameState, surface: pygame.Surface | None = None) -> None:
        """
        Draw a complete frame.

        Args:
            state: The game state to show.
            surface: Target surface. Defaults to the window.
        """

        if surface is None:
            surface = self.display

        surface.fill(Graphics.colours['black'])
        state.field.draw(surface)
        state.paddle.draw(surface)
        state.ball.draw(surface)

        # Score, with its baseline at the same height as its left margin
        text = self.font.render(f"Score {state.score}", True, Graphics.colours['white'])
        surface.blit(text, (24, 24 - self.font.get_ascent()))

    def display_frame(self, fps: int = 60) -> None:
        """
        Present the frame and wait for the next one.

        Args:
            fps: Maximum frame rate.
        """

        pygame.display.flip()
        self.clock.tick(fps)


def game_loop(state: GameState, gfx: Graphics, fps: int = 60, verbose: bool = False) -> int:
    """
    Run frames until the player quits.

    Args:
        state: The game state to drive.
        gfx: Backend that supplies input and presents frames.
        fps: Maximum frame rate.
        verbose: Print each state transition and every score change.

    Returns:
        int: Number of frames played.
    """

    frames = 0
    while True:
        controls = gfx.poll_controls()
        if controls.quit:
            return frames

        score = state.score
        update(state, controls)
        frames += 1

        if verbose:
            for event in state.events:
                print(f"Frame {frames}: {event}")
            if state.score != score:
                print(f"Frame {frames}: score {state.score}")

        gfx.draw_state(state)
        gfx.display_frame(fps=fps)


def positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"{value} is not a positive integer")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Break Quad. Keep the ball in play and clear the blocks."
    )
    parser.add_argument("--width", "-W", type=positive_int, default=640,
                        help="Window width in pixels. Default: 640")
    parser.add_argument("--height", "-H", type=positive_int, default=480,
                        help="Window height in pixels. Default: 480")
    parser.add_argument("--fps", "-f", type=positive_int, default=60,
                        help="Maximum frame rate. Default: 60")
    parser.add_argument("--paddle-bounce", "-p", choices=[mode.value for mode in PaddleBounce],
                        default=PaddleBounce.ALWAYS.value,
                        help="'always' reflects on any paddle contact, 'positional' only reflects a ball whose "
                             "bottom is below the paddle top and which lies within the paddle span. "
                             "Default: always")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Print state transitions and score changes.")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.width < Paddle.width:
        parser.error(f"--width must be at least {Paddle.width:g} (the paddle width)")
    if args.height < Paddle.floor_offset + Paddle.height:
        parser.error(f"--height must be at least {Paddle.floor_offset + Paddle.height:g}")

    # Initialise pygame
    pygame.init()

    try:
        gfx = Graphics(args.width, args.height)
        state = GameState(
            args.width,
            args.height,
            paddle_bounce=args.paddle_bounce,
            pointer=gfx.get_mouse_pos(),
        )
        frames = game_loop(state, gfx, fps=args.fps, verbose=args.verbose)
        if args.verbose:
            print(f"Quit after {frames} frames with score {state.score}")
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    except Exception:
        # Print the full traceback like the default handler
        traceback.print_exc()
        return 1
    finally:
        pygame.quit()

    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
