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

import random

import pygame
import pytest

from breakquad import (
    Action,
    Ball,
    BlockField,
    Circle,
    Graphics,
    InputAction,
    Paddle,
    Rect,
)


# ----------------------------------- Paddle -----------------------------------------

def test_paddle_starts_centred_near_the_bottom():
    paddle = Paddle(640, 480)
    assert paddle.rect() == Rect(256, 407, 128, 18)
    assert paddle.centre_x() == 320


@pytest.mark.parametrize("kind, expected", [
    (Action.NONE, 256),
    (Action.MOVE_LEFT, 246),
    (Action.MOVE_RIGHT, 266),
])
def test_paddle_discrete_moves(kind, expected):
    paddle = Paddle(640, 480)
    paddle.update(InputAction(kind))
    assert paddle.x == expected


def test_paddle_set_x_centres_on_the_pointer():
    paddle = Paddle(640, 480)
    paddle.update(InputAction(Action.SET_X, 100))
    assert paddle.x == 36


@pytest.mark.parametrize("x, expected", [(10, 0), (-500, 0), (639, 512), (10_000, 512)])
def test_paddle_set_x_is_clamped(x, expected):
    paddle = Paddle(640, 480)
    paddle.update(InputAction(Action.SET_X, x))
    assert paddle.x == expected


def test_paddle_stays_on_screen_for_any_sequence_of_moves():
    rng = random.Random(1234)
    paddle = Paddle(640, 480)
    kinds = [Action.NONE, Action.MOVE_LEFT, Action.MOVE_RIGHT, Action.SET_X]

    for _ in range(2000):
        kind = rng.choice(kinds)
        paddle.update(InputAction(kind, rng.uniform(-200, 840)))
        assert 0 <= paddle.x <= 640 - paddle.w


def test_paddle_reset_restores_position_only():
    paddle = Paddle(640, 480)
    for _ in range(40):
        paddle.update(InputAction(Action.MOVE_LEFT))
    assert paddle.x == 0

    paddle.reset()
    assert (paddle.x, paddle.y) == (256, 407)
    assert (paddle.w, paddle.h) == (128, 18)
    assert paddle.colour == Graphics.colours['blue']


# ------------------------------------ Ball ------------------------------------------

def test_ball_rests_on_the_given_surface():
    ball = Ball(320, 407)
    assert ball.circle() == Circle(320, 389, 18)
    assert (ball.vx, ball.vy) == (1, -1)
    assert ball.velocity == (10, -10)


def test_ball_advances_one_step_per_call():
    ball = Ball(320, 407)
    ball.advance()
    assert (ball.x, ball.y) == (330, 379)
    ball.advance()
    assert (ball.x, ball.y) == (340, 369)


def test_ball_reflections_only_flip_signs():
    ball = Ball(320, 407)
    ball.reflect_x()
    assert ball.velocity == (-10, -10)
    ball.reflect_y()
    assert ball.velocity == (-10, 10)
    ball.reflect_x()
    ball.reflect_x()
    assert ball.velocity == (-10, 10)


def test_ball_follows_the_paddle():
    ball = Ball(320, 407)
    ball.advance()
    ball.follow_paddle(100, 300)
    assert (ball.x, ball.y) == (100, 282)


def test_ball_reset_restores_direction_but_not_position():
    ball = Ball(320, 407)
    ball.reflect_x()
    ball.reflect_y()
    ball.advance()
    position = (ball.x, ball.y)

    ball.reset()
    assert (ball.vx, ball.vy) == (1, -1)
    assert (ball.x, ball.y) == position


# ----------------------------------- Blocks -----------------------------------------

def test_block_layout_for_640_wide_screen():
    blocks = BlockField.generate(640)
    assert [block.rect for block in blocks] == [
        Rect(80, 32, 92, 28),
        Rect(176, 32, 92, 28),
        Rect(272, 32, 92, 28),
        Rect(368, 32, 92, 28),
        Rect(464, 32, 92, 28),
    ]
    assert all(block.colour == Graphics.colours['green'] for block in blocks)


def test_block_layout_is_deterministic():
    assert BlockField.generate(800) == BlockField.generate(800)
    assert len(BlockField.generate(800)) == 7


def test_narrow_screen_has_no_blocks():
    assert BlockField.generate(150) == []


def test_sweep_removes_every_touching_block():
    field = BlockField(640)

    # Straddles the gap between the first two blocks
    removed = field.sweep(Circle(174, 46, 18))

    assert removed == 2
    assert [block.rect.x for block in field.blocks] == [272, 368, 464]


def test_sweep_keeps_order_and_misses():
    field = BlockField(640)
    assert field.sweep(Circle(320, 300, 18)) == 0
    assert len(field) == 5

    assert field.sweep(Circle(318, 46, 18)) == 1
    assert [block.rect.x for block in field.blocks] == [80, 176, 368, 464]


def test_sweep_on_an_empty_field():
    field = BlockField(640)
    field.blocks = []
    assert field.sweep(Circle(126, 46, 18)) == 0


def test_regenerate_restores_the_full_row():
    field = BlockField(640)
    field.sweep(Circle(174, 46, 18))
    field.regenerate()
    assert field.blocks == BlockField.generate(640)


# ---------------------------------- Drawing -----------------------------------------

def colour_at(surface: pygame.Surface, x: int, y: int) -> tuple[int, int, int]:
    return tuple(surface.get_at((x, y)))[:3]


def test_entities_draw_in_their_colours():
    surface = pygame.Surface((640, 480))
    paddle = Paddle(640, 480)
    ball = Ball(paddle.centre_x(), paddle.y)
    field = BlockField(640)

    paddle.draw(surface)
    ball.draw(surface)
    field.draw(surface)

    assert colour_at(surface, 300, 416) == Graphics.colours['blue']
    assert colour_at(surface, 320, 389) == Graphics.colours['red']
    assert colour_at(surface, 126, 46) == Graphics.colours['green']

    # Gutter between blocks is left clear
    assert colour_at(surface, 174, 46) == Graphics.colours['black']
