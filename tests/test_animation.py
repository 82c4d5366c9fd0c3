import math

import numpy as np
import pytest

from motion_dsl import (
    AnimationGroup,
    BounceAnimation,
    Circle,
    Color,
    ColorAnimation,
    ElasticAnimation,
    FadeInAnimation,
    FadeOutAnimation,
    Interpolation,
    MoveAnimation,
    PathAnimation,
    RotateAnimation,
    ScaleAnimation,
    WaitAnimation,
    interpolate,
)
from motion_dsl import bounce_ease_out, ease, elastic_ease_out

RED = Color(255, 0, 0)

BUILDERS = {
    "move": lambda c: MoveAnimation(c, (4, 2), 1.0),
    "scale": lambda c: ScaleAnimation(c, 2.0, 1.0),
    "rotate": lambda c: RotateAnimation(c, 1.0, 1.0),
    "fadein": lambda c: FadeInAnimation(c, 1.0),
    "fadeout": lambda c: FadeOutAnimation(c, 1.0),
    "color": lambda c: ColorAnimation(c, RED, 1.0),
    "path": lambda c: PathAnimation(c, [(1, 1), (2, 0)], 1.0),
    "elastic": lambda c: ElasticAnimation(c, "scale", 2.0, 1.0),
    "bounce": lambda c: BounceAnimation(c, 1.0, ground=-2.0),
}


@pytest.fixture
def circle():
    shape = Circle(1.0, (0.0, 0.0))
    shape.name = "c"
    return shape


def state_of(shape):
    return shape.points.copy(), shape.color, shape.fill_opacity


def assert_same_state(a, b):
    np.testing.assert_allclose(a[0], b[0], atol=1e-9)
    assert a[1] == b[1]
    assert a[2] == pytest.approx(b[2])


@pytest.mark.parametrize("kind", sorted(BUILDERS))
def test_update_zero_reproduces_the_start(circle, kind):
    before = state_of(circle)
    animation = BUILDERS[kind](circle)
    animation.update(0.0)
    assert_same_state(state_of(circle), before)
    assert not animation.is_finished()


@pytest.mark.parametrize("kind", sorted(BUILDERS))
def test_update_is_idempotent(circle, kind):
    animation = BUILDERS[kind](circle)
    animation.update(0.4)
    first = state_of(circle)
    animation.update(0.4)
    assert_same_state(state_of(circle), first)


@pytest.mark.parametrize("kind", sorted(BUILDERS))
def test_update_one_finishes(circle, kind):
    animation = BUILDERS[kind](circle)
    animation.update(1.0)
    assert animation.is_finished()
    animation.reset()
    assert not animation.is_finished()


def test_progress_is_clamped(circle):
    animation = MoveAnimation(circle, (4, 2), 1.0)
    animation.update(3.0)
    np.testing.assert_allclose(circle.center, [4, 2], atol=1e-9)
    animation.update(-1.0)
    np.testing.assert_allclose(circle.center, [0, 0], atol=1e-9)


def test_negative_duration_is_rejected(circle):
    with pytest.raises(ValueError, match="duration"):
        MoveAnimation(circle, (1, 1), -1)


def test_move_end_state(circle):
    MoveAnimation(circle, (4, 2), 1.0).update(1.0)
    np.testing.assert_allclose(circle.center, [4, 2], atol=1e-9)
    assert circle.radius == pytest.approx(1.0)


def test_scale_and_rotate_end_states(circle):
    ScaleAnimation(circle, 2.0, 1.0).update(1.0)
    assert circle.radius == pytest.approx(2.0)

    RotateAnimation(circle, 1.0, 1.0).update(1.0)
    np.testing.assert_allclose(circle.points[0], [2 * math.cos(1.0), 2 * math.sin(1.0)], atol=1e-9)


def test_fades(circle):
    FadeInAnimation(circle, 1.0).update(1.0)
    assert circle.fill_opacity == 1.0

    circle.fill_opacity = 0.7
    fade = FadeOutAnimation(circle, 1.0)
    fade.update(0.0)
    assert circle.fill_opacity == pytest.approx(0.7)
    fade.update(1.0)
    assert circle.fill_opacity == 0.0


def test_color_channels_are_interpolated(circle):
    animation = ColorAnimation(circle, Color(255, 255, 255), 1.0)
    animation.update(0.5)
    assert circle.color == Color(128, 128, 128)
    animation.update(1.0)
    assert circle.color == Color(255, 255, 255)


def test_path_walks_segments_by_length(circle):
    animation = PathAnimation(circle, [(1, 1), (2, 0)], 1.0)
    np.testing.assert_allclose(animation.points[0], [0, 0], atol=1e-12)
    animation.update(0.5)
    np.testing.assert_allclose(circle.center, [1, 1], atol=1e-9)
    animation.update(1.0)
    np.testing.assert_allclose(circle.center, [2, 0], atol=1e-9)


def test_zero_length_path_stays_put(circle):
    animation = PathAnimation(circle, [(0, 0)], 1.0)
    animation.update(0.7)
    np.testing.assert_allclose(circle.center, [0, 0], atol=1e-12)


def test_elastic_overshoots_then_settles(circle):
    animation = ElasticAnimation(circle, "scale", 2.0, 1.0)
    animation.update(0.2)
    assert circle.radius > 2.0
    animation.update(1.0)
    assert circle.radius == pytest.approx(2.0)


def test_elastic_defaults_to_smooth_interpolation(circle):
    animation = ElasticAnimation(circle, "scale", 2.0, 1.0)
    assert animation.interpolation is Interpolation.SMOOTH


def test_elastic_position(circle):
    ElasticAnimation(circle, "x", 3.0, 1.0).update(1.0)
    np.testing.assert_allclose(circle.center, [3, 0], atol=1e-9)


def test_elastic_rejects_unknown_property(circle):
    with pytest.raises(ValueError, match="elastic property"):
        ElasticAnimation(circle, "color", 1.0, 1.0)


def test_bounce_never_passes_through_the_ground(circle):
    animation = BounceAnimation(circle, 1.0, ground=-2.0)
    assert min(animation.heights) == pytest.approx(-2.0)
    for progress in np.linspace(0, 1, 31):
        animation.update(progress)
        assert circle.center[1] >= -2.0 - 1e-6
        assert circle.center[0] == pytest.approx(0.0)


def test_bounce_comes_to_rest_on_the_ground(circle):
    animation = BounceAnimation(circle, 10.0, ground=-2.0, elasticity=0.3)
    animation.update(1.0)
    assert circle.center[1] == pytest.approx(-2.0)


def test_bounce_from_below_ground_does_not_move():
    shape = Circle(1.0, (0.0, -10.0))
    animation = BounceAnimation(shape, 1.0, ground=-4.5)
    animation.update(0.5)
    np.testing.assert_allclose(shape.center, [0, -10], atol=1e-9)


def test_group_rescales_child_progress():
    a, b = Circle(1.0), Circle(1.0)
    group = AnimationGroup([MoveAnimation(a, (2, 0), 2.0), FadeInAnimation(b, 1.0)])
    assert group.duration == 2.0

    group.update(0.5)
    assert b.fill_opacity == 1.0
    assert 0.0 < a.center[0] < 2.0
    assert not group.is_finished()

    group.update(1.0)
    assert group.is_finished()
    np.testing.assert_allclose(a.center, [2, 0], atol=1e-9)


def test_scale_composes_with_concurrent_move(circle):
    group = AnimationGroup([MoveAnimation(circle, (3, 0), 1.0), ScaleAnimation(circle, 2.0, 1.0)])
    group.update(1.0)
    np.testing.assert_allclose(circle.center, [3, 0], atol=1e-9)
    assert circle.radius == pytest.approx(2.0)


def test_wait_has_no_target():
    wait = WaitAnimation(0.5)
    wait.update(1.0)
    assert wait.target is None
    assert wait.is_finished()


@pytest.mark.parametrize("kind", list(Interpolation))
def test_easing_endpoints_are_exact(kind):
    assert ease(kind, 0.0) == 0.0
    assert ease(kind, 1.0) == 1.0
    assert interpolate(kind, 2.0, 5.0, 1.0) == 5.0
    np.testing.assert_array_equal(interpolate(kind, np.zeros(2), np.ones(2), 1.0), np.ones(2))


def test_easing_curves():
    assert ease(Interpolation.LINEAR, 0.25) == 0.25
    assert ease(Interpolation.SMOOTH, 0.5) == 0.5
    assert ease(Interpolation.EASE_IN, 0.5) == 0.25
    assert ease(Interpolation.EASE_OUT, 0.5) == 0.75
    assert ease(Interpolation.EASE_IN_OUT, 0.25) == 0.125
    assert elastic_ease_out(0.2) == pytest.approx(1.125)
    assert bounce_ease_out(1.0) == pytest.approx(1.0)


def test_interpolation_names():
    assert Interpolation.from_name("EaseInOut") is Interpolation.EASE_IN_OUT
    assert Interpolation.from_name("ease_in") is Interpolation.EASE_IN
    with pytest.raises(ValueError, match="unknown interpolation"):
        Interpolation.from_name("wobble")
