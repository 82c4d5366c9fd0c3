import os

import numpy as np
import pytest

from motion_dsl import (
    ANIMATION_KINDS,
    PROPERTY_NAMES,
    SHAPE_KINDS,
    Circle,
    Color,
    EvaluationError,
    Polygon,
    RecordingSurface,
    SceneEvaluator,
    Statement,
    Text,
    Triangle,
    parse_source,
)

HEADER = 'scene 800 600 "demo"\n'


# -- Acceptance scenarios ------------------------------------------------

def test_create_and_color_a_circle(run, evaluator):
    assert run(HEADER + 'create circle c1 50 (0, 0)\nset c1.color = "#FF0000"\n') is None

    c1 = evaluator.objects["c1"]
    assert isinstance(c1, Circle)
    assert c1.radius == pytest.approx(50)
    np.testing.assert_allclose(c1.center, [0, 0], atol=1e-9)
    assert c1.color == Color(255, 0, 0)


def test_move_renders_inclusive_frame_range(run, evaluator):
    assert run(HEADER + "create circle c1 1 (0, 0)\nanimate move c1 (5, 5) 1\n") is None

    frames = evaluator.scene.surface.frames
    assert len(frames) == 31
    assert frames[0][0]["center"] == pytest.approx((0, 0), abs=1e-9)
    assert frames[-1][0]["center"] == pytest.approx((5, 5))
    np.testing.assert_allclose(evaluator.objects["c1"].center, [5, 5])
    assert evaluator.elapsed_time == pytest.approx(1.0)
    assert evaluator.scene.time == pytest.approx(1.0)


def test_unknown_object_stops_execution(run, evaluator):
    error = run(HEADER + 'set unknown_obj.color = "red"\nrender\n')

    assert isinstance(error, EvaluationError)
    assert error.line == 2
    assert error.obj == "unknown_obj"
    assert "unknown object 'unknown_obj'" in str(error)
    assert evaluator.scene.surface.frames == []
    assert evaluator.diagnostics == [str(error)]


# -- Statements ----------------------------------------------------------

def test_create_requires_a_scene(run):
    error = run("create circle c 1\n")
    assert "no scene" in str(error)


def test_circle_parameter_orders(run, evaluator):
    assert run(HEADER + "create circle a (1, 2) 3\ncreate circle b 4\n") is None
    a, b = evaluator.objects["a"], evaluator.objects["b"]
    assert a.radius == pytest.approx(3)
    np.testing.assert_allclose(a.center, [1, 2])
    assert b.radius == pytest.approx(4)


def test_bad_create_arguments_are_wrapped(run):
    error = run(HEADER + "create circle c (0, 0) (1, 1)\n")
    assert "cannot create circle 'c'" in str(error)
    assert error.obj == "c"


def test_coordinates_must_be_numbers(run):
    error = run(HEADER + "create circle c 1 (x, 0)\n")
    assert "coordinate components must be numbers" in str(error)


def test_redefinition_overwrites_the_name_only(run, evaluator):
    assert run(HEADER + "create circle c 1\ncreate circle c 2\n") is None
    assert evaluator.objects["c"].radius == pytest.approx(2)
    assert len(evaluator.scene.shapes) == 2


def test_scene_replaces_scene_and_objects(run, evaluator):
    assert run(HEADER + 'create circle c 1\nscene 400 300 "second"\n') is None
    assert evaluator.objects == {}
    assert evaluator.scene.name == "second"
    assert (evaluator.scene.width, evaluator.scene.height) == (400, 300)


def test_non_positive_scene_size_falls_back(run, evaluator):
    assert run('scene 0 -5 "x"\n') is None
    assert (evaluator.scene.width, evaluator.scene.height) == (1920, 1080)
    assert run('scene 0.5 0.9 "x"\n') is None
    assert (evaluator.scene.width, evaluator.scene.height) == (1920, 1080)
    assert evaluator.scene.coords.width == 1920


def test_shape_variants(run, evaluator):
    source = HEADER + (
        "create rectangle r 4 2 (1, 1)\n"
        "create line l (0, 0) (3, 4)\n"
        "create arrow a (0, 0) (1, 0)\n"
        "create polygon p [(0, 0), (2, 0), (2, 2), (0, 2)]\n"
        'create text t "Hello" large (0, 1)\n'
        "create triangle e equilateral 2 (0, 0)\n"
        "create triangle rt right 3 4\n"
        "create triangle v (0, 0) (1, 0) (0, 1)\n"
        "create triangle s 2\n"
        "create triangle i isosceles 2 (5, 5)\n"
    )
    assert run(source) is None

    objects = evaluator.objects
    assert objects["r"].width == pytest.approx(4)
    assert objects["l"].length == pytest.approx(5)
    assert objects["a"].kind == "arrow"
    assert isinstance(objects["p"], Polygon)
    assert isinstance(objects["t"], Text) and objects["t"].font_size == 20
    assert all(isinstance(objects[n], Triangle) for n in ("e", "rt", "v", "s", "i"))
    np.testing.assert_allclose(objects["i"].center, [5, 5 - 1 / 3])


def test_unknown_triangle_type(run):
    error = run(HEADER + "create triangle t wobbly 2\n")
    assert "unknown triangle type 'wobbly'" in str(error)


def test_set_properties(run, evaluator):
    source = HEADER + (
        "create circle c 1\n"
        "create rectangle r 2 2\n"
        "create triangle t (0, 0) (1, 0) (0, 1)\n"
        'create text label "Hi" 12\n'
        "set c.size = 3\n"
        "set c.position = (4, -4)\n"
        "set c.opacity = 0.5\n"
        "set r.width = 6\n"
        "set r.height = 1\n"
        "set r.color = mathBlue\n"
        "set t.vertex2 = (5, 0)\n"
        "set label.size = huge\n"
        "set label.color = #00FF00\n"
    )
    assert run(source) is None

    c, r, t, label = (evaluator.objects[n] for n in ("c", "r", "t", "label"))
    assert c.radius == pytest.approx(3)
    np.testing.assert_allclose(c.center, [4, -4], atol=1e-9)
    assert c.fill_opacity == 0.5
    assert (r.width, r.height) == (pytest.approx(6), pytest.approx(1))
    assert r.color == Color.from_hex("#3498DB")
    np.testing.assert_allclose(t.points[1], [5, 0])
    assert label.font_size == 24
    assert label.color == Color(0, 255, 0)


def test_set_vertices(run, evaluator):
    source = HEADER + (
        "create polygon p [(0, 0), (1, 0), (0, 1)]\n"
        "set p.vertices = [(0, 0), (4, 0), (4, 4), (0, 4)]\n"
    )
    assert run(source) is None
    assert len(evaluator.objects["p"].points) == 4


def test_unsupported_property_names_kind_and_property(run):
    error = run(HEADER + "create circle c 1\nset c.width = 3\n")
    assert "property 'width' is not supported by circle 'c'" in str(error)
    assert (error.obj, error.prop) == ("c", "width")


def test_unknown_color_raises(run):
    error = run(HEADER + "create circle c 1\nset c.color = chartreuse\n")
    assert "unknown color name 'chartreuse'" in str(error)
    assert error.prop == "color"


def test_opacity_out_of_range(run):
    error = run(HEADER + "create circle c 1\nset c.opacity = 2\n")
    assert "opacity must be between 0 and 1" in str(error)


def test_loop_mutations_accumulate(run, evaluator):
    assert run(HEADER + "create circle c 1\nloop 3 {\n  animate scale c 2 0.1\n}\n") is None
    assert evaluator.objects["c"].radius == pytest.approx(8)
    assert len(evaluator.scene.surface.frames) == 3 * 4


def test_interpolation_identifier_selects_strategy(run, evaluator):
    assert run(HEADER + "create circle c 1\nanimate move c (2, 0) linear 1\n") is None
    # Frame 6 of 30: smoothstep easing then linear blend
    assert evaluator.scene.surface.frames[6][0]["center"][0] == pytest.approx(0.208)


def test_other_animations_run(run, evaluator):
    source = HEADER + (
        "create circle c 1\n"
        "animate rotate c 1.5 0.2\n"
        "animate fadein c 0.2\n"
        "animate fadeout c 0.2\n"
        "animate color c red 0.2\n"
        "animate path c (1, 0) (1, 1) 0.2\n"
        "animate path c [(0, 0)] 0.2\n"
        "animate elastic c 2 0.2\n"
        "animate elastic c opacity 1 0.2\n"
        "animate bounce c -5 0.5 -20 1\n"
    )
    assert run(source) is None
    c = evaluator.objects["c"]
    assert c.color == Color(255, 0, 0)
    assert c.radius == pytest.approx(2)
    assert c.fill_opacity == pytest.approx(1)
    assert c.center[1] >= -5 - 1e-6


def test_bad_animation_arguments(run):
    error = run(HEADER + "create circle c 1\nanimate move c 5 1\n")
    assert "cannot animate move on 'c'" in str(error)


def test_render_and_hold(run, evaluator):
    assert run(HEADER + "create circle c 1\nrender\nrender 5\n") is None
    assert len(evaluator.scene.surface.frames) == 6
    assert evaluator.elapsed_time == pytest.approx(5 / 30)


def test_wait(run, evaluator):
    assert run("wait 0.5\n") is None
    assert evaluator.elapsed_time == pytest.approx(0.5)
    assert run(HEADER + "wait 0.5\n") is None
    assert len(evaluator.scene.surface.frames) == 16


def test_save_path(run, evaluator, tmp_path):
    assert run(HEADER + "create circle c 1\nsave \"shot\"\n") is None
    expected = os.path.join(str(tmp_path), "output", "demo", "frames", "shot.png")
    assert evaluator.scene.surface.saved == [expected]
    assert os.path.isdir(os.path.dirname(expected))


def test_export_without_ffmpeg_keeps_frames(run, evaluator, tmp_path, no_ffmpeg):
    with pytest.warns(UserWarning, match="ffmpeg not found"):
        assert run(HEADER + 'create circle c 1\nexport "clip" 10 2\n') is None

    frame_dir = os.path.join(str(tmp_path), "output", "demo", "clip_frames")
    saved = evaluator.scene.surface.saved
    assert len(saved) == 20
    assert saved[0] == os.path.join(frame_dir, "frame_0000.png")
    assert os.path.isdir(frame_dir)
    assert evaluator.saved_files == []


def test_export_rejects_non_positive_fps(run):
    error = run(HEADER + 'video "clip.mp4" 0 1\n')
    assert "fps and duration must be positive" in str(error)


def test_clean_recreates_directories(run, tmp_path):
    stale = tmp_path / "output" / "old.png"
    stale.parent.mkdir()
    stale.write_bytes(b"x")

    assert run("clean\n") is None
    assert (tmp_path / "output").is_dir()
    assert (tmp_path / "scripts").is_dir()
    assert not stale.exists()


def test_clean_rejects_unsafe_names(run, tmp_path):
    error = run('clean "../elsewhere"\n')
    assert "unsafe directory name" in str(error)
    error = run('clean "a/b"\n')
    assert "unsafe directory name" in str(error)


# -- Structure -----------------------------------------------------------

def test_dispatch_tables_are_total(evaluator):
    assert set(evaluator.shape_builders) == set(SHAPE_KINDS)
    assert set(evaluator.animation_builders) == set(ANIMATION_KINDS)
    assert set(evaluator.property_setters) == set(PROPERTY_NAMES)
    assert set(evaluator.statement_handlers) == set(Statement.__subclasses__())


def test_evaluators_share_nothing(tmp_path):
    program, _ = parse_source(HEADER + "create circle c 1\n")
    first = SceneEvaluator(surface_factory=RecordingSurface, base_dir=str(tmp_path))
    second = SceneEvaluator(surface_factory=RecordingSurface, base_dir=str(tmp_path))
    assert first.evaluate(program) is None
    assert "c" in first.objects
    assert second.objects == {}
    assert second.scene is None
