"""
Test configuration and fixtures.

Evaluators run against a RecordingSurface inside a temporary base directory,
so no test rasterizes frames or writes outside tmp_path unless it asks to.
"""

import os
import shutil
import sys

import pytest

# Ensure repo root is on sys.path
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from motion_dsl import RecordingSurface, SceneEvaluator, parse_source


@pytest.fixture
def evaluator(tmp_path):
    """Evaluator bound to a recording surface and a temporary base directory"""
    return SceneEvaluator(surface_factory=RecordingSurface, base_dir=str(tmp_path))


@pytest.fixture
def run(evaluator):
    """Parse a script (which must be syntactically valid) and evaluate it"""
    def _run(source):
        program, errors = parse_source(source)
        assert errors == [], [str(e) for e in errors]
        return evaluator.evaluate(program)
    return _run


@pytest.fixture
def no_ffmpeg(monkeypatch):
    """Pretend ffmpeg is not installed"""
    monkeypatch.setattr(shutil, "which", lambda name: None)
