"""Shared fixtures for pbrtscene tests."""

from pathlib import Path

import pytest

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def simple_scene_path():
    return DATA_DIR / "simple.pbrt"


@pytest.fixture
def simple_scene_bytes(simple_scene_path):
    return simple_scene_path.read_bytes()


@pytest.fixture
def minimal_scene_text():
    return 'Camera "perspective"\nWorldBegin\nShape "sphere"\nWorldEnd\n'
