"""Pytest configuration.

Puts the project root on sys.path so tests can import `autopull` without an
install, and provides synthetic image helpers.
"""

import sys
from pathlib import Path

import cv2
import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from autopull.templates import TemplateStore  # noqa: E402


def noise(height: int, width: int, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


@pytest.fixture
def marker() -> np.ndarray:
    """20x20 high-contrast textured patch."""
    return noise(20, 20, seed=42)


@pytest.fixture
def template_dir(tmp_path, marker) -> Path:
    d = tmp_path / "templates"
    d.mkdir()
    cv2.imwrite(str(d / "marker.png"), marker)
    return d


@pytest.fixture
def store(template_dir) -> TemplateStore:
    return TemplateStore(str(template_dir), scale=1.0)
