"""Shared test fixtures for the projector_calibration test suite."""

from __future__ import annotations

from typing import Callable

import numpy as np
import pytest

from projector_calibration.config.schema import CalibrationConfig

Renderer = Callable[..., list[np.ndarray]]


def render_bit_planes(
    proj_x: np.ndarray,
    proj_y: np.ndarray,
    pattern_size: tuple[int, int],
) -> list[np.ndarray]:
    """Simulate a noise-free camera viewing the Gray-code sequence.

    Camera pixel ``(r, c)`` sees projector pixel
    ``(proj_x[r, c], proj_y[r, c])`` of every bit-plane pattern.
    """
    from projector_calibration.mapping.structured_light import (
        generate_graycode_patterns,
    )

    width, height = pattern_size
    pats, _, _ = generate_graycode_patterns(width, height)
    return [p[proj_y, proj_x] for p in pats]


@pytest.fixture
def default_config() -> CalibrationConfig:
    """Return a CalibrationConfig with default values."""
    return CalibrationConfig()


@pytest.fixture
def tiled_scene() -> tuple[np.ndarray, np.ndarray, list[np.ndarray]]:
    """10x10 camera looking at an 8x8 projector tiled across the view.

    Returns:
        ``(proj_x, proj_y, frames)`` where camera pixel ``(r, c)`` is
        lit by projector pixel ``(c % 8, r % 8)`` and *frames* holds the
        12 rendered bit-plane frames.
    """
    rows, cols = np.mgrid[0:10, 0:10]
    proj_x = cols % 8
    proj_y = rows % 8
    frames = render_bit_planes(proj_x, proj_y, (8, 8))
    return proj_x, proj_y, frames


@pytest.fixture
def render_capture() -> Renderer:
    """Return the bit-plane renderer for tests that build their own scene."""
    return render_bit_planes
