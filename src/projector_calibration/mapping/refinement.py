"""Interface to the mesh/homography refinement step.

The refinement that turns correspondence pairs into per-projector-pixel
remap tables lives outside this package. ``MeshRefiner`` is the protocol
the pipeline calls it through.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class MeshRefiner(Protocol):
    """Protocol for the correspondence-to-remap refinement step."""

    def find_maps(
        self,
        camera_points: np.ndarray,
        projector_points: np.ndarray,
        projector_size: tuple[int, int],
        initial_homography: np.ndarray,
        iterations: int,
        distance_limit: int,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Build remap tables from matched points.

        Args:
            camera_points: ``(N, 2)`` camera ``(x, y)`` pixels.
            projector_points: ``(N, 2)`` projector ``(x, y)`` pixels,
                paired with *camera_points* by index.
            projector_size: ``(width, height)`` of the projector.
            initial_homography: 3x3 camera-to-projector estimate.
            iterations: Number of mesh refinement passes.
            distance_limit: Maximum point-to-mesh distance in pixels.

        Returns:
            ``(map_x, map_y)`` float32 arrays of shape
            ``(height, width)``.
        """
        ...
