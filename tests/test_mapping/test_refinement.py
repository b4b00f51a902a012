"""Tests for projector_calibration.mapping.refinement."""

from __future__ import annotations

import numpy as np

from projector_calibration.mapping.refinement import MeshRefiner


class _IdentityRefiner:
    def find_maps(
        self, camera_points, projector_points, projector_size,
        initial_homography, iterations, distance_limit,
    ):
        w, h = projector_size
        mapy, mapx = np.mgrid[0:h, 0:w].astype(np.float32)
        return mapx, mapy


class TestMeshRefinerProtocol:
    """Tests for the MeshRefiner protocol."""

    def test_protocol_has_required_methods(self) -> None:
        assert hasattr(MeshRefiner, "find_maps")

    def test_structural_match(self) -> None:
        assert isinstance(_IdentityRefiner(), MeshRefiner)

    def test_non_refiner_rejected(self) -> None:
        assert not isinstance(object(), MeshRefiner)
