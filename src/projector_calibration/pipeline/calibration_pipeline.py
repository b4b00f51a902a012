"""High-level calibration pipeline orchestrator.

Chains the projector calibration workflow:

1. Grayscale conversion of the captured sequence.
2. Illumination mask from the white/black reference captures.
3. Gray-code decoding and correspondence extraction.
4. Mesh/homography refinement into remap tables (external step).

The public entry points are :func:`process` and
:func:`run_calibration_pipeline`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from projector_calibration.config.loader import load_config, validate_config
from projector_calibration.config.schema import CalibrationConfig
from projector_calibration.errors import InvalidInputError
from projector_calibration.mapping.correspondence import (
    CorrespondenceSet,
    decode_correspondences,
)
from projector_calibration.mapping.refinement import MeshRefiner
from projector_calibration.mapping.structured_light import build_mask, to_gray

logger = logging.getLogger(__name__)


@dataclass
class CalibrationResult:
    """Result of the calibration pipeline.

    Attributes:
        map_x: Projector-to-camera X remap table.
        map_y: Projector-to-camera Y remap table.
        correspondences: Pairs handed to the refinement step.
        mask: Illumination mask used for decoding.
    """

    map_x: np.ndarray
    map_y: np.ndarray
    correspondences: CorrespondenceSet
    mask: np.ndarray


def process(
    frames: list[np.ndarray],
    projector_size: tuple[int, int],
    refiner: MeshRefiner,
    initial_homography: np.ndarray,
    refinement_iterations: int = 3,
    refinement_distance_limit: int = 20,
    config: CalibrationConfig | None = None,
) -> CalibrationResult:
    """Turn a captured Gray-code sequence into remap tables.

    Args:
        frames: Captures in projection order: white reference, black
            reference, then the bit-plane pairs (see
            :func:`projector_calibration.mapping.structured_light.capture_sequence`).
            BGR or single channel.
        projector_size: ``(width, height)`` of the projector.
        refiner: Mesh refinement step producing the remap tables.
        initial_homography: 3x3 camera-to-projector estimate passed to
            *refiner*.
        refinement_iterations: Mesh refinement passes.
        refinement_distance_limit: Maximum point-to-mesh distance.
        config: Mask and decode settings. Defaults are used when
            ``None``; its projector and refinement sections are ignored.

    Returns:
        A ``CalibrationResult``.

    Raises:
        InvalidInputError: If the sequence is malformed.
        InsufficientCorrespondenceError: If strict decoding finds too
            few reliable pixels.
    """
    if len(frames) < 2:
        raise InvalidInputError(
            f"Need white and black reference frames, got {len(frames)} frames"
        )
    config = config or CalibrationConfig()

    bit_planes = [to_gray(f) for f in frames[2:]]
    mask = build_mask(
        frames[0], frames[1],
        use_otsu=config.mask.use_otsu,
        threshold=config.mask.threshold,
    )

    pairs = decode_correspondences(
        bit_planes, projector_size, mask,
        min_point_count=config.decode.min_point_count,
        noise_threshold=config.decode.noise_threshold,
        strict=config.decode.strict,
        workers=config.decode.workers,
    )

    map_x, map_y = refiner.find_maps(
        pairs.camera_points,
        pairs.projector_points,
        projector_size,
        initial_homography,
        refinement_iterations,
        refinement_distance_limit,
    )
    logger.info(
        "Refined remap tables %s from %d correspondences",
        map_x.shape, len(pairs),
    )
    return CalibrationResult(
        map_x=map_x, map_y=map_y, correspondences=pairs, mask=mask,
    )


def run_calibration_pipeline(
    frames: list[np.ndarray],
    refiner: MeshRefiner,
    initial_homography: np.ndarray | None = None,
    config: CalibrationConfig | str | Path | None = None,
) -> CalibrationResult:
    """Run :func:`process` with every parameter taken from *config*.

    Args:
        frames: Captures in projection order.
        refiner: Mesh refinement step.
        initial_homography: Initial estimate, identity when ``None``.
        config: Full pipeline configuration, or the path of a YAML
            settings file read with
            :func:`projector_calibration.config.loader.load_config`.

    Returns:
        A ``CalibrationResult``.

    Raises:
        FileNotFoundError: If *config* names a missing file.
        InvalidInputError: If the settings are out of range or the
            sequence is malformed.
    """
    if isinstance(config, (str, Path)):
        config = load_config(config)
    config = validate_config(config or CalibrationConfig())
    if initial_homography is None:
        initial_homography = np.eye(3, dtype=np.float64)

    return process(
        frames,
        config.projector.size,
        refiner,
        initial_homography,
        refinement_iterations=config.refinement.iterations,
        refinement_distance_limit=config.refinement.distance_limit,
        config=config,
    )
