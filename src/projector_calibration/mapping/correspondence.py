"""Error tolerance selection and camera-projector pair extraction.

The decoded error levels are histogrammed, the strictest tolerance that
still yields the requested number of points is chosen, and every camera
pixel that decodes inside the projector at that tolerance becomes one
correspondence pair.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from projector_calibration.errors import InsufficientCorrespondenceError
from projector_calibration.mapping.decoder import (
    DecodedPlanes,
    ErrorLevel,
    decode_gray_planes,
)

logger = logging.getLogger(__name__)


@dataclass
class CorrespondenceSet:
    """Matched camera and projector pixels, in camera row-major order.

    Attributes:
        camera_points: Int32 array ``(N, 2)`` of camera ``(x, y)``.
        projector_points: Int32 array ``(N, 2)`` of projector ``(x, y)``.
        tolerance: Error level the pairs were filtered at.
    """

    camera_points: np.ndarray
    projector_points: np.ndarray
    tolerance: ErrorLevel

    def __len__(self) -> int:
        return len(self.camera_points)


def error_histogram(error: np.ndarray) -> np.ndarray:
    """Pixel counts for each reliable error level.

    ``UNRELIABLE`` pixels are not counted.

    Returns:
        Int64 array of length ``ErrorLevel.UNRELIABLE``.
    """
    n_levels = int(ErrorLevel.UNRELIABLE)
    counts = np.bincount(np.ravel(error), minlength=n_levels + 1)
    return counts[:n_levels]


def select_error_tolerance(
    error: np.ndarray,
    min_point_count: int,
) -> ErrorLevel | None:
    """Pick the strictest error level that yields enough points.

    Levels are accumulated from ``ErrorLevel.NONE`` upwards until the
    running pixel count reaches *min_point_count*.

    Args:
        error: Per-pixel ``ErrorLevel`` values.
        min_point_count: Required number of points.

    Returns:
        The selected level, or ``None`` when even the loosest reliable
        level falls short.
    """
    cumulative = np.cumsum(error_histogram(error))
    reached = np.flatnonzero(cumulative >= min_point_count)
    if reached.size == 0:
        return None
    return ErrorLevel(int(reached[0]))


def filter_correspondences(
    decoded: DecodedPlanes,
    projector_size: tuple[int, int],
    tolerance: int,
) -> CorrespondenceSet:
    """Collect pixels that decode inside the projector within *tolerance*.

    The decoded coordinates are unsigned, so only the upper projector
    bounds can reject a pixel.

    Args:
        decoded: Output of :func:`decode_gray_planes`.
        projector_size: ``(width, height)`` of the projector.
        tolerance: Highest accepted error level.

    Returns:
        A ``CorrespondenceSet`` in camera row-major order.
    """
    proj_w, proj_h = projector_size
    _, cam_w = decoded.shape
    px = decoded.proj_x.ravel()
    py = decoded.proj_y.ravel()

    keep = (px < proj_w) & (py < proj_h) & (decoded.error.ravel() <= int(tolerance))
    idx = np.flatnonzero(keep)

    camera_points = np.stack([idx % cam_w, idx // cam_w], axis=1).astype(np.int32)
    projector_points = np.stack([px[idx], py[idx]], axis=1).astype(np.int32)
    return CorrespondenceSet(
        camera_points=camera_points,
        projector_points=projector_points,
        tolerance=ErrorLevel(int(tolerance)),
    )


def decode_correspondences(
    frames: list[np.ndarray],
    projector_size: tuple[int, int],
    mask: np.ndarray,
    min_point_count: int = 1000,
    noise_threshold: int = 5,
    strict: bool = True,
    workers: int = 1,
) -> CorrespondenceSet:
    """Decode bit planes and extract the camera-projector pairs.

    Args:
        frames: Single-channel bit-plane frames, horizontal axis first.
        projector_size: ``(width, height)`` of the projector.
        mask: Boolean mask of illuminated camera pixels.
        min_point_count: Minimum number of pairs to aim for.
        noise_threshold: Half-width of the ambiguous difference band.
        strict: Raise when no tolerance reaches *min_point_count*.
            Otherwise fall back to ``ErrorLevel.HIGH``.
        workers: Threads used per bit-plane pass.

    Returns:
        The filtered ``CorrespondenceSet``.

    Raises:
        InvalidInputError: If the frames do not form a valid sequence.
        InsufficientCorrespondenceError: If *strict* and too few
            reliable pixels were decoded.
    """
    decoded = decode_gray_planes(
        frames, projector_size, mask,
        noise_threshold=noise_threshold, workers=workers,
    )

    histogram = error_histogram(decoded.error)
    logger.info("Error level histogram: %s", histogram.tolist())

    tolerance = select_error_tolerance(decoded.error, min_point_count)
    if tolerance is None:
        available = int(histogram.sum())
        if strict:
            raise InsufficientCorrespondenceError(available, min_point_count)
        logger.warning(
            "Only %d reliable pixels for %d requested points, "
            "accepting every reliable error level",
            available, min_point_count,
        )
        tolerance = ErrorLevel.HIGH

    pairs = filter_correspondences(decoded, projector_size, tolerance)
    logger.info(
        "Extracted %d correspondences at error tolerance %s",
        len(pairs), tolerance.name,
    )
    return pairs
