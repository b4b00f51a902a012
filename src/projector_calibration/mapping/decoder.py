"""Gray-code bit-plane decoding with per-pixel error tracking.

Each camera pixel accumulates one projector coordinate per axis, one bit
per pattern/inverse pair, most significant bit first. The Gray code is
turned into binary on the fly: a per-pixel toggle keeps the running
parity of all Gray bits seen so far on the current axis, which is the
binary bit at that position.

Every pair also carries a weight equal to the number of bits it still
controls on its axis. When a pixel's pattern/inverse difference falls
inside the noise band, the pixel's error level is raised to that weight,
so the stored level is the most significant ambiguous bit over both axes.
"""

from __future__ import annotations

import enum
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import numpy as np

from projector_calibration.errors import InvalidInputError
from projector_calibration.mapping.structured_light import (
    bit_plane_count,
    check_intensity_dtype,
)

logger = logging.getLogger(__name__)


class ErrorLevel(enum.IntEnum):
    """Per-pixel decode reliability, lower is better.

    The value is the weight of the most significant ambiguous bit plane.
    Weights above ``HIGH`` collapse into ``UNRELIABLE``, which is never
    eligible as a tolerance.
    """

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    UNRELIABLE = 4

    @classmethod
    def from_weight(cls, weight: int) -> ErrorLevel:
        return cls(min(int(weight), int(cls.UNRELIABLE)))


@dataclass
class DecodedPlanes:
    """Decoded projector coordinates at camera resolution.

    Attributes:
        proj_x: Unsigned projector X coordinate per camera pixel.
        proj_y: Unsigned projector Y coordinate per camera pixel.
        error: ``ErrorLevel`` values per camera pixel (uint8).
    """

    proj_x: np.ndarray
    proj_y: np.ndarray
    error: np.ndarray

    @property
    def shape(self) -> tuple[int, int]:
        return self.proj_x.shape


@dataclass
class _PixelBuffers:
    """Flat per-pixel working buffers, indexed ``row * width + col``."""

    size: int
    codes: np.ndarray = field(init=False)
    error: np.ndarray = field(init=False)
    toggle: np.ndarray = field(init=False)

    def __post_init__(self) -> None:
        self.codes = np.zeros((2, self.size), dtype=np.uint32)
        self.error = np.zeros(self.size, dtype=np.uint8)
        self.toggle = np.zeros(self.size, dtype=bool)

    def reset_toggle(self) -> None:
        self.toggle[:] = False


def validate_sequence(
    frames: list[np.ndarray],
    projector_size: tuple[int, int],
    mask: np.ndarray | None = None,
) -> tuple[int, int]:
    """Check a bit-plane sequence against the projector layout.

    Args:
        frames: Single-channel uint8 or uint16 bit-plane frames, pattern
            then inverse.
        projector_size: ``(width, height)`` of the projector.
        mask: Optional camera-resolution mask.

    Returns:
        ``(nx, ny)`` number of horizontal and vertical bit-plane pairs.

    Raises:
        InvalidInputError: If the sequence cannot be decoded.
    """
    if not frames:
        raise InvalidInputError("Frame sequence is empty")

    proj_w, proj_h = projector_size
    nx = bit_plane_count(proj_w)
    ny = bit_plane_count(proj_h)
    expected = 2 * (nx + ny)
    if len(frames) != expected:
        raise InvalidInputError(
            f"Expected {expected} bit-plane frames for a "
            f"{proj_w}x{proj_h} projector, got {len(frames)}"
        )

    shape = frames[0].shape
    if len(shape) != 2:
        raise InvalidInputError(
            f"Bit-plane frames must be single channel, got shape {shape}"
        )
    dtype = check_intensity_dtype(frames[0], "Frame 0").dtype
    for i, frame in enumerate(frames):
        if frame.shape != shape:
            raise InvalidInputError(
                f"Frame {i} has shape {frame.shape}, expected {shape}"
            )
        if frame.dtype != dtype:
            raise InvalidInputError(
                f"Frame {i} has sample type {frame.dtype}, expected {dtype}"
            )
    if mask is not None and mask.shape != shape:
        raise InvalidInputError(
            f"Mask shape {mask.shape} does not match frames {shape}"
        )
    return nx, ny


def _signed_difference(
    pattern: np.ndarray,
    inverse: np.ndarray,
    mask: np.ndarray,
) -> np.ndarray:
    """Flat int32 ``pattern - inverse``, zero outside *mask*.

    int32 holds the full signed range of 16-bit captures.
    """
    diff = pattern.astype(np.int32) - inverse.astype(np.int32)
    diff[~mask] = 0
    return diff.ravel()


def _apply_bit_plane(
    buffers: _PixelBuffers,
    diff: np.ndarray,
    axis: int,
    weight: int,
    noise_threshold: int,
    pixels: slice,
) -> None:
    """Fold one bit plane into the pixels of *pixels*.

    Only the slots inside *pixels* are read and written, so disjoint
    slices can run concurrently.
    """
    d = diff[pixels]
    toggle = buffers.toggle[pixels]
    np.not_equal(toggle, d >= 0, out=toggle)

    codes = buffers.codes[axis, pixels]
    codes <<= 1
    codes |= toggle

    error = buffers.error[pixels]
    ambiguous = (d > -noise_threshold) & (d < noise_threshold) & (error < weight)
    error[ambiguous] = weight


def _partition(size: int, workers: int) -> list[slice]:
    bounds = np.linspace(0, size, max(workers, 1) + 1).astype(int)
    return [
        slice(int(a), int(b)) for a, b in zip(bounds[:-1], bounds[1:]) if b > a
    ]


def decode_gray_planes(
    frames: list[np.ndarray],
    projector_size: tuple[int, int],
    mask: np.ndarray,
    noise_threshold: int = 5,
    workers: int = 1,
) -> DecodedPlanes:
    """Decode Gray-code bit planes into projector coordinates.

    Args:
        frames: Single-channel frames: ``ceil(log2(width))`` horizontal
            pattern/inverse pairs followed by ``ceil(log2(height))``
            vertical pairs, most significant bit first.
        projector_size: ``(width, height)`` of the projector.
        mask: Boolean mask of illuminated camera pixels. Pixels outside
            the mask decode with a zero difference on every plane and
            start at ``ErrorLevel.UNRELIABLE``.
        noise_threshold: Differences strictly inside
            ``(-noise_threshold, noise_threshold)`` count as ambiguous,
            in the sample units of the frames.
        workers: Number of threads sharing each bit-plane pass.

    Returns:
        ``DecodedPlanes`` at camera resolution.

    Raises:
        InvalidInputError: If the frame sequence does not match the
            projector layout or the mask shape, or the frames are not
            uint8 or uint16.
    """
    nx, ny = validate_sequence(frames, projector_size, mask)
    cam_h, cam_w = frames[0].shape
    mask = mask.astype(bool, copy=False)

    buffers = _PixelBuffers(cam_h * cam_w)
    buffers.error[~mask.ravel()] = ErrorLevel.UNRELIABLE
    chunks = _partition(buffers.size, workers)
    executor = ThreadPoolExecutor(max_workers=workers) if len(chunks) > 1 else None

    try:
        start = 0
        for axis, n_pairs in enumerate((nx, ny)):
            buffers.reset_toggle()
            for k in range(n_pairs):
                pattern = frames[start + 2 * k]
                inverse = frames[start + 2 * k + 1]
                weight = int(ErrorLevel.from_weight(n_pairs - k))
                diff = _signed_difference(pattern, inverse, mask)

                if executor is None:
                    for chunk in chunks:
                        _apply_bit_plane(
                            buffers, diff, axis, weight, noise_threshold, chunk,
                        )
                else:
                    # Drain the pass before the next bit plane.
                    list(executor.map(
                        lambda chunk: _apply_bit_plane(
                            buffers, diff, axis, weight, noise_threshold, chunk,
                        ),
                        chunks,
                    ))
                logger.debug(
                    "Decoded %s bit %d/%d (weight %d)",
                    "xy"[axis], k + 1, n_pairs, weight,
                )
            start += 2 * n_pairs
    finally:
        if executor is not None:
            executor.shutdown(wait=True)

    return DecodedPlanes(
        proj_x=buffers.codes[0].reshape(cam_h, cam_w).copy(),
        proj_y=buffers.codes[1].reshape(cam_h, cam_w).copy(),
        error=buffers.error.reshape(cam_h, cam_w).copy(),
    )
