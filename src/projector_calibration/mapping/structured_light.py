"""Structured-light pattern generation and illumination masking.

Generates the Gray-code bit-plane sequence projected during capture and
builds the illumination mask from the white/black reference captures.
The functions are pure so they can be tested without a projector or
camera.
"""

from __future__ import annotations

import logging
import math

import cv2
import numpy as np

from projector_calibration.errors import InvalidInputError

logger = logging.getLogger(__name__)

INTENSITY_DTYPES = (np.dtype(np.uint8), np.dtype(np.uint16))


# ---------------------------------------------------------------------------
# Gray code patterns
# ---------------------------------------------------------------------------

def bit_plane_count(size: int) -> int:
    """Number of Gray-code bit planes needed to address *size* pixels."""
    if size < 1:
        raise InvalidInputError(f"Projector dimension must be positive, got {size}")
    return int(math.ceil(math.log2(size)))


def gray_code(values: np.ndarray) -> np.ndarray:
    """Return the reflected binary Gray code of an unsigned integer array."""
    values = np.asarray(values, dtype=np.uint32)
    return values ^ (values >> 1)


def _stripe_planes(codes: np.ndarray, n_bits: int) -> list[np.ndarray]:
    """Pattern/inverse stripes for each bit of *codes*, MSB first."""
    planes: list[np.ndarray] = []
    for k in range(n_bits - 1, -1, -1):
        stripe = ((codes >> k) & 1).astype(np.uint8) * 255
        planes += [stripe, 255 - stripe]
    return planes


def generate_graycode_patterns(
    width: int,
    height: int,
) -> tuple[list[np.ndarray], np.ndarray, np.ndarray]:
    """Projector images for the bit-plane part of a capture.

    The list holds ``ceil(log2(width))`` vertical-stripe pairs encoding
    the projector column, then ``ceil(log2(height))`` horizontal-stripe
    pairs encoding the row. Each pair is a pattern followed by its
    inverse, most significant bit first, which is the order
    :func:`projector_calibration.mapping.decoder.decode_gray_planes`
    expects.

    Args:
        width: Projector width in pixels.
        height: Projector height in pixels.

    Returns:
        ``(patterns, black, white)``: the uint8 ``(height, width)``
        bit-plane images and the two uniform reference images.
    """
    columns = _stripe_planes(gray_code(np.arange(width)), bit_plane_count(width))
    rows = _stripe_planes(gray_code(np.arange(height)), bit_plane_count(height))

    shape = (height, width)
    pats = [np.broadcast_to(c[np.newaxis, :], shape).copy() for c in columns]
    pats += [np.broadcast_to(r[:, np.newaxis], shape).copy() for r in rows]

    black = np.zeros(shape, np.uint8)
    white = np.full(shape, 255, np.uint8)
    return pats, black, white


def capture_sequence(width: int, height: int) -> list[np.ndarray]:
    """Full projection sequence in capture order.

    White and black references come first, followed by the bit-plane
    pairs. This is the frame order consumed by
    :func:`projector_calibration.pipeline.calibration_pipeline.process`.
    """
    pats, black, white = generate_graycode_patterns(width, height)
    return [white, black, *pats]


# ---------------------------------------------------------------------------
# Illumination mask
# ---------------------------------------------------------------------------

def check_intensity_dtype(frame: np.ndarray, name: str = "Frame") -> np.ndarray:
    """Reject captures that are not 8 or 16 bit unsigned intensities."""
    if frame.dtype not in INTENSITY_DTYPES:
        raise InvalidInputError(
            f"{name} has unsupported sample type {frame.dtype}, "
            f"expected uint8 or uint16"
        )
    return frame


def to_gray(frame: np.ndarray) -> np.ndarray:
    """Convert a BGR capture to a single-channel frame.

    Single-channel input is returned unchanged.
    """
    if frame.ndim == 3 and frame.shape[2] == 3:
        return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    if frame.ndim == 3 and frame.shape[2] == 1:
        return frame[..., 0]
    if frame.ndim != 2:
        raise InvalidInputError(f"Unsupported frame shape {frame.shape}")
    return frame


def build_mask(
    white_frame: np.ndarray,
    black_frame: np.ndarray,
    use_otsu: bool = True,
    threshold: int = 40,
) -> np.ndarray:
    """Derive the illuminated-pixel mask from a white/black capture pair.

    The black capture is subtracted from the white one with saturation at
    zero. In adaptive mode the difference is smoothed with a 5x5 Gaussian
    and binarized with Otsu's threshold, otherwise *threshold* is used.

    Args:
        white_frame: Capture under full projector illumination.
        black_frame: Capture with the projector dark.
        use_otsu: Pick the threshold automatically.
        threshold: Fixed threshold used when *use_otsu* is false. In
            the sample units of the frames.

    Returns:
        Boolean mask at camera resolution.

    Raises:
        InvalidInputError: If the two frames differ in shape or sample
            type, or are not 8 or 16 bit.
    """
    if white_frame.shape != black_frame.shape:
        raise InvalidInputError(
            f"White frame {white_frame.shape} and black frame "
            f"{black_frame.shape} differ in shape"
        )

    white = to_gray(check_intensity_dtype(white_frame, "White frame"))
    black = to_gray(check_intensity_dtype(black_frame, "Black frame"))
    if white.dtype != black.dtype:
        raise InvalidInputError(
            f"White frame {white.dtype} and black frame {black.dtype} "
            f"differ in sample type"
        )

    difference = cv2.subtract(white, black)
    if use_otsu:
        difference = cv2.GaussianBlur(difference, (5, 5), 0)
        if difference.dtype == np.uint16:
            # Otsu runs on 8-bit histograms.
            difference = cv2.convertScaleAbs(difference, alpha=255.0 / 65535.0)
        _, mask = cv2.threshold(
            difference, 0, 255, cv2.THRESH_BINARY | cv2.THRESH_OTSU,
        )
        mask = mask.astype(bool)
    else:
        mask = difference > threshold
    logger.info(
        "Illumination mask: %d / %d pixels (%.1f%%)",
        mask.sum(), mask.size, 100.0 * mask.sum() / mask.size,
    )
    return mask
