"""Exceptions raised by the correspondence extraction pipeline."""

from __future__ import annotations


class InvalidInputError(ValueError):
    """Frames, masks or projector sizes do not form a decodable input.

    Raised for an empty frame sequence, inconsistent frame shapes, a mask
    that does not match the camera resolution, or a frame count that does
    not match the Gray-code layout of the projector size.
    """


class InsufficientCorrespondenceError(RuntimeError):
    """No error tolerance yields the requested number of points.

    Attributes:
        available: Points available at the loosest reliable tolerance.
        required: Minimum number of points that was requested.
    """

    def __init__(self, available: int, required: int) -> None:
        self.available = available
        self.required = required
        super().__init__(
            f"Only {available} reliable correspondences decoded, "
            f"{required} required"
        )
