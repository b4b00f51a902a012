"""Dataclass configuration schemas for the calibration pipeline.

Each pipeline stage has its own configuration dataclass. The top-level
``CalibrationConfig`` composes them into a single tree that can be
serialized to / deserialized from YAML.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ProjectorConfig:
    """Projector output resolution.

    Attributes:
        width: Projector width in pixels.
        height: Projector height in pixels.
    """

    width: int = 1280
    height: int = 800

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)


@dataclass
class MaskConfig:
    """Illumination mask settings.

    Attributes:
        use_otsu: Threshold the blurred white-minus-black difference
            with Otsu's method.
        threshold: Fixed threshold when ``use_otsu`` is off.
    """

    use_otsu: bool = True
    threshold: int = 40


@dataclass
class DecodeConfig:
    """Gray-code decoding and correspondence selection.

    Attributes:
        min_point_count: Minimum number of correspondences to aim for.
        noise_threshold: Pattern/inverse differences below this are
            treated as ambiguous.
        strict: Raise when no error tolerance reaches
            ``min_point_count`` instead of accepting every reliable
            level.
        workers: Threads per bit-plane pass.
    """

    min_point_count: int = 1000
    noise_threshold: int = 5
    strict: bool = True
    workers: int = 1


@dataclass
class RefinementConfig:
    """Parameters forwarded to the mesh refinement step.

    Attributes:
        iterations: Number of mesh refinement passes.
        distance_limit: Maximum point-to-mesh distance in pixels.
    """

    iterations: int = 3
    distance_limit: int = 20


@dataclass
class CalibrationConfig:
    """Top-level configuration composing all stage configs.

    Attributes:
        projector: Projector output resolution.
        mask: Illumination mask settings.
        decode: Gray-code decoding and selection.
        refinement: Mesh refinement parameters.
    """

    projector: ProjectorConfig = field(default_factory=ProjectorConfig)
    mask: MaskConfig = field(default_factory=MaskConfig)
    decode: DecodeConfig = field(default_factory=DecodeConfig)
    refinement: RefinementConfig = field(default_factory=RefinementConfig)
