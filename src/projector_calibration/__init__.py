"""Projector calibration: Gray-code camera-projector correspondences.

Decodes structured-light Gray-code captures into dense camera-to-projector
pixel correspondences for single point-of-view projector calibration, and
hands them to a mesh/homography refinement step that produces the final
remap tables.
"""

__version__ = "0.1.0"
