"""Calibration settings files.

Settings are stored as YAML with one mapping per stage (``projector``,
``mask``, ``decode``, ``refinement``). Values found in a file replace the
defaults of ``CalibrationConfig``; anything missing keeps its default.
Loaded settings are type- and range-checked before they reach the
pipeline.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any

import yaml

from projector_calibration.config.schema import CalibrationConfig
from projector_calibration.errors import InvalidInputError

logger = logging.getLogger(__name__)


def _merge_section(section: Any, data: Any, where: str) -> None:
    """Overwrite fields of the dataclass *section* from the mapping *data*.

    Unknown keys are logged and skipped. A value must have the type of
    the default it replaces; ``bool`` and ``int`` are not interchangeable.

    Raises:
        InvalidInputError: If *data* is not a mapping or a value has the
            wrong type.
    """
    if not isinstance(data, dict):
        raise InvalidInputError(
            f"'{where}' must be a mapping, got {type(data).__name__}"
        )
    names = {f.name for f in dataclasses.fields(section)}
    for key, value in data.items():
        path = f"{where}.{key}" if where else str(key)
        if key not in names:
            logger.warning("Ignoring unknown calibration setting '%s'", path)
            continue
        current = getattr(section, key)
        if dataclasses.is_dataclass(current):
            _merge_section(current, value, path)
            continue
        if isinstance(value, bool) != isinstance(current, bool) or not isinstance(
            value, type(current),
        ):
            raise InvalidInputError(
                f"'{path}' must be {type(current).__name__}, "
                f"got {type(value).__name__} {value!r}"
            )
        setattr(section, key, value)


def validate_config(config: CalibrationConfig) -> CalibrationConfig:
    """Check that every setting is in its usable range.

    Args:
        config: Settings to check.

    Returns:
        *config*, unchanged.

    Raises:
        InvalidInputError: On a non-positive projector size or worker
            count, or a negative threshold, point count or refinement
            parameter.
    """
    positive = {
        "projector.width": config.projector.width,
        "projector.height": config.projector.height,
        "decode.workers": config.decode.workers,
    }
    non_negative = {
        "mask.threshold": config.mask.threshold,
        "decode.min_point_count": config.decode.min_point_count,
        "decode.noise_threshold": config.decode.noise_threshold,
        "refinement.iterations": config.refinement.iterations,
        "refinement.distance_limit": config.refinement.distance_limit,
    }
    for name, value in positive.items():
        if value < 1:
            raise InvalidInputError(f"'{name}' must be at least 1, got {value}")
    for name, value in non_negative.items():
        if value < 0:
            raise InvalidInputError(f"'{name}' must not be negative, got {value}")
    return config


def load_config(
    path: str | Path | None = None,
) -> CalibrationConfig:
    """Read calibration settings from a YAML file.

    Args:
        path: Settings file. ``None`` returns the defaults.

    Returns:
        A validated ``CalibrationConfig``.

    Raises:
        FileNotFoundError: If *path* does not exist.
        InvalidInputError: If the file holds malformed or out-of-range
            settings.
    """
    config = CalibrationConfig()
    if path is None:
        return config

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = yaml.safe_load(path.read_text())
    if data is not None:
        _merge_section(config, data, "")
    logger.info("Loaded calibration settings from %s", path)
    return validate_config(config)


def save_config(
    config: CalibrationConfig,
    path: str | Path,
) -> None:
    """Write calibration settings as YAML, creating parent directories.

    Args:
        config: Settings to write.
        path: Output file path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(dataclasses.asdict(config), sort_keys=False),
    )
