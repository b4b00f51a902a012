"""Tests for projector_calibration.config.loader."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from projector_calibration.config.loader import (
    load_config,
    save_config,
    validate_config,
)
from projector_calibration.config.schema import CalibrationConfig
from projector_calibration.errors import InvalidInputError


def _write(path: Path, data: object) -> Path:
    path.write_text(yaml.safe_dump(data))
    return path


class TestLoadConfig:
    """Tests for load_config."""

    def test_none_returns_defaults(self) -> None:
        cfg = load_config(None)
        assert cfg.decode.noise_threshold == 5

    def test_missing_file_raises(self) -> None:
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/config.yaml")

    def test_load_from_file(self, tmp_path: Path) -> None:
        yaml_path = _write(tmp_path / "calibration.yaml", {
            "projector": {"width": 1024, "height": 768},
            "decode": {"strict": False, "workers": 4},
        })
        cfg = load_config(yaml_path)
        assert cfg.projector.size == (1024, 768)
        assert cfg.decode.strict is False
        assert cfg.decode.workers == 4
        # Unspecified fields keep defaults.
        assert cfg.decode.min_point_count == 1000
        assert cfg.refinement.iterations == 3

    def test_empty_yaml_returns_defaults(self, tmp_path: Path) -> None:
        yaml_path = tmp_path / "empty.yaml"
        yaml_path.write_text("")
        assert load_config(yaml_path) == CalibrationConfig()

    def test_unknown_keys_ignored(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture,
    ) -> None:
        yaml_path = _write(tmp_path / "extra.yaml", {
            "mask": {"threshold": 12, "dilate": 3},
        })
        cfg = load_config(yaml_path)
        assert cfg.mask.threshold == 12
        assert not hasattr(cfg.mask, "dilate")
        assert "mask.dilate" in caplog.text

    def test_section_must_be_mapping(self, tmp_path: Path) -> None:
        yaml_path = _write(tmp_path / "bad.yaml", {"projector": [1280, 800]})
        with pytest.raises(InvalidInputError, match="projector"):
            load_config(yaml_path)

    @pytest.mark.parametrize("section,key,value", [
        ("projector", "width", "1280"),
        ("decode", "workers", 2.5),
        ("decode", "strict", 1),
        ("mask", "threshold", True),
    ])
    def test_wrong_type_rejected(
        self, tmp_path: Path, section: str, key: str, value: object,
    ) -> None:
        yaml_path = _write(tmp_path / "typed.yaml", {section: {key: value}})
        with pytest.raises(InvalidInputError, match=f"{section}.{key}"):
            load_config(yaml_path)

    @pytest.mark.parametrize("section,key,value", [
        ("projector", "width", 0),
        ("projector", "height", -800),
        ("decode", "workers", 0),
        ("decode", "noise_threshold", -1),
        ("decode", "min_point_count", -5),
    ])
    def test_out_of_range_rejected(
        self, tmp_path: Path, section: str, key: str, value: int,
    ) -> None:
        yaml_path = _write(tmp_path / "range.yaml", {section: {key: value}})
        with pytest.raises(InvalidInputError, match=f"{section}.{key}"):
            load_config(yaml_path)


class TestValidateConfig:
    """Tests for validate_config."""

    def test_defaults_pass(self) -> None:
        cfg = CalibrationConfig()
        assert validate_config(cfg) is cfg

    def test_zero_thresholds_allowed(self) -> None:
        cfg = CalibrationConfig()
        cfg.decode.noise_threshold = 0
        cfg.decode.min_point_count = 0
        cfg.mask.threshold = 0
        validate_config(cfg)

    def test_single_pixel_projector_allowed(self) -> None:
        cfg = CalibrationConfig()
        cfg.projector.width = 1
        cfg.projector.height = 1
        validate_config(cfg)

    def test_negative_refinement_rejected(self) -> None:
        cfg = CalibrationConfig()
        cfg.refinement.distance_limit = -1
        with pytest.raises(InvalidInputError, match="distance_limit"):
            validate_config(cfg)


class TestSaveConfig:
    """Tests for save_config."""

    def test_roundtrip(self, tmp_path: Path) -> None:
        original = CalibrationConfig()
        original.mask.threshold = 17
        original.decode.strict = False
        original.refinement.distance_limit = 9

        path = tmp_path / "out.yaml"
        save_config(original, path)
        assert load_config(path) == original

    def test_creates_parent_dirs(self, tmp_path: Path) -> None:
        path = tmp_path / "subdir" / "deep" / "config.yaml"
        save_config(CalibrationConfig(), path)
        assert path.exists()

    def test_sections_in_pipeline_order(self, tmp_path: Path) -> None:
        path = tmp_path / "out.yaml"
        save_config(CalibrationConfig(), path)
        data = yaml.safe_load(path.read_text())
        assert list(data) == ["projector", "mask", "decode", "refinement"]
        assert data["projector"] == {"width": 1280, "height": 800}
