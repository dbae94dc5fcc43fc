"""配置加载与校验单元测试"""

import json
import logging

import pytest

from models.config import (
    _DEFAULTS,
    ConfigurationError,
    config_from_dict,
    load_config,
    sensitivity_to_frames,
    validate_config,
)
from models.data_models import DrowsinessConfig


class TestLoadConfig:
    """测试 load_config()"""

    def test_no_config_path_returns_defaults(self):
        assert load_config(None) == DrowsinessConfig()

    def test_valid_config_file(self, tmp_path):
        cfg = {
            "ear_threshold": 0.3,
            "consecutive_frames": 12,
            "blink_threshold": 0.18,
            "yawn_threshold": 0.7,
            "alert_cooldown_ms": 5000,
        }
        cfg_file = tmp_path / "config.json"
        cfg_file.write_text(json.dumps(cfg), encoding="utf-8")

        config = load_config(str(cfg_file))
        assert config.ear_threshold == 0.3
        assert config.consecutive_frames == 12
        assert config.blink_threshold == 0.18
        assert config.yawn_threshold == 0.7
        assert config.alert_cooldown_ms == 5000

    def test_missing_config_file_uses_defaults(self, caplog):
        with caplog.at_level(logging.WARNING, logger="models.config"):
            config = load_config("/nonexistent/path.json")
        assert config == DrowsinessConfig()
        assert "配置文件不存在" in caplog.text

    def test_invalid_json_uses_defaults(self, tmp_path, caplog):
        cfg_file = tmp_path / "bad.json"
        cfg_file.write_text("not valid json {{{", encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="models.config"):
            config = load_config(str(cfg_file))
        assert config == DrowsinessConfig()
        assert "配置文件格式错误" in caplog.text

    def test_partial_config_fills_defaults(self, tmp_path):
        cfg_file = tmp_path / "partial.json"
        cfg_file.write_text(json.dumps({"ear_threshold": 0.2}), encoding="utf-8")

        config = load_config(str(cfg_file))
        assert config.ear_threshold == 0.2
        assert config.consecutive_frames == _DEFAULTS["consecutive_frames"]
        assert config.alert_cooldown_ms == _DEFAULTS["alert_cooldown_ms"]

    def test_null_values_in_config_use_defaults(self, tmp_path):
        cfg_file = tmp_path / "nulls.json"
        cfg_file.write_text(json.dumps({"ear_threshold": None, "yawn_threshold": 0.5}), encoding="utf-8")

        config = load_config(str(cfg_file))
        assert config.ear_threshold == _DEFAULTS["ear_threshold"]
        assert config.yawn_threshold == 0.5

    def test_extra_fields_ignored(self, tmp_path):
        cfg_file = tmp_path / "extra.json"
        cfg_file.write_text(json.dumps({"ear_threshold": 0.22, "unknown_field": 999}), encoding="utf-8")

        config = load_config(str(cfg_file))
        assert config.ear_threshold == 0.22
        assert not hasattr(config, "unknown_field")

    def test_out_of_range_value_rejected(self, tmp_path):
        cfg_file = tmp_path / "bad_range.json"
        cfg_file.write_text(json.dumps({"ear_threshold": 0.9}), encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(str(cfg_file))

    def test_non_object_json_uses_defaults(self, tmp_path):
        cfg_file = tmp_path / "list.json"
        cfg_file.write_text("[1, 2, 3]", encoding="utf-8")
        assert load_config(str(cfg_file)) == DrowsinessConfig()


class TestValidateConfig:
    """测试 validate_config()"""

    def test_defaults_are_valid(self):
        assert validate_config(DrowsinessConfig()) == DrowsinessConfig()

    @pytest.mark.parametrize(
        "field, value",
        [
            ("ear_threshold", 0.1),
            ("ear_threshold", 0.36),
            ("ear_threshold", -0.2),
            ("consecutive_frames", 1),
            ("consecutive_frames", 21),
            ("consecutive_frames", 5.5),
            ("consecutive_frames", True),
            ("blink_threshold", 0),
            ("blink_threshold", -0.1),
            ("yawn_threshold", -1),
            ("alert_cooldown_ms", -1),
            ("blink_threshold", float("nan")),
            ("yawn_threshold", float("nan")),
            ("alert_cooldown_ms", float("nan")),
            ("alert_cooldown_ms", float("inf")),
            ("ear_threshold", float("nan")),
        ],
    )
    def test_rejects_out_of_domain(self, field, value):
        with pytest.raises(ConfigurationError):
            validate_config(DrowsinessConfig(**{field: value}))

    @pytest.mark.parametrize("value", [0.15, 0.35])
    def test_ear_threshold_bounds_inclusive(self, value):
        validate_config(DrowsinessConfig(ear_threshold=value))

    def test_configuration_error_is_value_error(self):
        assert issubclass(ConfigurationError, ValueError)


class TestConfigFromDict:
    def test_uses_base(self):
        base = DrowsinessConfig(ear_threshold=0.3)
        config = config_from_dict({"alert_cooldown_ms": 1000}, base=base)
        assert config.ear_threshold == 0.3
        assert config.alert_cooldown_ms == 1000

    def test_wrong_type_rejected(self):
        with pytest.raises(ConfigurationError):
            config_from_dict({"ear_threshold": "high"})


class TestSensitivity:
    @pytest.mark.parametrize("level, frames", [(1, 2), (5, 10), (10, 20), (0, 2), (15, 20), (2.6, 5)])
    def test_mapping(self, level, frames):
        assert sensitivity_to_frames(level) == frames

    @pytest.mark.parametrize("level", [float("nan"), float("inf")])
    def test_non_finite_rejected(self, level):
        with pytest.raises(ConfigurationError):
            sensitivity_to_frames(level)
