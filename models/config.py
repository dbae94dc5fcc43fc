"""阈值配置的默认值、校验与 JSON 加载"""

import json
import logging
import math
from dataclasses import asdict
from typing import Optional

from models.data_models import DrowsinessConfig

logger = logging.getLogger(__name__)

# 默认阈值
_DEFAULTS = asdict(DrowsinessConfig())

EAR_THRESHOLD_RANGE = (0.15, 0.35)
CONSECUTIVE_FRAMES_RANGE = (2, 20)


class ConfigurationError(ValueError):
    """配置值超出允许范围"""


def validate_config(config: DrowsinessConfig) -> DrowsinessConfig:
    """
    校验配置取值，非法时抛出 ConfigurationError。

    Args:
        config: 待校验的配置

    Returns:
        原配置对象（校验通过时）
    """
    low, high = EAR_THRESHOLD_RANGE
    if not low <= config.ear_threshold <= high:
        raise ConfigurationError(
            f"ear_threshold 必须在 [{low}, {high}] 范围内: {config.ear_threshold}"
        )

    low, high = CONSECUTIVE_FRAMES_RANGE
    frames = config.consecutive_frames
    if isinstance(frames, bool) or not isinstance(frames, int) or not low <= frames <= high:
        raise ConfigurationError(
            f"consecutive_frames 必须是 [{low}, {high}] 范围内的整数: {frames}"
        )

    for name in ("blink_threshold", "yawn_threshold", "alert_cooldown_ms"):
        value = getattr(config, name)
        if not math.isfinite(value):
            raise ConfigurationError(f"{name} 必须是有限数值: {value}")

    if config.blink_threshold <= 0:
        raise ConfigurationError(f"blink_threshold 必须为正数: {config.blink_threshold}")
    if config.yawn_threshold <= 0:
        raise ConfigurationError(f"yawn_threshold 必须为正数: {config.yawn_threshold}")
    if config.alert_cooldown_ms < 0:
        raise ConfigurationError(f"alert_cooldown_ms 不能为负数: {config.alert_cooldown_ms}")

    return config


def config_from_dict(data: dict, base: Optional[DrowsinessConfig] = None) -> DrowsinessConfig:
    """用字典中的值覆盖 base（缺省为默认配置），忽略 None 和未知字段，然后校验。"""
    values = asdict(base) if base is not None else dict(_DEFAULTS)
    for key in _DEFAULTS:
        if key in data and data[key] is not None:
            values[key] = data[key]
    try:
        config = DrowsinessConfig(**values)
    except TypeError as e:
        raise ConfigurationError(str(e)) from e
    try:
        return validate_config(config)
    except TypeError as e:
        # 例如字符串与数字比较
        raise ConfigurationError(f"配置值类型错误: {e}") from e


def load_config(config_path: Optional[str]) -> DrowsinessConfig:
    """从 JSON 配置文件加载阈值参数，缺失字段使用默认值。"""
    if config_path is None:
        return DrowsinessConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.warning("配置文件不存在 %s，使用默认阈值", config_path)
        return DrowsinessConfig()
    except json.JSONDecodeError:
        logger.warning("配置文件格式错误 %s，使用默认阈值", config_path)
        return DrowsinessConfig()

    if not isinstance(data, dict):
        logger.warning("配置文件内容不是 JSON 对象 %s，使用默认阈值", config_path)
        return DrowsinessConfig()

    return config_from_dict(data)


def sensitivity_to_frames(level: float) -> int:
    """将 1-10 的灵敏度滑块值换算为 consecutive_frames（2-20 帧）"""
    if not math.isfinite(level):
        raise ConfigurationError(f"灵敏度必须是有限数值: {level}")
    low, high = CONSECUTIVE_FRAMES_RANGE
    return max(low, min(high, int(round(level * 2))))
