"""核心数据模型定义"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

# 单个关键点的像素坐标 (x, y)
Point2D = Tuple[float, float]


class AlertLevel(str, Enum):
    """警报等级，按严重程度递增"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class FaceLandmarks:
    """单帧人脸关键点检测结果（眼睛 6 点，嘴巴 8 点）"""
    left_eye: List[Point2D]
    right_eye: List[Point2D]
    mouth: List[Point2D]


@dataclass(frozen=True)
class Sample:
    """一次 EAR 观测值"""
    timestamp: int
    ear: float


@dataclass
class ClosureState:
    """闭眼状态机的内部状态"""
    ongoing: bool = False
    start_time: Optional[int] = None
    last_duration: int = 0


@dataclass(frozen=True)
class EyeClosureResult:
    """闭眼跟踪结果"""
    ear: float
    is_closed: bool
    closure_duration: int
    is_blink: bool
    is_sustained_closure: bool


@dataclass(frozen=True)
class MouthResult:
    """嘴巴分析结果"""
    mar: float
    is_yawning: bool


@dataclass(frozen=True)
class DrowsinessAssessment:
    """单帧困倦评估结果，创建后不再修改"""
    ear: float
    mouth_ar: float
    blink_rate: int
    avg_ear: float
    drowsiness_score: float
    is_drowsy: bool
    is_sustained_closure: bool
    closure_duration: int
    alert_level: Optional[AlertLevel]
    alert_message: str
    timestamp: int = 0
    face_detected: bool = True
    is_yawning: bool = False
    alert_raised: bool = False

    def to_dict(self) -> dict:
        data = asdict(self)
        data["alert_level"] = self.alert_level.value if self.alert_level else None
        return data


@dataclass
class AlertState:
    """警报状态机当前状态"""
    active: bool = False
    level: AlertLevel = AlertLevel.LOW
    message: str = ""
    raised_at: int = 0


@dataclass(frozen=True)
class AlertEvent:
    """推送给外部警报通道的事件"""
    level: AlertLevel
    message: str
    timestamp: int


@dataclass(frozen=True)
class HistoryPoint:
    timestamp: int
    value: float


@dataclass(frozen=True)
class RealTimePoint:
    """实时仪表盘数据点"""
    timestamp: int
    ear: float
    drowsiness: float
    blinks: int


@dataclass(frozen=True)
class SessionSnapshot:
    """会话统计快照；结束后的快照不可变"""
    id: str
    start_time: int
    end_time: Optional[int]
    duration: int
    total_blinks: int
    total_alerts: int
    avg_ear: float
    max_drowsiness_score: float
    alerts_by_level: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    ear_history: Tuple[HistoryPoint, ...] = ()
    drowsiness_history: Tuple[HistoryPoint, ...] = ()

    def __post_init__(self):
        # 各等级计数对外只读
        if not isinstance(self.alerts_by_level, MappingProxyType):
            object.__setattr__(self, "alerts_by_level", MappingProxyType(dict(self.alerts_by_level)))

    def to_dict(self) -> dict:
        """转换为导出用的 camelCase 字典"""
        data = {
            "id": self.id,
            "startTime": self.start_time,
            "duration": self.duration,
            "totalBlinks": self.total_blinks,
            "totalAlerts": self.total_alerts,
            "avgEAR": self.avg_ear,
            "maxDrowsinessScore": self.max_drowsiness_score,
            "alertsByLevel": dict(self.alerts_by_level),
            "earHistory": [asdict(p) for p in self.ear_history],
            "drowsinessHistory": [asdict(p) for p in self.drowsiness_history],
        }
        if self.end_time is not None:
            data["endTime"] = self.end_time
        return data


@dataclass(frozen=True)
class DrowsinessConfig:
    """检测阈值配置，只能通过整体替换来修改"""
    ear_threshold: float = 0.25
    consecutive_frames: int = 10
    blink_threshold: float = 0.2
    yawn_threshold: float = 0.6
    alert_cooldown_ms: int = 3000

    def to_dict(self) -> dict:
        return {
            "earThreshold": self.ear_threshold,
            "consecutiveFrames": self.consecutive_frames,
            "blinkThreshold": self.blink_threshold,
            "yawnThreshold": self.yawn_threshold,
            "alertCooldown": self.alert_cooldown_ms,
        }
