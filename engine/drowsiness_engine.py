"""困倦检测引擎：串联几何特征、闭眼跟踪、评分、警报与会话统计"""

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Optional

from alerts.alert_policy import AlertPolicy
from alerts.scheduler import TimerScheduler
from alerts.sinks import AlertDispatcher, AlertSink, LoggingAlertSink
from analytics.exporter import build_export_document
from analytics.session_aggregator import SessionAggregator
from detectors.eye_analyzer import BlinkCounter, EyeClosureTracker
from detectors.geometry import average_ear
from detectors.mouth_analyzer import MouthAnalyzer
from evaluators.drowsiness_evaluator import DrowsinessEvaluator
from evaluators.history_buffer import HistoryBuffer
from models.config import validate_config
from models.data_models import (
    AlertEvent,
    AlertLevel,
    DrowsinessAssessment,
    DrowsinessConfig,
    FaceLandmarks,
    SessionSnapshot,
)

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class EngineContext:
    """单个被监测对象的全部可变状态"""
    config: DrowsinessConfig
    alerts: AlertPolicy
    history: HistoryBuffer = field(default_factory=HistoryBuffer)
    closure: EyeClosureTracker = field(default_factory=EyeClosureTracker)
    blinks: BlinkCounter = field(default_factory=BlinkCounter)
    mouth: MouthAnalyzer = field(default_factory=MouthAnalyzer)
    sessions: SessionAggregator = field(default_factory=SessionAggregator)
    evaluator: DrowsinessEvaluator = field(default_factory=DrowsinessEvaluator)

    def apply_config(self, config: DrowsinessConfig) -> None:
        """把配置同步到各组件（调用方负责校验）"""
        self.config = config
        self.closure.ear_threshold = config.ear_threshold
        self.blinks.blink_threshold = config.blink_threshold
        self.mouth.yawn_threshold = config.yawn_threshold
        self.alerts.cooldown_ms = config.alert_cooldown_ms


def neutral_assessment(timestamp: int, mouth_ar: float = 0.0, face_detected: bool = False) -> DrowsinessAssessment:
    return DrowsinessAssessment(
        ear=0.0,
        mouth_ar=mouth_ar,
        blink_rate=0,
        avg_ear=0.0,
        drowsiness_score=0.0,
        is_drowsy=False,
        is_sustained_closure=False,
        closure_duration=0,
        alert_level=None,
        alert_message="",
        timestamp=timestamp,
        face_detected=face_detected,
    )


def process(
    context: EngineContext,
    landmarks: Optional[FaceLandmarks],
    timestamp: int,
) -> DrowsinessAssessment:
    """
    处理单帧关键点，返回本帧困倦评估。

    未检测到人脸或双眼关键点都不可用（EAR 为 0）时，暂停闭眼计时、
    不写入历史窗口，返回中性评估。

    Args:
        context: 引擎上下文
        landmarks: 本帧关键点，未检测到人脸时为 None
        timestamp: 帧时间戳（毫秒）

    Returns:
        DrowsinessAssessment
    """
    if landmarks is None:
        context.closure.pause(timestamp)
        return neutral_assessment(timestamp)

    mouth = context.mouth.analyze(landmarks.mouth)
    ear = average_ear(landmarks.left_eye, landmarks.right_eye)
    if ear <= 0.0:
        context.closure.pause(timestamp)
        return neutral_assessment(timestamp, mouth_ar=mouth.mar, face_detected=True)

    closure = context.closure.update(ear, timestamp)
    context.history.record(timestamp, ear, closure.is_blink)
    blinked = context.blinks.update(ear, timestamp)

    assessment = context.evaluator.evaluate(
        timestamp, context.history, closure, context.config, mouth=mouth
    )

    event = context.alerts.evaluate(assessment)
    if event is not None:
        assessment = replace(assessment, alert_raised=True)

    context.sessions.record(
        timestamp,
        ear,
        assessment.drowsiness_score,
        alert_level=event.level if event is not None else None,
        blink_rate=assessment.blink_rate,
        blinked=blinked,
    )
    return assessment


class DrowsinessEngine:
    """线程安全的引擎外壳，持有一个 EngineContext。

    帧处理、配置替换与启停都在同一把锁内串行执行，
    警报投递由 AlertDispatcher 在后台线程完成，不阻塞帧处理。
    """

    def __init__(
        self,
        config: Optional[DrowsinessConfig] = None,
        sinks: Optional[Iterable[AlertSink]] = None,
        scheduler: Optional[TimerScheduler] = None,
        clock: Optional[Callable[[], int]] = None,
        asynchronous_alerts: bool = True,
    ):
        config = validate_config(config or DrowsinessConfig())
        sink_list = [LoggingAlertSink()]
        if sinks is not None:
            sink_list.extend(sinks)
        self.dispatcher = AlertDispatcher(sink_list, asynchronous=asynchronous_alerts)
        self._clock = clock or _now_ms
        self._lock = threading.RLock()
        self.context = EngineContext(
            config=config,
            alerts=AlertPolicy(self.dispatcher, config.alert_cooldown_ms, scheduler),
        )
        self.context.apply_config(config)

    @property
    def config(self) -> DrowsinessConfig:
        return self.context.config

    @property
    def total_blinks(self) -> int:
        return self.context.blinks.total

    def now(self) -> int:
        return self._clock()

    def process(self, landmarks: Optional[FaceLandmarks], timestamp: Optional[int] = None) -> DrowsinessAssessment:
        if timestamp is None:
            timestamp = self.now()
        with self._lock:
            return process(self.context, landmarks, timestamp)

    def reconfigure(self, config: DrowsinessConfig) -> DrowsinessConfig:
        """校验后整体替换配置，校验失败时保持原配置"""
        validate_config(config)
        with self._lock:
            self.context.apply_config(config)
        logger.info("配置已更新: %s", config)
        return config

    def reset_settings(self) -> DrowsinessConfig:
        """恢复默认配置并清空历史窗口、闭眼状态和眨眼计数"""
        with self._lock:
            self.context.apply_config(DrowsinessConfig())
            self.context.history.clear()
            self.context.closure.reset()
            self.context.blinks.reset()
        return self.context.config

    def start_session(self) -> SessionSnapshot:
        with self._lock:
            return self.context.sessions.start_session(self.now())

    def end_session(self) -> Optional[SessionSnapshot]:
        with self._lock:
            return self.context.sessions.end_session(self.now())

    def start_monitoring(self) -> SessionSnapshot:
        return self.start_session()

    def stop_monitoring(self) -> Optional[SessionSnapshot]:
        """取消自动解除定时器、结束会话并清除闭眼状态，可重复调用"""
        with self._lock:
            self.context.alerts.reset()
            self.context.closure.reset()
            return self.context.sessions.end_session(self.now())

    def dismiss_alert(self) -> None:
        self.context.alerts.dismiss()

    def test_alert(self, level: AlertLevel) -> AlertEvent:
        return self.context.alerts.test_alert(AlertLevel(level), self.now())

    def export_document(self) -> dict:
        with self._lock:
            return build_export_document(self.context.sessions, self.context.config)

    def close(self) -> None:
        self.stop_monitoring()
        self.dispatcher.close()
