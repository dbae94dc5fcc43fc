"""警报状态机：冷却、升级与自动解除"""

import logging
import threading
from dataclasses import replace
from typing import Optional

from alerts.scheduler import TimerScheduler
from alerts.sinks import AlertSink, LoggingAlertSink
from models.data_models import AlertEvent, AlertLevel, AlertState, DrowsinessAssessment

logger = logging.getLogger(__name__)

AUTO_DISMISS_MS = {
    AlertLevel.CRITICAL: 10000,
    AlertLevel.HIGH: 7000,
}
DEFAULT_AUTO_DISMISS_MS = 5000

TEST_MESSAGES = {
    AlertLevel.LOW: "测试：低级困倦警报",
    AlertLevel.MEDIUM: "测试：中级困倦警报",
    AlertLevel.HIGH: "测试：高级困倦警报",
    AlertLevel.CRITICAL: "测试：严重困倦警报",
}


def auto_dismiss_delay(level: AlertLevel) -> int:
    return AUTO_DISMISS_MS.get(level, DEFAULT_AUTO_DISMISS_MS)


class AlertPolicy:
    """Inactive / Active(level) 两态警报状态机。

    持续闭眼导致的 critical 警报不受冷却限制（已处于 Active(critical)
    时不重复触发），其余警报（包括分数驱动的 critical）须距上次警报超过
    cooldown_ms 才会触发。每次触发都会重新安排自动解除定时器；旧定时器
    通过代数计数失效。手动测试警报不更新冷却计时。
    """

    def __init__(
        self,
        sink: Optional[AlertSink] = None,
        cooldown_ms: int = 3000,
        scheduler: Optional[TimerScheduler] = None,
    ):
        self.sink = sink if sink is not None else LoggingAlertSink()
        self.cooldown_ms = cooldown_ms
        self._scheduler = scheduler if scheduler is not None else TimerScheduler()
        self._lock = threading.RLock()
        self._state = AlertState()
        self._last_alert_time: Optional[int] = None
        self._timer = None
        self._generation = 0

    @property
    def state(self) -> AlertState:
        with self._lock:
            return replace(self._state)

    @property
    def last_alert_time(self) -> Optional[int]:
        return self._last_alert_time

    def evaluate(self, assessment: DrowsinessAssessment) -> Optional[AlertEvent]:
        """根据单帧评估决定是否触发警报，仅在判定为困倦时报警"""
        if assessment.alert_level is None or not assessment.is_drowsy:
            return None
        return self.trigger(
            assessment.alert_level,
            assessment.alert_message,
            assessment.timestamp,
            sustained=assessment.is_sustained_closure,
        )

    def trigger(
        self,
        level: AlertLevel,
        message: str,
        timestamp: int,
        force: bool = False,
        sustained: bool = False,
    ) -> Optional[AlertEvent]:
        """
        尝试触发警报。

        Args:
            level: 警报等级
            message: 警报文字
            timestamp: 当前时间戳（毫秒）
            force: 跳过冷却和重复抑制，且不更新冷却计时（用于手动测试）
            sustained: 是否由持续闭眼触发

        Returns:
            实际触发时返回 AlertEvent，被抑制时返回 None
        """
        with self._lock:
            if not force and not self._should_fire(level, timestamp, sustained):
                return None

            if not force:
                self._last_alert_time = timestamp
            self._state = AlertState(active=True, level=level, message=message, raised_at=timestamp)
            self._schedule_auto_dismiss(level)
            event = AlertEvent(level=level, message=message, timestamp=timestamp)

        logger.info("%s 警报触发: %s", level.value.upper(), message)
        try:
            self.sink.deliver(event)
        except Exception:
            logger.exception("警报投递失败")
        return event

    def _should_fire(self, level: AlertLevel, timestamp: int, sustained: bool) -> bool:
        if sustained and level is AlertLevel.CRITICAL:
            return not (self._state.active and self._state.level is AlertLevel.CRITICAL)
        if self._last_alert_time is None:
            return True
        return timestamp - self._last_alert_time > self.cooldown_ms

    def _schedule_auto_dismiss(self, level: AlertLevel) -> None:
        self._cancel_timer()
        generation = self._generation
        self._timer = self._scheduler.schedule(
            auto_dismiss_delay(level), lambda: self._auto_dismiss(generation)
        )

    def _cancel_timer(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _auto_dismiss(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or not self._state.active:
                return
            self._state.active = False
            self._timer = None
        logger.debug("警报自动解除")

    def dismiss(self) -> None:
        """手动解除警报，未激活时无操作"""
        with self._lock:
            self._cancel_timer()
            self._state.active = False

    def test_alert(self, level: AlertLevel, timestamp: int) -> AlertEvent:
        return self.trigger(level, TEST_MESSAGES[level], timestamp, force=True)

    def reset(self) -> None:
        """解除警报并清空冷却计时"""
        with self._lock:
            self.dismiss()
            self._state = AlertState()
            self._last_alert_time = None
