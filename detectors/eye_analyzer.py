"""眼睛状态分析模块，跟踪闭眼持续时间并区分眨眼与持续闭眼"""

import logging
from dataclasses import replace
from typing import Optional

from models.data_models import ClosureState, EyeClosureResult

logger = logging.getLogger(__name__)

BLINK_MAX_DURATION_MS = 500
SUSTAINED_CLOSURE_MS = 3000
BLINK_DEBOUNCE_MS = 200


class EyeClosureTracker:
    """睁眼/闭眼两状态的状态机，输出当前闭眼时长和眨眼/持续闭眼判定"""

    def __init__(self, ear_threshold: float = 0.25):
        """初始化阈值和闭眼状态"""
        self.ear_threshold = ear_threshold
        self._state = ClosureState()
        self._paused_at: Optional[int] = None

    @property
    def state(self) -> ClosureState:
        return replace(self._state)

    def update(self, ear: float, timestamp: int) -> EyeClosureResult:
        """
        根据当前帧 EAR 推进状态机。

        Args:
            ear: 当前帧双眼平均 EAR
            timestamp: 当前帧时间戳（毫秒）

        Returns:
            EyeClosureResult(ear, is_closed, closure_duration, is_blink, is_sustained_closure)
        """
        self._resume(timestamp)
        state = self._state
        is_closed = ear < self.ear_threshold

        if is_closed:
            if not state.ongoing:
                state.ongoing = True
                state.start_time = timestamp
                logger.debug("开始闭眼 t=%d", timestamp)
            closure_duration = timestamp - state.start_time
        else:
            if state.ongoing:
                state.last_duration = timestamp - state.start_time
                logger.debug("闭眼结束，持续 %d ms", state.last_duration)
                state.ongoing = False
                state.start_time = None
            closure_duration = 0

        return EyeClosureResult(
            ear=ear,
            is_closed=is_closed,
            closure_duration=closure_duration,
            is_blink=is_closed and closure_duration < BLINK_MAX_DURATION_MS,
            is_sustained_closure=closure_duration >= SUSTAINED_CLOSURE_MS,
        )

    def pause(self, timestamp: int) -> None:
        """暂停闭眼计时（如未检测到人脸），恢复时扣除暂停时长"""
        if self._paused_at is None:
            self._paused_at = timestamp

    def _resume(self, timestamp: int) -> None:
        if self._paused_at is None:
            return
        if self._state.ongoing:
            self._state.start_time += max(0, timestamp - self._paused_at)
        self._paused_at = None

    def reset(self):
        """重置闭眼状态"""
        self._state = ClosureState()
        self._paused_at = None


class BlinkCounter:
    """按 blink_threshold 统计原始眨眼次数，两次计数间隔需超过 200ms"""

    def __init__(self, blink_threshold: float = 0.2, debounce_ms: int = BLINK_DEBOUNCE_MS):
        self.blink_threshold = blink_threshold
        self.debounce_ms = debounce_ms
        self.total = 0
        self._last_blink_time: Optional[int] = None

    def update(self, ear: float, timestamp: int) -> bool:
        """本帧计入一次眨眼时返回 True"""
        if ear >= self.blink_threshold:
            return False
        if self._last_blink_time is not None and timestamp - self._last_blink_time <= self.debounce_ms:
            return False
        self._last_blink_time = timestamp
        self.total += 1
        return True

    def reset(self):
        self.total = 0
        self._last_blink_time = None
