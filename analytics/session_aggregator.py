"""会话统计模块：累计会话指标并维护实时数据序列"""

import logging
from collections import deque
from types import MappingProxyType
from typing import Optional, Tuple

from models.data_models import AlertLevel, HistoryPoint, RealTimePoint, SessionSnapshot

logger = logging.getLogger(__name__)

REALTIME_MAX_POINTS = 300
SESSION_HISTORY_MAX_POINTS = 1000
SESSION_ARCHIVE_MAX = 50


class _OpenSession:
    """进行中的会话，仅由 SessionAggregator 修改"""

    def __init__(self, session_id: str, start_time: int):
        self.id = session_id
        self.start_time = start_time
        self.duration = 0
        self.total_blinks = 0
        self.total_alerts = 0
        self.ear_sum = 0.0
        self.ear_count = 0
        self.max_drowsiness_score = 0.0
        self.alerts_by_level = {level.value: 0 for level in AlertLevel}
        self.ear_history = deque(maxlen=SESSION_HISTORY_MAX_POINTS)
        self.drowsiness_history = deque(maxlen=SESSION_HISTORY_MAX_POINTS)

    def snapshot(self, end_time: Optional[int] = None) -> SessionSnapshot:
        return SessionSnapshot(
            id=self.id,
            start_time=self.start_time,
            end_time=end_time,
            duration=self.duration,
            total_blinks=self.total_blinks,
            total_alerts=self.total_alerts,
            avg_ear=self.ear_sum / self.ear_count if self.ear_count else 0.0,
            max_drowsiness_score=self.max_drowsiness_score,
            alerts_by_level=MappingProxyType(dict(self.alerts_by_level)),
            ear_history=tuple(self.ear_history),
            drowsiness_history=tuple(self.drowsiness_history),
        )


class SessionAggregator:
    """管理当前会话与历史会话归档，对外只暴露不可变快照。"""

    def __init__(self):
        self._current: Optional[_OpenSession] = None
        self._sessions = deque(maxlen=SESSION_ARCHIVE_MAX)
        self._real_time = deque(maxlen=REALTIME_MAX_POINTS)

    @property
    def is_active(self) -> bool:
        return self._current is not None

    @property
    def current_session(self) -> Optional[SessionSnapshot]:
        return self._current.snapshot() if self._current is not None else None

    @property
    def sessions(self) -> Tuple[SessionSnapshot, ...]:
        """已结束的会话，最新的在前"""
        return tuple(self._sessions)

    @property
    def real_time_data(self) -> Tuple[RealTimePoint, ...]:
        return tuple(self._real_time)

    def start_session(self, timestamp: int) -> SessionSnapshot:
        """开始新会话；已有会话进行中时先将其结束"""
        if self._current is not None:
            logger.info("会话 %s 仍在进行，先行结束", self._current.id)
            self.end_session(timestamp)
        self._current = _OpenSession(f"session_{timestamp}", timestamp)
        logger.info("会话开始: %s", self._current.id)
        return self._current.snapshot()

    def record(
        self,
        timestamp: int,
        ear: float,
        drowsiness_score: float,
        alert_level: Optional[AlertLevel] = None,
        blink_rate: int = 0,
        blinked: bool = False,
    ) -> None:
        """
        记录一帧数据。

        Args:
            timestamp: 帧时间戳（毫秒）
            ear: 当前 EAR
            drowsiness_score: 当前困倦分数
            alert_level: 本帧实际触发的警报等级（未触发为 None）
            blink_rate: 最近 60 秒眨眼次数
            blinked: 本帧是否计入一次眨眼
        """
        self._real_time.append(
            RealTimePoint(timestamp=timestamp, ear=ear, drowsiness=drowsiness_score, blinks=blink_rate)
        )

        session = self._current
        if session is None:
            return

        session.duration = timestamp - session.start_time
        session.max_drowsiness_score = max(session.max_drowsiness_score, drowsiness_score)
        session.ear_history.append(HistoryPoint(timestamp=timestamp, value=ear))
        session.drowsiness_history.append(HistoryPoint(timestamp=timestamp, value=drowsiness_score))
        session.ear_sum += ear
        session.ear_count += 1
        if blinked:
            session.total_blinks += 1
        if alert_level is not None:
            key = AlertLevel(alert_level).value
            session.alerts_by_level[key] = session.alerts_by_level.get(key, 0) + 1
            session.total_alerts += 1

    def end_session(self, timestamp: int) -> Optional[SessionSnapshot]:
        """结束当前会话并归档；没有进行中的会话时不做任何事"""
        session = self._current
        if session is None:
            return None
        session.duration = timestamp - session.start_time
        snapshot = session.snapshot(end_time=timestamp)
        self._sessions.appendleft(snapshot)
        self._current = None
        logger.info(
            "会话结束: %s，时长 %d ms，警报 %d 次",
            snapshot.id, snapshot.duration, snapshot.total_alerts,
        )
        return snapshot

    def clear(self):
        """清空归档和实时数据（不影响进行中的会话）"""
        self._sessions.clear()
        self._real_time.clear()
