"""警报输出通道：日志通道与非阻塞分发器"""

import logging
import queue
import threading
from typing import Iterable, List, Optional

from models.data_models import AlertEvent, AlertLevel

logger = logging.getLogger(__name__)

# 各等级的提示音 (频率 Hz, 时长 ms) 序列与振动模式，供声音/振动通道使用
ALERT_PATTERNS = {
    AlertLevel.LOW: {
        "tones": [(600, 300)],
        "vibration": [200],
    },
    AlertLevel.MEDIUM: {
        "tones": [(800, 400), (800, 400)],
        "vibration": [200, 100, 200],
    },
    AlertLevel.HIGH: {
        "tones": [(1000, 500)] * 3,
        "vibration": [300, 100, 300, 100, 300],
    },
    AlertLevel.CRITICAL: {
        "tones": [(1200, 200), (800, 200)] * 4,
        "vibration": [500, 200, 500, 200, 500, 200, 500],
    },
}

_LOG_LEVELS = {
    AlertLevel.LOW: logging.INFO,
    AlertLevel.MEDIUM: logging.WARNING,
    AlertLevel.HIGH: logging.WARNING,
    AlertLevel.CRITICAL: logging.CRITICAL,
}


class AlertSink:
    """警报通道接口"""

    def deliver(self, event: AlertEvent) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class LoggingAlertSink(AlertSink):
    """把警报写入日志"""

    def deliver(self, event: AlertEvent) -> None:
        logger.log(
            _LOG_LEVELS.get(event.level, logging.WARNING),
            "%s 级警报: %s",
            event.level.value.upper(),
            event.message,
        )


class AlertDispatcher(AlertSink):
    """把警报转发给多个通道。

    asynchronous=True 时由后台线程投递，deliver() 立即返回；
    任一通道抛出的异常只记录日志，不影响其他通道和调用方。
    """

    _STOP = object()

    def __init__(self, sinks: Optional[Iterable[AlertSink]] = None, asynchronous: bool = True):
        self.sinks: List[AlertSink] = list(sinks) if sinks is not None else [LoggingAlertSink()]
        self.asynchronous = asynchronous
        self._queue: "queue.Queue" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def deliver(self, event: AlertEvent) -> None:
        if not self.asynchronous:
            self._dispatch(event)
            return
        self._ensure_worker()
        self._queue.put(event)

    def _ensure_worker(self):
        with self._lock:
            if self._thread is None or not self._thread.is_alive():
                self._thread = threading.Thread(target=self._run, daemon=True)
                self._thread.start()

    def _run(self):
        while True:
            event = self._queue.get()
            try:
                if event is self._STOP:
                    return
                self._dispatch(event)
            finally:
                self._queue.task_done()

    def _dispatch(self, event: AlertEvent) -> None:
        for sink in self.sinks:
            try:
                sink.deliver(event)
            except Exception:
                logger.exception("警报通道 %s 投递失败", type(sink).__name__)

    def flush(self, timeout: float = 1.0) -> None:
        """等待已排队的警报投递完成（主要用于测试和退出前）"""
        if self._thread is None:
            return
        done = threading.Event()

        def _wait():
            self._queue.join()
            done.set()

        threading.Thread(target=_wait, daemon=True).start()
        done.wait(timeout)

    def close(self) -> None:
        with self._lock:
            thread = self._thread
            self._thread = None
        if thread is not None and thread.is_alive():
            self._queue.put(self._STOP)
            thread.join(timeout=0.5)
        for sink in self.sinks:
            try:
                sink.close()
            except Exception:
                logger.exception("关闭警报通道 %s 失败", type(sink).__name__)
