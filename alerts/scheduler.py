"""可取消的延时回调"""

import threading
from typing import Callable


class TimerScheduler:
    """基于 threading.Timer 的延时任务调度，返回的句柄支持 cancel()"""

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay_ms / 1000.0, callback)
        timer.daemon = True
        timer.start()
        return timer
