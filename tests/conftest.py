import sys
import os

# Add project root to sys.path so tests can import from all modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest  # noqa: E402
from hypothesis import settings  # noqa: E402

from alerts.sinks import AlertSink  # noqa: E402

# CI profile: more examples for thorough testing
settings.register_profile("ci", max_examples=200)
# Dev profile: fewer examples for faster iteration
settings.register_profile("dev", max_examples=100)
# Default to dev profile
settings.load_profile("dev")


class ManualTimer:
    """手动触发的定时器句柄"""

    def __init__(self, delay_ms, callback):
        self.delay_ms = delay_ms
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


class ManualScheduler:
    """记录所有定时任务，由测试决定何时触发"""

    def __init__(self):
        self.timers = []

    def schedule(self, delay_ms, callback):
        timer = ManualTimer(delay_ms, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled]


class RecordingSink(AlertSink):
    """记录收到的警报事件"""

    def __init__(self):
        self.events = []

    def deliver(self, event):
        self.events.append(event)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def sink():
    return RecordingSink()
