"""EAR 历史滑动窗口"""

from collections import deque
from typing import List

from models.data_models import Sample

DEFAULT_MAX_HISTORY_LENGTH = 100


class HistoryBuffer:
    """固定容量的 EAR 采样窗口，超出容量时先淘汰最早的记录。

    ear、timestamp、blink 标记三个序列始终等长。
    """

    def __init__(self, max_length: int = DEFAULT_MAX_HISTORY_LENGTH):
        if max_length < 1:
            raise ValueError(f"max_length 必须为正整数: {max_length}")
        self.max_length = max_length
        self._ears = deque(maxlen=max_length)
        self._timestamps = deque(maxlen=max_length)
        self._blink_flags = deque(maxlen=max_length)

    def __len__(self) -> int:
        return len(self._ears)

    def record(self, timestamp: int, ear: float, blink_flag: bool) -> None:
        """追加一条采样"""
        self._ears.append(ear)
        self._timestamps.append(timestamp)
        self._blink_flags.append(bool(blink_flag))

    def samples(self) -> List[Sample]:
        return [Sample(timestamp=t, ear=e) for t, e in zip(self._timestamps, self._ears)]

    def blink_flags(self) -> List[bool]:
        return list(self._blink_flags)

    def average(self) -> float:
        """窗口内 EAR 均值，窗口为空时返回 0.0"""
        if not self._ears:
            return 0.0
        return sum(self._ears) / len(self._ears)

    def count_recent_blinks(self, since_timestamp: int) -> int:
        """统计 timestamp > since_timestamp 且标记为眨眼的采样数"""
        return sum(
            1 for ts, blink in zip(self._timestamps, self._blink_flags)
            if blink and ts > since_timestamp
        )

    def recent_values(self, n: int) -> List[float]:
        """最近 n 个 EAR 值（不足 n 个时全部返回）"""
        if n <= 0:
            return []
        return list(self._ears)[-n:]

    def clear(self):
        self._ears.clear()
        self._timestamps.clear()
        self._blink_flags.clear()
