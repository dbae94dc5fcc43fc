"""嘴巴状态分析模块，负责计算 MAR 值并标记哈欠"""

from typing import Sequence

from detectors.geometry import mouth_aspect_ratio
from models.data_models import MouthResult, Point2D


class MouthAnalyzer:
    """计算 MAR 值并输出哈欠标记（仅用于展示，不参与困倦评分）"""

    def __init__(self, yawn_threshold: float = 0.6):
        self.yawn_threshold = yawn_threshold

    def analyze(self, mouth_points: Sequence[Point2D]) -> MouthResult:
        """
        分析嘴巴状态。

        Args:
            mouth_points: 8 个嘴巴关键点

        Returns:
            MouthResult(mar, is_yawning)
        """
        mar = mouth_aspect_ratio(mouth_points)
        return MouthResult(mar=mar, is_yawning=mar > self.yawn_threshold)
