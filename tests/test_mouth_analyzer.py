"""MouthAnalyzer 单元测试"""

import pytest

from detectors.mouth_analyzer import MouthAnalyzer


def _mouth(mar, width=40.0):
    h = mar * width
    return [
        (0.0, 0.0), (10.0, -2.0), (15.0, -h / 2), (25.0, -h / 2),
        (width, 0.0), (25.0, 2.0), (15.0, h / 2), (25.0, h / 2),
    ]


class TestMouthAnalyzer:
    def test_closed_mouth_not_yawning(self):
        result = MouthAnalyzer().analyze(_mouth(0.2))
        assert result.mar == pytest.approx(0.2)
        assert result.is_yawning is False

    def test_wide_mouth_is_yawning(self):
        assert MouthAnalyzer().analyze(_mouth(0.8)).is_yawning is True

    def test_threshold_is_strict(self):
        analyzer = MouthAnalyzer(yawn_threshold=0.5)
        assert analyzer.analyze(_mouth(0.5)).is_yawning is False

    def test_missing_points(self):
        result = MouthAnalyzer().analyze([])
        assert result.mar == 0.0
        assert result.is_yawning is False
