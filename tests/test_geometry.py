"""几何特征计算单元测试"""

import math

import pytest
from hypothesis import assume, given
from hypothesis import strategies as st

from detectors.geometry import average_ear, eye_aspect_ratio, mouth_aspect_ratio


def _eye(ear, width=30.0, x=100.0, y=100.0):
    """生成 EAR 恰为 ear 的 6 个眼睛关键点"""
    h = ear * width
    return [
        (x, y),
        (x + width / 3, y - h / 2),
        (x + 2 * width / 3, y - h / 2),
        (x + width, y),
        (x + 2 * width / 3, y + h / 2),
        (x + width / 3, y + h / 2),
    ]


def _mouth(mar, width=50.0):
    h = mar * width
    return [
        (0.0, 0.0),
        (10.0, -5.0),
        (20.0, -h / 2),
        (30.0, -h / 2),
        (width, 0.0),
        (30.0, 5.0),
        (20.0, h / 2),
        (30.0, h / 2),
    ]


coord = st.floats(min_value=-1000, max_value=1000, allow_nan=False, allow_infinity=False)
point = st.tuples(coord, coord)


class TestEyeAspectRatio:
    """测试 eye_aspect_ratio()"""

    def test_known_value(self):
        assert eye_aspect_ratio(_eye(0.3)) == pytest.approx(0.3)

    def test_closed_eye_is_zero(self):
        assert eye_aspect_ratio(_eye(0.0)) == 0.0

    @pytest.mark.parametrize("count", [0, 1, 5])
    def test_too_few_points_returns_zero(self, count):
        assert eye_aspect_ratio(_eye(0.3)[:count]) == 0

    def test_extra_points_ignored(self):
        points = _eye(0.25) + [(999.0, 999.0)] * 10
        assert eye_aspect_ratio(points) == pytest.approx(0.25)

    def test_degenerate_horizontal_returns_zero(self):
        """水平距离为零时返回 0 而非 inf/nan"""
        points = [(5.0, 5.0), (5.0, 0.0), (6.0, 0.0), (5.0, 5.0), (6.0, 10.0), (5.0, 10.0)]
        assert eye_aspect_ratio(points) == 0.0

    @given(
        points=st.lists(point, min_size=6, max_size=6),
        k=st.floats(min_value=0.01, max_value=100, allow_nan=False),
    )
    def test_scale_invariant(self, points, k):
        """所有坐标按 k>0 等比缩放后 EAR 不变"""
        assume(math.dist(points[0], points[3]) > 1e-3)
        scaled = [(x * k, y * k) for x, y in points]
        assert eye_aspect_ratio(scaled) == pytest.approx(eye_aspect_ratio(points), rel=1e-6, abs=1e-9)

    @given(st.lists(point, max_size=5))
    def test_short_input_always_zero(self, points):
        assert eye_aspect_ratio(points) == 0


class TestMouthAspectRatio:
    """测试 mouth_aspect_ratio()"""

    def test_known_value(self):
        assert mouth_aspect_ratio(_mouth(0.7)) == pytest.approx(0.7)

    def test_six_points_not_enough(self):
        assert mouth_aspect_ratio(_mouth(0.7)[:6]) == 0

    @given(st.lists(point, max_size=7))
    def test_short_input_always_zero(self, points):
        assert mouth_aspect_ratio(points) == 0

    def test_degenerate_horizontal_returns_zero(self):
        points = _mouth(0.5)
        points[4] = points[0]
        assert mouth_aspect_ratio(points) == 0.0


class TestAverageEar:
    def test_average_of_both_eyes(self):
        assert average_ear(_eye(0.2), _eye(0.3)) == pytest.approx(0.25)

    def test_one_eye_missing_uses_other_eye(self):
        assert average_ear(_eye(0.3), []) == pytest.approx(0.3)
        assert average_ear(_eye(0.3)[:5], _eye(0.28)) == pytest.approx(0.28)

    def test_both_eyes_missing(self):
        assert average_ear([], _eye(0.3)[:4]) == 0.0
