"""关键点几何特征计算：EAR 与 MAR"""

import math
from typing import Sequence

from models.data_models import Point2D

EYE_POINT_COUNT = 6
MOUTH_POINT_COUNT = 8


def _aspect_ratio(points: Sequence[Point2D], horizontal: tuple, vertical_pairs: tuple) -> float:
    width = math.dist(points[horizontal[0]], points[horizontal[1]])
    if width == 0.0:
        return 0.0
    height = sum(math.dist(points[a], points[b]) for a, b in vertical_pairs)
    return height / (2.0 * width)


def eye_aspect_ratio(eye_points: Sequence[Point2D]) -> float:
    """
    计算单只眼睛的 EAR 值。

    公式: EAR = (|p1-p5| + |p2-p4|) / (2 * |p0-p3|)

    Args:
        eye_points: 至少 6 个眼睛轮廓关键点 [(x,y), ...]，0 和 3 为左右眼角

    Returns:
        EAR 值；关键点不足或水平距离为零时返回 0.0
    """
    if len(eye_points) < EYE_POINT_COUNT:
        return 0.0
    return _aspect_ratio(eye_points, (0, 3), ((1, 5), (2, 4)))


def mouth_aspect_ratio(mouth_points: Sequence[Point2D]) -> float:
    """
    计算 MAR 值。

    公式: MAR = (|p2-p6| + |p3-p7|) / (2 * |p0-p4|)

    Args:
        mouth_points: 至少 8 个嘴巴关键点，0 和 4 为左右嘴角

    Returns:
        MAR 值；关键点不足或水平距离为零时返回 0.0
    """
    if len(mouth_points) < MOUTH_POINT_COUNT:
        return 0.0
    return _aspect_ratio(mouth_points, (0, 4), ((2, 6), (3, 7)))


def average_ear(left_eye: Sequence[Point2D], right_eye: Sequence[Point2D]) -> float:
    """
    双眼 EAR 平均值。

    只对 EAR 大于 0 的眼睛取平均；单眼关键点缺失时返回另一只眼的值，
    双眼都不可用时返回 0.0。
    """
    usable = [ear for ear in (eye_aspect_ratio(left_eye), eye_aspect_ratio(right_eye)) if ear > 0.0]
    if not usable:
        return 0.0
    return sum(usable) / len(usable)
