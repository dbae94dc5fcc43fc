"""MediaPipe FaceMesh 关键点来源：把 468 点网格裁剪为困倦评估所需的眼、嘴轮廓"""

from typing import List, Optional, Sequence

import cv2
import mediapipe as mp
import numpy as np

from models.data_models import FaceLandmarks, Point2D

# 每只眼 6 点，顺序与 eye_aspect_ratio 一致：0/3 为眼角，(1,5)、(2,4) 为上下眼睑
LEFT_EYE_INDICES = [33, 160, 158, 133, 153, 144]
RIGHT_EYE_INDICES = [362, 385, 387, 263, 373, 380]

# 内唇 8 点，顺序与 mouth_aspect_ratio 一致：0/4 为嘴角，(2,6)、(3,7) 为上下唇
MOUTH_INDICES = [78, 81, 13, 312, 308, 178, 14, 317]


def _select(points: Sequence[Point2D], indices: Sequence[int]) -> List[Point2D]:
    return [points[i] for i in indices]


class FaceDetector:
    """单人脸关键点来源，每帧输出像素坐标的 FaceLandmarks"""

    def __init__(
        self,
        max_num_faces: int = 1,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ):
        self._face_mesh = mp.solutions.face_mesh.FaceMesh(
            max_num_faces=max_num_faces,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
            refine_landmarks=False,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def detect(self, frame: np.ndarray) -> Optional[FaceLandmarks]:
        """
        提取一帧中第一张人脸的眼、嘴轮廓。

        Args:
            frame: BGR 图像帧

        Returns:
            FaceLandmarks（左右眼各 6 点、嘴 8 点，像素坐标）；无人脸时返回 None
        """
        height, width = frame.shape[:2]
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        rgb.flags.writeable = False

        results = self._face_mesh.process(rgb)
        if not results.multi_face_landmarks:
            return None

        mesh = [(lm.x * width, lm.y * height) for lm in results.multi_face_landmarks[0].landmark]
        return FaceLandmarks(
            left_eye=_select(mesh, LEFT_EYE_INDICES),
            right_eye=_select(mesh, RIGHT_EYE_INDICES),
            mouth=_select(mesh, MOUTH_INDICES),
        )

    def close(self):
        self._face_mesh.close()
