"""困倦检测系统入口文件（无界面，结果写入日志）"""

import argparse
import logging
import sys

import cv2

from detectors.face_detector import FaceDetector
from engine.drowsiness_engine import DrowsinessEngine
from models.config import load_config

logger = logging.getLogger("drowsiness")


class DetectionSystem:
    """困倦检测系统主程序，协调摄像头、关键点检测与引擎并管理主循环。"""

    def __init__(self, config_path=None, camera_index=0):
        self.camera_index = camera_index
        self._cap = None
        self.engine = DrowsinessEngine(load_config(config_path))
        self.face_detector = FaceDetector()
        self._was_drowsy = False

    def run(self, max_frames=None):
        """启动主检测循环。"""
        self._cap = cv2.VideoCapture(self.camera_index)

        if not self._cap.isOpened():
            logger.error("无法打开摄像头 %s", self.camera_index)
            sys.exit(1)

        self.engine.start_monitoring()
        try:
            self._main_loop(max_frames)
        except KeyboardInterrupt:
            logger.info("收到中断信号，停止检测")
        finally:
            self.stop()

    def _main_loop(self, max_frames):
        """视频流处理主循环。"""
        frames = 0
        while max_frames is None or frames < max_frames:
            ret, frame = self._cap.read()
            if not ret:
                continue
            frames += 1

            landmarks = self.face_detector.detect(frame)
            assessment = self.engine.process(landmarks)
            self._log_transitions(assessment)

    def _log_transitions(self, assessment):
        """困倦状态变化时记录日志。"""
        if assessment.is_drowsy and not self._was_drowsy:
            logger.warning(
                "进入困倦状态 (EAR=%.2f, 分数=%.1f)",
                assessment.ear, assessment.drowsiness_score,
            )
        elif not assessment.is_drowsy and self._was_drowsy:
            logger.info("困倦状态解除")
        self._was_drowsy = assessment.is_drowsy

    def stop(self):
        """结束会话、释放摄像头资源并关闭人脸检测器。"""
        session = self.engine.stop_monitoring()
        if session is not None:
            logger.info("本次会话: 眨眼 %d 次，警报 %d 次", session.total_blinks, session.total_alerts)
        if self._cap is not None and self._cap.isOpened():
            self._cap.release()
        self._cap = None
        self.face_detector.close()
        self.engine.dispatcher.close()


def main(argv=None):
    parser = argparse.ArgumentParser(description="困倦检测系统")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON 阈值配置文件路径",
    )
    parser.add_argument("--camera", type=int, default=0, help="摄像头编号")
    parser.add_argument("--max-frames", type=int, default=None, help="处理指定帧数后退出")
    parser.add_argument("--log-level", default="INFO", help="日志级别")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)-25s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    system = DetectionSystem(config_path=args.config, camera_index=args.camera)
    system.run(max_frames=args.max_frames)


if __name__ == "__main__":
    main()
