"""Tests for main.py DetectionSystem - config loading, main loop and shutdown."""

import json
import logging
import sys
from unittest.mock import MagicMock, patch

import pytest

# Mock mediapipe before importing main to avoid hanging
_mp_mock = MagicMock()
sys.modules.setdefault("mediapipe", _mp_mock)
sys.modules.setdefault("mediapipe.solutions", _mp_mock.solutions)
sys.modules.setdefault("mediapipe.solutions.face_mesh", _mp_mock.solutions.face_mesh)

import main  # noqa: E402
from main import DetectionSystem  # noqa: E402
from models.data_models import DrowsinessConfig, FaceLandmarks  # noqa: E402


def _face(ear):
    h = ear * 30.0
    eye = [(0.0, 0.0), (10.0, -h / 2), (20.0, -h / 2), (30.0, 0.0), (20.0, h / 2), (10.0, h / 2)]
    mouth = [(0.0, 0.0)] * 4 + [(40.0, 0.0)] + [(0.0, 0.0)] * 3
    return FaceLandmarks(left_eye=eye, right_eye=eye, mouth=mouth)


@pytest.fixture
def detector():
    with patch("main.FaceDetector") as factory:
        yield factory.return_value


class TestInit:
    def test_defaults_without_config(self, detector):
        system = DetectionSystem()
        assert system.engine.config == DrowsinessConfig()
        assert system.face_detector is detector

    def test_loads_config_file(self, detector, tmp_path):
        cfg_file = tmp_path / "config.json"
        cfg_file.write_text(json.dumps({"ear_threshold": 0.3, "consecutive_frames": 6}), encoding="utf-8")

        system = DetectionSystem(config_path=str(cfg_file))
        assert system.engine.config.ear_threshold == 0.3
        assert system.engine.config.consecutive_frames == 6


class TestRun:
    def test_camera_unavailable_exits(self, detector):
        system = DetectionSystem()
        with patch("main.cv2.VideoCapture") as cap_cls:
            cap_cls.return_value.isOpened.return_value = False
            with pytest.raises(SystemExit):
                system.run()

    def test_processes_frames_and_stops(self, detector):
        detector.detect.return_value = _face(0.3)
        system = DetectionSystem()
        with patch("main.cv2.VideoCapture") as cap_cls:
            cap = cap_cls.return_value
            cap.isOpened.return_value = True
            cap.read.return_value = (True, object())
            system.run(max_frames=5)

        assert detector.detect.call_count == 5
        cap.release.assert_called_once()
        detector.close.assert_called_once()
        sessions = system.engine.context.sessions
        assert sessions.current_session is None
        assert len(sessions.sessions) == 1

    def test_stop_without_camera(self, detector):
        system = DetectionSystem()
        system.stop()
        detector.close.assert_called_once()


class TestLogTransitions:
    def test_drowsy_transition_logged(self, detector, caplog):
        system = DetectionSystem()
        drowsy = MagicMock(is_drowsy=True, ear=0.1, drowsiness_score=70.0)
        awake = MagicMock(is_drowsy=False)
        with caplog.at_level(logging.INFO, logger="drowsiness"):
            system._log_transitions(drowsy)
            system._log_transitions(drowsy)
            system._log_transitions(awake)
        assert caplog.text.count("进入困倦状态") == 1
        assert "困倦状态解除" in caplog.text


class TestMain:
    def test_arguments_forwarded(self):
        with patch("main.DetectionSystem") as system_cls, patch("main.logging.basicConfig"):
            main.main(["--config", "cfg.json", "--camera", "2", "--max-frames", "10"])
        system_cls.assert_called_once_with(config_path="cfg.json", camera_index=2)
        system_cls.return_value.run.assert_called_once_with(max_frames=10)
