"""Flask Web 接口 - 困倦检测系统的控制与数据 API"""

import datetime
import json
import threading
import time

import cv2
from flask import Flask, Response, jsonify, request

from analytics.exporter import default_export_filename, format_duration, session_grade
from detectors.face_detector import FaceDetector
from engine.drowsiness_engine import DrowsinessEngine
from models.config import ConfigurationError, config_from_dict, sensitivity_to_frames
from models.data_models import AlertLevel

app = Flask(__name__)


class WebDetectionSystem:
    """Web 版检测系统，后台线程处理摄像头帧，对外提供实时数据与会话统计。"""

    MAX_LOG_ENTRIES = 200

    def __init__(self, engine=None, detector_factory=FaceDetector):
        self.engine = engine or DrowsinessEngine()
        self._detector_factory = detector_factory
        self.face_detector = None
        self._cap = None
        self._thread = None
        self._running = False
        self._lock = threading.Lock()
        self._latest_data = {"face_detected": False, "running": False}
        self._logs = []
        self._log_lock = threading.Lock()
        self._prev_state = {"face_detected": True, "is_drowsy": False, "is_yawning": False}

    @property
    def running(self):
        return self._running

    def start(self, camera_index=0):
        """启动摄像头和处理线程。"""
        if self._running:
            return True
        self._cap = cv2.VideoCapture(camera_index)
        if not self._cap.isOpened():
            self._add_log("danger", "无法打开摄像头")
            return False
        if self.face_detector is None:
            self.face_detector = self._detector_factory()
        self._running = True
        self.engine.start_monitoring()
        self._add_log("info", "系统启动，摄像头已开启")
        self._thread = threading.Thread(target=self._process_loop, daemon=True)
        self._thread.start()
        return True

    def stop(self):
        """停止检测并结束会话。"""
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None
        if self._cap is not None and self._cap.isOpened():
            self._cap.release()
        self._cap = None
        self.engine.stop_monitoring()
        with self._lock:
            self._latest_data = {"face_detected": False, "running": False}
        self._add_log("info", "系统已停止")

    def _process_loop(self):
        """后台处理循环。"""
        while self._running:
            if not self._cap or not self._cap.isOpened():
                break
            ret, frame = self._cap.read()
            if not ret:
                time.sleep(0.01)
                continue
            self.handle_landmarks(self.face_detector.detect(frame))

    def handle_landmarks(self, landmarks, timestamp=None):
        """处理一帧关键点并刷新最新数据。"""
        assessment = self.engine.process(landmarks, timestamp)
        data = assessment.to_dict()
        data["running"] = self._running
        data["total_blinks"] = self.engine.total_blinks
        data["alert_state"] = self._alert_state_dict()
        with self._lock:
            self._latest_data = data
        self._check_state_changes(data)
        return assessment

    def _alert_state_dict(self):
        state = self.engine.context.alerts.state
        return {
            "active": state.active,
            "level": state.level.value,
            "message": state.message,
            "raised_at": state.raised_at,
        }

    def _add_log(self, level, message):
        """添加一条系统日志。level: info / warning / danger"""
        entry = {
            "time": datetime.datetime.now().strftime("%H:%M:%S"),
            "level": level,
            "message": message,
        }
        with self._log_lock:
            self._logs.append(entry)
            if len(self._logs) > self.MAX_LOG_ENTRIES:
                self._logs = self._logs[-self.MAX_LOG_ENTRIES:]

    def _check_state_changes(self, data):
        """检测状态变化并记录日志。"""
        prev = self._prev_state

        if data.get("face_detected") and not prev.get("face_detected"):
            self._add_log("info", "检测到人脸")
        elif not data.get("face_detected") and prev.get("face_detected"):
            self._add_log("warning", "人脸丢失")

        if data.get("is_drowsy") and not prev.get("is_drowsy"):
            self._add_log("warning", f"检测到困倦 (分数={data.get('drowsiness_score', 0):.1f})")
        elif not data.get("is_drowsy") and prev.get("is_drowsy"):
            self._add_log("info", "困倦状态解除")

        if data.get("is_yawning") and not prev.get("is_yawning"):
            self._add_log("warning", f"打哈欠 (MAR={data.get('mouth_ar', 0):.2f})")

        if data.get("alert_raised"):
            self._add_log("danger", data.get("alert_message", ""))

        self._prev_state = {
            "face_detected": data.get("face_detected", True),
            "is_drowsy": data.get("is_drowsy", False),
            "is_yawning": data.get("is_yawning", False),
        }

    def get_logs(self, since=0):
        """获取日志，since 为起始索引。"""
        with self._log_lock:
            return self._logs[since:], len(self._logs)

    def get_data(self):
        with self._lock:
            return dict(self._latest_data)

    def update_config(self, data):
        """动态更新阈值配置，非法值抛出 ConfigurationError。"""
        if not isinstance(data, dict):
            raise ConfigurationError("配置必须是 JSON 对象")
        data = dict(data)
        if data.get("sensitivity") is not None:
            try:
                sensitivity = float(data["sensitivity"])
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"sensitivity 必须是数字: {data['sensitivity']!r}") from e
            data["consecutive_frames"] = sensitivity_to_frames(sensitivity)
        config = config_from_dict(data, base=self.engine.config)
        return self.engine.reconfigure(config)


def _session_summary(session):
    summary = session.to_dict()
    summary["grade"] = session_grade(session)
    summary["durationText"] = format_duration(session.duration)
    summary.pop("earHistory")
    summary.pop("drowsinessHistory")
    return summary


# 全局检测系统实例
system = WebDetectionSystem()


# ---- Flask 路由 ----

@app.route("/api/start", methods=["POST"])
def api_start():
    ok = system.start()
    return jsonify({"success": ok, "message": "摄像头启动成功" if ok else "无法打开摄像头"})


@app.route("/api/stop", methods=["POST"])
def api_stop():
    system.stop()
    return jsonify({"success": True, "message": "检测已停止"})


@app.route("/api/data")
def api_data():
    return jsonify(system.get_data())


@app.route("/api/config", methods=["GET", "POST"])
def api_config():
    if request.method == "GET":
        return jsonify(system.engine.config.to_dict())
    data = request.get_json(force=True, silent=True)
    try:
        config = system.update_config(data)
    except ConfigurationError as e:
        return jsonify({"success": False, "message": str(e)}), 400
    system._add_log("info", "配置已更新")
    return jsonify({"success": True, "message": "配置已更新", "config": config.to_dict()})


@app.route("/api/config/reset", methods=["POST"])
def api_config_reset():
    config = system.engine.reset_settings()
    system._add_log("info", "配置已恢复默认")
    return jsonify({"success": True, "config": config.to_dict()})


@app.route("/api/alert/dismiss", methods=["POST"])
def api_dismiss_alert():
    system.engine.dismiss_alert()
    return jsonify({"success": True})


@app.route("/api/alert/test", methods=["POST"])
def api_test_alert():
    data = request.get_json(force=True, silent=True) or {}
    try:
        level = AlertLevel(data.get("level", "low"))
    except ValueError:
        return jsonify({"success": False, "message": f"未知警报等级: {data.get('level')}"}), 400
    event = system.engine.test_alert(level)
    return jsonify({"success": True, "level": event.level.value, "message": event.message})


@app.route("/api/logs")
def api_logs():
    since = request.args.get("since", 0, type=int)
    logs, total = system.get_logs(since)
    return jsonify({"logs": logs, "total": total})


@app.route("/api/sessions")
def api_sessions():
    sessions = system.engine.context.sessions
    current = sessions.current_session
    return jsonify({
        "currentSession": _session_summary(current) if current is not None else None,
        "sessions": [_session_summary(s) for s in sessions.sessions],
    })


@app.route("/api/realtime")
def api_realtime():
    points = system.engine.context.sessions.real_time_data
    return jsonify([
        {"timestamp": p.timestamp, "ear": p.ear, "drowsiness": p.drowsiness, "blinks": p.blinks}
        for p in points
    ])


@app.route("/api/export")
def api_export():
    body = json.dumps(system.engine.export_document(), ensure_ascii=False, indent=2)
    return Response(
        body,
        mimetype="application/json",
        headers={"Content-Disposition": f"attachment; filename={default_export_filename()}"},
    )


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=False, threaded=True)
