"""困倦评分模块"""

from typing import Optional, Tuple

from evaluators.history_buffer import HistoryBuffer
from models.data_models import (
    AlertLevel,
    DrowsinessAssessment,
    DrowsinessConfig,
    EyeClosureResult,
    MouthResult,
)

BLINK_WINDOW_MS = 60000
# 正常眨眼频率约 15 次/分钟
NORMAL_BLINKS_PER_MINUTE = 15
DROWSY_FRAME_RATIO = 0.8
SUSTAINED_CLOSURE_SCORE = 95.0

CRITICAL_SCORE = 80
HIGH_SCORE = 60
MEDIUM_SCORE = 40

ALERT_MESSAGES = {
    AlertLevel.CRITICAL: "严重警告：检测到重度困倦！请立即停车休息。",
    AlertLevel.HIGH: "高度警告：检测到明显困倦，建议休息。",
    AlertLevel.MEDIUM: "中度提醒：出现困倦迹象，请保持警觉。",
    AlertLevel.LOW: "提示：检测到轻度困倦。",
}


def sustained_closure_message(closure_duration: int) -> str:
    seconds = int(closure_duration / 1000 + 0.5)
    return f"严重警告：已闭眼 {seconds} 秒！请立即清醒！"


def classify_alert(
    drowsiness_score: float,
    is_drowsy: bool,
    is_sustained_closure: bool,
    closure_duration: int = 0,
) -> Tuple[Optional[AlertLevel], str]:
    """按优先级推导警报等级，无需报警时返回 (None, "")"""
    if is_sustained_closure:
        return AlertLevel.CRITICAL, sustained_closure_message(closure_duration)
    if drowsiness_score > CRITICAL_SCORE:
        level = AlertLevel.CRITICAL
    elif drowsiness_score > HIGH_SCORE:
        level = AlertLevel.HIGH
    elif drowsiness_score > MEDIUM_SCORE:
        level = AlertLevel.MEDIUM
    elif is_drowsy:
        level = AlertLevel.LOW
    else:
        return None, ""
    return level, ALERT_MESSAGES[level]


class DrowsinessEvaluator:
    """综合 EAR 窗口统计、眨眼频率和闭眼时长，输出 0-100 的困倦分数。"""

    def evaluate(
        self,
        timestamp: int,
        history: HistoryBuffer,
        closure: EyeClosureResult,
        config: DrowsinessConfig,
        mouth: Optional[MouthResult] = None,
    ) -> DrowsinessAssessment:
        """
        计算单帧困倦评估。调用前当前帧采样应已写入 history。

        Args:
            timestamp: 当前帧时间戳（毫秒）
            history: EAR 历史窗口
            closure: 闭眼跟踪结果
            config: 阈值配置
            mouth: 嘴巴分析结果（可选）

        Returns:
            DrowsinessAssessment
        """
        threshold = config.ear_threshold
        avg_ear = history.average()
        recent_blinks = history.count_recent_blinks(timestamp - BLINK_WINDOW_MS)

        ear_score = max(0.0, (threshold - avg_ear) / threshold * 100)
        blink_score = max(
            0.0, (NORMAL_BLINKS_PER_MINUTE - recent_blinks) / NORMAL_BLINKS_PER_MINUTE * 100
        )
        drowsiness_score = min(100.0, (ear_score + blink_score) / 2)

        sustained = closure.is_sustained_closure
        if sustained:
            drowsiness_score = max(drowsiness_score, SUSTAINED_CLOSURE_SCORE)

        window = history.recent_values(config.consecutive_frames)
        recent_low_count = sum(1 for ear in window if ear < threshold)
        is_drowsy = recent_low_count >= config.consecutive_frames * DROWSY_FRAME_RATIO or sustained

        alert_level, alert_message = classify_alert(
            drowsiness_score, is_drowsy, sustained, closure.closure_duration
        )

        return DrowsinessAssessment(
            ear=closure.ear,
            mouth_ar=mouth.mar if mouth else 0.0,
            blink_rate=recent_blinks,
            avg_ear=avg_ear,
            drowsiness_score=drowsiness_score,
            is_drowsy=is_drowsy,
            is_sustained_closure=sustained,
            closure_duration=closure.closure_duration,
            alert_level=alert_level,
            alert_message=alert_message,
            timestamp=timestamp,
            is_yawning=mouth.is_yawning if mouth else False,
        )
