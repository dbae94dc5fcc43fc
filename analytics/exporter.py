"""会话数据导出与展示辅助函数"""

import json
from datetime import datetime, timezone
from typing import Optional

from analytics.session_aggregator import SessionAggregator
from models.data_models import DrowsinessConfig, SessionSnapshot


def build_export_document(
    aggregator: SessionAggregator,
    config: DrowsinessConfig,
    export_time: Optional[datetime] = None,
) -> dict:
    """
    组装可移植的导出文档，不修改任何引擎状态。

    Returns:
        {"sessions", "currentSession", "exportTime", "systemConfig"}
    """
    export_time = export_time or datetime.now(timezone.utc)
    current = aggregator.current_session
    return {
        "sessions": [s.to_dict() for s in aggregator.sessions],
        "currentSession": current.to_dict() if current is not None else None,
        "exportTime": export_time.isoformat(),
        "systemConfig": config.to_dict(),
    }


def export_to_json(aggregator: SessionAggregator, config: DrowsinessConfig, **kwargs) -> str:
    return json.dumps(build_export_document(aggregator, config, **kwargs), ensure_ascii=False, indent=2)


def export_to_file(aggregator: SessionAggregator, config: DrowsinessConfig, path: str) -> str:
    """导出到 JSON 文件，返回文件路径"""
    with open(path, "w", encoding="utf-8") as f:
        f.write(export_to_json(aggregator, config))
    return path


def default_export_filename(when: Optional[datetime] = None) -> str:
    when = when or datetime.now(timezone.utc)
    return f"drowsiness_data_{when.strftime('%Y-%m-%d')}.json"


def format_duration(ms: int) -> str:
    """格式化时长，如 1h 2m 3s / 2m 3s / 3s"""
    seconds = int(ms // 1000)
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        return f"{hours}h {minutes % 60}m {seconds % 60}s"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def session_grade(session: SessionSnapshot) -> str:
    """根据每分钟警报次数和最高困倦分数给会话评级"""
    minutes = session.duration / 60000
    alert_rate = session.total_alerts / minutes if minutes > 0 else 0.0
    score = session.max_drowsiness_score

    if alert_rate > 2 or score > 70:
        return "Poor"
    if alert_rate > 1 or score > 50:
        return "Fair"
    if alert_rate > 0.5 or score > 30:
        return "Good"
    return "Excellent"
