"""
回放步骤日志

记录单次回放运行中每个步骤的开始、结束、失败、重试与降级，
同时转发到标准日志记录器。
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class JournalEntry:
    """步骤日志条目"""
    timestamp: str
    level: str
    event: str  # run_start, step_start, step_end, step_failed, retry, fallback, warning, run_end
    message: str
    step_index: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "level": self.level,
            "event": self.event,
            "message": self.message,
            "step_index": self.step_index,
            "data": self.data,
        }


class StepJournal:
    """
    回放步骤日志

    Attributes:
        run_id: 运行 ID
        entries: 日志条目列表
    """

    def __init__(self, run_id: str = None, logger_name: str = "marionette.replay.journal"):
        self.run_id = run_id or str(uuid.uuid4())
        self.entries: List[JournalEntry] = []
        self.logger = logging.getLogger(logger_name)
        self._step_started: Dict[int, float] = {}
        self._run_started: Optional[float] = None

    def log(
        self,
        level: str,
        event: str,
        message: str,
        step_index: int = None,
        **data,
    ) -> JournalEntry:
        """
        记录日志

        Args:
            level: 日志级别（debug/info/warning/error）
            event: 事件类型
            message: 日志消息
            step_index: 步骤索引
            **data: 附加数据

        Returns:
            JournalEntry: 新增的条目
        """
        entry = JournalEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            event=event,
            message=message,
            step_index=step_index,
            data=data,
        )
        self.entries.append(entry)

        extra = {"run_id": self.run_id}
        if step_index is not None:
            extra["step_index"] = step_index
        for name in ("action_type", "strategy", "attempts", "duration_ms", "url"):
            if name in data:
                extra[name] = data[name]

        prefix = f"[step {step_index + 1}] " if step_index is not None else ""
        self.logger.log(getattr(logging, level.upper()), f"{prefix}{message}", extra=extra)
        return entry

    # ========== 运行 ==========

    def run_start(self, total_steps: int, speed: float) -> None:
        self._run_started = time.perf_counter()
        self.log("info", "run_start", f"开始回放，共 {total_steps} 步，速度 {speed}x",
                 total_steps=total_steps, speed=speed)

    def run_end(self, state: str, steps_executed: int) -> None:
        level = "info" if state == "completed" else "warning"
        self.log(level, "run_end", f"回放结束: {state}，已执行 {steps_executed} 步",
                 state=state, steps_executed=steps_executed, duration_ms=self.duration_ms)

    # ========== 步骤 ==========

    def step_start(self, step_index: int, action_type: str) -> None:
        self._step_started[step_index] = time.perf_counter()
        self.log("debug", "step_start", f"执行 {action_type}", step_index, action_type=action_type)

    def step_end(self, step_index: int, action_type: str, **data) -> None:
        started = self._step_started.pop(step_index, None)
        duration_ms = round((time.perf_counter() - started) * 1000) if started else None
        self.log("info", "step_end", f"{action_type} 完成", step_index,
                 action_type=action_type, duration_ms=duration_ms, **data)

    def step_failed(self, step_index: int, action_type: str, error: Exception) -> None:
        self._step_started.pop(step_index, None)
        details = error.to_dict() if hasattr(error, "to_dict") else {"message": str(error)}
        self.log("error", "step_failed", f"{action_type} 失败: {error}", step_index,
                 action_type=action_type, error=details)

    def retry(self, step_index: int, attempt: int, reason: str, backoff_ms: float) -> None:
        self.log("debug", "retry", f"第 {attempt} 次定位未成功（{reason}），{round(backoff_ms)}ms 后重试",
                 step_index, attempts=attempt, reason=reason, backoff_ms=backoff_ms)

    def fallback(self, step_index: int, message: str, **data) -> None:
        self.log("warning", "fallback", message, step_index, **data)

    def warning(self, message: str, step_index: int = None, **data) -> None:
        self.log("warning", "warning", message, step_index, **data)

    # ========== 查询 ==========

    @property
    def duration_ms(self) -> Optional[int]:
        if self._run_started is None:
            return None
        return round((time.perf_counter() - self._run_started) * 1000)

    def get_entries(self, event: str = None) -> List[JournalEntry]:
        if event is None:
            return list(self.entries)
        return [e for e in self.entries if e.event == event]

    def get_errors(self) -> List[JournalEntry]:
        return [e for e in self.entries if e.level == "error"]

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "run_id": self.run_id,
            "entries": [e.to_dict() for e in self.entries],
            "entry_count": len(self.entries),
            "error_count": len(self.get_errors()),
            "duration_ms": self.duration_ms,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent, default=str)

    def save_to_file(self, filepath: str) -> None:
        """保存到文件"""
        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self.to_json())


__all__ = [
    "JournalEntry",
    "StepJournal",
]
