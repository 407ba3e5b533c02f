"""
日志处理器模块

基于标准库处理器提供控制台、轮转文件与内存处理器。
"""

import logging
import logging.handlers
import sys
import threading
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List


class ConsoleHandler(logging.StreamHandler):
    """控制台处理器"""

    def __init__(self, stream: str = "stderr"):
        super().__init__(sys.stdout if stream == "stdout" else sys.stderr)


class RotatingFileHandler(logging.handlers.RotatingFileHandler):
    """按大小轮转的文件处理器（自动创建目录）"""

    def __init__(self, filename: str, max_bytes: int = 10 * 1024 * 1024, backup_count: int = 5):
        Path(filename).parent.mkdir(parents=True, exist_ok=True)
        super().__init__(filename, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")


class MemoryHandler(logging.Handler):
    """
    内存处理器

    保留最近的日志条目，供命令层查询或测试断言。

    Attributes:
        capacity: 最多保留的条目数
    """

    def __init__(self, capacity: int = 1000, level: int = logging.NOTSET):
        super().__init__(level)
        self.capacity = capacity
        self._entries = deque(maxlen=capacity)
        self._entries_lock = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in ("step_index", "action_type", "strategy", "attempts", "duration_ms"):
            if hasattr(record, name):
                entry[name] = getattr(record, name)

        if record.exc_info:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }

        with self._entries_lock:
            self._entries.append(entry)

    def get_entries(self, level: str = None) -> List[Dict[str, Any]]:
        """获取日志条目（可按级别过滤）"""
        with self._entries_lock:
            entries = list(self._entries)
        if level:
            entries = [e for e in entries if e["level"] == level.upper()]
        return entries

    def clear(self) -> None:
        with self._entries_lock:
            self._entries.clear()


# ========== 处理器工厂 ==========

class HandlerFactory:
    """处理器工厂"""

    _handlers = {
        "console": ConsoleHandler,
        "rotating_file": RotatingFileHandler,
        "memory": MemoryHandler,
    }

    @classmethod
    def create(cls, handler_type: str, **kwargs) -> logging.Handler:
        """创建处理器"""
        handler_class = cls._handlers.get(handler_type)
        if not handler_class:
            raise ValueError(f"Unknown handler type: {handler_type}")
        return handler_class(**kwargs)


def create_handler(handler_type: str, **kwargs) -> logging.Handler:
    """便捷函数：创建处理器"""
    return HandlerFactory.create(handler_type, **kwargs)


__all__ = [
    "ConsoleHandler",
    "RotatingFileHandler",
    "MemoryHandler",
    "HandlerFactory",
    "create_handler",
]
