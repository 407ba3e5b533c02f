"""
日志格式化模块

提供多种日志格式化器（均为 logging.Formatter 子类，可直接挂到处理器上）。
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict

from .config import LogFormat


# 回放日志记录上可能携带的步骤字段
STEP_FIELDS = ("step_index", "action_type", "strategy", "attempts", "duration_ms", "url")


class BaseFormatter(logging.Formatter):
    """日志格式化器基类"""

    def _timestamp(self, record: logging.LogRecord) -> str:
        return datetime.fromtimestamp(record.created).isoformat()

    def _step_fields(self, record: logging.LogRecord) -> Dict[str, Any]:
        return {name: getattr(record, name) for name in STEP_FIELDS if hasattr(record, name)}

    def _exception(self, record: logging.LogRecord) -> Dict[str, Any]:
        exc_type, exc_value, _ = record.exc_info
        return {
            "type": exc_type.__name__,
            "message": str(exc_value),
            "traceback": self.formatException(record.exc_info).splitlines(),
        }


class SimpleFormatter(BaseFormatter):
    """简单格式化器"""

    def __init__(self, fmt: str = None):
        super().__init__(fmt or "%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S")


class DetailedFormatter(BaseFormatter):
    """详细格式化器"""

    def __init__(self, include_function: bool = False, include_line: bool = True):
        super().__init__()
        self.include_function = include_function
        self.include_line = include_line

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3],
            f"[{record.levelname:8}]",
            f"[{record.name}]",
        ]

        if self.include_function:
            parts.append(f"[{record.funcName}]")

        if self.include_line:
            parts.append(f"[line {record.lineno}]")

        parts.append(record.getMessage())

        step = self._step_fields(record)
        if step:
            parts.append(" ".join(f"{k}={v}" for k, v in step.items()))

        text = " ".join(parts)
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


class JSONFormatter(BaseFormatter):
    """JSON 格式化器"""

    def __init__(self, extra_fields: Dict[str, Any] = None):
        super().__init__()
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self._timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(self._step_fields(record))
        log_entry.update(self.extra_fields)

        if record.exc_info:
            log_entry["exception"] = self._exception(record)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class StructuredFormatter(BaseFormatter):
    """结构化格式化器（推荐用于机器解析）"""

    def __init__(self, extra_fields: Dict[str, Any] = None):
        super().__init__()
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self._timestamp(record),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "process": {
                "id": record.process,
                "name": record.processName,
            },
        }

        step = self._step_fields(record)
        if step:
            log_entry["step"] = step

        log_entry.update(self.extra_fields)

        if record.exc_info:
            log_entry["exception"] = self._exception(record)

        if hasattr(record, "data"):
            log_entry["data"] = record.data

        return json.dumps(log_entry, ensure_ascii=False, default=str)


# ========== 格式化器工厂 ==========

class FormatterFactory:
    """格式化器工厂"""

    _formatters = {
        LogFormat.SIMPLE: SimpleFormatter,
        LogFormat.DETAILED: DetailedFormatter,
        LogFormat.JSON: JSONFormatter,
        LogFormat.STRUCTURED: StructuredFormatter,
    }

    @classmethod
    def create(cls, format_type, **kwargs) -> BaseFormatter:
        """创建格式化器"""
        try:
            key = LogFormat(format_type)
        except ValueError:
            raise ValueError(f"Unknown formatter type: {format_type}")
        return cls._formatters[key](**kwargs)


def get_formatter(format_type=LogFormat.STRUCTURED, **kwargs) -> BaseFormatter:
    """便捷函数：获取格式化器"""
    return FormatterFactory.create(format_type, **kwargs)


__all__ = [
    "STEP_FIELDS",
    "BaseFormatter",
    "SimpleFormatter",
    "DetailedFormatter",
    "JSONFormatter",
    "StructuredFormatter",
    "FormatterFactory",
    "get_formatter",
]
