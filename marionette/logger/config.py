"""
日志配置模块

提供日志系统的配置与安装。
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict


ROOT_LOGGER_NAME = "marionette"


class LogLevel(Enum):
    """日志级别"""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class LogFormat(Enum):
    """日志格式"""
    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"
    STRUCTURED = "structured"


@dataclass
class LogConfig:
    """日志配置"""
    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.STRUCTURED
    enable_console: bool = True
    enable_file: bool = False
    log_dir: str = field(default_factory=lambda: str(Path.home() / ".marionette" / "logs"))
    log_filename: str = "marionette.log"
    max_bytes: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    extra_fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def log_file_path(self) -> Path:
        return Path(self.log_dir) / self.log_filename

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.name,
            "format": self.format.value,
            "enable_console": self.enable_console,
            "enable_file": self.enable_file,
            "log_dir": self.log_dir,
            "log_filename": self.log_filename,
            "max_bytes": self.max_bytes,
            "backup_count": self.backup_count,
            "extra_fields": self.extra_fields,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LogConfig':
        default = cls()
        return cls(
            level=LogLevel[data.get("level", "INFO")],
            format=LogFormat(data.get("format", "structured")),
            enable_console=data.get("enable_console", True),
            enable_file=data.get("enable_file", False),
            log_dir=data.get("log_dir", default.log_dir),
            log_filename=data.get("log_filename", default.log_filename),
            max_bytes=data.get("max_bytes", default.max_bytes),
            backup_count=data.get("backup_count", default.backup_count),
            extra_fields=data.get("extra_fields", {}),
        )

    @classmethod
    def development(cls) -> 'LogConfig':
        """开发环境配置"""
        return cls(level=LogLevel.DEBUG, format=LogFormat.DETAILED, enable_console=True, enable_file=False)

    @classmethod
    def production(cls) -> 'LogConfig':
        """生产环境配置"""
        return cls(
            level=LogLevel.INFO,
            format=LogFormat.JSON,
            enable_console=False,
            enable_file=True,
            max_bytes=50 * 1024 * 1024,  # 50MB
            backup_count=10,
        )


def setup_logging(config: LogConfig = None) -> logging.Logger:
    """
    安装日志处理器到 marionette 根日志记录器

    重复调用会替换之前安装的处理器。

    Args:
        config: 日志配置（默认 LogConfig()）

    Returns:
        配置好的日志记录器
    """
    from .formatters import get_formatter
    from .handlers import HandlerFactory

    config = config or LogConfig()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(config.level.value)

    for handler in list(logger.handlers):
        if getattr(handler, "_marionette_installed", False):
            logger.removeHandler(handler)
            handler.close()

    kwargs = {}
    if config.format in (LogFormat.JSON, LogFormat.STRUCTURED):
        kwargs["extra_fields"] = config.extra_fields
    formatter = get_formatter(config.format, **kwargs)

    handlers = []
    if config.enable_console:
        handlers.append(HandlerFactory.create("console"))
    if config.enable_file:
        handlers.append(HandlerFactory.create(
            "rotating_file",
            filename=str(config.log_file_path),
            max_bytes=config.max_bytes,
            backup_count=config.backup_count,
        ))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._marionette_installed = True
        logger.addHandler(handler)

    return logger


__all__ = [
    "ROOT_LOGGER_NAME",
    "LogLevel",
    "LogFormat",
    "LogConfig",
    "setup_logging",
]
