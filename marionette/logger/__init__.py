"""
日志系统模块

提供日志配置、格式化、处理器与回放步骤日志。

主要组件:
- LogConfig / setup_logging: 日志配置与安装
- FormatterFactory: 日志格式化器
- HandlerFactory: 日志处理器
- StepJournal: 回放步骤日志

使用示例:
```python
from marionette.logger import LogConfig, LogFormat, setup_logging

setup_logging(LogConfig(format=LogFormat.DETAILED))
```

日志文件保存位置（启用文件日志时）:
- 默认: ~/.marionette/logs/marionette.log
"""

from .config import (
    ROOT_LOGGER_NAME,
    LogLevel,
    LogFormat,
    LogConfig,
    setup_logging,
)

from .formatters import (
    BaseFormatter,
    SimpleFormatter,
    DetailedFormatter,
    JSONFormatter,
    StructuredFormatter,
    FormatterFactory,
    get_formatter,
)

from .handlers import (
    ConsoleHandler,
    RotatingFileHandler,
    MemoryHandler,
    HandlerFactory,
    create_handler,
)

from .journal import (
    JournalEntry,
    StepJournal,
)

__all__ = [
    # Config
    "ROOT_LOGGER_NAME",
    "LogLevel",
    "LogFormat",
    "LogConfig",
    "setup_logging",
    # Formatters
    "BaseFormatter",
    "SimpleFormatter",
    "DetailedFormatter",
    "JSONFormatter",
    "StructuredFormatter",
    "FormatterFactory",
    "get_formatter",
    # Handlers
    "ConsoleHandler",
    "RotatingFileHandler",
    "MemoryHandler",
    "HandlerFactory",
    "create_handler",
    # Journal
    "JournalEntry",
    "StepJournal",
]
