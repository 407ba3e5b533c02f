"""
HTTP API 模块

以 FastAPI 暴露捕获与回放命令。
"""

from .app import create_app

__all__ = [
    "create_app",
]
