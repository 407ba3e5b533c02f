"""
API 路由模块

提供捕获与回放的路由定义。
"""

from .capture import router as capture_router
from .replay import router as replay_router

__all__ = [
    "capture_router",
    "replay_router",
]
