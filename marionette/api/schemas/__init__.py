"""
API Schemas 模块

提供 API 请求和响应的数据模型定义。
"""

from .common import (
    CommandResponse,
    ErrorResponse,
    HealthResponse,
)

from .capture import (
    CaptureStateResponse,
    ResumeRequest,
    SyncRequest,
)

from .replay import (
    ReplayRequest,
    SpeedRequest,
    ReplayStateResponse,
)

__all__ = [
    # Common
    "CommandResponse",
    "ErrorResponse",
    "HealthResponse",
    # Capture
    "CaptureStateResponse",
    "ResumeRequest",
    "SyncRequest",
    # Replay
    "ReplayRequest",
    "SpeedRequest",
    "ReplayStateResponse",
]
