"""
通用 API 数据模型

提供命令信封、错误响应与健康检查模型。
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class CommandResponse(BaseModel):
    """命令响应信封（成功时附带命令数据，失败时附带 error 与 code）"""
    model_config = ConfigDict(extra="allow")

    ok: bool
    error: Optional[str] = None
    code: Optional[str] = None


class ErrorResponse(BaseModel):
    """错误响应"""
    detail: Dict[str, Any] = Field(..., description="失败的命令信封")


class HealthResponse(BaseModel):
    """健康检查响应"""
    status: str = "healthy"
    version: str
    capturing: bool = False
    replaying: bool = False
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = [
    "CommandResponse",
    "ErrorResponse",
    "HealthResponse",
]
