"""
捕获相关 API 数据模型
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CaptureStateResponse(BaseModel):
    """捕获状态响应"""
    ok: bool = True
    phase: str = Field(..., description="idle / recording / suspended")
    actionCount: int
    durationMs: float
    originUrl: str = ""


class ResumeRequest(BaseModel):
    """恢复捕获请求（省略 mirror 时使用服务端镜像）"""
    mirror: Optional[Dict[str, Any]] = Field(None, description="镜像状态")


class SyncRequest(BaseModel):
    """同步动作请求"""
    actions: List[Dict[str, Any]] = Field(default_factory=list, description="新动作（交换格式）")


__all__ = [
    "CaptureStateResponse",
    "ResumeRequest",
    "SyncRequest",
]
