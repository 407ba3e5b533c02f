"""
回放相关 API 数据模型
"""

from typing import Any, Dict

from pydantic import BaseModel, Field


class ReplayRequest(BaseModel):
    """回放请求"""
    log: Dict[str, Any] = Field(..., description="动作日志（交换格式）")
    speed: float = Field(1.0, gt=0, description="回放速度（界面提供 0.5 / 1 / 2 / 4）")


class SpeedRequest(BaseModel):
    """调整速度请求"""
    speed: float = Field(..., gt=0, description="回放速度")


class ReplayStateResponse(BaseModel):
    """回放状态响应"""
    ok: bool = True
    phase: str
    cursor: int
    totalSteps: int
    stepsExecuted: int
    speed: float
    progress: float


__all__ = [
    "ReplayRequest",
    "SpeedRequest",
    "ReplayStateResponse",
]
