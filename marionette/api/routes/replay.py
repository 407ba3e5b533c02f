"""
回放相关 API 路由

提供回放开始/停止、速度调整与状态查询接口。
"""

from fastapi import APIRouter, Depends

from marionette.api.dependencies import ensure_ok, get_controller
from marionette.api.schemas import (
    CommandResponse,
    ErrorResponse,
    ReplayRequest,
    ReplayStateResponse,
    SpeedRequest,
)
from marionette.controller import MarionetteController

router = APIRouter()


@router.post(
    "/start",
    response_model=CommandResponse,
    responses={
        400: {"model": ErrorResponse, "description": "日志为空或格式无效"},
        409: {"model": ErrorResponse, "description": "已经在回放中或被取消"},
        422: {"model": ErrorResponse, "description": "某一步未找到元素"},
    },
    summary="开始回放",
    description="回放动作日志，结束后返回已执行步数",
)
async def start_replay(
    request: ReplayRequest,
    controller: MarionetteController = Depends(get_controller),
):
    """
    回放动作日志

    - **log**: 动作日志（交换格式）
    - **speed**: 速度倍率
    """
    return ensure_ok(await controller.start_replay(request.log, request.speed))


@router.post(
    "/stop",
    response_model=CommandResponse,
    summary="停止回放",
)
async def stop_replay(controller: MarionetteController = Depends(get_controller)):
    """请求取消正在进行的回放"""
    return ensure_ok(await controller.stop_replay())


@router.post(
    "/speed",
    response_model=CommandResponse,
    summary="调整回放速度",
)
async def set_replay_speed(
    request: SpeedRequest,
    controller: MarionetteController = Depends(get_controller),
):
    """修改速度倍率，对之后的等待生效"""
    return ensure_ok(await controller.set_replay_speed(request.speed))


@router.get(
    "/state",
    response_model=ReplayStateResponse,
    summary="获取回放状态",
)
async def get_replay_state(controller: MarionetteController = Depends(get_controller)):
    """获取回放阶段、游标与进度"""
    return ensure_ok(await controller.get_replay_state())
