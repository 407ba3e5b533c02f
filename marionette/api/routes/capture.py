"""
捕获相关 API 路由

提供捕获开始/停止、状态查询、恢复与镜像同步接口。
"""

from fastapi import APIRouter, Depends

from marionette.api.dependencies import ensure_ok, get_controller
from marionette.api.schemas import (
    CaptureStateResponse,
    CommandResponse,
    ErrorResponse,
    ResumeRequest,
    SyncRequest,
)
from marionette.controller import MarionetteController

router = APIRouter()


@router.post(
    "/start",
    response_model=CommandResponse,
    responses={409: {"model": ErrorResponse, "description": "已经在捕获中"}},
    summary="开始捕获",
)
async def start_capture(controller: MarionetteController = Depends(get_controller)):
    """开始捕获用户交互"""
    return ensure_ok(await controller.start_capture())


@router.post(
    "/stop",
    response_model=CommandResponse,
    responses={409: {"model": ErrorResponse, "description": "当前未在捕获"}},
    summary="停止捕获",
    description="停止捕获并返回封存的动作日志",
)
async def stop_capture(controller: MarionetteController = Depends(get_controller)):
    """停止捕获，返回 {ok, log}"""
    return ensure_ok(await controller.stop_capture())


@router.get(
    "/state",
    response_model=CaptureStateResponse,
    summary="获取捕获状态",
)
async def get_capture_state(controller: MarionetteController = Depends(get_controller)):
    """获取捕获阶段、动作数与时长"""
    return ensure_ok(await controller.get_capture_state())


@router.post(
    "/resume",
    response_model=CommandResponse,
    summary="恢复捕获",
    description="依据镜像恢复捕获（由重载检测器调用）",
)
async def resume_capture(
    request: ResumeRequest = None,
    controller: MarionetteController = Depends(get_controller),
):
    """恢复捕获；省略 mirror 时使用服务端镜像"""
    mirror = request.mirror if request else None
    return ensure_ok(await controller.resume_capture(mirror))


@router.post(
    "/reloaded",
    response_model=CommandResponse,
    summary="上下文已重建",
)
async def context_reloaded(controller: MarionetteController = Depends(get_controller)):
    """捕获上下文重建通知：有进行中的捕获时自动恢复"""
    return ensure_ok(await controller.on_context_reloaded())


@router.post(
    "/sync",
    response_model=CommandResponse,
    summary="同步动作到镜像",
)
async def sync_actions(
    request: SyncRequest,
    controller: MarionetteController = Depends(get_controller),
):
    """追加动作到镜像（按时间戳去重），返回 {ok, totalActions}"""
    return ensure_ok(await controller.sync_actions(request.actions))
