"""
FastAPI 应用模块

提供 Marionette 捕获/回放服务的 HTTP 入口。
命令层的 {"ok": ...} 信封直接作为响应体返回，失败时按错误码映射 HTTP 状态码。
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marionette import __version__
from marionette.api.dependencies import get_controller
from marionette.api.routes import capture_router, replay_router
from marionette.api.schemas import HealthResponse
from marionette.config import AppConfig, get_config
from marionette.controller import MarionetteController
from marionette.dom.memory import MemoryDocument, MemoryDocumentHost

logger = logging.getLogger(__name__)


def _default_controller(config: AppConfig) -> MarionetteController:
    host = MemoryDocumentHost(MemoryDocument.create("about:blank"))
    return MarionetteController(host, config=config)


def create_app(controller: Optional[MarionetteController] = None, config: Optional[AppConfig] = None) -> FastAPI:
    """
    创建 FastAPI 应用实例

    Args:
        controller: 命令控制器（默认使用内存文档宿主）
        config: 应用配置（默认读取全局配置）

    Returns:
        FastAPI 应用
    """
    config = config or get_config()
    controller = controller or _default_controller(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """应用生命周期管理"""
        logger.info(f"Marionette Server 启动中... 地址: {config.server.host}:{config.server.port}")
        yield
        logger.info("Marionette Server 关闭中...")
        ctrl: MarionetteController = app.state.controller
        if ctrl.player.is_playing:
            ctrl.player.abort()
        if ctrl.recorder is not None and ctrl.recorder.is_recording:
            # 挂起而不是停止：镜像保留，下次启动可恢复
            ctrl.recorder.suspend()

    app = FastAPI(
        title="Marionette Server",
        description="网页交互捕获与回放服务",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.controller = controller

    # 配置 CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_allow_origins,
        allow_credentials=config.server.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 注册路由
    app.include_router(capture_router, prefix="/capture", tags=["Capture"])
    app.include_router(replay_router, prefix="/replay", tags=["Replay"])

    # ==================== 健康检查 ====================

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """健康检查"""
        active = await get_controller(request).is_active()
        return HealthResponse(
            version=__version__,
            capturing=active.get("capturing", False),
            replaying=active.get("replaying", False),
        )

    # ==================== 错误处理 ====================

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """全局异常处理器"""
        logger.error(f"未处理的异常: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "ok": False,
                "error": "服务器内部错误",
                "code": "internal_error",
                "details": {"type": type(exc).__name__},
            },
        )

    return app


__all__ = [
    "create_app",
]
