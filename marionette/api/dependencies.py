"""
API 依赖

提供控制器注入与命令信封到 HTTP 状态码的映射。
"""

from typing import Any, Dict

from fastapi import HTTPException, Request, status

from marionette.controller import MarionetteController
from marionette.core.errors import ErrorCode


STATUS_CODES = {
    ErrorCode.ALREADY_RECORDING.value: status.HTTP_409_CONFLICT,
    ErrorCode.NOT_RECORDING.value: status.HTTP_409_CONFLICT,
    ErrorCode.LOG_SEALED.value: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_PLAYING.value: status.HTTP_409_CONFLICT,
    ErrorCode.ABORTED.value: status.HTTP_409_CONFLICT,
    ErrorCode.EMPTY_LOG.value: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_SPEED.value: status.HTTP_400_BAD_REQUEST,
    ErrorCode.VALIDATION_ERROR.value: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_VARIABLE_NAME.value: status.HTTP_400_BAD_REQUEST,
    ErrorCode.ELEMENT_NOT_FOUND.value: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.DISPATCH_FAILED.value: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def get_controller(request: Request) -> MarionetteController:
    """获取应用持有的控制器"""
    return request.app.state.controller


def ensure_ok(response: Dict[str, Any]) -> Dict[str, Any]:
    """
    成功时原样返回命令信封，失败时抛出 HTTPException

    Raises:
        HTTPException: detail 为完整的失败信封
    """
    if response.get("ok"):
        return response
    raise HTTPException(
        status_code=STATUS_CODES.get(response.get("code"), status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=response,
    )


__all__ = [
    "STATUS_CODES",
    "get_controller",
    "ensure_ok",
]
