"""
异常模块

定义录制与回放过程中的异常类型。每个异常都对应一个 ErrorCode，
命令层据此生成失败响应。
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """错误码枚举"""
    # 通用错误
    UNKNOWN = "unknown"
    VALIDATION_ERROR = "validation_error"

    # 录制错误
    ALREADY_RECORDING = "already_recording"
    NOT_RECORDING = "not_recording"
    LOG_SEALED = "log_sealed"

    # 回放错误
    ALREADY_PLAYING = "already_playing"
    EMPTY_LOG = "empty_log"
    INVALID_SPEED = "invalid_speed"
    ELEMENT_NOT_FOUND = "element_not_found"
    NOT_INTERACTABLE = "not_interactable"
    NAVIGATION_TIMEOUT = "navigation_timeout"
    DISPATCH_FAILED = "dispatch_failed"
    ABORTED = "aborted"

    # 文档宿主错误
    SELECTOR_SYNTAX = "selector_syntax"
    CROSS_ORIGIN = "cross_origin"

    # 协作层错误
    INVALID_VARIABLE_NAME = "invalid_variable_name"

    @property
    def is_recoverable(self) -> bool:
        """是否为可恢复（非致命）错误"""
        return self in (
            ErrorCode.NOT_INTERACTABLE,
            ErrorCode.NAVIGATION_TIMEOUT,
            ErrorCode.SELECTOR_SYNTAX,
            ErrorCode.CROSS_ORIGIN,
        )


class MarionetteError(Exception):
    """基础异常"""

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class AlreadyRecordingError(MarionetteError):
    """已经在录制中"""

    code = ErrorCode.ALREADY_RECORDING

    def __init__(self, message: str = "已经在录制中", details: dict = None):
        super().__init__(message, details)


class NotRecordingError(MarionetteError):
    """当前未在录制"""

    code = ErrorCode.NOT_RECORDING

    def __init__(self, message: str = "当前未在录制", details: dict = None):
        super().__init__(message, details)


class LogSealedError(MarionetteError):
    """动作日志已封存，不可再追加"""

    code = ErrorCode.LOG_SEALED

    def __init__(self, message: str = "动作日志已封存", details: dict = None):
        super().__init__(message, details)


class AlreadyPlayingError(MarionetteError):
    """已经在回放中"""

    code = ErrorCode.ALREADY_PLAYING

    def __init__(self, message: str = "已经在回放中", details: dict = None):
        super().__init__(message, details)


class EmptyLogError(MarionetteError):
    """动作日志为空"""

    code = ErrorCode.EMPTY_LOG

    def __init__(self, message: str = "没有可回放的动作", details: dict = None):
        super().__init__(message, details)


class InvalidSpeedError(MarionetteError):
    """回放速度无效"""

    code = ErrorCode.INVALID_SPEED

    def __init__(self, speed: Any, details: dict = None):
        super().__init__(f"回放速度必须大于 0: {speed}", details)
        self.speed = speed


class ElementNotFoundError(MarionetteError):
    """
    重试耗尽后仍未找到元素

    Attributes:
        step_index: 失败步骤索引（从 0 开始）
        locator: 尝试过的完整定位器集合
    """

    code = ErrorCode.ELEMENT_NOT_FOUND

    def __init__(self, step_index: int, locator: Dict[str, Any] = None, attempts: int = 0):
        super().__init__(
            f"第 {step_index + 1} 步未找到元素（已尝试 {attempts} 次）",
            {"step_index": step_index, "locator": locator or {}, "attempts": attempts},
        )
        self.step_index = step_index
        self.locator = locator or {}
        self.attempts = attempts


class NotInteractableError(MarionetteError):
    """元素不可交互（非致命，最后一次重试时降级使用）"""

    code = ErrorCode.NOT_INTERACTABLE

    def __init__(self, reasons: list = None, details: dict = None):
        reasons = reasons or []
        super().__init__(f"元素不可交互: {', '.join(reasons) or 'unknown'}", details)
        self.reasons = reasons


class NavigationTimeoutError(MarionetteError):
    """等待页面稳定超时（非致命）"""

    code = ErrorCode.NAVIGATION_TIMEOUT

    def __init__(self, timeout_ms: float, details: dict = None):
        super().__init__(f"页面加载超时 ({round(timeout_ms)}ms)，继续执行", details)
        self.timeout_ms = timeout_ms


class DispatchError(MarionetteError):
    """底层交互派发失败"""

    code = ErrorCode.DISPATCH_FAILED

    def __init__(self, message: str = "交互派发失败", details: dict = None):
        super().__init__(message, details)


class SelectorSyntaxError(MarionetteError):
    """选择器语法错误"""

    code = ErrorCode.SELECTOR_SYNTAX

    def __init__(self, expression: str, details: dict = None):
        super().__init__(f"无法解析选择器: {expression}", details)
        self.expression = expression


class CrossOriginAccessError(MarionetteError):
    """跨域子文档不可访问"""

    code = ErrorCode.CROSS_ORIGIN

    def __init__(self, origin: str = "", details: dict = None):
        super().__init__(f"跨域子文档不可访问: {origin}", details)
        self.origin = origin


class InvalidActionError(MarionetteError):
    """动作数据格式无效"""

    code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, details)


class InvalidVariableNameError(MarionetteError):
    """变量名无效（协作层使用）"""

    code = ErrorCode.INVALID_VARIABLE_NAME

    def __init__(self, name: str, details: dict = None):
        super().__init__(f"变量名无效: {name}", details)
        self.name = name


__all__ = [
    "ErrorCode",
    "MarionetteError",
    "AlreadyRecordingError",
    "NotRecordingError",
    "LogSealedError",
    "AlreadyPlayingError",
    "EmptyLogError",
    "InvalidSpeedError",
    "ElementNotFoundError",
    "NotInteractableError",
    "NavigationTimeoutError",
    "DispatchError",
    "SelectorSyntaxError",
    "CrossOriginAccessError",
    "InvalidActionError",
    "InvalidVariableNameError",
]
