"""
核心模块

提供错误码、异常类型以及统一返回结果。
"""

from .errors import (
    ErrorCode,
    MarionetteError,
    AlreadyRecordingError,
    NotRecordingError,
    LogSealedError,
    AlreadyPlayingError,
    EmptyLogError,
    InvalidSpeedError,
    ElementNotFoundError,
    NotInteractableError,
    NavigationTimeoutError,
    DispatchError,
    SelectorSyntaxError,
    CrossOriginAccessError,
    InvalidActionError,
    InvalidVariableNameError,
)

from .result import (
    Error,
    Result,
    CommandResult,
)

__all__ = [
    # Errors
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
    # Result
    "Error",
    "Result",
    "CommandResult",
]
