"""
统一返回结果模块

提供 Result[T] 泛型类，用于命令执行结果的标准化返回。
命令层对外统一使用 {"ok": bool, ...} 信封，失败时携带 error 与 code 字段。
"""

import json
import traceback
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar

from .errors import ErrorCode, MarionetteError


T = TypeVar('T')


@dataclass
class Error:
    """错误信息"""
    code: str
    message: str
    details: Optional[dict] = None
    recoverable: bool = False
    exception_type: Optional[str] = None
    traceback: Optional[str] = None

    def to_dict(self) -> dict:
        """转换为字典"""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "exception_type": self.exception_type,
            "traceback": self.traceback,
        }

    @classmethod
    def from_exception(cls, exc: Exception) -> 'Error':
        """从异常创建错误对象"""
        if isinstance(exc, MarionetteError):
            return cls(
                code=exc.code.value,
                message=exc.message,
                details=exc.details or None,
                recoverable=exc.code.is_recoverable,
                exception_type=exc.__class__.__name__,
            )
        return cls(
            code=ErrorCode.UNKNOWN.value,
            message=str(exc),
            details={"exception_class": exc.__class__.__name__},
            recoverable=False,
            exception_type=exc.__class__.__name__,
            traceback=traceback.format_exc(),
        )

    @classmethod
    def validation(cls, message: str, details: dict = None) -> 'Error':
        """创建验证错误"""
        return cls(
            code=ErrorCode.VALIDATION_ERROR.value,
            message=message,
            details=details,
            recoverable=True,
        )


@dataclass
class Result(Generic[T]):
    """
    统一返回结果类

    Attributes:
        success: 是否成功
        data: 返回数据（成功时；失败时也可能携带部分结果，例如已执行步数）
        error: 错误信息（失败时）
    """
    success: bool
    data: Optional[T] = None
    error: Optional[Error] = None

    # ========== 工厂方法 ==========

    @classmethod
    def ok(cls, data: T = None) -> 'Result[T]':
        """创建成功结果"""
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: Error, data: T = None) -> 'Result[T]':
        """创建失败结果"""
        return cls(success=False, data=data, error=error)

    @classmethod
    def from_exception(cls, exc: Exception, data: T = None) -> 'Result[T]':
        """从异常创建失败结果"""
        return cls.fail(Error.from_exception(exc), data=data)

    # ========== 转换方法 ==========

    def to_dict(self) -> dict:
        """转换为字典（JSON 可序列化）"""
        result = {
            "success": self.success,
            "data": self.data,
            "error": self.error.to_dict() if self.error else None,
        }
        # 移除 None 值
        return {k: v for k, v in result.items() if v is not None}

    def to_response(self) -> Dict[str, Any]:
        """
        转换为命令响应信封

        成功: {"ok": True, **data}
        失败: {"ok": False, "error": message, "code": code, **data}
        """
        response: Dict[str, Any] = {"ok": self.success}
        if isinstance(self.data, dict):
            response.update(self.data)
        elif self.data is not None:
            response["data"] = self.data
        if not self.success:
            response["error"] = self.error.message if self.error else "unknown error"
            response["code"] = self.error.code if self.error else ErrorCode.UNKNOWN.value
        return response

    def to_json(self, indent: int = 2) -> str:
        """转换为 JSON 字符串"""
        return json.dumps(self.to_response(), ensure_ascii=False, indent=indent)

    # ========== 实用方法 ==========

    def unwrap(self) -> T:
        """解包数据，失败时抛出异常"""
        if self.success:
            return self.data
        raise MarionetteError(
            self.error.message if self.error else "Result failed without error object",
            self.error.details if self.error else None,
        )

    def unwrap_or(self, default: T) -> T:
        """解包数据，失败时返回默认值"""
        if self.success:
            return self.data if self.data is not None else default
        return default

    def is_error(self, code: ErrorCode = None) -> bool:
        """检查是否是错误（可选指定错误码）"""
        if self.success:
            return False
        if code and self.error:
            return self.error.code == code.value
        return True


# 命令执行结果
CommandResult = Result[Dict[str, Any]]


__all__ = [
    "Error",
    "Result",
    "CommandResult",
]
