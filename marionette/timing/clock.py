"""
时钟模块

提供单调高精度时间源、延迟计算、回放速度缩放以及协作式等待。
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Optional


# 缩放后的最小延迟（毫秒），避免高倍速下出现零等待的忙循环
MIN_SCALED_DELAY_MS = 10.0


class CancellationToken:
    """
    协作式取消令牌

    回放过程中的每个等待点都会检查此令牌，取消请求在下一个挂起点生效。
    """

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """请求取消"""
        self._event.set()

    async def wait(self) -> None:
        """等待取消信号"""
        await self._event.wait()


class Clock:
    """
    时钟

    Attributes:
        无状态；子类可以覆盖 now/wait 以便测试时注入虚拟时间。
    """

    def now(self) -> float:
        """获取单调时间戳（毫秒）"""
        return time.perf_counter() * 1000

    @staticmethod
    def delay(start: float, end: float) -> float:
        """计算两个时间戳之间的延迟，永不为负"""
        return max(0.0, end - start)

    @staticmethod
    def scale(delay: float, speed: float = 1.0) -> float:
        """
        按回放速度缩放延迟

        Args:
            delay: 原始延迟（毫秒）
            speed: 速度倍率，调用方保证大于 0

        Returns:
            缩放后的延迟，不低于 MIN_SCALED_DELAY_MS
        """
        return max(MIN_SCALED_DELAY_MS, delay / speed)

    async def wait(self, ms: float, token: Optional[CancellationToken] = None) -> bool:
        """
        协作式等待

        Args:
            ms: 等待时长（毫秒）
            token: 取消令牌（可选）

        Returns:
            完整等待结束返回 True，被取消返回 False
        """
        if token is not None and token.cancelled:
            return False

        if ms <= 0:
            await asyncio.sleep(0)
            return token is None or not token.cancelled

        if token is None:
            await asyncio.sleep(ms / 1000)
            return True

        try:
            await asyncio.wait_for(token.wait(), timeout=ms / 1000)
        except asyncio.TimeoutError:
            return True
        return False

    @staticmethod
    def format_duration(ms: float) -> str:
        """获取可读的时长字符串"""
        if ms < 1000:
            return f"{round(ms)}ms"
        if ms < 60000:
            return f"{ms / 1000:.1f}s"
        minutes = int(ms // 60000)
        seconds = int((ms % 60000) // 1000)
        return f"{minutes}m {seconds}s"


def wall_clock_iso() -> str:
    """当前墙钟时间（ISO 8601，UTC）"""
    return datetime.now(timezone.utc).isoformat()


__all__ = [
    "MIN_SCALED_DELAY_MS",
    "CancellationToken",
    "Clock",
    "wall_clock_iso",
]
