"""
时间模块

提供时钟、延迟缩放和协作式取消。
"""

from .clock import (
    MIN_SCALED_DELAY_MS,
    CancellationToken,
    Clock,
    wall_clock_iso,
)

__all__ = [
    "MIN_SCALED_DELAY_MS",
    "CancellationToken",
    "Clock",
    "wall_clock_iso",
]
