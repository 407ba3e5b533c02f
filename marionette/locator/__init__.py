"""
定位器模块

提供元素定位策略的生成与解析：
- LocatorSet: 按可靠性排序的策略快照
- LocatorEngine: 生成与跨作用域解析
- heuristics: 生成类名识别与属性提取
"""

from .models import (
    TagTextPrefix,
    STRATEGY_ORDER,
    TEXT_DERIVED_STRATEGIES,
    LocatorSet,
)

from .heuristics import (
    GENERATED_CLASS_PREFIXES,
    TEST_MARKER_ATTRIBUTES,
    is_generated_class,
    stable_classes,
    find_test_marker,
    descriptive_attributes,
)

from .engine import (
    Resolution,
    LocatorEngine,
    create_engine,
)

__all__ = [
    # Models
    "TagTextPrefix",
    "STRATEGY_ORDER",
    "TEXT_DERIVED_STRATEGIES",
    "LocatorSet",
    # Heuristics
    "GENERATED_CLASS_PREFIXES",
    "TEST_MARKER_ATTRIBUTES",
    "is_generated_class",
    "stable_classes",
    "find_test_marker",
    "descriptive_attributes",
    # Engine
    "Resolution",
    "LocatorEngine",
    "create_engine",
]
