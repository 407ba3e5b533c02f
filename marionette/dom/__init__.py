"""
文档宿主模块

提供宿主能力接口与内存文档模型：
- DocumentHost: 宿主抽象基类
- ElementHandle: 元素句柄
- MemoryDocumentHost: 内存文档宿主
"""

from .base import (
    QueryKind,
    Interaction,
    Signal,
    ReadyState,
    LocatorQuery,
    RawEvent,
    InteractabilityReport,
    Scope,
    ElementHandle,
    SignalHandler,
    DocumentHost,
)

from .selectors import (
    css_escape,
    quote_attr_value,
    CompoundSelector,
    parse_compound,
    parse_path,
)

from .memory import (
    MemoryDocument,
    MemoryShadowRoot,
    MemoryElement,
    MemoryDocumentHost,
    h,
)

__all__ = [
    # Base
    "QueryKind",
    "Interaction",
    "Signal",
    "ReadyState",
    "LocatorQuery",
    "RawEvent",
    "InteractabilityReport",
    "Scope",
    "ElementHandle",
    "SignalHandler",
    "DocumentHost",
    # Selectors
    "css_escape",
    "quote_attr_value",
    "CompoundSelector",
    "parse_compound",
    "parse_path",
    # Memory
    "MemoryDocument",
    "MemoryShadowRoot",
    "MemoryElement",
    "MemoryDocumentHost",
    "h",
]
