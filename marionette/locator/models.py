"""
定位器数据模型

LocatorSet 是某个元素在捕获时刻的不可变定位策略快照，按可靠性排序。
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional, Tuple

from marionette.dom.base import LocatorQuery, QueryKind


@dataclass(frozen=True)
class TagTextPrefix:
    """标签 + 文本前缀（最后手段）"""
    tag: str
    text: str

    def to_dict(self) -> Dict[str, str]:
        return {"tag": self.tag, "text": self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TagTextPrefix':
        return cls(tag=data["tag"], text=data["text"])


# 策略名 -> (序列化字段名, 查询类型)，按可靠性排序
STRATEGY_ORDER: Tuple[Tuple[str, str, QueryKind], ...] = (
    ("identifier", "identifier", QueryKind.CSS),
    ("formal_name", "formalName", QueryKind.CSS),
    ("exact_link_text", "exactLinkText", QueryKind.LINK_TEXT),
    ("test_marker", "testMarker", QueryKind.CSS),
    ("stable_class_path", "stableClassPath", QueryKind.CSS),
    ("attribute_path", "attributePath", QueryKind.CSS),
    ("structural_path", "structuralPath", QueryKind.PATH),
    ("partial_link_text", "partialLinkText", QueryKind.PARTIAL_LINK_TEXT),
    ("tag_and_text_prefix", "tagAndTextPrefix", QueryKind.TEXT_PREFIX),
)

# 取值来自元素文本的策略，输入时会随内容变化
TEXT_DERIVED_STRATEGIES = frozenset({"exact_link_text", "partial_link_text", "tag_and_text_prefix"})


@dataclass(frozen=True)
class LocatorSet:
    """
    定位策略集

    每个策略都是可选的（不适用时为 None）。

    Attributes:
        identifier: id 选择器，如 #go
        formal_name: 带标签的 name 选择器，如 input[name="q"]
        exact_link_text: 链接完整文本（仅 a 元素）
        test_marker: 测试标记属性选择器，如 [data-testid="save"]
        stable_class_path: 标签 + 稳定类名，如 button.btn.primary
        attribute_path: 标签 + data/aria/role/type 属性
        structural_path: 位置路径，如 /html[1]/body[1]/div[2]
        partial_link_text: 链接文本前 20 个字符
        tag_and_text_prefix: 标签 + 文本前 100 个字符
    """
    identifier: Optional[str] = None
    formal_name: Optional[str] = None
    exact_link_text: Optional[str] = None
    test_marker: Optional[str] = None
    stable_class_path: Optional[str] = None
    attribute_path: Optional[str] = None
    structural_path: Optional[str] = None
    partial_link_text: Optional[str] = None
    tag_and_text_prefix: Optional[TagTextPrefix] = None

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def strategies(self) -> List[Tuple[str, LocatorQuery]]:
        """按排序返回可用策略 [(策略名, 查询)]"""
        result = []
        for name, _, kind in STRATEGY_ORDER:
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, TagTextPrefix):
                result.append((name, LocatorQuery(kind, value.text, tag=value.tag)))
            else:
                result.append((name, LocatorQuery(kind, value)))
        return result

    def target_key(self) -> Tuple[Tuple[str, Any], ...]:
        """不含文本类策略的定位键，用于判断两次捕获是否指向同一目标"""
        return tuple(
            (name, getattr(self, name))
            for name, _, _ in STRATEGY_ORDER
            if name not in TEXT_DERIVED_STRATEGIES
        )

    def same_target(self, other: 'LocatorSet') -> bool:
        return self.target_key() == other.target_key()

    def describe(self) -> str:
        """简短描述（用于日志）"""
        for name, query in self.strategies():
            return f"{name}={query.expression!r}"
        return "<empty>"

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for name, key, _ in STRATEGY_ORDER:
            value = getattr(self, name)
            if value is None:
                continue
            data[key] = value.to_dict() if isinstance(value, TagTextPrefix) else value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LocatorSet':
        kwargs = {}
        for name, key, _ in STRATEGY_ORDER:
            value = data.get(key)
            if value is None:
                continue
            if name == "tag_and_text_prefix":
                value = TagTextPrefix.from_dict(value)
            kwargs[name] = value
        return cls(**kwargs)


__all__ = [
    "TagTextPrefix",
    "STRATEGY_ORDER",
    "TEXT_DERIVED_STRATEGIES",
    "LocatorSet",
]
