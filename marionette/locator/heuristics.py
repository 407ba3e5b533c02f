"""
元素特征启发式

判断类名是否为构建工具生成的不稳定名称，提取测试标记与描述性属性。
"""

import re
from typing import List, Optional, Tuple

from marionette.dom.base import ElementHandle


# CSS-in-JS 与原子化样式库的生成前缀
GENERATED_CLASS_PREFIXES = ("css-", "sc-", "jsx-", "emotion-", "styled-", "makeStyles-", "jss", "tw-")

# 测试标记属性（按优先级）
TEST_MARKER_ATTRIBUTES = ("data-testid", "data-test-id", "data-test", "data-cy", "data-qa")

MAX_STABLE_CLASSES = 3
MAX_DESCRIPTIVE_ATTRIBUTES = 3

_HASH_SUFFIX = re.compile(r"(?:__|--|_|-)([A-Za-z0-9]{5,})$")
_OPAQUE_TOKEN = re.compile(r"^[A-Za-z0-9]{10,}$")
_LONG_TOKEN_LENGTH = 25


def _mixes_digits_and_letters(token: str) -> bool:
    return any(ch.isdigit() for ch in token) and any(ch.isalpha() for ch in token)


def is_generated_class(token: str) -> bool:
    """
    判断类名是否像是生成的

    Args:
        token: 类名

    Returns:
        匹配以下任一特征返回 True：CSS-in-JS 前缀、哈希后缀、
        长的不透明字母数字串、以数字开头
    """
    if not token:
        return True
    if token.startswith(GENERATED_CLASS_PREFIXES):
        return True
    if token[0].isdigit():
        return True
    if len(token) >= _LONG_TOKEN_LENGTH:
        return True

    match = _HASH_SUFFIX.search(token)
    if match and _mixes_digits_and_letters(match.group(1)):
        return True

    if _OPAQUE_TOKEN.match(token) and _mixes_digits_and_letters(token):
        return True

    return False


def stable_classes(tokens: List[str], limit: int = MAX_STABLE_CLASSES) -> List[str]:
    """过滤出稳定类名（保持原顺序，去重）"""
    result = []
    for token in tokens:
        if token in result or is_generated_class(token):
            continue
        result.append(token)
        if len(result) >= limit:
            break
    return result


def find_test_marker(element: ElementHandle) -> Optional[Tuple[str, str]]:
    """返回第一个存在的测试标记属性 (name, value)"""
    for name in TEST_MARKER_ATTRIBUTES:
        value = element.get_attribute(name)
        if value:
            return name, value
    return None


def descriptive_attributes(element: ElementHandle, limit: int = MAX_DESCRIPTIVE_ATTRIBUTES) -> List[Tuple[str, str]]:
    """提取描述性属性：data-*（测试标记除外）、aria-*、role、type"""
    result = []
    for name, value in element.attributes.items():
        if name in TEST_MARKER_ATTRIBUTES:
            continue
        if name.startswith(("data-", "aria-")) or name in ("role", "type"):
            result.append((name, value))
            if len(result) >= limit:
                break
    return result


def normalize_text(text: str, limit: int) -> str:
    """去除首尾空白并截断"""
    return (text or "").strip()[:limit]


__all__ = [
    "GENERATED_CLASS_PREFIXES",
    "TEST_MARKER_ATTRIBUTES",
    "MAX_STABLE_CLASSES",
    "MAX_DESCRIPTIVE_ATTRIBUTES",
    "is_generated_class",
    "stable_classes",
    "find_test_marker",
    "descriptive_attributes",
    "normalize_text",
]
