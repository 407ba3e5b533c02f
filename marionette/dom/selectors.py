"""
选择器工具

提供 CSS 标识符转义、复合选择器解析与匹配、位置路径解析。
支持的 CSS 子集：tag、#id、.class、[attr]、[attr op "value"]（op: = ~= ^= $= *= |=），
不支持组合符与伪类。
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from marionette.core.errors import SelectorSyntaxError
from .base import ElementHandle


_PATH_STEP = re.compile(r"/([a-zA-Z][\w-]*)\[(\d+)\]")
_ATTR_OPERATORS = ("~=", "^=", "$=", "*=", "|=", "=")


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch in "-_" or ord(ch) >= 0x80


def css_escape(ident: str) -> str:
    """转义 CSS 标识符（对应浏览器的 CSS.escape）"""
    result = []
    for i, ch in enumerate(ident):
        if ch == "\0":
            result.append("�")
        elif i == 0 and ch.isdigit():
            result.append(f"\\{ord(ch):x} ")
        elif i == 1 and ch.isdigit() and ident[0] == "-":
            result.append(f"\\{ord(ch):x} ")
        elif _is_ident_char(ch):
            result.append(ch)
        else:
            result.append("\\" + ch)
    if ident == "-":
        return "\\-"
    return "".join(result)


def quote_attr_value(value: str) -> str:
    """生成带双引号的属性值"""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


@dataclass
class AttributeCondition:
    """属性条件"""
    name: str
    operator: Optional[str] = None
    value: Optional[str] = None

    def matches(self, element: ElementHandle) -> bool:
        actual = element.get_attribute(self.name)
        if actual is None:
            return False
        if self.operator is None:
            return True
        expected = self.value or ""
        if self.operator == "=":
            return actual == expected
        if self.operator == "~=":
            return expected in actual.split()
        if self.operator == "^=":
            return bool(expected) and actual.startswith(expected)
        if self.operator == "$=":
            return bool(expected) and actual.endswith(expected)
        if self.operator == "*=":
            return bool(expected) and expected in actual
        if self.operator == "|=":
            return actual == expected or actual.startswith(expected + "-")
        return False


@dataclass
class CompoundSelector:
    """复合选择器"""
    tag: Optional[str] = None
    ids: List[str] = field(default_factory=list)
    classes: List[str] = field(default_factory=list)
    attributes: List[AttributeCondition] = field(default_factory=list)

    def matches(self, element: ElementHandle) -> bool:
        if self.tag and self.tag != "*" and element.tag_name != self.tag:
            return False
        for ident in self.ids:
            if element.id != ident:
                return False
        if self.classes:
            class_list = element.class_list
            if any(cls not in class_list for cls in self.classes):
                return False
        return all(cond.matches(element) for cond in self.attributes)


class _Scanner:
    """逐字符扫描器"""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    @property
    def done(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self) -> str:
        return self.text[self.pos] if not self.done else ""

    def skip_spaces(self) -> None:
        while not self.done and self.text[self.pos].isspace():
            self.pos += 1

    def read_escape(self) -> str:
        # 当前位置为反斜杠
        self.pos += 1
        if self.done:
            raise SelectorSyntaxError(self.text)
        match = re.match(r"[0-9a-fA-F]{1,6}", self.text[self.pos:])
        if match:
            self.pos += len(match.group(0))
            if not self.done and self.text[self.pos] == " ":
                self.pos += 1
            return chr(int(match.group(0), 16))
        ch = self.text[self.pos]
        self.pos += 1
        return ch

    def read_ident(self) -> str:
        chars = []
        while not self.done:
            ch = self.text[self.pos]
            if ch == "\\":
                chars.append(self.read_escape())
            elif _is_ident_char(ch):
                chars.append(ch)
                self.pos += 1
            else:
                break
        if not chars:
            raise SelectorSyntaxError(self.text)
        return "".join(chars)

    def read_quoted(self) -> str:
        quote = self.text[self.pos]
        self.pos += 1
        chars = []
        while True:
            if self.done:
                raise SelectorSyntaxError(self.text)
            ch = self.text[self.pos]
            if ch == "\\":
                self.pos += 1
                if self.done:
                    raise SelectorSyntaxError(self.text)
                chars.append(self.text[self.pos])
                self.pos += 1
            elif ch == quote:
                self.pos += 1
                return "".join(chars)
            else:
                chars.append(ch)
                self.pos += 1


def _parse_attribute(scanner: _Scanner) -> AttributeCondition:
    scanner.pos += 1  # [
    scanner.skip_spaces()
    name = scanner.read_ident()
    scanner.skip_spaces()
    if scanner.peek() == "]":
        scanner.pos += 1
        return AttributeCondition(name=name)

    rest = scanner.text[scanner.pos:]
    operator = next((op for op in _ATTR_OPERATORS if rest.startswith(op)), None)
    if operator is None:
        raise SelectorSyntaxError(scanner.text)
    scanner.pos += len(operator)
    scanner.skip_spaces()

    if scanner.peek() in ("'", '"'):
        value = scanner.read_quoted()
    else:
        value = scanner.read_ident()

    scanner.skip_spaces()
    if scanner.peek() != "]":
        raise SelectorSyntaxError(scanner.text)
    scanner.pos += 1
    return AttributeCondition(name=name, operator=operator, value=value)


def parse_compound(selector: str) -> CompoundSelector:
    """
    解析复合选择器

    Args:
        selector: 选择器字符串，例如 button.primary[data-action="save"]

    Returns:
        CompoundSelector

    Raises:
        SelectorSyntaxError: 无法解析或使用了不支持的语法
    """
    text = (selector or "").strip()
    if not text:
        raise SelectorSyntaxError(selector or "")

    scanner = _Scanner(text)
    compound = CompoundSelector()

    if scanner.peek() == "*":
        compound.tag = "*"
        scanner.pos += 1
    elif scanner.peek() not in ("#", ".", "["):
        compound.tag = scanner.read_ident().lower()

    while not scanner.done:
        ch = scanner.peek()
        if ch == "#":
            scanner.pos += 1
            compound.ids.append(scanner.read_ident())
        elif ch == ".":
            scanner.pos += 1
            compound.classes.append(scanner.read_ident())
        elif ch == "[":
            compound.attributes.append(_parse_attribute(scanner))
        else:
            raise SelectorSyntaxError(selector)

    return compound


def parse_path(path: str) -> List[Tuple[str, int]]:
    """
    解析位置路径

    Args:
        path: 形如 /html[1]/body[1]/div[2] 的路径

    Returns:
        [(tag, index), ...]

    Raises:
        SelectorSyntaxError: 格式错误
    """
    if not path or not path.startswith("/"):
        raise SelectorSyntaxError(path or "")
    steps = []
    pos = 0
    while pos < len(path):
        match = _PATH_STEP.match(path, pos)
        if not match or int(match.group(2)) < 1:
            raise SelectorSyntaxError(path)
        steps.append((match.group(1).lower(), int(match.group(2))))
        pos = match.end()
    return steps


__all__ = [
    "css_escape",
    "quote_attr_value",
    "AttributeCondition",
    "CompoundSelector",
    "parse_compound",
    "parse_path",
]
