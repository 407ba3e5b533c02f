"""
动作与动作日志

动作是封闭的标签联合：点击、文本输入、按键、导航。
动作日志是可持久化/交换的单元，捕获结束后封存为只读。
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

from marionette.core.errors import InvalidActionError, LogSealedError
from marionette.locator.models import LocatorSet


class ActionType(str, Enum):
    """动作类型"""
    CLICK = "click"
    TEXT_ENTRY = "input"
    KEY_PRESS = "keypress"
    NAVIGATION = "navigation"


@dataclass
class ActionTiming:
    """动作时间信息"""
    timestamp: float  # 捕获时的单调时间（毫秒）
    delay: float  # 距上一个动作的间隔（毫秒），首个动作为 0
    type: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "delay": self.delay,
            "type": self.type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ActionTiming':
        return cls(
            timestamp=data["timestamp"],
            delay=max(0, data.get("delay", 0)),
            type=data.get("type", ""),
        )


@dataclass
class ClickAction:
    """点击"""
    locator: LocatorSet
    element_tag: str
    text_snippet: str
    timing: ActionTiming
    page_url: str = ""

    type = ActionType.CLICK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "timing": self.timing.to_dict(),
            "pageUrl": self.page_url,
            "locator": self.locator.to_dict(),
            "elementTag": self.element_tag,
            "textSnippet": self.text_snippet,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClickAction':
        return cls(
            locator=LocatorSet.from_dict(data["locator"]),
            element_tag=data.get("elementTag", ""),
            text_snippet=data.get("textSnippet", ""),
            timing=ActionTiming.from_dict(data["timing"]),
            page_url=data.get("pageUrl", ""),
        )


@dataclass
class TextEntryAction:
    """文本输入（同一目标 1 秒内的连续输入会合并）"""
    locator: LocatorSet
    value: str
    timing: ActionTiming
    page_url: str = ""
    merged: bool = False

    type = ActionType.TEXT_ENTRY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "timing": self.timing.to_dict(),
            "pageUrl": self.page_url,
            "locator": self.locator.to_dict(),
            "value": self.value,
            "merged": self.merged,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TextEntryAction':
        return cls(
            locator=LocatorSet.from_dict(data["locator"]),
            value=data.get("value", ""),
            timing=ActionTiming.from_dict(data["timing"]),
            page_url=data.get("pageUrl", ""),
            merged=data.get("merged", False),
        )


@dataclass
class KeyPressAction:
    """按键"""
    locator: LocatorSet
    key: str
    timing: ActionTiming
    page_url: str = ""

    type = ActionType.KEY_PRESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "timing": self.timing.to_dict(),
            "pageUrl": self.page_url,
            "locator": self.locator.to_dict(),
            "key": self.key,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'KeyPressAction':
        return cls(
            locator=LocatorSet.from_dict(data["locator"]),
            key=data["key"],
            timing=ActionTiming.from_dict(data["timing"]),
            page_url=data.get("pageUrl", ""),
        )


@dataclass
class NavigationAction:
    """导航"""
    to_url: str
    from_url: str
    timing: ActionTiming
    page_url: str = ""

    type = ActionType.NAVIGATION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "timing": self.timing.to_dict(),
            "pageUrl": self.page_url,
            "url": self.to_url,
            "fromUrl": self.from_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NavigationAction':
        return cls(
            to_url=data["url"],
            from_url=data.get("fromUrl", ""),
            timing=ActionTiming.from_dict(data["timing"]),
            page_url=data.get("pageUrl", ""),
        )


Action = Union[ClickAction, TextEntryAction, KeyPressAction, NavigationAction]

_ACTION_CLASSES = {
    ActionType.CLICK.value: ClickAction,
    ActionType.TEXT_ENTRY.value: TextEntryAction,
    ActionType.KEY_PRESS.value: KeyPressAction,
    ActionType.NAVIGATION.value: NavigationAction,
}


def action_from_dict(data: Dict[str, Any]) -> Action:
    """
    解码单个动作

    Raises:
        InvalidActionError: 未知类型或缺少必需字段
    """
    action_type = data.get("type") if isinstance(data, dict) else None
    action_cls = _ACTION_CLASSES.get(action_type) if isinstance(action_type, str) else None
    if action_cls is None:
        raise InvalidActionError(f"未知动作类型: {action_type}", {"type": action_type})
    try:
        return action_cls.from_dict(data)
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        raise InvalidActionError(f"动作字段缺失或无效: {e}", {"type": action_type}) from e


class ActionLog:
    """
    动作日志

    Attributes:
        origin_url: 捕获开始时的 URL
        total_duration_ms: 捕获总时长
        captured_at: 捕获结束时的墙钟时间（ISO 8601）
        sealed: 是否已封存
    """

    def __init__(
        self,
        actions: Iterable[Action] = None,
        origin_url: str = "",
        total_duration_ms: float = 0,
        captured_at: str = "",
        sealed: bool = False,
    ):
        self._actions: List[Action] = list(actions or [])
        self.origin_url = origin_url
        self.total_duration_ms = total_duration_ms
        self.captured_at = captured_at
        self.sealed = sealed

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self) -> Iterator[Action]:
        return iter(self._actions)

    def __getitem__(self, index: int) -> Action:
        return self._actions[index]

    @property
    def actions(self) -> List[Action]:
        return list(self._actions)

    @property
    def last(self) -> Optional[Action]:
        return self._actions[-1] if self._actions else None

    @property
    def timestamps(self) -> set:
        return {action.timing.timestamp for action in self._actions}

    def _check_open(self) -> None:
        if self.sealed:
            raise LogSealedError()

    def append(self, action: Action) -> None:
        """追加动作"""
        self._check_open()
        self._actions.append(action)

    def replace_last(self, action: Action) -> None:
        """替换最后一个动作（用于输入合并）"""
        self._check_open()
        self._actions[-1] = action

    def merge(self, actions: Iterable[Action]) -> int:
        """
        合并外部动作（按时间戳去重，按时间戳排序）

        Returns:
            新增动作数量
        """
        self._check_open()
        known = self.timestamps
        added = 0
        for action in actions:
            if action.timing.timestamp in known:
                continue
            self._actions.append(action)
            known.add(action.timing.timestamp)
            added += 1
        if added:
            self._actions.sort(key=lambda a: a.timing.timestamp)
        return added

    def seal(self, total_duration_ms: float, captured_at: str) -> 'ActionLog':
        """封存日志，之后不可再修改"""
        self.total_duration_ms = total_duration_ms
        self.captured_at = captured_at
        self.sealed = True
        return self

    def copy(self) -> 'ActionLog':
        return ActionLog(
            actions=self._actions,
            origin_url=self.origin_url,
            total_duration_ms=self.total_duration_ms,
            captured_at=self.captured_at,
            sealed=self.sealed,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actions": [action.to_dict() for action in self._actions],
            "originUrl": self.origin_url,
            "totalDurationMs": self.total_duration_ms,
            "capturedAt": self.captured_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ActionLog':
        """解码交换格式（解码后的日志为封存状态）"""
        if not isinstance(data, dict):
            raise InvalidActionError("动作日志必须是对象")
        actions = data.get("actions", [])
        if not isinstance(actions, list):
            raise InvalidActionError("actions 必须是数组", {"actions": type(actions).__name__})
        return cls(
            actions=[action_from_dict(item) for item in actions],
            origin_url=data.get("originUrl", ""),
            total_duration_ms=data.get("totalDurationMs", 0),
            captured_at=data.get("capturedAt", ""),
            sealed=True,
        )

    def to_json(self, indent: int = None) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)

    @classmethod
    def from_json(cls, text: str) -> 'ActionLog':
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidActionError(f"动作日志不是合法 JSON: {e}") from e
        return cls.from_dict(data)


__all__ = [
    "ActionType",
    "ActionTiming",
    "ClickAction",
    "TextEntryAction",
    "KeyPressAction",
    "NavigationAction",
    "Action",
    "action_from_dict",
    "ActionLog",
]
