"""
持久镜像存储

捕获上下文被销毁（如整页刷新）时，进程级的镜像保存捕获状态，
重建后的捕获器据此恢复。写入按时间戳去重，重复同步是安全的。
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from marionette.core.errors import InvalidActionError, NotRecordingError
from marionette.timing import wall_clock_iso
from .actions import Action, NavigationAction, action_from_dict


logger = logging.getLogger(__name__)


class CapturePhase(str, Enum):
    """捕获阶段"""
    IDLE = "idle"
    RECORDING = "recording"
    SUSPENDED = "suspended"


@dataclass
class MirrorState:
    """
    镜像状态

    Attributes:
        active: 是否有进行中的捕获
        phase: 捕获阶段
        origin_url: 捕获开始时的 URL
        start_time: 捕获开始的单调时间（毫秒）
        started_at: 捕获开始的墙钟时间
        actions: 已同步的动作
        last_sync_at: 最近一次同步的墙钟时间
    """
    active: bool = False
    phase: CapturePhase = CapturePhase.IDLE
    origin_url: str = ""
    start_time: float = 0.0
    started_at: str = ""
    actions: List[Action] = field(default_factory=list)
    last_sync_at: str = ""

    @property
    def last_url(self) -> str:
        """最后已知 URL：最后一次导航的目标，否则为起始 URL"""
        for action in reversed(self.actions):
            if isinstance(action, NavigationAction):
                return action.to_url
        return self.origin_url

    @property
    def last_timestamp(self) -> Optional[float]:
        if not self.actions:
            return None
        return max(action.timing.timestamp for action in self.actions)

    def copy(self) -> 'MirrorState':
        return MirrorState(
            active=self.active,
            phase=self.phase,
            origin_url=self.origin_url,
            start_time=self.start_time,
            started_at=self.started_at,
            actions=list(self.actions),
            last_sync_at=self.last_sync_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "active": self.active,
            "phase": self.phase.value,
            "originUrl": self.origin_url,
            "startTime": self.start_time,
            "startedAt": self.started_at,
            "actions": [action.to_dict() for action in self.actions],
            "lastSyncAt": self.last_sync_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MirrorState':
        """
        解码镜像状态

        Raises:
            InvalidActionError: 镜像格式无效
        """
        if not isinstance(data, dict):
            raise InvalidActionError("镜像状态必须是对象")
        actions = data.get("actions", [])
        if not isinstance(actions, list):
            raise InvalidActionError("actions 必须是数组", {"actions": type(actions).__name__})
        try:
            phase = CapturePhase(data.get("phase", CapturePhase.IDLE.value))
        except (ValueError, TypeError) as e:
            raise InvalidActionError(f"未知捕获阶段: {data.get('phase')}", {"phase": data.get("phase")}) from e
        return cls(
            active=bool(data.get("active", False)),
            phase=phase,
            origin_url=data.get("originUrl", ""),
            start_time=data.get("startTime", 0.0),
            started_at=data.get("startedAt", ""),
            actions=[action_from_dict(item) for item in actions],
            last_sync_at=data.get("lastSyncAt", ""),
        )


class DurableStore(ABC):
    """持久镜像存储接口"""

    @abstractmethod
    def get(self) -> MirrorState:
        """获取镜像快照（副本）"""
        pass

    @abstractmethod
    def put_append(self, actions: Iterable[Action]) -> int:
        """
        追加动作（按时间戳去重）

        Returns:
            镜像中的动作总数

        Raises:
            NotRecordingError: 没有进行中的捕获
        """
        pass

    @abstractmethod
    def begin(self, origin_url: str, start_time: float) -> None:
        """开始新的捕获会话（清空旧动作）"""
        pass

    @abstractmethod
    def set_phase(self, phase: CapturePhase) -> None:
        """更新捕获阶段"""
        pass

    @abstractmethod
    def end(self) -> MirrorState:
        """结束捕获会话，返回结束前的镜像"""
        pass

    def is_active(self) -> bool:
        return self.get().active


class MemoryMirrorStore(DurableStore):
    """进程内镜像存储"""

    def __init__(self, state: MirrorState = None):
        self._state = state or MirrorState()

    def get(self) -> MirrorState:
        return self._state.copy()

    def put_append(self, actions: Iterable[Action]) -> int:
        if not self._state.active:
            raise NotRecordingError("镜像没有进行中的捕获")

        known = {action.timing.timestamp for action in self._state.actions}
        added = 0
        for action in actions:
            if action.timing.timestamp in known:
                continue
            self._state.actions.append(action)
            known.add(action.timing.timestamp)
            added += 1

        self._state.last_sync_at = wall_clock_iso()
        if added:
            logger.debug(f"镜像同步 {added} 个新动作，共 {len(self._state.actions)} 个")
            self._persist()
        return len(self._state.actions)

    def begin(self, origin_url: str, start_time: float) -> None:
        self._state = MirrorState(
            active=True,
            phase=CapturePhase.RECORDING,
            origin_url=origin_url,
            start_time=start_time,
            started_at=wall_clock_iso(),
        )
        self._persist()

    def set_phase(self, phase: CapturePhase) -> None:
        self._state.phase = phase
        self._persist()

    def end(self) -> MirrorState:
        final = self._state.copy()
        self._state = MirrorState()
        self._persist()
        return final

    def _persist(self) -> None:
        """持久化钩子（内存实现无需处理）"""
        pass


class FileMirrorStore(MemoryMirrorStore):
    """
    文件镜像存储

    将镜像保存为 JSON 文件，进程重启后仍可恢复。

    Attributes:
        path: 镜像文件路径
    """

    def __init__(self, path: str = None):
        self.path = Path(path or self._default_path())
        self.path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(self._load())

    def _default_path(self) -> str:
        """获取默认镜像文件路径"""
        return str(Path.home() / ".marionette" / "mirror.json")

    def _load(self) -> MirrorState:
        if not self.path.exists():
            return MirrorState()
        with open(self.path, "r", encoding="utf-8") as f:
            return MirrorState.from_dict(json.load(f))

    def _persist(self) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._state.to_dict(), f, ensure_ascii=False, indent=2)


# ========== 便捷函数 ==========

def create_store(path: str = None, persistent: bool = False) -> DurableStore:
    """创建镜像存储"""
    if persistent or path:
        return FileMirrorStore(path)
    return MemoryMirrorStore()


__all__ = [
    "CapturePhase",
    "MirrorState",
    "DurableStore",
    "MemoryMirrorStore",
    "FileMirrorStore",
    "create_store",
]
