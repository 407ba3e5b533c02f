"""
录制回放模块

提供动作日志、持久镜像、捕获状态机与回放状态机。

使用示例:
```python
from marionette.dom import MemoryDocumentHost
from marionette.recorder import MemoryMirrorStore, Recorder, Player

host = MemoryDocumentHost(document)
recorder = Recorder(host, MemoryMirrorStore())

await recorder.start()
# ... 用户交互 ...
log = await recorder.stop()

player = Player(host)
result = await player.play(log, speed=2.0)
print(f"回放结果: {result.state.value}, 已执行 {result.steps_executed} 步")
```
"""

from .actions import (
    ActionType,
    ActionTiming,
    ClickAction,
    TextEntryAction,
    KeyPressAction,
    NavigationAction,
    Action,
    action_from_dict,
    ActionLog,
)

from .store import (
    CapturePhase,
    MirrorState,
    DurableStore,
    MemoryMirrorStore,
    FileMirrorStore,
    create_store,
)

from .capture import (
    is_clickable,
    find_clickable,
    CaptureSession,
    Recorder,
    create_recorder,
)

from .player import (
    RECOGNIZED_SPEEDS,
    PlaybackState,
    PlaybackConfig,
    PlaybackResult,
    validate_speed,
    Player,
    create_player,
)

__all__ = [
    # Actions
    "ActionType",
    "ActionTiming",
    "ClickAction",
    "TextEntryAction",
    "KeyPressAction",
    "NavigationAction",
    "Action",
    "action_from_dict",
    "ActionLog",
    # Store
    "CapturePhase",
    "MirrorState",
    "DurableStore",
    "MemoryMirrorStore",
    "FileMirrorStore",
    "create_store",
    # Capture
    "is_clickable",
    "find_clickable",
    "CaptureSession",
    "Recorder",
    "create_recorder",
    # Player
    "RECOGNIZED_SPEEDS",
    "PlaybackState",
    "PlaybackConfig",
    "PlaybackResult",
    "validate_speed",
    "Player",
    "create_player",
]
