"""
命令层

对协作方（界面、HTTP 服务、重载检测器）暴露捕获与回放命令。
每个命令都返回 {"ok": bool, ...} 信封，失败时附带 error 与 code，不向外抛出领域异常。
"""

import logging
from typing import Any, Dict, Iterable, Optional, Union

from marionette.config import AppConfig, get_config
from marionette.core.errors import (
    AlreadyRecordingError,
    ErrorCode,
    InvalidActionError,
    MarionetteError,
    NotRecordingError,
)
from marionette.core.result import CommandResult, Error, Result
from marionette.dom.base import DocumentHost
from marionette.locator.engine import LocatorEngine
from marionette.recorder.actions import (
    Action,
    ActionLog,
    ClickAction,
    KeyPressAction,
    NavigationAction,
    TextEntryAction,
    action_from_dict,
)
from marionette.recorder.capture import Recorder
from marionette.recorder.player import Player, PlaybackState, validate_speed
from marionette.recorder.store import CapturePhase, DurableStore, MirrorState, create_store
from marionette.timing import Clock


logger = logging.getLogger(__name__)


Response = Dict[str, Any]

ACTION_CLASSES = (ClickAction, TextEntryAction, KeyPressAction, NavigationAction)


class MarionetteController:
    """
    捕获/回放协调器

    持有一个文档宿主、一个持久镜像，以及至多一个捕获器和一个回放器。

    Attributes:
        host: 文档宿主
        store: 持久镜像存储
        recorder: 当前捕获器（未捕获时为 None）
        player: 回放器
        last_log: 最近一次捕获得到的日志
    """

    def __init__(
        self,
        host: DocumentHost,
        store: DurableStore = None,
        clock: Clock = None,
        config: AppConfig = None,
    ):
        self.config = config or get_config()
        self.host = host
        self.store = store or create_store(self.config.store.path, self.config.store.persistent)
        self.clock = clock or Clock()
        self.engine = LocatorEngine(lenient=self.config.locator.lenient)
        self.recorder: Optional[Recorder] = None
        self.player = Player(host, clock=self.clock, engine=self.engine, settings=self.config.replay)
        self.last_log: Optional[ActionLog] = None

    async def _command(self, name: str, operation) -> Response:
        try:
            result: CommandResult = await operation()
        except MarionetteError as e:
            logger.warning(f"命令 {name} 失败: [{e.code.value}] {e.message}")
            result = Result.from_exception(e)
        return result.to_response()

    def _new_recorder(self) -> Recorder:
        return Recorder(
            self.host,
            self.store,
            clock=self.clock,
            engine=self.engine,
            settings=self.config.capture,
        )

    # ========== 捕获 ==========

    async def start_capture(self) -> Response:
        """StartCapture() -> {ok}"""
        async def operation():
            if self.store.is_active():
                raise AlreadyRecordingError()
            self.recorder = self._new_recorder()
            await self.recorder.start()
            return Result.ok()
        return await self._command("StartCapture", operation)

    async def stop_capture(self) -> Response:
        """StopCapture() -> {ok, log}"""
        async def operation():
            if self.recorder is None or self.recorder.phase != CapturePhase.RECORDING:
                if not self.store.is_active():
                    raise NotRecordingError()
                await self._rebuild_recorder(self.store.get())
            log = await self.recorder.stop()
            self.recorder = None
            self.last_log = log
            return Result.ok({"log": log.to_dict()})
        return await self._command("StopCapture", operation)

    async def get_capture_state(self) -> Response:
        """GetCaptureState() -> {phase, actionCount, durationMs, originUrl}"""
        async def operation():
            if self.recorder is not None and self.recorder.phase != CapturePhase.IDLE:
                return Result.ok(self.recorder.get_state())
            mirror = self.store.get()
            return Result.ok({
                "phase": mirror.phase.value if mirror.active else CapturePhase.IDLE.value,
                "actionCount": len(mirror.actions),
                "durationMs": 0,
                "originUrl": mirror.origin_url,
            })
        return await self._command("GetCaptureState", operation)

    async def resume_capture(self, mirror: Union[MirrorState, Dict[str, Any]] = None) -> Response:
        """ResumeCapture(mirror) -> {ok}"""
        async def operation():
            if mirror is None:
                state = self.store.get()
            elif isinstance(mirror, MirrorState):
                state = mirror
            else:
                state = MirrorState.from_dict(mirror)
            if self.recorder is None:
                self.recorder = self._new_recorder()
            await self.recorder.resume(state)
            return Result.ok({"actionCount": len(self.recorder.session.log)})
        return await self._command("ResumeCapture", operation)

    async def sync_actions(self, actions: Iterable[Union[Action, Dict[str, Any]]]) -> Response:
        """SyncActions(newActions) -> {ok, totalActions}"""
        async def operation():
            if not isinstance(actions, (list, tuple)):
                raise InvalidActionError("actions 必须是数组", {"actions": type(actions).__name__})
            decoded = [a if isinstance(a, ACTION_CLASSES) else action_from_dict(a) for a in actions]
            total = self.store.put_append(decoded)
            return Result.ok({"totalActions": total})
        return await self._command("SyncActions", operation)

    async def on_context_reloaded(self) -> Response:
        """捕获上下文重建后调用：有进行中的捕获时重建捕获器并恢复"""
        async def operation():
            if not self.store.is_active():
                return Result.ok({"resumed": False})
            await self._rebuild_recorder(self.store.get())
            return Result.ok({"resumed": True, "actionCount": len(self.recorder.session.log)})
        return await self._command("OnContextReloaded", operation)

    async def _rebuild_recorder(self, mirror: MirrorState) -> None:
        if self.recorder is not None and self.recorder.phase == CapturePhase.RECORDING:
            await self.recorder.resume(mirror)
            return
        self.recorder = self._new_recorder()
        await self.recorder.resume(mirror)

    # ========== 回放 ==========

    async def start_replay(self, log: Union[ActionLog, Dict[str, Any]], speed: float = 1.0) -> Response:
        """StartReplay(log, speed) -> {ok, stepsExecuted}"""
        async def operation():
            action_log = log if isinstance(log, ActionLog) else ActionLog.from_dict(log)
            result = await self.player.play(action_log, speed)
            data = {
                "stepsExecuted": result.steps_executed,
                "totalSteps": result.total_steps,
                "state": result.state.value,
                "fallbacks": result.fallbacks,
            }
            if result.state == PlaybackState.COMPLETED:
                return Result.ok(data)
            if result.state == PlaybackState.ABORTED:
                return Result.fail(Error(code=ErrorCode.ABORTED.value, message="回放已取消"), data)

            error = result.error or {}
            data["failedStep"] = result.failed_step
            data["details"] = error.get("details")
            return Result.fail(
                Error(
                    code=error.get("code", ErrorCode.UNKNOWN.value),
                    message=error.get("message", "回放失败"),
                    details=error.get("details"),
                ),
                data,
            )
        return await self._command("StartReplay", operation)

    async def stop_replay(self) -> Response:
        """StopReplay() -> {ok}"""
        async def operation():
            return Result.ok({"stopped": self.player.abort()})
        return await self._command("StopReplay", operation)

    async def set_replay_speed(self, speed: float) -> Response:
        """SetReplaySpeed(speed) -> {ok}"""
        async def operation():
            self.player.set_speed(validate_speed(speed))
            return Result.ok({"speed": self.player.speed})
        return await self._command("SetReplaySpeed", operation)

    async def get_replay_state(self) -> Response:
        """GetReplayState() -> {phase, cursor, totalSteps, speed, progress}"""
        async def operation():
            return Result.ok(self.player.get_state())
        return await self._command("GetReplayState", operation)

    # ========== 查询 ==========

    async def is_active(self) -> Response:
        """是否有进行中的捕获或回放"""
        async def operation():
            capturing = self.store.is_active()
            replaying = self.player.is_playing
            return Result.ok({
                "active": capturing or replaying,
                "capturing": capturing,
                "replaying": replaying,
            })
        return await self._command("IsActive", operation)


__all__ = [
    "Response",
    "MarionetteController",
]
