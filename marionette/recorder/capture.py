"""
捕获状态机

监听原始交互信号，规范化为动作并追加到动作日志。
通过多路信号检测 URL 变化，定期把进行中的日志同步到持久镜像，
上下文被销毁后可依据镜像恢复。

状态: Idle -> Recording -> Idle，上下文销毁时进入 Suspended，resume() 后回到 Recording。
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from marionette.config import CaptureSettings
from marionette.core.errors import AlreadyRecordingError, MarionetteError, NotRecordingError
from marionette.dom.base import DocumentHost, ElementHandle, RawEvent, Signal
from marionette.locator.engine import TEXT_PREFIX_LENGTH, LocatorEngine
from marionette.locator.heuristics import normalize_text
from marionette.timing import Clock, wall_clock_iso
from .actions import (
    ActionLog,
    ActionTiming,
    ActionType,
    ClickAction,
    KeyPressAction,
    NavigationAction,
    TextEntryAction,
)
from .store import CapturePhase, DurableStore, MirrorState


logger = logging.getLogger(__name__)


CLICKABLE_ROLES = {"button", "link", "menuitem", "tab", "checkbox", "radio", "option", "switch"}
CLICKABLE_TAGS = {"a", "button", "summary", "select"}
CLICKABLE_INPUT_TYPES = {"submit", "button", "reset", "checkbox", "radio"}
TEXT_ENTRY_TAGS = {"input", "textarea", "select"}
COMMIT_KEY = "Enter"


def is_clickable(element: ElementHandle) -> bool:
    """是否为语义上可点击的元素"""
    role = element.get_attribute("role")
    if role in CLICKABLE_ROLES:
        return True
    if element.tag_name in CLICKABLE_TAGS:
        return True
    if element.tag_name == "input" and (element.get_attribute("type") or "").lower() in CLICKABLE_INPUT_TYPES:
        return True
    if element.get_attribute("onclick") is not None or element.get_attribute("data-action") is not None:
        return True
    if role and element.get_attribute("tabindex") is not None:
        return True
    return element.has_click_handler


def find_clickable(element: ElementHandle, max_depth: int = 5) -> ElementHandle:
    """向上查找最近的可点击祖先（含自身），找不到时返回原元素"""
    node = element
    for _ in range(max_depth + 1):
        if node is None:
            break
        if is_clickable(node):
            return node
        node = node.parent
    return element


@dataclass
class CaptureSession:
    """
    捕获会话

    Attributes:
        phase: 捕获阶段
        log: 进行中的动作日志
        last_action_timestamp: 最后一个动作的时间戳
        origin_url: 捕获开始时的 URL
        start_time: 捕获开始的单调时间
        last_url: 最后记录的 URL（导航检测基准）
    """
    phase: CapturePhase = CapturePhase.IDLE
    log: ActionLog = field(default_factory=ActionLog)
    last_action_timestamp: Optional[float] = None
    origin_url: str = ""
    start_time: float = 0.0
    last_url: str = ""


class Recorder:
    """
    捕获器

    每个捕获上下文（页面）一个实例；持久镜像由进程级的 DurableStore 持有。

    Attributes:
        host: 文档宿主
        store: 持久镜像存储
        clock: 时钟
        engine: 定位引擎
        settings: 捕获设置
        session: 当前捕获会话
    """

    def __init__(
        self,
        host: DocumentHost,
        store: DurableStore,
        clock: Clock = None,
        engine: LocatorEngine = None,
        settings: CaptureSettings = None,
    ):
        self.host = host
        self.store = store
        self.clock = clock or Clock()
        self.engine = engine or LocatorEngine()
        self.settings = settings or CaptureSettings()
        self.session = CaptureSession()
        self._unsubscribers: List[Callable[[], None]] = []
        self._tasks: List[asyncio.Task] = []

    @property
    def phase(self) -> CapturePhase:
        return self.session.phase

    @property
    def is_recording(self) -> bool:
        return self.session.phase == CapturePhase.RECORDING

    # ========== 生命周期 ==========

    async def start(self) -> None:
        """
        开始捕获

        Raises:
            AlreadyRecordingError: 已在捕获中（含挂起状态）
        """
        if self.session.phase != CapturePhase.IDLE:
            raise AlreadyRecordingError()

        now = self.clock.now()
        origin_url = self.host.location
        self.session = CaptureSession(
            phase=CapturePhase.RECORDING,
            log=ActionLog(origin_url=origin_url),
            origin_url=origin_url,
            start_time=now,
            last_url=origin_url,
        )
        self.store.begin(origin_url, now)
        self._attach()
        logger.info(f"开始捕获: {origin_url}")

    async def stop(self) -> ActionLog:
        """
        停止捕获

        Returns:
            ActionLog: 已封存的动作日志（本地为空时回退到镜像副本）

        Raises:
            NotRecordingError: 当前未在捕获
        """
        if self.session.phase != CapturePhase.RECORDING:
            raise NotRecordingError()

        self._sync(final=True)
        await self._detach()
        mirror = self.store.end()

        log = self.session.log
        if len(log) == 0 and mirror.actions:
            logger.info(f"本地日志为空，使用镜像中的 {len(mirror.actions)} 个动作")
            log = ActionLog(sorted(mirror.actions, key=lambda a: a.timing.timestamp), origin_url=mirror.origin_url)

        duration = Clock.delay(self.session.start_time, self.clock.now())
        log.seal(total_duration_ms=duration, captured_at=wall_clock_iso())
        self.session = CaptureSession()

        logger.info(f"停止捕获: {len(log)} 个动作，时长 {Clock.format_duration(duration)}")
        return log

    async def resume(self, mirror: MirrorState = None) -> None:
        """
        依据镜像恢复捕获

        当前 URL 与最后已知 URL 不同时，补一个导航动作衔接。
        以同一镜像重复调用不会产生重复动作。

        Args:
            mirror: 镜像状态（默认读取 store）

        Raises:
            NotRecordingError: 镜像中没有进行中的捕获
        """
        mirror = mirror or self.store.get()
        if not mirror.active:
            raise NotRecordingError("镜像中没有进行中的捕获")

        local = self.session.log
        log = ActionLog(origin_url=mirror.origin_url or local.origin_url)
        log.merge(mirror.actions)
        log.merge(local)

        self.session = CaptureSession(
            phase=CapturePhase.RECORDING,
            log=log,
            last_action_timestamp=log.last.timing.timestamp if log.last else None,
            origin_url=log.origin_url,
            start_time=mirror.start_time or self.session.start_time,
            last_url=self._last_known_url(log),
        )
        self.store.set_phase(CapturePhase.RECORDING)

        if not self._unsubscribers:
            self._attach()

        logger.info(f"恢复捕获: 已有 {len(log)} 个动作，最后 URL {self.session.last_url}")
        self._check_url()

    def suspend(self) -> None:
        """上下文即将销毁：同步镜像并挂起"""
        if self.session.phase != CapturePhase.RECORDING:
            return
        self._sync(final=True)
        self.session.phase = CapturePhase.SUSPENDED
        self.store.set_phase(CapturePhase.SUSPENDED)
        self._release()
        logger.info("捕获上下文销毁，已挂起等待恢复")

    def get_state(self) -> Dict[str, Any]:
        """获取捕获状态"""
        active = self.session.phase != CapturePhase.IDLE
        return {
            "phase": self.session.phase.value,
            "actionCount": len(self.session.log),
            "durationMs": Clock.delay(self.session.start_time, self.clock.now()) if active else 0,
            "originUrl": self.session.origin_url,
        }

    # ========== 监听 ==========

    def _attach(self) -> None:
        handlers = {
            Signal.CLICK: self._on_click,
            Signal.INPUT: self._on_input,
            Signal.KEYDOWN: self._on_keydown,
            Signal.MUTATION: self._on_location_signal,
            Signal.HISTORY: self._on_location_signal,
            Signal.POPSTATE: self._on_location_signal,
            Signal.HASHCHANGE: self._on_location_signal,
            Signal.UNLOAD: self._on_unload,
        }
        for signal, handler in handlers.items():
            self._unsubscribers.append(self.host.subscribe(signal, self._guarded(handler)))

        loop = asyncio.get_running_loop()
        self._tasks = [
            loop.create_task(self._poll_location()),
            loop.create_task(self._periodic_sync()),
        ]

    def _release(self) -> List[asyncio.Task]:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        return tasks

    async def _detach(self) -> None:
        tasks = self._release()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _guarded(self, handler: Callable[[RawEvent], None]) -> Callable[[RawEvent], None]:
        def wrapper(event: RawEvent) -> None:
            try:
                handler(event)
            except Exception:
                logger.warning(f"忽略无法规范化的信号: {event.signal.value}", exc_info=True)
        return wrapper

    async def _poll_location(self) -> None:
        while True:
            await asyncio.sleep(self.settings.url_poll_interval_ms / 1000)
            self._check_url()

    async def _periodic_sync(self) -> None:
        while True:
            await asyncio.sleep(self.settings.sync_interval_ms / 1000)
            self._sync()

    # ========== 信号处理 ==========

    def _on_click(self, event: RawEvent) -> None:
        if not self.is_recording or event.target is None or self._is_overlay(event.target):
            return

        element = find_clickable(event.target, self.settings.clickable_walk_depth)
        now = self.clock.now()
        self._append(ClickAction(
            locator=self.engine.build(element),
            element_tag=element.tag_name,
            text_snippet=normalize_text(element.text_content, TEXT_PREFIX_LENGTH),
            timing=self._timing(ActionType.CLICK, now),
            page_url=self.host.location,
        ), now)

    def _on_input(self, event: RawEvent) -> None:
        element = event.target
        if not self.is_recording or element is None or self._is_overlay(element):
            return
        if element.tag_name not in TEXT_ENTRY_TAGS and not element.is_content_editable:
            return

        value = element.text_content if element.is_content_editable else element.value
        locator = self.engine.build(element)
        now = self.clock.now()

        log = self.session.log
        last = log.last
        if (
            isinstance(last, TextEntryAction)
            and last.locator.same_target(locator)
            and now - last.timing.timestamp < self.settings.merge_window_ms
        ):
            previous = log[-2].timing.timestamp if len(log) > 1 else None
            log.replace_last(TextEntryAction(
                locator=locator,
                value=value,
                timing=ActionTiming(now, Clock.delay(previous, now) if previous is not None else 0, last.timing.type),
                page_url=last.page_url,
                merged=True,
            ))
            self.session.last_action_timestamp = now
            return

        self._append(TextEntryAction(
            locator=locator,
            value=value,
            timing=self._timing(ActionType.TEXT_ENTRY, now),
            page_url=self.host.location,
        ), now)

    def _on_keydown(self, event: RawEvent) -> None:
        if not self.is_recording or event.key != COMMIT_KEY:
            return
        if event.target is None or self._is_overlay(event.target):
            return

        now = self.clock.now()
        self._append(KeyPressAction(
            locator=self.engine.build(event.target),
            key=event.key,
            timing=self._timing(ActionType.KEY_PRESS, now),
            page_url=self.host.location,
        ), now)

    def _on_location_signal(self, event: RawEvent) -> None:
        self._check_url()

    def _on_unload(self, event: RawEvent) -> None:
        self.suspend()

    def _check_url(self) -> None:
        """URL 与最后记录的不同时追加一个导航动作"""
        if not self.is_recording:
            return
        current = self.host.location
        if current == self.session.last_url:
            return

        now = self.clock.now()
        previous_url = self.session.last_url
        self._append(NavigationAction(
            to_url=current,
            from_url=previous_url,
            timing=self._timing(ActionType.NAVIGATION, now),
            page_url=current,
        ), now)
        self.session.last_url = current
        logger.info(f"捕获导航: {previous_url} -> {current}")
        self._sync()

    # ========== 内部 ==========

    def _timing(self, action_type: ActionType, now: float) -> ActionTiming:
        previous = self.session.last_action_timestamp
        delay = Clock.delay(previous, now) if previous is not None else 0
        return ActionTiming(timestamp=now, delay=delay, type=action_type.value)

    def _append(self, action, now: float) -> None:
        self.session.log.append(action)
        self.session.last_action_timestamp = now
        logger.debug(f"捕获 {action.type.value} (第 {len(self.session.log)} 步, 间隔 {round(action.timing.delay)}ms)")

    def _sync(self, final: bool = False) -> None:
        """
        推送进行中的日志到镜像

        非最终同步时，合并窗口仍开放的末尾输入暂不推送。
        """
        actions = self.session.log.actions
        if not final and actions and isinstance(actions[-1], TextEntryAction):
            if self.clock.now() - actions[-1].timing.timestamp < self.settings.merge_window_ms:
                actions = actions[:-1]
        if not actions:
            return
        try:
            self.store.put_append(actions)
        except MarionetteError as e:
            logger.warning(f"镜像同步失败: {e.message}")

    def _is_overlay(self, element: ElementHandle) -> bool:
        prefix = self.settings.overlay_prefix
        if not prefix:
            return False
        for node in [element] + element.ancestors():
            if node.id.startswith(prefix):
                return True
            if any(token.startswith(prefix) for token in node.class_list):
                return True
        return False

    @staticmethod
    def _last_known_url(log: ActionLog) -> str:
        for action in reversed(log.actions):
            if isinstance(action, NavigationAction):
                return action.to_url
        return log.origin_url


# ========== 便捷函数 ==========

def create_recorder(
    host: DocumentHost,
    store: DurableStore,
    clock: Clock = None,
    settings: CaptureSettings = None,
) -> Recorder:
    """创建捕获器"""
    return Recorder(host, store, clock=clock, settings=settings)


__all__ = [
    "CLICKABLE_ROLES",
    "CLICKABLE_TAGS",
    "is_clickable",
    "find_clickable",
    "CaptureSession",
    "Recorder",
    "create_recorder",
]
