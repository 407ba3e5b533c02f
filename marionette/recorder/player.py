"""
回放状态机

按顺序执行动作日志：等待缩放后的动作间隔，重新定位目标，
以兼容性最好的底层方式执行交互，并在触发导航时等待页面稳定。

状态: Idle -> Playing -> {Completed | Failed | Aborted}
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from marionette.config import ReplaySettings
from marionette.core.errors import (
    AlreadyPlayingError,
    DispatchError,
    ElementNotFoundError,
    EmptyLogError,
    InvalidSpeedError,
    MarionetteError,
    NavigationTimeoutError,
    NotInteractableError,
)
from marionette.dom.base import DocumentHost, ElementHandle, Interaction, ReadyState
from marionette.locator.engine import LocatorEngine
from marionette.locator.models import LocatorSet
from marionette.logger.journal import StepJournal
from marionette.timing import CancellationToken, Clock
from .actions import (
    Action,
    ActionLog,
    ClickAction,
    KeyPressAction,
    NavigationAction,
    TextEntryAction,
)


logger = logging.getLogger(__name__)


CLICK_TECHNIQUES = (
    Interaction.ACTIVATE,
    Interaction.POINTER_SEQUENCE,
    Interaction.DISPATCH_CLICK,
)
KEY_SEQUENCE = (
    Interaction.KEY_DOWN,
    Interaction.KEY_PRESS,
    Interaction.KEY_UP,
)
KEY_CODES = {"Enter": 13}
RECOGNIZED_SPEEDS = (0.5, 1, 2, 4)


class PlaybackState(str, Enum):
    """回放状态"""
    IDLE = "idle"
    PLAYING = "playing"
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"


class PlaybackAborted(Exception):
    """回放被取消（在挂起点展开）"""


@dataclass
class PlaybackConfig:
    """回放配置"""
    speed: float = 1.0  # 播放速度（1.0 = 正常速度）
    on_step: Callable[[int, Action], None] = None  # 步骤完成回调
    on_complete: Callable[['PlaybackResult'], None] = None  # 结束回调


@dataclass
class PlaybackResult:
    """
    回放结果

    Attributes:
        state: 结束状态
        steps_executed: 成功执行的步骤数
        total_steps: 总步骤数
        failed_step: 失败步骤索引（从 0 开始）
        error: 失败详情
        fallbacks: 宽松定位或降级使用的次数
        journal: 步骤日志
    """
    state: PlaybackState
    steps_executed: int
    total_steps: int
    failed_step: Optional[int] = None
    error: Optional[Dict[str, Any]] = None
    duration_ms: float = 0
    fallbacks: int = 0
    journal: StepJournal = field(default=None, repr=False)

    @property
    def success(self) -> bool:
        return self.state == PlaybackState.COMPLETED

    def to_dict(self, include_journal: bool = False) -> Dict[str, Any]:
        data = {
            "state": self.state.value,
            "stepsExecuted": self.steps_executed,
            "totalSteps": self.total_steps,
            "failedStep": self.failed_step,
            "error": self.error,
            "durationMs": self.duration_ms,
            "fallbacks": self.fallbacks,
        }
        if include_journal and self.journal is not None:
            data["journal"] = self.journal.to_dict()
        return data


def validate_speed(speed: Any) -> float:
    """
    校验速度倍率

    Raises:
        InvalidSpeedError: 非数字或不大于 0
    """
    if isinstance(speed, bool) or not isinstance(speed, (int, float)) or speed <= 0:
        raise InvalidSpeedError(speed)
    return float(speed)


class Player:
    """
    回放器

    Attributes:
        host: 文档宿主
        clock: 时钟
        engine: 定位引擎
        settings: 回放设置
        state: 当前状态
        cursor: 当前步骤索引
        speed: 速度倍率
    """

    def __init__(
        self,
        host: DocumentHost,
        clock: Clock = None,
        engine: LocatorEngine = None,
        settings: ReplaySettings = None,
        rng: random.Random = None,
    ):
        self.host = host
        self.clock = clock or Clock()
        self.engine = engine or LocatorEngine()
        self.settings = settings or ReplaySettings()
        self.rng = rng or random.Random()
        self.state = PlaybackState.IDLE
        self.cursor = 0
        self.speed = 1.0
        self.total_steps = 0
        self.journal: Optional[StepJournal] = None
        self._steps_executed = 0
        self._fallbacks = 0
        self._token = CancellationToken()

    @property
    def is_playing(self) -> bool:
        return self.state == PlaybackState.PLAYING

    # ========== 控制 ==========

    async def play(self, log: ActionLog, speed: float = None, config: PlaybackConfig = None) -> PlaybackResult:
        """
        回放动作日志

        Args:
            log: 动作日志
            speed: 速度倍率（默认取 config.speed）
            config: 回放配置（回调）

        Returns:
            PlaybackResult: 回放结果

        Raises:
            AlreadyPlayingError: 已在回放中
            EmptyLogError: 日志为空
            InvalidSpeedError: 速度不大于 0
        """
        if self.is_playing:
            raise AlreadyPlayingError()
        if len(log) == 0:
            raise EmptyLogError()

        config = config or PlaybackConfig()
        self.speed = validate_speed(speed if speed is not None else config.speed)
        self.state = PlaybackState.PLAYING
        self.cursor = 0
        self.total_steps = len(log)
        self._steps_executed = 0
        self._fallbacks = 0
        self._token = CancellationToken()
        self.journal = StepJournal()

        failed_step = None
        error = None
        started = self.clock.now()
        self.journal.run_start(self.total_steps, self.speed)

        try:
            for index, action in enumerate(log):
                self.cursor = index

                if index > 0:
                    await self._pause(action.timing.delay)
                await self._pause(self.settings.pre_action_pause_ms)

                self.journal.step_start(index, action.type.value)
                try:
                    await self._execute(index, action)
                except MarionetteError as e:
                    self.journal.step_failed(index, action.type.value, e)
                    failed_step = index
                    error = e.to_dict()
                    self.state = PlaybackState.FAILED
                    break

                self._steps_executed += 1
                self.journal.step_end(index, action.type.value)
                if config.on_step:
                    config.on_step(index, action)
            else:
                self.state = PlaybackState.COMPLETED

        except PlaybackAborted:
            self.state = PlaybackState.ABORTED
            logger.info(f"回放已取消，已执行 {self._steps_executed} 步")

        except asyncio.CancelledError:
            self.state = PlaybackState.ABORTED
            raise

        except Exception:
            self.state = PlaybackState.FAILED
            raise

        finally:
            self.journal.run_end(self.state.value, self._steps_executed)

        result = PlaybackResult(
            state=self.state,
            steps_executed=self._steps_executed,
            total_steps=self.total_steps,
            failed_step=failed_step,
            error=error,
            duration_ms=Clock.delay(started, self.clock.now()),
            fallbacks=self._fallbacks,
            journal=self.journal,
        )
        if config.on_complete:
            config.on_complete(result)
        return result

    def abort(self) -> bool:
        """请求取消回放（在下一个挂起点生效）"""
        if not self.is_playing:
            return False
        self._token.cancel()
        return True

    def pause(self) -> bool:
        """暂停即取消：回放无法从中途继续"""
        return self.abort()

    def set_speed(self, speed: float) -> None:
        """修改速度倍率（对之后的等待生效）"""
        self.speed = validate_speed(speed)
        logger.debug(f"回放速度调整为 {self.speed}x")

    def get_state(self) -> Dict[str, Any]:
        """获取回放状态"""
        return {
            "phase": self.state.value,
            "cursor": self.cursor,
            "totalSteps": self.total_steps,
            "stepsExecuted": self._steps_executed,
            "speed": self.speed,
            "progress": self._steps_executed / self.total_steps if self.total_steps else 0.0,
        }

    # ========== 执行 ==========

    async def _execute(self, index: int, action: Action) -> None:
        if isinstance(action, ClickAction):
            await self._click(index, action)
        elif isinstance(action, TextEntryAction):
            await self._type(index, action)
        elif isinstance(action, KeyPressAction):
            await self._press(index, action)
        elif isinstance(action, NavigationAction):
            await self._navigate(index, action)
        else:
            raise TypeError(f"未知动作: {action!r}")

    async def _click(self, index: int, action: ClickAction) -> None:
        element = await self._resolve(index, action.locator)
        await self.host.scroll_into_view(element)
        before = self.host.location

        last_error = None
        for technique in CLICK_TECHNIQUES:
            try:
                await self.host.dispatch(element, technique)
                break
            except DispatchError as e:
                last_error = e
                self.journal.fallback(index, f"{technique.value} 失败，尝试下一种方式", technique=technique.value)
        else:
            raise last_error

        await self._settle_if_navigated(index, before)

    async def _type(self, index: int, action: TextEntryAction) -> None:
        element = await self._resolve(index, action.locator)
        await self.host.focus(element)
        await self.host.set_value(element, "")

        typed = ""
        for char in action.value:
            typed += char
            await self.host.set_value(element, typed)
            await self.host.dispatch(element, Interaction.INPUT, data=char)
            await self._typing_pause()

        if not action.value:
            await self.host.dispatch(element, Interaction.INPUT, data="")
        await self.host.dispatch(element, Interaction.CHANGE)
        await self.host.dispatch(element, Interaction.BLUR)

    async def _press(self, index: int, action: KeyPressAction) -> None:
        element = await self._resolve(index, action.locator)
        await self.host.focus(element)
        before = self.host.location

        key_code = KEY_CODES.get(action.key, 0)
        for interaction in KEY_SEQUENCE:
            await self.host.dispatch(element, interaction, key=action.key, code=action.key, key_code=key_code)

        if action.key == "Enter":
            await self._settle_if_navigated(index, before)

    async def _navigate(self, index: int, action: NavigationAction) -> None:
        if self.host.location == action.to_url:
            return
        await self.host.navigate(action.to_url)
        await self._wait_for_settlement(index)
        if self.host.location != action.to_url:
            self.journal.warning(
                f"导航后 URL 不一致（可能是重定向）: 期望 {action.to_url}，实际 {self.host.location}",
                index,
                url=self.host.location,
            )

    # ========== 定位 ==========

    async def _resolve(self, index: int, locator: LocatorSet) -> ElementHandle:
        """
        带重试的定位

        找到但不可交互的元素按未找到重试；最后一次重试时仍然使用（可配置）。

        Raises:
            ElementNotFoundError: 重试耗尽
            PlaybackAborted: 等待期间被取消
        """
        attempts = self.settings.retry_attempts
        for attempt in range(1, attempts + 1):
            resolution = await self.engine.resolve(locator, self.host)
            if resolution is not None:
                report = await self.host.check_interactable(resolution.element)
                if report.ok:
                    if not resolution.exact:
                        self._fallbacks += 1
                        self.journal.fallback(index, f"宽松定位命中 ({resolution.strategy})", strategy=resolution.strategy)
                    return resolution.element
                if attempt == attempts and self.settings.use_anyway_on_final_retry:
                    self._fallbacks += 1
                    self.journal.fallback(
                        index,
                        f"{NotInteractableError(report.reasons).message}，最后一次重试仍然使用",
                        strategy=resolution.strategy,
                    )
                    return resolution.element
                reason = ", ".join(report.reasons)
            else:
                reason = "not found"

            if attempt < attempts:
                backoff = min(attempt * self.settings.retry_backoff_ms, self.settings.retry_backoff_cap_ms)
                self.journal.retry(index, attempt, reason, backoff)
                if not await self.clock.wait(backoff, self._token):
                    raise PlaybackAborted()

        raise ElementNotFoundError(index, locator.to_dict(), attempts)

    # ========== 等待 ==========

    async def _pause(self, ms: float) -> None:
        """按速度缩放的可取消等待"""
        if self._token.cancelled or not await self.clock.wait(self.clock.scale(ms, self.speed), self._token):
            raise PlaybackAborted()

    async def _typing_pause(self) -> None:
        settings = self.settings
        delay = self.rng.uniform(settings.typing_delay_min_ms, settings.typing_delay_max_ms) / self.speed
        if not await self.clock.wait(max(settings.typing_delay_floor_ms, delay), self._token):
            raise PlaybackAborted()

    async def _settle_if_navigated(self, index: int, before: str) -> None:
        await self._pause(self.settings.location_check_ms)
        if self.host.location != before:
            logger.debug(f"交互触发导航: {before} -> {self.host.location}")
            await self._wait_for_settlement(index)

    async def _wait_for_settlement(self, index: int) -> None:
        """等待页面加载完成；超时记录警告后继续"""
        timeout = self.clock.scale(self.settings.settle_timeout_ms, self.speed)
        started = self.clock.now()
        while await self.host.ready_state() != ReadyState.COMPLETE:
            if self.clock.now() - started >= timeout:
                error = NavigationTimeoutError(timeout)
                self.journal.warning(error.message, index, url=self.host.location)
                break
            if not await self.clock.wait(self.settings.settle_poll_ms, self._token):
                raise PlaybackAborted()
        await self._pause(self.settings.settle_extra_ms)


# ========== 便捷函数 ==========

def create_player(host: DocumentHost, clock: Clock = None, settings: ReplaySettings = None) -> Player:
    """创建回放器"""
    return Player(host, clock=clock, settings=settings)


__all__ = [
    "RECOGNIZED_SPEEDS",
    "PlaybackState",
    "PlaybackAborted",
    "PlaybackConfig",
    "PlaybackResult",
    "validate_speed",
    "Player",
    "create_player",
]
