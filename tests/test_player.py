"""
回放状态机测试
"""

import asyncio
import random

import pytest

from marionette.config import ReplaySettings
from marionette.core.errors import AlreadyPlayingError, EmptyLogError, InvalidSpeedError
from marionette.dom import Interaction, MemoryDocument, MemoryDocumentHost, h
from marionette.locator import LocatorEngine, LocatorSet
from marionette.recorder import (
    ActionLog,
    ActionTiming,
    ClickAction,
    KeyPressAction,
    NavigationAction,
    PlaybackConfig,
    PlaybackState,
    Player,
    TextEntryAction,
    validate_speed,
)

from .conftest import ORIGIN, FakeClock, find, sample_page


def click(identifier, delay=0):
    return ClickAction(LocatorSet(identifier=identifier), "button", "", ActionTiming(0, delay, "click"))


def entry(identifier, value, delay=0):
    return TextEntryAction(LocatorSet(identifier=identifier), value, ActionTiming(0, delay, "input"))


def press(identifier, key="Enter", delay=0):
    return KeyPressAction(LocatorSet(identifier=identifier), key, ActionTiming(0, delay, "keypress"))


def navigation(url, delay=0):
    return NavigationAction(url, ORIGIN, ActionTiming(0, delay, "navigation"))


def make_log(*actions):
    return ActionLog(actions, origin_url=ORIGIN).seal(0, "2026-01-01T00:00:00+00:00")


def make_player(host, clock, **settings):
    return Player(host, clock=clock, engine=LocatorEngine(), settings=ReplaySettings(**settings), rng=random.Random(7))


class TestValidation:
    """play() 前置条件测试"""

    @pytest.mark.asyncio
    async def test_empty_log(self, player):
        with pytest.raises(EmptyLogError):
            await player.play(make_log())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("speed", [0, -1, "fast", True])
    async def test_invalid_speed(self, player, speed):
        with pytest.raises(InvalidSpeedError):
            await player.play(make_log(click("#go")), speed)

    def test_validate_speed(self):
        assert validate_speed(2) == 2.0
        assert validate_speed(0.5) == 0.5

    @pytest.mark.asyncio
    async def test_already_playing(self, player):
        log = make_log(click("#go"), click("#go", delay=100))
        task = asyncio.create_task(player.play(log))
        await asyncio.sleep(0)

        assert player.is_playing
        with pytest.raises(AlreadyPlayingError):
            await player.play(log)

        result = await task
        assert result.state == PlaybackState.COMPLETED

    def test_abort_when_idle(self, player):
        assert player.abort() is False
        assert player.pause() is False


class TestTiming:
    """速度缩放等待测试"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "speed,expected",
        [
            (1, [100, 200, 120, 100]),
            (2, [50, 100, 60, 50]),
            (1000, [10, 10, 10, 10]),
        ],
    )
    async def test_waits_scale_with_speed(self, player, clock, speed, expected):
        await player.play(make_log(click("#go"), entry("#box", "hi", delay=120)), speed)
        assert clock.waits[:4] == expected

    @pytest.mark.asyncio
    async def test_typing_rhythm(self, player, clock):
        await player.play(make_log(entry("#box", "hey")))
        typing = clock.waits[1:]
        assert len(typing) == 3
        assert all(20 <= ms <= 50 for ms in typing)

    @pytest.mark.asyncio
    async def test_typing_rhythm_has_floor(self, player, clock):
        await player.play(make_log(entry("#box", "hey")), 1000)
        assert clock.waits[1:] == [5, 5, 5]

    @pytest.mark.asyncio
    async def test_speed_change_applies_to_later_waits(self, player, clock):
        def speed_up(index, action):
            if index == 0:
                player.set_speed(2)

        log = make_log(click("#go"), click("#go", delay=400))
        await player.play(log, config=PlaybackConfig(on_step=speed_up))
        assert clock.waits == [100, 200, 200, 50, 100]


class TestClick:
    """点击回放测试"""

    @pytest.mark.asyncio
    async def test_click_replayed(self, player, host, clock):
        result = await player.play(make_log(click("#go")))

        assert result.success
        assert result.steps_executed == 1
        assert find(host, "go").events == [("scroll_into_view", {}), ("activate", {})]
        assert clock.waits == [100, 200]

    @pytest.mark.asyncio
    async def test_technique_fallback(self, player, host):
        button = find(host, "go")
        button.rejects = {Interaction.ACTIVATE}

        result = await player.play(make_log(click("#go")))

        assert result.success
        assert ("pointer_sequence", {}) in button.events
        assert len(result.journal.get_entries("fallback")) == 1

    @pytest.mark.asyncio
    async def test_all_techniques_rejected(self, player, host):
        find(host, "go").rejects = set(Interaction)

        result = await player.play(make_log(click("#go")))

        assert result.state == PlaybackState.FAILED
        assert result.failed_step == 0
        assert result.error["code"] == "dispatch_failed"

    @pytest.mark.asyncio
    async def test_lenient_match_counts_as_fallback(self, clock):
        host = MemoryDocumentHost(MemoryDocument.create(ORIGIN, h("button", "A", id="dup"), h("button", "B", id="dup")))
        player = make_player(host, clock)

        result = await player.play(make_log(click("#dup")))

        assert result.success
        assert result.fallbacks == 1
        assert host.document.body.children[0].events[-1] == ("activate", {})


class TestRetry:
    """元素定位重试测试"""

    @pytest.mark.asyncio
    async def test_missing_element_fails_after_retries(self, player, clock):
        result = await player.play(make_log(click("#missing")))

        assert result.state == PlaybackState.FAILED
        assert result.failed_step == 0
        assert result.steps_executed == 0
        assert result.error["code"] == "element_not_found"
        assert result.error["details"]["attempts"] == 5
        assert clock.waits == [100, 200, 400, 600, 800]

    @pytest.mark.asyncio
    async def test_failure_reports_steps_executed(self, player):
        result = await player.play(make_log(click("#go"), click("#missing")))
        assert result.steps_executed == 1
        assert result.failed_step == 1
        assert result.to_dict()["stepsExecuted"] == 1

    @pytest.mark.asyncio
    async def test_backoff_is_capped(self, host, clock):
        player = make_player(host, clock, retry_attempts=8)
        await player.play(make_log(click("#missing")))
        assert clock.waits[1:] == [200, 400, 600, 800, 1000, 1000, 1000]

    @pytest.mark.asyncio
    async def test_not_interactable_used_on_final_retry(self, player, host):
        find(host, "go").set_attribute("disabled", "")

        result = await player.play(make_log(click("#go")))

        assert result.success
        assert result.fallbacks == 1
        assert len(result.journal.get_entries("retry")) == 4

    @pytest.mark.asyncio
    async def test_not_interactable_fails_when_strict(self, host, clock):
        find(host, "go").set_attribute("disabled", "")
        player = make_player(host, clock, use_anyway_on_final_retry=False)

        result = await player.play(make_log(click("#go")))

        assert result.state == PlaybackState.FAILED
        assert result.error["code"] == "element_not_found"

    @pytest.mark.asyncio
    async def test_element_becomes_interactable(self, host):
        button = find(host, "go")
        button.set_attribute("disabled", "")

        class EnablingClock(FakeClock):
            async def wait(self, ms, token=None):
                if ms == 200:
                    button.remove_attribute("disabled")
                return await super().wait(ms, token)

        player = make_player(host, EnablingClock())
        result = await player.play(make_log(click("#go")))

        assert result.success
        assert result.fallbacks == 0
        assert len(result.journal.get_entries("retry")) == 1


class TestTyping:
    """文本输入回放测试"""

    @pytest.mark.asyncio
    async def test_value_typed_per_character(self, player, host):
        box = find(host, "box")
        box.value = "old"

        await player.play(make_log(entry("#box", "hello")))

        assert box.value == "hello"
        names = [name for name, _ in box.events]
        assert names == ["focus"] + ["input"] * 5 + ["change", "blur"]
        assert [detail["data"] for name, detail in box.events if name == "input"] == list("hello")
        assert host.focused is box

    @pytest.mark.asyncio
    async def test_empty_value_still_notifies(self, player, host):
        box = find(host, "box")
        box.value = "old"

        await player.play(make_log(entry("#box", "")))

        assert box.value == ""
        assert [name for name, _ in box.events] == ["focus", "input", "change", "blur"]


class TestKeys:
    """按键回放测试"""

    @pytest.mark.asyncio
    async def test_enter_sequence(self, player, host):
        box = find(host, "box")
        await player.play(make_log(press("#box")))

        assert [name for name, _ in box.events] == ["focus", "key_down", "key_press", "key_up"]
        assert box.events[1][1] == {"key": "Enter", "code": "Enter", "key_code": 13}

    @pytest.mark.asyncio
    async def test_enter_submit_waits_for_load(self, clock):
        host = MemoryDocumentHost(sample_page(), load_polls=3)
        player = make_player(host, clock)

        result = await player.play(make_log(press("#query")))

        assert result.success
        assert host.location == "https://app.test/results"
        assert clock.waits == [100, 200, 100, 100, 100, 1000]


class TestNavigation:
    """导航回放测试"""

    @pytest.mark.asyncio
    async def test_navigates(self, player, host):
        result = await player.play(make_log(navigation("https://app.test/next")))
        assert result.success
        assert host.navigations == ["https://app.test/next"]

    @pytest.mark.asyncio
    async def test_same_url_is_skipped(self, player, host):
        await player.play(make_log(navigation(ORIGIN)))
        assert host.navigations == []

    @pytest.mark.asyncio
    async def test_settlement_timeout_is_a_warning(self, clock):
        host = MemoryDocumentHost(sample_page(), load_polls=-1)
        player = make_player(host, clock)

        result = await player.play(make_log(navigation("https://app.test/next")))

        assert result.success
        warnings = result.journal.get_entries("warning")
        assert len(warnings) == 1
        assert "15000" in warnings[0].message
        assert clock.waits[-1] == 1000


class TestAbort:
    """取消回放测试"""

    @pytest.mark.asyncio
    async def test_abort_between_steps(self, player, host):
        log = make_log(click("#go"), click("#go", delay=500))

        result = await player.play(log, config=PlaybackConfig(on_step=lambda index, action: player.abort()))

        assert result.state == PlaybackState.ABORTED
        assert result.steps_executed == 1
        assert len([e for e in find(host, "go").events if e[0] == "activate"]) == 1

    @pytest.mark.asyncio
    async def test_abort_during_retry(self, host):
        class AbortingClock(FakeClock):
            async def wait(self, ms, token=None):
                if ms == 400:
                    player.abort()
                return await super().wait(ms, token)

        player = make_player(host, AbortingClock())
        result = await player.play(make_log(click("#missing")))

        assert result.state == PlaybackState.ABORTED
        assert player.get_state()["phase"] == "aborted"


class TestResult:
    """回放结果测试"""

    @pytest.mark.asyncio
    async def test_state_after_completion(self, player):
        await player.play(make_log(click("#go")))
        assert player.get_state() == {
            "phase": "completed",
            "cursor": 0,
            "totalSteps": 1,
            "stepsExecuted": 1,
            "speed": 1.0,
            "progress": 1.0,
        }

    @pytest.mark.asyncio
    async def test_on_complete_receives_result(self, player):
        seen = []
        result = await player.play(make_log(click("#go")), config=PlaybackConfig(on_complete=seen.append))
        assert seen == [result]
        assert "journal" in result.to_dict(include_journal=True)

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates(self, player, host, monkeypatch):
        async def boom(*args, **kwargs):
            raise RuntimeError("host crashed")

        monkeypatch.setattr(host, "dispatch", boom)
        with pytest.raises(RuntimeError):
            await player.play(make_log(click("#go")))
        assert player.state == PlaybackState.FAILED
