"""
端到端测试：在页面上捕获，在同样布局的新页面上回放
"""

import random

import pytest

from marionette.dom import MemoryDocumentHost
from marionette.locator import LocatorEngine
from marionette.recorder import ActionLog, MemoryMirrorStore, PlaybackState, Player, Recorder

from .conftest import FakeClock, find, sample_page


async def capture_session():
    clock = FakeClock(start=0)
    host = MemoryDocumentHost(sample_page())
    recorder = Recorder(host, MemoryMirrorStore(), clock=clock, engine=LocatorEngine())

    await recorder.start()
    host.user_click(find(host, "go"))
    clock.advance(120)
    host.user_input(find(host, "box"), "hello")
    clock.advance(2000)
    return await recorder.stop()


@pytest.mark.e2e
class TestCaptureThenReplay:
    """捕获一次点击和一次输入后回放"""

    @pytest.mark.asyncio
    async def test_captured_log(self):
        log = await capture_session()

        assert [a.type.value for a in log] == ["click", "input"]
        assert log[0].timing.delay == 0
        assert log[1].timing.delay == 120
        assert log[1].value == "hello"
        assert log.total_duration_ms == 2120

    @pytest.mark.asyncio
    async def test_replay_reproduces_effects(self):
        log = ActionLog.from_json((await capture_session()).to_json())

        clock = FakeClock()
        host = MemoryDocumentHost(sample_page())
        clicks = []
        find(host, "go").on_click = clicks.append
        player = Player(host, clock=clock, engine=LocatorEngine(), rng=random.Random(1))

        result = await player.play(log, speed=1)

        assert result.state == PlaybackState.COMPLETED
        assert result.steps_executed == 2
        assert len(clicks) == 1
        assert find(host, "box").value == "hello"
        assert clock.waits[2] == 120

    @pytest.mark.asyncio
    async def test_fast_replay_keeps_minimum_wait(self):
        log = await capture_session()
        clock = FakeClock()
        player = Player(MemoryDocumentHost(sample_page()), clock=clock, engine=LocatorEngine(), rng=random.Random(1))

        await player.play(log, speed=100)

        assert clock.waits[2] == 10
        assert min(clock.waits[:4]) >= 10

    @pytest.mark.asyncio
    async def test_replay_against_changed_page_fails_cleanly(self):
        log = await capture_session()
        host = MemoryDocumentHost(sample_page())
        find(host, "box").remove()
        player = Player(host, clock=FakeClock(), engine=LocatorEngine())

        result = await player.play(log)

        assert result.state == PlaybackState.FAILED
        assert result.steps_executed == 1
        assert result.failed_step == 1
