"""
命令层测试

验证每个命令都返回 {"ok": ...} 信封。
"""

import pytest

from marionette.locator import LocatorSet
from marionette.recorder import ActionLog, ActionTiming, ClickAction

from .conftest import ORIGIN, find


def log_dict(*identifiers):
    actions = [
        ClickAction(LocatorSet(identifier=identifier), "button", "", ActionTiming(index, 0, "click"))
        for index, identifier in enumerate(identifiers)
    ]
    return ActionLog(actions, origin_url=ORIGIN).to_dict()


class TestCaptureCommands:
    """捕获命令测试"""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, controller, host):
        assert await controller.start_capture() == {"ok": True}
        host.user_click(find(host, "go"))

        response = await controller.stop_capture()

        assert response["ok"] is True
        assert response["log"]["actions"][0]["type"] == "click"
        assert response["log"]["originUrl"] == ORIGIN
        assert controller.last_log is not None

    @pytest.mark.asyncio
    async def test_start_twice(self, controller):
        await controller.start_capture()
        response = await controller.start_capture()
        assert response["ok"] is False
        assert response["code"] == "already_recording"
        assert response["error"]
        await controller.stop_capture()

    @pytest.mark.asyncio
    async def test_stop_without_capture(self, controller):
        response = await controller.stop_capture()
        assert response == {"ok": False, "error": "当前未在录制", "code": "not_recording"}

    @pytest.mark.asyncio
    async def test_capture_state(self, controller, host):
        idle = await controller.get_capture_state()
        assert idle["phase"] == "idle"
        assert idle["actionCount"] == 0

        await controller.start_capture()
        host.user_click(find(host, "go"))
        recording = await controller.get_capture_state()
        assert recording["phase"] == "recording"
        assert recording["actionCount"] == 1
        await controller.stop_capture()

    @pytest.mark.asyncio
    async def test_reload_then_resume(self, controller, host, clock):
        await controller.start_capture()
        host.user_click(find(host, "docs"))
        clock.advance(300)

        suspended = await controller.get_capture_state()
        assert suspended["phase"] == "suspended"

        response = await controller.on_context_reloaded()
        assert response["ok"] is True
        assert response["resumed"] is True

        stopped = await controller.stop_capture()
        assert [a["type"] for a in stopped["log"]["actions"]] == ["click", "navigation"]

    @pytest.mark.asyncio
    async def test_stop_after_reload_without_resume(self, controller, host, clock):
        await controller.start_capture()
        host.user_click(find(host, "docs"))
        clock.advance(50)

        stopped = await controller.stop_capture()

        actions = stopped["log"]["actions"]
        assert [a["type"] for a in actions] == ["click", "navigation"]
        assert actions[1]["url"] == "https://app.test/docs"

    @pytest.mark.asyncio
    async def test_reload_without_capture(self, controller):
        assert await controller.on_context_reloaded() == {"ok": True, "resumed": False}

    @pytest.mark.asyncio
    async def test_resume_with_mirror_dict(self, controller, host, store, clock):
        await controller.start_capture()
        host.user_click(find(host, "docs"))
        clock.advance(50)

        response = await controller.resume_capture(store.get().to_dict())

        assert response["ok"] is True
        assert response["actionCount"] == 2
        await controller.stop_capture()

    @pytest.mark.asyncio
    async def test_resume_without_capture(self, controller):
        response = await controller.resume_capture()
        assert response["code"] == "not_recording"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mirror", [
        {"active": True, "phase": "paused"},
        {"active": True, "actions": None},
        {"active": True, "actions": [{"type": "click", "locator": "x", "timing": {"timestamp": 1}}]},
        "mirror",
    ])
    async def test_resume_with_malformed_mirror(self, controller, mirror):
        response = await controller.resume_capture(mirror)
        assert response["ok"] is False
        assert response["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_sync_actions(self, controller):
        assert (await controller.sync_actions([]))["code"] == "not_recording"

        await controller.start_capture()
        actions = log_dict("#go", "#box")["actions"]
        assert await controller.sync_actions(actions) == {"ok": True, "totalActions": 2}
        assert await controller.sync_actions(actions) == {"ok": True, "totalActions": 2}
        await controller.stop_capture()

    @pytest.mark.asyncio
    async def test_sync_rejects_invalid_actions(self, controller):
        await controller.start_capture()
        response = await controller.sync_actions([{"type": "scroll"}])
        assert response["code"] == "validation_error"
        response = await controller.sync_actions(None)
        assert response["ok"] is False
        assert response["code"] == "validation_error"
        await controller.stop_capture()


class TestReplayCommands:
    """回放命令测试"""

    @pytest.mark.asyncio
    async def test_replay_success(self, controller):
        response = await controller.start_replay(log_dict("#go"), 2)
        assert response["ok"] is True
        assert response["stepsExecuted"] == 1
        assert response["state"] == "completed"

    @pytest.mark.asyncio
    async def test_replay_failure_reports_progress(self, controller):
        response = await controller.start_replay(log_dict("#go", "#missing"))
        assert response["ok"] is False
        assert response["code"] == "element_not_found"
        assert response["stepsExecuted"] == 1
        assert response["failedStep"] == 1
        assert response["details"]["attempts"] == 5

    @pytest.mark.asyncio
    async def test_replay_empty_log(self, controller):
        response = await controller.start_replay(log_dict())
        assert response["code"] == "empty_log"

    @pytest.mark.asyncio
    async def test_replay_invalid_speed(self, controller):
        response = await controller.start_replay(log_dict("#go"), 0)
        assert response["code"] == "invalid_speed"

    @pytest.mark.asyncio
    async def test_replay_invalid_log(self, controller):
        response = await controller.start_replay({"actions": [{"type": "scroll"}]})
        assert response["code"] == "validation_error"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("log", [
        {"actions": None},
        {"actions": [{"type": "click", "locator": "x", "timing": {"timestamp": 1}}]},
        {"actions": [{"type": "keypress", "locator": {}, "key": "Enter", "timing": [1]}]},
        None,
        "log",
    ])
    async def test_replay_malformed_log_fails_closed(self, controller, log):
        response = await controller.start_replay(log, 1)
        assert response["ok"] is False
        assert response["code"] == "validation_error"
        assert response["error"]

    @pytest.mark.asyncio
    async def test_stop_replay_when_idle(self, controller):
        assert await controller.stop_replay() == {"ok": True, "stopped": False}

    @pytest.mark.asyncio
    async def test_set_speed(self, controller):
        assert await controller.set_replay_speed(4) == {"ok": True, "speed": 4.0}
        assert (await controller.set_replay_speed(-1))["code"] == "invalid_speed"

    @pytest.mark.asyncio
    async def test_replay_state(self, controller):
        await controller.start_replay(log_dict("#go"))
        state = await controller.get_replay_state()
        assert state["ok"] is True
        assert state["phase"] == "completed"
        assert state["progress"] == 1.0

    @pytest.mark.asyncio
    async def test_is_active(self, controller):
        assert await controller.is_active() == {"ok": True, "active": False, "capturing": False, "replaying": False}
        await controller.start_capture()
        assert (await controller.is_active())["capturing"] is True
        await controller.stop_capture()
