"""
持久镜像存储测试
"""

import pytest

from marionette.core.errors import InvalidActionError, NotRecordingError
from marionette.locator import LocatorSet
from marionette.recorder import (
    ActionTiming,
    CapturePhase,
    ClickAction,
    FileMirrorStore,
    MemoryMirrorStore,
    MirrorState,
    NavigationAction,
    create_store,
)


def click(ts):
    return ClickAction(LocatorSet(identifier="#go"), "button", "Go", ActionTiming(ts, 0, "click"))


class TestMemoryMirrorStore:
    """MemoryMirrorStore 测试"""

    def test_append_requires_active_capture(self, store):
        with pytest.raises(NotRecordingError):
            store.put_append([click(1)])

    def test_append_dedupes_by_timestamp(self, store):
        store.begin("https://app.test/", 1000)
        assert store.put_append([click(1), click(2)]) == 2
        assert store.put_append([click(1), click(2), click(3)]) == 3
        assert store.get().last_sync_at

    def test_get_returns_copy(self, store):
        store.begin("https://app.test/", 1000)
        snapshot = store.get()
        snapshot.actions.append(click(9))
        assert store.get().actions == []

    def test_end_resets(self, store):
        store.begin("https://app.test/", 1000)
        store.put_append([click(1)])
        final = store.end()
        assert final.active is True
        assert len(final.actions) == 1
        assert store.is_active() is False

    def test_phase_updates(self, store):
        store.begin("https://app.test/", 1000)
        store.set_phase(CapturePhase.SUSPENDED)
        assert store.get().phase == CapturePhase.SUSPENDED


class TestMirrorState:
    """MirrorState 辅助方法测试"""

    def test_last_url_prefers_last_navigation(self):
        state = MirrorState(active=True, origin_url="https://app.test/", actions=[
            click(1),
            NavigationAction("https://app.test/a", "https://app.test/", ActionTiming(2, 1, "navigation")),
            click(3),
        ])
        assert state.last_url == "https://app.test/a"
        assert state.last_timestamp == 3

    def test_last_url_defaults_to_origin(self):
        assert MirrorState(origin_url="https://app.test/").last_url == "https://app.test/"
        assert MirrorState().last_timestamp is None

    def test_dict_round_trip_keeps_phase(self):
        state = MirrorState(active=True, phase=CapturePhase.SUSPENDED, origin_url="https://app.test/", actions=[click(1)])
        restored = MirrorState.from_dict(state.to_dict())
        assert restored.phase == CapturePhase.SUSPENDED
        assert restored.actions == state.actions


class TestFileMirrorStore:
    """FileMirrorStore 测试"""

    def test_survives_restart(self, tmp_path):
        path = tmp_path / "mirror.json"
        first = FileMirrorStore(str(path))
        first.begin("https://app.test/", 1000)
        first.put_append([click(1)])

        second = FileMirrorStore(str(path))
        assert second.is_active()
        assert second.get().actions == [click(1)]

    def test_create_store(self, tmp_path):
        assert isinstance(create_store(), MemoryMirrorStore)
        assert isinstance(create_store(path=str(tmp_path / "m.json")), FileMirrorStore)


class TestMirrorDecoding:
    """镜像格式校验测试"""

    @pytest.mark.parametrize("data", [
        {"active": True, "phase": "paused"},
        {"active": True, "phase": ["recording"]},
        {"active": True, "actions": None},
        {"active": True, "actions": [{"type": "click", "locator": 1, "timing": {"timestamp": 1}}]},
        "mirror",
    ])
    def test_invalid_mirror_rejected(self, data):
        with pytest.raises(InvalidActionError):
            MirrorState.from_dict(data)
