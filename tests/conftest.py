"""
捕获/回放测试共享夹具
"""

import asyncio
import random
from urllib.parse import urljoin

import pytest
import pytest_asyncio

from marionette.config import AppConfig, ReplaySettings
from marionette.controller import MarionetteController
from marionette.dom import MemoryDocument, MemoryDocumentHost, h
from marionette.locator import LocatorEngine
from marionette.recorder import MemoryMirrorStore, Player, Recorder
from marionette.timing import Clock


ORIGIN = "https://app.test/"


class FakeClock(Clock):
    """虚拟时钟：now() 可手动推进，wait() 立即推进时间并记录等待时长"""

    def __init__(self, start: float = 0.0):
        self.current = start
        self.waits = []

    def now(self) -> float:
        return self.current

    def advance(self, ms: float) -> None:
        self.current += ms

    async def wait(self, ms, token=None) -> bool:
        if token is not None and token.cancelled:
            return False
        self.waits.append(ms)
        self.current += max(ms, 0)
        await asyncio.sleep(0)
        return token is None or not token.cancelled


def sample_page(url: str = ORIGIN) -> MemoryDocument:
    """示例页面：按钮、输入框、链接、表单以及工具自身浮层"""
    return MemoryDocument.create(
        url,
        h("button", "Go", id="go"),
        h("input", id="box", name="q", type="text"),
        h("a", "Docs", id="docs", href="/docs"),
        h(
            "form",
            h("input", id="query", name="query"),
            h("button", "Search", id="submit", type="submit"),
            action="/results",
        ),
        h("div", h("span", "Recording..."), id="marionette-overlay"),
        title="Sample",
    )


def find(host: MemoryDocumentHost, element_id: str):
    """在宿主当前文档中按 id 查找元素"""
    return next(el for el in host.document.iter_elements() if el.id == element_id)


@pytest.fixture
def clock():
    """从 t=1000ms 开始的虚拟时钟"""
    return FakeClock(start=1000.0)


@pytest.fixture
def host():
    """加载示例页面的内存宿主，跳转后的页面复用同一布局"""
    routes = {urljoin(ORIGIN, path): sample_page for path in ("docs", "results", "next")}
    return MemoryDocumentHost(sample_page(), routes=routes)


@pytest.fixture
def store():
    """进程内镜像存储"""
    return MemoryMirrorStore()


@pytest.fixture
def engine():
    """启用宽松回退的定位引擎"""
    return LocatorEngine(lenient=True)


@pytest_asyncio.fixture
async def recorder(host, store, clock, engine):
    """绑定示例宿主的捕获器，测试结束时释放监听"""
    rec = Recorder(host, store, clock=clock, engine=engine)
    yield rec
    await rec._detach()


@pytest.fixture
def player(host, clock, engine):
    """使用固定随机种子的回放器"""
    return Player(host, clock=clock, engine=engine, settings=ReplaySettings(), rng=random.Random(7))


@pytest.fixture
def controller(host, store, clock):
    """使用虚拟时钟与默认配置的控制器"""
    return MarionetteController(host, store=store, clock=clock, config=AppConfig())
