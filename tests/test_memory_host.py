"""
内存文档宿主测试
"""

import pytest

from marionette.core.errors import CrossOriginAccessError, DispatchError, SelectorSyntaxError
from marionette.dom import (
    Interaction,
    LocatorQuery,
    MemoryDocument,
    MemoryDocumentHost,
    QueryKind,
    ReadyState,
    Signal,
    h,
)

from .conftest import ORIGIN, find, sample_page


class TestBuilder:
    """h() 元素构造测试"""

    def test_attribute_names_are_normalized(self):
        element = h("div", class_="x", data_testid="t")
        assert element.attributes == {"class": "x", "data-testid": "t"}

    def test_text_and_children(self):
        element = h("button", "Save ", h("span", "now"))
        assert element.text_content == "Save now"
        assert element.children[0].parent is element

    def test_input_value_from_attribute(self):
        assert h("input", value="preset").value == "preset"


class TestQueries:
    """作用域查询测试"""

    @pytest.mark.asyncio
    async def test_css_query(self, host):
        matches = await host.query_all(host.document, LocatorQuery(QueryKind.CSS, "#go"))
        assert [el.id for el in matches] == ["go"]

    @pytest.mark.asyncio
    async def test_path_query(self, host):
        matches = await host.query_all(host.document, LocatorQuery(QueryKind.PATH, "/html[1]/body[1]/input[1]"))
        assert matches[0].id == "box"

    @pytest.mark.asyncio
    async def test_path_query_out_of_range(self, host):
        matches = await host.query_all(host.document, LocatorQuery(QueryKind.PATH, "/html[1]/body[1]/input[9]"))
        assert matches == []

    @pytest.mark.asyncio
    async def test_link_text_queries(self, host):
        exact = await host.query_all(host.document, LocatorQuery(QueryKind.LINK_TEXT, "Docs"))
        partial = await host.query_all(host.document, LocatorQuery(QueryKind.PARTIAL_LINK_TEXT, "Do"))
        assert exact == partial == [find(host, "docs")]

    @pytest.mark.asyncio
    async def test_text_prefix_query(self, host):
        matches = await host.query_all(host.document, LocatorQuery(QueryKind.TEXT_PREFIX, "Sea", tag="button"))
        assert [el.id for el in matches] == ["submit"]

    @pytest.mark.asyncio
    async def test_invalid_css_raises(self, host):
        with pytest.raises(SelectorSyntaxError):
            await host.query_all(host.document, LocatorQuery(QueryKind.CSS, "div > span"))

    @pytest.mark.asyncio
    async def test_queries_do_not_cross_shadow_roots(self):
        widget = h("div", id="widget")
        widget.attach_shadow(h("button", "Inner", id="inner"))
        host = MemoryDocumentHost(MemoryDocument.create(ORIGIN, widget))

        assert await host.query_all(host.document, LocatorQuery(QueryKind.CSS, "#inner")) == []
        shadows = await host.shadow_roots(host.document)
        matches = await host.query_all(shadows[0], LocatorQuery(QueryKind.CSS, "#inner"))
        assert matches[0].id == "inner"


class TestElementState:
    """可见性与可交互性测试"""

    @pytest.mark.asyncio
    async def test_hidden_by_ancestor_style(self):
        target = h("button", "Hidden")
        host = MemoryDocumentHost(MemoryDocument.create(ORIGIN, h("div", target, style="display: none")))
        assert await host.is_visible(target) is False

    @pytest.mark.asyncio
    async def test_zero_size_is_not_visible(self, host):
        button = find(host, "go")
        button.size = (0, 0)
        assert await host.is_visible(button) is False

    @pytest.mark.asyncio
    async def test_interactability_report(self, host):
        button = find(host, "go")
        button.set_attribute("disabled", "")
        report = await host.check_interactable(button)
        assert report.ok is False
        assert report.reasons == ["disabled"]

    @pytest.mark.asyncio
    async def test_detached_element(self, host):
        button = find(host, "go")
        button.remove()
        report = await host.check_interactable(button)
        assert "detached" in report.reasons


class TestSubDocuments:
    """嵌入子文档测试"""

    @pytest.mark.asyncio
    async def test_same_origin_frame_opens(self):
        frame = h("iframe", id="frame")
        inner = frame.embed(MemoryDocument.create("https://app.test/inner", h("button", "In")))
        host = MemoryDocumentHost(MemoryDocument.create(ORIGIN, frame))

        frames = await host.sub_documents(host.document)
        assert await host.open_sub_document(frames[0]) is inner
        assert inner.connected

    @pytest.mark.asyncio
    async def test_cross_origin_frame_raises(self):
        frame = h("iframe", id="frame")
        frame.embed(MemoryDocument.create("https://ads.test/"), cross_origin=True)
        host = MemoryDocumentHost(MemoryDocument.create(ORIGIN, frame))

        with pytest.raises(CrossOriginAccessError):
            await host.open_sub_document(frame)

    def test_embed_requires_frame(self):
        with pytest.raises(ValueError):
            h("div").embed(MemoryDocument.create(ORIGIN))


class TestInteractions:
    """交互派发、信号与导航测试"""

    @pytest.mark.asyncio
    async def test_rejected_interaction_raises(self, host):
        button = find(host, "go")
        button.rejects = {Interaction.ACTIVATE}
        with pytest.raises(DispatchError):
            await host.dispatch(button, Interaction.ACTIVATE)

    @pytest.mark.asyncio
    async def test_click_emits_signal_and_runs_script(self, host):
        seen = []
        clicked = []
        button = find(host, "go")
        button.on_click = clicked.append
        host.subscribe(Signal.CLICK, lambda event: seen.append(event.target))

        await host.dispatch(button, Interaction.POINTER_SEQUENCE)

        assert seen == [button]
        assert clicked == [button]
        assert button.events == [("pointer_sequence", {})]

    def test_anchor_click_loads_new_document(self, host):
        unloads = []
        host.subscribe(Signal.UNLOAD, unloads.append)

        host.user_click(find(host, "docs"))

        assert host.location == "https://app.test/docs"
        assert host.navigations == ["https://app.test/docs"]
        assert len(unloads) == 1
        assert host.subscriber_count() == 0

    def test_enter_submits_form(self, host):
        host.user_key(find(host, "query"), "Enter")
        assert host.location == "https://app.test/results"

    def test_routes_build_documents(self):
        host = MemoryDocumentHost(sample_page(), routes={"https://app.test/docs": lambda url: sample_page(url)})
        host.user_click(find(host, "docs"))
        assert find(host, "go") is not None

    @pytest.mark.asyncio
    async def test_ready_state_after_navigation(self):
        host = MemoryDocumentHost(sample_page(), load_polls=2)
        await host.navigate("https://app.test/next")
        states = [await host.ready_state() for _ in range(3)]
        assert states == [ReadyState.LOADING, ReadyState.LOADING, ReadyState.COMPLETE]

    def test_history_signals(self, host):
        signals = []
        for signal in (Signal.HISTORY, Signal.POPSTATE, Signal.HASHCHANGE):
            host.subscribe(signal, lambda event: signals.append((event.signal, event.url)))

        host.push_state("/page2")
        host.back()
        host.set_hash("top")

        assert signals == [
            (Signal.HISTORY, "https://app.test/page2"),
            (Signal.POPSTATE, ORIGIN),
            (Signal.HASHCHANGE, "https://app.test/#top"),
        ]

    def test_rewrite_location_is_silent(self, host):
        calls = []
        for signal in Signal:
            host.subscribe(signal, calls.append)
        host.rewrite_location("/silent")
        assert host.location == "https://app.test/silent"
        assert calls == []

    def test_unsubscribe(self, host):
        unsubscribe = host.subscribe(Signal.CLICK, lambda event: None)
        assert host.subscriber_count(Signal.CLICK) == 1
        unsubscribe()
        assert host.subscriber_count(Signal.CLICK) == 0
