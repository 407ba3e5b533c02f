"""
定位策略集生成与解析测试
"""

import pytest

from marionette.dom import MemoryDocument, MemoryDocumentHost, h
from marionette.locator import LocatorEngine, LocatorSet, TagTextPrefix

from .conftest import ORIGIN, find


def make_host(*body):
    return MemoryDocumentHost(MemoryDocument.create(ORIGIN, *body))


class TestBuild:
    """LocatorEngine.build 测试"""

    def test_button_with_id(self, host, engine):
        locator = engine.build(find(host, "go"))
        assert locator.identifier == "#go"
        assert locator.structural_path == "/html[1]/body[1]/button[1]"
        assert locator.tag_and_text_prefix == TagTextPrefix("button", "Go")
        assert locator.exact_link_text is None
        assert locator.formal_name is None

    def test_input_with_name(self, host, engine):
        locator = engine.build(find(host, "box"))
        assert locator.formal_name == 'input[name="q"]'
        assert locator.attribute_path == 'input[type="text"]'
        assert locator.tag_and_text_prefix is None

    def test_anchor_link_texts(self, engine):
        link = h("a", "  Read the full documentation here ", href="/docs")
        make_host(link)
        locator = engine.build(link)
        assert locator.exact_link_text == "Read the full documentation here"
        assert locator.partial_link_text == "Read the full docume"

    def test_generated_classes_never_selected(self, engine):
        button = h("button", "Save", class_="btn Button_root__a1b2c css-1q2w3e primary")
        make_host(button)
        assert engine.build(button).stable_class_path == "button.btn.primary"

    def test_test_marker_and_attributes(self, engine):
        tab = h("button", "Tab", role="tab", aria_selected="true", data_testid="tab-1")
        make_host(tab)
        locator = engine.build(tab)
        assert locator.test_marker == '[data-testid="tab-1"]'
        assert locator.attribute_path == 'button[role="tab"][aria-selected="true"]'

    def test_identifier_is_escaped(self, engine):
        element = h("div", id="1st")
        make_host(element)
        assert engine.build(element).identifier == "#\\31 st"

    def test_structural_path_counts_same_tag_siblings(self, engine):
        second = h("li", "b")
        make_host(h("ul", h("li", "a"), h("span"), second))
        assert engine.build(second).structural_path == "/html[1]/body[1]/ul[1]/li[2]"

    def test_build_is_pure(self, host, engine):
        button = find(host, "go")
        assert engine.build(button) == engine.build(button)

    def test_text_prefix_is_truncated(self, engine):
        element = h("p", "x" * 150)
        make_host(element)
        assert len(engine.build(element).tag_and_text_prefix.text) == 100

    def test_same_target_ignores_text_strategies(self, engine):
        editor = h("div", "h", contenteditable="true", id="editor")
        make_host(editor)
        before = engine.build(editor)
        editor.text = "hello"
        after = engine.build(editor)

        assert before != after
        assert before.same_target(after)
        assert not before.same_target(LocatorSet(identifier="#other", structural_path=before.structural_path))


class TestResolve:
    """LocatorEngine.resolve 测试"""

    @pytest.mark.asyncio
    async def test_identifier_wins(self, host, engine):
        resolution = await engine.resolve(engine.build(find(host, "go")), host)
        assert resolution.element is find(host, "go")
        assert resolution.strategy == "identifier"
        assert resolution.exact is True

    @pytest.mark.asyncio
    async def test_resolution_is_deterministic(self, host, engine):
        locator = engine.build(find(host, "submit"))
        first = await engine.resolve(locator, host)
        second = await engine.resolve(locator, host)
        assert first.element is second.element
        assert first.strategy == second.strategy

    @pytest.mark.asyncio
    async def test_ambiguous_strategy_falls_through(self, engine):
        host = make_host(
            h("button", "One", id="dup"),
            h("button", "Two", id="dup", data_testid="two"),
        )
        target = host.document.body.children[1]
        resolution = await engine.resolve(engine.build(target), host)
        assert resolution.element is target
        assert resolution.strategy == "test_marker"

    @pytest.mark.asyncio
    async def test_hidden_duplicates_do_not_count(self, engine):
        host = make_host(
            h("button", "Old", id="save", style="display: none"),
            h("button", "New", id="save"),
        )
        resolution = await engine.resolve(LocatorSet(identifier="#save"), host)
        assert resolution.element.text == "New"
        assert resolution.exact is True

    @pytest.mark.asyncio
    async def test_lenient_picks_first_visible(self):
        host = make_host(h("button", "One", id="dup"), h("button", "Two", id="dup"))
        locator = LocatorSet(identifier="#dup")

        assert await LocatorEngine(lenient=False).resolve(locator, host) is None

        resolution = await LocatorEngine(lenient=True).resolve(locator, host)
        assert resolution.element.text == "One"
        assert resolution.exact is False

    @pytest.mark.asyncio
    async def test_lenient_falls_back_to_hidden(self, engine):
        host = make_host(h("button", "Ghost", id="ghost", style="visibility: hidden"))
        resolution = await engine.resolve(LocatorSet(identifier="#ghost"), host)
        assert resolution.element.id == "ghost"
        assert resolution.exact is False

    @pytest.mark.asyncio
    async def test_invalid_strategy_is_skipped(self, host, engine):
        locator = LocatorSet(identifier="#[bad", formal_name='input[name="q"]')
        resolution = await engine.resolve(locator, host)
        assert resolution.element.id == "box"
        assert resolution.strategy == "formal_name"

    @pytest.mark.asyncio
    async def test_searches_shadow_roots(self, engine):
        widget = h("div", id="widget")
        widget.attach_shadow(h("button", "Inner", id="inner"))
        host = make_host(widget)
        inner = widget.shadow_root.children[0]

        locator = engine.build(inner)
        assert locator.structural_path == "/button[1]"

        resolution = await engine.resolve(locator, host)
        assert resolution.element is inner
        assert resolution.scope_kind == "shadow"

    @pytest.mark.asyncio
    async def test_strict_match_in_shadow_beats_lenient_in_main(self, engine):
        widget = h("div")
        widget.attach_shadow(h("button", "Inner", data_testid="x"))
        host = make_host(
            h("button", "A", data_testid="x"),
            h("button", "B", data_testid="x"),
            widget,
        )
        resolution = await engine.resolve(LocatorSet(test_marker='[data-testid="x"]'), host)
        assert resolution.element.text == "Inner"
        assert resolution.exact is True

    @pytest.mark.asyncio
    async def test_searches_same_origin_frames(self, engine):
        frame = h("iframe")
        frame.embed(MemoryDocument.create("https://app.test/frame", h("button", "Framed", id="framed")))
        host = make_host(frame)

        resolution = await engine.resolve(LocatorSet(identifier="#framed"), host)
        assert resolution.element.id == "framed"
        assert resolution.scope_kind == "document"

    @pytest.mark.asyncio
    async def test_skips_cross_origin_frames(self, engine):
        frame = h("iframe")
        frame.embed(MemoryDocument.create("https://ads.test/", h("button", "Ad", id="framed")), cross_origin=True)
        host = make_host(frame)

        assert await engine.resolve(LocatorSet(identifier="#framed"), host) is None

    @pytest.mark.asyncio
    async def test_searches_frames_inside_shadow_roots(self, engine):
        frame = h("iframe")
        frame.embed(MemoryDocument.create("https://app.test/embed", h("button", "Deep", id="deep")))
        widget = h("div", id="widget")
        widget.attach_shadow(h("section", frame))
        host = make_host(widget)

        resolution = await engine.resolve(LocatorSet(identifier="#deep"), host)
        assert resolution.element.id == "deep"
        assert resolution.exact is True

    @pytest.mark.asyncio
    async def test_empty_locator_set(self, host, engine):
        assert LocatorSet().is_empty
        assert await engine.resolve(LocatorSet(), host) is None
