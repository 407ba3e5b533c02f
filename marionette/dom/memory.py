"""
内存文档模型

纯 Python 实现的文档树与宿主，支持组件隔离子树、嵌入子文档（含跨域标记）、
内联样式可见性、渲染尺寸、禁用状态、加载状态以及历史记录。
用于测试状态机，也可由嵌入方填充实时文档快照后驱动回放。
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union
from urllib.parse import urljoin, urlsplit

from marionette.core.errors import CrossOriginAccessError, DispatchError, SelectorSyntaxError
from .base import (
    DocumentHost,
    ElementHandle,
    InteractabilityReport,
    Interaction,
    LocatorQuery,
    QueryKind,
    RawEvent,
    ReadyState,
    Scope,
    Signal,
    SignalHandler,
)
from .selectors import parse_compound, parse_path


logger = logging.getLogger(__name__)


_CLICK_INTERACTIONS = (
    Interaction.ACTIVATE,
    Interaction.POINTER_SEQUENCE,
    Interaction.DISPATCH_CLICK,
)
_FRAME_TAGS = ("iframe", "frame")


def _origin_of(url: str) -> str:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return url
    return f"{parts.scheme}://{parts.netloc}"


def parse_style(style: str) -> Dict[str, str]:
    """解析内联样式字符串"""
    declarations = {}
    for chunk in (style or "").split(";"):
        if ":" not in chunk:
            continue
        name, value = chunk.split(":", 1)
        declarations[name.strip().lower()] = value.strip().lower()
    return declarations


class MemoryScope(Scope):
    """内存作用域基类"""

    def __init__(self):
        self._children: List['MemoryElement'] = []

    @property
    def children(self) -> List['MemoryElement']:
        return list(self._children)

    @property
    def connected(self) -> bool:
        raise NotImplementedError

    def append(self, *elements: 'MemoryElement') -> 'MemoryScope':
        """追加顶层元素"""
        for element in elements:
            element._detach()
            element._scope = self
            self._children.append(element)
        return self

    def iter_elements(self) -> Iterator['MemoryElement']:
        """按文档顺序遍历元素（不跨越隔离子树与子文档）"""
        for child in self._children:
            yield from child.iter_tree()


class MemoryDocument(MemoryScope):
    """
    内存文档

    Attributes:
        url: 文档 URL
        origin: 文档源
        ready_state: 加载状态
        owner_frame: 嵌入该文档的 frame 元素（顶层文档为 None）
    """

    def __init__(self, url: str = "about:blank", origin: str = None, title: str = ""):
        super().__init__()
        self.url = url
        self.origin = origin or _origin_of(url)
        self.title = title
        self.ready_state = ReadyState.COMPLETE
        self.owner_frame: Optional['MemoryElement'] = None
        self._active = False

    @property
    def kind(self) -> str:
        return "document"

    @property
    def connected(self) -> bool:
        if self.owner_frame is not None:
            return self.owner_frame.is_connected
        return self._active

    @property
    def body(self) -> Optional['MemoryElement']:
        return next((el for el in self.iter_elements() if el.tag_name == "body"), None)

    @classmethod
    def create(cls, url: str, *body: 'MemoryElement', title: str = "", origin: str = None) -> 'MemoryDocument':
        """创建带 html/head/body 骨架的文档"""
        document = cls(url, origin=origin, title=title)
        html = MemoryElement("html")
        html.append(MemoryElement("head"), MemoryElement("body", children=body))
        document.append(html)
        return document


class MemoryShadowRoot(MemoryScope):
    """组件隔离子树"""

    def __init__(self, host: 'MemoryElement'):
        super().__init__()
        self.host = host

    @property
    def kind(self) -> str:
        return "shadow"

    @property
    def connected(self) -> bool:
        return self.host.is_connected


class MemoryElement(ElementHandle):
    """
    内存元素

    Attributes:
        text: 自身文本
        size: 渲染尺寸 (width, height)
        rejects: 会抛出 DispatchError 的交互类型
        on_click: 激活时的回调（模拟页面脚本）
        events: 已派发的交互记录
    """

    def __init__(
        self,
        tag: str,
        attrs: Dict[str, str] = None,
        text: str = "",
        children: Tuple['MemoryElement', ...] = (),
        size: Tuple[float, float] = (100.0, 20.0),
        rejects: Tuple[Interaction, ...] = (),
    ):
        self._tag = tag.lower()
        self._attributes: Dict[str, str] = dict(attrs or {})
        self.text = text
        self._value = self._attributes.get("value", "")
        self.size = size
        self.rejects = set(rejects)
        self.on_click: Optional[Callable[['MemoryElement'], None]] = None
        self.click_listener = False
        self.events: List[Tuple[str, dict]] = []
        self.shadow_root: Optional[MemoryShadowRoot] = None
        self.content_document: Optional[MemoryDocument] = None
        self.cross_origin = False
        self._parent: Optional['MemoryElement'] = None
        self._scope: Optional[MemoryScope] = None
        self._children: List['MemoryElement'] = []
        self.append(*children)

    def __repr__(self) -> str:
        return f"MemoryElement(<{self._tag}> id={self.id!r})"

    # ========== ElementHandle ==========

    @property
    def tag_name(self) -> str:
        return self._tag

    @property
    def attributes(self) -> Dict[str, str]:
        return dict(self._attributes)

    @property
    def text_content(self) -> str:
        return self.text + "".join(child.text_content for child in self._children)

    @property
    def value(self) -> str:
        return self._value

    @value.setter
    def value(self, value: str) -> None:
        self._value = value

    @property
    def parent(self) -> Optional['MemoryElement']:
        return self._parent

    @property
    def children(self) -> List['MemoryElement']:
        return list(self._children)

    @property
    def scope_root(self) -> Optional[MemoryScope]:
        return self._top()._scope

    @property
    def has_click_handler(self) -> bool:
        return self.click_listener or self.on_click is not None

    # ========== 树操作 ==========

    def _top(self) -> 'MemoryElement':
        current = self
        while current._parent is not None:
            current = current._parent
        return current

    def _detach(self) -> None:
        if self._parent is not None:
            self._parent._children.remove(self)
        elif self._scope is not None:
            self._scope._children.remove(self)
        self._parent = None
        self._scope = None

    def append(self, *children: 'MemoryElement') -> 'MemoryElement':
        """追加子元素"""
        for child in children:
            child._detach()
            child._parent = self
            self._children.append(child)
        return self

    def remove(self) -> None:
        """从树中移除"""
        self._detach()

    def iter_tree(self) -> Iterator['MemoryElement']:
        yield self
        for child in self._children:
            yield from child.iter_tree()

    def set_attribute(self, name: str, value: str) -> None:
        self._attributes[name] = value

    def remove_attribute(self, name: str) -> None:
        self._attributes.pop(name, None)

    def attach_shadow(self, *children: 'MemoryElement') -> MemoryShadowRoot:
        """挂载组件隔离子树"""
        self.shadow_root = MemoryShadowRoot(self)
        self.shadow_root.append(*children)
        return self.shadow_root

    def embed(self, document: MemoryDocument, cross_origin: bool = False) -> MemoryDocument:
        """嵌入子文档（仅 iframe/frame）"""
        if self._tag not in _FRAME_TAGS:
            raise ValueError(f"<{self._tag}> 不能嵌入子文档")
        self.content_document = document
        self.cross_origin = cross_origin
        document.owner_frame = self
        return document

    # ========== 状态 ==========

    @property
    def is_connected(self) -> bool:
        scope = self.scope_root
        return scope is not None and scope.connected

    @property
    def disabled(self) -> bool:
        return "disabled" in self._attributes

    @property
    def style(self) -> Dict[str, str]:
        return parse_style(self._attributes.get("style", ""))

    def hidden_by_style(self) -> bool:
        """自身或祖先是否通过样式隐藏"""
        for node in [self] + self.ancestors():
            style = node.style
            if style.get("display") == "none":
                return True
            if style.get("visibility") in ("hidden", "collapse"):
                return True
            try:
                if float(style.get("opacity", "1")) == 0:
                    return True
            except ValueError:
                pass
        return False

    @property
    def has_size(self) -> bool:
        width, height = self.size
        return width > 0 and height > 0


def h(tag: str, *content: Union[str, MemoryElement], **attrs: str) -> MemoryElement:
    """
    便捷构造元素

    字符串内容作为文本，元素内容作为子元素；属性名末尾下划线去除，
    其余下划线转为连字符（class_ -> class, data_testid -> data-testid）。
    """
    attributes = {}
    for name, value in attrs.items():
        attributes[name.rstrip("_").replace("_", "-")] = value
    text = "".join(item for item in content if isinstance(item, str))
    children = tuple(item for item in content if isinstance(item, MemoryElement))
    return MemoryElement(tag, attrs=attributes, text=text, children=children)


class MemoryDocumentHost(DocumentHost):
    """
    内存文档宿主

    Attributes:
        routes: URL -> 文档工厂；导航到未登记的 URL 时生成空白文档
        load_polls: 导航后 ready_state 返回 loading 的次数（-1 表示永不完成）
        navigations: 整页导航历史
    """

    def __init__(
        self,
        document: MemoryDocument,
        routes: Dict[str, Callable[[str], MemoryDocument]] = None,
        load_polls: int = 0,
    ):
        self._document = document
        self._document._active = True
        self.routes = dict(routes or {})
        self.load_polls = load_polls
        self._pending_polls = 0
        self._handlers: Dict[Signal, List[SignalHandler]] = defaultdict(list)
        self._history: List[str] = [document.url]
        self._history_index = 0
        self.navigations: List[str] = []
        self.focused: Optional[MemoryElement] = None

    # ========== 文档状态 ==========

    @property
    def location(self) -> str:
        return self._document.url

    @property
    def document(self) -> MemoryDocument:
        return self._document

    async def ready_state(self) -> ReadyState:
        if self._pending_polls != 0:
            if self._pending_polls > 0:
                self._pending_polls -= 1
            return ReadyState.LOADING
        return self._document.ready_state

    # ========== 查询 ==========

    async def query_all(self, scope: MemoryScope, query: LocatorQuery) -> List[MemoryElement]:
        expression = query.expression
        if query.kind is QueryKind.CSS:
            compound = parse_compound(expression)
            return [el for el in scope.iter_elements() if compound.matches(el)]

        if query.kind is QueryKind.PATH:
            return self._resolve_path(scope, parse_path(expression))

        if query.kind is QueryKind.LINK_TEXT:
            return [
                el for el in scope.iter_elements()
                if el.tag_name == "a" and el.text_content.strip() == expression
            ]

        if query.kind is QueryKind.PARTIAL_LINK_TEXT:
            if not expression:
                return []
            return [
                el for el in scope.iter_elements()
                if el.tag_name == "a" and expression in el.text_content.strip()
            ]

        if query.kind is QueryKind.TEXT_PREFIX:
            if not expression or not query.tag:
                return []
            return [
                el for el in scope.iter_elements()
                if el.tag_name == query.tag and el.text_content.strip().startswith(expression)
            ]

        raise SelectorSyntaxError(expression)

    def _resolve_path(self, scope: MemoryScope, steps: List[Tuple[str, int]]) -> List[MemoryElement]:
        nodes = scope.children
        current = None
        for tag, index in steps:
            same_tag = [node for node in nodes if node.tag_name == tag]
            if index > len(same_tag):
                return []
            current = same_tag[index - 1]
            nodes = current.children
        return [current] if current is not None else []

    async def shadow_roots(self, scope: MemoryScope) -> List[MemoryShadowRoot]:
        return [el.shadow_root for el in scope.iter_elements() if el.shadow_root is not None]

    async def sub_documents(self, scope: MemoryScope) -> List[MemoryElement]:
        return [
            el for el in scope.iter_elements()
            if el.tag_name in _FRAME_TAGS and el.content_document is not None
        ]

    async def open_sub_document(self, frame: MemoryElement) -> MemoryDocument:
        if frame.cross_origin:
            raise CrossOriginAccessError(frame.content_document.origin)
        return frame.content_document

    # ========== 元素状态 ==========

    async def is_visible(self, element: MemoryElement) -> bool:
        return not element.hidden_by_style() and element.has_size

    async def check_interactable(self, element: MemoryElement) -> InteractabilityReport:
        return InteractabilityReport(
            attached=element.is_connected,
            visible=not element.hidden_by_style(),
            sized=element.has_size,
            enabled=not element.disabled,
        )

    # ========== 交互 ==========

    async def scroll_into_view(self, element: MemoryElement) -> None:
        element.events.append(("scroll_into_view", {}))

    async def focus(self, element: MemoryElement) -> None:
        self.focused = element
        element.events.append(("focus", {}))

    async def set_value(self, element: MemoryElement, value: str) -> None:
        element.value = value

    async def dispatch(self, element: MemoryElement, interaction: Interaction, **detail) -> None:
        if interaction in element.rejects:
            raise DispatchError(f"目标拒绝交互方式: {interaction.value}", {"interaction": interaction.value})

        element.events.append((interaction.value, detail))

        if interaction in _CLICK_INTERACTIONS:
            self._activate(element)
        elif interaction is Interaction.INPUT:
            self.emit(Signal.INPUT, RawEvent(Signal.INPUT, target=element))
        elif interaction is Interaction.KEY_DOWN:
            self._key_down(element, detail.get("key", ""))

    async def navigate(self, url: str) -> None:
        self._load(url)

    # ========== 信号 ==========

    def subscribe(self, signal: Signal, handler: SignalHandler) -> Callable[[], None]:
        handlers = self._handlers[signal]
        handlers.append(handler)

        def unsubscribe() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def emit(self, signal: Signal, event: RawEvent = None) -> None:
        """向订阅者派发信号"""
        event = event or RawEvent(signal, url=self.location)
        for handler in list(self._handlers[signal]):
            handler(event)

    def subscriber_count(self, signal: Signal = None) -> int:
        if signal is not None:
            return len(self._handlers[signal])
        return sum(len(handlers) for handlers in self._handlers.values())

    # ========== 模拟用户与页面行为 ==========

    def user_click(self, element: MemoryElement) -> None:
        """模拟用户点击"""
        self._activate(element)

    def user_input(self, element: MemoryElement, value: str) -> None:
        """模拟用户输入（设置值并发出 input 信号）"""
        element.value = value
        self.emit(Signal.INPUT, RawEvent(Signal.INPUT, target=element))

    def user_key(self, element: MemoryElement, key: str) -> None:
        """模拟用户按键"""
        self._key_down(element, key)

    def push_state(self, url: str) -> None:
        """单页应用导航（history.pushState）"""
        url = urljoin(self.location, url)
        self._document.url = url
        del self._history[self._history_index + 1:]
        self._history.append(url)
        self._history_index += 1
        self.emit(Signal.HISTORY, RawEvent(Signal.HISTORY, url=url))

    def back(self) -> None:
        """历史后退（同文档内）"""
        if self._history_index == 0:
            return
        self._history_index -= 1
        self._document.url = self._history[self._history_index]
        self.emit(Signal.POPSTATE, RawEvent(Signal.POPSTATE, url=self.location))

    def set_hash(self, fragment: str) -> None:
        """修改 URL 片段"""
        base = self.location.split("#", 1)[0]
        self._document.url = f"{base}#{fragment.lstrip('#')}"
        self.emit(Signal.HASHCHANGE, RawEvent(Signal.HASHCHANGE, url=self.location))

    def mutate(self, parent: MemoryElement = None, child: MemoryElement = None) -> None:
        """结构变更（可选地追加子元素）"""
        if parent is not None and child is not None:
            parent.append(child)
        self.emit(Signal.MUTATION, RawEvent(Signal.MUTATION, url=self.location))

    def rewrite_location(self, url: str) -> None:
        """静默修改 URL（不发出任何信号，只能被轮询发现）"""
        self._document.url = urljoin(self.location, url)

    def reload(self) -> None:
        """整页刷新"""
        self._load(self.location)

    # ========== 内部行为 ==========

    def _activate(self, element: MemoryElement) -> None:
        self.emit(Signal.CLICK, RawEvent(Signal.CLICK, target=element))
        if element.on_click is not None:
            element.on_click(element)

        for node in [element] + element.ancestors():
            if node.tag_name == "a" and node.get_attribute("href"):
                self._load(urljoin(self.location, node.get_attribute("href")))
                return
            if node.tag_name in ("button", "input") and (node.get_attribute("type") or "").lower() == "submit":
                self._submit(node)
                return

    def _key_down(self, element: MemoryElement, key: str) -> None:
        self.emit(Signal.KEYDOWN, RawEvent(Signal.KEYDOWN, target=element, key=key))
        if key == "Enter":
            self._submit(element)

    def _submit(self, element: MemoryElement) -> None:
        form = next((node for node in element.ancestors() if node.tag_name == "form"), None)
        if form is not None and form.get_attribute("action"):
            self._load(urljoin(self.location, form.get_attribute("action")))

    def _load(self, url: str) -> None:
        # 当前上下文被销毁：通知订阅者后清空所有订阅
        self.emit(Signal.UNLOAD, RawEvent(Signal.UNLOAD, url=self.location))
        self._handlers.clear()

        factory = self.routes.get(url)
        document = factory(url) if factory else MemoryDocument.create(url)
        document.url = url
        self._document._active = False
        document._active = True
        self._document = document
        self._pending_polls = self.load_polls
        self.focused = None

        del self._history[self._history_index + 1:]
        self._history.append(url)
        self._history_index += 1
        self.navigations.append(url)
        logger.debug(f"文档已加载: {url}")


__all__ = [
    "parse_style",
    "MemoryScope",
    "MemoryDocument",
    "MemoryShadowRoot",
    "MemoryElement",
    "MemoryDocumentHost",
    "h",
]
