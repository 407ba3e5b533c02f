"""
文档宿主抽象基类

定义定位引擎与状态机依赖的宿主能力接口：作用域内查询、事件派发、
导航、原始信号订阅等。具体宿主（内存文档模型、浏览器驱动等）必须继承此类。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class QueryKind(str, Enum):
    """查询类型"""
    CSS = "css"
    PATH = "path"
    LINK_TEXT = "link_text"
    PARTIAL_LINK_TEXT = "partial_link_text"
    TEXT_PREFIX = "text_prefix"


class Interaction(str, Enum):
    """底层交互类型"""
    ACTIVATE = "activate"                  # 直接激活（element.click）
    POINTER_SEQUENCE = "pointer_sequence"  # pointerdown/mousedown/pointerup/mouseup/click
    DISPATCH_CLICK = "dispatch_click"      # 通用 click 事件派发
    INPUT = "input"
    CHANGE = "change"
    BLUR = "blur"
    KEY_DOWN = "key_down"
    KEY_PRESS = "key_press"
    KEY_UP = "key_up"


class Signal(str, Enum):
    """原始信号类型"""
    CLICK = "click"
    INPUT = "input"
    KEYDOWN = "keydown"
    MUTATION = "mutation"
    HISTORY = "history"
    POPSTATE = "popstate"
    HASHCHANGE = "hashchange"
    UNLOAD = "unload"


class ReadyState(str, Enum):
    """文档加载状态"""
    LOADING = "loading"
    INTERACTIVE = "interactive"
    COMPLETE = "complete"


@dataclass(frozen=True)
class LocatorQuery:
    """
    作用域内查询

    Attributes:
        kind: 查询类型
        expression: 查询表达式（CSS、位置路径或文本）
        tag: 标签名（仅 TEXT_PREFIX 使用）
    """
    kind: QueryKind
    expression: str
    tag: Optional[str] = None


@dataclass
class RawEvent:
    """原始交互信号"""
    signal: Signal
    target: Optional['ElementHandle'] = None
    key: Optional[str] = None
    url: Optional[str] = None


@dataclass
class InteractabilityReport:
    """可交互性检查结果"""
    attached: bool = True
    visible: bool = True
    sized: bool = True
    enabled: bool = True

    @property
    def ok(self) -> bool:
        return self.attached and self.visible and self.sized and self.enabled

    @property
    def reasons(self) -> List[str]:
        """未通过的检查项"""
        reasons = []
        if not self.attached:
            reasons.append("detached")
        if not self.visible:
            reasons.append("hidden")
        if not self.sized:
            reasons.append("zero-size")
        if not self.enabled:
            reasons.append("disabled")
        return reasons


class Scope(ABC):
    """查询作用域（文档或组件隔离子树）"""

    @property
    @abstractmethod
    def kind(self) -> str:
        """作用域类型 (document/shadow)"""
        pass

    @property
    @abstractmethod
    def children(self) -> List['ElementHandle']:
        """顶层子元素"""
        pass


class ElementHandle(ABC):
    """
    元素句柄

    定位引擎只读取元素的属性与祖先链，不依赖具体宿主实现。
    """

    @property
    @abstractmethod
    def tag_name(self) -> str:
        """小写标签名"""
        pass

    @property
    @abstractmethod
    def attributes(self) -> Dict[str, str]:
        """全部属性（按声明顺序）"""
        pass

    @property
    @abstractmethod
    def text_content(self) -> str:
        """文本内容（含后代）"""
        pass

    @property
    @abstractmethod
    def value(self) -> str:
        """表单值"""
        pass

    @property
    @abstractmethod
    def parent(self) -> Optional['ElementHandle']:
        """父元素；作用域顶层元素返回 None"""
        pass

    @property
    @abstractmethod
    def children(self) -> List['ElementHandle']:
        """子元素"""
        pass

    @property
    @abstractmethod
    def scope_root(self) -> Optional[Scope]:
        """所属作用域根"""
        pass

    @property
    def has_click_handler(self) -> bool:
        """宿主是否知道该元素绑定了点击处理器"""
        return False

    def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name)

    @property
    def id(self) -> str:
        return self.get_attribute("id") or ""

    @property
    def class_list(self) -> List[str]:
        return (self.get_attribute("class") or "").split()

    @property
    def is_content_editable(self) -> bool:
        value = self.get_attribute("contenteditable")
        return value is not None and value.lower() != "false"

    def sibling_index(self) -> int:
        """在同标签兄弟元素中的位置（从 1 开始）"""
        if self.parent is not None:
            siblings = self.parent.children
        elif self.scope_root is not None:
            siblings = self.scope_root.children
        else:
            return 1
        index = 1
        for sibling in siblings:
            if sibling is self:
                break
            if sibling.tag_name == self.tag_name:
                index += 1
        return index

    def ancestors(self) -> List['ElementHandle']:
        """祖先链（由近及远，不跨越作用域）"""
        result = []
        current = self.parent
        while current is not None:
            result.append(current)
            current = current.parent
        return result


SignalHandler = Callable[[RawEvent], Any]


class DocumentHost(ABC):
    """
    文档宿主抽象基类

    所有宿主实现必须继承此类。
    """

    # ========== 文档状态 ==========

    @property
    @abstractmethod
    def location(self) -> str:
        """当前文档 URL"""
        pass

    @property
    @abstractmethod
    def document(self) -> Scope:
        """当前根文档"""
        pass

    @abstractmethod
    async def ready_state(self) -> ReadyState:
        """文档加载状态"""
        pass

    # ========== 查询 ==========

    @abstractmethod
    async def query_all(self, scope: Scope, query: LocatorQuery) -> List[ElementHandle]:
        """
        在作用域内查询元素

        Args:
            scope: 查询作用域
            query: 查询条件

        Returns:
            匹配的元素列表（文档顺序）

        Raises:
            SelectorSyntaxError: 表达式无法解析
        """
        pass

    @abstractmethod
    async def shadow_roots(self, scope: Scope) -> List[Scope]:
        """作用域内直接可达的组件隔离子树"""
        pass

    @abstractmethod
    async def sub_documents(self, scope: Scope) -> List[Any]:
        """作用域内的嵌入子文档句柄"""
        pass

    @abstractmethod
    async def open_sub_document(self, frame: Any) -> Scope:
        """
        打开嵌入子文档

        Raises:
            CrossOriginAccessError: 跨域子文档不可访问
        """
        pass

    # ========== 元素状态 ==========

    @abstractmethod
    async def is_visible(self, element: ElementHandle) -> bool:
        """元素是否可见"""
        pass

    @abstractmethod
    async def check_interactable(self, element: ElementHandle) -> InteractabilityReport:
        """检查元素可交互性"""
        pass

    # ========== 交互 ==========

    @abstractmethod
    async def scroll_into_view(self, element: ElementHandle) -> None:
        """滚动元素到可视区域"""
        pass

    @abstractmethod
    async def focus(self, element: ElementHandle) -> None:
        """聚焦元素"""
        pass

    @abstractmethod
    async def set_value(self, element: ElementHandle, value: str) -> None:
        """设置表单值（不触发事件）"""
        pass

    @abstractmethod
    async def dispatch(self, element: ElementHandle, interaction: Interaction, **detail) -> None:
        """
        派发底层交互

        Raises:
            DispatchError: 目标拒绝该交互方式
        """
        pass

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """导航到 URL"""
        pass

    # ========== 信号订阅 ==========

    @abstractmethod
    def subscribe(self, signal: Signal, handler: SignalHandler) -> Callable[[], None]:
        """
        订阅原始信号

        Returns:
            取消订阅函数
        """
        pass


__all__ = [
    "QueryKind",
    "Interaction",
    "Signal",
    "ReadyState",
    "LocatorQuery",
    "RawEvent",
    "InteractabilityReport",
    "Scope",
    "ElementHandle",
    "SignalHandler",
    "DocumentHost",
]
