"""
定位引擎

build(): 由元素生成 LocatorSet（仅依赖元素当前属性与祖先链的纯函数）。
resolve(): 按策略排序在作用域内查找，找不到时依次进入组件隔离子树、嵌入子文档。
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from marionette.core.errors import CrossOriginAccessError, SelectorSyntaxError
from marionette.dom.base import DocumentHost, ElementHandle, Scope
from marionette.dom.selectors import css_escape, quote_attr_value
from .heuristics import descriptive_attributes, find_test_marker, normalize_text, stable_classes
from .models import LocatorSet, TagTextPrefix


logger = logging.getLogger(__name__)


TEXT_PREFIX_LENGTH = 100
PARTIAL_LINK_TEXT_LENGTH = 20
MAX_FRAME_DEPTH = 5


@dataclass
class Resolution:
    """
    定位结果

    Attributes:
        element: 命中的元素
        strategy: 命中的策略名
        scope_kind: 命中所在作用域（document / shadow）
        exact: 是否唯一可见命中（False 表示宽松回退）
    """
    element: ElementHandle
    strategy: str
    scope_kind: str
    exact: bool = True

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy,
            "scope": self.scope_kind,
            "exact": self.exact,
        }


class LocatorEngine:
    """
    多策略定位引擎

    Attributes:
        lenient: 无唯一可见命中时是否启用宽松回退
            （最高优先级歧义策略的第一个可见元素，其次为隐藏元素）
    """

    def __init__(self, lenient: bool = True):
        self.lenient = lenient

    # ========== 生成 ==========

    def build(self, element: ElementHandle) -> LocatorSet:
        """
        生成定位策略集

        Args:
            element: 目标元素

        Returns:
            LocatorSet: 不适用的策略为 None
        """
        tag = element.tag_name
        text = normalize_text(element.text_content, TEXT_PREFIX_LENGTH)
        full_text = (element.text_content or "").strip()

        identifier = f"#{css_escape(element.id)}" if element.id else None

        name = element.get_attribute("name")
        formal_name = f"{tag}[name={quote_attr_value(name)}]" if name else None

        is_anchor = tag == "a"
        exact_link_text = full_text if is_anchor and full_text else None
        partial_link_text = full_text[:PARTIAL_LINK_TEXT_LENGTH] if is_anchor and full_text else None

        marker = find_test_marker(element)
        test_marker = f"[{marker[0]}={quote_attr_value(marker[1])}]" if marker else None

        classes = stable_classes(element.class_list)
        stable_class_path = tag + "".join(f".{css_escape(c)}" for c in classes) if classes else None

        attributes = descriptive_attributes(element)
        attribute_path = (
            tag + "".join(f"[{attr}={quote_attr_value(value)}]" for attr, value in attributes)
            if attributes else None
        )

        return LocatorSet(
            identifier=identifier,
            formal_name=formal_name,
            exact_link_text=exact_link_text,
            test_marker=test_marker,
            stable_class_path=stable_class_path,
            attribute_path=attribute_path,
            structural_path=self.structural_path(element),
            partial_link_text=partial_link_text,
            tag_and_text_prefix=TagTextPrefix(tag, text) if text else None,
        )

    @staticmethod
    def structural_path(element: ElementHandle) -> str:
        """自作用域根向下的位置路径"""
        steps = []
        for node in [element] + element.ancestors():
            steps.append(f"/{node.tag_name}[{node.sibling_index()}]")
        return "".join(reversed(steps))

    # ========== 解析 ==========

    async def resolve(
        self,
        locator_set: LocatorSet,
        host: DocumentHost,
        scope: Scope = None,
    ) -> Optional[Resolution]:
        """
        解析定位策略集

        先严格匹配（唯一可见元素），依次搜索主作用域、组件隔离子树、子文档；
        全部失败且启用宽松模式时，按同样顺序再做一次宽松匹配。

        Args:
            locator_set: 定位策略集
            host: 文档宿主
            scope: 搜索根（默认当前文档）

        Returns:
            Resolution，未找到返回 None
        """
        root = scope if scope is not None else host.document
        found = await self._search(locator_set, host, root, lenient=False, depth=0)
        if found is None and self.lenient:
            found = await self._search(locator_set, host, root, lenient=True, depth=0)
            if found is not None:
                logger.debug(f"宽松定位命中: {locator_set.describe()} via {found.strategy}")
        return found

    async def _search(
        self,
        locator_set: LocatorSet,
        host: DocumentHost,
        scope: Scope,
        lenient: bool,
        depth: int,
    ) -> Optional[Resolution]:
        found = await self._resolve_scope(locator_set, host, scope, lenient)
        if found is not None:
            return found

        found = await self._search_isolated(locator_set, host, scope, lenient)
        if found is not None:
            return found

        if depth >= MAX_FRAME_DEPTH:
            return None

        for frame in await self._frames(host, scope):
            try:
                document = await host.open_sub_document(frame)
            except CrossOriginAccessError as e:
                logger.debug(f"跳过跨域子文档: {e.message}")
                continue
            found = await self._search(locator_set, host, document, lenient, depth + 1)
            if found is not None:
                return found
        return None

    async def _frames(self, host: DocumentHost, scope: Scope) -> List[ElementHandle]:
        """作用域及其组件隔离子树（递归）中的子文档宿主元素"""
        frames = list(await host.sub_documents(scope))
        for shadow in await host.shadow_roots(scope):
            frames.extend(await self._frames(host, shadow))
        return frames

    async def _search_isolated(
        self,
        locator_set: LocatorSet,
        host: DocumentHost,
        scope: Scope,
        lenient: bool,
    ) -> Optional[Resolution]:
        for shadow in await host.shadow_roots(scope):
            found = await self._resolve_scope(locator_set, host, shadow, lenient)
            if found is None:
                found = await self._search_isolated(locator_set, host, shadow, lenient)
            if found is not None:
                return found
        return None

    async def _resolve_scope(
        self,
        locator_set: LocatorSet,
        host: DocumentHost,
        scope: Scope,
        lenient: bool,
    ) -> Optional[Resolution]:
        """在单个作用域内按策略顺序查找"""
        candidates: List[Tuple[str, List[ElementHandle], List[ElementHandle]]] = []

        for strategy, query in locator_set.strategies():
            try:
                matches = await host.query_all(scope, query)
            except SelectorSyntaxError as e:
                logger.debug(f"策略 {strategy} 查询无效: {e.message}")
                continue
            if not matches:
                continue

            visible = [el for el in matches if await host.is_visible(el)]
            if not lenient:
                if len(visible) == 1:
                    return Resolution(visible[0], strategy, scope.kind)
                continue
            candidates.append((strategy, matches, visible))

        if not lenient:
            return None

        for strategy, _, visible in candidates:
            if visible:
                return Resolution(visible[0], strategy, scope.kind, exact=False)
        for strategy, matches, _ in candidates:
            return Resolution(matches[0], strategy, scope.kind, exact=False)
        return None


# ========== 便捷函数 ==========

def create_engine(lenient: bool = True) -> LocatorEngine:
    """创建定位引擎"""
    return LocatorEngine(lenient=lenient)


__all__ = [
    "TEXT_PREFIX_LENGTH",
    "PARTIAL_LINK_TEXT_LENGTH",
    "Resolution",
    "LocatorEngine",
    "create_engine",
]
