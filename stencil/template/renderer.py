"""
Template renderer.

Walks a ParsedTemplate against a data mapping and produces the output
string. All mutable state (loop frames, include depth) lives in the
VariableResolver created for one render call, so a single renderer may
serve concurrent calls.
"""

from __future__ import annotations

import html
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Set

from ..errors import StencilUserError
from .errors import TemplateInheritanceError, TemplateNotFoundError, TemplateRenderError
from .nodes import (
    BlockNode,
    ComparisonCondition,
    ExtendsNode,
    ForNode,
    IfNode,
    IncludeNode,
    ParsedTemplate,
    TemplateNode,
    TextNode,
    VariableNode,
)
from .resolver import VariableResolver, stringify

logger = logging.getLogger(__name__)

# name -> ParsedTemplate; raises TemplateNotFoundError / TemplateSyntaxError
TemplateSource = Callable[[str], ParsedTemplate]

DEFAULT_MAX_DEPTH = 32


class FilterApplier(Protocol):
    """Interface the renderer needs from a filter registry."""

    def apply(self, name: str, value: Any, args: List[str]) -> Any:
        ...

    def is_safe(self, name: str) -> bool:
        ...


def include_error_comment(template: str, error: BaseException) -> str:
    """Inert HTML comment emitted in place of a failed include."""
    message = str(error).replace("-->", "-- >")
    return f"<!-- Include error: {template} - {message} -->"


class TemplateRenderer:
    """
    Renders parsed templates.

    Args:
        filters: Registry used for filter chains
        source: Loads templates by name for ``include`` and ``extends``
        auto_escape: HTML-escape variable output unless a safe filter is applied
        max_depth: Nesting limit for includes and inheritance chains
    """

    def __init__(
        self,
        filters: FilterApplier,
        source: Optional[TemplateSource] = None,
        *,
        auto_escape: bool = True,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.filters = filters
        self.source = source
        self.auto_escape = auto_escape
        self.max_depth = max_depth

    # ----------------------------- entry point ----------------------------- #

    def render(self, template: ParsedTemplate, data: Optional[Mapping[str, Any]] = None) -> str:
        """
        Render a template against ``data``.

        Raises:
            UnknownFilterError: A filter chain references an unknown filter
            TemplateNotFoundError: A parent template cannot be found
            TemplateInheritanceError: Extends cycle or nesting too deep
            TemplateRenderError: A filter or data accessor failed
        """
        return self._render_template(template, dict(data or {}), depth=0)

    def _render_template(self, template: ParsedTemplate, data: Dict[str, Any], depth: int) -> str:
        resolver = VariableResolver(data)
        nodes = self._resolve_inheritance(template, depth)
        out: List[str] = []
        self._render_nodes(nodes, resolver, template.name, depth, out)
        return "".join(out)

    # ----------------------------- inheritance ----------------------------- #

    def _resolve_inheritance(self, template: ParsedTemplate, depth: int) -> List[TemplateNode]:
        """Return the node list to render: the root ancestor with merged blocks substituted."""
        if not template.has_parent:
            return template.nodes

        chain = [template]
        seen: Set[str] = {template.name} if template.name else set()
        current = template

        while current.parent_template:
            parent_name = current.parent_template
            if parent_name in seen:
                names = " -> ".join([t.name or "<string>" for t in chain] + [parent_name])
                raise TemplateInheritanceError(f"Template inheritance cycle: {names}")
            if depth + len(chain) > self.max_depth:
                raise TemplateInheritanceError(
                    f"Inheritance chain of '{template.name or '<string>'}' exceeds {self.max_depth} levels"
                )
            seen.add(parent_name)
            current = self._load(parent_name)
            chain.append(current)

        merged: Dict[str, List[TemplateNode]] = {}
        for tpl in reversed(chain):
            merged.update(tpl.block_dict())

        return _substitute_blocks(chain[-1].nodes, merged, frozenset())

    def _load(self, name: str) -> ParsedTemplate:
        if self.source is None:
            raise TemplateNotFoundError(name)
        return self.source(name)

    # ----------------------------- node walk ----------------------------- #

    def _render_nodes(
        self,
        nodes: Iterable[TemplateNode],
        resolver: VariableResolver,
        template_name: str,
        depth: int,
        out: List[str],
    ) -> None:
        for node in nodes:
            if isinstance(node, TextNode):
                out.append(node.text)
            elif isinstance(node, VariableNode):
                out.append(self._render_variable(node, resolver, template_name))
            elif isinstance(node, IfNode):
                self._render_if(node, resolver, template_name, depth, out)
            elif isinstance(node, ForNode):
                self._render_for(node, resolver, template_name, depth, out)
            elif isinstance(node, BlockNode):
                self._render_nodes(node.body, resolver, template_name, depth, out)
            elif isinstance(node, IncludeNode):
                out.append(self._render_include(node, resolver, depth))
            elif isinstance(node, ExtendsNode):
                continue
            else:
                raise TypeError(f"Unsupported node type: {type(node).__name__}")

    def _render_variable(self, node: VariableNode, resolver: VariableResolver, template_name: str) -> str:
        value = self._evaluate(node, resolver, template_name)
        text = stringify(value)
        if self.auto_escape and not any(self.filters.is_safe(f.name) for f in node.filters):
            text = html.escape(text, quote=True)
        return text

    def _render_if(
        self,
        node: IfNode,
        resolver: VariableResolver,
        template_name: str,
        depth: int,
        out: List[str],
    ) -> None:
        condition = node.condition
        expr = condition.left if isinstance(condition, ComparisonCondition) else condition.expr
        value = self._evaluate(expr, resolver, template_name)
        if resolver.evaluate(node.condition, value):
            self._render_nodes(node.body, resolver, template_name, depth, out)
        elif node.else_body is not None:
            self._render_nodes(node.else_body, resolver, template_name, depth, out)

    def _render_for(
        self,
        node: ForNode,
        resolver: VariableResolver,
        template_name: str,
        depth: int,
        out: List[str],
    ) -> None:
        items = iter_collection(resolver.resolve(node.iterable))
        if not items:
            if node.else_body is not None:
                self._render_nodes(node.else_body, resolver, template_name, depth, out)
            return
        for item in items:
            with resolver.loop_frame({node.item: item}):
                self._render_nodes(node.body, resolver, template_name, depth, out)

    def _render_include(self, node: IncludeNode, resolver: VariableResolver, depth: int) -> str:
        try:
            if depth + 1 > self.max_depth:
                raise TemplateInheritanceError(f"Include nesting exceeds {self.max_depth} levels")
            included = self._load(node.template)

            scope: Dict[str, Any] = dict(resolver.data)
            scope.update(resolver.bindings())
            if node.data_source and node.alias:
                scope[node.alias] = resolver.resolve(node.data_source)

            return self._render_template(included, scope, depth + 1)
        except Exception as e:
            logger.warning("Include of '%s' failed: %s", node.template, e)
            return include_error_comment(node.template, e)

    # ----------------------------- values ----------------------------- #

    def _evaluate(self, node: VariableNode, resolver: VariableResolver, template_name: str) -> Any:
        """Resolve a variable and run it through its filter chain."""
        try:
            value = resolver.resolve_variable(node)
        except StencilUserError:
            raise
        except Exception as e:
            raise TemplateRenderError(f"Failed to resolve '{node.dotted}': {e}", template_name, e) from e

        for call in node.filters:
            try:
                value = self.filters.apply(call.name, value, list(call.args))
            except StencilUserError:
                raise
            except Exception as e:
                raise TemplateRenderError(f"Filter '{call.name}' failed: {e}", template_name, e) from e
        return value


def iter_collection(value: Any) -> List[Any]:
    """Items of a loop collection; mappings yield values, scalars and strings yield nothing."""
    if value is None or isinstance(value, (str, bytes)):
        return []
    if isinstance(value, Mapping):
        return list(value.values())
    try:
        return list(value)
    except TypeError:
        return []


def _substitute_blocks(
    nodes: List[TemplateNode],
    merged: Mapping[str, List[TemplateNode]],
    active: frozenset,
) -> List[TemplateNode]:
    """Replace every block body with its merged override, descending into containers."""
    result: List[TemplateNode] = []
    for node in nodes:
        if isinstance(node, BlockNode):
            if node.name in active:
                body = node.body
            else:
                body = _substitute_blocks(merged.get(node.name, node.body), merged, active | {node.name})
            result.append(BlockNode(name=node.name, body=body))
        elif isinstance(node, IfNode):
            else_body = None if node.else_body is None else _substitute_blocks(node.else_body, merged, active)
            result.append(IfNode(
                condition=node.condition,
                body=_substitute_blocks(node.body, merged, active),
                else_body=else_body,
            ))
        elif isinstance(node, ForNode):
            else_body = None if node.else_body is None else _substitute_blocks(node.else_body, merged, active)
            result.append(ForNode(
                iterable=node.iterable,
                item=node.item,
                body=_substitute_blocks(node.body, merged, active),
                else_body=else_body,
            ))
        else:
            result.append(node)
    return result


__all__ = ["TemplateRenderer", "TemplateSource", "FilterApplier", "iter_collection", "include_error_comment"]
