"""
AST nodes.

Immutable node classes forming the parsed template tree, plus the
ParsedTemplate artifact produced by the parser and stored by the cache.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional


@dataclass(frozen=True)
class TemplateNode:
    """Base class for all template AST nodes."""

    def child_lists(self) -> List[List[TemplateNode]]:
        """Nested node sequences owned by this node (empty for leaves)."""
        return []


@dataclass(frozen=True)
class TextNode(TemplateNode):
    """Static text emitted unchanged."""
    text: str


@dataclass(frozen=True)
class FilterCall:
    """One entry of a filter chain: ``name:arg:arg``."""
    name: str
    args: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class VariableNode(TemplateNode):
    """
    Output of a dotted-path expression through a filter chain.

    ``literal`` is set instead of a path for quoted string expressions
    such as ``{{ "nav.home" | t }}``.
    """
    name: str
    path: List[str] = field(default_factory=list)
    filters: List[FilterCall] = field(default_factory=list)
    literal: Optional[str] = None

    @property
    def dotted(self) -> str:
        """Full dotted path as written in the template."""
        return ".".join([self.name, *self.path])

    @property
    def is_literal(self) -> bool:
        return self.literal is not None


@dataclass(frozen=True)
class Condition:
    """Base class of ``if`` conditions."""
    pass


@dataclass(frozen=True)
class ComparisonCondition(Condition):
    """``left == "literal"`` (or ``!=``)."""
    operator: str
    left: VariableNode
    right: str


@dataclass(frozen=True)
class TruthinessCondition(Condition):
    """Bare path: true when the resolved value is truthy."""
    expr: VariableNode


@dataclass(frozen=True)
class IfNode(TemplateNode):
    condition: Condition
    body: List[TemplateNode] = field(default_factory=list)
    else_body: Optional[List[TemplateNode]] = None

    def child_lists(self) -> List[List[TemplateNode]]:
        return [self.body] if self.else_body is None else [self.body, self.else_body]


@dataclass(frozen=True)
class ForNode(TemplateNode):
    """Both ``for item in expr`` and ``for expr as item`` normalize to this node."""
    iterable: str
    item: str
    body: List[TemplateNode] = field(default_factory=list)
    # rendered when the collection is empty
    else_body: Optional[List[TemplateNode]] = None

    def child_lists(self) -> List[List[TemplateNode]]:
        return [self.body] if self.else_body is None else [self.body, self.else_body]


@dataclass(frozen=True)
class BlockNode(TemplateNode):
    """Named, overridable region used by template inheritance."""
    name: str
    body: List[TemplateNode] = field(default_factory=list)

    def child_lists(self) -> List[List[TemplateNode]]:
        return [self.body]


@dataclass(frozen=True)
class IncludeNode(TemplateNode):
    template: str
    data_source: Optional[str] = None
    alias: Optional[str] = None


@dataclass(frozen=True)
class ExtendsNode(TemplateNode):
    template: str


@dataclass(frozen=True)
class ParsedTemplate:
    """
    Compiled artifact of one template source.

    ``blocks`` indexes every BlockNode found anywhere in the tree by name.
    The mapping is read-only; re-parsing always produces a new instance.
    """
    nodes: List[TemplateNode]
    parent_template: Optional[str] = None
    blocks: Mapping[str, List[TemplateNode]] = field(default_factory=dict)
    name: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.blocks, MappingProxyType):
            object.__setattr__(self, "blocks", MappingProxyType(dict(self.blocks)))

    @property
    def has_parent(self) -> bool:
        return self.parent_template is not None

    def block_dict(self) -> Dict[str, List[TemplateNode]]:
        """Mutable copy of the block index (for merging)."""
        return dict(self.blocks)


def walk(nodes: List[TemplateNode]) -> Iterator[TemplateNode]:
    """Depth-first iteration over every node of a tree, in source order."""
    for node in nodes:
        yield node
        for children in node.child_lists():
            yield from walk(children)


__all__ = [
    "TemplateNode",
    "TextNode",
    "FilterCall",
    "VariableNode",
    "Condition",
    "ComparisonCondition",
    "TruthinessCondition",
    "IfNode",
    "ForNode",
    "BlockNode",
    "IncludeNode",
    "ExtendsNode",
    "ParsedTemplate",
    "walk",
]
