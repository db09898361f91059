"""
AST <-> JSON-safe dictionaries.

Every node becomes a dict with a ``type`` discriminator. Used by the
compilation cache to persist ParsedTemplate instances.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from .nodes import (
    BlockNode,
    ComparisonCondition,
    Condition,
    ExtendsNode,
    FilterCall,
    ForNode,
    IfNode,
    IncludeNode,
    ParsedTemplate,
    TemplateNode,
    TextNode,
    TruthinessCondition,
    VariableNode,
)


class SerializationError(ValueError):
    """Malformed serialized AST."""
    pass


# ----------------------------- encoding ----------------------------- #

def dump_variable(node: VariableNode) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "type": "variable",
        "name": node.name,
        "path": list(node.path),
        "filters": [{"name": f.name, "args": list(f.args)} for f in node.filters],
    }
    if node.literal is not None:
        data["literal"] = node.literal
    return data


def dump_condition(condition: Condition) -> Dict[str, Any]:
    if isinstance(condition, ComparisonCondition):
        return {
            "type": "comparison",
            "operator": condition.operator,
            "left": dump_variable(condition.left),
            "right": condition.right,
        }
    if isinstance(condition, TruthinessCondition):
        return {"type": "truthiness", "expr": dump_variable(condition.expr)}
    raise SerializationError(f"Unsupported condition: {type(condition).__name__}")


def dump_node(node: TemplateNode) -> Dict[str, Any]:
    if isinstance(node, TextNode):
        return {"type": "text", "text": node.text}
    if isinstance(node, VariableNode):
        return dump_variable(node)
    if isinstance(node, IfNode):
        return {
            "type": "if",
            "condition": dump_condition(node.condition),
            "body": dump_nodes(node.body),
            "else_body": None if node.else_body is None else dump_nodes(node.else_body),
        }
    if isinstance(node, ForNode):
        return {
            "type": "for",
            "iterable": node.iterable,
            "item": node.item,
            "body": dump_nodes(node.body),
            "else_body": None if node.else_body is None else dump_nodes(node.else_body),
        }
    if isinstance(node, BlockNode):
        return {"type": "block", "name": node.name, "body": dump_nodes(node.body)}
    if isinstance(node, IncludeNode):
        return {
            "type": "include",
            "template": node.template,
            "data_source": node.data_source,
            "alias": node.alias,
        }
    if isinstance(node, ExtendsNode):
        return {"type": "extends", "template": node.template}
    raise SerializationError(f"Unsupported node: {type(node).__name__}")


def dump_nodes(nodes: List[TemplateNode]) -> List[Dict[str, Any]]:
    return [dump_node(n) for n in nodes]


def dump_template(parsed: ParsedTemplate) -> Dict[str, Any]:
    """Serialize a ParsedTemplate (block index included)."""
    return {
        "name": parsed.name,
        "parent_template": parsed.parent_template,
        "nodes": dump_nodes(parsed.nodes),
        "blocks": {name: dump_nodes(body) for name, body in parsed.blocks.items()},
    }


# ----------------------------- decoding ----------------------------- #

def load_variable(data: Dict[str, Any]) -> VariableNode:
    return VariableNode(
        name=data["name"],
        path=list(data.get("path", [])),
        filters=[FilterCall(name=f["name"], args=list(f.get("args", []))) for f in data.get("filters", [])],
        literal=data.get("literal"),
    )


def load_condition(data: Dict[str, Any]) -> Condition:
    kind = data.get("type")
    if kind == "comparison":
        return ComparisonCondition(
            operator=data["operator"],
            left=load_variable(data["left"]),
            right=data["right"],
        )
    if kind == "truthiness":
        return TruthinessCondition(expr=load_variable(data["expr"]))
    raise SerializationError(f"Unknown condition type: {kind!r}")


def _load_else(data: Dict[str, Any]) -> Optional[List[TemplateNode]]:
    if data.get("else_body") is None:
        return None
    return load_nodes(data["else_body"])


def _load_if(data: Dict[str, Any]) -> IfNode:
    return IfNode(condition=load_condition(data["condition"]), body=load_nodes(data["body"]), else_body=_load_else(data))


def _load_for(data: Dict[str, Any]) -> ForNode:
    return ForNode(iterable=data["iterable"], item=data["item"], body=load_nodes(data["body"]), else_body=_load_else(data))


_LOADERS: Dict[str, Callable[[Dict[str, Any]], TemplateNode]] = {
    "text": lambda d: TextNode(text=d["text"]),
    "variable": load_variable,
    "if": _load_if,
    "for": _load_for,
    "block": lambda d: BlockNode(name=d["name"], body=load_nodes(d["body"])),
    "include": lambda d: IncludeNode(
        template=d["template"], data_source=d.get("data_source"), alias=d.get("alias")
    ),
    "extends": lambda d: ExtendsNode(template=d["template"]),
}


def load_node(data: Dict[str, Any]) -> TemplateNode:
    if not isinstance(data, dict):
        raise SerializationError(f"Node must be an object, got {type(data).__name__}")
    kind = data.get("type", "")
    loader = _LOADERS.get(kind) if isinstance(kind, str) else None
    if loader is None:
        raise SerializationError(f"Unknown node type: {kind!r}")
    try:
        return loader(data)
    except KeyError as e:
        raise SerializationError(f"Missing field {e} in {kind} node") from e
    except (TypeError, AttributeError) as e:
        raise SerializationError(f"Malformed {kind} node: {e}") from e


def load_nodes(items: List[Dict[str, Any]]) -> List[TemplateNode]:
    if not isinstance(items, list):
        raise SerializationError("Node sequence must be a list")
    return [load_node(item) for item in items]


def load_template(data: Dict[str, Any]) -> ParsedTemplate:
    """
    Rebuild a ParsedTemplate from dump_template() output.

    Raises:
        SerializationError: On any structural problem
    """
    if not isinstance(data, dict):
        raise SerializationError("Template payload must be an object")
    blocks = data.get("blocks", {})
    if not isinstance(blocks, dict):
        raise SerializationError("Block index must be an object")
    return ParsedTemplate(
        nodes=load_nodes(data.get("nodes", [])),
        parent_template=data.get("parent_template"),
        blocks={name: load_nodes(body) for name, body in blocks.items()},
        name=data.get("name", ""),
    )


__all__ = ["dump_template", "load_template", "dump_node", "load_node", "SerializationError"]
