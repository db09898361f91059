"""
Variable resolution.

A VariableResolver is created per render call and owns the loop-context
stack for that call. Lookups never raise: a missing path resolves to None.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from .nodes import ComparisonCondition, Condition, TruthinessCondition, VariableNode

_MISSING = object()


class VariableResolver:
    """
    Resolves dotted paths against loop frames and the top-level data.

    The root segment is looked up in loop frames from innermost to
    outermost; the first frame binding it wins even when the bound value
    is falsy. Without a binding the top-level data is used.
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self.data: Mapping[str, Any] = data if data is not None else {}
        self._frames: List[Dict[str, Any]] = []

    # ---------------------------- loop stack ---------------------------- #

    @property
    def depth(self) -> int:
        return len(self._frames)

    def push_frame(self, bindings: Dict[str, Any]) -> None:
        self._frames.append(dict(bindings))

    def pop_frame(self) -> Dict[str, Any]:
        return self._frames.pop()

    @contextmanager
    def loop_frame(self, bindings: Dict[str, Any]) -> Iterator[None]:
        """Bind names for the duration of one loop iteration."""
        self.push_frame(bindings)
        try:
            yield
        finally:
            self.pop_frame()

    def bindings(self) -> Dict[str, Any]:
        """Flattened view of all loop frames (inner frames shadow outer ones)."""
        merged: Dict[str, Any] = {}
        for frame in self._frames:
            merged.update(frame)
        return merged

    # ---------------------------- lookups ---------------------------- #

    def resolve(self, dotted_path: str) -> Any:
        """Resolve ``a.b.c``; returns None on any miss."""
        name, *path = dotted_path.strip().split(".")
        return self.resolve_parts(name, path)

    def resolve_variable(self, variable: VariableNode) -> Any:
        if variable.is_literal:
            return variable.literal
        return self.resolve_parts(variable.name, variable.path)

    def resolve_parts(self, name: str, path: Sequence[str]) -> Any:
        if not name or name.startswith("_"):
            return None

        value = _MISSING
        for frame in reversed(self._frames):
            if name in frame:
                value = frame[name]
                break

        if value is _MISSING:
            value = lookup_segment(self.data, name)

        for segment in path:
            if value is None:
                return None
            value = lookup_segment(value, segment)

        return value

    # ---------------------------- conditions ---------------------------- #

    def evaluate_condition(self, expression: str) -> bool:
        """Truthiness of a bare dotted path."""
        return is_truthy(self.resolve(expression))

    def evaluate(self, condition: Condition, value: Any = _MISSING) -> bool:
        """
        Evaluate a parsed condition.

        ``value`` lets the caller pass the already-resolved (and filtered)
        left-hand value; otherwise it is resolved from the condition.
        """
        if isinstance(condition, TruthinessCondition):
            if value is _MISSING:
                value = self.resolve_variable(condition.expr)
            return is_truthy(value)

        if isinstance(condition, ComparisonCondition):
            if value is _MISSING:
                value = self.resolve_variable(condition.left)
            equal = stringify(value) == condition.right
            return equal if condition.operator == "==" else not equal

        raise TypeError(f"Unsupported condition type: {type(condition).__name__}")


def lookup_segment(value: Any, segment: str) -> Any:
    """
    One traversal step: mapping key, sequence index, attribute, then
    zero-argument method. Private names never resolve.
    """
    if segment.startswith("_"):
        return None

    if isinstance(value, Mapping):
        if segment in value:
            return value[segment]
        if segment.isdigit() and int(segment) in value:
            return value[int(segment)]
        return None

    if segment.isdigit() and isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        index = int(segment)
        return value[index] if index < len(value) else None

    attr = getattr(value, segment, _MISSING)
    if attr is _MISSING:
        return None
    if callable(attr):
        try:
            return attr()
        except TypeError:
            # accessor that requires arguments
            return None
    return attr


def is_truthy(value: Any) -> bool:
    """Empty collections, None, empty strings and zero are false."""
    if value is None:
        return False
    if isinstance(value, (str, bytes)):
        return len(value) > 0
    if isinstance(value, (Mapping, Sequence, set, frozenset)):
        return len(value) > 0
    return bool(value)


def stringify(value: Any) -> str:
    """Render a resolved value as text (None -> "", booleans lowercase)."""
    if value is None:
        return ""
    if value is True:
        return "true"
    if value is False:
        return "false"
    return str(value)


__all__ = ["VariableResolver", "lookup_segment", "is_truthy", "stringify"]
