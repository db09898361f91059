"""
Template parser.

Turns the lexer's token sequence into an AST with recursive descent:
every opener (``if``, ``for``, ``block``) parses its own body until its
matching closer and hands control back to the caller. Stray or mismatched
closers are syntax errors, never silently absorbed.
"""

from __future__ import annotations

import re
from typing import Dict, FrozenSet, List, Optional, Tuple

from .errors import TemplateSyntaxError
from .lexer import tokenize_template
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
from .tokens import Token, TokenType

_PATH_RE = re.compile(r"^[A-Za-z_]\w*(?:\.\w+)*$")
_NAME_RE = re.compile(r"^[A-Za-z_]\w*$")
_BLOCK_NAME_RE = re.compile(r"^[A-Za-z_][\w\-]*$")
_FOR_IN_RE = re.compile(r"^([A-Za-z_]\w*) in ([A-Za-z_]\w*(?:\.\w+)*)$")
_FOR_AS_RE = re.compile(r"^([A-Za-z_]\w*(?:\.\w+)*) as ([A-Za-z_]\w*)$")
_INCLUDE_RE = re.compile(
    r"""^(["'])(?P<template>.+?)\1(?: with (?P<source>[A-Za-z_]\w*(?:\.\w+)*) as (?P<alias>[A-Za-z_]\w*))?$"""
)
_QUOTED_RE = re.compile(r"""^(["'])(.*)\1$""", re.DOTALL)

CLOSING_COMMANDS: FrozenSet[str] = frozenset({"endif", "endfor", "endblock", "else"})
_COMPARISON_OPERATORS = ("==", "!=")


class TemplateParser:
    """
    Recursive-descent parser for template tokens.

    Produces a ParsedTemplate: the node list, the parent template name
    (when the first statement is ``extends``) and an index of every block.
    """

    def __init__(self, tokens: List[Token], template_name: str = ""):
        self.tokens = tokens
        self.template_name = template_name
        self.position = 0

        self._blocks: Dict[str, List[TemplateNode]] = {}
        self._parent: Optional[str] = None
        self._depth = 0
        self._seen_statement = False

    def parse(self) -> ParsedTemplate:
        """
        Parse the whole token sequence.

        Raises:
            TemplateSyntaxError: On any syntax error
        """
        nodes, _ = self._parse_nodes(opener=None, closers=frozenset())
        return ParsedTemplate(
            nodes=nodes,
            parent_template=self._parent,
            blocks=self._blocks,
            name=self.template_name,
        )

    # ------------------------------------------------------------------ #
    # Node sequences
    # ------------------------------------------------------------------ #

    def _parse_nodes(
        self,
        opener: Optional[Token],
        closers: FrozenSet[str],
    ) -> Tuple[List[TemplateNode], Optional[Token]]:
        """
        Parse nodes until one of ``closers`` (consumed and returned) or EOF.

        EOF is only legal at top level (``opener is None``).
        """
        nodes: List[TemplateNode] = []

        while not self._is_at_end():
            token = self._advance()

            if token.type == TokenType.TEXT:
                nodes.append(TextNode(text=token.value))
                if token.value.strip():
                    self._seen_statement = True
                continue

            if token.type == TokenType.VARIABLE:
                nodes.append(self._parse_variable(token.value, token))
                self._seen_statement = True
                continue

            command = token.command
            if command in CLOSING_COMMANDS:
                if command in closers:
                    return nodes, token
                raise self._error(f"Unexpected closing tag '{command}'", token)

            node = self._parse_block_command(token)
            nodes.append(node)

        if opener is not None:
            expected = " or ".join(f"{{% {c} %}}" for c in sorted(closers))
            raise self._error(
                f"Unclosed '{opener.command}' tag, expected {expected}", opener
            )
        return nodes, None

    def _parse_block_command(self, token: Token) -> TemplateNode:
        """Dispatch a BLOCK token on its first word."""
        command = token.command

        if not command:
            raise self._error("Empty block tag", token)
        if command == "extends":
            return self._parse_extends(token)

        self._seen_statement = True

        if command == "block":
            return self._parse_block(token)
        if command == "if":
            return self._parse_if(token)
        if command == "for":
            return self._parse_for(token)
        if command == "include":
            return self._parse_include(token)

        raise self._error(f"Unknown block command '{command}'", token)

    # ------------------------------------------------------------------ #
    # Block commands
    # ------------------------------------------------------------------ #

    def _parse_extends(self, token: Token) -> ExtendsNode:
        if self._parent is not None:
            raise self._error("A template may only extend one parent", token)
        if self._depth > 0 or self._seen_statement:
            raise self._error("'extends' must be the first statement of the template", token)

        template = _unquote(token.args.strip())
        if not template:
            raise self._error("'extends' requires a template name", token)

        self._parent = template
        self._seen_statement = True
        return ExtendsNode(template=template)

    def _parse_block(self, token: Token) -> BlockNode:
        name = token.args.strip()
        if not _BLOCK_NAME_RE.match(name):
            raise self._error(f"Invalid block name '{name}'", token)
        if name in self._blocks:
            raise self._error(f"Block '{name}' defined more than once", token)

        body, closer = self._parse_body(token, frozenset({"endblock"}))
        assert closer is not None

        end_name = closer.args.strip()
        if end_name and end_name != name:
            raise self._error(
                f"Mismatched 'endblock {end_name}', expected 'endblock {name}'", closer
            )

        self._blocks[name] = body
        return BlockNode(name=name, body=body)

    def _parse_if(self, token: Token) -> IfNode:
        expression = token.args.strip()
        if not expression:
            raise self._error("'if' requires a condition", token)
        condition = self._parse_condition(expression, token)

        body, closer = self._parse_body(token, frozenset({"else", "endif"}))
        assert closer is not None

        else_body: Optional[List[TemplateNode]] = None
        if closer.command == "else":
            self._expect_no_args(closer)
            else_body, closer = self._parse_body(token, frozenset({"endif"}))
            assert closer is not None

        self._expect_no_args(closer)
        return IfNode(condition=condition, body=body, else_body=else_body)

    def _parse_for(self, token: Token) -> ForNode:
        expression = token.args.strip()

        match = _FOR_IN_RE.match(expression)
        if match:
            item, iterable = match.group(1), match.group(2)
        else:
            match = _FOR_AS_RE.match(expression)
            if not match:
                raise self._error(f"Invalid for loop syntax: '{expression}'", token)
            iterable, item = match.group(1), match.group(2)

        body, closer = self._parse_body(token, frozenset({"else", "endfor"}))
        assert closer is not None

        else_body: Optional[List[TemplateNode]] = None
        if closer.command == "else":
            self._expect_no_args(closer)
            else_body, closer = self._parse_body(token, frozenset({"endfor"}))
            assert closer is not None

        self._expect_no_args(closer)
        return ForNode(iterable=iterable, item=item, body=body, else_body=else_body)

    def _parse_include(self, token: Token) -> IncludeNode:
        match = _INCLUDE_RE.match(token.args.strip())
        if not match:
            raise self._error(f"Invalid include syntax: '{token.args}'", token)
        return IncludeNode(
            template=match.group("template"),
            data_source=match.group("source"),
            alias=match.group("alias"),
        )

    def _parse_body(
        self, opener: Token, closers: FrozenSet[str]
    ) -> Tuple[List[TemplateNode], Optional[Token]]:
        self._depth += 1
        try:
            return self._parse_nodes(opener, closers)
        finally:
            self._depth -= 1

    def _expect_no_args(self, token: Token) -> None:
        if token.args.strip():
            raise self._error(f"'{token.command}' takes no arguments", token)

    # ------------------------------------------------------------------ #
    # Expressions
    # ------------------------------------------------------------------ #

    def _parse_variable(self, expression: str, token: Token) -> VariableNode:
        """
        Parse ``path[ | filter[:arg[:arg...]] ...]``.

        The base is either a dotted path or a quoted string literal.
        """
        parts = split_outside_quotes(expression, "|")
        base = parts[0].strip()
        if not base:
            raise self._error("Empty variable expression", token)

        filters = [self._parse_filter(part.strip(), token) for part in parts[1:]]

        quoted = _QUOTED_RE.match(base)
        if quoted:
            return VariableNode(name="", path=[], filters=filters, literal=quoted.group(2))

        if not _PATH_RE.match(base):
            raise self._error(f"Invalid variable path '{base}'", token)

        name, *path = base.split(".")
        return VariableNode(name=name, path=path, filters=filters)

    def _parse_filter(self, clause: str, token: Token) -> FilterCall:
        pieces = split_outside_quotes(clause, ":")
        name = pieces[0].strip()
        if not _NAME_RE.match(name):
            raise self._error(f"Invalid filter name '{name}'", token)
        args = [_unquote(piece.strip()) for piece in pieces[1:]]
        return FilterCall(name=name, args=args)

    def _parse_condition(self, expression: str, token: Token) -> Condition:
        """``path == "literal"``, ``path != "literal"`` or a bare path (truthiness)."""
        found = find_operator(expression, _COMPARISON_OPERATORS)
        if found is None:
            return TruthinessCondition(expr=self._parse_variable(expression, token))

        operator, index = found
        left = expression[:index].strip()
        right = _unquote(expression[index + len(operator):].strip())
        if not left:
            raise self._error(f"Missing left operand for '{operator}'", token)

        return ComparisonCondition(
            operator=operator,
            left=self._parse_variable(left, token),
            right=right,
        )

    # ------------------------------------------------------------------ #
    # Cursor helpers
    # ------------------------------------------------------------------ #

    def _is_at_end(self) -> bool:
        return self.position >= len(self.tokens)

    def _advance(self) -> Token:
        token = self.tokens[self.position]
        self.position += 1
        return token

    def _error(self, message: str, token: Token) -> TemplateSyntaxError:
        return TemplateSyntaxError(
            message,
            token.start,
            tag=token.command if token.type == TokenType.BLOCK else token.value,
            template_name=self.template_name,
            line=token.line,
            column=token.column,
        )


def split_outside_quotes(text: str, separator: str) -> List[str]:
    """Split on a single-character separator, ignoring separators inside quotes."""
    parts: List[str] = []
    current: List[str] = []
    quote: Optional[str] = None

    for char in text:
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char == separator:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)

    parts.append("".join(current))
    return parts


def find_operator(text: str, operators: Tuple[str, ...]) -> Optional[Tuple[str, int]]:
    """Find the first of ``operators`` outside quotes; return (operator, index)."""
    quote: Optional[str] = None
    for index, char in enumerate(text):
        if quote:
            if char == quote:
                quote = None
            continue
        if char in "\"'":
            quote = char
            continue
        for operator in operators:
            if text.startswith(operator, index):
                return operator, index
    return None


def _unquote(value: str) -> str:
    match = _QUOTED_RE.match(value)
    return match.group(2) if match else value


def parse_template(text: str, template_name: str = "") -> ParsedTemplate:
    """
    Convenience function: tokenize and parse template source.

    Args:
        text: Template source text
        template_name: Optional name for diagnostics

    Returns:
        Parsed template

    Raises:
        TemplateSyntaxError: On lexical or syntax errors
    """
    tokens = tokenize_template(text, template_name)
    return TemplateParser(tokens, template_name).parse()


__all__ = [
    "TemplateParser",
    "parse_template",
    "split_outside_quotes",
    "find_operator",
    "CLOSING_COMMANDS",
]
