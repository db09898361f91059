"""
Template compilation with dependency discovery.

Compiling a template parses its source and walks every ``extends`` and
``include`` reference transitively, so the cache can invalidate the
entry when any of those files changes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Set

from .errors import TemplateSyntaxError
from .loader import TemplatePathResolver
from .nodes import IncludeNode, ParsedTemplate, walk
from .parser import parse_template

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledTemplate:
    """Parsed template plus the files it was built from."""
    parsed: ParsedTemplate
    source_path: Path
    dependencies: List[Path] = field(default_factory=list)


def referenced_templates(parsed: ParsedTemplate) -> List[str]:
    """Names of templates referenced by ``extends`` and ``include``, in source order."""
    names: List[str] = []
    if parsed.parent_template:
        names.append(parsed.parent_template)
    for node in walk(parsed.nodes):
        if isinstance(node, IncludeNode) and node.template not in names:
            names.append(node.template)
    return names


class TemplateCompiler:
    """Reads template files through the path resolver and parses them."""

    def __init__(self, resolver: TemplatePathResolver):
        self.resolver = resolver

    def parse_file(self, name: str, path: Path) -> ParsedTemplate:
        text = path.read_text(encoding="utf-8")
        return parse_template(text, name)

    def compile(self, name: str) -> CompiledTemplate:
        """
        Compile one template and discover its dependencies.

        Args:
            name: Template name (resolved through the search paths)

        Returns:
            Compiled template with the transitive dependency paths

        Raises:
            TemplateNotFoundError: If the template itself does not exist
            TemplateSyntaxError: If the template itself does not parse
        """
        started = time.perf_counter()
        source_path = self.resolver.resolve(name)
        parsed = self.parse_file(name, source_path)
        dependencies = self._discover(parsed, source_path)

        logger.debug(
            "Compiled %s in %.1f ms (%d dependencies)",
            name, (time.perf_counter() - started) * 1000, len(dependencies),
        )
        return CompiledTemplate(parsed=parsed, source_path=source_path, dependencies=dependencies)

    def _discover(self, parsed: ParsedTemplate, source_path: Path) -> List[Path]:
        visited: Set[Path] = {source_path}
        dependencies: List[Path] = []
        pending = [parsed]

        while pending:
            current = pending.pop()
            for ref in referenced_templates(current):
                path = self.resolver.find(ref)
                if path is None:
                    logger.debug("Dependency %r of %s not found, skipped", ref, current.name or source_path)
                    continue
                if path in visited:
                    continue
                visited.add(path)
                dependencies.append(path)
                logger.debug("Discovered dependency %s -> %s", current.name or source_path, ref)
                try:
                    pending.append(self.parse_file(ref, path))
                except (OSError, UnicodeDecodeError, TemplateSyntaxError) as e:
                    # still tracked: fixing the file must invalidate the entry
                    logger.debug("Dependency %s not parsed: %s", ref, e)

        return dependencies


__all__ = ["TemplateCompiler", "CompiledTemplate", "referenced_templates"]
