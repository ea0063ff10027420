"""Usage pattern extraction.

Counts recurring constructs (imports, declarations, ``Type.method(...)``
calls) across documentation and code examples.
"""

import logging
import re
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Sequence

from scully.models import CodeExample, DocumentationArtifact, UsagePattern

logger = logging.getLogger(__name__)

MAX_PATTERN_EXAMPLES = 5

_CALL = re.compile(r"([A-Za-z_][\w.]*?)\.([A-Za-z_]\w*)\s*\(")

DESCRIPTIONS = {
    "import statement": "How to import the module",
    "initializer": "Object initialization patterns",
    "constant declaration": "Creating constants with let",
    "variable declaration": "Creating variables with var",
}


def describe(pattern: str) -> str:
    if pattern in DESCRIPTIONS:
        return DESCRIPTIONS[pattern]
    if pattern.startswith("import "):
        return f"Importing {pattern[len('import '):]}"
    if "." in pattern:
        return f"Usage of {pattern} API"
    return "Common usage pattern"


class PatternExtractor:
    """Extracts common usage patterns from documentation and examples."""

    def __init__(self):
        self._counts: Counter = Counter()
        self._examples: Dict[str, List[str]] = defaultdict(list)

    def extract_patterns(
        self,
        documentation: DocumentationArtifact,
        examples: Sequence[CodeExample] = (),
        threshold: int = 2,
    ) -> List[UsagePattern]:
        """
        Find patterns that occur at least ``threshold`` times.

        Args:
            documentation: Package documentation
            examples: Code examples for the same package
            threshold: Minimum number of occurrences

        Returns:
            Patterns by descending frequency, first seen first on ties
        """
        logger.info("Extracting patterns for %s", documentation.package_name)
        self._counts = Counter()
        self._examples = defaultdict(list)

        for line in self._code_lines(documentation.content):
            self._scan_line(line, source=line)
        for example in examples:
            for line in example.code.splitlines():
                stripped = line.strip()
                if stripped and not stripped.startswith("//"):
                    self._scan_line(stripped, source=example.title)

        # Counter.most_common keeps insertion order for equal counts
        return [
            UsagePattern(
                package_name=documentation.package_name,
                pattern=pattern,
                frequency=count,
                examples=self._examples[pattern][:MAX_PATTERN_EXAMPLES],
                description=describe(pattern),
            )
            for pattern, count in self._counts.most_common()
            if count >= threshold
        ]

    @staticmethod
    def _code_lines(content: str) -> List[str]:
        """Lines inside fenced code blocks, or every line when there are none."""
        lines = [line.strip() for line in content.splitlines()]
        fenced: List[str] = []
        in_block = False
        for line in lines:
            if line.startswith("```"):
                in_block = not in_block
                continue
            if in_block and line:
                fenced.append(line)
        return fenced or [line for line in lines if line and not line.startswith("```")]

    def _record(self, pattern: str, source: str) -> None:
        self._counts[pattern] += 1
        if source not in self._examples[pattern]:
            self._examples[pattern].append(source)

    def _scan_line(self, line: str, source: str) -> None:
        if line.startswith("import "):
            module = line[len("import "):].strip()
            if module:
                self._record(f"import {module}", source)
            return

        declaration = self._declaration(line)
        if declaration:
            self._record(declaration, source)

        if "init(" in line:
            self._record("initializer", source)

        call = _CALL.search(line)
        if call:
            self._record(f"{call.group(1)}.{call.group(2)}", source)

    @staticmethod
    def _declaration(line: str) -> Optional[str]:
        if line.startswith("let "):
            return "constant declaration"
        if line.startswith("var "):
            return "variable declaration"
        return None
