"""Glob-style path patterns for repository file trees.

Patterns are compiled from three token kinds: literal text, ``*`` (any run
of characters inside one path segment) and ``**`` (any number of
segments). Literal text is escaped before it reaches the regex engine, so
repository paths and patterns can never inject regex syntax.
"""

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Callable, Iterable, List

PathMatcher = Callable[[str], bool]


class TokenKind(Enum):
    LITERAL = "literal"
    STAR = "star"
    GLOBSTAR = "globstar"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str = ""


def tokenize(pattern: str) -> List[Token]:
    """Split a glob pattern into literal, ``*`` and ``**`` tokens."""
    tokens: List[Token] = []
    literal: List[str] = []
    i = 0
    while i < len(pattern):
        if pattern[i] == "*":
            if literal:
                tokens.append(Token(TokenKind.LITERAL, "".join(literal)))
                literal = []
            if pattern.startswith("**", i):
                tokens.append(Token(TokenKind.GLOBSTAR))
                i += 2
                # Collapse runs like "***"
                while i < len(pattern) and pattern[i] == "*":
                    i += 1
            else:
                tokens.append(Token(TokenKind.STAR))
                i += 1
        else:
            literal.append(pattern[i])
            i += 1
    if literal:
        tokens.append(Token(TokenKind.LITERAL, "".join(literal)))
    return tokens


def _to_regex(tokens: List[Token]) -> str:
    parts: List[str] = []
    skip_slash = False
    for index, token in enumerate(tokens):
        if token.kind == TokenKind.LITERAL:
            text = token.text
            if skip_slash and text.startswith("/"):
                text = text[1:]
            skip_slash = False
            parts.append(re.escape(text))
        elif token.kind == TokenKind.STAR:
            skip_slash = False
            parts.append("[^/]*")
        else:
            following = tokens[index + 1] if index + 1 < len(tokens) else None
            if following is not None and following.kind == TokenKind.LITERAL and following.text.startswith("/"):
                # "**/" matches zero or more whole directories
                parts.append("(?:[^/]+/)*")
                skip_slash = True
            else:
                parts.append(".*")
    return "".join(parts)


@lru_cache(maxsize=128)
def compile_pattern(pattern: str) -> PathMatcher:
    """Compile a glob pattern into a full-path matcher.

    >>> compile_pattern("Examples/*.swift")("Examples/Foo.swift")
    True
    >>> compile_pattern("Examples/*.swift")("Examples/sub/Foo.swift")
    False
    >>> compile_pattern("Examples/**/*.swift")("Examples/sub/Foo.swift")
    True
    """
    regex = re.compile(_to_regex(tokenize(pattern)))

    def matches(path: str) -> bool:
        return regex.fullmatch(path) is not None

    return matches


def matches_any(path: str, patterns: Iterable[str]) -> bool:
    """Check a path against several glob patterns."""
    return any(compile_pattern(pattern)(path) for pattern in patterns)
