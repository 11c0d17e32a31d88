"""
Tokenization of JavaScript-like source text built on the Python `esprima` port.

esprima performs the character-level scanning (strings, template chunks,
regular expressions, comments, numbers). This module maps its token entries
onto the engine's own immutable `Token` records, classifies keywords and the
scope-relevant punctuation, and converts scanner failures into `LexError`.

Because esprima isolates string, template and comment contents into single
tokens, braces or keywords inside them can never reach the scope builder.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple

import esprima

logger = logging.getLogger(__name__)


class TokenKind(str, Enum):
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    PUNCTUATION = "punctuation"
    OPERATOR = "operator"
    STRING = "string"
    NUMBER = "number"
    REGEX = "regex"
    COMMENT = "comment"
    END = "end"


KEYWORDS = frozenset(
    {
        "await",
        "break",
        "case",
        "catch",
        "class",
        "const",
        "continue",
        "debugger",
        "default",
        "delete",
        "do",
        "else",
        "enum",
        "export",
        "extends",
        "false",
        "finally",
        "for",
        "function",
        "if",
        "import",
        "in",
        "instanceof",
        "let",
        "new",
        "null",
        "return",
        "super",
        "switch",
        "this",
        "throw",
        "true",
        "try",
        "typeof",
        "var",
        "void",
        "while",
        "with",
        "yield",
    }
)

PUNCTUATION = frozenset({"{", "}", "(", ")", ",", ";"})

_LINE_TERMINATORS = ("\n", "\r", "\u2028", "\u2029")

_KIND_BY_ESPRIMA_TYPE = {
    "Identifier": TokenKind.IDENTIFIER,
    "Keyword": TokenKind.KEYWORD,
    "Boolean": TokenKind.KEYWORD,
    "Null": TokenKind.KEYWORD,
    "Punctuator": TokenKind.OPERATOR,
    "String": TokenKind.STRING,
    "Template": TokenKind.STRING,
    "Numeric": TokenKind.NUMBER,
    "RegularExpression": TokenKind.REGEX,
    "LineComment": TokenKind.COMMENT,
    "BlockComment": TokenKind.COMMENT,
}


class AnalysisError(RuntimeError):
    """Base class for failures located at an offset in the analysed source."""

    def __init__(self, position: int, reason: str):
        super().__init__(f"{reason} (offset {position})")
        self.position = position
        self.reason = reason


class LexError(AnalysisError):
    """Raised when the source cannot be split into tokens."""


class TokenBudgetExceeded(LexError):
    """Raised when tokenization produces more tokens than the caller allowed."""

    def __init__(self, position: int, limit: int):
        super().__init__(position, f"token budget of {limit} exceeded")
        self.limit = limit


@dataclass(frozen=True)
class Token:
    """A single lexeme with its half-open `[start, end)` source range."""

    kind: TokenKind
    lexeme: str
    start: int
    end: int
    line_break_before: bool = False

    def is_punct(self, lexeme: str) -> bool:
        return self.kind in (TokenKind.PUNCTUATION, TokenKind.OPERATOR) and self.lexeme == lexeme

    def is_keyword(self, *lexemes: str) -> bool:
        return self.kind == TokenKind.KEYWORD and self.lexeme in lexemes


def line_column(source: str, offset: int) -> Tuple[int, int]:
    """Convert an offset into a 1-based line and 0-based column."""
    offset = max(0, min(offset, len(source)))
    line = source.count("\n", 0, offset) + 1
    line_start = source.rfind("\n", 0, offset) + 1
    return line, offset - line_start


def _classify(raw: Dict[str, Any], lexeme: str) -> TokenKind:
    kind = _KIND_BY_ESPRIMA_TYPE.get(raw.get("type"))
    if kind is None:
        raise ValueError(f"unsupported token type {raw.get('type')!r}")
    if kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD):
        return TokenKind.KEYWORD if lexeme in KEYWORDS else TokenKind.IDENTIFIER
    if kind == TokenKind.OPERATOR and lexeme in PUNCTUATION:
        return TokenKind.PUNCTUATION
    return kind


def _lex_error(source: str, exc: "esprima.Error") -> LexError:
    index = getattr(exc, "index", None)
    if not isinstance(index, int):
        index = len(source)
    index = max(0, min(index, len(source)))
    head = source[index:index + 2]
    if head[:1] in ("'", '"'):
        reason = "unterminated string literal"
    elif head[:1] == "`":
        reason = "unterminated template literal"
    elif head == "/*":
        reason = "unterminated comment"
    elif index >= len(source):
        reason = "unterminated comment or literal at end of input"
    else:
        description = getattr(exc, "description", None) or str(exc)
        reason = f"invalid token: {description}"
    return LexError(index, reason)


def _scan(source: str):
    try:
        return esprima.tokenize(source, range=True, comment=True)
    except esprima.Error as exc:
        raise _lex_error(source, exc) from exc


def iter_tokens(source: str, *, max_tokens: Optional[int] = None) -> Iterator[Token]:
    """
    Lazily yield the tokens of `source`, ending with a single END token.

    Args:
        source: Raw JavaScript-like source text.
        max_tokens: Optional upper bound on the number of tokens (END excluded).

    Raises:
        LexError: On an unterminated string, template or comment, or any
            character sequence esprima cannot scan.
        TokenBudgetExceeded: When `max_tokens` is exceeded.
    """
    previous_end = 0
    count = 0
    for entry in _scan(source):
        raw = entry.toDict() if hasattr(entry, "toDict") else entry
        span = raw.get("range")
        if not span:
            raise LexError(previous_end, "token without a source range")
        start, end = int(span[0]), int(span[1])
        lexeme = source[start:end]
        try:
            kind = _classify(raw, lexeme)
        except ValueError as exc:
            raise LexError(start, str(exc)) from exc

        count += 1
        if max_tokens is not None and count > max_tokens:
            raise TokenBudgetExceeded(start, max_tokens)

        if kind == TokenKind.COMMENT:
            yield Token(kind, lexeme, start, end)
            continue
        gap = source[previous_end:start]
        line_break = previous_end > 0 and any(term in gap for term in _LINE_TERMINATORS)
        yield Token(kind, lexeme, start, end, line_break)
        previous_end = end

    yield Token(TokenKind.END, "", len(source), len(source), True)


def tokenize(source: str, *, max_tokens: Optional[int] = None) -> Tuple[Token, ...]:
    """
    Tokenize `source` into an immutable, re-iterable token sequence.

    Tokenizing the same text twice yields equal sequences.
    """
    tokens = tuple(iter_tokens(source, max_tokens=max_tokens))
    logger.debug("tokenized %d characters into %d tokens", len(source), len(tokens))
    return tokens


__all__ = [
    "AnalysisError",
    "KEYWORDS",
    "LexError",
    "PUNCTUATION",
    "Token",
    "TokenBudgetExceeded",
    "TokenKind",
    "iter_tokens",
    "line_column",
    "tokenize",
]
