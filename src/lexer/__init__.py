"""Tokenization of JavaScript-like source text."""

from .tokenizer import (
    AnalysisError,
    KEYWORDS,
    LexError,
    PUNCTUATION,
    Token,
    TokenBudgetExceeded,
    TokenKind,
    iter_tokens,
    line_column,
    tokenize,
)

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
