"""Scope building and identifier binding for JavaScript-like source."""

from .binder import BindResult, bind, resolve
from .model import (
    AnalysisIssue,
    Binding,
    DeclKind,
    Occurrence,
    Reference,
    ScopeKind,
    ScopeNode,
    ScopeTree,
)
from .scope_builder import ParseError, build_scopes

__all__ = [
    "AnalysisIssue",
    "BindResult",
    "Binding",
    "DeclKind",
    "Occurrence",
    "ParseError",
    "Reference",
    "ScopeKind",
    "ScopeNode",
    "ScopeTree",
    "bind",
    "build_scopes",
    "resolve",
]
