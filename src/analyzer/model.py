"""
Scope tree data model.

A `ScopeTree` is rooted at exactly one GLOBAL `ScopeNode`. Children are owned
top-down through `ScopeNode.children`; the parent link is a weak reference so
the tree is released as a unit. Each node maps names to at most one `Binding`.
Identifier uses recorded by the builder are kept as `Reference`s and turned
into resolved `Occurrence`s by the binder.
"""

from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


class ScopeKind(str, Enum):
    GLOBAL = "global"
    FUNCTION = "function"
    BLOCK = "block"
    LOOP = "loop"


class DeclKind(str, Enum):
    VAR = "var"
    LET = "let"
    CONST = "const"
    PARAM = "param"
    FUNCTION = "function"
    CATCH_PARAM = "catchParam"


HOISTED_KINDS = frozenset({DeclKind.VAR, DeclKind.FUNCTION})


@dataclass(frozen=True)
class Binding:
    """Association of a name with the scope that declares it."""

    name: str
    kind: DeclKind
    declared_at: int
    owning_scope: str

    @property
    def binding_id(self) -> str:
        return f"{self.owning_scope}:{self.name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.binding_id,
            "name": self.name,
            "kind": self.kind.value,
            "declaredAt": self.declared_at,
            "owningScope": self.owning_scope,
        }


@dataclass(frozen=True)
class Reference:
    """An identifier use recorded while building scopes, not yet resolved."""

    name: str
    position: int
    scope_id: str


@dataclass(frozen=True)
class Occurrence:
    """A single textual use of an identifier and the binding it resolves to."""

    name: str
    position: int
    enclosing_scope: str
    binding: Optional[Binding] = None

    @property
    def resolved(self) -> bool:
        return self.binding is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "position": self.position,
            "enclosingScope": self.enclosing_scope,
            "binding": self.binding.binding_id if self.binding else None,
        }


@dataclass(frozen=True)
class AnalysisIssue:
    """Non-fatal construct that makes static resolution unreliable."""

    code: str
    message: str
    position: int


@dataclass(eq=False)
class ScopeNode:
    """A lexical scope with its own declarations and nested child scopes."""

    scope_id: str
    kind: ScopeKind
    name: str
    start: int
    end: int
    children: List["ScopeNode"] = field(default_factory=list)
    declarations: Dict[str, Binding] = field(default_factory=dict)
    _parent: Optional["weakref.ReferenceType[ScopeNode]"] = field(
        default=None, repr=False
    )

    @property
    def parent(self) -> Optional["ScopeNode"]:
        return self._parent() if self._parent is not None else None

    @property
    def parent_id(self) -> Optional[str]:
        parent = self.parent
        return parent.scope_id if parent is not None else None

    def add_child(self, child: "ScopeNode") -> None:
        child._parent = weakref.ref(self)
        self.children.append(child)

    def declare(self, name: str, kind: DeclKind, position: int) -> Binding:
        """Register `name` here; a re-declaration replaces the earlier binding."""
        binding = Binding(name=name, kind=kind, declared_at=position, owning_scope=self.scope_id)
        self.declarations[name] = binding
        return binding

    def hoist_target(self) -> "ScopeNode":
        """Nearest enclosing FUNCTION or GLOBAL scope, this node included."""
        scope = self
        while scope.kind not in (ScopeKind.FUNCTION, ScopeKind.GLOBAL):
            parent = scope.parent
            if parent is None:
                break
            scope = parent
        return scope

    def lookup(self, name: str) -> Optional[Binding]:
        """Search this scope and its ancestors; the innermost declaration wins."""
        scope: Optional[ScopeNode] = self
        while scope is not None:
            binding = scope.declarations.get(name)
            if binding is not None:
                return binding
            scope = scope.parent
        return None

    def contains(self, position: int) -> bool:
        return self.start <= position < self.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.scope_id,
            "kind": self.kind.value,
            "name": self.name,
            "range": [self.start, self.end],
            "parent": self.parent_id,
            "declarations": [binding.to_dict() for binding in self.declarations.values()],
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class ScopeTree:
    """Result of scope building: the root scope plus the recorded identifier uses."""

    root: ScopeNode
    source_length: int
    references: Tuple[Reference, ...] = ()
    issues: Tuple[AnalysisIssue, ...] = ()
    _index: Dict[str, ScopeNode] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        for scope in self.walk():
            self._index[scope.scope_id] = scope

    def walk(self) -> Iterator[ScopeNode]:
        """Yield scopes in depth-first order."""
        stack = [self.root]
        while stack:
            scope = stack.pop()
            yield scope
            stack.extend(reversed(scope.children))

    def scope(self, scope_id: str) -> Optional[ScopeNode]:
        return self._index.get(scope_id)

    @property
    def scope_count(self) -> int:
        return len(self._index)

    def to_dict(self) -> Dict[str, Any]:
        return {"sourceLength": self.source_length, "root": self.root.to_dict()}


__all__ = [
    "AnalysisIssue",
    "Binding",
    "DeclKind",
    "HOISTED_KINDS",
    "Occurrence",
    "Reference",
    "ScopeKind",
    "ScopeNode",
    "ScopeTree",
]
