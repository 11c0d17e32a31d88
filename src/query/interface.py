"""
Read-only queries over a completed analysis.

`ScopeQuery` indexes a `ScopeTree` and its `BindResult` once and answers the
questions a presentation layer asks: which variables a scope declares, which
scope contains a cursor position, every use of a binding, and the
declaration behind a use. Failures are local to the failing query.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterator, List, Optional, Tuple

from analyzer import BindResult, Binding, Occurrence, ScopeNode, ScopeTree


class NotFoundError(LookupError):
    """Raised when a query names a position, scope or binding outside the analysis."""


class ScopeQuery:
    """Query interface over one analysed source."""

    def __init__(self, tree: ScopeTree, bound: BindResult) -> None:
        self._tree = tree
        self._bindings: Dict[str, Binding] = {
            binding.binding_id: binding for binding in bound.bindings
        }
        self._occurrences = bound.occurrences
        self._by_binding: Dict[str, List[Occurrence]] = defaultdict(list)
        self._by_position: Dict[Tuple[int, str], Occurrence] = {}
        for occurrence in bound.occurrences:
            self._by_position[(occurrence.position, occurrence.name)] = occurrence
            if occurrence.binding is not None:
                self._by_binding[occurrence.binding.binding_id].append(occurrence)

    @property
    def tree(self) -> ScopeTree:
        return self._tree

    def scope(self, scope_id: str) -> ScopeNode:
        scope = self._tree.scope(scope_id)
        if scope is None:
            raise NotFoundError(f"unknown scope id {scope_id!r}")
        return scope

    def walk(self) -> Iterator[ScopeNode]:
        return self._tree.walk()

    def variables_in(self, scope_id: str) -> Tuple[Binding, ...]:
        """Bindings declared directly in the scope, in declaration order."""
        return tuple(self.scope(scope_id).declarations.values())

    def scope_containing(self, position: int) -> ScopeNode:
        """
        Innermost scope whose range contains `position`.

        Raises:
            NotFoundError: If `position` lies outside `[0, len(source)]`.
        """
        if position < 0 or position > self._tree.source_length:
            raise NotFoundError(
                f"position {position} outside analysed source of length {self._tree.source_length}"
            )
        scope = self._tree.root
        descended = True
        while descended:
            descended = False
            for child in scope.children:
                if child.contains(position):
                    scope = child
                    descended = True
                    break
        return scope

    def scope_chain(self, scope_id: str) -> Tuple[ScopeNode, ...]:
        """The scope and its ancestors, innermost first."""
        chain: List[ScopeNode] = []
        scope: Optional[ScopeNode] = self.scope(scope_id)
        while scope is not None:
            chain.append(scope)
            scope = scope.parent
        return tuple(chain)

    def binding(self, binding_id: str) -> Binding:
        binding = self._bindings.get(binding_id)
        if binding is None:
            raise NotFoundError(f"unknown binding id {binding_id!r}")
        return binding

    def occurrences_of(self, binding_id: str) -> Tuple[Occurrence, ...]:
        """Every use resolving to the binding, in source order."""
        self.binding(binding_id)
        return tuple(self._by_binding.get(binding_id, ()))

    def declaration_of(self, occurrence: Occurrence) -> Optional[Binding]:
        """The binding a use resolves to, or None for an unresolved name."""
        known = self._by_position.get((occurrence.position, occurrence.name))
        if known is None:
            raise NotFoundError(
                f"no occurrence of {occurrence.name!r} at position {occurrence.position}"
            )
        return known.binding

    def occurrence_at(self, position: int) -> Optional[Occurrence]:
        """The use whose identifier covers `position`, if any."""
        for occurrence in self._occurrences:
            if occurrence.position <= position < occurrence.position + len(occurrence.name):
                return occurrence
        return None

    def unresolved(self) -> Tuple[Occurrence, ...]:
        return tuple(occurrence for occurrence in self._occurrences if occurrence.binding is None)

    def all_variable_names(self) -> Tuple[str, ...]:
        """Distinct declared names across all scopes, in first-declaration order."""
        seen: Dict[str, None] = {}
        for binding in self._bindings.values():
            seen.setdefault(binding.name, None)
        return tuple(seen)


__all__ = ["NotFoundError", "ScopeQuery"]
