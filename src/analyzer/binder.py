"""
Identifier resolution over a built scope tree.

Every identifier use recorded by the scope builder becomes an `Occurrence`.
Resolution walks the scope chain from the use's enclosing scope outward to
GLOBAL; the first scope declaring the name wins, so inner declarations shadow
outer ones. Declarations are already hoisted by the builder, which is why a
use may resolve to a `var` or function declared later in the source.

Unresolved names (implicit globals, out-of-scope uses) are ordinary output
with `binding=None`, never an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .model import Binding, Occurrence, ScopeNode, ScopeTree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BindResult:
    occurrences: Tuple[Occurrence, ...]
    bindings: Tuple[Binding, ...]

    @property
    def unresolved(self) -> Tuple[Occurrence, ...]:
        return tuple(occurrence for occurrence in self.occurrences if occurrence.binding is None)


def resolve(scope: ScopeNode, name: str) -> Optional[Binding]:
    """Return the binding `name` refers to when used inside `scope`."""
    return scope.lookup(name)


def bind(tree: ScopeTree) -> BindResult:
    """
    Resolve every recorded identifier use of `tree`.

    Args:
        tree: Result of `build_scopes`.

    Returns:
        BindResult with occurrences in source order and all bindings in
        depth-first scope order.
    """
    cache: Dict[Tuple[str, str], Optional[Binding]] = {}
    occurrences: List[Occurrence] = []
    for reference in tree.references:
        key = (reference.scope_id, reference.name)
        if key not in cache:
            scope = tree.scope(reference.scope_id)
            cache[key] = resolve(scope, reference.name) if scope is not None else None
        occurrences.append(
            Occurrence(
                name=reference.name,
                position=reference.position,
                enclosing_scope=reference.scope_id,
                binding=cache[key],
            )
        )
    occurrences.sort(key=lambda occurrence: occurrence.position)

    bindings: List[Binding] = []
    for scope in tree.walk():
        bindings.extend(scope.declarations.values())

    result = BindResult(occurrences=tuple(occurrences), bindings=tuple(bindings))
    logger.debug(
        "bound %d occurrences (%d unresolved) against %d bindings",
        len(result.occurrences),
        len(result.unresolved),
        len(result.bindings),
    )
    return result


__all__ = ["BindResult", "bind", "resolve"]
