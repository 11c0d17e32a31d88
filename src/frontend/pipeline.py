"""
Front-end integration stitching together tokenization, scope building and
binding.

`analyze` is the single boundary operation: it takes immutable source text and
returns a fully resolved `Analysis`, or raises the first `LexError` /
`ParseError` encountered without producing a partial tree. `run_frontend`
wraps it for callers that prefer diagnostics over exceptions, and can persist
the serialized analysis. Nothing here holds state between calls, so
independent inputs may be analysed concurrently (`analyze_many`).
"""

from __future__ import annotations

import hashlib
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from analyzer import (
    AnalysisIssue,
    BindResult,
    Binding,
    Occurrence,
    ScopeNode,
    ScopeTree,
    bind,
    build_scopes,
)
from lexer import AnalysisError, LexError, line_column, tokenize
from query import ScopeQuery

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyzeOptions:
    """Per-call settings for `analyze`."""

    source_name: str = "<input>"
    max_tokens: Optional[int] = None


@dataclass(frozen=True)
class Analysis:
    """A resolved scope tree plus its occurrences and bindings."""

    source_name: str
    source_hash: str
    tree: ScopeTree
    occurrences: Tuple[Occurrence, ...]
    bindings: Tuple[Binding, ...]
    issues: Tuple[AnalysisIssue, ...]

    @property
    def root_scope(self) -> ScopeNode:
        return self.tree.root

    @cached_property
    def query(self) -> ScopeQuery:
        return ScopeQuery(self.tree, BindResult(self.occurrences, self.bindings))

    @property
    def unresolved(self) -> Tuple[Occurrence, ...]:
        return tuple(occurrence for occurrence in self.occurrences if occurrence.binding is None)

    def flatten_scopes(self) -> Iterable[ScopeNode]:
        """Yield scopes in depth-first order."""
        return self.tree.walk()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceName": self.source_name,
            "sourceHash": self.source_hash,
            "tree": self.tree.to_dict(),
            "occurrences": [occurrence.to_dict() for occurrence in self.occurrences],
            "issues": [
                {"code": issue.code, "message": issue.message, "position": issue.position}
                for issue in self.issues
            ],
        }

    def to_json(self) -> str:
        """Serialise the analysis to JSON for transport or caching."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)


@dataclass(frozen=True)
class Diagnostic:
    """A located message produced while analysing one source."""

    severity: str
    code: str
    message: str
    position: int
    line: int
    column: int


@dataclass(frozen=True)
class FrontEndResult:
    """Outcome of `run_frontend`: an analysis, or the error that prevented it."""

    source_name: str
    analysis: Optional[Analysis]
    errors: List[Diagnostic]
    warnings: List[Diagnostic]

    @property
    def ok(self) -> bool:
        return self.analysis is not None

    @property
    def diagnostics(self) -> List[Diagnostic]:
        """Errors followed by warnings."""
        return list(self.errors) + list(self.warnings)


def _hash_source(source: str) -> str:
    """Create a deterministic hash for cache keying."""
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


def analyze(
    source: str,
    *,
    options: Optional[AnalyzeOptions] = None,
    source_name: Optional[str] = None,
    max_tokens: Optional[int] = None,
) -> Analysis:
    """
    Tokenize, build scopes and bind identifiers for `source`.

    Args:
        source: Raw JavaScript-like source text.
        options: Settings; keyword arguments override individual fields.
        source_name: Label used for diagnostics (defaults to `<input>`).
        max_tokens: Abort with `TokenBudgetExceeded` beyond this many tokens.

    Returns:
        Analysis with the scope tree, resolved occurrences and bindings.

    Raises:
        LexError: If the source cannot be tokenized.
        ParseError: If the token stream does not nest into a scope tree.
    """
    options = options or AnalyzeOptions()
    name = source_name if source_name is not None else options.source_name
    budget = max_tokens if max_tokens is not None else options.max_tokens

    tokens = tokenize(source, max_tokens=budget)
    tree = build_scopes(tokens)
    bound = bind(tree)
    logger.debug("analysed %s: %d scopes, %d occurrences", name, tree.scope_count, len(bound.occurrences))
    return Analysis(
        source_name=name,
        source_hash=_hash_source(source),
        tree=tree,
        occurrences=bound.occurrences,
        bindings=bound.bindings,
        issues=tree.issues,
    )


def _diagnostic(source: str, severity: str, code: str, message: str, position: int) -> Diagnostic:
    line, column = line_column(source, position)
    return Diagnostic(
        severity=severity, code=code, message=message, position=position, line=line, column=column
    )


def run_frontend(
    source: str,
    *,
    source_name: str = "<input>",
    max_tokens: Optional[int] = None,
    cache_dir: Optional[Union[str, Path]] = None,
) -> FrontEndResult:
    """
    Analyse `source`, converting analysis errors into diagnostics.

    Args:
        source: Raw JavaScript-like source text.
        source_name: Identifier used in diagnostics, e.g. file path.
        max_tokens: Optional token budget forwarded to the tokenizer.
        cache_dir: Optional directory to write the serialized analysis
            (`None` disables).

    Returns:
        FrontEndResult whose `analysis` is None when tokenizing or scope
        building failed.
    """
    try:
        analysis = analyze(source, source_name=source_name, max_tokens=max_tokens)
    except AnalysisError as exc:
        code = "LEX_ERROR" if isinstance(exc, LexError) else "PARSE_ERROR"
        logger.debug("analysis of %s failed: %s", source_name, exc)
        return FrontEndResult(
            source_name=source_name,
            analysis=None,
            errors=[_diagnostic(source, "error", code, exc.reason, exc.position)],
            warnings=[],
        )

    warnings = [
        _diagnostic(source, "warning", issue.code, issue.message, issue.position)
        for issue in analysis.issues
    ]
    if cache_dir is not None:
        _persist_analysis(cache_dir, analysis)
    return FrontEndResult(source_name=source_name, analysis=analysis, errors=[], warnings=warnings)


def analyze_many(
    sources: Sequence[Tuple[str, str]],
    *,
    max_tokens: Optional[int] = None,
    max_workers: Optional[int] = None,
) -> List[FrontEndResult]:
    """
    Analyse independent `(source_name, source)` pairs in parallel.

    Results are returned in input order.
    """
    if not sources:
        return []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(run_frontend, source, source_name=name, max_tokens=max_tokens)
            for name, source in sources
        ]
        return [future.result() for future in futures]


def render_tree(analysis: Analysis, *, indent: str = "  ") -> str:
    """Render the scope tree as indented `name [id] kind: variables` lines."""
    lines: List[str] = []

    def visit(scope: ScopeNode, depth: int) -> None:
        names = ", ".join(scope.declarations) or "-"
        lines.append(f"{indent * depth}{scope.name} [{scope.scope_id}] {scope.kind.value}: {names}")
        for child in scope.children:
            visit(child, depth + 1)

    visit(analysis.root_scope, 0)
    return "\n".join(lines)


def _persist_analysis(cache_dir: Union[str, Path], analysis: Analysis) -> None:
    """Store the serialized analysis on disk, keyed by source hash."""
    path = Path(cache_dir)
    path.mkdir(parents=True, exist_ok=True)
    cache_file = path / f"{analysis.source_hash}.json"
    cache_file.write_text(analysis.to_json(), encoding="utf-8")


__all__ = [
    "Analysis",
    "AnalyzeOptions",
    "Diagnostic",
    "FrontEndResult",
    "analyze",
    "analyze_many",
    "render_tree",
    "run_frontend",
]
