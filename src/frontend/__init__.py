"""Front-end pipeline glue: tokenize, build scopes, bind, query."""

from .pipeline import (
    Analysis,
    AnalyzeOptions,
    Diagnostic,
    FrontEndResult,
    analyze,
    analyze_many,
    render_tree,
    run_frontend,
)

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
