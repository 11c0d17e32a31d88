"""
Scope construction for JavaScript-like token streams.

The builder walks the token stream produced by `lexer.tokenize` with a small
recursive-descent recognizer. It only understands as much grammar as scoping
needs: statements that open scopes (blocks, functions, loops, conditionals,
`try`/`catch`, `switch`), declarations, and enough of the expression grammar
to tell object-literal braces from block braces, find nested function and
arrow-function bodies, and record every identifier use.

Scopes are tracked on an explicit stack. Each scope remembers the `{` token
that opened its body and may only be closed by that brace's partner `}`, as
computed by a bracket-matching pre-pass over the whole stream. Anything that
does not fit is reported as `ParseError`; no partial tree is returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence

from lexer import AnalysisError, Token, TokenKind

from .model import (
    AnalysisIssue,
    DeclKind,
    HOISTED_KINDS,
    Reference,
    ScopeKind,
    ScopeNode,
    ScopeTree,
)

logger = logging.getLogger(__name__)


class ParseError(AnalysisError):
    """Raised when the token stream does not form a recognizable program."""

    def __init__(
        self,
        position: int,
        reason: str,
        *,
        expected: Optional[str] = None,
        found: Optional[str] = None,
    ):
        if expected is not None:
            reason = f"{reason}: expected {expected}, found {found}"
        super().__init__(position, reason)
        self.expected = expected
        self.found = found


_OPENERS = {"{": "}", "(": ")", "[": "]"}
_CLOSERS = frozenset(_OPENERS.values())
_BRACKET_KINDS = (TokenKind.PUNCTUATION, TokenKind.OPERATOR)

_DECL_KINDS = {"var": DeclKind.VAR, "let": DeclKind.LET, "const": DeclKind.CONST}

# Keywords that may appear inside an expression.
_EXPRESSION_KEYWORDS = frozenset(
    {
        "await",
        "delete",
        "false",
        "in",
        "instanceof",
        "new",
        "null",
        "super",
        "this",
        "true",
        "typeof",
        "void",
        "yield",
    }
)
_VALUE_KEYWORDS = frozenset({"false", "null", "super", "this", "true"})
_BINARY_KEYWORDS = frozenset({"in", "instanceof"})
_CLOSING_OPERATORS = frozenset({")", "]", "}", "++", "--"})
_LEADING_OPERATORS = frozenset({"{", "++", "--", "!", "~"})
_MODIFIERS = frozenset({"get", "set", "async"})

_ELEMENT_STOPS: FrozenSet[str] = frozenset({","})
_CASE_STOPS: FrozenSet[str] = frozenset({":"})
_FOR_STOPS: FrozenSet[str] = frozenset({"in", "of"})
_NO_STOPS: FrozenSet[str] = frozenset()


@dataclass
class _OpenScope:
    scope: ScopeNode
    brace: Optional[int] = None


def _describe(token: Token) -> str:
    if token.kind == TokenKind.END:
        return "end of input"
    return f"'{token.lexeme}'"


def _match_brackets(tokens: Sequence[Token]) -> Dict[int, int]:
    """Map the index of every opening bracket to the index of its closer."""
    matching: Dict[int, int] = {}
    stack: List[int] = []
    for index, token in enumerate(tokens):
        if token.kind not in _BRACKET_KINDS:
            continue
        if token.lexeme in _OPENERS:
            stack.append(index)
        elif token.lexeme in _CLOSERS:
            if not stack:
                raise ParseError(
                    token.start,
                    "unbalanced closing bracket",
                    expected="a matching opening bracket",
                    found=_describe(token),
                )
            opener = stack.pop()
            expected = _OPENERS[tokens[opener].lexeme]
            if token.lexeme != expected:
                raise ParseError(
                    token.start,
                    f"mismatched bracket for '{tokens[opener].lexeme}' at offset {tokens[opener].start}",
                    expected=f"'{expected}'",
                    found=_describe(token),
                )
            matching[opener] = index
    if stack:
        opener = tokens[stack[-1]]
        raise ParseError(
            tokens[-1].start,
            f"unterminated '{opener.lexeme}' opened at offset {opener.start}",
            expected=f"'{_OPENERS[opener.lexeme]}'",
            found="end of input",
        )
    return matching


class _ScopeBuilder:
    def __init__(self, tokens: Sequence[Token]) -> None:
        self._tokens = [token for token in tokens if token.kind != TokenKind.COMMENT]
        if not self._tokens or self._tokens[-1].kind != TokenKind.END:
            position = self._tokens[-1].end if self._tokens else 0
            raise ParseError(position, "token stream is missing its end-of-input token")
        self._matching = _match_brackets(self._tokens)
        self._index = 0
        self._last_end = 0
        self._scope_counter = 0
        self._stack: List[_OpenScope] = []
        self._references: List[Reference] = []
        self._issues: List[AnalysisIssue] = []

    def build(self) -> ScopeTree:
        source_length = self._tokens[-1].start
        root = self._open(ScopeKind.GLOBAL, "global", 0, None)
        while self._current.kind != TokenKind.END:
            self._statement(root)
        self._close(root, source_length)
        if self._stack:
            raise ParseError(
                source_length,
                "unterminated scope",
                expected="'}'",
                found="end of input",
            )
        return ScopeTree(
            root=root,
            source_length=source_length,
            references=tuple(self._references),
            issues=tuple(self._issues),
        )

    # ------------------------------------------------------------------ cursor

    @property
    def _current(self) -> Token:
        return self._tokens[self._index]

    @property
    def _previous(self) -> Optional[Token]:
        return self._tokens[self._index - 1] if self._index > 0 else None

    def _peek(self, offset: int = 1) -> Token:
        return self._tokens[min(self._index + offset, len(self._tokens) - 1)]

    def _advance(self) -> Token:
        token = self._current
        if token.kind != TokenKind.END:
            self._index += 1
            self._last_end = token.end
        return token

    def _at(self, lexeme: str) -> bool:
        return self._current.is_punct(lexeme)

    def _expect(self, lexeme: str) -> Token:
        if not self._at(lexeme):
            raise ParseError(
                self._current.start,
                "unexpected token",
                expected=f"'{lexeme}'",
                found=_describe(self._current),
            )
        return self._advance()

    def _reject(self, token: Token, reason: str) -> None:
        raise ParseError(token.start, reason, expected="a supported construct", found=_describe(token))

    # ------------------------------------------------------------------ scopes

    def _open(
        self, kind: ScopeKind, name: str, start: int, parent: Optional[ScopeNode]
    ) -> ScopeNode:
        scope = ScopeNode(
            scope_id=f"S{self._scope_counter}", kind=kind, name=name, start=start, end=start
        )
        self._scope_counter += 1
        if parent is not None:
            parent.add_child(scope)
        self._stack.append(_OpenScope(scope))
        return scope

    def _close(self, scope: ScopeNode, end: int) -> None:
        if not self._stack or self._stack[-1].scope is not scope:
            raise ParseError(end, f"scope '{scope.name}' closed out of order")
        self._stack.pop()
        scope.end = end

    def _braced_body(
        self, scope: ScopeNode, item: Optional[Callable[[ScopeNode], None]] = None
    ) -> None:
        """Parse `{ ... }` into `scope`, which must be the innermost open scope."""
        if not self._at("{"):
            raise ParseError(
                self._current.start,
                "missing block body",
                expected="'{'",
                found=_describe(self._current),
            )
        entry = self._stack[-1]
        if entry.scope is not scope:
            raise ParseError(self._current.start, f"block opened outside scope '{scope.name}'")
        entry.brace = self._index
        close = self._matching[self._index]
        self._advance()
        parse_item = item or self._statement
        while self._index < close:
            parse_item(scope)
        if self._index != close or self._matching.get(entry.brace) != self._index:
            raise ParseError(
                self._current.start,
                "block does not close where it was opened",
                expected=f"'}}' at offset {self._tokens[close].start}",
                found=_describe(self._current),
            )
        self._advance()

    def _clause(self, parent: ScopeNode, name: str, kind: ScopeKind = ScopeKind.BLOCK) -> ScopeNode:
        scope = self._open(kind, name, self._current.start, parent)
        self._clause_body(scope)
        self._close(scope, self._last_end)
        return scope

    def _clause_body(self, scope: ScopeNode) -> None:
        if self._at("{"):
            self._braced_body(scope)
            return
        token = self._current
        if token.is_keyword("let", "const", "class"):
            raise ParseError(
                token.start,
                "lexical declaration cannot be a single-statement body",
                expected="a statement or a block",
                found=_describe(token),
            )
        self._statement(scope)

    def _braced_clause(self, parent: ScopeNode, name: str) -> ScopeNode:
        if not self._at("{"):
            raise ParseError(
                self._current.start,
                f"missing {name} body",
                expected="'{'",
                found=_describe(self._current),
            )
        return self._clause(parent, name)

    # -------------------------------------------------------------- statements

    def _statement(self, scope: ScopeNode) -> None:
        token = self._current
        if token.kind == TokenKind.END:
            raise ParseError(
                token.start, "unexpected end of input", expected="a statement", found="end of input"
            )
        if token.is_punct("{"):
            self._clause(scope, "block")
            return
        if token.is_punct(";"):
            self._advance()
            return
        if token.kind == TokenKind.KEYWORD:
            handler = getattr(self, f"_statement_{token.lexeme}", None)
            if handler:
                handler(scope)
                return
        if token.kind == TokenKind.IDENTIFIER:
            following = self._peek()
            if token.lexeme == "async" and following.is_keyword("function") and not following.line_break_before:
                self._advance()
                self._function(scope, declaration=True)
                return
            if following.is_punct(":"):
                # Labels are not variable uses.
                self._advance()
                self._advance()
                self._statement(scope)
                return
        self._expression_statement(scope)

    def _expression_statement(self, scope: ScopeNode) -> None:
        start = self._index
        self._expression(scope)
        if self._index == start:
            raise ParseError(
                self._current.start,
                "unexpected token",
                expected="a statement",
                found=_describe(self._current),
            )
        self._end_statement()

    def _statement_ends_here(self) -> bool:
        token = self._current
        return (
            token.kind == TokenKind.END
            or token.is_punct(";")
            or token.is_punct("}")
            or token.line_break_before
        )

    def _end_statement(self) -> None:
        if self._at(";"):
            self._advance()
            return
        if self._statement_ends_here():
            return
        raise ParseError(
            self._current.start,
            "missing statement terminator",
            expected="';'",
            found=_describe(self._current),
        )

    def _statement_var(self, scope: ScopeNode) -> None:
        self._declaration(scope, DeclKind.VAR)
        self._end_statement()

    def _statement_let(self, scope: ScopeNode) -> None:
        self._declaration(scope, DeclKind.LET)
        self._end_statement()

    def _statement_const(self, scope: ScopeNode) -> None:
        self._declaration(scope, DeclKind.CONST)
        self._end_statement()

    def _statement_function(self, scope: ScopeNode) -> None:
        self._function(scope, declaration=True)

    def _statement_class(self, scope: ScopeNode) -> None:
        self._reject(self._current, "class declarations are not supported")

    def _statement_import(self, scope: ScopeNode) -> None:
        self._reject(self._current, "module imports are not supported")

    def _statement_export(self, scope: ScopeNode) -> None:
        self._reject(self._current, "module exports are not supported")

    def _statement_if(self, scope: ScopeNode) -> None:
        self._advance()
        self._condition(scope)
        self._clause(scope, "if-block")
        if self._current.is_keyword("else"):
            self._advance()
            if self._current.is_keyword("if"):
                self._statement_if(scope)
            else:
                self._clause(scope, "else-block")

    def _statement_for(self, scope: ScopeNode) -> None:
        self._advance()
        if self._current.is_keyword("await"):
            self._advance()
        if not self._at("("):
            raise ParseError(
                self._current.start,
                "missing loop header",
                expected="'('",
                found=_describe(self._current),
            )
        loop = self._open(ScopeKind.LOOP, "for-loop", self._current.start, scope)
        close = self._matching[self._index]
        self._advance()
        self._for_header(loop)
        if self._index != close:
            raise ParseError(
                self._current.start,
                "malformed loop header",
                expected="')'",
                found=_describe(self._current),
            )
        self._advance()
        self._clause_body(loop)
        self._close(loop, self._last_end)

    def _for_header(self, loop: ScopeNode) -> None:
        token = self._current
        if token.kind == TokenKind.KEYWORD and token.lexeme in _DECL_KINDS:
            self._declaration(loop, _DECL_KINDS[token.lexeme], asi=False)
        elif not self._at(";"):
            self._expression(loop, _FOR_STOPS, asi=False)

        token = self._current
        if token.is_keyword("in") or (token.kind == TokenKind.IDENTIFIER and token.lexeme == "of"):
            self._advance()
            self._expression(loop, asi=False)
            return
        self._expect(";")
        if not self._at(";"):
            self._expression(loop, asi=False)
        self._expect(";")
        if not self._at(")"):
            self._expression(loop, asi=False)

    def _statement_while(self, scope: ScopeNode) -> None:
        self._advance()
        self._condition(scope)
        self._clause(scope, "while-loop", ScopeKind.LOOP)

    def _statement_do(self, scope: ScopeNode) -> None:
        self._advance()
        self._clause(scope, "do-loop", ScopeKind.LOOP)
        if not self._current.is_keyword("while"):
            raise ParseError(
                self._current.start,
                "incomplete do-while loop",
                expected="'while'",
                found=_describe(self._current),
            )
        self._advance()
        self._condition(scope)
        if self._at(";"):
            self._advance()

    def _statement_try(self, scope: ScopeNode) -> None:
        token = self._advance()
        self._braced_clause(scope, "try-block")
        handled = False
        if self._current.is_keyword("catch"):
            handled = True
            self._advance()
            handler = self._open(ScopeKind.BLOCK, "catch-block", self._current.start, scope)
            if self._at("("):
                self._advance()
                self._binding_target(handler, handler, DeclKind.CATCH_PARAM)
                self._expect(")")
            self._braced_body(handler)
            self._close(handler, self._last_end)
        if self._current.is_keyword("finally"):
            handled = True
            self._advance()
            self._braced_clause(scope, "finally-block")
        if not handled:
            raise ParseError(
                self._current.start,
                f"try statement at offset {token.start} has no handler",
                expected="'catch' or 'finally'",
                found=_describe(self._current),
            )

    def _statement_switch(self, scope: ScopeNode) -> None:
        self._advance()
        self._condition(scope)
        block = self._open(ScopeKind.BLOCK, "switch-block", self._current.start, scope)
        self._braced_body(block, self._switch_item)
        self._close(block, self._last_end)

    def _switch_item(self, block: ScopeNode) -> None:
        token = self._current
        if token.is_keyword("case"):
            self._advance()
            self._expression(block, _CASE_STOPS, asi=False)
            self._expect(":")
        elif token.is_keyword("default"):
            self._advance()
            self._expect(":")
        else:
            self._statement(block)

    def _statement_return(self, scope: ScopeNode) -> None:
        self._advance()
        if not self._statement_ends_here():
            self._expression(scope)
        self._end_statement()

    _statement_throw = _statement_return

    def _statement_break(self, scope: ScopeNode) -> None:
        self._advance()
        token = self._current
        if token.kind == TokenKind.IDENTIFIER and not token.line_break_before:
            self._advance()
        self._end_statement()

    _statement_continue = _statement_break

    def _statement_debugger(self, scope: ScopeNode) -> None:
        self._advance()
        self._end_statement()

    def _statement_with(self, scope: ScopeNode) -> None:
        token = self._advance()
        self._issues.append(
            AnalysisIssue(
                code="WITH_STATEMENT",
                message="`with` statement changes scope resolution dynamically.",
                position=token.start,
            )
        )
        self._condition(scope)
        self._clause(scope, "with-block")

    def _condition(self, scope: ScopeNode) -> None:
        if not self._at("("):
            raise ParseError(
                self._current.start,
                "missing condition",
                expected="'('",
                found=_describe(self._current),
            )
        self._group(scope, ")")

    # ------------------------------------------------------------ declarations

    def _declaration(self, scope: ScopeNode, kind: DeclKind, *, asi: bool = True) -> None:
        self._advance()
        target = scope.hoist_target() if kind in HOISTED_KINDS else scope
        while True:
            self._binding_target(scope, target, kind)
            if self._at("="):
                self._advance()
                self._expression(scope, _ELEMENT_STOPS, asi=asi)
            if not self._at(","):
                return
            self._advance()

    def _binding_target(self, scope: ScopeNode, target: ScopeNode, kind: DeclKind) -> None:
        token = self._current
        if token.kind == TokenKind.IDENTIFIER:
            self._advance()
            target.declare(token.lexeme, kind, token.start)
        elif token.is_punct("["):
            self._array_pattern(scope, target, kind)
        elif token.is_punct("{"):
            self._object_pattern(scope, target, kind)
        else:
            raise ParseError(
                token.start,
                "invalid binding target",
                expected="an identifier or a destructuring pattern",
                found=_describe(token),
            )

    def _pattern_default(self, scope: ScopeNode) -> None:
        if self._at("="):
            self._advance()
            self._expression(scope, _ELEMENT_STOPS, asi=False)

    def _array_pattern(self, scope: ScopeNode, target: ScopeNode, kind: DeclKind) -> None:
        self._advance()
        while not self._at("]"):
            if self._at(","):
                self._advance()
                continue
            if self._at("..."):
                self._advance()
            self._binding_target(scope, target, kind)
            self._pattern_default(scope)
            if not self._at("]"):
                self._expect(",")
        self._advance()

    def _object_pattern(self, scope: ScopeNode, target: ScopeNode, kind: DeclKind) -> None:
        self._advance()
        while not self._at("}"):
            if self._at("..."):
                self._advance()
                self._binding_target(scope, target, kind)
            else:
                key = self._property_key(scope)
                if self._at(":"):
                    self._advance()
                    self._binding_target(scope, target, kind)
                elif key is not None and key.kind == TokenKind.IDENTIFIER:
                    target.declare(key.lexeme, kind, key.start)
                else:
                    raise ParseError(
                        self._current.start,
                        "pattern property needs a target",
                        expected="':'",
                        found=_describe(self._current),
                    )
                self._pattern_default(scope)
            if not self._at("}"):
                self._expect(",")
        self._advance()

    def _property_key(self, scope: ScopeNode) -> Optional[Token]:
        """Consume a property name; computed keys are evaluated in `scope`."""
        token = self._current
        if token.is_punct("["):
            self._group(scope, "]")
            return None
        if token.kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD, TokenKind.STRING, TokenKind.NUMBER):
            return self._advance()
        raise ParseError(
            token.start, "invalid property key", expected="a property name", found=_describe(token)
        )

    # --------------------------------------------------------------- functions

    def _function(self, scope: ScopeNode, *, declaration: bool) -> ScopeNode:
        keyword = self._advance()
        if self._at("*"):
            self._advance()
        name: Optional[Token] = None
        if self._current.kind == TokenKind.IDENTIFIER:
            name = self._advance()
        elif declaration:
            raise ParseError(
                keyword.start,
                "function declaration without a name",
                expected="an identifier",
                found=_describe(self._current),
            )
        if declaration and name is not None:
            # Callable from the enclosing code, hoisted like `var`.
            scope.hoist_target().declare(name.lexeme, DeclKind.FUNCTION, name.start)

        function_scope = self._open(
            ScopeKind.FUNCTION, name.lexeme if name else "anonymous", self._current.start, scope
        )
        if name is not None and not declaration:
            function_scope.declare(name.lexeme, DeclKind.FUNCTION, name.start)
        self._parameters(function_scope)
        self._braced_body(function_scope)
        self._close(function_scope, self._last_end)
        return function_scope

    def _method(self, scope: ScopeNode, key: Optional[Token]) -> None:
        name = key.lexeme.strip("'\"") if key is not None else "[computed]"
        method_scope = self._open(ScopeKind.FUNCTION, name, self._current.start, scope)
        self._parameters(method_scope)
        self._braced_body(method_scope)
        self._close(method_scope, self._last_end)

    def _parameters(self, function_scope: ScopeNode) -> None:
        self._expect("(")
        while not self._at(")"):
            if self._at("..."):
                self._advance()
            self._binding_target(function_scope, function_scope, DeclKind.PARAM)
            self._pattern_default(function_scope)
            if not self._at(")"):
                self._expect(",")
        self._advance()

    def _is_arrow_at(self, index: int) -> bool:
        token = self._tokens[index]
        if token.kind == TokenKind.IDENTIFIER:
            following = self._tokens[index + 1]
        elif token.is_punct("("):
            following = self._tokens[self._matching[index] + 1]
        else:
            return False
        return following.is_punct("=>") and not following.line_break_before

    def _arrow(self, scope: ScopeNode, stops: FrozenSet[str], asi: bool) -> None:
        arrow_scope = self._open(ScopeKind.FUNCTION, "arrow", self._current.start, scope)
        if self._at("("):
            self._parameters(arrow_scope)
        else:
            param = self._advance()
            arrow_scope.declare(param.lexeme, DeclKind.PARAM, param.start)
        self._expect("=>")
        if self._at("{"):
            self._braced_body(arrow_scope)
        else:
            self._expression(arrow_scope, stops, asi=asi)
        self._close(arrow_scope, self._last_end)

    # ------------------------------------------------------------- expressions

    def _expression(
        self, scope: ScopeNode, stops: FrozenSet[str] = _NO_STOPS, *, asi: bool = True
    ) -> None:
        """Consume one expression, stopping before a closer, `;`, or a stop lexeme."""
        pending_ternaries = 0
        first = True
        while True:
            token = self._current
            if token.kind == TokenKind.END:
                return
            if (
                not first
                and asi
                and token.line_break_before
                and self._ends_expression(self._previous)
                and self._starts_statement(token)
            ):
                return
            first = False

            if token.kind in (TokenKind.PUNCTUATION, TokenKind.OPERATOR):
                lexeme = token.lexeme
                if lexeme in (")", "]", "}", ";"):
                    return
                if lexeme == ":" and pending_ternaries:
                    pending_ternaries -= 1
                    self._advance()
                    continue
                if lexeme in stops:
                    return
                if lexeme == "(":
                    if self._is_arrow_at(self._index):
                        self._arrow(scope, self._arrow_stops(stops, pending_ternaries), asi)
                    else:
                        self._group(scope, ")")
                    continue
                if lexeme == "[":
                    self._group(scope, "]")
                    continue
                if lexeme == "{":
                    self._object_literal(scope)
                    continue
                if lexeme == ":":
                    raise ParseError(
                        token.start, "unexpected ':'", expected="an expression", found="':'"
                    )
                if lexeme == "=>":
                    raise ParseError(
                        token.start,
                        "arrow without a parameter list",
                        expected="an expression",
                        found="'=>'",
                    )
                if lexeme == "?":
                    pending_ternaries += 1
                self._advance()
                continue

            if token.kind == TokenKind.KEYWORD:
                if self._after_dot():
                    self._advance()
                    continue
                if token.lexeme in stops:
                    return
                if token.lexeme == "function":
                    self._function(scope, declaration=False)
                    continue
                if token.lexeme == "class":
                    self._reject(token, "class expressions are not supported")
                if token.lexeme not in _EXPRESSION_KEYWORDS:
                    raise ParseError(
                        token.start,
                        f"unexpected keyword '{token.lexeme}'",
                        expected="an expression",
                        found=_describe(token),
                    )
                self._advance()
                continue

            if token.kind == TokenKind.IDENTIFIER:
                if self._after_dot():
                    self._advance()
                    continue
                if token.lexeme in stops:
                    return
                if token.lexeme == "async" and self._is_async_modifier():
                    self._advance()
                    continue
                if self._is_arrow_at(self._index):
                    self._arrow(scope, self._arrow_stops(stops, pending_ternaries), asi)
                    continue
                if token.lexeme == "eval" and self._peek().is_punct("("):
                    self._issues.append(
                        AnalysisIssue(
                            code="EVAL_CALL",
                            message="Use of eval makes static analysis unreliable.",
                            position=token.start,
                        )
                    )
                self._reference(scope, token)
                self._advance()
                continue

            self._advance()

    @staticmethod
    def _arrow_stops(stops: FrozenSet[str], pending_ternaries: int) -> FrozenSet[str]:
        # A concise arrow body inside `a ? x => y : z` ends at the ternary's `:`.
        return stops | _CASE_STOPS if pending_ternaries else stops

    def _group(self, scope: ScopeNode, close: str) -> None:
        """Consume a parenthesised or bracketed, comma-separated list."""
        self._advance()
        while not self._at(close):
            self._expression(scope, _ELEMENT_STOPS, asi=False)
            if self._at(","):
                self._advance()
            elif not self._at(close):
                raise ParseError(
                    self._current.start,
                    "unexpected token",
                    expected=f"'{close}'",
                    found=_describe(self._current),
                )
        self._advance()

    def _object_literal(self, scope: ScopeNode) -> None:
        self._advance()
        while not self._at("}"):
            if self._at("..."):
                self._advance()
                self._expression(scope, _ELEMENT_STOPS, asi=False)
            else:
                key = self._object_key(scope)
                if self._at("("):
                    self._method(scope, key)
                elif self._at(":"):
                    self._advance()
                    self._expression(scope, _ELEMENT_STOPS, asi=False)
                elif key is not None and key.kind == TokenKind.IDENTIFIER:
                    # Shorthand `{ name }` reads the variable `name`.
                    self._reference(scope, key)
                    self._pattern_default(scope)
                else:
                    raise ParseError(
                        self._current.start,
                        "object property without a value",
                        expected="':'",
                        found=_describe(self._current),
                    )
            if not self._at("}"):
                self._expect(",")
        self._advance()

    def _object_key(self, scope: ScopeNode) -> Optional[Token]:
        if self._at("*"):
            self._advance()
        elif (
            self._current.kind == TokenKind.IDENTIFIER
            and self._current.lexeme in _MODIFIERS
            and self._is_key_start(self._peek())
        ):
            self._advance()
            if self._at("*"):
                self._advance()
        return self._property_key(scope)

    @staticmethod
    def _is_key_start(token: Token) -> bool:
        return token.kind in (
            TokenKind.IDENTIFIER,
            TokenKind.KEYWORD,
            TokenKind.STRING,
            TokenKind.NUMBER,
        ) or token.is_punct("[") or token.is_punct("*")

    def _is_async_modifier(self) -> bool:
        following = self._peek()
        if following.line_break_before:
            return False
        return following.is_keyword("function") or self._is_arrow_at(self._index + 1)

    def _after_dot(self) -> bool:
        previous = self._previous
        return previous is not None and previous.is_punct(".")

    def _reference(self, scope: ScopeNode, token: Token) -> None:
        self._references.append(Reference(token.lexeme, token.start, scope.scope_id))

    @staticmethod
    def _ends_expression(token: Optional[Token]) -> bool:
        if token is None:
            return False
        if token.kind in (TokenKind.IDENTIFIER, TokenKind.NUMBER, TokenKind.REGEX):
            return True
        if token.kind == TokenKind.STRING:
            return not token.lexeme.endswith("${")
        if token.kind == TokenKind.KEYWORD:
            return token.lexeme in _VALUE_KEYWORDS
        return token.lexeme in _CLOSING_OPERATORS

    @staticmethod
    def _starts_statement(token: Token) -> bool:
        if token.kind in (TokenKind.IDENTIFIER, TokenKind.NUMBER, TokenKind.REGEX):
            return True
        if token.kind == TokenKind.STRING:
            return not token.lexeme.startswith("}")
        if token.kind == TokenKind.KEYWORD:
            return token.lexeme not in _BINARY_KEYWORDS
        return token.lexeme in _LEADING_OPERATORS


def build_scopes(tokens: Sequence[Token]) -> ScopeTree:
    """
    Build the scope tree for a token stream.

    Args:
        tokens: Output of `lexer.tokenize`; comment tokens are ignored.

    Returns:
        ScopeTree rooted at the GLOBAL scope, with every declaration bound per
        the hoisting rules and every identifier use recorded as a `Reference`.

    Raises:
        ParseError: On unbalanced brackets, unterminated scopes, unsupported
            constructs, or an unexpected token where a body or declaration
            was expected.
    """
    tree = _ScopeBuilder(tokens).build()
    logger.debug(
        "built %d scopes with %d identifier references", tree.scope_count, len(tree.references)
    )
    return tree


__all__ = ["ParseError", "build_scopes"]
