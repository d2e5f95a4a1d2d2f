"""Token-level rewriting of embedded expression code.

Component bindings carry JavaScript snippets written against the IR's
``state`` / ``props`` model. Generators never parse those snippets
themselves; they go through an :class:`ExpressionRewriter`, which offers two
operations:

* ``rewrite_references`` turns ``state.count`` into ``this.count`` (or any
  other access form);
* ``insert_after_mutations`` appends a statement (usually a "mark dirty"
  call) after every update or assignment rooted at a given identifier.

:class:`TokenExpressionRewriter` is the default implementation. Like the
template preprocessor it descends from, it works on a regex tokenization
that respects string, template, regular expression and comment boundaries,
so text inside literals is never rewritten.

The tokenizer does not parse JavaScript. A ``/`` after an operand is read as
division and anywhere else as the start of a regular expression, so a regex
literal directly after ``)`` (as in ``if (x) /re/.test(y)``) is misread.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from polyui.compiler.exceptions import BindingSyntaxError

# Reserved prefix for temporaries introduced by the mutation rewrite
TEMP_PREFIX = "_temp"

MAX_REWRITE_PASSES = 1000

_PUNCTUATORS = [
    ">>>=", "...", "===", "!==", "**=", "<<=", ">>=", ">>>", "??=", "&&=", "||=",
    "=>", "==", "!=", "<=", ">=", "&&", "||", "??", "?.", "++", "--", "+=", "-=",
    "*=", "/=", "%=", "&=", "|=", "^=", "**", "<<", ">>",
    "{", "}", "(", ")", "[", "]", ";", ",", "<", ">", "+", "-", "*", "/", "%",
    "&", "|", "^", "!", "~", "?", ":", "=", ".", "@", "#",
]

_TOKEN_RE = re.compile(
    r"(?P<comment>//[^\n]*|/\*[\s\S]*?\*/)"
    r"|(?P<string>\"(?:\\.|[^\\\"\n])*\"|'(?:\\.|[^\\'\n])*')"
    r"|(?P<number>(?:0[xXoObB][0-9a-fA-F_]+|\d[\d_]*(?:\.\d*)?(?:[eE][+-]?\d+)?"
    r"|\.\d+(?:[eE][+-]?\d+)?)n?)"
    r"|(?P<ident>[A-Za-z_$][\w$]*)"
    r"|(?P<newline>\r?\n)"
    r"|(?P<space>[ \t\r\f\v]+)"
    r"|(?P<punct>" + "|".join(re.escape(p) for p in _PUNCTUATORS) + r")"
    r"|(?P<error>.)",
    re.DOTALL,
)

_REGEX_FLAGS_RE = re.compile(r"[A-Za-z]*")

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {v: k for k, v in OPENERS.items()}

UPDATE_OPERATORS = {"++", "--"}
ASSIGNMENT_OPERATORS = {
    "=", "+=", "-=", "*=", "/=", "%=", "**=", "<<=", ">>=", ">>>=",
    "&=", "|=", "^=", "&&=", "||=", "??=",
}

# Operators that cannot end an expression
_DANGLING = ASSIGNMENT_OPERATORS | {
    "+", "-", "*", "/", "%", "**", "&&", "||", "??", ".", "?.", "=>", "!", "~",
    "?", ":", "<", ">", "<=", ">=", "==", "!=", "===", "!==", "&", "|", "^",
    "<<", ">>", ">>>", ",", "...",
}

# A newline before one of these continues the previous expression
_CONTINUATIONS = (_DANGLING - {"!", "~", "...", ","}) | {"(", "["}

# Identifiers that never end an operand
_KEYWORDS = {
    "return", "typeof", "void", "delete", "await", "yield", "new", "in", "of",
    "instanceof", "case", "throw", "else", "do", "const", "let", "var",
}

_STATEMENT_KEYWORDS = {"else", "do", "try", "finally"}


@dataclass
class Token:
    kind: str
    value: str
    start: int
    end: int
    newline_before: bool = False


def tokenize(code: str) -> List[Token]:
    """Split code into tokens, raising BindingSyntaxError on stray input.

    Template literals are scanned by hand so placeholders may nest further
    templates. A ``/`` that cannot continue an operand starts a regular
    expression literal.
    """
    tokens: List[Token] = []
    last: Optional[Token] = None
    pos = 0
    while pos < len(code):
        if code[pos] == "`":
            tok = Token("template", "", pos, _scan_template(code, pos))
        elif (
            code[pos] == "/"
            and not code.startswith(("//", "/*"), pos)
            and (last is None or not _ends_operand(last))
        ):
            tok = Token("regex", "", pos, _scan_regex(code, pos))
        else:
            match = _TOKEN_RE.match(code, pos)
            kind = match.lastgroup or "error"
            if kind == "error":
                if match.group(0) in "\"'":
                    raise BindingSyntaxError("Unterminated string literal", code, pos)
                raise BindingSyntaxError(
                    f"Unexpected character {match.group(0)!r}", code, pos
                )
            tok = Token(kind, "", pos, match.end())
        tok.value = code[tok.start : tok.end]
        tokens.append(tok)
        if tok.kind not in ("space", "newline", "comment"):
            last = tok
        pos = tok.end
    return tokens


def _scan_template(code: str, start: int) -> int:
    """End offset of the template literal whose backtick is at start."""
    i = start + 1
    while i < len(code):
        ch = code[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "`":
            return i + 1
        if code.startswith("${", i):
            i = _find_placeholder_end(code, i + 2) + 1
            continue
        i += 1
    raise BindingSyntaxError("Unterminated template literal", code, start)


def _scan_regex(code: str, start: int) -> int:
    """End offset of the regular expression literal starting at start."""
    in_class = False
    i = start + 1
    while i < len(code) and code[i] != "\n":
        ch = code[i]
        if ch == "\\":
            i += 2
            continue
        if in_class:
            if ch == "]":
                in_class = False
        elif ch == "[":
            in_class = True
        elif ch == "/":
            return _REGEX_FLAGS_RE.match(code, i + 1).end()
        i += 1
    raise BindingSyntaxError("Unterminated regular expression literal", code, start)


def significant_tokens(tokens: List[Token]) -> List[Token]:
    """Drop whitespace and comments, recording line breaks on the next token."""
    result: List[Token] = []
    saw_newline = False
    for tok in tokens:
        if tok.kind in ("space", "comment"):
            if "\n" in tok.value:
                saw_newline = True
            continue
        if tok.kind == "newline":
            saw_newline = True
            continue
        tok.newline_before = saw_newline
        saw_newline = False
        result.append(tok)
    return result


def _ends_operand(tok: Token) -> bool:
    if tok.kind == "ident":
        return tok.value not in _KEYWORDS
    if tok.kind in ("number", "string", "template", "regex"):
        return True
    return tok.value in (")", "]", "}", "++", "--")


class _Structure:
    """Bracket structure of a significant-token list."""

    def __init__(self, sig: List[Token], code: str) -> None:
        self.sig = sig
        self.parents: List[int] = []
        self.matches: Dict[int, int] = {}

        stack: List[int] = []
        for i, tok in enumerate(sig):
            if tok.kind == "punct" and tok.value in CLOSERS:
                if not stack or sig[stack[-1]].value != CLOSERS[tok.value]:
                    raise BindingSyntaxError(
                        f"Unbalanced {tok.value!r}", code, tok.start
                    )
                opener = stack.pop()
                self.matches[opener] = i
                self.matches[i] = opener
                self.parents.append(stack[-1] if stack else -1)
                continue
            self.parents.append(stack[-1] if stack else -1)
            if tok.kind == "punct" and tok.value in OPENERS:
                stack.append(i)

        if stack:
            opener_tok = sig[stack[-1]]
            raise BindingSyntaxError(
                f"Unclosed {opener_tok.value!r}", code, opener_tok.start
            )
        if sig and sig[-1].kind == "punct" and sig[-1].value in _DANGLING:
            raise BindingSyntaxError(
                "Unexpected end of expression", code, sig[-1].start
            )

    def value(self, i: int) -> Optional[str]:
        if 0 <= i < len(self.sig):
            return self.sig[i].value
        return None

    def is_punct(self, i: int, *values: str) -> bool:
        return (
            0 <= i < len(self.sig)
            and self.sig[i].kind == "punct"
            and self.sig[i].value in values
        )


@dataclass
class _Mutation:
    start: int  # first token of the mutating expression
    chain_end: int  # token after the member chain
    operator: int  # index of the update/assignment operator
    is_update: bool
    is_prefix: bool = False


class ExpressionRewriter(ABC):
    """Narrow rewrite service over expression-code strings."""

    @abstractmethod
    def rewrite_references(self, code: str, replacements: Mapping[str, str]) -> str:
        """Replace ``<root>.`` with ``replacements[root]`` for each root."""

    @abstractmethod
    def insert_after_mutations(self, code: str, root: str, statement: str) -> str:
        """Insert statement after every update/assignment rooted at root."""

    def validate(self, code: str) -> None:
        """Raise BindingSyntaxError if code is malformed."""


class TokenExpressionRewriter(ExpressionRewriter):
    """Best-effort syntactic rewriter working on a token stream."""

    def validate(self, code: str) -> None:
        _Structure(significant_tokens(tokenize(code)), code)

    def rewrite_references(self, code: str, replacements: Mapping[str, str]) -> str:
        tokens = tokenize(code)
        sig = significant_tokens(tokens)
        _Structure(sig, code)
        return self._rewrite_tokens(tokens, sig, replacements)

    def _rewrite_tokens(
        self, tokens: List[Token], sig: List[Token], replacements: Mapping[str, str]
    ) -> str:
        drop = set()
        replaced: Dict[int, str] = {}
        for i, tok in enumerate(sig):
            if tok.kind != "ident" or tok.value not in replacements:
                continue
            if i > 0 and sig[i - 1].value in (".", "?."):
                continue
            if (
                i + 2 < len(sig)
                and sig[i + 1].value in (".", "?.")
                and sig[i + 2].kind == "ident"
            ):
                replaced[tok.start] = replacements[tok.value]
                drop.add(sig[i + 1].start)

        parts: List[str] = []
        for tok in tokens:
            if tok.start in replaced:
                parts.append(replaced[tok.start])
            elif tok.start in drop:
                continue
            elif tok.kind == "template":
                parts.append(self._rewrite_template(tok.value, replacements))
            else:
                parts.append(tok.value)
        return "".join(parts)

    def _rewrite_template(self, value: str, replacements: Mapping[str, str]) -> str:
        """Rewrite the ``${...}`` parts of a template literal."""
        out: List[str] = []
        i = 0
        while i < len(value):
            ch = value[i]
            if ch == "\\":
                out.append(value[i : i + 2])
                i += 2
                continue
            if value.startswith("${", i):
                end = _find_placeholder_end(value, i + 2)
                inner = value[i + 2 : end]
                out.append("${" + self.rewrite_references(inner, replacements) + "}")
                i = end + 1
                continue
            out.append(ch)
            i += 1
        return "".join(out)

    def insert_after_mutations(self, code: str, root: str, statement: str) -> str:
        self.validate(code)
        for _ in range(MAX_REWRITE_PASSES):
            sig = significant_tokens(tokenize(code))
            structure = _Structure(sig, code)

            for mutation in self._find_mutations(structure, root):
                if self._in_temp_assignment(structure, mutation.start):
                    continue
                rewritten = self._apply(code, structure, mutation, statement)
                if rewritten is not None:
                    code = rewritten
                    break
            else:
                return code

        raise BindingSyntaxError("Mutation rewrite did not converge", code)

    def _find_mutations(self, s: _Structure, root: str) -> List[_Mutation]:
        sig = s.sig
        found: List[_Mutation] = []
        for i, tok in enumerate(sig):
            if tok.kind != "ident" or tok.value != root:
                continue
            if s.is_punct(i - 1, ".", "?."):
                continue

            # Member chain: root(.name | ?.name | [expr])+
            j = i + 1
            while j < len(sig):
                if s.is_punct(j, ".", "?.") and j + 1 < len(sig) and sig[j + 1].kind == "ident":
                    j += 2
                elif s.is_punct(j, "["):
                    j = s.matches[j] + 1
                else:
                    break
            if j == i + 1:
                continue

            if s.is_punct(j, *UPDATE_OPERATORS) and not sig[j].newline_before:
                found.append(_Mutation(i, j, j, is_update=True))
            elif s.is_punct(j, *ASSIGNMENT_OPERATORS):
                found.append(_Mutation(i, j, j, is_update=False))
            elif s.is_punct(i - 1, *UPDATE_OPERATORS) and not (
                i >= 2 and _ends_operand(sig[i - 2]) and not sig[i - 1].newline_before
            ):
                found.append(_Mutation(i - 1, j, i - 1, is_update=True, is_prefix=True))
        return found

    def _in_temp_assignment(self, s: _Structure, index: int) -> bool:
        """True if index sits inside ``[const] _tempN = ...`` at any level."""
        sig = s.sig
        idx = index
        while True:
            parent = s.parents[idx]
            k = idx - 1
            while k > parent:
                if s.parents[k] == parent and s.is_punct(k, ";", ","):
                    break
                k -= 1
            first = k + 1
            if s.value(first) in ("const", "let", "var"):
                first += 1
            if (
                first < idx
                and sig[first].kind == "ident"
                and sig[first].value.startswith(TEMP_PREFIX)
                and s.is_punct(first + 1, "=")
            ):
                return True
            if parent < 0:
                return False
            idx = parent

    def _is_statement_start(self, s: _Structure, start: int) -> bool:
        sig = s.sig
        prev = start - 1
        parent = s.parents[start]
        if parent >= 0 and sig[parent].value != "{":
            return False
        if prev < 0:
            return True
        if s.is_punct(prev, ";", "}"):
            return True
        if s.is_punct(prev, "{"):
            return self._is_block_brace(s, prev)
        if sig[start].newline_before and _ends_operand(sig[prev]):
            return True
        return False

    def _is_block_brace(self, s: _Structure, index: int) -> bool:
        before = index - 1
        if before < 0:
            return True
        tok = s.sig[before]
        if tok.kind == "ident":
            return tok.value in _STATEMENT_KEYWORDS
        return tok.value in (")", "=>", ";", "{", "}")

    def _expression_end(self, s: _Structure, start: int, scan_from: int) -> int:
        """Index of the last token of the expression beginning at start."""
        sig = s.sig
        parent = s.parents[start]
        asi = parent < 0 or sig[parent].value == "{"
        pending_ternaries = 0
        k = scan_from
        while k < len(sig):
            tok = sig[k]
            if s.parents[k] != parent:
                # Closer of the enclosing bracket
                break
            if tok.kind == "punct":
                if tok.value in (";", ","):
                    break
                if tok.value == "?":
                    pending_ternaries += 1
                elif tok.value == ":":
                    if pending_ternaries == 0:
                        break
                    pending_ternaries -= 1
            if (
                asi
                # a prefix ++/-- at start never ends the statement
                and k - 1 > start
                and tok.newline_before
                and _ends_operand(sig[k - 1])
                and tok.value not in _CONTINUATIONS
            ):
                break
            if tok.kind == "punct" and tok.value in OPENERS:
                k = s.matches[k] + 1
                continue
            k += 1
        return k - 1

    def _apply(
        self, code: str, s: _Structure, m: _Mutation, statement: str
    ) -> Optional[str]:
        sig = s.sig
        if not m.is_update and self._expression_end(s, m.start, m.operator + 1) <= m.operator:
            raise BindingSyntaxError(
                "Missing right-hand side of assignment", code, sig[m.operator].start
            )

        if self._is_statement_start(s, m.start):
            end = self._expression_end(s, m.start, m.operator + 1)
            pos = sig[end].end
            follows_semicolon = s.is_punct(end + 1, ";")
            if follows_semicolon:
                pos = sig[end + 1].end

            rest = code[pos:].lstrip()
            if rest.startswith(";"):
                rest = rest[1:].lstrip()
            if rest.startswith(statement):
                return None

            if follows_semicolon:
                return f"{code[:pos]}\n{statement};{code[pos:]}"
            return f"{code[:pos]};\n{statement}{code[pos:]}"

        if m.is_update:
            end = m.chain_end - 1 if m.is_prefix else m.operator
        else:
            end = self._expression_end(s, m.start, m.operator + 1)

        temp = _next_temp_name(sig)
        text = code[sig[m.start].start : sig[end].end]
        wrapped = (
            f"(() => {{ const {temp} = {text}; {statement}; return {temp}; }})()"
        )
        return code[: sig[m.start].start] + wrapped + code[sig[end].end :]


def _next_temp_name(sig: List[Token]) -> str:
    used = {tok.value for tok in sig if tok.kind == "ident"}
    if TEMP_PREFIX not in used:
        return TEMP_PREFIX
    n = 2
    while f"{TEMP_PREFIX}{n}" in used:
        n += 1
    return f"{TEMP_PREFIX}{n}"


def _find_placeholder_end(value: str, start: int) -> int:
    """Index of the ``}`` closing a template placeholder opened before start."""
    depth = 0
    quote = ""
    i = start
    while i < len(value):
        ch = value[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = ""
        elif ch == "`":
            i = _scan_template(value, i)
            continue
        elif ch in "\"'":
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            if depth == 0:
                return i
            depth -= 1
        i += 1
    raise BindingSyntaxError("Unterminated template placeholder", value, start)


_default_rewriter = TokenExpressionRewriter()


def get_default_rewriter() -> ExpressionRewriter:
    return _default_rewriter
