"""pest 문법 파서 (MVP)
- 규칙: RuleName = modifier? { expr }
- modifier: _ (silent) / @ (atomic) / $ (compound atomic) / ! (non-atomic)
- 주석: // ... , /* ... */
- 문서 주석: /// (규칙 문서), //! (문법 전체 문서)
- 본문 { ... }은 스캐너가 BODY 토큰 하나로 통째로 캡처하고,
  표현식 해석은 peg.parser에 맡긴다.
"""

from __future__ import annotations
import regex as re
from dataclasses import dataclass
from typing import List, Optional, Tuple
from .ast import *
from ..peg.parser import parse_pest_expr

# ---- Lexer 토큰 ----
_TOKEN_SPEC = [
    ("WS",          r"[ \t\f\n]+"),
    ("GRAMMAR_DOC", r"//![^\n]*"),
    ("RULE_DOC",    r"///[^\n]*"),
    ("COMMENT",     r"//[^\n]*|/\*.*?\*/"),
    ("EQ",          r"="),
    ("MODIFIER",    r"_(?![A-Za-z0-9_])|[@$!]"),
    ("IDENT",       r"[A-Za-z_][A-Za-z0-9_]*"),
]
MASTER_RE = re.compile("|".join(f"(?P<{n}>{p})" for n,p in _TOKEN_SPEC), re.S)

# 본문 안에서 중괄호 균형에 영향을 주지 않는 조각(리터럴, 주석)과 중괄호 자체
_BODY_PIECE_RE = re.compile(
    r"""(?P<skip>"(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*'|//[^\n]*|/\*.*?\*/)"""
    r"|(?P<open_comment>/\*)|(?P<brace>[{}])",
    re.S,
)

_DOC_PREFIX_RE = re.compile(r"^//[/!] ?")

@dataclass
class Tok:
    kind: str
    lexeme: str
    start: int
    end: int
    line: int
    col: int


def _line_col(src: str, pos: int) -> Tuple[int, int]:
    """오프셋 -> (줄, 칼럼), 둘 다 1부터"""
    return src.count("\n", 0, pos) + 1, pos - src.rfind("\n", 0, pos)


def _tok(src: str, kind: str, start: int, end: int) -> Tok:
    return Tok(kind, src[start:end], start, end, *_line_col(src, start))


def _scan(src: str) -> List[Tok]:
    """공백과 일반 주석은 버리고, 규칙 본문은 LBRACE/BODY/RBRACE 세 토큰으로."""
    toks: List[Tok] = []
    i = 0
    while i < len(src):
        if src[i] == "{":
            close = _matching_brace(src, i)
            toks += [_tok(src, "LBRACE", i, i + 1),
                     _tok(src, "BODY", i + 1, close),
                     _tok(src, "RBRACE", close, close + 1)]
            i = close + 1
            continue

        m = MASTER_RE.match(src, i)
        if not m:
            line, col = _line_col(src, i)
            raise SyntaxError(f"Unexpected char {src[i]!r} at {line}:{col}")
        if m.lastgroup not in ("WS", "COMMENT"):
            toks.append(_tok(src, m.lastgroup, i, m.end()))
        i = m.end()

    toks.append(_tok(src, "EOF", len(src), len(src)))
    return toks


def _matching_brace(src: str, open_pos: int) -> int:
    """src[open_pos]의 '{'와 짝이 맞는 '}'의 오프셋"""
    depth = 0
    for m in _BODY_PIECE_RE.finditer(src, open_pos):
        if m.group("open_comment"):
            line, col = _line_col(src, m.start())
            raise SyntaxError(f"Unclosed block comment at {line}:{col}")
        if m.group("brace") == "{":
            depth += 1
        elif m.group("brace") == "}":
            depth -= 1
            if depth == 0:
                return m.start()
    line, col = _line_col(src, open_pos)
    raise SyntaxError(f"Unterminated rule body (missing '}}') opened at {line}:{col}")


def _snippet_with_caret(src: str, tok: Tok) -> str:
    """토큰이 있는 줄과 그 아래 캐럿"""
    line_start = src.rfind("\n", 0, tok.start) + 1
    line_end = src.find("\n", tok.start)
    if line_end == -1:
        line_end = len(src)
    return src[line_start:line_end] + "\n" + " " * (tok.start - line_start) + "^"


class _Cursor:
    def __init__(self, toks: List[Tok], src: str):
        self.toks = toks
        self.pos = 0
        self.src = src

    @property
    def cur(self) -> Tok:
        return self.toks[self.pos]

    def take(self, kind: str) -> Tok:
        t = self.cur
        if t.kind != kind:
            raise SyntaxError(
                f"Expected {kind}, got {t.kind} at {t.line}:{t.col}\n{_snippet_with_caret(self.src, t)}"
            )
        self.pos += 1
        return t

    def optional(self, kind: str) -> Optional[Tok]:
        return self.take(kind) if self.cur.kind == kind else None


def _doc_text(lexeme: str) -> str:
    return _DOC_PREFIX_RE.sub("", lexeme, count=1)


# --- Grammar Parsing ---
def parse_grammar(src: str) -> PestGrammar:
    cur = _Cursor(_scan(src), src)
    g = PestGrammar()
    pending_docs: List[str] = []

    while cur.cur.kind != "EOF":
        kind = cur.cur.kind
        if kind == "GRAMMAR_DOC":
            g.docs.append(_doc_text(cur.take(kind).lexeme))
            continue
        if kind == "RULE_DOC":
            pending_docs.append(_doc_text(cur.take(kind).lexeme))
            continue

        name_tok = cur.take("IDENT")
        name = name_tok.lexeme
        cur.take("EQ")
        mod_tok = cur.optional("MODIFIER")
        modifier = mod_tok.lexeme if mod_tok else Modifier.NORMAL
        cur.take("LBRACE")
        body_tok = cur.take("BODY")
        close_tok = cur.take("RBRACE")
        where = f"{name_tok.line}:{name_tok.col}"

        if g.find(name) is not None:
            raise SyntaxError(
                f"Rule '{name}' is defined more than once at {where}\n{_snippet_with_caret(src, name_tok)}"
            )

        try:
            expr = parse_pest_expr(body_tok.lexeme)
        except SyntaxError as e:
            raise SyntaxError(
                f"{e} (in rule '{name}' at {where})\n{_snippet_with_caret(src, name_tok)}"
            ) from e

        span = Span(name_tok.start, close_tok.end, name_tok.line, name_tok.col)
        g.rules.append(PestRule(name, modifier, body_tok.lexeme, expr, pending_docs, span))
        pending_docs = []

    return g
