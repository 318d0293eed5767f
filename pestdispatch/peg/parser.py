# pestdispatch/peg/parser.py
from __future__ import annotations
import regex as re
from typing import Optional, List
from .ast import (
    Literal, Insensitive, Range, Ref, And, Not, Repeat, RepeatRange, Push,
    Seq, Choice, Node
)

# Rule-body grammar (pest expression subset) we parse:
#   expr     := seq ("|" seq)*
#   seq      := prefix ("~" prefix)*
#   prefix   := ("&"|"!")* postfix
#   postfix  := primary ("?"|"*"|"+"|repeat)*
#   repeat   := "{" NUM "}" | "{" NUM "," "}" | "{" "," NUM "}" | "{" NUM "," NUM "}"
#   primary  := "(" expr ")" | "^" string | string | char (".." char)?
#             | "PUSH" "(" expr ")" | IDENT
#
#   string   := " ... "  (escapes \n \r \t \0 \\ \" \' \xHH \u{H..})
#   char     := ' ... '  (single character, same escapes)
#   between tokens: whitespace, "//" line comments, "/* */" block comments

_TRIVIA_RE = re.compile(r"(?:[ \t\r\n]+|//[^\n]*|/\*.*?\*/)*", re.S)
_IDENT_RE = re.compile(r"[^\W\d]\w*")
_NUMBER_RE = re.compile(r"[0-9]+")
_ESCAPE_RE = re.compile(r"x(?P<x>[0-9A-Fa-f]{2})|u\{(?P<u>[0-9A-Fa-f]{2,6})\}|(?P<c>.)", re.S)
_SIMPLE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "0": "\0", "\\": "\\", '"': '"', "'": "'"}


class _Cursor:
    def __init__(self, src: str):
        self.s = src
        self.i = 0

    def err(self, msg: str) -> SyntaxError:
        return SyntaxError(f"pest expression parse error at {self.i}: {msg}")

    def skip(self) -> None:
        self.i = _TRIVIA_RE.match(self.s, self.i).end()
        if self.s.startswith("/*", self.i):
            raise self.err("unclosed block comment")

    def peek(self) -> Optional[str]:
        self.skip()
        return self.s[self.i] if self.i < len(self.s) else None

    def accept(self, lit: str) -> bool:
        self.skip()
        if self.s.startswith(lit, self.i):
            self.i += len(lit)
            return True
        return False

    def expect(self, lit: str) -> None:
        if not self.accept(lit):
            raise self.err(f"expected {lit!r}")

    def token(self, pattern) -> Optional[str]:
        self.skip()
        m = pattern.match(self.s, self.i)
        if not m:
            return None
        self.i = m.end()
        return m.group(0)

    def at_end(self) -> bool:
        self.skip()
        return self.i >= len(self.s)

    # --- literals ---

    def escape(self) -> str:
        m = _ESCAPE_RE.match(self.s, self.i)
        if not m:
            raise self.err("unterminated escape")
        self.i = m.end()
        if m.group("x"):
            return chr(int(m.group("x"), 16))
        if m.group("u"):
            return chr(int(m.group("u"), 16))
        c = m.group("c")
        if c not in _SIMPLE_ESCAPES:
            raise self.err(f"unknown escape \\{c}")
        return _SIMPLE_ESCAPES[c]

    def quoted(self, q: str) -> str:
        # 호출 측이 현재 문자가 q임을 확인한다
        self.i += 1
        out: List[str] = []
        while self.i < len(self.s):
            c = self.s[self.i]
            self.i += 1
            if c == q:
                return "".join(out)
            out.append(self.escape() if c == "\\" else c)
        raise self.err("unterminated string")

    def char(self) -> str:
        text = self.quoted("'")
        if len(text) != 1:
            raise self.err(f"character literal must hold exactly one char, got {text!r}")
        return text


class _ExprParser:
    def __init__(self, src: str):
        self.c = _Cursor(src)

    def parse(self) -> Node:
        node = self.expr()
        if not self.c.at_end():
            raise self.c.err(f"unexpected {self.c.s[self.c.i]!r}")
        return node

    def expr(self) -> Node:
        alts = [self.seq()]
        while self.c.accept("|"):
            alts.append(self.seq())
        return alts[0] if len(alts) == 1 else Choice(alts)

    def seq(self) -> Node:
        items = [self.prefix()]
        while self.c.accept("~"):
            items.append(self.prefix())
        return items[0] if len(items) == 1 else Seq(items)

    def prefix(self) -> Node:
        if self.c.accept("&"):
            return And(self.prefix())
        if self.c.accept("!"):
            return Not(self.prefix())
        return self.postfix()

    def postfix(self) -> Node:
        node = self.primary()
        while True:
            ch = self.c.peek()
            if ch in ("?", "*", "+"):
                self.c.i += 1
                node = Repeat(node, ch)
            elif ch == "{":
                node = self.bounds(node)
            else:
                return node

    def _number(self) -> Optional[int]:
        text = self.c.token(_NUMBER_RE)
        return int(text) if text is not None else None

    def bounds(self, node: Node) -> Node:
        self.c.expect("{")
        lo = self._number()
        has_comma = self.c.accept(",")
        hi = self._number() if has_comma else lo
        self.c.expect("}")
        if lo is None and hi is None:
            raise self.c.err("repetition needs at least one bound")
        if not has_comma:
            if lo == 0:
                raise self.c.err("{0} repetition matches nothing")
            return RepeatRange(node, lo, lo)
        if hi is None:
            return RepeatRange(node, lo, None)
        lo = lo or 0
        if hi == 0 or hi < lo:
            raise self.c.err(f"invalid repetition bounds {{{lo},{hi}}}")
        return RepeatRange(node, lo, hi)

    def primary(self) -> Node:
        ch = self.c.peek()
        if ch == "(":
            self.c.i += 1
            e = self.expr()
            self.c.expect(")")
            return e
        if ch == "^":
            self.c.i += 1
            if self.c.peek() != '"':
                raise self.c.err("expected string after '^'")
            return Insensitive(self.c.quoted('"'))
        if ch == '"':
            return Literal(self.c.quoted('"'))
        if ch == "'":
            lo = self.c.char()
            if not self.c.accept(".."):
                return Literal(lo)
            if self.c.peek() != "'":
                raise self.c.err("expected character after '..'")
            return Range(lo, self.c.char())

        name = self.c.token(_IDENT_RE)
        if name is None:
            raise self.c.err("expected IDENT")
        if name == "PUSH":
            self.c.expect("(")
            e = self.expr()
            self.c.expect(")")
            return Push(e)
        return Ref(name)


def parse_pest_expr(src: str) -> Node:
    """Parse a rule body (the text between the rule's braces)."""
    return _ExprParser(src).parse()
