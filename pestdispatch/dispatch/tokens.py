# pestdispatch/dispatch/tokens.py
"""Rust 토큰 스캐너 (MVP)

컴파일러 출력과 사용자 Rust 소스를 **토큰 단위**로 나눈다.
- 문자열/raw 문자열/문자/라이프타임을 구분하므로, 리터럴 안의 괄호나
  `}`에 속지 않는다.
- 주석과 공백은 기본적으로 토큰 스트림에서 뺀다(위치 정보는 유지).
- 괄호 균형 검사(check_balanced)로 조립 결과의 형식 오류를 잡는다.

여기서의 오류는 모두 SyntaxError이며, 호출 측에서 단계별 예외로 감싼다.
"""

from __future__ import annotations
import regex as re
from dataclasses import dataclass
from typing import List, Optional

_TOKEN_SPEC = [
    ("WS",            r"[ \t\f\r\n]+"),
    ("LINE_COMMENT",  r"//[^\n]*"),
    ("BLOCK_COMMENT", r"/\*(?:[^*]|\*(?!/))*\*/"),
    ("BAD_COMMENT",   r"/\*"),
    ("RAW_STRING",    r'b?r(?P<hashes>#*)".*?"(?P=hashes)'),
    ("BAD_RAW",       r'b?r#*"'),
    ("STRING",        r'b?"(?:\\.|[^"\\])*"'),
    ("BAD_STRING",    r'b?"'),
    ("CHAR",          r"b?'(?:\\(?:x[0-9A-Fa-f]{2}|u\{[0-9A-Fa-f]{1,6}\}|.)|[^'\\\n])'"),
    ("LIFETIME",      r"'[A-Za-z_][A-Za-z0-9_]*"),
    ("RAW_IDENT",     r"r#[A-Za-z_][A-Za-z0-9_]*"),
    ("IDENT",         r"[A-Za-z_][A-Za-z0-9_]*"),
    ("NUMBER",        r"[0-9][A-Za-z0-9_]*(?:\.[0-9][A-Za-z0-9_]*)?"),
    ("OPEN",          r"[(\[{]"),
    ("CLOSE",         r"[)\]}]"),
    ("PUNCT",         r"=>|::|->|==|!=|<=|>=|&&|\|\||\.\.=|\.\.\.|\.\.|[-+*/%^!&|=<>@.,;:#$?~]"),
]
MASTER_RE = re.compile("|".join(f"(?P<{n}>{p})" for n, p in _TOKEN_SPEC), re.S)

_TRIVIA = ("WS", "LINE_COMMENT", "BLOCK_COMMENT")
_PAIRS = {")": "(", "]": "[", "}": "{"}

@dataclass
class Tok:
    kind: str
    text: str
    start: int
    end: int
    line: int
    col: int


def tokenize(src: str) -> List[Tok]:
    """src를 토큰 리스트로. 마지막에 EOF 토큰을 붙인다."""
    toks: List[Tok] = []
    line = col = 1
    i = 0
    while i < len(src):
        m = MASTER_RE.match(src, i)
        if not m:
            raise SyntaxError(f"Unexpected char {src[i]!r} at {line}:{col}")
        kind = m.lastgroup or ""
        text = m.group(0)
        if kind == "BAD_COMMENT":
            raise SyntaxError(f"Unterminated block comment at {line}:{col}")
        if kind in ("BAD_RAW", "BAD_STRING"):
            raise SyntaxError(f"Unterminated string literal at {line}:{col}")

        if kind not in _TRIVIA:
            toks.append(Tok(kind, text, i, m.end(), line, col))

        nl = text.count("\n")
        if nl:
            line += nl
            col = len(text) - text.rfind("\n")
        else:
            col += len(text)
        i = m.end()

    toks.append(Tok("EOF", "", len(src), len(src), line, col))
    return toks


def check_balanced(toks: List[Tok]) -> None:
    """괄호 (), [], {} 균형 검사. 어긋나면 SyntaxError."""
    stack: List[Tok] = []
    for t in toks:
        if t.kind == "OPEN":
            stack.append(t)
        elif t.kind == "CLOSE":
            if not stack:
                raise SyntaxError(f"unexpected closing delimiter {t.text!r} at {t.line}:{t.col}")
            top = stack.pop()
            if _PAIRS[t.text] != top.text:
                raise SyntaxError(
                    f"mismatched closing delimiter {t.text!r} at {t.line}:{t.col} "
                    f"(opened by {top.text!r} at {top.line}:{top.col})"
                )
    if stack:
        top = stack[-1]
        raise SyntaxError(f"unclosed delimiter {top.text!r} opened at {top.line}:{top.col}")


# ---------- error handling utils ----------
def snippet_with_caret(src: str, tok: Tok) -> str:
    """토큰이 있는 줄과 그 아래 캐럿"""
    line_start = src.rfind("\n", 0, tok.start) + 1
    line_end = src.find("\n", tok.start)
    if line_end == -1:
        line_end = len(src)
    return src[line_start:line_end] + "\n" + " " * (tok.start - line_start) + "^"


# ---------- 리터럴 ----------
_ESCAPE_RE = re.compile(r"\\(?:x([0-9A-Fa-f]{2})|u\{([0-9A-Fa-f]{1,6})\}|\n[ \t\r\n]*|(.))", re.S)
_SIMPLE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "0": "\0", "\\": "\\", "'": "'", '"': '"'}

def _decode_escape(m) -> str:
    if m.group(1):
        return chr(int(m.group(1), 16))
    if m.group(2):
        return chr(int(m.group(2), 16))
    ch = m.group(3)
    if ch is None:
        # 줄 끝 역슬래시: 개행과 다음 줄 선행 공백을 삼킨다
        return ""
    if ch not in _SIMPLE_ESCAPES:
        raise SyntaxError(f"unknown character escape: \\{ch}")
    return _SIMPLE_ESCAPES[ch]

def unquote_str(tok: Tok) -> str:
    """STRING / RAW_STRING 토큰의 값을 복원한다."""
    if tok.kind == "RAW_STRING":
        body = tok.text.lstrip("b")[1:]
        hashes = len(body) - len(body.lstrip("#"))
        return body[hashes + 1:len(body) - hashes - 1]
    if tok.kind == "STRING":
        return _ESCAPE_RE.sub(_decode_escape, tok.text.lstrip("b")[1:-1])
    raise ValueError(f"tokens: {tok.kind} is not a string literal")


# --- 토큰 스트림 ---
class TokenStream:
    def __init__(self, toks: List[Tok], src: str, i: int = 0):
        self.toks = toks
        self.i = i
        self.src = src

    def la(self, k: int = 0) -> Tok:
        j = min(self.i + k, len(self.toks) - 1)
        return self.toks[j]

    def at(self, kind: str, text: Optional[str] = None, k: int = 0) -> bool:
        t = self.la(k)
        return t.kind == kind and (text is None or t.text == text)

    def eat(self, kind: str, text: Optional[str] = None) -> Tok:
        t = self.la()
        if not self.at(kind, text):
            want = f"{text!r}" if text is not None else kind
            got = f"{t.text!r}" if t.text else t.kind
            snippet = snippet_with_caret(self.src, t)
            raise SyntaxError(f"Expected {want}, got {got} at {t.line}:{t.col}\n{snippet}")
        self.i += 1
        return t

    def match(self, kind: str, text: Optional[str] = None) -> Optional[Tok]:
        if self.at(kind, text):
            return self.eat(kind, text)
        return None

    def skip_group(self) -> Tok:
        """현재 OPEN 토큰부터 짝이 맞는 CLOSE까지 소비하고 CLOSE를 돌려준다."""
        open_tok = self.eat("OPEN")
        depth = 1
        while depth:
            t = self.la()
            if t.kind == "EOF":
                raise SyntaxError(f"unclosed delimiter {open_tok.text!r} opened at {open_tok.line}:{open_tok.col}")
            self.i += 1
            if t.kind == "OPEN":
                depth += 1
            elif t.kind == "CLOSE":
                depth -= 1
                if depth == 0:
                    return t
        raise AssertionError("unreachable")
