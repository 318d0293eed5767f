# pestdispatch/codegen/emit_rs.py
"""pest 모양 Rust 코드 방출 (문법 컴파일러).

개요
----
- ParserIR을 받아 pest 2.5.4 `derive_parser`가 내놓는 **토큰열 문자열**과
  같은 모양의 Rust 소스를 생성한다.
- 두 가지 모드가 있다.
  * enumeration-only : `enum Rule` + `impl Rule { all_rules }` 만 방출
  * full             : 위 내용 + 문법 상수(include_str!) + `impl Parser`
                       (`mod rules` 규칙 함수들, 디스패처 `match rule {...}`)

모양 고정점
-----------
하위 단계(dispatch.extract / dispatch.rewrite)는 이 출력의 **텍스트 모양**에
기대어 동작한다. 특히 다음은 바꾸면 안 된다.
  * `enum Rule` 바로 앞의 `#[allow(dead_code, non_camel_case_types, clippy :: upper_case_acronyms)]`
  * 그 다음의 `#[derive(` 목록
  * `Rule :: r#X,` / `r#X,` / 마지막 원소 뒤의 `]` / `}` 구두점
  * `=>` 토큰은 디스패처 match 안에서만 등장
"""

from __future__ import annotations
import abc
from typing import List, Optional
from ..grammar.loader import resolve_grammar_path, load_grammar_text
from ..grammar.parser import parse_grammar
from ..grammar.ast import Modifier
from ..peg.ast import (
    Literal, Insensitive, Range, Ref, And, Not, Repeat, RepeatRange, Push,
    Seq, Choice, Node
)
from .ir import ParserIR, RuleIR, SENTINEL, BUILTINS, build_ir
import sys


ENUM_MARKER = "#[allow(dead_code, non_camel_case_types, clippy :: upper_case_acronyms)]"
RULE_DERIVES = "#[derive(Clone, Copy, Debug, Eq, Hash, Ord, PartialEq, PartialOrd)]"

_STATE_TY = ":: std :: boxed :: Box < :: pest :: ParserState < '_, Rule > >"
_RESULT_TY = ":: pest :: ParseResult < :: std :: boxed :: Box < :: pest :: ParserState < '_, Rule > > >"
_SKIP = "super :: hidden :: skip (state)"

# $, ! 규칙은 atomic이 rule 바깥을 감싼다. @ 규칙은 rule 안쪽에서 감싼다.
_OUTER_ATOMICITY = {
    Modifier.COMPOUND:   "CompoundAtomic",
    Modifier.NON_ATOMIC: "NonAtomic",
}

# 암묵적 skip에 쓰이는 규칙. 본문은 항상 atomic으로 생성한다.
_SKIP_RULES = ("WHITESPACE", "COMMENT")


def _eprint(*args, **kw) -> None:
    print(*args, file=sys.stderr, **kw)


# ---------- 유틸 ----------

def _escape_rs(s: str) -> str:
    """Rust 문자열 리터럴 이스케이프."""
    out = []
    for ch in s:
        if ch == "\\":
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        elif ch == "\0":
            out.append("\\0")
        elif ord(ch) < 0x20 or ord(ch) == 0x7f:
            out.append(f"\\u{{{ord(ch):x}}}")
        else:
            out.append(ch)
    return "".join(out)

def _escape_rs_char(ch: str) -> str:
    """Rust 단일 문자 리터럴용 이스케이프."""
    if ch == "'":
        return "\\'"
    if ch == '"':
        return '"'
    return _escape_rs(ch)

def _fmt_docs(lines: List[str]) -> str:
    return "".join(f"#[doc = \"{_escape_rs(d)}\"] " for d in lines)


def _preflight_check(ir: ParserIR) -> None:
    """기본 불변식을 조기 검증하여 생성 단계에서 실패시킨다."""
    if not ir.variants or ir.variants[0] != SENTINEL:
        raise ValueError(f"emit_rs: variants must start with {SENTINEL} (got {ir.variants[:1]})")
    if ir.variants.count(SENTINEL) != 1:
        raise ValueError(f"emit_rs: {SENTINEL} must appear exactly once in variants")
    if len(set(ir.variants)) != len(ir.variants):
        raise ValueError(f"emit_rs: duplicate variants {ir.variants}")
    if not ir.parser_ident:
        raise ValueError("emit_rs: empty parser identifier")


# ---------- 표현식 → Rust ----------

def _seq_src(parts: List[str], atomic: bool) -> str:
    chain = parts[0]
    for p in parts[1:]:
        if not atomic:
            chain += f" . and_then (| state | {{ {_SKIP} }})"
        chain += f" . and_then (| state | {{ {p} }})"
    return f"state . sequence (| state | {{ {chain} }})"

def _star_src(inner: str, atomic: bool) -> str:
    if atomic:
        return f"state . repeat (| state | {{ {inner} }})"
    return (
        f"state . sequence (| state | {{ state . optional (| state | {{ {inner}"
        f" . and_then (| state | {{ state . repeat (| state | {{ state . sequence (| state | {{ {_SKIP}"
        f" . and_then (| state | {{ {inner} }}) }}) }}) }}) }}) }})"
    )

def _range_src(rr: RepeatRange, atomic: bool) -> str:
    """{n}, {n,}, {,m}, {n,m}: 필수 n번 뒤에 (A ~ (A ~ ...)?)? 꼬리.
    꼬리는 안쪽부터 반복문으로 쌓으므로 상한이 커도 재귀가 깊어지지 않는다."""
    inner = _gen(rr.node, atomic)
    parts = [inner] * rr.min
    if rr.max is None:
        parts.append(_star_src(inner, atomic))
    elif rr.max > rr.min:
        tail = f"state . optional (| state | {{ {inner} }})"
        for _ in range(rr.max - rr.min - 1):
            tail = f"state . optional (| state | {{ {_seq_src([inner, tail], atomic)} }})"
        parts.append(tail)
    if len(parts) == 1:
        return parts[0]
    return _seq_src(parts, atomic)


def _gen(node: Node, atomic: bool) -> str:
    if isinstance(node, Literal):
        return f"state . match_string (\"{_escape_rs(node.text)}\")"

    if isinstance(node, Insensitive):
        return f"state . match_insensitive (\"{_escape_rs(node.text)}\")"

    if isinstance(node, Range):
        return f"state . match_range ('{_escape_rs_char(node.lo)}' .. '{_escape_rs_char(node.hi)}')"

    if isinstance(node, Ref):
        if node.name == SENTINEL:
            return "self :: EOI (state)"
        if node.name in BUILTINS:
            return BUILTINS[node.name]
        return f"self :: r#{node.name} (state)"

    if isinstance(node, And):
        return f"state . lookahead (true, | state | {{ {_gen(node.node, atomic)} }})"

    if isinstance(node, Not):
        return f"state . lookahead (false, | state | {{ {_gen(node.node, atomic)} }})"

    if isinstance(node, Push):
        return f"state . stack_push (| state | {{ {_gen(node.node, atomic)} }})"

    if isinstance(node, Seq):
        return _seq_src([_gen(it, atomic) for it in node.items], atomic)

    if isinstance(node, Choice):
        parts = [_gen(it, atomic) for it in node.alts]
        chain = parts[0]
        for p in parts[1:]:
            chain += f" . or_else (| state | {{ {p} }})"
        return chain

    if isinstance(node, Repeat):
        inner = _gen(node.node, atomic)
        if node.kind == "?":
            return f"state . optional (| state | {{ {inner} }})"
        if node.kind == "*":
            return _star_src(inner, atomic)
        if node.kind == "+":
            return _seq_src([inner, _star_src(inner, atomic)], atomic)
        raise AssertionError(f"unknown repeat kind {node.kind!r}")

    if isinstance(node, RepeatRange):
        return _range_src(node, atomic)

    raise AssertionError(f"unknown node: {node!r}")


def _atomic(kind: str, src: str) -> str:
    return f"state . atomic (:: pest :: Atomicity :: {kind}, | state | {{ {src} }})"


def _wrap_rule(r: RuleIR) -> str:
    if r.is_atomic:
        body = _gen(r.expr, True)
    elif r.name in _SKIP_RULES:
        body = _atomic("Atomic", _gen(r.expr, True))
    else:
        body = _gen(r.expr, False)
    if r.is_silent:
        return body
    if r.modifier == Modifier.ATOMIC:
        body = _atomic("Atomic", body)
    ruled = f"state . rule (Rule :: {r.ident}, | state | {{ {body} }})"
    if r.modifier in _OUTER_ATOMICITY:
        return _atomic(_OUTER_ATOMICITY[r.modifier], ruled)
    return ruled


def _fmt_skip(ir: ParserIR) -> str:
    ws = "state . repeat (| state | super :: visible :: r#WHITESPACE (state))"
    cm = "super :: visible :: r#COMMENT (state)"
    if ir.has_whitespace and ir.has_comment:
        inner = (
            f"state . sequence (| state | {{ {ws} . and_then (| state | {{ state . repeat (| state | {{"
            f" state . sequence (| state | {{ {cm} . and_then (| state | {{ {ws} }}) }}) }}) }}) }})"
        )
    elif ir.has_whitespace:
        inner = ws
    elif ir.has_comment:
        inner = f"state . repeat (| state | {cm})"
    else:
        return "Ok (state)"
    return f"if state . atomicity () == :: pest :: Atomicity :: NonAtomic {{ {inner} }} else {{ Ok (state) }}"


# ---------- 섹션 방출 ----------

def emit_rule_enum(ir: ParserIR) -> str:
    """`enum Rule` 선언 + `impl Rule { all_rules }` (enumeration-only 모드 본체)."""
    variants = ", ".join(f"{_fmt_docs(ir.doc_of(v))}{v}" for v in ir.variants)
    listing = ", ".join(f"Rule :: {v}" for v in ir.variants)
    return (
        f"{_fmt_docs(ir.docs)}{ENUM_MARKER}\n"
        f"{RULE_DERIVES} pub enum Rule\n"
        f"{{\n"
        f"    {variants}\n"
        f"}} impl Rule\n"
        f"{{\n"
        f"    pub fn all_rules() -> & 'static [Rule]\n"
        f"    {{ & [{listing}] }}\n"
        f"}}\n"
    )


def emit_grammar_const(ir: ParserIR) -> str:
    return (
        f"#[allow(non_upper_case_globals)] const _PEST_GRAMMAR_{ir.parser_ident} : & 'static str = "
        f"include_str ! (\"{_escape_rs(ir.grammar_path)}\") ;\n"
    )


def emit_parser_impl(ir: ParserIR) -> str:
    """`impl :: pest :: Parser < Rule >` — 규칙 함수 모듈과 디스패처."""
    fns: List[str] = []
    for r in ir.rules:
        fns.append(
            f"                # [inline] # [allow(non_snake_case, unused_variables)] pub fn {r.ident} "
            f"(state : {_STATE_TY}) -> {_RESULT_TY}\n"
            f"                {{ {_wrap_rule(r)} }}"
        )
    fns.append(
        f"                # [inline] # [allow(dead_code, non_snake_case, unused_variables)] pub fn EOI "
        f"(state : {_STATE_TY}) -> {_RESULT_TY}\n"
        f"                {{ state . rule (Rule :: EOI, | state | state . end_of_input ()) }}"
    )

    user_arms = [v for v in ir.variants if v != SENTINEL]
    arms = ", ".join(f"Rule :: {v} => rules :: {v} (state)" for v in user_arms + [SENTINEL])

    fns_src = "\n".join(fns)
    return f"""\
#[allow(clippy :: all)] impl :: pest :: Parser < Rule > for {ir.parser_ident}
{{
    fn parse < 'i > (rule : Rule, input : & 'i str) -> :: std :: result :: Result < :: pest :: iterators :: Pairs < 'i, Rule > , :: pest :: error :: Error < Rule > >
    {{
        mod rules
        {{
            #! [allow(clippy :: upper_case_acronyms)] pub mod hidden
            {{
                use super :: super :: Rule ; # [inline] # [allow(dead_code, non_snake_case, unused_variables)] pub fn skip (state : {_STATE_TY}) -> {_RESULT_TY}
                {{ {_fmt_skip(ir)} }}
            }} pub mod visible
            {{
                use super :: super :: Rule ;
{fns_src}
            }} pub use self :: visible :: * ;
        }} :: pest :: state (input, | state | {{ match rule {{ {arms} }} }})
    }}
}}
"""


def emit_rs_to_string(ir: ParserIR, *, enumeration_only: bool) -> str:
    """
    emit_rs_to_string(ir, enumeration_only) -> str
    ----------------------------------------------
    ParserIR을 받아 **하나의 Rust 소스 문자열**을 생성한다.
    enumeration_only면 `enum Rule` 부분만, 아니면 파서 구현 전체.
    """
    _preflight_check(ir)
    if enumeration_only:
        return emit_rule_enum(ir)
    return "\n".join([emit_grammar_const(ir), emit_rule_enum(ir), emit_parser_impl(ir)])


# ---------- 컴파일러 인터페이스 ----------

class GrammarCompiler(abc.ABC):
    """파이프라인이 기대하는 최소 인터페이스.
    declaration은 `.ident`(파서 구조체 이름)와 `.grammar`(문법 경로)를 가진다."""
    @abc.abstractmethod
    def compile(self, enumeration_only: bool, declaration) -> str:
        raise NotImplementedError


class PestCompiler(GrammarCompiler):
    """
    PestCompiler
    ============
    .pest 문법 파일을 읽어 pest 모양 Rust 소스를 만드는 기본 컴파일러.

    - grammar_root: 상대 경로 문법 파일의 기준 디렉터리(미지정시 $CARGO_MANIFEST_DIR/src → cwd)
    - debug       : True면 단계별 요약을 stderr로 출력
    """
    def __init__(self, grammar_root: Optional[str] = None, debug: bool = False):
        self.grammar_root = grammar_root
        self.debug = debug

    def build_ir(self, declaration) -> ParserIR:
        path = resolve_grammar_path(declaration.grammar, self.grammar_root)
        src = load_grammar_text(str(path))
        g = parse_grammar(src)
        if self.debug: _eprint(f"[DEBUG] grammar loaded | path={path} rules={len(g.rules)}")
        return build_ir(g, declaration.ident, path.as_posix())

    def compile(self, enumeration_only: bool, declaration) -> str:
        ir = self.build_ir(declaration)
        out = emit_rs_to_string(ir, enumeration_only=enumeration_only)
        if self.debug:
            mode = "enumeration-only" if enumeration_only else "full"
            _eprint(f"[DEBUG] compiled {declaration.ident} | mode={mode} variants={len(ir.variants)} bytes={len(out)}")
        return out
