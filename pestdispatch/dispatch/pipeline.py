# pestdispatch/dispatch/pipeline.py
"""Pipeline Orchestrator

`#[pest_parser(grammar = "...", interface = "...")]` 한 번의 확장을 수행한다.

    args ──validate──▶ PestParserArgs
    compiler(enumeration-only) ─▶ extract ─▶ synth ─┐
    compiler(full) ─────────────▶ rewrite ──────────┼─▶ 조립 ─▶ 토큰 검사
    ParserDecl.render() ────────────────────────────┘

출력 = (1) `<vis> struct <Ident>;`
     + (2) 규칙별 NominalTypeDecl
     + (3) enum_dispatch용으로 고친 full 출력

인자 검증은 컴파일러 호출 전에 끝난다. 어느 단계든 실패하면 부분 출력 없이 예외.
"""

from __future__ import annotations
import regex as re
import sys
from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping, Optional, Tuple, Union
from ..codegen.emit_rs import GrammarCompiler, PestCompiler
from ..errors import ArgumentError, AssemblyError
from .extract import extract_rule_set
from .rewrite import hook_rule_enum
from .synth import synthesize, render_decls
from .tokens import tokenize, check_balanced

GRAMMAR_KEY = "grammar"
INTERFACE_KEY = "interface"

MSG_KEY_NOT_IDENT = "key of argument must be an identifier"
MSG_VALUE_NOT_STR = "value of argument must be a string literal"

_IDENT_RE = re.compile(r"(?:r#)?[A-Za-z_][A-Za-z0-9_]*")

Args = Union[Mapping[str, Any], Iterable[Tuple[Any, Any]]]


def _eprint(*args, **kw) -> None:
    print(*args, file=sys.stderr, **kw)


@dataclass(frozen=True)
class PestParserArgs:
    grammar: str
    interface: str


@dataclass(frozen=True)
class ParserDecl:
    """속성이 붙은 구조체 선언. 컴파일러에는 이 값이 그대로 전달된다."""
    vis: str
    ident: str
    grammar: str = ""

    def __post_init__(self) -> None:
        if not _IDENT_RE.fullmatch(self.ident):
            raise ValueError(f"ParserDecl: invalid struct identifier {self.ident!r}")

    def render(self) -> str:
        if self.vis:
            return f"{self.vis} struct {self.ident};"
        return f"struct {self.ident};"


def _argument(pair) -> Tuple[str, str]:
    key, value = pair
    if not isinstance(key, str) or not _IDENT_RE.fullmatch(key):
        raise ArgumentError(MSG_KEY_NOT_IDENT)
    if not isinstance(value, str):
        raise ArgumentError(MSG_VALUE_NOT_STR)
    return key, value


def validate_arguments(args: Args) -> PestParserArgs:
    """
    (key, value) 쌍 시퀀스나 매핑을 받아 검증한다.
    - 정확히 2개
    - 키는 식별자, 값은 문자열
    - 키 집합은 {grammar, interface} (순서 무관, 값은 키로 배정)
    """
    pairs = list(args.items()) if isinstance(args, Mapping) else list(args)
    if len(pairs) != 2:
        raise ArgumentError(f"expected 2 arguments, but got {len(pairs)}")

    (k0, v0), (k1, v1) = (_argument(p) for p in pairs)
    if (k0, k1) not in ((GRAMMAR_KEY, INTERFACE_KEY), (INTERFACE_KEY, GRAMMAR_KEY)):
        raise ArgumentError(
            f"expected arguments are `{GRAMMAR_KEY}` and `{INTERFACE_KEY}`, but got `{k0}` and `{k1}`"
        )
    values = {k0: v0, k1: v1}
    return PestParserArgs(grammar=values[GRAMMAR_KEY], interface=values[INTERFACE_KEY])


def check_assembly(unit: str) -> None:
    """조립 결과가 균형 잡힌 Rust 토큰열인지 확인한다."""
    try:
        check_balanced(tokenize(unit))
    except SyntaxError as e:
        raise AssemblyError(f"illegal code format found: {e}") from e


def expand_pest_parser(
    args: Args,
    decl: ParserDecl,
    compiler: Optional[GrammarCompiler] = None,
    *,
    debug: bool = False,
) -> str:
    """속성 인자 + 구조체 선언 → 확장된 Rust 소스."""
    parsed = validate_arguments(args)
    decl = replace(decl, grammar=parsed.grammar)
    if compiler is None:
        compiler = PestCompiler(debug=debug)

    # 1) enumeration-only → RuleSet → 규칙별 구조체
    enum_src = compiler.compile(True, decl)
    if debug: _eprint(f"[DEBUG] enumeration-only output ({decl.ident}):\n{enum_src}")
    rule_set = extract_rule_set(enum_src)
    decls = synthesize(rule_set)
    if debug: _eprint(f"[DEBUG] rule set | n={len(rule_set)} {' '.join(rule_set.names)}")

    # 2) full → enum_dispatch 훅
    full_src = compiler.compile(False, decl)
    if debug: _eprint(f"[DEBUG] full output ({decl.ident}):\n{full_src}")
    hooked = hook_rule_enum(full_src, parsed.interface, debug=debug)

    unit = decl.render() + "\n" + render_decls(decls) + hooked
    check_assembly(unit)
    if debug: _eprint(f"[DEBUG] assembled {decl.ident} | bytes={len(unit)}")
    return unit
