"""
pest 모양 코드 생성용 IR
=======

이 모듈은 파싱된 pest 문법(PestGrammar)을 받아,
Rust 방출기(emit_rs)가 소비하기 쉬운 **중간표현(IR)** 로 변환한다.

설계 포인트
-----------
- `enum Rule`의 변형(variant) 순서는 **EOI(센티넬) 먼저**, 이어서
  silent(`_`)가 아닌 사용자 규칙을 **선언 순서** 그대로 둔다.
- 사용자 규칙 식별자는 pest와 같이 raw 식별자(`r#Name`)로 표기하고,
  센티넬만 `EOI` 그대로 쓴다.
- 규칙 본문에서 참조하는 이름은 사용자 규칙 또는 내장 규칙이어야 한다.

주의
----
- 문법 의미 검증(좌재귀, 무한 반복 등)은 하지 않는다.
- WHITESPACE / COMMENT 규칙이 있으면 암묵적 skip에 사용된다.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List
from ..grammar.ast import PestGrammar, Modifier
from ..peg.ast import Node, iter_refs

SENTINEL = "EOI"

# 내장 규칙 이름 -> 인라인 Rust 식
BUILTINS: Dict[str, str] = {
    "ANY":                 "state . skip (1)",
    "SOI":                 "state . start_of_input ()",
    "POP":                 "state . stack_pop ()",
    "PEEK":                "state . stack_peek ()",
    "DROP":                "state . stack_drop ()",
    "PEEK_ALL":            "state . stack_match_peek ()",
    "NEWLINE":             "state . match_string (\"\\n\") . or_else (| state | state . match_string (\"\\r\\n\")) . or_else (| state | state . match_string (\"\\r\"))",
    "ASCII_DIGIT":         "state . match_range ('0' .. '9')",
    "ASCII_NONZERO_DIGIT": "state . match_range ('1' .. '9')",
    "ASCII_BIN_DIGIT":     "state . match_range ('0' .. '1')",
    "ASCII_OCT_DIGIT":     "state . match_range ('0' .. '7')",
    "ASCII_HEX_DIGIT":     "state . match_range ('0' .. '9') . or_else (| state | state . match_range ('a' .. 'f')) . or_else (| state | state . match_range ('A' .. 'F'))",
    "ASCII_ALPHA_LOWER":   "state . match_range ('a' .. 'z')",
    "ASCII_ALPHA_UPPER":   "state . match_range ('A' .. 'Z')",
    "ASCII_ALPHA":         "state . match_range ('a' .. 'z') . or_else (| state | state . match_range ('A' .. 'Z'))",
    "ASCII_ALPHANUMERIC":  "state . match_range ('a' .. 'z') . or_else (| state | state . match_range ('A' .. 'Z')) . or_else (| state | state . match_range ('0' .. '9'))",
    "ASCII":               "state . match_range ('\\x00' .. '\\x7f')",
}

# 사용자가 정의할 수 없는 이름
RESERVED = frozenset(BUILTINS) | {SENTINEL, "PUSH"}


def rule_ident(name: str) -> str:
    """규칙 이름 → 생성 코드에서 쓰는 식별자."""
    if name == SENTINEL:
        return SENTINEL
    return f"r#{name}"


@dataclass
class RuleIR:
    """규칙 1개의 방출 정보."""
    name: str
    ident: str
    modifier: str
    expr: Node
    docs: List[str] = field(default_factory=list)

    @property
    def is_silent(self) -> bool:
        return self.modifier == Modifier.SILENT

    @property
    def is_atomic(self) -> bool:
        """본문에 암묵적 skip을 넣지 않는 규칙(@, $)."""
        return self.modifier in (Modifier.ATOMIC, Modifier.COMPOUND)


@dataclass
class ParserIR:
    """
    ParserIR
    ========
    emit_rs에서 사용하는 IR.

    Fields
    ------
    parser_ident : 파서 구조체 식별자(예: LanguageParser)
    grammar_path : include_str!에 넣을 문법 파일 경로(해석 완료본)
    rules        : 모든 사용자 규칙(선언 순서, silent 포함)
    variants     : `enum Rule` 변형 식별자 목록(EOI 먼저)
    docs         : `//!` 문법 문서
    has_whitespace / has_comment : 암묵적 skip 대상 규칙 존재 여부
    """
    parser_ident: str
    grammar_path: str
    rules: List[RuleIR]
    variants: List[str]
    docs: List[str] = field(default_factory=list)
    has_whitespace: bool = False
    has_comment: bool = False

    def visible_rules(self) -> List[RuleIR]:
        return [r for r in self.rules if not r.is_silent]

    def doc_of(self, ident: str) -> List[str]:
        if ident == SENTINEL:
            return ["End-of-input"]
        for r in self.rules:
            if r.ident == ident:
                return r.docs
        return []


def build_ir(g: PestGrammar, parser_ident: str, grammar_path: str) -> ParserIR:
    """
    build_ir(g, parser_ident, grammar_path) -> ParserIR
    ---------------------------------------------------
    PestGrammar를 방출용 IR로 변환한다.
    예약어 재정의나 정의되지 않은 규칙 참조는 ValueError.
    """
    defined = set(g.rule_names())

    # 1) 예약어 재정의 금지
    for r in g.rules:
        if r.name in RESERVED:
            raise ValueError(f"IR build: '{r.name}' is a pest builtin and cannot be redefined")

    # 2) 참조 해석
    for r in g.rules:
        if r.expr is None:
            raise ValueError(f"IR build: rule '{r.name}' has no parsed body")
        for ref in iter_refs(r.expr):
            if ref not in defined and ref not in RESERVED:
                raise ValueError(f"IR build: rule '{r.name}' references undefined rule '{ref}'")

    rules = [RuleIR(r.name, rule_ident(r.name), r.modifier, r.expr, list(r.docs)) for r in g.rules]
    variants = [SENTINEL] + [r.ident for r in rules if not r.is_silent]

    return ParserIR(
        parser_ident=parser_ident,
        grammar_path=grammar_path,
        rules=rules,
        variants=variants,
        docs=list(g.docs),
        has_whitespace="WHITESPACE" in defined,
        has_comment="COMMENT" in defined,
    )
