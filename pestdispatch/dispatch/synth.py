# pestdispatch/dispatch/synth.py
"""Nominal Type Synthesizer

RuleSet의 각 규칙마다 같은 이름의 크기 0 구조체를 하나씩 만든다.
필드가 없으므로 비교/정렬/해시/복사 능력은 모두 derive로 얻는다.
모든 선언은 생성 단위의 루트 네임스페이스에 놓인다.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List
from ..codegen.emit_rs import RULE_DERIVES
from .extract import RuleSet, bare_name


@dataclass(frozen=True)
class NominalTypeDecl:
    ident: str  # r#Name 또는 EOI

    @property
    def name(self) -> str:
        return bare_name(self.ident)

    def render(self) -> str:
        return f"{RULE_DERIVES} pub struct {self.ident};"


def synthesize(rule_set: RuleSet) -> List[NominalTypeDecl]:
    return [NominalTypeDecl(ident) for ident in rule_set]


def render_decls(decls: List[NominalTypeDecl]) -> str:
    return "\n".join(d.render() for d in decls) + "\n"
