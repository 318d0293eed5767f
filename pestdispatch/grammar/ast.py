# pestdispatch/grammar/ast.py
"""pest Grammar AST
- PestRule   : name = modifier? { expr }
- PestGrammar: 규칙 목록(선언 순서 보존) + //! 문서 주석
"""

from __future__     import annotations
from dataclasses    import dataclass, field
from typing         import List, Optional

from ..peg.ast      import Node

@dataclass
class Span:
    start: int
    end: int
    line: int
    col: int

class Modifier:
    NORMAL     = ""
    SILENT     = "_"
    ATOMIC     = "@"
    COMPOUND   = "$"
    NON_ATOMIC = "!"

    ALL = ("_", "@", "$", "!")

@dataclass
class PestRule:
    """
    규칙 1개.
    - name    : 규칙 이름(원문 그대로, r# 없음)
    - modifier: Modifier 값
    - body    : 중괄호 내부 원문
    - expr    : body를 파싱한 표현식 트리
    - docs    : 규칙 앞에 붙은 `///` 주석 줄들
    """
    name: str
    modifier: str
    body: str
    expr: Optional[Node] = None
    docs: List[str] = field(default_factory=list)
    span: Optional[Span] = None

    @property
    def is_silent(self) -> bool:
        return self.modifier == Modifier.SILENT


@dataclass
class PestGrammar:
    rules: List[PestRule] = field(default_factory=list)
    # `//!` 문법 전체 문서
    docs: List[str] = field(default_factory=list)

    def rule_names(self) -> List[str]:
        return [r.name for r in self.rules]

    def find(self, name: str) -> Optional[PestRule]:
        for r in self.rules:
            if r.name == name:
                return r
        return None
