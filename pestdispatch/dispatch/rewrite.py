# pestdispatch/dispatch/rewrite.py
"""Control-Flow Rewriter

full 컴파일러 출력의 `enum Rule`을 **단위 변형 → 단일 페이로드 변형**으로 바꾸고,
enum을 소비하는 모든 곳(디스패처 match, all_rules(), state.rule(...) 생성 지점)을
같이 고쳐 일관성을 유지한다.

pest가 생성하는 디스패처는 보통 다음과 같다.
```
match rule
{
    Rule :: r#script => rules :: r#script(state), Rule ::
    r#statement => rules :: r#statement(state), Rule :: EOI =>
    rules :: EOI(state)
}
```
`Rule :: r#script`가 이제 튜플 변형이므로 다음처럼 바뀌어야 한다.
```
match rule
{
    Rule :: r#script(_) => rules :: r#script(state),
    Rule :: r#statement(_) => rules :: r#statement(state),
    Rule :: EOI(_) => rules :: EOI(state)
}
```

패스 순서가 중요하다. 뒤의 패턴은 앞 패스가 남긴 잔여물에만 걸리도록 짜여 있다.
  1. enum의 derive 목록 바로 앞에 `#[enum_dispatch(<interface>)]` 삽입 (필수)
  2. 디스패처 arm: `Rule :: X =>` → `Rule :: X(_) =>`
     (`=>`는 디스패처 match 안에서만 나온다는 전제)
  3. 목록/생성 지점: `Rule :: r#X,` → `Rule::r#X(crate::r#X {}), `
  4. enum 선언부  : `r#X,` → `r#X(crate::r#X), `
  5. EOI는 `r#` 접두가 없어서 3/4에 안 걸린다 → 전용 패스
  6. 마지막 원소는 `,` 대신 `]`(all_rules) / `}`(enum)로 끝난다 → 전용 패스
`crate::` 접두는 `Rule::X`와 루트의 `X` 구조체 이름 충돌을 피한다.
pest 출력은 `Rule ::` 뒤에서 줄을 바꾸기도 하므로 `Rule`과 `::` 주변 공백은 개행까지 허용한다.

주의: 1번 외의 패스는 패턴이 없으면 조용히 아무 일도 하지 않는다.
컴파일러 출력 모양이 바뀌면 여기서는 잡히지 않고 Rust 컴파일 단계에서 터진다.
디버그 모드에서는 패스별 매치 수를 출력하므로 그걸로 추적한다.
"""

from __future__ import annotations
import regex as re
import sys
from dataclasses import dataclass
from typing import Callable, List, Pattern, Tuple, Union
from ..codegen.emit_rs import ENUM_MARKER
from ..errors import ShapeError


def _eprint(*args, **kw) -> None:
    print(*args, file=sys.stderr, **kw)


@dataclass(frozen=True)
class RewriteRule:
    """패턴 → 치환 한 단계. count=0이면 전부 치환."""
    name: str
    pattern: Pattern[str]
    repl: Union[str, Callable]
    count: int = 0
    required: bool = False

    def apply(self, text: str) -> Tuple[str, int]:
        return self.pattern.subn(self.repl, text, count=self.count)


_RAW = r"r[ \t]*\#[ \t]*(?P<n>\w+)"
_RULE = r"Rule\s*::\s*"


def build_rewrite_rules(interface: str) -> List[RewriteRule]:
    annotation = f"#[enum_dispatch({interface})]\n"
    return [
        RewriteRule(
            "dispatch-annotation",
            re.compile(r"(?P<marker>" + re.escape(ENUM_MARKER) + r"\s*)(?=\#\[derive\()"),
            lambda m: m.group("marker") + annotation,
            count=1,
            required=True,
        ),
        RewriteRule(
            "dispatcher-arms",
            re.compile(r"(?P<alt>" + _RULE + r"(?:r[ \t]*\#[ \t]*)?\w+)\s*=>"),
            r"\g<alt>(_) =>",
        ),
        RewriteRule(
            "listing-elements",
            re.compile(_RULE + _RAW + r"[ \t]*,"),
            r"Rule::r#\g<n>(crate::r#\g<n> {}), ",
        ),
        RewriteRule(
            "declaration-variants",
            re.compile(r"\b" + _RAW + r"[ \t]*,"),
            r"r#\g<n>(crate::r#\g<n>), ",
        ),
        RewriteRule(
            "sentinel-listing",
            re.compile(_RULE + r"EOI[ \t]*,"),
            "Rule::EOI(crate::EOI {}), ",
        ),
        RewriteRule(
            "sentinel-declaration",
            re.compile(r"\bEOI[ \t]*,"),
            "EOI(crate::EOI), ",
        ),
        RewriteRule(
            "last-listing-element",
            re.compile(_RULE + _RAW + r"\s*\]"),
            r"Rule::r#\g<n>(crate::r#\g<n> {})]",
        ),
        RewriteRule(
            "last-declaration-variant",
            re.compile(r"\b" + _RAW + r"\s*\}"),
            r"r#\g<n>(crate::r#\g<n>)}",
        ),
        RewriteRule(
            "sentinel-last-listing",
            re.compile(_RULE + r"EOI\s*\]"),
            "Rule::EOI(crate::EOI {})]",
        ),
        RewriteRule(
            "sentinel-last-declaration",
            re.compile(r"\bEOI\s*\}"),
            "EOI(crate::EOI)}",
        ),
    ]


def hook_rule_enum(raw: str, interface: str, debug: bool = False) -> str:
    """full 컴파일러 출력 → enum_dispatch용으로 고친 소스."""
    text = raw
    for rule in build_rewrite_rules(interface):
        text, n = rule.apply(text)
        if debug: _eprint(f"[DEBUG] rewrite {rule.name}: {n} match(es)")
        if n == 0 and rule.required:
            raise ShapeError(
                f"rewrite pass `{rule.name}` found no match: expected `{ENUM_MARKER}` "
                f"followed by the `#[derive(...)]` list of `pub enum Rule`"
            )
    return text
