# pestdispatch/dispatch/extract.py
"""Rule Set Extractor

enumeration-only 컴파일러 출력에서 `enum Rule` 선언을 잘라내
구조화된 형태(RuleEnum)로 파싱하고, 선언 순서 그대로의 RuleSet을 만든다.

pest 2.5.4 출력 예)
```rust
#[allow(dead_code, non_camel_case_types, clippy :: upper_case_acronyms)]
#[derive(Clone, Copy, Debug, Eq, Hash, Ord, PartialEq, PartialOrd)] pub enum
Rule
{
    #[doc = "End-of-input"] EOI, r#Script, r#Statement
} impl Rule
{ ... }
```
- 시작: ENUM_MARKER (없으면 컴파일러 출력 모양이 바뀐 것 → ShapeError)
- 끝  : 마커 이후 첫 번째 `}` 토큰(문자열 리터럴 속 `}`는 제외)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterator, List, Tuple
from ..codegen.emit_rs import ENUM_MARKER
from ..codegen.ir import SENTINEL
from ..errors import ShapeError, EnumParseError
from .tokens import TokenStream, tokenize


def bare_name(ident: str) -> str:
    """`r#Name` → `Name` (센티넬은 그대로)."""
    return ident[2:] if ident.startswith("r#") else ident


@dataclass(frozen=True)
class RuleSet:
    """
    RuleSet
    =======
    규칙 식별자의 순서 있는 집합.
    - 순서 = 문법 선언 순서(컴파일러 enum의 변형 순서)
    - 중복 없음, 센티넬(EOI)은 정확히 1번
    """
    idents: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.idents:
            raise ValueError("RuleSet: empty rule set")
        if len(set(self.idents)) != len(self.idents):
            dups = sorted({i for i in self.idents if self.idents.count(i) > 1})
            raise ValueError(f"RuleSet: duplicate rule identifiers {dups}")
        if self.idents.count(SENTINEL) != 1:
            raise ValueError(f"RuleSet: sentinel {SENTINEL} must appear exactly once")

    def __iter__(self) -> Iterator[str]:
        return iter(self.idents)

    def __len__(self) -> int:
        return len(self.idents)

    @property
    def names(self) -> List[str]:
        return [bare_name(i) for i in self.idents]

    @property
    def user_rules(self) -> List[str]:
        return [i for i in self.idents if i != SENTINEL]


@dataclass
class RuleVariant:
    ident: str
    attrs: List[str] = field(default_factory=list)


@dataclass
class RuleEnum:
    name: str
    vis: str
    attrs: List[str]
    variants: List[RuleVariant]


def slice_rule_enum(raw: str) -> str:
    """마커부터 첫 번째 닫는 중괄호까지 잘라낸다."""
    pos = raw.find(ENUM_MARKER)
    if pos < 0:
        raise ShapeError(
            f"cannot find `pub enum Rule` in the grammar compiler's output: "
            f"expected marker `{ENUM_MARKER}`"
        )
    rest = raw[pos:]
    try:
        toks = tokenize(rest)
    except SyntaxError as e:
        raise EnumParseError(f"cannot tokenize compiler output after the `enum Rule` marker: {e}") from e
    for t in toks:
        if t.kind == "CLOSE" and t.text == "}":
            return rest[:t.end]
    raise ShapeError("cannot find the closing `}` of `pub enum Rule` after its marker")


def _attrs(ts: TokenStream) -> List[str]:
    out: List[str] = []
    while ts.at("PUNCT", "#"):
        start = ts.eat("PUNCT", "#").start
        ts.match("PUNCT", "!")
        if not ts.at("OPEN", "["):
            ts.eat("OPEN", "[")
        end = ts.skip_group().end
        out.append(ts.src[start:end])
    return out


def _parse_enum(ts: TokenStream) -> RuleEnum:
    attrs = _attrs(ts)
    vis = ""
    if ts.at("IDENT", "pub"):
        start = ts.eat("IDENT", "pub").start
        end = ts.skip_group().end if ts.at("OPEN", "(") else start + 3
        vis = ts.src[start:end]
    ts.eat("IDENT", "enum")
    name = ts.eat("IDENT").text
    ts.eat("OPEN", "{")

    variants: List[RuleVariant] = []
    while not ts.at("CLOSE", "}"):
        vattrs = _attrs(ts)
        t = ts.la()
        if t.kind not in ("IDENT", "RAW_IDENT"):
            ts.eat("IDENT")  # 위치 포함 오류 메시지
        ts.i += 1
        if ts.at("OPEN") or ts.at("PUNCT", "="):
            nxt = ts.la()
            raise SyntaxError(f"expected unit variant, but `{t.text}` carries data at {nxt.line}:{nxt.col}")
        variants.append(RuleVariant(t.text, vattrs))
        if not ts.match("PUNCT", ","):
            break
    ts.eat("CLOSE", "}")
    ts.eat("EOF")
    return RuleEnum(name, vis, attrs, variants)


def parse_rule_enum(text: str) -> RuleEnum:
    """잘라낸 텍스트를 RuleEnum으로. 실패하면 EnumParseError(원인 진단 포함)."""
    try:
        return _parse_enum(TokenStream(tokenize(text), text))
    except SyntaxError as e:
        raise EnumParseError(f"cannot parse extracted `Rule` enumeration: {e}") from e


def extract_rule_set(raw: str) -> RuleSet:
    """enumeration-only 출력 → RuleSet."""
    enum = parse_rule_enum(slice_rule_enum(raw))
    try:
        return RuleSet(tuple(v.ident for v in enum.variants))
    except ValueError as e:
        raise ShapeError(f"extracted `enum {enum.name}` is not a valid rule set: {e}") from e
