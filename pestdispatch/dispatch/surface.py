# pestdispatch/dispatch/surface.py
"""Invocation surface

Rust 소스에서 `#[pest_parser(...)]` 속성이 붙은 구조체를 찾아
파이프라인 출력으로 바꿔 끼운다.

```rust
#[pest_parser(grammar = "grammar.pest", interface = "ParserInterface")]
pub struct LanguageParser;
```
- 인자는 `key = "literal"` 쌍 (끝 쉼표 허용, 일반/raw 문자열 모두 가능)
- 속성 뒤의 다른 외부 속성과 필드 목록은 버린다
  (확장 결과는 `vis struct Ident;`만 다시 낸다)
- 속성+구조체 구간 밖의 텍스트는 한 글자도 바꾸지 않는다
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Tuple
from ..codegen.emit_rs import GrammarCompiler
from .pipeline import ParserDecl, expand_pest_parser
from .tokens import Tok, TokenStream, tokenize, snippet_with_caret, unquote_str

ATTR_NAME = "pest_parser"


@dataclass
class InvocationSite:
    start: int      # `#` 위치
    end: int        # 구조체 선언 끝(`;` 또는 `}`) 다음
    args: List[Tuple[str, Optional[str]]]
    decl: ParserDecl


def _error_at(ts: TokenStream, tok: Tok, msg: str) -> SyntaxError:
    return SyntaxError(f"{msg} at {tok.line}:{tok.col}\n{snippet_with_caret(ts.src, tok)}")


def _at_attribute(ts: TokenStream) -> bool:
    return (ts.at("PUNCT", "#") and ts.at("OPEN", "[", 1)
            and ts.at("IDENT", ATTR_NAME, 2) and ts.at("OPEN", "(", 3))


def _collect(ts: TokenStream, stops: Tuple[str, ...]) -> List[Tok]:
    """최상위 깊이에서 stops 구두점이나 닫는 괄호를 만날 때까지 토큰을 모은다."""
    out: List[Tok] = []
    while True:
        t = ts.la()
        if t.kind in ("EOF", "CLOSE") or (t.kind == "PUNCT" and t.text in stops):
            return out
        if t.kind == "OPEN":
            i = ts.i
            ts.skip_group()
            out.extend(ts.toks[i:ts.i])
        else:
            out.append(t)
            ts.i += 1


def _parse_arg(ts: TokenStream) -> Tuple[str, Optional[str]]:
    """
    `key = value` 하나. 키가 식별자가 아니거나 값이 문자열 리터럴이 아니면
    그대로 넘겨 파이프라인의 인자 검증이 진단하게 한다.
    """
    head = ts.la()
    key_toks = _collect(ts, ("=", ","))
    if not key_toks:
        raise _error_at(ts, head, "expected argument key")
    if not ts.at("PUNCT", "="):
        raise _error_at(ts, ts.la(), "expected `=` after argument key")
    eq = ts.eat("PUNCT", "=")

    value_toks = _collect(ts, (",",))
    if not value_toks:
        raise _error_at(ts, eq, "expected argument value after `=`")

    if len(key_toks) == 1 and key_toks[0].kind in ("IDENT", "RAW_IDENT"):
        key = key_toks[0].text
    else:
        key = ts.src[key_toks[0].start:key_toks[-1].end]

    value: Optional[str] = None
    if len(value_toks) == 1 and value_toks[0].kind in ("STRING", "RAW_STRING") \
            and not value_toks[0].text.startswith("b"):
        try:
            value = unquote_str(value_toks[0])
        except SyntaxError as e:
            raise _error_at(ts, value_toks[0], str(e)) from e
    return key, value


def _parse_args(ts: TokenStream) -> List[Tuple[str, Optional[str]]]:
    ts.eat("OPEN", "(")
    args: List[Tuple[str, Optional[str]]] = []
    while not ts.at("CLOSE", ")"):
        args.append(_parse_arg(ts))
        if not ts.match("PUNCT", ","):
            break
    ts.eat("CLOSE", ")")
    return args


def _parse_vis(ts: TokenStream) -> str:
    if not ts.at("IDENT", "pub"):
        return ""
    start = ts.eat("IDENT", "pub").start
    end = ts.skip_group().end if ts.at("OPEN", "(") else start + 3
    return ts.src[start:end]


def _parse_site(ts: TokenStream) -> InvocationSite:
    start = ts.eat("PUNCT", "#").start
    ts.eat("OPEN", "[")
    ts.eat("IDENT", ATTR_NAME)
    args = _parse_args(ts)
    ts.eat("CLOSE", "]")

    # 같은 아이템의 나머지 외부 속성(#[derive(...)] 등)은 버린다
    while ts.at("PUNCT", "#") and ts.at("OPEN", "[", 1):
        ts.i += 1
        ts.skip_group()

    vis = _parse_vis(ts)
    if not ts.at("IDENT", "struct"):
        raise _error_at(ts, ts.la(), f"`#[{ATTR_NAME}]` can only be applied to a struct")
    ts.eat("IDENT", "struct")
    name = ts.la()
    if name.kind not in ("IDENT", "RAW_IDENT"):
        ts.eat("IDENT")
    ts.i += 1

    if ts.at("OPEN", "{"):
        end = ts.skip_group().end
    elif ts.at("OPEN", "("):
        ts.skip_group()
        end = ts.eat("PUNCT", ";").end
    else:
        end = ts.eat("PUNCT", ";").end
    return InvocationSite(start, end, args, ParserDecl(vis, name.text))


def find_invocations(text: str) -> List[InvocationSite]:
    """소스 안의 모든 `#[pest_parser(...)]` 사이트(소스 순서)."""
    ts = TokenStream(tokenize(text), text)
    sites: List[InvocationSite] = []
    while not ts.at("EOF"):
        if _at_attribute(ts):
            sites.append(_parse_site(ts))
        else:
            ts.i += 1
    return sites


def expand_source(
    text: str,
    compiler: Optional[GrammarCompiler] = None,
    *,
    debug: bool = False,
) -> str:
    """속성이 붙은 구조체를 모두 확장한 소스를 돌려준다. 속성이 없으면 입력 그대로."""
    out: List[str] = []
    last = 0
    for site in find_invocations(text):
        out.append(text[last:site.start])
        out.append(expand_pest_parser(site.args, site.decl, compiler, debug=debug))
        last = site.end
    out.append(text[last:])
    return "".join(out)
