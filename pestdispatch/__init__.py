# pestdispatch/__init__.py
"""pestdispatch — pest 파서 + enum_dispatch 확장기.

pest 문법에서 규칙마다 필드 없는 구조체를 하나씩 만들고, 문법 컴파일러가
생성한 `enum Rule`과 그 소비 지점(디스패처, all_rules, state.rule 생성)을
`#[enum_dispatch(<interface>)]` 용으로 고쳐 쓴다.

API
---
- `expand_pest_parser(args, decl, compiler=None, *, debug=False)` — 속성 한 번 확장
- `expand_source(text, compiler=None, *, debug=False)` — Rust 소스의 `#[pest_parser]` 전부 확장
- `validate_arguments(args)` — `grammar` / `interface` 인자 검증
- `extract_rule_set(raw)` / `synthesize(rule_set)` / `hook_rule_enum(raw, interface)` — 파이프라인 단계
- `PestCompiler` — 기본 pest 모양 문법 컴파일러
"""

from .errors import (
    PestDispatchError, ArgumentError, ShapeError, EnumParseError, AssemblyError,
)
from .codegen.emit_rs import GrammarCompiler, PestCompiler
from .dispatch.extract import RuleSet, extract_rule_set
from .dispatch.synth import NominalTypeDecl, synthesize
from .dispatch.rewrite import RewriteRule, hook_rule_enum
from .dispatch.pipeline import ParserDecl, PestParserArgs, validate_arguments, expand_pest_parser
from .dispatch.surface import expand_source
