# pestdispatch/pdispc.py
"""pdispc – pestdispatch CLI

사용 예)
    $ python -m pestdispatch.pdispc check tests/grammar_test/statement.pest -D
    $ python -m pestdispatch.pdispc build --grammar statement.pest --interface ParserInterface \
          --name LanguageParser --vis pub --grammar-root tests/grammar_test -o tests/tmp/parser.rs
    $ python -m pestdispatch.pdispc expand src/parser.rs -o tests/tmp/parser_expanded.rs -D

기능
----
- check  : 문법을 읽어 enumeration-only 컴파일 → 규칙 집합 추출까지 검증하고 요약 출력
- build  : 속성 없이 인자만으로 `#[pest_parser]` 한 번을 확장
- expand : Rust 소스 안의 `#[pest_parser(...)]` 속성을 모두 확장

디버그 모드(-D/--debug)를 켜면 컴파일러 원본 출력과 재작성 패스별 매치 수를 출력합니다.
"""

from __future__ import annotations
import argparse
import pathlib
import re
import sys
from typing import Optional

# ------------------------------
# 헬퍼
# ------------------------------

def _eprint(*args, **kw) -> None:
    print(*args, file=sys.stderr, **kw)


def _sanitize_ident(name: str) -> str:
    """문법 파일명에서 check용 파서 구조체 이름을 만든다."""
    stem = pathlib.Path(name).stem
    parts = [p for p in re.split(r"[^A-Za-z0-9]+", stem) if p]
    ident = "".join(p[:1].upper() + p[1:] for p in parts)
    if not ident or not re.match(r"[A-Za-z_]", ident[0]):
        ident = "Grammar" + ident
    return ident + "Parser"


def _write_output(src: str, output: Optional[str]) -> None:
    if output is None:
        sys.stdout.write(src)
        return
    out_path = pathlib.Path(output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(src, encoding="utf-8")
    print(f"[EMIT] -> {out_path}")


def _report(e: Exception) -> int:
    if isinstance(e, SyntaxError):
        _eprint("[SYNTAX ERROR]")
        _eprint(str(e))
    else:
        _eprint("[ERROR]", type(e).__name__, str(e))
    return 2

# ------------------------------
# 커맨드 구현
# ------------------------------

def cmd_check(args) -> int:
    from .codegen.emit_rs import PestCompiler
    from .dispatch.extract import extract_rule_set
    from .dispatch.pipeline import ParserDecl

    # check의 FILE은 파일 시스템 경로 그대로
    compiler = PestCompiler(grammar_root=args.grammar_root or ".", debug=args.debug)
    decl = ParserDecl("", _sanitize_ident(args.file), args.file)
    try:
        ir = compiler.build_ir(decl)
        rule_set = extract_rule_set(compiler.compile(True, decl))
    except Exception as e:
        return _report(e)

    if args.debug:
        _eprint(f"[DEBUG] parser={decl.ident} rules(all)={len(ir.rules)} silent={len(ir.rules) - len(ir.visible_rules())}")

    if len(rule_set) == 1:
        _eprint("[WARN] grammar has no visible rules; only EOI will be dispatched")

    print(f"[CHECK OK] rules={len(rule_set)}")
    for i, name in enumerate(rule_set.names):
        print(f"{i:03d}: {name}")
    return 0


def cmd_build(args) -> int:
    from .codegen.emit_rs import PestCompiler
    from .dispatch.pipeline import ParserDecl, expand_pest_parser

    compiler = PestCompiler(grammar_root=args.grammar_root, debug=args.debug)
    try:
        decl = ParserDecl(args.vis or "", args.name)
        src = expand_pest_parser(
            [("grammar", args.grammar), ("interface", args.interface)],
            decl, compiler, debug=args.debug,
        )
    except Exception as e:
        return _report(e)

    _write_output(src, args.output)
    if args.debug:
        _eprint(f"[DEBUG] parser={args.name} bytes={len(src)}")
    return 0


def cmd_expand(args) -> int:
    from .codegen.emit_rs import PestCompiler
    from .dispatch.surface import expand_source

    compiler = PestCompiler(grammar_root=args.grammar_root, debug=args.debug)
    try:
        with open(args.file, "r", encoding="utf-8") as f:
            text = f.read()
        src = expand_source(text, compiler, debug=args.debug)
    except Exception as e:
        return _report(e)

    _write_output(src, args.output)
    if args.debug:
        _eprint(f"[DEBUG] {args.file} | in={len(text)} out={len(src)} bytes")
    return 0


# ------------------------------
# 엔트리포인트
# ------------------------------

def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="pdispc", description="pest parser + enum_dispatch expander CLI")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_check = sub.add_parser("check", help="문법을 컴파일해 규칙 집합을 확인합니다")
    p_check.add_argument("file", help=".pest 문법 파일")
    p_check.add_argument("--grammar-root", help="상대 경로 문법 파일의 기준 디렉터리")
    p_check.add_argument("-D", "--debug", action="store_true", help="디버그 정보를 상세 출력")
    p_check.set_defaults(func=cmd_check)

    p_build = sub.add_parser("build", help="인자만으로 파서 선언 하나를 확장합니다")
    p_build.add_argument("--grammar", required=True, help="문법 파일 경로(`grammar = ...`)")
    p_build.add_argument("--interface", required=True, help="enum_dispatch 트레이트 이름(`interface = ...`)")
    p_build.add_argument("--name", required=True, help="파서 구조체 이름")
    p_build.add_argument("--vis", help="구조체 가시성(예: pub, pub(crate))")
    p_build.add_argument("-o", "--output", help="출력 파일 경로(미지정시 표준출력)")
    p_build.add_argument("--grammar-root", help="상대 경로 문법 파일의 기준 디렉터리")
    p_build.add_argument("-D", "--debug", action="store_true", help="디버그 정보를 상세 출력")
    p_build.set_defaults(func=cmd_build)

    p_expand = sub.add_parser("expand", help="Rust 소스의 #[pest_parser] 속성을 확장합니다")
    p_expand.add_argument("file", help="Rust 소스 파일")
    p_expand.add_argument("-o", "--output", help="출력 파일 경로(미지정시 표준출력)")
    p_expand.add_argument("--grammar-root", help="상대 경로 문법 파일의 기준 디렉터리")
    p_expand.add_argument("-D", "--debug", action="store_true", help="디버그 정보를 상세 출력")
    p_expand.set_defaults(func=cmd_expand)

    args = ap.parse_args(argv)
    return int(args.func(args))

if __name__ == "__main__":
    sys.exit(main())
