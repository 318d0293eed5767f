from __future__ import annotations
from pathlib import Path
import pytest

from pestdispatch.codegen.emit_rs import GrammarCompiler, PestCompiler

GRAMMAR_DIR = Path(__file__).parent / "grammar_test"


class RecordingCompiler(GrammarCompiler):
    """실제 컴파일러를 감싸 호출 기록을 남긴다."""
    def __init__(self, inner: GrammarCompiler):
        self.inner = inner
        self.calls = []

    def compile(self, enumeration_only, declaration):
        self.calls.append((enumeration_only, declaration))
        return self.inner.compile(enumeration_only, declaration)


class StaticCompiler(GrammarCompiler):
    """고정된 출력을 돌려주는 컴파일러 (모양이 어긋난 출력 재현용)."""
    def __init__(self, enum_src: str, full_src: str):
        self.enum_src = enum_src
        self.full_src = full_src

    def compile(self, enumeration_only, declaration):
        return self.enum_src if enumeration_only else self.full_src


@pytest.fixture(autouse=True)
def _no_cargo_env(monkeypatch):
    monkeypatch.delenv("CARGO_MANIFEST_DIR", raising=False)


@pytest.fixture
def grammar_dir() -> Path:
    return GRAMMAR_DIR


@pytest.fixture
def compiler() -> PestCompiler:
    return PestCompiler(grammar_root=str(GRAMMAR_DIR))


@pytest.fixture
def recording_compiler(compiler) -> RecordingCompiler:
    return RecordingCompiler(compiler)


@pytest.fixture
def static_compiler():
    return StaticCompiler
