import re

import pytest

from pestdispatch.codegen.emit_rs import (
    ENUM_MARKER, RULE_DERIVES, GrammarCompiler, PestCompiler, emit_rs_to_string,
)
from pestdispatch.codegen.ir import build_ir
from pestdispatch.dispatch.extract import extract_rule_set
from pestdispatch.dispatch.pipeline import ParserDecl, expand_pest_parser
from pestdispatch.dispatch.tokens import tokenize, check_balanced
from pestdispatch.grammar.parser import parse_grammar

STATEMENT = ParserDecl("pub", "LanguageParser", "statement.pest")
LANG = ParserDecl("pub", "LangParser", "lang.pest")

STATEMENT_ENUM = (
    f"{ENUM_MARKER}\n"
    f"{RULE_DERIVES} pub enum Rule\n"
    "{\n"
    '    #[doc = "End-of-input"] EOI, r#Statement, r#Expression\n'
    "} impl Rule\n"
    "{\n"
    "    pub fn all_rules() -> & 'static [Rule]\n"
    "    { & [Rule :: EOI, Rule :: r#Statement, Rule :: r#Expression] }\n"
    "}\n"
)


def test_enumeration_only_output(compiler):
    assert compiler.compile(True, STATEMENT) == STATEMENT_ENUM


def test_full_output_sections(compiler, grammar_dir):
    out = compiler.compile(False, STATEMENT)
    path = (grammar_dir / "statement.pest").as_posix()
    assert out.startswith(
        "#[allow(non_upper_case_globals)] const _PEST_GRAMMAR_LanguageParser : & 'static str = "
        f'include_str ! ("{path}") ;\n'
    )
    assert STATEMENT_ENUM in out
    assert "impl :: pest :: Parser < Rule > for LanguageParser" in out
    assert "state . rule (Rule :: r#Statement, | state |" in out
    assert "state . rule (Rule :: EOI, | state | state . end_of_input ())" in out
    assert (
        "match rule { Rule :: r#Statement => rules :: r#Statement (state), "
        "Rule :: r#Expression => rules :: r#Expression (state), "
        "Rule :: EOI => rules :: EOI (state) }"
    ) in out
    check_balanced(tokenize(out))


def test_arrow_only_in_dispatcher(compiler):
    out = compiler.compile(False, LANG)
    head, _, tail = out.partition("match rule {")
    assert "=>" not in head
    assert tail.count("=>") == 11


def test_lang_variants_and_docs(compiler):
    enum_only = compiler.compile(True, LANG)
    assert enum_only.startswith(f'#[doc = "Toy command language."] {ENUM_MARKER}\n')
    assert '#[doc = "Whole input."] r#Script' in enum_only
    assert '#[doc = "Say \\"hi\\" to keywords."] r#Keyword' in enum_only
    assert (
        "{ & [Rule :: EOI, Rule :: r#Script, Rule :: r#Statement, Rule :: r#Command, "
        "Rule :: r#Arguments, Rule :: r#Strings, Rule :: r#Inner, Rule :: r#Number, "
        "Rule :: r#Identifier, Rule :: r#Keyword, Rule :: r#Stacked] }"
    ) in enum_only


def test_silent_rules_have_functions_but_no_variant(compiler):
    enum_only = compiler.compile(True, LANG)
    full = compiler.compile(False, LANG)
    idents = extract_rule_set(enum_only).idents
    assert "r#Argument" not in idents
    assert "r#WHITESPACE" not in idents
    assert "r#Arguments" in idents
    assert "pub fn r#Argument (state" in full
    assert not re.search(r"Rule :: r#Argument\b", full)


def _rule_body(full: str, ident: str) -> str:
    return full.split(f"pub fn {ident} (state", 1)[1].split("\n", 2)[1].strip()


def test_atomicity_and_skipping(compiler):
    full = compiler.compile(False, LANG)
    assert _rule_body(full, "r#Command").startswith(
        "{ state . rule (Rule :: r#Command, | state | { state . atomic (:: pest :: Atomicity :: Atomic, | state |"
    )
    assert "Atomicity :: Atomic, | state | { state . rule" not in full
    assert "state . atomic (:: pest :: Atomicity :: CompoundAtomic, | state | { state . rule (Rule :: r#Strings" in full
    assert "state . atomic (:: pest :: Atomicity :: NonAtomic, | state | { state . rule (Rule :: r#Identifier" in full
    assert "super :: visible :: r#WHITESPACE (state)" in full
    assert "super :: visible :: r#COMMENT (state)" in full
    assert "state . match_insensitive (\"let\")" in full
    assert "state . stack_push (| state | { state . match_string (\"'\") })" in full
    check_balanced(tokenize(full))


def test_skip_rules_are_implicitly_atomic(compiler):
    full = compiler.compile(False, LANG)
    for ident in ("r#WHITESPACE", "r#COMMENT"):
        body = _rule_body(full, ident)
        assert body.startswith("{ state . atomic (:: pest :: Atomicity :: Atomic, | state |")
        assert "super :: hidden :: skip" not in body


def test_atomic_rule_body_has_no_skip(compiler):
    full = compiler.compile(False, LANG)
    assert "super :: hidden :: skip" not in _rule_body(full, "r#Number")
    assert "super :: hidden :: skip" in _rule_body(full, "r#Statement")


def test_wide_bounded_repetition(tmp_path):
    (tmp_path / "digits.pest").write_text("Digits = { ASCII_DIGIT{1,400} }\n", encoding="utf-8")
    out = expand_pest_parser(
        [("grammar", "digits.pest"), ("interface", "I")],
        ParserDecl("", "DigitsParser"),
        PestCompiler(grammar_root=str(tmp_path)),
    )
    assert out.count("state . optional (") == 399
    assert "Rule::r#Digits(crate::r#Digits {})" in out


def test_bounded_repetition_shape():
    ir = build_ir(parse_grammar('a = @{ "x"{1,3} }'), "P", "g.pest")
    assert _rule_body(emit_rs_to_string(ir, enumeration_only=False), "r#a") == (
        "{ state . rule (Rule :: r#a, | state | { state . atomic (:: pest :: Atomicity :: Atomic, | state | { "
        "state . sequence (| state | { state . match_string (\"x\") . and_then (| state | { "
        "state . optional (| state | { state . sequence (| state | { state . match_string (\"x\") . and_then (| state | { "
        "state . optional (| state | { state . match_string (\"x\") }) }) }) }) }) }) }) }) }"
    )


def test_compiler_protocol_is_abstract():
    with pytest.raises(TypeError):
        GrammarCompiler()


def test_zero_user_rules(compiler):
    decl = ParserDecl("", "EmptyParser", "empty.pest")
    enum_only = compiler.compile(True, decl)
    assert '    #[doc = "End-of-input"] EOI\n}' in enum_only
    assert "{ & [Rule :: EOI] }" in enum_only
    full = compiler.compile(False, decl)
    assert "match rule { Rule :: EOI => rules :: EOI (state) }" in full


def test_output_is_deterministic(compiler):
    assert compiler.compile(False, LANG) == compiler.compile(False, LANG)


def test_undefined_reference():
    g = parse_grammar('a = { b ~ "x" }')
    with pytest.raises(ValueError, match="references undefined rule 'b'"):
        build_ir(g, "P", "g.pest")


def test_builtin_cannot_be_redefined():
    g = parse_grammar('EOI = { "x" }')
    with pytest.raises(ValueError, match="'EOI' is a pest builtin"):
        build_ir(g, "P", "g.pest")


def test_preflight_rejects_broken_ir():
    ir = build_ir(parse_grammar('a = { "x" }'), "P", "g.pest")
    ir.variants = ["r#a", "EOI"]
    with pytest.raises(ValueError, match="emit_rs: variants must start with EOI"):
        emit_rs_to_string(ir, enumeration_only=True)


def test_missing_grammar(compiler):
    with pytest.raises(FileNotFoundError, match="error opening"):
        compiler.compile(True, ParserDecl("", "P", "missing.pest"))


def test_grammar_root_from_cargo_manifest_dir(tmp_path, monkeypatch):
    from pestdispatch.codegen.emit_rs import PestCompiler
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "g.pest").write_text('a = { "x" }\n', encoding="utf-8")
    monkeypatch.setenv("CARGO_MANIFEST_DIR", str(tmp_path))
    out = PestCompiler().compile(True, ParserDecl("", "P", "g.pest"))
    assert "r#a" in out
