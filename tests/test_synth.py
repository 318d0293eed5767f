from pestdispatch.codegen.emit_rs import RULE_DERIVES
from pestdispatch.dispatch.extract import RuleSet
from pestdispatch.dispatch.synth import NominalTypeDecl, render_decls, synthesize


def test_one_declaration_per_rule_in_order():
    rules = RuleSet(("EOI", "r#Statement", "r#Expression"))
    decls = synthesize(rules)
    assert [d.ident for d in decls] == ["EOI", "r#Statement", "r#Expression"]
    assert [d.name for d in decls] == ["EOI", "Statement", "Expression"]


def test_render():
    assert NominalTypeDecl("EOI").render() == f"{RULE_DERIVES} pub struct EOI;"
    assert NominalTypeDecl("r#Number").render() == (
        "#[derive(Clone, Copy, Debug, Eq, Hash, Ord, PartialEq, PartialOrd)] pub struct r#Number;"
    )


def test_render_decls_is_line_per_decl():
    decls = synthesize(RuleSet(("EOI", "r#A")))
    assert render_decls(decls) == (
        f"{RULE_DERIVES} pub struct EOI;\n"
        f"{RULE_DERIVES} pub struct r#A;\n"
    )


def test_sentinel_only():
    assert synthesize(RuleSet(("EOI",))) == [NominalTypeDecl("EOI")]
