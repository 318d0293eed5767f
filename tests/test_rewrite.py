import pytest
import regex as re

from pestdispatch.codegen.emit_rs import ENUM_MARKER, RULE_DERIVES
from pestdispatch.dispatch.rewrite import build_rewrite_rules, hook_rule_enum
from pestdispatch.errors import ShapeError

# pest 2.5.4 full 출력의 축약본. `Rule ::` 뒤 줄바꿈도 실제 출력 그대로 둔다.
PEST_254_FULL = """\
#[allow(dead_code, non_camel_case_types, clippy :: upper_case_acronyms)]
#[derive(Clone, Copy, Debug, Eq, Hash, Ord, PartialEq, PartialOrd)] pub enum
Rule
{
    #[doc = "End-of-input"] EOI, r#Script, r#Statement
} impl Rule
{
    pub fn all_rules() -> & 'static [Rule]
    {
        &
        [Rule :: r#Script, Rule ::
        r#Statement]
    }
} #[allow(clippy :: all)] impl :: pest :: Parser < Rule > for ScriptParser
{
    fn parse < 'i > (rule : Rule, input : & 'i str) -> :: std :: result :: Result < :: pest :: iterators :: Pairs < 'i, Rule > , :: pest :: error :: Error < Rule > >
    {
        mod rules
        {
            pub mod visible
            {
                use super :: super :: Rule ;
                pub fn r#Script (state : Box < :: pest :: ParserState < '_, Rule > >) -> :: pest :: ParseResult < Box < :: pest :: ParserState < '_, Rule > > >
                { state . rule (Rule :: r#Script, | state | { self :: r#Statement (state) }) }
                pub fn r#Statement (state : Box < :: pest :: ParserState < '_, Rule > >) -> :: pest :: ParseResult < Box < :: pest :: ParserState < '_, Rule > > >
                { state . rule (Rule :: r#Statement, | state | { state . match_string ("x") }) }
                pub fn EOI (state : Box < :: pest :: ParserState < '_, Rule > >) -> :: pest :: ParseResult < Box < :: pest :: ParserState < '_, Rule > > >
                { state . rule (Rule :: EOI, | state | state . end_of_input ()) }
            } pub use self :: visible :: * ;
        } :: pest :: state (input, | state |
        {
            match rule
            {
                Rule :: r#Script => rules :: r#Script (state), Rule ::
                r#Statement => rules :: r#Statement (state), Rule :: EOI =>
                rules :: EOI (state)
            }
        })
    }
}
"""


@pytest.fixture
def hooked():
    return hook_rule_enum(PEST_254_FULL, "ParserInterface")


def test_annotation_goes_before_derive_list(hooked):
    assert f"{ENUM_MARKER}\n#[enum_dispatch(ParserInterface)]\n{RULE_DERIVES} pub enum" in hooked
    assert hooked.count("#[enum_dispatch(") == 1


def test_enum_alternatives_carry_payloads(hooked):
    body = hooked[hooked.index("pub enum"):hooked.index("} impl Rule") + 1]
    assert 'EOI(crate::EOI),' in body
    assert "r#Script(crate::r#Script)," in body
    assert body.endswith("r#Statement(crate::r#Statement)}")
    assert len(re.findall(r"(EOI|r#\w+)\(crate::\1\)", body)) == 3


def test_listing_constructs_values(hooked):
    assert "[Rule::r#Script(crate::r#Script {}),  Rule::r#Statement(crate::r#Statement {})]" in hooked


def test_construction_sites(hooked):
    assert "state . rule (Rule::r#Script(crate::r#Script {}),  | state |" in hooked
    assert "state . rule (Rule::r#Statement(crate::r#Statement {}),  | state |" in hooked
    assert "state . rule (Rule::EOI(crate::EOI {}),  | state | state . end_of_input ())" in hooked


def test_every_dispatcher_arm_binds_payload(hooked):
    arms = re.findall(r"(Rule\s*::\s*\S+)\s*=>", hooked)
    assert arms == ["Rule :: r#Script(_)", "Rule ::\n                r#Statement(_)", "Rule :: EOI(_)"]


def test_no_unit_references_remain(hooked):
    assert not re.search(r"Rule\s*::\s*(?:r#\w+|EOI)\s*[,\]=]", hooked)


def test_other_code_is_untouched(hooked):
    assert "self :: r#Statement (state) })" in hooked
    assert "rules :: EOI (state)\n            }" in hooked
    assert "pub fn EOI (state" in hooked


def test_sentinel_only_enum():
    raw = (
        f"{ENUM_MARKER}\n{RULE_DERIVES} pub enum Rule\n{{\n"
        '    #[doc = "End-of-input"] EOI\n'
        "} impl Rule\n{\n    pub fn all_rules() -> & 'static [Rule]\n    { & [Rule :: EOI] }\n}\n"
    )
    out = hook_rule_enum(raw, "I")
    assert '#[doc = "End-of-input"] EOI(crate::EOI)} impl Rule' in out
    assert "{ & [Rule::EOI(crate::EOI {})] }" in out


def test_missing_marker_is_a_shape_error():
    with pytest.raises(ShapeError, match="dispatch-annotation"):
        hook_rule_enum("pub enum Rule { EOI }", "I")


def test_optional_passes_noop_silently():
    raw = f"{ENUM_MARKER}\n{RULE_DERIVES} pub struct Nothing;"
    assert hook_rule_enum(raw, "I") == f"{ENUM_MARKER}\n#[enum_dispatch(I)]\n{RULE_DERIVES} pub struct Nothing;"


def test_debug_reports_match_counts(capsys):
    hook_rule_enum(PEST_254_FULL, "ParserInterface", debug=True)
    err = capsys.readouterr().err
    assert "[DEBUG] rewrite dispatch-annotation: 1 match(es)" in err
    assert "[DEBUG] rewrite dispatcher-arms: 3 match(es)" in err
    assert "[DEBUG] rewrite sentinel-last-listing: 0 match(es)" in err


def test_rule_table_order():
    rules = build_rewrite_rules("I")
    assert [r.name for r in rules] == [
        "dispatch-annotation",
        "dispatcher-arms",
        "listing-elements",
        "declaration-variants",
        "sentinel-listing",
        "sentinel-declaration",
        "last-listing-element",
        "last-declaration-variant",
        "sentinel-last-listing",
        "sentinel-last-declaration",
    ]
    assert [r.required for r in rules] == [True] + [False] * 9
