"""
Tests for message catalogs and phrase localization in flowlens.messages.
"""
from flowlens.messages import EMPTY, EN, JA, Joined, Phrase, Translator, get_translator, indent, localize


def test_catalogs_have_the_same_keys():
    assert set(EN) == set(JA)


def test_translator_substitutes_variables(t_en):
    assert t_en("steps.run_tool", {"callee": "doIt"}) == "Run tool: doIt"


def test_missing_variables_and_keys_are_kept(t_en):
    assert t_en("steps.run_tool") == "Run tool: {callee}"
    assert t_en("steps.run_tool", {"other": 1}) == "Run tool: {callee}"
    assert t_en("no.such.key") == "no.such.key"


def test_unknown_locale_falls_back_to_english():
    assert get_translator("fr")("steps.loop") == "Loop"


def test_missing_entry_uses_fallback_catalog():
    t = Translator({"steps.loop": "Schleife"}, EN)
    assert t("steps.loop") == "Schleife"
    assert t("steps.return") == "Return result"


def test_localize_nested_phrases(t_en, t_ja):
    message = Phrase("describe.if", {
        "condition": Phrase("describe.condition", {"text": Joined(("a", Phrase("op.gt"), "1"))}),
    })
    assert localize(message, t_en) == "if `a greater than 1` then:"
    assert "より大きい" in localize(message, t_ja)


def test_failing_fragment_renders_empty(t_en):
    def broken(key, vars=None):
        raise RuntimeError("catalog unavailable")

    assert localize(Phrase("describe.click"), broken) == ""
    assert localize(Joined(("a", "b"), prefix="[", suffix="]"), t_en) == "[a b]"


def test_indent():
    assert indent(EMPTY, "  ") == EMPTY
    assert localize(indent("x", "  ✓ "), get_translator()) == "  ✓ x"
