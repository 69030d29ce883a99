import pytest

from pagebuilder.domain.document import Block, StyleRecord
from pagebuilder.domain.suggestions import (
    Suggestion,
    apply,
    apply_all,
    apply_matching,
    suggestions_from_analysis,
)


@pytest.fixture
def block():
    return Block(
        id="b1",
        section_id="s1",
        block_type="heading",
        content={"text": "Hi"},
        styles=StyleRecord.from_flat({"color": "#000", "className": "title hero-title"}),
    )


def test_apply_overwrites_listed_keys_only(block):
    result = apply(block, Suggestion(target="b1", property_map={"color": "#111", "fontSize": "2rem"}))

    assert result.styles.properties == {"color": "#111", "fontSize": "2rem"}
    assert result.styles.class_names == ("title", "hero-title")
    assert block.styles.properties == {"color": "#000"}


def test_apply_is_idempotent(block):
    suggestion = Suggestion(target="b1", property_map={"lineHeight": "1.5"})
    once = apply(block, suggestion)
    assert apply(once, suggestion).styles == once.styles


def test_disjoint_suggestions_commute(block):
    a = Suggestion(target="b1", property_map={"color": "#222"})
    b = Suggestion(target="b1", property_map={"padding": "1rem"})
    assert apply_all(block, [a, b]).styles == apply_all(block, [b, a]).styles


def test_overlapping_suggestions_last_wins(block):
    a = Suggestion(target="b1", property_map={"color": "#222"})
    b = Suggestion(target="b1", property_map={"color": "#333"})
    assert apply_all(block, [a, b]).styles.properties["color"] == "#333"


def test_matching_by_selector(block):
    block.styles = block.styles.merged_flat({"elementId": "welcome"})
    assert Suggestion(target="#welcome").matches(block)
    assert Suggestion(target=".hero-title").matches(block)
    assert Suggestion(target="heading").matches(block)
    assert not Suggestion(target=".footer").matches(block)

    result = apply_matching(block, [
        Suggestion(target=".footer", property_map={"color": "red"}),
        Suggestion(target="#welcome", property_map={"margin": "0"}),
    ])
    assert result.styles.properties == {"color": "#000", "margin": "0"}


def test_from_dict_requires_target_and_map():
    suggestion = Suggestion.from_dict({"target": "b1", "propertyMap": {"color": "red"}})
    assert suggestion.property_map == {"color": "red"}
    with pytest.raises(ValueError):
        Suggestion.from_dict({"property_map": {"color": "red"}})
    with pytest.raises(ValueError):
        Suggestion.from_dict({"target": "b1", "property_map": ["color"]})


def test_analysis_expands_per_selector():
    suggestions = suggestions_from_analysis({
        "suggestions": [
            {
                "id": "s-1",
                "title": "Improve contrast",
                "category": "accessibility",
                "priority": "urgent",
                "cssChanges": {".hero-title": {"color": "#fff"}, "button": {"padding": "1rem"}},
            },
        ]
    })

    assert [s.target for s in suggestions] == [".hero-title", "button"]
    assert suggestions[0].category == "accessibility"
    assert suggestions[0].priority is None
    with pytest.raises(ValueError):
        suggestions_from_analysis({"suggestions": [{"cssChanges": {"a": "red"}}]})


def test_apply_keeps_invalid_values(block):
    result = apply(block, Suggestion(target="b1", property_map={"className": 5, "opacity": "abc"}))
    assert result.styles.class_names == ("5",)
    assert result.styles.properties["opacity"] == "abc"
