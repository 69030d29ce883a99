import pytest

from pagebuilder.domain.document import Block, Device, StyleRecord, Visibility
from pagebuilder.domain.styles import OMIT, css_property_name, inline_declarations, resolve


def _block(styles=None, **visibility):
    return Block(
        id="b1",
        section_id="s1",
        block_type="heading",
        styles=StyleRecord.from_flat(styles or {}),
        visibility=Visibility(**visibility),
    )


def test_overrides_win_over_registry_defaults():
    style = resolve(_block({"color": "#ff0000"}))
    assert style.properties["color"] == "#ff0000"
    assert style.properties["fontWeight"] == "700"


def test_no_overrides_yields_defaults():
    style = resolve(_block())
    assert style.properties == {"fontSize": "1.875rem", "fontWeight": "700", "color": "#111827"}
    assert style.raw_css == ""
    assert style.element_id is None
    assert style.class_names == ()


def test_hidden_device_is_omitted():
    block = _block(mobile=False)
    assert resolve(block, Device.MOBILE) is OMIT
    assert resolve(block, "desktop") is not OMIT
    assert not OMIT


def test_reserved_keys_stay_out_of_properties():
    style = resolve(_block({
        "customCSS": "h1 { letter-spacing: 2px; }",
        "elementId": "title",
        "className": "big bold",
        "marginTop": "1rem",
    }))

    assert style.raw_css == "h1 { letter-spacing: 2px; }"
    assert style.element_id == "title"
    assert style.class_names == ("big", "bold")
    for key in ("customCSS", "elementId", "className"):
        assert key not in style.properties

    declarations = dict(inline_declarations(style))
    assert declarations["margin-top"] == "1rem"
    assert "custom-c-s-s" not in declarations


def test_unknown_block_type_resolves_overrides_only():
    block = _block({"color": "blue"})
    block.block_type = "mystery"
    assert resolve(block).properties == {"color": "blue"}


def test_css_property_name():
    assert css_property_name("paddingTop") == "padding-top"
    assert css_property_name("color") == "color"


def test_scalar_class_name_is_kept_as_text():
    record = StyleRecord.from_flat({"className": 5, "opacity": "abc"})
    assert record.class_names == ("5",)
    assert record.to_flat() == {"opacity": "abc", "className": "5"}
    assert StyleRecord.from_flat({"className": ["a", "b"]}).class_names == ("a", "b")


def test_invalid_values_pass_through_resolve():
    style = resolve(_block({"opacity": "abc", "className": 5}))
    assert style.properties["opacity"] == "abc"
    assert style.class_names == ("5",)


def test_visibility_flags_are_parsed_strictly():
    stored = Visibility.from_dict({"desktop": "false", "tablet": "TRUE", "mobile": 0})
    assert stored.to_dict() == {"desktop": False, "tablet": True, "mobile": False}
    assert Visibility.from_dict(None) == Visibility()

    with pytest.raises(ValueError):
        Visibility.from_dict({"mobile": "nope"})
    with pytest.raises(ValueError):
        Visibility.from_dict({"tablet": 2})
