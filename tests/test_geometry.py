from __future__ import annotations

import pytest

from pagemint.geometry import (
    PAGE_SIZES,
    PageGeometry,
    Watermark,
    margin_css,
    page_css,
    parse_dimension,
    resolve_page_geometry,
)

A4_PORTRAIT = PageGeometry(width_pt=595.28, height_pt=841.89)


@pytest.mark.parametrize("name", sorted(PAGE_SIZES))
def test_landscape_swaps_portrait_exactly(name: str) -> None:
    portrait = resolve_page_geometry(name, "portrait")
    landscape = resolve_page_geometry(name, "landscape")
    assert landscape.width_pt == portrait.height_pt
    assert landscape.height_pt == portrait.width_pt


@pytest.mark.parametrize("name", ["Folio", "", "A44", "letterish"])
def test_unknown_size_falls_back_to_a4_portrait(name: str) -> None:
    assert resolve_page_geometry(name) == A4_PORTRAIT


def test_unknown_size_still_honours_orientation() -> None:
    assert resolve_page_geometry("Folio", "landscape") == A4_PORTRAIT.swapped()


def test_size_names_are_case_insensitive() -> None:
    assert resolve_page_geometry("letter") == PageGeometry(612.0, 792.0)
    assert resolve_page_geometry("  a5 ") == PageGeometry(419.53, 595.28)


def test_none_selects_default() -> None:
    assert resolve_page_geometry(None) == A4_PORTRAIT


def test_custom_dimensions_convert_to_points() -> None:
    geometry = resolve_page_geometry(("8.5in", "11in"))
    assert geometry == PageGeometry(612.0, 792.0)
    assert resolve_page_geometry((100, "2in"), "landscape") == PageGeometry(144.0, 100.0)


def test_unparseable_custom_dimensions_fall_back() -> None:
    assert resolve_page_geometry(("wide", "11in")) == A4_PORTRAIT


@pytest.mark.parametrize("size", [("0", "0"), (0, "11in"), ("8.5in", "0mm")])
def test_zero_custom_dimensions_fall_back(size: tuple[str | float, str | float]) -> None:
    assert resolve_page_geometry(size) == A4_PORTRAIT


@pytest.mark.parametrize(
    ("value", "expected"),
    [("72pt", 72.0), ("1in", 72.0), ("25.4mm", 72.0), ("2.54cm", 72.0), ("96px", 72.0), ("36", 36.0)],
)
def test_parse_dimension_units(value: str, expected: float) -> None:
    assert parse_dimension(value) == pytest.approx(expected)


def test_parse_dimension_rejects_garbage() -> None:
    with pytest.raises(ValueError, match="Invalid dimension"):
        parse_dimension("12 furlongs")


def test_parse_dimension_rejects_zero() -> None:
    with pytest.raises(ValueError, match="greater than zero"):
        parse_dimension("0pt")


def test_geometry_inches_and_css_size() -> None:
    letter = resolve_page_geometry("Letter")
    assert letter.width_in == 8.5
    assert letter.height_in == 11.0
    assert letter.css_size == "612pt 792pt"
    assert A4_PORTRAIT.css_size == "595.28pt 841.89pt"


def test_margin_css_variants() -> None:
    assert margin_css(None) == "1in"
    assert margin_css("  ") == "1in"
    assert margin_css("2cm") == "2cm"
    assert margin_css({"top": "1in", "bottom": "2in"}) == "1in 0 2in 0"


def test_page_css_emits_size_and_margin() -> None:
    css = page_css(A4_PORTRAIT, margin="15mm")
    assert "size: 595.28pt 841.89pt;" in css
    assert "margin: 15mm;" in css
    assert "pagedjs_sheet" not in css


def test_page_css_watermark_is_escaped_and_repeated_per_page() -> None:
    css = page_css(A4_PORTRAIT, watermark=Watermark('Say "draft"', opacity=0.1, rotation=-30))
    assert '.pagedjs_page > .pagedjs_sheet::before {' in css
    assert 'content: "Say \\"draft\\"";' in css
    assert "rotate(-30deg)" in css
    assert "rgba(156, 163, 175, 0.15)" in css


def test_watermark_alpha_is_capped() -> None:
    assert Watermark("x", opacity=0.5).alpha == 0.3
