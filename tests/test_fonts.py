from __future__ import annotations

import base64
import logging
from pathlib import Path

import pytest

from pagemint.fonts import font_face, google_fonts_url, load_fonts
from pagemint.models import FontSpec


def test_google_fonts_url_covers_remote_families_only() -> None:
    url = google_fonts_url(
        [FontSpec("Inter", weights=(700, 400)), FontSpec("Source Serif 4"), FontSpec("Brand", src="brand.woff2")]
    )
    assert url == (
        "https://fonts.googleapis.com/css2?family=Inter:wght@400;700"
        "&family=Source+Serif+4:wght@400;500;600;700&display=swap"
    )
    assert google_fonts_url([FontSpec("Brand", src="brand.woff2")]) is None


def test_local_fonts_are_embedded_as_data_uris(tmp_path: Path) -> None:
    (tmp_path / "brand.woff2").write_bytes(b"wOF2-bytes")
    assets = load_fonts([FontSpec("Brand", src="brand.woff2", weight=700)], base_dir=tmp_path)
    encoded = base64.b64encode(b"wOF2-bytes").decode("ascii")
    assert assets.links == ()
    assert f"src: url('data:font/woff2;base64,{encoded}');" in assets.css
    assert "font-weight: 700;" in assets.css


def test_missing_local_font_is_skipped(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="pagemint.fonts"):
        assets = load_fonts([FontSpec("Gone", src="gone.ttf")], base_dir=tmp_path)
    assert assets.css == ""
    assert "Skipping font" in caplog.text


def test_remote_font_sources_are_referenced_directly() -> None:
    font = FontSpec("Hosted", src="https://cdn.example.com/hosted.woff2")
    assert not font.is_local
    assets = load_fonts([font])
    assert assets.css == font_face(font, "https://cdn.example.com/hosted.woff2")
