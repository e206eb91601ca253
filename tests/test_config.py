from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

from pagemint.config import ConfigError, load_pipeline_config
from pagemint.geometry import PageGeometry, Watermark
from pagemint.models import FontSpec, StylingMode
from pagemint.tree import ClientComponent, Element, render_markup

REPO_CONFIG = Path(__file__).resolve().parents[1] / "config" / "pagemint.yaml"


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "pagemint.yaml"
    path.write_text(dedent(text).strip() + "\n", encoding="utf-8")
    return path


def test_documents_merge_defaults_and_overrides(tmp_path: Path) -> None:
    config_path = _write(
        tmp_path,
        """
        output_dir: build
        defaults:
          page_size: Letter
          styling: utility
          author: Ada
          fonts: [Inter]
        documents:
          invoice:
            body:
              tag: p
              class: text-sm
              children: [Due now]
          poster:
            title: Big Poster
            page_size: [24in, 36in]
            orientation: landscape
            styling: embedded
            css: "h1 { font-size: 6rem; }"
            author: Grace
            watermark: Draft
            keywords: poster, print
            output: /tmp/poster.pdf
            body:
              - {tag: h1, children: [Hello]}
              - {component: page-break}
        """,
    )
    config = load_pipeline_config(config_path)

    invoice = config.get_document("invoice")
    assert invoice.output == tmp_path.resolve() / "build" / "invoice.pdf"
    assert invoice.spec.title == "Invoice"
    assert invoice.spec.geometry == PageGeometry(612.0, 792.0)
    assert invoice.spec.styling_mode is StylingMode.UTILITY
    assert invoice.spec.author == "Ada"
    assert invoice.spec.fonts == (FontSpec("Inter"),)
    assert invoice.spec.base_dir == tmp_path.resolve()
    assert render_markup(invoice.spec.tree) == '<p class="text-sm">Due now</p>'

    poster = config.get_document("poster")
    assert poster.output == Path("/tmp/poster.pdf")
    assert poster.spec.geometry == PageGeometry(2592.0, 1728.0)
    assert poster.spec.styling_mode is StylingMode.EMBEDDED
    assert poster.spec.author == "Grace"
    assert poster.spec.watermark == Watermark("Draft")
    assert poster.spec.keywords == ("poster", "print")
    assert isinstance(poster.spec.tree, Element)
    assert render_markup(poster.spec.tree) == (
        "<div><h1>Hello</h1><div data-pagemint-page-break></div></div>"
    )


def test_pipeline_sections_are_parsed(tmp_path: Path) -> None:
    (tmp_path / "paged.js").write_text("/* paged */", encoding="utf-8")
    config = load_pipeline_config(
        _write(
            tmp_path,
            """
            styles:
              compiler: /opt/tailwindcss
              minify: true
              cache_capacity: 16
            pagination:
              timeout: 12
              state_timeouts: {pagination_running: 45}
              polyfill_path: paged.js
              max_pages: 2
              headless: false
            conversion:
              backend: remote
              url: http://convert.test
              retries: 5
              backoff_factor: 0.25
              fallback: local
            documents: {}
            """,
        )
    )
    assert config.styles.compiler == "/opt/tailwindcss"
    assert config.styles.minify
    assert config.styles.cache_capacity == 16
    assert config.pagination.timeout == 12.0
    assert config.pagination.state_timeouts == {"pagination_running": 45.0}
    assert config.pagination.polyfill_path == tmp_path.resolve() / "paged.js"
    assert config.pagination.max_pages == 2
    assert not config.pagination.headless
    assert config.conversion.backend == "remote"
    assert config.conversion.retries == 5
    assert config.conversion.backoff_factor == 0.25
    assert config.conversion.fallback == "local"
    assert config.output_dir == tmp_path.resolve() / "out"


def test_client_sources_resolve_against_config_dir(tmp_path: Path) -> None:
    config = load_pipeline_config(
        _write(
            tmp_path,
            """
            documents:
              chart:
                body:
                  client: {source: widgets/chart.js, export: BarChart, props: {n: 3}}
            """,
        )
    )
    tree = config.get_document("chart").spec.tree
    assert isinstance(tree, ClientComponent)
    assert tree.source == str(tmp_path.resolve() / "widgets" / "chart.js")
    assert tree.props == {"n": 3}


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("documents: {x: {title: no body}}", "missing 'body'"),
        ("documents: {x: {body: hi, orientation: sideways}}", "invalid orientation"),
        ("documents: {x: {body: hi, styling: tailwind}}", "unknown styling"),
        ("documents: {x: {body: {widget: 1}}}", "Cannot build a tree node"),
        ("documents: {x: {body: hi, debug: {grid: true, rulers: true}}}", "rulers"),
        ("documents: {x: {body: hi, page_size: 12}}", "Invalid page_size"),
        ("documents: {x: 3}", "must be a mapping"),
        ("conversion: {backend: remote}", "requires 'conversion.url'"),
        ("conversion: {backend: cloud}", "Unknown conversion backend 'cloud'"),
        ("conversion: {retries: -1}", "non-negative integer"),
        ("pagination: {timeout: 0}", "greater than zero"),
        ("pagination: {state_timeouts: {warmup: 3}}", "Unknown pagination state 'warmup'"),
        ("pagination: {max_pages: 0}", "at least 1"),
        ("styles: {cache_capacity: 0}", "at least 1"),
        ("- just\n- a list", "must be a mapping"),
    ],
)
def test_invalid_configuration_raises(tmp_path: Path, text: str, message: str) -> None:
    with pytest.raises(ConfigError, match=message):
        load_pipeline_config(_write(tmp_path, text))


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_pipeline_config(tmp_path / "absent.yaml")


def test_unknown_document_lists_available(tmp_path: Path) -> None:
    config = load_pipeline_config(_write(tmp_path, "documents: {a: {body: x}, b: {body: y}}"))
    with pytest.raises(ConfigError, match="Available: a, b"):
        config.get_document("c")


def test_repository_example_config_loads() -> None:
    config = load_pipeline_config(REPO_CONFIG)
    assert sorted(config.documents) == ["invoice", "report"]
    invoice = config.get_document("invoice").spec
    assert invoice.styling_mode is StylingMode.UTILITY
    assert invoice.header is not None
    report = config.get_document("report").spec
    assert report.orientation == "landscape"
    assert report.watermark == Watermark("Draft", opacity=0.12)
