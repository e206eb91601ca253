"""Behaviour tests for pagination through the document pipeline.

The scenarios in ``features/pagination.feature`` render documents end to
end through :class:`~pagemint.pipeline.DocumentPipeline` in preview mode,
using the ``FakeEngine`` rendering double from ``tests/conftest.py`` and a
counting utility compiler. They check that total-page references resolve to
the engine-computed count, that unresolvable client components only degrade
their own placeholder, and that the engine page is always released.

Usage
-----
Run ``pytest tests/bdd/test_paginate_documents.py -v``.
"""

from __future__ import annotations

import asyncio
import typing as typ
from pathlib import Path

import pytest
from bs4 import BeautifulSoup
from pytest_bdd import given, parsers, scenarios, then, when

from pagemint.errors import PaginationTimeout
from pagemint.models import DocumentSpec
from pagemint.pagination.orchestrator import PaginationOrchestrator
from pagemint.pipeline import DocumentPipeline, RenderResult
from pagemint.tree import ClientComponent, Element, Text, total_pages

if typ.TYPE_CHECKING:
    from conftest import FakeEngine

    from pagemint.styles.resolver import StyleResolver

FEATURE_FILE = Path(__file__).resolve().parents[2] / "features" / "pagination.feature"
scenarios(FEATURE_FILE)

ScenarioState = dict[str, typ.Any]


@pytest.fixture
def scenario_state() -> ScenarioState:
    """Share mutable scenario data across pytest-bdd steps.

    Returns
    -------
    ScenarioState
        Mutable dictionary used to exchange state between ``given``, ``when``,
        and ``then`` steps.
    """
    return {}


@given("a document whose footer references the total page count")
def given_page_x_of_n(scenario_state: ScenarioState) -> None:
    scenario_state["spec"] = DocumentSpec(
        Element("p", children=[Text("Quarterly numbers")]),
        footer=Element("span", children=[Text("Page of "), total_pages()]),
    )


@given("a document with one missing and one working client component")
def given_mixed_clients(
    scenario_state: ScenarioState, tmp_path: Path, chart_module: Path
) -> None:
    scenario_state["spec"] = DocumentSpec(
        Element(
            "div",
            children=[
                ClientComponent(str(tmp_path / "missing.js"), "Widget"),
                ClientComponent(str(chart_module), "BarChart", {"title": "Hours"}),
            ],
        )
    )


@given(parsers.parse("a rendering engine that lays the document out on {count:d} pages"))
def given_engine(
    scenario_state: ScenarioState, engine_factory: type[FakeEngine], count: int
) -> None:
    scenario_state["engine"] = engine_factory(page_count=count)


@given("a rendering engine that never finishes pagination")
def given_stalled_engine(
    scenario_state: ScenarioState, engine_factory: type[FakeEngine]
) -> None:
    scenario_state["engine"] = engine_factory(hang_at="polyfill")


@when("I render the document in preview mode")
def when_render_preview(scenario_state: ScenarioState, style_resolver: StyleResolver) -> None:
    engine = typ.cast("FakeEngine", scenario_state["engine"])
    pipeline = DocumentPipeline(
        style_resolver=style_resolver,
        orchestrator=PaginationOrchestrator(engine, timeout=0.2),
    )
    spec = typ.cast("DocumentSpec", scenario_state["spec"])
    scenario_state["result"] = asyncio.run(pipeline.render(spec, preview=True))


@then(parsers.parse("every total-pages reference reads {count:d}"))
def then_total_pages(scenario_state: ScenarioState, count: int) -> None:
    result = typ.cast("RenderResult", scenario_state["result"])
    assert result.ok
    assert result.page_count == count
    soup = BeautifulSoup(result.html or "", "html.parser")
    references = soup.select("[data-pagemint-total-pages]")
    assert references
    assert {ref.get_text() for ref in references} == {str(count)}


@then(parsers.parse("the render succeeds with {count:d} warning"))
def then_warnings(scenario_state: ScenarioState, count: int) -> None:
    result = typ.cast("RenderResult", scenario_state["result"])
    assert result.ok
    assert result.partial
    assert len(result.warnings) == count


@then("the render fails with a pagination timeout")
def then_timeout(scenario_state: ScenarioState) -> None:
    result = typ.cast("RenderResult", scenario_state["result"])
    assert isinstance(result.error, PaginationTimeout)
    assert result.html is None


@then("the rendering engine holds no pages")
def then_released(scenario_state: ScenarioState) -> None:
    engine = typ.cast("FakeEngine", scenario_state["engine"])
    assert engine.opened >= 1
    assert engine.active_pages == 0
