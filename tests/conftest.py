"""Shared fixtures and rendering-engine test doubles.

``FakeEngine`` stands in for the headless browser. It hands out
``FakePage`` handles through the same ``async with engine.page()`` scope the
real engine uses and counts every page it opens and releases, so tests can
assert the scoped-resource guarantees (release on success, failure, timeout
and cancellation). Pages react to the orchestrator's scripts by identity:
the pagination run reports ``page_count`` pages and the total-pages
substitution rewrites the captured markup the way the in-browser script does.
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import contextlib
import re
import typing as typ
from pathlib import Path

import pytest

from pagemint.assembler import AssembledDocument, DocumentAssembler, build_page_tree
from pagemint.client.bundle import ClientBundler
from pagemint.client.detect import detect_client_components
from pagemint.errors import EngineError
from pagemint.models import DocumentSpec
from pagemint.pagination import orchestrator as orch
from pagemint.styles.cache import StyleCache
from pagemint.styles.resolver import StyleResolver

if typ.TYPE_CHECKING:
    from pagemint.geometry import PageGeometry

FAKE_PDF = b"%PDF-1.7\n% pagemint test double\n"

_TOTAL_PAGES_SPAN = re.compile(r"(<span[^>]*data-pagemint-total-pages[^>]*>)[^<]*(</span>)")
_PAGE_COUNT_META = re.compile(r'data-pagemint-page-count=""')

CHART_MODULE = """\
function mount(container, props) {
  const heading = document.createElement("h2");
  heading.classList.add("text-lg", "font-semibold");
  heading.textContent = props.title;
  container.appendChild(heading);
}
module.exports = { BarChart: { mount } };
"""


class FakePage:
    """In-memory :class:`~pagemint.pagination.engine.EnginePage`."""

    def __init__(self, engine: FakeEngine) -> None:
        self.engine = engine
        self.errors: list[str] = []
        self.html = ""
        self.steps: list[str] = []
        self.injected: list[str] = []
        self.waited_for: list[object] = []
        self.polyfill_args: list[object] = []

    async def _step(self, name: str) -> None:
        self.steps.append(name)
        if name == self.engine.hang_at:
            self.engine.hanging.set()
            await asyncio.sleep(3600)
        if name in self.engine.fail_at:
            raise EngineError(f"{name} blew up")
        if name in self.engine.error_at:
            self.errors.append(f"ReferenceError raised during {name}")

    async def set_content(self, html: str) -> None:
        self.html = html
        await self._step("load")

    async def evaluate(self, script: str, arg: object = None) -> typ.Any:
        if script == orch._INJECT_SCRIPT:
            self.injected.append(typ.cast("str", arg))
            await self._step("inject")
            return None
        if script == orch._CLIENT_ERRORS:
            return list(self.engine.client_errors)
        if script == orch._RUN_POLYFILL:
            self.polyfill_args.append(arg)
            await self._step("polyfill")
            return None
        if script == orch._PAGE_COUNT:
            await self._step("count")
            return self.engine.page_count
        if script == orch._RESOLVE_TOTAL_PAGES:
            value = str(arg)
            self.html = _TOTAL_PAGES_SPAN.sub(rf"\g<1>{value}\g<2>", self.html)
            self.html = _PAGE_COUNT_META.sub(
                f'data-pagemint-page-count="{value}" content="{value}"', self.html
            )
            return len(_TOTAL_PAGES_SPAN.findall(self.html))
        msg = f"Unexpected script: {script[:40]!r}"
        raise AssertionError(msg)

    async def wait_for_function(self, script: str, arg: object = None) -> None:
        assert script == orch._MOUNTED_PREDICATE
        self.waited_for.append(arg)
        await self._step("mount")

    async def content(self) -> str:
        await self._step("content")
        return self.html

    async def pdf(self, geometry: PageGeometry) -> bytes:
        self.engine.printed.append(geometry)
        await self._step("pdf")
        return FAKE_PDF


class FakeEngine:
    """Test double for :class:`~pagemint.pagination.engine.RenderingEngine`."""

    def __init__(
        self,
        *,
        page_count: int = 2,
        hang_at: str | None = None,
        fail_at: cabc.Iterable[str] = (),
        error_at: cabc.Iterable[str] = (),
        client_errors: cabc.Iterable[str] = (),
        fail_checkout: bool = False,
    ) -> None:
        self.page_count = page_count
        self.hang_at = hang_at
        self.fail_at = frozenset(fail_at)
        self.error_at = frozenset(error_at)
        self.client_errors = list(client_errors)
        self.fail_checkout = fail_checkout
        self.hanging = asyncio.Event()
        self.pages: list[FakePage] = []
        self.printed: list[PageGeometry] = []
        self.opened = 0
        self.released = 0

    @property
    def active_pages(self) -> int:
        return self.opened - self.released

    @contextlib.asynccontextmanager
    async def page(self) -> cabc.AsyncIterator[FakePage]:
        if self.fail_checkout:
            msg = "Chromium failed to launch"
            raise EngineError(msg)
        page = FakePage(self)
        self.pages.append(page)
        self.opened += 1
        try:
            yield page
        finally:
            self.released += 1


class FakeCompiler:
    """Utility compiler that emits one rule per class and counts calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[frozenset[str], str | None]] = []

    def compile(self, classes: cabc.Set[str], theme_css: str | None = None) -> str:
        self.calls.append((frozenset(classes), theme_css))
        return "".join(f".{name}{{--pm:1}}\n" for name in sorted(classes))


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def fake_compiler() -> FakeCompiler:
    return FakeCompiler()


@pytest.fixture
def style_resolver(fake_compiler: FakeCompiler) -> StyleResolver:
    """Resolver bound to a private cache so tests never share entries."""
    return StyleResolver(fake_compiler, cache=StyleCache(capacity=8))


@pytest.fixture
def chart_module(tmp_path: Path) -> Path:
    """Write a client module exporting ``BarChart`` and return its path."""
    path = tmp_path / "chart.js"
    path.write_text(CHART_MODULE, encoding="utf-8")
    return path


def assemble_document(spec: DocumentSpec) -> AssembledDocument:
    """Run detection, bundling, and assembly without style resolution."""
    detection = detect_client_components(build_page_tree(spec))
    bundles = ClientBundler().bundle(detection.components)
    return DocumentAssembler().assemble(spec, detection.tree, bundles=bundles)


@pytest.fixture
def assemble() -> cabc.Callable[[DocumentSpec], AssembledDocument]:
    return assemble_document


@pytest.fixture
def engine_factory() -> type[FakeEngine]:
    """Return the engine double class for tests that configure failures."""
    return FakeEngine
