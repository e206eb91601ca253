"""Drive a rendering engine page through pagination.

Pagination cannot be computed from markup alone, so the assembled document
is loaded into a real layout engine and advanced through a fixed sequence of
states::

    LOADED -> SCRIPTS_ATTACHED -> PAGINATION_RUNNING -> RESOLVED
         \\            \\                   \\
          +------------+-------------------+--> FAILED

Every state runs under its own timeout. Exceeding it raises
:class:`~pagemint.errors.PaginationTimeout`; a script error reported by the
engine raises :class:`~pagemint.errors.PaginationScriptError`. Either way
the orchestrator moves straight to ``FAILED`` and the engine page is
released by its ``async with`` scope. The orchestrator never retries:
deterministic layout bugs must not be masked as flaky timeouts.

Example
-------
>>> orchestrator = PaginationOrchestrator(engine, timeout=10.0)  # doctest: +SKIP
>>> paginated = await orchestrator.paginate(assembled)  # doctest: +SKIP
>>> paginated.page_count  # doctest: +SKIP
3
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import contextlib
import dataclasses as dc
import enum
import logging
import time
import typing as typ

from pagemint._constants import (
    CLIENT_ERRORS_GLOBAL,
    MOUNTED_ATTR,
    PAGE_COUNT_ATTR,
    PAGED_JS_CDN,
    TOTAL_PAGES_ATTR,
)
from pagemint.errors import EngineError, PaginationScriptError, PaginationTimeout

if typ.TYPE_CHECKING:
    from pagemint.assembler import AssembledDocument
    from pagemint.pagination.engine import EnginePage, RenderingEngine

logger = logging.getLogger(__name__)

DEFAULT_STATE_TIMEOUT = 30.0
_T = typ.TypeVar("_T")
INJECTED_ATTR = "data-pagemint-injected"

_INJECT_SCRIPT = f"""
(code) => {{
  const script = document.createElement("script");
  script.setAttribute("{INJECTED_ATTR}", "");
  script.textContent = code;
  document.head.appendChild(script);
}}
"""

_MOUNTED_PREDICATE = f"""
(ids) => (window.{CLIENT_ERRORS_GLOBAL} || []).length > 0 || ids.every((id) => {{
  const el = document.getElementById(id);
  return el !== null && el.hasAttribute("{MOUNTED_ATTR}");
}})
"""

_CLIENT_ERRORS = f"() => (window.{CLIENT_ERRORS_GLOBAL} || []).map((e) => e.id + ': ' + e.message)"

_RUN_POLYFILL = f"""
async ({{ url, source }}) => {{
  window.PagedConfig = {{ auto: false }};
  await new Promise((resolve, reject) => {{
    const script = document.createElement("script");
    script.setAttribute("{INJECTED_ATTR}", "");
    if (source) {{
      script.textContent = source;
      document.head.appendChild(script);
      resolve();
      return;
    }}
    script.src = url;
    script.onload = resolve;
    script.onerror = () => reject(new Error("failed to load pagination polyfill from " + url));
    document.head.appendChild(script);
  }});
  if (!window.PagedPolyfill) {{
    throw new Error("pagination polyfill did not initialise");
  }}
  await window.PagedPolyfill.preview();
}}
"""

_PAGE_COUNT = "() => document.querySelectorAll('.pagedjs_page').length"

_RESOLVE_TOTAL_PAGES = f"""
(count) => {{
  const value = String(count);
  const targets = document.querySelectorAll("[{TOTAL_PAGES_ATTR}]");
  targets.forEach((el) => {{ el.textContent = value; }});
  let marker = document.querySelector("[{PAGE_COUNT_ATTR}]");
  if (marker === null) {{
    marker = document.createElement("meta");
    marker.setAttribute("name", "pagemint:page-count");
    document.head.appendChild(marker);
  }}
  marker.setAttribute("{PAGE_COUNT_ATTR}", value);
  marker.setAttribute("content", value);
  document.querySelectorAll("script[{INJECTED_ATTR}]").forEach((el) => el.remove());
  return targets.length;
}}
"""


class PaginationState(enum.StrEnum):
    """States a document passes through while being paginated."""

    LOADED = "loaded"
    SCRIPTS_ATTACHED = "scripts_attached"
    PAGINATION_RUNNING = "pagination_running"
    RESOLVED = "resolved"
    FAILED = "failed"


STATE_ORDER = (
    PaginationState.LOADED,
    PaginationState.SCRIPTS_ATTACHED,
    PaginationState.PAGINATION_RUNNING,
    PaginationState.RESOLVED,
)

TransitionHook = cabc.Callable[[PaginationState, float], None]


@dc.dataclass(frozen=True, slots=True)
class PaginatedDocument:
    """Final markup and the engine-computed page count."""

    final_html: str
    page_count: int


class PaginationOrchestrator:
    """Run assembled documents through a pagination polyfill."""

    def __init__(
        self,
        engine: RenderingEngine,
        *,
        timeout: float = DEFAULT_STATE_TIMEOUT,
        state_timeouts: cabc.Mapping[PaginationState | str, float] | None = None,
        polyfill_url: str = PAGED_JS_CDN,
        polyfill_source: str | None = None,
        on_transition: TransitionHook | None = None,
    ) -> None:
        """Configure the orchestrator.

        Parameters
        ----------
        engine : RenderingEngine
            Source of exclusively-owned engine pages.
        timeout : float
            Default per-state timeout in seconds.
        state_timeouts : Mapping, optional
            Per-state overrides keyed by :class:`PaginationState` or its value.
        polyfill_url : str
            URL the pagination polyfill is loaded from.
        polyfill_source : str, optional
            Polyfill script text; when given it is inlined instead of
            fetching ``polyfill_url``.
        on_transition : callable, optional
            Called with each state entered and the milliseconds spent in the
            previous state.
        """
        self.engine = engine
        self.timeout = timeout
        self.state_timeouts = {
            PaginationState(state): value for state, value in (state_timeouts or {}).items()
        }
        self.polyfill_url = polyfill_url
        self.polyfill_source = polyfill_source
        self.on_transition = on_transition

    def timeout_for(self, state: PaginationState) -> float:
        return self.state_timeouts.get(state, self.timeout)

    async def paginate(self, document: AssembledDocument) -> PaginatedDocument:
        """Paginate ``document`` and resolve its total-page references.

        Raises
        ------
        PaginationTimeout
            A state exceeded its timeout.
        PaginationScriptError
            The engine reported a script error or a client component failed
            to mount.
        """
        run = _Run(self.on_transition)
        try:
            async with self._checkout(run) as page:
                run.enter(PaginationState.LOADED)
                await self._step(run, page, page.set_content(document.html))

                run.enter(PaginationState.SCRIPTS_ATTACHED)
                await self._step(run, page, self._attach_scripts(page, document))

                run.enter(PaginationState.PAGINATION_RUNNING)
                await self._step(run, page, self._run_polyfill(page))

                run.enter(PaginationState.RESOLVED)
                result = await self._step(run, page, self._resolve(page))
        except (PaginationTimeout, PaginationScriptError):
            run.enter(PaginationState.FAILED)
            raise
        logger.debug("Paginated document into %d page(s)", result.page_count)
        return result

    async def _step(self, run: _Run, page: EnginePage, work: cabc.Awaitable[_T]) -> _T:
        state = run.state
        timeout = self.timeout_for(state)
        try:
            outcome = await asyncio.wait_for(work, timeout)
        except TimeoutError as exc:
            raise PaginationTimeout(state.value, timeout) from exc
        except EngineError as exc:
            raise PaginationScriptError(state.value, str(exc)) from exc
        if page.errors:
            raise PaginationScriptError(state.value, "; ".join(page.errors))
        return outcome

    @contextlib.asynccontextmanager
    async def _checkout(self, run: _Run) -> cabc.AsyncIterator[EnginePage]:
        try:
            async with self.engine.page() as page:
                yield page
        except EngineError as exc:
            state = run.state or PaginationState.LOADED
            raise PaginationScriptError(state.value, str(exc)) from exc

    async def _attach_scripts(self, page: EnginePage, document: AssembledDocument) -> None:
        scripts = document.bundles.scripts()
        if not scripts:
            return
        for script in scripts:
            await page.evaluate(_INJECT_SCRIPT, script)
        await page.wait_for_function(_MOUNTED_PREDICATE, list(document.placeholder_ids))
        failures = await page.evaluate(_CLIENT_ERRORS)
        if failures:
            raise EngineError("client component failed to mount: " + "; ".join(failures))

    async def _run_polyfill(self, page: EnginePage) -> None:
        await page.evaluate(_RUN_POLYFILL, {"url": self.polyfill_url, "source": self.polyfill_source})

    async def _resolve(self, page: EnginePage) -> PaginatedDocument:
        page_count = int(await page.evaluate(_PAGE_COUNT))
        if page_count < 1:
            msg = "pagination polyfill produced no pages"
            raise EngineError(msg)
        resolved = await page.evaluate(_RESOLVE_TOTAL_PAGES, page_count)
        logger.debug("Resolved %s total-page reference(s) to %d", resolved, page_count)
        return PaginatedDocument(final_html=await page.content(), page_count=page_count)


class _Run:
    """Tracks the current state of one pagination run."""

    def __init__(self, hook: TransitionHook | None) -> None:
        self.hook = hook
        self.state: PaginationState | None = None
        self.started = time.perf_counter()

    def enter(self, state: PaginationState) -> None:
        now = time.perf_counter()
        elapsed_ms = (now - self.started) * 1000.0
        self.state, self.started = state, now
        logger.debug("Pagination state -> %s", state.value)
        if self.hook is not None:
            self.hook(state, elapsed_ms)


__all__ = [
    "DEFAULT_STATE_TIMEOUT",
    "STATE_ORDER",
    "PaginatedDocument",
    "PaginationOrchestrator",
    "PaginationState",
]
