"""End-to-end render requests: tree in, PDF bytes (or preview HTML) out.

:class:`DocumentPipeline` wires the stages together in dependency order.
Style resolution and client detection both only read the tree, so the
utility compiler runs in a worker thread while the detector and bundler do
their work. Assembly then completes before pagination, and pagination before
conversion.

Failures that abort a document (:class:`~pagemint.errors.DocumentRenderError`
and its subclasses) are captured in the returned :class:`RenderResult`
instead of propagating, so one broken document never takes down its
siblings in :meth:`DocumentPipeline.render_many`. Client components that fail
to bundle are reported as warnings on an otherwise successful result.
Cancellation always propagates.

Example
-------
>>> import asyncio
>>> from pagemint.pipeline import DocumentPipeline
>>> async def main(config, spec):
...     async with DocumentPipeline.from_config(config) as pipeline:
...         return await pipeline.render(spec)
>>> result = asyncio.run(main(config, spec))  # doctest: +SKIP
>>> result.page_count  # doctest: +SKIP
2
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import contextlib
import dataclasses as dc
import logging
import time
import typing as typ

from pagemint.assembler import AssembledDocument, DocumentAssembler, build_page_tree
from pagemint.client.bundle import ClientBundler
from pagemint.client.detect import detect_client_components
from pagemint.conversion import (
    ConversionBackend,
    ConversionDispatcher,
    LocalPrintBackend,
    RemoteConversionBackend,
)
from pagemint.errors import ClientBundleError, DocumentRenderError
from pagemint.fonts import load_fonts
from pagemint.images import embed_images
from pagemint.pagination.engine import PlaywrightEngine
from pagemint.pagination.orchestrator import PaginationOrchestrator
from pagemint.styles.cache import configure_style_cache
from pagemint.styles.compiler import TailwindCompiler
from pagemint.styles.resolver import StyleResolver

if typ.TYPE_CHECKING:
    from pagemint.config import PipelineConfig
    from pagemint.models import DocumentSpec
    from pagemint.pagination.engine import RenderingEngine

logger = logging.getLogger(__name__)


@dc.dataclass(slots=True)
class RenderResult:
    """Outcome of one render request.

    Attributes
    ----------
    pdf_bytes : bytes or None
        The converted PDF; ``None`` in preview mode or on failure.
    html : str or None
        Paginated markup; set in preview mode.
    page_count : int or None
        Engine-computed page count, once pagination succeeded.
    warnings : list[ClientBundleError]
        Client components that were left as empty placeholders.
    error : DocumentRenderError or None
        The failure that aborted this document, if any.
    metrics : dict[str, float]
        Stage timings in milliseconds.
    """

    title: str = ""
    pdf_bytes: bytes | None = None
    html: str | None = None
    page_count: int | None = None
    warnings: list[ClientBundleError] = dc.field(default_factory=list)
    error: DocumentRenderError | None = None
    metrics: dict[str, float] = dc.field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def partial(self) -> bool:
        """Return ``True`` when the document rendered with degraded subtrees."""
        return self.ok and bool(self.warnings)


@contextlib.contextmanager
def _timed(metrics: dict[str, float], name: str) -> cabc.Iterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        metrics[f"{name}_ms"] = round((time.perf_counter() - started) * 1000.0, 3)


class DocumentPipeline:
    """Render documents through styles, bundling, pagination, and conversion."""

    def __init__(
        self,
        *,
        style_resolver: StyleResolver,
        orchestrator: PaginationOrchestrator,
        dispatcher: ConversionDispatcher | None = None,
        bundler: ClientBundler | None = None,
        assembler: DocumentAssembler | None = None,
        engine: PlaywrightEngine | None = None,
    ) -> None:
        """Assemble a pipeline from its stages.

        Parameters
        ----------
        engine : PlaywrightEngine, optional
            Engine owned by this pipeline; closed by :meth:`aclose`.
        """
        self.style_resolver = style_resolver
        self.orchestrator = orchestrator
        self.dispatcher = dispatcher
        self.bundler = bundler or ClientBundler()
        self.assembler = assembler or DocumentAssembler()
        self._owned_engine = engine

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        *,
        engine: RenderingEngine | None = None,
    ) -> DocumentPipeline:
        """Build a pipeline from configuration.

        When ``engine`` is omitted a :class:`PlaywrightEngine` is created and
        owned by the pipeline.
        """
        owned: PlaywrightEngine | None = None
        if engine is None:
            owned = PlaywrightEngine(
                max_pages=config.pagination.max_pages,
                headless=config.pagination.headless,
            )
            engine = owned
        cache = configure_style_cache(config.styles.cache_capacity)
        compiler = TailwindCompiler(
            config.styles.compiler,
            minify=config.styles.minify,
            timeout=config.styles.compile_timeout,
        )
        polyfill_source = None
        if config.pagination.polyfill_path is not None:
            polyfill_source = config.pagination.polyfill_path.read_text(encoding="utf-8")
        orchestrator = PaginationOrchestrator(
            engine,
            timeout=config.pagination.timeout,
            state_timeouts=config.pagination.state_timeouts,
            polyfill_url=config.pagination.polyfill_url,
            polyfill_source=polyfill_source,
        )
        backends: list[ConversionBackend] = [LocalPrintBackend(engine)]
        if config.conversion.url:
            backends.append(
                RemoteConversionBackend(
                    config.conversion.url,
                    retries=config.conversion.retries,
                    backoff_factor=config.conversion.backoff_factor,
                    timeout=config.conversion.timeout,
                )
            )
        dispatcher = ConversionDispatcher(
            backends,
            default=config.conversion.backend,
            fallback=config.conversion.fallback,
        )
        return cls(
            style_resolver=StyleResolver(compiler, cache=cache),
            orchestrator=orchestrator,
            dispatcher=dispatcher,
            engine=owned,
        )

    async def __aenter__(self) -> DocumentPipeline:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the rendering engine if this pipeline owns it."""
        if self._owned_engine is not None:
            await self._owned_engine.close()

    async def assemble(
        self, spec: DocumentSpec, metrics: dict[str, float] | None = None
    ) -> AssembledDocument:
        """Resolve styles, bundle client components, and assemble ``spec``."""
        metrics = {} if metrics is None else metrics
        page_tree = build_page_tree(spec)
        started = time.perf_counter()
        styles_task = asyncio.create_task(asyncio.to_thread(self.style_resolver.resolve, spec))
        try:
            with _timed(metrics, "bundling"):
                detection = detect_client_components(page_tree)
                bundles = self.bundler.bundle(detection.components)
        except BaseException:
            styles_task.cancel()
            raise
        styles = await styles_task
        metrics["styles_ms"] = round((time.perf_counter() - started) * 1000.0, 3)
        with _timed(metrics, "assembly"):
            fonts = load_fonts(spec.fonts, base_dir=spec.base_dir)
            tree = embed_images(detection.tree, base_dir=spec.base_dir)
            return self.assembler.assemble(spec, tree, styles=styles, bundles=bundles, fonts=fonts)

    async def render(
        self,
        spec: DocumentSpec,
        *,
        preview: bool = False,
        backend: str | None = None,
    ) -> RenderResult:
        """Render one document.

        Parameters
        ----------
        spec : DocumentSpec
            The document to render.
        preview : bool
            Return the paginated HTML instead of converting to PDF.
        backend : str, optional
            Conversion backend name; defaults to the dispatcher's default.

        Returns
        -------
        RenderResult
            PDF bytes or preview HTML, or the typed error that aborted the
            document.
        """
        result = RenderResult(title=spec.title)
        started = time.perf_counter()
        try:
            assembled = await self.assemble(spec, result.metrics)
            result.warnings.extend(assembled.bundles.errors)
            with _timed(result.metrics, "pagination"):
                paginated = await self.orchestrator.paginate(assembled)
            result.page_count = paginated.page_count
            if preview:
                result.html = paginated.final_html
            else:
                if self.dispatcher is None:
                    msg = "No conversion backend configured; use preview mode."
                    raise DocumentRenderError(msg)
                with _timed(result.metrics, "conversion"):
                    result.pdf_bytes = await self.dispatcher.dispatch(
                        paginated, assembled.geometry, backend=backend
                    )
        except DocumentRenderError as exc:
            logger.error("Rendering '%s' failed: %s", spec.title, exc)
            result.error = exc
        finally:
            result.metrics["total_ms"] = round((time.perf_counter() - started) * 1000.0, 3)
        if result.partial:
            logger.warning(
                "Rendered '%s' with %d empty client placeholder(s)", spec.title, len(result.warnings)
            )
        return result

    async def render_many(
        self,
        specs: cabc.Iterable[DocumentSpec],
        *,
        preview: bool = False,
        backend: str | None = None,
    ) -> list[RenderResult]:
        """Render documents concurrently; each failure stays in its own result."""
        return list(
            await asyncio.gather(
                *(self.render(spec, preview=preview, backend=backend) for spec in specs)
            )
        )


__all__ = ["DocumentPipeline", "RenderResult"]
