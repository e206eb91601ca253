"""Cyclopts CLI entrypoint for rendering configured documents.

The ``pagemint`` console script renders the documents described in a
``pagemint.yaml`` file. ``pagemint render`` writes PDFs through the configured
conversion backend; ``pagemint preview`` writes the paginated HTML instead.
Each written file is reported as a ``wrote <path>`` line; documents that fail
are reported and make the command exit with status 1 after the remaining
documents have been written.

Examples
--------
Render every configured document:

>>> from pagemint.cli import main
>>> main()  # doctest: +SKIP

Preview a single document:

>>> from pagemint.cli import app
>>> app(["preview", "--document", "invoice"])  # doctest: +SKIP
"""

from __future__ import annotations

import asyncio
import logging
import typing as typ
from pathlib import Path

from cyclopts import App, Parameter

from .config import DocumentConfig, PipelineConfig, load_pipeline_config
from .pipeline import DocumentPipeline, RenderResult

DEFAULT_CONFIG = Path("config/pagemint.yaml")

app = App(name="pagemint", help="Render paginated documents to PDF.")


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def _select_documents(config: PipelineConfig, document: str | None) -> list[DocumentConfig]:
    if document:
        return [config.get_document(document)]
    targets = list(config.documents.values())
    if not targets:
        msg = "No documents defined in configuration."
        raise ValueError(msg)
    return targets


def _apply_overrides(
    config: PipelineConfig,
    *,
    conversion_url: str | None,
    backend: str | None,
) -> None:
    if conversion_url:
        config.conversion.url = conversion_url
    if backend:
        config.conversion.backend = backend
    if config.conversion.backend == "remote" and not config.conversion.url:
        msg = "The remote backend requires --conversion-url or PAGEMINT_CONVERSION_URL."
        raise ValueError(msg)


async def _render_all(
    config: PipelineConfig, targets: list[DocumentConfig], *, preview: bool
) -> list[RenderResult]:
    async with DocumentPipeline.from_config(config) as pipeline:
        return await pipeline.render_many([target.spec for target in targets], preview=preview)


def _write_results(
    targets: list[DocumentConfig],
    results: list[RenderResult],
    *,
    preview: bool,
    output_dir: Path | None,
) -> int:
    failures = 0
    for target, result in zip(targets, results, strict=True):
        for warning in result.warnings:
            print(f"warning {target.key}: {warning}")
        if result.error is not None:
            failures += 1
            print(f"failed {target.key}: {result.error}")
            continue
        path = target.output
        if output_dir is not None:
            path = output_dir / path.name
        path.parent.mkdir(parents=True, exist_ok=True)
        if preview:
            path = path.with_suffix(".html")
            path.write_text(result.html or "", encoding="utf-8")
        else:
            path.write_bytes(result.pdf_bytes or b"")
        print(f"wrote {_format_path(path)} ({result.page_count} pages)")
    return failures


def _run(
    *,
    document: str | None,
    config: Path,
    conversion_url: str | None,
    backend: str | None,
    output_dir: Path | None,
    verbose: bool,
    preview: bool,
) -> None:
    _configure_logging(verbose)
    pipeline_config = load_pipeline_config(config)
    _apply_overrides(pipeline_config, conversion_url=conversion_url, backend=backend)
    targets = _select_documents(pipeline_config, document)
    results = asyncio.run(_render_all(pipeline_config, targets, preview=preview))
    failures = _write_results(targets, results, preview=preview, output_dir=output_dir)
    if failures:
        raise SystemExit(1)


@app.command(help="Render configured documents to PDF.")
def render(
    *,
    document: typ.Annotated[
        str | None, Parameter(help="Document key; renders every document when omitted")
    ] = None,
    config: typ.Annotated[
        Path, Parameter(help="Path to pipeline config", env_var="PAGEMINT_CONFIG")
    ] = DEFAULT_CONFIG,
    conversion_url: typ.Annotated[
        str | None,
        Parameter(help="Remote conversion service URL", env_var="PAGEMINT_CONVERSION_URL"),
    ] = None,
    backend: typ.Annotated[
        str | None, Parameter(help="Conversion backend: local or remote")
    ] = None,
    output_dir: typ.Annotated[
        Path | None, Parameter(help="Override the output folder")
    ] = None,
    verbose: typ.Annotated[bool, Parameter(help="Enable debug logging")] = False,
) -> None:
    """Render documents to PDF files.

    Parameters
    ----------
    document : str or None, optional
        Document key to render; when ``None`` (default) every document is
        rendered concurrently.
    config : Path, optional
        Path to the ``pagemint.yaml`` configuration (overridable via
        ``PAGEMINT_CONFIG``).
    conversion_url : str or None, optional
        Remote conversion service URL (overridable via
        ``PAGEMINT_CONVERSION_URL``).
    backend : str or None, optional
        Conversion backend overriding the configured one.
    output_dir : Path or None, optional
        Directory that receives the rendered files.
    verbose : bool, optional
        Log pipeline progress to stderr.

    Raises
    ------
    SystemExit
        With status 1 when at least one document failed to render.
    """
    _run(
        document=document,
        config=config,
        conversion_url=conversion_url,
        backend=backend,
        output_dir=output_dir,
        verbose=verbose,
        preview=False,
    )


@app.command(help="Write paginated HTML previews instead of PDFs.")
def preview(
    *,
    document: typ.Annotated[
        str | None, Parameter(help="Document key; previews every document when omitted")
    ] = None,
    config: typ.Annotated[
        Path, Parameter(help="Path to pipeline config", env_var="PAGEMINT_CONFIG")
    ] = DEFAULT_CONFIG,
    output_dir: typ.Annotated[
        Path | None, Parameter(help="Override the output folder")
    ] = None,
    verbose: typ.Annotated[bool, Parameter(help="Enable debug logging")] = False,
) -> None:
    """Write the paginated HTML of each document next to its PDF path."""
    _run(
        document=document,
        config=config,
        conversion_url=None,
        backend=None,
        output_dir=output_dir,
        verbose=verbose,
        preview=True,
    )


def main() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
