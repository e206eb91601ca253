"""Load pipeline configuration YAML into typed dataclasses."""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from pagemint.models import DocumentSpec, StylingMode
from pagemint.tree import Element, Node, node_from_mapping

from .helpers import (
    _build_debug,
    _build_fonts,
    _build_margin,
    _build_watermark,
    _non_negative_int,
    _normalize_keywords,
    _optional_str,
    _page_size,
    _positive_number,
    _styling_mode,
)
from .models import (
    ConfigError,
    ConversionConfig,
    DocumentConfig,
    PaginationConfig,
    PipelineConfig,
    StyleConfig,
)

CONVERSION_BACKENDS = frozenset({"local", "remote"})
PAGINATION_STATES = frozenset({"loaded", "scripts_attached", "pagination_running", "resolved"})


def load_pipeline_config(path: Path) -> PipelineConfig:
    """Load the YAML configuration describing documents and pipeline settings.

    Parameters
    ----------
    path : Path
        Filesystem path to the YAML configuration file (for example,
        ``config/pagemint.yaml``). Relative stylesheet, font, and client
        module paths inside it resolve against the file's directory.

    Returns
    -------
    PipelineConfig
        Parsed configuration including every named document.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    ConfigError
        If a section or field is missing or invalid.
    YAMLError
        If the YAML content cannot be parsed by the underlying loader.

    Examples
    --------
    >>> from pathlib import Path
    >>> config = load_pipeline_config(Path("config/pagemint.yaml"))  # doctest: +SKIP
    >>> sorted(config.documents)[:1]  # doctest: +SKIP
    ['invoice']
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise ConfigError(msg)
    raw: dict[str, typ.Any] = dict(loaded)
    base_dir = path.resolve().parent

    defaults = _DocumentDefaults.from_mapping(raw.get("defaults") or {})
    output_dir = Path(raw.get("output_dir") or (raw.get("defaults") or {}).get("output_dir", "out"))
    if not output_dir.is_absolute():
        output_dir = base_dir / output_dir

    documents: dict[str, DocumentConfig] = {}
    for key, payload in (raw.get("documents") or {}).items():
        match payload:
            case dict():
                documents[key] = _build_document_config(
                    key=str(key),
                    payload=payload,
                    defaults=defaults,
                    base_dir=base_dir,
                    output_dir=output_dir,
                )
            case _:
                msg = f"Document '{key}' must be a mapping."
                raise ConfigError(msg)

    return PipelineConfig(
        styles=_build_style_config(raw.get("styles") or {}),
        pagination=_build_pagination_config(raw.get("pagination") or {}, base_dir=base_dir),
        conversion=_build_conversion_config(raw.get("conversion") or {}),
        output_dir=output_dir,
        documents=documents,
    )


@dc.dataclass(slots=True)
class _DocumentDefaults:
    """Internal container for document default values."""

    page_size: object = "A4"
    orientation: str = "portrait"
    styling: StylingMode = StylingMode.INLINE
    margin: object = None
    language: str = "en"
    author: str | None = None
    fonts: object = None
    watermark: object = None

    @classmethod
    def from_mapping(cls, payload: typ.Mapping[str, typ.Any]) -> _DocumentDefaults:
        base = cls()
        return cls(
            page_size=payload.get("page_size", base.page_size),
            orientation=str(payload.get("orientation", base.orientation)),
            styling=_styling_mode(payload.get("styling", base.styling.value), key="defaults"),
            margin=payload.get("margin", base.margin),
            language=str(payload.get("language", base.language)),
            author=_optional_str(payload.get("author")),
            fonts=payload.get("fonts"),
            watermark=payload.get("watermark"),
        )


def _build_document_config(
    *,
    key: str,
    payload: typ.Mapping[str, typ.Any],
    defaults: _DocumentDefaults,
    base_dir: Path,
    output_dir: Path,
) -> DocumentConfig:
    """Build a DocumentConfig for a single document using defaults and overrides."""
    if "body" not in payload:
        msg = f"Document '{key}' is missing 'body'."
        raise ConfigError(msg)
    try:
        tree = _build_tree(payload["body"], base_dir=base_dir)
        header = _build_optional_tree(payload.get("header"), base_dir=base_dir)
        footer = _build_optional_tree(payload.get("footer"), base_dir=base_dir)
    except ValueError as exc:
        msg = f"Document '{key}': {exc}"
        raise ConfigError(msg) from exc

    orientation = str(payload.get("orientation", defaults.orientation)).lower()
    if orientation not in {"portrait", "landscape"}:
        msg = f"Document '{key}' has invalid orientation '{orientation}'."
        raise ConfigError(msg)

    spec = DocumentSpec(
        tree=tree,
        title=str(payload.get("title") or key.replace("-", " ").title()),
        page_size=_page_size(payload.get("page_size", defaults.page_size)),
        orientation=orientation,
        styling_mode=(
            _styling_mode(payload["styling"], key=key)
            if "styling" in payload
            else defaults.styling
        ),
        margin=_build_margin(payload.get("margin", defaults.margin)),
        watermark=_build_watermark(payload.get("watermark", defaults.watermark)),
        header=header,
        footer=footer,
        css=_optional_str(payload.get("css")),
        stylesheet=_optional_str(payload.get("stylesheet")),
        theme_css=_optional_str(payload.get("theme_css")),
        fonts=_build_fonts(payload.get("fonts", defaults.fonts)),
        language=str(payload.get("language", defaults.language)),
        author=_optional_str(payload.get("author")) or defaults.author,
        subject=_optional_str(payload.get("subject")),
        keywords=_normalize_keywords(payload.get("keywords")),
        base_dir=base_dir,
        debug=_build_debug(payload.get("debug")),
    )
    output = Path(payload.get("output") or f"{key}.pdf")
    if not output.is_absolute():
        output = output_dir / output
    return DocumentConfig(key=key, spec=spec, output=output)


def _build_tree(payload: object, *, base_dir: Path) -> Node:
    """Build the body tree; a list of nodes becomes a wrapping ``div``."""
    if isinstance(payload, list):
        return Element("div", children=[node_from_mapping(item, base_dir=base_dir) for item in payload])
    return node_from_mapping(payload, base_dir=base_dir)


def _build_optional_tree(payload: object, *, base_dir: Path) -> Node | None:
    if payload is None:
        return None
    return _build_tree(payload, base_dir=base_dir)


def _build_style_config(payload: typ.Mapping[str, typ.Any]) -> StyleConfig:
    base = StyleConfig()
    capacity = _non_negative_int(
        payload.get("cache_capacity", base.cache_capacity), field="styles.cache_capacity"
    )
    if capacity < 1:
        msg = "'styles.cache_capacity' must be at least 1."
        raise ConfigError(msg)
    return StyleConfig(
        compiler=str(payload.get("compiler", base.compiler)),
        minify=bool(payload.get("minify", base.minify)),
        compile_timeout=_positive_number(
            payload.get("compile_timeout", base.compile_timeout), field="styles.compile_timeout"
        ),
        cache_capacity=capacity,
    )


def _build_pagination_config(
    payload: typ.Mapping[str, typ.Any], *, base_dir: Path
) -> PaginationConfig:
    base = PaginationConfig()
    state_timeouts: dict[str, float] = {}
    for state, value in (payload.get("state_timeouts") or {}).items():
        if state not in PAGINATION_STATES:
            allowed = ", ".join(sorted(PAGINATION_STATES))
            msg = f"Unknown pagination state '{state}'. Use one of: {allowed}."
            raise ConfigError(msg)
        state_timeouts[state] = _positive_number(value, field=f"pagination.state_timeouts.{state}")
    polyfill_path = _optional_str(payload.get("polyfill_path"))
    max_pages = _non_negative_int(payload.get("max_pages", base.max_pages), field="pagination.max_pages")
    if max_pages < 1:
        msg = "'pagination.max_pages' must be at least 1."
        raise ConfigError(msg)
    return PaginationConfig(
        timeout=_positive_number(payload.get("timeout", base.timeout), field="pagination.timeout"),
        state_timeouts=state_timeouts,
        polyfill_url=str(payload.get("polyfill_url", base.polyfill_url)),
        polyfill_path=base_dir / polyfill_path if polyfill_path else None,
        max_pages=max_pages,
        headless=bool(payload.get("headless", base.headless)),
    )


def _build_conversion_config(payload: typ.Mapping[str, typ.Any]) -> ConversionConfig:
    base = ConversionConfig()
    backend = str(payload.get("backend", base.backend)).lower()
    fallback = _optional_str(payload.get("fallback"))
    for name in filter(None, (backend, fallback)):
        if name not in CONVERSION_BACKENDS:
            msg = f"Unknown conversion backend '{name}'. Use 'local' or 'remote'."
            raise ConfigError(msg)
    url = _optional_str(payload.get("url"))
    if "remote" in (backend, fallback) and not url:
        msg = "The remote conversion backend requires 'conversion.url'."
        raise ConfigError(msg)
    return ConversionConfig(
        backend=backend,
        url=url,
        retries=_non_negative_int(payload.get("retries", base.retries), field="conversion.retries"),
        backoff_factor=float(payload.get("backoff_factor", base.backoff_factor)),
        timeout=_positive_number(payload.get("timeout", base.timeout), field="conversion.timeout"),
        fallback=fallback,
    )


__all__ = ["CONVERSION_BACKENDS", "PAGINATION_STATES", "load_pipeline_config"]
