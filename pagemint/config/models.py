"""Typed dataclasses describing pagemint pipeline configuration."""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path

from pagemint._constants import PAGED_JS_CDN
from pagemint.models import DocumentSpec  # noqa: TC001 - used for runtime type metadata


class ConfigError(ValueError):
    """Raised when the pipeline configuration is invalid or incomplete."""


@dc.dataclass(slots=True)
class StyleConfig:
    """Utility compiler and style cache settings."""

    compiler: str = "tailwindcss"
    minify: bool = False
    compile_timeout: float = 60.0
    cache_capacity: int = 128


@dc.dataclass(slots=True)
class PaginationConfig:
    """Rendering engine and pagination polyfill settings."""

    timeout: float = 30.0
    state_timeouts: dict[str, float] = dc.field(default_factory=dict)
    polyfill_url: str = PAGED_JS_CDN
    polyfill_path: Path | None = None
    max_pages: int = 5
    headless: bool = True


@dc.dataclass(slots=True)
class ConversionConfig:
    """Conversion backend selection and remote retry policy."""

    backend: str = "local"
    url: str | None = None
    retries: int = 3
    backoff_factor: float = 0.5
    timeout: float = 60.0
    fallback: str | None = None


@dc.dataclass(slots=True)
class DocumentConfig:
    """A named document and where its rendered output is written."""

    key: str
    spec: DocumentSpec
    output: Path


@dc.dataclass(slots=True)
class PipelineConfig:
    """Top-level configuration consumed by the CLI and the pipeline."""

    styles: StyleConfig = dc.field(default_factory=StyleConfig)
    pagination: PaginationConfig = dc.field(default_factory=PaginationConfig)
    conversion: ConversionConfig = dc.field(default_factory=ConversionConfig)
    output_dir: Path = Path("out")
    documents: dict[str, DocumentConfig] = dc.field(default_factory=dict)

    def get_document(self, key: str) -> DocumentConfig:
        """Return the document configured under ``key``.

        Raises
        ------
        ConfigError
            If no document with that key exists.
        """
        try:
            return self.documents[key]
        except KeyError:
            available = ", ".join(sorted(self.documents)) or "none"
            msg = f"Unknown document '{key}'. Available: {available}."
            raise ConfigError(msg) from None


__all__ = [
    "ConfigError",
    "ConversionConfig",
    "DocumentConfig",
    "PaginationConfig",
    "PipelineConfig",
    "StyleConfig",
]
