"""Load and validate pagemint pipeline configuration YAML.

This subpackage parses a ``pagemint.yaml`` file, merges document defaults
with per-document overrides, builds component trees from nested mappings,
and produces typed dataclasses (:class:`PipelineConfig`,
:class:`DocumentConfig`, ...) that the pipeline and CLI consume.

Examples
--------
>>> from pathlib import Path
>>> from pagemint.config import load_pipeline_config
>>> config = load_pipeline_config(Path("config/pagemint.yaml"))  # doctest: +SKIP
>>> config.get_document("invoice").spec.page_size  # doctest: +SKIP
'Letter'
"""

from .loader import load_pipeline_config
from .models import (
    ConfigError,
    ConversionConfig,
    DocumentConfig,
    PaginationConfig,
    PipelineConfig,
    StyleConfig,
)

__all__ = [
    "ConfigError",
    "ConversionConfig",
    "DocumentConfig",
    "PaginationConfig",
    "PipelineConfig",
    "StyleConfig",
    "load_pipeline_config",
]
