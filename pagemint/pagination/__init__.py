"""Pagination of assembled documents inside a headless rendering engine."""

from .engine import EnginePage, PlaywrightEngine, RenderingEngine
from .orchestrator import PaginatedDocument, PaginationOrchestrator, PaginationState

__all__ = [
    "EnginePage",
    "PaginatedDocument",
    "PaginationOrchestrator",
    "PaginationState",
    "PlaywrightEngine",
    "RenderingEngine",
]
