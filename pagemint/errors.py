"""Error taxonomy shared by every stage of the rendering pipeline.

Document-fatal failures derive from :class:`DocumentRenderError` and abort a
single render request. :class:`ClientBundleError` is the one failure that is
recovered locally: the bundler records it, leaves an empty placeholder in the
document, and the pipeline surfaces it as a warning on the result.
"""

from __future__ import annotations


class PagemintError(RuntimeError):
    """Base class for every error raised by pagemint."""


class DocumentRenderError(PagemintError):
    """A failure that aborts the render of a single document."""


class StyleResolutionError(DocumentRenderError):
    """Raised when a stylesheet reference cannot be resolved or is invalid."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class ClientBundleError(PagemintError):
    """Raised when a client-only component cannot be resolved to a module.

    Instances are collected as warnings rather than propagated; the affected
    placeholder stays empty in the final document.
    """

    def __init__(self, component_id: str, source: str, reason: str) -> None:
        super().__init__(f"Client component {component_id} ({source}): {reason}")
        self.component_id = component_id
        self.source = source
        self.reason = reason


class EngineError(PagemintError):
    """Raised by a rendering engine page when a script or navigation fails."""


class PaginationError(DocumentRenderError):
    """Base class for failures inside the pagination orchestrator."""

    def __init__(self, message: str, *, state: str) -> None:
        super().__init__(message)
        self.state = state


class PaginationTimeout(PaginationError):
    """Raised when a pagination state exceeds its configured timeout.

    Retrying is left to the caller; the orchestrator never retries itself.
    """

    def __init__(self, state: str, timeout: float) -> None:
        super().__init__(
            f"Pagination state '{state}' exceeded {timeout:g}s timeout", state=state
        )
        self.timeout = timeout


class PaginationScriptError(PaginationError):
    """Raised when the rendering engine reports a script error."""

    def __init__(self, state: str, detail: str) -> None:
        super().__init__(f"Script error during '{state}': {detail}", state=state)
        self.detail = detail


class ConversionError(DocumentRenderError):
    """Base class for conversion backend failures."""


class ConversionUnavailable(ConversionError):
    """Raised when the conversion backend stays unreachable after retries."""

    def __init__(self, endpoint: str, attempts: int, reason: str) -> None:
        super().__init__(
            f"Conversion backend {endpoint} unavailable after {attempts} attempt(s): {reason}"
        )
        self.endpoint = endpoint
        self.attempts = attempts
        self.reason = reason


class ConversionRejected(ConversionError):
    """Raised when the conversion backend refuses the submitted document.

    ``diagnostic`` holds the backend's response body verbatim.
    """

    def __init__(self, status_code: int, diagnostic: str) -> None:
        super().__init__(f"Conversion backend rejected document ({status_code})")
        self.status_code = status_code
        self.diagnostic = diagnostic


__all__ = [
    "ClientBundleError",
    "ConversionError",
    "ConversionRejected",
    "ConversionUnavailable",
    "DocumentRenderError",
    "EngineError",
    "PagemintError",
    "PaginationError",
    "PaginationScriptError",
    "PaginationTimeout",
    "StyleResolutionError",
]
