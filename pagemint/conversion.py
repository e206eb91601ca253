"""Turn paginated documents into PDF bytes.

Two interchangeable backends implement :class:`ConversionBackend`:

* :class:`LocalPrintBackend` prints through the same rendering engine used
  for pagination. It is the fast path for local previews.
* :class:`RemoteConversionBackend` posts a multipart document-conversion
  request (``index.html`` plus paper geometry) to an HTTP conversion
  service. Connection failures, timeouts and gateway errors are retried with
  exponential backoff and then surface as
  :class:`~pagemint.errors.ConversionUnavailable`; any other refusal is
  never retried and surfaces as :class:`~pagemint.errors.ConversionRejected`
  carrying the service's response body verbatim.

:class:`ConversionDispatcher` picks a backend by name and can fall back to a
second backend when the first one is unavailable.
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import logging
import typing as typ

import requests
from requests.adapters import HTTPAdapter

from pagemint.errors import ConversionRejected, ConversionUnavailable, EngineError

if typ.TYPE_CHECKING:
    from pagemint.geometry import PageGeometry
    from pagemint.pagination.engine import RenderingEngine
    from pagemint.pagination.orchestrator import PaginatedDocument

logger = logging.getLogger(__name__)

CONVERT_PATH = "/forms/chromium/convert/html"
RETRYABLE_STATUS = frozenset({429, 502, 503, 504})
DEFAULT_RETRIES = 3
DEFAULT_BACKOFF = 0.5
DEFAULT_REQUEST_TIMEOUT = 60.0


class ConversionBackend(typ.Protocol):
    """Capability: HTML plus page geometry in, PDF bytes out."""

    name: str

    async def convert(self, document: PaginatedDocument, geometry: PageGeometry) -> bytes: ...


class LocalPrintBackend:
    """Print the paginated markup with the in-process rendering engine."""

    name = "local"

    def __init__(self, engine: RenderingEngine) -> None:
        self.engine = engine

    async def convert(self, document: PaginatedDocument, geometry: PageGeometry) -> bytes:
        try:
            async with self.engine.page() as page:
                await page.set_content(document.final_html)
                return await page.pdf(geometry)
        except EngineError as exc:
            raise ConversionUnavailable(self.name, 1, str(exc)) from exc


def conversion_form(geometry: PageGeometry) -> dict[str, str]:
    """Return the multipart form fields describing ``geometry``.

    Examples
    --------
    >>> from pagemint.geometry import resolve_page_geometry
    >>> conversion_form(resolve_page_geometry("Letter"))["paperWidth"]
    '8.5'
    """
    return {
        "paperWidth": _inches(geometry.width_in),
        "paperHeight": _inches(geometry.height_in),
        "marginTop": "0",
        "marginBottom": "0",
        "marginLeft": "0",
        "marginRight": "0",
        "preferCssPageSize": "true",
        "printBackground": "true",
    }


class RemoteConversionBackend:
    """Submit documents to an HTTP document-conversion service."""

    name = "remote"

    def __init__(
        self,
        base_url: str,
        *,
        retries: int = DEFAULT_RETRIES,
        backoff_factor: float = DEFAULT_BACKOFF,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session_factory: cabc.Callable[[], requests.Session] = requests.Session,
    ) -> None:
        """Configure the backend.

        Parameters
        ----------
        base_url : str
            Root URL of the conversion service.
        retries : int
            Retries after the first attempt for retryable failures.
        backoff_factor : float
            Delay before retry ``n`` is ``backoff_factor * 2 ** (n - 1)``
            seconds.
        timeout : float
            Per-request timeout in seconds.
        session_factory : callable
            Builds the HTTP session used for one conversion.
        """
        if retries < 0:
            msg = "retries must not be negative"
            raise ValueError(msg)
        self.base_url = base_url.rstrip("/")
        self.retries = retries
        self.backoff_factor = backoff_factor
        self.timeout = timeout
        self.session_factory = session_factory

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{CONVERT_PATH}"

    def backoff(self, retry: int) -> float:
        """Return the delay in seconds before retry number ``retry``."""
        return self.backoff_factor * 2 ** (retry - 1)

    async def convert(self, document: PaginatedDocument, geometry: PageGeometry) -> bytes:
        """Post ``document`` and return the PDF the service produces.

        Raises
        ------
        ConversionRejected
            The service refused the document; never retried.
        ConversionUnavailable
            The service stayed unreachable after every retry.
        """
        session = self._build_session()
        attempts = 0
        try:
            while True:
                attempts += 1
                try:
                    response = await asyncio.to_thread(self._post, session, document, geometry)
                except (requests.ConnectionError, requests.Timeout) as exc:
                    reason = f"{type(exc).__name__}: {exc}"
                else:
                    if response.ok:
                        return response.content
                    if response.status_code not in RETRYABLE_STATUS:
                        logger.error(
                            "Conversion rejected by %s (%s)", self.endpoint, response.status_code
                        )
                        raise ConversionRejected(response.status_code, response.text)
                    reason = f"HTTP {response.status_code}"
                if attempts > self.retries:
                    raise ConversionUnavailable(self.endpoint, attempts, reason)
                delay = self.backoff(attempts)
                logger.warning(
                    "Conversion attempt %d to %s failed (%s); retrying in %.2fs",
                    attempts,
                    self.endpoint,
                    reason,
                    delay,
                )
                await asyncio.sleep(delay)
        finally:
            session.close()

    def _build_session(self) -> requests.Session:
        session = self.session_factory()
        adapter = HTTPAdapter(max_retries=0)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def _post(
        self,
        session: requests.Session,
        document: PaginatedDocument,
        geometry: PageGeometry,
    ) -> requests.Response:
        files = {"files": ("index.html", document.final_html.encode("utf-8"), "text/html")}
        return session.post(
            self.endpoint,
            files=files,
            data=conversion_form(geometry),
            timeout=self.timeout,
        )


class ConversionDispatcher:
    """Route conversions to a named backend with optional fallback."""

    def __init__(
        self,
        backends: cabc.Iterable[ConversionBackend],
        *,
        default: str | None = None,
        fallback: str | None = None,
    ) -> None:
        self.backends = {backend.name: backend for backend in backends}
        if not self.backends:
            msg = "At least one conversion backend is required."
            raise ValueError(msg)
        self.default = default or next(iter(self.backends))
        self.fallback = fallback
        for name in (self.default, self.fallback):
            if name is not None and name not in self.backends:
                msg = f"Unknown conversion backend '{name}'."
                raise ValueError(msg)

    async def dispatch(
        self,
        document: PaginatedDocument,
        geometry: PageGeometry,
        *,
        backend: str | None = None,
    ) -> bytes:
        """Convert ``document`` with ``backend`` (or the default one).

        A :class:`ConversionUnavailable` from the chosen backend is retried
        once on the fallback backend when one is configured. Rejections are
        never re-routed.
        """
        name = backend or self.default
        try:
            selected = self.backends[name]
        except KeyError:
            msg = f"Unknown conversion backend '{name}'."
            raise ValueError(msg) from None
        try:
            return await selected.convert(document, geometry)
        except ConversionUnavailable:
            if self.fallback is None or self.fallback == name:
                raise
            logger.warning("Backend '%s' unavailable; falling back to '%s'", name, self.fallback)
            return await self.backends[self.fallback].convert(document, geometry)


def _inches(value: float) -> str:
    return f"{value:.4f}".rstrip("0").rstrip(".")


__all__ = [
    "CONVERT_PATH",
    "RETRYABLE_STATUS",
    "ConversionBackend",
    "ConversionDispatcher",
    "LocalPrintBackend",
    "RemoteConversionBackend",
    "conversion_form",
]
