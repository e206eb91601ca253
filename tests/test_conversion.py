"""Tests for the conversion backends and dispatcher.

The remote backend is exercised against ``ScriptedSession``, a
``requests.Session`` whose ``post`` replays a scripted list of responses and
exceptions, so retry counts are asserted from the number of requests made.
"""

from __future__ import annotations

import asyncio
import typing as typ

import pytest
import requests

from pagemint.conversion import (
    CONVERT_PATH,
    ConversionDispatcher,
    LocalPrintBackend,
    RemoteConversionBackend,
    conversion_form,
)
from pagemint.errors import ConversionRejected, ConversionUnavailable
from pagemint.geometry import resolve_page_geometry
from pagemint.pagination.orchestrator import PaginatedDocument

if typ.TYPE_CHECKING:
    from conftest import FakeEngine

LETTER = resolve_page_geometry("Letter")
DOCUMENT = PaginatedDocument(final_html="<html><body>Hi</body></html>", page_count=1)


def _response(status: int, body: bytes = b"") -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = body
    response.encoding = "utf-8"
    return response


class ScriptedSession(requests.Session):
    """Session replaying scripted outcomes for each ``post`` call."""

    def __init__(self, outcomes: list[requests.Response | Exception]) -> None:
        super().__init__()
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, dict[str, typ.Any]]] = []
        self.closed = False

    def post(self, url: str, **kwargs: typ.Any) -> requests.Response:  # type: ignore[override]
        self.calls.append((url, kwargs))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True
        super().close()


def _backend(session: ScriptedSession, *, retries: int = 3) -> RemoteConversionBackend:
    return RemoteConversionBackend(
        "http://convert.test/",
        retries=retries,
        backoff_factor=0.0,
        session_factory=lambda: session,
    )


def test_conversion_form_describes_geometry() -> None:
    assert conversion_form(LETTER) == {
        "paperWidth": "8.5",
        "paperHeight": "11",
        "marginTop": "0",
        "marginBottom": "0",
        "marginLeft": "0",
        "marginRight": "0",
        "preferCssPageSize": "true",
        "printBackground": "true",
    }
    assert conversion_form(resolve_page_geometry("A4"))["paperWidth"] == "8.2678"


def test_remote_backend_posts_multipart_request() -> None:
    session = ScriptedSession([_response(200, b"%PDF-1.7 remote")])
    backend = _backend(session)
    pdf = asyncio.run(backend.convert(DOCUMENT, LETTER))
    assert pdf == b"%PDF-1.7 remote"
    ((url, kwargs),) = session.calls
    assert url == f"http://convert.test{CONVERT_PATH}"
    name, payload, content_type = kwargs["files"]["files"]
    assert (name, content_type) == ("index.html", "text/html")
    assert payload == DOCUMENT.final_html.encode("utf-8")
    assert kwargs["data"]["paperHeight"] == "11"
    assert kwargs["timeout"] == 60.0
    assert session.closed


@pytest.mark.parametrize("retries", [0, 1, 3])
def test_connection_failure_retries_exactly_the_configured_count(retries: int) -> None:
    session = ScriptedSession([requests.ConnectionError("refused")])
    with pytest.raises(ConversionUnavailable) as excinfo:
        asyncio.run(_backend(session, retries=retries).convert(DOCUMENT, LETTER))
    assert len(session.calls) == retries + 1
    assert excinfo.value.attempts == retries + 1
    assert "ConnectionError" in excinfo.value.reason
    assert session.closed


def test_gateway_errors_are_retried_until_success() -> None:
    session = ScriptedSession(
        [_response(503), requests.Timeout("slow"), _response(200, b"%PDF-ok")]
    )
    assert asyncio.run(_backend(session).convert(DOCUMENT, LETTER)) == b"%PDF-ok"
    assert len(session.calls) == 3


def test_rejection_is_never_retried_and_keeps_diagnostic() -> None:
    diagnostic = '{"error": "invalid HTML: unexpected </div>"}'
    session = ScriptedSession([_response(400, diagnostic.encode("utf-8"))])
    with pytest.raises(ConversionRejected) as excinfo:
        asyncio.run(_backend(session).convert(DOCUMENT, LETTER))
    assert len(session.calls) == 1
    assert excinfo.value.status_code == 400
    assert excinfo.value.diagnostic == diagnostic
    assert session.closed


def test_backoff_doubles_per_retry() -> None:
    backend = RemoteConversionBackend("http://convert.test", backoff_factor=0.5)
    assert [backend.backoff(n) for n in (1, 2, 3)] == [0.5, 1.0, 2.0]


def test_negative_retries_are_rejected() -> None:
    with pytest.raises(ValueError, match="negative"):
        RemoteConversionBackend("http://convert.test", retries=-1)


def test_local_backend_prints_with_engine(fake_engine: FakeEngine) -> None:
    pdf = asyncio.run(LocalPrintBackend(fake_engine).convert(DOCUMENT, LETTER))
    assert pdf.startswith(b"%PDF")
    assert fake_engine.pages[0].html == DOCUMENT.final_html
    assert fake_engine.printed == [LETTER]
    assert fake_engine.active_pages == 0


def test_local_backend_failure_is_unavailable(engine_factory: type[FakeEngine]) -> None:
    engine = engine_factory(fail_at={"pdf"})
    with pytest.raises(ConversionUnavailable) as excinfo:
        asyncio.run(LocalPrintBackend(engine).convert(DOCUMENT, LETTER))
    assert excinfo.value.endpoint == "local"
    assert engine.active_pages == 0


class _StubBackend:
    def __init__(self, name: str, outcome: bytes | Exception) -> None:
        self.name = name
        self.outcome = outcome
        self.calls = 0

    async def convert(self, document: PaginatedDocument, geometry: object) -> bytes:
        self.calls += 1
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def test_dispatcher_uses_default_backend() -> None:
    local = _StubBackend("local", b"local-pdf")
    remote = _StubBackend("remote", b"remote-pdf")
    dispatcher = ConversionDispatcher([local, remote], default="remote")
    assert asyncio.run(dispatcher.dispatch(DOCUMENT, LETTER)) == b"remote-pdf"
    assert asyncio.run(dispatcher.dispatch(DOCUMENT, LETTER, backend="local")) == b"local-pdf"


def test_dispatcher_falls_back_when_unavailable() -> None:
    remote = _StubBackend("remote", ConversionUnavailable("http://convert.test", 4, "refused"))
    local = _StubBackend("local", b"local-pdf")
    dispatcher = ConversionDispatcher([remote, local], fallback="local")
    assert asyncio.run(dispatcher.dispatch(DOCUMENT, LETTER)) == b"local-pdf"
    assert (remote.calls, local.calls) == (1, 1)


def test_dispatcher_never_reroutes_rejections() -> None:
    remote = _StubBackend("remote", ConversionRejected(422, "bad"))
    local = _StubBackend("local", b"local-pdf")
    dispatcher = ConversionDispatcher([remote, local], fallback="local")
    with pytest.raises(ConversionRejected):
        asyncio.run(dispatcher.dispatch(DOCUMENT, LETTER))
    assert local.calls == 0


def test_dispatcher_rejects_unknown_backends() -> None:
    local = _StubBackend("local", b"pdf")
    with pytest.raises(ValueError, match="Unknown conversion backend 'remote'"):
        ConversionDispatcher([local], default="remote")
    dispatcher = ConversionDispatcher([local])
    with pytest.raises(ValueError, match="'cloud'"):
        asyncio.run(dispatcher.dispatch(DOCUMENT, LETTER, backend="cloud"))
