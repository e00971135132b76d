from __future__ import annotations

import asyncio
from typing import Callable, List

import httpx

from squatprobe.engine.http_probe import SCHEME_STRATEGY, fetch_http, strategies
from squatprobe.models import MAX_REDIRECTS, Config


def _probe(handler: Callable[[httpx.Request], httpx.Response], cfg: Config, https: bool = True):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_http("example.test", client, cfg, https=https)

    return asyncio.run(run())


def _recording(handler: Callable[[httpx.Request], httpx.Response], seen: List[str]):
    def wrapped(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return handler(request)

    return wrapped


def test_strategy_table_is_https_then_http():
    assert SCHEME_STRATEGY == (("https", True), ("http", False))
    assert strategies(https=False) == (("http", False),)


def test_head_request_records_status_and_headers():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "HEAD"
        assert request.headers["User-Agent"] == "probe-test/1.0"
        return httpx.Response(200, headers={"Server": "nginx"})

    result = _probe(handler, Config(user_agent="probe-test/1.0", do_http=True))
    assert result.attempted is True
    assert result.url == "https://example.test/"
    assert result.status == "200 OK"
    assert result.status_code == 200
    assert result.server == "nginx"
    assert result.location == ""
    assert result.redirect_chain == ()


def test_https_transport_failure_falls_back_to_http_once():
    seen: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.scheme == "https":
            raise httpx.ConnectError("tls handshake failed", request=request)
        return httpx.Response(200, headers={"Server": "plain"})

    result = _probe(_recording(handler, seen), Config(do_http=True))
    assert seen == ["https://example.test/", "http://example.test/"]
    assert result.url == "http://example.test/"
    assert result.status_code == 200
    assert result.server == "plain"


def test_both_schemes_failing_returns_attempted_empty_result():
    seen: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    result = _probe(_recording(handler, seen), Config(do_http=True))
    assert len(seen) == 2
    assert result.attempted is True
    assert result.url == "http://example.test/"
    assert result.status == ""
    assert result.status_code == 0
    assert result.redirect_chain == ()


def test_http_only_preference_skips_https():
    seen: List[str] = []
    result = _probe(_recording(lambda request: httpx.Response(204), seen), Config(do_http=True), https=False)
    assert seen == ["http://example.test/"]
    assert result.status_code == 204


def test_redirect_not_followed_records_first_hop_only():
    seen: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(301, headers={"Location": "https://brand.example/login"})

    result = _probe(_recording(handler, seen), Config(do_http=True, follow_redirects=False))
    assert len(seen) == 1
    assert result.status == "301 Moved Permanently"
    assert result.location == "https://brand.example/login"
    assert result.redirect_chain == ()


def test_redirects_followed_and_chain_recorded():
    def handler(request: httpx.Request) -> httpx.Response:
        hops = {"/": "/a", "/a": "/b", "/b": "https://final.example/"}
        if request.url.host == "final.example":
            return httpx.Response(200, headers={"Server": "landing"})
        return httpx.Response(302, headers={"Location": hops[request.url.path]})

    result = _probe(handler, Config(do_http=True, follow_redirects=True))
    assert result.redirect_chain == (
        "https://example.test/a",
        "https://example.test/b",
        "https://final.example/",
    )
    assert result.status_code == 200
    assert result.server == "landing"
    assert result.url == "https://example.test/"


def test_redirect_chain_is_bounded():
    seen: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": f"/hop{len(seen)}"})

    result = _probe(_recording(handler, seen), Config(do_http=True, follow_redirects=True))
    assert len(result.redirect_chain) == MAX_REDIRECTS
    assert len(seen) == MAX_REDIRECTS + 1
    assert result.status_code == 302
    assert all(url.startswith("https://") for url in seen)


def test_fallback_attempt_starts_with_fresh_chain():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.scheme == "https":
            if request.url.path == "/":
                return httpx.Response(302, headers={"Location": "/broken"})
            raise httpx.ReadError("connection reset", request=request)
        return httpx.Response(200)

    result = _probe(handler, Config(do_http=True, follow_redirects=True))
    assert result.url == "http://example.test/"
    assert result.status_code == 200
    assert result.redirect_chain == ()
