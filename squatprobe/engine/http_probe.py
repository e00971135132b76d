from __future__ import annotations

"""HTTP stage: HEAD probe with HTTPS->HTTP fallback and bounded redirects.

Schemes are tried in `SCHEME_STRATEGY` order. A transport failure on a row
that allows fall-through moves on to the next row with a brand new request.
Every attempt keeps its own redirect chain, so nothing observed during a
failed HTTPS attempt leaks into the HTTP result.
"""

import asyncio
import logging
from typing import List, Optional, Tuple

import httpx

from ..errors import HTTPTransportFailure, RedirectLimitExceeded
from ..models import MAX_REDIRECTS, Config, HTTPResult

logger = logging.getLogger("squatprobe")

# (scheme, try the next row after a transport failure)
SCHEME_STRATEGY: Tuple[Tuple[str, bool], ...] = (
    ("https", True),
    ("http", False),
)


def target_url(scheme: str, host: str) -> str:
    return f"{scheme}://{host}/"


def strategies(https: bool = True) -> Tuple[Tuple[str, bool], ...]:
    if https:
        return SCHEME_STRATEGY
    return tuple(row for row in SCHEME_STRATEGY if row[0] == "http")


def _from_response(url: str, response: httpx.Response, chain: List[str]) -> HTTPResult:
    return HTTPResult(
        attempted=True,
        url=url,
        status=f"{response.status_code} {response.reason_phrase}".strip(),
        status_code=response.status_code,
        location=response.headers.get("Location", ""),
        server=response.headers.get("Server", ""),
        redirect_chain=tuple(chain),
    )


async def _send(client: httpx.AsyncClient, request: httpx.Request, deadline: float) -> httpx.Response:
    remaining = deadline - asyncio.get_running_loop().time()
    if remaining <= 0:
        raise HTTPTransportFailure(f"{request.url}: deadline exceeded")
    request.extensions["timeout"] = httpx.Timeout(remaining).as_dict()
    try:
        return await asyncio.wait_for(client.send(request, follow_redirects=False), timeout=remaining)
    except asyncio.TimeoutError as exc:
        raise HTTPTransportFailure(f"{request.url}: timed out") from exc
    except httpx.TransportError as exc:
        message = str(exc).strip()
        err = f"{exc.__class__.__name__}: {message}" if message else exc.__class__.__name__
        raise HTTPTransportFailure(f"{request.url}: {err}") from exc


async def _attempt(client: httpx.AsyncClient, scheme: str, host: str, cfg: Config, deadline: float) -> HTTPResult:
    url = target_url(scheme, host)
    chain: List[str] = []
    request = client.build_request("HEAD", url, headers={"User-Agent": cfg.user_agent})
    response = await _send(client, request, deadline)

    try:
        while cfg.follow_redirects and response.next_request is not None:
            if len(chain) >= MAX_REDIRECTS:
                raise RedirectLimitExceeded(MAX_REDIRECTS)
            request = response.next_request
            chain.append(str(request.url))
            response = await _send(client, request, deadline)
    except RedirectLimitExceeded as exc:
        logger.debug("HTTP probe %s: %s", url, exc)

    return _from_response(url, response, chain)


async def fetch_http(
    host: str,
    client: httpx.AsyncClient,
    cfg: Config,
    https: bool = True,
    deadline: Optional[float] = None,
) -> HTTPResult:
    """HEAD `host` and return status, Location, Server and redirect chain.

    The whole probe, fallback included, shares one `cfg.http_timeout` budget
    unless an absolute loop-time `deadline` is given. When every scheme fails
    the result is attempted but empty, with `url` naming the last target.
    """
    if deadline is None:
        deadline = asyncio.get_running_loop().time() + cfg.http_timeout

    rows = strategies(https)
    result = HTTPResult(attempted=True, url=target_url(rows[0][0], host))
    for scheme, fall_through in rows:
        try:
            return await _attempt(client, scheme, host, cfg, deadline)
        except HTTPTransportFailure as exc:
            logger.debug("HTTP probe failed: %s", exc)
            result = HTTPResult(attempted=True, url=target_url(scheme, host))
            if not fall_through:
                break
    return result
