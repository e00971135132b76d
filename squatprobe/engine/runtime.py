from __future__ import annotations

"""Runtime wiring for squatprobe.

This module owns the shared resources of a run (DNS backend, httpx client,
I/O thread pool) and hands them to the verifier and the worker pool:
- logging setup (`logger`, `configure_logging`)
- user-agent selection (`pick_user_agent`)
- async entry point (`verify_candidates`) and sync bridge (`_run_coro_sync`)
"""

import asyncio
import logging
import random
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from ..config import default_workers
from ..models import DEFAULT_USER_AGENT, Config, Verification
from .dns_lookup import DNSBackend, DnspythonBackend
from .pool import PoolStats, run_pool
from .verifier import DomainVerifier

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:124.0) Gecko/20100101 Firefox/124.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_4) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
]

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

logger = logging.getLogger("squatprobe")
logger.setLevel(logging.INFO)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s", "%H:%M:%S"))
    logger.addHandler(handler)


def configure_logging(level: Optional[str]) -> int:
    """Set the package log level from a name; unknown names mean info."""
    value = LOG_LEVELS.get(str(level or "").strip().lower(), logging.INFO)
    logger.setLevel(value)
    return value


def pick_user_agent(useragent: Optional[str]) -> str:
    if useragent and useragent != "random":
        return useragent
    if useragent == "random":
        return random.choice(USER_AGENTS)
    return DEFAULT_USER_AGENT


def build_http_client(cfg: Config, workers: int) -> httpx.AsyncClient:
    """Shared client for HEAD probes; redirects are followed by the probe itself."""
    return httpx.AsyncClient(
        http2=True,
        timeout=httpx.Timeout(cfg.http_timeout),
        limits=httpx.Limits(
            max_connections=max(100, workers * 2),
            max_keepalive_connections=max(50, workers),
        ),
        follow_redirects=False,
    )


async def verify_candidates(
    labels: Sequence[str],
    tlds: Sequence[str],
    cfg: Config,
    workers: Optional[int] = None,
    dns_servers: Optional[Sequence[str]] = None,
    backend: Optional[DNSBackend] = None,
    stop: Optional[asyncio.Event] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Tuple[List[Verification], PoolStats]:
    """Verify every `<label>.<tld>` and return the accepted results.

    Flow:
    1. apply config defaults and build the shared resources
    2. run the worker pool
    3. close the client and thread pool, log a summary
    """
    cfg = cfg.with_defaults()
    max_workers = workers or default_workers()
    backend = backend or DnspythonBackend(nameservers=dns_servers, timeout=cfg.dns_timeout)
    io_workers = max(16, min(512, max_workers * 2))

    logger.info(
        "Verifying %d candidates x %d TLDs with %d workers (tls=%s http=%s follow=%s)",
        len(labels),
        len(tlds),
        max_workers,
        cfg.do_tls,
        cfg.do_http,
        cfg.follow_redirects,
    )
    with ThreadPoolExecutor(max_workers=io_workers) as io_executor:
        async with build_http_client(cfg, max_workers) as client:
            verifier = DomainVerifier(cfg, backend, client=client, executor=io_executor)
            results, stats = await run_pool(
                labels,
                tlds,
                verifier,
                workers=max_workers,
                stop=stop,
                progress_callback=progress_callback,
            )

    logger.info("Verification completed: found=%d", len(results))
    if stats.skipped:
        logger.warning(
            "Skipped %d hostnames (invalid=%d, dns-timeout=%d)",
            stats.skipped,
            stats.skipped_invalid,
            stats.skipped_timeout,
        )
    logger.debug("Pool stats: %s", stats.as_dict())
    return results, stats


def _run_coro_sync(coro: Any) -> Any:
    """Run async code from sync callers (CLI and public API).

    If already inside an event loop, execute in a helper thread to avoid
    `RuntimeError: asyncio.run() cannot be called from a running event loop`.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    outcome: Dict[str, Any] = {}

    def target() -> None:
        try:
            outcome["result"] = asyncio.run(coro)
        except Exception as exc:  # pragma: no cover - fallback path
            outcome["error"] = exc

    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    thread.join()

    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("result")
