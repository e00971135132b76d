from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import Optional

import httpx

from ..errors import DNSLookupFailure
from ..models import Config, DNSResult, Probe, Verification, NOT_ATTEMPTED
from .dns_lookup import DNSBackend, lookup_dns
from .http_probe import fetch_http
from .normalize import to_ascii
from .tls_probe import TLS_PORT, fetch_tls

logger = logging.getLogger("squatprobe")


class DomainVerifier:
    """Run normalize -> DNS -> TLS -> HTTP for one hostname at a time.

    One instance is shared by every worker of a pool. It holds no per-hostname
    state; `verify()` builds a fresh `Verification` for each call.
    """

    def __init__(
        self,
        cfg: Config,
        backend: DNSBackend,
        client: Optional[httpx.AsyncClient] = None,
        executor: Optional[Executor] = None,
        tls_port: int = TLS_PORT,
    ):
        self.cfg = cfg.with_defaults()
        self.backend = backend
        self.client = client
        self.executor = executor
        self.tls_port = tls_port
        if self.cfg.do_http and client is None:
            raise ValueError("an httpx.AsyncClient is required when HTTP probing is enabled")

    async def verify(self, domain: str) -> Verification:
        """Verify one hostname.

        Raises `InvalidDomain`/`EncodingError` for names that cannot be
        normalized and `DNSTimeout` when the DNS stage ran out of time; both
        mean no result for this hostname. Cancellation propagates unchanged.
        Every other probe failure is recorded in the returned record.
        """
        cfg = self.cfg
        ascii_name = to_ascii(domain)

        try:
            dns_result = await lookup_dns(ascii_name, self.backend, timeout=cfg.dns_timeout)
        except DNSLookupFailure as exc:
            logger.debug("DNS lookup for %s: %s", ascii_name, exc)
            dns_result = DNSResult()

        resolvable = dns_result.has_a or dns_result.has_aaaa or dns_result.has_cname
        has_mail = dns_result.has_mx

        tls = NOT_ATTEMPTED
        if cfg.do_tls and resolvable:
            tls = Probe.of(
                await fetch_tls(ascii_name, timeout=cfg.tls_timeout, port=self.tls_port, executor=self.executor)
            )

        http = NOT_ATTEMPTED
        if cfg.do_http and resolvable:
            http = Probe.of(await fetch_http(ascii_name, self.client, cfg))

        return Verification(
            domain=domain,
            ascii=ascii_name,
            dns=dns_result,
            tls=tls,
            http=http,
            resolvable=resolvable,
            has_mail=has_mail,
        )
