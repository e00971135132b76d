from __future__ import annotations

"""DNS stage: address, CNAME, MX and NS lookups for one hostname.

Each record type is looked up independently. A failure in one lookup never
aborts the others; the stage only fails when no record type returned data.
The resolver is reached through the `DNSBackend` protocol so callers (and
tests) can supply their own implementation instead of a process-wide default.
"""

import asyncio
import ipaddress
import logging
from typing import Any, Awaitable, Iterable, List, Optional, Protocol, Sequence, Tuple

import dns.asyncresolver
import dns.exception
import dns.resolver

from ..errors import DNSLookupFailure, DNSTimeout, VerifyError
from ..models import DEFAULT_DNS_TIMEOUT, DNSResult

logger = logging.getLogger("squatprobe")


class DNSBackend(Protocol):
    async def addresses(self, name: str) -> List[str]:
        """A and AAAA answers combined, as text."""

    async def canonical_name(self, name: str) -> str:
        """Target of the CNAME chain, or `name` itself when there is none."""

    async def mx(self, name: str) -> List[Tuple[int, str]]:
        """(preference, exchange) pairs."""

    async def ns(self, name: str) -> List[str]:
        ...


def _raise_if_cancelled(item: Any) -> None:
    if isinstance(item, asyncio.CancelledError):
        raise item


class DnspythonBackend:
    """`DNSBackend` on top of `dns.asyncresolver.Resolver`.

    With explicit `nameservers` the system resolver configuration is not read.
    """

    def __init__(self, nameservers: Optional[Sequence[str]] = None, timeout: float = DEFAULT_DNS_TIMEOUT):
        self.resolver = dns.asyncresolver.Resolver(configure=not nameservers)
        if nameservers:
            self.resolver.nameservers = list(nameservers)
        self.resolver.timeout = timeout
        self.resolver.lifetime = timeout

    async def addresses(self, name: str) -> List[str]:
        answers = await asyncio.gather(
            self.resolver.resolve(name, "A"),
            self.resolver.resolve(name, "AAAA"),
            return_exceptions=True,
        )
        ips: List[str] = []
        errors: List[BaseException] = []
        for item in answers:
            _raise_if_cancelled(item)
            if isinstance(item, BaseException):
                errors.append(item)
                continue
            ips.extend(rr.to_text() for rr in item)
        if not ips and errors:
            # A timeout on either family outranks an NXDOMAIN/NoAnswer on the other.
            timeouts = [err for err in errors if isinstance(err, dns.exception.Timeout)]
            raise (timeouts or errors)[0]
        return ips

    async def canonical_name(self, name: str) -> str:
        canonical = await self.resolver.canonical_name(name)
        return canonical.to_text()

    async def mx(self, name: str) -> List[Tuple[int, str]]:
        answers = await self.resolver.resolve(name, "MX")
        return [(int(rr.preference), rr.exchange.to_text()) for rr in answers]

    async def ns(self, name: str) -> List[str]:
        answers = await self.resolver.resolve(name, "NS")
        return [rr.target.to_text() for rr in answers]


def _strip_dot(host: str) -> str:
    return str(host or "").strip().rstrip(".")


def _dedupe(values: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


def split_addresses(addresses: Iterable[str]) -> Tuple[List[str], List[str]]:
    """Split address strings into (v4, v6); IPv4-mapped v6 counts as v4."""
    v4: List[str] = []
    v6: List[str] = []
    for raw in addresses:
        try:
            ip = ipaddress.ip_address(str(raw).strip())
        except ValueError:
            continue
        if ip.version == 4:
            v4.append(str(ip))
        elif ip.ipv4_mapped is not None:
            v4.append(str(ip.ipv4_mapped))
        else:
            v6.append(str(ip))
    return _dedupe(v4), _dedupe(v6)


async def _bounded(awaitable: Awaitable[Any], kind: str, name: str, timeout: float) -> Tuple[Any, Optional[VerifyError]]:
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout), None
    except asyncio.TimeoutError:
        return None, DNSTimeout(f"{kind} lookup for {name} timed out after {timeout:.1f}s")
    except dns.exception.Timeout as exc:
        return None, DNSTimeout(f"{kind} lookup for {name} timed out: {exc}")
    except VerifyError as exc:
        return None, exc
    except Exception as exc:
        return None, DNSLookupFailure(f"{kind} lookup for {name} failed: {exc.__class__.__name__}", cause=exc)


async def lookup_dns(name: str, backend: DNSBackend, timeout: float = DEFAULT_DNS_TIMEOUT) -> DNSResult:
    """Run the four lookups concurrently under one deadline.

    Returns the populated `DNSResult` when at least one record type has data.
    Otherwise raises the first error in [address, CNAME, MX, NS] order, or a
    `DNSLookupFailure` when every lookup came back empty without an error.
    """
    (addrs, err_addr), (cname, err_cname), (mxs, err_mx), (nss, err_ns) = await asyncio.gather(
        _bounded(backend.addresses(name), "address", name, timeout),
        _bounded(backend.canonical_name(name), "CNAME", name, timeout),
        _bounded(backend.mx(name), "MX", name, timeout),
        _bounded(backend.ns(name), "NS", name, timeout),
    )

    v4, v6 = split_addresses(addrs or [])

    cname_value = _strip_dot(cname) if cname else ""
    if cname_value.lower() == _strip_dot(name).lower():
        cname_value = ""

    mx_hosts = _dedupe(_strip_dot(host) for _, host in sorted(mxs or [], key=lambda pair: pair[0]))
    ns_hosts = _dedupe(_strip_dot(host) for host in (nss or []))

    result = DNSResult(a=v4, aaaa=v6, cname=cname_value, mx=mx_hosts, ns=ns_hosts)
    if result.empty:
        for err in (err_addr, err_cname, err_mx, err_ns):
            if err is not None:
                raise err
        raise DNSLookupFailure(f"no records found for {name}")

    for kind, err in (("address", err_addr), ("CNAME", err_cname), ("MX", err_mx), ("NS", err_ns)):
        if err is not None:
            logger.debug("Partial DNS failure for %s (%s): %s", name, kind, err)
    return result
