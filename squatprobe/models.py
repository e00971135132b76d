from __future__ import annotations

"""Immutable result records produced by the verification pipeline.

Sequences are stored as tuples so a record cannot change after construction.
`to_dict()` / `from_dict()` implement the JSON output object documented in
the CLI help; key names follow the original results format consumed by the
triage site (`HasA`, `RedirectChain`, ...).
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Generic, Iterable, Optional, Tuple, TypeVar

DEFAULT_DNS_TIMEOUT = 2.0
DEFAULT_TLS_TIMEOUT = 3.0
DEFAULT_HTTP_TIMEOUT = 4.0
DEFAULT_USER_AGENT = "typosquat-verifier/1.0"
MAX_REDIRECTS = 10

T = TypeVar("T")


@dataclass(frozen=True)
class Config:
    dns_timeout: float = DEFAULT_DNS_TIMEOUT
    tls_timeout: float = DEFAULT_TLS_TIMEOUT
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    do_tls: bool = True
    do_http: bool = False
    follow_redirects: bool = False
    user_agent: str = DEFAULT_USER_AGENT

    def with_defaults(self) -> "Config":
        """Return a copy where unset or non-positive values use the defaults."""
        return replace(
            self,
            dns_timeout=self.dns_timeout if self.dns_timeout and self.dns_timeout > 0 else DEFAULT_DNS_TIMEOUT,
            tls_timeout=self.tls_timeout if self.tls_timeout and self.tls_timeout > 0 else DEFAULT_TLS_TIMEOUT,
            http_timeout=self.http_timeout if self.http_timeout and self.http_timeout > 0 else DEFAULT_HTTP_TIMEOUT,
            user_agent=self.user_agent or DEFAULT_USER_AGENT,
        )


def _strs(values: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    return tuple(str(v) for v in (values or ()))


@dataclass(frozen=True)
class DNSResult:
    a: Tuple[str, ...] = ()
    aaaa: Tuple[str, ...] = ()
    cname: str = ""
    mx: Tuple[str, ...] = ()
    ns: Tuple[str, ...] = ()

    # Presence flags are derived, never set independently of the values.
    has_a: bool = field(init=False, default=False)
    has_aaaa: bool = field(init=False, default=False)
    has_cname: bool = field(init=False, default=False)
    has_mx: bool = field(init=False, default=False)
    has_ns: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "a", _strs(self.a))
        object.__setattr__(self, "aaaa", _strs(self.aaaa))
        object.__setattr__(self, "mx", _strs(self.mx))
        object.__setattr__(self, "ns", _strs(self.ns))
        object.__setattr__(self, "cname", self.cname or "")
        object.__setattr__(self, "has_a", bool(self.a))
        object.__setattr__(self, "has_aaaa", bool(self.aaaa))
        object.__setattr__(self, "has_cname", bool(self.cname))
        object.__setattr__(self, "has_mx", bool(self.mx))
        object.__setattr__(self, "has_ns", bool(self.ns))

    @property
    def empty(self) -> bool:
        return not (self.has_a or self.has_aaaa or self.has_cname or self.has_mx or self.has_ns)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "HasA": self.has_a,
            "HasAAAA": self.has_aaaa,
            "HasCNAME": self.has_cname,
            "HasMX": self.has_mx,
            "HasNS": self.has_ns,
            "A": list(self.a),
            "AAAA": list(self.aaaa),
            "CNAME": self.cname,
            "MX": list(self.mx),
            "NS": list(self.ns),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DNSResult":
        return cls(
            a=data.get("A") or (),
            aaaa=data.get("AAAA") or (),
            cname=data.get("CNAME") or "",
            mx=data.get("MX") or (),
            ns=data.get("NS") or (),
        )


def format_time(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.strptime(value, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class TLSResult:
    connected: bool = False
    server_name: str = ""
    issuer: str = ""
    subject: str = ""
    not_before: Optional[datetime] = None
    not_after: Optional[datetime] = None
    dns_names: Tuple[str, ...] = ()
    common_name: str = ""
    serial_number: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "dns_names", _strs(self.dns_names))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Connected": self.connected,
            "ServerName": self.server_name,
            "Issuer": self.issuer,
            "Subject": self.subject,
            "NotBefore": format_time(self.not_before),
            "NotAfter": format_time(self.not_after),
            "DNSNames": list(self.dns_names),
            "CommonName": self.common_name,
            "SerialNumber": self.serial_number,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TLSResult":
        return cls(
            connected=bool(data.get("Connected")),
            server_name=data.get("ServerName") or "",
            issuer=data.get("Issuer") or "",
            subject=data.get("Subject") or "",
            not_before=parse_time(data.get("NotBefore")),
            not_after=parse_time(data.get("NotAfter")),
            dns_names=data.get("DNSNames") or (),
            common_name=data.get("CommonName") or "",
            serial_number=data.get("SerialNumber") or "",
        )


@dataclass(frozen=True)
class HTTPResult:
    attempted: bool = True
    url: str = ""
    status: str = ""
    status_code: int = 0
    location: str = ""
    server: str = ""
    redirect_chain: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        chain = _strs(self.redirect_chain)
        if len(chain) > MAX_REDIRECTS:
            raise ValueError(f"redirect chain longer than {MAX_REDIRECTS}")
        object.__setattr__(self, "redirect_chain", chain)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Attempted": self.attempted,
            "URL": self.url,
            "Status": self.status,
            "StatusCode": self.status_code,
            "Location": self.location,
            "Server": self.server,
            "RedirectChain": list(self.redirect_chain),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HTTPResult":
        return cls(
            attempted=bool(data.get("Attempted")),
            url=data.get("URL") or "",
            status=data.get("Status") or "",
            status_code=int(data.get("StatusCode") or 0),
            location=data.get("Location") or "",
            server=data.get("Server") or "",
            redirect_chain=data.get("RedirectChain") or (),
        )


@dataclass(frozen=True)
class Probe(Generic[T]):
    """A probe outcome that is either not attempted or carries its result."""

    attempted: bool = False
    value: Optional[T] = None

    @classmethod
    def of(cls, value: T) -> "Probe[T]":
        return cls(attempted=True, value=value)


NOT_ATTEMPTED: Probe[Any] = Probe()


@dataclass(frozen=True)
class Verification:
    domain: str
    ascii: str
    dns: DNSResult = field(default_factory=DNSResult)
    tls: Probe[TLSResult] = NOT_ATTEMPTED
    http: Probe[HTTPResult] = NOT_ATTEMPTED
    resolvable: bool = False
    has_mail: bool = False

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "domain": self.ascii,
            "resolvable": self.resolvable,
            "has_mail": self.has_mail,
            "dns": self.dns.to_dict(),
        }
        if self.tls.attempted and self.tls.value is not None:
            out["tls"] = self.tls.value.to_dict()
        if self.http.attempted and self.http.value is not None:
            out["http"] = self.http.value.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Verification":
        tls = data.get("tls")
        http = data.get("http")
        return cls(
            domain=data["domain"],
            ascii=data["domain"],
            dns=DNSResult.from_dict(data.get("dns") or {}),
            tls=Probe.of(TLSResult.from_dict(tls)) if tls is not None else NOT_ATTEMPTED,
            http=Probe.of(HTTPResult.from_dict(http)) if http is not None else NOT_ATTEMPTED,
            resolvable=bool(data.get("resolvable")),
            has_mail=bool(data.get("has_mail")),
        )
