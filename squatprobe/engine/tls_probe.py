from __future__ import annotations

"""Metadata-only TLS probe.

The handshake runs with certificate verification disabled on purpose: the
goal is to read the leaf certificate of whatever the host presents (issuer,
SAN list, validity window) for triage. Nothing returned here says the peer
is trustworthy.
"""

import asyncio
import logging
import socket
import ssl
from concurrent.futures import Executor
from typing import List, Optional

import OpenSSL
from cryptography import x509 as cx509
from cryptography.x509.oid import NameOID

from ..errors import TLSHandshakeFailure, TLSUnreachable
from ..models import DEFAULT_TLS_TIMEOUT, TLSResult

logger = logging.getLogger("squatprobe")

TLS_PORT = 443
HANDSHAKE_TIMEOUT = 3.0


def _common_name(name: cx509.Name) -> str:
    attrs = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    return str(attrs[0].value) if attrs else ""


def _san_dns_names(cert: cx509.Certificate) -> List[str]:
    try:
        ext = cert.extensions.get_extension_for_class(cx509.SubjectAlternativeName)
    except cx509.ExtensionNotFound:
        return []
    return [str(name) for name in ext.value.get_values_for_type(cx509.DNSName)]


def parse_leaf_certificate(der_cert: bytes, server_name: str) -> TLSResult:
    """Build a connected `TLSResult` from the DER leaf certificate.

    Names are RFC 4514 strings, most specific RDN first ("CN=R3,O=Let's Encrypt,C=US").
    """
    cert = OpenSSL.crypto.load_certificate(OpenSSL.crypto.FILETYPE_ASN1, der_cert).to_cryptography()
    return TLSResult(
        connected=True,
        server_name=server_name,
        issuer=cert.issuer.rfc4514_string(),
        subject=cert.subject.rfc4514_string(),
        not_before=cert.not_valid_before_utc,
        not_after=cert.not_valid_after_utc,
        dns_names=_san_dns_names(cert),
        common_name=_common_name(cert.subject),
        serial_number=str(cert.serial_number),
    )


def _insecure_context() -> ssl.SSLContext:
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def _handshake_leaf(host: str, port: int, dial_timeout: float) -> Optional[bytes]:
    try:
        sock = socket.create_connection((host, port), timeout=dial_timeout)
    except OSError as exc:
        raise TLSUnreachable(f"{host}:{port}: {exc}") from exc

    with sock:
        sock.settimeout(HANDSHAKE_TIMEOUT)
        try:
            with _insecure_context().wrap_socket(sock, server_hostname=host) as tls_sock:
                der_cert = tls_sock.getpeercert(binary_form=True)
        except (OSError, ssl.SSLError) as exc:
            raise TLSHandshakeFailure(f"{host}:{port}: {exc}") from exc

    return der_cert or None


async def fetch_tls(
    host: str,
    timeout: float = DEFAULT_TLS_TIMEOUT,
    port: int = TLS_PORT,
    executor: Optional[Executor] = None,
) -> TLSResult:
    """Dial `host:port` and read the leaf certificate.

    Unreachable hosts and failed handshakes return `TLSResult(connected=False)`
    rather than raising. The dial is bounded by `timeout`, the handshake by
    `HANDSHAKE_TIMEOUT`.
    """
    loop = asyncio.get_running_loop()
    try:
        der_cert = await loop.run_in_executor(executor, _handshake_leaf, host, port, timeout)
    except (TLSUnreachable, TLSHandshakeFailure) as exc:
        logger.debug("TLS probe %s: %s", exc.__class__.__name__, exc)
        return TLSResult()

    if der_cert is None:
        return TLSResult(connected=True, server_name=host)
    try:
        return parse_leaf_certificate(der_cert, host)
    except (OpenSSL.crypto.Error, ValueError) as exc:
        logger.debug("TLS probe %s: unreadable certificate: %s", host, exc)
        return TLSResult(connected=True, server_name=host)
