from __future__ import annotations

import asyncio
import socket
import ssl
import threading
import warnings
from datetime import datetime, timedelta, timezone
from pathlib import Path

import OpenSSL
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from squatprobe.engine.tls_probe import fetch_tls, parse_leaf_certificate
from squatprobe.models import TLSResult


def _expired_self_signed(tmp_path: Path):
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name(
        [
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Squat Test"),
            x509.NameAttribute(NameOID.COMMON_NAME, "expired.test"),
        ]
    )
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(4242)
        .not_valid_before(now - timedelta(days=30))
        .not_valid_after(now - timedelta(days=1))
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName("expired.test"), x509.DNSName("www.expired.test")]),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )
    cert_path = tmp_path / "cert.pem"
    key_path = tmp_path / "key.pem"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.TraditionalOpenSSL,
            serialization.NoEncryption(),
        )
    )
    return cert, cert_path, key_path


def _serve_once(handler) -> int:
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    listener.settimeout(5)
    port = listener.getsockname()[1]

    def run() -> None:
        with listener:
            try:
                conn, _ = listener.accept()
            except OSError:
                return
            with conn:
                try:
                    handler(conn)
                except OSError:
                    pass

    threading.Thread(target=run, daemon=True).start()
    return port


def test_fetch_tls_reads_expired_self_signed_certificate(tmp_path: Path):
    _, cert_path, key_path = _expired_self_signed(tmp_path)
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    ctx.load_cert_chain(str(cert_path), str(key_path))

    def handler(conn: socket.socket) -> None:
        with ctx.wrap_socket(conn, server_side=True) as tls_conn:
            tls_conn.recv(1)

    port = _serve_once(handler)
    result = asyncio.run(fetch_tls("127.0.0.1", timeout=2.0, port=port))

    assert result.connected is True
    assert result.server_name == "127.0.0.1"
    assert result.common_name == "expired.test"
    assert result.subject == "CN=expired.test,O=Squat Test"
    assert result.issuer == result.subject
    assert result.dns_names == ("expired.test", "www.expired.test")
    assert result.serial_number == "4242"
    assert result.not_after is not None and result.not_after < datetime.now(timezone.utc)
    assert result.not_before is not None and result.not_before < result.not_after


def test_fetch_tls_unreachable_port_is_not_connected():
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()

    result = asyncio.run(fetch_tls("127.0.0.1", timeout=1.0, port=port))
    assert result == TLSResult()


def test_fetch_tls_handshake_failure_is_not_connected():
    def handler(conn: socket.socket) -> None:
        conn.sendall(b"HTTP/1.1 400 Bad Request\r\n\r\n")

    port = _serve_once(handler)
    result = asyncio.run(fetch_tls("127.0.0.1", timeout=1.0, port=port))
    assert result.connected is False
    assert result.issuer == ""
    assert result.not_after is None


def test_parse_leaf_certificate_from_der(tmp_path: Path):
    cert, _, _ = _expired_self_signed(tmp_path)
    der = cert.public_bytes(serialization.Encoding.DER)
    result = parse_leaf_certificate(der, "expired.test")
    assert result.connected is True
    assert result.server_name == "expired.test"
    assert result.common_name == "expired.test"
    assert result.not_after == cert.not_valid_after_utc.replace(microsecond=0)


def test_parse_leaf_certificate_rejects_garbage():
    with pytest.raises((OpenSSL.crypto.Error, ValueError)):
        parse_leaf_certificate(b"garbage", "x.test")


def test_parse_leaf_certificate_reads_names_without_deprecated_calls(tmp_path: Path):
    cert, _, _ = _expired_self_signed(tmp_path)
    der = cert.public_bytes(serialization.Encoding.DER)
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        result = parse_leaf_certificate(der, "expired.test")
    assert result.subject == "CN=expired.test,O=Squat Test"
    assert result.issuer == result.subject
    assert result.serial_number == "4242"
    assert result.dns_names == ("expired.test", "www.expired.test")
    assert result.not_before == cert.not_valid_before_utc.replace(microsecond=0)
