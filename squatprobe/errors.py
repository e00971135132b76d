"""Exception taxonomy for the verification pipeline.

Only `InvalidDomain`, `EncodingError` and `DNSTimeout` ever leave
`DomainVerifier.verify()`. The others are raised inside the probes and
converted into recorded outcomes (empty DNS result, `connected=False`,
attempted-but-empty HTTP result, truncated redirect chain).
"""

from __future__ import annotations

from typing import Optional


class VerifyError(Exception):
    """Base class for per-hostname verification errors."""


class InvalidDomain(VerifyError):
    pass


class EncodingError(VerifyError):
    pass


class DNSLookupFailure(VerifyError):
    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class DNSTimeout(VerifyError):
    pass


class TLSUnreachable(VerifyError):
    pass


class TLSHandshakeFailure(VerifyError):
    pass


class HTTPTransportFailure(VerifyError):
    pass


class RedirectLimitExceeded(VerifyError):
    def __init__(self, limit: int):
        super().__init__(f"stopped after {limit} redirects")
        self.limit = limit
