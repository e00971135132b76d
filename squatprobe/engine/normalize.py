from __future__ import annotations

import re

import idna

from ..errors import EncodingError, InvalidDomain

_LABEL_RE = re.compile(r"^[a-z0-9-]+$")


def to_ascii(domain: str) -> str:
    """Return the lowercase IDNA (punycode) form of `domain`.

    Surrounding whitespace and one trailing dot are removed first. Encoding
    uses UTS-46 non-transitional processing, so deviation characters such as
    `ß` and `ς` keep their own A-label instead of being folded to ASCII.
    Raises `InvalidDomain` when nothing is left and `EncodingError` when the
    IDNA rules or the label rules reject the name.
    """
    host = (domain or "").strip()
    if host.endswith("."):
        host = host[:-1]
    host = host.strip()
    if not host:
        raise InvalidDomain("empty domain")

    try:
        host = idna.encode(host, uts46=True).decode("ascii").lower()
    except (idna.IDNAError, UnicodeError) as exc:
        raise EncodingError(f"cannot encode {domain!r}: {exc}") from exc

    if len(host) > 253:
        raise EncodingError(f"domain too long: {len(host)} characters")
    for label in host.split("."):
        if not label or len(label) > 63:
            raise EncodingError(f"invalid label length in {host!r}")
        if not _LABEL_RE.match(label) or label.startswith("-") or label.endswith("-"):
            raise EncodingError(f"invalid label {label!r} in {host!r}")
    return host
