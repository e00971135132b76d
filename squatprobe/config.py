from __future__ import annotations

"""Runtime settings layering: CLI options > environment (.env) > defaults.

Environment keys use the `SQUATPROBE_` prefix, e.g. `SQUATPROBE_DNS_TIMEOUT=1.5`
or `SQUATPROBE_DNS=1.1.1.1`. A `.env` file in the working directory is read
with python-dotenv before the environment is inspected.
"""

import os
from typing import Mapping, Optional

from dotenv import load_dotenv

from .models import (
    DEFAULT_DNS_TIMEOUT,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_TLS_TIMEOUT,
    DEFAULT_USER_AGENT,
)

ENV_PREFIX = "SQUATPROBE_"


def default_workers() -> int:
    return (os.cpu_count() or 1) * 4


def _normalize_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = value.strip()
    return text if text else None


def _parse_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    text = value.strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    return default


def load_env_settings(environ: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> dict:
    """Read runtime defaults from the environment.

    Returns plain values so the CLI can overlay its own flags on top.
    """
    if environ is None:
        if dotenv:
            load_dotenv()
        environ = os.environ

    def _get(key: str) -> Optional[str]:
        return environ.get(ENV_PREFIX + key)

    return {
        "dns": _normalize_optional(_get("DNS")),
        "useragent": _normalize_optional(_get("USERAGENT")) or DEFAULT_USER_AGENT,
        "dns_timeout": _parse_float(_get("DNS_TIMEOUT"), DEFAULT_DNS_TIMEOUT),
        "tls_timeout": _parse_float(_get("TLS_TIMEOUT"), DEFAULT_TLS_TIMEOUT),
        "http_timeout": _parse_float(_get("HTTP_TIMEOUT"), DEFAULT_HTTP_TIMEOUT),
        "workers": _parse_int(_get("WORKERS")) or default_workers(),
        "tls": _parse_bool(_get("TLS"), True),
        "http": _parse_bool(_get("HTTP"), False),
        "follow": _parse_bool(_get("FOLLOW"), False),
        "log_level": _normalize_optional(_get("LOG_LEVEL")) or "info",
    }
