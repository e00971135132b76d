from __future__ import annotations

"""Public synchronous API.

`SQUATPROBE()` verifies candidate labels against a set of TLDs and returns
the accepted `Verification` records. Implementation lives in
`squatprobe.engine`.
"""

from typing import Iterable, List, Optional, Sequence, Union

from .candidates import parse_tlds
from .engine.runtime import _run_coro_sync, configure_logging, logger, pick_user_agent, verify_candidates
from .models import Config, Verification


def SQUATPROBE(
    labels: Union[str, Iterable[str]],
    tlds: Optional[Sequence[str]] = None,
    workers: Optional[int] = None,
    dns: Optional[str] = None,
    do_tls: bool = True,
    do_http: bool = False,
    follow_redirects: bool = False,
    useragent: Optional[str] = None,
) -> List[Verification]:
    """Verify candidates and return the live ones.

    Example:
    `SQUATPROBE(["examp1e", "exampel"], tlds=["com", "net"], do_http=True)`
    """
    label_list = [labels] if isinstance(labels, str) else list(labels)
    tld_list = list(tlds) if tlds else parse_tlds("")
    cfg = Config(
        do_tls=do_tls,
        do_http=do_http,
        follow_redirects=follow_redirects,
        user_agent=pick_user_agent(useragent),
    )
    results, _ = _run_coro_sync(
        verify_candidates(label_list, tld_list, cfg, workers=workers, dns_servers=[dns] if dns else None)
    )
    return results


__all__ = [
    "SQUATPROBE",
    "Config",
    "Verification",
    "configure_logging",
    "logger",
    "pick_user_agent",
    "verify_candidates",
]
