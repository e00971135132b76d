from __future__ import annotations

"""Candidate label handling.

Permutation strategies live outside this package; here candidates are plain
labels (e.g. from a typosquat generator's output file) that the pool combines
with each TLD as `<label>.<tld>`.
"""

from pathlib import Path
from typing import Iterable, List, Optional


def parse_tlds(domain: str, override: Optional[str] = None) -> List[str]:
    """TLDs to try: the comma list in `override`, else the domain's own TLD, else `com`."""
    if override:
        tlds = [part.strip().lstrip(".") for part in override.split(",")]
        tlds = [tld for tld in tlds if tld]
        if tlds:
            return tlds

    host = (domain or "").strip().rstrip(".")
    idx = host.rfind(".")
    if 0 <= idx < len(host) - 1:
        return [host[idx + 1 :]]
    return ["com"]


def base_label(domain: str) -> str:
    """Drop the last label: `example.com` -> `example`, `example.co.uk` -> `example.co`."""
    host = (domain or "").strip().rstrip(".")
    idx = host.rfind(".")
    return host[:idx] if idx > 0 else host


def load_labels(file_path: str) -> List[str]:
    with Path(file_path).open("r", encoding="utf-8") as fh:
        return [line.strip() for line in fh if line.strip() and not line.lstrip().startswith("#")]


def build_candidates(domain: str, labels: Optional[Iterable[str]] = None, max_count: int = 0) -> List[str]:
    """Base label first, then `labels`, de-duplicated in order and capped at `max_count` (0 = no cap)."""
    out: List[str] = []
    seen: set[str] = set()
    for raw in [base_label(domain), *(labels or [])]:
        label = str(raw or "").strip().strip(".")
        key = label.lower()
        if not label or key in seen:
            continue
        seen.add(key)
        out.append(label)
    if max_count and max_count > 0:
        out = out[:max_count]
    return out
