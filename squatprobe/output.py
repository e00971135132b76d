from __future__ import annotations

"""Result serialization and terminal rendering.

`write_results` / `load_results` handle the JSON array consumed by the triage
site; `output` prints a rich summary table. No network work happens here.
"""

import json
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from .models import Verification

console = Console()
err_console = Console(stderr=True)


def fmt_td(td: Optional[timedelta]) -> str:
    if td is None:
        return "-"
    total = int(td.total_seconds())
    hours, rem = divmod(total, 3600)
    minutes, seconds = divmod(rem, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def results_to_json(results: Sequence[Verification]) -> List[Dict[str, Any]]:
    return [item.to_dict() for item in results]


def write_results(results: Sequence[Verification], outfile: str) -> Path:
    """Write results as one JSON array. I/O errors propagate to the caller."""
    out = Path(outfile)
    if out.exists() and out.is_dir():
        raise IsADirectoryError(f"Output path is a directory: {out}")
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(results_to_json(results)) + "\n", encoding="utf-8")
    return out


def load_results(path: str) -> List[Verification]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return [Verification.from_dict(item) for item in data or []]


def print_json_output(results: Sequence[Verification]) -> None:
    print(json.dumps(results_to_json(results), indent=2))


def _first(values: Sequence[str]) -> str:
    if not values:
        return "-"
    if len(values) == 1:
        return values[0]
    return f"{values[0]} (+{len(values) - 1})"


def _tls_cell(item: Verification) -> str:
    if not item.tls.attempted or item.tls.value is None:
        return "-"
    tls = item.tls.value
    if not tls.connected:
        return "[red]no[/red]"
    return tls.common_name or tls.issuer or "yes"


def _http_cell(item: Verification) -> str:
    if not item.http.attempted or item.http.value is None:
        return "-"
    http = item.http.value
    if not http.status_code:
        return "[red]no response[/red]"
    text = str(http.status_code)
    if http.location:
        text += f" -> {http.location}"
    elif http.redirect_chain:
        text += f" via {len(http.redirect_chain)} redirects"
    return text


def output(results: Sequence[Verification], elapsed: Optional[timedelta] = None) -> None:
    """Render accepted results as a table, sorted by domain."""
    table = Table(box=box.SIMPLE, title="Live candidates", title_justify="left")
    table.add_column("Domain", style="cyan", no_wrap=True)
    table.add_column("IP")
    table.add_column("MX")
    table.add_column("TLS")
    table.add_column("HTTP")
    for item in sorted(results, key=lambda v: v.ascii):
        dns = item.dns
        table.add_row(
            item.ascii,
            _first(list(dns.a) + list(dns.aaaa)) if item.resolvable else "[yellow]-[/yellow]",
            _first(dns.mx),
            _tls_cell(item),
            _http_cell(item),
        )
    console.print(table)
    console.print(f"[green]{len(results)}[/green] live candidates, elapsed {fmt_td(elapsed)}")
