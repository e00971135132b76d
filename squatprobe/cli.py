from __future__ import annotations

"""Command-line interface for squatprobe.

This module translates CLI flags into a `Config`, builds the candidate list,
runs the verification pool and writes the accepted results as a JSON array.
"""

import argparse
import asyncio
import os
import signal
import sys
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from .candidates import build_candidates, load_labels, parse_tlds
from .config import load_env_settings
from .engine.normalize import to_ascii
from .engine.runtime import _run_coro_sync, configure_logging, logger, pick_user_agent, verify_candidates
from .errors import VerifyError
from .models import Config, Verification
from .output import err_console, output, print_json_output, write_results
from .version import __version__

EXIT_USAGE = 2


def _install_stop_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError, ValueError):
            # No loop signal support (Windows, or not in the main thread).
            return


async def _run(
    labels: Sequence[str],
    tlds: Sequence[str],
    cfg: Config,
    workers: int,
    dns_servers: Optional[List[str]],
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> List[Verification]:
    stop = asyncio.Event()
    _install_stop_handlers(stop)
    results, _ = await verify_candidates(
        labels,
        tlds,
        cfg,
        workers=workers,
        dns_servers=dns_servers,
        stop=stop,
        progress_callback=progress_callback,
    )
    return results


def _run_with_rich_progress(
    labels: Sequence[str],
    tlds: Sequence[str],
    cfg: Config,
    workers: int,
    dns_servers: Optional[List[str]],
) -> List[Verification]:
    """Execute the pool with a Rich progress bar bound to async callbacks."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[bold cyan]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=err_console,
    ) as progress:
        task_id = progress.add_task("Verifying candidates", total=max(len(labels) * len(tlds), 1))

        def cb(done: int, total: int) -> None:
            progress.update(task_id, total=max(total, 1), completed=done)

        return _run_coro_sync(_run(labels, tlds, cfg, workers, dns_servers, progress_callback=cb))


def build_parser(defaults: dict) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="squatprobe",
        description=(
            f"squatprobe v.{__version__} - verify typosquat candidates (DNS, TLS, HTTP)\n"
            "CLI options > SQUATPROBE_* environment / .env > built-in defaults."
        ),
    )
    target_group = parser.add_argument_group("Target")
    target_group.add_argument("-d", "--domain", required=True, help="Base domain, e.g. example.com.")
    target_group.add_argument(
        "--tlds",
        help="Comma-separated TLD variants, e.g. com,net,org. Defaults to the domain's own TLD.",
    )
    target_group.add_argument(
        "-c",
        "--candidates",
        help=(
            "File with candidate labels, one per line. The domain's own label is always "
            "verified first; without this file it is the only candidate."
        ),
    )
    target_group.add_argument(
        "--max",
        type=int,
        default=0,
        help="Cap on the number of candidate labels processed (0 = no cap).",
    )

    probe_group = parser.add_argument_group("Probes")
    probe_group.add_argument(
        "--tls",
        action=argparse.BooleanOptionalAction,
        default=defaults["tls"],
        help="Fetch TLS certificate metadata on :443.",
    )
    probe_group.add_argument(
        "--http",
        action=argparse.BooleanOptionalAction,
        default=defaults["http"],
        help="Send an HTTP(S) HEAD request.",
    )
    probe_group.add_argument(
        "--follow",
        action=argparse.BooleanOptionalAction,
        default=defaults["follow"],
        help="Follow HTTP redirects (at most 10).",
    )

    runtime_group = parser.add_argument_group("Runtime Overrides (Advanced)")
    runtime_group.add_argument("--workers", type=int, default=defaults["workers"], help="Concurrent verification workers.")
    runtime_group.add_argument("--dns", default=defaults["dns"], help="DNS server (default: system resolver).")
    runtime_group.add_argument(
        "--useragent",
        default=defaults["useragent"],
        help="User-Agent string or 'random'.",
    )
    runtime_group.add_argument("--dns-timeout", type=float, default=defaults["dns_timeout"], help="DNS stage timeout in seconds.")
    runtime_group.add_argument("--tls-timeout", type=float, default=defaults["tls_timeout"], help="TLS dial timeout in seconds.")
    runtime_group.add_argument("--http-timeout", type=float, default=defaults["http_timeout"], help="HTTP stage timeout in seconds.")
    runtime_group.add_argument(
        "--log-level",
        default=defaults["log_level"],
        choices=["debug", "info", "warn", "error"],
        help="Log level.",
    )

    output_group = parser.add_argument_group("Output")
    output_group.add_argument("-o", "--outfile", default="results.json", help="JSON file to write results into.")
    output_group.add_argument("--silent", help="Silent mode (hide progress and table).", action="store_true")
    output_group.add_argument("--json", help="Also print the JSON array on stdout (forces --silent).", action="store_true")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entrypoint.

    Returns 0 on success. Usage errors (bad domain, unreadable candidate file)
    exit with status 2. Failing to write the output file raises.
    """
    parser = build_parser(load_env_settings())
    args = parser.parse_args(argv)
    if args.json:
        args.silent = True
    configure_logging(args.log_level)

    try:
        domain = to_ascii(args.domain)
    except VerifyError as exc:
        err_console.print(f"[red]Invalid domain input:[/red] {args.domain} ({exc})")
        sys.exit(EXIT_USAGE)

    labels: List[str] = []
    if args.candidates:
        try:
            labels = load_labels(args.candidates)
        except OSError as exc:
            err_console.print(f"[red]Cannot read candidates:[/red] {args.candidates} ({exc})")
            sys.exit(EXIT_USAGE)
    else:
        logger.warning("No --candidates file given; only the base label of %s is verified", domain)

    tlds = parse_tlds(domain, args.tlds)
    for tld in tlds:
        logger.debug("Queued TLD variant: %s", tld)
    candidates = build_candidates(domain, labels, max_count=args.max)
    logger.info("Candidates: %d labels x %d TLDs = %d hostnames", len(candidates), len(tlds), len(candidates) * len(tlds))

    cfg = Config(
        dns_timeout=args.dns_timeout,
        tls_timeout=args.tls_timeout,
        http_timeout=args.http_timeout,
        do_tls=args.tls,
        do_http=args.http,
        follow_redirects=args.follow,
        user_agent=pick_user_agent(args.useragent),
    ).with_defaults()
    dns_servers = [args.dns] if args.dns else None

    start_time = datetime.now()
    if args.silent:
        results = _run_coro_sync(_run(candidates, tlds, cfg, args.workers, dns_servers))
    else:
        results = _run_with_rich_progress(candidates, tlds, cfg, args.workers, dns_servers)
    elapsed = datetime.now() - start_time

    path = write_results(results, args.outfile)
    logger.info("Wrote %d results to %s", len(results), path)

    if args.json:
        print_json_output(results)
    elif not args.silent:
        output(results, elapsed)
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Interrupted[/yellow]")
        try:
            sys.exit(0)
        except SystemExit:
            os._exit(0)
