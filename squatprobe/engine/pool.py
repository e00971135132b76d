from __future__ import annotations

"""Worker pool: fan candidate labels out to the verifier, fan results back in.

Shutdown order is fixed:
1. the producer enqueues every label, then one `None` sentinel per worker,
2. the closer waits for every worker to exit, then puts the output sentinel,
3. the consumer drains the output queue until that sentinel.
The output queue therefore only "closes" after the last worker is done.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from ..errors import DNSTimeout, EncodingError, InvalidDomain
from ..models import Verification

logger = logging.getLogger("squatprobe")


class Verifier(Protocol):
    async def verify(self, domain: str) -> Verification:
        ...


@dataclass
class PoolStats:
    candidates: int = 0
    verified: int = 0
    accepted: int = 0
    filtered: int = 0
    skipped_invalid: int = 0
    skipped_timeout: int = 0

    @property
    def skipped(self) -> int:
        return self.skipped_invalid + self.skipped_timeout

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


def accept(result: Verification) -> bool:
    """Triage filter: keep hosts that resolve or at least receive mail."""
    return result.resolvable or result.has_mail


async def run_pool(
    labels: Sequence[str],
    tlds: Sequence[str],
    verifier: Verifier,
    workers: int,
    stop: Optional[asyncio.Event] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Tuple[List[Verification], PoolStats]:
    """Verify `<label>.<tld>` for every label and TLD; return accepted results.

    Results come back in completion order, which is unspecified. Setting
    `stop` ends enqueuing; workers finish the hostname they are on and exit.
    """
    if not tlds:
        raise ValueError("at least one TLD is required")

    worker_count = max(1, min(int(workers or 1), max(len(labels), 1)))
    stats = PoolStats()
    total = len(labels) * len(tlds)
    done = 0

    in_queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue(maxsize=worker_count)
    out_queue: "asyncio.Queue[Optional[Verification]]" = asyncio.Queue(maxsize=worker_count)

    def _stopping() -> bool:
        return stop is not None and stop.is_set()

    async def producer() -> None:
        for label in labels:
            if _stopping():
                logger.info("Stop requested; %d candidates left unqueued", len(labels) - stats.candidates)
                break
            await in_queue.put(label)
            stats.candidates += 1
        for _ in range(worker_count):
            await in_queue.put(None)

    async def worker() -> None:
        nonlocal done
        while True:
            label = await in_queue.get()
            if label is None:
                return
            for tld in tlds:
                if _stopping():
                    break
                host = f"{label}.{tld}"
                try:
                    result = await verifier.verify(host)
                except (InvalidDomain, EncodingError) as exc:
                    stats.skipped_invalid += 1
                    logger.debug("Skipping %s: %s", host, exc)
                    continue
                except DNSTimeout as exc:
                    stats.skipped_timeout += 1
                    logger.debug("Skipping %s: %s", host, exc)
                    continue
                finally:
                    done += 1
                    if progress_callback:
                        progress_callback(done, total)

                stats.verified += 1
                if not accept(result):
                    stats.filtered += 1
                    continue
                stats.accepted += 1
                await out_queue.put(result)

    producer_task = asyncio.create_task(producer())
    worker_tasks = [asyncio.create_task(worker()) for _ in range(worker_count)]

    async def closer() -> None:
        try:
            await asyncio.gather(*worker_tasks)
        finally:
            await out_queue.put(None)

    closer_task = asyncio.create_task(closer())
    results: List[Verification] = []
    try:
        while True:
            item = await out_queue.get()
            if item is None:
                break
            results.append(item)
        await closer_task
        await producer_task
    finally:
        for task in (producer_task, closer_task, *worker_tasks):
            if not task.done():
                task.cancel()

    return results, stats
