"""Download throughput benchmark.

Candidates are benchmarked one at a time, best latency first, so that no
two transfers share the uplink.  Each transfer is cut off at
``download_time`` seconds; bytes received before the cut-off still count.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Sequence

import httpx

from edgepick.engine import build_client
from edgepick.models import BenchmarkRecord, IPAddress, MeasurementConfig, ProbeRecord

logger = logging.getLogger(__name__)

# Signature: (qualifying, target, record)
ProgressCallback = Callable[[int, int, BenchmarkRecord], None]

DownloadFunc = Callable[[IPAddress, MeasurementConfig], Awaitable[float]]


async def download_speed(
    ip: IPAddress,
    config: MeasurementConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> float:
    """Download ``config.url`` from *ip* and return bytes per second."""
    received = 0
    deadline = config.download_time

    async def _transfer() -> None:
        nonlocal received
        async with build_client(
            ip, config, deadline, transport, follow_redirects=True,
        ) as client:
            async with client.stream("GET", config.url) as response:
                if response.status_code != 200:
                    logger.debug("Download from %s returned status %d", ip, response.status_code)
                    return
                async for chunk in response.aiter_bytes():
                    received += len(chunk)

    t0 = time.perf_counter()
    try:
        await asyncio.wait_for(_transfer(), timeout=deadline)
    except asyncio.TimeoutError:
        logger.debug("Download from %s stopped at %.1fs deadline", ip, deadline)
    except (httpx.HTTPError, OSError) as exc:
        logger.debug("Download from %s failed after %d bytes: %r", ip, received, exc)
    elapsed = min(time.perf_counter() - t0, deadline)

    if elapsed <= 0:
        return 0.0
    return received / elapsed


async def benchmark(
    records: Sequence[ProbeRecord],
    config: MeasurementConfig,
    progress_callback: ProgressCallback | None = None,
    download: DownloadFunc | None = None,
) -> list[BenchmarkRecord]:
    """Benchmark *records* in order until ``test_count`` of them qualify.

    A record qualifies when its speed reaches ``config.min_speed_mb``.
    Records below the threshold stay in the result with their measured
    speed but do not count toward the target.  Records after the stop
    point are not benchmarked and are left out of the result.
    """
    download = download or download_speed
    target = min(config.test_count, len(records))
    results: list[BenchmarkRecord] = []
    if target == 0:
        return results

    qualifying = 0
    for record in records:
        try:
            speed = await download(record.ip, config)
        except Exception:
            logger.exception("Unexpected error benchmarking %s", record.ip)
            speed = 0.0

        result = BenchmarkRecord.from_probe(record, speed)
        results.append(result)
        if speed >= config.min_speed_bytes:
            qualifying += 1

        if progress_callback:
            progress_callback(qualifying, target, result)
        if qualifying >= target:
            break

    logger.debug(
        "Benchmarked %d candidates, %d reached %.2f MB/s",
        len(results), qualifying, config.min_speed_mb,
    )
    return results


def skip_benchmark(records: Sequence[ProbeRecord]) -> list[BenchmarkRecord]:
    """Wrap *records* with zero speed, keeping their order."""
    return [BenchmarkRecord.from_probe(record) for record in records]
