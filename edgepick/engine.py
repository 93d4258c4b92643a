"""Latency probing engine for edgepick.

Each candidate address is probed ``ping_times`` times in sequence, either
by timing a bare TCP connect (default) or by timing an HTTP GET up to the
response headers ("httping").  Candidates are spread over a fixed pool of
asyncio workers that pull from a shared queue; every worker writes only the
result slot of the candidate it took.

Timings use time.perf_counter() for monotonic, high-resolution values.

Public API:
    probe_address -- run all repeats for a single candidate
    probe_all     -- probe every candidate through the bounded worker pool
    build_client  -- httpx client pinned to one candidate address
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Sequence

import httpx

from edgepick.colo import extract_colo
from edgepick.config import USER_AGENT
from edgepick.models import IPAddress, MeasurementConfig, ProbeRecord

logger = logging.getLogger(__name__)

# Type alias for the progress callback.
# Signature: (completed, total, record_or_none)
ProgressCallback = Callable[[int, int, Optional[ProbeRecord]], None]

# Signature of a single-candidate probe; returns None to exclude the candidate.
ProbeFunc = Callable[[IPAddress, MeasurementConfig], Awaitable[Optional[ProbeRecord]]]


# ---------------------------------------------------------------------------
# Pinned transport
# ---------------------------------------------------------------------------

class PinnedTransport(httpx.AsyncHTTPTransport):
    """Transport that sends every request to one fixed address and port.

    The URL host is replaced by the candidate address while the original
    hostname travels in the ``sni_hostname`` extension (and the Host
    header), so TLS SNI and certificate validation still use the real name.
    """

    def __init__(self, target_ip: str, target_port: int, **kwargs):
        self._target_ip = target_ip
        self._target_port = target_port
        super().__init__(**kwargs)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        url = request.url
        pinned_url = url.copy_with(host=self._target_ip, port=self._target_port)
        request = httpx.Request(
            method=request.method,
            url=pinned_url,
            headers=request.headers,
            stream=request.stream,
            extensions={**request.extensions, "sni_hostname": url.host.encode()},
        )
        return await super().handle_async_request(request)


def build_client(
    ip: IPAddress,
    config: MeasurementConfig,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    follow_redirects: bool = False,
) -> httpx.AsyncClient:
    """Return an ``AsyncClient`` whose requests all go to *ip*:``config.port``.

    *transport* replaces the pinned transport (tests pass a MockTransport).
    """
    if transport is None:
        transport = PinnedTransport(target_ip=str(ip), target_port=config.port, verify=True)
    return httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(timeout),
        headers={"User-Agent": USER_AGENT},
        follow_redirects=follow_redirects,
    )


# ---------------------------------------------------------------------------
# Single measurements
# ---------------------------------------------------------------------------

async def _measure_tcp(ip: IPAddress, port: int, timeout: float) -> float:
    """Open and close a TCP connection to *ip*:*port*; return connect ms."""
    t0 = time.perf_counter()
    _, writer = await asyncio.wait_for(
        asyncio.open_connection(str(ip), port),
        timeout=timeout,
    )
    elapsed_ms = (time.perf_counter() - t0) * 1000.0
    _safe_close_writer(writer)
    return elapsed_ms


async def _measure_http(
    client: httpx.AsyncClient,
    url: str,
) -> tuple[float, int, httpx.Headers]:
    """Send a GET and stop at the response headers.

    Returns (ttfb_ms, status_code, headers).  The body is never read.
    """
    t0 = time.perf_counter()
    async with client.stream("GET", url) as response:
        ttfb_ms = (time.perf_counter() - t0) * 1000.0
        return ttfb_ms, response.status_code, response.headers


def _safe_close_writer(writer: asyncio.StreamWriter | None) -> None:
    """Close a stream writer without raising on already-closed transports."""
    if writer is None:
        return
    try:
        writer.close()
    except (OSError, RuntimeError) as exc:
        logger.debug("Ignoring error while closing connection: %s", exc)


def _build_record(
    ip: IPAddress,
    sent: int,
    delays: list[float],
    colo: Optional[str] = None,
) -> ProbeRecord:
    avg = sum(delays) / len(delays) if delays else 0.0
    return ProbeRecord(ip=ip, sent=sent, received=len(delays), delay_ms=avg, colo=colo)


# ---------------------------------------------------------------------------
# Per-candidate probes
# ---------------------------------------------------------------------------

async def tcp_probe(ip: IPAddress, config: MeasurementConfig) -> ProbeRecord:
    """Time ``ping_times`` TCP connects to *ip*; failures count as loss."""
    delays: list[float] = []
    for attempt in range(config.ping_times):
        try:
            delays.append(await _measure_tcp(ip, config.port, config.probe_timeout))
        except (OSError, asyncio.TimeoutError) as exc:
            logger.debug(
                "TCP connect %d/%d to %s:%d failed: %r",
                attempt + 1, config.ping_times, ip, config.port, exc,
            )
    return _build_record(ip, config.ping_times, delays)


async def http_probe(
    ip: IPAddress,
    config: MeasurementConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[ProbeRecord]:
    """Time ``ping_times`` HTTP requests against *ip*.

    A response counts only when its status is in ``config.status_codes``.
    When ``config.colos`` is set, an accepted response served from any
    other region (or carrying no region) excludes the candidate: ``None``
    is returned instead of a record.
    """
    delays: list[float] = []
    colo: Optional[str] = None
    async with build_client(ip, config, config.http_timeout, transport) as client:
        for attempt in range(config.ping_times):
            try:
                ttfb_ms, status_code, headers = await _measure_http(client, config.url)
            except httpx.HTTPError as exc:
                logger.debug(
                    "HTTP probe %d/%d to %s failed: %r",
                    attempt + 1, config.ping_times, ip, exc,
                )
                continue

            if status_code not in config.status_codes:
                logger.debug("HTTP probe to %s returned status %d", ip, status_code)
                continue

            served_by = extract_colo(headers)
            if config.colos and served_by not in config.colos:
                logger.debug("Excluding %s: region %s not accepted", ip, served_by or "unknown")
                return None

            colo = colo or served_by
            delays.append(ttfb_ms)
    return _build_record(ip, config.ping_times, delays, colo)


async def probe_address(ip: IPAddress, config: MeasurementConfig) -> Optional[ProbeRecord]:
    """Probe one candidate in the configured mode."""
    if config.httping:
        return await http_probe(ip, config)
    return await tcp_probe(ip, config)


# ---------------------------------------------------------------------------
# Worker pool
# ---------------------------------------------------------------------------

async def probe_all(
    addresses: Sequence[IPAddress],
    config: MeasurementConfig,
    progress_callback: ProgressCallback | None = None,
    probe: ProbeFunc | None = None,
) -> list[ProbeRecord]:
    """Probe every address with at most ``config.workers`` in flight.

    Returns one record per candidate in input order, minus candidates the
    probe excluded.  Does not return until every candidate has finished.

    Parameters
    ----------
    addresses:
        Candidates from the address expander.
    config:
        Measurement parameters (worker count, repeats, mode, timeouts).
    progress_callback:
        Optional callable invoked after each candidate completes.
        Signature: ``(completed, total, record_or_none)``
    probe:
        Per-candidate coroutine; defaults to :func:`probe_address`.
    """
    probe = probe or probe_address
    total = len(addresses)
    if total == 0:
        return []

    slots: list[Optional[ProbeRecord]] = [None] * total
    queue: asyncio.Queue[int] = asyncio.Queue(maxsize=total)
    for index in range(total):
        queue.put_nowait(index)

    completed = 0

    async def _worker() -> None:
        nonlocal completed
        while True:
            try:
                index = queue.get_nowait()
            except asyncio.QueueEmpty:
                return

            ip = addresses[index]
            try:
                slots[index] = await probe(ip, config)
            except Exception:
                logger.exception("Unexpected error probing %s", ip)
                slots[index] = ProbeRecord(ip=ip, sent=config.ping_times)

            completed += 1
            if progress_callback:
                progress_callback(completed, total, slots[index])

    pool_size = min(config.workers, total)
    logger.debug("Probing %d candidates with %d workers", total, pool_size)
    await asyncio.gather(*(_worker() for _ in range(pool_size)))

    return [record for record in slots if record is not None]
