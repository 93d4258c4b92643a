"""Data models for edgepick."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field, replace
from functools import cached_property
from typing import Optional, Union

from edgepick.config import (
    BYTES_PER_MB,
    DEFAULT_DOWNLOAD_TIME,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_IP_FILE,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_MIN_DELAY_MS,
    DEFAULT_OUTPUT,
    DEFAULT_PING_TIMES,
    DEFAULT_PORT,
    DEFAULT_PRINT_NUM,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_STATUS_CODES,
    DEFAULT_TEST_COUNT,
    DEFAULT_URL,
    DEFAULT_WORKERS,
    MAX_WORKERS,
)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


@dataclass(frozen=True)
class ProbeRecord:
    """Latency probe outcome for one candidate address."""

    ip: IPAddress
    sent: int
    received: int = 0
    delay_ms: float = 0.0  # Mean over received probes only
    colo: Optional[str] = None  # Region identifier (application probes)

    def __post_init__(self) -> None:
        if self.sent <= 0:
            raise ValueError(f"sent must be positive, got {self.sent}")
        if not 0 <= self.received <= self.sent:
            raise ValueError(
                f"received must be within [0, {self.sent}], got {self.received}"
            )

    @cached_property
    def loss_rate(self) -> float:
        return (self.sent - self.received) / self.sent

    @property
    def is_reachable(self) -> bool:
        return self.received > 0


@dataclass
class BenchmarkRecord:
    """A probe record with an attached download speed measurement."""

    probe: ProbeRecord
    speed: float = 0.0  # bytes/second

    @classmethod
    def from_probe(cls, record: ProbeRecord, speed: float = 0.0) -> BenchmarkRecord:
        return cls(probe=replace(record), speed=speed)

    @property
    def ip(self) -> IPAddress:
        return self.probe.ip

    @property
    def sent(self) -> int:
        return self.probe.sent

    @property
    def received(self) -> int:
        return self.probe.received

    @property
    def delay_ms(self) -> float:
        return self.probe.delay_ms

    @property
    def loss_rate(self) -> float:
        return self.probe.loss_rate

    @property
    def speed_mb(self) -> float:
        return self.speed / BYTES_PER_MB


@dataclass(frozen=True)
class MeasurementConfig:
    """Configuration for a measurement run.

    Built once at startup and handed to every stage; nothing downstream
    reads module-level state.
    """

    workers: int = DEFAULT_WORKERS
    ping_times: int = DEFAULT_PING_TIMES
    test_count: int = DEFAULT_TEST_COUNT
    download_time: float = DEFAULT_DOWNLOAD_TIME
    port: int = DEFAULT_PORT
    url: str = DEFAULT_URL
    httping: bool = False
    status_codes: tuple[int, ...] = DEFAULT_STATUS_CODES
    colos: frozenset[str] = frozenset()  # empty = any region
    min_delay_ms: float = DEFAULT_MIN_DELAY_MS
    max_delay_ms: float = DEFAULT_MAX_DELAY_MS
    min_speed_mb: float = 0.0
    ip_file: Optional[str] = DEFAULT_IP_FILE
    ip_text: str = ""
    test_all: bool = False
    disable_download: bool = False
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    print_num: int = DEFAULT_PRINT_NUM
    output_file: Optional[str] = DEFAULT_OUTPUT
    verbose: bool = False
    quiet: bool = False
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.ping_times < 1:
            raise ValueError("ping_times must be at least 1")
        if self.download_time <= 0:
            raise ValueError("download_time must be positive")
        # Frozen: normalise through object.__setattr__
        object.__setattr__(self, "workers", max(1, min(self.workers, MAX_WORKERS)))
        object.__setattr__(self, "test_count", max(0, self.test_count))
        object.__setattr__(self, "colos", frozenset(c.upper() for c in self.colos))

    @property
    def min_speed_bytes(self) -> float:
        return self.min_speed_mb * BYTES_PER_MB


@dataclass
class FullResult:
    """Complete measurement run results."""

    records: list[BenchmarkRecord] = field(default_factory=list)
    config: Optional[MeasurementConfig] = None
    timestamp: Optional[str] = None
