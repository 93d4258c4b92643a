"""Ranking and delay filtering of measurement records."""

from __future__ import annotations

import math
from typing import Sequence

from edgepick.config import DEFAULT_MAX_DELAY_MS, DEFAULT_MIN_DELAY_MS
from edgepick.models import BenchmarkRecord, ProbeRecord


def sort_by_latency(records: Sequence[ProbeRecord]) -> list[ProbeRecord]:
    """Sort by loss rate, then average delay, both ascending (stable)."""
    return sorted(records, key=lambda r: (r.loss_rate, r.delay_ms))


def filter_delay(
    records: Sequence[ProbeRecord],
    min_delay_ms: float = DEFAULT_MIN_DELAY_MS,
    max_delay_ms: float = DEFAULT_MAX_DELAY_MS,
) -> list[ProbeRecord]:
    """Keep records whose delay lies in ``[min_delay_ms, max_delay_ms]``.

    *records* must already be ranked by :func:`sort_by_latency`: the scan
    stops at the first record above the upper bound.  Bounds at or beyond
    the defaults disable that side; with both disabled the input is
    returned unchanged.  Records without a single received probe have no
    delay and are dropped whenever a window is active.
    """
    lower = max(min_delay_ms, DEFAULT_MIN_DELAY_MS)
    upper = max_delay_ms if max_delay_ms < DEFAULT_MAX_DELAY_MS else math.inf
    if lower <= DEFAULT_MIN_DELAY_MS and upper == math.inf:
        return list(records)

    kept: list[ProbeRecord] = []
    for record in records:
        if record.delay_ms > upper:
            break
        if not record.is_reachable or record.delay_ms < lower:
            continue
        kept.append(record)
    return kept


def sort_by_speed(records: Sequence[BenchmarkRecord]) -> list[BenchmarkRecord]:
    """Sort by download speed, fastest first (stable)."""
    return sorted(records, key=lambda r: r.speed, reverse=True)


def final_ranking(records: Sequence[BenchmarkRecord], benchmarked: bool) -> list[BenchmarkRecord]:
    """Order the finished set: by speed if it was benchmarked, else as given."""
    if benchmarked:
        return sort_by_speed(records)
    return list(records)
