# tests/test_ranking.py
import ipaddress

import pytest

from edgepick.models import BenchmarkRecord, ProbeRecord
from edgepick.ranking import filter_delay, final_ranking, sort_by_latency, sort_by_speed

MB = 1024 * 1024


def rec(last_octet, delay_ms, received=4, sent=4):
    return ProbeRecord(
        ip=ipaddress.ip_address(f"192.0.2.{last_octet}"),
        sent=sent,
        received=received,
        delay_ms=delay_ms if received else 0.0,
    )


def test_loss_rate_bounds_and_value():
    r = rec(1, 20.0, received=3)
    assert r.loss_rate == pytest.approx(0.25)
    assert rec(2, 0.0, received=0).loss_rate == 1.0
    assert rec(3, 10.0).loss_rate == 0.0


def test_loss_rate_is_cached():
    r = rec(1, 20.0, received=1)
    assert r.loss_rate is r.loss_rate
    assert "loss_rate" in r.__dict__


@pytest.mark.parametrize("received", [-1, 5])
def test_received_out_of_range_rejected(received):
    with pytest.raises(ValueError):
        ProbeRecord(ip=ipaddress.ip_address("192.0.2.1"), sent=4, received=received)


def test_sort_by_loss_then_delay():
    records = [rec(1, 50.0, received=3), rec(2, 0.0, received=0), rec(3, 80.0), rec(4, 20.0)]
    ranked = sort_by_latency(records)
    assert [str(r.ip) for r in ranked] == ["192.0.2.4", "192.0.2.3", "192.0.2.1", "192.0.2.2"]


def test_sort_is_stable_for_equal_keys():
    records = [rec(i, 30.0) for i in range(1, 6)]
    assert sort_by_latency(records) == records


def test_default_window_is_identity():
    ranked = sort_by_latency([rec(1, 10.0), rec(2, 20000.0), rec(3, 0.0, received=0)])
    assert filter_delay(ranked) == ranked


def test_window_stops_at_upper_bound():
    ranked = sort_by_latency([rec(1, 10.0), rec(2, 30.0), rec(3, 60.0), rec(4, 90.0)])
    kept = filter_delay(ranked, min_delay_ms=0, max_delay_ms=50)
    assert [r.delay_ms for r in kept] == [10.0, 30.0]


def test_window_skips_below_lower_bound():
    ranked = sort_by_latency([rec(1, 10.0), rec(2, 30.0), rec(3, 45.0), rec(4, 90.0)])
    kept = filter_delay(ranked, min_delay_ms=20, max_delay_ms=9999)
    assert [r.delay_ms for r in kept] == [30.0, 45.0, 90.0]


def test_window_bounds_are_inclusive():
    ranked = sort_by_latency([rec(1, 20.0), rec(2, 50.0)])
    assert filter_delay(ranked, min_delay_ms=20, max_delay_ms=50) == ranked


def test_active_window_drops_unreachable():
    ranked = sort_by_latency([rec(1, 10.0), rec(2, 0.0, received=0)])
    kept = filter_delay(ranked, min_delay_ms=0, max_delay_ms=100)
    assert [str(r.ip) for r in kept] == ["192.0.2.1"]


def test_rank_and_filter_is_idempotent():
    records = [rec(1, 45.0), rec(2, 12.0, received=2), rec(3, 30.0), rec(4, 70.0)]
    once = filter_delay(sort_by_latency(records), 0, 60)
    twice = filter_delay(sort_by_latency(once), 0, 60)
    assert twice == once


def test_speed_ranking_descending():
    records = [BenchmarkRecord.from_probe(rec(i, 10.0), s * MB) for i, s in enumerate([6, 7, 2], 1)]
    assert [r.speed_mb for r in sort_by_speed(records)] == [7, 6, 2]


def test_final_ranking_keeps_latency_order_when_not_benchmarked():
    records = [BenchmarkRecord.from_probe(rec(i, d)) for i, d in enumerate([5.0, 9.0, 40.0], 1)]
    assert final_ranking(records, benchmarked=False) == records


def test_benchmark_record_owns_a_copy():
    probe = rec(1, 10.0)
    wrapped = BenchmarkRecord.from_probe(probe, 3 * MB)
    assert wrapped.probe == probe
    assert wrapped.probe is not probe
    assert wrapped.speed_mb == pytest.approx(3.0)
