# tests/test_addresses.py
import ipaddress
import random

import pytest

from edgepick.addresses import AddressSourceError, expand, load_ranges, parse_ranges
from edgepick.models import MeasurementConfig


def test_sampled_slash24_returns_one_address_in_block():
    """One address per /24 when not testing every address."""
    net = ipaddress.ip_network("203.0.113.0/24")
    result = expand(parse_ranges(["203.0.113.0/24"]), rng=random.Random(1))
    assert len(result) == 1
    assert result[0] in net


def test_sampling_reaches_every_last_octet():
    """Across many seeds the sample covers the full 0..255 range."""
    ranges = parse_ranges(["203.0.113.0/24"])
    seen = set()
    for seed in range(5000):
        (addr,) = expand(ranges, rng=random.Random(seed))
        seen.add(int(addr) & 0xFF)
    assert seen == set(range(256))


def test_test_all_enumerates_whole_block():
    result = expand(parse_ranges(["203.0.113.0/24"]), test_all=True)
    assert len(result) == 256
    assert result[0] == ipaddress.ip_address("203.0.113.0")
    assert result[-1] == ipaddress.ip_address("203.0.113.255")


def test_wide_ipv4_range_samples_each_slash24_in_order():
    result = expand(parse_ranges(["198.51.100.0/22"]), rng=random.Random(7))
    assert [ipaddress.ip_network(f"{a}/24", strict=False) for a in result] == list(
        ipaddress.ip_network("198.51.100.0/22").subnets(new_prefix=24)
    )


def test_narrow_ipv4_range_stays_inside_network():
    net = ipaddress.ip_network("192.0.2.128/26")
    for seed in range(50):
        (addr,) = expand([net], rng=random.Random(seed))
        assert addr in net


def test_literal_addresses_pass_through_in_input_order():
    result = expand(parse_ranges(["192.0.2.9", "2606:4700::1111", "1.1.1.1"]))
    assert [str(a) for a in result] == ["192.0.2.9", "2606:4700::1111", "1.1.1.1"]


def test_ipv6_prefix_yields_single_sample_even_with_test_all():
    net = ipaddress.ip_network("2606:4700::/32")
    result = expand([net], test_all=True, rng=random.Random(3))
    assert len(result) == 1
    assert result[0] in net


def test_parse_skips_blank_lines_and_comments():
    ranges = parse_ranges(["", "  # cloudflare", "1.0.0.0/24  # first", "   "])
    assert ranges == [ipaddress.ip_network("1.0.0.0/24")]


def test_parse_rejects_garbage():
    with pytest.raises(AddressSourceError):
        parse_ranges(["not-an-ip"])


def test_load_prefers_inline_text(tmp_path):
    ip_file = tmp_path / "ip.txt"
    ip_file.write_text("10.0.0.0/24\n")
    config = MeasurementConfig(ip_file=str(ip_file), ip_text="1.1.1.1, 1.0.0.0/24")
    assert load_ranges(config) == [
        ipaddress.ip_network("1.1.1.1/32"),
        ipaddress.ip_network("1.0.0.0/24"),
    ]


def test_load_reads_file(tmp_path):
    ip_file = tmp_path / "ip.txt"
    ip_file.write_text("173.245.48.0/20\n103.21.244.0/22\n")
    config = MeasurementConfig(ip_file=str(ip_file))
    assert len(load_ranges(config)) == 2


def test_load_missing_file_is_fatal(tmp_path):
    config = MeasurementConfig(ip_file=str(tmp_path / "missing.txt"))
    with pytest.raises(AddressSourceError):
        load_ranges(config)


def test_load_without_any_source_is_fatal():
    with pytest.raises(AddressSourceError):
        load_ranges(MeasurementConfig(ip_file=None))


def test_load_empty_file_is_fatal(tmp_path):
    ip_file = tmp_path / "ip.txt"
    ip_file.write_text("# nothing here\n\n")
    with pytest.raises(AddressSourceError):
        load_ranges(MeasurementConfig(ip_file=str(ip_file)))
