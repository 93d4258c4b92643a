"""Candidate address expansion.

Turns CIDR ranges and literal addresses into the list of candidates the
latency stage measures.  IPv4 networks are walked one /24 block at a time
and, unless every address is requested, a single address is drawn from
each block.  IPv6 prefixes contribute one sampled address each.

Public API:
    load_ranges  -- read range specifications from the configured source
    expand       -- turn range specifications into candidate addresses
    seed_random  -- seed the shared random source once at startup
"""

from __future__ import annotations

import ipaddress
import logging
import random
from pathlib import Path
from typing import Iterable, Optional, Union

from edgepick.models import IPAddress, MeasurementConfig

logger = logging.getLogger(__name__)

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

# Shared by every expansion in the process; seeded once via seed_random().
_rng = random.Random()


class AddressSourceError(ValueError):
    """No usable address data could be read."""


def seed_random(seed: Optional[int] = None) -> random.Random:
    """Seed the process-wide random source and return it."""
    _rng.seed(seed)
    return _rng


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_ranges(config: MeasurementConfig) -> list[IPNetwork]:
    """Return the parsed range list from inline text or the address file.

    Inline ``ip_text`` (comma separated) takes precedence over ``ip_file``.

    Raises
    ------
    AddressSourceError
        When neither source yields a usable entry, the file cannot be read,
        or an entry is not a valid address or network.
    """
    if config.ip_text.strip():
        entries = config.ip_text.split(",")
        source = "--ip"
    elif config.ip_file:
        path = Path(config.ip_file)
        try:
            entries = path.read_text(encoding="utf-8").splitlines()
        except OSError as exc:
            raise AddressSourceError(
                f"Cannot read address file {config.ip_file!r}: {exc.strerror or exc}"
            ) from exc
        source = str(path)
    else:
        raise AddressSourceError("No address source given (use --file or --ip)")

    ranges = parse_ranges(entries)
    if not ranges:
        raise AddressSourceError(f"No addresses found in {source}")
    logger.debug("Loaded %d ranges from %s", len(ranges), source)
    return ranges


def parse_ranges(entries: Iterable[str]) -> list[IPNetwork]:
    """Parse textual entries, skipping blanks and ``#`` comments."""
    ranges: list[IPNetwork] = []
    for raw in entries:
        entry = raw.split("#", 1)[0].strip()
        if not entry:
            continue
        try:
            # Bare addresses become /32 or /128 networks
            ranges.append(ipaddress.ip_network(entry, strict=False))
        except ValueError as exc:
            raise AddressSourceError(f"Invalid address or range {entry!r}: {exc}") from exc
    return ranges


# ---------------------------------------------------------------------------
# Expansion
# ---------------------------------------------------------------------------

def expand(
    ranges: Iterable[IPNetwork],
    test_all: bool = False,
    rng: Optional[random.Random] = None,
) -> list[IPAddress]:
    """Expand *ranges* into candidate addresses, preserving input order."""
    rng = rng or _rng
    candidates: list[IPAddress] = []
    for network in ranges:
        if network.num_addresses == 1:
            candidates.append(network.network_address)
        elif network.version == 4:
            candidates.extend(_expand_ipv4(network, test_all, rng))
        else:
            candidates.append(_sample(network, rng))
    return candidates


def _expand_ipv4(
    network: ipaddress.IPv4Network,
    test_all: bool,
    rng: random.Random,
) -> Iterable[ipaddress.IPv4Address]:
    if test_all:
        # Includes the network and broadcast addresses
        yield from network
        return

    if network.prefixlen >= 24:
        yield _sample(network, rng)
        return

    for block in network.subnets(new_prefix=24):
        yield _sample(block, rng)


def _sample(network: IPNetwork, rng: random.Random) -> IPAddress:
    """Pick one address uniformly from the whole of *network*."""
    offset = rng.randrange(network.num_addresses)
    return network.network_address + offset
