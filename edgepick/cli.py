"""CLI entry point and orchestration for edgepick."""

from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timezone
from typing import Optional

import click

from edgepick import __version__
from edgepick.colo import parse_colos
from edgepick.config import (
    DEFAULT_DOWNLOAD_TIME,
    DEFAULT_IP_FILE,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_MIN_DELAY_MS,
    DEFAULT_OUTPUT,
    DEFAULT_PING_TIMES,
    DEFAULT_PORT,
    DEFAULT_PRINT_NUM,
    DEFAULT_STATUS_CODES,
    DEFAULT_TEST_COUNT,
    DEFAULT_URL,
    DEFAULT_WORKERS,
    MAX_WORKERS,
)
from edgepick.models import FullResult, MeasurementConfig


@click.command()
@click.option("-n", "--workers", default=DEFAULT_WORKERS, help=f"Concurrent latency probes (max {MAX_WORKERS})", show_default=True)
@click.option("-t", "--times", "ping_times", default=DEFAULT_PING_TIMES, help="Latency probes per address", show_default=True)
@click.option("--dn", "--test-count", "test_count", default=DEFAULT_TEST_COUNT, help="Addresses to download-test after ranking", show_default=True)
@click.option("--dt", "--download-time", "download_time", default=DEFAULT_DOWNLOAD_TIME, help="Max seconds per download test", show_default=True)
@click.option("--tp", "--port", "port", default=DEFAULT_PORT, help="Port for latency and download tests", show_default=True)
@click.option("--url", default=DEFAULT_URL, help="Test URL for HTTP probes and downloads", show_default=True)
@click.option("--httping", is_flag=True, help="Probe latency with HTTP requests instead of TCP connects")
@click.option("--httping-code", "status_codes", type=int, multiple=True, help="Accepted HTTP status code (repeatable) [default: 200 301 302]")
@click.option("--colo", default="", help="Comma-separated accepted regions, e.g. HKG,LAX (--httping only)")
@click.option("--tl", "--max-delay", "max_delay", default=DEFAULT_MAX_DELAY_MS, help="Upper bound of average delay in ms", show_default=True)
@click.option("--tll", "--min-delay", "min_delay", default=DEFAULT_MIN_DELAY_MS, help="Lower bound of average delay in ms", show_default=True)
@click.option("--sl", "--min-speed", "min_speed", default=0.0, help="Lower bound of download speed in MB/s", show_default=True)
@click.option("-p", "--print-num", default=DEFAULT_PRINT_NUM, help="Results to display (0 = none)", show_default=True)
@click.option("-f", "--file", "ip_file", default=DEFAULT_IP_FILE, help="File of addresses/CIDR ranges, one per line", show_default=True)
@click.option("--ip", "ip_text", default="", help="Comma-separated addresses/CIDR ranges (overrides --file)")
@click.option("-o", "--output", default=DEFAULT_OUTPUT, help='CSV result file ("" to skip)', show_default=True)
@click.option("--dd", "--disable-download", "disable_download", is_flag=True, help="Skip download tests, rank by latency")
@click.option("--allip", "test_all", is_flag=True, help="Test every IPv4 address instead of one per /24")
@click.option("--seed", type=int, default=None, help="Seed for address sampling")
@click.option("-q", "--quiet", is_flag=True, help="Suppress progress output")
@click.option("-v", "--verbose", is_flag=True, help="Log per-probe details")
@click.version_option(version=__version__)
def main(
    workers: int,
    ping_times: int,
    test_count: int,
    download_time: float,
    port: int,
    url: str,
    httping: bool,
    status_codes: tuple[int, ...],
    colo: str,
    max_delay: float,
    min_delay: float,
    min_speed: float,
    print_num: int,
    ip_file: str,
    ip_text: str,
    output: str,
    disable_download: bool,
    test_all: bool,
    seed: Optional[int],
    quiet: bool,
    verbose: bool,
) -> None:
    """edgepick: find the fastest edge addresses of an anycast CDN.

    Probes latency to every candidate address, ranks them by loss and
    delay, then download-tests the best ones and ranks by speed.
    """
    from edgepick.display import render_error, render_warning, setup_logging

    setup_logging(verbose)

    try:
        config = MeasurementConfig(
            workers=workers,
            ping_times=ping_times,
            test_count=test_count,
            download_time=download_time,
            port=port,
            url=url,
            httping=httping,
            status_codes=status_codes or DEFAULT_STATUS_CODES,
            colos=parse_colos(colo),
            min_delay_ms=min_delay,
            max_delay_ms=max_delay,
            min_speed_mb=min_speed,
            ip_file=ip_file or None,
            ip_text=ip_text,
            test_all=test_all,
            disable_download=disable_download,
            print_num=print_num,
            output_file=output.strip() or None,
            verbose=verbose,
            quiet=quiet,
            seed=seed,
        )
    except ValueError as exc:
        render_error(str(exc))
        sys.exit(2)

    if not quiet:
        if config.colos and not config.httping:
            render_warning("--colo only applies with --httping, ignoring it")
        if config.min_speed_mb > 0 and config.max_delay_ms >= DEFAULT_MAX_DELAY_MS:
            render_warning(
                "--sl without --tl may download-test many addresses "
                "before --dn of them reach the speed floor"
            )

    from edgepick.addresses import AddressSourceError, expand, load_ranges, seed_random

    seed_random(config.seed)
    try:
        ranges = load_ranges(config)
    except AddressSourceError as exc:
        render_error(str(exc))
        sys.exit(1)
    addresses = expand(ranges, config.test_all)

    try:
        result = asyncio.run(_run(addresses, config))
    except KeyboardInterrupt:
        if not quiet:
            from edgepick.display import console
            console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(130)

    # Output
    if not _handle_output(result, config):
        sys.exit(1)


async def _run(addresses: list, config: MeasurementConfig) -> FullResult:
    """Main async orchestration: probe, rank, filter, benchmark, rank."""
    from edgepick.bench import benchmark, skip_benchmark
    from edgepick.display import ProgressTracker, console
    from edgepick.engine import probe_all
    from edgepick.ranking import filter_delay, final_ranking, sort_by_latency

    show_progress = not config.quiet
    mode = "HTTP" if config.httping else "TCP"

    # ---- Latency ----
    progress = None
    if show_progress:
        console.print(
            f"[bold]Probing {len(addresses)} addresses ({mode}, port {config.port}, "
            f"{config.ping_times} probes each, {config.workers} workers)...[/bold]"
        )
        progress = ProgressTracker("Latency", len(addresses))
        progress.start()

    reachable = 0

    def on_probe(completed: int, total: int, record) -> None:
        nonlocal reachable
        if record is not None and record.is_reachable:
            reachable += 1
        if progress:
            progress.update(completed, f"{reachable} reachable")

    try:
        probed = await probe_all(addresses, config, progress_callback=on_probe)
    finally:
        if progress:
            progress.finish()

    ranked = filter_delay(sort_by_latency(probed), config.min_delay_ms, config.max_delay_ms)

    # ---- Throughput ----
    if config.disable_download:
        records = skip_benchmark(ranked)
    else:
        target = min(config.test_count, len(ranked))
        bench_progress = None
        if show_progress:
            console.print(
                f"\n[bold]Download-testing up to {target} addresses "
                f"(>= {config.min_speed_mb:.2f} MB/s, {config.download_time:g}s each)...[/bold]"
            )
            bench_progress = ProgressTracker("Download", target)
            bench_progress.start()

        def on_bench(qualifying: int, total: int, record) -> None:
            if bench_progress:
                bench_progress.update(qualifying, f"{record.ip} {record.speed_mb:.2f} MB/s")

        try:
            records = await benchmark(ranked, config, progress_callback=on_bench)
        finally:
            if bench_progress:
                bench_progress.finish()

    return FullResult(
        records=final_ranking(records, benchmarked=not config.disable_download),
        config=config,
        timestamp=datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )


def _handle_output(result: FullResult, config: MeasurementConfig) -> bool:
    """Write the CSV file and print the table.  Returns False on write failure."""
    from edgepick.display import render_error, render_results
    from edgepick.export import export_csv, write_to_file

    written: Optional[str] = None
    ok = True
    if config.output_file and result.records:
        try:
            write_to_file(export_csv(result.records), config.output_file)
            written = config.output_file
        except OSError as exc:
            render_error(f"Cannot write {config.output_file}: {exc.strerror or exc}")
            ok = False

    render_results(result.records, config.print_num, output_file=written)
    return ok


if __name__ == "__main__":
    main()
