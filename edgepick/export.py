"""CSV export for measurement results."""

from __future__ import annotations

import csv
import io
from typing import Sequence

from edgepick.config import CSV_HEADER
from edgepick.models import BenchmarkRecord


def format_row(record: BenchmarkRecord) -> list[str]:
    """Render one record as the six output columns."""
    return [
        str(record.ip),
        str(record.sent),
        str(record.received),
        f"{record.loss_rate:.2f}",
        f"{record.delay_ms:.2f}",
        f"{record.speed_mb:.2f}",
    ]


def export_csv(records: Sequence[BenchmarkRecord]) -> str:
    """Export results as CSV string (header plus one row per address)."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_HEADER)
    writer.writerows(format_row(r) for r in records)
    return output.getvalue()


def write_to_file(content: str, filepath: str) -> None:
    """Write export content to a file."""
    with open(filepath, "w", newline="", encoding="utf-8") as f:
        f.write(content)
