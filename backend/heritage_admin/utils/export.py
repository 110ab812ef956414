"""CSV export of report sections."""

import csv
import io
from typing import Any, Iterable


def rows_to_csv(rows: Iterable[dict[str, Any]], columns: list[str] | None = None) -> str:
    rows = list(rows)
    if columns is None:
        columns = []
        for row in rows:
            for key in row:
                if key not in columns:
                    columns.append(key)

    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=columns, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({k: "" if row.get(k) is None else row.get(k) for k in columns})
    return buf.getvalue()


def report_to_csv(report: dict[str, Any]) -> str:
    """Flatten a report into CSV: scalar totals first, then one block per list section."""
    scalars = {k: v for k, v in report.items() if not isinstance(v, (list, dict))}
    parts = [rows_to_csv([{"metric": k, "value": v} for k, v in scalars.items()], ["metric", "value"])]
    for key, value in report.items():
        if isinstance(value, list) and value and isinstance(value[0], dict):
            parts.append(f"# {key}\n" + rows_to_csv(value))
    return "\n".join(parts)
