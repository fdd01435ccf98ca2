"""Render scan results: the risk table and the foreign-call record set."""

import json
from typing import Any

from rich.table import Table

from rustgeiger.aggregator import Report, ScanResult
from rustgeiger.metrics import Count, CounterBlock, PackageMetrics

_COLUMNS = (
    ("functions", "Functions"),
    ("exprs", "Expressions"),
    ("item_impls", "Impls"),
    ("item_traits", "Traits"),
    ("methods", "Methods"),
)

FORBIDS_MARK = "forbids"
UNSAFE_MARK = "!"
CLEAN_MARK = "?"


def _cell(count: Count) -> str:
    return f"{count.unsafe}/{count.total}"


def risk_level(metrics: PackageMetrics) -> str:
    """forbids, unsafe or clean; a crate whose roots forbid unsafe code ranks first."""
    if metrics.crate_forbids_unsafe:
        return "forbids"
    if metrics.counters.has_unsafe():
        return "unsafe"
    return "clean"


_LEVEL_STYLES = {"forbids": "forbids", "unsafe": "unsafe", "clean": ""}
_LEVEL_MARKS = {"forbids": FORBIDS_MARK, "unsafe": UNSAFE_MARK, "clean": CLEAN_MARK}


def risk_style(metrics: PackageMetrics) -> str:
    """Theme style (see GEIGER_THEME) for a package row."""
    return _LEVEL_STYLES[risk_level(metrics)]


def risk_mark(metrics: PackageMetrics) -> str:
    return _LEVEL_MARKS[risk_level(metrics)]


def build_risk_table(report: Report) -> Table:
    """One row per package: unsafe/total per category, FFI calls, and a risk marker."""
    table = Table(title="Unsafe usage (unsafe/total)", header_style="bold")
    for _, title in _COLUMNS:
        table.add_column(title, justify="right")
    table.add_column("FFI calls", justify="right")
    table.add_column("", justify="center")
    table.add_column("Package")

    for package_id, metrics in report.items():
        row = [_cell(getattr(metrics.counters, name)) for name, _ in _COLUMNS]
        row.append(str(metrics.foreign_call_count))
        row.append(risk_mark(metrics))
        row.append(str(package_id))
        table.add_row(*row, style=risk_style(metrics) or None)
    return table


def summarize(report: Report) -> dict[str, Any]:
    """Totals across the whole report."""
    totals = CounterBlock()
    for metrics in report.values():
        totals = totals + metrics.counters
    return {
        "packages": len(report),
        "packages_using_unsafe": sum(1 for m in report.values() if m.counters.has_unsafe()),
        "packages_forbidding_unsafe": sum(1 for m in report.values() if m.crate_forbids_unsafe),
        "foreign_calls": sum(m.foreign_call_count for m in report.values()),
        "counters": totals.to_dict(),
    }


def foreign_definitions_records(report: Report, package: str | None = None) -> list[dict[str, Any]]:
    """Flat record set: one entry per foreign definition with every call site.

    Args:
        report: Scan report
        package: Restrict to packages with this name (None = all packages)
    """
    records = []
    for package_id, metrics in report.items():
        if package is not None and package_id.name != package:
            continue
        for definition, calls in metrics.foreign_calls.items():
            records.append({
                "package_id": str(package_id),
                "extern_definition": definition.to_dict(),
                "extern_calls": [call.to_dict() for call in calls],
            })
    return records


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2)


def scan_result_json(result: ScanResult) -> str:
    payload = result.to_dict()
    payload["summary"] = summarize(result.report)
    return to_json(payload)
