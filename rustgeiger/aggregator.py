"""Fold per-file metrics into per-package metrics and into the graph report.

All merges are commutative and associative, so the order in which files and
packages finish does not change the report.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field

from rustgeiger.exceptions import ScanFileError
from rustgeiger.metrics import PackageMetrics, UnitMetrics
from rustgeiger.package_id import PackageId

Report = dict[PackageId, PackageMetrics]


@dataclass
class ScanResult:
    """Report for every scanned package plus the files that could not be scanned."""

    report: Report = field(default_factory=dict)
    failures: list[ScanFileError] = field(default_factory=list)
    scanned_units: int = 0

    @property
    def nothing_scanned(self) -> bool:
        """At least one unit failed and none was scanned successfully."""
        return self.scanned_units == 0 and bool(self.failures)

    def to_dict(self) -> dict:
        return {
            "packages": [
                {"package_id": package_id.to_dict(), "metrics": metrics.to_dict()}
                for package_id, metrics in self.report.items()
            ],
            "failures": [failure.to_dict() for failure in self.failures],
            "scanned_units": self.scanned_units,
        }


def fold_units(units: Iterable[tuple[str, UnitMetrics]]) -> PackageMetrics:
    """Merge one package's units; zero units yields all-zero metrics."""
    metrics = PackageMetrics()
    for path, unit in units:
        metrics.add_unit(path, unit)
    return metrics


def merge_reports(left: Report, right: Report) -> Report:
    merged: Report = {}
    for package_id in sorted(set(left) | set(right)):
        if package_id in left and package_id in right:
            merged[package_id] = left[package_id].merge(right[package_id])
        elif package_id in left:
            merged[package_id] = left[package_id]
        else:
            merged[package_id] = right[package_id]
    return merged


class ReportAccumulator:
    """Thread-safe fold target for one scan.

    One instance per scan; nothing is shared between scans.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._report: Report = {}
        self._failures: list[ScanFileError] = []
        self._scanned_units = 0

    def register_package(self, package_id: PackageId, entry_points: Iterable[str] = ()) -> None:
        with self._lock:
            metrics = self._report.setdefault(package_id, PackageMetrics())
            metrics.entry_points = tuple(sorted(set(metrics.entry_points) | set(entry_points)))

    def add_unit(self, package_id: PackageId, path: str, unit: UnitMetrics) -> None:
        with self._lock:
            self._report.setdefault(package_id, PackageMetrics()).add_unit(path, unit)
            self._scanned_units += 1

    def add_failure(self, error: ScanFileError) -> None:
        with self._lock:
            self._failures.append(error)

    def finish(self) -> ScanResult:
        with self._lock:
            report = {package_id: self._report[package_id] for package_id in sorted(self._report)}
            failures = sorted(self._failures, key=lambda e: (str(e.path), e.kind))
        return ScanResult(report=report, failures=failures, scanned_units=self._scanned_units)
