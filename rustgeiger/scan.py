"""Scan every compilation unit of a dependency graph and assemble the report."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path

from rustgeiger.aggregator import ReportAccumulator, ScanResult
from rustgeiger.exceptions import ScanFileError
from rustgeiger.package_id import PackageId
from rustgeiger.package_managers.base import DependencyGraph
from rustgeiger.scanner import scan_unit
from rustgeiger.utils.logging import logger


@dataclass(frozen=True)
class ScanParameters:
    """Options that change what a scan counts.

    Attributes:
        include_tests: Count code in #[cfg(test)] modules and #[test] functions
        include_native_fns: Treat Rust functions declared `extern "C"` as foreign definitions
        jobs: Maximum number of files scanned concurrently
        max_file_size: Files larger than this many bytes are skipped (None: no limit)
    """

    include_tests: bool = False
    include_native_fns: bool = False
    jobs: int = 4
    max_file_size: int | None = None


def scan_graph(graph: DependencyGraph, params: ScanParameters | None = None) -> ScanResult:
    """Scan all packages of the graph.

    A file that cannot be read, decoded or parsed is recorded as a failure and
    skipped; it never stops the other files or packages.
    """
    params = params or ScanParameters()
    accumulator = ReportAccumulator()

    work: list[tuple[PackageId, Path]] = []
    for package_id in graph.packages:
        accumulator.register_package(package_id, [str(path) for path in graph.entry_points.get(package_id, [])])
        work.extend((package_id, path) for path in graph.files.get(package_id, []))

    logger.info(f"Scanning {len(work)} files in {len(graph.packages)} packages with {params.jobs} workers")

    def process_file(package_id: PackageId, path: Path) -> None:
        unit = scan_unit(
            path,
            package_id=package_id,
            include_tests=params.include_tests,
            include_native_fns=params.include_native_fns,
            max_file_size=params.max_file_size,
        )
        accumulator.add_unit(package_id, str(path), unit)

    with ThreadPoolExecutor(max_workers=max(1, params.jobs)) as executor:
        futures = {executor.submit(process_file, package_id, path): path for package_id, path in work}

        for future in as_completed(futures):
            try:
                future.result()
            except ScanFileError as e:
                logger.warning(f"Skipping {e.path}: {e.diagnostic}")
                accumulator.add_failure(e)

    result = accumulator.finish()
    logger.info(f"Scan finished: {len(result.report)} packages, {len(result.failures)} failed files")
    return result
