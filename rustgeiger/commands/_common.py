"""Options and helpers shared by the scanning commands."""

from pathlib import Path

import click

from rustgeiger.aggregator import ScanResult
from rustgeiger.config_runtime import load_runtime_config
from rustgeiger.exceptions import MetadataError
from rustgeiger.package_managers import CargoMetadataProvider
from rustgeiger.pipeline.ui import print_warning
from rustgeiger.scan import ScanParameters, scan_graph
from rustgeiger.utils.logging import logger


def graph_options(func):
    """Attach the dependency-graph and scan options to a command."""
    options = [
        click.option(
            "--manifest-path",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="Path to Cargo.toml (default: cargo's own lookup from the current directory)",
        ),
        click.option(
            "--metadata-file",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            default=None,
            help="Read saved `cargo metadata --format-version 1` output instead of running cargo",
        ),
        click.option("--offline", is_flag=True, help="Pass --offline to cargo metadata"),
        click.option(
            "--include-tests/--exclude-tests",
            default=None,
            help="Count unsafe usage inside #[cfg(test)] modules and #[test] functions",
        ),
        click.option(
            "--include-native-ffi/--exclude-native-ffi",
            default=None,
            help='Treat Rust functions declared extern "C" as foreign definitions',
        ),
        click.option("--jobs", "-j", type=click.IntRange(min=1), default=None, help="Parallel file scans"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _pick(value, default):
    return default if value is None else value


def run_scan(
    manifest_path: Path | None,
    metadata_file: Path | None,
    offline: bool,
    include_tests: bool | None,
    include_native_ffi: bool | None,
    jobs: int | None,
) -> ScanResult:
    """Resolve the graph and scan it, applying runtime config defaults."""
    cfg = load_runtime_config()
    provider = CargoMetadataProvider(
        manifest_path=manifest_path,
        metadata_file=metadata_file,
        timeout=cfg["timeouts"]["cargo_metadata"],
        offline=offline,
        skip_dirs=tuple(cfg["scan"]["skip_dirs"]),
    )
    try:
        graph = provider.load()
    except MetadataError as e:
        stderr = e.details.get("stderr")
        raise click.ClickException(f"{e}\n{stderr}" if stderr else str(e)) from e

    params = ScanParameters(
        include_tests=_pick(include_tests, cfg["scan"]["include_tests"]),
        include_native_fns=_pick(include_native_ffi, cfg["scan"]["include_native_ffi"]),
        jobs=_pick(jobs, cfg["limits"]["jobs"]),
        max_file_size=cfg["limits"]["max_file_size"],
    )
    logger.debug(f"Scan parameters: {params}")
    result = scan_graph(graph, params)

    for failure in result.failures:
        print_warning(f"{failure.kind} error, skipped {failure.path}: {failure.diagnostic}")
    return result
