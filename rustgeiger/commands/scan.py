"""Scan a crate's dependency graph for unsafe usage."""

import sys

import click

from rustgeiger.commands._common import graph_options, run_scan
from rustgeiger.pipeline.ui import console, print_header
from rustgeiger.report import FORBIDS_MARK, UNSAFE_MARK, CLEAN_MARK, build_risk_table, scan_result_json
from rustgeiger.utils.error_handler import handle_exceptions


@click.command("scan")
@handle_exceptions
@graph_options
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
def scan(manifest_path, metadata_file, offline, include_tests, include_native_ffi, jobs, output_format):
    """Count unsafe functions, expressions, impls, traits and methods per package.

    Every package reachable from the root package is scanned. Files that
    cannot be read or parsed are listed as warnings and skipped; the exit
    code is 1 when no file could be scanned at all.

    \b
    EXAMPLES:
      rgeiger scan
      rgeiger scan --manifest-path path/to/Cargo.toml --include-tests
      rgeiger scan --metadata-file metadata.json --format json
    """
    result = run_scan(manifest_path, metadata_file, offline, include_tests, include_native_ffi, jobs)

    if output_format == "json":
        console.print(scan_result_json(result), markup=False, highlight=False, emoji=False, soft_wrap=True)
    else:
        print_header("UNSAFE USAGE")
        console.print(build_risk_table(result.report))
        console.print(
            f"[dim]{FORBIDS_MARK}[/dim] = every crate root has #!\\[forbid(unsafe_code)]   "
            f"[dim]{CLEAN_MARK}[/dim] = no unsafe found, not forbidden   "
            f"[dim]{UNSAFE_MARK}[/dim] = unsafe used",
            highlight=False,
        )

    if result.nothing_scanned:
        sys.exit(1)
