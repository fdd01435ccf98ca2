"""Export foreign-function definitions and their call sites as JSON."""

import sys

import click

from rustgeiger.commands._common import graph_options, run_scan
from rustgeiger.pipeline.ui import console
from rustgeiger.report import foreign_definitions_records, to_json
from rustgeiger.utils.error_handler import handle_exceptions


@click.command("ffi")
@handle_exceptions
@graph_options
@click.option("--package", "-p", default=None, help="Only report definitions found in this package")
def ffi(manifest_path, metadata_file, offline, include_tests, include_native_ffi, jobs, package):
    """List foreign (extern) function definitions with every call site.

    Output is a JSON array with one entry per definition: the owning package,
    the definition (file, line, column, name, pointer arguments, argument
    types) and the calls that reference it with their calling function.
    """
    result = run_scan(manifest_path, metadata_file, offline, include_tests, include_native_ffi, jobs)
    records = foreign_definitions_records(result.report, package)
    console.print(to_json(records), markup=False, highlight=False, emoji=False, soft_wrap=True)

    if result.nothing_scanned:
        sys.exit(1)
