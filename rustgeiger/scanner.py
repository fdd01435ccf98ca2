"""Per-file scanning: read, decode, parse, then run both passes."""

from pathlib import Path

from rustgeiger.ast_extractors import find_foreign_definitions, find_unsafe_usage
from rustgeiger.ast_parser import parse_source
from rustgeiger.exceptions import FileAnalysisError, FileDecodeError, FileIOError
from rustgeiger.metrics import ForeignBoundaryDefinition, UnitMetrics
from rustgeiger.package_id import PackageId

ForeignDefinitions = dict[str, ForeignBoundaryDefinition]


def load_file(path: Path, max_size: int | None = None) -> str:
    """Read a source file as UTF-8 text.

    Files larger than max_size bytes are rejected without being read.

    Raises:
        FileIOError: the file could not be read
        FileDecodeError: the bytes are not UTF-8
    """
    try:
        if max_size is not None:
            size = Path(path).stat().st_size
            if size > max_size:
                raise FileIOError(path, f"file is {size} bytes, limit is {max_size}")
        raw = Path(path).read_bytes()
    except OSError as e:
        raise FileIOError(path, str(e)) from e
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise FileDecodeError(path, str(e)) from e


def find_foreign_in_string(
    src: str,
    file_path: str,
    include_native_fns: bool = False,
) -> ForeignDefinitions:
    """Pass 1 over source text."""
    tree = parse_source(src, file_path)
    return find_foreign_definitions(tree.root_node, file_path, include_native_fns, src.encode("utf-8"))


def find_foreign_in_file(path: Path, include_native_fns: bool = False) -> ForeignDefinitions:
    return find_foreign_in_string(load_file(path), str(path), include_native_fns)


def find_unsafe_in_string(
    src: str,
    file_path: str,
    foreign_definitions: ForeignDefinitions | None = None,
    include_tests: bool = True,
    package_id: PackageId | None = None,
) -> UnitMetrics:
    """Pass 2 over source text."""
    tree = parse_source(src, file_path)
    return find_unsafe_usage(
        tree.root_node,
        file_path,
        foreign_definitions,
        package_id,
        include_tests,
        src.encode("utf-8"),
    )


def find_unsafe_in_file(
    path: Path,
    foreign_definitions: ForeignDefinitions | None = None,
    include_tests: bool = True,
    package_id: PackageId | None = None,
) -> UnitMetrics:
    return find_unsafe_in_string(load_file(path), str(path), foreign_definitions, include_tests, package_id)


def scan_string(
    src: str,
    file_path: str,
    package_id: PackageId | None = None,
    include_tests: bool = True,
    include_native_fns: bool = False,
) -> UnitMetrics:
    """Both passes over a single parse of the text."""
    tree = parse_source(src, file_path)
    source = src.encode("utf-8")
    definitions = find_foreign_definitions(tree.root_node, file_path, include_native_fns, source)
    return find_unsafe_usage(tree.root_node, file_path, definitions, package_id, include_tests, source)


def scan_unit(
    path: Path,
    package_id: PackageId | None = None,
    include_tests: bool = True,
    include_native_fns: bool = False,
    max_file_size: int | None = None,
) -> UnitMetrics:
    """Scan one compilation unit.

    Raises:
        ScanFileError: I/O, decode, syntax or analysis failure for this file only
    """
    src = load_file(path, max_file_size)
    try:
        return scan_string(src, str(path), package_id, include_tests, include_native_fns)
    except RecursionError as e:
        raise FileAnalysisError(path, "syntax tree nested too deeply to analyze") from e
