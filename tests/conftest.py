"""Pytest configuration and fixtures."""
import pytest
from tree_sitter_language_pack import get_parser

from rustgeiger.package_id import PackageId, Source, Version


@pytest.fixture
def rust_parser():
    """Create a Rust tree-sitter parser."""
    return get_parser("rust")


@pytest.fixture
def parse_rust(rust_parser):
    """Parse Rust code and return (root node, source bytes)."""

    def _parse(code: str):
        source = code.encode("utf-8")
        tree = rust_parser.parse(source)
        return tree.root_node, source

    return _parse


@pytest.fixture
def registry_pkg():
    return PackageId("libc", Version.parse("0.2.150"), Source.registry("https://github.com/rust-lang/crates.io-index"))


@pytest.fixture
def path_pkg():
    return PackageId("libc", Version.parse("0.2.150"), Source.path("/work/vendor/libc"))
