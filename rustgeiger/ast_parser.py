"""Rust parsing via tree-sitter.

Parsers are not safe to share between threads, so each worker thread gets
its own instance.
"""

import threading
from typing import Any

from rustgeiger.exceptions import FileSyntaxError
from rustgeiger.utils.logging import logger

_local = threading.local()


def get_rust_parser() -> Any:
    """Return this thread's tree-sitter Rust parser."""
    parser = getattr(_local, "parser", None)
    if parser is None:
        try:
            from tree_sitter_language_pack import get_parser
        except ImportError as e:
            raise RuntimeError(
                "tree-sitter-language-pack is not installed.\n"
                "Please install with: pip install tree-sitter-language-pack"
            ) from e
        parser = get_parser("rust")
        _local.parser = parser
        logger.debug(f"Initialized tree-sitter Rust parser for thread {threading.get_ident()}")
    return parser


def _first_error(root: Any) -> Any:
    """First ERROR or MISSING node in document order (root when none is found)."""
    work = [root]
    while work:
        node = work.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        if node.has_error:
            work.extend(reversed(node.children))
    return root


def parse_source(src: str, path: str) -> Any:
    """Parse Rust source text into a tree-sitter tree.

    Raises:
        FileSyntaxError: the source does not parse cleanly
    """
    tree = get_rust_parser().parse(src.encode("utf-8"))
    root = tree.root_node
    if root.has_error:
        bad = _first_error(root)
        line, column = bad.start_point[0] + 1, bad.start_point[1]
        what = f"missing {bad.type}" if bad.is_missing else "unexpected syntax"
        raise FileSyntaxError(path, f"{what} at line {line}, column {column}")
    return tree
