"""Tree-sitter based passes over Rust syntax trees.

- foreign_impl: pass 1, foreign-boundary definitions
- unsafe_impl: pass 2, unsafe usage counters and foreign call sites
"""

from .foreign_impl import ForeignBoundaryExtractor, find_foreign_definitions
from .unsafe_impl import UnsafeUsageVisitor, find_unsafe_usage

__all__ = [
    "ForeignBoundaryExtractor",
    "UnsafeUsageVisitor",
    "find_foreign_definitions",
    "find_unsafe_usage",
]
