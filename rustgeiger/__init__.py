"""rustgeiger - unsafe and FFI usage auditor for Rust dependency graphs."""

__version__ = "0.1.0"
