"""Exceptions raised while scanning a dependency graph.

Every ScanFileError is scoped to a single compilation unit: the scan records
it and carries on with sibling units and packages.
"""

from pathlib import Path


class GeigerError(Exception):
    """Base class for rustgeiger errors."""


class ScanFileError(GeigerError):
    """A single source file could not contribute to its package's metrics.

    Attributes:
        path: The offending file
        diagnostic: Underlying reader/decoder/parser message
    """

    kind = "scan"

    def __init__(self, path: Path | str, diagnostic: str = ""):
        self.path = Path(path)
        self.diagnostic = diagnostic
        super().__init__(f"{self.kind} error in {self.path}: {diagnostic}")

    def to_dict(self) -> dict:
        return {"kind": self.kind, "path": str(self.path), "diagnostic": self.diagnostic}


class FileIOError(ScanFileError):
    """Reading the file failed."""

    kind = "io"


class FileDecodeError(ScanFileError):
    """The file is not valid UTF-8 text."""

    kind = "decode"


class FileSyntaxError(ScanFileError):
    """The parser could not produce a clean syntax tree."""

    kind = "syntax"


class FileAnalysisError(ScanFileError):
    """The file parsed but could not be analyzed (e.g. nesting beyond interpreter limits)."""

    kind = "analysis"


class MetadataError(GeigerError):
    """Resolving the dependency graph failed."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}
