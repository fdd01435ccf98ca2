"""Package identity: name, semantic version and source origin.

Two packages with the same name and version coming from different sources
(crates.io vs a local path, say) are different packages.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering

SOURCE_GIT = "git"
SOURCE_REGISTRY = "registry"
SOURCE_PATH = "path"

_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)


def _split_identifiers(text: str | None) -> tuple[str | int, ...]:
    if not text:
        return ()
    return tuple(int(part) if part.isdigit() else part for part in text.split("."))


def _identifier_key(ident: str | int) -> tuple[int, int | str]:
    # Numeric identifiers sort before alphanumeric ones
    if isinstance(ident, int):
        return (0, ident)
    return (1, ident)


@total_ordering
@dataclass(frozen=True)
class Version:
    """Semantic version (major.minor.patch[-pre][+build])."""

    major: int
    minor: int
    patch: int
    pre: tuple[str | int, ...] = ()
    build: tuple[str | int, ...] = ()

    @classmethod
    def parse(cls, text: str) -> Version:
        match = _SEMVER_RE.match(text.strip())
        if match is None:
            raise ValueError(f"not a semantic version: {text!r}")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            pre=_split_identifiers(match.group("pre")),
            build=_split_identifiers(match.group("build")),
        )

    def _key(self) -> tuple:
        # A release ranks above any of its pre-releases; build metadata only breaks ties
        pre_key = (1,) if not self.pre else (0, tuple(_identifier_key(i) for i in self.pre))
        build_key = tuple(_identifier_key(i) for i in self.build)
        return (self.major, self.minor, self.patch, pre_key, build_key)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre:
            text += "-" + ".".join(str(i) for i in self.pre)
        if self.build:
            text += "+" + ".".join(str(i) for i in self.build)
        return text


@dataclass(frozen=True, order=True)
class Source:
    """Where a package comes from.

    kind is one of git / registry / path. For git and registry sources
    location is the URL; for path sources it is the filesystem path.
    """

    kind: str
    location: str
    rev: str = ""

    @classmethod
    def git(cls, url: str, rev: str = "") -> Source:
        return cls(SOURCE_GIT, url, rev)

    @classmethod
    def registry(cls, url: str) -> Source:
        return cls(SOURCE_REGISTRY, url)

    @classmethod
    def path(cls, path: str) -> Source:
        return cls(SOURCE_PATH, path)

    def __str__(self) -> str:
        if self.kind == SOURCE_GIT:
            return f"git+{self.location}" + (f"#{self.rev}" if self.rev else "")
        if self.kind == SOURCE_REGISTRY:
            return f"registry+{self.location}"
        return f"file+{self.location}"


@dataclass(frozen=True, order=True)
class PackageId:
    """Identifies one package in the dependency graph.

    Equality, hashing and ordering use name, version and source.
    """

    name: str
    version: Version
    source: Source

    def __str__(self) -> str:
        return f"{self.name} {self.version} ({self.source})"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": str(self.version),
            "source": {"kind": self.source.kind, "location": self.source.location, "rev": self.source.rev},
        }
