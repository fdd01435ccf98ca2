"""Dependency graph model and the abstract provider that resolves it.

Providers turn a build tool's metadata into a DependencyGraph: every package
identity, the source files that belong to it and its dependency edges.
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path

from rustgeiger.package_id import PackageId


@dataclass
class DependencyGraph:
    """Resolved dependency graph.

    Attributes:
        files: Source files per package (may be empty)
        edges: "package A depends on package B" relation
        roots: Packages the scan starts from
        entry_points: Crate root files per package (lib.rs, main.rs, ...)
    """

    files: dict[PackageId, list[Path]] = field(default_factory=dict)
    edges: dict[PackageId, set[PackageId]] = field(default_factory=dict)
    roots: list[PackageId] = field(default_factory=list)
    entry_points: dict[PackageId, list[Path]] = field(default_factory=dict)

    def add_package(
        self,
        package_id: PackageId,
        files: list[Path] | None = None,
        entry_points: list[Path] | None = None,
    ) -> None:
        self.files.setdefault(package_id, []).extend(files or [])
        self.edges.setdefault(package_id, set())
        if entry_points:
            self.entry_points.setdefault(package_id, []).extend(entry_points)

    def add_dependency(self, package_id: PackageId, dependency: PackageId) -> None:
        self.edges.setdefault(package_id, set()).add(dependency)
        self.edges.setdefault(dependency, set())
        self.files.setdefault(dependency, [])

    @property
    def packages(self) -> list[PackageId]:
        return sorted(self.files)

    def reachable_from(self, roots: list[PackageId] | None = None) -> list[PackageId]:
        """Packages reachable from the roots (all packages when there are none)."""
        start = roots if roots is not None else self.roots
        if not start:
            return self.packages
        seen = set(start)
        queue = deque(start)
        while queue:
            current = queue.popleft()
            for dep in self.edges.get(current, ()):
                if dep not in seen:
                    seen.add(dep)
                    queue.append(dep)
        return sorted(seen)

    def restricted_to(self, package_ids: list[PackageId]) -> "DependencyGraph":
        keep = set(package_ids)
        return DependencyGraph(
            files={pid: list(paths) for pid, paths in self.files.items() if pid in keep},
            edges={pid: deps & keep for pid, deps in self.edges.items() if pid in keep},
            roots=[pid for pid in self.roots if pid in keep],
            entry_points={pid: list(paths) for pid, paths in self.entry_points.items() if pid in keep},
        )


class BaseGraphProvider(ABC):
    """Abstract base class for dependency graph providers.

    Implementations must provide:
    - provider_name: Identifier for this provider (e.g., 'cargo')
    - load(): Resolve and return the DependencyGraph
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return provider identifier (e.g., 'cargo')."""
        ...

    @abstractmethod
    def load(self) -> DependencyGraph:
        """Resolve the dependency graph.

        Raises:
            MetadataError: metadata could not be obtained or understood
        """
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} provider_name={self.provider_name!r}>"
