"""Cargo dependency graph provider.

Builds the DependencyGraph from `cargo metadata --format-version 1`, either
by running cargo or by reading previously saved metadata JSON.
"""

from __future__ import annotations

import json
import os
import subprocess
from pathlib import Path
from typing import Any

from rustgeiger.exceptions import MetadataError
from rustgeiger.package_id import PackageId, Source, Version
from rustgeiger.utils.logging import logger

from .base import BaseGraphProvider, DependencyGraph

DEFAULT_SKIP_DIRS = ("target", ".git")

# target kinds whose root file compiles into the package's own crates
CRATE_KINDS = frozenset({"lib", "rlib", "dylib", "cdylib", "staticlib", "proc-macro", "bin"})


def parse_source(source: str | None, manifest_path: str) -> Source:
    """Map a cargo metadata `source` string to a Source.

    Path dependencies have no source string; the package directory is used.
    """
    if not source:
        return Source.path(str(Path(manifest_path).parent))
    if source.startswith("git+"):
        url, _, rev = source[len("git+"):].partition("#")
        return Source.git(url, rev)
    for prefix in ("registry+", "sparse+"):
        if source.startswith(prefix):
            return Source.registry(source[len(prefix):])
    return Source.registry(source)


def crate_roots(package: dict[str, Any]) -> list[Path]:
    """Root source files of the library and binary targets of a metadata package."""
    roots = []
    for target in package.get("targets") or []:
        src_path = target.get("src_path")
        if src_path and CRATE_KINDS.intersection(target.get("kind") or []):
            roots.append(Path(src_path))
    return sorted(set(roots))


def list_rust_files(package_dir: Path, skip_dirs: tuple[str, ...] = DEFAULT_SKIP_DIRS) -> list[Path]:
    """All .rs files of a package, excluding build output and nested packages."""
    files = []
    for dirpath, dirnames, filenames in os.walk(package_dir):
        current = Path(dirpath)
        keep = []
        for name in sorted(dirnames):
            if name in skip_dirs or name.startswith("."):
                continue
            if (current / name / "Cargo.toml").exists():
                continue
            keep.append(name)
        dirnames[:] = keep
        files.extend(current / name for name in sorted(filenames) if name.endswith(".rs"))
    return files


class CargoMetadataProvider(BaseGraphProvider):
    """Dependency graph from cargo metadata."""

    def __init__(
        self,
        manifest_path: Path | None = None,
        metadata_file: Path | None = None,
        timeout: int = 300,
        offline: bool = False,
        skip_dirs: tuple[str, ...] = DEFAULT_SKIP_DIRS,
    ):
        self.manifest_path = manifest_path
        self.metadata_file = metadata_file
        self.timeout = timeout
        self.offline = offline
        self.skip_dirs = tuple(skip_dirs)

    @property
    def provider_name(self) -> str:
        return "cargo"

    def fetch_metadata(self) -> dict[str, Any]:
        """Raw metadata, from the saved file or from running cargo."""
        if self.metadata_file is not None:
            try:
                with open(self.metadata_file, encoding="utf-8") as f:
                    return json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise MetadataError(f"Could not read cargo metadata from {self.metadata_file}: {e}") from e

        cmd = ["cargo", "metadata", "--format-version", "1"]
        if self.manifest_path is not None:
            cmd += ["--manifest-path", str(self.manifest_path)]
        if self.offline:
            cmd.append("--offline")

        logger.info(f"Running: {' '.join(cmd)}")
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise MetadataError("cargo executable not found on PATH") from e
        except subprocess.TimeoutExpired as e:
            raise MetadataError(f"cargo metadata timed out after {self.timeout}s") from e

        if proc.returncode != 0:
            raise MetadataError(
                f"cargo metadata failed with exit code {proc.returncode}",
                details={"stderr": proc.stderr.strip()},
            )
        try:
            return json.loads(proc.stdout)
        except json.JSONDecodeError as e:
            raise MetadataError(f"cargo metadata produced invalid JSON: {e}") from e

    def load(self) -> DependencyGraph:
        return self.build_graph(self.fetch_metadata())

    def build_graph(self, metadata: dict[str, Any]) -> DependencyGraph:
        """Convert cargo metadata into the graph of packages reachable from the root.

        Source files are listed only for reachable packages, so unused
        registry checkouts are never walked.
        """
        if not isinstance(metadata, dict) or "packages" not in metadata:
            raise MetadataError("cargo metadata has no 'packages' list")

        ids: dict[str, PackageId] = {}
        package_dirs: dict[PackageId, Path] = {}
        graph = DependencyGraph()
        for package in metadata["packages"]:
            try:
                package_id = PackageId(
                    name=package["name"],
                    version=Version.parse(package["version"]),
                    source=parse_source(package.get("source"), package["manifest_path"]),
                )
            except (KeyError, ValueError) as e:
                raise MetadataError(f"Malformed package entry in cargo metadata: {e}") from e
            ids[package["id"]] = package_id
            package_dirs[package_id] = Path(package["manifest_path"]).parent
            graph.add_package(package_id, entry_points=crate_roots(package))

        resolve = metadata.get("resolve") or {}
        for node in resolve.get("nodes", []):
            owner = ids.get(node.get("id"))
            if owner is None:
                continue
            for dep_id in node.get("dependencies", []):
                if dep_id in ids:
                    graph.add_dependency(owner, ids[dep_id])

        root = resolve.get("root")
        if root in ids:
            graph.roots = [ids[root]]
        else:
            graph.roots = sorted(ids[m] for m in metadata.get("workspace_members", []) if m in ids)

        reachable = graph.reachable_from()
        logger.info(f"Resolved {len(reachable)} reachable packages out of {len(ids)}")
        graph = graph.restricted_to(reachable)
        for package_id in graph.packages:
            graph.files[package_id] = list_rust_files(package_dirs[package_id], self.skip_dirs)
        return graph
