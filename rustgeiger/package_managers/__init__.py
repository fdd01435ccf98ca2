"""Dependency graph providers.

Usage:
    from rustgeiger.package_managers import get_provider

    provider = get_provider("cargo", manifest_path=Path("Cargo.toml"))
    graph = provider.load()
"""

from __future__ import annotations

from typing import Any

from .base import BaseGraphProvider, DependencyGraph
from .cargo import CargoMetadataProvider

_REGISTRY: dict[str, type[BaseGraphProvider]] = {
    "cargo": CargoMetadataProvider,
}


def get_provider(provider_name: str, **kwargs: Any) -> BaseGraphProvider | None:
    """Get provider instance by name, or None if unknown."""
    cls = _REGISTRY.get(provider_name.lower())
    return cls(**kwargs) if cls else None


__all__ = [
    "BaseGraphProvider",
    "CargoMetadataProvider",
    "DependencyGraph",
    "get_provider",
]
