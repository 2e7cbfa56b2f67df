# wccgraph/__init__.py
"""wccgraph: weakly connected components over vertex/edge tables."""
from __future__ import annotations

from importlib import import_module
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version
from typing import Any

# Lazily exposed submodules (imported on first attribute access)
_lazy_submodules = {
    "adapters": "wccgraph.adapters",
    "analysis": "wccgraph.analysis",
    "core": "wccgraph.core",
    "engine": "wccgraph.engine",
    "errors": "wccgraph.errors",
    "config": "wccgraph.config",
    "networkx": "wccgraph.adapters.networkx",
}

# Curated top-level symbols (lazy). name -> (module, attribute)
_lazy_symbols: dict[str, tuple[str, str]] = {
    # Engine
    "WCCEngine": ("wccgraph.engine", "WCCEngine"),
    "CancelToken": ("wccgraph.engine", "CancelToken"),
    "weakly_connected_components": ("wccgraph.engine", "weakly_connected_components"),
    "WCCConfig": ("wccgraph.config", "WCCConfig"),

    # Errors
    "WCCError": ("wccgraph.errors", "WCCError"),
    "InputValidationError": ("wccgraph.errors", "InputValidationError"),
    "ResourceExhaustedError": ("wccgraph.errors", "ResourceExhaustedError"),
    "RunCancelledError": ("wccgraph.errors", "RunCancelledError"),

    # Result queries
    "component_sizes": ("wccgraph.analysis", "component_sizes"),
    "num_components": ("wccgraph.analysis", "num_components"),
    "largest_components": ("wccgraph.analysis", "largest_components"),
    "vertex_check": ("wccgraph.analysis", "vertex_check"),
    "reachable_vertices": ("wccgraph.analysis", "reachable_vertices"),
    "representative_violations": ("wccgraph.analysis", "representative_violations"),

    # NetworkX adapter (optional dependency)
    "to_nx": ("wccgraph.adapters.networkx", "to_nx"),
    "from_nx": ("wccgraph.adapters.networkx", "from_nx"),
}

__all__ = sorted(set(list(_lazy_submodules) + list(_lazy_symbols)))


def __getattr__(name: str) -> Any:  # PEP 562: lazy attribute resolution
    if name in _lazy_submodules:
        return import_module(_lazy_submodules[name])
    if name in _lazy_symbols:
        mod, attr = _lazy_symbols[name]
        return getattr(import_module(mod), attr)
    raise AttributeError(name)


def __dir__() -> list[str]:
    return sorted(list(globals().keys()) + list(__all__))


try:
    __version__ = _pkg_version("wccgraph")
except PackageNotFoundError:
    __version__ = "0.0.0"
