# wccgraph/core/__init__.py
from __future__ import annotations

from importlib import import_module
from typing import Any

# Resolved on first access; config and core modules import each other.
_lazy_symbols: dict[str, tuple[str, str]] = {
    "LabelStore": ("wccgraph.core.labels", "LabelStore"),
    "PartitionedGraph": ("wccgraph.core.partition", "PartitionedGraph"),
    "WorkingSet": ("wccgraph.core.partition", "WorkingSet"),
    "partition": ("wccgraph.core.partition", "partition"),
    "RoundEngine": ("wccgraph.core.rounds", "RoundEngine"),
    "PolarsRoundEngine": ("wccgraph.core.rounds", "PolarsRoundEngine"),
    "SparseRoundEngine": ("wccgraph.core.rounds", "SparseRoundEngine"),
    "make_round_engine": ("wccgraph.core.rounds", "make_round_engine"),
    "prepare_edges": ("wccgraph.core.rounds", "prepare_edges"),
    "ConvergenceDetector": ("wccgraph.core.convergence", "ConvergenceDetector"),
    "RoundReport": ("wccgraph.core.convergence", "RoundReport"),
    "round_bound": ("wccgraph.core.convergence", "round_bound"),
    "assemble": ("wccgraph.core.assemble", "assemble"),
    "RunHistory": ("wccgraph.core.history", "RunHistory"),
}

__all__ = sorted(_lazy_symbols)


def __getattr__(name: str) -> Any:
    if name in _lazy_symbols:
        mod, attr = _lazy_symbols[name]
        return getattr(import_module(mod), attr)
    raise AttributeError(name)
