from __future__ import annotations

import polars as pl

from ..config import WCCConfig
from .labels import LabelStore
from .partition import PartitionedGraph
from .structure import GID, LABEL, VID

__all__ = [
    "assemble",
]


def assemble(store: LabelStore, graph: PartitionedGraph, config: WCCConfig) -> pl.DataFrame:
    """Project converged labels into the output mapping.

    Returns
    -------
    polars.DataFrame
        ``(vertex_id_column, component_column, *group_by)``, one row per
        (group, vertex), sorted by group key then vertex id. Grouping columns
        are absent when grouping is off.

    """
    vcol, ccol = config.vertex_id_column, config.component_column
    out = store.snapshot().join(graph.groups, on=GID, how="left")
    cols = [pl.col(VID).alias(vcol), pl.col(LABEL).alias(ccol)]
    cols += [pl.col(c) for c in graph.group_by]
    order = [*graph.group_by, vcol]
    return out.select(cols).sort(order, nulls_last=True)
