# adapters/networkx.py
try:
    import networkx as nx
except ModuleNotFoundError as e:
    raise ModuleNotFoundError(
        "Optional dependency 'networkx' is not installed. "
        "Install with: pip install wccgraph[networkx]"
    ) from e

from typing import Any

import polars as pl

from ..config import WCCConfig
from ..core.partition import partition
from ..core.structure import DST, SRC, VID

__all__ = [
    "from_nx",
    "nx_components",
    "to_nx",
    "verify_against_networkx",
]


# ────────────────────────────────
# Export
# ────────────────────────────────
def to_nx(vertices: Any, edges: Any, config: WCCConfig | None = None) -> dict[tuple, "nx.Graph"]:
    """Build one undirected ``networkx.Graph`` per group.

    Input is validated exactly as the engine does it, so the same
    missing-vertex policy applies.

    Returns
    -------
    dict
        group key tuple -> graph. The key is ``()`` when grouping is off.
    """
    config = config or WCCConfig()
    graph = partition(vertices, edges, config)
    out = {}
    for ws in graph.working_sets():
        G = nx.Graph()
        G.add_nodes_from(ws.vertices[VID].to_list())
        G.add_edges_from(ws.edges.select(SRC, DST).iter_rows())
        G.graph["group"] = ws.key
        out[tuple(ws.key[c] for c in graph.group_by)] = G
    return out


def nx_components(vertices: Any, edges: Any, config: WCCConfig | None = None) -> pl.DataFrame:
    """Reference mapping computed with ``networkx.connected_components``.

    Same columns and row order as the engine's result.
    """
    config = config or WCCConfig()
    vcol, ccol = config.vertex_id_column, config.component_column
    keys = list(config.group_by or ())
    rows = []
    for key, G in to_nx(vertices, edges, config).items():
        for comp in nx.connected_components(G):
            rep = min(comp)
            for v in comp:
                rows.append((v, rep, *key))
    schema = {vcol: pl.Int64, ccol: pl.Int64}
    frame = pl.DataFrame(rows, schema=[vcol, ccol, *keys], orient="row") if rows else pl.DataFrame(schema=schema)
    if not rows and keys:
        frame = frame.with_columns([pl.lit(None).alias(k) for k in keys])
    return frame.with_columns(pl.col(vcol).cast(pl.Int64), pl.col(ccol).cast(pl.Int64)).sort(
        [*keys, vcol], nulls_last=True
    )


def verify_against_networkx(
    result: pl.DataFrame, vertices: Any, edges: Any, config: WCCConfig | None = None
) -> bool:
    """True when ``result`` matches the networkx reference row for row."""
    expected = nx_components(vertices, edges, config)
    if expected.height != result.height:
        return False
    if expected.is_empty():
        return True
    return expected.rows() == result.select(expected.columns).rows()


# ────────────────────────────────
# Import
# ────────────────────────────────
def from_nx(G: "nx.Graph", config: WCCConfig | None = None) -> tuple[pl.DataFrame, pl.DataFrame]:
    """Turn a networkx graph with integer nodes into engine input tables.

    Directed graphs are accepted; direction is dropped by the engine anyway.
    """
    config = config or WCCConfig()
    nodes = list(G.nodes)
    bad = [n for n in nodes if not isinstance(n, int) or isinstance(n, bool)]
    if bad:
        raise TypeError(f"node ids must be integers, got {bad[0]!r}")
    vertices = pl.DataFrame({config.vertex_id_column: pl.Series(nodes, dtype=pl.Int64)})
    edges = pl.DataFrame(
        list(G.edges()),
        schema={config.edge_src_column: pl.Int64, config.edge_dest_column: pl.Int64},
        orient="row",
    )
    return vertices, edges
