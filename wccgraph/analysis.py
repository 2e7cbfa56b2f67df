"""Queries over a finished component mapping.

Every function takes the frame returned by :func:`weakly_connected_components`
and the config it was produced with (for column names). With grouping on,
results are per group and the ``group`` arguments select one group by key.
"""
from __future__ import annotations

from typing import Any

import polars as pl

from .config import WCCConfig

__all__ = [
    "component_sizes",
    "largest_components",
    "num_components",
    "reachable_vertices",
    "representative_violations",
    "vertex_check",
]

SIZE = "num_vertices"


def _cols(config: WCCConfig | None):
    config = config or WCCConfig()
    return config.vertex_id_column, config.component_column, list(config.group_by or ())


def _select_group(result: pl.DataFrame, keys: list[str], group: dict[str, Any] | None) -> pl.DataFrame:
    if not keys:
        return result
    if group is None:
        raise ValueError(f"grouped result: pass group={{...}} with keys {keys}")
    missing = [k for k in keys if k not in group]
    if missing:
        raise ValueError(f"group is missing key(s) {missing}")
    cond = pl.lit(True)
    for k in keys:
        v = group[k]
        cond = cond & (pl.col(k).is_null() if v is None else pl.col(k) == v)
    return result.filter(cond)


def component_sizes(result: pl.DataFrame, config: WCCConfig | None = None) -> pl.DataFrame:
    """Size of every component: ``(*group_by, component_id, num_vertices)``."""
    _, ccol, keys = _cols(config)
    return (
        result.group_by([*keys, ccol])
        .agg(pl.len().alias(SIZE))
        .sort([*keys, ccol], nulls_last=True)
    )


def num_components(result: pl.DataFrame, config: WCCConfig | None = None) -> pl.DataFrame:
    """Number of components, per group when grouped: ``(*group_by, num_components)``."""
    _, ccol, keys = _cols(config)
    if not keys:
        return pl.DataFrame({"num_components": [result[ccol].n_unique()]})
    return (
        result.group_by(keys)
        .agg(pl.col(ccol).n_unique().alias("num_components"))
        .sort(keys, nulls_last=True)
    )


def largest_components(result: pl.DataFrame, config: WCCConfig | None = None) -> pl.DataFrame:
    """Component(s) of maximum size, ties included, per group when grouped."""
    _, ccol, keys = _cols(config)
    sizes = component_sizes(result, config)
    if sizes.is_empty():
        return sizes
    biggest = pl.col(SIZE).max().over(keys) if keys else pl.col(SIZE).max()
    return sizes.filter(pl.col(SIZE) == biggest)


def vertex_check(
    result: pl.DataFrame,
    u: int,
    v: int,
    group: dict[str, Any] | None = None,
    config: WCCConfig | None = None,
) -> int | None:
    """Component id shared by ``u`` and ``v``, or None when they are not connected.

    Raises
    ------
    KeyError
        If either vertex is absent from the (selected group of the) result.

    """
    vcol, ccol, keys = _cols(config)
    rows = _select_group(result, keys, group)
    found = dict(rows.filter(pl.col(vcol).is_in([u, v])).select(vcol, ccol).iter_rows())
    for x in (u, v):
        if x not in found:
            raise KeyError(f"vertex {x} not found")
    return found[u] if found[u] == found[v] else None


def reachable_vertices(
    result: pl.DataFrame,
    v: int,
    group: dict[str, Any] | None = None,
    config: WCCConfig | None = None,
) -> list[int]:
    """Sorted ids of every other vertex in ``v``'s component."""
    vcol, ccol, keys = _cols(config)
    rows = _select_group(result, keys, group)
    own = rows.filter(pl.col(vcol) == v)
    if own.is_empty():
        raise KeyError(f"vertex {v} not found")
    cid = own[ccol][0]
    return (
        rows.filter((pl.col(ccol) == cid) & (pl.col(vcol) != v))[vcol].sort().to_list()
    )


def representative_violations(result: pl.DataFrame, config: WCCConfig | None = None) -> pl.DataFrame:
    """Components whose id is not the smallest member id. Empty for a correct result."""
    vcol, ccol, keys = _cols(config)
    return (
        result.group_by([*keys, ccol])
        .agg(pl.col(vcol).min().alias("__min_member"))
        .filter(pl.col(ccol) != pl.col("__min_member"))
    )
