"""
Group partitioner: turns raw vertex/edge tables into keyed working sets.

Two grouping layouts are supported when ``group_by`` is set:

- scoped vertices: the vertex table carries the grouping columns too. A
  vertex belongs to exactly the group on its row, and the same raw id in two
  groups is two different vertices.
- shared vertices: only the edge table carries the grouping columns. A
  vertex joins every group whose edges mention it. A vertex mentioned by no
  edge cannot be tied to any group and is emitted as a singleton with a null
  group key.

Nothing here computes labels. The output is a :class:`PartitionedGraph`
whose vertex and edge frames are keyed on ``(__gid, __vid)``.
"""
from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Any, Iterator

import polars as pl

from ..config import WCCConfig
from ..errors import InputValidationError
from .structure import (
    DST,
    EDGE_SCHEMA,
    GID,
    GID_DTYPE,
    ID_DTYPE,
    ROW,
    SRC,
    VERTEX_SCHEMA,
    VID,
    MissingVertexPolicy,
)

logger = logging.getLogger(__name__)

__all__ = [
    "PartitionedGraph",
    "WorkingSet",
    "as_frame",
    "partition",
]


@dataclass(frozen=True)
class WorkingSet:
    """Vertices and edges of a single group."""

    gid: int
    key: dict[str, Any]
    vertices: pl.DataFrame
    edges: pl.DataFrame


@dataclass(frozen=True)
class PartitionedGraph:
    """Validated, group-keyed input.

    Attributes:
        vertices: ``(__gid, __vid)`` one row per (group, vertex).
        edges: ``(__gid, __src, __dst)`` one row per input edge.
        groups: ``(__gid, *group_by)``. The ungrouped sentinel, if any, has null keys.
        group_by: Grouping columns, or an empty tuple.
        adopted: ``(__gid, __vid)`` vertices added from edges under the "adopt" policy.
    """

    vertices: pl.DataFrame
    edges: pl.DataFrame
    groups: pl.DataFrame
    group_by: tuple[str, ...]
    adopted: pl.DataFrame

    @property
    def n_groups(self) -> int:
        return self.groups.height

    def group_sizes(self) -> pl.DataFrame:
        """Vertex count per group, ``(__gid, len)``."""
        return self.vertices.group_by(GID).len()

    def max_group_size(self) -> int:
        if self.vertices.is_empty():
            return 0
        return int(self.group_sizes()["len"].max())

    def key_of(self, gid: int) -> dict[str, Any]:
        row = self.groups.filter(pl.col(GID) == gid)
        if row.is_empty():
            raise KeyError(f"group {gid} not found")
        return {c: row[c][0] for c in self.group_by}

    def working_sets(self) -> Iterator[WorkingSet]:
        """Yield one independent working set per group, in ``__gid`` order."""
        v_parts = {k[0]: df for k, df in self.vertices.partition_by(GID, as_dict=True).items()}
        e_parts = {k[0]: df for k, df in self.edges.partition_by(GID, as_dict=True).items()}
        for gid in self.groups[GID].to_list():
            yield WorkingSet(
                gid=gid,
                key=self.key_of(gid),
                vertices=v_parts.get(gid, pl.DataFrame(schema=VERTEX_SCHEMA)),
                edges=e_parts.get(gid, pl.DataFrame(schema=EDGE_SCHEMA)),
            )


# ---------------------------
# Input coercion
# ---------------------------

def as_frame(
    obj: Any, table: str, columns: list[str] | None = None, n_ids: int = 1
) -> pl.DataFrame:
    """Coerce a table-like object into an eager Polars frame.

    Accepts Polars DataFrame/LazyFrame, pandas DataFrame, a dict of columns,
    or a sequence of dicts / tuples / scalars (scalars fill the first column).
    An empty sequence yields ``columns`` with the first ``n_ids`` typed as ids
    and the rest left untyped.
    """
    if isinstance(obj, pl.LazyFrame):
        return obj.collect()
    if isinstance(obj, pl.DataFrame):
        return obj
    if type(obj).__module__.split(".")[0] == "pandas":
        return pl.from_pandas(obj)
    if isinstance(obj, dict):
        return pl.DataFrame(obj)
    if obj is None:
        obj = []
    rows = list(obj)
    if not rows:
        return pl.DataFrame(
            schema={c: (ID_DTYPE if i < n_ids else pl.Null) for i, c in enumerate(columns or [])}
        )
    first = rows[0]
    if isinstance(first, dict):
        return pl.DataFrame(rows)
    if isinstance(first, (tuple, list)):
        if columns is None or len(first) > len(columns):
            raise InputValidationError(
                f"cannot map {len(first)}-tuples onto columns {columns}", table=table, row=0
            )
        return pl.DataFrame(rows, schema=columns[: len(first)], orient="row")
    if columns:
        # bare ids fill the id column; absent group columns mean shared vertices
        return pl.DataFrame({columns[0]: rows})
    raise InputValidationError(
        f"unsupported row type {type(first).__name__}", table=table, row=0
    )


def _require_columns(df: pl.DataFrame, cols: list[str], table: str) -> None:
    for c in cols:
        if c not in df.columns:
            raise InputValidationError(
                f"missing column {c!r}; available: {df.columns}", table=table, column=c
            )


def _first_row(df: pl.DataFrame) -> int:
    return int(df[ROW].min())


def _check_id_column(df: pl.DataFrame, col: str, table: str) -> pl.DataFrame:
    """Validate an identifier column and cast it to Int64."""
    dtype = df.schema[col]
    if dtype == pl.Null:
        df = df.with_columns(pl.col(col).cast(ID_DTYPE))
    elif not dtype.is_integer():
        raise InputValidationError(
            f"identifier column must be integer-typed, got {dtype}", table=table, column=col
        )
    nulls = df.filter(pl.col(col).is_null())
    if not nulls.is_empty():
        raise InputValidationError(
            "null identifier", table=table, row=_first_row(nulls), column=col
        )
    try:
        return df.with_columns(pl.col(col).cast(ID_DTYPE, strict=True))
    except pl.exceptions.PolarsError:
        too_big = df.filter(pl.col(col).cast(ID_DTYPE, strict=False).is_null())
        raise InputValidationError(
            "identifier does not fit in a signed 64-bit integer",
            table=table,
            row=_first_row(too_big),
            column=col,
            value=too_big[col][0],
        ) from None


def _check_group_columns(df: pl.DataFrame, group_by: tuple[str, ...], table: str) -> None:
    for c in group_by:
        nulls = df.filter(pl.col(c).is_null())
        if not nulls.is_empty():
            raise InputValidationError(
                "null group key", table=table, row=_first_row(nulls), column=c
            )


def _check_group_dtypes(vdf: pl.DataFrame, edf: pl.DataFrame, group_by: tuple[str, ...]):
    """Align group-key dtypes across tables; an untyped (empty) side adopts the other's."""
    for c in group_by:
        vt, et = vdf.schema[c], edf.schema[c]
        if vt == pl.Null and et != pl.Null:
            vdf = vdf.with_columns(pl.col(c).cast(et))
        elif et == pl.Null and vt != pl.Null:
            edf = edf.with_columns(pl.col(c).cast(vt))
        elif vt != et:
            raise InputValidationError(
                f"group key {c!r} has type {vt} in vertices but {et} in edges",
                table="vertices",
                column=c,
            )
    return vdf, edf


# ---------------------------
# Partitioning
# ---------------------------

def partition(vertices: Any, edges: Any, config: WCCConfig | None = None) -> PartitionedGraph:
    """Validate the input tables and key every row by group.

    Parameters
    ----------
    vertices : table-like
        Must contain ``config.vertex_id_column`` and, for scoped grouping,
        the ``group_by`` columns.
    edges : table-like
        Must contain the two endpoint columns and every ``group_by`` column.
    config : WCCConfig, optional

    Returns
    -------
    PartitionedGraph

    Raises
    ------
    InputValidationError
        On missing columns, null or non-integer ids, null group keys, group-key
        type conflicts, duplicate vertices, or (under the "reject" policy)
        edges that reference unknown vertices.

    """
    config = config or WCCConfig()
    group_by = tuple(config.group_by or ())
    vcol = config.vertex_id_column
    scol, dcol = config.edge_src_column, config.edge_dest_column

    vdf = as_frame(vertices, "vertices", [vcol, *group_by])
    edf = as_frame(edges, "edges", [scol, dcol, *group_by], n_ids=2)

    _require_columns(vdf, [vcol], "vertices")
    _require_columns(edf, [scol, dcol, *group_by], "edges")

    vdf = vdf.with_row_index(ROW)
    edf = edf.with_row_index(ROW)

    vdf = _check_id_column(vdf, vcol, "vertices")
    edf = _check_id_column(edf, scol, "edges")
    edf = _check_id_column(edf, dcol, "edges")

    scoped = bool(group_by) and all(c in vdf.columns for c in group_by)
    if group_by and not scoped:
        present = [c for c in group_by if c in vdf.columns]
        if present:
            raise InputValidationError(
                f"vertex table carries only part of the group key: {present}",
                table="vertices",
                column=present[0],
            )

    if group_by:
        _check_group_columns(edf, group_by, "edges")
        if scoped:
            _check_group_columns(vdf, group_by, "vertices")
            vdf, edf = _check_group_dtypes(vdf, edf, group_by)

    if not group_by:
        groups = pl.DataFrame({GID: pl.Series([0], dtype=GID_DTYPE)})
        v = vdf.with_columns(pl.lit(0, dtype=GID_DTYPE).alias(GID)).select(
            GID, pl.col(vcol).alias(VID), ROW
        )
        e = edf.with_columns(pl.lit(0, dtype=GID_DTYPE).alias(GID)).select(
            GID,
            pl.col(scol).alias(SRC),
            pl.col(dcol).alias(DST),
            ROW,
        )
    else:
        key_source = [edf.select(group_by)]
        if scoped:
            key_source.append(vdf.select(group_by))
        groups = (
            pl.concat(key_source, how="vertical")
            .unique()
            .sort(list(group_by))
            .with_row_index(GID)
        )
        e = edf.join(groups, on=list(group_by), how="left").select(
            GID, pl.col(scol).alias(SRC), pl.col(dcol).alias(DST), ROW
        )
        if scoped:
            v = vdf.join(groups, on=list(group_by), how="left").select(
                GID, pl.col(vcol).alias(VID), ROW
            )
        else:
            v = vdf.select(pl.col(vcol).alias(VID), ROW)

    _check_duplicates(v, scoped or not group_by)

    if group_by and not scoped:
        v, e, groups, adopted = _expand_shared(v, e, groups, group_by, config)
    else:
        v, adopted = _resolve_missing(v, e, config)

    logger.debug(
        "partitioned %d vertices, %d edges into %d group(s)",
        v.height, e.height, groups.height,
    )
    return PartitionedGraph(
        vertices=v.select(GID, VID).cast(VERTEX_SCHEMA),
        edges=e.select(GID, SRC, DST).cast(EDGE_SCHEMA),
        groups=groups.with_columns(pl.col(GID).cast(GID_DTYPE)),
        group_by=group_by,
        adopted=adopted.cast(VERTEX_SCHEMA),
    )


def _check_duplicates(v: pl.DataFrame, keyed: bool) -> None:
    key = [GID, VID] if keyed else [VID]
    dup = v.filter(~pl.struct(key).is_first_distinct())
    if not dup.is_empty():
        raise InputValidationError(
            "duplicate vertex id", table="vertices", row=_first_row(dup), value=dup[VID][0]
        )


def _endpoints(e: pl.DataFrame) -> pl.DataFrame:
    return pl.concat(
        [
            e.select(GID, pl.col(SRC).alias(VID), ROW),
            e.select(GID, pl.col(DST).alias(VID), ROW),
        ],
        how="vertical",
    )


def _adopt(missing: pl.DataFrame, config: WCCConfig) -> pl.DataFrame:
    """Apply the missing-vertex policy to ``missing`` endpoint rows."""
    if missing.is_empty():
        return pl.DataFrame(schema=VERTEX_SCHEMA)
    if config.missing_vertex_policy is MissingVertexPolicy.REJECT:
        first = missing.sort(ROW).row(0, named=True)
        raise InputValidationError(
            f"edge references vertex {first[VID]} absent from the vertex table",
            table="edges",
            row=first[ROW],
            value=first[VID],
        )
    adopted = missing.select(GID, VID).unique().sort([GID, VID])
    msg = f"adopting {adopted.height} vertex id(s) referenced only by edges"
    logger.warning(msg)
    warnings.warn(msg + ".", category=RuntimeWarning, stacklevel=4)
    return adopted


def _resolve_missing(v: pl.DataFrame, e: pl.DataFrame, config: WCCConfig):
    missing = _endpoints(e).join(v.select(GID, VID), on=[GID, VID], how="anti")
    adopted = _adopt(missing, config)
    if not adopted.is_empty():
        v = pl.concat(
            [v.select(GID, VID), adopted.cast(VERTEX_SCHEMA)], how="vertical"
        )
    return v.select(GID, VID), adopted


def _expand_shared(v, e, groups, group_by, config):
    """Shared-vertex layout: derive group membership from edges."""
    ends = _endpoints(e)
    missing = ends.join(v.select(VID), on=VID, how="anti")
    adopted = _adopt(missing, config)

    members = ends.select(GID, VID).unique()
    linked = members.select(VID).unique()
    loose = v.join(linked, on=VID, how="anti").select(VID)
    if loose.is_empty():
        return members, e, groups, adopted

    # vertices no edge ties to a group: one sentinel group with null keys
    sentinel = groups.height
    null_key = pl.DataFrame(
        {GID: pl.Series([sentinel], dtype=GID_DTYPE)}
    ).with_columns(
        [pl.lit(None, dtype=groups.schema[c]).alias(c) for c in group_by]
    )
    groups = pl.concat([groups, null_key.select(groups.columns)], how="vertical")
    loose = loose.select(pl.lit(sentinel, dtype=GID_DTYPE).alias(GID), VID)
    logger.debug("%d vertex id(s) belong to no group", loose.height)
    return pl.concat([members, loose], how="vertical"), e, groups, adopted
