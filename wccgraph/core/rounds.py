"""
One round of min-label propagation.

For every edge (u, v) of group g, u is offered label(g, v) and v is offered
label(g, u). Offers to the same key are reduced with ``min``. Reads only see
the snapshot committed at the end of the previous round, so splitting the
edges into work units and running them in any order or in parallel yields
the same proposals.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import polars as pl
import scipy.sparse as sp

from ..config import WCCConfig
from ..errors import ResourceExhaustedError
from .structure import (
    DST,
    EDGE_SCHEMA,
    GID,
    GID_DTYPE,
    ID_DTYPE,
    LABEL,
    PROPOSAL,
    SRC,
    VID,
    Backend,
)

logger = logging.getLogger(__name__)

__all__ = [
    "RoundEngine",
    "PolarsRoundEngine",
    "SparseRoundEngine",
    "make_round_engine",
    "prepare_edges",
]

_LS = "__label_src"
_LD = "__label_dst"

PROPOSAL_SCHEMA = {GID: GID_DTYPE, VID: ID_DTYPE, PROPOSAL: ID_DTYPE}


def prepare_edges(edges: pl.DataFrame) -> pl.DataFrame:
    """Orient each edge as (min, max), drop self-loops and duplicates.

    Direction carries no meaning for weak connectivity, so (u, v) and (v, u)
    collapse into one row. A self-loop only ever offers a vertex its own label.
    """
    return (
        edges.select(
            GID,
            pl.min_horizontal(SRC, DST).alias(SRC),
            pl.max_horizontal(SRC, DST).alias(DST),
        )
        .filter(pl.col(SRC) != pl.col(DST))
        .unique()
        .sort([GID, SRC, DST])
        .cast(EDGE_SCHEMA)
    )


def empty_proposals() -> pl.DataFrame:
    return pl.DataFrame(schema=PROPOSAL_SCHEMA)


class RoundEngine(ABC):
    """Computes the proposals of one round from a label snapshot."""

    def __init__(self, config: WCCConfig | None = None):
        self.config = config or WCCConfig()

    @abstractmethod
    def propose(self, edges: pl.DataFrame, labels: pl.DataFrame, *, round_no: int = 0) -> pl.DataFrame:
        """Return ``(__gid, __vid, __proposal)``, at most one row per key."""


class PolarsRoundEngine(RoundEngine):
    """Join-based round, split into work units of ``batch_size`` edges."""

    def work_units(self, edges: pl.DataFrame, *, round_no: int = 0) -> list[pl.DataFrame]:
        size = self.config.batch_size or max(edges.height, 1)
        units = list(edges.iter_slices(n_rows=size))
        limit = self.config.max_work_units
        if limit is not None and len(units) > limit:
            raise ResourceExhaustedError(
                f"round {round_no} needs {len(units)} work units, budget is {limit}",
                last_round=max(round_no - 1, 0),
            )
        return units

    @staticmethod
    def propose_unit(unit: pl.DataFrame, labels: pl.DataFrame) -> pl.DataFrame:
        """Proposals of a single work unit against the snapshot ``labels``."""
        both = unit.join(
            labels.rename({VID: SRC, LABEL: _LS}), on=[GID, SRC], how="inner"
        ).join(
            labels.rename({VID: DST, LABEL: _LD}), on=[GID, DST], how="inner"
        )
        offers = pl.concat(
            [
                both.select(GID, pl.col(SRC).alias(VID), pl.col(_LD).alias(PROPOSAL)),
                both.select(GID, pl.col(DST).alias(VID), pl.col(_LS).alias(PROPOSAL)),
            ],
            how="vertical",
        )
        return offers.group_by([GID, VID]).agg(pl.col(PROPOSAL).min())

    def propose(self, edges: pl.DataFrame, labels: pl.DataFrame, *, round_no: int = 0) -> pl.DataFrame:
        if edges.is_empty():
            return empty_proposals()
        units = self.work_units(edges, round_no=round_no)
        if self.config.workers > 1 and len(units) > 1:
            with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
                results = list(pool.map(lambda u: self.propose_unit(u, labels), units))
        else:
            results = [self.propose_unit(u, labels) for u in units]
        logger.debug("round %d: %d work unit(s)", round_no, len(units))
        if len(results) == 1:
            return results[0].cast(PROPOSAL_SCHEMA)
        # units may offer to the same key: reconcile with min, never last-write-wins
        return (
            pl.concat(results, how="vertical")
            .group_by([GID, VID])
            .agg(pl.col(PROPOSAL).min())
            .cast(PROPOSAL_SCHEMA)
        )


class SparseRoundEngine(RoundEngine):
    """In-memory round over a symmetric CSR adjacency (numpy/scipy).

    Keys are mapped to dense row indices once per distinct edge set; each
    round gathers neighbour labels along CSR rows and reduces them with
    ``np.minimum.reduceat``.
    """

    def __init__(self, config: WCCConfig | None = None):
        super().__init__(config)
        self._edges: pl.DataFrame | None = None
        self._keys: pl.DataFrame | None = None
        self._adj = None

    def _build(self, edges: pl.DataFrame):
        ends = pl.concat(
            [edges.select(GID, pl.col(SRC).alias(VID)), edges.select(GID, pl.col(DST).alias(VID))],
            how="vertical",
        )
        keys = ends.unique().sort([GID, VID]).with_row_index("__idx")
        idx = edges.join(
            keys.rename({VID: SRC, "__idx": "__i"}), on=[GID, SRC], how="left"
        ).join(
            keys.rename({VID: DST, "__idx": "__j"}), on=[GID, DST], how="left"
        )
        i = idx["__i"].to_numpy().astype(np.int64)
        j = idx["__j"].to_numpy().astype(np.int64)
        n = keys.height
        rows = np.concatenate([i, j])
        cols = np.concatenate([j, i])
        data = np.ones(rows.shape[0], dtype=np.int8)
        adj = sp.csr_matrix((data, (rows, cols)), shape=(n, n))
        adj.sum_duplicates()
        return keys, adj

    def propose(self, edges: pl.DataFrame, labels: pl.DataFrame, *, round_no: int = 0) -> pl.DataFrame:
        if edges.is_empty():
            return empty_proposals()
        if self._edges is not edges:
            self._keys, self._adj = self._build(edges)
            self._edges = edges
            logger.debug("round %d: rebuilt CSR with %d rows", round_no, self._keys.height)
        keys, adj = self._keys, self._adj

        current = keys.join(labels, on=[GID, VID], how="left").sort("__idx")
        lab = current[LABEL].to_numpy().astype(np.int64)

        indptr = adj.indptr
        degree = np.diff(indptr)
        nbr_labels = lab[adj.indices]
        has_nbrs = degree > 0
        proposal = lab.copy()
        if nbr_labels.size:
            starts = indptr[:-1][has_nbrs]
            proposal[has_nbrs] = np.minimum.reduceat(nbr_labels, starts)

        out = keys.select(GID, VID).with_columns(pl.Series(PROPOSAL, proposal))
        return out.filter(pl.Series(has_nbrs)).cast(PROPOSAL_SCHEMA)


def make_round_engine(config: WCCConfig) -> RoundEngine:
    """Instantiate the round engine selected by ``config.backend``."""
    if config.backend is Backend.SPARSE:
        return SparseRoundEngine(config)
    return PolarsRoundEngine(config)
