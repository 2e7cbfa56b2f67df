from __future__ import annotations

import logging
from typing import Iterator

import polars as pl

from .structure import GID, GID_DTYPE, ID_DTYPE, LABEL, LABEL_SCHEMA, PROPOSAL, VID

logger = logging.getLogger(__name__)

__all__ = [
    "LabelStore",
]

_PART = "__part"
_OLD = "__old"


class LabelStore:
    """Current component label of every ``(group, vertex)`` pair.

    Labels live in ``n_partitions`` Polars frames routed by a hash of the
    key, so a merge only ever touches one partition's rows at a time. The
    only mutation is :meth:`merge_min`, which never raises a label.

    Parameters
    ----------
    labels : polars.DataFrame
        ``(__gid, __vid, __label)`` rows, one per key.
    n_partitions : int, default 1

    """

    def __init__(self, labels: pl.DataFrame, n_partitions: int = 1):
        if n_partitions < 1:
            raise ValueError(f"n_partitions must be >= 1, got {n_partitions}")
        self.n_partitions = n_partitions
        self._version = 0
        self._parts = self._split(labels.select(GID, VID, LABEL).cast(LABEL_SCHEMA))

    @classmethod
    def from_vertices(cls, vertices: pl.DataFrame, n_partitions: int = 1) -> LabelStore:
        """Identity labelling: ``label(g, v) = v``."""
        labels = vertices.select(
            pl.col(GID).cast(GID_DTYPE), pl.col(VID).cast(ID_DTYPE), pl.col(VID).alias(LABEL)
        )
        return cls(labels, n_partitions=n_partitions)

    def __repr__(self) -> str:
        return f"<LabelStore | keys={len(self)} · partitions={self.n_partitions} · version={self.version}>"

    def __len__(self) -> int:
        return sum(p.height for p in self._parts)

    @property
    def version(self) -> int:
        """Number of committed merges that changed at least one label."""
        return self._version

    # ==================== Reads ====================

    def iter_batches(self) -> Iterator[pl.DataFrame]:
        """Yield the label set one partition at a time."""
        yield from self._parts

    def snapshot(self) -> pl.DataFrame:
        """All ``(__gid, __vid, __label)`` triples as of the last commit."""
        if len(self._parts) == 1:
            return self._parts[0]
        return pl.concat(self._parts, how="vertical")

    def labels_of(self, gid: int) -> pl.DataFrame:
        return pl.concat(
            [p.filter(pl.col(GID) == gid) for p in self._parts], how="vertical"
        ).sort(VID)

    # ==================== Writes ====================

    def merge_min(self, proposals: pl.DataFrame) -> pl.DataFrame:
        """Lower labels to the proposed values where strictly smaller.

        Several proposals for the same key are reduced with ``min`` first, so
        concurrent writers never overwrite each other. Proposals for unknown
        keys are ignored. The new partitions are swapped in only after all of
        them are computed.

        Parameters
        ----------
        proposals : polars.DataFrame
            ``(__gid, __vid, __proposal)``.

        Returns
        -------
        polars.DataFrame
            ``(__gid, __vid, __old, __label)`` for every key whose label changed.

        """
        if proposals.is_empty():
            return self._no_changes()
        best = (
            proposals.select(
                pl.col(GID).cast(GID_DTYPE),
                pl.col(VID).cast(ID_DTYPE),
                pl.col(PROPOSAL).cast(ID_DTYPE),
            )
            .group_by([GID, VID])
            .agg(pl.col(PROPOSAL).min())
        )
        routed = self._route(best)

        new_parts: list[pl.DataFrame] = []
        changed: list[pl.DataFrame] = []
        for i, part in enumerate(self._parts):
            incoming = routed.get(i)
            if incoming is None or incoming.is_empty():
                new_parts.append(part)
                continue
            merged = part.join(incoming, on=[GID, VID], how="left").with_columns(
                pl.col(LABEL).alias(_OLD),
                pl.min_horizontal(LABEL, PROPOSAL).alias(LABEL),
            )
            changed.append(
                merged.filter(pl.col(LABEL) < pl.col(_OLD)).select(GID, VID, _OLD, LABEL)
            )
            new_parts.append(merged.select(GID, VID, LABEL))

        # barrier: nothing above is visible until this assignment
        self._parts = new_parts
        out = pl.concat(changed, how="vertical") if changed else self._no_changes()
        if not out.is_empty():
            self._version += 1
        logger.debug("merge_min: %d proposal(s), %d label(s) lowered", best.height, out.height)
        return out

    # ==================== Internals ====================

    def _bucket(self) -> pl.Expr:
        return (pl.struct(GID, VID).hash(seed=0) % self.n_partitions).alias(_PART)

    def _split(self, df: pl.DataFrame) -> list[pl.DataFrame]:
        if self.n_partitions == 1:
            return [df]
        routed = self._route(df)
        return [routed.get(i, df.clear()) for i in range(self.n_partitions)]

    def _route(self, df: pl.DataFrame) -> dict[int, pl.DataFrame]:
        if self.n_partitions == 1:
            return {0: df}
        parts = df.with_columns(self._bucket()).partition_by(
            _PART, as_dict=True, include_key=False
        )
        return {int(k[0]): v for k, v in parts.items()}

    @staticmethod
    def _no_changes() -> pl.DataFrame:
        return pl.DataFrame(
            schema={GID: GID_DTYPE, VID: ID_DTYPE, _OLD: ID_DTYPE, LABEL: ID_DTYPE}
        )
