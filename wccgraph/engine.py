"""
Component-computation engine.

Runs the partition -> label -> round/convergence loop -> assemble pipeline
and returns one ``(vertex, component_id[, group key])`` row per vertex.
Either the whole converged mapping is returned or an exception is raised;
a cancelled or exhausted run leaves nothing behind.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable

import polars as pl

from .config import WCCConfig
from .core.assemble import assemble
from .core.convergence import ConvergenceDetector, RoundReport, round_bound
from .core.history import RunHistory
from .core.labels import LabelStore
from .core.partition import PartitionedGraph, partition
from .core.rounds import make_round_engine, prepare_edges
from .errors import RunCancelledError

logger = logging.getLogger(__name__)

__all__ = [
    "CancelToken",
    "WCCEngine",
    "weakly_connected_components",
]


class CancelToken:
    """Cooperative cancellation flag, honoured at round barriers only."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class WCCEngine:
    """Weakly connected components over vertex/edge tables.

    Parameters
    ----------
    config : WCCConfig, optional
        Run options. Keyword ``options`` are accepted instead, with the same
        names plus ``edge_column_mapping``.

    Examples
    --------
    >>> eng = WCCEngine(group_by=["g"])
    >>> eng.run(vertices_df, edges_df)

    """

    def __init__(self, config: WCCConfig | None = None, **options: Any):
        if config is not None and options:
            raise TypeError("pass either a WCCConfig or keyword options, not both")
        self.config = config if config is not None else WCCConfig.from_mapping(**options)
        self._history = RunHistory(enabled=self.config.history)
        self.last_rounds = 0

    def __repr__(self) -> str:
        return f"<WCCEngine | backend={self.config.backend.value} · group_by={self.config.group_by}>"

    # ==================== Run ====================

    def run(
        self,
        vertices: Any,
        edges: Any,
        *,
        cancel: CancelToken | None = None,
        on_round: Callable[[RoundReport], None] | None = None,
    ) -> pl.DataFrame:
        """Compute the component mapping.

        Parameters
        ----------
        vertices, edges : table-like
            Read-only snapshots. See :func:`wccgraph.core.partition.partition`.
        cancel : CancelToken, optional
            Checked before every round.
        on_round : callable, optional
            Called with each committed round's :class:`RoundReport`.

        Returns
        -------
        polars.DataFrame

        Raises
        ------
        InputValidationError
            Before any round runs.
        ResourceExhaustedError
            When the round bound or work-unit budget is exceeded.
        RunCancelledError
            When ``cancel`` is set at a round barrier.

        """
        cfg = self.config
        graph = partition(vertices, edges, cfg)
        self._history.log_event(
            "partition",
            vertices=graph.vertices.height,
            edges=graph.edges.height,
            groups=graph.n_groups,
            adopted=graph.adopted.height,
        )
        return self.run_partitioned(graph, cancel=cancel, on_round=on_round)

    def run_partitioned(
        self,
        graph: PartitionedGraph,
        *,
        cancel: CancelToken | None = None,
        on_round: Callable[[RoundReport], None] | None = None,
    ) -> pl.DataFrame:
        cfg = self.config
        store = LabelStore.from_vertices(graph.vertices, n_partitions=cfg.label_partitions)
        edges = prepare_edges(graph.edges)
        bound = cfg.max_rounds or round_bound(graph.max_group_size())
        detector = ConvergenceDetector(bound)
        rounds = make_round_engine(cfg)
        logger.info(
            "wcc: %d vertex key(s), %d edge(s), %d group(s), round bound %d",
            len(store), edges.height, graph.n_groups, bound,
        )

        active = edges
        while True:
            if cancel is not None and cancel.cancelled:
                self._history.log_event("cancel", round=detector.rounds)
                raise RunCancelledError(last_round=detector.rounds)
            detector.check_budget()
            round_no = detector.rounds + 1
            proposals = rounds.propose(active, store.snapshot(), round_no=round_no)
            changed = store.merge_min(proposals)
            report = detector.observe(changed)
            self._history.log_event(
                "round",
                round=report.round_no,
                active_edges=active.height,
                changed=report.changed,
                active_groups=len(report.active_groups),
                status=report.status,
            )
            if on_round is not None:
                on_round(report)
            if report.converged:
                break
            if cfg.prune_inactive:
                active = detector.prune(active)

        self.last_rounds = detector.rounds
        result = assemble(store, graph, cfg)
        self._history.log_event("assemble", rows=result.height, rounds=detector.rounds)
        logger.info("wcc: converged after %d round(s)", detector.rounds)
        return result

    # ==================== History ====================

    def history(self, as_df: bool = False):
        """Return the run event log (see :class:`wccgraph.core.history.RunHistory`)."""
        return self._history.history(as_df=as_df)

    def export_history(self, path: str) -> int:
        return self._history.export_history(path)

    def enable_history(self, flag: bool = True):
        self._history.enable(flag)

    def clear_history(self):
        self._history.clear()


def weakly_connected_components(
    vertices: Any,
    edges: Any,
    config: WCCConfig | None = None,
    *,
    cancel: CancelToken | None = None,
    **options: Any,
) -> pl.DataFrame:
    """One-shot helper: ``WCCEngine(config, **options).run(vertices, edges)``."""
    return WCCEngine(config, **options).run(vertices, edges, cancel=cancel)
