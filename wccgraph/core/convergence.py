from __future__ import annotations

import logging
from dataclasses import dataclass

import polars as pl

from ..errors import ResourceExhaustedError
from .structure import GID, RoundStatus

logger = logging.getLogger(__name__)

__all__ = [
    "ConvergenceDetector",
    "RoundReport",
    "round_bound",
]


def round_bound(max_group_size: int) -> int:
    """Worst-case number of rounds for groups of at most ``max_group_size`` vertices.

    A label travels one hop per round, so labels stop changing after at most
    diameter <= n - 1 rounds. One more round observes the fixpoint.
    """
    return max(max_group_size, 1) + 1


@dataclass(frozen=True)
class RoundReport:
    round_no: int
    status: RoundStatus
    changed: int
    active_groups: frozenset[int]

    @property
    def converged(self) -> bool:
        return self.status is RoundStatus.CONVERGED


class ConvergenceDetector:
    """Decides after each round whether to stop.

    A round that lowered no label anywhere is a fixpoint. A group in which
    no label changed this round is at its own fixpoint, because groups never
    exchange labels, so its edges can be dropped from later rounds.

    Parameters
    ----------
    max_rounds : int
        Rounds allowed before the run is declared resource-exhausted.

    """

    def __init__(self, max_rounds: int):
        self.max_rounds = max_rounds
        self.rounds = 0
        self.reports: list[RoundReport] = []

    def __repr__(self) -> str:
        return f"<ConvergenceDetector | rounds={self.rounds}/{self.max_rounds}>"

    def check_budget(self) -> None:
        """Raise if another round would exceed ``max_rounds``."""
        if self.rounds >= self.max_rounds:
            raise ResourceExhaustedError(
                f"no fixpoint within {self.max_rounds} round(s)", last_round=self.rounds
            )

    def observe(self, changed: pl.DataFrame) -> RoundReport:
        """Record the keys whose label changed in the round just committed."""
        self.rounds += 1
        active = frozenset(changed[GID].unique().to_list()) if not changed.is_empty() else frozenset()
        status = RoundStatus.CONTINUE if changed.height else RoundStatus.CONVERGED
        report = RoundReport(
            round_no=self.rounds, status=status, changed=changed.height, active_groups=active
        )
        self.reports.append(report)
        logger.debug(
            "round %d: %d label(s) changed in %d group(s) -> %s",
            self.rounds, changed.height, len(active), status.value,
        )
        return report

    @property
    def converged(self) -> bool:
        return bool(self.reports) and self.reports[-1].converged

    def prune(self, edges: pl.DataFrame) -> pl.DataFrame:
        """Keep only the edges of groups still changing after the last round."""
        if not self.reports:
            return edges
        active = self.reports[-1].active_groups
        if not active:
            return edges.clear()
        # labels only change where edges are, so equal counts mean equal sets
        if edges[GID].n_unique() == len(active):
            return edges
        return edges.filter(pl.col(GID).is_in(sorted(active)))
