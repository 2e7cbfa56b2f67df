"""Exception types raised by the component engine.

Every error is raised before the first round or at a round barrier. A
failed invocation never hands back a partial mapping.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "WCCError",
    "InputValidationError",
    "ResourceExhaustedError",
    "RunCancelledError",
]


class WCCError(Exception):
    """Base class for engine errors."""


class InputValidationError(WCCError, ValueError):
    """Malformed or unreferenced input rows, detected before any round runs.

    Parameters
    ----------
    message : str
        Human readable description.
    table : str, optional
        ``"vertices"``, ``"edges"`` or ``"config"``.
    row : int, optional
        Zero-based index of the offending row in the input table.
    column : str, optional
        Offending column name.
    value : Any, optional
        Offending value, when there is a single one.

    """

    def __init__(
        self,
        message: str,
        *,
        table: str | None = None,
        row: int | None = None,
        column: str | None = None,
        value: Any = None,
    ):
        self.table = table
        self.row = row
        self.column = column
        self.value = value
        where = []
        if table is not None:
            where.append(f"table={table}")
        if row is not None:
            where.append(f"row={row}")
        if column is not None:
            where.append(f"column={column}")
        if where:
            message = f"{message} [{', '.join(where)}]"
        super().__init__(message)


class ResourceExhaustedError(WCCError, RuntimeError):
    """The round bound or the work-unit budget was exceeded."""

    def __init__(self, message: str, *, last_round: int):
        self.last_round = last_round
        super().__init__(f"{message} (last completed round: {last_round})")


class RunCancelledError(WCCError):
    """The run was aborted at a round barrier."""

    def __init__(self, *, last_round: int):
        self.last_round = last_round
        super().__init__(f"run cancelled after round {last_round}")
