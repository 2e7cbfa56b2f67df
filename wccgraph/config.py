"""Configuration for a component-computation run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .core.structure import Backend, MissingVertexPolicy
from .errors import InputValidationError


def _as_columns(value: Any) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    cols = tuple(str(c) for c in value)
    return cols or None


@dataclass(frozen=True)
class WCCConfig:
    """Options recognised by the engine.

    Attributes:
        vertex_id_column: Vertex-table identifier column.
        edge_src_column: Edge-table column carrying the first endpoint.
        edge_dest_column: Edge-table column carrying the second endpoint.
        group_by: Grouping columns present in both tables, or None.
        missing_vertex_policy: "reject" | "adopt" for endpoints absent from the vertex table.
        max_rounds: Safety bound on rounds. None uses the largest group's vertex count + 1.
        batch_size: Max edges per work unit. None means one unit per round.
        max_work_units: Upper bound on work units per round. None means unbounded.
        workers: Number of threads running work units in parallel.
        label_partitions: Hash partitions of the label store.
        prune_inactive: Drop edges of converged groups from later rounds.
        backend: "polars" | "sparse".
        component_column: Name of the output label column.
        history: Record per-round events.
    """

    vertex_id_column: str = "id"
    edge_src_column: str = "src"
    edge_dest_column: str = "dest"
    group_by: tuple[str, ...] | None = None
    missing_vertex_policy: MissingVertexPolicy = MissingVertexPolicy.REJECT
    max_rounds: int | None = None
    batch_size: int | None = None
    max_work_units: int | None = None
    workers: int = 1
    label_partitions: int = 1
    prune_inactive: bool = True
    backend: Backend = Backend.POLARS
    component_column: str = "component_id"
    history: bool = True

    _RESERVED_PREFIX: str = field(default="__", repr=False)

    def __post_init__(self) -> None:
        # frozen: normalise through object.__setattr__
        object.__setattr__(self, "group_by", _as_columns(self.group_by))
        try:
            object.__setattr__(
                self, "missing_vertex_policy", MissingVertexPolicy(self.missing_vertex_policy)
            )
        except ValueError:
            raise InputValidationError(
                f"missing_vertex_policy must be one of "
                f"{[p.value for p in MissingVertexPolicy]}, got {self.missing_vertex_policy!r}",
                table="config",
            ) from None
        try:
            object.__setattr__(self, "backend", Backend(self.backend))
        except ValueError:
            raise InputValidationError(
                f"backend must be one of {[b.value for b in Backend]}, got {self.backend!r}",
                table="config",
            ) from None

        if self.max_rounds is not None and self.max_rounds < 1:
            raise InputValidationError(
                f"max_rounds must be >= 1, got {self.max_rounds}", table="config"
            )
        if self.batch_size is not None and self.batch_size < 1:
            raise InputValidationError(
                f"batch_size must be >= 1, got {self.batch_size}", table="config"
            )
        if self.max_work_units is not None and self.max_work_units < 1:
            raise InputValidationError(
                f"max_work_units must be >= 1, got {self.max_work_units}", table="config"
            )
        if self.workers < 1:
            raise InputValidationError(f"workers must be >= 1, got {self.workers}", table="config")
        if self.label_partitions < 1:
            raise InputValidationError(
                f"label_partitions must be >= 1, got {self.label_partitions}", table="config"
            )

        names = [self.vertex_id_column, self.edge_src_column, self.edge_dest_column]
        names += list(self.group_by or ())
        names.append(self.component_column)
        for name in names:
            if not name:
                raise InputValidationError("column names must be non-empty", table="config")
            if name.startswith(self._RESERVED_PREFIX):
                raise InputValidationError(
                    f"column names starting with {self._RESERVED_PREFIX!r} are reserved",
                    table="config",
                    column=name,
                )
        if self.edge_src_column == self.edge_dest_column:
            raise InputValidationError(
                "edge source and destination columns must differ",
                table="config",
                column=self.edge_src_column,
            )
        if self.group_by:
            if len(set(self.group_by)) != len(self.group_by):
                raise InputValidationError("group_by lists a column twice", table="config")
            clash = {self.vertex_id_column, self.edge_src_column, self.edge_dest_column}
            clash &= set(self.group_by)
            if clash:
                raise InputValidationError(
                    f"group_by overlaps identifier columns: {sorted(clash)}",
                    table="config",
                )
        if self.component_column in (self.group_by or ()) or (
            self.component_column == self.vertex_id_column
        ):
            raise InputValidationError(
                "component_column clashes with an input column",
                table="config",
                column=self.component_column,
            )

    @property
    def grouped(self) -> bool:
        return bool(self.group_by)

    def to_dict(self) -> dict[str, Any]:
        return {
            "vertex_id_column": self.vertex_id_column,
            "edge_src_column": self.edge_src_column,
            "edge_dest_column": self.edge_dest_column,
            "group_by": list(self.group_by) if self.group_by else None,
            "missing_vertex_policy": self.missing_vertex_policy.value,
            "max_rounds": self.max_rounds,
            "batch_size": self.batch_size,
            "max_work_units": self.max_work_units,
            "workers": self.workers,
            "label_partitions": self.label_partitions,
            "prune_inactive": self.prune_inactive,
            "backend": self.backend.value,
            "component_column": self.component_column,
            "history": self.history,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WCCConfig:
        return cls.from_mapping(**data)

    @classmethod
    def from_mapping(cls, **options: Any) -> WCCConfig:
        """Build a config from declaration-layer options.

        Accepts every field by name, plus ``edge_column_mapping={"src": ..., "dest": ...}``
        as an alternative spelling of the two endpoint columns.
        """
        mapping = options.pop("edge_column_mapping", None)
        if mapping:
            unknown = set(mapping) - {"src", "dest"}
            if unknown:
                raise InputValidationError(
                    f"edge_column_mapping accepts only 'src' and 'dest', got {sorted(unknown)}",
                    table="config",
                )
            if "src" in mapping:
                options.setdefault("edge_src_column", mapping["src"])
            if "dest" in mapping:
                options.setdefault("edge_dest_column", mapping["dest"])
        known = set(cls.__dataclass_fields__) - {"_RESERVED_PREFIX"}
        unknown = set(options) - known
        if unknown:
            raise InputValidationError(
                f"unrecognised options: {sorted(unknown)}", table="config"
            )
        return cls(**options)
