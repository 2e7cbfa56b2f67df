from __future__ import annotations

import json
import time
from datetime import UTC, datetime
from enum import Enum

import numpy as np
import polars as pl

__all__ = [
    "RunHistory",
]


class RunHistory:
    """Append-only, in-memory log of run events (partitioning, rounds, results)."""

    def __init__(self, enabled: bool = True):
        self._enabled = bool(enabled)
        self._events: list[dict] = []
        self._version = 0
        self._clock0 = time.perf_counter_ns()

    def __len__(self) -> int:
        return len(self._events)

    @staticmethod
    def _utcnow_iso() -> str:
        return datetime.now(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")

    @staticmethod
    def _jsonify(x):
        if isinstance(x, Enum):
            return x.value
        if x is None or isinstance(x, (bool, int, float, str)):
            return x
        if isinstance(x, (set, frozenset)):
            return sorted(RunHistory._jsonify(v) for v in x)
        if isinstance(x, (list, tuple)):
            return [RunHistory._jsonify(v) for v in x]
        if isinstance(x, dict):
            return {str(k): RunHistory._jsonify(v) for k, v in x.items()}
        if isinstance(x, np.generic):
            return x.item()
        # Polars frames or other heavy objects -> just a tag
        return f"<<{type(x).__name__}>>"

    def log_event(self, op: str, **fields):
        if not self._enabled:
            return
        self._version += 1
        evt = {
            "version": self._version,
            "ts_utc": self._utcnow_iso(),
            "mono_ns": time.perf_counter_ns() - self._clock0,
            "op": op,
        }
        for k, v in fields.items():
            evt[k] = self._jsonify(v)
        self._events.append(evt)

    def history(self, as_df: bool = False):
        """Return the event log.

        Parameters
        ----------
        as_df : bool, default False
            If True, return a Polars DataFrame; otherwise a list of dicts.

        Returns
        -------
        list[dict] or polars.DataFrame
            Each event includes 'version', 'ts_utc' (UTC ISO-8601), 'mono_ns'
            (monotonic nanoseconds since the log was created), 'op' and the
            event's own fields.

        """
        if as_df:
            return pl.DataFrame(self._events, infer_schema_length=None)
        return list(self._events)

    def export_history(self, path: str) -> int:
        """Write the event log to disk.

        Parameters
        ----------
        path : str
            Output path. Supported extensions: '.parquet', '.ndjson' (a.k.a. '.jsonl'),
            '.json', '.csv'. Unknown extensions default to Parquet by appending '.parquet'.

        Returns
        -------
        int
            Number of events written. Returns 0 if the log is empty.

        """
        if not self._events:
            return 0
        path = str(path)
        p = path.lower()
        if p.endswith(".ndjson") or p.endswith(".jsonl"):
            with open(path, "w", encoding="utf-8") as f:
                for evt in self._events:
                    f.write(json.dumps(evt, ensure_ascii=False) + "\n")
            return len(self._events)
        if p.endswith(".json"):
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self._events, f, ensure_ascii=False)
            return len(self._events)
        df = self.history(as_df=True)
        if p.endswith(".csv"):
            # nested values (lists) are not CSV-representable
            df = df.with_columns(
                [pl.col(c).cast(pl.List(pl.Utf8)).list.join("|") for c, t in df.schema.items() if isinstance(t, pl.List)]
            )
            df.write_csv(path)
            return len(df)
        if not p.endswith(".parquet"):
            path += ".parquet"
        df.write_parquet(path)
        return len(df)

    def enable(self, flag: bool = True):
        self._enabled = bool(flag)

    def clear(self):
        """Clear the in-memory log. Files previously exported are untouched."""
        self._events.clear()

    def mark(self, label: str):
        """Insert a manual marker event."""
        self.log_event("mark", label=label)
