# tests/test_history.py
import json
import unittest

import polars as pl

from wccgraph.core.history import RunHistory
from wccgraph.core.structure import RoundStatus
from wccgraph.engine import WCCEngine


class TestRunHistory(unittest.TestCase):

    def setUp(self):
        self.h = RunHistory()
        self.h.log_event("round", round=1, changed=3, status=RoundStatus.CONTINUE, groups={2, 1})
        self.h.log_event("round", round=2, changed=0, status=RoundStatus.CONVERGED, groups=set())

    def test_events(self):
        events = self.h.history()
        self.assertEqual([e["version"] for e in events], [1, 2])
        self.assertEqual(events[0]["status"], "continue")
        self.assertEqual(events[0]["groups"], [1, 2])
        self.assertTrue(events[0]["ts_utc"].endswith("Z"))
        self.assertLessEqual(events[0]["mono_ns"], events[1]["mono_ns"])

    def test_as_df(self):
        df = self.h.history(as_df=True)
        self.assertIsInstance(df, pl.DataFrame)
        self.assertEqual(df["changed"].to_list(), [3, 0])

    def test_disable_and_clear(self):
        self.h.enable(False)
        self.h.log_event("round", round=3)
        self.assertEqual(len(self.h), 2)
        self.h.clear()
        self.assertEqual(len(self.h), 0)

    def test_mark(self):
        self.h.mark("checkpoint")
        self.assertEqual(self.h.history()[-1]["label"], "checkpoint")


def test_export_formats(tmp_path):
    eng = WCCEngine()
    eng.run([1, 2, 3], [(1, 2)])
    n = len(eng.history())
    assert eng.export_history(str(tmp_path / "h.jsonl")) == n
    lines = (tmp_path / "h.jsonl").read_text().splitlines()
    assert json.loads(lines[0])["op"] == "partition"
    assert eng.export_history(str(tmp_path / "h.json")) == n
    assert eng.export_history(str(tmp_path / "h.parquet")) == n
    assert pl.read_parquet(tmp_path / "h.parquet").height == n
    assert eng.export_history(str(tmp_path / "h.csv")) == n
    assert eng.export_history(str(tmp_path / "h")) == n
    assert (tmp_path / "h.parquet").exists()


def test_engine_history_ops():
    eng = WCCEngine()
    eng.run([1, 2, 3], [(1, 2), (2, 3)])
    ops = [e["op"] for e in eng.history()]
    assert ops[0] == "partition"
    assert ops[-1] == "assemble"
    assert ops.count("round") == eng.last_rounds


def test_history_off():
    eng = WCCEngine(history=False)
    eng.run([1, 2], [(1, 2)])
    assert eng.history() == []
    assert eng.export_history("unused.parquet") == 0
