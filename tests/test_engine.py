# tests/test_engine.py
import polars as pl
import pytest

from wccgraph.config import WCCConfig
from wccgraph.engine import CancelToken, WCCEngine, weakly_connected_components
from wccgraph.errors import InputValidationError, ResourceExhaustedError, RunCancelledError


def as_map(result, vcol="id", ccol="component_id"):
    return dict(result.select(vcol, ccol).iter_rows())


class TestScenarios:
    """Reference graphs, run on every backend."""

    def test_scenario_a(self, graph_a, backend):
        V, E = graph_a
        out = weakly_connected_components(V, E, backend=backend)
        assert out.columns == ["id", "component_id"]
        assert out.height == 7
        m = as_map(out)
        assert {v: m[v] for v in (0, 1, 2, 3, 5, 6)} == {v: 0 for v in (0, 1, 2, 3, 5, 6)}

    def test_scenario_b(self, graph_b, backend):
        V, E = graph_b
        out = weakly_connected_components(V, E, backend=backend)
        assert as_map(out) == {10: 10, 11: 10, 12: 10, 13: 10}

    def test_scenario_c_singleton(self, graph_a, backend):
        V, E = graph_a
        out = weakly_connected_components(V, E, backend=backend)
        assert as_map(out)[4] == 4

    def test_scenario_d_shared_vertices(self, grouped_shared, backend):
        V, E = grouped_shared
        out = weakly_connected_components(V, E, group_by=["user_id"], backend=backend)
        assert out.columns == ["id", "component_id", "user_id"]
        rows = set(out.iter_rows())
        assert {(v, 0, 1) for v in (0, 1, 2, 3, 5, 6)} <= rows
        assert {(v, 10, 2) for v in (10, 11, 12, 13)} <= rows
        # 4 appears in no edge: singleton, no group
        assert (4, 4, None) in rows
        assert out.height == 11

    def test_scenario_d_scoped_vertices(self, grouped_scoped, backend):
        V, E = grouped_scoped
        out = weakly_connected_components(V, E, group_by=["user_id"], backend=backend)
        rows = set(out.iter_rows())
        assert rows == (
            {(v, 0, 1) for v in (0, 1, 2, 3, 5, 6)}
            | {(4, 4, 1)}
            | {(v, 10, 2) for v in (10, 11, 12, 13)}
        )

    def test_grouped_with_plain_vertex_list(self, backend):
        E = pl.DataFrame({"src": [1], "dest": [2], "g": ["a"]})
        out = weakly_connected_components([1, 2, 3], E, group_by=["g"], backend=backend)
        assert out.columns == ["id", "component_id", "g"]
        assert out.rows() == [(1, 1, "a"), (2, 1, "a"), (3, 3, None)]

    def test_output_sorted_by_group_then_vertex(self, grouped_shared):
        V, E = grouped_shared
        out = weakly_connected_components(V, E, group_by="user_id")
        assert out["user_id"].to_list()[:6] == [1] * 6
        assert out["user_id"].to_list()[-1] is None
        assert out.filter(pl.col("user_id") == 1)["id"].to_list() == [0, 1, 2, 3, 5, 6]


class TestLaws:

    def test_group_isolation_same_ids(self, backend):
        V = pl.DataFrame({"id": [1, 2, 3, 1, 2, 3], "g": ["a", "a", "a", "b", "b", "b"]})
        E = pl.DataFrame({"src": [1, 2], "dest": [2, 3], "g": ["a", "b"]})
        out = weakly_connected_components(V, E, group_by=["g"], backend=backend)
        got = {(r["g"], r["id"]): r["component_id"] for r in out.iter_rows(named=True)}
        assert got == {
            ("a", 1): 1, ("a", 2): 1, ("a", 3): 3,
            ("b", 1): 1, ("b", 2): 2, ("b", 3): 2,
        }

    def test_identical_structure_in_two_groups(self):
        E = pl.DataFrame({"src": [5, 6, 5, 6], "dest": [6, 7, 6, 7], "g": [1, 1, 2, 2]})
        V = pl.DataFrame({"id": [5, 6, 7, 5, 6, 7], "g": [1, 1, 1, 2, 2, 2]})
        out = weakly_connected_components(V, E, group_by=["g"])
        assert out.height == 6
        assert out.group_by("g").agg(pl.col("component_id").n_unique())["component_id"].to_list() == [1, 1]

    def test_composite_group_key(self):
        V = pl.DataFrame({"id": [1, 2, 1, 2], "a": [0, 0, 0, 0], "b": ["x", "x", "y", "y"]})
        E = pl.DataFrame({"src": [1], "dest": [2], "a": [0], "b": ["x"]})
        out = weakly_connected_components(V, E, group_by=["a", "b"])
        got = {(r["b"], r["id"]): r["component_id"] for r in out.iter_rows(named=True)}
        assert got == {("x", 1): 1, ("x", 2): 1, ("y", 1): 1, ("y", 2): 2}

    def test_self_loops_and_duplicates(self, backend):
        V = [1, 2, 3]
        E = [(2, 2), (3, 2), (2, 3), (3, 2), (3, 3)]
        out = weakly_connected_components(V, E, backend=backend)
        assert as_map(out) == {1: 1, 2: 2, 3: 2}

    def test_direction_ignored(self, backend):
        out = weakly_connected_components([7, 8, 9], [(9, 8), (8, 7)], backend=backend)
        assert as_map(out) == {7: 7, 8: 7, 9: 7}

    def test_idempotent(self, graph_a):
        V, E = graph_a
        first = weakly_connected_components(V, E)
        second = weakly_connected_components(V, E)
        assert first.equals(second)

    def test_order_independence(self, grouped_shared):
        V, E = grouped_shared
        base = weakly_connected_components(V, E, group_by=["user_id"])
        shuffled = weakly_connected_components(
            V.sample(fraction=1.0, shuffle=True, seed=3),
            E.sample(fraction=1.0, shuffle=True, seed=7),
            group_by=["user_id"],
        )
        assert base.equals(shuffled)

    def test_negative_and_sparse_ids(self):
        out = weakly_connected_components([-5, 1_000_000, 42], [(1_000_000, -5)])
        assert as_map(out) == {-5: -5, 42: 42, 1_000_000: -5}

    def test_empty_graph(self, backend):
        out = weakly_connected_components([], [], backend=backend)
        assert out.height == 0
        assert out.columns == ["id", "component_id"]

    def test_long_path_converges(self, backend):
        n = 60
        V = list(range(n))
        E = [(i + 1, i) for i in range(n - 1)]
        eng = WCCEngine(backend=backend)
        out = eng.run(V, E)
        assert set(out["component_id"].to_list()) == {0}
        # label of 0 walks one hop per round, plus one round to observe the fixpoint
        assert eng.last_rounds == n


class TestExecution:

    def test_batches_and_workers_agree(self, grouped_shared):
        V, E = grouped_shared
        base = weakly_connected_components(V, E, group_by=["user_id"])
        batched = weakly_connected_components(
            V, E, group_by=["user_id"], batch_size=3, workers=4, label_partitions=5
        )
        assert base.equals(batched)

    def test_pruning_does_not_change_result(self, grouped_shared):
        V, E = grouped_shared
        on = weakly_connected_components(V, E, group_by=["user_id"], prune_inactive=True)
        off = weakly_connected_components(V, E, group_by=["user_id"], prune_inactive=False)
        assert on.equals(off)

    def test_pruning_shrinks_active_edges(self):
        # group 1 is a single edge, group 2 a long path
        rows = [(0, 1, 1)] + [(i, i + 1, 2) for i in range(10, 20)]
        E = pl.DataFrame(rows, schema=["src", "dest", "g"], orient="row")
        V = pl.DataFrame({"id": list(range(0, 2)) + list(range(10, 21))})
        eng = WCCEngine(group_by=["g"])
        eng.run(V, E)
        rounds = eng.history(as_df=True).filter(pl.col("op") == "round")
        active = rounds["active_edges"].to_list()
        assert active[0] == 11
        assert active[-1] == 10

    def test_custom_column_names(self):
        V = pl.DataFrame({"node": [1, 2, 3]})
        E = pl.DataFrame({"a": [1], "b": [3]})
        out = weakly_connected_components(
            V,
            E,
            vertex_id_column="node",
            edge_column_mapping={"src": "a", "dest": "b"},
            component_column="cc",
        )
        assert out.columns == ["node", "cc"]
        assert dict(out.iter_rows()) == {1: 1, 2: 2, 3: 1}

    def test_config_object(self, graph_b):
        V, E = graph_b
        out = WCCEngine(WCCConfig(backend="sparse")).run(V, E)
        assert set(out["component_id"].to_list()) == {10}

    def test_config_and_options_conflict(self):
        with pytest.raises(TypeError):
            WCCEngine(WCCConfig(), workers=2)

    def test_lazy_and_pandas_inputs(self, graph_b):
        V, E = graph_b
        lazy = weakly_connected_components(V.lazy(), E.lazy())
        pytest.importorskip("pandas")
        pytest.importorskip("pyarrow")
        pdf = weakly_connected_components(V.to_pandas(), E.to_pandas())
        assert lazy.equals(pdf)


class TestErrors:

    def test_missing_vertex_rejected(self):
        with pytest.raises(InputValidationError) as ei:
            weakly_connected_components([1, 2], [(1, 2), (2, 9)])
        assert ei.value.table == "edges"
        assert ei.value.row == 1
        assert ei.value.value == 9

    def test_missing_vertex_adopted(self):
        with pytest.warns(RuntimeWarning, match="adopting 1 vertex"):
            out = weakly_connected_components(
                [1, 2], [(1, 2), (2, 9)], missing_vertex_policy="adopt"
            )
        assert as_map(out) == {1: 1, 2: 1, 9: 1}

    def test_round_budget_exhausted(self):
        E = [(i, i + 1) for i in range(10)]
        with pytest.raises(ResourceExhaustedError) as ei:
            weakly_connected_components(list(range(11)), E, max_rounds=3)
        assert ei.value.last_round == 3

    def test_work_unit_budget_exhausted(self, graph_a):
        V, E = graph_a
        with pytest.raises(ResourceExhaustedError) as ei:
            weakly_connected_components(V, E, batch_size=1, max_work_units=2)
        assert ei.value.last_round == 0

    def test_cancel_before_start(self, graph_a):
        V, E = graph_a
        token = CancelToken()
        token.cancel()
        with pytest.raises(RunCancelledError) as ei:
            weakly_connected_components(V, E, cancel=token)
        assert ei.value.last_round == 0

    def test_cancel_between_rounds(self):
        token = CancelToken()
        E = [(i, i + 1) for i in range(20)]

        def stop_after_two(report):
            if report.round_no == 2:
                token.cancel()

        eng = WCCEngine()
        with pytest.raises(RunCancelledError) as ei:
            eng.run(list(range(21)), E, cancel=token, on_round=stop_after_two)
        assert ei.value.last_round == 2
        assert eng.history()[-1]["op"] == "cancel"
