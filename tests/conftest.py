import pathlib
import sys

import polars as pl
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]  # project root
sys.path.insert(0, str(ROOT))

# Edge sets of the two reference graphs
EDGES_A = [(0, 1), (0, 2), (1, 2), (1, 3), (2, 3), (2, 5), (2, 6), (3, 0), (5, 6), (6, 3)]
EDGES_B = [(10, 11), (10, 12), (11, 12), (11, 13), (12, 13), (13, 10)]
VERTS_A = [0, 1, 2, 3, 4, 5, 6]
VERTS_B = [10, 11, 12, 13]


@pytest.fixture
def graph_a():
    vertices = pl.DataFrame({"id": VERTS_A})
    edges = pl.DataFrame(EDGES_A, schema=["src", "dest"], orient="row")
    return vertices, edges


@pytest.fixture
def graph_b():
    vertices = pl.DataFrame({"id": VERTS_B})
    edges = pl.DataFrame(EDGES_B, schema=["src", "dest"], orient="row")
    return vertices, edges


@pytest.fixture
def grouped_shared():
    """A and B tagged with user 1 and 2; the vertex table has no group column."""
    vertices = pl.DataFrame({"id": VERTS_A + VERTS_B})
    rows = [(s, d, 1) for s, d in EDGES_A] + [(s, d, 2) for s, d in EDGES_B]
    edges = pl.DataFrame(rows, schema=["src", "dest", "user_id"], orient="row")
    return vertices, edges


@pytest.fixture
def grouped_scoped():
    """A and B tagged with user 1 and 2; vertices carry their group too."""
    vertices = pl.DataFrame(
        [(v, 1) for v in VERTS_A] + [(v, 2) for v in VERTS_B],
        schema=["id", "user_id"],
        orient="row",
    )
    rows = [(s, d, 1) for s, d in EDGES_A] + [(s, d, 2) for s, d in EDGES_B]
    edges = pl.DataFrame(rows, schema=["src", "dest", "user_id"], orient="row")
    return vertices, edges


@pytest.fixture(params=["polars", "sparse"])
def backend(request):
    return request.param

