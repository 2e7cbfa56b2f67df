from enum import Enum

import polars as pl

__all__ = [
    "GID", "VID", "SRC", "DST", "LABEL", "PROPOSAL", "ROW",
    "ID_DTYPE", "GID_DTYPE", "VERTEX_SCHEMA", "EDGE_SCHEMA", "LABEL_SCHEMA",
    "MissingVertexPolicy", "Backend", "RoundStatus",
]

# Internal column names. Everything after partitioning is keyed on (GID, VID).
GID = "__gid"
VID = "__vid"
SRC = "__src"
DST = "__dst"
LABEL = "__label"
PROPOSAL = "__proposal"
ROW = "__row"

ID_DTYPE = pl.Int64
GID_DTYPE = pl.UInt32

VERTEX_SCHEMA = {GID: GID_DTYPE, VID: ID_DTYPE}
EDGE_SCHEMA = {GID: GID_DTYPE, SRC: ID_DTYPE, DST: ID_DTYPE}
LABEL_SCHEMA = {GID: GID_DTYPE, VID: ID_DTYPE, LABEL: ID_DTYPE}


class MissingVertexPolicy(str, Enum):
    """What to do with edge endpoints absent from the vertex table.

    Attributes:
        REJECT: Fail the invocation with an input validation error
        ADOPT: Add the endpoint as a vertex of the edge's group
    """

    REJECT = "reject"
    ADOPT = "adopt"


class Backend(str, Enum):
    """Round execution backend (POLARS, SPARSE).

    Attributes:
        POLARS: Set-oriented joins over Polars frames, batched
        SPARSE: In-memory numpy/scipy CSR relaxation
    """

    POLARS = "polars"
    SPARSE = "sparse"


class RoundStatus(str, Enum):
    CONTINUE = "continue"
    CONVERGED = "converged"
