from __future__ import annotations
import enum
import logging
from typing import Tuple

import numpy as np
from numba import njit

THRESHOLD = 4  # a cell with this many chips topples

log = logging.getLogger("sandpile")


class Topology(enum.Enum):
    FINITE = "finite"      # sink all around the grid
    TOROIDAL = "toroidal"  # wrap-around grid, sink at (0, 0)


# ========================= Neighbour tables =========================

def neighbour_table(shape: Tuple[int, int], topology: Topology) -> np.ndarray:
    """Flat index of the up/left/down/right neighbour of every cell.

    Row ``v`` of the result (``v = r * W + c``) lists where cell ``(r, c)``
    sends its chips when it topples; ``-1`` marks a chip lost to the sink.
    """
    H, W = shape
    r, c = np.divmod(np.arange(H * W, dtype=np.int64), W)
    steps = ((-1, 0), (0, -1), (1, 0), (0, 1))
    table = np.empty((H * W, 4), dtype=np.int64)

    for k, (dr, dc) in enumerate(steps):
        rr, cc = r + dr, c + dc
        if topology is Topology.FINITE:
            inside = (rr >= 0) & (rr < H) & (cc >= 0) & (cc < W)
            table[:, k] = np.where(inside, rr * W + cc, -1)
        else:
            flat = (rr % H) * W + (cc % W)
            table[:, k] = np.where(flat == 0, -1, flat)
    return table


def sink_index(topology: Topology) -> int:
    """Flat index of the cell that must never topple (-1 if there is none)."""
    return 0 if topology is Topology.TOROIDAL else -1


def sink_degree(shape: Tuple[int, int], topology: Topology) -> np.ndarray:
    """Per-cell number of edges into the sink (the burning configuration)."""
    table = neighbour_table(shape, topology)
    deg = (table < 0).sum(axis=1).astype(np.int64).reshape(shape)
    if topology is Topology.TOROIDAL:
        deg[0, 0] = 0
    return deg


# ========================= Relaxation kernel =========================

@njit(cache=True)
def _relax(cells, table, sink, thresh):
    # cells: flat int64 view, mutated in place; returns the toppling count
    n = cells.size
    current = np.empty(n, dtype=np.int64)
    upcoming = np.empty(n, dtype=np.int64)
    queued = np.zeros(n, dtype=np.bool_)

    size = 0
    for v in range(n):
        if v != sink and cells[v] >= thresh:
            current[size] = v
            size += 1

    total = 0
    while size > 0:
        nxt = 0
        for k in range(size):
            v = current[k]
            d = cells[v] // thresh
            if d == 0:
                continue
            cells[v] -= thresh * d
            total += d
            for q in range(4):
                u = table[v, q]
                if u < 0:
                    continue
                cells[u] += d
                if cells[u] >= thresh and not queued[u]:
                    queued[u] = True
                    upcoming[nxt] = u
                    nxt += 1
        current, upcoming = upcoming, current
        size = nxt
        for k in range(size):
            queued[current[k]] = False
    return total


def stabilize(cells: np.ndarray, topology: Topology) -> int:
    """Topple ``cells`` in place until every cell holds fewer than 4 chips.

    Returns the number of single topplings performed. The result does not
    depend on the order the unstable cells are processed in.
    """
    if cells.ndim != 2 or not cells.flags.c_contiguous or cells.dtype != np.int64:
        raise TypeError("stabilize expects a C-contiguous 2-D int64 array")
    table = neighbour_table(cells.shape, topology)
    count = int(_relax(cells.reshape(-1), table, sink_index(topology), THRESHOLD))
    log.debug(f"stabilize: {topology.value} {cells.shape[1]}x{cells.shape[0]}, topplings={count}")
    return count


def is_stable(cells: np.ndarray) -> bool:
    return bool((cells < THRESHOLD).all())
