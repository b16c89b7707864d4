"""
Sandpile group on rectangular grids
===================================

A ``Sandpile`` is a stable chip configuration on a finite grid (sink all
around the border) or on a torus (sink at the top-left cell). Stable
configurations form a finite abelian group under "add cellwise, then
topple until stable"; this module implements that group: addition, the
neutral element, inverses, element order and the recurrence test.

Every constructor validates its input and returns an already stabilized
configuration, so a ``Sandpile`` handed to the caller always has fewer than
4 chips per cell.
"""
from __future__ import annotations
import logging
from numbers import Integral
from typing import List, Optional, Tuple

import numpy as np

from glyphs import parse_glyphs, render_glyphs
from sandpile_errors import (
    DimensionMismatchError,
    EmptyGridError,
    InvalidCountError,
    OrderLimitError,
    RaggedRowsError,
    ShapeExpectationError,
    TopologyMismatchError,
)
from topple import Topology, sink_degree, stabilize

# Proposition 6.36 of http://people.reed.edu/~davidp/divisors_and_sandpiles/
IDENTITY_FILL = 6

log = logging.getLogger("sandpile")

Grid = List[List[int]]


def _validate(grid) -> np.ndarray:
    """Rectangular, non-empty, non-negative integers -> fresh int64 array."""
    if isinstance(grid, np.ndarray):
        if grid.ndim != 2:
            raise TypeError(f"sandpile grid must be 2-D, got {grid.ndim}-D array")
        rows = grid.tolist()
    else:
        rows = [list(row) for row in grid]

    if not rows:
        raise EmptyGridError()
    width = len(rows[0])
    if width == 0:
        raise EmptyGridError(rows)
    for i, row in enumerate(rows[1:], start=1):
        if len(row) != width:
            raise RaggedRowsError(rows, width, i, len(row))
    for i, row in enumerate(rows):
        for j, v in enumerate(row):
            if isinstance(v, bool) or not isinstance(v, Integral) or v < 0:
                raise InvalidCountError(rows, i, j, v)
    return np.array(rows, dtype=np.int64)


class Sandpile:
    """Stable configuration of chips on a finite or toroidal grid."""

    __hash__ = None  # cells are mutable storage

    def __init__(self, topology: Topology, grid):
        self._topology = Topology(topology)
        self._cells = _validate(grid)
        self._settle()

    @classmethod
    def _wrap(cls, topology: Topology, cells: np.ndarray) -> "Sandpile":
        # cells: freshly computed int64 array owned by the new pile
        pile = cls.__new__(cls)
        pile._topology = topology
        pile._cells = np.ascontiguousarray(cells, dtype=np.int64)
        pile._settle()
        return pile

    def _settle(self) -> None:
        if self._topology is Topology.TOROIDAL:
            self._cells[0, 0] = 0
        self._last_topple = stabilize(self._cells, self._topology)

    # ------------------------- construction -------------------------

    @classmethod
    def from_grid(cls, topology: Topology, grid) -> "Sandpile":
        return cls(topology, grid)

    @classmethod
    def from_string(cls, topology: Topology, dims: Tuple[int, int], text: str) -> "Sandpile":
        """Parse a glyph block (' ', '.', ':', '&', '#' -> 0..4) of the given (width, height)."""
        width, height = dims
        grid = parse_glyphs(text)
        if width == 0 or height == 0 or not grid:
            raise EmptyGridError()
        pile = cls(topology, grid)
        if pile.shape != (height, width):
            raise ShapeExpectationError((width, height), (pile.width, pile.height))
        return pile

    @classmethod
    def _reference(cls, topology: Topology, shape: Tuple[int, int]) -> "Sandpile":
        return cls(topology, np.full(shape, IDENTITY_FILL, dtype=np.int64))

    @classmethod
    def neutral(cls, topology: Topology, dims: Tuple[int, int]) -> "Sandpile":
        """Identity element of the sandpile group on a (width, height) grid."""
        topology = Topology(topology)
        width, height = dims
        ref = cls._reference(topology, (height, width))
        return cls._wrap(topology, IDENTITY_FILL - ref._cells)

    # ------------------------- accessors -------------------------

    @property
    def topology(self) -> Topology:
        return self._topology

    @property
    def cells(self) -> np.ndarray:
        view = self._cells.view()
        view.flags.writeable = False
        return view

    @property
    def last_topple(self) -> int:
        """Topplings performed by the stabilization that produced this pile."""
        return self._last_topple

    @property
    def shape(self) -> Tuple[int, int]:
        return self._cells.shape

    @property
    def width(self) -> int:
        return self._cells.shape[1]

    @property
    def height(self) -> int:
        return self._cells.shape[0]

    def to_grid(self) -> Grid:
        return self._cells.tolist()

    # ------------------------- group operations -------------------------

    def _check_compatible(self, other: "Sandpile") -> None:
        if other._topology is not self._topology:
            raise TopologyMismatchError(self._topology, other._topology)
        if other.shape != self.shape:
            raise DimensionMismatchError(self.shape, other.shape)

    def add(self, other: "Sandpile") -> "Sandpile":
        self._check_compatible(other)
        return self._wrap(self._topology, self._cells + other._cells)

    def inverse(self) -> "Sandpile":
        ref = self._reference(self._topology, self.shape)
        return self._wrap(self._topology, 2 * (IDENTITY_FILL - ref._cells) - self._cells)

    def order(self, limit: Optional[int] = None) -> int:
        """Smallest n >= 1 with (n + 1) * self == self.

        A non-recurrent pile may never come back to itself; pass ``limit``
        to give up after that many additions with ``OrderLimitError``.
        """
        acc = self.add(self)
        count = 1
        while acc != self:
            if limit is not None and count >= limit:
                raise OrderLimitError(limit)
            acc = acc.add(self)
            count += 1
            if count % 1000 == 0:
                log.debug(f"order: {count} additions so far")
        return count

    def is_recurrent(self) -> bool:
        """Burning test: recurrent iff adding the sink degrees topples back to self."""
        burnt = self._wrap(self._topology, self._cells + sink_degree(self.shape, self._topology))
        return burnt == self

    def __add__(self, other):
        if not isinstance(other, Sandpile):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other):
        if not isinstance(other, Sandpile):
            return NotImplemented
        self._check_compatible(other)
        return self.add(other.inverse())

    def __neg__(self):
        return self.inverse()

    # ------------------------- comparison & display -------------------------

    def __eq__(self, other):
        if not isinstance(other, Sandpile):
            return NotImplemented
        return (self._topology is other._topology
                and self.shape == other.shape
                and bool(np.array_equal(self._cells, other._cells)))

    def __str__(self):
        return render_glyphs(self._cells)

    def __repr__(self):
        return f"{self.__class__.__name__}<{self._topology.name}, {self.width}x{self.height}>"
