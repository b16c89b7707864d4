"""Exceptions raised by the sandpile engine and its adapters.

All of them derive from ``SandpileError`` (itself a ``ValueError``) so a
driver can catch the whole family in one place.
"""
from __future__ import annotations
from typing import Optional, Tuple


class SandpileError(ValueError):
    pass


class EmptyGridError(SandpileError):
    def __init__(self, grid: Optional[list] = None):
        self.grid = grid
        if grid:
            msg = "Sandpile grid has empty initial row."
        else:
            msg = "Attempt to build a sandpile upon zero-size grid."
        super().__init__(msg)


class RaggedRowsError(SandpileError):
    def __init__(self, grid: list, expected: int, row: int, actual: int):
        self.grid = grid
        self.expected = expected
        self.row = row
        self.actual = actual
        super().__init__(
            f"Sandpile grid does not represent rectangular matrix: initial row has length "
            f"{expected}, row {row} has length {actual}."
        )


class InvalidCountError(SandpileError):
    def __init__(self, grid: list, row: int, col: int, value):
        self.grid = grid
        self.row = row
        self.col = col
        self.value = value
        super().__init__(f"Sandpile cell ({row}, {col}) holds {value!r}; counts must be non-negative integers.")


class TopologyMismatchError(SandpileError):
    def __init__(self, expected, actual):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Adding sandpiles on grids of different types: {expected.name} and {actual.name}.")


class DimensionMismatchError(SandpileError):
    def __init__(self, expected: Tuple[int, int], actual: Tuple[int, int]):
        # (rows, cols) of each operand
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Incorrect dimensions of sandpile grids: expected {expected[0]}x{expected[1]}, "
            f"got {actual[0]}x{actual[1]}."
        )


class UnknownGlyphError(SandpileError):
    def __init__(self, glyph: str):
        self.glyph = glyph
        super().__init__(f"Unknown symbol in the text representation of a sandpile: {glyph!r}")


class ShapeExpectationError(SandpileError):
    def __init__(self, expected: Tuple[int, int], actual: Tuple[int, int]):
        # (width, height) declared by the caller and parsed from the text
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Sandpile text is {actual[0]}x{actual[1]}, expected {expected[0]}x{expected[1]} (width x height)."
        )


class OrderLimitError(SandpileError):
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Sandpile did not return to itself within {limit} additions.")
