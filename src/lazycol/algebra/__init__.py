"""
Column expression algebra.

This module defines the immutable expression tree used to describe column-wise
computations, plus the small logical plan used at the evaluation boundary.

Key components:
- Expression nodes: Column, Literal, Unary, Binary, Conditional, Aggregate,
                    Window, Cumulative, Sort, ArgSort, Distinct, Cast, Alias,
                    Slice, Head, Tail
- functions: one factory per operation (``functions.quotient``, ``functions.window_sum``, ...)
- LogicalPlan: Source / Filter operations handed to an engine
"""

from . import functions
from .dtypes import DType
from .expressions import (
    Expr,
    Column,
    Literal,
    Unary,
    Binary,
    Conditional,
    Aggregate,
    Window,
    Cumulative,
    Sort,
    ArgSort,
    Distinct,
    Cast,
    Alias,
    Slice,
    Head,
    Tail,
    UnaryOperator,
    BinaryOperator,
    AggregateKind,
    WindowKind,
    CumulativeKind,
)
from .functions import FillStrategy, PeakKind, col, lit
from .logical_plan import LogicalPlan
from .operations import Operation, Source, Filter

__all__ = [
    "functions",
    "DType",
    "Expr",
    "Column",
    "Literal",
    "Unary",
    "Binary",
    "Conditional",
    "Aggregate",
    "Window",
    "Cumulative",
    "Sort",
    "ArgSort",
    "Distinct",
    "Cast",
    "Alias",
    "Slice",
    "Head",
    "Tail",
    "UnaryOperator",
    "BinaryOperator",
    "AggregateKind",
    "WindowKind",
    "CumulativeKind",
    "FillStrategy",
    "PeakKind",
    "col",
    "lit",
    "LogicalPlan",
    "Operation",
    "Source",
    "Filter",
]
