"""
Factory functions for building expression trees.

Every function takes already-built nodes (plain Python scalars are promoted to
literals) plus literal parameters, and returns a new node. Nothing is
evaluated here; invalid parameters raise ConstructionError immediately.

Several names (``sum``, ``min``, ``max``, ``pow``, ``slice``) shadow builtins
on purpose; import the module rather than star-importing it.

Example:
    >>> from lazycol.algebra import functions as F
    >>> x = F.col("x")
    >>> F.remainder(x, F.col("y"))    # null wherever y == 0
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Sequence

from lazycol.algebra.dtypes import DType
from lazycol.algebra.expressions import (
    DEFAULT_HEAD_LENGTH,
    Aggregate,
    AggregateKind,
    Alias,
    ArgSort,
    Binary,
    BinaryOperator,
    Cast,
    Column,
    Conditional,
    Cumulative,
    CumulativeKind,
    Distinct,
    Expr,
    Head,
    Literal,
    Slice,
    Sort,
    Tail,
    Unary,
    UnaryOperator,
    Window,
    WindowKind,
    _wrap,
    parse_tag,
)


class FillStrategy(str, Enum):
    BACKWARD = "backward"
    FORWARD = "forward"
    MIN = "min"
    MAX = "max"
    MEAN = "mean"


class PeakKind(str, Enum):
    MIN = "min"
    MAX = "max"


# ----------------------------------------------------------------------
# Builders
# ----------------------------------------------------------------------


def literal(value: Any) -> Literal:
    """Wrap a scalar (int, float, str, bool, date, datetime or None) as a typed leaf."""
    return Literal(value=value)


def column(name: str) -> Column:
    """Create a Column reference expression.

    The name is only resolved when the tree is evaluated.

    Example:
        >>> c = column("age")
        >>> pred = c > 30           # Binary(op='>', left=Column('age'), right=Literal(30))
    """
    return Column(name=name)


lit = literal
col = column


# ----------------------------------------------------------------------
# Comparison & logical combinators
# ----------------------------------------------------------------------


def _binary(op: BinaryOperator, left: Any, right: Any) -> Binary:
    return Binary(op=op, left=_wrap(left), right=_wrap(right))


def eq(left: Any, right: Any) -> Binary:
    return _binary(BinaryOperator.EQ, left, right)


def neq(left: Any, right: Any) -> Binary:
    return _binary(BinaryOperator.NEQ, left, right)


def gt(left: Any, right: Any) -> Binary:
    return _binary(BinaryOperator.GT, left, right)


def gte(left: Any, right: Any) -> Binary:
    return _binary(BinaryOperator.GTE, left, right)


def lt(left: Any, right: Any) -> Binary:
    return _binary(BinaryOperator.LT, left, right)


def lte(left: Any, right: Any) -> Binary:
    return _binary(BinaryOperator.LTE, left, right)


def and_(left: Any, right: Any) -> Binary:
    """Logical AND. Operands must evaluate to booleans (checked at evaluation)."""
    return _binary(BinaryOperator.AND, left, right)


def or_(left: Any, right: Any) -> Binary:
    """Logical OR. Operands must evaluate to booleans (checked at evaluation)."""
    return _binary(BinaryOperator.OR, left, right)


def not_(expr: Any) -> Unary:
    return Unary(op=UnaryOperator.NOT, operand=_wrap(expr))


def is_null(expr: Any) -> Unary:
    return Unary(op=UnaryOperator.IS_NULL, operand=_wrap(expr))


def is_not_null(expr: Any) -> Unary:
    return Unary(op=UnaryOperator.IS_NOT_NULL, operand=_wrap(expr))


def all_equal(left: Any, right: Any) -> Aggregate:
    """A single boolean: whether every paired element of ``left`` and ``right`` is equal."""
    return Aggregate(kind=AggregateKind.ALL, operand=eq(left, right))


# ----------------------------------------------------------------------
# Arithmetic combinators
# ----------------------------------------------------------------------


def add(left: Any, right: Any) -> Binary:
    return _binary(BinaryOperator.ADD, left, right)


def subtract(left: Any, right: Any) -> Binary:
    return _binary(BinaryOperator.SUBTRACT, left, right)


def multiply(left: Any, right: Any) -> Binary:
    return _binary(BinaryOperator.MULTIPLY, left, right)


def divide(left: Any, right: Any) -> Binary:
    """True division with no zero guard; ``x / 0`` follows float semantics."""
    return _binary(BinaryOperator.DIVIDE, left, right)


def pow(left: Any, right: Any) -> Binary:
    return _binary(BinaryOperator.POW, left, right)


def negate(expr: Any) -> Unary:
    return Unary(op=UnaryOperator.NEGATE, operand=_wrap(expr))


def quotient(left: Any, right: Any) -> Binary:
    """Integer division truncating toward zero, null wherever ``right == 0``."""
    left, right = _wrap(left), _wrap(right)
    divisor = Conditional(predicate=eq(right, 0), then=Literal(None), otherwise=right)
    return Binary(op=BinaryOperator.INT_DIVIDE, left=left, right=divisor)


def remainder(left: Any, right: Any) -> Binary:
    """``left - right * quotient(left, right)``.

    Shares the quotient's zero guard, so both are null at the same positions.
    """
    left, right = _wrap(left), _wrap(right)
    return subtract(left, multiply(right, quotient(left, right)))


# ----------------------------------------------------------------------
# Null handling
# ----------------------------------------------------------------------


def coalesce(left: Any, right: Any) -> Conditional:
    """``left`` wherever it is non-null, else ``right``."""
    left, right = _wrap(left), _wrap(right)
    return Conditional(predicate=is_not_null(left), then=left, otherwise=right)


def fill_missing(expr: Any, strategy: str | FillStrategy) -> Expr:
    """Replace nulls using a fill strategy.

    ``forward`` / ``backward`` propagate the nearest non-null value in that
    direction; ``min`` / ``max`` / ``mean`` use the reduction of the whole
    column.

    Raises:
        ConstructionError: If ``strategy`` is not a known fill strategy
    """
    expr = _wrap(expr)
    strategy = parse_tag(FillStrategy, strategy, "fill strategy")
    match strategy:
        case FillStrategy.FORWARD:
            return Unary(op=UnaryOperator.FORWARD_FILL, operand=expr)
        case FillStrategy.BACKWARD:
            return Unary(op=UnaryOperator.BACKWARD_FILL, operand=expr)
        case FillStrategy.MIN:
            return coalesce(expr, Aggregate(kind=AggregateKind.MIN, operand=expr))
        case FillStrategy.MAX:
            return coalesce(expr, Aggregate(kind=AggregateKind.MAX, operand=expr))
        case FillStrategy.MEAN:
            return coalesce(expr, Aggregate(kind=AggregateKind.MEAN, operand=expr))


def fill_missing_with_value(expr: Any, value: Any) -> Conditional:
    """Replace nulls with ``value``, which may itself be an expression."""
    return coalesce(expr, value)


# ----------------------------------------------------------------------
# Aggregates
# ----------------------------------------------------------------------


def _aggregate(kind: AggregateKind, expr: Any, **params: Any) -> Aggregate:
    return Aggregate(kind=kind, operand=_wrap(expr), **params)


def sum(expr: Any) -> Aggregate:
    return _aggregate(AggregateKind.SUM, expr)


def min(expr: Any) -> Aggregate:
    return _aggregate(AggregateKind.MIN, expr)


def max(expr: Any) -> Aggregate:
    return _aggregate(AggregateKind.MAX, expr)


def mean(expr: Any) -> Aggregate:
    return _aggregate(AggregateKind.MEAN, expr)


def median(expr: Any) -> Aggregate:
    return _aggregate(AggregateKind.MEDIAN, expr)


def var(expr: Any) -> Aggregate:
    """Sample variance (ddof=1)."""
    return _aggregate(AggregateKind.VAR, expr)


def std(expr: Any) -> Aggregate:
    """Sample standard deviation (ddof=1)."""
    return _aggregate(AggregateKind.STD, expr)


def quantile(expr: Any, q: float) -> Aggregate:
    """Quantile ``q`` in [0, 1] using nearest-value interpolation."""
    return _aggregate(AggregateKind.QUANTILE, expr, quantile=q)


def count(expr: Any) -> Aggregate:
    """Number of non-null values."""
    return _aggregate(AggregateKind.COUNT, expr)


def n_distinct(expr: Any) -> Aggregate:
    return _aggregate(AggregateKind.N_DISTINCT, expr)


def first(expr: Any) -> Aggregate:
    return _aggregate(AggregateKind.FIRST, expr)


def last(expr: Any) -> Aggregate:
    return _aggregate(AggregateKind.LAST, expr)


def peaks(expr: Any, kind: str | PeakKind = PeakKind.MAX) -> Binary:
    """Boolean mask, true wherever ``expr`` equals its global min or max.

    This compares against the reduction of the whole column; it does not look
    for local extrema.
    """
    expr = _wrap(expr)
    kind = parse_tag(PeakKind, kind, "peak kind")
    match kind:
        case PeakKind.MIN:
            return eq(expr, min(expr))
        case PeakKind.MAX:
            return eq(expr, max(expr))


# ----------------------------------------------------------------------
# Windows & cumulative scans
# ----------------------------------------------------------------------


def _window(
    kind: WindowKind,
    expr: Any,
    window_size: int,
    weights: Optional[Sequence[float]],
    min_periods: Optional[int],
    center: bool,
) -> Window:
    return Window(
        kind=kind,
        operand=_wrap(expr),
        window_size=window_size,
        weights=weights,
        min_periods=min_periods,
        center=center,
    )


def window_max(expr, window_size, weights=None, min_periods=None, center=False) -> Window:
    return _window(WindowKind.MAX, expr, window_size, weights, min_periods, center)


def window_min(expr, window_size, weights=None, min_periods=None, center=False) -> Window:
    return _window(WindowKind.MIN, expr, window_size, weights, min_periods, center)


def window_sum(expr, window_size, weights=None, min_periods=None, center=False) -> Window:
    return _window(WindowKind.SUM, expr, window_size, weights, min_periods, center)


def window_mean(expr, window_size, weights=None, min_periods=None, center=False) -> Window:
    return _window(WindowKind.MEAN, expr, window_size, weights, min_periods, center)


def cumulative_min(expr: Any, reverse: bool = False) -> Cumulative:
    return Cumulative(kind=CumulativeKind.MIN, operand=_wrap(expr), reverse=reverse)


def cumulative_max(expr: Any, reverse: bool = False) -> Cumulative:
    return Cumulative(kind=CumulativeKind.MAX, operand=_wrap(expr), reverse=reverse)


def cumulative_sum(expr: Any, reverse: bool = False) -> Cumulative:
    return Cumulative(kind=CumulativeKind.SUM, operand=_wrap(expr), reverse=reverse)


# ----------------------------------------------------------------------
# Ordering & uniqueness
# ----------------------------------------------------------------------


def sort(expr: Any, descending: bool = False) -> Sort:
    return Sort(operand=_wrap(expr), descending=descending)


def argsort(expr: Any, descending: bool = False) -> ArgSort:
    return ArgSort(operand=_wrap(expr), descending=descending)


def reverse(expr: Any) -> Unary:
    return Unary(op=UnaryOperator.REVERSE, operand=_wrap(expr))


def distinct(expr: Any, stable: bool = True) -> Distinct:
    return Distinct(operand=_wrap(expr), stable=stable)


# ----------------------------------------------------------------------
# Shape, cast & alias
# ----------------------------------------------------------------------


def slice(expr: Any, offset: int, length: int) -> Slice:
    return Slice(operand=_wrap(expr), offset=offset, length=length)


def head(expr: Any, length: int = DEFAULT_HEAD_LENGTH) -> Head:
    return Head(operand=_wrap(expr), length=length)


def tail(expr: Any, length: int = DEFAULT_HEAD_LENGTH) -> Tail:
    return Tail(operand=_wrap(expr), length=length)


def cast(expr: Any, dtype: str | DType) -> Cast:
    """Declare a type coercion.

    Raises:
        ConstructionError: If ``dtype`` is not a known type
    """
    return Cast(operand=_wrap(expr), dtype=dtype)


def alias(expr: Any, name: str) -> Alias:
    return Alias(operand=_wrap(expr), name=name)
