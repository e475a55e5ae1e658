"""Pandas engine: evaluates expression trees bottom-up using pandas.

Columns are materialised with the nullable extension dtypes (``Int64``,
``Float64``, ``boolean``) so that null stays distinct from the NaN / inf that
float arithmetic can produce; NaN found in float input columns is read as
null. Reductions produce plain Python scalars, which broadcast against whole
columns the way pandas broadcasts scalars. Every Series handed between nodes
carries a fresh RangeIndex, so operands line up by position.
"""

from __future__ import annotations

import logging
import math
import operator
from typing import Any, Optional

import numpy as np
import pandas as pd

from lazycol.algebra.dtypes import PANDAS_DTYPES, DType
from lazycol.algebra.expressions import (
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
)
from lazycol.algebra.logical_plan import LogicalPlan
from lazycol.algebra.operations import Filter, Operation, Source
from lazycol.exceptions import EvaluationError
from lazycol.utils.visualization import visualize

logger = logging.getLogger(__name__)

_COMPARE_OPS: dict[BinaryOperator, Any] = {
    BinaryOperator.EQ: operator.eq,
    BinaryOperator.NEQ: operator.ne,
    BinaryOperator.GT: operator.gt,
    BinaryOperator.GTE: operator.ge,
    BinaryOperator.LT: operator.lt,
    BinaryOperator.LTE: operator.le,
}

_ARITH_OPS: dict[BinaryOperator, Any] = {
    BinaryOperator.ADD: operator.add,
    BinaryOperator.SUBTRACT: operator.sub,
    BinaryOperator.MULTIPLY: operator.mul,
}

_LOGICAL_OPS: dict[BinaryOperator, Any] = {
    BinaryOperator.AND: operator.and_,
    BinaryOperator.OR: operator.or_,
}

# pandas.api.types.infer_dtype results that map onto a column type
_INFERRED_DTYPES: dict[str, DType] = {
    "boolean": DType.BOOLEAN,
    "integer": DType.INTEGER,
    "floating": DType.FLOAT,
    "mixed-integer-float": DType.FLOAT,
    "string": DType.STRING,
}

_WEIGHTED_REDUCERS: dict[WindowKind, Any] = {
    WindowKind.MAX: np.nanmax,
    WindowKind.MIN: np.nanmin,
    WindowKind.SUM: np.nansum,
    WindowKind.MEAN: np.nanmean,
}


class PandasEngine:
    """In-process engine over ``pandas.DataFrame`` inputs.

    Holds no state between calls and never mutates the frames it is given.
    """

    def evaluate(self, dataframe: pd.DataFrame, expr: Expr) -> pd.Series:
        _check_frame(dataframe)
        logger.debug("Evaluating %s against %d rows", expr, len(dataframe))
        result = evaluate_expression(expr, dataframe)
        return _as_series(result).rename(expr.output_name)

    def execute(self, plan: LogicalPlan) -> pd.DataFrame:
        logger.debug("Executing plan %r", plan)
        return execute(plan.root)

    def describe_plan(self, plan: LogicalPlan) -> str:
        return visualize(plan)


def evaluate_expression(expr: Expr, df: pd.DataFrame) -> pd.Series | Any:
    """Evaluate an expression tree against a DataFrame.

    Returns a Series for whole-column results and a scalar for reductions
    and literals.
    """
    match expr:
        case Column(name=name):
            return _resolve_column(df, name)

        case Literal(value=value):
            return pd.NA if value is None else value

        case Unary(op=op, operand=operand):
            return _apply_unary(op, evaluate_expression(operand, df))

        case Binary(op=op, left=left, right=right):
            lval = evaluate_expression(left, df)
            rval = evaluate_expression(right, df)
            return _apply_binary(op, lval, rval)

        case Conditional(predicate=predicate, then=then, otherwise=otherwise):
            return _select(
                evaluate_expression(predicate, df),
                evaluate_expression(then, df),
                evaluate_expression(otherwise, df),
            )

        case Aggregate(kind=kind, operand=operand, ddof=ddof, quantile=q):
            series = _as_series(evaluate_expression(operand, df))
            return _aggregate(kind, series, ddof, q)

        case Window(operand=operand):
            return _rolling(expr, _as_series(evaluate_expression(operand, df)))

        case Cumulative(operand=operand):
            return _cumulative(expr, _as_series(evaluate_expression(operand, df)))

        case Sort(operand=operand, descending=descending):
            series = _as_series(evaluate_expression(operand, df))
            return series.sort_values(
                ascending=not descending, na_position="last", kind="stable"
            ).reset_index(drop=True)

        case ArgSort(operand=operand, descending=descending, nulls_last=nulls_last):
            series = _as_series(evaluate_expression(operand, df))
            order = series.sort_values(
                ascending=not descending,
                na_position="last" if nulls_last else "first",
                kind="stable",
            ).index
            return pd.Series(np.asarray(order), dtype="Int64")

        case Distinct(operand=operand, stable=stable):
            series = _as_series(evaluate_expression(operand, df))
            if stable:
                return series.drop_duplicates(keep="first").reset_index(drop=True)
            return pd.Series(series.unique())

        case Cast(operand=operand, dtype=dtype):
            return _cast(evaluate_expression(operand, df), dtype)

        case Alias(operand=operand):
            return evaluate_expression(operand, df)

        case Slice(operand=operand, offset=offset, length=length):
            series = _as_series(evaluate_expression(operand, df))
            n = len(series)
            start = offset if offset >= 0 else n + offset
            stop = min(max(start + length, 0), n)
            return series.iloc[min(max(start, 0), n):stop].reset_index(drop=True)

        case Head(operand=operand, length=length):
            series = _as_series(evaluate_expression(operand, df))
            return series.head(length).reset_index(drop=True)

        case Tail(operand=operand, length=length):
            series = _as_series(evaluate_expression(operand, df))
            return series.tail(length).reset_index(drop=True)

        case _:
            raise TypeError(f"Unknown expression type: {type(expr).__name__}")


def execute(op: Operation) -> pd.DataFrame:
    """Recursively execute an operation tree, returning a pandas DataFrame."""
    match op:
        case Source(data=data):
            if data is None:
                raise EvaluationError(
                    "Source operation has no data bound. "
                    "Set Source.data to a DataFrame before executing."
                )
            return data.copy()

        case Filter(predicate=predicate, inputs=[child]):
            df = execute(child)
            mask = evaluate_expression(predicate, df)
            _check_boolean(mask, "filter")
            if not isinstance(mask, pd.Series):
                keep = np.full(len(df), not pd.isna(mask) and bool(mask))
            elif len(mask) != len(df):
                raise EvaluationError(
                    f"Filter predicate produced {len(mask)} values for {len(df)} rows"
                )
            else:
                keep = mask.to_numpy(dtype=bool, na_value=False)
            return df.loc[keep].reset_index(drop=True)

        case _:
            raise TypeError(f"Unknown operation type: {type(op).__name__}")


# ----------------------------------------------------------------------
# Value helpers
# ----------------------------------------------------------------------


def _check_frame(dataframe: Any) -> None:
    if not isinstance(dataframe, pd.DataFrame):
        raise TypeError(f"Expected pandas.DataFrame, got {type(dataframe)}")


def _to_nullable(series: pd.Series) -> pd.Series:
    """Convert a Series to the nullable dtype matching its values."""
    dtype = _INFERRED_DTYPES.get(pd.api.types.infer_dtype(series, skipna=True))
    if dtype is None:
        return series
    return series.astype(PANDAS_DTYPES[dtype])


def _resolve_column(df: pd.DataFrame, name: str) -> pd.Series:
    if name not in df.columns:
        raise EvaluationError(
            f"Column {name!r} not found. Available columns: {list(df.columns)}"
        )
    column = df[name]
    if isinstance(column, pd.DataFrame):
        raise EvaluationError(f"Column name {name!r} is ambiguous")
    return _to_nullable(column.reset_index(drop=True))


def _as_series(value: Any) -> pd.Series:
    if isinstance(value, pd.Series):
        return value
    return _to_nullable(pd.Series([value]))


def _broadcast(value: Any, length: int, like: Any = None) -> pd.Series:
    """Repeat a scalar ``length`` times; nulls take the dtype of ``like``."""
    if isinstance(value, pd.Series):
        return value
    if pd.isna(value) and isinstance(like, pd.Series):
        return pd.Series(pd.NA, index=pd.RangeIndex(length), dtype=like.dtype)
    return _to_nullable(pd.Series([value] * length))


def _unbox(value: Any) -> Any:
    """Turn a pandas/numpy reduction result into a plain Python scalar or NA."""
    if value is None or value is pd.NA or value is pd.NaT:
        return pd.NA
    if isinstance(value, float) and math.isnan(value):
        return pd.NA
    if isinstance(value, np.generic):
        return value.item()
    return value


def _describe(value: Any) -> str:
    if isinstance(value, pd.Series):
        return f"column of dtype {value.dtype}"
    return f"scalar of type {type(value).__name__}"


def _common_length(*values: Any) -> Optional[int]:
    lengths = {len(v) for v in values if isinstance(v, pd.Series)}
    if len(lengths) > 1:
        raise EvaluationError(f"Operands have mismatched lengths: {sorted(lengths)}")
    return lengths.pop() if lengths else None


def _null_mask(value: Any, length: int) -> np.ndarray:
    if isinstance(value, pd.Series):
        return value.isna().to_numpy()
    return np.full(length, pd.isna(value))


def _is_integer(value: Any) -> bool:
    if isinstance(value, pd.Series):
        return pd.api.types.is_integer_dtype(value.dtype)
    return value is pd.NA or (isinstance(value, int) and not isinstance(value, bool))


def _check_boolean(value: Any, what: str) -> None:
    if isinstance(value, pd.Series):
        ok = pd.api.types.is_bool_dtype(value.dtype)
    else:
        ok = isinstance(value, (bool, np.bool_)) or value is pd.NA
    if not ok:
        raise EvaluationError(f"'{what}' requires boolean operands, got {_describe(value)}")


def _unify(a: pd.Series, b: pd.Series) -> tuple[pd.Series, pd.Series]:
    """Bring an integer / float pair to a common float dtype."""
    if a.dtype == b.dtype:
        return a, b
    numeric = [
        pd.api.types.is_numeric_dtype(s.dtype) and not pd.api.types.is_bool_dtype(s.dtype)
        for s in (a, b)
    ]
    if all(numeric):
        return a.astype("Float64"), b.astype("Float64")
    return a, b


# ----------------------------------------------------------------------
# Operators
# ----------------------------------------------------------------------


def _guard(op: BinaryOperator, func: Any, left: Any, right: Any) -> Any:
    try:
        return func(left, right)
    except (TypeError, ValueError) as e:
        raise EvaluationError(
            f"Cannot apply '{op.value}' to {_describe(left)} and {_describe(right)}: {e}"
        ) from e


def _apply_unary(op: UnaryOperator, value: Any) -> Any:
    is_series = isinstance(value, pd.Series)
    match op:
        case UnaryOperator.NOT:
            _check_boolean(value, "not")
            if is_series:
                return ~value
            return pd.NA if value is pd.NA else not value
        case UnaryOperator.NEGATE:
            try:
                return -value
            except TypeError as e:
                raise EvaluationError(f"Cannot negate {_describe(value)}") from e
        case UnaryOperator.IS_NULL:
            return value.isna().astype("boolean") if is_series else bool(pd.isna(value))
        case UnaryOperator.IS_NOT_NULL:
            return value.notna().astype("boolean") if is_series else not pd.isna(value)
        case UnaryOperator.FORWARD_FILL:
            return value.ffill() if is_series else value
        case UnaryOperator.BACKWARD_FILL:
            return value.bfill() if is_series else value
        case UnaryOperator.REVERSE:
            return value.iloc[::-1].reset_index(drop=True) if is_series else value
        case _:
            raise ValueError(f"Unknown unary operator: {op!r}")


def _apply_binary(op: BinaryOperator, left: Any, right: Any) -> Any:
    length = _common_length(left, right)

    if op in _LOGICAL_OPS:
        _check_boolean(left, op.value)
        _check_boolean(right, op.value)
        return _LOGICAL_OPS[op](left, right)

    if op in _COMPARE_OPS:
        result = _guard(op, _COMPARE_OPS[op], left, right)
        if isinstance(result, pd.Series):
            # object columns compare None as False; nulls must stay null
            nulls = _null_mask(left, length) | _null_mask(right, length)
            result = result.astype("boolean").mask(nulls)
        return result

    if op is BinaryOperator.POW:
        return _power(left, right)
    if op in _ARITH_OPS:
        return _guard(op, _ARITH_OPS[op], left, right)
    if op is BinaryOperator.DIVIDE:
        return _true_divide(left, right)
    if op is BinaryOperator.INT_DIVIDE:
        return _truncated_divide(left, right)
    raise ValueError(f"Unknown binary operator: {op!r}")


def _true_divide(left: Any, right: Any) -> Any:
    if isinstance(left, pd.Series) or isinstance(right, pd.Series):
        return _guard(BinaryOperator.DIVIDE, operator.truediv, left, right)
    if pd.isna(left) or pd.isna(right):
        return pd.NA
    try:
        with np.errstate(divide="ignore", invalid="ignore"):
            return float(np.divide(float(left), float(right)))
    except (TypeError, ValueError) as e:
        raise EvaluationError(
            f"Cannot apply '/' to {_describe(left)} and {_describe(right)}"
        ) from e


def _power(left: Any, right: Any) -> Any:
    """Exponentiation; integer bases go to float when an exponent is negative."""
    if isinstance(right, pd.Series):
        negative = _is_integer(right) and bool((right < 0).any())
    else:
        negative = right is not pd.NA and _is_integer(right) and right < 0
    if negative and _is_integer(left) and left is not pd.NA:
        left = left.astype("Float64") if isinstance(left, pd.Series) else float(left)
    return _guard(BinaryOperator.POW, operator.pow, left, right)


def _truncated_divide(left: Any, right: Any) -> Any:
    """Division rounding toward zero. Integer operands stay exact integers."""
    if not (_is_integer(left) and _is_integer(right)):
        result = _true_divide(left, right)
        if isinstance(result, pd.Series):
            return np.trunc(result)
        return pd.NA if pd.isna(result) else float(math.trunc(result))

    if not isinstance(left, pd.Series) and not isinstance(right, pd.Series):
        if left is pd.NA or right is pd.NA:
            return pd.NA
        magnitude = abs(left) // abs(right)
        return magnitude if (left < 0) == (right < 0) else -magnitude

    # floor division rounds toward -inf; step back up where signs differ
    floor = left // right
    inexact = (left % right) != 0
    adjust = inexact & ((left < 0) != (right < 0))
    return floor + adjust.astype("Int64")


def _select(predicate: Any, then: Any, otherwise: Any) -> Any:
    _check_boolean(predicate, "when")
    length = _common_length(predicate, then, otherwise)
    if length is None:
        return then if (predicate is not pd.NA and predicate) else otherwise

    mask = _broadcast(predicate, length).to_numpy(dtype=bool, na_value=False)
    then_s = _broadcast(then, length, like=otherwise)
    other_s = _broadcast(otherwise, length, like=then)
    then_s, other_s = _unify(then_s, other_s)
    return then_s.where(mask, other_s)


# ----------------------------------------------------------------------
# Reductions, windows and scans
# ----------------------------------------------------------------------


def _aggregate(
    kind: AggregateKind, series: pd.Series, ddof: Optional[int], q: Optional[float]
) -> Any:
    try:
        match kind:
            case AggregateKind.SUM:
                value = series.sum()
            case AggregateKind.MIN:
                value = series.min()
            case AggregateKind.MAX:
                value = series.max()
            case AggregateKind.MEAN:
                value = series.mean()
            case AggregateKind.MEDIAN:
                value = series.median()
            case AggregateKind.VAR:
                value = series.var(ddof=ddof)
            case AggregateKind.STD:
                value = series.std(ddof=ddof)
            case AggregateKind.QUANTILE:
                value = _nearest_quantile(series, q)
            case AggregateKind.COUNT:
                value = series.count()
            case AggregateKind.N_DISTINCT:
                value = series.nunique(dropna=False)
            case AggregateKind.FIRST:
                value = series.iloc[0] if len(series) else pd.NA
            case AggregateKind.LAST:
                value = series.iloc[-1] if len(series) else pd.NA
            case AggregateKind.ALL:
                _check_boolean(series, "all")
                value = series.all(skipna=True)
            case _:
                raise ValueError(f"Unknown aggregate kind: {kind!r}")
    except TypeError as e:
        raise EvaluationError(f"Cannot compute {kind.value} of {_describe(series)}") from e
    return _unbox(value)


def _nearest_quantile(series: pd.Series, q: float) -> Any:
    values = series.dropna().sort_values().reset_index(drop=True)
    if not len(values):
        return pd.NA
    # round half away from zero, matching the usual "nearest" rank definition
    index = int(math.floor((len(values) - 1) * q + 0.5))
    return values.iloc[index]


def _rolling(node: Window, series: pd.Series) -> pd.Series:
    dtype = series.dtype
    if pd.api.types.is_bool_dtype(dtype) or not pd.api.types.is_numeric_dtype(dtype):
        raise EvaluationError(
            f"rolling_{node.kind.value} requires a numeric column, got {_describe(series)}"
        )

    values = pd.Series(series.astype("Float64").to_numpy(dtype="float64", na_value=np.nan))
    min_periods = node.min_periods if node.min_periods is not None else node.window_size
    rolling = values.rolling(node.window_size, min_periods=min_periods, center=node.center)

    if node.weights is None:
        result = getattr(rolling, node.kind.value)()
    else:
        weights = np.asarray(node.weights, dtype="float64")
        reducer = _WEIGHTED_REDUCERS[node.kind]
        result = rolling.apply(lambda window: reducer(window * weights[:len(window)]), raw=True)

    result = result.astype("Float64")
    keeps_integers = node.weights is None and node.kind is not WindowKind.MEAN
    if keeps_integers and pd.api.types.is_integer_dtype(dtype):
        result = result.astype("Int64")
    return result


def _cumulative(node: Cumulative, series: pd.Series) -> pd.Series:
    values = series.iloc[::-1] if node.reverse else series
    try:
        result = getattr(values, f"cum{node.kind.value}")()
    except TypeError as e:
        raise EvaluationError(
            f"cumulative_{node.kind.value} is not defined for {_describe(series)}"
        ) from e
    if node.reverse:
        result = result.iloc[::-1]
    return result.reset_index(drop=True)


def _to_timestamps(series: pd.Series, unit: str) -> pd.Series:
    """Parse values as timestamps; integers count ``unit``s since the epoch."""
    if pd.api.types.is_integer_dtype(series.dtype):
        values = series.to_numpy(dtype="float64", na_value=np.nan)
        return pd.Series(pd.to_datetime(values, unit=unit))
    return pd.to_datetime(series)


def _cast(value: Any, dtype: DType) -> Any:
    series = _as_series(value)
    try:
        match dtype:
            case DType.INTEGER:
                if pd.api.types.is_datetime64_any_dtype(series.dtype):
                    series = (series - pd.Timestamp(0)) // pd.Timedelta(1, unit="us")
                elif not pd.api.types.is_numeric_dtype(series.dtype):
                    series = _to_nullable(pd.to_numeric(series))
                if pd.api.types.is_float_dtype(series.dtype):
                    series = np.trunc(series.astype("Float64"))
                result = series.astype(PANDAS_DTYPES[dtype])
            case DType.FLOAT:
                if not pd.api.types.is_numeric_dtype(series.dtype):
                    series = pd.to_numeric(series)
                result = series.astype(PANDAS_DTYPES[dtype])
            case DType.BOOLEAN:
                result = series.astype(PANDAS_DTYPES[dtype])
            case DType.STRING:
                result = series.astype(PANDAS_DTYPES[dtype])
            case DType.DATE:
                stamps = _to_timestamps(series, unit="D")
                dates = stamps.dt.date.astype(PANDAS_DTYPES[dtype])
                result = dates.where(stamps.notna(), None)
            case DType.DATETIME:
                result = _to_timestamps(series, unit="us").astype(PANDAS_DTYPES[dtype])
            case _:
                raise ValueError(f"Unknown dtype: {dtype!r}")
    except (TypeError, ValueError) as e:
        raise EvaluationError(
            f"Cannot cast {_describe(value)} to {dtype.value}: {e}"
        ) from e

    if isinstance(value, pd.Series):
        return result
    return _unbox(result.iloc[0])
