"""
Expression nodes for the column algebra.

Expressions form an immutable tree (a DAG once subtrees are shared): Column
references and Literal values at the leaves, and Unary / Binary / Conditional /
Aggregate / Window / Cumulative / ordering / shape nodes wrapping already-built
operands. Nodes are frozen dataclasses; composing never mutates an operand, it
only wraps it in a new parent.

Operator / kind tags are closed enums. Parsing an unknown tag raises
ConstructionError when the node is built, never later.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

from lazycol.algebra.dtypes import DType, infer_literal
from lazycol.exceptions import ConstructionError

ARGSORT_NULLS_LAST = False
QUANTILE_INTERPOLATION = "nearest"
VARIANCE_DDOF = 1
DEFAULT_HEAD_LENGTH = 10


class UnaryOperator(str, Enum):
    NOT = "not"
    NEGATE = "neg"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"
    FORWARD_FILL = "forward_fill"
    BACKWARD_FILL = "backward_fill"
    REVERSE = "reverse"


class BinaryOperator(str, Enum):
    EQ = "=="
    NEQ = "!="
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="
    AND = "and"
    OR = "or"
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    INT_DIVIDE = "div"
    POW = "**"


class AggregateKind(str, Enum):
    SUM = "sum"
    MIN = "min"
    MAX = "max"
    MEAN = "mean"
    MEDIAN = "median"
    VAR = "var"
    STD = "std"
    QUANTILE = "quantile"
    COUNT = "count"
    N_DISTINCT = "n_distinct"
    FIRST = "first"
    LAST = "last"
    ALL = "all"


class WindowKind(str, Enum):
    MAX = "max"
    MIN = "min"
    SUM = "sum"
    MEAN = "mean"


class CumulativeKind(str, Enum):
    MIN = "min"
    MAX = "max"
    SUM = "sum"


E = TypeVar("E", bound=Enum)


def parse_tag(enum_cls: Type[E], value: Any, what: str) -> E:
    """Resolve an enum member from itself or its string value.

    Raises:
        ConstructionError: If ``value`` names no member of ``enum_cls``
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        valid = [m.value for m in enum_cls]
        raise ConstructionError(
            f"Unknown {what}: {value!r}. Valid values are {valid}"
        ) from None


def _wrap(other: Any) -> "Expr":
    """Promote a plain Python value to a Literal when needed."""
    if isinstance(other, Expr):
        return other
    return Literal(value=other)


def _check_length(value: Any, what: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConstructionError(f"{what} must be a non-negative integer, got {value!r}")


def _set(node: "Expr", name: str, value: Any) -> None:
    # Nodes are frozen; normalisation in __post_init__ goes through object.__setattr__
    object.__setattr__(node, name, value)


@dataclass(frozen=True, eq=False)
class Expr:
    """Base class for all expression nodes.

    Supports Python operators so you can write ``col("age") > 30`` and get
    back a ``Binary`` node rather than a Python bool.
    """

    __hash__ = object.__hash__

    @property
    def children(self) -> Tuple["Expr", ...]:
        """Operand nodes, in field order."""
        return tuple(
            getattr(self, f.name) for f in fields(self)
            if isinstance(getattr(self, f.name), Expr)
        )

    @property
    def output_name(self) -> str:
        """Label carried by the evaluated result of this node."""
        children = self.children
        if children:
            return children[0].output_name
        return "literal"

    def structurally_equals(self, other: Any) -> bool:
        return isinstance(other, Expr) and self.to_dict() == other.to_dict()

    # Arithmetic
    def __add__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.ADD, left=self, right=_wrap(other))

    def __radd__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.ADD, left=_wrap(other), right=self)

    def __sub__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.SUBTRACT, left=self, right=_wrap(other))

    def __rsub__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.SUBTRACT, left=_wrap(other), right=self)

    def __mul__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.MULTIPLY, left=self, right=_wrap(other))

    def __rmul__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.MULTIPLY, left=_wrap(other), right=self)

    def __truediv__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.DIVIDE, left=self, right=_wrap(other))

    def __rtruediv__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.DIVIDE, left=_wrap(other), right=self)

    def __floordiv__(self, other: Any) -> "Binary":
        from lazycol.algebra.functions import quotient

        return quotient(self, other)

    def __mod__(self, other: Any) -> "Binary":
        from lazycol.algebra.functions import remainder

        return remainder(self, other)

    def __pow__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.POW, left=self, right=_wrap(other))

    def __neg__(self) -> "Unary":
        return Unary(op=UnaryOperator.NEGATE, operand=self)

    # Comparison - returns Binary nodes, NOT Python bools
    def __gt__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.GT, left=self, right=_wrap(other))

    def __ge__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.GTE, left=self, right=_wrap(other))

    def __lt__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.LT, left=self, right=_wrap(other))

    def __le__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.LTE, left=self, right=_wrap(other))

    def __eq__(self, other: Any) -> "Binary":  # type: ignore[override]
        return Binary(op=BinaryOperator.EQ, left=self, right=_wrap(other))

    def __ne__(self, other: Any) -> "Binary":  # type: ignore[override]
        return Binary(op=BinaryOperator.NEQ, left=self, right=_wrap(other))

    # Logical (bitwise operators used as logical, like pandas)
    def __and__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.AND, left=self, right=_wrap(other))

    def __rand__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.AND, left=_wrap(other), right=self)

    def __or__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.OR, left=self, right=_wrap(other))

    def __ror__(self, other: Any) -> "Binary":
        return Binary(op=BinaryOperator.OR, left=_wrap(other), right=self)

    def __invert__(self) -> "Unary":
        return Unary(op=UnaryOperator.NOT, operand=self)

    # Serialization
    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError(
            f"to_dict not implemented for {self.__class__.__name__}"
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Expr":
        type_name = data.get("type")
        if not type_name:
            raise ValueError("Expression dict must have 'type' field")
        target = _TYPE_MAP.get(type_name)
        if target is None:
            raise ValueError(f"Unknown expression type: {type_name}")
        return target._from_dict(data)  # type: ignore[attr-defined]


@dataclass(frozen=True, eq=False)
class Column(Expr):
    """Reference to a named column, resolved at evaluation time."""

    name: str

    def __post_init__(self):
        if not isinstance(self.name, str):
            raise ConstructionError(f"Column name must be a string, got {self.name!r}")

    @property
    def output_name(self) -> str:
        return self.name

    def __str__(self) -> str:
        return f'col("{self.name}")'

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "column", "name": self.name}

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Column":
        return cls(name=data["name"])


@dataclass(frozen=True, eq=False)
class Literal(Expr):
    """A typed constant. ``dtype`` is None for the null literal.

    ``Literal(42)`` and ``Literal(value=42)`` are both accepted.
    """

    value: Any = None
    dtype: Optional[DType] = field(default=None, init=False)

    def __post_init__(self):
        value, dtype = infer_literal(self.value)
        _set(self, "value", value)
        _set(self, "dtype", dtype)

    def __str__(self) -> str:
        if self.value is None:
            return "null"
        if isinstance(self.value, str):
            return f'"{self.value}"'
        if isinstance(self.value, dt.date):
            return self.value.isoformat()
        return repr(self.value)

    def to_dict(self) -> Dict[str, Any]:
        value = self.value
        if isinstance(value, dt.date):
            value = value.isoformat()
        return {
            "type": "literal",
            "value": value,
            "dtype": self.dtype.value if self.dtype is not None else None,
        }

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Literal":
        value = data["value"]
        dtype = data.get("dtype")
        if dtype == DType.DATETIME.value:
            value = dt.datetime.fromisoformat(value)
        elif dtype == DType.DATE.value:
            value = dt.date.fromisoformat(value)
        elif dtype == DType.FLOAT.value:
            value = float(value)
        return cls(value=value)


@dataclass(frozen=True, eq=False)
class Unary(Expr):
    """Single-operand operation: negation, logical NOT, null tests, fills, reverse."""

    op: UnaryOperator
    operand: Expr

    def __post_init__(self):
        _set(self, "op", parse_tag(UnaryOperator, self.op, "unary operator"))

    def __str__(self) -> str:
        if self.op is UnaryOperator.NEGATE:
            return f"(-{self.operand})"
        if self.op is UnaryOperator.NOT:
            return f"(~{self.operand})"
        return f"{self.operand}.{self.op.value}()"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "unary",
            "op": self.op.value,
            "operand": self.operand.to_dict(),
        }

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Unary":
        return cls(op=data["op"], operand=Expr.from_dict(data["operand"]))


@dataclass(frozen=True, eq=False)
class Binary(Expr):
    """Binary operation (arithmetic, comparison, or logical)."""

    op: BinaryOperator
    left: Expr
    right: Expr

    def __post_init__(self):
        _set(self, "op", parse_tag(BinaryOperator, self.op, "binary operator"))

    def __str__(self) -> str:
        return f"({self.left} {self.op.value} {self.right})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "binary",
            "op": self.op.value,
            "left": self.left.to_dict(),
            "right": self.right.to_dict(),
        }

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Binary":
        return cls(
            op=data["op"],
            left=Expr.from_dict(data["left"]),
            right=Expr.from_dict(data["right"]),
        )


@dataclass(frozen=True, eq=False)
class Conditional(Expr):
    """``then`` where ``predicate`` is true, ``otherwise`` elsewhere (null counts as false)."""

    predicate: Expr
    then: Expr
    otherwise: Expr

    @property
    def output_name(self) -> str:
        return self.then.output_name

    def __str__(self) -> str:
        return f"when({self.predicate}).then({self.then}).otherwise({self.otherwise})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "conditional",
            "predicate": self.predicate.to_dict(),
            "then": self.then.to_dict(),
            "otherwise": self.otherwise.to_dict(),
        }

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Conditional":
        return cls(
            predicate=Expr.from_dict(data["predicate"]),
            then=Expr.from_dict(data["then"]),
            otherwise=Expr.from_dict(data["otherwise"]),
        )


@dataclass(frozen=True, eq=False)
class Aggregate(Expr):
    """Reduction of the operand to a single value.

    ``var`` and ``std`` always use ``ddof=1``; ``quantile`` always uses
    nearest-value interpolation and requires ``0 <= quantile <= 1``.
    """

    kind: AggregateKind
    operand: Expr
    ddof: Optional[int] = None
    quantile: Optional[float] = None
    interpolation: Optional[str] = None

    def __post_init__(self):
        kind = parse_tag(AggregateKind, self.kind, "aggregate kind")
        _set(self, "kind", kind)

        if kind in (AggregateKind.VAR, AggregateKind.STD):
            if self.ddof not in (None, VARIANCE_DDOF):
                raise ConstructionError(f"{kind.value} only supports ddof={VARIANCE_DDOF}")
            _set(self, "ddof", VARIANCE_DDOF)
        elif self.ddof is not None:
            raise ConstructionError(f"ddof is not a parameter of {kind.value}")

        if kind is AggregateKind.QUANTILE:
            q = self.quantile
            if isinstance(q, bool) or not isinstance(q, (int, float)) or not 0 <= q <= 1:
                raise ConstructionError(f"Quantile must be a number in [0, 1], got {q!r}")
            if self.interpolation not in (None, QUANTILE_INTERPOLATION):
                raise ConstructionError(
                    f"Quantile interpolation is fixed to {QUANTILE_INTERPOLATION!r}"
                )
            _set(self, "quantile", float(q))
            _set(self, "interpolation", QUANTILE_INTERPOLATION)
        elif self.quantile is not None or self.interpolation is not None:
            raise ConstructionError(f"quantile is not a parameter of {kind.value}")

    def __str__(self) -> str:
        if self.kind is AggregateKind.QUANTILE:
            return f'{self.operand}.quantile({self.quantile}, interpolation="{self.interpolation}")'
        if self.ddof is not None:
            return f"{self.operand}.{self.kind.value}(ddof={self.ddof})"
        return f"{self.operand}.{self.kind.value}()"

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "type": "aggregate",
            "kind": self.kind.value,
            "operand": self.operand.to_dict(),
        }
        if self.kind is AggregateKind.QUANTILE:
            result["quantile"] = self.quantile
        return result

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Aggregate":
        return cls(
            kind=data["kind"],
            operand=Expr.from_dict(data["operand"]),
            quantile=data.get("quantile"),
        )


@dataclass(frozen=True, eq=False)
class Window(Expr):
    """Rolling reduction over a sliding window of ``window_size`` elements.

    ``weights`` (one per window slot) multiply the values before reducing;
    ``min_periods`` is the number of non-null values a window needs to
    produce a result (defaults to ``window_size`` when evaluated).
    """

    kind: WindowKind
    operand: Expr
    window_size: int
    weights: Optional[Tuple[float, ...]] = None
    min_periods: Optional[int] = None
    center: bool = False

    def __post_init__(self):
        _set(self, "kind", parse_tag(WindowKind, self.kind, "window kind"))

        size = self.window_size
        if isinstance(size, bool) or not isinstance(size, int) or size < 1:
            raise ConstructionError(f"Window size must be an integer >= 1, got {size!r}")

        if self.weights is not None:
            try:
                weights = tuple(float(w) for w in self.weights)
            except (TypeError, ValueError) as e:
                raise ConstructionError(f"Window weights must be numbers: {e}") from e
            if len(weights) != size:
                raise ConstructionError(
                    f"Window weights must have length {size}, got {len(weights)}"
                )
            _set(self, "weights", weights)

        mp = self.min_periods
        if mp is not None:
            if isinstance(mp, bool) or not isinstance(mp, int) or mp < 1:
                raise ConstructionError(f"min_periods must be an integer >= 1, got {mp!r}")
            if mp > size:
                raise ConstructionError(
                    f"min_periods ({mp}) cannot be larger than the window size ({size})"
                )

        _set(self, "center", bool(self.center))

    def __str__(self) -> str:
        parts = [f"window_size={self.window_size}"]
        if self.weights is not None:
            parts.append(f"weights={list(self.weights)}")
        if self.min_periods is not None:
            parts.append(f"min_periods={self.min_periods}")
        if self.center:
            parts.append("center=True")
        return f"{self.operand}.rolling_{self.kind.value}({', '.join(parts)})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "window",
            "kind": self.kind.value,
            "operand": self.operand.to_dict(),
            "window_size": self.window_size,
            "weights": list(self.weights) if self.weights is not None else None,
            "min_periods": self.min_periods,
            "center": self.center,
        }

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Window":
        return cls(
            kind=data["kind"],
            operand=Expr.from_dict(data["operand"]),
            window_size=data["window_size"],
            weights=data.get("weights"),
            min_periods=data.get("min_periods"),
            center=data.get("center", False),
        )


@dataclass(frozen=True, eq=False)
class Cumulative(Expr):
    """Running reduction from the front, or from the back when ``reverse``."""

    kind: CumulativeKind
    operand: Expr
    reverse: bool = False

    def __post_init__(self):
        _set(self, "kind", parse_tag(CumulativeKind, self.kind, "cumulative kind"))

    def __str__(self) -> str:
        args = "reverse=True" if self.reverse else ""
        return f"{self.operand}.cumulative_{self.kind.value}({args})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "cumulative",
            "kind": self.kind.value,
            "operand": self.operand.to_dict(),
            "reverse": self.reverse,
        }

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Cumulative":
        return cls(
            kind=data["kind"],
            operand=Expr.from_dict(data["operand"]),
            reverse=data.get("reverse", False),
        )


@dataclass(frozen=True, eq=False)
class Sort(Expr):
    """Sorted values. Nulls always go last, whatever the direction."""

    operand: Expr
    descending: bool = False

    def __str__(self) -> str:
        args = "descending=True" if self.descending else ""
        return f"{self.operand}.sort({args})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "sort",
            "operand": self.operand.to_dict(),
            "descending": self.descending,
        }

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Sort":
        return cls(operand=Expr.from_dict(data["operand"]), descending=data.get("descending", False))


@dataclass(frozen=True, eq=False)
class ArgSort(Expr):
    """Index permutation that sorts the operand.

    Null placement is its own flag (nulls first by default), not tied to Sort.
    """

    operand: Expr
    descending: bool = False
    nulls_last: bool = ARGSORT_NULLS_LAST

    def __str__(self) -> str:
        return (
            f"{self.operand}.argsort(descending={self.descending}, "
            f"nulls_last={self.nulls_last})"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "argsort",
            "operand": self.operand.to_dict(),
            "descending": self.descending,
            "nulls_last": self.nulls_last,
        }

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "ArgSort":
        return cls(
            operand=Expr.from_dict(data["operand"]),
            descending=data.get("descending", False),
            nulls_last=data.get("nulls_last", ARGSORT_NULLS_LAST),
        )


@dataclass(frozen=True, eq=False)
class Distinct(Expr):
    """Unique values; ``stable`` keeps first-occurrence order."""

    operand: Expr
    stable: bool = True

    def __str__(self) -> str:
        method = "distinct" if self.stable else "unordered_distinct"
        return f"{self.operand}.{method}()"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "distinct", "operand": self.operand.to_dict(), "stable": self.stable}

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Distinct":
        return cls(operand=Expr.from_dict(data["operand"]), stable=data.get("stable", True))


@dataclass(frozen=True, eq=False)
class Cast(Expr):
    """Type coercion to ``dtype``; unknown targets are rejected at construction."""

    operand: Expr
    dtype: DType

    def __post_init__(self):
        _set(self, "dtype", DType.parse(self.dtype))

    def __str__(self) -> str:
        return f"{self.operand}.cast({self.dtype.value})"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "cast", "operand": self.operand.to_dict(), "dtype": self.dtype.value}

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Cast":
        return cls(operand=Expr.from_dict(data["operand"]), dtype=data["dtype"])


@dataclass(frozen=True, eq=False)
class Alias(Expr):
    """Relabels the operand's output without touching its values."""

    operand: Expr
    name: str

    def __post_init__(self):
        if not isinstance(self.name, str):
            raise ConstructionError(f"Alias name must be a string, got {self.name!r}")

    @property
    def output_name(self) -> str:
        return self.name

    def __str__(self) -> str:
        return f'{self.operand}.alias("{self.name}")'

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "alias", "operand": self.operand.to_dict(), "name": self.name}

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Alias":
        return cls(operand=Expr.from_dict(data["operand"]), name=data["name"])


@dataclass(frozen=True, eq=False)
class Slice(Expr):
    """``length`` elements starting at ``offset`` (negative offsets count from the end)."""

    operand: Expr
    offset: int
    length: int

    def __post_init__(self):
        if isinstance(self.offset, bool) or not isinstance(self.offset, int):
            raise ConstructionError(f"Slice offset must be an integer, got {self.offset!r}")
        _check_length(self.length, "Slice length")

    def __str__(self) -> str:
        return f"{self.operand}.slice({self.offset}, {self.length})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "slice",
            "operand": self.operand.to_dict(),
            "offset": self.offset,
            "length": self.length,
        }

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Slice":
        return cls(
            operand=Expr.from_dict(data["operand"]),
            offset=data["offset"],
            length=data["length"],
        )


@dataclass(frozen=True, eq=False)
class Head(Expr):
    operand: Expr
    length: int = DEFAULT_HEAD_LENGTH

    def __post_init__(self):
        _check_length(self.length, "Head length")

    def __str__(self) -> str:
        return f"{self.operand}.head({self.length})"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "head", "operand": self.operand.to_dict(), "length": self.length}

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Head":
        return cls(operand=Expr.from_dict(data["operand"]), length=data["length"])


@dataclass(frozen=True, eq=False)
class Tail(Expr):
    operand: Expr
    length: int = DEFAULT_HEAD_LENGTH

    def __post_init__(self):
        _check_length(self.length, "Tail length")

    def __str__(self) -> str:
        return f"{self.operand}.tail({self.length})"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "tail", "operand": self.operand.to_dict(), "length": self.length}

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Tail":
        return cls(operand=Expr.from_dict(data["operand"]), length=data["length"])


_TYPE_MAP: Dict[str, type] = {
    "column": Column,
    "literal": Literal,
    "unary": Unary,
    "binary": Binary,
    "conditional": Conditional,
    "aggregate": Aggregate,
    "window": Window,
    "cumulative": Cumulative,
    "sort": Sort,
    "argsort": ArgSort,
    "distinct": Distinct,
    "cast": Cast,
    "alias": Alias,
    "slice": Slice,
    "head": Head,
    "tail": Tail,
}
