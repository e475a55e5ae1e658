"""
Unit tests for the algebra module.

These tests verify:
1. Every expression node can be built through its factory function
2. Invalid construction arguments raise ConstructionError eagerly
3. Nodes are immutable and share operands by reference
4. String rendering and output names
5. to_dict() / from_dict() and structural equality
6. LogicalPlan.explain() produces readable output

Nothing here touches data; evaluation is covered in test_algebra_eager.py.
"""

import dataclasses
import datetime as dt
import json

import pytest

from lazycol.algebra import (
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
    DType,
    Expr,
    Filter,
    Head,
    Literal,
    LogicalPlan,
    Slice,
    Sort,
    Source,
    Tail,
    Unary,
    UnaryOperator,
    Window,
    WindowKind,
    col,
    lit,
)
from lazycol.algebra import functions as F
from lazycol.exceptions import ConstructionError


class TestBuilders:
    """Tests for column and literal leaves."""

    def test_column(self):
        c = F.column("age")
        assert isinstance(c, Column)
        assert c.name == "age"
        assert c.children == ()

    def test_col_alias(self):
        assert isinstance(col("age"), Column)
        assert isinstance(lit(1), Literal)

    def test_column_name_must_be_string(self):
        with pytest.raises(ConstructionError):
            F.column(3)

    @pytest.mark.parametrize("value, dtype", [
        (42, DType.INTEGER),
        (1.5, DType.FLOAT),
        (True, DType.BOOLEAN),
        ("abc", DType.STRING),
        (dt.date(2024, 1, 2), DType.DATE),
        (dt.datetime(2024, 1, 2, 3, 4), DType.DATETIME),
    ])
    def test_literal_dtype_inferred(self, value, dtype):
        node = F.literal(value)
        assert node.value == value
        assert node.dtype is dtype

    def test_null_literal(self):
        node = F.literal(None)
        assert node.value is None
        assert node.dtype is None

    def test_unsupported_literal_fails(self):
        with pytest.raises(ConstructionError, match="Unsupported literal"):
            F.literal([1, 2])

    def test_positional_literal(self):
        assert Literal(7).value == 7


class TestImmutability:
    """Nodes are frozen and share operands by reference."""

    def test_cannot_mutate(self):
        c = col("x")
        with pytest.raises(dataclasses.FrozenInstanceError):
            c.name = "y"

    def test_operands_shared_by_reference(self):
        x = col("x")
        total = F.add(x, x)
        assert total.left is x
        assert total.right is x

    def test_building_does_not_touch_operands(self):
        x = col("x")
        before = x.to_dict()
        F.window_sum(F.sort(x), 3)
        assert x.to_dict() == before

    def test_nodes_are_hashable(self):
        x = col("x")
        assert len({x, x, col("x")}) == 2


class TestOperatorOverloads:
    """Python operators build nodes instead of computing values."""

    @pytest.mark.parametrize("build, op", [
        (lambda x: x + 1, BinaryOperator.ADD),
        (lambda x: x - 1, BinaryOperator.SUBTRACT),
        (lambda x: x * 2, BinaryOperator.MULTIPLY),
        (lambda x: x / 2, BinaryOperator.DIVIDE),
        (lambda x: x ** 2, BinaryOperator.POW),
        (lambda x: x > 1, BinaryOperator.GT),
        (lambda x: x >= 1, BinaryOperator.GTE),
        (lambda x: x < 1, BinaryOperator.LT),
        (lambda x: x <= 1, BinaryOperator.LTE),
        (lambda x: x == 1, BinaryOperator.EQ),
        (lambda x: x != 1, BinaryOperator.NEQ),
        (lambda x: (x > 1) & (x < 3), BinaryOperator.AND),
        (lambda x: (x > 1) | (x < 3), BinaryOperator.OR),
    ])
    def test_binary_operators(self, build, op):
        node = build(col("x"))
        assert isinstance(node, Binary)
        assert node.op is op

    def test_reflected_operand_order(self):
        node = 10 - col("x")
        assert isinstance(node.left, Literal)
        assert node.left.value == 10
        assert isinstance(node.right, Column)

    def test_negate_and_invert(self):
        assert (-col("x")).op is UnaryOperator.NEGATE
        assert (~(col("x") > 1)).op is UnaryOperator.NOT

    def test_floordiv_and_mod_use_guarded_division(self):
        q = col("x") // col("y")
        assert q.op is BinaryOperator.INT_DIVIDE
        assert isinstance(q.right, Conditional)
        r = col("x") % col("y")
        assert r.op is BinaryOperator.SUBTRACT


class TestCombinators:
    """Tests for comparison, logical, arithmetic and null-handling factories."""

    def test_comparisons(self):
        for fn, op in [
            (F.eq, BinaryOperator.EQ),
            (F.neq, BinaryOperator.NEQ),
            (F.gt, BinaryOperator.GT),
            (F.gte, BinaryOperator.GTE),
            (F.lt, BinaryOperator.LT),
            (F.lte, BinaryOperator.LTE),
        ]:
            node = fn(col("a"), 1)
            assert node.op is op
            assert isinstance(node.right, Literal)

    def test_all_equal_is_a_reduction(self):
        node = F.all_equal(col("a"), col("b"))
        assert isinstance(node, Aggregate)
        assert node.kind is AggregateKind.ALL
        assert node.operand.op is BinaryOperator.EQ

    def test_quotient_guards_zero_divisor(self):
        y = col("y")
        node = F.quotient(col("x"), y)
        guard = node.right
        assert isinstance(guard, Conditional)
        assert guard.predicate.op is BinaryOperator.EQ
        assert guard.predicate.left is y
        assert guard.then.value is None
        assert guard.otherwise is y

    def test_remainder_reuses_quotient(self):
        x, y = col("x"), col("y")
        node = F.remainder(x, y)
        assert node.op is BinaryOperator.SUBTRACT
        assert node.left is x
        product = node.right
        assert product.op is BinaryOperator.MULTIPLY
        assert product.right.structurally_equals(F.quotient(x, y))

    def test_coalesce(self):
        a, b = col("a"), col("b")
        node = F.coalesce(a, b)
        assert isinstance(node, Conditional)
        assert node.predicate.op is UnaryOperator.IS_NOT_NULL
        assert node.then is a
        assert node.otherwise is b

    @pytest.mark.parametrize("strategy, op", [
        ("forward", UnaryOperator.FORWARD_FILL),
        ("backward", UnaryOperator.BACKWARD_FILL),
    ])
    def test_fill_directional(self, strategy, op):
        node = F.fill_missing(col("a"), strategy)
        assert isinstance(node, Unary)
        assert node.op is op

    @pytest.mark.parametrize("strategy, kind", [
        ("min", AggregateKind.MIN),
        ("max", AggregateKind.MAX),
        ("mean", AggregateKind.MEAN),
    ])
    def test_fill_with_reduction(self, strategy, kind):
        node = F.fill_missing(col("a"), strategy)
        assert isinstance(node, Conditional)
        assert node.otherwise.kind is kind

    def test_unknown_fill_strategy_fails(self):
        with pytest.raises(ConstructionError, match="fill strategy"):
            F.fill_missing(col("a"), "sideways")

    def test_fill_with_value_expression(self):
        node = F.fill_missing_with_value(col("a"), col("b") * 2)
        assert node.otherwise.op is BinaryOperator.MULTIPLY


class TestAggregates:
    """Tests for Aggregate construction and parameter validation."""

    @pytest.mark.parametrize("fn, kind", [
        (F.sum, AggregateKind.SUM),
        (F.min, AggregateKind.MIN),
        (F.max, AggregateKind.MAX),
        (F.mean, AggregateKind.MEAN),
        (F.median, AggregateKind.MEDIAN),
        (F.count, AggregateKind.COUNT),
        (F.n_distinct, AggregateKind.N_DISTINCT),
        (F.first, AggregateKind.FIRST),
        (F.last, AggregateKind.LAST),
    ])
    def test_kinds(self, fn, kind):
        node = fn(col("a"))
        assert node.kind is kind
        assert node.ddof is None
        assert node.quantile is None

    def test_var_and_std_use_sample_ddof(self):
        assert F.var(col("a")).ddof == 1
        assert F.std(col("a")).ddof == 1

    def test_other_ddof_rejected(self):
        with pytest.raises(ConstructionError):
            Aggregate(kind="var", operand=col("a"), ddof=0)

    def test_quantile_interpolation_is_nearest(self):
        node = F.quantile(col("a"), 0.25)
        assert node.quantile == 0.25
        assert node.interpolation == "nearest"

    @pytest.mark.parametrize("q", [-0.1, 1.5, "half", True])
    def test_quantile_out_of_range_fails(self, q):
        with pytest.raises(ConstructionError, match="Quantile"):
            F.quantile(col("a"), q)

    def test_unknown_kind_fails(self):
        with pytest.raises(ConstructionError, match="aggregate kind"):
            Aggregate(kind="mode", operand=col("a"))

    def test_peaks_is_global_equality(self):
        a = col("a")
        node = F.peaks(a, "min")
        assert node.op is BinaryOperator.EQ
        assert node.left is a
        assert node.right.kind is AggregateKind.MIN
        assert F.peaks(a).right.kind is AggregateKind.MAX

    def test_unknown_peak_kind_fails(self):
        with pytest.raises(ConstructionError, match="peak kind"):
            F.peaks(col("a"), "local")


class TestWindows:
    """Tests for Window and Cumulative construction."""

    @pytest.mark.parametrize("fn, kind", [
        (F.window_max, WindowKind.MAX),
        (F.window_min, WindowKind.MIN),
        (F.window_sum, WindowKind.SUM),
        (F.window_mean, WindowKind.MEAN),
    ])
    def test_kinds(self, fn, kind):
        node = fn(col("v"), 3)
        assert isinstance(node, Window)
        assert node.kind is kind
        assert node.window_size == 3
        assert node.weights is None
        assert node.min_periods is None
        assert node.center is False

    def test_weights_stored_as_tuple(self):
        node = F.window_mean(col("v"), 2, weights=[1, 2])
        assert node.weights == (1.0, 2.0)

    @pytest.mark.parametrize("kwargs", [
        {"window_size": 0},
        {"window_size": -1},
        {"window_size": 2.5},
        {"window_size": 3, "weights": [1, 2]},
        {"window_size": 2, "weights": ["a", "b"]},
        {"window_size": 2, "min_periods": 3},
        {"window_size": 2, "min_periods": 0},
    ])
    def test_invalid_parameters_fail(self, kwargs):
        with pytest.raises(ConstructionError):
            F.window_sum(col("v"), **kwargs)

    def test_min_periods_equal_to_size_allowed(self):
        assert F.window_min(col("v"), 3, min_periods=3).min_periods == 3

    @pytest.mark.parametrize("fn, kind", [
        (F.cumulative_min, CumulativeKind.MIN),
        (F.cumulative_max, CumulativeKind.MAX),
        (F.cumulative_sum, CumulativeKind.SUM),
    ])
    def test_cumulative(self, fn, kind):
        node = fn(col("v"), reverse=True)
        assert isinstance(node, Cumulative)
        assert node.kind is kind
        assert node.reverse is True


class TestOrderingAndShape:
    """Tests for ordering, uniqueness, shape, cast and alias nodes."""

    def test_sort(self):
        node = F.sort(col("a"), descending=True)
        assert isinstance(node, Sort)
        assert node.descending is True

    def test_argsort_defaults_to_nulls_first(self):
        node = F.argsort(col("a"))
        assert isinstance(node, ArgSort)
        assert node.nulls_last is False

    def test_reverse(self):
        assert F.reverse(col("a")).op is UnaryOperator.REVERSE

    def test_distinct(self):
        assert F.distinct(col("a")).stable is True
        assert isinstance(F.distinct(col("a"), stable=False), Distinct)

    def test_slice_accepts_negative_offset(self):
        node = F.slice(col("a"), -2, 5)
        assert isinstance(node, Slice)
        assert node.offset == -2

    def test_slice_negative_length_fails(self):
        with pytest.raises(ConstructionError):
            F.slice(col("a"), 0, -1)

    def test_head_and_tail_default_length(self):
        assert isinstance(F.head(col("a")), Head)
        assert F.head(col("a")).length == 10
        assert isinstance(F.tail(col("a"), 3), Tail)

    def test_cast(self):
        node = F.cast(col("a"), "float")
        assert isinstance(node, Cast)
        assert node.dtype is DType.FLOAT

    def test_cast_unknown_type_fails_before_evaluation(self):
        with pytest.raises(ConstructionError, match="not_a_type"):
            F.cast(col("x"), "not_a_type")

    def test_alias(self):
        node = F.alias(col("a") + 1, "a_plus_one")
        assert isinstance(node, Alias)
        assert node.output_name == "a_plus_one"


class TestRendering:
    """Tests for __str__ and output_name."""

    def test_str(self):
        assert str(col("x") + 1) == '(col("x") + 1)'
        assert str(lit("a")) == '"a"'
        assert str(lit(None)) == "null"
        assert str(lit(dt.date(2024, 1, 2))) == "2024-01-02"
        assert str(F.sum(col("x"))) == 'col("x").sum()'
        assert str(F.var(col("x"))) == 'col("x").var(ddof=1)'
        assert str(F.window_sum(col("x"), 2)) == 'col("x").rolling_sum(window_size=2)'

    def test_output_name_follows_first_operand(self):
        assert (col("x") + col("y")).output_name == "x"
        assert F.sum(col("y")).output_name == "y"
        assert lit(1).output_name == "literal"
        assert F.coalesce(col("a"), col("b")).output_name == "a"


class TestDictRoundTrip:
    """to_dict() / from_dict() and structural equality."""

    def _samples(self):
        x, y = col("x"), col("y")
        return [
            F.remainder(x, y),
            F.fill_missing(x, "mean"),
            F.quantile(x, 0.9),
            F.window_mean(x, 2, weights=[1, 2], min_periods=1, center=True),
            F.cumulative_sum(x, reverse=True),
            F.argsort(x, descending=True),
            F.distinct(x, stable=False),
            F.cast(x, "date"),
            F.alias(F.slice(F.head(F.tail(x, 5), 4), -2, 1), "out"),
            lit(dt.datetime(2024, 1, 2, 3, 4)) < x,
            lit(1.0) + x,
        ]

    def test_to_dict_is_json_serializable(self):
        for expr in self._samples():
            json.dumps(expr.to_dict())

    def test_round_trip(self):
        for expr in self._samples():
            restored = Expr.from_dict(expr.to_dict())
            assert restored.structurally_equals(expr)
            assert str(restored) == str(expr)

    def test_float_literal_keeps_type(self):
        restored = Expr.from_dict(lit(1.0).to_dict())
        assert restored.dtype is DType.FLOAT

    def test_unknown_type_fails(self):
        with pytest.raises(ValueError, match="Unknown expression type"):
            Expr.from_dict({"type": "mystery"})

    def test_structural_inequality(self):
        assert not (col("x") + 1).structurally_equals(col("x") + 2)
        assert not col("x").structurally_equals("x")


class TestLogicalPlan:
    """Tests for Source / Filter operations and LogicalPlan."""

    def test_filter_requires_expression(self):
        with pytest.raises(ValueError, match="predicate must be an expression"):
            Filter(predicate="x > 1", inputs=[Source(source_id="t")])

    def test_filter_requires_one_input(self):
        with pytest.raises(ValueError, match="exactly one input"):
            Filter(predicate=col("x") > 1)

    def test_source_cannot_have_inputs(self):
        with pytest.raises(ValueError, match="cannot have inputs"):
            Source(source_id="t", inputs=[Source(source_id="u")])

    def test_source_takes_source_id_only(self):
        with pytest.raises(TypeError):
            Source(name="t")

    def test_input_alias(self):
        source = Source(source_id="t")
        assert Filter(predicate=col("x") > 1, input=source).inputs == [source]

    def test_plan_root_must_be_operation(self):
        with pytest.raises(TypeError):
            LogicalPlan(col("x"))

    def test_explain_lists_leaves_first(self):
        source = Source(source_id="trades", schema=["price"])
        plan = LogicalPlan(Filter(predicate=col("price") > 10, inputs=[source]))
        lines = plan.explain().splitlines()
        assert lines[0] == "Logical Plan:"
        assert lines[2] == "Source(source_id='trades', schema=['price'])"
        assert lines[3] == 'Filter(predicate=(col("price") > 10))'
        assert str(plan) == plan.explain()
        assert repr(plan) == "LogicalPlan(root=Filter)"
