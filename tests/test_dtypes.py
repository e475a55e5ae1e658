"""Tests for column types and literal normalisation."""

import datetime as dt

import numpy as np
import pandas as pd
import pytest

from lazycol.algebra import DType, lit
from lazycol.algebra.dtypes import PANDAS_DTYPES, infer_literal, normalize_temporal
from lazycol.exceptions import ConstructionError


class TestDType:
    @pytest.mark.parametrize("tag", ["integer", "float", "boolean", "string", "date", "datetime"])
    def test_parse_tag(self, tag):
        assert DType.parse(tag).value == tag

    def test_parse_member(self):
        assert DType.parse(DType.DATE) is DType.DATE

    @pytest.mark.parametrize("value", ["not_a_type", "INT", 3, None])
    def test_parse_unknown(self, value):
        with pytest.raises(ConstructionError, match="Valid dtypes"):
            DType.parse(value)

    def test_every_type_has_a_pandas_dtype(self):
        assert set(PANDAS_DTYPES) == set(DType)


class TestTemporal:
    def test_datetime64(self):
        value = normalize_temporal(np.datetime64("2024-01-02T03:04"))
        assert value == dt.datetime(2024, 1, 2, 3, 4)
        assert type(value) is dt.datetime

    def test_aware_timestamp_becomes_naive_utc(self):
        value = normalize_temporal(pd.Timestamp("2024-01-02 05:00", tz="America/New_York"))
        assert value == dt.datetime(2024, 1, 2, 10, 0)
        assert value.tzinfo is None

    def test_aware_datetime_becomes_naive_utc(self):
        tz = dt.timezone(dt.timedelta(hours=2))
        value = normalize_temporal(dt.datetime(2024, 1, 2, 12, 0, tzinfo=tz))
        assert value == dt.datetime(2024, 1, 2, 10, 0)
        assert value.tzinfo is None

    def test_date_unchanged(self):
        assert normalize_temporal(dt.date(2024, 1, 2)) == dt.date(2024, 1, 2)

    def test_non_temporal_unchanged(self):
        assert normalize_temporal(5) == 5


class TestInferLiteral:
    @pytest.mark.parametrize("value, expected, dtype", [
        (np.int64(3), 3, DType.INTEGER),
        (np.float64(1.5), 1.5, DType.FLOAT),
        (np.bool_(True), True, DType.BOOLEAN),
        (False, False, DType.BOOLEAN),
    ])
    def test_numpy_scalars_unboxed(self, value, expected, dtype):
        result, inferred = infer_literal(value)
        assert result == expected
        assert type(result) is type(expected)
        assert inferred is dtype

    @pytest.mark.parametrize("value", [None, pd.NA, pd.NaT])
    def test_nulls(self, value):
        assert infer_literal(value) == (None, None)

    def test_unsupported(self):
        with pytest.raises(ConstructionError):
            infer_literal(object())

    def test_literal_node_normalises(self):
        node = lit(pd.Timestamp("2024-01-02"))
        assert node.dtype is DType.DATETIME
        assert type(node.value) is dt.datetime
