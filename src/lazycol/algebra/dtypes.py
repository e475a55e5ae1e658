"""
Column types understood by the expression algebra.

Literals carry one of these types, and ``cast`` targets are parsed into them.
Temporal values are normalised here into one canonical representation:
``datetime.date`` for dates and naive ``datetime.datetime`` (UTC) for
datetimes, whatever the caller passed in (numpy, pandas or aware datetimes).
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any, Optional

import numpy as np
import pandas as pd

from lazycol.exceptions import ConstructionError


class DType(str, Enum):
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    STRING = "string"
    DATE = "date"
    DATETIME = "datetime"

    @classmethod
    def parse(cls, value: Any) -> "DType":
        """Resolve a DType or its string tag, raising ConstructionError otherwise."""
        if isinstance(value, DType):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        valid = [d.value for d in cls]
        raise ConstructionError(f"Unknown dtype: {value!r}. Valid dtypes are {valid}")


# pandas dtypes used for each column type when values are materialised
PANDAS_DTYPES: dict[DType, str] = {
    DType.INTEGER: "Int64",
    DType.FLOAT: "Float64",
    DType.BOOLEAN: "boolean",
    DType.STRING: "string",
    DType.DATE: "object",
    DType.DATETIME: "datetime64[ns]",
}


def normalize_temporal(value: Any) -> Any:
    """Convert any supported date/datetime flavour to the canonical one.

    Non-temporal values are returned unchanged.
    """
    if isinstance(value, np.datetime64):
        value = pd.Timestamp(value)
    if isinstance(value, pd.Timestamp):
        if value.tzinfo is not None:
            value = value.tz_convert("UTC").tz_localize(None)
        return value.to_pydatetime()
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(dt.timezone.utc).replace(tzinfo=None)
        return value
    return value


def infer_literal(value: Any) -> tuple[Any, Optional[DType]]:
    """Normalise a literal value and infer its type.

    Returns ``(value, None)`` for null literals. Raises ConstructionError for
    values that have no column type.
    """
    if value is None or value is pd.NA or value is pd.NaT:
        return None, None

    value = normalize_temporal(value)
    if isinstance(value, np.generic):
        value = value.item()

    # bool is a subclass of int, so it is checked first
    if isinstance(value, bool):
        return value, DType.BOOLEAN
    if isinstance(value, int):
        return value, DType.INTEGER
    if isinstance(value, float):
        return value, DType.FLOAT
    if isinstance(value, str):
        return value, DType.STRING
    if isinstance(value, dt.datetime):
        return value, DType.DATETIME
    if isinstance(value, dt.date):
        return value, DType.DATE

    raise ConstructionError(
        f"Unsupported literal value {value!r} of type {type(value).__name__}"
    )
