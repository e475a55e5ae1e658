"""Shared pytest fixtures for lazycol tests."""

import datetime as dt

import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def numbers() -> pd.DataFrame:
    return pd.DataFrame({
        "x": [1, 2, 3, 4],
        "y": [0, 2, 0, 2],
        "z": [-7, 7, -8, 9],
    })


@pytest.fixture
def with_nulls() -> pd.DataFrame:
    return pd.DataFrame({
        "a": [1.0, np.nan, 3.0],
        "b": [10.0, 20.0, np.nan],
        "flag": [True, None, False],
        "label": ["x", None, "z"],
    })


@pytest.fixture
def trades() -> pd.DataFrame:
    return pd.DataFrame({
        "symbol": ["AAPL", "MSFT", "AAPL", "GOOG", "MSFT", "AAPL"],
        "price": [150.0, 310.5, 152.25, 2800.0, 305.0, 149.5],
        "qty": [10, 5, 20, 1, 15, 30],
        "day": [dt.date(2024, 1, d) for d in (2, 2, 3, 3, 4, 5)],
    })


@pytest.fixture
def sequence() -> pd.DataFrame:
    return pd.DataFrame({"v": list(range(1, 11))})
