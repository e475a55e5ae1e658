"""
Execution engines for expression trees.

- Engine: protocol every backend satisfies
- PandasEngine: in-process evaluation over pandas DataFrames
"""

from .base import Engine
from .pandas_engine import PandasEngine, evaluate_expression, execute

__all__ = [
    'Engine',
    'PandasEngine',
    'evaluate_expression',
    'execute',
]
