"""
lazycol - A lazy expression algebra for column-wise computation.

Expressions are immutable trees built from column references and literals.
Nothing is computed until a tree is handed to an engine together with a
concrete dataset.

Usage:
    >>> import pandas as pd
    >>> from lazycol import col, evaluate, functions as F
    >>> df = pd.DataFrame({'x': [1, 2, 3, 4]})
    >>> evaluate(df, F.quotient(col('x'), 2))
    0    0
    1    1
    2    1
    3    2
    Name: x, dtype: Int64

Key components:
- algebra: expression nodes, builder functions and the logical plan
- engine: Engine protocol and the bundled PandasEngine
- evaluate / filter_rows / describe_filter_plan: the evaluation boundary
- utils: tree visualization and JSON serialization
"""

from .algebra import functions, col, lit, DType, Expr, LogicalPlan
from .engine import Engine, PandasEngine
from .evaluation import evaluate, filter_rows, describe_filter_plan
from .exceptions import *

# Version
__version__ = "0.1.0"

__all__ = [
    'functions',
    'col',
    'lit',
    'DType',
    'Expr',
    'LogicalPlan',
    'Engine',
    'PandasEngine',
    'evaluate',
    'filter_rows',
    'describe_filter_plan',
    'ConstructionError',
    'EvaluationError',
]
