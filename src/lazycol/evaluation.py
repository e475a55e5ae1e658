"""
Evaluation boundary.

Each function binds an expression to a concrete DataFrame and hands the work
to an engine. The row-filter entry points compose a one-step logical plan
(``Filter`` over a ``Source`` wrapping the frame) so that executing it and
describing it go through the same tree.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from lazycol.algebra.expressions import Expr
from lazycol.algebra.logical_plan import LogicalPlan
from lazycol.algebra.operations import Filter, Source
from lazycol.engine.base import Engine
from lazycol.engine.pandas_engine import PandasEngine

logger = logging.getLogger(__name__)

_DEFAULT_ENGINE = PandasEngine()


def _filter_plan(dataframe: Any, predicate: Expr) -> LogicalPlan:
    source = Source(source_id="<dataframe>", data=dataframe)
    return LogicalPlan(Filter(predicate=predicate, inputs=[source]))


def evaluate(dataframe: Any, expr: Expr, engine: Optional[Engine] = None) -> Any:
    """Compute ``expr`` against ``dataframe``.

    Args:
        dataframe: Frame whose columns the expression refers to.
        expr: Expression tree to evaluate.
        engine: Backend to use; defaults to the shared ``PandasEngine``.

    Returns:
        A Series named ``expr.output_name``. Reductions come back as a
        one-element Series.
    """
    if not isinstance(expr, Expr):
        raise TypeError(f"Expected Expr, got {type(expr)}")
    engine = engine or _DEFAULT_ENGINE
    logger.debug("evaluate: %s", expr)
    return engine.evaluate(dataframe, expr)


def filter_rows(dataframe: Any, predicate: Expr, engine: Optional[Engine] = None) -> Any:
    """Return the rows of ``dataframe`` where ``predicate`` is true.

    Rows where the predicate is null are dropped.
    """
    plan = _filter_plan(dataframe, predicate)
    engine = engine or _DEFAULT_ENGINE
    logger.debug("filter_rows: %s", predicate)
    return engine.execute(plan)


def describe_filter_plan(dataframe: Any, predicate: Expr, engine: Optional[Engine] = None) -> str:
    """Render the filter plan for ``predicate`` over ``dataframe`` as text.

    Nothing is evaluated; the output names the predicate and the source
    schema.
    """
    plan = _filter_plan(dataframe, predicate)
    engine = engine or _DEFAULT_ENGINE
    logger.debug("describe_filter_plan: %s", predicate)
    return engine.describe_plan(plan)
