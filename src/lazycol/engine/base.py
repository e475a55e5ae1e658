"""
Abstract engine interface for evaluating expression trees.

The Engine protocol defines the contract an execution backend must satisfy to
run trees built with the algebra: resolve columns, implement every reduction,
window and cumulative kind, execute a row filter, and render a plan as text.
The bundled implementation is PandasEngine (in-process evaluation with pandas).
"""

from typing import Any, Protocol

from lazycol.algebra.expressions import Expr
from lazycol.algebra.logical_plan import LogicalPlan


class Engine(Protocol):
    """Protocol for expression evaluation backends."""

    def evaluate(self, dataframe: Any, expr: Expr) -> Any:
        """Bind ``expr`` to ``dataframe`` and compute its values.

        Returns:
            The computed values, labeled with ``expr.output_name``

        Raises:
            EvaluationError: If a column is missing or operand types do not fit
        """
        ...

    def execute(self, plan: LogicalPlan) -> Any:
        """Run a logical plan (a row filter over a source) and return the rows."""
        ...

    def describe_plan(self, plan: LogicalPlan) -> str:
        """Render a logical plan as human-readable text without running it."""
        ...
