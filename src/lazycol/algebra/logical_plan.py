"""
Logical plan representation for operations over a dataset.

The LogicalPlan class wraps the root operation of a plan tree and provides
methods for introspection and debugging. Plans are what the boundary functions
hand to an engine: to run a row filter, or to render it as text.
"""

from .operations import Operation, Source, Filter


class LogicalPlan:
    """Logical plan for operations over a dataset.

    Attributes:
        root: The root operation of the plan (final result)

    Example:
        >>> source = Source(source_id="trades", schema=["price", "qty"])
        >>> filtered = Filter(predicate=col("price") > 10, inputs=[source])
        >>> plan = LogicalPlan(filtered)
        >>> print(plan.explain())
    """

    def __init__(self, root: Operation):
        """Initialize a logical plan with a root operation.

        Args:
            root: The root operation of the plan
        """
        if not isinstance(root, Operation):
            raise TypeError(f"Plan root must be an Operation, got {type(root)}")
        self._root = root

    @property
    def root(self) -> Operation:
        """Get the root operation of the plan."""
        return self._root

    def explain(self) -> str:
        """Generate a human-readable explanation of the plan.

        Operations are listed from the leaves (sources) to the root, one
        per line.
        """
        lines = []
        lines.append("Logical Plan:")
        lines.append("=" * 60)
        self._explain_operation(self._root, lines)
        return "\n".join(lines)

    def _explain_operation(self, op: Operation, lines: list):
        # Process inputs first (leaves before root)
        for input_op in op.inputs:
            self._explain_operation(input_op, lines)

        op_type = op.__class__.__name__
        if isinstance(op, Source):
            desc = f"{op_type}(source_id='{op.source_id}'"
            if op.schema:
                desc += f", schema={op.schema}"
            desc += ")"
        elif isinstance(op, Filter):
            desc = f"{op_type}(predicate={op.predicate})"
        else:
            desc = f"{op_type}()"

        lines.append(desc)

    def __repr__(self) -> str:
        """String representation of the plan."""
        return f"LogicalPlan(root={self._root.__class__.__name__})"

    def __str__(self) -> str:
        """String representation showing the plan explanation."""
        return self.explain()
