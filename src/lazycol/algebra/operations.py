"""
Operation nodes for logical plans over a dataset.

Operations wrap a dataset (Source) and the row-level transformations applied
to it. Like expressions they only capture intent; an engine executes or
describes them.

Constructor shortcuts
---------------------
Unary operations accept ``input=<op>`` as shorthand for ``inputs=[<op>]``.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Any

import pandas as pd

from lazycol.algebra.expressions import Expr


def _resolve_inputs(
    inputs: List["Operation"],
    *,
    input: Optional["Operation"] = None,
) -> List["Operation"]:
    """Build the inputs list from explicit inputs or the ``input`` alias."""
    if inputs:
        return inputs
    if input is not None:
        return [input]
    return []


@dataclass
class Operation:
    """Base class for all operations."""

    inputs: List["Operation"] = field(default_factory=list)


@dataclass
class Source(Operation):
    """Dataset leaf; ``data`` holds the frame when one is bound."""

    source_id: str = ""
    schema: Optional[List[str]] = None
    data: Optional[pd.DataFrame] = field(default=None, repr=False)

    def __post_init__(self):
        if self.schema is None and self.data is not None:
            self.schema = [str(c) for c in self.data.columns]
        if self.inputs:
            raise ValueError("Source operation cannot have inputs")

    @property
    def num_rows(self) -> Optional[int]:
        return None if self.data is None else len(self.data)


@dataclass
class Filter(Operation):
    """Keeps the rows where ``predicate`` evaluates to true.

    Aliases: ``input`` → ``inputs[0]``.
    """

    predicate: Any = None
    input: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        if len(self.inputs) != 1:
            raise ValueError("Filter operation must have exactly one input")
        if not isinstance(self.predicate, Expr):
            raise ValueError(
                f"Filter predicate must be an expression, got {type(self.predicate).__name__}"
            )
