"""
Plan and expression visualization utilities.

Provides text-based tree rendering for logical plans and expression trees. The
visualization shows the tree structure with indentation and connectors, making
it easy to follow the dataflow from the leaves to the final result. Subtrees
shared by several parents are drawn once and referenced afterwards.
"""

from dataclasses import fields
from enum import Enum
from typing import List, Optional, Set, Union

from ..algebra.expressions import Expr, Literal
from ..algebra.logical_plan import LogicalPlan
from ..algebra.operations import Operation, Source, Filter

Node = Union[Operation, Expr]


def visualize(target: Union[LogicalPlan, Expr]) -> str:
    """Generate a text-based tree visualization of a plan or an expression.

    Filter operations also show their predicate as a subtree.

    Args:
        target: The logical plan or expression to visualize

    Returns:
        A string containing the tree-shaped visualization

    Example:
        >>> source = Source(source_id="trades", schema=["price"])
        >>> filtered = Filter(predicate=col("price") > 10, inputs=[source])
        >>> print(visualize(LogicalPlan(filtered)))
        Filter(predicate=(col("price") > 10))
        ├── predicate: Binary(op='>')
        │   ├── Column(name='price')
        │   └── Literal(value=10, dtype='integer')
        └── Source(source_id='trades', schema=['price'])
    """
    if isinstance(target, LogicalPlan):
        root: Node = target.root
    elif isinstance(target, Expr):
        root = target
    else:
        raise TypeError(f"Expected LogicalPlan or Expr, got {type(target)}")

    lines: List[str] = []
    visited: Set[int] = set()
    _visualize_node(root, lines, prefix=None, is_last=True, visited=visited)
    return "\n".join(lines)


def _visualize_node(
    node: Node,
    lines: list,
    prefix: Optional[str],
    is_last: bool,
    visited: Set[int],
    label: str = "",
) -> None:
    """Recursively visualize a node and its children.

    Args:
        node: Operation or expression to visualize
        lines: List to append visualization lines to
        prefix: Current prefix string for indentation (None for the root)
        is_last: Whether this is the last child of its parent
        visited: Set of node IDs already drawn
        label: Optional text shown before the node description
    """
    connector = "└── " if is_last else "├── "

    node_id = id(node)
    if node_id in visited:
        lines.append((prefix or "") + connector + label + "[already shown]")
        return
    visited.add(node_id)

    desc = label + _format_node(node)
    if prefix is None:
        lines.append(desc)
        child_prefix = ""
    else:
        lines.append(prefix + connector + desc)
        child_prefix = prefix + ("    " if is_last else "│   ")

    children = _children(node)
    for i, (child_label, child) in enumerate(children):
        is_last_child = i == len(children) - 1
        _visualize_node(child, lines, child_prefix, is_last_child, visited, child_label)


def _children(node: Node) -> List[tuple]:
    if isinstance(node, Expr):
        return [("", child) for child in node.children]
    children = []
    if isinstance(node, Filter):
        children.append(("predicate: ", node.predicate))
    children.extend(("", op) for op in node.inputs)
    return children


def _format_node(node: Node) -> str:
    """Format a node as a string with its key parameters."""
    node_type = node.__class__.__name__

    if isinstance(node, Source):
        parts = [f"source_id='{node.source_id}'"]
        if node.schema:
            parts.append(f"schema={node.schema}")
        if node.num_rows is not None:
            parts.append(f"rows={node.num_rows}")
        return f"{node_type}({', '.join(parts)})"

    elif isinstance(node, Filter):
        return f"{node_type}(predicate={node.predicate})"

    elif isinstance(node, Literal):
        dtype = node.dtype.value if node.dtype is not None else None
        return f"{node_type}(value={node.value!r}, dtype={dtype!r})"

    elif isinstance(node, Expr):
        params = []
        for f in fields(node):
            value = getattr(node, f.name)
            if isinstance(value, Expr) or value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            params.append(f"{f.name}={value!r}")
        return f"{node_type}({', '.join(params)})"

    else:
        return f"{node_type}()"
