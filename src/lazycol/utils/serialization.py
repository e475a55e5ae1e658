"""
Expression serialization utilities.

Provides JSON serialization and deserialization for expression trees. The
serialized format includes versioning for forward compatibility and supports
every node type. Shared subtrees are written out once per reference.
"""

import json
from typing import Dict, Any
from ..algebra.expressions import Expr


# Current serialization format version
SERIALIZATION_VERSION = "1.0"


def serialize(expr: Expr) -> Dict[str, Any]:
    """Serialize an expression tree to a JSON-serializable dictionary.

    The serialized format includes:
    - version: Format version string for forward compatibility
    - root: The root node serialized as a nested dictionary

    Raises:
        TypeError: If expr is not an Expr instance

    Example:
        >>> data = serialize(col("x") + 1)
        >>> assert data["version"] == "1.0"
        >>> assert data["root"]["type"] == "binary"
    """
    if not isinstance(expr, Expr):
        raise TypeError(f"Expected Expr, got {type(expr)}")

    return {
        "version": SERIALIZATION_VERSION,
        "root": expr.to_dict()
    }


def deserialize(data: Dict[str, Any]) -> Expr:
    """Deserialize an expression tree from a dictionary.

    Raises:
        ValueError: If data is missing required fields or has invalid structure
        TypeError: If data is not a dictionary
    """
    if not isinstance(data, dict):
        raise TypeError(f"Expected dict, got {type(data)}")

    if "version" not in data:
        raise ValueError("Serialized expression must have 'version' field")
    if "root" not in data:
        raise ValueError("Serialized expression must have 'root' field")

    version = data["version"]
    if version != SERIALIZATION_VERSION:
        raise ValueError(
            f"Unsupported serialization version: {version}. "
            f"Expected {SERIALIZATION_VERSION}"
        )

    try:
        return Expr.from_dict(data["root"])
    except KeyError as e:
        raise ValueError(f"Missing required field in expression: {e}") from e


def to_json(expr: Expr, **kwargs) -> str:
    """Serialize an expression tree to a JSON string.

    Args:
        expr: The expression to serialize
        **kwargs: Additional arguments to pass to json.dumps (e.g., indent=2)
    """
    data = serialize(expr)
    return json.dumps(data, **kwargs)


def from_json(json_str: str) -> Expr:
    """Deserialize an expression tree from a JSON string.

    Raises:
        ValueError: If JSON is invalid or the tree structure is invalid
    """
    if not isinstance(json_str, str):
        raise TypeError(f"Expected str, got {type(json_str)}")

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}") from e

    return deserialize(data)
