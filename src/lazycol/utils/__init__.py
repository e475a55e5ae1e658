"""
Utility functions for lazycol.

This module provides utilities for working with expression trees and plans:
- visualization: Text-based tree rendering of plans and expressions
- serialization: JSON serialization/deserialization of expressions
"""

from .visualization import visualize
from .serialization import (
    serialize,
    deserialize,
    to_json,
    from_json,
    SERIALIZATION_VERSION
)

__all__ = [
    'visualize',
    'serialize',
    'deserialize',
    'to_json',
    'from_json',
    'SERIALIZATION_VERSION'
]
