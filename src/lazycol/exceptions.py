"""
Exception classes for lazycol.

These exceptions are used throughout the lazycol package to signal errors while
an expression tree is being built and while it is being evaluated against data.
"""


class ConstructionError(ValueError):
    """Raised when an expression node cannot be built.

    Construction errors are detected eagerly, when the factory is called, so a
    malformed node never exists. Examples:
        - Casting to an unknown target type
        - An unknown fill strategy or peak kind
        - Window parameters out of range (size < 1, weights of the wrong
          length, min_periods larger than the window)
        - A quantile outside [0, 1]
        - A literal whose value has no column type
    """
    pass


class EvaluationError(Exception):
    """Raised when an expression tree cannot be evaluated against a dataset.

    These errors only surface once a tree is bound to real data. Examples:
        - A column reference naming a column the dataset does not have
        - Logical operators applied to non-boolean operands
        - Whole-column operands of different lengths
        - Values that cannot be converted by a cast
    """
    pass
