# src/nodal_core/results/__init__.py
from .exceptions import IndeterminateCurrentError
from .solution import Solution
from .formatter import ResultFormatter

__all__ = [
    "IndeterminateCurrentError",
    "Solution",
    "ResultFormatter",
]
