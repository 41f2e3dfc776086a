# src/nodal_core/solver/exceptions.py
"""
Defines the diagnosable exception of the linear solve stage.
"""
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..errors import NodalAnalysisError, format_diagnostic_report


@dataclass()
class SingularSystemError(NodalAnalysisError, np.linalg.LinAlgError):
    """
    Raised when the formulated system has no unique solution.

    This class uses multiple inheritance to be catchable both as a domain
    `NodalAnalysisError` and as a standard `LinAlgError`.
    """
    details: str
    circuit_name: Optional[str] = None
    determinant: Optional[str] = None
    smallest_pivot: Optional[float] = None

    def get_diagnostic_report(self) -> str:
        details = self.details
        if self.determinant is not None:
            details += f"\nSimplified determinant: {self.determinant}"
        if self.smallest_pivot is not None:
            details += f"\nSmallest LU pivot magnitude: {self.smallest_pivot:.4e}"
        return format_diagnostic_report(
            error_type="Singular Equation System",
            details=details,
            suggestion="This is often caused by a floating group of nodes joined only by voltage sources, a current source with no resistive return path, or resistances many orders of magnitude apart. Check the circuit topology and element values.",
            context={'circuit': self.circuit_name}
        )
