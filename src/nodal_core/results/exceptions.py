# src/nodal_core/results/exceptions.py
from dataclasses import dataclass
from typing import Optional

from ..errors import NodalAnalysisError, format_diagnostic_report


@dataclass()
class IndeterminateCurrentError(NodalAnalysisError):
    """
    Raised when the current of a voltage source is queried but is not fixed by the
    node voltages, e.g. one of two equal sources in parallel.
    """
    details: str
    circuit_name: Optional[str] = None
    branch_id: Optional[str] = None

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Indeterminate Branch Current",
            details=self.details,
            suggestion="Voltage sources that form a closed loop share their current in a way nodal analysis cannot resolve. Remove the redundant source or add a series resistance.",
            context={'circuit': self.circuit_name, 'branch': self.branch_id}
        )
