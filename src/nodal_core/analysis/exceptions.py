# src/nodal_core/analysis/exceptions.py
"""
Defines custom, diagnosable exceptions for the supernode and equation-formulation stages.
"""
from dataclasses import dataclass
from typing import Optional

from ..errors import NodalAnalysisError, format_diagnostic_report


@dataclass()
class InconsistentConstraintError(NodalAnalysisError):
    """
    Raised when a loop of voltage sources implies a non-zero voltage sum around the
    loop (KVL violated), e.g. a 5 V and a 3 V source in parallel.
    """
    details: str
    circuit_name: Optional[str] = None
    branch_id: Optional[str] = None

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Inconsistent Voltage-Source Constraint",
            details=self.details,
            suggestion="Voltage sources that form a closed loop must sum to zero around it. Remove the redundant source or correct its value.",
            context={'circuit': self.circuit_name, 'branch': self.branch_id}
        )


@dataclass()
class _EquationCountError(NodalAnalysisError):
    details: str
    equation_count: int
    unknown_count: int
    circuit_name: Optional[str] = None

    _error_type = "Equation Count Mismatch"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type=self._error_type,
            details=f"{self.details}\n{self.equation_count} equation(s) for {self.unknown_count} unknown(s).",
            suggestion="The equation count is derived from the topology and should always match the unknowns. This indicates an internal formulation error; please report the circuit that triggered it.",
            context={'circuit': self.circuit_name}
        )


@dataclass()
class UnderdeterminedSystemError(_EquationCountError):
    """Raised when fewer equations than unknowns were formulated."""
    _error_type = "Underdetermined Equation System"


@dataclass()
class OverdeterminedSystemError(_EquationCountError):
    """Raised when more equations than unknowns were formulated."""
    _error_type = "Overdetermined Equation System"
