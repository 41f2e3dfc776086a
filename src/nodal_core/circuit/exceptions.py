# src/nodal_core/circuit/exceptions.py
"""
Defines the diagnosable exception raised for structurally invalid circuits.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from ..errors import NodalAnalysisError, format_diagnostic_report
from ..validation.issues import ValidationIssue, ValidationIssueLevel


@dataclass()
class MalformedCircuitError(NodalAnalysisError):
    """
    Raised when a circuit cannot be analyzed because of its structure: bad node
    references, a missing or duplicated reference node, a disconnected graph, or an
    invalid element value (e.g. a non-positive resistance).

    When raised by `CircuitGraph.validate()`, `issues` holds every error-level finding.
    """
    details: str
    circuit_name: Optional[str] = None
    node_id: Optional[str] = None
    branch_id: Optional[str] = None
    issues: List[ValidationIssue] = field(default_factory=list)

    @classmethod
    def from_issues(cls, circuit_name: str, issues: List[ValidationIssue]) -> "MalformedCircuitError":
        """Builds the error from a validator report, keeping only ERROR-level issues."""
        errors = [issue for issue in issues if issue.level == ValidationIssueLevel.ERROR]
        if not errors:
            summary = "MalformedCircuitError was raised with no error-level issues."
        else:
            summary = (
                f"Circuit validation failed with {len(errors)} error(s):\n"
                + "\n".join(f"  - {issue}" for issue in errors)
            )
        first = errors[0] if errors else None
        return cls(
            details=summary,
            circuit_name=circuit_name,
            node_id=first.node_id if first else None,
            branch_id=first.branch_id if first else None,
            issues=errors,
        )

    @property
    def codes(self) -> List[str]:
        """The issue codes carried by this error, in report order."""
        return [issue.code for issue in self.issues]

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Malformed Circuit",
            details=self.details,
            suggestion="Check that every branch connects two declared nodes, that exactly one node is the reference, that every node has a path to the reference, and that element values are physical (e.g. positive, finite resistances).",
            context={'circuit': self.circuit_name, 'node': self.node_id, 'branch': self.branch_id}
        )
