# src/nodal_core/errors.py
import logging
from typing import Any, Dict, Protocol, abstractmethod
from typing import runtime_checkable

logger = logging.getLogger(__name__)

# --- User-Facing Exception Hierarchy ---

class NodalCoreError(Exception):
    """Base class for all custom, user-facing errors in Nodal Core."""
    pass

class AnalysisRunError(NodalCoreError):
    """
    Raised by the analysis facade when the pipeline fails for a reason that is not
    one of the known, diagnosable failure modes (i.e. an internal error).
    The message is a pre-formatted, user-friendly diagnostic report.
    """
    pass


# --- Diagnostic Protocol & Base Exception ---

@runtime_checkable
class Diagnosable(Protocol):
    """
    A protocol for exceptions that can generate their own rich diagnostic report.
    """
    def get_diagnostic_report(self) -> str:
        """Generates a complete, user-friendly, multi-line report string."""
        ...

class DiagnosableError(Exception, Diagnosable):
    """
    A common, concrete base class for all internal exceptions that are diagnosable.

    It inherits from `Exception`, so it can be used in `except` clauses, and it
    declares `get_diagnostic_report` abstract so every subclass must provide a
    report or fail at instantiation time.
    """
    @abstractmethod
    def get_diagnostic_report(self) -> str:
        """
        Abstract method to generate the diagnostic report.
        Subclasses MUST implement this.
        """
        raise NotImplementedError


class NodalAnalysisError(DiagnosableError, NodalCoreError):
    """
    Common parent of the domain errors raised by the analysis pipeline
    (malformed circuits, inconsistent constraints, count mismatches, singular systems).

    Subclasses are dataclasses that carry a `details` field; `__str__` returns it
    so that the exceptions print usefully even though the dataclass-generated
    `__init__` does not populate `args`.
    """
    details: str

    def __str__(self) -> str:
        return self.details


# --- Stateless Formatting Utility ---

def format_diagnostic_report(
    error_type: str,
    details: str,
    suggestion: str,
    context: Dict[str, Any]
) -> str:
    """
    A stateless helper to format the final multi-line report string, ensuring a
    consistent look and feel for all user-facing diagnostics.

    Args:
        error_type: The high-level category of the error (e.g., "Singular System").
        details: A detailed, potentially multi-line description of the problem.
        suggestion: Actionable advice for the user to resolve the issue.
        context: A dictionary of contextual information (circuit name, node, branch, ...).

    Returns:
        A formatted, user-friendly diagnostic report string ready for display.
    """
    lines = [
        "\n",
        "================ Nodal Core: Actionable Diagnostic Report ================",
        f"Error Type:     {error_type}",
    ]
    if circuit := context.get('circuit'):
        lines.append(f"Circuit:        {circuit}")
    if node := context.get('node'):
        lines.append(f"Node:           {node}")
    if branch := context.get('branch'):
        lines.append(f"Branch:         {branch}")
    if user_input := context.get('user_input'):
        lines.append(f"User Input:     '{user_input}'")

    lines.append("\nDetails:")
    for line in details.splitlines():
        lines.append(f"  {line}")

    if suggestion:
        lines.append("\nSuggestion:")
        for line in suggestion.splitlines():
            lines.append(f"  {line}")

    lines.append("==========================================================================")
    return "\n".join(lines)
