# src/nodal_core/validation/issues.py
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class ValidationIssueLevel(Enum):
    """Severity level of a validation issue."""
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class ValidationIssue:
    """
    A single finding of the structural checks run on a circuit graph.
    Carries the node and/or branch it is about so callers can act on it.
    """
    level: ValidationIssueLevel
    code: str
    message: str
    node_id: Optional[str] = None
    branch_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __str__(self) -> str:
        parts = [f"[{self.level.name} - {self.code}]"]
        if self.node_id is not None:
            parts.append(f"Node: {self.node_id}")
        if self.branch_id is not None:
            parts.append(f"Branch: {self.branch_id}")
        parts.append(f"Message: {self.message}")
        return " ".join(parts)
