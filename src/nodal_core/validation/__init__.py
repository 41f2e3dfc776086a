# src/nodal_core/validation/__init__.py
"""
Issue contracts for the structural checks run on a circuit graph.

The checker itself (`topology_validator.TopologyValidator`) is imported directly by
the circuit graph; it is not re-exported here because it depends on the circuit
element model, which in turn reports its errors with these issue types.
"""
from .issues import ValidationIssue, ValidationIssueLevel
from .issue_codes import TopologyIssueCode

__all__ = [
    "ValidationIssue",
    "ValidationIssueLevel",
    "TopologyIssueCode",
]
