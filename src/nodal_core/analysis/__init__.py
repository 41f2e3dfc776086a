# src/nodal_core/analysis/__init__.py
"""
Defines the public interface for the analysis package.

This package holds the two formulation stages that run between a validated circuit
and the solver: supernode detection and equation building, together with their
formal result contracts.
"""
from .results import (
    VoltageConstraint,
    Supernode,
    SupernodeAnalysisResults,
    EquationKind,
    Equation,
    EquationSet,
)
from .supernodes import SupernodeDetector, detect_supernodes
from .equations import EquationBuilder, build_equations, check_balance
from .exceptions import (
    InconsistentConstraintError,
    UnderdeterminedSystemError,
    OverdeterminedSystemError,
)

__all__ = [
    # Formal Result Contracts
    "VoltageConstraint",
    "Supernode",
    "SupernodeAnalysisResults",
    "EquationKind",
    "Equation",
    "EquationSet",
    # Formulation Services
    "SupernodeDetector",
    "detect_supernodes",
    "EquationBuilder",
    "build_equations",
    "check_balance",
    # Exceptions
    "InconsistentConstraintError",
    "UnderdeterminedSystemError",
    "OverdeterminedSystemError",
]
