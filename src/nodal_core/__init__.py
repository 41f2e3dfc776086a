# src/nodal_core/__init__.py
import logging
from .log_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)
logger.info("Nodal Core package initialized.")

from .units import ureg, Quantity, RESISTANCE_DIMENSIONALITY, CURRENT_DIMENSIONALITY, VOLTAGE_DIMENSIONALITY
from .expressions import node_voltage, branch_current
from .errors import NodalCoreError, AnalysisRunError, DiagnosableError, NodalAnalysisError
from .validation import ValidationIssue, ValidationIssueLevel, TopologyIssueCode
from .circuit import (
    Node, Branch, BranchKind,
    Resistor, CurrentSource, VoltageSource, DependentCurrentSource, DependentVoltageSource,
    BRANCH_REGISTRY, register_branch,
    CircuitGraph, build_circuit,
    MalformedCircuitError,
)
from .analysis import (
    SupernodeDetector, SupernodeAnalysisResults, Supernode,
    EquationBuilder, EquationSet, Equation, EquationKind,
    InconsistentConstraintError, UnderdeterminedSystemError, OverdeterminedSystemError,
)
from .solver import (
    SolverMode, SolverConfig, parse_solver_config, ConfigParsingError,
    LinearSystemSolver, SingularSystemError,
)
from .results import Solution, ResultFormatter, IndeterminateCurrentError
from .engine import analyze

__all__ = [
    # Units
    "ureg", "Quantity",
    "RESISTANCE_DIMENSIONALITY", "CURRENT_DIMENSIONALITY", "VOLTAGE_DIMENSIONALITY",
    # Control symbols
    "node_voltage", "branch_current",
    # Circuit model
    "Node", "Branch", "BranchKind",
    "Resistor", "CurrentSource", "VoltageSource", "DependentCurrentSource", "DependentVoltageSource",
    "BRANCH_REGISTRY", "register_branch",
    "CircuitGraph", "build_circuit",
    # Validation
    "ValidationIssue", "ValidationIssueLevel", "TopologyIssueCode",
    # Analysis stages
    "SupernodeDetector", "SupernodeAnalysisResults", "Supernode",
    "EquationBuilder", "EquationSet", "Equation", "EquationKind",
    "LinearSystemSolver", "SolverMode", "SolverConfig", "parse_solver_config",
    "ResultFormatter", "Solution",
    # Facade
    "analyze",
    # Errors (Actionable Diagnostics)
    "NodalCoreError", "AnalysisRunError", "DiagnosableError", "NodalAnalysisError",
    "MalformedCircuitError", "InconsistentConstraintError",
    "UnderdeterminedSystemError", "OverdeterminedSystemError",
    "SingularSystemError", "IndeterminateCurrentError", "ConfigParsingError",
]
