# src/nodal_core/circuit/__init__.py
import logging
logger = logging.getLogger(__name__)

from .exceptions import MalformedCircuitError
from .elements import (
    Node, Branch, BranchKind, NodeId,
    Resistor, CurrentSource, VoltageSource,
    DependentCurrentSource, DependentVoltageSource,
    BRANCH_REGISTRY, register_branch, branch_from_definition,
)
from .graph import CircuitGraph, build_circuit

logger.debug(f"Available branch types: {list(BRANCH_REGISTRY.keys())}")

__all__ = [
    "MalformedCircuitError",
    "Node",
    "Branch",
    "BranchKind",
    "NodeId",
    "Resistor",
    "CurrentSource",
    "VoltageSource",
    "DependentCurrentSource",
    "DependentVoltageSource",
    "BRANCH_REGISTRY",
    "register_branch",
    "branch_from_definition",
    "CircuitGraph",
    "build_circuit",
]
