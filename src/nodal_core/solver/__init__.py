# src/nodal_core/solver/__init__.py
from .config import (
    ConfigParsingError,
    SolverMode,
    SolverConfig,
    parse_solver_config,
)
from .exceptions import SingularSystemError
from .linear import LinearSystemSolver, SolvedSystem, solve_linear_system

__all__ = [
    # Configuration
    "ConfigParsingError",
    "SolverMode",
    "SolverConfig",
    "parse_solver_config",
    # Exceptions
    "SingularSystemError",
    # Core Classes
    "LinearSystemSolver",
    "SolvedSystem",
    "solve_linear_system",
]
