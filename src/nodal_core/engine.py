# src/nodal_core/engine.py
"""
Provides `analyze`, the public entry point that runs the whole pipeline:

    circuit -> supernode detection -> equation building -> linear solve -> Solution

Every run constructs fresh stage objects and only reads the circuit, so the same
circuit can be analyzed repeatedly with identical results.

Known failure modes surface as their own diagnosable exception types so callers
can tell an inconsistent source loop from a singular system. Anything else is an
internal error and is wrapped in `AnalysisRunError` with a formatted report.
"""
import logging
from typing import Optional

from .analysis.equations import EquationBuilder
from .analysis.supernodes import SupernodeDetector
from .circuit.graph import CircuitGraph
from .errors import AnalysisRunError, DiagnosableError, format_diagnostic_report
from .results.formatter import ResultFormatter
from .results.solution import Solution
from .solver.config import SolverConfig
from .solver.linear import LinearSystemSolver

logger = logging.getLogger(__name__)


def analyze(circuit: CircuitGraph, config: Optional[SolverConfig] = None) -> Solution:
    """
    Solves a circuit for all node voltages and branch currents.

    Args:
        circuit: The circuit graph. An unfrozen graph is validated and frozen first.
        config: Solver options. Defaults to `SolverConfig()` (AUTO mode).

    Returns:
        The complete, immutable `Solution`.

    Raises:
        MalformedCircuitError: The circuit is structurally invalid.
        InconsistentConstraintError: A loop of voltage sources violates KVL.
        UnderdeterminedSystemError / OverdeterminedSystemError: The equation count
            does not match the unknown count.
        SingularSystemError: The system has no unique solution.
        AnalysisRunError: Any other, unexpected failure. The original is chained.
    """
    if not isinstance(circuit, CircuitGraph):
        raise TypeError(f"analyze() expects a CircuitGraph, got {type(circuit).__name__}.")
    effective_config = config if config is not None else SolverConfig()

    try:
        logger.info(f"--- Starting nodal analysis of '{circuit.name}' ---")
        if not circuit.is_frozen:
            circuit.validate()
            circuit.freeze()

        supernode_results = SupernodeDetector(circuit).analyze()
        equation_set = EquationBuilder(circuit, supernode_results).build()
        logger.debug(f"Equation system for '{circuit.name}':\n{equation_set.describe()}")

        solver = LinearSystemSolver(effective_config, circuit_name=circuit.name)
        solved = solver.solve(equation_set.equations, equation_set.unknowns)

        solution = ResultFormatter(circuit, equation_set, solved, effective_config).format()
        logger.info(f"--- Nodal analysis of '{circuit.name}' complete ({solved.mode} path). ---")
        return solution

    except DiagnosableError as e:
        # Known failure modes stay distinct and inspectable.
        logger.error(f"Nodal analysis of '{circuit.name}' failed: {e}")
        raise

    except Exception as e:
        logger.critical(f"An unexpected internal error occurred during nodal analysis: {e}", exc_info=True)
        report = format_diagnostic_report(
            error_type=f"An Unexpected Analysis Error Occurred ({type(e).__name__})",
            details=f"The analysis encountered an unexpected error: {e}",
            suggestion="Check the solver configuration against the circuit (e.g. NUMERIC mode requires numeric element values). Otherwise this may be a bug; review the traceback.",
            context={'circuit': circuit.name}
        )
        raise AnalysisRunError(report) from e
