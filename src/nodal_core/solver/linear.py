# src/nodal_core/solver/linear.py
"""
Solves the square linear system produced by the equation builder.

Two paths are available:

- Symbolic: `sympy.linear_eq_to_matrix`, a determinant check and an exact LU solve.
  Used for parametric circuits and for circuits whose values are all exact, so
  integer and rational inputs give exact rational voltages.
- Numeric: dense float arrays factorized with `scipy.linalg.lu_factor`. Used when
  the values are numeric and at least one of them is a float.
"""
import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import sympy
from scipy.linalg import lu_factor, lu_solve

from ..analysis.equations import check_balance
from ..analysis.results import Equation
from ..circuit.exceptions import MalformedCircuitError
from ..constants import RESIDUAL_ATOL
from ..expressions import is_exact
from .config import SolverConfig, SolverMode
from .exceptions import SingularSystemError

logger = logging.getLogger(__name__)

EquationLike = Union[Equation, sympy.Equality, sympy.Expr]


@dataclass(frozen=True)
class SolvedSystem:
    """The values of the unknowns and the path (SYMBOLIC or NUMERIC) that produced them."""
    values: Mapping[sympy.Symbol, sympy.Expr]
    mode: SolverMode


def _residual(equation: EquationLike) -> sympy.Expr:
    if isinstance(equation, Equation):
        return equation.residual
    if isinstance(equation, sympy.Equality):
        return equation.lhs - equation.rhs
    return sympy.sympify(equation)


class LinearSystemSolver:
    """
    Stateless linear solver. One instance may be reused for any number of systems.
    """
    def __init__(self, config: Optional[SolverConfig] = None, circuit_name: Optional[str] = None):
        self.config: SolverConfig = config if config is not None else SolverConfig()
        self.circuit_name: Optional[str] = circuit_name

    def solve(self, equations: Sequence[EquationLike], unknowns: Sequence[sympy.Symbol]) -> SolvedSystem:
        """
        Solves `equations` (each ``lhs = rhs``, or an expression equal to zero) for `unknowns`.

        Raises:
            UnderdeterminedSystemError / OverdeterminedSystemError: On a count mismatch.
            MalformedCircuitError: If an equation is not linear in the unknowns.
            SingularSystemError: If the system has no unique solution.
            ValueError: If NUMERIC mode is forced on a system with symbolic parameters.
        """
        check_balance(equations, unknowns, self.circuit_name)
        unknowns = tuple(unknowns)
        if not unknowns:
            logger.debug("No unknowns to solve for.")
            mode = SolverMode.NUMERIC if self.config.mode is SolverMode.NUMERIC else SolverMode.SYMBOLIC
            return SolvedSystem(values={}, mode=mode)

        residuals = [_residual(eq) for eq in equations]
        try:
            A, b = sympy.linear_eq_to_matrix(residuals, list(unknowns))
        except ValueError as e:
            # sympy's NonlinearError derives from ValueError.
            raise MalformedCircuitError(
                details=f"The equation system is not linear in the node voltages: {e}",
                circuit_name=self.circuit_name,
            ) from e

        mode = self._select_mode(A, b)
        logger.info(f"Solving {len(unknowns)}x{len(unknowns)} system on the {mode} path.")
        if mode is SolverMode.SYMBOLIC:
            values = self._solve_symbolic(A, b, unknowns)
        else:
            values = self._solve_numeric(A, b, unknowns)

        for unknown in unknowns:
            logger.debug(f"{unknown} = {values[unknown]}")
        return SolvedSystem(values=values, mode=mode)

    # --- Stateless Helper Methods ---

    def _select_mode(self, A: sympy.Matrix, b: sympy.Matrix) -> SolverMode:
        symbolic = bool(A.free_symbols or b.free_symbols)
        requested = self.config.mode
        if requested is SolverMode.NUMERIC and symbolic:
            parameters = sorted(s.name for s in A.free_symbols | b.free_symbols)
            raise ValueError(
                f"NUMERIC solver mode cannot handle symbolic parameters {parameters}. "
                f"Use SYMBOLIC or AUTO mode."
            )
        if requested is not SolverMode.AUTO:
            return requested
        if symbolic:
            return SolverMode.SYMBOLIC
        exact = all(is_exact(entry) for entry in list(A) + list(b))
        return SolverMode.SYMBOLIC if exact else SolverMode.NUMERIC

    def _solve_symbolic(
        self, A: sympy.Matrix, b: sympy.Matrix, unknowns: Tuple[sympy.Symbol, ...]
    ) -> Mapping[sympy.Symbol, sympy.Expr]:
        det = A.det()
        if self.config.simplify:
            det = sympy.simplify(det)
        if det.is_zero or det == 0:
            details = "The coefficient matrix of the nodal equations has a zero determinant."
            logger.error(details)
            raise SingularSystemError(details=details, circuit_name=self.circuit_name, determinant=str(det))

        x = A.LUsolve(b)
        values = {}
        for i, unknown in enumerate(unknowns):
            value = x[i]
            values[unknown] = sympy.simplify(value) if self.config.simplify else value
        return values

    def _solve_numeric(
        self, A: sympy.Matrix, b: sympy.Matrix, unknowns: Tuple[sympy.Symbol, ...]
    ) -> Mapping[sympy.Symbol, sympy.Expr]:
        A_num = np.array(A.tolist(), dtype=float)
        b_num = np.array(b.tolist(), dtype=float).reshape(-1)

        # Row equilibration: KCL rows are in siemens and KVL rows are unitless, and
        # conductances may span many decades, so each row is scaled to unit max.
        row_scale = np.max(np.abs(A_num), axis=1)
        if np.any(row_scale == 0.0):
            details = "The coefficient matrix of the nodal equations has an all-zero row."
            logger.error(details)
            raise SingularSystemError(details=details, circuit_name=self.circuit_name, smallest_pivot=0.0)
        A_eq = A_num / row_scale[:, np.newaxis]
        b_eq = b_num / row_scale

        try:
            lu, piv = lu_factor(A_eq)
        except (np.linalg.LinAlgError, ValueError) as e:
            logger.error(f"LU factorization failed: {e}")
            raise SingularSystemError(details=f"LU factorization failed: {e}", circuit_name=self.circuit_name) from e

        smallest_pivot = float(np.min(np.abs(np.diag(lu))))
        if smallest_pivot <= self.config.singular_rtol:
            details = (
                f"LU factorization of the row-equilibrated matrix produced a pivot of magnitude "
                f"{smallest_pivot:.4e}, below the tolerance {self.config.singular_rtol:.1e}."
            )
            logger.error(f"Coefficient matrix appears singular: {details}")
            raise SingularSystemError(details=details, circuit_name=self.circuit_name, smallest_pivot=smallest_pivot)

        x = lu_solve((lu, piv), b_eq)
        if np.any(np.isnan(x)) or np.any(np.isinf(x)):
            logger.error("NaN or Inf detected in the solution vector.")
            raise SingularSystemError(
                details="The linear solve resulted in NaN/Inf values.", circuit_name=self.circuit_name
            )

        worst = float(np.max(np.abs(A_num @ x - b_num)))
        if worst > RESIDUAL_ATOL:
            logger.warning(f"Solution residual {worst:.3e} exceeds {RESIDUAL_ATOL:.1e}; the system may be ill-conditioned.")

        return {unknown: sympy.Float(float(x[i])) for i, unknown in enumerate(unknowns)}


def solve_linear_system(
    equations: Sequence[EquationLike],
    unknowns: Sequence[sympy.Symbol],
    config: Optional[SolverConfig] = None,
) -> SolvedSystem:
    """Convenience wrapper around `LinearSystemSolver(config).solve(...)`."""
    return LinearSystemSolver(config).solve(equations, unknowns)
