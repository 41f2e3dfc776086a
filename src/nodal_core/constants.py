# --- src/nodal_core/constants.py ---
import logging

logger = logging.getLogger(__name__)

# --- Numerical Constants for the Solver ---

#: Pivot threshold for the numeric LU path. Rows are scaled to a largest entry of 1
#: before factorization; a pivot whose magnitude is below this value marks the
#: system as singular.
SINGULAR_PIVOT_RTOL: float = 1.0e-9

#: Relative tolerance for the sum around a loop of float-valued voltage sources. The
#: sum is compared against this fraction of the largest source value in the loop.
LOOP_RESIDUAL_RTOL: float = 1.0e-9

#: Absolute tolerance used when checking that solved voltages satisfy their equations.
RESIDUAL_ATOL: float = 1.0e-6

# --- Naming of control symbols used in dependent-source expressions ---

#: Prefix of the symbol that stands for the voltage of a node, e.g. V(2).
NODE_VOLTAGE_PREFIX: str = "V"

#: Prefix of the symbol that stands for the current through a branch, e.g. I(R1).
BRANCH_CURRENT_PREFIX: str = "I"

logger.debug("Defined core constants: SINGULAR_PIVOT_RTOL, LOOP_RESIDUAL_RTOL, RESIDUAL_ATOL")
