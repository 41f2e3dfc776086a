# src/nodal_core/expressions.py
"""
Symbol factory and small helpers for the SymPy expressions that flow through the
analysis pipeline.

Two families of symbols have a reserved meaning:

- ``V(n)``: the voltage of node ``n`` relative to the reference node.
- ``I(b)``: the current through branch ``b``, measured from its ``node_from``
  terminal to its ``node_to`` terminal.

Dependent sources are written in terms of these symbols (e.g. ``4 * I("Rx")`` for a
current-controlled source). Every other free symbol in an element value is a
user parameter and is carried through to the solution untouched.
"""
import logging
import re
from typing import Hashable, Optional, Tuple

import sympy

from .constants import BRANCH_CURRENT_PREFIX, NODE_VOLTAGE_PREFIX

logger = logging.getLogger(__name__)

_CONTROL_NAME_RE = re.compile(r"^(?P<prefix>[A-Za-z]+)\((?P<label>.+)\)$")


def node_voltage(node_id: Hashable) -> sympy.Symbol:
    """Returns the symbol standing for the voltage at `node_id`."""
    return sympy.Symbol(f"{NODE_VOLTAGE_PREFIX}({node_id})")


def branch_current(branch_id: Hashable) -> sympy.Symbol:
    """Returns the symbol standing for the current through `branch_id`."""
    return sympy.Symbol(f"{BRANCH_CURRENT_PREFIX}({branch_id})")


def split_control_symbol(symbol: sympy.Symbol) -> Optional[Tuple[str, str]]:
    """
    Decodes a control symbol into ``(prefix, label)``.

    Returns None for ordinary parameter symbols.
    """
    match = _CONTROL_NAME_RE.match(symbol.name)
    if not match or match.group("prefix") not in (NODE_VOLTAGE_PREFIX, BRANCH_CURRENT_PREFIX):
        return None
    return match.group("prefix"), match.group("label")


def is_node_voltage(symbol: sympy.Basic) -> bool:
    decoded = split_control_symbol(symbol) if isinstance(symbol, sympy.Symbol) else None
    return decoded is not None and decoded[0] == NODE_VOLTAGE_PREFIX


ALLOWED_SYMPY_FUNCTIONS = {
    sympy.Abs, sympy.sqrt, sympy.exp, sympy.log,
    sympy.sin, sympy.cos, sympy.tan,
}

# Only these names keep a SymPy meaning inside element values. Every other bare
# name (E, beta, S, N, ...) is parsed as a user parameter symbol.
_PARSE_GLOBALS = {
    "Symbol": sympy.Symbol, "Integer": sympy.Integer, "Float": sympy.Float, "Rational": sympy.Rational,
    "Add": sympy.Add, "Mul": sympy.Mul, "Pow": sympy.Pow, "Function": sympy.Function,
    "pi": sympy.pi, "oo": sympy.oo, "nan": sympy.nan,
    **{func.__name__: func for func in ALLOWED_SYMPY_FUNCTIONS}
}


def parse_control_expression(text: str) -> sympy.Expr:
    """
    Parses a dependent-source expression such as ``"4*I(Rx)"`` or ``"0.5*V(2)"``.

    ``V`` and ``I`` are bound to the control-symbol factories instead of SymPy's
    imaginary unit, so ``I(Rx)`` reads as "current through Rx". The namespace is
    restricted to `_PARSE_GLOBALS`; ``E`` is a parameter here, not Euler's number.

    Raises:
        SyntaxError / TokenError / sympy.SympifyError / TypeError: For unparseable input; the
        caller turns these into a construction error.
    """
    local_dict = {
        NODE_VOLTAGE_PREFIX: node_voltage,
        BRANCH_CURRENT_PREFIX: branch_current,
    }
    # eval() adds __builtins__ to the globals it is given, so parse against a copy.
    return sympy.parse_expr(text, local_dict=local_dict, global_dict=dict(_PARSE_GLOBALS))


def is_exact(expr: sympy.Basic) -> bool:
    """True if `expr` contains no floating-point numbers."""
    return not expr.atoms(sympy.Float)


def to_float(expr: sympy.Basic) -> float:
    """
    Converts a fully numeric expression to a Python float.

    Raises:
        TypeError: If `expr` still contains free symbols.
    """
    if expr.free_symbols:
        raise TypeError(f"Expression '{expr}' is symbolic and has no float value.")
    return float(expr)
