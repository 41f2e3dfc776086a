# src/nodal_core/results/solution.py
"""
Defines the `Solution`, the user-facing result of one nodal analysis.

A solution is complete or absent: the analysis either produces every node voltage
and every determinable branch current, or it raises. Values are SymPy expressions:
exact rationals for exact inputs, floats for float inputs, and closed-form
expressions when the circuit has symbolic parameters.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

import sympy

from ..analysis.results import Equation
from ..circuit.elements import NodeId
from ..expressions import to_float
from ..solver.config import SolverMode
from .exceptions import IndeterminateCurrentError


@dataclass(frozen=True)
class Solution:
    """
    The solved node voltages and branch currents of a circuit.

    Attributes:
        circuit_name: Name of the analyzed circuit.
        reference_node: Id of the node held at 0 V.
        voltages: node id -> voltage relative to the reference, for every node.
        currents: branch id -> current from the branch's `node_from` to its `node_to`,
                  for every branch whose current is determined.
        indeterminate_currents: Ids of voltage sources whose current is not determined.
        equations: The equations the values were solved from.
        mode: The solver path that produced the values (SYMBOLIC or NUMERIC).
    """
    circuit_name: str
    reference_node: NodeId
    voltages: Mapping[NodeId, sympy.Expr]
    currents: Mapping[Any, sympy.Expr]
    indeterminate_currents: FrozenSet[Any]
    equations: Tuple[Equation, ...]
    mode: SolverMode

    def voltage_at(self, node_id: NodeId) -> sympy.Expr:
        try:
            return self.voltages[node_id]
        except KeyError:
            raise KeyError(f"Node '{node_id}' is not part of circuit '{self.circuit_name}'.") from None

    def voltage_between(self, node_a: NodeId, node_b: NodeId) -> sympy.Expr:
        """``V(node_a) - V(node_b)``."""
        difference = self.voltage_at(node_a) - self.voltage_at(node_b)
        return sympy.simplify(difference) if difference.free_symbols else difference

    def current_through(self, branch_id: Any) -> sympy.Expr:
        """
        The current through `branch_id`, from its `node_from` to its `node_to`.

        Raises:
            IndeterminateCurrentError: For a voltage source whose current the node
                                       voltages do not determine.
            KeyError: For an unknown branch id.
        """
        if branch_id in self.indeterminate_currents:
            raise IndeterminateCurrentError(
                details=f"The current through voltage source '{branch_id}' is not determined by the circuit.",
                circuit_name=self.circuit_name,
                branch_id=str(branch_id),
            )
        try:
            return self.currents[branch_id]
        except KeyError:
            raise KeyError(f"Branch '{branch_id}' is not part of circuit '{self.circuit_name}'.") from None

    @property
    def is_symbolic(self) -> bool:
        """True if any value still contains a parameter symbol."""
        return any(v.free_symbols for v in self.voltages.values()) or \
            any(i.free_symbols for i in self.currents.values())

    def substitute(self, parameters: Mapping[Any, Any]) -> "Solution":
        """
        Returns a new solution with parameter values substituted, e.g.
        ``solution.substitute({"R": 4})``. String keys are turned into symbols.
        """
        subs = {sympy.Symbol(k) if isinstance(k, str) else k: sympy.sympify(v) for k, v in parameters.items()}
        return Solution(
            circuit_name=self.circuit_name,
            reference_node=self.reference_node,
            voltages=MappingProxyType({n: sympy.simplify(v.subs(subs)) for n, v in self.voltages.items()}),
            currents=MappingProxyType({b: sympy.simplify(i.subs(subs)) for b, i in self.currents.items()}),
            indeterminate_currents=self.indeterminate_currents,
            equations=self.equations,
            mode=self.mode,
        )

    def to_floats(self) -> Dict[str, Dict[Any, float]]:
        """
        The voltages and currents as plain floats.

        Raises:
            TypeError: If the solution is symbolic. Use `substitute` first.
        """
        return {
            "voltages": {n: to_float(v) for n, v in self.voltages.items()},
            "currents": {b: to_float(i) for b, i in self.currents.items()},
        }

    def summary(self, decimals: Optional[int] = 3) -> str:
        """
        A printable listing of the node voltages and branch currents. Numeric values
        are rounded to `decimals` places for display only; pass None to show them as is.
        """
        def show(value: sympy.Expr) -> str:
            if decimals is None or value.free_symbols:
                return str(value)
            return f"{to_float(value):.{decimals}f}"

        lines = [f"Solution for '{self.circuit_name}' ({self.mode} path)", "Node voltages:"]
        for node_id, v in self.voltages.items():
            suffix = " (reference)" if node_id == self.reference_node else ""
            lines.append(f"  V({node_id}) = {show(v)} V{suffix}")
        lines.append("Branch currents:")
        for branch_id, i in self.currents.items():
            lines.append(f"  I({branch_id}) = {show(i)} A")
        for branch_id in sorted(self.indeterminate_currents, key=str):
            lines.append(f"  I({branch_id}) = indeterminate")
        return "\n".join(lines)
