# src/nodal_core/results/formatter.py
"""
Turns solved unknowns into a complete `Solution`.

Node voltages come from three places: the reference (0 V), the nodes fixed by
voltage sources to the reference, and the solved unknowns. Branch currents are
evaluated from those voltages. Voltage-source currents are not nodal variables;
they are recovered afterwards from KCL by repeatedly peeling a node that has a
single unresolved voltage source attached. Sources left over once no such node
remains sit on a loop of voltage sources and are reported as indeterminate.
"""
import logging
from types import MappingProxyType
from typing import Any, Dict, Optional

import sympy

from ..analysis.equations import EquationBuilder
from ..analysis.results import EquationSet
from ..circuit.elements import Branch, NodeId
from ..circuit.graph import CircuitGraph
from ..expressions import node_voltage
from ..solver.config import SolverConfig, SolverMode
from ..solver.linear import SolvedSystem
from .solution import Solution

logger = logging.getLogger(__name__)


class ResultFormatter:
    """
    Assembles the `Solution` of one analysis run. Reads the circuit, never modifies it.
    """
    def __init__(
        self,
        circuit: CircuitGraph,
        equation_set: EquationSet,
        solved: SolvedSystem,
        config: Optional[SolverConfig] = None,
    ):
        self.circuit = circuit
        self.equation_set = equation_set
        self.solved = solved
        self.config = config if config is not None else SolverConfig()
        self._builder = EquationBuilder(circuit, equation_set.supernode_results)

    def format(self) -> Solution:
        voltages = self._node_voltages()
        subs = {node_voltage(n): v for n, v in voltages.items()}

        currents: Dict[Any, sympy.Expr] = {}
        for branch in self.circuit.branches:
            if branch.kind.is_voltage_source:
                continue
            currents[branch.branch_id] = self._finish(self._builder.branch_current(branch).xreplace(subs))

        unresolved = self._peel_voltage_source_currents(currents)
        if unresolved:
            logger.warning(
                f"[{self.circuit.name}] Current through voltage source(s) {sorted(unresolved, key=str)} is indeterminate."
            )

        # Report currents in circuit order.
        ordered = {b.branch_id: currents[b.branch_id] for b in self.circuit.branches if b.branch_id in currents}
        solution = Solution(
            circuit_name=self.circuit.name,
            reference_node=self.circuit.reference_node.node_id,
            voltages=MappingProxyType(voltages),
            currents=MappingProxyType(ordered),
            indeterminate_currents=frozenset(unresolved),
            equations=self.equation_set.equations,
            mode=self.solved.mode,
        )
        logger.debug(f"\n{solution.summary(decimals=None)}")
        return solution

    def _finish(self, value: sympy.Expr) -> sympy.Expr:
        if self.solved.mode is SolverMode.NUMERIC:
            return sympy.Float(value) if value.is_number else value
        return sympy.simplify(value) if self.config.simplify else value

    def _node_voltages(self) -> Dict[NodeId, sympy.Expr]:
        fixed = self.equation_set.fixed_voltages
        voltages: Dict[NodeId, sympy.Expr] = {}
        for node in self.circuit.nodes:
            if node.is_reference:
                voltages[node.node_id] = sympy.Integer(0)
            elif node.node_id in fixed:
                # A source to the reference sets the voltage exactly.
                value = fixed[node.node_id]
                voltages[node.node_id] = sympy.simplify(value) if value.free_symbols and self.config.simplify else value
            else:
                voltages[node.node_id] = self.solved.values[node_voltage(node.node_id)]
        return voltages

    def _peel_voltage_source_currents(self, currents: Dict[Any, sympy.Expr]) -> set:
        """
        Fills in voltage-source currents from KCL. Returns the ids that could not be resolved.
        """
        unresolved = {b.branch_id for b in self.circuit.branches if b.kind.is_voltage_source}
        progress = True
        while progress and unresolved:
            progress = False
            for node in self.circuit.nodes:
                attached = [b for b in self.circuit.branches_at(node.node_id) if b.branch_id in unresolved]
                if len(attached) != 1:
                    continue
                source = attached[0]
                leaving = sympy.Add(*(
                    self._leaving(b, node.node_id, currents[b.branch_id])
                    for b in self.circuit.branches_at(node.node_id) if b is not source
                ))
                # KCL: leaving + (current leaving through the source) = 0
                current = -leaving if source.node_from == node.node_id else leaving
                currents[source.branch_id] = self._finish(current)
                unresolved.discard(source.branch_id)
                progress = True
                logger.debug(f"[{self.circuit.name}] I({source.branch_id}) = {currents[source.branch_id]} from KCL at node {node.node_id}.")
        return unresolved

    @staticmethod
    def _leaving(branch: Branch, node_id: NodeId, current: sympy.Expr) -> sympy.Expr:
        return current if branch.node_from == node_id else -current
