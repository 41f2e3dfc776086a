# src/nodal_core/analysis/equations.py

"""
Formulates the nodal equations of a circuit.

The builder turns a circuit graph and its supernode analysis into a square
`EquationSet`:

- one KCL equation per ordinary node (net current leaving the node is zero),
- one combined KCL equation per supernode (net current leaving its boundary is zero),
- one KVL equation per spanning-tree voltage source of each supernode,
- one KVL equation per reference-tied node whose voltage depends on a controlled value.

Control symbols are resolved before the system is handed on: every ``I(b)`` is
replaced by branch `b`'s Ohm's-law or source expression, and the voltages of fixed
nodes and of the reference are substituted. What remains are node-voltage unknowns
and user parameters.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import sympy

from ..circuit.elements import Branch, NodeId
from ..circuit.exceptions import MalformedCircuitError
from ..circuit.graph import CircuitGraph
from ..constants import BRANCH_CURRENT_PREFIX
from ..expressions import is_node_voltage, node_voltage, split_control_symbol
from .exceptions import OverdeterminedSystemError, UnderdeterminedSystemError
from .results import (
    Equation, EquationKind, EquationSet, Supernode, SupernodeAnalysisResults, VoltageConstraint
)
from .supernodes import SupernodeDetector

logger = logging.getLogger(__name__)


def check_balance(
    equations: Sequence[Equation],
    unknowns: Sequence[sympy.Symbol],
    circuit_name: Optional[str] = None
) -> None:
    """
    Enforces that the system is square.

    Raises:
        UnderdeterminedSystemError: Fewer equations than unknowns.
        OverdeterminedSystemError: More equations than unknowns.
    """
    n_eq, n_unk = len(equations), len(unknowns)
    if n_eq < n_unk:
        raise UnderdeterminedSystemError(
            details="The formulated system has fewer equations than unknowns.",
            equation_count=n_eq, unknown_count=n_unk, circuit_name=circuit_name
        )
    if n_eq > n_unk:
        raise OverdeterminedSystemError(
            details="The formulated system has more equations than unknowns.",
            equation_count=n_eq, unknown_count=n_unk, circuit_name=circuit_name
        )


class EquationBuilder:
    """
    Walks a read-only circuit graph and emits its KCL/KVL equations.
    """
    def __init__(self, circuit: CircuitGraph, supernode_results: Optional[SupernodeAnalysisResults] = None):
        if not isinstance(circuit, CircuitGraph):
            raise TypeError("EquationBuilder requires a CircuitGraph.")
        self.circuit: CircuitGraph = circuit
        self.supernode_results: Optional[SupernodeAnalysisResults] = supernode_results
        self._branches_by_label: Dict[str, Branch] = {str(b.branch_id): b for b in circuit.branches}

    def build(self) -> EquationSet:
        """
        Formulates the full equation set.

        Raises:
            InconsistentConstraintError: From supernode detection.
            MalformedCircuitError: For unresolvable or non-linear control expressions.
            UnderdeterminedSystemError / OverdeterminedSystemError: If the count of
                equations does not match the count of unknowns.
        """
        sn = self.supernode_results
        if sn is None:
            sn = SupernodeDetector(self.circuit).analyze()

        reference_id = self.circuit.reference_node.node_id
        ground = {node_voltage(reference_id): sympy.Integer(0)}

        fixed, pending = self._resolve_fixed_nodes(sn, ground)
        known = dict(ground)
        known.update({node_voltage(n): v for n, v in fixed.items()})

        unknown_nodes = tuple(n.node_id for n in self.circuit.non_reference_nodes if n.node_id not in fixed)
        unknowns = tuple(node_voltage(n) for n in unknown_nodes)

        equations: List[Equation] = []
        emitted_supernodes: Set[str] = set()
        for node in self.circuit.non_reference_nodes:
            node_id = node.node_id
            if node_id in fixed or node_id in pending:
                continue
            supernode = sn.supernode_for(node_id)
            if supernode is None:
                equations.append(self._kcl_equation(
                    (node_id,), f"KCL at node {node_id}", known, origin=(node_id,)
                ))
            elif supernode.name not in emitted_supernodes:
                emitted_supernodes.add(supernode.name)
                equations.extend(self._supernode_equations(supernode, known))

        for node_id, potential in pending.items():
            equations.append(Equation(
                kind=EquationKind.KVL,
                label=f"KVL from reference to node {node_id}",
                lhs=node_voltage(node_id),
                rhs=potential.xreplace(known),
                origin=(node_id,),
            ))

        for eq in equations:
            logger.debug(f"[{self.circuit.name}] {eq}")

        check_balance(equations, unknowns, self.circuit.name)
        self._check_closed(equations, unknowns)
        self._check_linear(equations, unknowns)

        logger.info(
            f"Formulated {len(equations)} equation(s) in {len(unknowns)} unknown(s) for '{self.circuit.name}' "
            f"({len(fixed)} node voltage(s) fixed by sources)."
        )
        return EquationSet(
            equations=tuple(equations),
            unknowns=unknowns,
            unknown_nodes=unknown_nodes,
            fixed_voltages=fixed,
            supernode_results=sn,
        )

    # --- Control-symbol substitution ---

    def branch_current(self, branch: Branch) -> sympy.Expr:
        """
        The current through `branch` (from `node_from` to `node_to`) in terms of node
        voltages and parameters, with every ``I(...)`` control symbol resolved.
        """
        try:
            current = branch.current_expression(node_voltage(branch.node_from), node_voltage(branch.node_to))
        except TypeError as e:
            raise MalformedCircuitError(
                details=str(e), circuit_name=self.circuit.name, branch_id=str(branch.branch_id)
            ) from e
        return self.resolve_controls(current, (branch.branch_id,))

    def resolve_controls(self, expr: sympy.Expr, _stack: Tuple = ()) -> sympy.Expr:
        """Replaces every ``I(b)`` symbol in `expr` by branch `b`'s current expression."""
        replacements = {}
        for symbol in expr.free_symbols:
            decoded = split_control_symbol(symbol)
            if decoded is None or decoded[0] != BRANCH_CURRENT_PREFIX:
                continue
            branch = self._branches_by_label.get(decoded[1])
            if branch is None:
                raise MalformedCircuitError(
                    details=f"Expression '{expr}' refers to the current through unknown branch '{decoded[1]}'.",
                    circuit_name=self.circuit.name,
                )
            if branch.branch_id in _stack:
                chain = " -> ".join(str(b) for b in _stack + (branch.branch_id,))
                raise MalformedCircuitError(
                    details=f"Dependent sources control each other in a cycle ({chain}).",
                    circuit_name=self.circuit.name,
                    branch_id=str(branch.branch_id),
                )
            try:
                current = branch.current_expression(node_voltage(branch.node_from), node_voltage(branch.node_to))
            except TypeError as e:
                raise MalformedCircuitError(
                    details=str(e), circuit_name=self.circuit.name, branch_id=str(branch.branch_id)
                ) from e
            replacements[symbol] = self.resolve_controls(current, _stack + (branch.branch_id,))
        return expr.xreplace(replacements) if replacements else expr

    # --- Stateless Helper Methods ---

    def _resolve_fixed_nodes(
        self, sn: SupernodeAnalysisResults, ground: Dict[sympy.Symbol, sympy.Expr]
    ) -> Tuple[Dict[NodeId, sympy.Expr], Dict[NodeId, sympy.Expr]]:
        """
        Splits the reference-tied nodes into those whose voltage is known outright and
        those whose path to the reference crosses a source controlled by an unknown.
        """
        pending = {
            node_id: self.resolve_controls(potential).xreplace(ground)
            for node_id, potential in sn.fixed_potentials.items()
        }
        fixed: Dict[NodeId, sympy.Expr] = {}
        progress = True
        while progress and pending:
            progress = False
            for node_id in list(pending):
                expr = pending[node_id].xreplace({node_voltage(n): v for n, v in fixed.items()})
                if any(is_node_voltage(s) for s in expr.free_symbols):
                    pending[node_id] = expr
                    continue
                fixed[node_id] = expr
                del pending[node_id]
                progress = True
                logger.debug(f"[{self.circuit.name}] Node {node_id} fixed at {expr} V.")
        return fixed, pending

    def _kcl_equation(
        self,
        members: Iterable[NodeId],
        label: str,
        known: Dict[sympy.Symbol, sympy.Expr],
        origin: Tuple,
    ) -> Equation:
        """Sum of currents leaving the boundary of `members` equals zero."""
        member_set = set(members)
        terms: List[sympy.Expr] = []
        for node_id in members:
            for branch in self.circuit.branches_at(node_id):
                if branch.other_node(node_id) in member_set:
                    continue
                current = self.branch_current(branch)
                terms.append(current if branch.node_from == node_id else -current)
        return Equation(
            kind=EquationKind.KCL,
            label=label,
            lhs=sympy.Add(*terms).xreplace(known),
            rhs=sympy.Integer(0),
            origin=origin,
        )

    def _kvl_equation(self, constraint: VoltageConstraint, known: Dict[sympy.Symbol, sympy.Expr]) -> Equation:
        value = self.resolve_controls(constraint.value)
        return Equation(
            kind=EquationKind.KVL,
            label=f"KVL across {constraint.branch_id}",
            lhs=(node_voltage(constraint.node_from) - node_voltage(constraint.node_to)).xreplace(known),
            rhs=value.xreplace(known),
            origin=(constraint.branch_id,),
        )

    def _supernode_equations(self, supernode: Supernode, known: Dict[sympy.Symbol, sympy.Expr]) -> List[Equation]:
        equations = [self._kcl_equation(
            supernode.members, f"KCL at supernode {supernode.name}", known, origin=supernode.members
        )]
        equations.extend(self._kvl_equation(c, known) for c in supernode.constraints)
        return equations

    def _check_closed(self, equations: Sequence[Equation], unknowns: Sequence[sympy.Symbol]):
        unknown_set = set(unknowns)
        for eq in equations:
            stray = [s for s in eq.residual.free_symbols if is_node_voltage(s) and s not in unknown_set]
            if stray:
                raise MalformedCircuitError(
                    details=f"Equation '{eq}' refers to voltage(s) {sorted(s.name for s in stray)} of nodes that are not in the circuit.",
                    circuit_name=self.circuit.name,
                )

    def _check_linear(self, equations: Sequence[Equation], unknowns: Sequence[sympy.Symbol]):
        unknown_set = set(unknowns)
        for eq in equations:
            residual = eq.residual
            for unknown in unknowns:
                if sympy.diff(residual, unknown).free_symbols & unknown_set:
                    raise MalformedCircuitError(
                        details=f"Equation '{eq}' is not linear in the node voltages; only linear controlled sources are supported.",
                        circuit_name=self.circuit.name,
                    )


def build_equations(circuit: CircuitGraph) -> EquationSet:
    """Convenience wrapper around `EquationBuilder(circuit).build()`."""
    return EquationBuilder(circuit).build()
