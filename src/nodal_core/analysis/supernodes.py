# src/nodal_core/analysis/supernodes.py

"""
Groups the nodes of a circuit by the voltage sources that tie them together.
"""

import logging
from collections import deque
from typing import Dict, List, Set, Tuple

import networkx as nx
import sympy

from ..circuit.elements import Branch, NodeId
from ..circuit.graph import CircuitGraph
from ..constants import LOOP_RESIDUAL_RTOL
from ..expressions import is_exact, split_control_symbol
from .exceptions import InconsistentConstraintError
from .results import Supernode, SupernodeAnalysisResults, VoltageConstraint

logger = logging.getLogger(__name__)


class SupernodeDetector:
    """
    Finds the connected components of the voltage-source subgraph.

    - The component that contains the reference node fixes the voltage of each of
      its members directly (a source to the reference sets the node voltage).
    - Every other component with two or more nodes is a supernode.
    - Remaining nodes are ordinary nodes with their own KCL equation.

    Each component is walked breadth-first from its root (the reference, or the
    supernode's first node in circuit order). Sources on that spanning tree become
    KVL constraints; any other source closes a loop and is checked for consistency.
    The detector does not modify the circuit.
    """
    def __init__(self, circuit: CircuitGraph):
        if not isinstance(circuit, CircuitGraph):
            raise TypeError("SupernodeDetector requires a CircuitGraph.")
        self.circuit: CircuitGraph = circuit
        self._node_order: Dict[NodeId, int] = {n.node_id: i for i, n in enumerate(circuit.nodes)}
        logger.debug(f"SupernodeDetector initialized for circuit '{circuit.name}'.")

    def analyze(self) -> SupernodeAnalysisResults:
        """
        Runs the detection.

        Returns:
            The immutable `SupernodeAnalysisResults` for the circuit.

        Raises:
            InconsistentConstraintError: If a loop of voltage sources has a non-zero
                                         (or undecidable) voltage sum.
        """
        reference_id = self.circuit.reference_node.node_id
        source_graph = self._build_source_graph()

        supernodes: List[Supernode] = []
        supernode_of: Dict[NodeId, str] = {}
        fixed_potentials: Dict[NodeId, sympy.Expr] = {}
        reference_constraints: Tuple[VoltageConstraint, ...] = ()
        redundant: Set[str] = set()
        ordinary: List[NodeId] = []

        for component in self._ordered_components(source_graph):
            if reference_id in component:
                potentials, tree, loops = self._walk_component(source_graph, reference_id)
                redundant.update(self._check_loops(potentials, loops))
                reference_constraints = tuple(tree)
                for node_id in self._sorted(component):
                    if node_id != reference_id:
                        fixed_potentials[node_id] = potentials[node_id]
                continue

            if len(component) == 1:
                ordinary.extend(component)
                continue

            members = self._sorted(component)
            representative = members[0]
            potentials, tree, loops = self._walk_component(source_graph, representative)
            redundant.update(self._check_loops(potentials, loops))
            name = "{" + ", ".join(str(m) for m in members) + "}"
            supernodes.append(Supernode(
                name=name,
                representative=representative,
                members=tuple(members),
                constraints=tuple(tree),
            ))
            for member in members:
                supernode_of[member] = name
            logger.debug(f"[{self.circuit.name}] Supernode {name} with {len(tree)} KVL constraint(s).")

        results = SupernodeAnalysisResults(
            supernodes=tuple(supernodes),
            supernode_of=supernode_of,
            fixed_potentials=fixed_potentials,
            reference_constraints=reference_constraints,
            redundant_sources=frozenset(redundant),
            ordinary_nodes=tuple(self._sorted(ordinary)),
        )
        logger.info(
            f"Supernode detection for '{self.circuit.name}': {len(supernodes)} supernode(s), "
            f"{len(fixed_potentials)} fixed node(s), {len(ordinary)} ordinary node(s)."
        )
        return results

    # --- Stateless Helper Methods ---

    def _sorted(self, node_ids) -> List[NodeId]:
        return sorted(node_ids, key=self._node_order.__getitem__)

    def _build_source_graph(self) -> nx.MultiGraph:
        """Constructs a graph whose edges are the voltage-source branches."""
        graph = nx.MultiGraph()
        graph.add_nodes_from(n.node_id for n in self.circuit.nodes)
        for branch in self.circuit.branches:
            if branch.kind.is_voltage_source:
                graph.add_edge(branch.node_from, branch.node_to, key=branch.branch_id, branch=branch)
        return graph

    def _ordered_components(self, source_graph: nx.MultiGraph) -> List[Set[NodeId]]:
        components = list(nx.connected_components(source_graph))
        return sorted(components, key=lambda c: min(self._node_order[n] for n in c))

    def _walk_component(
        self, source_graph: nx.MultiGraph, root: NodeId
    ) -> Tuple[Dict[NodeId, sympy.Expr], List[VoltageConstraint], List[Branch]]:
        """
        Breadth-first walk from `root` over voltage sources, in circuit insertion order.

        Returns:
            (potentials relative to root, spanning-tree constraints, loop-closing branches)
        """
        potentials: Dict[NodeId, sympy.Expr] = {root: sympy.Integer(0)}
        tree: List[VoltageConstraint] = []
        tree_ids: Set[str] = set()
        queue = deque([root])

        while queue:
            node_id = queue.popleft()
            for branch in self._sources_at(source_graph, node_id):
                other = branch.other_node(node_id)
                if other in potentials:
                    continue
                # V(from) - V(to) = value
                if branch.node_from == other:
                    potentials[other] = potentials[node_id] + branch.value
                else:
                    potentials[other] = potentials[node_id] - branch.value
                tree.append(VoltageConstraint(
                    branch_id=branch.branch_id,
                    node_from=branch.node_from,
                    node_to=branch.node_to,
                    value=branch.value,
                ))
                tree_ids.add(branch.branch_id)
                queue.append(other)

        component_branches = {
            key: data['branch']
            for u, v, key, data in source_graph.edges(potentials.keys(), keys=True, data=True)
        }
        loops = [
            b for b in self.circuit.branches
            if b.branch_id in component_branches and b.branch_id not in tree_ids
        ]
        return potentials, tree, loops

    def _sources_at(self, source_graph: nx.MultiGraph, node_id: NodeId) -> List[Branch]:
        keys = {key for _, _, key in source_graph.edges(node_id, keys=True)}
        return [b for b in self.circuit.branches_at(node_id) if b.branch_id in keys]

    def _check_loops(self, potentials: Dict[NodeId, sympy.Expr], loops: List[Branch]) -> Set[str]:
        """
        Verifies every loop-closing source against the potentials of the tree.

        Returns:
            The ids of the consistent, redundant sources.
        """
        redundant: Set[str] = set()
        for branch in loops:
            residual = sympy.simplify(
                potentials[branch.node_from] - potentials[branch.node_to] - branch.value
            )
            if residual == 0 or self._is_float_noise(residual, potentials, branch):
                logger.debug(f"[{self.circuit.name}] Voltage source '{branch.branch_id}' closes a consistent loop.")
                redundant.add(branch.branch_id)
                continue

            controlled = any(split_control_symbol(s) is not None for s in residual.free_symbols)
            if controlled:
                details = (
                    f"Voltage source '{branch.branch_id}' closes a loop of voltage sources whose sum "
                    f"depends on controlled quantities ({residual} = 0 would be required). "
                    f"Loops containing dependent sources cannot be verified."
                )
            else:
                details = (
                    f"Voltage source '{branch.branch_id}' closes a loop of voltage sources whose sum is "
                    f"{residual} instead of 0."
                )
            logger.error(details)
            raise InconsistentConstraintError(
                details=details,
                circuit_name=self.circuit.name,
                branch_id=str(branch.branch_id),
            )
        return redundant

    @staticmethod
    def _is_float_noise(residual: sympy.Expr, potentials: Dict[NodeId, sympy.Expr], branch: Branch) -> bool:
        """
        True if a numeric loop sum that involves floats is within rounding of zero.

        Exact and symbolic sums never qualify; they must simplify to exactly 0.
        """
        if not residual.is_number or is_exact(residual):
            return False
        terms = (potentials[branch.node_from], potentials[branch.node_to], branch.value)
        if any(not term.is_number for term in terms):
            return False
        scale = max([1.0] + [abs(float(term)) for term in terms])
        return abs(float(residual)) <= LOOP_RESIDUAL_RTOL * scale


def detect_supernodes(circuit: CircuitGraph) -> SupernodeAnalysisResults:
    """Convenience wrapper around `SupernodeDetector(circuit).analyze()`."""
    return SupernodeDetector(circuit).analyze()
