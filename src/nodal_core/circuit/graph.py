# src/nodal_core/circuit/graph.py
"""
Defines the `CircuitGraph`, the circuit model every analysis stage reads from.

A graph is populated with `add_node` / `add_branch`, checked with `validate()` and
then frozen. Once frozen it is a read-only snapshot: the supernode detector, the
equation builder and the result formatter only ever query it, so one graph can be
analyzed any number of times with identical results.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import networkx as nx

from ..validation.issues import ValidationIssue, ValidationIssueLevel
from ..validation.topology_validator import TopologyValidator
from .elements import Branch, Node, NodeId, branch_from_definition
from .exceptions import MalformedCircuitError

logger = logging.getLogger(__name__)


class CircuitGraph:
    """
    Nodes and two-terminal branches of a DC resistive network.
    """

    def __init__(self, name: str = "circuit"):
        self.name: str = name
        self._nodes: Dict[NodeId, Node] = {}
        self._branches: Dict[Any, Branch] = {}
        self._frozen: bool = False

    def __repr__(self) -> str:
        return (
            f"CircuitGraph(name={self.name!r}, nodes={len(self._nodes)}, "
            f"branches={len(self._branches)}, frozen={self._frozen})"
        )

    # --- Construction ---

    def _ensure_mutable(self):
        if self._frozen:
            raise MalformedCircuitError(
                details=f"Circuit '{self.name}' is frozen and can no longer be modified.",
                circuit_name=self.name,
            )

    def add_node(self, node_id: NodeId, is_reference: bool = False) -> Node:
        """Adds a node. Node ids must be unique within the circuit."""
        self._ensure_mutable()
        if node_id in self._nodes:
            raise MalformedCircuitError(
                details=f"Node '{node_id}' is already defined in circuit '{self.name}'.",
                circuit_name=self.name,
                node_id=str(node_id),
            )
        node = Node(node_id=node_id, is_reference=is_reference)
        self._nodes[node_id] = node
        logger.debug(f"[{self.name}] Added node {node_id!r}{' (reference)' if is_reference else ''}.")
        return node

    def add_branch(self, branch: Union[Branch, Mapping[str, Any]]) -> Branch:
        """
        Adds a branch, given either as a `Branch` instance or as a mapping definition
        (see `branch_from_definition`). Terminal nodes are checked by `validate()`,
        so branches may be added before their nodes.
        """
        self._ensure_mutable()
        if not isinstance(branch, Branch):
            if not isinstance(branch, Mapping):
                raise MalformedCircuitError(
                    details=f"Expected a Branch or a mapping definition, got {type(branch).__name__}.",
                    circuit_name=self.name,
                )
            branch = branch_from_definition(branch)
        if branch.branch_id in self._branches:
            raise MalformedCircuitError(
                details=f"Branch '{branch.branch_id}' is already defined in circuit '{self.name}'.",
                circuit_name=self.name,
                branch_id=str(branch.branch_id),
            )
        self._branches[branch.branch_id] = branch
        logger.debug(f"[{self.name}] Added {type(branch).__name__} {branch.branch_id!r} "
                     f"({branch.node_from!r} -> {branch.node_to!r}, value={branch.value}).")
        return branch

    def validate(self) -> List[ValidationIssue]:
        """
        Runs the structural checks.

        Returns:
            Every issue found (warnings and info included) when there is no error.

        Raises:
            MalformedCircuitError: If any ERROR-level issue was found. The error carries
                                   all of them.
        """
        issues = TopologyValidator(self).validate()
        if any(issue.level == ValidationIssueLevel.ERROR for issue in issues):
            error = MalformedCircuitError.from_issues(self.name, issues)
            logger.error(f"Circuit '{self.name}' is malformed: {error.codes}")
            raise error
        for issue in issues:
            if issue.level == ValidationIssueLevel.WARNING:
                logger.warning(str(issue))
        return issues

    def freeze(self) -> "CircuitGraph":
        """Marks the graph read-only. Returns self for chaining."""
        self._frozen = True
        return self

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    # --- Read accessors ---

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return tuple(self._nodes.values())

    @property
    def branches(self) -> Tuple[Branch, ...]:
        return tuple(self._branches.values())

    def has_node(self, node_id: NodeId) -> bool:
        return node_id in self._nodes

    def node(self, node_id: NodeId) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise KeyError(f"Node '{node_id}' is not part of circuit '{self.name}'.") from None

    def branch(self, branch_id: Any) -> Branch:
        try:
            return self._branches[branch_id]
        except KeyError:
            raise KeyError(f"Branch '{branch_id}' is not part of circuit '{self.name}'.") from None

    def find_reference_node(self) -> Optional[Node]:
        """The first reference node, or None. `validate()` guarantees there is exactly one."""
        return next((n for n in self._nodes.values() if n.is_reference), None)

    @property
    def reference_node(self) -> Node:
        reference = self.find_reference_node()
        if reference is None:
            raise MalformedCircuitError(
                details=f"Circuit '{self.name}' has no reference node.",
                circuit_name=self.name,
            )
        return reference

    @property
    def non_reference_nodes(self) -> Tuple[Node, ...]:
        return tuple(n for n in self._nodes.values() if not n.is_reference)

    def branches_at(self, node_id: NodeId) -> List[Branch]:
        """All branches with `node_id` as one of their terminals, in insertion order."""
        return [b for b in self._branches.values() if node_id in b.nodes]

    def to_networkx(self) -> nx.MultiGraph:
        """
        The connectivity as a `networkx.MultiGraph`; each edge is keyed by branch id
        and carries the branch object under the 'branch' attribute.
        """
        graph = nx.MultiGraph(name=self.name)
        for node in self._nodes.values():
            graph.add_node(node.node_id, is_reference=node.is_reference)
        for branch in self._branches.values():
            graph.add_edge(branch.node_from, branch.node_to, key=branch.branch_id, branch=branch)
        return graph


def build_circuit(
    nodes: Iterable[NodeId],
    branches: Iterable[Union[Branch, Mapping[str, Any]]],
    reference_node_id: NodeId,
    name: str = "circuit",
) -> CircuitGraph:
    """
    Builds, validates and freezes a circuit graph in one call.

    Args:
        nodes: Node ids. The reference node is added automatically if it is not listed.
        branches: `Branch` instances or mapping definitions.
        reference_node_id: The id of the node fixed at 0 V.
        name: A name used in log messages and diagnostics.

    Returns:
        A frozen, validated `CircuitGraph`.

    Raises:
        MalformedCircuitError: If the circuit is structurally invalid.
    """
    logger.info(f"--- Building circuit '{name}' ---")
    circuit = CircuitGraph(name=name)
    node_ids = list(nodes)
    if reference_node_id not in node_ids:
        node_ids.insert(0, reference_node_id)
    for node_id in node_ids:
        circuit.add_node(node_id, is_reference=(node_id == reference_node_id))
    for branch in branches:
        circuit.add_branch(branch)
    circuit.validate()
    circuit.freeze()
    logger.info(f"--- Circuit '{name}' built: {len(circuit.nodes)} nodes, {len(circuit.branches)} branches. ---")
    return circuit
