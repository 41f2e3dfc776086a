# src/nodal_core/validation/topology_validator.py
import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Dict, List

import networkx as nx

from ..expressions import split_control_symbol
from ..constants import BRANCH_CURRENT_PREFIX, NODE_VOLTAGE_PREFIX
from .issues import ValidationIssue, ValidationIssueLevel
from .issue_codes import TopologyIssueCode

if TYPE_CHECKING:
    from ..circuit.graph import CircuitGraph


logger = logging.getLogger(__name__)


class TopologyValidator:
    """
    Performs the structural checks that must pass before nodal analysis can run.

    The validator never raises on its own. It collects every finding as a
    `ValidationIssue` (errors, warnings and info) and leaves the decision to the
    caller: `CircuitGraph.validate()` raises `MalformedCircuitError` when any
    ERROR-level issue is present.
    """

    def __init__(self, circuit: "CircuitGraph"):
        self.circuit = circuit
        self.issues: List[ValidationIssue] = []

    def validate(self) -> List[ValidationIssue]:
        """
        Runs all checks and returns the complete list of issues found.
        """
        self.issues = []
        logger.debug(f"Starting structural validation for '{self.circuit.name}'...")

        self._check_reference_node()
        self._check_label_clashes()
        self._check_branch_terminals()
        self._check_connectivity()
        self._check_dependent_source_controls()
        self._check_dangling_nodes()
        self._report_fixed_nodes()

        errors = sum(1 for i in self.issues if i.level == ValidationIssueLevel.ERROR)
        warnings = sum(1 for i in self.issues if i.level == ValidationIssueLevel.WARNING)
        infos = sum(1 for i in self.issues if i.level == ValidationIssueLevel.INFO)
        logger.info(
            f"Validation of '{self.circuit.name}' complete. "
            f"Found: {errors} errors, {warnings} warnings, {infos} info messages."
        )
        return self.issues

    def _add_issue(self, level: ValidationIssueLevel, code_enum: TopologyIssueCode, **kwargs):
        node_id = kwargs.get('node_id')
        branch_id = kwargs.get('branch_id')
        self.issues.append(ValidationIssue(
            level=level,
            code=code_enum.code,
            message=code_enum.format_message(**kwargs),
            node_id=str(node_id) if node_id is not None else None,
            branch_id=str(branch_id) if branch_id is not None else None,
            details=kwargs,
        ))

    # --- Checks ---

    def _check_reference_node(self):
        references = [n.node_id for n in self.circuit.nodes if n.is_reference]
        if not references:
            self._add_issue(ValidationIssueLevel.ERROR, TopologyIssueCode.REF_MISSING, circuit=self.circuit.name)
        elif len(references) > 1:
            self._add_issue(
                ValidationIssueLevel.ERROR, TopologyIssueCode.REF_MULTIPLE,
                circuit=self.circuit.name, count=len(references),
                nodes=", ".join(repr(r) for r in references)
            )

    def _check_label_clashes(self):
        # Node voltage and branch current symbols are keyed by str(id).
        node_labels: Dict[str, list] = defaultdict(list)
        for node in self.circuit.nodes:
            node_labels[str(node.node_id)].append(node.node_id)
        for label, ids in node_labels.items():
            if len(ids) > 1:
                self._add_issue(
                    ValidationIssueLevel.ERROR, TopologyIssueCode.ID_NODE_LABEL_CLASH,
                    label=label, nodes=", ".join(repr(i) for i in ids), node_id=label
                )

        branch_labels: Dict[str, list] = defaultdict(list)
        for branch in self.circuit.branches:
            branch_labels[str(branch.branch_id)].append(branch.branch_id)
        for label, ids in branch_labels.items():
            if len(ids) > 1:
                self._add_issue(
                    ValidationIssueLevel.ERROR, TopologyIssueCode.ID_BRANCH_LABEL_CLASH,
                    label=label, branches=", ".join(repr(i) for i in ids), branch_id=label
                )

    def _check_branch_terminals(self):
        for branch in self.circuit.branches:
            for node_id in branch.nodes:
                if not self.circuit.has_node(node_id):
                    self._add_issue(
                        ValidationIssueLevel.ERROR, TopologyIssueCode.CONN_UNKNOWN_NODE,
                        branch_id=branch.branch_id, node_id=node_id
                    )

    def _check_connectivity(self):
        graph = nx.MultiGraph()
        graph.add_nodes_from(n.node_id for n in self.circuit.nodes)
        for branch in self.circuit.branches:
            if all(self.circuit.has_node(n) for n in branch.nodes):
                graph.add_edge(branch.node_from, branch.node_to, key=branch.branch_id)

        if graph.number_of_nodes() == 0:
            return

        reference = self.circuit.find_reference_node()
        if reference is None:
            # Without a reference only the number of islands can be reported.
            components = list(nx.connected_components(graph))
            if len(components) > 1:
                stray = sorted((str(n) for c in components[1:] for n in c))
                self._add_issue(
                    ValidationIssueLevel.ERROR, TopologyIssueCode.CONN_DISCONNECTED,
                    nodes=", ".join(stray), reference="<none>"
                )
            return

        reachable = nx.node_connected_component(graph, reference.node_id)
        unreachable = [n.node_id for n in self.circuit.nodes if n.node_id not in reachable]
        if unreachable:
            self._add_issue(
                ValidationIssueLevel.ERROR, TopologyIssueCode.CONN_DISCONNECTED,
                nodes=", ".join(str(n) for n in unreachable), reference=reference.node_id,
                node_id=unreachable[0]
            )

    def _check_dependent_source_controls(self):
        node_labels = {str(n.node_id) for n in self.circuit.nodes}
        branches_by_label = {str(b.branch_id): b for b in self.circuit.branches}

        for branch in self.circuit.branches:
            if not branch.kind.is_dependent:
                continue
            for symbol in sorted(branch.control_symbols(), key=lambda s: s.name):
                prefix, label = split_control_symbol(symbol)
                if prefix == NODE_VOLTAGE_PREFIX and label not in node_labels:
                    self._add_issue(
                        ValidationIssueLevel.ERROR, TopologyIssueCode.CTRL_UNKNOWN_NODE,
                        branch_id=branch.branch_id, label=label
                    )
                elif prefix == BRANCH_CURRENT_PREFIX:
                    controlling = branches_by_label.get(label)
                    if controlling is None:
                        self._add_issue(
                            ValidationIssueLevel.ERROR, TopologyIssueCode.CTRL_UNKNOWN_BRANCH,
                            branch_id=branch.branch_id, label=label
                        )
                    elif controlling is branch:
                        self._add_issue(
                            ValidationIssueLevel.ERROR, TopologyIssueCode.CTRL_SELF_REFERENCE,
                            branch_id=branch.branch_id
                        )
                    elif controlling.kind.is_voltage_source:
                        self._add_issue(
                            ValidationIssueLevel.ERROR, TopologyIssueCode.CTRL_VOLTAGE_SOURCE_CURRENT,
                            branch_id=branch.branch_id, label=label
                        )

    def _check_dangling_nodes(self):
        for node in self.circuit.nodes:
            if node.is_reference:
                continue
            attached = self.circuit.branches_at(node.node_id)
            if len(attached) == 1:
                self._add_issue(
                    ValidationIssueLevel.WARNING, TopologyIssueCode.CONN_DANGLING,
                    node_id=node.node_id, branch_id=attached[0].branch_id
                )

    def _report_fixed_nodes(self):
        reference = self.circuit.find_reference_node()
        if reference is None:
            return
        for branch in self.circuit.branches:
            if branch.kind.is_voltage_source and reference.node_id in branch.nodes:
                fixed = branch.other_node(reference.node_id)
                self._add_issue(
                    ValidationIssueLevel.INFO, TopologyIssueCode.SRC_INFO_FIXED_NODE,
                    node_id=fixed, branch_id=branch.branch_id
                )
