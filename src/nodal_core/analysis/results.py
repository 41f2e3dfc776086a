# src/nodal_core/analysis/results.py
"""
Defines the immutable result contracts passed between the analysis stages.

Each stage hands the next one a frozen dataclass instead of a loose dictionary, so
the structure of what flows from the supernode detector into the equation builder,
and from the builder into the solver, is explicit and cannot be modified downstream.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Mapping, Optional, Tuple

import sympy

from ..circuit.elements import NodeId


@dataclass(frozen=True)
class VoltageConstraint:
    """
    A KVL relation contributed by a voltage source: ``V(node_from) - V(node_to) = value``.
    `value` is the raw source value; for dependent sources it still contains
    control symbols.
    """
    branch_id: str
    node_from: NodeId
    node_to: NodeId
    value: sympy.Expr


@dataclass(frozen=True)
class Supernode:
    """
    Two or more non-reference nodes joined by voltage sources, analyzed as one
    unit: one combined KCL equation plus one KVL constraint per spanning-tree source.
    """
    name: str
    representative: NodeId
    members: Tuple[NodeId, ...]
    constraints: Tuple[VoltageConstraint, ...]

    def __contains__(self, node_id: NodeId) -> bool:
        return node_id in self.members


@dataclass(frozen=True)
class SupernodeAnalysisResults:
    """
    The output of the supernode detector for one circuit.

    - `supernodes`: the supernodes, in deterministic order.
    - `supernode_of`: member node id -> supernode name.
    - `fixed_potentials`: for every non-reference node tied to the reference through
      voltage sources, its voltage as the signed sum of source values along the path
      (raw, may contain control symbols).
    - `reference_constraints`: the spanning-tree sources of the reference component.
    - `redundant_sources`: sources closing a consistent loop; they add no equation
      and their current is not determined by the node voltages.
    - `ordinary_nodes`: non-reference nodes touched by no voltage source.
    """
    supernodes: Tuple[Supernode, ...]
    supernode_of: Mapping[NodeId, str]
    fixed_potentials: Mapping[NodeId, sympy.Expr]
    reference_constraints: Tuple[VoltageConstraint, ...]
    redundant_sources: FrozenSet[str]
    ordinary_nodes: Tuple[NodeId, ...]

    def supernode_for(self, node_id: NodeId) -> Optional[Supernode]:
        name = self.supernode_of.get(node_id)
        if name is None:
            return None
        return next(s for s in self.supernodes if s.name == name)


class EquationKind(Enum):
    """Origin law of an equation."""
    KCL = "KCL"
    KVL = "KVL"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class Equation:
    """
    An immutable algebraic relation ``lhs = rhs`` over node-voltage unknowns and
    user parameters.
    """
    kind: EquationKind
    label: str
    lhs: sympy.Expr
    rhs: sympy.Expr
    origin: Tuple = field(default=())

    @property
    def residual(self) -> sympy.Expr:
        """``lhs - rhs``; zero when the equation is satisfied."""
        return self.lhs - self.rhs

    def as_sympy(self) -> sympy.Eq:
        return sympy.Eq(self.lhs, self.rhs, evaluate=False)

    def __str__(self) -> str:
        return f"[{self.kind}] {self.label}: {self.lhs} = {self.rhs}"


@dataclass(frozen=True)
class EquationSet:
    """
    The square system produced by the equation builder.

    `unknowns[i]` is the voltage symbol of `unknown_nodes[i]`. `fixed_voltages`
    holds the nodes whose voltage was set directly by a voltage source to the
    reference; they do not appear in any equation.
    """
    equations: Tuple[Equation, ...]
    unknowns: Tuple[sympy.Symbol, ...]
    unknown_nodes: Tuple[NodeId, ...]
    fixed_voltages: Mapping[NodeId, sympy.Expr]
    supernode_results: SupernodeAnalysisResults

    def __len__(self) -> int:
        return len(self.equations)

    def describe(self) -> str:
        """A multi-line listing of the equations, one per line."""
        return "\n".join(str(eq) for eq in self.equations)
