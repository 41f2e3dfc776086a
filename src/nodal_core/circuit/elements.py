# src/nodal_core/circuit/elements.py
"""
This module provides the node and branch types of the circuit graph model:
the resistor, the independent current and voltage sources, and their dependent
(controlled) counterparts.

Branch values are normalized at construction into unit-free SymPy expressions
(ohm, ampere, volt). Invalid values are construction errors and raise
`MalformedCircuitError` immediately.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from tokenize import TokenError
from typing import Any, ClassVar, Dict, Hashable, Mapping, Tuple, Type

import sympy

from ..expressions import parse_control_expression, split_control_symbol
from ..units import ElementValue, UnitConversionError, to_si_expression
from .exceptions import MalformedCircuitError


logger = logging.getLogger(__name__)

NodeId = Hashable


class BranchKind(Enum):
    """The tag of the branch variant."""
    RESISTOR = auto()
    CURRENT_SOURCE = auto()
    VOLTAGE_SOURCE = auto()
    DEPENDENT_CURRENT_SOURCE = auto()
    DEPENDENT_VOLTAGE_SOURCE = auto()

    @property
    def is_voltage_source(self) -> bool:
        return self in (BranchKind.VOLTAGE_SOURCE, BranchKind.DEPENDENT_VOLTAGE_SOURCE)

    @property
    def is_current_source(self) -> bool:
        return self in (BranchKind.CURRENT_SOURCE, BranchKind.DEPENDENT_CURRENT_SOURCE)

    @property
    def is_dependent(self) -> bool:
        return self in (BranchKind.DEPENDENT_CURRENT_SOURCE, BranchKind.DEPENDENT_VOLTAGE_SOURCE)


@dataclass(frozen=True)
class Node:
    """
    A point of common voltage. Identity is the `node_id` alone, so a node can be
    looked up by id regardless of its reference flag.
    """
    node_id: NodeId
    is_reference: bool = False

    def __hash__(self):
        return hash(self.node_id)

    def __eq__(self, other):
        if not isinstance(other, Node):
            return NotImplemented
        return self.node_id == other.node_id


@dataclass(frozen=True)
class Branch(ABC):
    """
    A two-terminal element connecting `node_from` to `node_to`.

    The orientation matters for every variant: resistor and source currents are
    measured from `node_from` to `node_to`, and a voltage source's value is
    `V(node_from) - V(node_to)`.
    """
    branch_id: str
    node_from: NodeId
    node_to: NodeId

    kind: ClassVar[BranchKind]
    branch_type_str: ClassVar[str] = "Branch"

    def __post_init__(self):
        if self.node_from == self.node_to:
            raise MalformedCircuitError(
                details=f"Branch '{self.branch_id}' connects node '{self.node_from}' to itself.",
                node_id=str(self.node_from),
                branch_id=str(self.branch_id),
            )

    @property
    def nodes(self) -> Tuple[NodeId, NodeId]:
        return self.node_from, self.node_to

    def other_node(self, node_id: NodeId) -> NodeId:
        """Returns the terminal opposite to `node_id`."""
        if node_id == self.node_from:
            return self.node_to
        if node_id == self.node_to:
            return self.node_from
        raise ValueError(f"Node '{node_id}' is not a terminal of branch '{self.branch_id}'.")

    @property
    @abstractmethod
    def value(self) -> sympy.Expr:
        """The branch's defining value as a SymPy expression."""
        raise NotImplementedError

    def current_expression(self, v_from: sympy.Expr, v_to: sympy.Expr) -> sympy.Expr:
        """
        The current from `node_from` to `node_to` in terms of the terminal voltages.

        Raises:
            TypeError: For voltage sources, whose current is not a function of the
                       node voltages.
        """
        raise TypeError(
            f"The current through {type(self).__name__} '{self.branch_id}' is not determined by its terminal voltages."
        )

    def _normalize(self, field_name: str, raw: ElementValue, si_unit: str) -> sympy.Expr:
        """Converts `raw` to an SI SymPy expression, mapping failures to construction errors."""
        try:
            return to_si_expression(raw, si_unit)
        except UnitConversionError as e:
            raise MalformedCircuitError(
                details=f"Invalid {field_name} for {type(self).__name__} '{self.branch_id}': {e}",
                branch_id=str(self.branch_id),
            ) from e

    def _reject_non_finite(self, field_name: str, expr: sympy.Expr):
        if expr.has(sympy.nan, sympy.oo, -sympy.oo, sympy.zoo):
            raise MalformedCircuitError(
                details=f"{type(self).__name__} '{self.branch_id}' has a non-finite {field_name} ({expr}).",
                branch_id=str(self.branch_id),
            )

    def _reject_control_symbols(self, field_name: str, expr: sympy.Expr):
        controls = sorted(s.name for s in expr.free_symbols if split_control_symbol(s) is not None)
        if controls:
            raise MalformedCircuitError(
                details=(
                    f"Independent {type(self).__name__} '{self.branch_id}' has a {field_name} that depends on "
                    f"{', '.join(controls)}. Use a dependent source for controlled values."
                ),
                branch_id=str(self.branch_id),
            )


BRANCH_REGISTRY: Dict[str, Type[Branch]] = {}


def register_branch(type_str: str):
    """
    A class decorator to register a branch class in the global branch registry,
    making it available to mapping-based circuit definitions.
    """
    def decorator(cls: Type[Branch]):
        if not issubclass(cls, Branch):
            raise TypeError(f"Class {cls.__name__} must inherit from Branch.")
        if type_str in BRANCH_REGISTRY:
            logger.warning(f"Branch type '{type_str}' is being redefined/overwritten.")
        cls.branch_type_str = type_str
        BRANCH_REGISTRY[type_str] = cls
        logger.debug(f"Registered branch type '{type_str}' -> {cls.__name__}")
        return cls
    return decorator


@register_branch("Resistor")
@dataclass(frozen=True)
class Resistor(Branch):
    """An ideal linear resistor. Numeric resistances must be positive and finite."""
    resistance: ElementValue

    kind: ClassVar[BranchKind] = BranchKind.RESISTOR

    def __post_init__(self):
        super().__post_init__()
        r = self._normalize("resistance", self.resistance, "ohm")
        self._reject_non_finite("resistance", r)
        self._reject_control_symbols("resistance", r)
        if r.is_zero or r.is_extended_negative or (r.is_number and not r.is_extended_real):
            raise MalformedCircuitError(
                details=f"Resistor '{self.branch_id}' must have a positive resistance, got {r}.",
                branch_id=str(self.branch_id),
            )
        object.__setattr__(self, "resistance", r)

    @property
    def value(self) -> sympy.Expr:
        return self.resistance

    def current_expression(self, v_from: sympy.Expr, v_to: sympy.Expr) -> sympy.Expr:
        # Ohm's law
        return (v_from - v_to) / self.resistance


@register_branch("CurrentSource")
@dataclass(frozen=True)
class CurrentSource(Branch):
    """An independent current source driving `current` from `node_from` into `node_to`."""
    current: ElementValue

    kind: ClassVar[BranchKind] = BranchKind.CURRENT_SOURCE

    def __post_init__(self):
        super().__post_init__()
        i = self._normalize("current", self.current, "ampere")
        self._reject_non_finite("current", i)
        self._reject_control_symbols("current", i)
        object.__setattr__(self, "current", i)

    @property
    def value(self) -> sympy.Expr:
        return self.current

    def current_expression(self, v_from: sympy.Expr, v_to: sympy.Expr) -> sympy.Expr:
        return self.current


@register_branch("VoltageSource")
@dataclass(frozen=True)
class VoltageSource(Branch):
    """An independent voltage source with `V(node_from) - V(node_to) = voltage`."""
    voltage: ElementValue

    kind: ClassVar[BranchKind] = BranchKind.VOLTAGE_SOURCE

    def __post_init__(self):
        super().__post_init__()
        v = self._normalize("voltage", self.voltage, "volt")
        self._reject_non_finite("voltage", v)
        self._reject_control_symbols("voltage", v)
        object.__setattr__(self, "voltage", v)

    @property
    def value(self) -> sympy.Expr:
        return self.voltage


class _DependentSourceMixin:
    """Parsing of controlling expressions shared by both dependent source types."""

    def _parse_expression(self, raw: Any) -> sympy.Expr:
        if isinstance(raw, str):
            try:
                expr = parse_control_expression(raw)
            except (SyntaxError, TokenError, TypeError, sympy.SympifyError) as e:
                raise MalformedCircuitError(
                    details=f"Could not parse the controlling expression '{raw}' of '{self.branch_id}': {e}",
                    branch_id=str(self.branch_id),
                ) from e
        else:
            # Quantities are not meaningful for a gain expression; plain values go through SymPy.
            expr = self._normalize("controlling expression", raw, "volt" if self.kind.is_voltage_source else "ampere")
        if not isinstance(expr, sympy.Expr):
            raise MalformedCircuitError(
                details=f"The controlling expression of '{self.branch_id}' is not an algebraic expression: {expr!r}.",
                branch_id=str(self.branch_id),
            )
        self._reject_non_finite("controlling expression", expr)
        return expr

    def control_symbols(self) -> set:
        """The V(...) and I(...) symbols this source depends on."""
        return {s for s in self.expression.free_symbols if split_control_symbol(s) is not None}


@register_branch("DependentCurrentSource")
@dataclass(frozen=True)
class DependentCurrentSource(_DependentSourceMixin, Branch):
    """
    A controlled current source (VCCS or CCCS). The delivered current, from
    `node_from` into `node_to`, is `expression`, e.g. ``4*I(Rx)`` or ``0.1*V(3)``.
    """
    expression: Any

    kind: ClassVar[BranchKind] = BranchKind.DEPENDENT_CURRENT_SOURCE

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, "expression", self._parse_expression(self.expression))

    @property
    def value(self) -> sympy.Expr:
        return self.expression

    def current_expression(self, v_from: sympy.Expr, v_to: sympy.Expr) -> sympy.Expr:
        return self.expression


@register_branch("DependentVoltageSource")
@dataclass(frozen=True)
class DependentVoltageSource(_DependentSourceMixin, Branch):
    """
    A controlled voltage source (VCVS or CCVS) with
    `V(node_from) - V(node_to) = expression`, e.g. ``5*I(R1)``.
    """
    expression: Any

    kind: ClassVar[BranchKind] = BranchKind.DEPENDENT_VOLTAGE_SOURCE

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, "expression", self._parse_expression(self.expression))

    @property
    def value(self) -> sympy.Expr:
        return self.expression


def branch_from_definition(definition: Mapping[str, Any]) -> Branch:
    """
    Instantiates a branch from a mapping of the form
    ``{"id": "R1", "type": "Resistor", "nodes": (1, 2), "value": 4}``.
    """
    try:
        branch_id = definition["id"]
        type_str = definition["type"]
        node_from, node_to = definition["nodes"]
        raw_value = definition["value"]
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedCircuitError(
            details=f"Invalid branch definition {dict(definition) if isinstance(definition, Mapping) else definition!r}: {e}. "
                    f"Expected keys 'id', 'type', 'nodes' (two node ids) and 'value'.",
        ) from e

    BranchClass = BRANCH_REGISTRY.get(type_str)
    if BranchClass is None:
        raise MalformedCircuitError(
            details=f"Branch '{branch_id}' has unregistered type '{type_str}'. Available types: {sorted(BRANCH_REGISTRY)}.",
            branch_id=str(branch_id),
        )
    return BranchClass(branch_id, node_from, node_to, raw_value)
