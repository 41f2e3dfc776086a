# tests/conftest.py
import pytest

from nodal_core import (
    build_circuit,
    Resistor, CurrentSource, VoltageSource, DependentCurrentSource, DependentVoltageSource,
)


# --- Worked-example circuits (node 0 is the reference throughout) ---

@pytest.fixture
def example_3_1():
    """Two-node resistive network driven by current sources."""
    return build_circuit(
        [0, 1, 2],
        [
            Resistor("R4", 1, 2, 4),
            Resistor("R2", 1, 0, 2),
            Resistor("R6", 2, 0, 6),
            CurrentSource("I5", 0, 1, 5),
            CurrentSource("I10", 0, 2, 10),
        ],
        reference_node_id=0,
        name="example_3_1",
    )


@pytest.fixture
def example_3_1_bridging_source():
    """Example 3.1 with the 5 A source drawn from node 2 into node 1."""
    return build_circuit(
        [0, 1, 2],
        [
            Resistor("R4", 1, 2, 4),
            Resistor("R2", 1, 0, 2),
            Resistor("R6", 2, 0, 6),
            CurrentSource("I5", 2, 1, 5),
            CurrentSource("I10", 0, 2, 10),
        ],
        reference_node_id=0,
        name="example_3_1_bridging_source",
    )


@pytest.fixture
def practice_3_1():
    return build_circuit(
        [0, 1, 2],
        [
            CurrentSource("I3", 0, 1, 3),
            Resistor("R2", 1, 0, 2),
            Resistor("R6", 1, 2, 6),
            Resistor("R7", 2, 0, 7),
            CurrentSource("I12", 2, 0, 12),
        ],
        reference_node_id=0,
        name="practice_3_1",
    )


@pytest.fixture
def practice_3_2():
    """Current-controlled current source delivering 4*I(Rx) into node 2."""
    return build_circuit(
        [0, 1, 2, 3],
        [
            CurrentSource("I4", 0, 1, 4),
            Resistor("R3", 1, 2, 3),
            Resistor("R2", 1, 3, 2),
            Resistor("Rx", 2, 0, 4),
            Resistor("R6", 3, 0, 6),
            DependentCurrentSource("F1", 3, 2, "4*I(Rx)"),
        ],
        reference_node_id=0,
        name="practice_3_2",
    )


@pytest.fixture
def example_3_3():
    """Nodes 1 and 2 form a supernode through a 2 V source (V2 - V1 = 2)."""
    return build_circuit(
        [0, 1, 2],
        [
            CurrentSource("I2", 0, 1, 2),
            Resistor("R2", 1, 0, 2),
            Resistor("R4", 2, 0, 4),
            CurrentSource("I7", 2, 0, 7),
            VoltageSource("V2", 2, 1, 2),
        ],
        reference_node_id=0,
        name="example_3_3",
    )


@pytest.fixture
def practice_3_3():
    """Node 1 fixed at 14 V by a source to the reference; nodes 2 and 3 form a supernode."""
    return build_circuit(
        [0, 1, 2, 3],
        [
            VoltageSource("V14", 1, 0, 14),
            Resistor("R4", 1, 2, 4),
            Resistor("R3", 2, 0, 3),
            VoltageSource("V6", 3, 2, 6),
            Resistor("R2", 3, 0, 2),
            Resistor("R6", 3, 0, 6),
        ],
        reference_node_id=0,
        name="practice_3_3",
    )


@pytest.fixture
def example_3_4():
    """Three-node supernode built from an independent source and a CCVS."""
    return build_circuit(
        [0, 1, 2, 3],
        [
            VoltageSource("V25", 1, 2, 25),
            DependentVoltageSource("H1", 3, 2, "5*I(R2ohm)"),
            Resistor("R2ohm", 1, 0, 2),
            Resistor("R4ohm", 2, 0, 4),
            Resistor("R3ohm", 3, 0, 3),
        ],
        reference_node_id=0,
        name="example_3_4",
    )


@pytest.fixture
def floating_source_pair():
    """Two nodes tied only by a voltage source, fed by a current source with no return path."""
    return build_circuit(
        [0, 1, 2],
        [
            VoltageSource("Vf", 1, 2, 5),
            CurrentSource("Is", 0, 1, 2),
        ],
        reference_node_id=0,
        name="floating_source_pair",
    )


@pytest.fixture
def symbolic_divider():
    return build_circuit(
        [0, 1, 2],
        [
            VoltageSource("Vs", 1, 0, "Vs"),
            Resistor("R1", 1, 2, "R1"),
            Resistor("R2", 2, 0, "R2"),
        ],
        reference_node_id=0,
        name="symbolic_divider",
    )


# --- Helpers ---

@pytest.fixture
def kcl_residual():
    """
    Returns a function computing the net current leaving a node, as a float,
    from the branch currents of a solution.
    """
    def _kcl_residual(circuit, solution, node_id):
        total = 0
        for branch in circuit.branches_at(node_id):
            current = solution.current_through(branch.branch_id)
            total += current if branch.node_from == node_id else -current
        return float(total)
    return _kcl_residual
