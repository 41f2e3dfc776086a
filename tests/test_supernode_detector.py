# tests/test_supernode_detector.py
import pytest
import sympy

from nodal_core import (
    SupernodeDetector, build_circuit, InconsistentConstraintError,
    Resistor, CurrentSource, VoltageSource, DependentVoltageSource,
)


class TestSupernodeDetector:

    def test_no_voltage_sources(self, example_3_1):
        results = SupernodeDetector(example_3_1).analyze()
        assert results.supernodes == ()
        assert results.fixed_potentials == {}
        assert results.ordinary_nodes == (1, 2)

    def test_two_node_supernode(self, example_3_3):
        results = SupernodeDetector(example_3_3).analyze()

        assert len(results.supernodes) == 1
        supernode = results.supernodes[0]
        assert supernode.name == "{1, 2}"
        assert supernode.representative == 1
        assert supernode.members == (1, 2)
        assert 2 in supernode
        # A two-node supernode owns exactly one KVL constraint.
        assert len(supernode.constraints) == 1
        constraint = supernode.constraints[0]
        assert (constraint.branch_id, constraint.node_from, constraint.node_to) == ("V2", 2, 1)
        assert constraint.value == 2
        assert results.supernode_for(1) is supernode
        assert results.ordinary_nodes == ()

    def test_fixed_node_is_not_a_supernode(self, practice_3_3):
        results = SupernodeDetector(practice_3_3).analyze()

        assert results.fixed_potentials == {1: 14}
        assert [c.branch_id for c in results.reference_constraints] == ["V14"]
        assert [s.name for s in results.supernodes] == ["{2, 3}"]
        assert results.supernode_for(1) is None

    def test_chain_of_sources_to_reference(self):
        circuit = build_circuit(
            [0, 1, 2, 3],
            [
                VoltageSource("Va", 1, 0, 10),
                VoltageSource("Vb", 1, 2, 4),
                VoltageSource("Vc", 3, 2, 1),
                Resistor("R3", 3, 0, 1),
            ],
            reference_node_id=0,
        )
        results = SupernodeDetector(circuit).analyze()
        assert results.fixed_potentials == {1: 10, 2: 6, 3: 7}
        assert results.supernodes == ()

    def test_three_node_supernode_with_dependent_source(self, example_3_4):
        results = SupernodeDetector(example_3_4).analyze()

        supernode = results.supernodes[0]
        assert supernode.members == (1, 2, 3)
        assert [c.branch_id for c in supernode.constraints] == ["V25", "H1"]

    def test_consistent_loop_is_redundant(self):
        circuit = build_circuit(
            [0, 1],
            [
                VoltageSource("Va", 1, 0, 5),
                VoltageSource("Vb", 1, 0, 5),
                Resistor("R1", 1, 0, 10),
            ],
            reference_node_id=0,
        )
        results = SupernodeDetector(circuit).analyze()
        assert results.redundant_sources == frozenset({"Vb"})
        assert results.fixed_potentials == {1: 5}

    def test_inconsistent_parallel_sources(self):
        circuit = build_circuit(
            [0, 1],
            [
                VoltageSource("V5", 1, 0, 5),
                VoltageSource("V3", 1, 0, 3),
                Resistor("R1", 1, 0, 10),
            ],
            reference_node_id=0,
        )
        with pytest.raises(InconsistentConstraintError) as excinfo:
            SupernodeDetector(circuit).analyze()
        assert excinfo.value.branch_id == "V3"
        assert "Inconsistent Voltage-Source Constraint" in excinfo.value.get_diagnostic_report()

    def test_float_loop_within_rounding_is_redundant(self):
        circuit = build_circuit(
            [0, 1, 2],
            [
                VoltageSource("Va", 1, 0, 1.1),
                VoltageSource("Vb", 2, 1, 2.2),
                VoltageSource("Vc", 2, 0, 3.3),
                Resistor("R1", 1, 0, 1),
                Resistor("R2", 2, 0, 1),
            ],
            reference_node_id=0,
        )
        results = SupernodeDetector(circuit).analyze()

        assert results.redundant_sources == frozenset({"Vb"})
        assert float(results.fixed_potentials[1]) == pytest.approx(1.1)
        assert float(results.fixed_potentials[2]) == pytest.approx(3.3)

    def test_float_loop_with_real_mismatch(self):
        circuit = build_circuit(
            [0, 1, 2],
            [
                VoltageSource("Va", 1, 0, 1.1),
                VoltageSource("Vb", 2, 1, 2.2),
                VoltageSource("Vc", 2, 0, 3.4),
                Resistor("R1", 1, 0, 1),
            ],
            reference_node_id=0,
        )
        with pytest.raises(InconsistentConstraintError) as excinfo:
            SupernodeDetector(circuit).analyze()
        assert excinfo.value.branch_id == "Vb"

    def test_symbolic_loop_that_cancels(self):
        circuit = build_circuit(
            [0, 1, 2],
            [
                VoltageSource("Va", 1, 2, "E"),
                VoltageSource("Vb", 2, 1, "-E"),
                Resistor("R1", 1, 0, 1),
                Resistor("R2", 2, 0, 1),
            ],
            reference_node_id=0,
        )
        results = SupernodeDetector(circuit).analyze()
        assert results.redundant_sources == frozenset({"Vb"})
        assert results.supernodes[0].constraints[0].value == sympy.Symbol("E")

    def test_loop_through_dependent_source_is_rejected(self):
        circuit = build_circuit(
            [0, 1, 2],
            [
                VoltageSource("Va", 1, 2, 3),
                DependentVoltageSource("E1", 1, 2, "3*I(R1)"),
                Resistor("R1", 1, 0, 1),
                CurrentSource("I1", 0, 2, 1),
            ],
            reference_node_id=0,
        )
        with pytest.raises(InconsistentConstraintError, match="controlled"):
            SupernodeDetector(circuit).analyze()

    def test_detector_does_not_modify_circuit(self, practice_3_3):
        before = (practice_3_3.nodes, practice_3_3.branches)
        SupernodeDetector(practice_3_3).analyze()
        assert (practice_3_3.nodes, practice_3_3.branches) == before
