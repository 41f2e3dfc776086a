# tests/test_circuit_graph.py
import pytest
import sympy

from nodal_core import (
    CircuitGraph, build_circuit, MalformedCircuitError, BRANCH_REGISTRY, BranchKind, Node,
    Resistor, CurrentSource, VoltageSource, DependentCurrentSource, DependentVoltageSource,
    ValidationIssueLevel, TopologyIssueCode, Quantity, ureg, branch_current, node_voltage,
)


class TestBranchElements:

    def test_registry_contains_all_branch_types(self):
        for type_str in ("Resistor", "CurrentSource", "VoltageSource",
                         "DependentCurrentSource", "DependentVoltageSource"):
            assert type_str in BRANCH_REGISTRY

    @pytest.mark.parametrize("value, expected", [
        (4, sympy.Integer(4)),
        (2.5, sympy.Float(2.5)),
        ("1/3", sympy.Rational(1, 3)),
        ("4 ohm", sympy.Integer(4)),
    ])
    def test_resistance_normalization(self, value, expected):
        assert Resistor("R", 1, 0, value).resistance == expected

    def test_quantity_is_converted_to_si(self):
        r = Resistor("R", 1, 0, Quantity(2, "kiloohm"))
        assert float(r.resistance) == 2000.0
        v = VoltageSource("V", 1, 0, 500 * ureg.millivolt)
        assert float(v.voltage) == 0.5

    @pytest.mark.parametrize("value", [0, -10, "-2 ohm", float("inf"), "nan"])
    def test_invalid_resistance(self, value):
        with pytest.raises(MalformedCircuitError):
            Resistor("Rbad", 1, 0, value)

    def test_wrong_dimension(self):
        with pytest.raises(MalformedCircuitError, match="cannot be converted"):
            Resistor("R", 1, 0, Quantity(3, "volt"))

    def test_self_loop_is_rejected(self):
        with pytest.raises(MalformedCircuitError, match="to itself"):
            Resistor("R", 1, 1, 10)

    def test_independent_source_cannot_hold_control_symbols(self):
        with pytest.raises(MalformedCircuitError, match="dependent source"):
            CurrentSource("I", 0, 1, "2*V(1)")

    def test_dependent_source_expressions(self):
        cccs = DependentCurrentSource("F", 3, 2, "4*I(Rx)")
        assert cccs.expression == 4 * branch_current("Rx")
        assert cccs.control_symbols() == {branch_current("Rx")}
        assert cccs.kind is BranchKind.DEPENDENT_CURRENT_SOURCE

        vcvs = DependentVoltageSource("E", 1, 0, 0.5 * node_voltage(2))
        assert vcvs.control_symbols() == {node_voltage(2)}
        assert vcvs.kind.is_voltage_source

    @pytest.mark.parametrize("name", ["E", "beta", "S", "N", "gamma", "Q"])
    def test_names_are_parameters_not_sympy_objects(self, name):
        source = VoltageSource("Vs", 1, 0, name)
        assert source.voltage == sympy.Symbol(name)
        assert source.voltage.free_symbols == {sympy.Symbol(name)}

    def test_gain_names_in_dependent_sources(self):
        cccs = DependentCurrentSource("F", 0, 2, "beta*I(Rb)")
        assert cccs.expression == sympy.Symbol("beta") * branch_current("Rb")
        vcvs = DependentVoltageSource("E1", 1, 0, "N*V(2) + S")
        assert vcvs.expression == sympy.Symbol("N") * node_voltage(2) + sympy.Symbol("S")

    def test_allowed_constants_and_functions(self):
        assert VoltageSource("V", 1, 0, "2*pi").voltage == 2 * sympy.pi
        assert VoltageSource("V", 1, 0, "sqrt(2)").voltage == sympy.sqrt(2)
        assert Resistor("R", 1, 0, "Abs(-3)").resistance == 3

    def test_unparseable_expression(self):
        with pytest.raises(MalformedCircuitError, match="Could not parse"):
            DependentCurrentSource("F", 1, 0, "4*I(")

    def test_resistor_current_direction(self):
        r = Resistor("R", 1, 2, 5)
        assert r.current_expression(sympy.Integer(10), sympy.Integer(0)) == 2
        with pytest.raises(TypeError):
            VoltageSource("V", 1, 0, 5).current_expression(0, 0)


class TestCircuitGraph:

    def test_build_from_mapping_definitions(self):
        circuit = build_circuit(
            [1, 2],
            [
                {"id": "R1", "type": "Resistor", "nodes": (1, 2), "value": 4},
                {"id": "R2", "type": "Resistor", "nodes": (2, 0), "value": "6 ohm"},
                {"id": "I1", "type": "CurrentSource", "nodes": (0, 1), "value": 1},
            ],
            reference_node_id=0,
        )
        assert circuit.is_frozen
        assert circuit.reference_node.node_id == 0
        assert circuit.node(2) == Node(2)
        assert circuit.branch("R2").resistance == 6
        assert [n.node_id for n in circuit.nodes] == [0, 1, 2]
        assert [n.node_id for n in circuit.non_reference_nodes] == [1, 2]
        assert [b.branch_id for b in circuit.branches_at(2)] == ["R1", "R2"]
        assert circuit.to_networkx().number_of_edges() == 3

    def test_unknown_branch_type(self):
        with pytest.raises(MalformedCircuitError, match="unregistered type"):
            build_circuit([1], [{"id": "X1", "type": "Inductor", "nodes": (1, 0), "value": 1}], 0)

    def test_duplicate_ids(self):
        circuit = CircuitGraph("dups")
        circuit.add_node(0, is_reference=True)
        with pytest.raises(MalformedCircuitError):
            circuit.add_node(0)
        circuit.add_branch(Resistor("R1", 1, 0, 1))
        with pytest.raises(MalformedCircuitError):
            circuit.add_branch(Resistor("R1", 1, 0, 2))

    def test_frozen_graph_is_read_only(self, example_3_1):
        with pytest.raises(MalformedCircuitError, match="frozen"):
            example_3_1.add_node(9)
        with pytest.raises(MalformedCircuitError, match="frozen"):
            example_3_1.add_branch(Resistor("Rnew", 1, 2, 1))

    def test_missing_reference(self):
        circuit = CircuitGraph("no_ref")
        circuit.add_node(1)
        circuit.add_node(2)
        circuit.add_branch(Resistor("R1", 1, 2, 1))
        with pytest.raises(MalformedCircuitError) as excinfo:
            circuit.validate()
        assert TopologyIssueCode.REF_MISSING.code in excinfo.value.codes

    def test_unknown_terminal_and_disconnected_node(self):
        circuit = CircuitGraph("broken")
        circuit.add_node(0, is_reference=True)
        circuit.add_node(1)
        circuit.add_node(5)
        circuit.add_branch(Resistor("R1", 1, 0, 1))
        circuit.add_branch(Resistor("R2", 1, 7, 1))
        with pytest.raises(MalformedCircuitError) as excinfo:
            circuit.validate()

        codes = excinfo.value.codes
        assert TopologyIssueCode.CONN_UNKNOWN_NODE.code in codes
        assert TopologyIssueCode.CONN_DISCONNECTED.code in codes
        assert all(issue.level == ValidationIssueLevel.ERROR for issue in excinfo.value.issues)
        assert "Actionable Diagnostic Report" in excinfo.value.get_diagnostic_report()

    @pytest.mark.parametrize("expression, code", [
        ("2*V(9)", TopologyIssueCode.CTRL_UNKNOWN_NODE),
        ("2*I(Rmissing)", TopologyIssueCode.CTRL_UNKNOWN_BRANCH),
        ("2*I(V1)", TopologyIssueCode.CTRL_VOLTAGE_SOURCE_CURRENT),
        ("2*I(F1)", TopologyIssueCode.CTRL_SELF_REFERENCE),
    ])
    def test_invalid_controls(self, expression, code):
        with pytest.raises(MalformedCircuitError) as excinfo:
            build_circuit(
                [0, 1, 2],
                [
                    VoltageSource("V1", 1, 0, 5),
                    Resistor("R1", 1, 2, 1),
                    Resistor("R2", 2, 0, 1),
                    DependentCurrentSource("F1", 0, 2, expression),
                ],
                reference_node_id=0,
            )
        assert code.code in excinfo.value.codes

    def test_warnings_and_info_are_returned(self):
        circuit = CircuitGraph("notes")
        circuit.add_node(0, is_reference=True)
        for node_id in (1, 2):
            circuit.add_node(node_id)
        circuit.add_branch(VoltageSource("V1", 1, 0, 5))
        circuit.add_branch(Resistor("R1", 1, 2, 1))

        issues = circuit.validate()
        codes = {issue.code: issue for issue in issues}
        assert codes["CONN_DANGLING"].level == ValidationIssueLevel.WARNING
        assert codes["CONN_DANGLING"].node_id == "2"
        assert codes["SRC_INFO_FIXED_NODE"].level == ValidationIssueLevel.INFO
