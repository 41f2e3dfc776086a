# tests/test_solver.py
import pytest
import numpy as np
import sympy

from nodal_core import (
    LinearSystemSolver, SolverConfig, SolverMode, parse_solver_config, ConfigParsingError,
    SingularSystemError, UnderdeterminedSystemError, OverdeterminedSystemError,
    MalformedCircuitError, DiagnosableError, node_voltage,
)
from nodal_core.solver import solve_linear_system

V1, V2 = node_voltage(1), node_voltage(2)


class TestLinearSystemSolver:

    def test_exact_inputs_give_exact_rationals(self):
        equations = [sympy.Eq(3 * V1 - V2, 20), sympy.Eq(-3 * V1 + 5 * V2, 120)]
        solved = LinearSystemSolver().solve(equations, [V1, V2])

        assert solved.mode is SolverMode.SYMBOLIC
        assert solved.values[V1] == sympy.Rational(55, 3)
        assert solved.values[V2] == 35

    def test_float_inputs_use_lu_path(self):
        equations = [sympy.Eq(sympy.Float(3.0) * V1 - V2, 20), sympy.Eq(-3 * V1 + 5 * V2, 120)]
        solved = LinearSystemSolver().solve(equations, [V1, V2])

        assert solved.mode is SolverMode.NUMERIC
        np.testing.assert_allclose([float(solved.values[V1]), float(solved.values[V2])], [55 / 3, 35.0])

    def test_expressions_are_read_as_equal_to_zero(self):
        solved = solve_linear_system([2 * V1 - 4, V2 - V1], [V1, V2])
        assert solved.values == {V1: 2, V2: 2}

    def test_symbolic_parameters(self):
        G = sympy.Symbol("G")
        solved = LinearSystemSolver().solve([sympy.Eq(G * V1, 1)], [V1])
        assert solved.mode is SolverMode.SYMBOLIC
        assert solved.values[V1] == 1 / G

    def test_numeric_mode_rejects_parameters(self):
        G = sympy.Symbol("G")
        solver = LinearSystemSolver(SolverConfig(mode=SolverMode.NUMERIC))
        with pytest.raises(ValueError, match="symbolic parameters"):
            solver.solve([sympy.Eq(G * V1, 1)], [V1])

    @pytest.mark.parametrize("mode", [SolverMode.SYMBOLIC, SolverMode.NUMERIC])
    def test_singular_system(self, mode):
        equations = [sympy.Eq(V1 - V2, 5), sympy.Eq(2 * V1 - 2 * V2, 3)]
        solver = LinearSystemSolver(SolverConfig(mode=mode), circuit_name="singular")

        with pytest.raises(SingularSystemError) as excinfo:
            solver.solve(equations, [V1, V2])

        assert isinstance(excinfo.value, np.linalg.LinAlgError)
        assert isinstance(excinfo.value, DiagnosableError)
        assert "Singular Equation System" in excinfo.value.get_diagnostic_report()

    def test_near_singular_pivot_is_rejected(self):
        eps = sympy.Float(1e-13)
        equations = [sympy.Eq(V1 + V2, 1), sympy.Eq(V1 + (1 + eps) * V2, 2)]
        with pytest.raises(SingularSystemError) as excinfo:
            LinearSystemSolver().solve(equations, [V1, V2])
        assert excinfo.value.smallest_pivot is not None

    def test_rows_of_very_different_scale_are_not_singular(self):
        g_small, g_large = sympy.Float(1e-7), sympy.Float(1e3)
        equations = [
            sympy.Eq(g_large * V1 + g_small * (V1 - V2), 1),
            sympy.Eq(g_small * (V2 - V1) + g_small * V2, 0),
        ]
        solved = LinearSystemSolver(SolverConfig(mode=SolverMode.NUMERIC)).solve(equations, [V1, V2])

        v1 = 1 / (1e3 + 1e-7 / 2)
        np.testing.assert_allclose(float(solved.values[V1]), v1, rtol=1e-9)
        np.testing.assert_allclose(float(solved.values[V2]), v1 / 2, rtol=1e-9)

    def test_count_mismatch(self):
        solver = LinearSystemSolver()
        with pytest.raises(UnderdeterminedSystemError):
            solver.solve([sympy.Eq(V1, 1)], [V1, V2])
        with pytest.raises(OverdeterminedSystemError) as excinfo:
            solver.solve([sympy.Eq(V1, 1), sympy.Eq(V1, 2)], [V1])
        assert excinfo.value.equation_count == 2
        assert excinfo.value.unknown_count == 1

    def test_nonlinear_equation_is_malformed(self):
        with pytest.raises(MalformedCircuitError):
            LinearSystemSolver().solve([sympy.Eq(V1 * V2, 1), sympy.Eq(V1, 1)], [V1, V2])

    def test_empty_system(self):
        solved = LinearSystemSolver().solve([], [])
        assert solved.values == {}


class TestSolverConfig:

    def test_defaults(self):
        config = SolverConfig()
        assert config.mode is SolverMode.AUTO
        assert config.singular_rtol == 1e-9
        assert config.simplify is True

    def test_parse(self):
        config = parse_solver_config({"mode": "Numeric", "singular_rtol": "1e-12", "simplify": False})
        assert config == SolverConfig(mode=SolverMode.NUMERIC, singular_rtol=1e-12, simplify=False)

    def test_parse_empty_gives_defaults(self):
        assert parse_solver_config(None) == SolverConfig()
        assert parse_solver_config({}) == SolverConfig()

    @pytest.mark.parametrize("raw", [
        {"mode": "fastest"},
        {"singular_rtol": -1},
        {"singular_rtol": "tiny"},
        {"simplify": "yes"},
        {"tolerance": 1e-3},
    ])
    def test_parse_errors(self, raw):
        with pytest.raises(ConfigParsingError):
            parse_solver_config(raw)

    def test_config_is_frozen(self):
        config = SolverConfig()
        with pytest.raises(AttributeError):
            config.mode = SolverMode.NUMERIC
