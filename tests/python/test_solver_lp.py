"""
Tests for the LP layer used by stage subproblems.
"""

import pytest
import numpy as np

from stochdual import SolveResult, Status, solve
from stochdual.exceptions import ConfigurationError, DimensionError


class TestSolveLPSimple:
    """Tests for simple LP problems."""

    def test_solve_simple_lp(self, simple_lp):
        """Test solving a simple LP with inequality rows."""
        result = solve(
            c=simple_lp["c"],
            A=simple_lp["A"],
            b=simple_lp["b"],
            lb=simple_lp["lb"],
            ub=simple_lp["ub"],
            constraint_senses=["<=", "<="],
        )

        assert isinstance(result, SolveResult)
        assert result.status == Status.OPTIMAL
        assert result.solve_time > 0
        np.testing.assert_allclose(result.objective, simple_lp["expected_obj"], atol=1e-8)
        np.testing.assert_allclose(result.x, simple_lp["expected_x"], atol=1e-8)

    def test_row_duals(self, simple_lp):
        """Row duals are derivatives of the objective w.r.t. the rhs."""
        result = solve(
            c=simple_lp["c"],
            A=simple_lp["A"],
            b=simple_lp["b"],
            constraint_senses=["<=", "<="],
        )
        np.testing.assert_allclose(result.y, simple_lp["expected_y"], atol=1e-8)

    def test_duals_match_finite_differences(self, simple_lp):
        """Perturbing each rhs changes the objective by the dual."""
        base = solve(c=simple_lp["c"], A=simple_lp["A"], b=simple_lp["b"], constraint_senses=["<=", "<="])
        h = 1e-3
        for i in range(2):
            b = simple_lp["b"].copy()
            b[i] += h
            bumped = solve(c=simple_lp["c"], A=simple_lp["A"], b=b, constraint_senses=["<=", "<="])
            np.testing.assert_allclose((bumped.objective - base.objective) / h, base.y[i], atol=1e-6)

    def test_greater_equal_row(self):
        """A >= row has a non-negative dual for minimization."""
        result = solve(c=[1.0, 1.0], A=[[1.0, 1.0]], b=[2.0], constraint_senses=[">="])

        assert result.status == Status.OPTIMAL
        np.testing.assert_allclose(result.objective, 2.0)
        np.testing.assert_allclose(result.y, [1.0], atol=1e-9)

    def test_equality_rows_from_b(self):
        """b without senses means equality rows."""
        result = solve(c=[1.0, 2.0], A=[[1.0, 1.0]], b=[3.0])

        np.testing.assert_allclose(result.x, [3.0, 0.0], atol=1e-9)
        np.testing.assert_allclose(result.y, [1.0], atol=1e-9)

    def test_two_sided_rows(self):
        """constraint_l <= A x <= constraint_u."""
        result = solve(c=[1.0], A=[[1.0]], constraint_l=[1.0], constraint_u=[3.0])

        np.testing.assert_allclose(result.x, [1.0], atol=1e-9)
        np.testing.assert_allclose(result.y, [1.0], atol=1e-9)

    def test_free_variables(self):
        """Infinite bounds are passed as free."""
        result = solve(
            c=[1.0], A=[[1.0]], b=[-4.0], constraint_senses=[">="],
            lb=[-np.inf], ub=[np.inf],
        )
        np.testing.assert_allclose(result.x, [-4.0], atol=1e-9)


class TestSolveStatus:
    """Tests for non-optimal outcomes."""

    def test_infeasible(self):
        """Contradictory rows are reported as primal infeasible."""
        result = solve(c=[1.0], A=[[1.0], [1.0]], b=[1.0, 2.0], constraint_senses=["<=", ">="])

        assert result.status == Status.PRIMAL_INFEASIBLE
        assert not result.status.is_successful
        assert np.all(np.isnan(result.x))

    def test_unbounded(self):
        """An objective decreasing without limit is dual infeasible."""
        result = solve(c=[-1.0], lb=[0.0], ub=[np.inf])

        assert result.status == Status.DUAL_INFEASIBLE


class TestInputValidation:
    """Tests for input validation."""

    def test_dimension_mismatch_A_c(self):
        """Test error on A/c dimension mismatch."""
        with pytest.raises(DimensionError):
            solve(c=np.array([1, 2, 3]), A=np.array([[1, 2]]), b=np.array([10]))

    def test_dimension_mismatch_senses(self):
        """Test error on senses/rows mismatch."""
        with pytest.raises(DimensionError):
            solve(c=[1.0, 2.0], A=[[1.0, 2.0], [3.0, 4.0]], b=[10.0, 5.0], constraint_senses=["<="])

    def test_bounds_mismatch(self):
        """Test error on bounds of the wrong length."""
        with pytest.raises(DimensionError):
            solve(c=[1.0, 2.0], lb=[0.0])

    def test_unknown_sense(self):
        """Test error on an unknown row sense."""
        with pytest.raises(ConfigurationError, match="sense"):
            solve(c=[1.0], A=[[1.0]], b=[1.0], constraint_senses=["!="])

    def test_senses_without_b(self):
        """Senses need a right-hand side."""
        with pytest.raises(ConfigurationError):
            solve(c=[1.0], A=[[1.0]], constraint_senses=["<="])


class TestSolveResult:
    """Tests for SolveResult class."""

    def test_result_summary(self, simple_lp):
        """Test SolveResult summary method."""
        result = solve(c=simple_lp["c"], A=simple_lp["A"], b=simple_lp["b"], constraint_senses=["<=", "<="])

        summary = result.summary()
        assert isinstance(summary, str)
        assert "Status" in summary
        assert "Objective" in summary
        assert "optimal" in repr(result)
