"""
End-to-end tests for SDDPSolver and simulate.
"""

import logging

import pytest
import numpy as np

from conftest import TWO_STAGE_OPTIMUM, build_hydro_stage, build_hydro_stage_profit


class TestTrainingConvergence:
    """Training reaches known optima."""

    @pytest.mark.integration
    def test_two_stage_optimum(self, hydro_model):
        """The bound reaches the closed-form optimum 250/9."""
        from stochdual import SDDPSolver, SolveOptions

        result = SDDPSolver(hydro_model, SolveOptions(max_iterations=30, convergence_frequency=0, seed=0)).solve()

        assert result.status == "max_iterations"
        assert result.iterations == 30
        assert result.bound == pytest.approx(TWO_STAGE_OPTIMUM, rel=1e-4)

    @pytest.mark.integration
    def test_maximization_optimum(self):
        """The profit form converges to minus the cost optimum."""
        from stochdual import SDDPModel, SDDPSolver, SolveOptions

        model = SDDPModel(build_hydro_stage_profit, n_stages=2, initial_state=[5.0], sense="max",
                          value_to_go_bound=0.0)
        result = SDDPSolver(model, SolveOptions(max_iterations=30, convergence_frequency=0, seed=0)).solve()

        assert result.bound == pytest.approx(-TWO_STAGE_OPTIMUM, rel=1e-4)
        bounds = [entry.bound for entry in result.history]
        assert all(b2 <= b1 + 1e-7 for b1, b2 in zip(bounds, bounds[1:]))

    def test_bound_is_monotone(self, three_stage_model):
        """Without cut selection the lower bound never decreases."""
        from stochdual import SDDPSolver, SolveOptions

        result = SDDPSolver(three_stage_model, SolveOptions(max_iterations=15, convergence_frequency=0, seed=3)).solve()

        bounds = [entry.bound for entry in result.history]
        assert all(b2 >= b1 - 1e-7 for b1, b2 in zip(bounds, bounds[1:]))

    def test_level_one_bound_stays_valid(self, three_stage_model):
        """Cut selection never lifts the bound above the unselected run."""
        from stochdual import SDDPModel, SDDPSolver, SolveOptions

        opts = dict(max_iterations=15, convergence_frequency=0, seed=3)
        reference = SDDPModel(build_hydro_stage, n_stages=3, initial_state=[5.0], value_to_go_bound=0.0)
        full = SDDPSolver(reference, SolveOptions(**opts)).solve()
        selected = SDDPSolver(
            three_stage_model,
            SolveOptions(cut_selection="level_one", cut_selection_frequency=2, **opts),
        ).solve()

        loaded = three_stage_model.stage_problems[0][0].cuts
        assert len(loaded) <= three_stage_model.stagecuts[0][0].n_cuts
        # both are lower bounds of the same problem, whose cost is below 50 per stage
        assert 0 < selected.bound <= 150.0
        assert 0 < full.bound <= 150.0

    def test_markov_model_trains(self, markov_model):
        """A Markov-modulated model trains with several workers."""
        from stochdual import SDDPSolver, SerialPool, SolveOptions

        opts = SolveOptions(max_iterations=5, backward_passes=2, forward_passes=10, convergence_frequency=5, seed=0)
        result = SDDPSolver(markov_model, opts, SerialPool(2)).solve()

        assert result.iterations == 5
        assert result.bound > 0
        assert result.n_cuts == markov_model.n_cuts > 0
        assert not np.isnan(result.ci[0])

    def test_stage_dependent_risk(self):
        """Risk aversion in the first stage raises the bound."""
        from stochdual import NestedCVaR, SDDPModel, SDDPSolver, SolveOptions, StageDependentRisk

        opts = SolveOptions(max_iterations=20, convergence_frequency=0, seed=0)
        neutral = SDDPModel(build_hydro_stage, n_stages=2, initial_state=[5.0], value_to_go_bound=0.0)
        averse = SDDPModel(build_hydro_stage, n_stages=2, initial_state=[5.0], value_to_go_bound=0.0,
                           risk_measure=StageDependentRisk({0: NestedCVaR(beta=1 / 3, lambda_=0.0)}))

        assert SDDPSolver(averse, opts).solve().bound > SDDPSolver(neutral, opts).solve().bound


class TestStoppingRules:
    """Convergence, iteration and time limits."""

    def test_converged(self, hydro_model):
        """An infinite tolerance converges at the first test."""
        from stochdual import SDDPSolver, SolveOptions

        opts = SolveOptions(max_iterations=10, convergence_frequency=1, tolerance=np.inf, seed=0)
        result = SDDPSolver(hydro_model, opts).solve()

        assert result.status == "converged"
        assert result.converged
        assert result.iterations == 1
        assert result.history[-1].converged

    def test_time_limit(self, hydro_model):
        """A tiny time limit stops after one round."""
        from stochdual import SDDPSolver, SolveOptions

        result = SDDPSolver(hydro_model, SolveOptions(max_iterations=10, time_limit=1e-9)).solve()

        assert result.status == "time_limit"
        assert result.iterations == 1

    def test_zero_iterations(self, hydro_model):
        """No rounds leave the model untrained."""
        from stochdual import SDDPSolver, SolveOptions

        result = SDDPSolver(hydro_model, SolveOptions(max_iterations=0)).solve()

        assert result.iterations == 0
        assert result.bound is None
        assert "n/a" in result.summary()


class TestReporting:
    """Logging, summaries and simulation."""

    def test_iteration_log(self, hydro_model, caplog):
        """One INFO line per iteration and a stopping line."""
        from stochdual import SDDPSolver, SolveOptions

        caplog.set_level(logging.INFO, logger="stochdual")
        SDDPSolver(hydro_model, SolveOptions(max_iterations=3, convergence_frequency=0, seed=0)).solve()

        messages = [r.getMessage() for r in caplog.records if r.name == "stochdual.training"]
        assert sum(m.startswith("iter") for m in messages) == 3
        assert any("stopped: max_iterations" in m for m in messages)

    def test_summary(self, hydro_model):
        """summary() reports the run."""
        from stochdual import SDDPSolver, SolveOptions

        result = SDDPSolver(hydro_model, SolveOptions(max_iterations=2, seed=0)).solve()
        summary = result.summary()

        assert "SDDP Training Summary" in summary
        assert "Bound" in summary
        assert "max_iterations" in repr(result)

    @pytest.mark.slow
    def test_simulated_cost_matches_bound(self, hydro_model):
        """The trained policy costs about the optimum on average."""
        from stochdual import SDDPSolver, SolveOptions, simulate
        from stochdual.training import objective_statistics

        SDDPSolver(hydro_model, SolveOptions(max_iterations=30, convergence_frequency=0, seed=0)).solve()
        results = simulate(hydro_model, 500, ["volume", "thermal"], seed=1)
        mean, std = objective_statistics(results)

        assert len(results["Objective"]) == 500
        # the policy cost is an upper bound of the optimum in expectation
        assert mean >= TWO_STAGE_OPTIMUM - 4 * std / np.sqrt(500)
        assert mean <= TWO_STAGE_OPTIMUM + 10.0

    def test_objective_statistics(self):
        """Mean and sample standard deviation."""
        from stochdual.training import objective_statistics

        assert objective_statistics({"Objective": [1.0, 3.0]}) == pytest.approx((2.0, np.sqrt(2.0)))
        assert objective_statistics({"Objective": [4.0]}) == (4.0, 0.0)
