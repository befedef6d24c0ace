"""
pytest configuration and fixtures for stochdual tests.
"""

import pytest
import numpy as np

from stochdual import LinearStageProblem


# ============================================================================
# Stage builders
# ============================================================================
#
# Hydro-thermal scheduling with one reservoir:
#
#     y = [volume_out, hydro, thermal, spill]
#     volume_out + hydro + spill - volume_in = inflow
#     hydro + thermal                        = demand (10)
#     volume_out <= 20, thermal costs 5 per unit
#
# Inflows {0, 5, 10} are equiprobable. Builders are module-level functions
# so that process pools can pickle them.

INFLOWS = [0.0, 5.0, 10.0]
DEMAND = 10.0
THERMAL_COST = 5.0

# closed form optimum of the two-stage problem starting from volume 5
TWO_STAGE_OPTIMUM = 250.0 / 9.0


def _hydro_stage(thermal_cost, inflows=INFLOWS, demand=DEMAND):
    return LinearStageProblem(
        c=[0.0, 0.0, thermal_cost, 0.0],
        A=[[1.0, 1.0, 0.0, 1.0], [0.0, 1.0, 1.0, 0.0]],
        A_in=[[-1.0], [0.0]],
        b=[[inflow, demand] for inflow in inflows],
        senses=["=", "="],
        state_out=[0],
        ub=[20.0, np.inf, np.inf, np.inf],
        names=["volume", "hydro", "thermal", "spill"],
    )


def build_hydro_stage(stage, markov_state):
    """Cost-minimizing hydro-thermal stage."""
    return _hydro_stage(THERMAL_COST)


def build_hydro_stage_profit(stage, markov_state):
    """The same stage written as profit maximization."""
    return _hydro_stage(-THERMAL_COST)


def build_markov_hydro_stage(stage, markov_state):
    """Markov state 0 is a dry season, state 1 a wet one."""
    if markov_state == 0:
        return _hydro_stage(THERMAL_COST, inflows=[0.0, 2.0])
    return _hydro_stage(THERMAL_COST, inflows=[8.0, 12.0])


def build_infeasible_second_stage(stage, markov_state):
    """Second stage cannot meet demand: no thermal and hydro limited to 1."""
    problem = _hydro_stage(THERMAL_COST)
    if stage >= 1:
        problem.ub = np.array([20.0, 1.0, 0.0, np.inf])
    return problem


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def hydro_model():
    """Two-stage hydro-thermal model, starting from volume 5."""
    from stochdual import SDDPModel

    return SDDPModel(build_hydro_stage, n_stages=2, initial_state=[5.0], value_to_go_bound=0.0)


@pytest.fixture
def three_stage_model():
    """Three-stage hydro-thermal model, starting from volume 5."""
    from stochdual import SDDPModel

    return SDDPModel(build_hydro_stage, n_stages=3, initial_state=[5.0], value_to_go_bound=0.0)


@pytest.fixture
def markov_model():
    """Three-stage model with a two-state Markov chain on the inflows."""
    from stochdual import SDDPModel

    return SDDPModel(
        build_markov_hydro_stage,
        n_stages=3,
        initial_state=[5.0],
        n_markov_states=2,
        transition=[[0.75, 0.25], [0.3, 0.7]],
        initial_markov_probability=[0.5, 0.5],
        value_to_go_bound=0.0,
    )


@pytest.fixture
def simple_lp():
    """
    Simple LP problem for testing.

    minimize: -x - y
    subject to: x + 2y <= 10
                3x + y <= 15
                x, y >= 0

    Optimal: x=4, y=3, obj=-7, row duals -0.4 and -0.2
    """
    return {
        "c": np.array([-1.0, -1.0]),
        "A": np.array([[1.0, 2.0], [3.0, 1.0]]),
        "b": np.array([10.0, 15.0]),
        "lb": np.array([0.0, 0.0]),
        "ub": np.array([np.inf, np.inf]),
        "expected_obj": -7.0,
        "expected_x": np.array([4.0, 3.0]),
        "expected_y": np.array([-0.4, -0.2]),
    }


@pytest.fixture
def scenario_batch():
    """
    Three scenarios for cut tests.

    theta = [10, 20, 30], uniform probabilities, one state dimension.
    """
    return {
        "x": np.array([2.0]),
        "pi": np.array([[1.0], [2.0], [3.0]]),
        "theta": np.array([10.0, 20.0, 30.0]),
        "prob": np.array([1.0, 1.0, 1.0]) / 3.0,
    }


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")
