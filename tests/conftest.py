"""Pytest configuration and fixtures for arus tests."""

import pytest
import numpy as np


@pytest.fixture
def small_grid():
    """Coarse grid for quick tests."""
    from arus import TwoDGrid
    return TwoDGrid(nx=16, Lx=2 * np.pi)


@pytest.fixture
def two_layer_params():
    """Two-layer flow parameters of the default scenario."""
    from arus import MultiLayerParams
    return MultiLayerParams(
        nlayers=2,
        H=[0.2, 0.8],
        rho=[4.0, 5.0],
        U=[1.0, 0.0],
        mu=5e-2,
        beta=5.0
    )


@pytest.fixture
def small_flow(small_grid, two_layer_params):
    """Two-layer flow with random initial PV."""
    from arus import FlowProblem
    flow = FlowProblem(small_grid, two_layer_params, dt=1e-2)
    flow.set_random_q(amplitude=1e-2, seed=1234)
    return flow


@pytest.fixture
def small_problem(small_flow):
    """Coupled problem with a Gaussian tracer released at t = 0."""
    from arus import TracerProblem, CoupledProblem
    from arus.core.inits import gaussian_blob

    tracer = TracerProblem.released_into(small_flow, kappa=0.01)
    tracer.set_c(gaussian_blob(small_flow.grid, amplitude=1.0, spread=0.5))
    return CoupledProblem(small_flow, tracer)


@pytest.fixture
def small_config():
    """Quick two-layer configuration."""
    from arus import ConfigManager
    config = ConfigManager.get_default_config('case1')
    config.update({
        'scenario_name': 'Test',
        'nx': 16,
        'dt': 1e-2,
        'tracer_release_time': 0.05,
        'tracer_spread': 0.5,
        'num_steps': 20,
        'snapshot_interval': 10,
        'save_gif': False,
    })
    return config


class RecordingStore:
    """Store stand-in that records the tracer step of every append."""

    def __init__(self, problem):
        self.problem = problem
        self.steps = []
        self.concentrations = []

    def append(self):
        self.steps.append(self.problem.clock.step)
        self.concentrations.append(self.problem.tracer.concentration())


@pytest.fixture
def recording_store():
    return RecordingStore
