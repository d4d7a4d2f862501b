"""
Tests for arus core functionality.

Run with: pytest tests/ -v
"""

import re
import numpy as np
import pytest

from arus import (
    TwoDGrid,
    MultiLayerParams,
    FlowProblem,
    FlowField,
    TracerProblem,
    CoupledProblem,
    Coordinator,
    DivergenceError,
    SnapshotWriteError,
    extract_concentration,
    extract_streamfunction,
    compute_tracer_mass,
    compute_tracer_variance,
    compute_kinetic_energy,
    compute_all_diagnostics,
)
from arus.core.timesteppers import Clock, ForwardEuler, RK4, FilteredRK4, make_stepper
from arus.core.flow import streamfunction_from_pv, pv_from_streamfunction
from arus.core.inits import gaussian_blob, random_layered_field
from arus.core.diagnostics import compute_cfl, compute_diagnostics_timeseries
from arus.io.snapshot_store import Snapshot


class TestTwoDGrid:
    """Test the periodic grid."""

    def test_shapes(self, small_grid):
        """Test physical and spectral shapes."""
        assert small_grid.physical_shape == (16, 16)
        assert small_grid.spectral_shape == (16, 9)
        assert small_grid.X.shape == (16, 16)
        assert small_grid.Krsq.shape == (16, 9)

    def test_coordinates(self, small_grid):
        """Test coordinates start at -L/2 with uniform spacing."""
        assert np.isclose(small_grid.x[0], -np.pi)
        assert np.isclose(small_grid.dx, 2 * np.pi / 16)
        assert np.allclose(np.diff(small_grid.y), small_grid.dy)
        assert small_grid.x[-1] < np.pi

    def test_rectangular_defaults(self):
        """Test ny and Ly default to nx and Lx."""
        grid = TwoDGrid(nx=8, Lx=4.0)
        assert grid.ny == 8
        assert grid.Ly == 4.0

    @pytest.mark.parametrize("kwargs", [
        {'nx': 2},
        {'nx': 15},
        {'nx': 16, 'Lx': -1.0},
        {'nx': 16, 'aliased_fraction': 1.0},
    ])
    def test_invalid_grid(self, kwargs):
        """Test invalid grids are rejected."""
        with pytest.raises(ValueError):
            TwoDGrid(**kwargs)

    def test_transform_inverse(self, small_grid):
        """Test irfft undoes rfft."""
        f = np.sin(small_grid.X) * np.cos(2 * small_grid.Y)
        assert np.allclose(small_grid.irfft(small_grid.rfft(f)), f)

    def test_inverse_wavenumber_zero_mode(self, small_grid):
        """Test 1/K² is zero for the mean mode."""
        assert small_grid.invKrsq[0, 0] == 0.0
        assert np.isclose(small_grid.invKrsq[1, 0] * small_grid.Krsq[1, 0], 1.0)

    def test_filter_values(self, small_grid):
        """Test filter is one at large scales and tol at the Nyquist mode."""
        assert small_grid.filter[0, 0] == 1.0
        assert small_grid.filter[1, 1] == 1.0
        assert np.all(small_grid.filter <= 1.0)
        assert np.all(small_grid.filter >= 0.0)
        # |kx| dx / π = 1 at the Nyquist wavenumber
        assert np.isclose(small_grid.filter[8, 0], 1e-15, rtol=1e-6)

    def test_dealias(self):
        """Test dealiasing zeros the outer modes only."""
        grid = TwoDGrid(nx=16, aliased_fraction=1 / 3)
        fh = np.ones((2,) + grid.spectral_shape, dtype=np.complex128)
        grid.dealias(fh)

        assert fh[0, 0, 0] == 1.0
        assert fh[1, 1, 1] == 1.0
        assert fh[0, 8, 0] == 0.0
        assert fh[0, 0, 8] == 0.0

    def test_no_dealias_by_default(self, small_grid):
        """Test aliased_fraction=0 leaves fields untouched."""
        fh = np.ones(small_grid.spectral_shape, dtype=np.complex128)
        small_grid.dealias(fh)
        assert np.all(fh == 1.0)


class TestTimesteppers:
    """Test time-stepping schemes."""

    def test_clock_tick(self):
        """Test clock increments step and time."""
        clock = Clock(dt=0.5)
        clock.tick()
        clock.tick()
        assert clock.step == 2
        assert clock.t == 1.0

    def test_forward_euler(self):
        """Test a single Euler step of dy/dt = -y."""
        clock = Clock(dt=0.1)
        sol = ForwardEuler().step(np.ones(3, dtype=complex), lambda s: -s, clock)
        assert np.allclose(sol, 0.9)
        assert clock.step == 1

    def test_rk4_accuracy(self):
        """Test RK4 integrates dy/dt = -y to t = 1."""
        clock = Clock(dt=0.1)
        stepper = RK4()
        sol = np.ones(1, dtype=complex)
        for _ in range(10):
            sol = stepper.step(sol, lambda s: -s, clock)

        assert np.isclose(clock.t, 1.0)
        assert np.allclose(sol, np.exp(-1.0), atol=1e-5)

    def test_filtered_rk4_applies_filter(self, small_grid):
        """Test filtered RK4 damps the grid-scale modes."""
        clock = Clock(dt=1e-3)
        sol = np.ones(small_grid.spectral_shape, dtype=complex)
        sol = FilteredRK4(small_grid).step(sol, lambda s: 0 * s, clock)

        assert np.allclose(sol, small_grid.filter)

    def test_filtered_rk4_needs_grid(self):
        """Test filtered RK4 refuses to run without a grid."""
        with pytest.raises(ValueError):
            FilteredRK4(None)

    def test_make_stepper(self, small_grid):
        """Test stepper lookup by name."""
        assert isinstance(make_stepper('RK4', small_grid), RK4)
        assert isinstance(make_stepper('FilteredRK4', small_grid), FilteredRK4)
        with pytest.raises(ValueError):
            make_stepper('LSRK54', small_grid)


class TestMultiLayerParams:
    """Test layered flow parameters."""

    def test_reduced_gravity(self, two_layer_params):
        """Test g' = g (ρ₂ - ρ₁) / ρ₂."""
        assert np.allclose(two_layer_params.g_prime, [0.2])

    def test_stretching_matrix(self, two_layer_params):
        """Test F for the default two-layer configuration."""
        F = two_layer_params.stretching_matrix
        assert np.allclose(F, [[-25.0, 25.0], [6.25, -6.25]])
        assert np.allclose(F.sum(axis=1), 0.0)

    def test_background_pv_gradient(self, two_layer_params):
        """Test Qy = β - F U."""
        assert np.allclose(two_layer_params.Qy, [30.0, -1.25])

    def test_deformation_radius(self, two_layer_params):
        """Test the first baroclinic deformation radius."""
        assert np.isclose(two_layer_params.deformation_radius, 1 / np.sqrt(31.25))

    def test_single_layer(self):
        """Test a barotropic configuration."""
        params = MultiLayerParams(nlayers=1, H=[1.0], rho=[1.0], U=[0.0])
        assert params.deformation_radius is None
        assert np.allclose(params.stretching_matrix, 0.0)
        assert np.allclose(params.Qy, params.beta)

    def test_unstable_stratification(self):
        """Test densities decreasing downward are rejected."""
        with pytest.raises(ValueError):
            MultiLayerParams(nlayers=2, H=[0.2, 0.8], rho=[5.0, 4.0], U=[1.0, 0.0])

    def test_wrong_layer_count(self):
        """Test layer lists must match nlayers."""
        with pytest.raises(ValueError):
            MultiLayerParams(nlayers=3, H=[0.2, 0.8], rho=[4.0, 5.0], U=[1.0, 0.0])

    def test_describe(self, two_layer_params):
        """Test description mentions the layers."""
        assert "Layers: 2" in two_layer_params.describe()


class TestFlowProblem:
    """Test the multi-layer QG flow."""

    def test_single_layer_inversion(self, small_grid):
        """Test ∇²ψ = q for one layer: q = cos x gives ψ = -cos x."""
        params = MultiLayerParams(nlayers=1, H=[1.0], rho=[1.0], U=[0.0])
        flow = FlowProblem(small_grid, params, dt=1e-2)
        flow.set_q(np.cos(small_grid.X))

        psi = flow.streamfunction()
        assert psi.shape == (1, 16, 16)
        assert np.allclose(psi[0], -np.cos(small_grid.X), atol=1e-12)

    def test_layered_inversion(self, small_flow):
        """Test S applied to the inverted streamfunction recovers q."""
        qh = small_flow.sol.copy()
        psih = streamfunction_from_pv(qh, small_flow.S_inv)
        qh_back = pv_from_streamfunction(psih, small_flow.S)

        qh[:, 0, 0] = 0.0
        assert np.allclose(qh_back, qh)

    def test_seeded_initial_condition(self, small_grid, two_layer_params):
        """Test the random PV field is reproducible from its seed."""
        flows = []
        for seed in (1, 1, 2):
            flow = FlowProblem(small_grid, two_layer_params, dt=1e-2)
            flow.set_random_q(seed=seed)
            flows.append(flow)

        assert np.array_equal(flows[0].sol, flows[1].sol)
        assert not np.array_equal(flows[0].sol, flows[2].sol)

    def test_random_field_shape(self, small_grid):
        """Test layered noise has one field per layer."""
        field = random_layered_field(small_grid, 3, seed=7)
        assert field.shape == (3, 16, 16)

    def test_set_q_wrong_shape(self, small_flow):
        """Test set_q rejects fields with the wrong layer count."""
        with pytest.raises(ValueError):
            small_flow.set_q(np.zeros((3, 16, 16)))

    def test_flow_field_includes_mean_flow(self, small_grid, two_layer_params):
        """Test the flow handed to the tracer includes U."""
        flow = FlowProblem(small_grid, two_layer_params, dt=1e-2)
        ff = flow.flow_field()

        assert np.allclose(ff.u[0], 1.0)
        assert np.allclose(ff.u[1], 0.0)
        assert np.allclose(ff.v, 0.0)

    def test_flow_field_read_only(self, small_flow):
        """Test flow views cannot be modified."""
        ff = small_flow.flow_field()
        with pytest.raises(ValueError):
            ff.u[0, 0, 0] = 1.0
        with pytest.raises(ValueError):
            ff.q[0, 0, 0] = 1.0

    def test_velocities_are_non_divergent(self, small_flow):
        """Test ∂u/∂x + ∂v/∂y = 0."""
        grid = small_flow.grid
        u, v = small_flow.velocities()
        div = grid.irfft(1j * grid.kx * grid.rfft(u) + 1j * grid.ky * grid.rfft(v))
        assert np.max(np.abs(div)) < 1e-12

    def test_advance(self, small_flow):
        """Test advancing changes the state and ticks the clock."""
        q0 = small_flow.current_state()
        small_flow.advance()

        assert small_flow.clock.step == 1
        assert np.isclose(small_flow.clock.t, 1e-2)
        assert not np.allclose(small_flow.current_state(), q0)
        assert small_flow.is_finite()

    def test_invalid_dt(self, small_grid, two_layer_params):
        """Test non-positive dt is rejected."""
        with pytest.raises(ValueError):
            FlowProblem(small_grid, two_layer_params, dt=0.0)


class TestTracerProblem:
    """Test passive tracer advection-diffusion."""

    def test_pure_diffusion(self, small_grid):
        """Test c = cos 2x decays as exp(-4κt) in a flow at rest."""
        kappa = 0.1
        tracer = TracerProblem(
            small_grid, FlowField.at_rest(small_grid, 1),
            kappa=kappa, dt=1e-2, stepper='RK4'
        )
        tracer.set_c(np.cos(2 * small_grid.X))

        for _ in range(50):
            tracer.advance()

        expected = np.cos(2 * small_grid.X) * np.exp(-4 * kappa * tracer.clock.t)
        assert np.allclose(tracer.concentration()[0], expected, atol=1e-8)

    def test_uniform_advection(self, small_grid):
        """Test a uniform zonal flow translates the tracer."""
        ones = np.ones((1, 16, 16))
        ff = FlowField(t=0.0, step=0, q=0 * ones, u=ones.copy(), v=0 * ones)
        tracer = TracerProblem(small_grid, ff, kappa=0.0, dt=1e-2, stepper='RK4')
        tracer.set_c(np.sin(small_grid.X))

        for _ in range(100):
            tracer.advance()

        expected = np.sin(small_grid.X - tracer.clock.t)
        assert np.allclose(tracer.concentration()[0], expected, atol=1e-6)

    def test_mass_conservation(self, small_problem):
        """Test tracer mass is conserved in every layer."""
        grid = small_problem.grid
        mass0 = compute_tracer_mass(small_problem.tracer.concentration(), grid)
        for _ in range(20):
            small_problem.advance()
        mass1 = compute_tracer_mass(small_problem.tracer.concentration(), grid)

        assert np.allclose(mass1, mass0, rtol=1e-10)

    def test_set_c_broadcasts(self, small_problem):
        """Test a 2D field is copied into every layer."""
        blob = gaussian_blob(small_problem.grid, amplitude=2.0, spread=0.5)
        small_problem.tracer.set_c(blob)
        c = small_problem.tracer.concentration()

        assert c.shape == (2, 16, 16)
        assert np.allclose(c[0], blob)
        assert np.allclose(c[1], blob)

    def test_set_c_wrong_shape(self, small_problem):
        """Test set_c rejects mismatched fields."""
        with pytest.raises(ValueError):
            small_problem.tracer.set_c(np.zeros((3, 16, 16)))

    def test_sync_flow_wrong_layers(self, small_problem):
        """Test flows with a different layer count are rejected."""
        with pytest.raises(ValueError):
            small_problem.tracer.sync_flow(FlowField.at_rest(small_problem.grid, 3))

    def test_negative_kappa(self, small_grid):
        """Test negative diffusivity is rejected."""
        with pytest.raises(ValueError):
            TracerProblem(small_grid, FlowField.at_rest(small_grid), kappa=-1.0, dt=1e-2)

    def test_release_after_spin_up(self, small_flow):
        """Test the flow is spun up past the release time before the tracer starts."""
        tracer = TracerProblem.released_into(
            small_flow, kappa=0.01, tracer_release_time=0.05
        )

        assert small_flow.clock.t > 0.05
        assert small_flow.clock.step >= 5
        assert tracer.clock.step == 0
        assert tracer.clock.t == 0.0
        assert tracer.clock.dt == small_flow.clock.dt
        assert tracer.stepper_name == small_flow.stepper_name
        assert tracer.flow_field.step == small_flow.clock.step

    def test_release_without_spin_up(self, small_flow):
        """Test a zero release time leaves the flow untouched."""
        TracerProblem.released_into(small_flow, kappa=0.01)
        assert small_flow.clock.step == 0

    def test_concentration_unchanged_until_advance(self, small_flow):
        """Test releasing into a spun-up flow does not move the tracer."""
        tracer = TracerProblem.released_into(
            small_flow, kappa=0.01, tracer_release_time=0.05
        )
        blob = gaussian_blob(small_flow.grid, amplitude=1.0, spread=0.5)
        tracer.set_c(blob)

        assert np.allclose(tracer.concentration()[0], blob)
        tracer.advance()
        assert not np.allclose(tracer.concentration()[0], blob)


class TestExtractors:
    """Test derived-field extraction."""

    def test_concentration_does_not_mutate_state(self, small_problem):
        """Test extraction leaves the tracer solution intact."""
        sol_before = small_problem.tracer.sol.copy()
        first = extract_concentration(small_problem)
        second = extract_concentration(small_problem)

        assert np.array_equal(small_problem.tracer.sol, sol_before)
        assert np.array_equal(first, second)

    def test_streamfunction_does_not_mutate_state(self, small_problem):
        """Test extraction leaves the flow solution intact."""
        sol_before = small_problem.flow.sol.copy()
        psi = extract_streamfunction(small_problem)
        second = extract_streamfunction(small_problem)

        assert np.array_equal(small_problem.flow.sol, sol_before)
        assert np.allclose(psi, small_problem.flow.streamfunction())
        assert np.array_equal(psi, second)

    def test_results_are_independent(self, small_problem):
        """Test modifying an extracted field does not affect the next one."""
        first = extract_concentration(small_problem)
        first[:] = 0.0
        second = extract_concentration(small_problem)
        assert np.max(np.abs(second)) > 0.1

    def test_extracted_shape(self, small_problem):
        """Test fields are (nlayers, nx, ny)."""
        assert extract_concentration(small_problem).shape == (2, 16, 16)
        assert extract_streamfunction(small_problem).shape == (2, 16, 16)


class TestCoupledProblem:
    """Test the flow-tracer pairing."""

    def test_update_order(self, small_problem, monkeypatch):
        """Test tracer advances, then flow, then the tracer is resynced."""
        calls = []
        tracer, flow = small_problem.tracer, small_problem.flow

        def record(name, method):
            def wrapper(*args, **kwargs):
                calls.append(name)
                return method(*args, **kwargs)
            return wrapper

        monkeypatch.setattr(tracer, 'advance', record('tracer.advance', tracer.advance))
        monkeypatch.setattr(flow, 'advance', record('flow.advance', flow.advance))
        monkeypatch.setattr(tracer, 'sync_flow', record('tracer.sync_flow', tracer.sync_flow))

        small_problem.advance()
        assert calls == ['tracer.advance', 'flow.advance', 'tracer.sync_flow']

    def test_tracer_uses_pre_step_flow(self, small_problem, monkeypatch):
        """Test the tracer step sees the flow from before the flow step."""
        seen = []
        tracer = small_problem.tracer
        original = tracer.advance

        def wrapper():
            seen.append(tracer.flow_field.step)
            original()

        monkeypatch.setattr(tracer, 'advance', wrapper)

        small_problem.advance()
        small_problem.advance()

        assert seen == [0, 1]
        assert tracer.flow_field.step == small_problem.flow.clock.step == 2

    def test_clocks_advance_together(self, small_problem):
        """Test both clocks tick once per coupled step."""
        for _ in range(3):
            small_problem.advance()
        assert small_problem.clock.step == 3
        assert small_problem.flow.clock.step == 3

    def test_requires_shared_grid(self, small_flow):
        """Test flow and tracer on different grids are rejected."""
        other = TwoDGrid(nx=16)
        tracer = TracerProblem(other, FlowField.at_rest(other, 2), kappa=0.01, dt=1e-2)
        with pytest.raises(ValueError):
            CoupledProblem(small_flow, tracer)

    def test_check_finite(self, small_problem):
        """Test non-finite solutions raise DivergenceError."""
        small_problem.check_finite()
        small_problem.flow.sol[0, 1, 1] = np.inf
        with pytest.raises(DivergenceError):
            small_problem.check_finite()

    def test_from_config(self, small_config):
        """Test building a problem from a scenario configuration."""
        problem = CoupledProblem.from_config(small_config)

        assert problem.nlayers == 2
        assert problem.grid.nx == 16
        assert problem.flow.clock.t > small_config['tracer_release_time']
        assert problem.clock.step == 0
        assert np.isclose(np.max(problem.tracer.concentration()), 10.0, rtol=0.05)

    def test_parameters(self, small_problem):
        """Test the parameter dictionary used for metadata."""
        params = small_problem.parameters()
        assert params['nlayers'] == 2
        assert params['H'] == [0.2, 0.8]
        assert params['kappa'] == 0.01
        assert params['stepper'] == 'FilteredRK4'


class TestCoordinator:
    """Test the stepping loop."""

    def test_snapshot_steps(self, small_problem, recording_store):
        """Test 100 steps saving every 50 writes steps 0, 50 and 100."""
        store = recording_store(small_problem)
        coordinator = Coordinator(small_problem, store, snapshot_interval=50)
        coordinator.run(100)

        assert store.steps == [0, 50, 100]
        assert coordinator.snapshots_written == 3
        assert small_problem.clock.step == 101

    def test_first_snapshot_is_initial_condition(self, small_problem, recording_store):
        """Test the step-0 snapshot is taken before any advance."""
        c0 = small_problem.tracer.concentration()
        store = recording_store(small_problem)
        Coordinator(small_problem, store, snapshot_interval=5).run(5)

        assert np.array_equal(store.concentrations[0], c0)
        assert not np.allclose(store.concentrations[1], c0)

    def test_interval_larger_than_run(self, small_problem, recording_store):
        """Test only the initial snapshot is written for short runs."""
        store = recording_store(small_problem)
        Coordinator(small_problem, store, snapshot_interval=50).run(10)
        assert store.steps == [0]

    def test_run_without_store(self, small_problem):
        """Test runs without output still step."""
        Coordinator(small_problem).run(4)
        assert small_problem.clock.step == 5

    @pytest.mark.parametrize("num_steps", [0, -1, 2.5, True])
    def test_invalid_num_steps(self, small_problem, num_steps):
        """Test num_steps must be a positive integer."""
        with pytest.raises(ValueError):
            Coordinator(small_problem).run(num_steps)

    @pytest.mark.parametrize("interval", [0, -10, 1.5])
    def test_invalid_interval(self, small_problem, interval):
        """Test snapshot_interval must be a positive integer."""
        with pytest.raises(ValueError):
            Coordinator(small_problem, snapshot_interval=interval)

    def test_divergence_aborts(self, small_problem):
        """Test a NaN in the tracer stops the run."""
        small_problem.tracer.sol[0, 1, 1] = np.nan
        with pytest.raises(DivergenceError):
            Coordinator(small_problem).run(5)
        assert small_problem.clock.step == 1

    def test_divergence_is_floating_point_error(self):
        """Test DivergenceError can be caught as FloatingPointError."""
        assert issubclass(DivergenceError, FloatingPointError)

    def test_failed_append_aborts(self, small_problem):
        """Test a failing store stops the run before stepping."""
        class FailingStore:
            def append(self):
                raise SnapshotWriteError("disk full")

        with pytest.raises(SnapshotWriteError):
            Coordinator(small_problem, FailingStore()).run(10)
        assert small_problem.clock.step == 0

    def test_progress_messages(self, small_problem, recording_store):
        """Test the per-snapshot log line."""
        class ListLogger:
            def __init__(self):
                self.messages = []

            def info(self, msg):
                self.messages.append(msg)

        logger = ListLogger()
        store = recording_store(small_problem)
        Coordinator(small_problem, store, snapshot_interval=10, logger=logger).run(10)

        assert len(logger.messages) == 2
        assert re.fullmatch(
            r"Output saved, step: 0000, t: 0\.00, walltime: \d+\.\d{2} min",
            logger.messages[0]
        )
        assert logger.messages[1].startswith("Output saved, step: 0010, t: 0.10,")


class TestDiagnostics:
    """Test diagnostic computations."""

    def test_tracer_mass(self, small_grid):
        """Test mass of a uniform field is c times the area."""
        c = np.ones((2, 16, 16))
        assert np.allclose(compute_tracer_mass(c, small_grid), (2 * np.pi)**2)

    def test_tracer_variance(self):
        """Test variance per layer."""
        c = np.zeros((2, 4, 4))
        c[1, :2] = 1.0
        assert np.allclose(compute_tracer_variance(c), [0.0, 0.25])

    def test_kinetic_energy(self, small_grid):
        """Test ψ = cos x has kinetic energy 1/4."""
        psi = np.cos(small_grid.X)[np.newaxis]
        assert np.allclose(compute_kinetic_energy(psi, small_grid), 0.25)

    def test_cfl(self, small_grid):
        """Test CFL of a uniform unit flow."""
        ones = np.ones((1, 16, 16))
        ff = FlowField(t=0.0, step=0, q=0 * ones, u=ones, v=0 * ones)
        assert np.isclose(compute_cfl(ff, 0.1, small_grid), 0.1 / small_grid.dx)
        assert compute_cfl(FlowField.at_rest(small_grid), 0.1, small_grid) == 0.0

    def test_all_diagnostics(self, small_grid):
        """Test summary metrics from two snapshots."""
        c0 = np.zeros((1, 16, 16))
        c0[0, 0, 0] = 1.0
        c1 = np.full((1, 16, 16), 1.0 / 256)
        snapshots = [
            Snapshot(step=0, t=0.0, flow_t=1.0, fields={'concentration': c0}),
            Snapshot(step=10, t=0.1, flow_t=1.1, fields={'concentration': c1}),
        ]

        diagnostics = compute_all_diagnostics(snapshots, small_grid)

        assert diagnostics['n_snapshots'] == 2
        assert diagnostics['step_final'] == 10
        assert abs(diagnostics['mass_error_relative']) < 1e-12
        assert diagnostics['variance_ratio'] < 1e-12
        assert np.isclose(diagnostics['max_concentration_final'], 1.0 / 256)
        assert 'kinetic_energy_final' not in diagnostics

    def test_timeseries_rows(self, small_grid):
        """Test one row per snapshot with per-layer keys."""
        c = np.ones((2, 16, 16))
        psi = np.zeros((2, 16, 16))
        snapshots = [
            Snapshot(step=s, t=0.1 * s, flow_t=0.1 * s,
                     fields={'concentration': c, 'streamfunction': psi})
            for s in (0, 5)
        ]

        rows = compute_diagnostics_timeseries(snapshots, small_grid)

        assert [row['step'] for row in rows] == [0, 5]
        assert 'tracer_mass_layer2' in rows[0]
        assert rows[1]['kinetic_energy_layer1'] == 0.0

    def test_no_snapshots(self, small_grid):
        """Test diagnostics of an empty run are rejected."""
        with pytest.raises(ValueError):
            compute_all_diagnostics([], small_grid)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
