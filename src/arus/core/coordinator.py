"""
Coupled Flow-Tracer Stepping with Periodic Snapshots.

Per iteration, strictly in this order:
    1. snapshot (if step % snapshot_interval == 0), capturing the state
       at the start of the step
    2. advance the tracer with the flow view it currently holds
    3. advance the flow
    4. hand the tracer a fresh view of the advanced flow

The loop runs while the tracer's step is <= num_steps, so a run of
100 steps saving every 50 writes snapshots at steps 0, 50 and 100.
"""

import time
import numbers
import numpy as np
from typing import Any, Dict
from tqdm import tqdm

from .grid import TwoDGrid
from .flow import FlowProblem, MultiLayerParams
from .tracer import TracerProblem
from .inits import gaussian_blob
from .errors import DivergenceError


class CoupledProblem:
    """
    A tracer problem together with the flow that advects it.

    Attributes:
        flow: FlowProblem
        tracer: TracerProblem advected by `flow`
    """

    def __init__(self, flow: FlowProblem, tracer: TracerProblem):
        if tracer.grid is not flow.grid:
            raise ValueError("Flow and tracer must share the same grid")
        self.flow = flow
        self.tracer = tracer

    @property
    def grid(self) -> TwoDGrid:
        return self.tracer.grid

    @property
    def clock(self):
        """The tracer's clock, which drives the coordinator."""
        return self.tracer.clock

    @property
    def nlayers(self) -> int:
        return self.flow.nlayers

    def advance(self):
        """Advance tracer, then flow, then refresh the tracer's flow view."""
        self.tracer.advance()
        self.flow.advance()
        self.tracer.sync_flow(self.flow.flow_field())

    def check_finite(self):
        """Raise DivergenceError if either solution holds NaN or Inf."""
        if not self.flow.is_finite():
            raise DivergenceError(
                f"Flow solution is not finite at flow step {self.flow.clock.step} "
                f"(t = {self.flow.clock.t:.4f})"
            )
        if not self.tracer.is_finite():
            raise DivergenceError(
                f"Tracer solution is not finite at step {self.tracer.clock.step} "
                f"(t = {self.tracer.clock.t:.4f})"
            )

    def parameters(self) -> Dict[str, Any]:
        """Flat dictionary of the run parameters, for metadata and logs."""
        p = self.flow.params
        return {
            'nx': self.grid.nx,
            'ny': self.grid.ny,
            'Lx': self.grid.Lx,
            'Ly': self.grid.Ly,
            'aliased_fraction': self.grid.aliased_fraction,
            'nlayers': p.nlayers,
            'f0': p.f0,
            'g': p.g,
            'H': p.H.tolist(),
            'rho': p.rho.tolist(),
            'U': p.U.tolist(),
            'mu': p.mu,
            'beta': p.beta,
            'nu': p.nu,
            'nnu': p.nnu,
            'dt': self.flow.clock.dt,
            'stepper': self.flow.stepper_name,
            'kappa': self.tracer.kappa,
            'tracer_release_time': self.tracer.tracer_release_time,
        }

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'CoupledProblem':
        """
        Build flow, release the tracer, and set both initial conditions.

        Missing keys fall back to the two-layer example run.
        """
        grid = TwoDGrid(
            nx=config.get('nx', 128),
            Lx=config.get('Lx', 2 * np.pi),
            aliased_fraction=config.get('aliased_fraction', 0.0),
            workers=config.get('workers', 1)
        )
        params = MultiLayerParams(
            nlayers=config.get('nlayers', 2),
            f0=config.get('f0', 1.0),
            g=config.get('g', 1.0),
            H=config.get('H', [0.2, 0.8]),
            rho=config.get('rho', [4.0, 5.0]),
            U=config.get('U', [1.0, 0.0]),
            mu=config.get('mu', 5e-2),
            beta=config.get('beta', 5.0),
            nu=config.get('nu', 0.0),
            nnu=config.get('nnu', 1),
        )
        stepper = config.get('stepper', 'FilteredRK4')

        flow = FlowProblem(grid, params, dt=config.get('dt', 2.5e-3), stepper=stepper)
        flow.set_random_q(
            amplitude=config.get('q_amplitude', 1e-2),
            seed=config.get('seed', 1234)
        )

        tracer = TracerProblem.released_into(
            flow,
            kappa=config.get('kappa', 0.002),
            tracer_release_time=config.get('tracer_release_time', 25.0),
            stepper=stepper
        )
        tracer.set_c(gaussian_blob(
            grid,
            amplitude=config.get('tracer_amplitude', 10.0),
            spread=config.get('tracer_spread', 0.15)
        ))

        return cls(flow, tracer)

    def __repr__(self) -> str:
        return f"CoupledProblem({self.flow!r}, {self.tracer!r})"


def _require_positive_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return int(value)


class Coordinator:
    """
    Drives a CoupledProblem forward and writes periodic snapshots.

    Attributes:
        problem: CoupledProblem
        store: Snapshot store with an `append()` method (None = no output)
        snapshot_interval: Snapshot every N tracer steps
        snapshots_written: Number of snapshots appended so far

    Example:
        >>> store = SnapshotStore("advection-diffusion.nc", problem)
        >>> store.write_metadata()
        >>> Coordinator(problem, store, snapshot_interval=50).run(4000)
    """

    def __init__(
        self,
        problem: CoupledProblem,
        store=None,
        snapshot_interval: int = 50,
        logger=None,
        verbose: bool = False
    ):
        self.problem = problem
        self.store = store
        self.snapshot_interval = _require_positive_int(
            'snapshot_interval', snapshot_interval
        )
        self.logger = logger
        self.verbose = verbose
        self.snapshots_written = 0

    def _report(self, msg: str):
        if self.logger is not None:
            self.logger.info(msg)
        if self.verbose:
            tqdm.write(f"      {msg}")

    def run(self, num_steps: int):
        """
        Step the coupled problem until the tracer passes num_steps.

        Args:
            num_steps: Last tracer step (inclusive) at which to snapshot

        Raises:
            DivergenceError: A state or saved field became non-finite
            SnapshotWriteError: The store failed to append
        """
        num_steps = _require_positive_int('num_steps', num_steps)
        clock = self.problem.clock

        start_walltime = time.time()
        iterator = tqdm(
            total=max(num_steps - clock.step + 1, 0),
            desc="      Stepping",
            disable=not self.verbose,
            ncols=70,
            unit="step"
        )

        try:
            while clock.step <= num_steps:
                if clock.step % self.snapshot_interval == 0 and self.store is not None:
                    self.store.append()
                    self.snapshots_written += 1
                    self._report(
                        f"Output saved, step: {clock.step:04d}, t: {clock.t:.2f}, "
                        f"walltime: {(time.time() - start_walltime) / 60:.2f} min"
                    )

                self.problem.advance()
                self.problem.check_finite()
                iterator.update(1)
        finally:
            iterator.close()
