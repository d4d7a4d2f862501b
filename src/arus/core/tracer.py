"""
Passive Tracer Advection-Diffusion in a Layered Flow.

Each layer carries its own concentration c_j, stirred by that layer's
velocity and mixed by a constant diffusivity κ:

    ∂c_j/∂t + u_j ∂c_j/∂x + v_j ∂c_j/∂y = κ ∇²c_j

The velocity is divergence free, so the advection term is evaluated in
flux form, ∇·(u c), which conserves the layer-mean concentration exactly.

The tracer never sees the flow solver. It holds a read-only FlowField
that is replaced after every flow step through `sync_flow`.
"""

import numpy as np
from typing import Optional

from .grid import TwoDGrid
from .flow import FlowField, FlowProblem
from .timesteppers import Clock, make_stepper
from .errors import DivergenceError


class TracerProblem:
    """
    Advection-diffusion of a passive tracer.

    Attributes:
        grid: TwoDGrid shared with the flow
        kappa: Constant diffusivity
        clock: Clock of the tracer (starts at 0 when released)
        sol: Spectral concentration, shape (nlayers, nkx, nky)
        flow_field: FlowField the tracer is currently advected by
        tracer_release_time: Flow time at which the tracer was released

    Example:
        >>> tracer = TracerProblem.released_into(
        ...     flow, kappa=0.002, tracer_release_time=25.0
        ... )
        >>> tracer.set_c(gaussian_blob(flow.grid))
    """

    def __init__(
        self,
        grid: TwoDGrid,
        flow_field: FlowField,
        kappa: float,
        dt: float,
        stepper: str = 'FilteredRK4',
        tracer_release_time: float = 0.0
    ):
        if kappa < 0:
            raise ValueError(f"kappa must be non-negative, got {kappa}")
        if dt <= 0:
            raise ValueError(f"dt must be positive, got {dt}")

        self.grid = grid
        self.kappa = float(kappa)
        self.clock = Clock(dt=float(dt))
        self.stepper_name = stepper
        self.stepper = make_stepper(stepper, grid)
        self.tracer_release_time = float(tracer_release_time)

        self.flow_field = None
        self._nlayers = flow_field.nlayers
        self.sync_flow(flow_field)

        self.sol = np.zeros(
            (self._nlayers, grid.nkx, grid.nky), dtype=np.complex128
        )

    @classmethod
    def released_into(
        cls,
        flow: FlowProblem,
        kappa: float,
        tracer_release_time: float = 0.0,
        stepper: Optional[str] = None
    ) -> 'TracerProblem':
        """
        Build a tracer problem on top of a running flow.

        When tracer_release_time is positive the flow is first advanced
        until its clock passes that time, so the tracer is released into
        developed turbulence. The tracer inherits the flow's grid and dt.

        Args:
            flow: FlowProblem to advect with
            kappa: Diffusivity
            tracer_release_time: Flow time at which the tracer starts
            stepper: Time stepper name (default: the flow's stepper)

        Returns:
            TracerProblem with zero concentration
        """
        if tracer_release_time > 0:
            while flow.clock.t <= tracer_release_time:
                flow.advance()
            if not flow.is_finite():
                raise DivergenceError(
                    f"Flow diverged during spin-up (t = {flow.clock.t:.4f})"
                )

        return cls(
            grid=flow.grid,
            flow_field=flow.flow_field(),
            kappa=kappa,
            dt=flow.clock.dt,
            stepper=stepper if stepper is not None else flow.stepper_name,
            tracer_release_time=tracer_release_time
        )

    @property
    def nlayers(self) -> int:
        return self._nlayers

    def sync_flow(self, flow_field: FlowField):
        """Replace the flow view the tracer is advected by."""
        expected = (self._nlayers,) + self.grid.physical_shape
        if flow_field.u.shape != expected or flow_field.v.shape != expected:
            raise ValueError(
                f"FlowField has shape {flow_field.u.shape}, expected {expected}"
            )
        self.flow_field = flow_field

    def set_c(self, c: np.ndarray):
        """
        Set the concentration from physical space.

        Args:
            c: Field with shape (nx, ny), copied to every layer, or a
               layered field with shape (nlayers, nx, ny)
        """
        c = np.asarray(c, dtype=np.float64)
        if c.shape == self.grid.physical_shape:
            c = np.broadcast_to(c, (self._nlayers,) + c.shape)
        expected = (self._nlayers,) + self.grid.physical_shape
        if c.shape != expected:
            raise ValueError(f"c has shape {c.shape}, expected {expected}")
        self.sol = self.grid.rfft(c)

    def concentration(self) -> np.ndarray:
        """Physical-space concentration, a new array."""
        return self.grid.irfft(self.sol.copy(), overwrite=True)

    def _rhs(self, ch: np.ndarray) -> np.ndarray:
        grid = self.grid
        c = grid.irfft(grid.dealias(ch.copy()), overwrite=True)

        uch = grid.rfft(self.flow_field.u * c)
        vch = grid.rfft(self.flow_field.v * c)

        return -1j * grid.kx * uch - 1j * grid.ky * vch - self.kappa * grid.Krsq * ch

    def advance(self):
        """Advance the tracer by one step with the current flow view."""
        self.sol = self.stepper.step(self.sol, self._rhs, self.clock)

    def is_finite(self) -> bool:
        return bool(np.isfinite(self.sol).all())

    def __repr__(self) -> str:
        return (
            f"TracerProblem(nlayers={self._nlayers}, kappa={self.kappa}, "
            f"dt={self.clock.dt}, stepper={self.stepper_name}, "
            f"release={self.tracer_release_time}, step={self.clock.step})"
        )
