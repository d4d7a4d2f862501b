"""
Time-stepping schemes shared by the flow and tracer problems.

Each stepper advances a spectral solution by one increment of the
clock's dt given a right-hand-side function N(sol). The clock is
updated by the stepper, never by the caller.
"""

import numpy as np
from dataclasses import dataclass
from typing import Callable, Optional

from .grid import TwoDGrid


RHSFunction = Callable[[np.ndarray], np.ndarray]


@dataclass
class Clock:
    """
    Simulation clock.

    Attributes:
        dt: Time step
        step: Number of completed steps
        t: Simulation time
    """
    dt: float
    step: int = 0
    t: float = 0.0

    def tick(self):
        self.step += 1
        self.t += self.dt


class ForwardEuler:
    """First-order explicit Euler stepper."""

    def __init__(self, grid: Optional[TwoDGrid] = None):
        self.grid = grid

    def step(self, sol: np.ndarray, rhs: RHSFunction, clock: Clock) -> np.ndarray:
        sol = sol + clock.dt * rhs(sol)
        clock.tick()
        return sol


class RK4:
    """Classical fourth-order Runge-Kutta stepper."""

    def __init__(self, grid: Optional[TwoDGrid] = None):
        self.grid = grid

    def _rk4(self, sol: np.ndarray, rhs: RHSFunction, dt: float) -> np.ndarray:
        k1 = rhs(sol)
        k2 = rhs(sol + 0.5 * dt * k1)
        k3 = rhs(sol + 0.5 * dt * k2)
        k4 = rhs(sol + dt * k3)
        return sol + dt / 6.0 * (k1 + 2.0 * k2 + 2.0 * k3 + k4)

    def step(self, sol: np.ndarray, rhs: RHSFunction, clock: Clock) -> np.ndarray:
        sol = self._rk4(sol, rhs, clock.dt)
        clock.tick()
        return sol


class FilteredRK4(RK4):
    """
    RK4 followed by multiplication with the grid's exponential filter.

    The filter removes enstrophy piling up at the grid scale.
    """

    def __init__(self, grid: TwoDGrid):
        if grid is None:
            raise ValueError("FilteredRK4 requires a grid")
        super().__init__(grid)
        self.filter = grid.filter

    def step(self, sol: np.ndarray, rhs: RHSFunction, clock: Clock) -> np.ndarray:
        sol = self._rk4(sol, rhs, clock.dt) * self.filter
        clock.tick()
        return sol


STEPPERS = {
    'ForwardEuler': ForwardEuler,
    'RK4': RK4,
    'FilteredRK4': FilteredRK4,
}


def make_stepper(name: str, grid: TwoDGrid):
    """
    Create a stepper by name.

    Args:
        name: One of 'ForwardEuler', 'RK4', 'FilteredRK4'
        grid: Grid the stepper operates on

    Returns:
        Stepper instance
    """
    try:
        stepper_class = STEPPERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown stepper '{name}', choose from {sorted(STEPPERS)}"
        ) from None
    return stepper_class(grid)
