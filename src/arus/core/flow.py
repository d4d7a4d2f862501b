"""
Multi-Layer Quasi-Geostrophic Flow on a Doubly Periodic Domain.

Generates the turbulent background flow that advects the tracer.

Potential vorticity in layer j (j = 1 top, ..., n bottom):
    q_j = ∇²ψ_j + F_{j,j-1} (ψ_{j-1} - ψ_j) + F_{j,j+1} (ψ_{j+1} - ψ_j)

    F_{j,j±1} = f₀² / (g'_{interface} H_j)
    g'_{j+1/2} = g (ρ_{j+1} - ρ_j) / ρ_{j+1}

In spectral space the inversion is a small matrix per wavenumber:
    q̂ = S(k) ψ̂,   S(k) = -|k|² I + F

Evolution (imposed zonal flow U_j, background PV gradient Qy = β - F U):
    ∂q_j/∂t + J(ψ_j, q_j) + U_j ∂q_j/∂x + Qy_j ∂ψ_j/∂x
        = -δ_{j,n} μ ∇²ψ_n - ν (-∇²)^nν q_j

With a single layer this reduces to barotropic flow on a beta plane.
"""

import numpy as np
from numba import njit, prange
from dataclasses import dataclass, field
from typing import List, Tuple, Optional

from .grid import TwoDGrid
from .timesteppers import Clock, make_stepper
from .inits import random_layered_field


@dataclass
class MultiLayerParams:
    """
    Physical parameters of the layered QG flow.

    Attributes:
        nlayers: Number of fluid layers
        f0: Coriolis parameter
        g: Gravitational acceleration
        H: Rest depth of each layer (top to bottom)
        rho: Density of each layer (must increase downward)
        U: Imposed mean zonal flow in each layer
        mu: Linear bottom drag coefficient
        beta: Meridional gradient of planetary PV
        nu: Hyperviscosity coefficient
        nnu: Hyperviscosity order

    Example:
        >>> params = MultiLayerParams(
        ...     nlayers=2, H=[0.2, 0.8], rho=[4.0, 5.0], U=[1.0, 0.0],
        ...     mu=5e-2, beta=5.0
        ... )
    """
    nlayers: int = 2
    f0: float = 1.0
    g: float = 1.0
    H: List[float] = field(default_factory=lambda: [0.2, 0.8])
    rho: List[float] = field(default_factory=lambda: [4.0, 5.0])
    U: List[float] = field(default_factory=lambda: [1.0, 0.0])
    mu: float = 5e-2
    beta: float = 5.0
    nu: float = 0.0
    nnu: int = 1

    def __post_init__(self):
        self.H = np.atleast_1d(np.asarray(self.H, dtype=np.float64))
        self.rho = np.atleast_1d(np.asarray(self.rho, dtype=np.float64))
        self.U = np.atleast_1d(np.asarray(self.U, dtype=np.float64))

        if self.nlayers < 1:
            raise ValueError(f"nlayers must be at least 1, got {self.nlayers}")
        for name in ('H', 'rho', 'U'):
            if len(getattr(self, name)) != self.nlayers:
                raise ValueError(
                    f"{name} has {len(getattr(self, name))} entries, "
                    f"expected nlayers={self.nlayers}"
                )
        if np.any(self.H <= 0):
            raise ValueError("Layer depths H must be positive")
        if np.any(self.g_prime <= 0):
            raise ValueError("Densities rho must increase strictly downward")

    @property
    def g_prime(self) -> np.ndarray:
        """Reduced gravity at each of the nlayers-1 interfaces."""
        return self.g * (self.rho[1:] - self.rho[:-1]) / self.rho[1:]

    @property
    def stretching_matrix(self) -> np.ndarray:
        """Vortex stretching matrix F with zero row sums."""
        n = self.nlayers
        F = np.zeros((n, n), dtype=np.float64)
        gp = self.g_prime
        for j in range(n):
            if j > 0:
                coupling = self.f0**2 / (gp[j - 1] * self.H[j])
                F[j, j - 1] += coupling
                F[j, j] -= coupling
            if j < n - 1:
                coupling = self.f0**2 / (gp[j] * self.H[j])
                F[j, j + 1] += coupling
                F[j, j] -= coupling
        return F

    @property
    def Qy(self) -> np.ndarray:
        """Background meridional PV gradient in each layer."""
        return self.beta - self.stretching_matrix @ self.U

    @property
    def deformation_radius(self) -> Optional[float]:
        """First baroclinic deformation radius (None for one layer)."""
        if self.nlayers == 1:
            return None
        eigenvalues = np.linalg.eigvals(self.stretching_matrix).real
        nonzero = np.abs(eigenvalues) > 1e-12
        return float(1.0 / np.sqrt(np.min(-eigenvalues[nonzero])))

    def describe(self) -> str:
        """Return detailed description of the flow parameters."""
        Ld = self.deformation_radius
        Ld_line = f"{Ld:.4f}" if Ld is not None else "n/a (barotropic)"
        return f"""
Multi-Layer QG Flow
===================
Layers: {self.nlayers}
  H   = {np.array2string(self.H, precision=3)}
  rho = {np.array2string(self.rho, precision=3)}
  U   = {np.array2string(self.U, precision=3)}

Physics:
  f0 = {self.f0}, g = {self.g}
  beta = {self.beta}
  mu (bottom drag) = {self.mu}
  nu = {self.nu} (order {self.nnu})
  Deformation radius = {Ld_line}
"""


@dataclass(frozen=True)
class FlowField:
    """
    Read-only view of the flow that the tracer is advected by.

    Attributes:
        t: Flow time when the view was taken
        step: Flow step when the view was taken
        q: Potential vorticity, shape (nlayers, nx, ny)
        u: Total zonal velocity (perturbation + imposed U)
        v: Meridional velocity
    """
    t: float
    step: int
    q: np.ndarray
    u: np.ndarray
    v: np.ndarray

    @property
    def nlayers(self) -> int:
        return self.u.shape[0]

    @classmethod
    def at_rest(cls, grid: TwoDGrid, nlayers: int = 1) -> 'FlowField':
        """A motionless flow, useful for pure diffusion runs."""
        zeros = np.zeros((nlayers, grid.nx, grid.ny))
        return cls(t=0.0, step=0, q=zeros.copy(), u=zeros.copy(), v=zeros.copy())


@njit(cache=True, parallel=True)
def _apply_layer_matrices(M: np.ndarray, fh: np.ndarray) -> np.ndarray:
    """
    Multiply each wavenumber's layer vector by its own matrix.

    Args:
        M: Real matrices with shape (nkx, nky, nlayers, nlayers)
        fh: Spectral field with shape (nlayers, nkx, nky)

    Returns:
        New spectral field out[:, i, j] = M[i, j] @ fh[:, i, j]
    """
    nlayers, nkx, nky = fh.shape
    out = np.zeros_like(fh)
    for i in prange(nkx):
        for j in range(nky):
            for m in range(nlayers):
                acc = 0j
                for n in range(nlayers):
                    acc += M[i, j, m, n] * fh[n, i, j]
                out[m, i, j] = acc
    return out


def build_inversion_matrices(
    grid: TwoDGrid,
    params: MultiLayerParams
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build S(k) and its inverse for every wavenumber.

    The inverse is set to zero at k = 0, where S is singular.

    Returns:
        Tuple (S, S_inv), each with shape (nkx, nky, nlayers, nlayers)
    """
    n = params.nlayers
    eye = np.eye(n)
    S = -grid.Krsq[:, :, np.newaxis, np.newaxis] * eye + params.stretching_matrix

    S_safe = S.copy()
    S_safe[0, 0] = eye
    S_inv = np.linalg.inv(S_safe)
    S_inv[0, 0] = 0.0
    return S, S_inv


def streamfunction_from_pv(qh: np.ndarray, S_inv: np.ndarray) -> np.ndarray:
    """Invert spectral PV to a new spectral streamfunction array."""
    return _apply_layer_matrices(S_inv, np.ascontiguousarray(qh))


def pv_from_streamfunction(psih: np.ndarray, S: np.ndarray) -> np.ndarray:
    """Spectral PV of a spectral streamfunction."""
    return _apply_layer_matrices(S, np.ascontiguousarray(psih))


class FlowProblem:
    """
    Multi-layer QG flow problem.

    Attributes:
        grid: TwoDGrid
        params: MultiLayerParams
        clock: Clock of the flow
        sol: Spectral PV, shape (nlayers, nkx, nky)
        stepper_name: Name of the time-stepping scheme

    Example:
        >>> grid = TwoDGrid(nx=128, Lx=2*np.pi)
        >>> flow = FlowProblem(grid, MultiLayerParams(), dt=2.5e-3)
        >>> flow.set_random_q(amplitude=1e-2, seed=1234)
        >>> flow.advance()
    """

    def __init__(
        self,
        grid: TwoDGrid,
        params: MultiLayerParams,
        dt: float,
        stepper: str = 'FilteredRK4'
    ):
        if dt <= 0:
            raise ValueError(f"dt must be positive, got {dt}")

        self.grid = grid
        self.params = params
        self.clock = Clock(dt=float(dt))
        self.stepper_name = stepper
        self.stepper = make_stepper(stepper, grid)

        self.S, self.S_inv = build_inversion_matrices(grid, params)
        self._Qy = params.Qy[:, np.newaxis, np.newaxis]
        self._U = params.U[:, np.newaxis, np.newaxis]

        self.sol = np.zeros(
            (params.nlayers, grid.nkx, grid.nky), dtype=np.complex128
        )

    @property
    def nlayers(self) -> int:
        return self.params.nlayers

    def _layered(self, f: np.ndarray, name: str) -> np.ndarray:
        f = np.asarray(f, dtype=np.float64)
        if f.ndim == 2 and self.nlayers == 1:
            f = f[np.newaxis]
        expected = (self.nlayers,) + self.grid.physical_shape
        if f.shape != expected:
            raise ValueError(f"{name} has shape {f.shape}, expected {expected}")
        return f

    def set_q(self, q: np.ndarray):
        """Set the PV field from physical space, shape (nlayers, nx, ny)."""
        q = self._layered(q, 'q')
        self.sol = self.grid.rfft(q)

    def set_random_q(self, amplitude: float = 1e-2, seed: int = 1234):
        """
        Set a random, filtered PV field.

        The white noise is passed through the grid filter so that grid-scale
        noise does not dominate the first steps.

        Args:
            amplitude: Standard deviation of the raw noise
            seed: Seed for the random generator
        """
        q0 = random_layered_field(
            self.grid, self.nlayers, amplitude, seed,
            spectral_filter=self.grid.filter
        )
        self.set_q(q0)

    def current_state(self) -> np.ndarray:
        """Physical-space PV, a new array with shape (nlayers, nx, ny)."""
        return self.grid.irfft(self.sol.copy(), overwrite=True)

    def streamfunction(self) -> np.ndarray:
        """Physical-space streamfunction."""
        psih = streamfunction_from_pv(self.sol, self.S_inv)
        return self.grid.irfft(psih, overwrite=True)

    def velocities(self) -> Tuple[np.ndarray, np.ndarray]:
        """Perturbation velocities (u, v) = (-∂ψ/∂y, ∂ψ/∂x)."""
        psih = streamfunction_from_pv(self.sol, self.S_inv)
        u = self.grid.irfft(-1j * self.grid.ky * psih, overwrite=True)
        v = self.grid.irfft(1j * self.grid.kx * psih, overwrite=True)
        return u, v

    def flow_field(self) -> FlowField:
        """Snapshot of the current flow for the tracer to advect with."""
        u, v = self.velocities()
        q = self.current_state()
        u += self._U
        for arr in (q, u, v):
            arr.flags.writeable = False
        return FlowField(t=self.clock.t, step=self.clock.step, q=q, u=u, v=v)

    def _rhs(self, qh: np.ndarray) -> np.ndarray:
        grid = self.grid
        qh = grid.dealias(qh.copy())

        psih = streamfunction_from_pv(qh, self.S_inv)
        q = grid.irfft(qh)
        u = grid.irfft(-1j * grid.ky * psih, overwrite=True)
        v = grid.irfft(1j * grid.kx * psih, overwrite=True)

        uqh = grid.rfft((u + self._U) * q)
        vqh = grid.rfft(v * q)

        N = -1j * grid.kx * uqh - 1j * grid.ky * vqh - 1j * grid.kx * self._Qy * psih
        N[-1] += self.params.mu * grid.Krsq * psih[-1]
        if self.params.nu > 0:
            N -= self.params.nu * grid.Krsq**self.params.nnu * qh
        return N

    def advance(self):
        """Advance the flow by one time step."""
        self.sol = self.stepper.step(self.sol, self._rhs, self.clock)

    def is_finite(self) -> bool:
        return bool(np.isfinite(self.sol).all())

    def __repr__(self) -> str:
        return (
            f"FlowProblem(nlayers={self.nlayers}, {self.grid}, "
            f"dt={self.clock.dt}, stepper={self.stepper_name}, "
            f"step={self.clock.step}, t={self.clock.t:.3f})"
        )
