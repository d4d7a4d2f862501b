"""
Doubly Periodic Grid for Pseudo-Spectral Simulation.

Physical space:
    x ∈ [-Lx/2, Lx/2),  y ∈ [-Ly/2, Ly/2)   (nx × ny points)

Spectral space (real FFT along y):
    kx = 2π/Lx · [0, 1, ..., nx/2-1, -nx/2, ..., -1]
    ky = 2π/Ly · [0, 1, ..., ny/2]

Arrays are laid out as (..., nx, ny) in physical space and
(..., nx, ny//2 + 1) in spectral space, so a layered field has shape
(nlayers, nx, ny).

Spectral filter (used by the filtered RK4 stepper):
    F(K) = exp(-decay · (K - K_inner)^order)   for K > K_inner
    F(K) = 1                                   otherwise
    K = sqrt((kx·dx/π)² + (ky·dy/π)²)
"""

import numpy as np
import scipy.fft
from typing import Tuple


class TwoDGrid:
    """
    Doubly periodic two-dimensional grid.

    Attributes:
        nx, ny: Number of grid points
        Lx, Ly: Domain size
        dx, dy: Grid spacing
        x, y: 1D coordinate arrays
        X, Y: 2D coordinate arrays with shape (nx, ny)
        kx, ky: Wavenumbers broadcastable to the spectral shape
        Krsq: Squared total wavenumber
        invKrsq: 1/Krsq with zero at k = 0
        filter: Exponential high-wavenumber filter
        workers: Threads used by scipy.fft
    """

    def __init__(
        self,
        nx: int = 128,
        Lx: float = 2 * np.pi,
        ny: int = None,
        Ly: float = None,
        aliased_fraction: float = 0.0,
        workers: int = 1,
        filter_order: float = 4.0,
        filter_inner: float = 0.65,
        filter_outer: float = 1.0,
        filter_tol: float = 1e-15
    ):
        """
        Initialize grid.

        Args:
            nx: Number of points in x
            Lx: Domain length in x
            ny: Number of points in y (default: nx)
            Ly: Domain length in y (default: Lx)
            aliased_fraction: Fraction of highest wavenumbers zeroed before
                products are formed (0 disables dealiasing)
            workers: Number of threads for FFTs
            filter_order: Order of the exponential filter
            filter_inner: Normalized wavenumber where filtering begins
            filter_outer: Normalized wavenumber where filter reaches tol
            filter_tol: Filter value at filter_outer
        """
        ny = nx if ny is None else ny
        Ly = Lx if Ly is None else Ly

        if nx < 4 or ny < 4:
            raise ValueError(f"Grid needs at least 4 points per side, got {nx}×{ny}")
        if nx % 2 or ny % 2:
            raise ValueError(f"Grid sizes must be even, got {nx}×{ny}")
        if Lx <= 0 or Ly <= 0:
            raise ValueError(f"Domain lengths must be positive, got {Lx}, {Ly}")
        if not 0.0 <= aliased_fraction < 1.0:
            raise ValueError(f"aliased_fraction must be in [0, 1), got {aliased_fraction}")

        self.nx = int(nx)
        self.ny = int(ny)
        self.Lx = float(Lx)
        self.Ly = float(Ly)
        self.aliased_fraction = float(aliased_fraction)
        self.workers = int(workers)

        self.dx = self.Lx / self.nx
        self.dy = self.Ly / self.ny

        self.x = -self.Lx / 2 + self.dx * np.arange(self.nx)
        self.y = -self.Ly / 2 + self.dy * np.arange(self.ny)
        self.X, self.Y = np.meshgrid(self.x, self.y, indexing='ij')

        self.nkx = self.nx
        self.nky = self.ny // 2 + 1

        kx = 2 * np.pi * np.fft.fftfreq(self.nx, self.dx)
        ky = 2 * np.pi * np.fft.rfftfreq(self.ny, self.dy)
        self.kx = kx[:, np.newaxis]
        self.ky = ky[np.newaxis, :]

        self.Krsq = self.kx**2 + self.ky**2
        self.invKrsq = np.zeros_like(self.Krsq)
        nonzero = self.Krsq > 0
        self.invKrsq[nonzero] = 1.0 / self.Krsq[nonzero]

        self.filter = self._make_filter(
            filter_order, filter_inner, filter_outer, filter_tol
        )
        self.dealias_mask = self._make_dealias_mask()

    @property
    def physical_shape(self) -> Tuple[int, int]:
        return (self.nx, self.ny)

    @property
    def spectral_shape(self) -> Tuple[int, int]:
        return (self.nkx, self.nky)

    def _make_filter(
        self,
        order: float,
        inner: float,
        outer: float,
        tol: float
    ) -> np.ndarray:
        """Build the exponential spectral filter."""
        K = np.sqrt((self.kx * self.dx / np.pi)**2 + (self.ky * self.dy / np.pi)**2)
        decay = -np.log(tol) / (outer - inner)**order

        spectral_filter = np.ones_like(K)
        above = K > inner
        spectral_filter[above] = np.exp(-decay * (K[above] - inner)**order)
        return spectral_filter

    def _make_dealias_mask(self) -> np.ndarray:
        """Boolean mask of aliased modes (True = zeroed)."""
        mask = np.zeros(self.spectral_shape, dtype=bool)
        if self.aliased_fraction == 0.0:
            return mask

        kx_max = np.max(np.abs(self.kx))
        ky_max = np.max(np.abs(self.ky))
        keep = 1.0 - self.aliased_fraction
        mask |= np.abs(self.kx) > keep * kx_max
        mask |= np.abs(self.ky) > keep * ky_max
        return mask

    def dealias(self, fh: np.ndarray) -> np.ndarray:
        """Zero aliased modes of a spectral field in place and return it."""
        if self.aliased_fraction > 0.0:
            fh[..., self.dealias_mask] = 0.0
        return fh

    def rfft(self, f: np.ndarray) -> np.ndarray:
        """Forward real FFT over the last two axes."""
        return scipy.fft.rfft2(f, axes=(-2, -1), workers=self.workers)

    def irfft(self, fh: np.ndarray, overwrite: bool = False) -> np.ndarray:
        """
        Inverse real FFT over the last two axes.

        With overwrite=True the input may be destroyed; callers holding
        shared state must pass a copy.
        """
        return scipy.fft.irfft2(
            fh,
            s=self.physical_shape,
            axes=(-2, -1),
            overwrite_x=overwrite,
            workers=self.workers
        )

    def __repr__(self) -> str:
        return (
            f"TwoDGrid(nx={self.nx}, ny={self.ny}, "
            f"Lx={self.Lx:.3f}, Ly={self.Ly:.3f})"
        )
