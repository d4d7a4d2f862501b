"""
Initial conditions for flow and tracer problems.
"""

import numpy as np
from typing import Optional, Tuple

from .grid import TwoDGrid


def random_layered_field(
    grid: TwoDGrid,
    nlayers: int,
    amplitude: float = 1e-2,
    seed: int = 1234,
    spectral_filter: Optional[np.ndarray] = None
) -> np.ndarray:
    """
    Gaussian white noise in every layer, optionally filtered.

    Args:
        grid: TwoDGrid
        nlayers: Number of layers
        amplitude: Standard deviation of the noise
        seed: Seed for numpy's default generator
        spectral_filter: Multiplier applied in spectral space

    Returns:
        Array with shape (nlayers, nx, ny)
    """
    rng = np.random.default_rng(seed)
    field = amplitude * rng.standard_normal((nlayers, grid.nx, grid.ny))
    if spectral_filter is not None:
        field = grid.irfft(spectral_filter * grid.rfft(field), overwrite=True)
    return field


def gaussian_blob(
    grid: TwoDGrid,
    amplitude: float = 10.0,
    spread: float = 0.15,
    center: Tuple[float, float] = (0.0, 0.0)
) -> np.ndarray:
    """
    Gaussian patch for the tracer concentration.

    C(x,y) = amplitude * exp(-((x-x0)² + (y-y0)²) / (2σ²))

    Returns:
        Array with shape (nx, ny)
    """
    r2 = (grid.X - center[0])**2 + (grid.Y - center[1])**2
    return amplitude * np.exp(-r2 / (2 * spread**2))
