"""
arus: Passive Tracers in Multi-Layer Quasi-Geostrophic Turbulence

A Python library for releasing a passive tracer into freely evolving,
drag-damped multi-layer QG turbulence on a doubly periodic domain and recording
the stirring as NetCDF snapshots.

Each coupled step advances the tracer with the current flow, advances
the flow, then hands the tracer the new flow:

    ∂q_j/∂t + J(ψ_j, q_j) + U_j ∂q_j/∂x + Qy_j ∂ψ_j/∂x = D_j
    ∂c_j/∂t + ∇·(u_j c_j) = κ ∇²c_j

Features:
    - Pseudo-spectral periodic grid with SciPy FFTs
    - Numba-parallel layer inversion q̂ = S ψ̂
    - Forward Euler, RK4 and filtered RK4 time stepping
    - Tracer released into spun-up turbulence
    - CF-style NetCDF snapshots, appended while the run progresses
    - Diagnostics to CSV and dark-themed GIF animations

Example:
    >>> from arus import ConfigManager, CoupledProblem, Coordinator, SnapshotStore
    >>> config = ConfigManager.get_default_config('case1')
    >>> problem = CoupledProblem.from_config(config)
    >>> store = SnapshotStore("advection-diffusion.nc", problem)
    >>> store.write_metadata(config)
    >>> Coordinator(problem, store, snapshot_interval=50).run(4000)

License: MIT
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .core.grid import TwoDGrid
from .core.flow import FlowProblem, FlowField, MultiLayerParams
from .core.tracer import TracerProblem
from .core.coordinator import CoupledProblem, Coordinator
from .core.extractors import extract_concentration, extract_streamfunction
from .core.errors import DivergenceError, SnapshotWriteError
from .core.diagnostics import (
    compute_tracer_mass,
    compute_tracer_variance,
    compute_kinetic_energy,
    compute_all_diagnostics,
)
from .io.config_manager import ConfigManager
from .io.data_handler import DataHandler
from .io.snapshot_store import SnapshotStore, Snapshot, read_snapshots

__all__ = [
    # Core classes
    "TwoDGrid",
    "FlowProblem",
    "FlowField",
    "MultiLayerParams",
    "TracerProblem",
    "CoupledProblem",
    "Coordinator",
    # Extraction
    "extract_concentration",
    "extract_streamfunction",
    # Errors
    "DivergenceError",
    "SnapshotWriteError",
    # Diagnostics
    "compute_tracer_mass",
    "compute_tracer_variance",
    "compute_kinetic_energy",
    "compute_all_diagnostics",
    # IO
    "ConfigManager",
    "DataHandler",
    "SnapshotStore",
    "Snapshot",
    "read_snapshots",
]
