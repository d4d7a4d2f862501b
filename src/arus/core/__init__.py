"""Core solver components for coupled flow-tracer runs."""

from .grid import TwoDGrid
from .timesteppers import Clock, ForwardEuler, RK4, FilteredRK4, make_stepper
from .flow import FlowProblem, FlowField, MultiLayerParams
from .tracer import TracerProblem
from .coordinator import CoupledProblem, Coordinator
from .extractors import extract_concentration, extract_streamfunction
from .errors import DivergenceError, SnapshotWriteError
from .diagnostics import (
    compute_tracer_mass,
    compute_tracer_variance,
    compute_kinetic_energy,
    compute_cfl,
    compute_all_diagnostics,
)

__all__ = [
    "TwoDGrid",
    "Clock",
    "ForwardEuler",
    "RK4",
    "FilteredRK4",
    "make_stepper",
    "FlowProblem",
    "FlowField",
    "MultiLayerParams",
    "TracerProblem",
    "CoupledProblem",
    "Coordinator",
    "extract_concentration",
    "extract_streamfunction",
    "DivergenceError",
    "SnapshotWriteError",
    "compute_tracer_mass",
    "compute_tracer_variance",
    "compute_kinetic_energy",
    "compute_cfl",
    "compute_all_diagnostics",
]
