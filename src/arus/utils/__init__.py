"""Utility modules for arus."""

from .logger import SimulationLogger
from .timer import Timer

__all__ = ["SimulationLogger", "Timer"]
