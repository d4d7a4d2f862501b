"""Visualization of snapshot series."""

from .animator import Animator

__all__ = ["Animator"]
