"""Exceptions raised while running coupled simulations."""


class DivergenceError(FloatingPointError):
    """A solution or derived field contains NaN or Inf values."""


class SnapshotWriteError(OSError):
    """Appending a snapshot to the store failed."""
