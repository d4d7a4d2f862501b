"""
Derived fields saved at every snapshot.

Both extractors take the coupled problem and return new physical-space
arrays with shape (nlayers, nx, ny). The inverse transforms are allowed
to overwrite their input, so the solver state is always copied first.
"""

import numpy as np

from .flow import streamfunction_from_pv


def extract_concentration(problem) -> np.ndarray:
    """Tracer concentration in physical space."""
    ch = problem.tracer.sol.copy()
    return problem.grid.irfft(ch, overwrite=True)


def extract_streamfunction(problem) -> np.ndarray:
    """Streamfunction of the flow, obtained by inverting its PV."""
    flow = problem.flow
    qh = flow.sol.copy()
    psih = streamfunction_from_pv(qh, flow.S_inv)
    return flow.grid.irfft(psih, overwrite=True)


DEFAULT_EXTRACTORS = {
    'concentration': extract_concentration,
    'streamfunction': extract_streamfunction,
}
