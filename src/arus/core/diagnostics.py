"""
Diagnostics for Coupled Flow-Tracer Runs.
==========================================

Physics Background:
------------------
For advection-diffusion by a divergence-free periodic flow:

1. MASS  ∫c dA is conserved exactly in every layer
2. VARIANCE decays monotonically, at a rate set by κ|∇c|²
   (stirring sharpens gradients, diffusion then removes variance)
3. KINETIC ENERGY ½⟨|∇ψ|²⟩ (domain mean) of the flow is unrelated to the tracer,
   but tracks how vigorous the stirring is

The flow time step is limited by the advective CFL number
    CFL = dt · max(|u|/dx + |v|/dy)
"""

import numpy as np
from typing import Any, Dict, List, Sequence

from .grid import TwoDGrid


# =============================================================================
# TRACER
# =============================================================================

def compute_tracer_mass(c: np.ndarray, grid: TwoDGrid) -> np.ndarray:
    """
    Tracer mass in each layer.

    Args:
        c: Concentration with shape (nlayers, nx, ny)
        grid: TwoDGrid

    Returns:
        Array with one entry per layer
    """
    return np.sum(c, axis=(-2, -1)) * grid.dx * grid.dy


def compute_tracer_variance(c: np.ndarray) -> np.ndarray:
    """Spatial variance of the concentration in each layer."""
    return np.var(c, axis=(-2, -1))


# =============================================================================
# FLOW
# =============================================================================

def compute_kinetic_energy(psi: np.ndarray, grid: TwoDGrid) -> np.ndarray:
    """
    Domain-averaged kinetic energy ½⟨u² + v²⟩ in each layer.

    Velocities are computed spectrally from the streamfunction.

    Args:
        psi: Streamfunction with shape (nlayers, nx, ny)
        grid: TwoDGrid

    Returns:
        Array with one entry per layer
    """
    psih = grid.rfft(psi)
    u = grid.irfft(-1j * grid.ky * psih, overwrite=True)
    v = grid.irfft(1j * grid.kx * psih, overwrite=True)
    return 0.5 * np.mean(u**2 + v**2, axis=(-2, -1))


def compute_cfl(flow_field, dt: float, grid: TwoDGrid) -> float:
    """Advective CFL number of a FlowField for time step dt."""
    rate = np.abs(flow_field.u) / grid.dx + np.abs(flow_field.v) / grid.dy
    return float(dt * np.max(rate))


# =============================================================================
# SNAPSHOT SERIES
# =============================================================================

def compute_snapshot_diagnostics(snapshot, grid: TwoDGrid) -> Dict[str, float]:
    """
    Scalar diagnostics of one snapshot.

    Args:
        snapshot: Snapshot holding 'concentration' and optionally
                  'streamfunction'
        grid: TwoDGrid the snapshot was written on

    Returns:
        Flat dictionary, per-layer keys suffixed with _layer<n>
    """
    row: Dict[str, float] = {
        'step': int(snapshot.step),
        't': float(snapshot.t),
    }

    c = snapshot.fields['concentration']
    mass = compute_tracer_mass(c, grid)
    variance = compute_tracer_variance(c)
    for j in range(c.shape[0]):
        row[f'tracer_mass_layer{j + 1}'] = float(mass[j])
        row[f'tracer_variance_layer{j + 1}'] = float(variance[j])
        row[f'tracer_max_layer{j + 1}'] = float(np.max(c[j]))
    row['tracer_mass'] = float(np.sum(mass))

    if 'streamfunction' in snapshot.fields:
        ke = compute_kinetic_energy(snapshot.fields['streamfunction'], grid)
        for j in range(ke.shape[0]):
            row[f'kinetic_energy_layer{j + 1}'] = float(ke[j])

    return row


def compute_diagnostics_timeseries(
    snapshots: Sequence,
    grid: TwoDGrid
) -> List[Dict[str, float]]:
    """Per-snapshot diagnostics, one dictionary per snapshot."""
    return [compute_snapshot_diagnostics(s, grid) for s in snapshots]


def compute_all_diagnostics(
    snapshots: Sequence,
    grid: TwoDGrid,
    verbose: bool = False
) -> Dict[str, Any]:
    """
    Summary diagnostics of a whole run.

    Args:
        snapshots: Snapshots ordered by step
        grid: TwoDGrid
        verbose: Print a summary

    Returns:
        Dictionary of scalar metrics
    """
    if len(snapshots) == 0:
        raise ValueError("No snapshots to diagnose")

    series = compute_diagnostics_timeseries(snapshots, grid)
    first, last = series[0], series[-1]
    nlayers = snapshots[0].fields['concentration'].shape[0]

    diagnostics: Dict[str, Any] = {
        'n_snapshots': len(series),
        't_final': last['t'],
        'step_final': last['step'],
        'mass_initial': first['tracer_mass'],
        'mass_final': last['tracer_mass'],
        'mass_error_absolute': last['tracer_mass'] - first['tracer_mass'],
    }

    if abs(first['tracer_mass']) > 1e-15:
        diagnostics['mass_error_relative'] = (
            diagnostics['mass_error_absolute'] / first['tracer_mass']
        )
    else:
        diagnostics['mass_error_relative'] = 0.0

    var_initial = sum(first[f'tracer_variance_layer{j + 1}'] for j in range(nlayers))
    var_final = sum(last[f'tracer_variance_layer{j + 1}'] for j in range(nlayers))
    diagnostics['variance_initial'] = var_initial
    diagnostics['variance_final'] = var_final
    diagnostics['variance_ratio'] = var_final / var_initial if var_initial > 0 else 1.0
    diagnostics['max_concentration_final'] = max(
        last[f'tracer_max_layer{j + 1}'] for j in range(nlayers)
    )

    if 'kinetic_energy_layer1' in last:
        diagnostics['kinetic_energy_final'] = sum(
            last[f'kinetic_energy_layer{j + 1}'] for j in range(nlayers)
        )

    if verbose:
        print("\n" + "=" * 70)
        print("RUN DIAGNOSTICS")
        print("=" * 70)
        print(f"  Snapshots: {diagnostics['n_snapshots']}")
        print(f"  Mass error (relative): {diagnostics['mass_error_relative']:.2e}")
        print(f"  Variance ratio: {diagnostics['variance_ratio']:.4f}")
        print(f"    → < 1.0 as stirring and diffusion mix the tracer")
        if 'kinetic_energy_final' in diagnostics:
            print(f"  Kinetic energy (final): {diagnostics['kinetic_energy_final']:.4e}")
        print("=" * 70)

    return diagnostics
