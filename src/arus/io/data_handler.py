"""
Data Handler for Coupled Flow-Tracer Runs.

Saves tabular results to CSV:
    - Summary diagnostics (one row per metric, with units)
    - Per-snapshot diagnostic time series

Gridded snapshots go to NetCDF through SnapshotStore.
"""

import pandas as pd
from pathlib import Path
from typing import Dict, Any, List


class DataHandler:
    """Handle saving diagnostics to CSV."""

    @staticmethod
    def save_diagnostics_csv(filepath: str, diagnostics: Dict[str, Any]):
        """
        Save summary metrics to CSV.

        Args:
            filepath: Output file path
            diagnostics: Dictionary of metrics
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        rows = []
        for key, value in sorted(diagnostics.items()):
            if isinstance(value, (int, float, bool)):
                rows.append({
                    'Metric': key,
                    'Value': value,
                    'Units': DataHandler._get_metric_units(key),
                })

        df = pd.DataFrame(rows)
        df.to_csv(filepath, index=False)

    @staticmethod
    def save_timeseries_csv(filepath: str, series: List[Dict[str, float]]):
        """
        Save per-snapshot diagnostics to CSV, one row per snapshot.

        Args:
            filepath: Output file path
            series: Output of compute_diagnostics_timeseries
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        df = pd.DataFrame(series)
        df.to_csv(filepath, index=False, float_format='%.8e')

    @staticmethod
    def _get_metric_units(metric_name: str) -> str:
        """Get units for a metric (all runs are nondimensional)."""
        units_map = {
            'n_snapshots': 'count',
            'step_final': 'steps',
            't_final': 'time',
            'mass_initial': 'c * L²',
            'mass_final': 'c * L²',
            'mass_error_absolute': 'c * L²',
            'mass_error_relative': 'dimensionless',
            'variance_initial': 'c²',
            'variance_final': 'c²',
            'variance_ratio': 'dimensionless',
            'max_concentration_final': 'c',
            'kinetic_energy_final': 'L² T⁻²',
        }
        return units_map.get(metric_name, 'unknown')
