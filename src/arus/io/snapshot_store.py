"""
NetCDF Snapshot Store for Coupled Flow-Tracer Runs.

File layout (CF-1.8 style):
    dimensions: time (unlimited), layer, y, x
    step(time), t(time), flow_t(time)
    <field>(time, layer, y, x) for every registered extractor

Fields are held in memory as (layer, x, y) and transposed to
(layer, y, x) on disk, following the CF ordering.

The file is reopened in append mode for every record, so a run that
crashes leaves a readable file ending at the last completed append.
"""

import numpy as np
from netCDF4 import Dataset
from pathlib import Path
from datetime import datetime
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..core.grid import TwoDGrid
from ..core.extractors import DEFAULT_EXTRACTORS
from ..core.errors import DivergenceError, SnapshotWriteError


FIELD_ATTRS = {
    'concentration': {
        'long_name': 'passive tracer concentration',
        'units': '1',
    },
    'streamfunction': {
        'long_name': 'quasi-geostrophic streamfunction',
        'units': '1',
    },
}


@dataclass(frozen=True)
class Snapshot:
    """
    One saved record.

    Attributes:
        step: Tracer step at which the record was taken
        t: Tracer time
        flow_t: Flow time
        fields: Read-only arrays with shape (nlayers, nx, ny)
    """
    step: int
    t: float
    flow_t: float
    fields: Mapping[str, np.ndarray]

    def __getitem__(self, name: str) -> np.ndarray:
        return self.fields[name]


class SnapshotStore:
    """
    Appends derived fields of a coupled problem to a NetCDF file.

    Attributes:
        path: Output file path
        problem: CoupledProblem the fields are extracted from
        extractors: Mapping field name -> function(problem) -> array

    Example:
        >>> store = SnapshotStore("advection-diffusion.nc", problem)
        >>> store.write_metadata()
        >>> store.append()
    """

    def __init__(
        self,
        path: str,
        problem,
        extractors: Optional[Dict[str, Callable]] = None
    ):
        self.path = Path(path)
        self.problem = problem
        self.extractors = dict(extractors) if extractors else dict(DEFAULT_EXTRACTORS)
        self._last_step: Optional[int] = None

    @property
    def field_names(self) -> List[str]:
        return list(self.extractors)

    def write_metadata(self, config: Optional[Dict[str, Any]] = None):
        """
        Create the file with grid, layer and parameter metadata.

        Overwrites any existing file at `path`.

        Args:
            config: Optional scenario configuration stored as attributes
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        grid = self.problem.grid
        nlayers = self.problem.nlayers
        params = self.problem.flow.params

        try:
            with Dataset(self.path, 'w', format='NETCDF4') as nc:
                # ============================================================
                # DIMENSIONS
                # ============================================================
                nc.createDimension('time', None)
                nc.createDimension('layer', nlayers)
                nc.createDimension('y', grid.ny)
                nc.createDimension('x', grid.nx)

                # ============================================================
                # COORDINATES
                # ============================================================
                nc_step = nc.createVariable('step', 'i8', ('time',))
                nc_step.long_name = 'tracer time step'

                nc_t = nc.createVariable('t', 'f8', ('time',))
                nc_t.long_name = 'time since tracer release'
                nc_t.standard_name = 'time'
                nc_t.axis = 'T'

                nc_flow_t = nc.createVariable('flow_t', 'f8', ('time',))
                nc_flow_t.long_name = 'flow time'

                nc_x = nc.createVariable('x', 'f8', ('x',))
                nc_x[:] = grid.x
                nc_x.long_name = 'x-coordinate (zonal)'
                nc_x.axis = 'X'

                nc_y = nc.createVariable('y', 'f8', ('y',))
                nc_y[:] = grid.y
                nc_y.long_name = 'y-coordinate (meridional)'
                nc_y.axis = 'Y'

                nc_layer = nc.createVariable('layer', 'i4', ('layer',))
                nc_layer[:] = np.arange(1, nlayers + 1)
                nc_layer.long_name = 'layer index (1 = top)'
                nc_layer.positive = 'down'

                # ============================================================
                # LAYER PROPERTIES
                # ============================================================
                for name, values, long_name in (
                    ('H', params.H, 'layer rest depth'),
                    ('rho', params.rho, 'layer density'),
                    ('U', params.U, 'imposed zonal mean flow'),
                ):
                    var = nc.createVariable(name, 'f8', ('layer',))
                    var[:] = values
                    var.long_name = long_name

                # ============================================================
                # SNAPSHOT FIELDS
                # ============================================================
                for name in self.extractors:
                    var = nc.createVariable(
                        name, 'f8', ('time', 'layer', 'y', 'x'), zlib=True,
                        chunksizes=(1, nlayers, grid.ny, grid.nx)
                    )
                    attrs = FIELD_ATTRS.get(name, {'long_name': name})
                    for key, value in attrs.items():
                        var.setncattr(key, value)
                    var.coordinates = 't layer y x'

                # ============================================================
                # GLOBAL ATTRIBUTES
                # ============================================================
                nc.title = 'Passive tracer advection-diffusion in multi-layer QG turbulence'
                nc.institution = 'arus'
                nc.source = 'arus v0.1.0'
                nc.history = f'Created {datetime.now().isoformat()}'
                nc.Conventions = 'CF-1.8'
                nc.field_names = ','.join(self.extractors)

                for key, value in self.problem.parameters().items():
                    nc.setncattr(f'param_{key}', value)

                if config:
                    nc.scenario_name = str(config.get('scenario_name', 'unknown'))
        except (OSError, RuntimeError) as e:
            raise SnapshotWriteError(
                f"Could not create snapshot file {self.path}: {e}"
            ) from e

        self._last_step = None

    def append(self) -> Snapshot:
        """
        Extract every field from the problem and append one record.

        Returns:
            The Snapshot that was written

        Raises:
            ValueError: The step is not after the last appended step
            DivergenceError: An extracted field is not finite
            SnapshotWriteError: A field has the wrong shape or the file
                could not be written
        """
        clock = self.problem.clock
        step = int(clock.step)

        if self._last_step is not None and step <= self._last_step:
            raise ValueError(
                f"Snapshot steps must increase: got {step} after {self._last_step}"
            )

        grid = self.problem.grid
        expected = (self.problem.nlayers, grid.nx, grid.ny)
        fields = {}
        for name, extractor in self.extractors.items():
            data = np.asarray(extractor(self.problem), dtype=np.float64)
            if data.shape != expected:
                raise SnapshotWriteError(
                    f"Field '{name}' has shape {data.shape} at step {step}, "
                    f"expected {expected}"
                )
            if not np.isfinite(data).all():
                raise DivergenceError(
                    f"Field '{name}' is not finite at step {step} (t = {clock.t:.4f})"
                )
            data.flags.writeable = False
            fields[name] = data

        try:
            with Dataset(self.path, 'a') as nc:
                idx = len(nc.dimensions['time'])
                # fields first, the time coordinates mark the record complete
                for name, data in fields.items():
                    nc.variables[name][idx] = np.transpose(data, (0, 2, 1))
                nc.variables['flow_t'][idx] = self.problem.flow.clock.t
                nc.variables['t'][idx] = clock.t
                nc.variables['step'][idx] = step
        except (OSError, RuntimeError, KeyError, ValueError, IndexError) as e:
            raise SnapshotWriteError(
                f"Could not append snapshot at step {step} to {self.path}: {e}"
            ) from e

        self._last_step = step

        return Snapshot(
            step=step,
            t=float(clock.t),
            flow_t=float(self.problem.flow.clock.t),
            fields=MappingProxyType(fields)
        )


def read_snapshots(path: str) -> List[Snapshot]:
    """
    Read every record of a snapshot file.

    Args:
        path: File written by SnapshotStore

    Returns:
        Snapshots ordered by step
    """
    with Dataset(path, 'r') as nc:
        nc.set_auto_mask(False)
        field_names = [n for n in nc.getncattr('field_names').split(',') if n]
        steps = np.asarray(nc.variables['step'][:])
        times = np.asarray(nc.variables['t'][:])
        flow_times = np.asarray(nc.variables['flow_t'][:])

        snapshots = []
        for i in range(len(steps)):
            fields = {}
            for name in field_names:
                data = np.ascontiguousarray(
                    np.transpose(np.asarray(nc.variables[name][i]), (0, 2, 1))
                )
                data.flags.writeable = False
                fields[name] = data
            snapshots.append(Snapshot(
                step=int(steps[i]),
                t=float(times[i]),
                flow_t=float(flow_times[i]),
                fields=MappingProxyType(fields)
            ))

    return snapshots


def read_metadata(path: str) -> Dict[str, Any]:
    """
    Read grid coordinates and run parameters of a snapshot file.

    Returns:
        Dictionary with 'x', 'y', 'Lx', 'Ly', 'nlayers', 'field_names'
        and every stored run parameter (without the 'param_' prefix)
    """
    with Dataset(path, 'r') as nc:
        nc.set_auto_mask(False)
        x = np.asarray(nc.variables['x'][:])
        y = np.asarray(nc.variables['y'][:])
        metadata = {
            'x': x,
            'y': y,
            'nlayers': len(nc.dimensions['layer']),
            'field_names': nc.getncattr('field_names').split(','),
            'n_snapshots': len(nc.dimensions['time']),
        }
        for key in nc.ncattrs():
            if key.startswith('param_'):
                metadata[key[len('param_'):]] = nc.getncattr(key)
        if 'scenario_name' in nc.ncattrs():
            metadata['scenario_name'] = nc.getncattr('scenario_name')

    metadata.setdefault('Lx', float(len(x) * (x[1] - x[0])))
    metadata.setdefault('Ly', float(len(y) * (y[1] - y[0])))
    return metadata


def read_grid(path: str) -> TwoDGrid:
    """Rebuild the TwoDGrid a snapshot file was written on."""
    metadata = read_metadata(path)
    return TwoDGrid(
        nx=len(metadata['x']),
        Lx=float(metadata['Lx']),
        ny=len(metadata['y']),
        Ly=float(metadata['Ly'])
    )
