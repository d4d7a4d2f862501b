"""Simulation logger for coupled flow-tracer runs."""

import logging
import numpy as np
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, List


class SimulationLogger:
    """Logger for coupled flow-tracer simulations."""

    def __init__(
        self,
        scenario_name: str,
        log_dir: str = "logs",
        verbose: bool = True
    ):
        """
        Initialize simulation logger.

        Args:
            scenario_name: Scenario name (for log filename)
            log_dir: Directory for log files
            verbose: Print warnings and errors to console
        """
        self.scenario_name = scenario_name
        self.log_dir = Path(log_dir)
        self.verbose = verbose

        self.log_dir.mkdir(parents=True, exist_ok=True)

        # Clean scenario name for filename
        clean_name = scenario_name.lower().replace(' ', '_').replace('-', '_')
        self.log_file = self.log_dir / f"{clean_name}.log"

        self.logger = self._setup_logger()
        self.warnings: List[str] = []
        self.errors: List[str] = []

    def _setup_logger(self) -> logging.Logger:
        """Configure Python logging."""
        logger = logging.getLogger(f"arus_{self.scenario_name}")
        logger.setLevel(logging.DEBUG)
        for handler in logger.handlers:
            handler.close()
        logger.handlers = []
        logger.propagate = False

        handler = logging.FileHandler(self.log_file, mode='w')
        handler.setLevel(logging.DEBUG)

        formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)

        logger.addHandler(handler)
        return logger

    def info(self, msg: str):
        """Log informational message."""
        self.logger.info(msg)

    def warning(self, msg: str):
        """Log warning message."""
        self.logger.warning(msg)
        self.warnings.append(msg)

        if self.verbose:
            print(f"  WARNING: {msg}")

    def error(self, msg: str):
        """Log error message."""
        self.logger.error(msg)
        self.errors.append(msg)

        if self.verbose:
            print(f"  ERROR: {msg}")

    def _banner(self, title: str, leading_blank: bool = True):
        if leading_blank:
            self.info("")
        rule = "=" * 70
        for line in (rule, title, rule):
            self.info(line)

    def log_problem(self, problem: 'CoupledProblem'):
        """Log flow and tracer configuration."""
        params = problem.flow.params
        grid = problem.grid

        self._banner(f"COUPLED FLOW-TRACER SIMULATION: {self.scenario_name}",
                     leading_blank=False)
        self.info("")

        self.info("GRID:")
        self.info(f"  nx × ny = {grid.nx} × {grid.ny}")
        self.info(f"  Lx × Ly = {grid.Lx:.4f} × {grid.Ly:.4f}")
        self.info(f"  aliased fraction = {grid.aliased_fraction}")

        self.info("")
        self.info("FLOW:")
        self.info(f"  Layers = {params.nlayers}")
        self.info(f"  H = {np.array2string(params.H, precision=3)}")
        self.info(f"  rho = {np.array2string(params.rho, precision=3)}")
        self.info(f"  U = {np.array2string(params.U, precision=3)}")
        self.info(f"  beta = {params.beta}, mu = {params.mu}")
        if params.deformation_radius is not None:
            self.info(f"  Deformation radius = {params.deformation_radius:.4f}")
        self.info(f"  Flow time at release = {problem.flow.clock.t:.3f} "
                  f"(step {problem.flow.clock.step})")

        self.info("")
        self.info("TRACER:")
        self.info(f"  kappa = {problem.tracer.kappa}")
        self.info(f"  Release time = {problem.tracer.tracer_release_time}")

        self.info("=" * 70)

    def log_config(self, config: Dict[str, Any]):
        """Log run configuration."""
        self.info("")
        self.info("SIMULATION PARAMETERS:")
        self.info(f"  dt = {config.get('dt', '?')}")
        self.info(f"  Stepper = {config.get('stepper', '?')}")
        self.info(f"  Steps = {config.get('num_steps', '?')}")
        self.info(f"  Snapshot interval = {config.get('snapshot_interval', '?')} steps")

        cfl = config.get('cfl', None)
        if cfl is not None:
            self.info(f"  CFL number = {cfl:.3f}")

        self.info("=" * 70)

    def log_diagnostics(self, diagnostics: Dict[str, Any]):
        """Log diagnostic metrics."""
        self._banner("RUN DIAGNOSTICS")

        self.info("")
        self.info("CONSERVATION:")
        self.info(f"  Mass error (relative): {diagnostics.get('mass_error_relative', np.nan):.2e}")

        self.info("")
        self.info("MIXING:")
        self.info(f"  Variance ratio: {diagnostics.get('variance_ratio', np.nan):.4f}")
        self.info(f"  Max concentration (final): "
                  f"{diagnostics.get('max_concentration_final', np.nan):.4f}")

        if 'kinetic_energy_final' in diagnostics:
            self.info("")
            self.info("FLOW:")
            self.info(f"  Kinetic energy (final): {diagnostics['kinetic_energy_final']:.4e}")

        self.info("=" * 70)

    def log_timing(self, timing: Dict[str, float]):
        """Log timing breakdown."""
        self._banner("TIMING")

        for key, value in sorted(timing.items()):
            if key != 'total':
                self.info(f"  {key}: {value:.3f} s")

        self.info(f"  {'-' * 40}")
        total = timing.get('total', sum(timing.values()))
        self.info(f"  TOTAL: {total:.3f} s")

        self.info("=" * 70)

    def finalize(self):
        """Write final summary and release the log file."""
        self._banner("SUMMARY")

        for label, messages in (("ERRORS", self.errors), ("WARNINGS", self.warnings)):
            self.info(f"{label}: {len(messages) or 'None'}")
            for i, msg in enumerate(messages, 1):
                self.info(f"  {i}. {msg}")

        self.info("")
        self.info(f"Log file: {self.log_file}")
        self.info(f"Completed: {datetime.now().isoformat()}")
        self.info("=" * 70)

        for handler in self.logger.handlers:
            handler.close()
