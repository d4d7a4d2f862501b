#!/usr/bin/env python
"""
Command Line Interface for arus Coupled Flow-Tracer Simulator.

Usage:
    arus case1              # Two-layer turbulent advection-diffusion
    arus case2              # Barotropic beta-plane stirring
    arus case3              # Three-layer baroclinic turbulence
    arus --all              # Run all cases
    arus --config path.txt  # Custom config
"""

import argparse
import re
import sys
from pathlib import Path

from .core.coordinator import CoupledProblem, Coordinator
from .core.diagnostics import (
    compute_all_diagnostics,
    compute_diagnostics_timeseries,
    compute_cfl,
)
from .io.config_manager import ConfigManager
from .io.data_handler import DataHandler
from .io.snapshot_store import SnapshotStore, read_snapshots, read_metadata
from .visualization.animator import Animator
from .utils.logger import SimulationLogger
from .utils.timer import Timer


def print_header():
    """Print ASCII art header."""
    print("\n" + "=" * 70)
    print(" " * 8 + "arus: Passive Tracers in Multi-Layer Quasi-Geostrophic Flow")
    print(" " * 25 + "Version 0.1.0")
    print("=" * 70)
    print("\n  Pseudo-Spectral Flow-Tracer Coupling with NetCDF Snapshots")
    print("  Filtered RK4 | Numba Layer Inversion | SciPy FFT")
    print("  License: MIT")
    print("=" * 70 + "\n")


def normalize_scenario_name(scenario_name: str) -> str:
    """Convert scenario name to clean filename format."""
    clean = re.sub(r"[\s\-]+", "_", scenario_name.strip().lower())
    return clean.strip("_")


def run_scenario(
    config: dict,
    output_dir: str = "outputs",
    verbose: bool = True
):
    """Run a complete coupled flow-tracer scenario."""

    scenario_name = config.get('scenario_name', 'simulation')
    clean_name = normalize_scenario_name(scenario_name)

    if verbose:
        print(f"\n{'=' * 70}")
        print(f"SCENARIO: {scenario_name}")
        print(f"{'=' * 70}")

    ConfigManager.validate_config(config)

    logger = SimulationLogger(clean_name, "logs", verbose)
    timer = Timer()
    timer.start("total")

    try:
        # [1/6] Build flow, spin up, release tracer
        with timer.time_section("problem_init"):
            if verbose:
                print("\n[1/6] Spinning up flow and releasing tracer...")

            problem = CoupledProblem.from_config(config)

            config = dict(config)
            config['cfl'] = compute_cfl(
                problem.flow.flow_field(), problem.flow.clock.dt, problem.grid
            )

            logger.log_problem(problem)
            logger.log_config(config)

            if verbose:
                print(f"      {problem.grid}")
                print(f"      Flow t at release: {problem.flow.clock.t:.3f}")
                print(f"      CFL number: {config['cfl']:.3f}")

            if config['cfl'] > 1.0:
                logger.warning(f"CFL number {config['cfl']:.3f} exceeds 1")

        # [2/6] Run coupled simulation
        nc_file = Path(output_dir) / "netcdf" / f"{clean_name}.nc"

        with timer.time_section("simulation"):
            if verbose:
                print("\n[2/6] Stepping tracer and flow...")

            store = SnapshotStore(str(nc_file), problem)
            store.write_metadata(config)

            coordinator = Coordinator(
                problem,
                store,
                snapshot_interval=config['snapshot_interval'],
                logger=logger,
                verbose=verbose
            )
            coordinator.run(config['num_steps'])

            if verbose:
                print(f"      Saved: {nc_file}")

        # [3/6] Reload snapshots
        with timer.time_section("netcdf_read"):
            if verbose:
                print("\n[3/6] Reading snapshots...")

            snapshots = read_snapshots(str(nc_file))
            metadata = read_metadata(str(nc_file))

            if verbose:
                print(f"      {len(snapshots)} snapshots, "
                      f"t = {snapshots[0].t:.2f} → {snapshots[-1].t:.2f}")

        # [4/6] Compute diagnostics
        with timer.time_section("diagnostics"):
            if verbose:
                print("\n[4/6] Computing diagnostics...")

            timeseries = compute_diagnostics_timeseries(snapshots, problem.grid)
            diagnostics = compute_all_diagnostics(
                snapshots, problem.grid, verbose=verbose
            )
            logger.log_diagnostics(diagnostics)

        # [5/6] Save CSV data
        with timer.time_section("csv_save"):
            if verbose:
                print("\n[5/6] Saving CSV data...")

            csv_dir = Path(output_dir) / "csv"
            csv_dir.mkdir(parents=True, exist_ok=True)

            diag_file = csv_dir / f"{clean_name}_diagnostics.csv"
            DataHandler.save_diagnostics_csv(str(diag_file), diagnostics)

            series_file = csv_dir / f"{clean_name}_timeseries.csv"
            DataHandler.save_timeseries_csv(str(series_file), timeseries)

            if verbose:
                print(f"      Saved: {diag_file}")
                print(f"      Saved: {series_file}")

        # [6/6] Generate visualizations
        with timer.time_section("visualization"):
            if verbose:
                print("\n[6/6] Generating visualizations...")

            animator = Animator(fps=config.get('animation_fps', 18), dpi=150)
            layer = min(config.get('animation_layer', 1), problem.nlayers)
            amplitude = config.get('tracer_amplitude', 10.0)

            fig_dir = Path(output_dir) / "figs"
            fig_dir.mkdir(parents=True, exist_ok=True)

            png_file = fig_dir / f"{clean_name}_summary.png"
            animator.create_static_plot(
                snapshots, metadata, str(png_file), timeseries,
                layer=layer, amplitude=amplitude, diagnostics=diagnostics
            )

            if verbose:
                print(f"      Saved: {png_file}")

            if config.get('save_gif', True):
                gif_dir = Path(output_dir) / "gifs"
                gif_dir.mkdir(parents=True, exist_ok=True)

                gif_file = gif_dir / f"{clean_name}_animation.gif"
                animator.create_animation(
                    snapshots, metadata, str(gif_file),
                    layer=layer,
                    amplitude=amplitude,
                    n_frames=config.get('animation_frames', None),
                    verbose=verbose
                )

        timer.stop("total")
        logger.log_timing(timer.get_times())

        if verbose:
            total_time = timer.times.get('total', 0)
            print(f"\n{'=' * 70}")
            print("SIMULATION COMPLETED")
            print(f"{'=' * 70}")
            print(f"  Snapshots written: {coordinator.snapshots_written}")
            print(f"  Mass conservation error: {diagnostics.get('mass_error_relative', 0):.2e}")
            print(f"  Variance ratio: {diagnostics.get('variance_ratio', 1):.4f}")
            print(f"  Total time: {total_time:.2f} s")
            print(f"{'=' * 70}\n")

        return snapshots, diagnostics

    except Exception as e:
        logger.error(f"Simulation failed: {str(e)}")

        if verbose:
            print(f"\n{'=' * 70}")
            print(f"SIMULATION FAILED: {str(e)}")
            print(f"{'=' * 70}\n")

        raise

    finally:
        logger.finalize()


def main():
    """Main entry point for command-line interface."""
    parser = argparse.ArgumentParser(
        description='arus: Passive Tracers in Multi-Layer QG Turbulence',
        epilog='Example: arus case1'
    )

    parser.add_argument(
        'case',
        nargs='?',
        choices=['case1', 'case2', 'case3'],
        help='Test case to run (case1-3)'
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        help='Path to custom configuration file'
    )

    parser.add_argument(
        '--all', '-a',
        action='store_true',
        help='Run all test cases sequentially'
    )

    parser.add_argument(
        '--output-dir', '-o',
        type=str,
        default='outputs',
        help='Output directory for results (default: outputs)'
    )

    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Quiet mode (minimal output)'
    )

    parser.add_argument(
        '--no-gif',
        action='store_true',
        help='Skip GIF animation generation'
    )

    args = parser.parse_args()
    verbose = not args.quiet

    if args.config:
        configs = [ConfigManager.load(args.config)]
    elif args.all:
        configs = [ConfigManager.get_default_config(f"case{n}") for n in range(1, 4)]
    elif args.case:
        configs = [ConfigManager.get_default_config(args.case)]
    else:
        parser.print_help()
        sys.exit(0)

    if verbose:
        print_header()

    for config in configs:
        if args.no_gif:
            config["save_gif"] = False
        run_scenario(config, args.output_dir, verbose)


if __name__ == '__main__':
    main()
