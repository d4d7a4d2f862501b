"""
Configuration Manager for Coupled Flow-Tracer Scenarios.

Config files are plain text, one `key = value` per line:

    # Two-layer run
    scenario_name = Two-Layer Turbulent Advection-Diffusion
    nx = 128
    H = 0.2, 0.8
    save_gif = true

Values are parsed as bool, int, float, comma-separated float list,
or left as strings.
"""

import numbers

import numpy as np
from pathlib import Path
from typing import Dict, Any


_BASE_CONFIG: Dict[str, Any] = {
    'nx': 128,
    'Lx': 2 * np.pi,
    'aliased_fraction': 0.0,
    'workers': 1,
    'stepper': 'FilteredRK4',
    'dt': 2.5e-3,
    'f0': 1.0,
    'g': 1.0,
    'mu': 5e-2,
    'beta': 5.0,
    'nu': 0.0,
    'nnu': 1,
    'seed': 1234,
    'q_amplitude': 1e-2,
    'kappa': 0.002,
    'tracer_release_time': 25.0,
    'tracer_amplitude': 10.0,
    'tracer_spread': 0.15,
    'num_steps': 4000,
    'snapshot_interval': 50,
    'save_gif': True,
    'animation_layer': 2,
    'animation_fps': 18,
}


_CASES: Dict[str, Dict[str, Any]] = {
    'case1': {
        'scenario_name': 'Two-Layer Turbulent Advection-Diffusion',
        'nlayers': 2,
        'H': [0.2, 0.8],
        'rho': [4.0, 5.0],
        'U': [1.0, 0.0],
    },
    'case2': {
        'scenario_name': 'Barotropic Beta-Plane Stirring',
        'nlayers': 1,
        'H': [1.0],
        'rho': [1.0],
        'U': [0.0],
        'q_amplitude': 1.0,
        'tracer_release_time': 5.0,
        'num_steps': 2000,
        'animation_layer': 1,
    },
    'case3': {
        'scenario_name': 'Three-Layer Baroclinic Turbulence',
        'nlayers': 3,
        'H': [0.2, 0.3, 0.5],
        'rho': [4.0, 4.5, 5.0],
        'U': [1.0, 0.5, 0.0],
        'animation_layer': 3,
    },
}


class ConfigManager:
    """Load, save and validate scenario configurations."""

    REQUIRED = ('nx', 'Lx', 'dt', 'num_steps', 'snapshot_interval', 'kappa')

    @staticmethod
    def _parse_value(value: str) -> Any:
        """Convert a raw string to bool, int, float, list or str."""
        lowered = value.lower()
        if lowered in ('true', 'yes', 'on'):
            return True
        if lowered in ('false', 'no', 'off'):
            return False

        if ',' in value:
            parts = [p.strip() for p in value.split(',') if p.strip()]
            try:
                return [float(p) for p in parts]
            except ValueError:
                return value

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            return value

    @staticmethod
    def _format_value(value: Any) -> str:
        if isinstance(value, bool):
            return 'true' if value else 'false'
        if isinstance(value, (list, tuple, np.ndarray)):
            text = ', '.join(repr(float(v)) for v in value)
            # trailing comma keeps one-element lists as lists on reload
            return text + ',' if len(value) == 1 else text
        if isinstance(value, float):
            return repr(value)
        return str(value)

    @staticmethod
    def load(filepath: str) -> Dict[str, Any]:
        """
        Load configuration from a text file.

        Args:
            filepath: Path to the config file

        Returns:
            Configuration dictionary
        """
        config: Dict[str, Any] = {}

        with open(filepath, 'r') as f:
            for line_number, raw in enumerate(f, 1):
                line = raw.split('#', 1)[0].strip()
                if not line:
                    continue
                if '=' not in line:
                    raise ValueError(
                        f"{filepath}:{line_number}: expected 'key = value', got '{raw.strip()}'"
                    )
                key, value = line.split('=', 1)
                config[key.strip()] = ConfigManager._parse_value(value.strip())

        return config

    @staticmethod
    def save(config: Dict[str, Any], filepath: str):
        """
        Save configuration to a text file.

        Args:
            config: Configuration dictionary
            filepath: Output file path
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, 'w') as f:
            f.write("# arus scenario configuration\n")
            for key, value in config.items():
                f.write(f"{key} = {ConfigManager._format_value(value)}\n")

    @staticmethod
    def get_default_config(case_name: str) -> Dict[str, Any]:
        """
        Built-in scenario configuration.

        Args:
            case_name: 'case1', 'case2' or 'case3'

        Returns:
            New configuration dictionary
        """
        if case_name not in _CASES:
            raise ValueError(
                f"Unknown case '{case_name}', choose from {sorted(_CASES)}"
            )
        config = dict(_BASE_CONFIG)
        config.update(_CASES[case_name])
        return {
            key: list(value) if isinstance(value, list) else value
            for key, value in config.items()
        }

    @staticmethod
    def validate_config(config: Dict[str, Any]) -> bool:
        """
        Check that required parameters exist and are in range.

        Raises:
            ValueError: On a missing or invalid parameter

        Returns:
            True if valid
        """
        missing = [key for key in ConfigManager.REQUIRED if key not in config]
        if missing:
            raise ValueError(f"Missing required parameters: {', '.join(missing)}")

        for key in ('nx', 'Lx', 'dt', 'num_steps', 'snapshot_interval', 'kappa'):
            value = config[key]
            if not isinstance(value, numbers.Real) or isinstance(value, bool):
                raise ValueError(f"{key} must be a number, got {value!r}")

        for key in ('nx', 'Lx', 'dt', 'num_steps', 'snapshot_interval'):
            if config[key] <= 0:
                raise ValueError(f"{key} must be positive, got {config[key]}")
        for key in ('nx', 'num_steps', 'snapshot_interval'):
            if not isinstance(config[key], int) or isinstance(config[key], bool):
                raise ValueError(f"{key} must be an integer, got {config[key]!r}")
        if config['kappa'] < 0:
            raise ValueError(f"kappa must be non-negative, got {config['kappa']}")

        nlayers = config.get('nlayers')
        if nlayers is not None:
            for key in ('H', 'rho', 'U'):
                values = config.get(key)
                if values is None:
                    continue
                n_values = len(values) if isinstance(values, (list, tuple)) else 1
                if n_values != nlayers:
                    raise ValueError(
                        f"{key} has {n_values} entries, expected nlayers={nlayers}"
                    )

        return True
