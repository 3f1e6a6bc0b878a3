"""
Centralized configuration loading utility.
"""

import os
from pathlib import Path
from typing import Any

import yaml

ENV_VAR = "SCHOLARGRAPH_CONFIG"


def _read(path: Path) -> dict[str, Any]:
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """
    Load configuration from YAML file.

    Priority order:
    1. Explicitly provided config_path
    2. SCHOLARGRAPH_CONFIG environment variable
    3. config.yaml in current directory
    4. config.yaml next to the package
    5. config.example.yaml next to the package
    6. Empty dict as fallback
    """
    if config_path and Path(config_path).exists():
        return _read(Path(config_path))

    if os.environ.get(ENV_VAR):
        env_config = Path(os.environ[ENV_VAR])
        if env_config.exists():
            return _read(env_config)

    cwd_config = Path.cwd() / "config.yaml"
    if cwd_config.exists():
        return _read(cwd_config)

    # Repository root (parent of the package directory)
    root_dir = Path(__file__).resolve().parent.parent.parent
    for name in ("config.yaml", "config.example.yaml"):
        candidate = root_dir / name
        if candidate.exists():
            return _read(candidate)

    # Commands still run with built-in defaults
    return {}
