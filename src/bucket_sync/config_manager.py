"""User configuration file management (~/.bucket-sync/config.yaml)."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml


def get_config_path(config_dir: Optional[Path] = None) -> Path:
    """Return the path of the user configuration file."""
    return (config_dir or Path.home() / ".bucket-sync") / "config.yaml"


def load_config(config_path: Optional[Path] = None) -> Optional[Dict[str, Any]]:
    """Load the user configuration.

    Returns None when the file does not exist. Malformed YAML raises
    ``yaml.YAMLError`` so callers can report it.
    """
    path = config_path or get_config_path()
    if not path.exists():
        return None

    with open(path, "r") as f:
        return yaml.safe_load(f)


def save_config(config_path: Path, config: Dict[str, Any]) -> Path:
    """Write the user configuration, creating the directory if needed."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.safe_dump(config, f, default_flow_style=False, sort_keys=True)

    return config_path
