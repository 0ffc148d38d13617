"""YAML configuration: default template, loading and path resolution."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict

import typer
import yaml

DEFAULT_CONFIG_NAME = "config.yaml"

DEFAULT_CONFIG_TEMPLATE: Dict[str, Any] = {
    "project": {
        "name": "bottleplan",
        "description": "Baby feeding tracker and plan generator",
    },
    "models": {
        "default": "gpt-4o",
        "base_url": "https://api.openai.com/v1/responses",
        "api_key": "",
        "timeout": 20,
        "use_remote": False,
    },
    "storage": {
        "db_path": "data/bottleplan.sqlite",
        "retry": {
            "attempts": 3,
            "delay": 0.2,
        },
    },
    "planning": {
        "history_size": 5,
    },
    "settings": {
        "feedWindows": {"min": 2, "max": 3, "ideal": 2.5},
        "feedAmounts": {"min": 1.5, "max": 2.5, "target": 2},
        "useMetric": False,
        "lockedFeedings": {
            "enabled": True,
            "times": ["22:00", "00:30", "03:00", "05:30", "08:00"],
        },
    },
    "paths": {
        "data": "data",
        "logs": "data/logs",
        "config": DEFAULT_CONFIG_NAME,
    },
}


def copy_config_template() -> Dict[str, Any]:
    """Return a deep copy of the default configuration template."""
    return copy.deepcopy(DEFAULT_CONFIG_TEMPLATE)


def write_config(config_path: Path, config_data: Dict[str, Any]) -> None:
    """Persist configuration data to disk with stable formatting."""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(config_data, handle, sort_keys=False)


def load_config(config_path: Path) -> Dict[str, Any]:
    """Load YAML configuration from disk and return it as a dictionary."""
    if not config_path.exists():
        raise typer.BadParameter(f"Config file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        typer.echo(f"Failed to parse config: {error}")
        raise typer.Exit(code=1) from error

    if not isinstance(data, dict):
        typer.echo("Configuration must be a mapping at the top level.")
        raise typer.Exit(code=1)

    return data


def _resolve(config_path: Path, value: Any, default: str) -> Path:
    text = str(value).strip() if isinstance(value, str) and value.strip() else default
    candidate = Path(text)
    if not candidate.is_absolute():
        candidate = (config_path.parent / candidate).resolve()
    return candidate


def resolve_storage_config(config: Dict[str, Any], config_path: Path) -> Dict[str, Any]:
    """Return a copy of ``config`` whose database path is anchored at the config file."""
    resolved = copy.deepcopy(config)
    storage_cfg = resolved.setdefault("storage", {})
    paths_cfg = resolved.get("paths") or {}
    data_root = _resolve(config_path, paths_cfg.get("data"), "data")
    db_value = storage_cfg.get("db_path")
    if isinstance(db_value, str) and db_value.strip():
        storage_cfg["db_path"] = str(_resolve(config_path, db_value, db_value))
    else:
        storage_cfg["db_path"] = str(data_root / "bottleplan.sqlite")
    return resolved


def resolve_logs_root(config: Dict[str, Any], config_path: Path) -> Path:
    paths_cfg = config.get("paths") or {}
    return _resolve(config_path, paths_cfg.get("logs"), "data/logs")


__all__ = [
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_CONFIG_TEMPLATE",
    "copy_config_template",
    "load_config",
    "resolve_logs_root",
    "resolve_storage_config",
    "write_config",
]
