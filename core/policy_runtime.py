"""Configuration loading and runtime directory bootstrapping."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG: dict[str, Any] = {
    "goals": {"max_active_goals": 3, "review_intervals": [7, 14, 30]},
    "paths": {"db_path": "workspace/goaly.db", "audit_log_path": "logs/audit.jsonl"},
    "logging": {"level": "INFO"},
}


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML from file, returning empty mapping when missing."""
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dictionaries."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def ensure_runtime_dirs(root: Path, config: dict[str, Any]) -> dict[str, Path]:
    """Ensure database and log directories exist and return resolved paths."""
    paths_cfg = config.get("paths", {})
    db_path = (root / paths_cfg.get("db_path", "workspace/goaly.db")).resolve()
    audit_log_path = (root / paths_cfg.get("audit_log_path", "logs/audit.jsonl")).resolve()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    audit_log_path.parent.mkdir(parents=True, exist_ok=True)

    return {"db_path": db_path, "audit_log_path": audit_log_path}


def load_effective_config(root: Path, override_path: Path | None = None) -> dict[str, Any]:
    """Merge built-in defaults, ``config/default.yaml`` and an optional override file."""
    merged = merge_dicts(DEFAULT_CONFIG, load_yaml(root / "config" / "default.yaml"))
    if override_path is not None:
        merged = merge_dicts(merged, load_yaml(override_path))
    return merged


def configure_logging(config: dict[str, Any], verbose: bool = False) -> None:
    """Apply the ``logging`` config section to the root logger."""
    level_name = "DEBUG" if verbose else str(config.get("logging", {}).get("level", "INFO"))
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
