"""
Configuration for File Manager.

Settings live in a YAML file (config.yaml by default). A missing or unreadable
file falls back to the built-in defaults.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_CONFIG: Dict[str, Any] = {
    "continue_on_fail": False,
    "audit": True,
    "audit_log": "data/audit_log.jsonl",
    "archiver": {
        "command": "tar",
        "timeout": None,
    },
    "defaults": {
        "encoding": "utf8",
        "mode": 0o644,
        "recursive": True,
    },
}


@dataclass
class Settings:
    """Runtime settings for the batch runner and the CLI."""
    continue_on_fail: bool = False
    audit: bool = True
    audit_log: str = "data/audit_log.jsonl"
    archiver_command: str = "tar"
    archiver_timeout: Optional[float] = None
    defaults: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_CONFIG["defaults"]))

    def parameter_defaults(self) -> Dict[str, Any]:
        """Defaults applied by the parameter resolver."""
        params = {"data": ""}
        params.update(self.defaults)
        return params

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "Settings":
        """Build settings from a parsed config mapping, filling gaps with defaults."""
        archiver = dict(DEFAULT_CONFIG["archiver"])
        if isinstance(config.get("archiver"), dict):
            archiver.update(config["archiver"])

        defaults = dict(DEFAULT_CONFIG["defaults"])
        if isinstance(config.get("defaults"), dict):
            defaults.update(config["defaults"])

        timeout = archiver.get("timeout")
        return cls(
            continue_on_fail=bool(config.get("continue_on_fail", DEFAULT_CONFIG["continue_on_fail"])),
            audit=bool(config.get("audit", DEFAULT_CONFIG["audit"])),
            audit_log=str(config.get("audit_log", DEFAULT_CONFIG["audit_log"])),
            archiver_command=str(archiver["command"]),
            archiver_timeout=float(timeout) if timeout is not None else None,
            defaults=defaults,
        )


def load_config(config_path: str = "config.yaml") -> Dict[str, Any]:
    """
    Load the raw configuration mapping from a YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        The `filemanager` section if present, else the whole document.
        Built-in defaults if the file is missing or cannot be parsed.
    """
    path = Path(config_path)
    if not path.exists():
        return dict(DEFAULT_CONFIG)

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return dict(DEFAULT_CONFIG)

    if not isinstance(config, dict):
        return dict(DEFAULT_CONFIG)
    section = config.get("filemanager", config)
    if section is None:
        return {}
    if not isinstance(section, dict):
        return dict(DEFAULT_CONFIG)
    return section


def load_settings(config_path: str = "config.yaml") -> Settings:
    """Load Settings from a YAML file."""
    return Settings.from_dict(load_config(config_path))
