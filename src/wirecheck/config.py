"""Run configuration.

Settings come from three layers, later ones winning:

1. a YAML file (``wirecheck.yaml`` in the working directory, or ``--config``)::

       inconsistency: fatal        # fatal | advisory
       workers: 4
       format: text                # text | json
       fail_on_empty: false
       show_corresponds: true
       ignore_fields: [id, created_at]
       allowed_hosts: [artifacts.example.com]

2. ``WIRECHECK_*`` environment variables
   (``WIRECHECK_INCONSISTENCY``, ``WIRECHECK_WORKERS``, ``WIRECHECK_FORMAT``,
   ``WIRECHECK_FAIL_ON_EMPTY``, ``WIRECHECK_IGNORE_FIELDS`` comma-separated)
3. command-line flags
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from wirecheck.errors import ConfigError

DEFAULT_CONFIG_FILE = "wirecheck.yaml"

FORMATS = ("text", "json")
INCONSISTENCY_MODES = ("fatal", "advisory")


@dataclass(frozen=True)
class VerifyConfig:
    """Options for one verification run."""

    inconsistency_fatal: bool = True
    workers: int | None = None
    format: str = "text"
    fail_on_empty: bool = False
    show_corresponds: bool = True
    ignore_fields: frozenset[str] = field(default_factory=frozenset)
    allowed_hosts: frozenset[str] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VerifyConfig":
        unknown = set(data) - _KNOWN_KEYS
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        config = cls()
        return config.merge(data)

    def merge(self, data: dict[str, Any]) -> "VerifyConfig":
        """Return a copy with the settings in *data* applied."""
        changes: dict[str, Any] = {}
        if data.get("inconsistency") is not None:
            changes["inconsistency_fatal"] = _parse_mode(data["inconsistency"])
        if data.get("workers") is not None:
            changes["workers"] = _parse_workers(data["workers"])
        if data.get("format") is not None:
            if data["format"] not in FORMATS:
                raise ConfigError(f"format must be one of {', '.join(FORMATS)}, got {data['format']!r}")
            changes["format"] = data["format"]
        if data.get("fail_on_empty") is not None:
            changes["fail_on_empty"] = _parse_bool("fail_on_empty", data["fail_on_empty"])
        if data.get("show_corresponds") is not None:
            changes["show_corresponds"] = _parse_bool("show_corresponds", data["show_corresponds"])
        if data.get("ignore_fields") is not None:
            changes["ignore_fields"] = frozenset(_parse_names("ignore_fields", data["ignore_fields"]))
        if data.get("allowed_hosts") is not None:
            changes["allowed_hosts"] = frozenset(_parse_names("allowed_hosts", data["allowed_hosts"]))
        return replace(self, **changes)


_KNOWN_KEYS = {
    "inconsistency",
    "workers",
    "format",
    "fail_on_empty",
    "show_corresponds",
    "ignore_fields",
    "allowed_hosts",
}


def _parse_mode(value: Any) -> bool:
    if value not in INCONSISTENCY_MODES:
        raise ConfigError(
            f"inconsistency must be one of {', '.join(INCONSISTENCY_MODES)}, got {value!r}"
        )
    return value == "fatal"


def _parse_workers(value: Any) -> int:
    try:
        workers = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"workers must be an integer, got {value!r}") from exc
    if workers < 1:
        raise ConfigError(f"workers must be at least 1, got {workers}")
    return workers


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("1", "true", "yes", "on"):
        return True
    if isinstance(value, str) and value.lower() in ("0", "false", "no", "off", ""):
        return False
    raise ConfigError(f"{key} must be a boolean, got {value!r}")


def _parse_names(key: str, value: Any) -> list[str]:
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, (list, tuple, set, frozenset)) and all(isinstance(v, str) for v in value):
        return list(value)
    raise ConfigError(f"{key} must be a list of names, got {value!r}")


def load_config_file(path: str | Path | None = None) -> dict[str, Any]:
    """Read a YAML config file.

    With no *path*, ``wirecheck.yaml`` in the working directory is used if
    present; an explicitly given path must exist.
    """
    if path is None:
        candidate = Path.cwd() / DEFAULT_CONFIG_FILE
        if not candidate.exists():
            return {}
        path = candidate
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def env_overrides() -> dict[str, Any]:
    """Collect settings from ``WIRECHECK_*`` environment variables."""
    mapping = {
        "WIRECHECK_INCONSISTENCY": "inconsistency",
        "WIRECHECK_WORKERS": "workers",
        "WIRECHECK_FORMAT": "format",
        "WIRECHECK_FAIL_ON_EMPTY": "fail_on_empty",
        "WIRECHECK_IGNORE_FIELDS": "ignore_fields",
    }
    overrides: dict[str, Any] = {}
    for env_var, key in mapping.items():
        value = os.environ.get(env_var)
        if value:
            overrides[key] = value
    return overrides


def load_config(path: str | Path | None = None, overrides: dict[str, Any] | None = None) -> VerifyConfig:
    """Build a :class:`VerifyConfig` from file, environment and *overrides*."""
    config = VerifyConfig.from_dict(load_config_file(path))
    config = config.merge(env_overrides())
    if overrides:
        config = config.merge(overrides)
    return config
