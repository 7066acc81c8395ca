"""Configuration loading from CLI args, env vars, and optional YAML file.

Precedence: CLI flag > environment variable > YAML key > default.
"""

import logging
import os
from dataclasses import dataclass

import yaml

from jmlog.assembler import PRECISIONS
from jmlog.classifier import EVENT_TYPES, TAKER_EVENT_TYPES

logger = logging.getLogger(__name__)

MODES = ("full", "reduced")

# option name -> (env var, yaml key)
_SOURCES = {
    "mode": ("JMLOG_MODE", "mode"),
    "output_path": ("JMLOG_OUTPUT", "output"),
    "labels_path": ("JMLOG_LABELS_OUTPUT", "labels_output"),
    "precision": ("JMLOG_PRECISION", "precision"),
    "stats_path": ("JMLOG_STATS_FILE", "stats_file"),
    "log_level": ("JMLOG_LOG_LEVEL", "log_level"),
    "encoding": ("JMLOG_ENCODING", "encoding"),
}


@dataclass(frozen=True)
class Config:
    directory: str = "."
    output_path: str = "joinmarket.json"
    labels_path: str = "joinmarket-bip329.json"
    mode: str = "full"
    precision: str = "seconds"
    stats_path: str | None = None
    log_level: str = "INFO"
    encoding: str = "utf-8"

    @property
    def enabled_types(self) -> frozenset[str]:
        if self.mode == "reduced":
            return TAKER_EVENT_TYPES
        return frozenset(EVENT_TYPES)

    @property
    def labels_enabled(self) -> bool:
        return self.mode == "full"


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path.

    A missing file falls back to defaults; an unreadable file or one that is
    not a YAML mapping raises ValueError.
    """
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ValueError(f"Cannot read config {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data


def _resolve(name: str, cli_args, yaml_data: dict):
    cli_value = getattr(cli_args, name, None)
    if cli_value is not None:
        return cli_value
    env_var, yaml_key = _SOURCES[name]
    env_value = os.environ.get(env_var)
    if env_value:
        return env_value
    if yaml_data.get(yaml_key) is not None:
        return yaml_data[yaml_key]
    return getattr(Config, name)


def load_config(cli_args, yaml_data: dict) -> Config:
    """Build Config from CLI args, env vars, and parsed YAML data."""
    values = {name: _resolve(name, cli_args, yaml_data) for name in _SOURCES}

    mode = str(values["mode"]).lower()
    if mode not in MODES:
        raise ValueError(f"Unknown mode {values['mode']!r}, expected one of {', '.join(MODES)}")

    precision = str(values["precision"]).lower()
    if precision not in PRECISIONS:
        raise ValueError(
            f"Unknown precision {values['precision']!r}, expected one of {', '.join(PRECISIONS)}"
        )

    return Config(
        directory=cli_args.directory,
        output_path=values["output_path"],
        labels_path=values["labels_path"],
        mode=mode,
        precision=precision,
        stats_path=values["stats_path"],
        log_level=str(values["log_level"]).upper(),
        encoding=values["encoding"],
    )
