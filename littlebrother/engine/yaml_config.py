"""Config file loader.

Looks for the plugin config under the project's ``.opencode`` directory.
YAML is preferred; the JSON file the plugin has always used is read
with the same parser since JSON is valid YAML.

Example ``.opencode/littlebrother.yaml``:
    supervisor:
      model: google/gemini-2.5-flash
    failOpen: true
    timeout: 5000
    watchdog:
      checkIntervalTokens: 500
      maxBufferTokens: 2000
    gatekeeper:
      blockedTools: [webfetch]
      alwaysAllowTools: [read, glob, grep]
    sanitizer:
      maxOutputChars: 5000
      redactSecrets: true
      deepAnalysis: false
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from .config import SupervisorConfig

logger = logging.getLogger(__name__)

CONFIG_DIRNAME = ".opencode"
CONFIG_FILENAMES: tuple[str, ...] = (
    "littlebrother.yaml",
    "littlebrother.yml",
    "littlebrother.json",
)


def find_config_file(directory: str | Path) -> Path | None:
    """Return the first existing config file for *directory*, if any."""
    config_dir = Path(directory) / CONFIG_DIRNAME
    for name in CONFIG_FILENAMES:
        candidate = config_dir / name
        if candidate.is_file():
            return candidate
    return None


def read_raw_config(path: Path) -> dict[str, Any]:
    """Parse a config file into a dict.

    Unreadable or malformed files are logged and treated as empty so a
    broken config never takes the host down.
    """
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as exc:
        logger.error("read_raw_config: cannot read %s: %s", path, exc)
        return {}
    except yaml.YAMLError as exc:
        logger.error("read_raw_config: parse error in %s: %s", path, exc)
        return {}

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        logger.error(
            "read_raw_config: %s must contain a mapping, got %s",
            path, type(raw).__name__,
        )
        return {}
    return raw


def load_config(directory: str | Path) -> SupervisorConfig:
    """Load, validate and env-override the config for *directory*."""
    path = find_config_file(directory)
    if path is None:
        logger.debug(
            "load_config: no config file under %s, using defaults",
            Path(directory) / CONFIG_DIRNAME,
        )
        raw: dict[str, Any] = {}
    else:
        raw = read_raw_config(path)
        sections = sorted(raw.keys())
        logger.info(
            "Parsed config %s: sections: %s",
            path.name, ", ".join(sections) if sections else "(empty)",
        )

    return SupervisorConfig.from_dict(raw).with_env_overrides()
