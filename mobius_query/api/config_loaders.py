"""Configuration file loaders and helpers.

Settings are assembled from three layers, later layers winning:

1. **Package defaults** – ``config/defaults.yaml`` bundled with the package.
2. **User file** – ``mobius.yaml`` in ``config_dir`` (or ``$MOBIUS_CONFIG_DIR``).
3. **Environment** – ``MOBIUS_*`` variables, useful for credentials.

The merged mapping is validated by :class:`MobiusSettings`.  Loading follows a
*fail-soft* philosophy for the user file: a missing or malformed file leads to
an informative log message and the defaults, never a crash.  All YAML parsing
uses :pymod:`yaml.safe_load`.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

_PACKAGE_CONFIG_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "config")

ENV_MAP = {
    "server": "MOBIUS_SERVER",
    "username": "MOBIUS_USERNAME",
    "password": "MOBIUS_PASSWORD",
    "timeout": "MOBIUS_TIMEOUT",
    "utc_offset": "MOBIUS_UTC_OFFSET",
}


class MobiusSettings(BaseModel):
    """Validated runtime settings for one QA server."""

    server: str = ""
    username: str = ""
    password: str = Field("", repr=False)
    timeout: float = Field(60.0, gt=0)
    utc_offset: float = -5.0
    date_range_hours: float = Field(72.0, ge=0)
    date_window_inclusive: bool = False
    roster_limit: int = Field(999999999, gt=0)


def _read_yaml(path: str) -> Dict[str, Any]:
    """Return the mapping stored in *path*; empty when the file is unusable."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except FileNotFoundError:
        logger.debug("No configuration file at %s", path)
        return {}
    except (OSError, yaml.YAMLError) as exc:
        logger.error("Failed to parse %s: %s", path, exc)
        return {}

    if not isinstance(data, dict):
        logger.error("Ignoring %s: top level must be a mapping", path)
        return {}
    return data


def load_mobius_config(config_dir: str | None = None) -> MobiusSettings:
    """Return the merged and validated :class:`MobiusSettings`.

    Args:
        config_dir: Directory containing *mobius.yaml*.  When *None*,
            ``$MOBIUS_CONFIG_DIR`` is consulted; without it only defaults and
            environment variables apply.

    Returns:
        Settings object; credentials may still be empty.

    Raises:
        pydantic.ValidationError: When a value has the wrong type (for example
            ``MOBIUS_TIMEOUT=abc``).
    """
    cfg: Dict[str, Any] = _read_yaml(os.path.join(_PACKAGE_CONFIG_DIR, "defaults.yaml"))

    config_dir = config_dir or os.getenv("MOBIUS_CONFIG_DIR")
    if config_dir:
        user_path = os.path.join(os.path.expanduser(config_dir), "mobius.yaml")
        user_cfg = _read_yaml(user_path)
        if user_cfg:
            logger.info("Applying configuration from %s", user_path)
        cfg.update(user_cfg)

    for key, env in ENV_MAP.items():
        val = os.getenv(env)
        if val:
            cfg[key] = val

    # YAML renders an empty "server:" as None
    cleaned = {k: v for k, v in cfg.items() if v is not None}
    return MobiusSettings(**cleaned)
