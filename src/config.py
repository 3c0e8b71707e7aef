"""Runtime settings assembled from defaults, a YAML file, the environment and the CLI.

Precedence, lowest to highest:

1. ``Constants`` defaults
2. the YAML file given with ``--config`` (or ``PECLFORGE_CONFIG``)
3. ``PECLFORGE_<KEY>`` environment variables
4. command-line arguments

Example YAML::

    registry_url: https://pecl.php.net/rest
    download_dir: /var/cache/peclforge
    minimum_stability: beta
    jobs: 4
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

import yaml

from constants import Constants
from errors import ConfigurationError
from versioning.models import Stability

logger = logging.getLogger(__name__)

# CLI dest -> settings key
_CLI_KEYS = {
    "REGISTRY_URL": "registry_url",
    "INDEX_URL": "index_url",
    "DOWNLOAD_DIR": "download_dir",
    "INSTALL_DIR": "install_dir",
    "MINIMUM_STABILITY": "minimum_stability",
    "JOBS": "jobs",
    "REQUEST_TIMEOUT": "request_timeout",
    "LOG_LEVEL": "log_level",
    "LOG_FILE": "log_file",
}


@dataclass(frozen=True)
class Settings:
    """Effective configuration of one invocation."""

    registry_url: str = Constants.REGISTRY_URL_PECL
    index_url: Optional[str] = None
    download_dir: str = Constants.DOWNLOAD_DIR
    install_dir: Optional[str] = None
    minimum_stability: Stability = Stability.STABLE
    jobs: Optional[int] = None
    request_timeout: float = Constants.REQUEST_TIMEOUT
    cleanup: bool = True
    log_level: str = "INFO"
    log_file: Optional[str] = None


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"invalid boolean for {key}: {value!r}")


def _coerce(key: str, value: Any) -> Any:
    """Convert a raw YAML/env/CLI value to the type of ``Settings.<key>``."""
    if value is None:
        return None
    if key == "minimum_stability":
        if isinstance(value, Stability):
            return value
        stability = Stability.from_string(str(value))
        if stability is Stability.UNKNOWN:
            raise ConfigurationError(
                f"invalid minimum_stability {value!r}; expected one of {', '.join(Constants.STABILITIES)}"
            )
        return stability
    if key == "jobs":
        try:
            jobs = int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"invalid jobs value {value!r}") from exc
        if jobs < 1:
            raise ConfigurationError(f"jobs must be at least 1, got {jobs}")
        return jobs
    if key == "request_timeout":
        try:
            timeout = float(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"invalid request_timeout value {value!r}") from exc
        if timeout <= 0:
            raise ConfigurationError(f"request_timeout must be positive, got {timeout}")
        return timeout
    if key == "cleanup":
        return _coerce_bool(key, value)
    if key == "log_level":
        level = str(value).upper()
        if level not in Constants.LOG_LEVELS:
            raise ConfigurationError(f"invalid log_level {value!r}")
        return level
    return str(value)


def load_yaml_config(path: str) -> Dict[str, Any]:
    """Read a YAML mapping of settings.

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a mapping.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as exc:
        raise ConfigurationError(f"could not read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"invalid YAML in config file {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"config file {path} must contain a mapping")
    return data


def load_settings(args: Any = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build the effective ``Settings``.

    Args:
        args: Parsed CLI namespace (attributes named as in ``args.py``), or None.
        environ: Environment mapping; defaults to os.environ.

    Raises:
        ConfigurationError: On unreadable config files or invalid values.
    """
    env = os.environ if environ is None else environ
    known = {f.name for f in fields(Settings)}
    values: Dict[str, Any] = {}

    config_path = getattr(args, "CONFIG", None) or env.get(f"{Constants.ENV_PREFIX}CONFIG")
    if config_path:
        for key, value in load_yaml_config(config_path).items():
            if key not in known:
                logger.warning("Ignoring unknown setting %r in %s", key, config_path)
                continue
            values[key] = value

    for key in known:
        env_value = env.get(f"{Constants.ENV_PREFIX}{key.upper()}")
        if env_value:
            values[key] = env_value

    if args is not None:
        for dest, key in _CLI_KEYS.items():
            cli_value = getattr(args, dest, None)
            if cli_value is not None:
                values[key] = cli_value
        if getattr(args, "NO_CLEANUP", False):
            values["cleanup"] = False

    return Settings(**{key: _coerce(key, value) for key, value in values.items()})
