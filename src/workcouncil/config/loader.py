"""Reading council configuration from disk and the environment.

Settings come from ``~/.workcouncil/config.yaml`` unless a path is given.
Credentials never live in that file: each backend names an environment
variable, and ``.env`` files in the working directory and in
``~/.workcouncil/`` are loaded into the environment on import.
"""

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError
import yaml

load_dotenv()
load_dotenv(Path.home() / ".workcouncil" / ".env")

from workcouncil.config.models import (  # noqa: E402
    BackendConfig,
    CouncilConfig,
    get_config_dir,
    get_default_config,
)
from workcouncil.core.errors import ConfigError  # noqa: E402

CONFIG_FILE_NAME = "config.yaml"


def _default_path() -> Path:
    return get_config_dir() / CONFIG_FILE_NAME


def _read_mapping(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigError(
            f"Failed to parse configuration file: {exc}",
            config_file=str(path),
            details={"yaml_error": str(exc)},
        ) from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Top level of {path.name} must be a mapping, got {type(raw).__name__}",
            config_file=str(path),
        )
    return raw


def load_config(config_path: Path | None = None) -> CouncilConfig:
    """Load and validate a configuration file.

    An empty file yields the defaults.

    Raises:
        ConfigError: The file is missing, is not YAML, or does not validate.
    """
    path = config_path or _default_path()
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}", config_file=str(path))

    raw = _read_mapping(path)
    try:
        return CouncilConfig.model_validate(raw)
    except PydanticValidationError as exc:
        problems = "\n".join(
            f"  - {'.'.join(map(str, err['loc']))}: {err['msg']}" for err in exc.errors()
        )
        raise ConfigError(
            f"Configuration validation failed:\n{problems}",
            config_file=str(path),
            details={"validation_errors": exc.errors()},
        ) from exc


def load_config_or_default(config_path: Path | None = None) -> CouncilConfig:
    """Like load_config, but a missing file means defaults. Bad files still raise."""
    path = config_path or _default_path()
    return load_config(path) if path.exists() else get_default_config()


def resolve_api_key(
    backend_id: str,
    backend: BackendConfig,
    *,
    required: bool = False,
) -> str | None:
    """Read a backend's API key from its configured environment variable.

    Returns None when no variable is configured or it is unset, so the
    transport can fall back to its own environment lookup.

    Raises:
        ConfigError: If ``required`` and no key could be resolved.
    """
    value = os.environ.get(backend.api_key_env, "") if backend.api_key_env else ""
    if value:
        return value

    if required:
        raise ConfigError(
            f"API key for backend '{backend_id}' not found in ${backend.api_key_env}",
            config_key=f"backends.{backend_id}.api_key_env",
        )
    return None
