"""Loading of ``config.yaml`` with ``${VAR}`` placeholders."""

import os
import re
from collections.abc import Mapping
from pathlib import Path

import yaml
from loguru import logger
from pydantic_core import ValidationError

from src.health.runtime.config.config_data import ConfigData

# ${NAME}, ${NAME:-default} or ${NAME:?message}
_PLACEHOLDER = re.compile(r"\$\{(?P<name>[^}:]+)(?::(?P<op>[-?])(?P<arg>[^}]*))?\}")


def substitute_env_vars(text: str, environ: Mapping[str, str] | None = None) -> str:
    """Replace placeholders with values from ``environ`` (``os.environ`` by default).

    A placeholder without a default must resolve, or ``ValueError`` is raised
    with the custom message when one is given.
    """
    env = os.environ if environ is None else environ

    def resolve(match: re.Match[str]) -> str:
        name, op, arg = match.group("name", "op", "arg")
        value = env.get(name)
        if value is not None:
            return value
        if op == "-":
            return arg
        if op == "?":
            raise ValueError(f"Required environment variable {name}: {arg}")
        raise ValueError(f"Required environment variable {name} not set")

    return _PLACEHOLDER.sub(resolve, text)


def environment_overrides(
    env_mode: str, environ: Mapping[str, str] | None = None
) -> dict[str, str]:
    """Collect ``<ENV>_NAME`` variables as ``NAME`` overrides for the active environment.

    ``PRODUCTION_HEALTH_PHONE_SECRET`` becomes ``HEALTH_PHONE_SECRET`` when
    the application runs with ``APP_ENVIRONMENT=production``.
    """
    env = os.environ if environ is None else environ
    prefix = f"{env_mode.upper()}_"
    return {
        name.removeprefix(prefix): value
        for name, value in env.items()
        if name.startswith(prefix) and name != prefix
    }


def load_templated_yaml(file_path: Path) -> ConfigData:
    """Read, substitute and validate a configuration file.

    Raises ``ValueError`` for unresolved placeholders, unparsable YAML or
    values that fail validation.
    """
    env_mode = os.getenv("APP_ENVIRONMENT", "development")
    overrides = environment_overrides(env_mode)
    logger.info("Loading {} for environment {}", file_path, env_mode)
    if overrides:
        # Names only; values are usually secrets
        logger.info("Environment overrides: {}", sorted(overrides))

    text = substitute_env_vars(Path(file_path).read_text(), {**os.environ, **overrides})
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e
    if not isinstance(document, dict):
        raise ValueError("Failed to parse YAML")

    try:
        config = ConfigData(**(document.get("config") or {}))
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    if not config.auth.app_api_keys:
        logger.warning("No app API keys configured; every API-key check will fail")
    if not config.auth.access_token_keys.get("keys"):
        logger.warning("Access token key set is empty; modern tokens cannot be verified")
    return config
