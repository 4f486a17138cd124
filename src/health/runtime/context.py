"""Process-wide configuration, overridable per task through a context variable."""

import os
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel

from src.health.runtime.config.config_data import ConfigData
from src.health.runtime.config.config_template import load_templated_yaml


def load_config(path: str | Path | None = None) -> ConfigData:
    config_path = Path(path or os.getenv("HEALTH_CONFIG_FILE", "config.yaml"))
    if not config_path.exists():
        logger.warning("Configuration file {} not found; using defaults", config_path)
        return ConfigData()
    return load_templated_yaml(config_path)


_current_config: ContextVar[ConfigData] = ContextVar(
    "health_config", default=load_config()
)


def get_config() -> ConfigData:
    return _current_config.get()


def _set_fields(model: BaseModel) -> dict[str, Any]:
    """Collect the values a caller actually passed, following nested models."""
    collected: dict[str, Any] = {}
    for name in type(model).model_fields:
        value = getattr(model, name)
        if isinstance(value, BaseModel):
            nested = _set_fields(value)
            if nested:
                collected[name] = nested
                continue
        if name in model.model_fields_set:
            collected[name] = (
                value.model_dump() if isinstance(value, BaseModel) else value
            )
    return collected


def _deep_update(target: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    for key, value in updates.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            target[key] = _deep_update(dict(current), value)
        else:
            target[key] = value
    return target


def merge_configs(base_config: ConfigData, override_config: ConfigData) -> ConfigData:
    """Return ``base_config`` with every explicitly set field of the override applied."""
    return ConfigData.model_validate(
        _deep_update(base_config.model_dump(), _set_fields(override_config))
    )


@contextmanager
def with_context(config_override: ConfigData | None = None) -> Iterator[None]:
    """Run a block with some configuration values replaced.

        with with_context(ConfigData(cache=CacheConfig(identity_ttl_seconds=1))):
            ...
    """
    if config_override is None:
        yield
        return
    if not isinstance(config_override, ConfigData):
        raise TypeError(f"Expected ConfigData, got {type(config_override).__name__}")

    token = _current_config.set(merge_configs(get_config(), config_override))
    try:
        yield
    finally:
        _current_config.reset(token)
