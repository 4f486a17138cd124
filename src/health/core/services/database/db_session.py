from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from loguru import logger
from sqlalchemy import Engine, StaticPool
from sqlmodel import Session, SQLModel, create_engine

from src.health.runtime.config.config_data import DatabaseConfig
from src.health.runtime.context import get_config

_IN_MEMORY_SQLITE = ("sqlite://", "sqlite:///:memory:")


def engine_options(database: DatabaseConfig, environment: str) -> dict[str, Any]:
    """Keyword arguments for ``create_engine`` derived from the database settings."""
    options: dict[str, Any] = {"pool_pre_ping": True, "echo": database.echo}
    if not database.url.startswith("sqlite"):
        return options

    options["connect_args"] = {"check_same_thread": False, "timeout": 20}
    if database.url in _IN_MEMORY_SQLITE:
        # one shared connection, or each session gets its own empty database
        options["poolclass"] = StaticPool
    if environment == "production":
        logger.warning("SQLite backs the identity store in production")
    return options


class DbSessionService:
    """Owns the engine used by the SQL storage adapter."""

    def __init__(self, engine: Engine | None = None):
        if engine is None:
            config = get_config()
            logger.info("Opening identity database for {}", config.app.environment)
            engine = create_engine(
                config.database.url,
                **engine_options(config.database, config.app.environment),
            )
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_all(self) -> None:
        from src.health.entities.app_version import AppVersionTable  # noqa: F401
        from src.health.entities.identity import IdentityTable  # noqa: F401
        from src.health.entities.roster import RosterTable  # noqa: F401

        SQLModel.metadata.create_all(self._engine)
        logger.info("Identity, roster and app version tables are in place")

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Yield a session that commits on success and rolls back on error."""
        with Session(self._engine, expire_on_commit=False) as session:
            try:
                yield session
                session.commit()
            except Exception as e:
                session.rollback()
                logger.error("Database transaction failed: {}: {}", type(e).__name__, e)
                raise

    def close(self) -> None:
        self._engine.dispose()
