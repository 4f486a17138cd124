import logging
import sys
from pathlib import Path

from loguru import logger

from src.health.runtime.config.config_data import ConfigData
from src.health.runtime.context import get_config

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "[<cyan>{extra[request_id]}</cyan>] | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

# Loggers whose records are dropped: the request middleware already covers them
_DROPPED = {"uvicorn.access"}

_NOISY = {
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "uvicorn": logging.INFO,
    "uvicorn.error": logging.INFO,
    "uvicorn.access": logging.CRITICAL,
}


class InterceptHandler(logging.Handler):
    """Forward stdlib ``logging`` records (uvicorn, sqlalchemy, httpx) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        if record.name in _DROPPED:
            return
        if record.name == "uvicorn.error" and record.levelno >= logging.ERROR:
            return

        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.opt(depth=2, exception=record.exc_info).bind(
            logger_name=record.name
        ).log(level, record.getMessage())


def _ensure_request_id(record) -> None:
    record["extra"].setdefault("request_id", "-")


def configure_logging(config: ConfigData | None = None) -> None:
    """Install the console and file sinks and route stdlib logging to loguru."""
    main_config = config or get_config()
    cfg = main_config.logging
    env = main_config.app.environment
    verbose_traces = env != "production"

    logger.remove()
    logger.configure(extra={"request_id": "-"}, patcher=_ensure_request_id)

    logger.add(
        sys.stderr,
        level=cfg.level,
        format=_CONSOLE_FORMAT,
        colorize=True,
        backtrace=verbose_traces,
        diagnose=verbose_traces,
    )

    # Tests log to the console only
    if cfg.file and env != "test":
        path = Path(cfg.file)
        path.parent.mkdir(parents=True, exist_ok=True)
        is_json = cfg.format == "json"
        logger.add(
            str(path),
            level=cfg.level,
            format="{message}" if is_json else _CONSOLE_FORMAT,
            serialize=is_json,
            rotation=f"{cfg.max_size_mb} MB",
            retention=cfg.backup_count,
            compression="zip",
            enqueue=True,
            backtrace=verbose_traces,
            diagnose=verbose_traces,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in list(logging.root.manager.loggerDict):
        stdlog = logging.getLogger(name)
        stdlog.handlers = []
        stdlog.propagate = True
    for name, level in _NOISY.items():
        logging.getLogger(name).setLevel(level)

    logger.bind(
        app_level=cfg.level,
        app_format=cfg.format,
        app_file=cfg.file,
        environment=env,
    ).info("Logging configured")
