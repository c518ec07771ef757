import logging
import sys
from typing import Any

from loguru import logger

from autoblog.config import get_settings


class InterceptHandler(logging.Handler):
    """Intercept stdlib logging and redirect to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore[assignment]
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _quiet_polling_filter(record: dict[str, Any]) -> bool:
    """Health checks and idle worker polls only show at DEBUG level."""
    message = record.get("message", "")
    if "/health" in message or "/api/worker/process" in message:
        return bool(record["level"].no <= 10)
    return True


def setup_logging() -> None:
    """Configure loguru for the application."""
    settings = get_settings()

    logger.remove()

    if settings.debug:
        logger.add(
            sys.stderr,
            level="DEBUG",
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "<level>{message}</level> | {extra}"
            ),
            backtrace=True,
            diagnose=True,
        )
    else:
        logger.add(
            sys.stderr,
            level="INFO",
            format=(
                "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | "
                "{name}:{function}:{line} | {message} | {extra}"
            ),
            filter=_quiet_polling_filter,
            backtrace=True,
            diagnose=False,
        )

    # Intercept stdlib logging (uvicorn, sqlalchemy, httpx, apscheduler)
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in [
        "uvicorn",
        "uvicorn.error",
        "uvicorn.access",
        "sqlalchemy.engine",
        "httpx",
        "apscheduler",
    ]:
        logging.getLogger(name).handlers = [InterceptHandler()]


def get_logger(name: str) -> Any:
    """Get a logger bound to a module name."""
    return logger.bind(name=name)
