import logging
import logging.handlers
import os
import sys
import typing

import structlog

from coconut_risk.config import settings

# Applied to structlog events and to records coming from plain stdlib loggers
SHARED_PROCESSORS: list[typing.Any] = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
]


def _writable_log_dir(path: str) -> str:
    """Return the directory for the log file, falling back to ./.logs."""
    log_dir = os.path.dirname(path) or os.getcwd()
    try:
        os.makedirs(log_dir, exist_ok=True)
        if not os.access(log_dir, os.W_OK):
            raise PermissionError(f"{log_dir} is not writable")
    except OSError:
        log_dir = os.path.join(os.getcwd(), ".logs")
        os.makedirs(log_dir, exist_ok=True)
    return log_dir


def _build_handlers(formatter: logging.Formatter) -> list[logging.Handler]:
    stdout = logging.StreamHandler(sys.stdout)
    stdout.setFormatter(formatter)
    handlers: list[logging.Handler] = [stdout]

    log_file = os.path.join(
        _writable_log_dir(settings.log_file), os.path.basename(settings.log_file)
    )
    try:
        rotating = logging.handlers.TimedRotatingFileHandler(
            log_file, when="midnight", interval=1, backupCount=30, encoding="utf-8"
        )
    except OSError as e:
        print(f"Failed to setup file logging: {e}")
    else:
        rotating.setFormatter(formatter)
        handlers.append(rotating)
    return handlers


def setup_logging() -> None:
    """
    Route structlog through stdlib logging and render every record once, as a
    single JSON object per line, on stdout and in a daily rotating file.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )

    logging.basicConfig(
        level=settings.log_level, handlers=_build_handlers(formatter), force=True
    )

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
