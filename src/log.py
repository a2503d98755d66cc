"""Logging sinks for the ledger's entrypoints.

``ledger`` and ``harvest-vault`` both call :func:`setup_logging`, which wires
the sinks the process wants: rich console output on a terminal, a timestamped
file under ``settings.LOG_DIR`` and Seq when a server is configured.
"""
import logging
import pathlib
import sys
from typing import Optional

import pendulum

from core.config import settings

_root_logger = logging.getLogger()

FILE_LOG_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s.%(funcName)s:%(lineno)d %(message)s"


def get_log_path(filename: str) -> pathlib.Path:
    log_dir = pathlib.Path(settings.LOG_DIR).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / f"{filename}.log"


def setup_logging_to_file(
    app: str,
    level: int = logging.INFO,
    *,
    logger: logging.Logger = _root_logger,
    timestamp: bool = True,
) -> pathlib.Path:
    filename = f"{app}.{pendulum.now(tz=pendulum.UTC):%Y%m%d.%H%M%S}" if timestamp else app
    log_path = get_log_path(filename)
    file_handler = logging.FileHandler(log_path)
    file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
    logger.setLevel(level)
    logger.addHandler(file_handler)
    return log_path


def setup_logging_to_console(level=logging.INFO, *, logger: logging.Logger = _root_logger) -> bool:
    # piped output stays plain JSON
    if not sys.stdout.isatty():
        return False

    from rich.logging import RichHandler
    from rich.traceback import install

    install(show_locals=True)
    logger.setLevel(level)
    logger.addHandler(RichHandler(rich_tracebacks=True, level=level, show_time=True))
    return True


def setup_logging_to_seq(level=logging.INFO) -> bool:
    if not settings.SEQ_SERVER_URL:
        return False

    import seqlog

    seqlog.log_to_seq(
        server_url=settings.SEQ_SERVER_URL,
        api_key=settings.SEQ_SERVER_API_KEY,
        level=level,
        batch_size=10,
        auto_flush_timeout=10,
        override_root_logger=False,
    )
    return True


def setup_logging(
    app: str,
    level: Optional[int] = None,
    *,
    logger: logging.Logger = _root_logger,
    console: bool = True,
    log_file: bool = False,
) -> Optional[pathlib.Path]:
    """Attach the configured sinks to ``logger``.

    Returns the log file path when ``log_file`` is set.
    """
    level = settings.LOG_LEVEL if level is None else level
    if console:
        setup_logging_to_console(level, logger=logger)
    setup_logging_to_seq(level)
    if log_file:
        return setup_logging_to_file(app, level, logger=logger)
    return None
