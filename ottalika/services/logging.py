"""Server logging setup.

Every record goes to stdout and to a log file, with ISO timestamps.
Workflow transitions are logged at INFO, rejected requests at WARNING and
store failures at ERROR with a traceback, so the file can be read back as
an operational history next to the audit table.
"""

import logging
import sys
from pathlib import Path

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers kept at WARNING unless the server runs at DEBUG
NOISY_LOGGERS = ("uvicorn.access", "httpx", "sqlalchemy.engine")


def resolve_level(name: str | int | None) -> int:
    """Turn a level name such as 'warning' into its logging constant.

    Unknown or empty names resolve to INFO.
    """
    if isinstance(name, int):
        return name
    level = logging.getLevelName((name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def setup_server_logging(log_file: str = "logs/server.log", level: str | int = "INFO") -> None:
    """Route the root logger to stdout and `log_file`.

    Existing root handlers are closed and replaced, so calling this again
    (for example after a settings reload) does not duplicate output.
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    log_level = resolve_level(level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(log_level)

    for handler in (logging.StreamHandler(sys.stdout), logging.FileHandler(log_path, encoding="utf-8")):
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    quiet_level = log_level if log_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    logging.getLogger(__name__).debug(f"Logging to stdout and {log_path} at {logging.getLevelName(log_level)}")


__all__ = ["resolve_level", "setup_server_logging"]
