"""
Logging factory and handlers
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Literal

from rich.console import Console
from rich.logging import RichHandler

from ensemble.config import LOG_LEVELS, config

ROOT_NAME = "ensemble"
FILE_HANDLER_NAME = "ensemble_file"
RICH_HANDLER_NAME = "ensemble_rich"

THIRD_PARTY_LOGGERS = ("web3", "zmq", "tornado")
"""
Libraries whose warnings are routed through our handlers.
They otherwise log through the default root logger and get lost.
"""


def init_logger(
    name: str,
    log_dir: Path | None | Literal[False] = None,
    level: LOG_LEVELS | None = None,
    file_level: LOG_LEVELS | None = None,
    log_file_n: int | None = None,
    log_file_size: int | None = None,
    width: int | None = None,
) -> logging.Logger:
    """
    Make a logger.

    Log to a set of rotating files in the ``log_dir`` according to ``name`` ,
    as well as using the :class:`~rich.RichHandler` for pretty-formatted stdout logs.

    Handlers live on the root ``ensemble`` logger and are created once,
    subsequent calls only update their levels.

    Args:
        name (str): Name of this logger. Ideally names are hierarchical
            and indicate what they are logging for, eg. ``ensemble.services.agent``
            and don't contain metadata like addresses, etc. (which are in the logs)
        log_dir (:class:`pathlib.Path`): Directory to store file-based logs in. If ``None``,
            get from :class:`.Config`. If ``False`` , disable file logging.
        level (:class:`.LOG_LEVELS`): Level to use for stdout logging. If ``None`` ,
            get from :class:`.Config`
        file_level (:class:`.LOG_LEVELS`): Level to use for file-based logging.
             If ``None`` , get from :class:`.Config`
        log_file_n (int): Number of rotating file logs to use.
            If ``None`` , get from :class:`.Config`
        log_file_size (int): Maximum size of logfiles before rotation.
            If ``None`` , get from :class:`.Config`
        width (int, None): Explicitly set width of rich stdout console.
            If ``None`` , get from :class:`.Config`

    Returns:
        :class:`logging.Logger`
    """
    if log_dir is None:
        log_dir = config.logs.dir
    if level is None:
        level = (
            config.logs.level_stdout if config.logs.level_stdout is not None else config.logs.level
        )
    if file_level is None:
        file_level = (
            config.logs.level_file if config.logs.level_file is not None else config.logs.level
        )
    if log_file_n is None:
        log_file_n = config.logs.file_n
    if log_file_size is None:
        log_file_size = config.logs.file_size
    if width is None:
        width = config.logs.width

    # handle at least the more verbose of the two levels
    min_level = min([getattr(logging, level), getattr(logging, file_level)])

    if not name.startswith(ROOT_NAME):
        name = f"{ROOT_NAME}.{name}"

    handlers = _init_root(
        stdout_level=level,
        file_level=file_level,
        log_dir=log_dir,
        log_file_n=log_file_n,
        log_file_size=log_file_size,
        width=width,
    )
    _route_third_party(handlers)

    logger = logging.getLogger(name)
    logger.setLevel(min_level)

    return logger


def _init_root(
    stdout_level: LOG_LEVELS,
    file_level: LOG_LEVELS,
    log_dir: Path | Literal[False],
    log_file_n: int = 5,
    log_file_size: int = 2**22,
    width: int | None = None,
) -> list[logging.Handler]:
    root_logger = logging.getLogger(ROOT_NAME)

    file_handler = _find_handler(root_logger, FILE_HANDLER_NAME)
    rich_handler = _find_handler(root_logger, RICH_HANDLER_NAME)

    if file_handler is None and log_dir is not False:
        file_handler = _file_handler(file_level, log_dir, log_file_n, log_file_size)
        root_logger.addHandler(file_handler)
    elif file_handler is not None:
        file_handler.setLevel(file_level)

    if rich_handler is None:
        rich_handler = _rich_handler(stdout_level, width=width)
        root_logger.addHandler(rich_handler)
    else:
        rich_handler.setLevel(stdout_level)

    # prevent propagation to the default root
    root_logger.propagate = False
    return [h for h in (file_handler, rich_handler) if h is not None]


def _find_handler(logger: logging.Logger, name: str) -> logging.Handler | None:
    for handler in logger.handlers:
        if handler.name == name:
            return handler
    return None


def _route_third_party(handlers: list[logging.Handler]) -> None:
    for lib in THIRD_PARTY_LOGGERS:
        lib_logger = logging.getLogger(lib)
        if lib_logger.level == logging.NOTSET:
            lib_logger.setLevel(logging.WARNING)
        for handler in handlers:
            if handler not in lib_logger.handlers:
                lib_logger.addHandler(handler)
        lib_logger.propagate = False


def _file_handler(
    file_level: LOG_LEVELS,
    log_dir: Path,
    log_file_n: int = 5,
    log_file_size: int = 2**22,
) -> RotatingFileHandler:
    # See init_logger for arg docs

    filename = Path(log_dir) / f"{ROOT_NAME}.log"
    file_handler = RotatingFileHandler(
        str(filename), mode="a", maxBytes=log_file_size, backupCount=log_file_n
    )
    file_handler.name = FILE_HANDLER_NAME
    file_formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s [%(name)s] (%(threadName)s): %(message)s"
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(file_formatter)
    return file_handler


def _rich_handler(level: LOG_LEVELS, width: int | None = None, **kwargs: Any) -> RichHandler:
    console = Console(stderr=True)
    if width:
        console.width = width

    rich_handler = RichHandler(console=console, rich_tracebacks=True, markup=False, **kwargs)
    rich_handler.name = RICH_HANDLER_NAME
    rich_formatter = logging.Formatter(
        r"[%(name)s] %(message)s",
        datefmt="[%y-%m-%dT%H:%M:%S]",
    )
    rich_handler.setFormatter(rich_formatter)
    rich_handler.setLevel(level)
    return rich_handler
