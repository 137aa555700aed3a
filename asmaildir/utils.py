"""
This module contains utility functions that do not properly belong to any
class or module: setting up logging, and asyncio versions of the `os`
functions that aiofiles does not provide.
"""

# system imports
#
import asyncio
import atexit
import json
import logging
import logging.config
import logging.handlers
import os
import sys
from pathlib import Path
from queue import SimpleQueue
from typing import TYPE_CHECKING, Any, Dict, List, Optional

# 3rd party module imports
#
from aiofiles.ospath import wrap as aiofiles_wrap

if TYPE_CHECKING:
    from _typeshed import StrPath

DEFAULT_LOG_CONFIG_FILES = [
    Path("/etc/asmaildir_log.json"),
    Path("/etc/asmaildir_log.cfg"),
    Path("/usr/local/etc/asmaildir_log.json"),
    Path("/usr/local/etc/asmaildir_log.cfg"),
    Path("/opt/local/etc/asmaildir_log.json"),
    Path("/opt/local/etc/asmaildir_log.cfg"),
]


####################################################################
#
# Provide os.fsync as an asyncio function via aiosfiles `wrap` async decorator
#
fsync = aiofiles_wrap(os.fsync)


##################################################################
##################################################################
#
class LocalQueueHandler(logging.handlers.QueueHandler):
    """
    Customise the QueueHandler class a little, but only minimally so: there
    is no need to prepare records that go into a local, in-process queue, we
    can skip that process and minimise the cost of logging further.

    This is cribbed from:
         https://www.zopatista.com/python/2019/05/11/asyncio-logging/
    """

    def emit(self, record: logging.LogRecord) -> None:
        # Removed the call to self.prepare(), handle task cancellation
        try:
            self.enqueue(record)
        except asyncio.CancelledError:
            raise
        except Exception:
            self.handleError(record)


############################################################################
#
def setup_asyncio_logging() -> logging.handlers.QueueListener:
    """
    Call this after you have configured all of your log handlers.

    Replace handlers on the root logger with a LocalQueueHandler, and start
    a logging.QueueListener holding the original handlers. Logging calls
    then only enqueue the record so they never block the event loop.

    Returns the listener. It is stopped at exit so that all queued records
    get logged.
    """
    queue: SimpleQueue = SimpleQueue()
    root = logging.getLogger()

    handlers: List[logging.Handler] = []

    handler = LocalQueueHandler(queue)
    root.addHandler(handler)
    for h in root.handlers[:]:
        if h is not handler:
            root.removeHandler(h)
            handlers.append(h)

    listener = logging.handlers.QueueListener(
        queue, *handlers, respect_handler_level=True
    )
    listener.start()
    atexit.register(listener.stop)
    return listener


####################################################################
#
def _load_log_config(log_config: Path):
    if log_config.suffix == ".json":
        cfg = json.loads(log_config.read_text())
        logging.config.dictConfig(cfg)
    else:
        logging.config.fileConfig(str(log_config))


####################################################################
#
def setup_logging(log_config: Optional["StrPath"], debug: bool):
    """
    Set up logging. If `log_config` is a JSON file it is a logging config
    dict, otherwise it is a logging config file. If it is not given, or does
    not exist, we look in the usual places for `asmaildir_log.json` or
    `asmaildir_log.cfg`. If none of those exist we log to stderr.
    """
    root_logger = logging.getLogger()
    if debug:
        root_logger.setLevel(logging.DEBUG)

    if log_config is not None:
        log_config = Path(log_config)
        if log_config.exists():
            _load_log_config(log_config)
            return
        print(
            f"WARNING: Logging config '{log_config}' does not exist",
            file=sys.stderr,
        )

    for log_config in DEFAULT_LOG_CONFIG_FILES:
        if log_config.exists():
            _load_log_config(log_config)
            return

    DEFAULT_LOGGING_CONFIG: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "basic": {
                "format": "[{asctime}] {levelname}:{module}.{funcName}: {message}",
                "style": "{",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "basic",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "asmaildir": {
                "handlers": ["console"],
                "level": "DEBUG" if debug else "WARNING",
                "propagate": False,
            },
        },
    }
    logging.config.dictConfig(DEFAULT_LOGGING_CONFIG)
    logger = logging.getLogger("asmaildir.utils")
    logger.debug("Debug enabled")
