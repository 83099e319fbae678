import logging
import logging.handlers
import queue
from pathlib import Path
from typing import List, Optional

# Custom TRACE level below DEBUG.
TRACE_LEVEL_NUM = 5
logging.addLevelName(TRACE_LEVEL_NUM, "TRACE")


def trace(self: logging.Logger, message: str, *args, **kwargs) -> None:
    """Logger helper for TRACE level."""
    if self.isEnabledFor(TRACE_LEVEL_NUM):
        self._log(TRACE_LEVEL_NUM, message, args, **kwargs)


logging.Logger.trace = trace  # type: ignore

LOG_QUEUE: "queue.Queue[logging.LogRecord]" = queue.Queue()
QUEUE_LISTENER: Optional[logging.handlers.QueueListener] = None

LOGGER = logging.getLogger("livecaption")

# Caption text never reaches the main log; it only goes to an explicit sink.
TRANSCRIPT_LOGGER = logging.getLogger("livecaption.transcript")
TRANSCRIPT_LOGGER.propagate = False
TRANSCRIPT_LOGGER.addHandler(logging.NullHandler())


def _resolve_level(level: str) -> int:
    if level.upper() == "TRACE":
        return TRACE_LEVEL_NUM
    return getattr(logging, level.upper(), logging.INFO)


def _file_handler(path: str, formatter: logging.Formatter) -> logging.Handler:
    log_path = Path(path).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    level: str,
    log_file: Optional[str],
    transcript_log_file: Optional[str] = None,
) -> None:
    """Configure root logging with queue-based handlers."""
    global QUEUE_LISTENER
    numeric_level = _resolve_level(level)

    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    handlers: List[logging.Handler] = []
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    if log_file:
        handlers.append(_file_handler(log_file, formatter))

    queue_handler = logging.handlers.QueueHandler(LOG_QUEUE)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(numeric_level)
    root_logger.addHandler(queue_handler)

    for handler in TRANSCRIPT_LOGGER.handlers:
        handler.close()
    TRANSCRIPT_LOGGER.handlers.clear()
    TRANSCRIPT_LOGGER.setLevel(logging.INFO)
    if transcript_log_file:
        TRANSCRIPT_LOGGER.addHandler(
            _file_handler(transcript_log_file, logging.Formatter("%(asctime)s %(message)s"))
        )
    else:
        TRANSCRIPT_LOGGER.addHandler(logging.NullHandler())

    if QUEUE_LISTENER:
        QUEUE_LISTENER.stop()
    QUEUE_LISTENER = logging.handlers.QueueListener(
        LOG_QUEUE, *handlers, respect_handler_level=True
    )
    QUEUE_LISTENER.start()


def shutdown_logging() -> None:
    """Flush and stop the queue listener started by configure_logging."""
    global QUEUE_LISTENER
    if QUEUE_LISTENER:
        QUEUE_LISTENER.stop()
        for handler in QUEUE_LISTENER.handlers:
            handler.close()
        QUEUE_LISTENER = None
    for handler in TRANSCRIPT_LOGGER.handlers:
        handler.close()


__all__ = [
    "configure_logging",
    "shutdown_logging",
    "LOGGER",
    "TRANSCRIPT_LOGGER",
    "TRACE_LEVEL_NUM",
]
