import logging
import queue
import sys
from logging.handlers import QueueHandler, QueueListener

import structlog

_log_queue: queue.Queue = queue.Queue(maxsize=10000)
_listener: QueueListener | None = None


def _start_listener(handler: logging.Handler, level: int) -> None:
    global _listener

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(QueueHandler(_log_queue))

    if _listener is not None:
        _listener.stop()
    _listener = QueueListener(_log_queue, handler, respect_handler_level=True)
    _listener.start()


def stop_logging() -> None:
    global _listener
    if _listener:
        _listener.stop()
        _listener = None


def setup_logging(log_level: str = "INFO") -> None:
    level = getattr(logging, log_level.upper(), logging.INFO)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(level)
    stream_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    _start_listener(stream_handler, level)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    return structlog.get_logger(name)
