"""
Async logging service
"""
import logging
import multiprocessing
from logging.handlers import QueueHandler, QueueListener
from queue import SimpleQueue
from typing import Mapping

from gavel.core.async_service import AsyncService
from gavel.core.logging import configure_logging


class AsyncLoggingService(AsyncService):
    """
    Routes log records through a queue, so that handlers do their I/O on the listener thread.

    Countdown ticks and animation frames are handled on scheduler threads at a high rate. Their log records are only
    enqueued on those threads.

    Per logger levels are applied while the service is running, e.g., to silence the frame by frame `BidDisplay`
    debug logging while keeping the root level at DEBUG. The previous levels are restored on stop.
    """

    def __init__(
        self,
        level: int = logging.WARNING,
        handlers: list[logging.Handler] | None = None,
        multiprocessing_logging_enabled: bool = False,
        logger_levels: Mapping[str, int] | None = None,
    ):
        """
        :param level: root logging level
        :param handlers: root logging handlers - the default is a stderr stream handler
        :param multiprocessing_logging_enabled: If True, then log records from multiprocessing tasks will be collected.
                                                The app must ensure that all log records can be pickled.
        :param logger_levels: logger name -> level
        """
        super().__init__()
        self.level = level
        self.logger_levels = dict(logger_levels) if logger_levels else {}
        self._handlers = handlers[:] if handlers else None
        self._queue = (
            multiprocessing.Queue()
            if multiprocessing_logging_enabled
            else SimpleQueue()
        )
        self._listener: QueueListener | None = None
        self._saved_levels: dict[str, int] = {}

    async def _start(self) -> None:
        configure_logging(self.level, self._handlers)

        root = logging.getLogger()
        handlers = root.handlers[:]
        root.handlers.clear()
        root.addHandler(QueueHandler(self._queue))  # type: ignore

        self._listener = QueueListener(
            self._queue,  # type: ignore
            *handlers,
            respect_handler_level=True,
        )
        self._listener.start()

        for name, level in self.logger_levels.items():
            logger = logging.getLogger(name)
            self._saved_levels[name] = logger.level
            logger.setLevel(level)
        self._logger.info(
            "logging level=%s, logger levels=%s",
            logging.getLevelName(self.level),
            {
                name: logging.getLevelName(level)
                for name, level in self.logger_levels.items()
            },
        )

    async def _stop(self):
        for name, level in self._saved_levels.items():
            logging.getLogger(name).setLevel(level)
        self._saved_levels.clear()

        # the listener flushes queued records to the handlers before it stops
        if self._listener:
            self._listener.stop()
            self._listener = None

        configure_logging(self.level, self._handlers)
