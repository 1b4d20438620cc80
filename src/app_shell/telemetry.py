"""
Logging setup.

``Telemetry`` owns the handler it installs on the application logger: ``init()``
attaches it, ``shutdown()`` detaches and flushes it. Each record carries the id
of the request being served (``-`` outside a request).
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import TextIO

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    """Copies the current request id onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


class Telemetry:
    def __init__(
        self,
        level: str | int = logging.INFO,
        logger_names: tuple[str, ...] = ("src",),
        stream: TextIO | None = None,
    ) -> None:
        self.level = logging.getLevelName(level.upper()) if isinstance(level, str) else level
        self.logger_names = logger_names
        self.handler = logging.StreamHandler(stream or sys.stderr)
        self.handler.setFormatter(logging.Formatter(LOG_FORMAT))
        self.handler.addFilter(RequestIdFilter())
        self._installed = False

    def init(self) -> Telemetry:
        if self._installed:
            return self
        for name in self.logger_names:
            logger = logging.getLogger(name)
            logger.setLevel(self.level)
            logger.addHandler(self.handler)
        self._installed = True
        return self

    def shutdown(self) -> None:
        if not self._installed:
            return
        for name in self.logger_names:
            logging.getLogger(name).removeHandler(self.handler)
        self.handler.flush()
        self._installed = False
