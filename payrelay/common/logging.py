"""Structured JSON logging with request context fields."""

import logging
import sys
from contextvars import ContextVar

from pythonjsonlogger.json import JsonFormatter

from payrelay.common.config import Settings


trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")
operation_ctx: ContextVar[str] = ContextVar("operation", default="")

JSON_HANDLER_NAME = "payrelay-json"


class ContextFilter(logging.Filter):
    """Inject service and correlation identifiers into every log record."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = self.service_name
        record.trace_id = trace_id_ctx.get()
        record.operation = operation_ctx.get()
        return True


def configure_logging(settings: Settings) -> None:
    """Configure the root logger; calling it again replaces only our own handler."""

    handler = logging.StreamHandler(sys.stdout)
    handler.name = JSON_HANDLER_NAME
    context_filter = ContextFilter(settings.service_name)
    handler.addFilter(context_filter)
    formatter = JsonFormatter(
        "%(asctime)s %(levelname)s %(service_name)s %(trace_id)s %(operation)s %(message)s"
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [h for h in root.handlers if h.name != JSON_HANDLER_NAME] + [handler]
    for old in [f for f in root.filters if isinstance(f, ContextFilter)]:
        root.removeFilter(old)
    root.setLevel(settings.log_level)
    root.addFilter(context_filter)


logger = logging.getLogger("payrelay")
