import logging
import sys
from typing import Iterable

CONTEXT_FIELDS = ("tenant", "stage")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [tenant=%(tenant)s stage=%(stage)s] - %(message)s"

# uvicorn writes one line per HTTP request.
QUIET_LOGGERS = ("uvicorn.access",)


class ContextFormatter(logging.Formatter):
    """Fills orchestrator context fields a record was logged without."""

    def __init__(self, fmt: str = LOG_FORMAT, fields: Iterable[str] = CONTEXT_FIELDS):
        super().__init__(fmt)
        self.fields = tuple(fields)

    def format(self, record):
        for name in self.fields:
            if getattr(record, name, None) is None:
                setattr(record, name, "-")
        return super().format(record)


def resolve_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def configure_logging(level: str = "INFO") -> None:
    numeric = resolve_level(level)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter())
    logging.basicConfig(level=numeric, handlers=[handler], force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric, logging.WARNING))
