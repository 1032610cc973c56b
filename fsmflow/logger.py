from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Optional

_instance_name: ContextVar[str] = ContextVar("fsm_instance", default="-")


def set_instance_name(value: Optional[Any] = None) -> str:
    """Tag log records of the current context with an FSM instance name and return it."""
    name = "-" if value is None else str(value)
    _instance_name.set(name)
    return name


def current_instance_name() -> str:
    return _instance_name.get()


class InstanceNameFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.fsm = _instance_name.get()
        return True


def get_logger(name: str = "fsmflow", level: int = logging.INFO) -> logging.Logger:
    """Return a logger whose records carry the owning FSM instance name."""
    logger = logging.getLogger(name)

    # Avoid duplicated handlers if called multiple times.
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - fsm=%(fsm)s - %(message)s"
        )
        handler.setFormatter(formatter)
        handler.addFilter(InstanceNameFilter())
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger
