import logging
import os
from typing import Any, Dict, Optional


_LOGGER = logging.getLogger("mediaintake")


def configure_logging() -> None:
    lvl = (os.getenv("MEDIA_INTAKE_LOG_LEVEL") or "").upper()
    level = getattr(logging, lvl, logging.INFO) if lvl else logging.INFO
    if lvl:
        logging.getLogger("websockets").setLevel(level)
        logging.getLogger("urllib3").setLevel(level)
    _LOGGER.setLevel(level)


def log(level: int, run_trace_id: Optional[str], message: str, **dimensions: Any) -> None:
    dims: Dict[str, Any] = {"runTraceId": run_trace_id} if run_trace_id else {}
    dims.update(dimensions)
    try:
        _LOGGER.log(level, message, extra={"custom_dimensions": dims})
    except Exception:
        # Fallback if extra/custom_dimensions not supported in the environment
        _LOGGER.log(level, f"{message} | {dims}")


def info(run_trace_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.INFO, run_trace_id, message, **dimensions)


def warning(run_trace_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.WARNING, run_trace_id, message, **dimensions)


def error(run_trace_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.ERROR, run_trace_id, message, **dimensions)
