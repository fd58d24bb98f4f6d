import json
import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal


EVENT_LOGGER_NAME = "storefront.events"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _default(value):
    if isinstance(value, Decimal):
        return str(value)
    return repr(value)


def configure_logging(level: str = "INFO") -> None:
    """Attach a stdout handler to the event logger (idempotent)."""
    logger = logging.getLogger(EVENT_LOGGER_NAME)
    logger.setLevel(level.upper())
    if not any(getattr(h, "_storefront", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler._storefront = True  # type: ignore[attr-defined]
        logger.addHandler(handler)


def log_event(level: str, event: str, **fields) -> None:
    payload = {
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "level": level.lower(),
        "event": event,
    }
    payload.update(fields or {})
    logging.getLogger(EVENT_LOGGER_NAME).log(
        _LEVELS.get(level.lower(), logging.INFO),
        json.dumps(payload, ensure_ascii=False, default=_default),
    )
