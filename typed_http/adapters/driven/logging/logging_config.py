"""Console logging setup for the request pipeline."""

import logging

__all__ = ["configure_logs"]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%d/%m/%y %H:%M:%S"


def configure_logs(level: int | str = logging.INFO) -> None:
    """Configure console logging.

    Sets up:
    - Root logger at the given level (INFO by default).
    - Framework loggers (aiohttp, asyncio) at WARNING level.
    - Library loggers (typed_http) at DEBUG level.
    - Structured format with timestamp, level, module, and line number.

    Calling it again does not add a second console handler.

    Args:
        level: Root logger level, as a number or a name like "DEBUG".
    """
    root = logging.getLogger()
    root.setLevel(level)

    if not any(getattr(h, "_typed_http", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handler._typed_http = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    # Suppress verbose framework loggers
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.getLogger("typed_http").setLevel(logging.DEBUG)
