from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Set the log level for the `orgscope` package.

    Notes:
    - Uvicorn already configures handlers; this only adjusts our loggers.
    - Set `ORGSCOPE_LOG_LEVEL=DEBUG` to see per-decision grant logs from the scope engine.
    """

    normalized = level.upper()
    logging.getLogger("orgscope").setLevel(normalized)
    logging.getLogger("orgscope").propagate = True
