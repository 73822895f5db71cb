"""
Logging setup for processes that host the scheduling engine.

This package has no entry point of its own. The embedding application calls
`setup_logging()` once from its startup code (the booking service's app
factory, a worker's `main()`) before constructing any engine service.
"""

import logging
from typing import Optional

from consult_scheduling.core.config import LOG_LEVEL


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging with the engine's standard format.

    The engine's modules only create loggers; hosting processes (workers,
    scripts, the booking service) call this once at startup.

    Args:
        level: Log level name, defaults to the LOG_LEVEL environment setting
    """
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )
