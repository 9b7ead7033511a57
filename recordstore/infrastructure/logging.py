from typing import Callable

import structlog
from structlog.stdlib import BoundLogger


def get_logger(name: str) -> BoundLogger:
    """Return a structlog bound logger for the given module name."""

    return structlog.get_logger(name)


def debug_logger_fn(logger: BoundLogger) -> Callable[[str], None]:
    """Adapt a logger into a plain debug callback for persistence providers."""

    def _debug(msg: str) -> None:
        logger.debug("persistence_debug", message=msg)

    return _debug
