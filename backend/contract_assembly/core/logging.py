import logging
import sys

from contract_assembly.core.config import settings

DEFAULT_LOG_LEVEL = settings.LOG_LEVEL


def configure_logging(level: int | str = DEFAULT_LOG_LEVEL) -> None:
    """Idempotent logging configuration for the app."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
