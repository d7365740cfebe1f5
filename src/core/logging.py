"""Logging setup for the API process."""
import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging for the service.

    Safe to call more than once; handlers installed by an outer runner
    (uvicorn, pytest) are left in place and only the level is applied.
    """
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
