"""Logging configuration for simulation scripts."""
import logging

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level="INFO"):
    """
    Configures the root logger.

    Unknown level names fall back to INFO. matplotlib's own loggers are kept at
    WARNING so plotting does not flood DEBUG output.
    """
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(format=LOG_FORMAT, force=True)
    logging.getLogger().setLevel(numeric_level)
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
