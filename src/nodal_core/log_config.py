# --- src/nodal_core/log_config.py ---
import logging
import sys
from typing import Optional, TextIO, Union

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] [%(name)s] %(message)s"


def setup_logging(level: Union[int, str] = logging.INFO, stream: Optional[TextIO] = None):
    """
    Configures the root logger with a single console handler.

    Args:
        level: A logging level number or its name (e.g. "DEBUG").
        stream: Destination stream. Defaults to stdout.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown logging level name: {level}")

    root_logger = logging.getLogger()

    # Replace whatever handlers a previous call (or the host application) installed.
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)
    logging.debug("Logging configured at level %s.", logging.getLevelName(level))
