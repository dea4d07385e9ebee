"""
Logging setup. stdout belongs to the JSON-RPC transport, so diagnostics go
to stderr or to a log file.
"""

import logging
import sys

from daxformatter.core.config import LoggingConfig

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(config: LoggingConfig) -> None:
    level = logging.getLevelName(config.level.upper())
    known_level = isinstance(level, int)
    if not known_level:
        level = logging.INFO

    if config.file:
        logging.basicConfig(
            level=level,
            format=LOG_FORMAT,
            filename=config.file,
            filemode="a",
            force=True,
        )
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)

    if not known_level:
        logging.getLogger("DaxFormatter").warning("Unknown log level %r; using INFO", config.level)
