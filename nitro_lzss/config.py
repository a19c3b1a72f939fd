"""
Defaults and logging setup for the nitro-lzss command line tool.
The library modules never configure logging themselves.
"""

import logging

LOGGER_NAME = "nitro_lzss"
DEFAULT_SUFFIX = ".dec"


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configure console logging for the CLI."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Avoid adding duplicate handlers on repeated calls
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        "[%(asctime)s] [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger
