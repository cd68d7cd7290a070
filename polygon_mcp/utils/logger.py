"""Logging configuration.

MCP STDIO servers use stdout for protocol messages, so every handler
installed here writes to stderr.
"""

import logging
import sys

LOGGER_NAME = "polygon_mcp"


def setup_logger(level: str = "INFO", name: str = LOGGER_NAME) -> logging.Logger:
    """Setup and configure logger."""
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(stderr_handler)
    logger.propagate = False

    return logger


# Global logger instance; main() re-runs setup_logger with the configured level
logger = setup_logger()
