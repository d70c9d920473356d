"""
Logging setup for walk-forward runs.

The library only emits through ``loguru.logger``; applications call
``setup_logging`` once to choose sinks.
"""

import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan> | "
    "<level>{message}</level>"
)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    rotation: str = "100 MB"
) -> None:
    """
    Replace loguru's default sink with a formatted stderr sink.

    Args:
        level: Minimum level for all sinks
        log_file: Optional file sink (rotated at ``rotation``)
        rotation: Rotation policy passed to loguru
    """
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)

    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(str(log_file), format=LOG_FORMAT, level=level, rotation=rotation)
