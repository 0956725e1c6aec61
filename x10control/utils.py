"""
Utility functions for the X10Control library
"""
import asyncio
import logging
import math
import sys
from typing import Callable, Any


def round_half_away(value: float) -> int:
    """
    Round to the nearest integer, with halves rounded away from zero.
    Unlike round(), 2.5 gives 3 and -2.5 gives -3.
    """
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def clamp(value: int, lower: int, upper: int) -> int:
    """Limit value to the inclusive range lower..upper"""
    return max(lower, min(upper, value))


def run_with_keyboard_interrupt(main_func: Callable[[], Any], logger: logging.Logger | None = None) -> None:
    """
    Run an async main function with graceful KeyboardInterrupt handling.

    Args:
        main_func: The async main function to run
        logger: Where to report the shutdown reason (defaults to this module's logger)
    """
    logger = logger or logging.getLogger(__name__)
    try:
        asyncio.run(main_func())
    except KeyboardInterrupt:
        logger.info("Interrupted by user, shutting down")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Stopped with error: {e}")
        sys.exit(1)
