"""
Structured logging helpers for consistent log formatting.
"""
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from time import perf_counter


@contextmanager
def log_section(logger: logging.Logger, section_name: str) -> Iterator[None]:
    """
    Log the start, end and duration of a processing section.

    A section that raises is logged as failed and the exception propagates.

    Args:
        logger: Logger instance
        section_name: Name of the section
    """
    logger.info(f"Starting: {section_name}")
    started = perf_counter()
    try:
        yield
    except Exception as e:
        logger.error(f"Failed: {section_name}: {e}", exc_info=True)
        raise
    logger.info(f"Completed: {section_name} in {(perf_counter() - started) * 1000:.0f}ms")


def log_store_timing(
    logger: logging.Logger,
    operation: str,
    entry_count: int,
    elapsed_seconds: float
) -> None:
    """
    Log how long a schedule load/save took.

    Args:
        logger: Logger instance
        operation: Verb describing the operation ("Loaded", "Saved")
        entry_count: Number of entries read or written
        elapsed_seconds: Wall time of the operation
    """
    logger.info(f"{operation} {entry_count} entries in {elapsed_seconds * 1000:.0f}ms")
