"""Process memory sampling and reclamation hints."""
import gc
import logging
import os

import psutil

logger = logging.getLogger(__name__)

MB = 1024 * 1024


def rss_mb() -> float:
    """Resident set size of the current process in MB (0.0 when unavailable)."""
    try:
        return psutil.Process(os.getpid()).memory_info().rss / MB
    except psutil.Error:
        return 0.0


def reclaim(label: str = "", collect: bool = False) -> float:
    """
    Optional collection hint between phases or rounds.

    Only calls gc.collect() when ``collect`` is set; always logs the RSS at
    DEBUG and returns it.
    """
    if collect:
        freed = gc.collect()
        logger.debug("gc.collect() %s: %d objects collected", label, freed)
    current = rss_mb()
    logger.debug("Memory %s: RSS=%.2f MB", label, current)
    return current
