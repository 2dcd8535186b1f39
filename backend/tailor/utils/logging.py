"""Logging setup with per-stage latency tracking.

Set LOG_LEVEL env var to DEBUG for full pipeline visibility.
"""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from typing import Generator

# Stages slower than this are flagged in the latency log
_SLOW_STAGE_MS = 5000


def setup_logging(level: str | None = None) -> None:
    """Configure logging for the service.

    Reads LOG_LEVEL from environment if not specified. Default: INFO.
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s │ %(levelname)-7s │ %(name)-34s │ %(message)s",
        datefmt="%H:%M:%S",
    )

    # Suppress noisy third-party loggers
    for name in ("httpx", "httpcore", "groq", "openai", "google_genai", "multipart"):
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def latency_tracker(stage: str, logger_instance: logging.Logger | None = None) -> Generator[dict, None, None]:
    """Context manager to measure and log latency for a pipeline stage.

    Usage:
        with latency_tracker("vision", logger) as metrics:
            analysis = await run_chain(...)
        # metrics["elapsed_ms"] now has the duration
    """
    log = logger_instance or logging.getLogger("latency")
    metrics: dict = {"stage": stage, "elapsed_ms": 0.0}
    start = time.perf_counter()
    try:
        yield metrics
    finally:
        elapsed = (time.perf_counter() - start) * 1000
        metrics["elapsed_ms"] = round(elapsed, 2)
        if elapsed > _SLOW_STAGE_MS:
            log.info(f"⏱ {stage}: {elapsed:.1f}ms ⚠️ SLOW")
        else:
            log.info(f"⏱ {stage}: {elapsed:.1f}ms")
