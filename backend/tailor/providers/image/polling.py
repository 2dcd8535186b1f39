"""Submit/poll job state machine for queue-based image generation.

    PENDING ──poll──▶ PENDING ...
       │
       ├──▶ SUCCEEDED  (return output)
       ├──▶ FAILED     (stop immediately)
       └──▶ ceiling reached → PollTimeout

The loop sleeps between polls (a cancellation point), so a cancelled
request stops polling at the next interval rather than at the end.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from backend.tailor.errors import ErrorKind, PollTimeout, ProviderError

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class SynthesisJob:
    """A provider-side generation job, updated from each poll response."""
    job_id: str
    status: JobStatus = JobStatus.PENDING
    output: str | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not JobStatus.PENDING


def finish(job: SynthesisJob) -> str:
    """Resolve a terminal job to its output reference, or raise."""
    if job.status is JobStatus.FAILED:
        raise ProviderError(f"job {job.job_id} failed: {job.error or 'no reason given'}")
    if not job.output:
        raise ProviderError(
            f"job {job.job_id} succeeded without output", ErrorKind.MALFORMED_RESPONSE
        )
    return job.output


async def poll_job(
    job: SynthesisJob,
    fetch: Callable[[str], Awaitable[SynthesisJob]],
    interval_s: float = 2.0,
    max_polls: int = 15,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> str:
    """Poll `job` until it reaches a terminal status.

    Args:
        job: The job returned by the submit call.
        fetch: Coroutine returning the job's current state for a job id.
        interval_s: Wait before each poll.
        max_polls: Hard ceiling on status checks.
        sleep: Injected for tests; defaults to `asyncio.sleep`.
        clock: Monotonic clock used to enforce the overall time ceiling.

    Returns:
        The output reference from the first poll reporting success.

    Raises:
        ProviderError: The job failed or was canceled provider-side.
        PollTimeout: Still pending after `max_polls` polls or past
            `interval_s * max_polls` of wall time.
    """
    if job.is_terminal:
        return finish(job)

    ceiling_s = interval_s * max_polls
    start = clock()
    polls = 0

    while polls < max_polls:
        if clock() - start >= ceiling_s:
            break
        await sleep(interval_s)
        job = await fetch(job.job_id)
        polls += 1
        logger.debug(f"[Polling] job {job.job_id}: poll {polls}/{max_polls} → {job.status.value}")

        if job.is_terminal:
            return finish(job)

    logger.warning(f"[Polling] job {job.job_id} timed out after {polls} polls")
    raise PollTimeout(job.job_id, polls)
