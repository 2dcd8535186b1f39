"""Candidate chains and the stage runner.

A chain is an ordered, read-only list of adapters serving one capability.
`run_chain` tries each adapter in order under its own timeout and returns
the first success. There is no retry of a failed candidate: falling through
to the next entry is the only recovery.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable, Generic, Sequence, TypeVar

import httpx

from backend.tailor.errors import ChainExhausted, ErrorKind, ProviderError

if TYPE_CHECKING:
    from backend.tailor.providers.base import BaseAdapter

logger = logging.getLogger(__name__)

A = TypeVar("A", bound="BaseAdapter")
T = TypeVar("T")


class Capability(str, Enum):
    """Capabilities served by candidate chains."""
    TRANSCRIPTION = "transcription"
    VISION = "vision"
    REASONING = "reasoning"
    CHAT = "chat"
    SYNTHESIS = "synthesis"


@dataclass(frozen=True)
class Candidate:
    """One (provider, model) pair plus its per-attempt timeout."""
    provider: str
    model: str
    timeout_s: float = 30.0

    @property
    def identifier(self) -> str:
        return f"{self.provider}/{self.model}"


@dataclass(frozen=True)
class Failure:
    """A recorded failed attempt."""
    provider: str
    reason: ErrorKind
    detail: str = ""
    elapsed_ms: float = 0.0


@dataclass(frozen=True)
class Success(Generic[T]):
    """The first successful attempt, with the failures that preceded it."""
    out: T
    provider: str
    attempts: tuple[Failure, ...] = ()


@dataclass(frozen=True)
class CandidateChain(Generic[A]):
    """Ordered adapters for one capability. Earlier entries are tried first."""
    capability: Capability
    adapters: tuple[A, ...] = field(default_factory=tuple)

    @property
    def candidates(self) -> tuple[Candidate, ...]:
        return tuple(a.candidate for a in self.adapters)

    def __len__(self) -> int:
        return len(self.adapters)


def _classify(exc: Exception) -> ErrorKind:
    if isinstance(exc, ProviderError):
        return exc.kind
    if isinstance(exc, asyncio.TimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(exc, httpx.TimeoutException):
        return ErrorKind.TIMEOUT
    if isinstance(exc, httpx.HTTPError):
        return ErrorKind.TRANSPORT
    return ErrorKind.PROVIDER_ERROR


async def run_chain(
    chain: CandidateChain[A],
    invoke: Callable[[A], Awaitable[T]],
) -> Success[T]:
    """Run `invoke` against each adapter in `chain` until one succeeds.

    Each attempt is bounded by the adapter's `candidate.timeout_s`.

    Args:
        chain: Ordered adapters for one capability.
        invoke: Coroutine function calling the capability method on an adapter.

    Returns:
        `Success` carrying the output, the answering provider and the
        failures recorded before it.

    Raises:
        ChainExhausted: Every candidate failed (attempted once each, in order).
    """
    capability = chain.capability.value
    failures: list[Failure] = []

    for adapter in chain.adapters:
        candidate = adapter.candidate
        start = time.perf_counter()
        try:
            out = await asyncio.wait_for(invoke(adapter), timeout=candidate.timeout_s)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            kind = _classify(e)
            detail = str(e) or type(e).__name__
            failures.append(Failure(candidate.identifier, kind, detail, round(elapsed_ms, 1)))
            logger.warning(
                f"[StageRunner] {capability}: {candidate.identifier} failed "
                f"({kind.value}) after {elapsed_ms:.0f}ms: {detail[:300]}"
            )
            continue

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"[StageRunner] {capability}: {candidate.identifier} answered in "
            f"{elapsed_ms:.0f}ms (attempt {len(failures) + 1}/{len(chain)})"
        )
        return Success(out=out, provider=candidate.identifier, attempts=tuple(failures))

    logger.error(
        f"[StageRunner] {capability}: chain exhausted after {len(failures)} attempts"
    )
    raise ChainExhausted(chain.capability, failures)


def describe(chains: Sequence[CandidateChain]) -> dict[str, list[str]]:
    """Map each capability to its candidate identifiers, in priority order."""
    return {c.capability.value: [cand.identifier for cand in c.candidates] for c in chains}
