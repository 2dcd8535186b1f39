"""Replicate submit/poll image synthesis (SDXL img2img).

API: https://replicate.com/docs/reference/http
  - POST /v1/predictions  {version, input}  → {id, status, ...}
  - GET  /v1/predictions/{id}               → {status, output, error}
  - status: starting | processing | succeeded | failed | canceled
  - output: a URL or a list of URLs (first one wins)
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from backend.tailor.errors import ErrorKind, ProviderError
from backend.tailor.providers.base import BaseImageSynthesizer
from backend.tailor.providers.image.polling import JobStatus, SynthesisJob, poll_job
from backend.tailor.utils.media import to_data_url

logger = logging.getLogger(__name__)

_REPLICATE_API_URL = "https://api.replicate.com/v1/predictions"

_STATUS_MAP = {
    "starting": JobStatus.PENDING,
    "processing": JobStatus.PENDING,
    "succeeded": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
    "canceled": JobStatus.FAILED,
}

# Forwarded from config.yml into the prediction `input`
_INPUT_OPTIONS = ("prompt_strength", "num_inference_steps", "guidance_scale", "scheduler")


def parse_prediction(data: dict[str, Any]) -> SynthesisJob:
    """Map a prediction payload onto the job state machine."""
    job_id = data.get("id")
    status = _STATUS_MAP.get(str(data.get("status", "")).lower())
    if not job_id or status is None:
        raise ProviderError(
            f"unexpected prediction payload: {str(data)[:200]}",
            ErrorKind.MALFORMED_RESPONSE,
        )

    output = data.get("output")
    if isinstance(output, list):
        output = output[0] if output else None

    return SynthesisJob(
        job_id=job_id,
        status=status,
        output=output if isinstance(output, str) else None,
        error=data.get("error"),
    )


class ReplicateImageSynthesizer(BaseImageSynthesizer):
    """Queue-based generation: create a prediction, then poll it."""

    def __init__(
        self,
        config: dict,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep=None,
    ) -> None:
        super().__init__(config)
        self._transport = transport
        self._sleep = sleep
        self._prompt = config.get("prompt_template", "{issue}")
        self._negative_prompt = config.get("negative_prompt", "")
        self._interval_s = float(config.get("poll_interval_s", 2.0))
        self._max_polls = int(config.get("max_polls", 15))

    @property
    def _version(self) -> str:
        # "owner/name:hash" → the API wants the version hash
        return self.model.split(":", 1)[1] if ":" in self.model else self.model

    def _input(self, image: bytes, mime_type: str, issue: str) -> dict:
        payload = {
            "image": to_data_url(mime_type, image),
            "prompt": self._prompt.replace("{issue}", issue),
            "negative_prompt": self._negative_prompt,
        }
        for key in _INPUT_OPTIONS:
            if self.config.get(key) is not None:
                payload[key] = self.config[key]
        return payload

    async def synthesize(self, image: bytes, mime_type: str, issue: str) -> str:
        headers = {"Authorization": f"Token {self._api_key()}"}
        start = time.perf_counter()

        # One pooled client for the create call and every poll
        async with httpx.AsyncClient(
            timeout=self.candidate.timeout_s, transport=self._transport, headers=headers
        ) as client:
            response = await client.post(
                _REPLICATE_API_URL,
                json={"version": self._version, "input": self._input(image, mime_type, issue)},
            )
            if response.status_code >= 400:
                logger.warning(f"[Replicate] create failed HTTP {response.status_code}: {response.text[:300]}")
            response.raise_for_status()
            job = parse_prediction(response.json())
            logger.info(f"[Replicate] prediction {job.job_id} created ({job.status.value})")

            async def fetch(job_id: str) -> SynthesisJob:
                poll = await client.get(f"{_REPLICATE_API_URL}/{job_id}")
                poll.raise_for_status()
                return parse_prediction(poll.json())

            kwargs = {"sleep": self._sleep} if self._sleep is not None else {}
            output = await poll_job(
                job, fetch, interval_s=self._interval_s, max_polls=self._max_polls, **kwargs
            )

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"[Replicate] prediction {job.job_id} succeeded ({elapsed_ms:.0f}ms)")
        return output
