"""
Prediction client for the Replicate predictions API.

A prediction is submitted once and, if the API answers before the job is done,
polled at a fixed interval up to a fixed number of attempts. Giving up is reported
as a timeout, distinct from a job the API itself reports as failed.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from ..config import ReplicateConfig
from ..errors import PredictionFailed, PredictionTimeout, RemoteError
from .prediction import PredictionJob, PredictionStatus

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class PredictionProvider(ABC):
    """Abstract base class for remote prediction providers."""

    @abstractmethod
    async def predict(self, prompt: str) -> PredictionJob:
        """Run a prompt to a succeeded job or raise."""
        pass

    async def aclose(self):
        """Release network resources."""
        pass


class ReplicateClient(PredictionProvider):
    """Submits predictions to Replicate and polls them to a terminal state."""

    def __init__(
        self,
        config: ReplicateConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config
        self._client = http_client
        self._owns_client = http_client is None
        self._sleep = sleep

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def aclose(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def predict(self, prompt: str) -> PredictionJob:
        """
        Submit a prompt and wait for the job to finish.

        Args:
            prompt: Fully rendered prompt

        Returns:
            The succeeded PredictionJob

        Raises:
            ConfigError: credential or model version missing, nothing was sent
            RemoteError: transport failure or non-success HTTP status
            PredictionFailed: the API reported the job failed or canceled
            PredictionTimeout: still running after the last poll attempt
        """
        job = await self.submit(prompt)

        if not job.status.is_terminal:
            job = await self.poll_until_terminal(job)

        if job.status in (PredictionStatus.FAILED, PredictionStatus.CANCELED):
            logger.error(f"Prediction {job.id} {job.status.value}: {job.error}")
            raise PredictionFailed("Model prediction failed", detail=job.raw)

        if job.status is PredictionStatus.TIMED_OUT:
            raise PredictionTimeout(
                "Model prediction did not finish in time",
                detail={
                    "id": job.id,
                    "status": job.raw.get("status"),
                    "attempts": self.config.max_poll_attempts,
                },
            )

        return job

    async def submit(self, prompt: str) -> PredictionJob:
        """Create a prediction job."""
        self.config.validate()

        body = {
            "version": self.config.model_version,
            "input": {
                "prompt": prompt,
                "max_new_tokens": self.config.max_new_tokens,
                "temperature": self.config.temperature,
            },
        }

        payload = await self._request(
            "POST",
            f"{self.config.base_url}/predictions",
            timeout=self.config.submit_timeout,
            json=body,
        )
        job = PredictionJob.from_payload(payload)
        logger.info(f"Submitted prediction {job.id} (status: {job.status.value})")
        return job

    async def get(self, prediction_id: str) -> PredictionJob:
        """Read the current state of a prediction job."""
        payload = await self._request(
            "GET",
            f"{self.config.base_url}/predictions/{prediction_id}",
            timeout=self.config.poll_timeout,
        )
        return PredictionJob.from_payload(payload)

    async def poll_until_terminal(self, job: PredictionJob) -> PredictionJob:
        """Poll a job until it finishes or the attempt ceiling is reached."""
        prediction_id = job.id
        if not prediction_id:
            raise RemoteError("Prediction API returned a pending job without an id", detail=job.raw)

        for attempt in range(1, self.config.max_poll_attempts + 1):
            await self._sleep(self.config.poll_interval)
            job = await self.get(prediction_id)
            if job.status.is_terminal:
                logger.info(f"Prediction {prediction_id} {job.status.value} after {attempt} polls")
                return job
            logger.debug(f"Prediction {prediction_id} still {job.status.value} (poll {attempt})")

        logger.warning(
            f"Prediction {prediction_id} still {job.status.value} after "
            f"{self.config.max_poll_attempts} polls, giving up"
        )
        return job.timed_out()

    async def _request(
        self,
        method: str,
        url: str,
        timeout: float,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Send one authenticated request and return the decoded JSON object."""
        try:
            response = await self.client.request(
                method,
                url,
                json=json,
                headers=self.config.auth_headers(),
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            logger.error(f"Prediction API timed out: {method} {url}")
            raise RemoteError("Prediction API timed out", detail={"url": url, "timeout": timeout}) from e
        except httpx.HTTPError as e:
            logger.error(f"Prediction API request failed: {e}")
            raise RemoteError("Prediction API request failed", detail={"url": url, "reason": str(e)}) from e

        if response.is_error:
            detail = {"status_code": response.status_code, "body": _response_body(response)}
            logger.error(f"Prediction API returned HTTP {response.status_code}: {detail['body']}")
            raise RemoteError(f"Prediction API returned HTTP {response.status_code}", detail=detail)

        try:
            payload = response.json()
        except ValueError as e:
            raise RemoteError(
                "Prediction API returned a non-JSON body",
                detail={"status_code": response.status_code, "body": response.text[:1000]},
            ) from e

        if not isinstance(payload, dict):
            raise RemoteError("Prediction API returned an unexpected body", detail={"body": payload})

        return payload


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text[:1000]
