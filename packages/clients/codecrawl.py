"""HTTP client for the Codecrawl LLMs.txt generation API.

Submits a generation job, then polls its status on a fixed interval until the
job completes, fails, or reports a status outside the known set.

Submission and polling never retry: every non-success response is raised to
the caller as a CodecrawlError carrying the status code and server message.
By default the poll loop has no deadline; a job that stays in ``processing``
is polled until the caller abandons it. ``deadline`` opts into a bound.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable
from types import TracebackType
from typing import Any

import httpx
from pydantic import ValidationError

from packages.common.config import CLOUD_API_URL, CodecrawlConfig, get_config
from packages.common.tracing import TracingContext
from packages.schemas.jobs import (
    GenerateLLMsTextParams,
    JobSnapshot,
    JobStatus,
    JobSubmission,
    LLMsTextResult,
)

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 2.0
DEFAULT_TIMEOUT_SECONDS = 60.0


class CodecrawlError(Exception):
    """Base exception for Codecrawl API errors.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code (or the closest equivalent).
        details: Optional structured details returned by the server.
    """

    def __init__(self, message: str, status_code: int, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


class CodecrawlClientError(CodecrawlError):
    """Raised for 4xx responses (validation, payment, conflicts...)."""


class JobNotFoundError(CodecrawlClientError):
    """Raised when the status endpoint returns 404 for a job id."""


class CodecrawlServerError(CodecrawlError):
    """Raised for 5xx responses."""


class JobFailedError(CodecrawlError):
    """Raised when the server reports the job as failed."""


class UnexpectedJobStatusError(CodecrawlError):
    """Raised when polling returns a status outside processing/completed/failed."""


class JobTimeoutError(CodecrawlError):
    """Raised when an opt-in polling deadline elapses."""


def error_for_status(status_code: int, message: str, details: Any = None) -> CodecrawlError:
    """Map an HTTP status code to the matching CodecrawlError subclass."""
    if status_code == 404:
        return JobNotFoundError(message, status_code, details)
    if 400 <= status_code < 500:
        return CodecrawlClientError(message, status_code, details)
    if status_code >= 500:
        return CodecrawlServerError(message, status_code, details)
    return CodecrawlError(message, status_code, details)


def _is_cloud_service(url: str) -> bool:
    return "api.irere.dev" in url


def _safe_json(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _describe_failure(action: str, status_code: int, body: dict[str, Any]) -> str:
    error_message = body.get("error")
    if not error_message:
        return f"Unexpected error occurred while {action}. Status code: {status_code}."

    details = body.get("details")
    details_suffix = f" - {json.dumps(details)}" if details else ""
    return f"Failed to {action}. Status code: {status_code}. Error: {error_message}{details_suffix}"


class CodecrawlClient:
    """Async client for LLMs.txt generation jobs.

    Example:
        >>> async with CodecrawlClient(api_key="cc-...") as client:
        ...     result = await client.generate_llmstxt(
        ...         "https://github.com/owner/repo",
        ...         GenerateLLMsTextParams(max_urls=10),
        ...     )
        ...     print(result.llmstxt)
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Bearer token. Required for the managed cloud endpoint.
            api_url: Base URL of the API (default: https://api.irere.dev).
            timeout: Per-request timeout in seconds.
            poll_interval: Delay between status polls in seconds.
            client: Optional pre-configured httpx.AsyncClient (primarily for tests).
            sleep: Awaitable sleep used between polls (primarily for tests).
            clock: Monotonic clock used for the optional polling deadline.

        Raises:
            CodecrawlError: If the cloud endpoint is targeted without an API key.
        """
        base_url = (api_url or CLOUD_API_URL).rstrip("/")
        if _is_cloud_service(base_url) and not api_key:
            raise CodecrawlError("No API key provided", 401)

        self.api_key = api_key or ""
        self.api_url = base_url
        self.timeout = timeout
        self.poll_interval = poll_interval

        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._sleep = sleep
        self._clock = clock

        logger.info(f"Initialized CodecrawlClient (api_url={self.api_url})")

    @classmethod
    def from_config(cls, config: CodecrawlConfig | None = None, **kwargs: Any) -> CodecrawlClient:
        """Build a client from configuration; keyword arguments take precedence."""
        config = config or get_config()
        kwargs.setdefault("api_key", config.api_key_value)
        kwargs.setdefault("api_url", config.codecrawl_api_url)
        kwargs.setdefault("timeout", config.codecrawl_request_timeout)
        kwargs.setdefault("poll_interval", config.job_poll_interval)
        return cls(**kwargs)

    def prepare_headers(self, idempotency_key: str | None = None) -> dict[str, str]:
        """Build request headers, adding the idempotency key when given."""
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        if idempotency_key:
            headers["x-idempotency-key"] = idempotency_key
        return headers

    async def _send(
        self,
        method: str,
        url: str,
        action: str,
        *,
        headers: dict[str, str],
        payload: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            return await self._client.request(method, url, headers=headers, json=payload)
        except httpx.RequestError as e:
            logger.error(f"Codecrawl request error while trying to {action}: {e}")
            raise CodecrawlError(f"Failed to {action}: {e}", 500) from e

    async def async_generate_llmstxt(
        self,
        url: str,
        params: GenerateLLMsTextParams | None = None,
        *,
        idempotency_key: str | None = None,
    ) -> str:
        """Submit an LLMs.txt generation job without polling.

        Args:
            url: Repository URL to generate LLMs.txt for.
            params: Generation options.
            idempotency_key: Optional ``x-idempotency-key`` header value.

        Returns:
            str: The job identifier.

        Raises:
            CodecrawlError: On any non-200 response, an application-level error,
                or a success response without a job id.
        """
        action = "start LLMs.txt generation"
        payload = (params or GenerateLLMsTextParams()).to_payload(url)

        response = await self._send(
            "POST",
            f"{self.api_url}/v1/llmstxt",
            action,
            headers=self.prepare_headers(idempotency_key),
            payload=payload,
        )
        body = _safe_json(response)

        if response.status_code != 200:
            raise error_for_status(
                response.status_code,
                _describe_failure(action, response.status_code, body),
                body.get("details"),
            )

        try:
            submission = JobSubmission.model_validate(body)
        except ValidationError as e:
            raise CodecrawlError(f"Failed to {action}. Invalid response: {e}", 500) from e

        if not submission.success or submission.error:
            raise CodecrawlError(
                f"Failed to {action}. Error: {submission.error or 'unknown error'}",
                response.status_code,
                body.get("details"),
            )

        if not submission.id:
            raise CodecrawlError(f"Failed to {action}. No job ID returned", 500)

        logger.info(f"Submitted LLMs.txt generation job {submission.id} for {url}")
        return submission.id

    async def check_generate_llmstxt_status(self, job_id: str) -> JobSnapshot:
        """Fetch the current status of a generation job.

        Args:
            job_id: Identifier returned by ``async_generate_llmstxt``.

        Returns:
            JobSnapshot: The server's view of the job.

        Raises:
            JobNotFoundError: If the server returns 404.
            CodecrawlError: On other non-200 responses or an unreadable body.
        """
        action = "check LLMs.txt generation status"

        response = await self._send(
            "GET",
            f"{self.api_url}/v1/llmstxt/{job_id}",
            action,
            headers=self.prepare_headers(),
        )
        body = _safe_json(response)

        if response.status_code == 404:
            raise JobNotFoundError("LLMs.txt generation job not found", 404, body.get("details"))

        if response.status_code != 200:
            raise error_for_status(
                response.status_code,
                _describe_failure(action, response.status_code, body),
                body.get("details"),
            )

        # An application-level failure without any job status
        if body.get("success") is False and body.get("status") is None:
            raise CodecrawlError(
                f"Failed to {action}. Error: {body.get('error') or 'unknown error'}",
                response.status_code,
                body.get("details"),
            )

        try:
            snapshot = JobSnapshot.model_validate({"id": job_id, **body})
        except ValidationError as e:
            raise CodecrawlError(f"Failed to {action}. Invalid response: {e}", 500) from e

        logger.debug(f"Job {job_id} status: {snapshot.status}")
        return snapshot

    async def generate_llmstxt(
        self,
        url: str,
        params: GenerateLLMsTextParams | None = None,
        *,
        idempotency_key: str | None = None,
        deadline: float | None = None,
    ) -> LLMsTextResult:
        """Submit a generation job and poll until it reaches a terminal state.

        Args:
            url: Repository URL to generate LLMs.txt for.
            params: Generation options.
            idempotency_key: Optional ``x-idempotency-key`` header value.
            deadline: Optional bound in seconds on the polling phase. None
                (default) polls until the job leaves ``processing``.

        Returns:
            LLMsTextResult: The generated llms.txt (and llms-full.txt, if requested).

        Raises:
            JobFailedError: If the job reports ``failed``.
            UnexpectedJobStatusError: If the job reports an unknown status.
            JobTimeoutError: If ``deadline`` elapses first.
            CodecrawlError: If submission or a status request fails.
        """
        with TracingContext(inherit=True):
            job_id = await self.async_generate_llmstxt(
                url, params, idempotency_key=idempotency_key
            )
            started = self._clock()
            polls = 0

            while True:
                snapshot = await self.check_generate_llmstxt_status(job_id)
                polls += 1
                status = snapshot.job_status

                if status is JobStatus.COMPLETED:
                    logger.info(f"Job {job_id} completed after {polls} poll(s)")
                    return snapshot.data or LLMsTextResult()

                if status is JobStatus.FAILED:
                    logger.error(f"Job {job_id} failed: {snapshot.error}")
                    raise JobFailedError(
                        f"LLMs.txt generation failed. Error: {snapshot.error or 'unknown error'}",
                        500,
                    )

                if status is not JobStatus.PROCESSING:
                    logger.error(f"Job {job_id} reported unexpected status {snapshot.status!r}")
                    raise UnexpectedJobStatusError(
                        "LLMs.txt generation ended with unexpected status: "
                        f"{snapshot.status or 'unknown'}",
                        500,
                    )

                if deadline is not None and self._clock() - started + self.poll_interval > deadline:
                    raise JobTimeoutError(
                        f"LLMs.txt generation job {job_id} still processing after {deadline}s",
                        408,
                    )

                await self._sleep(self.poll_interval)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if owned."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> CodecrawlClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


__all__ = [
    "CodecrawlClient",
    "CodecrawlClientError",
    "CodecrawlError",
    "CodecrawlServerError",
    "JobFailedError",
    "JobNotFoundError",
    "JobTimeoutError",
    "POLL_INTERVAL_SECONDS",
    "UnexpectedJobStatusError",
    "error_for_status",
]
