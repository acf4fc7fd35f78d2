"""Client adapters for external systems.

Heavy dependencies (httpx, etc.) belong here, not in packages/common.
"""

from packages.clients.codecrawl import (
    CodecrawlClient,
    CodecrawlClientError,
    CodecrawlError,
    CodecrawlServerError,
    JobFailedError,
    JobNotFoundError,
    JobTimeoutError,
    UnexpectedJobStatusError,
)

__all__ = [
    "CodecrawlClient",
    "CodecrawlClientError",
    "CodecrawlError",
    "CodecrawlServerError",
    "JobFailedError",
    "JobNotFoundError",
    "JobTimeoutError",
    "UnexpectedJobStatusError",
]
