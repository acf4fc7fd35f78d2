"""Generation job schemas.

Wire models for the Codecrawl LLMs.txt generation API:
- GenerateLLMsTextParams: request options (snake_case here, camelCase on the wire)
- JobSubmission: response to ``POST /v1/llmstxt``
- JobSnapshot: response to ``GET /v1/llmstxt/{id}``
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

OutputStyle = Literal["markdown", "xml", "plain"]


class JobStatus(str, Enum):
    """Statuses a generation job can report."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class CrawlOptions(_CamelModel):
    """Packaging options forwarded to the remote crawler.

    Every field is optional; unset fields are omitted from the request body.
    """

    # Output options
    output: str | None = None
    style: OutputStyle | None = None
    parsable_style: bool | None = None
    compress: bool | None = None
    output_show_line_numbers: bool | None = None
    file_summary: bool | None = None
    directory_structure: bool | None = None
    remove_comments: bool | None = None
    remove_empty_lines: bool | None = None
    header_text: str | None = None
    instruction_file_path: str | None = None
    include_empty_directories: bool | None = None
    git_sort_by_changes: bool | None = None

    # Filter options
    include: str | None = None
    ignore: str | None = None
    gitignore: bool | None = None
    default_patterns: bool | None = None

    # Remote repository options
    remote: str | None = None
    remote_branch: str | None = None

    # Security options
    security_check: bool | None = None

    # Token count options
    token_count_encoding: str | None = None

    # Other options
    top_files_len: int | None = Field(default=None, ge=0)


class GenerateLLMsTextParams(CrawlOptions):
    """Parameters for an LLMs.txt generation job."""

    max_urls: int | None = Field(default=None, ge=1, description="Maximum number of URLs to process")
    show_full_text: bool | None = Field(
        default=None, description="Also produce the extended llms-full.txt variant"
    )

    def to_payload(self, url: str) -> dict[str, Any]:
        """Build the JSON request body: ``{...params, url}``."""
        payload = self.model_dump(by_alias=True, exclude_none=True)
        payload["url"] = url
        return payload


class JobSubmission(_CamelModel):
    """Response to a generation job submission."""

    success: bool
    id: str | None = None
    error: str | None = None


class LLMsTextResult(_CamelModel):
    """Generated artifact of a completed job."""

    llmstxt: str = ""
    llmsfulltxt: str | None = None


class JobSnapshot(_CamelModel):
    """Read-only projection of a server-side generation job.

    ``status`` stays a plain (optional) string so a missing or
    out-of-enumeration value is detected by the client instead of failing
    validation. Non-string values are kept in their string form.
    """

    id: str | None = None
    success: bool = True
    status: str | None = None
    data: LLMsTextResult | None = None
    error: str | None = None
    expires_at: datetime | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _stringify_status(cls, value: Any) -> str | None:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @property
    def job_status(self) -> JobStatus | None:
        """Known status, or None if the server reported something unexpected."""
        if self.status is None:
            return None
        try:
            return JobStatus(self.status)
        except ValueError:
            return None


__all__ = [
    "CrawlOptions",
    "GenerateLLMsTextParams",
    "JobSnapshot",
    "JobStatus",
    "JobSubmission",
    "LLMsTextResult",
    "OutputStyle",
]
