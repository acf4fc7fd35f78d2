"""Metrics schemas.

Records exchanged between the file processor, the metrics engine, and callers:
- ProcessedFile: a crawled file after filtering/processing (input)
- FileMetrics: character and token count of one processed file
- MetricsReport: aggregate report for the packaged output (output)
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ProcessedFile(BaseModel):
    """A crawled source file ready to be measured.

    Examples:
        >>> ProcessedFile(path="src/app.py", content="print('hi')\\n").path
        'src/app.py'
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Path of the file relative to the crawl root")
    content: str = Field(..., description="Processed file content")


class FileMetrics(BaseModel):
    """Size metrics for one processed file."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Path of the measured file")
    char_count: int = Field(..., ge=0, description="Number of characters in the file content")
    token_count: int = Field(..., ge=0, description="Number of tokens in the file content")


class MetricsReport(BaseModel):
    """Aggregate metrics for a packaged output and its constituent files.

    Serialises with camelCase aliases (``totalFiles``, ``fileTokenCounts``...)
    when dumped with ``by_alias=True``.

    Attributes:
        total_files: Number of processed files.
        total_characters: Character count of the rendered output.
        total_tokens: Token count of the rendered output.
        file_char_counts: Mapping of file path to character count.
        file_token_counts: Mapping of file path to token count.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_files: int = Field(..., ge=0, description="Number of processed files")
    total_characters: int = Field(..., ge=0, description="Characters in the rendered output")
    total_tokens: int = Field(..., ge=0, description="Tokens in the rendered output")
    file_char_counts: dict[str, int] = Field(
        default_factory=dict, description="Per-file character counts keyed by path"
    )
    file_token_counts: dict[str, int] = Field(
        default_factory=dict, description="Per-file token counts keyed by path"
    )

    def top_files(self, limit: int) -> list[tuple[str, int]]:
        """Return the ``limit`` files with the most tokens, largest first.

        Ties are broken by path so the ordering is stable.
        """
        if limit <= 0:
            return []
        ranked = sorted(self.file_token_counts.items(), key=lambda item: (-item[1], item[0]))
        return ranked[:limit]


__all__ = ["FileMetrics", "MetricsReport", "ProcessedFile"]
