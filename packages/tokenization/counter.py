"""Token counting with tiktoken.

One TokenCounter wraps the tiktoken encoding for exactly one encoding name.
Counting never raises for bad input: an encoder failure is logged and the
fragment counts as 0 tokens, so one unencodable fragment cannot abort a
metrics run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from types import TracebackType
from typing import Any, Protocol

import tiktoken

from packages.common.resilience import resilient_external_call

logger = logging.getLogger(__name__)


class Encoder(Protocol):
    """Minimal tokenizer surface used for counting."""

    def encode(self, text: str, *, disallowed_special: Any = ...) -> list[int]: ...


EncoderFactory = Callable[[str], Encoder]


class TokenCounterReleasedError(RuntimeError):
    """Raised when a released TokenCounter is used again."""


@resilient_external_call(max_attempts=3, min_wait=1, max_wait=10, retry_on=(OSError,))
def load_tiktoken_encoding(encoding: str) -> tiktoken.Encoding:
    """Load a tiktoken encoding, retrying transient download failures.

    tiktoken fetches BPE rank files over the network on first use and caches
    them on disk. Unknown encoding names raise ValueError and are not retried.
    """
    return tiktoken.get_encoding(encoding)


class TokenCounter:
    """Counts tokens for a single, fixed encoding.

    Example:
        >>> with TokenCounter("o200k_base") as counter:
        ...     counter.count_tokens("hello world")
        2
    """

    def __init__(self, encoding: str, *, encoder_factory: EncoderFactory | None = None) -> None:
        """Bind the counter to an encoding.

        Args:
            encoding: tiktoken encoding name (e.g. "o200k_base").
            encoder_factory: Builds the encoder for ``encoding``. Defaults to
                ``load_tiktoken_encoding``; tests inject fakes here.
        """
        self.encoding = encoding
        factory = encoder_factory or load_tiktoken_encoding
        self._encoder: Encoder | None = factory(encoding)

    @property
    def released(self) -> bool:
        return self._encoder is None

    def count_tokens(self, content: str, label: str | None = None) -> int:
        """Count tokens in ``content``.

        Args:
            content: Text fragment to count.
            label: Optional path or chunk label, used in diagnostics.

        Returns:
            int: Number of tokens, or 0 if the encoder rejected the fragment.

        Raises:
            TokenCounterReleasedError: If ``release()`` was already called.
        """
        encoder = self._encoder
        if encoder is None:
            raise TokenCounterReleasedError(f"TokenCounter for {self.encoding} was released")

        try:
            # Special-token markers inside source files are plain text here
            return len(encoder.encode(content, disallowed_special=()))
        except Exception as e:
            if label:
                logger.warning(f"Failed to count tokens. path: {label}, error: {e}")
            else:
                logger.warning(f"Failed to count tokens. error: {e}")
            return 0

    def release(self) -> None:
        """Release the underlying encoder. Must be called exactly once."""
        if self._encoder is None:
            raise RuntimeError(f"TokenCounter for {self.encoding} already released")
        self._encoder = None
        logger.debug(f"Released token counter for {self.encoding}")

    def __enter__(self) -> TokenCounter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self.released:
            self.release()


__all__ = [
    "Encoder",
    "EncoderFactory",
    "TokenCounter",
    "TokenCounterReleasedError",
    "load_tiktoken_encoding",
]
