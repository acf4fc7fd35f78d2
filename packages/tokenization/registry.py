"""Per-encoding registry of TokenCounter instances.

The registry owns every counter it hands out. A counter is created on the
first request for its encoding and released by ``release_all()`` (called on
process or worker shutdown). Callers never release counters they got from
a registry.
"""

from __future__ import annotations

import logging
import threading

from packages.tokenization.counter import EncoderFactory, TokenCounter

logger = logging.getLogger(__name__)


class EncoderRegistry:
    """Thread-safe, lazily populated map of encoding name to TokenCounter."""

    def __init__(self, encoder_factory: EncoderFactory | None = None) -> None:
        """Initialize an empty registry.

        Args:
            encoder_factory: Factory forwarded to every TokenCounter created here.
        """
        self._encoder_factory = encoder_factory
        self._counters: dict[str, TokenCounter] = {}
        self._lock = threading.Lock()

    def get(self, encoding: str) -> TokenCounter:
        """Return the counter for ``encoding``, creating it on first use."""
        counter = self._counters.get(encoding)
        if counter is not None:
            return counter

        with self._lock:
            # Double-check after acquiring the lock
            counter = self._counters.get(encoding)
            if counter is None:
                counter = TokenCounter(encoding, encoder_factory=self._encoder_factory)
                self._counters[encoding] = counter
                logger.info(f"Created token counter for {encoding}")
            return counter

    def release(self, encoding: str) -> None:
        """Release and forget the counter for one encoding, if present."""
        with self._lock:
            counter = self._counters.pop(encoding, None)
        if counter is not None:
            counter.release()

    def release_all(self) -> None:
        """Release every counter exactly once and empty the registry."""
        with self._lock:
            counters = list(self._counters.values())
            self._counters.clear()

        for counter in counters:
            counter.release()

        if counters:
            logger.debug(f"Released {len(counters)} token counter(s)")

    def __contains__(self, encoding: object) -> bool:
        return encoding in self._counters

    def __len__(self) -> int:
        return len(self._counters)


_default_registry: EncoderRegistry | None = None
_default_registry_lock = threading.Lock()


def get_encoder_registry() -> EncoderRegistry:
    """Return the process-wide registry (created lazily, tiktoken-backed)."""
    global _default_registry
    if _default_registry is not None:
        return _default_registry

    with _default_registry_lock:
        if _default_registry is None:
            _default_registry = EncoderRegistry()
        return _default_registry


def reset_encoder_registry() -> None:
    """Release all counters of the process-wide registry and drop it."""
    global _default_registry
    with _default_registry_lock:
        registry, _default_registry = _default_registry, None
    if registry is not None:
        registry.release_all()


__all__ = ["EncoderRegistry", "get_encoder_registry", "reset_encoder_registry"]
