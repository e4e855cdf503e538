r"""Abstract base class for backoff strategies."""

from __future__ import annotations

__all__ = ["BaseBackoffStrategy"]

from abc import ABC, abstractmethod


class BaseBackoffStrategy(ABC):
    """Abstract base class for backoff strategies.

    A backoff strategy determines how long to wait before the next
    attempt (or the next poll) based on the attempt index.
    """

    @abstractmethod
    def calculate(self, attempt: int) -> float:
        """Calculate the raw delay for a given attempt, before jitter.

        Args:
            attempt: The attempt index (0-indexed). attempt=0 is the wait
                after the first attempt.

        Returns:
            The delay in seconds.
        """
