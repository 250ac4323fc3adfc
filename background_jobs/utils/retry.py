"""
Retry policy for failed one-time jobs.

Computes exponential backoff delays and the give-up decision. Jitter is
opt-in so that the default schedule of delays is deterministic.
"""

import random
from typing import Optional

DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0


class RetryController:
    """Exponential backoff with a delay cap and optional jitter."""

    def __init__(
        self,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        exponential_base: float = 2.0,
        jitter: bool = False,
        jitter_max: float = 0.5,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the retry policy.

        Args:
            base_delay: Delay before the first retry in seconds
            max_delay: Maximum delay between retries in seconds
            exponential_base: Growth factor per failed attempt
            jitter: Whether to add random jitter to delays
            jitter_max: Maximum jitter as fraction of delay (0.0 to 1.0)
            rng: Random source used for jitter (tests pass a seeded one)
        """
        if base_delay < 0 or max_delay < 0:
            raise ValueError("delays must be >= 0")
        if not 0.0 <= jitter_max <= 1.0:
            raise ValueError("jitter_max must be between 0.0 and 1.0")

        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.jitter_max = jitter_max
        self._rng = rng or random.Random()

    def next_delay(self, attempt: int) -> float:
        """
        Calculate the delay before retrying after a failed attempt.

        Args:
            attempt: Number of failed attempts so far (1-indexed)

        Returns:
            Delay in seconds, capped at max_delay before jitter is added
        """
        if attempt < 1:
            raise ValueError("attempt is counted from 1")

        try:
            delay = min(
                self.base_delay * (self.exponential_base ** (attempt - 1)),
                self.max_delay,
            )
        except OverflowError:
            delay = self.max_delay

        if self.jitter:
            delay += delay * self._rng.uniform(0, self.jitter_max)

        return delay

    @staticmethod
    def should_retry(attempts: int, max_attempts: int) -> bool:
        """Return True while another attempt is allowed."""
        return attempts < max_attempts

    def __repr__(self) -> str:
        return (
            f"RetryController(base_delay={self.base_delay}, "
            f"max_delay={self.max_delay}, jitter={self.jitter})"
        )
