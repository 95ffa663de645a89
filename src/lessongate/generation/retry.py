"""
Bounded retries around a text generator.
"""

from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, Optional

import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from lessongate.config.config import RetryConfig
from lessongate.errors.classifier import ClassifiedError, ErrorClassifier, ErrorContext, ErrorType, error_status
from lessongate.errors.exceptions import GenerationFailed
from lessongate.observability import increment
from lessongate.protocols import GenerationOptions, TextGenerator
from lessongate.recovery.backoff import calculate_backoff_delay

logger = structlog.get_logger(__name__)

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})

Sleep = Callable[[float], Awaitable[None]]


class AttemptFailed(Exception):
    """One classified generation attempt."""

    def __init__(self, classified: ClassifiedError) -> None:
        super().__init__(str(classified.original_error))
        self.classified = classified


class RetryingGenerator:
    """Wraps a ``TextGenerator`` with exponential backoff.

    Each failed attempt is classified exactly once. Transient failures
    (rate limiting, 5xx, network) are retried up to
    ``RetryConfig.max_retry_attempts`` total attempts; anything else fails
    immediately. When the generator gives up it raises ``GenerationFailed``
    with the user-facing message for the last failure.
    """

    def __init__(
        self,
        generator: TextGenerator,
        config: Optional[RetryConfig] = None,
        classifier: Optional[ErrorClassifier] = None,
        *,
        sleep: Sleep = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.generator = generator
        self.config = config or RetryConfig()
        self.classifier = classifier or ErrorClassifier()
        self._sleep = sleep
        self._rng = rng

    @property
    def max_attempts(self) -> int:
        return self.config.max_retry_attempts if self.config.enable_retry else 1

    async def generate(
        self,
        prompt: str,
        options: Optional[GenerationOptions] = None,
        *,
        lesson_type: Optional[str] = None,
    ) -> str:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=retry_if_exception(self._should_retry),
            sleep=self._sleep,
            before_sleep=self._before_sleep,
            reraise=True,
        )
        attempts = 0
        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    text = await self._attempt(prompt, options, lesson_type)
        except AttemptFailed as failure:
            classified = failure.classified
            increment("generation_attempts", labels={"outcome": "failed"})
            logger.error(
                "Generation failed",
                attempts=attempts,
                error_id=classified.error_id,
                error_type=classified.type.value,
            )
            user_message = self.classifier.to_user_message(classified)
            raise GenerationFailed(classified, user_message, attempts) from classified.original_error

        increment("generation_attempts", labels={"outcome": "succeeded"})
        if attempts > 1:
            logger.info("Generation succeeded after retry", attempts=attempts)
        return text

    async def _attempt(self, prompt: str, options: Optional[GenerationOptions], lesson_type: Optional[str]) -> str:
        try:
            return await self.generator.generate(prompt, options)
        except Exception as exc:
            context = ErrorContext(content_length=len(prompt), lesson_type=lesson_type)
            raise AttemptFailed(self.classifier.classify(exc, context)) from exc

    def _wait(self, retry_state: RetryCallState) -> float:
        delay_ms = calculate_backoff_delay(
            retry_state.attempt_number - 1,
            self.config.retry_base_delay_ms,
            self.config.retry_max_delay_ms,
            self._rng,
        )
        return delay_ms / 1000

    @staticmethod
    def _should_retry(error: BaseException) -> bool:
        return isinstance(error, AttemptFailed) and RetryingGenerator.is_retryable(
            error.classified.original_error, error.classified.type
        )

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        failure = retry_state.outcome.exception() if retry_state.outcome else None
        classified = failure.classified if isinstance(failure, AttemptFailed) else None
        increment("generation_attempts", labels={"outcome": "retried"})
        logger.warning(
            "Retrying generation",
            attempt=retry_state.attempt_number,
            max_attempts=self.max_attempts,
            delay_s=round(retry_state.next_action.sleep, 3) if retry_state.next_action else None,
            error_id=classified.error_id if classified else None,
            error_type=classified.type.value if classified else None,
        )

    @staticmethod
    def is_retryable(error: BaseException, error_type: ErrorType) -> bool:
        return error_status(error) in RETRYABLE_STATUSES or error_type is ErrorType.NETWORK_ERROR
