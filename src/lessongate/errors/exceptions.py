"""
Exceptions raised at the AI generation boundary.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from lessongate.errors.classifier import ClassifiedError, UserErrorMessage


class GenerationError(Exception):
    """A failed call to the text generation endpoint.

    ``status`` is the HTTP status when one was received, ``0`` for transport
    failures that never produced a response, and ``None`` when unknown.
    """

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        code: Optional[str] = None,
        response: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.response = response

    def __repr__(self) -> str:
        return f"GenerationError({self.message!r}, status={self.status!r}, code={self.code!r})"


class GenerationFailed(Exception):
    """Generation gave up; carries the classification and the user-facing message."""

    def __init__(self, classified: ClassifiedError, user_message: UserErrorMessage, attempts: int) -> None:
        super().__init__(f"{user_message.title} ({classified.error_id})")
        self.classified = classified
        self.user_message = user_message
        self.attempts = attempts

    @property
    def error_id(self) -> str:
        return self.classified.error_id
