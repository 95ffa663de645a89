"""
Client for an OpenAI-compatible chat completions endpoint.
"""

from __future__ import annotations

import json
import secrets
import time
from typing import Any, Dict, Optional

import aiohttp
import structlog

from lessongate.config.config import GenerationConfig
from lessongate.errors.exceptions import GenerationError
from lessongate.protocols import GenerationOptions

logger = structlog.get_logger(__name__)


def generate_request_id(now_ms: Optional[int] = None) -> str:
    millis = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"req_{millis}_{secrets.token_hex(5)[:9]}"


class OpenRouterClient:
    """Single-shot text generation over HTTP.

    Retrying is left to ``RetryingGenerator``; every failure here surfaces as a
    ``GenerationError`` carrying the HTTP status (``0`` when the request never
    got a response) and, for empty completions, a ``NO_CONTENT`` or
    ``NO_CHOICES`` code.
    """

    def __init__(self, config: GenerationConfig, session: Optional[aiohttp.ClientSession] = None) -> None:
        self.config = config
        self.session = session
        self._owns_session = session is None

    async def initialize(self) -> None:
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds))
            self._owns_session = True
            logger.info("Generation client session initialized", endpoint=self.config.endpoint)

    async def close(self) -> None:
        if self.session is not None and self._owns_session:
            await self.session.close()
            self.session = None

    async def __aenter__(self) -> "OpenRouterClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "X-Title": "LessonGate"}
        if self.config.api_key is not None:
            headers["Authorization"] = f"Bearer {self.config.api_key.get_secret_value()}"
        return headers

    def _payload(self, prompt: str, options: GenerationOptions) -> Dict[str, Any]:
        messages = []
        if options.system_prompt:
            messages.append({"role": "system", "content": options.system_prompt})
        messages.append({"role": "user", "content": prompt})
        return {
            "model": self.config.model,
            "messages": messages,
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
            "top_p": options.top_p,
        }

    async def generate(self, prompt: str, options: Optional[GenerationOptions] = None) -> str:
        if options is None:
            options = GenerationOptions(
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                top_p=self.config.top_p,
            )
        await self.initialize()
        assert self.session is not None

        request_id = generate_request_id()
        started = time.perf_counter()
        log = logger.bind(request_id=request_id, model=self.config.model)

        try:
            async with self.session.post(
                self.config.endpoint,
                json=self._payload(prompt, options),
                headers=self._headers(),
            ) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise GenerationError(
                        f"Generation API error: {response.status} {response.reason or ''} - {body}".strip(),
                        status=response.status,
                        response=body,
                    )
                result = await response.json(content_type=None)
        except aiohttp.ClientResponseError as exc:
            raise GenerationError(f"Generation API error: {exc.status} {exc.message}", status=exc.status) from exc
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise GenerationError(f"Network error contacting generation API: {exc!r}", status=0) from exc
        except json.JSONDecodeError as exc:
            raise GenerationError("Parsing error: generation API returned invalid JSON", code="INVALID_JSON") from exc

        content = self._extract_content(result)
        log.info(
            "Generated text",
            chars=len(content),
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
            usage=result.get("usage"),
        )
        return content

    @staticmethod
    def _extract_content(result: Any) -> str:
        choices = result.get("choices") if isinstance(result, dict) else None
        if not choices:
            raise GenerationError("No choices in API response", code="NO_CHOICES", response=result)
        message = choices[0].get("message") or {}
        content = message.get("content")
        if not content or not content.strip():
            raise GenerationError("No content in API response", code="NO_CONTENT", response=result)
        return content
