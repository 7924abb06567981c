"""Client for the remote text-generation service (Gemini REST API).

The service is treated as opaque text-in/text-out. Callers own prompt
construction and response parsing, and decide how to recover from the
errors raised here.

SECURITY: The API key is kept server-side and sent in a header, never in URLs
that could end up in logs.
"""

from typing import Any

import httpx
import structlog

from wellspace.config.settings import Settings


logger = structlog.get_logger(__name__)


class AIServiceError(Exception):
    """Base exception for text-generation failures."""

    code = "ai_error"


class AINotConfiguredError(AIServiceError):
    """Raised when no API key is configured."""

    code = "ai_not_configured"


class AIRequestError(AIServiceError):
    """Raised on transport errors, timeouts and non-2xx responses."""

    code = "ai_request_failed"

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """Timeouts, transport errors and 429/5xx replies may succeed later."""
        return self.status_code is None or self.status_code == 429 or self.status_code >= 500


class AIResponseError(AIServiceError):
    """Raised when the response carries no usable text."""

    code = "ai_empty_response"


class GenerativeClient:
    """``generateContent`` calls against one configured model.

    A call is a single prompt, optionally preceded by earlier conversation
    turns and governed by a system instruction.
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize from settings.

        Args:
            settings: Application settings (key, model, base URL, timeout).
            transport: Optional httpx transport, used by tests.
        """
        self._api_key = settings.gemini_api_key
        self._model = settings.gemini_model
        self._base_url = settings.gemini_base_url.rstrip("/")
        self._timeout = settings.gemini_request_timeout
        self._generation_config = {
            "temperature": settings.gemini_temperature,
            "maxOutputTokens": settings.gemini_max_output_tokens,
        }
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        """Check if an API key is available."""
        return bool(self._api_key)

    @property
    def endpoint(self) -> str:
        """URL of the generateContent method for the configured model."""
        return f"{self._base_url}/models/{self._model}:generateContent"

    async def generate(
        self,
        prompt: str,
        *,
        history: list[tuple[str, str]] | None = None,
        system_instruction: str | None = None,
    ) -> str:
        """Send one prompt and return the generated text.

        Args:
            prompt: Full prompt text.
            history: Earlier turns, oldest first, as ``(role, text)`` pairs
                where role is ``"user"`` or ``"model"``.
            system_instruction: Optional instruction that frames the whole
                conversation.

        Returns:
            Text of the first candidate (all parts joined).

        Raises:
            AINotConfiguredError: If no API key is configured.
            AIRequestError: On timeout, transport error or non-2xx status.
            AIResponseError: If the response holds no text.
        """
        if not self._api_key:
            raise AINotConfiguredError("Generative AI API key is not configured")

        body: dict[str, Any] = {
            "contents": build_contents(prompt, history or []),
            "generationConfig": self._generation_config,
        }
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        headers = {
            "x-goog-api-key": self._api_key,
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(self.endpoint, json=body, headers=headers)
        except httpx.TimeoutException as e:
            logger.error("ai_request_timeout", model=self._model, error=str(e))
            raise AIRequestError("Generative AI request timed out") from e
        except httpx.RequestError as e:
            logger.error("ai_request_error", model=self._model, error=str(e))
            raise AIRequestError(f"Generative AI request error: {e}") from e

        if not response.is_success:
            logger.error(
                "ai_request_rejected",
                model=self._model,
                status_code=response.status_code,
                response_text=response.text[:500],
            )
            raise AIRequestError(
                f"Generative AI API error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AIResponseError("Generative AI response is not JSON") from e

        text = extract_candidate_text(data)
        if not text:
            raise AIResponseError("Generative AI response has no text")
        return text


def build_contents(prompt: str, history: list[tuple[str, str]]) -> list[dict[str, Any]]:
    """Request ``contents`` for a prompt and the turns before it.

    The conversation has to open with a user turn, so leading model turns
    (a greeting, say) are dropped.
    """
    turns = list(history)
    while turns and turns[0][0] != "user":
        turns.pop(0)
    contents = [{"role": role, "parts": [{"text": text}]} for role, text in turns]
    contents.append({"role": "user", "parts": [{"text": prompt}]})
    return contents


def extract_candidate_text(data: Any) -> str:
    """Join the text parts of the first candidate, or return an empty string."""
    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    first = candidates[0]
    if not isinstance(first, dict):
        return ""
    content = first.get("content")
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list):
        return ""
    texts = (part.get("text") for part in parts if isinstance(part, dict))
    return "".join(text for text in texts if isinstance(text, str))
