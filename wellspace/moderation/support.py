"""Short empathetic messages for authors who seem to be struggling."""

import structlog

from wellspace.ai.client import AIServiceError, GenerativeClient


logger = structlog.get_logger(__name__)


SUPPORT_OPENING = "It sounds like you're going through a lot right now."
FALLBACK_SUPPORT_MESSAGE = f"{SUPPORT_OPENING} Please remember to be kind to yourself."


def build_support_prompt(content: str) -> str:
    """Prompt asking for a 1-2 sentence acknowledgment with the fixed opening."""
    return (
        f'A user wrote: "{content}". Write a short, gentle, and empathetic message '
        "(1-2 sentences) acknowledging their feelings. Do not give advice. "
        f'Start with "{SUPPORT_OPENING}"'
    )


def ensure_opening(message: str) -> str:
    """Prefix the fixed opening clause when the model left it out."""
    text = message.strip().strip('"').strip()
    if text.startswith(SUPPORT_OPENING):
        return text
    return f"{SUPPORT_OPENING} {text}"


class SupportMessageGenerator:
    """Generates the message shown next to the "post anyway" choice."""

    def __init__(self, client: GenerativeClient) -> None:
        self.client = client

    async def generate(self, content: str) -> str:
        """Return a supportive message; falls back to a fixed one on any failure."""
        try:
            raw = await self.client.generate(build_support_prompt(content))
        except AIServiceError as e:
            logger.warning("support_message_failed", error_code=e.code)
            return FALLBACK_SUPPORT_MESSAGE

        if not raw.strip():
            return FALLBACK_SUPPORT_MESSAGE
        return ensure_opening(raw)
