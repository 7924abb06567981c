"""AI-assisted mood scoring of journal entries."""

import re

import structlog

from wellspace.ai.client import AIServiceError, GenerativeClient


logger = structlog.get_logger(__name__)


MIN_ENTRY_LENGTH = 15
NEUTRAL_MOOD = 5
MIN_MOOD = 1
MAX_MOOD = 10

_TAG_PATTERN = re.compile(r"<[^>]*>?")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def plain_text(content: str) -> str:
    """Drop HTML tags from rich-text content."""
    return _TAG_PATTERN.sub("", content).strip()


def build_mood_prompt(text: str) -> str:
    return (
        "On a scale of 1 (very negative) to 10 (very positive), analyze the "
        "sentiment of this diary entry. Respond with only a number. "
        f'Entry: "{text}"'
    )


def parse_mood_score(raw: str) -> int | None:
    """Leading integer of the reply clamped to 1..10, or None if there is none."""
    match = _LEADING_INT.match(raw)
    if match is None:
        return None
    return max(MIN_MOOD, min(MAX_MOOD, int(match.group(1))))


class MoodScorer:
    """Scores the sentiment of an entry from 1 (very negative) to 10."""

    def __init__(self, client: GenerativeClient) -> None:
        self.client = client

    async def score(self, content: str) -> int:
        """Never raises; short entries and failures score neutral."""
        text = plain_text(content)
        if len(text) < MIN_ENTRY_LENGTH:
            return NEUTRAL_MOOD

        try:
            raw = await self.client.generate(build_mood_prompt(text))
        except AIServiceError as e:
            logger.warning("mood_score_failed", error_code=e.code)
            return NEUTRAL_MOOD

        score = parse_mood_score(raw)
        if score is None:
            logger.warning("mood_score_unparsable", raw_response=raw)
            return NEUTRAL_MOOD
        return score
