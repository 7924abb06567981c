"""Moderation classifier for community posts and comments.

One call to the text-generation service per submission. The reply is not
guaranteed to be clean JSON, so the first balanced ``{...}`` object is cut
out of it and validated against a strict schema.

Fail-open policy: when the check cannot be completed (no API key, transport
error, unparsable or invalid reply) the verdict is ``safe`` and the
submission goes through. Availability is favored over moderation strictness;
switching to fail-closed would change what users can post.
"""

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from wellspace.ai.client import AIServiceError, GenerativeClient

from .models import ModerationCategory, ModerationVerdict


logger = structlog.get_logger(__name__)


RUBRIC = """You are a safety moderator for a mental health support community for young people. \
Analyze the submitted text for safety and intent, taking the original post into account when one is given.

Categories, from most to least severe:
1. "urgent_risk": the AUTHOR of the submitted text expresses a clear, first-person, immediate \
intention to harm themselves (e.g. "I am going to kill myself"). This is a cry for help.
2. "harmful_instruction": the text tells or encourages SOMEONE ELSE to self-harm or do something \
dangerous. Weigh it against the original post: a short reply that looks neutral on its own is \
harmful_instruction when it encourages harm in that context (e.g. the reply "do the same yourself" \
to the post "my friend committed suicide").
3. "support_needed": not an emergency, but the author expresses significant sadness or distress \
(e.g. "I feel so empty").
4. "safe": supportive, neutral or otherwise harmless.

If several categories apply, choose the most severe one.

Respond with a single JSON object only, no markdown:
{"category": "urgent_risk|harmful_instruction|support_needed|safe", "reason": "brief explanation"}"""


class ClassifierReply(BaseModel):
    """Schema the model's JSON reply must satisfy."""

    model_config = ConfigDict(extra="ignore")

    category: ModerationCategory
    reason: str


def build_prompt(content: str, context: str | None = None) -> str:
    """Embed the rubric, the optional parent post and the text in one prompt."""
    if context:
        return (
            f"{RUBRIC}\n\n"
            f"[ORIGINAL POST FOR CONTEXT]:\n\"{context}\"\n\n"
            f"[NEW COMMENT TO ANALYZE]:\n\"{content}\""
        )
    return f"{RUBRIC}\n\n[NEW POST TO ANALYZE]:\n\"{content}\""


def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` object in ``text``.

    Braces inside JSON strings are ignored. Returns None when no object is
    opened, or when the first one opened is never closed.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def parse_reply(raw: str) -> ClassifierReply:
    """Parse a raw model reply.

    Raises:
        ValueError: If no JSON object is found or it fails validation.
    """
    candidate = extract_json_object(raw)
    if candidate is None:
        msg = "No JSON object in classifier reply"
        raise ValueError(msg)
    return ClassifierReply.model_validate_json(candidate)


class ModerationClassifier:
    """Classifies text into one of the moderation categories."""

    def __init__(self, client: GenerativeClient) -> None:
        self.client = client

    async def classify(
        self, content: str, context: str | None = None
    ) -> ModerationVerdict:
        """Classify ``content``, optionally against its parent post.

        Never raises: any failure yields a fail-open ``safe`` verdict.
        """
        prompt = build_prompt(content, context)

        try:
            raw = await self.client.generate(prompt)
        except AIServiceError as e:
            logger.warning(
                "moderation_check_failed",
                error_code=e.code,
                error=str(e),
                fail_open=True,
            )
            return ModerationVerdict.fail_open(e.code)

        try:
            reply = parse_reply(raw)
        except ValidationError as e:
            logger.warning(
                "moderation_reply_invalid",
                errors=e.error_count(),
                fail_open=True,
            )
            return ModerationVerdict.fail_open("invalid_reply")
        except ValueError as e:
            logger.warning("moderation_reply_unparsable", error=str(e), fail_open=True)
            return ModerationVerdict.fail_open("unparsable_reply")

        verdict = ModerationVerdict.build(
            reply.category,
            reply.reason,
            context_considered=context is not None,
        )
        logger.info(
            "moderation_verdict",
            category=verdict.category.value,
            has_context=context is not None,
        )
        return verdict
