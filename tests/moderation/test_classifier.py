"""Tests for the moderation classifier."""

import httpx
import pytest

from wellspace.ai.client import (
    AINotConfiguredError,
    AIRequestError,
    AIResponseError,
    GenerativeClient,
)
from wellspace.config.settings import Settings
from wellspace.moderation.classifier import (
    ModerationClassifier,
    build_prompt,
    extract_json_object,
    parse_reply,
)
from wellspace.moderation.models import (
    HarmfulInstructionAnalysis,
    ModerationCategory,
    ModerationVerdict,
    SafeAnalysis,
    load_analysis,
)


class TestExtractJsonObject:
    """Tests for extract_json_object."""

    def test_plain_object(self) -> None:
        assert extract_json_object('{"a": 1}') == '{"a": 1}'

    def test_prose_and_code_fences_around_object(self) -> None:
        raw = 'Sure!\n```json\n{"category": "safe", "reason": "ok"}\n```\nAnything else?'
        assert extract_json_object(raw) == '{"category": "safe", "reason": "ok"}'

    def test_nested_objects(self) -> None:
        raw = 'x {"a": {"b": {"c": 1}}, "d": 2} y {"e": 3}'
        assert extract_json_object(raw) == '{"a": {"b": {"c": 1}}, "d": 2}'

    def test_braces_inside_strings(self) -> None:
        raw = '{"reason": "uses } and { in text \\" quoted", "category": "safe"} trailing }'
        assert extract_json_object(raw) == (
            '{"reason": "uses } and { in text \\" quoted", "category": "safe"}'
        )

    @pytest.mark.parametrize("raw", ["", "no json here", '{"unterminated": true', "} only {"])
    def test_no_balanced_object(self, raw: str) -> None:
        assert extract_json_object(raw) is None


class TestParseReply:
    """Tests for parse_reply."""

    def test_valid_reply(self) -> None:
        reply = parse_reply('{"category": "support_needed", "reason": "sad", "extra": 1}')
        assert reply.category is ModerationCategory.SUPPORT_NEEDED
        assert reply.reason == "sad"

    @pytest.mark.parametrize(
        "raw",
        [
            '{"category": "spicy", "reason": "?"}',
            '{"category": "safe"}',
            '{"category": "safe", "reason": 5}',
            "nothing",
            '{"category": "safe", "reason": "x",}',
        ],
    )
    def test_invalid_reply_raises_value_error(self, raw: str) -> None:
        # pydantic's ValidationError is a ValueError
        with pytest.raises(ValueError):
            parse_reply(raw)


class TestBuildPrompt:
    """Tests for build_prompt."""

    def test_post_prompt(self) -> None:
        prompt = build_prompt("hello world")
        assert "[NEW POST TO ANALYZE]" in prompt
        assert "hello world" in prompt
        assert "[ORIGINAL POST FOR CONTEXT]" not in prompt

    def test_comment_prompt_embeds_context_first(self) -> None:
        prompt = build_prompt("do it too", context="my friend attempted suicide")
        assert prompt.index("my friend attempted suicide") < prompt.index("do it too")
        assert "[NEW COMMENT TO ANALYZE]" in prompt

    def test_rubric_lists_categories_by_severity(self) -> None:
        prompt = build_prompt("x")
        positions = [prompt.index(f'"{c.value}"') for c in ModerationCategory]
        assert positions == sorted(positions)


class TestModerationClassifier:
    """Tests for ModerationClassifier.classify."""

    @pytest.mark.asyncio
    async def test_first_person_intent_is_urgent_risk_with_or_without_context(
        self, ai_client_factory, verdict_reply
    ) -> None:
        client = ai_client_factory(
            verdict_reply("urgent_risk", "first-person intent"),
            verdict_reply("urgent_risk", "first-person intent"),
        )
        classifier = ModerationClassifier(client)

        alone = await classifier.classify("I will harm myself")
        in_context = await classifier.classify("I will harm myself", context="feeling great today!")

        assert alone.category is ModerationCategory.URGENT_RISK
        assert in_context.category is ModerationCategory.URGENT_RISK

    @pytest.mark.asyncio
    async def test_harmful_instruction_records_context(
        self, ai_client_factory, verdict_reply
    ) -> None:
        client = ai_client_factory(verdict_reply("harmful_instruction", "encourages harm"))
        classifier = ModerationClassifier(client)

        verdict = await classifier.classify(
            "you should do it too", context="my friend attempted suicide last night"
        )

        assert verdict.category is ModerationCategory.HARMFUL_INSTRUCTION
        assert isinstance(verdict.analysis, HarmfulInstructionAnalysis)
        assert verdict.analysis.context_considered is True
        prompt = client.generate.await_args.args[0]
        assert "my friend attempted suicide last night" in prompt

    @pytest.mark.asyncio
    async def test_one_call_per_classification(self, ai_client_factory, verdict_reply) -> None:
        client = ai_client_factory(verdict_reply("safe"))

        await ModerationClassifier(client).classify("hello")

        assert client.generate.await_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("failure", "error"),
        [
            (AIRequestError("network down"), "ai_request_failed"),
            (AINotConfiguredError("no key"), "ai_not_configured"),
            (AIResponseError("empty"), "ai_empty_response"),
            ("I'd rather not answer.", "unparsable_reply"),
            ('{"category": "maybe", "reason": "?"}', "invalid_reply"),
        ],
    )
    async def test_failures_fail_open(self, ai_client_factory, failure, error) -> None:
        classifier = ModerationClassifier(ai_client_factory(failure))

        verdict = await classifier.classify("anything")

        assert verdict.category is ModerationCategory.SAFE
        assert verdict.check_completed is False
        assert isinstance(verdict.analysis, SafeAnalysis)
        assert verdict.analysis.error == error
        assert "could not be completed" in verdict.reason

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"candidates": ["x"]},
            {"candidates": [{"content": []}]},
            {"candidates": [{"content": {"parts": [{"text": 1}]}}]},
        ],
    )
    async def test_malformed_service_payload_fails_open(self, payload) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
        client = GenerativeClient(Settings(gemini_api_key="test-key"), transport=transport)

        verdict = await ModerationClassifier(client).classify("anything")

        assert verdict.category is ModerationCategory.SAFE
        assert verdict.check_completed is False
        assert verdict.analysis.error == "ai_empty_response"


class TestVerdictStorage:
    """Stored analysis payloads."""

    def test_analysis_round_trip(self) -> None:
        verdict = ModerationVerdict.build(
            ModerationCategory.HARMFUL_INSTRUCTION, "encourages harm", context_considered=True
        )
        loaded = load_analysis(verdict.analysis_json())
        assert loaded == verdict.analysis

    @pytest.mark.parametrize("raw", [None, "", "not json", '{"category": "unknown"}'])
    def test_unreadable_analysis(self, raw) -> None:
        assert load_analysis(raw) is None

    def test_severity_order(self) -> None:
        severities = [c.severity for c in ModerationCategory]
        assert severities == sorted(severities, reverse=True)
