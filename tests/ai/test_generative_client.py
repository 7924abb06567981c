"""Tests for the text-generation client using httpx.MockTransport."""

import json

import httpx
import pytest

from wellspace.ai.client import (
    AINotConfiguredError,
    AIRequestError,
    AIResponseError,
    GenerativeClient,
    extract_candidate_text,
)
from wellspace.config.settings import Settings


def make_settings(**overrides) -> Settings:
    values = {
        "gemini_api_key": "test-key",
        "gemini_model": "gemini-2.5-flash",
        "gemini_base_url": "https://ai.example.test/v1beta/",
    }
    values.update(overrides)
    return Settings(**values)


def candidate(*texts: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": t} for t in texts]}}]}


class TestGenerate:
    """Tests for GenerativeClient.generate."""

    @pytest.mark.asyncio
    async def test_posts_prompt_and_joins_parts(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=candidate("Hello ", "there"))

        client = GenerativeClient(make_settings(), transport=httpx.MockTransport(handler))

        text = await client.generate("Say hello")

        assert text == "Hello there"
        request = seen[0]
        assert str(request.url) == (
            "https://ai.example.test/v1beta/models/gemini-2.5-flash:generateContent"
        )
        assert request.headers["x-goog-api-key"] == "test-key"
        assert "key=" not in str(request.url)
        body = json.loads(request.content)
        assert body["contents"] == [{"role": "user", "parts": [{"text": "Say hello"}]}]
        assert "systemInstruction" not in body

    @pytest.mark.asyncio
    async def test_history_and_system_instruction(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=candidate("ok"))

        client = GenerativeClient(make_settings(), transport=httpx.MockTransport(handler))
        history = [("model", "Hi! How are you?"), ("user", "tired"), ("model", "Rough day?")]

        await client.generate("yeah", history=history, system_instruction="Be kind.")

        body = json.loads(seen[0].content)
        assert body["systemInstruction"] == {"parts": [{"text": "Be kind."}]}
        # The opening greeting is dropped so the conversation starts with the user
        assert [(turn["role"], turn["parts"][0]["text"]) for turn in body["contents"]] == [
            ("user", "tired"),
            ("model", "Rough day?"),
            ("user", "yeah"),
        ]

    @pytest.mark.asyncio
    async def test_missing_key(self) -> None:
        client = GenerativeClient(make_settings(gemini_api_key=None))

        assert client.is_configured is False
        with pytest.raises(AINotConfiguredError):
            await client.generate("x")

    @pytest.mark.asyncio
    async def test_non_2xx(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(503, text="busy"))
        client = GenerativeClient(make_settings(), transport=transport)

        with pytest.raises(AIRequestError) as excinfo:
            await client.generate("x")

        assert excinfo.value.status_code == 503
        assert excinfo.value.retryable is True

    @pytest.mark.asyncio
    async def test_bad_request_is_not_retryable(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(400, text="bad"))
        client = GenerativeClient(make_settings(), transport=transport)

        with pytest.raises(AIRequestError) as excinfo:
            await client.generate("x")

        assert excinfo.value.retryable is False

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = GenerativeClient(make_settings(), transport=httpx.MockTransport(handler))

        with pytest.raises(AIRequestError):
            await client.generate("x")

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        client = GenerativeClient(make_settings(), transport=httpx.MockTransport(handler))

        with pytest.raises(AIRequestError, match="timed out"):
            await client.generate("x")

    @pytest.mark.asyncio
    async def test_empty_candidates(self) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"candidates": []})
        )
        client = GenerativeClient(make_settings(), transport=transport)

        with pytest.raises(AIResponseError):
            await client.generate("x")


class TestExtractCandidateText:
    """Tests for extract_candidate_text."""

    @pytest.mark.parametrize(
        "data",
        [
            None,
            [],
            {},
            {"candidates": None},
            {"candidates": [{}]},
            {"candidates": [{"content": {}}]},
            {"candidates": "text"},
            {"candidates": ["x"]},
            {"candidates": [None]},
            {"candidates": [{"content": []}]},
            {"candidates": [{"content": "text"}]},
            {"candidates": [{"content": {"parts": "text"}}]},
            {"candidates": [{"content": {"parts": [{"text": 42}]}}]},
            {"candidates": [{"content": {"parts": [{"text": None}]}}]},
        ],
    )
    def test_shapes_without_text(self, data) -> None:
        assert extract_candidate_text(data) == ""

    def test_ignores_non_text_parts(self) -> None:
        data = {"candidates": [{"content": {"parts": [{"inlineData": {}}, {"text": "ok"}]}}]}
        assert extract_candidate_text(data) == "ok"

    def test_skips_non_string_text(self) -> None:
        data = {"candidates": [{"content": {"parts": [{"text": ["a"]}, {"text": "b"}]}}]}
        assert extract_candidate_text(data) == "b"

    @pytest.mark.asyncio
    async def test_odd_payload_is_a_response_error(self) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"candidates": ["not a candidate"]})
        )
        client = GenerativeClient(make_settings(), transport=transport)

        with pytest.raises(AIResponseError):
            await client.generate("x")
