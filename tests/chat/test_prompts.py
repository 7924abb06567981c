"""Tests for chat prompt building and reply parsing."""

import pytest

from wellspace.chat.prompts import (
    build_system_prompt,
    parse_recommendations,
    split_summary_reply,
)


class TestParseRecommendations:
    """Tests for parse_recommendations."""

    def test_strips_numbering_and_lead_in(self) -> None:
        text = (
            "Here are 3 recommendations:\n"
            "1. **Rest**: Go to bed 30 minutes earlier.\n"
            "\n"
            "2.**Move**: Take a ten minute walk.\n"
        )
        assert parse_recommendations(text) == [
            "**Rest**: Go to bed 30 minutes earlier.",
            "**Move**: Take a ten minute walk.",
        ]

    def test_drops_short_lines_and_keeps_three(self) -> None:
        text = "ok\n**A**: one.\n**B**: two.\n**C**: three.\n**D**: four."
        assert parse_recommendations(text) == ["**A**: one.", "**B**: two.", "**C**: three."]


class TestSplitSummaryReply:
    """Tests for split_summary_reply."""

    def test_summary_and_recommendations(self) -> None:
        parsed = split_summary_reply("  A summary.  ###---### **Rest**: Sleep more.")
        assert parsed == ("A summary.", ["**Rest**: Sleep more."])

    @pytest.mark.parametrize(
        "raw",
        ["no separator here", "###---### **Rest**: Sleep more.", "A summary. ###---### ok"],
    )
    def test_incomplete_replies(self, raw: str) -> None:
        assert split_summary_reply(raw) is None


def test_system_prompt_without_profile() -> None:
    prompt = build_system_prompt(None, None, None)

    assert "The user's name is not provided." in prompt
    assert "No recent diary summary." in prompt
