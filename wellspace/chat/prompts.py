"""Prompts for the chat companion and parsing of its summary replies."""

import re


GREETING = "Hello! I am your personal AI wellness assistant. How can I help you today?"

SUMMARY_SEPARATOR = "###---###"
MAX_RECOMMENDATIONS = 3

# Shown until the first summary produces personal recommendations
DEFAULT_RECOMMENDATIONS = [
    "**Get Started**: Write in your diary or chat with the AI to receive your first "
    "personalized recommendations!",
    "**Mindful Moment**: Take five deep breaths, focusing only on the sensation of breathing.",
    "**Quick Stretch**: Stand up and reach for the sky to energize your body.",
]

FIRST_CONVERSATION = "This is the user's first conversation."
FIRST_DIARY_ENTRY = "This is the user's first diary entry."

_NUMBERING = re.compile(r"^\d+\.\s*")


def build_system_prompt(
    display_name: str | None,
    diary_summary: str | None,
    chat_summary: str | None,
) -> str:
    """Scope, user name and what is known from the journal and past chats."""
    return (
        "You are a mental health and wellness assistant. Your role is to provide "
        "supportive and helpful conversations about personal problems, mental health, "
        "and stress. Do not answer questions about other topics, such as coding or "
        "general knowledge. If the user asks about something outside of your scope, "
        "politely decline and steer the conversation back to wellness.\n"
        f"The user's name is {display_name or 'not provided'}.\n"
        f'What their recent diary entries say: "{diary_summary or "No recent diary summary."}"\n'
        f'What earlier conversations covered: "{chat_summary or "No earlier conversations."}"'
    )


def build_chat_summary_prompt(
    old_summary: str | None, conversation: str, diary_summary: str | None
) -> str:
    return (
        "You have two tasks. First, update the chat summary based on the latest "
        "conversation. Second, using that new summary and the diary summary, generate "
        f"{MAX_RECOMMENDATIONS} wellness recommendations.\n"
        f'PREVIOUS CHAT SUMMARY: "{old_summary or FIRST_CONVERSATION}"\n'
        f'LATEST CONVERSATION: "{conversation}"\n'
        f'DIARY SUMMARY: "{diary_summary or "No recent diary summary."}"\n'
        f'Respond with the updated summary, followed by a "{SUMMARY_SEPARATOR}" separator, '
        "and then the personal recommendations as small achievable tasks, one per line, "
        "in the format **Title**: Description."
    )


def build_diary_summary_prompt(
    old_summary: str | None, entry_text: str, chat_summary: str | None
) -> str:
    return (
        "You are a helpful wellness assistant. You have two tasks to perform in sequence:\n"
        "1. Read the PREVIOUS DIARY SUMMARY and the NEW DIARY ENTRY. Integrate the key "
        "feelings and events from the new entry into an updated, concise summary.\n"
        f"2. Using the new summary and the CHAT SUMMARY, generate exactly {MAX_RECOMMENDATIONS} "
        "short, specific and actionable wellness recommendations in the format "
        "**Title**: Description, each on its own line.\n"
        f'PREVIOUS DIARY SUMMARY: "{old_summary or FIRST_DIARY_ENTRY}"\n'
        f'NEW DIARY ENTRY: "{entry_text}"\n'
        f'CHAT SUMMARY: "{chat_summary or "No recent chat summary."}"\n'
        "First give ONLY the updated summary text, then a line with the separator "
        f'"{SUMMARY_SEPARATOR}", then the recommendations.'
    )


def build_recommendations_prompt(diary_summary: str | None, chat_summary: str | None) -> str:
    return (
        f"Based on the user's latest diary and chat summaries, generate exactly "
        f"{MAX_RECOMMENDATIONS} short, actionable wellness recommendations.\n"
        f'Diary Summary: "{diary_summary or "No recent diary summary."}"\n'
        f'Chat Summary: "{chat_summary or "No recent chat summary."}"\n'
        "Each recommendation goes on its own line in the format **Title**: Description, "
        "with the title bolded and a single encouraging sentence as the description. "
        "Focus on mental wellness, emotional health, or personal growth."
    )


def parse_recommendations(text: str) -> list[str]:
    """Recommendation lines with list numbering stripped, at most three.

    Lines of five characters or fewer and a "Here are..." lead-in are dropped.
    """
    recommendations = []
    for line in text.strip().splitlines():
        line = _NUMBERING.sub("", line.strip()).strip()
        if len(line) > 5 and not line.lower().startswith("here are"):
            recommendations.append(line)
    return recommendations[:MAX_RECOMMENDATIONS]


def split_summary_reply(raw: str) -> tuple[str, list[str]] | None:
    """Split a "summary ###---### recommendations" reply.

    Returns None when the separator is missing or either side is empty.
    """
    summary, separator, rest = raw.partition(SUMMARY_SEPARATOR)
    summary = summary.strip()
    if not separator or not summary:
        return None
    recommendations = parse_recommendations(rest)
    if not recommendations:
        return None
    return summary, recommendations
