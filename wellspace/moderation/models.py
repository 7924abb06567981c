"""Moderation verdict types.

A verdict's ``analysis`` is a tagged union keyed by ``category``; each
variant carries only the fields that matter for that category. The analysis
is stored as JSON on the post or comment it was computed for.
"""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ModerationCategory(str, Enum):
    """Moderation categories, most severe first."""

    URGENT_RISK = "urgent_risk"
    HARMFUL_INSTRUCTION = "harmful_instruction"
    SUPPORT_NEEDED = "support_needed"
    SAFE = "safe"

    @property
    def severity(self) -> int:
        """Severity rank; higher is more severe."""
        return _SEVERITY[self]


_SEVERITY: dict[ModerationCategory, int] = {
    ModerationCategory.URGENT_RISK: 3,
    ModerationCategory.HARMFUL_INSTRUCTION: 2,
    ModerationCategory.SUPPORT_NEEDED: 1,
    ModerationCategory.SAFE: 0,
}


class UrgentRiskAnalysis(BaseModel):
    """The author states a first-person, immediate intent to self-harm."""

    model_config = ConfigDict(frozen=True)

    category: Literal["urgent_risk"] = "urgent_risk"
    reason: str


class HarmfulInstructionAnalysis(BaseModel):
    """The text pushes someone else toward self-harm or danger."""

    model_config = ConfigDict(frozen=True)

    category: Literal["harmful_instruction"] = "harmful_instruction"
    reason: str
    context_considered: bool = False


class SupportNeededAnalysis(BaseModel):
    """Significant distress without an emergency."""

    model_config = ConfigDict(frozen=True)

    category: Literal["support_needed"] = "support_needed"
    reason: str


class SafeAnalysis(BaseModel):
    """Nothing to act on, or the check could not be completed (fail-open)."""

    model_config = ConfigDict(frozen=True)

    category: Literal["safe"] = "safe"
    reason: str
    check_completed: bool = True
    error: str | None = None


ModerationAnalysis = Annotated[
    UrgentRiskAnalysis | HarmfulInstructionAnalysis | SupportNeededAnalysis | SafeAnalysis,
    Field(discriminator="category"),
]

analysis_adapter: TypeAdapter[ModerationAnalysis] = TypeAdapter(ModerationAnalysis)


class ModerationVerdict(BaseModel):
    """Result of classifying one piece of submitted text."""

    model_config = ConfigDict(frozen=True)

    category: ModerationCategory
    reason: str
    analysis: ModerationAnalysis

    @classmethod
    def build(
        cls,
        category: ModerationCategory,
        reason: str,
        context_considered: bool = False,
    ) -> "ModerationVerdict":
        """Create a verdict with the analysis variant matching ``category``."""
        analysis: ModerationAnalysis
        if category is ModerationCategory.URGENT_RISK:
            analysis = UrgentRiskAnalysis(reason=reason)
        elif category is ModerationCategory.HARMFUL_INSTRUCTION:
            analysis = HarmfulInstructionAnalysis(
                reason=reason, context_considered=context_considered
            )
        elif category is ModerationCategory.SUPPORT_NEEDED:
            analysis = SupportNeededAnalysis(reason=reason)
        else:
            analysis = SafeAnalysis(reason=reason)
        return cls(category=category, reason=reason, analysis=analysis)

    @classmethod
    def fail_open(cls, error: str) -> "ModerationVerdict":
        """Verdict used when the check could not be completed."""
        reason = "Moderation check could not be completed; content allowed."
        return cls(
            category=ModerationCategory.SAFE,
            reason=reason,
            analysis=SafeAnalysis(reason=reason, check_completed=False, error=error),
        )

    @property
    def check_completed(self) -> bool:
        """False when this verdict comes from the fail-open path."""
        return getattr(self.analysis, "check_completed", True)

    def analysis_json(self) -> str:
        """Serialize the analysis for storage."""
        return analysis_adapter.dump_json(self.analysis).decode()


def load_analysis(raw: str | None) -> ModerationAnalysis | None:
    """Parse a stored analysis; unreadable payloads are returned as None."""
    if not raw:
        return None
    try:
        return analysis_adapter.validate_json(raw)
    except ValueError:
        return None
