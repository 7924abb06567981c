"""Crisis resources shown when a submission is blocked for urgent risk."""

from pydantic import BaseModel, ConfigDict


class CrisisResource(BaseModel):
    """One hotline or text line."""

    model_config = ConfigDict(frozen=True)

    name: str
    contact: str
    description: str


CRISIS_RESOURCES: tuple[CrisisResource, ...] = (
    CrisisResource(
        name="988 Suicide & Crisis Lifeline",
        contact="988",
        description="Call or text 988, available 24/7.",
    ),
    CrisisResource(
        name="Crisis Text Line",
        contact="741741",
        description="Text HOME to 741741 to reach a trained crisis counselor.",
    ),
)

CRISIS_MESSAGE = (
    "We noticed your message suggests you might be in crisis. Your safety "
    "matters, and there are people ready to help right now. Your content was "
    "not posted for your protection."
)
