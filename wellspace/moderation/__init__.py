"""AI-assisted moderation of community submissions.

- Classifier: one text-generation call per submission, fail-open
- Support messages for authors in distress
- Crisis resources shown when a submission is blocked
"""

from .classifier import ModerationClassifier
from .models import ModerationCategory, ModerationVerdict
from .resources import CRISIS_RESOURCES, CrisisResource
from .support import FALLBACK_SUPPORT_MESSAGE, SUPPORT_OPENING, SupportMessageGenerator


__all__ = [
    "CRISIS_RESOURCES",
    "FALLBACK_SUPPORT_MESSAGE",
    "SUPPORT_OPENING",
    "CrisisResource",
    "ModerationCategory",
    "ModerationClassifier",
    "ModerationVerdict",
    "SupportMessageGenerator",
]
