"""Remote text-generation client."""

from .client import (
    AINotConfiguredError,
    AIRequestError,
    AIResponseError,
    AIServiceError,
    GenerativeClient,
)


__all__ = [
    "AINotConfiguredError",
    "AIRequestError",
    "AIResponseError",
    "AIServiceError",
    "GenerativeClient",
]
