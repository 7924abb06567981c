"""Session context passed explicitly to the services."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict


class SessionUser(BaseModel):
    """The authenticated user acting in the current request."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    email: str | None = None
    display_name: str | None = None

    @classmethod
    def from_claims(cls, payload: dict) -> "SessionUser":
        """Build the session user from verified token claims."""
        metadata = payload.get("user_metadata") or {}
        return cls(
            id=UUID(str(payload["sub"])),
            email=payload.get("email"),
            display_name=metadata.get("display_name") or metadata.get("full_name"),
        )
