"""Request context for ownership enforcement."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class RequestContext:
    """Request context carrying the session identity.

    Documents, suggestions and chats are owned by the user that created them.
    An anonymous context (no user_id) may still run document handlers, but
    nothing it produces is persisted.
    """

    user_id: UUID | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None
