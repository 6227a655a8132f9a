"""Common types and enums shared across all models."""

from enum import Enum
from typing import Literal


class ArtifactKind(str, Enum):
    """Kind of artifact a document renders as."""

    text = "text"
    code = "code"
    image = "image"
    sheet = "sheet"


class Visibility(str, Enum):
    """Chat visibility."""

    private = "private"
    public = "public"


VoteType = Literal["up", "down"]

Role = Literal["system", "user", "assistant", "tool"]
