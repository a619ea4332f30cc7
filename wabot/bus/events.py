"""Event types shared between the bridge and the command router."""

from dataclasses import dataclass

# Message types whose media is saved automatically.
MEDIA_TYPES = frozenset({"image", "video", "audio", "sticker"})


@dataclass
class MediaPayload:
    """Binary media attached to (or sent as) a chat message."""

    mimetype: str  # e.g. "image/jpeg"
    data: bytes
    filename: str = ""


@dataclass(frozen=True)
class Participant:
    """A member of a group chat."""

    id: str  # Serialized id, e.g. "33612345678@c.us"

    @property
    def user(self) -> str:
        """The user fragment of the id (the part before ``@``)."""
        return self.id.split("@", 1)[0]
