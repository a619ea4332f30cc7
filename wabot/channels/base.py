"""Capability interfaces the command router talks to.

The router never binds to a concrete WhatsApp client. It only needs to read a
message, download its media, look at its chat and send replies; everything
else stays behind these three interfaces.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from wabot.bus.events import MediaPayload, Participant


class ChatHandle(ABC):
    """A conversation, direct or group."""

    id: str
    is_group: bool = False

    @property
    @abstractmethod
    def participants(self) -> list[Participant]:
        """Group members in the chat's iteration order (empty for direct chats)."""

    @abstractmethod
    async def send_text(self, text: str, mentions: list[str] | None = None) -> None:
        """Send a text message, optionally tagging the given participant ids."""

    @abstractmethod
    async def send_media(self, media: MediaPayload, caption: str | None = None) -> None:
        """Send a media message."""


class MessageHandle(ABC):
    """One inbound chat message."""

    id: str
    sender: str
    chat_id: str
    body: str
    type: str
    is_view_once: bool = False
    has_quoted: bool = False

    @abstractmethod
    async def download_media(self) -> MediaPayload | None:
        """Fetch the attached media, or None when there is none."""

    @abstractmethod
    async def get_quoted(self) -> "MessageHandle | None":
        """Return the message this one quotes, if any."""

    @abstractmethod
    async def get_chat(self) -> ChatHandle:
        """Return the chat the message was posted in."""

    @abstractmethod
    async def reply(self, text: str) -> None:
        """Reply to this message in its chat."""


MessageCallback = Callable[[MessageHandle], Awaitable[None]]
ChallengeCallback = Callable[[str], Awaitable[None]]
ReadyCallback = Callable[[], Awaitable[None]]


class MessagingSession(ABC):
    """A live connection to the messaging platform.

    Callbacks are registered before ``start()``; the session invokes them as
    the platform emits messages, pairing challenges and readiness.
    """

    def __init__(self) -> None:
        self.on_message: MessageCallback | None = None
        self.on_challenge: ChallengeCallback | None = None
        self.on_ready: ReadyCallback | None = None
        self._running = False

    @abstractmethod
    async def start(self) -> None:
        """Connect and dispatch events until ``stop()`` is called."""

    @abstractmethod
    async def stop(self) -> None:
        """Disconnect and release resources."""

    @property
    def is_running(self) -> bool:
        return self._running
