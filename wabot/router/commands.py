"""Closed set of chat commands and the single step that classifies a message.

Each variant carries only what its handler needs. Auto-save is not a
command: it is flagged separately because it applies to media messages
whether or not a command also matched.
"""

from dataclasses import dataclass

from wabot.bus.events import MEDIA_TYPES

DL_PREFIX = "!dl"
GREETINGS = frozenset({"bonjour", "salut"})


@dataclass(frozen=True)
class Download:
    """``!dl <url>``; url is None when the argument is missing."""

    url: str | None


@dataclass(frozen=True)
class StickerToImage:
    """``!sticker2img``"""


@dataclass(frozen=True)
class TagAll:
    """``!tagall``"""


@dataclass(frozen=True)
class ListFiles:
    """``!listfiles``"""


@dataclass(frozen=True)
class Greeting:
    """``bonjour`` / ``salut`` (any case)"""


@dataclass(frozen=True)
class Help:
    """``!help``"""


Command = Download | StickerToImage | TagAll | ListFiles | Greeting | Help

_EXACT: dict[str, Command] = {
    "!sticker2img": StickerToImage(),
    "!tagall": TagAll(),
    "!listfiles": ListFiles(),
    "!help": Help(),
}


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying one message."""

    command: Command | None
    auto_save: bool


def parse_command(body: str) -> Command | None:
    """Match a trimmed message body against the command forms."""
    text = body.strip()

    head, _, rest = text.partition(" ")
    if head == DL_PREFIX:
        args = rest.split()
        return Download(url=args[0] if args else None)

    if text in _EXACT:
        return _EXACT[text]

    if text.lower() in GREETINGS:
        return Greeting()

    return None


def wants_auto_save(message_type: str, is_view_once: bool) -> bool:
    """Media messages and view-once messages are saved automatically."""
    return is_view_once or message_type in MEDIA_TYPES


def classify(body: str | None, message_type: str, is_view_once: bool = False) -> Classification:
    return Classification(
        command=parse_command(body or ""),
        auto_save=wants_auto_save(message_type, is_view_once),
    )
