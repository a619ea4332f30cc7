"""Command router: dispatches one inbound message to its handler."""

import asyncio

from loguru import logger

from wabot.bus.events import MediaPayload
from wabot.channels.base import ChatHandle, MessageHandle
from wabot.media.convert import sticker_to_png
from wabot.media.fetch import FetchError, RemoteFetcher
from wabot.media.manager import MediaStore
from wabot.prompts import replies
from wabot.router.commands import (
    Command,
    Download,
    Greeting,
    Help,
    ListFiles,
    StickerToImage,
    TagAll,
    classify,
)

DEFAULT_EXT = "bin"


def media_extension(message_type: str, mimetype: str | None) -> str:
    """File extension for an auto-saved payload.

    Stickers are always WebP; otherwise the MIME subtype is used
    (``audio/ogg; codecs=opus`` gives ``ogg``).
    """
    if message_type == "sticker":
        return "webp"
    if not mimetype:
        return DEFAULT_EXT
    subtype = mimetype.split("/")[-1].split(";")[0].strip()
    return subtype or DEFAULT_EXT


def build_mentions(chat: ChatHandle) -> tuple[str, list[str]]:
    """Tag-all text and the matching mention ids, in participant order."""
    text = replies.TAGALL_HEADER
    mentions: list[str] = []
    for participant in chat.participants:
        mentions.append(participant.id)
        text += f"@{participant.user} "
    return text, mentions


class CommandRouter:
    """Classifies messages and runs the matching handler.

    ``handle()`` is the failure boundary for one message: nothing raised by
    a handler escapes it, so a bad message never affects the next one.
    """

    def __init__(self, store: MediaStore, fetcher: RemoteFetcher):
        self.store = store
        self.fetcher = fetcher

    async def handle(self, message: MessageHandle) -> None:
        try:
            await self._dispatch(message)
        except Exception:
            logger.exception("Message handler error")

    async def _dispatch(self, message: MessageHandle) -> None:
        body = (message.body or "").strip()
        logger.info(f"Message from {message.sender}: {body}")

        result = classify(body, message.type, message.is_view_once)

        if result.command is not None:
            try:
                await self._run(result.command, message)
            except Exception:
                logger.exception(f"Command {type(result.command).__name__} failed")

        if result.auto_save:
            await self._auto_save(message)

    async def _run(self, command: Command, message: MessageHandle) -> None:
        if isinstance(command, Download):
            await self._download(message, command.url)
        elif isinstance(command, StickerToImage):
            await self._sticker_to_image(message)
        elif isinstance(command, TagAll):
            await self._tag_all(message)
        elif isinstance(command, ListFiles):
            await self._list_files(message)
        elif isinstance(command, Greeting):
            await message.reply(replies.GREETING)
        elif isinstance(command, Help):
            await message.reply(replies.HELP)
        else:
            raise TypeError(f"Unhandled command: {command!r}")

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _download(self, message: MessageHandle, url: str | None) -> None:
        if not url:
            await message.reply(replies.DL_USAGE)
            return

        try:
            data = await self.fetcher.fetch(url)
            path = await self.store.save_generated("dl", "jpg", data)
            chat = await message.get_chat()
            await chat.send_media(self.store.load_media(path), caption=replies.DL_CAPTION)
        except (FetchError, OSError) as e:
            logger.error(f"Download error: {e}")
            await message.reply(replies.DL_FAILED)

    async def _sticker_to_image(self, message: MessageHandle) -> None:
        quoted = await message.get_quoted() if message.has_quoted else None
        target = quoted or message
        if target.type != "sticker":
            await message.reply(replies.STICKER_USAGE)
            return

        try:
            media = await target.download_media()
        except OSError as e:
            logger.error(f"Sticker download error: {e}")
            await message.reply(replies.STICKER_DOWNLOAD_FAILED)
            return

        if not media or not media.data:
            await message.reply(replies.STICKER_DOWNLOAD_FAILED)
            return

        png = await asyncio.to_thread(sticker_to_png, media.data)
        path = await self.store.save_generated("sticker", "png", png)
        chat = await message.get_chat()
        await chat.send_media(self.store.load_media(path), caption=replies.STICKER_CAPTION)

    async def _tag_all(self, message: MessageHandle) -> None:
        chat = await message.get_chat()
        if not chat.is_group:
            await message.reply(replies.TAGALL_GROUP_ONLY)
            return

        text, mentions = build_mentions(chat)
        await chat.send_text(text, mentions=mentions)

    async def _list_files(self, message: MessageHandle) -> None:
        files = await self.store.list_files()
        await message.reply(replies.LISTFILES_PREFIX + ", ".join(files))

    async def _auto_save(self, message: MessageHandle) -> None:
        try:
            media: MediaPayload | None = await message.download_media()
            if not media or not media.data:
                return

            ext = media_extension(message.type, media.mimetype)
            path = await self.store.save_generated(message.type or "media", ext, media.data)
            logger.info(f"Saved media to {path}")

            if message.is_view_once:
                await message.reply(replies.VIEW_ONCE_SAVED)
        except Exception as e:
            logger.error(f"Error saving media: {e}")
