"""Tests for the command router."""

import io

import pytest
from PIL import Image

from wabot.bus.events import MediaPayload, Participant
from wabot.channels.base import ChatHandle, MessageHandle
from wabot.channels.whatsapp import BridgeError
from wabot.media.fetch import FetchError
from wabot.media.manager import MediaStore
from wabot.prompts import replies
from wabot.router.router import CommandRouter, build_mentions, media_extension


class FakeChat(ChatHandle):
    """In-memory chat that records what the router sends."""

    def __init__(self, is_group=False, participants=None):
        self.id = "chat@g.us" if is_group else "user@c.us"
        self.is_group = is_group
        self._participants = [Participant(id=p) for p in (participants or [])]
        self.texts: list[tuple[str, list[str] | None]] = []
        self.media: list[tuple[MediaPayload, str | None]] = []

    @property
    def participants(self):
        return self._participants

    async def send_text(self, text, mentions=None):
        self.texts.append((text, mentions))

    async def send_media(self, media, caption=None):
        self.media.append((media, caption))


class FakeMessage(MessageHandle):
    """In-memory message with optional media and quoted message."""

    def __init__(
        self,
        body="",
        type="chat",
        is_view_once=False,
        media=None,
        quoted=None,
        chat=None,
    ):
        self.id = "msg-1"
        self.sender = "33600000000@c.us"
        self.chat_id = "33600000000@c.us"
        self.body = body
        self.type = type
        self.is_view_once = is_view_once
        self.has_quoted = quoted is not None
        self._media = media
        self._quoted = quoted
        self.chat = chat or FakeChat()
        self.replies: list[str] = []
        self.downloads = 0

    async def download_media(self):
        self.downloads += 1
        return self._media

    async def get_quoted(self):
        return self._quoted

    async def get_chat(self):
        return self.chat

    async def reply(self, text):
        self.replies.append(text)


class FakeFetcher:
    def __init__(self, data=b"\xff\xd8jpeg-bytes", error=None):
        self.data = data
        self.error = error
        self.urls: list[str] = []

    async def fetch(self, url):
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.data


def _webp_bytes() -> bytes:
    out = io.BytesIO()
    Image.new("RGBA", (4, 4), (255, 0, 0, 128)).save(out, format="WEBP", lossless=True)
    return out.getvalue()


@pytest.fixture
def store(tmp_path):
    return MediaStore(tmp_path / "data")


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def router(store, fetcher):
    return CommandRouter(store, fetcher)


def _stored(store: MediaStore) -> list[str]:
    if not store.data_dir.exists():
        return []
    return sorted(p.name for p in store.data_dir.iterdir())


class TestNoCommand:
    @pytest.mark.asyncio
    async def test_plain_text_is_silent(self, router, store, fetcher):
        msg = FakeMessage(body="just chatting")
        await router.handle(msg)

        assert msg.replies == []
        assert msg.chat.texts == []
        assert msg.chat.media == []
        assert msg.downloads == 0
        assert fetcher.urls == []
        assert _stored(store) == []


class TestDownload:
    @pytest.mark.asyncio
    async def test_missing_url_replies_usage(self, router, fetcher):
        msg = FakeMessage(body="!dl")
        await router.handle(msg)

        assert msg.replies == [replies.DL_USAGE]
        assert fetcher.urls == []

    @pytest.mark.asyncio
    async def test_blank_url_replies_usage(self, router, fetcher):
        msg = FakeMessage(body="!dl    ")
        await router.handle(msg)

        assert msg.replies == [replies.DL_USAGE]
        assert fetcher.urls == []

    @pytest.mark.asyncio
    async def test_downloads_stores_and_relays(self, router, store, fetcher):
        msg = FakeMessage(body="!dl https://example.com/cat.jpg")
        await router.handle(msg)

        assert fetcher.urls == ["https://example.com/cat.jpg"]
        files = _stored(store)
        assert len(files) == 1
        assert files[0].startswith("dl_")
        assert files[0].endswith(".jpg")

        assert len(msg.chat.media) == 1
        media, caption = msg.chat.media[0]
        assert caption == replies.DL_CAPTION
        assert media.filename == files[0]
        assert media.mimetype == "image/jpeg"
        assert media.data == fetcher.data
        assert msg.replies == []

    @pytest.mark.asyncio
    async def test_fetch_failure_replies_error(self, store):
        router = CommandRouter(store, FakeFetcher(error=FetchError("HTTP error", "404")))
        msg = FakeMessage(body="!dl https://example.com/missing.jpg")
        await router.handle(msg)

        assert msg.replies == [replies.DL_FAILED]
        assert msg.chat.media == []
        assert _stored(store) == []

    @pytest.mark.asyncio
    async def test_dl_prefix_needs_separator(self, router, fetcher):
        msg = FakeMessage(body="!dlx https://example.com")
        await router.handle(msg)

        assert msg.replies == []
        assert fetcher.urls == []


class TestStickerToImage:
    @pytest.mark.asyncio
    async def test_not_a_sticker_replies_instructions(self, router, store):
        msg = FakeMessage(body="!sticker2img")
        await router.handle(msg)

        assert msg.replies == [replies.STICKER_USAGE]
        assert _stored(store) == []

    @pytest.mark.asyncio
    async def test_quoted_non_sticker_replies_instructions(self, router, store):
        quoted = FakeMessage(type="chat")
        msg = FakeMessage(body="!sticker2img", quoted=quoted)
        await router.handle(msg)

        assert msg.replies == [replies.STICKER_USAGE]
        assert quoted.downloads == 0

    @pytest.mark.asyncio
    async def test_quoted_sticker_is_converted(self, router, store):
        sticker = MediaPayload(mimetype="image/webp", data=_webp_bytes())
        quoted = FakeMessage(type="sticker", media=sticker)
        msg = FakeMessage(body="!sticker2img", quoted=quoted)
        await router.handle(msg)

        files = _stored(store)
        assert len(files) == 1
        assert files[0].startswith("sticker_") and files[0].endswith(".png")

        media, caption = msg.chat.media[0]
        assert caption == replies.STICKER_CAPTION
        assert media.mimetype == "image/png"
        assert media.data.startswith(b"\x89PNG")

    @pytest.mark.asyncio
    async def test_undownloadable_sticker(self, router, store):
        quoted = FakeMessage(type="sticker", media=None)
        msg = FakeMessage(body="!sticker2img", quoted=quoted)
        await router.handle(msg)

        assert msg.replies == [replies.STICKER_DOWNLOAD_FAILED]
        assert _stored(store) == []

    @pytest.mark.asyncio
    async def test_sticker_download_error_replies_failure(self, router, store):
        class ExpiredSticker(FakeMessage):
            async def download_media(self):
                raise BridgeError("request failed", "media expired")

        quoted = ExpiredSticker(type="sticker")
        msg = FakeMessage(body="!sticker2img", quoted=quoted)
        await router.handle(msg)

        assert msg.replies == [replies.STICKER_DOWNLOAD_FAILED]
        assert msg.chat.media == []
        assert _stored(store) == []


class TestTagAll:
    @pytest.mark.asyncio
    async def test_group_mentions_everyone_in_order(self, router):
        ids = ["111@c.us", "222@c.us", "333@c.us"]
        chat = FakeChat(is_group=True, participants=ids)
        msg = FakeMessage(body="!tagall", chat=chat)
        await router.handle(msg)

        assert len(chat.texts) == 1
        text, mentions = chat.texts[0]
        assert text.startswith(replies.TAGALL_HEADER)
        tokens = [t for t in text.split() if t.startswith("@")]
        assert tokens == ["@111", "@222", "@333"]
        assert mentions == ids
        assert msg.replies == []

    @pytest.mark.asyncio
    async def test_outside_group_explains(self, router):
        msg = FakeMessage(body="!tagall")
        await router.handle(msg)

        assert msg.replies == [replies.TAGALL_GROUP_ONLY]
        assert msg.chat.texts == []

    def test_build_mentions_empty_group(self):
        text, mentions = build_mentions(FakeChat(is_group=True))
        assert text == replies.TAGALL_HEADER
        assert mentions == []


class TestListFiles:
    @pytest.mark.asyncio
    async def test_lists_directory(self, router, store):
        await store.save("a.jpg", b"a")
        await store.save("b.png", b"b")
        msg = FakeMessage(body="!listfiles")
        await router.handle(msg)

        assert len(msg.replies) == 1
        reply = msg.replies[0]
        assert reply.startswith(replies.LISTFILES_PREFIX)
        names = reply[len(replies.LISTFILES_PREFIX):].split(", ")
        assert sorted(names) == ["a.jpg", "b.png"]


class TestGreetingAndHelp:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["bonjour", "Salut", "  BONJOUR  "])
    async def test_greeting(self, router, body):
        msg = FakeMessage(body=body)
        await router.handle(msg)
        assert msg.replies == [replies.GREETING]

    @pytest.mark.asyncio
    async def test_help_lists_commands(self, router):
        msg = FakeMessage(body="!help")
        await router.handle(msg)

        assert msg.replies == [replies.HELP]
        for command in ("!dl", "!sticker2img", "!tagall", "!listfiles"):
            assert command in msg.replies[0]

    @pytest.mark.asyncio
    async def test_help_is_case_sensitive(self, router):
        msg = FakeMessage(body="!HELP")
        await router.handle(msg)
        assert msg.replies == []


class TestAutoSave:
    @pytest.mark.asyncio
    async def test_view_once_image_saved_and_confirmed(self, router, store):
        media = MediaPayload(mimetype="image/jpeg", data=b"img")
        msg = FakeMessage(type="image", is_view_once=True, media=media)
        await router.handle(msg)

        files = _stored(store)
        assert len(files) == 1
        assert files[0].startswith("image_") and files[0].endswith(".jpeg")
        assert msg.replies == [replies.VIEW_ONCE_SAVED]

    @pytest.mark.asyncio
    async def test_ordinary_image_saved_silently(self, router, store):
        media = MediaPayload(mimetype="image/jpeg", data=b"img")
        msg = FakeMessage(type="image", is_view_once=False, media=media)
        await router.handle(msg)

        assert len(_stored(store)) == 1
        assert msg.replies == []

    @pytest.mark.asyncio
    async def test_no_payload_does_nothing(self, router, store):
        msg = FakeMessage(type="video", media=None)
        await router.handle(msg)

        assert msg.downloads == 1
        assert _stored(store) == []
        assert msg.replies == []

    @pytest.mark.asyncio
    async def test_sticker_saved_as_webp(self, router, store):
        media = MediaPayload(mimetype="image/webp", data=b"webp")
        msg = FakeMessage(type="sticker", media=media)
        await router.handle(msg)

        files = _stored(store)
        assert len(files) == 1
        assert files[0].startswith("sticker_") and files[0].endswith(".webp")

    @pytest.mark.asyncio
    async def test_runs_alongside_a_command(self, router, store):
        media = MediaPayload(mimetype="image/png", data=b"png")
        msg = FakeMessage(body="!help", type="image", media=media)
        await router.handle(msg)

        assert msg.replies == [replies.HELP]
        assert len(_stored(store)) == 1

    @pytest.mark.asyncio
    async def test_text_message_never_downloads(self, router):
        msg = FakeMessage(body="hello", type="chat")
        await router.handle(msg)
        assert msg.downloads == 0


class TestFailureBoundary:
    @pytest.mark.asyncio
    async def test_handler_error_is_swallowed(self, router):
        class BrokenMessage(FakeMessage):
            async def get_chat(self):
                raise RuntimeError("chat lookup exploded")

        msg = BrokenMessage(body="!tagall")
        await router.handle(msg)

        assert msg.replies == []

    @pytest.mark.asyncio
    async def test_auto_save_still_runs_after_command_error(self, router, store):
        class BrokenMessage(FakeMessage):
            async def reply(self, text):
                raise RuntimeError("send failed")

        media = MediaPayload(mimetype="audio/ogg; codecs=opus", data=b"ogg")
        msg = BrokenMessage(body="bonjour", type="audio", media=media)
        await router.handle(msg)

        files = _stored(store)
        assert len(files) == 1
        assert files[0].endswith(".ogg")

    @pytest.mark.asyncio
    async def test_auto_save_error_is_swallowed(self, router, store):
        class BrokenDownload(FakeMessage):
            async def download_media(self):
                raise ConnectionError("bridge gone")

        msg = BrokenDownload(type="image")
        await router.handle(msg)

        assert _stored(store) == []


class TestMediaExtension:
    def test_sticker_is_always_webp(self):
        assert media_extension("sticker", "image/png") == "webp"

    def test_subtype_from_mimetype(self):
        assert media_extension("video", "video/mp4") == "mp4"

    def test_parameters_dropped(self):
        assert media_extension("audio", "audio/ogg; codecs=opus") == "ogg"

    def test_missing_mimetype_defaults_to_bin(self):
        assert media_extension("image", "") == "bin"
        assert media_extension("image", None) == "bin"
