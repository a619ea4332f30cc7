"""HTTP surface: liveness, the pairing QR code and stored media files."""

import asyncio
from pathlib import Path

from aiohttp import web
from loguru import logger

from wabot.config.schema import WebConfig
from wabot.media.manager import MediaStore
from wabot.media.qr import QR_FILENAME

LIVENESS_TEXT = "WhatsApp Bot (Advanced) is running"


class WebServer:
    """Small aiohttp server next to the bot.

    Routes::

        GET /              liveness text
        GET /qr.png        latest pairing QR code (404 until one is generated)
        GET /files/{name}  a stored media file (name reduced to its basename)
    """

    def __init__(self, config: WebConfig, store: MediaStore):
        self.config = config
        self.store = store
        self._runner: web.AppRunner | None = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/", self._handle_index)
        app.router.add_get(f"/{QR_FILENAME}", self._handle_qr)
        app.router.add_get("/files/{name}", self._handle_file)
        return app

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        self.store.ensure_dir()

        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()

        site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await site.start()
        logger.info(
            "HTTP server listening on http://{}:{}",
            self.config.host,
            self.config.port,
        )

        # Block so the gateway's gather() keeps this task alive.
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            pass

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        logger.info("HTTP server stopped")

    # ------------------------------------------------------------------
    # HTTP handlers
    # ------------------------------------------------------------------

    async def _handle_index(self, _request: web.Request) -> web.Response:
        return web.Response(text=LIVENESS_TEXT)

    async def _handle_qr(self, _request: web.Request) -> web.StreamResponse:
        path = self.store.path_for(QR_FILENAME)
        if path.is_file():
            return web.FileResponse(path)
        return web.Response(status=404, text="No QR generated yet.")

    async def _handle_file(self, request: web.Request) -> web.StreamResponse:
        name = Path(request.match_info["name"]).name
        if not self.store.exists(name):
            return web.Response(status=404, text="File not found.")
        return web.FileResponse(self.store.path_for(name))
