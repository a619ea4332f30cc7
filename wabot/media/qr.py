"""Pairing QR code: ASCII rendering for the logs and a scannable qr.png."""

import asyncio
import io
from pathlib import Path

import qrcode
from loguru import logger

QR_FILENAME = "qr.png"


def render_ascii(challenge: str) -> str:
    """Render a pairing challenge as a terminal-friendly QR code."""
    qr = qrcode.QRCode(border=1)
    qr.add_data(challenge)
    qr.make(fit=True)
    out = io.StringIO()
    qr.print_ascii(out=out, invert=True)
    return out.getvalue()


def write_png(challenge: str, path: Path) -> None:
    """Encode a pairing challenge as a PNG image at *path*."""
    img = qrcode.make(challenge)
    img.save(str(path))


class PairingQR:
    """Keeps the latest pairing challenge available as ``qr.png``.

    The image is overwritten on every new challenge; only the most recent one
    can be retrieved.
    """

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir)
        self.latest: str | None = None

    @property
    def path(self) -> Path:
        return self._data_dir / QR_FILENAME

    async def on_challenge(self, challenge: str) -> None:
        logger.info("QR received, generating ascii and qr.png")
        logger.info("\n{}", render_ascii(challenge))
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(write_png, challenge, self.path)
        except OSError as e:
            logger.error(f"Failed to write {QR_FILENAME}: {e}")
            return
        self.latest = QR_FILENAME
        logger.info(f"Saved QR to {self.path}, download it at /{QR_FILENAME}")

    async def on_ready(self) -> None:
        logger.info("Client is ready!")
