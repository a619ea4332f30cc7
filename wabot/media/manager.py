"""Media store for downloaded, converted and auto-saved files."""

import itertools
import mimetypes
import time
from pathlib import Path

from loguru import logger

from wabot.bus.events import MediaPayload

DEFAULT_MIME = "application/octet-stream"

# Process-wide sequence appended to generated names, so two files created
# in the same millisecond under the same prefix still get distinct names.
_sequence = itertools.count(1)


class MediaStore:
    """Flat content directory holding every stored media file.

    Directory layout::

        data_dir/
        ├── qr.png
        ├── dl_1738934400123_1.jpg
        ├── sticker_1738934400456_2.png
        └── image_1738934400789_3.jpeg

    Files are never deleted by the bot; pruning the directory is left to
    the operator.
    """

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def ensure_dir(self) -> None:
        """Create the content directory if it does not exist yet."""
        self._data_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def generate_name(prefix: str, ext: str) -> str:
        """Build a unique filename like ``dl_1738934400123_7.jpg``."""
        stamp = int(time.time() * 1000)
        return f"{prefix}_{stamp}_{next(_sequence)}.{ext}"

    def path_for(self, name: str) -> Path:
        """Resolve a stored filename, ignoring any directory components."""
        return self._data_dir / Path(name).name

    async def save(self, name: str, data: bytes) -> Path:
        """Write bytes under *name* in the content directory.

        Returns:
            Full path of the written file.
        """
        self.ensure_dir()
        path = self.path_for(name)
        path.write_bytes(data)
        logger.debug(f"Saved media: {path} ({len(data)} bytes)")
        return path

    async def save_generated(self, prefix: str, ext: str, data: bytes) -> Path:
        """Write bytes under a freshly generated name."""
        return await self.save(self.generate_name(prefix, ext), data)

    async def read(self, name: str) -> bytes:
        """Read a stored file. Raises FileNotFoundError if it is missing."""
        return self.path_for(name).read_bytes()

    def exists(self, name: str) -> bool:
        base = Path(name).name
        if base in ("", ".", ".."):
            return False
        return self.path_for(base).is_file()

    async def list_files(self) -> list[str]:
        """Names of every entry in the content directory (unsorted)."""
        if not self._data_dir.exists():
            return []
        return [p.name for p in self._data_dir.iterdir()]

    @staticmethod
    def load_media(path: Path) -> MediaPayload:
        """Read a file into a MediaPayload, guessing its MIME type from the name."""
        path = Path(path)
        mime = mimetypes.guess_type(path.name)[0] or DEFAULT_MIME
        return MediaPayload(mimetype=mime, data=path.read_bytes(), filename=path.name)
