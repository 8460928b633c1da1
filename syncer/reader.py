"""
Reads file text and chunk spans back from the project tree.

Files are read as bytes and decoded without newline translation, so the
character offsets the segmenter produced stay valid on re-read. Decoded
files are cached for one sync round; call reset() before the next one.
"""

from pathlib import Path
from typing import Dict, Optional

import aiofiles

from infra.logger import get_logger
from syncer.core.models.chunk import ChunkReference

log = get_logger("syncer.reader")

# latin-1 maps every byte, so decoding never fails
FALLBACK_ENCODING = "latin-1"


def decode(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode(FALLBACK_ENCODING)


class ChunkReader:

    def __init__(self, project_root: Path):
        self.project_root = Path(project_root).resolve()
        self._files: Dict[str, Optional[str]] = {}

    def reset(self) -> None:
        self._files.clear()

    async def read_file(self, relative_path: str) -> Optional[str]:
        if relative_path in self._files:
            return self._files[relative_path]

        path = self.project_root / relative_path
        try:
            async with aiofiles.open(path, "rb") as f:
                text: Optional[str] = decode(await f.read())
        except FileNotFoundError:
            text = None
        except OSError as e:
            log.warning("reader.read.failed", path=relative_path, error=str(e))
            text = None

        self._files[relative_path] = text
        return text

    async def read_chunk(self, reference: ChunkReference) -> Optional[str]:
        text = await self.read_file(reference.relative_path)
        if text is None or reference.char_end > len(text):
            return None
        return text[reference.char_start:reference.char_end]
