"""File access for the file registry table.

Versions of editable files also store the file content. SVGZ files are
kept uncompressed in the snapshot and gzipped again on restore.
"""

import gzip
import logging
from pathlib import Path
from typing import Iterable, Optional, Union

from ..exceptions import ErrorCode, StorageError

logger = logging.getLogger(__name__)

COMPRESSED_EXTENSION = "svgz"


class FileStore:
    """Read and write files relative to an upload root."""

    def __init__(self, root: Union[str, Path] = ".", editable_extensions: Optional[Iterable[str]] = None):
        self.root = Path(root)
        self.editable_extensions = {ext.lower() for ext in (editable_extensions or [])}

    def resolve(self, path: str) -> Path:
        return self.root / path

    @staticmethod
    def extension(path: str) -> str:
        return Path(path).suffix.lstrip(".").lower()

    def is_editable(self, path: str) -> bool:
        return self.extension(path) in self.editable_extensions

    def is_compressed(self, path: str) -> bool:
        return self.extension(path) == COMPRESSED_EXTENSION

    def read_bytes(self, path: str) -> bytes:
        try:
            return self.resolve(path).read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {path}", e, ErrorCode.FILE_ERROR) from e

    def write_bytes(self, path: str, data: bytes) -> None:
        target = self.resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to write {path}", e, ErrorCode.FILE_ERROR) from e
        logger.debug("Wrote file", extra={"path": path, "size": len(data)})

    def read_content(self, path: str) -> str:
        """Return the file content as text, gunzipping SVGZ files."""
        data = self.read_bytes(path)
        if self.is_compressed(path):
            try:
                data = gzip.decompress(data)
            except (OSError, EOFError) as e:
                raise StorageError(f"Failed to decompress {path}", e, ErrorCode.FILE_ERROR) from e
        return data.decode("utf-8", errors="surrogateescape")

    def write_content(self, path: str, content: str) -> None:
        """Write text content back, gzipping SVGZ files."""
        data = (content or "").encode("utf-8", errors="surrogateescape")
        if self.is_compressed(path):
            data = gzip.compress(data)
        self.write_bytes(path, data)
