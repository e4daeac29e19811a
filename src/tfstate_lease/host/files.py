"""Local filesystem reader implementing IFileReader."""

from __future__ import annotations

from pathlib import Path


class LocalFileReader:
    """Reads project files from disk."""

    def read_text_file(self, path: str) -> bytes:
        return Path(path).read_bytes()

    def exists(self, path: str) -> bool:
        return Path(path).exists()
