"""Durable, publicly served directory of finished highlight reels."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from highlight_reel.exceptions import ArtifactNotFoundError, InvalidArtifactNameError

logger = logging.getLogger(__name__)

REEL_EXTENSION = ".mp4"


@dataclass(frozen=True)
class ArtifactInfo:
    filename: str
    public_path: str
    size_bytes: int
    created_at: float


class ArtifactStore:
    """Reel files live flat in ``output_dir`` and are served under ``public_prefix``."""

    def __init__(self, output_dir: str | Path, public_prefix: str = "/uploads/reels") -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.public_prefix = public_prefix.rstrip("/")

    def build_filename(self, slug: str) -> str:
        """``highlight-<slug>-<epoch ms>-<random>.mp4``; unique even within one millisecond."""
        return f"highlight-{slug}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{REEL_EXTENSION}"

    def get_public_url(self, filename: str) -> str:
        return f"{self.public_prefix}/{filename}"

    async def finalize(self, encoded_path: str | Path, slug: str) -> str:
        """Move a finished encode from the job workspace into the store.

        The move runs in a worker thread; across filesystems it is a full copy.
        Returns the public path of the stored reel.
        """
        filename = self.build_filename(slug)
        target = self.output_dir / filename
        await asyncio.to_thread(shutil.move, str(encoded_path), str(target))
        logger.info(f"[ARTIFACT] Stored {target}")
        return self.get_public_url(filename)

    def list(self, slug: str) -> list[str]:
        """Public paths of all reels for the event slug. Order is not guaranteed."""
        return [info.public_path for info in self.list_info(slug)]

    def list_info(self, slug: str) -> list[ArtifactInfo]:
        """Reels for the event slug with size and modification time, newest first."""
        items: list[ArtifactInfo] = []
        try:
            entries = list(os.scandir(self.output_dir))
        except FileNotFoundError:
            return []

        for entry in entries:
            if not entry.is_file() or slug not in entry.name or not entry.name.endswith(REEL_EXTENSION):
                continue
            try:
                stat = entry.stat()
            except FileNotFoundError:
                continue  # deleted between scandir and stat
            items.append(
                ArtifactInfo(
                    filename=entry.name,
                    public_path=self.get_public_url(entry.name),
                    size_bytes=stat.st_size,
                    created_at=stat.st_mtime,
                )
            )
        items.sort(key=lambda item: item.created_at, reverse=True)
        return items

    def resolve(self, filename: str) -> Path:
        """Path of a stored reel by bare file name. Directory parts are refused."""
        name = os.path.basename(filename)
        if not name or name in (".", "..") or name != filename or "\\" in name:
            raise InvalidArtifactNameError(filename)
        return self.output_dir / name

    def delete(self, filename: str, slug: str | None = None) -> None:
        """Delete one reel. A missing file is an error, not a no-op.

        With ``slug`` given, only reels of that event can be deleted.
        """
        path = self.resolve(filename)
        if slug is not None and slug not in path.name:
            raise ArtifactNotFoundError(filename)
        try:
            path.unlink()
        except FileNotFoundError:
            raise ArtifactNotFoundError(filename) from None
        logger.info(f"[ARTIFACT] Deleted {path}")
