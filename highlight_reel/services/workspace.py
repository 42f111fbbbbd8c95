"""Per-job scratch directories and photo materialization."""

import asyncio
import logging
import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

import httpx
from PIL import Image, UnidentifiedImageError

from highlight_reel.exceptions import AssetAcquisitionError, CleanupError
from highlight_reel.services.asset_selector import EligibleAsset

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "jpg"


@dataclass
class Workspace:
    job_id: str
    path: Path
    destroyed: bool = False

    @property
    def manifest_path(self) -> Path:
        return self.path / "input.txt"


def _is_remote(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


def source_extension(source: str) -> str:
    """Extension of the photo source without the dot, ``jpg`` if there is none."""
    path = urlparse(source).path if _is_remote(source) else source
    suffix = PurePosixPath(path).suffix.lstrip(".").lower()
    if not suffix or not suffix.isalnum() or len(suffix) > 5:
        return DEFAULT_EXTENSION
    return suffix


def sequence_filename(index: int, source: str) -> str:
    return f"photo_{index:03d}.{source_extension(source)}"


def _verify_image(path: Path) -> None:
    with Image.open(path) as img:
        img.verify()


class WorkspaceManager:
    def __init__(
        self,
        workspace_root: str | Path,
        photo_storage_root: str | Path,
        *,
        photo_url_prefix: str = "/uploads",
        download_timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.workspace_root = Path(workspace_root)
        self.photo_storage_root = Path(photo_storage_root).resolve()
        self.photo_url_prefix = photo_url_prefix.rstrip("/")
        self.download_timeout_s = download_timeout_s
        self._transport = transport

    def create(self, job_id: str) -> Workspace:
        """Allocate a fresh, empty directory named after the job."""
        self.workspace_root.mkdir(parents=True, exist_ok=True)
        path = self.workspace_root / job_id
        path.mkdir(parents=False, exist_ok=False)
        logger.info(f"[WORKSPACE] Created {path}")
        return Workspace(job_id=job_id, path=path)

    def destroy(self, workspace: Workspace) -> None:
        """Remove the workspace tree. Never raises; repeated calls are no-ops."""
        if workspace.destroyed:
            return
        workspace.destroyed = True
        try:
            shutil.rmtree(workspace.path)
            logger.info(f"[WORKSPACE] Removed {workspace.path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            error = CleanupError(f"Could not remove workspace {workspace.path}: {e}")
            logger.warning(f"[WORKSPACE] {error.message}")

    def resolve_local_source(self, source: str) -> Path:
        """Map a stored photo path onto the photo storage root.

        ``/uploads/events/a.jpg`` and ``events/a.jpg`` both resolve to
        ``<photo_storage_root>/events/a.jpg``. Paths leaving the root are refused.
        """
        if Path(source).is_absolute():
            absolute = Path(source).resolve()
            if absolute.is_relative_to(self.photo_storage_root):
                return absolute

        relative = source
        if self.photo_url_prefix and relative.startswith(self.photo_url_prefix + "/"):
            relative = relative[len(self.photo_url_prefix) + 1 :]
        relative = relative.lstrip("/")

        candidate = (self.photo_storage_root / relative).resolve()
        if not candidate.is_relative_to(self.photo_storage_root):
            raise ValueError(f"path escapes photo storage: {source}")
        return candidate

    async def materialize(
        self,
        workspace: Workspace,
        assets: Sequence[EligibleAsset],
        on_progress: Callable[[int, int], None] | None = None,
    ) -> list[Path]:
        """Copy or download every asset into the workspace.

        Files are named ``photo_000.<ext>``, ``photo_001.<ext>``... by position
        in ``assets``. Assets that cannot be loaded are skipped, not fatal.
        Returns the local paths of the loaded assets, in input order.
        """
        materialized: list[Path] = []
        total = len(assets)

        async with httpx.AsyncClient(
            timeout=self.download_timeout_s,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            for index, asset in enumerate(assets):
                target = workspace.path / sequence_filename(index, asset.source)
                try:
                    await self._acquire(client, asset, target)
                    materialized.append(target)
                except AssetAcquisitionError as e:
                    logger.warning(f"[WORKSPACE] Skipping photo: {e.message}")
                    target.unlink(missing_ok=True)

                if on_progress is not None:
                    on_progress(index, total)

        logger.info(f"[WORKSPACE] Loaded {len(materialized)}/{total} photo(s) into {workspace.path}")
        return materialized

    async def _acquire(self, client: httpx.AsyncClient, asset: EligibleAsset, target: Path) -> None:
        try:
            if _is_remote(asset.source):
                await self._download(client, asset.source, target)
            else:
                source_path = self.resolve_local_source(asset.source)
                if not source_path.is_file():
                    raise FileNotFoundError(f"no such file: {source_path}")
                await asyncio.to_thread(shutil.copyfile, source_path, target)
        except (OSError, ValueError, httpx.HTTPError) as e:
            raise AssetAcquisitionError(asset.id, str(e)) from e

        try:
            await asyncio.to_thread(_verify_image, target)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
            raise AssetAcquisitionError(asset.id, f"not a readable image ({e})") from e

    async def _download(self, client: httpx.AsyncClient, url: str, target: Path) -> None:
        async with client.stream("GET", url) as response:
            response.raise_for_status()
            with open(target, "wb") as f:
                async for chunk in response.aiter_bytes(chunk_size=65536):
                    f.write(chunk)
