"""
Pytest fixtures for highlight reel tests.

Everything runs against a throwaway SQLite file and a fake ffmpeg executable,
so no database server or real encoder is needed. Tests that need the real
ffmpeg binary are marked with @pytest.mark.requires_ffmpeg and skipped when it
is not installed.
"""

import os
import stat
import sys
import uuid
from datetime import datetime, timedelta, timezone
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

# Settings are read at import time by the API modules
os.environ.setdefault("DEV_MODE", "true")
os.environ.setdefault("SERVICE_TOKEN", "test-service-token")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from highlight_reel.models import Base, Event, Photo, PhotoStatus  # noqa: E402

HOST_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")  # matches the default dev user
OTHER_HOST_ID = uuid.UUID("00000000-0000-0000-0000-0000000000ff")


def _write_jpeg(path: Path, color: tuple[int, int, int] = (200, 80, 40), size: tuple[int, int] = (64, 48)) -> Path:
    """Write a small valid JPEG."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path, "JPEG")
    return path


def _jpeg_bytes(color: tuple[int, int, int] = (10, 120, 200)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", (32, 24), color).save(buf, "JPEG")
    return buf.getvalue()


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "gallery.db"


@pytest.fixture
def sync_engine(db_path: Path):
    """Plain sqlite engine used to create tables and seed rows."""
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sync_engine, db_path: Path) -> async_sessionmaker[AsyncSession]:
    """Async sessions on the seeded file.

    NullPool opens a fresh connection per session, so the factory works in
    whichever event loop the test (or TestClient) runs.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def make_event(sync_engine):
    """Factory inserting an event; returns its id as a string."""

    def _make(slug: str = "summer-party", host_id: uuid.UUID | None = HOST_ID) -> str:
        with Session(sync_engine) as session:
            event = Event(slug=slug, name=slug.replace("-", " ").title(), host_id=host_id)
            session.add(event)
            session.commit()
            return str(event.id)

    return _make


@pytest.fixture
def make_photo(sync_engine):
    """Factory inserting a photo for an event; returns its id as a string."""
    base_time = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def _make(
        event_id: str,
        *,
        status: PhotoStatus = PhotoStatus.APPROVED,
        storage_path: str | None = None,
        url: str | None = None,
        minutes: int = 0,
    ) -> str:
        with Session(sync_engine) as session:
            photo = Photo(
                event_id=uuid.UUID(event_id),
                status=status.value,
                storage_path=storage_path,
                url=url,
                created_at=base_time + timedelta(minutes=minutes),
            )
            session.add(photo)
            session.commit()
            return str(photo.id)

    return _make


# =============================================================================
# Filesystem
# =============================================================================


@pytest.fixture
def photo_root(tmp_path: Path) -> Path:
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    return tmp_path / "workspaces"


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads" / "reels"


# =============================================================================
# Fake encoder
# =============================================================================

_FAKE_FFMPEG = '''#!{python}
import json
import sys
import time

argv = sys.argv[1:]
with open({args_file!r}, "w") as f:
    json.dump(argv, f)
if "-i" in argv:
    with open(argv[argv.index("-i") + 1]) as src, open({manifest_copy!r}, "w") as dst:
        dst.write(src.read())

sys.stderr.write("ffmpeg version fake-6.0 Copyright (c) the FFmpeg developers\\n")
sys.stderr.write("Input #0, concat, from 'input.txt':\\n")
sys.stderr.flush()
for stamp in {stamps!r}:
    sys.stderr.write("frame=   25 fps= 25 q=28.0 size=     256kB time=" + stamp + " bitrate= 700.1kbits/s speed=1.0x\\r")
    sys.stderr.flush()
    time.sleep({step_delay!r})

time.sleep({sleep!r})

if {exit_code!r} != 0:
    sys.stderr.write("\\n{error_line}\\n")
    sys.exit({exit_code!r})

with open(argv[-1], "wb") as f:
    f.write(b"\\x00\\x00\\x00\\x18ftypmp42fake-video")
sys.stderr.write("\\nvideo:1kB audio:0kB subtitle:0kB\\n")
'''


@pytest.fixture
def make_fake_ffmpeg(tmp_path: Path):
    """Factory writing an executable that behaves like ffmpeg.

    It records its argv to ``<path>.args.json`` and the concat manifest to
    ``<path>.manifest.txt``, prints ``time=`` progress
    lines to stderr, then writes the output file or exits with ``exit_code``.
    """

    def _make(
        *,
        stamps: tuple[str, ...] = ("00:00:01.00", "00:00:03.00", "00:00:06.00"),
        exit_code: int = 0,
        sleep: float = 0.0,
        step_delay: float = 0.0,
        error_line: str = "Error while opening encoder for output stream #0:0",
        name: str = "ffmpeg",
    ) -> Path:
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir(exist_ok=True)
        script = bin_dir / name
        script.write_text(
            _FAKE_FFMPEG.format(
                python=sys.executable,
                args_file=str(script) + ".args.json",
                manifest_copy=str(script) + ".manifest.txt",
                stamps=list(stamps),
                exit_code=exit_code,
                sleep=sleep,
                step_delay=step_delay,
                error_line=error_line,
            )
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make


@pytest.fixture
def fake_ffmpeg(make_fake_ffmpeg) -> Path:
    return make_fake_ffmpeg()


# =============================================================================
# Images
# =============================================================================


@pytest.fixture
def write_jpeg():
    return _write_jpeg


@pytest.fixture
def jpeg_bytes():
    return _jpeg_bytes


@pytest.fixture
def host_id() -> str:
    return str(HOST_ID)


@pytest.fixture
def other_host_id() -> uuid.UUID:
    return OTHER_HOST_ID
