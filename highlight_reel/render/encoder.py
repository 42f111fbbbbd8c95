"""FFmpeg invocation for highlight reels.

Spawns one ffmpeg process per job, reads its stderr while it runs, and turns
``time=HH:MM:SS`` markers into job progress between 50% and 95%.
"""

import asyncio
import codecs
import logging
from collections.abc import Callable
from pathlib import Path

from highlight_reel.exceptions import EncoderUnavailableError, EncodingProcessError, EncodingTimeoutError
from highlight_reel.render.plan import RenderPlan
from highlight_reel.render.progress import encoded_fraction, encoding_percent, parse_elapsed_seconds, split_lines

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]

_READ_CHUNK = 4096


class FFmpegEncoder:
    """Runs ffmpeg with the fixed web-playback profile (H.264, CRF 23, faststart)."""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        *,
        timeout_s: float | None = 1800.0,
        stderr_tail_chars: int = 500,
    ) -> None:
        self.ffmpeg_path = ffmpeg_path
        self.timeout_s = timeout_s
        self.stderr_tail_chars = stderr_tail_chars

    def build_args(self, manifest_path: str | Path, filter_chain: str, output_path: str | Path) -> list[str]:
        return [
            self.ffmpeg_path,
            "-f", "concat",
            "-safe", "0",
            "-i", str(manifest_path),
            "-vf", filter_chain,
            "-c:v", "libx264",
            "-preset", "medium",
            "-crf", "23",
            "-pix_fmt", "yuv420p",
            "-movflags", "+faststart",
            "-y",
            str(output_path),
        ]

    async def encode(
        self,
        plan: RenderPlan,
        manifest_path: str | Path,
        output_path: str | Path,
        on_progress: ProgressCallback | None = None,
    ) -> Path:
        """Encode the plan to ``output_path``.

        Raises:
            EncoderUnavailableError: ffmpeg could not be started
            EncodingProcessError: ffmpeg exited non-zero
            EncodingTimeoutError: ffmpeg ran past ``timeout_s`` and was killed
        """
        cmd = self.build_args(manifest_path, plan.filter_chain, output_path)
        logger.info(f"[ENCODER] Starting ffmpeg for {plan.slide_count} slide(s), {plan.width}x{plan.height}")
        logger.debug(f"[ENCODER] Command: {' '.join(cmd)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EncoderUnavailableError(f"Could not start {self.ffmpeg_path}: {e}") from e

        try:
            returncode, stderr_tail = await asyncio.wait_for(
                self._communicate(proc, plan, on_progress),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError:
            await self._kill(proc)
            logger.error(f"[ENCODER] ffmpeg killed after {self.timeout_s}s")
            raise EncodingTimeoutError(self.timeout_s) from None
        except asyncio.CancelledError:
            await self._kill(proc)
            logger.info("[ENCODER] ffmpeg killed, render cancelled")
            raise

        if returncode != 0:
            logger.error(f"[ENCODER] ffmpeg returncode {returncode}: {stderr_tail}")
            raise EncodingProcessError(returncode, stderr_tail)

        logger.info(f"[ENCODER] Finished {output_path}")
        return Path(output_path)

    async def _communicate(
        self,
        proc: asyncio.subprocess.Process,
        plan: RenderPlan,
        on_progress: ProgressCallback | None,
    ) -> tuple[int, str]:
        """Drain stderr until EOF, reporting progress, then wait for exit."""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        pending = ""
        tail = ""
        last_reported: tuple[int, int] | None = None

        while True:
            chunk = await proc.stderr.read(_READ_CHUNK)
            final = not chunk
            text = decoder.decode(chunk, final=final)
            tail = (tail + text)[-self.stderr_tail_chars * 2 :]

            lines, pending = split_lines(pending + text)
            if final and pending:
                lines.append(pending)
                pending = ""

            for line in lines:
                elapsed = parse_elapsed_seconds(line)
                if elapsed is None or on_progress is None:
                    continue
                percent = encoding_percent(elapsed, plan.slide_count, plan.slide_duration)
                done = encoded_fraction(elapsed, plan.slide_count, plan.slide_duration)
                if (percent, done) != last_reported:
                    last_reported = (percent, done)
                    on_progress(percent, f"Rendering... {done}%")

            if final:
                break

        returncode = await proc.wait()
        return returncode, tail.strip()[-self.stderr_tail_chars :]

    @staticmethod
    async def _kill(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        await proc.wait()
