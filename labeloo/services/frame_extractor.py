"""Video frame extraction behind a swappable interface.

:class:`FfmpegFrameExtractor` shells out to ``ffmpeg``; tests substitute
any object implementing :class:`FrameExtractor`.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Protocol

from labeloo.errors import ExternalToolError

logger = logging.getLogger(__name__)

FRAME_PATTERN = "frame_%04d.png"


class FrameExtractor(Protocol):
    def extract_frames(
        self, video_path: Path, fps: float, output_dir: Path
    ) -> list[Path]:
        """Write one PNG per sampled frame into *output_dir*, in order."""
        ...


class FfmpegFrameExtractor:
    """Sample frames at a fixed rate with the ``ffmpeg`` command-line tool.

    *timeout* is ``None`` by default: extraction is bounded only by the
    process itself.
    """

    def __init__(self, binary: str = "ffmpeg", timeout: float | None = None) -> None:
        self.binary = binary
        self.timeout = timeout

    def extract_frames(
        self, video_path: Path, fps: float, output_dir: Path
    ) -> list[Path]:
        output_dir.mkdir(parents=True, exist_ok=True)
        command = [
            self.binary,
            "-hide_banner",
            "-loglevel",
            "error",
            "-i",
            str(video_path),
            "-vf",
            f"fps={fps}",
            str(output_dir / FRAME_PATTERN),
        ]
        logger.info("Extracting frames from %s at %s fps", video_path.name, fps)

        try:
            subprocess.run(
                command,
                check=True,
                capture_output=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ExternalToolError(
                f"Frame extraction tool not found: {self.binary}"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ExternalToolError(
                f"Frame extraction timed out after {self.timeout}s"
            ) from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b"").decode(errors="replace").strip()
            raise ExternalToolError(
                f"Frame extraction failed (exit {e.returncode}): {stderr}"
            ) from e

        frames = sorted(output_dir.glob("frame_*.png"))
        logger.info("Extracted %d frames from %s", len(frames), video_path.name)
        return frames
