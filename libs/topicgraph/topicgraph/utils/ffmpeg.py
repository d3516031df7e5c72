"""FFmpeg binary resolution.

Prefers the configured/system binary and falls back to the one bundled with
`imageio-ffmpeg`.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def resolve_ffmpeg_bin(ffmpeg_bin: str = "ffmpeg") -> str:
    ffmpeg_bin = (ffmpeg_bin or "ffmpeg").strip()

    if Path(ffmpeg_bin).exists():
        return ffmpeg_bin

    found = shutil.which(ffmpeg_bin)
    if found:
        return found

    try:
        import imageio_ffmpeg

        return str(imageio_ffmpeg.get_ffmpeg_exe())
    except Exception as exc:
        logger.warning("bundled ffmpeg unavailable (%s); using %r as-is", exc, ffmpeg_bin)
        return ffmpeg_bin


def resolve_bin(name: str) -> str:
    """Resolve any other helper binary (ffprobe, yt-dlp) on PATH."""
    name = (name or "").strip()
    if Path(name).exists():
        return name
    return shutil.which(name) or name
