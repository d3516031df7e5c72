"""ffmpeg/ffprobe/yt-dlp backed media provider."""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
from pathlib import Path

import httpx

from topicgraph.error_codes import ErrorCode
from topicgraph.exceptions import ProviderError
from topicgraph.providers.media.base import MediaProvider
from topicgraph.utils.ffmpeg import resolve_bin, resolve_ffmpeg_bin
from topicgraph.utils.subprocess import run_tool_checked

logger = logging.getLogger(__name__)

_PTS_TIME_RE = re.compile(r"pts_time:(\d+(?:\.\d+)?)")


class FFmpegMediaProvider(MediaProvider):
    def __init__(
        self,
        ffmpeg_bin: str = "ffmpeg",
        ffprobe_bin: str = "ffprobe",
        ytdlp_bin: str = "yt-dlp",
        *,
        download_timeout_s: float = 600.0,
    ) -> None:
        self.ffmpeg_bin = resolve_ffmpeg_bin(ffmpeg_bin)
        self.ffprobe_bin = resolve_bin(ffprobe_bin)
        self.ytdlp_bin = resolve_bin(ytdlp_bin)
        self.download_timeout_s = float(download_timeout_s)

    async def _run(self, args: list[str], *, error_code: ErrorCode = ErrorCode.MEDIA_FAILED) -> str:
        out = await run_tool_checked(args, timeout_s=self.download_timeout_s, error_code=error_code)
        return out.text()

    async def download(self, source_url: str, source_type: str, dest: Path) -> Path:
        dest.parent.mkdir(parents=True, exist_ok=True)
        match source_type:
            case "file":
                src = Path(source_url.removeprefix("file://"))
                if not src.is_file():
                    raise ProviderError("file", f"source not found: {src}", error_code=ErrorCode.DOWNLOAD_FAILED)
                await asyncio.to_thread(shutil.copyfile, src, dest)
            case "direct":
                await self._http_download(source_url, dest)
            case "youtube" | "vimeo":
                await self._run(
                    [
                        self.ytdlp_bin,
                        "--no-playlist",
                        "--force-overwrites",
                        "-f",
                        "bv*+ba/b",
                        "--merge-output-format",
                        "mp4",
                        "-o",
                        str(dest),
                        source_url,
                    ],
                    error_code=ErrorCode.DOWNLOAD_FAILED,
                )
            case _:
                raise ProviderError("media", f"unsupported source_type: {source_type}", error_code=ErrorCode.DOWNLOAD_FAILED)
        logger.info("media downloaded (source_type=%s, bytes=%s)", source_type, dest.stat().st_size)
        return dest

    async def _http_download(self, url: str, dest: Path) -> None:
        tmp = dest.with_suffix(dest.suffix + ".part")
        try:
            async with httpx.AsyncClient(timeout=self.download_timeout_s, follow_redirects=True) as client:
                async with client.stream("GET", url) as response:
                    if response.status_code >= 400:
                        raise ProviderError(
                            "http",
                            f"HTTP {response.status_code} for {url}",
                            error_code=ErrorCode.DOWNLOAD_FAILED,
                        )
                    with tmp.open("wb") as fh:
                        async for chunk in response.aiter_bytes():
                            fh.write(chunk)
        except httpx.HTTPError as exc:
            tmp.unlink(missing_ok=True)
            raise ProviderError("http", str(exc), error_code=ErrorCode.DOWNLOAD_FAILED) from exc
        tmp.replace(dest)

    async def normalize(
        self,
        src: Path,
        dest: Path,
        *,
        max_height: int,
        video_codec: str,
        audio_codec: str,
    ) -> Path:
        dest.parent.mkdir(parents=True, exist_ok=True)
        await self._run(
            [
                self.ffmpeg_bin,
                "-y",
                "-i",
                str(src),
                "-vf",
                f"scale=-2:'min({int(max_height)},ih)'",
                "-c:v",
                video_codec,
                "-preset",
                "veryfast",
                "-c:a",
                audio_codec,
                "-movflags",
                "+faststart",
                str(dest),
            ]
        )
        return dest

    async def extract_audio(self, src: Path, dest: Path, *, sample_rate: int) -> Path:
        dest.parent.mkdir(parents=True, exist_ok=True)
        await self._run(
            [
                self.ffmpeg_bin,
                "-y",
                "-i",
                str(src),
                "-vn",
                "-ar",
                str(int(sample_rate)),
                "-ac",
                "1",
                "-f",
                "wav",
                str(dest),
            ]
        )
        return dest

    async def probe_duration(self, path: Path) -> float:
        out = await self._run(
            [
                self.ffprobe_bin,
                "-v",
                "error",
                "-show_entries",
                "format=duration",
                "-of",
                "default=noprint_wrappers=1:nokey=1",
                str(path),
            ]
        )
        text = out.strip().splitlines()
        try:
            return float(text[0]) if text else 0.0
        except ValueError as exc:
            raise ProviderError("ffprobe", f"unparseable duration: {text[:1]}", error_code=ErrorCode.MEDIA_FAILED) from exc

    async def detect_scenes(self, path: Path, *, threshold: float) -> list[float]:
        out = await self._run(
            [
                self.ffmpeg_bin,
                "-i",
                str(path),
                "-vf",
                f"select='gt(scene,{float(threshold)})',showinfo",
                "-f",
                "null",
                "-",
            ]
        )
        return sorted({round(float(m.group(1)), 3) for m in _PTS_TIME_RE.finditer(out)})

    async def cut_clip(self, src: Path, dest: Path, *, start: float, end: float) -> Path:
        if end <= start:
            raise ValueError("end must be greater than start")
        dest.parent.mkdir(parents=True, exist_ok=True)
        await self._run(
            [
                self.ffmpeg_bin,
                "-y",
                "-ss",
                f"{start:.3f}",
                "-i",
                str(src),
                "-t",
                f"{end - start:.3f}",
                "-c:v",
                "libx264",
                "-c:a",
                "aac",
                "-movflags",
                "+faststart",
                str(dest),
            ]
        )
        return dest

    async def thumbnail(self, src: Path, dest: Path, *, at_s: float, width: int, height: int) -> Path:
        dest.parent.mkdir(parents=True, exist_ok=True)
        await self._run(
            [
                self.ffmpeg_bin,
                "-y",
                "-ss",
                f"{max(0.0, at_s):.3f}",
                "-i",
                str(src),
                "-frames:v",
                "1",
                "-vf",
                f"scale={int(width)}:{int(height)}:force_original_aspect_ratio=decrease,"
                f"pad={int(width)}:{int(height)}:(ow-iw)/2:(oh-ih)/2",
                str(dest),
            ]
        )
        return dest
