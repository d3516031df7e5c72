"""Runner for the external media tools (ffmpeg, ffprobe, yt-dlp).

Each call blocks a worker thread via `asyncio.to_thread()` instead of the
event loop, so long transcodes never stall progress reporting or abort checks.
"""

from __future__ import annotations

import asyncio
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from topicgraph.error_codes import ErrorCode
from topicgraph.exceptions import ProviderError


@dataclass(frozen=True)
class ToolOutput:
    tool: str
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def text(self) -> str:
        # ffmpeg writes showinfo/progress lines to stderr, ffprobe answers on stdout.
        return (self.stdout + self.stderr).decode("utf-8", errors="replace")

    def stderr_tail(self, limit: int = 2000) -> str:
        return self.stderr.decode("utf-8", errors="replace").strip()[-limit:]


async def run_tool(args: Sequence[str | Path], *, timeout_s: float | None = None) -> ToolOutput:
    """Run one tool invocation and capture both streams.

    Raises FileNotFoundError for a missing binary and subprocess.TimeoutExpired
    when `timeout_s` elapses; a non-zero exit is returned, not raised.
    """
    argv = [str(a) for a in args]

    def _invoke() -> subprocess.CompletedProcess[bytes]:
        return subprocess.run(argv, capture_output=True, timeout=timeout_s)

    cp = await asyncio.to_thread(_invoke)
    return ToolOutput(
        tool=Path(argv[0]).name,
        returncode=int(cp.returncode),
        stdout=cp.stdout or b"",
        stderr=cp.stderr or b"",
    )


async def run_tool_checked(
    args: Sequence[str | Path],
    *,
    timeout_s: float | None = None,
    error_code: ErrorCode = ErrorCode.MEDIA_FAILED,
) -> ToolOutput:
    """`run_tool` where a missing binary, a timeout or a failed exit becomes a ProviderError."""
    tool = Path(str(args[0])).name
    try:
        out = await run_tool(args, timeout_s=timeout_s)
    except FileNotFoundError as exc:
        raise ProviderError(
            tool,
            f"binary not found: {args[0]} (install it or set MEDIA_*_BIN)",
            error_code=error_code,
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise ProviderError(tool, f"timed out after {timeout_s}s", error_code=error_code) from exc
    if not out.ok:
        raise ProviderError(tool, f"exit code {out.returncode}: {out.stderr_tail()}", error_code=error_code)
    return out
