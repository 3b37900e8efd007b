"""ffmpeg / ffprobe 子进程封装。"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional, Sequence

import structlog

from lyricverse.infra.config.settings import get_settings

logger = structlog.get_logger(__name__)

# 失败时只保留 stderr 末尾，ffmpeg 的横幅信息没有价值
STDERR_TAIL_CHARS = 800


class FFmpegError(RuntimeError):
    """ffmpeg 不可用或以非零状态退出。"""

    def __init__(self, message: str, *, returncode: Optional[int] = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


def get_media_duration_ms(media_path: str | Path) -> Optional[int]:
    """用 ffprobe 读取容器时长（毫秒），无法读取时返回 None。"""
    probe = [
        get_settings().ffprobe_binary,
        "-v",
        "error",
        "-show_entries",
        "format=duration",
        "-of",
        "csv=p=0",
        str(media_path),
    ]
    try:
        completed = subprocess.run(probe, capture_output=True, text=True, check=False)
    except OSError as exc:
        logger.warning("ffprobe.unavailable", path=str(media_path), error=str(exc))
        return None

    raw = completed.stdout.strip()
    if completed.returncode != 0 or not raw:
        logger.warning("ffprobe.no_duration", path=str(media_path), returncode=completed.returncode)
        return None
    try:
        return round(float(raw) * 1000)
    except ValueError:
        logger.warning("ffprobe.bad_duration", path=str(media_path), raw=raw)
        return None


def escape_filter_path(path: Path) -> str:
    """subtitles 滤镜参数里的冒号和单引号需要转义。"""
    posix = path.as_posix()
    for char in ("\\", ":", "'"):
        posix = posix.replace(char, "\\" + char)
    return posix


def run_ffmpeg(cmd: Sequence[str], description: str = "") -> str:
    """同步执行 ffmpeg，返回 stdout。

    Raises:
        FFmpegError: 可执行文件不存在或退出码非零
    """
    args = list(cmd)
    logger.debug("ffmpeg.exec", description=description, argv=args)
    try:
        completed = subprocess.run(args, capture_output=True, text=True, check=False)
    except FileNotFoundError as exc:
        logger.error("ffmpeg.not_found", binary=args[0])
        raise FFmpegError(f"ffmpeg binary not found: {args[0]}") from exc

    if completed.returncode != 0:
        tail = (completed.stderr or "")[-STDERR_TAIL_CHARS:]
        logger.error(
            "ffmpeg.failed",
            description=description,
            returncode=completed.returncode,
            stderr=tail,
        )
        raise FFmpegError(
            f"{description or 'ffmpeg'} exited with {completed.returncode}: {tail.strip()}",
            returncode=completed.returncode,
            stderr=tail,
        )
    return completed.stdout
