"""渲染后端：把音频、静态背景图和 SRT 字幕合成为视频。

RenderBackend 约定:
- initialize() 幂等，可提前启动（start_initialize），由第一次渲染惰性等待
- 同一实例同一时间只处理一个渲染请求
- 渲染失败直接抛出，不产生部分输出
"""

from __future__ import annotations

import asyncio
import tempfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

import structlog

from lyricverse.domain.models.render_style import SubtitleStyle
from lyricverse.infra.config.settings import get_settings
from lyricverse.video.utils import escape_filter_path, run_ffmpeg

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[float], None]


class RenderBackend(ABC):
    """渲染后端基类"""

    name: str = "base"

    def __init__(self) -> None:
        self._ready = False
        self._init_lock = asyncio.Lock()
        self._render_lock = asyncio.Lock()
        self._init_task: Optional[asyncio.Task[None]] = None

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def busy(self) -> bool:
        return self._render_lock.locked()

    def start_initialize(self) -> asyncio.Task[None]:
        """在后台提前启动初始化，返回可等待的任务。"""
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self.initialize())
            self._init_task.add_done_callback(self._on_eager_initialize_done)
        return self._init_task

    def _on_eager_initialize_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled() or task.exception() is None:
            return
        # 失败的预热任务不保留，下一次渲染会重新初始化
        logger.warning(
            "render_backend.eager_initialize_failed",
            backend=self.name,
            error=str(task.exception()),
        )
        if self._init_task is task:
            self._init_task = None

    async def initialize(self) -> None:
        """初始化后端（幂等）。"""
        if self._ready:
            return
        async with self._init_lock:
            if self._ready:
                return
            started = time.perf_counter()
            await self._initialize()
            self._ready = True
            logger.info(
                "render_backend.ready",
                backend=self.name,
                elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
            )

    async def render(
        self,
        audio: Path,
        still_image: Path,
        subtitle_document: str,
        style: SubtitleStyle,
        progress: Optional[ProgressCallback] = None,
    ) -> bytes:
        """渲染一个视频，返回输出文件内容。"""
        task = self._init_task
        if task is not None and not task.done():
            try:
                await task
            except Exception as exc:
                logger.warning("render_backend.retrying_initialize", backend=self.name, error=str(exc))
        await self.initialize()

        if self._render_lock.locked():
            logger.info("render_backend.waiting_for_previous_render", backend=self.name)
        async with self._render_lock:
            if progress:
                progress(0.0)
            output = await self._render(audio, still_image, subtitle_document, style)
            if progress:
                progress(1.0)
            return output

    @abstractmethod
    async def _initialize(self) -> None:
        """执行实际的初始化"""

    @abstractmethod
    async def _render(
        self,
        audio: Path,
        still_image: Path,
        subtitle_document: str,
        style: SubtitleStyle,
    ) -> bytes:
        """执行实际的渲染"""


class FFmpegRenderBackend(RenderBackend):
    """使用本地 ffmpeg 可执行文件渲染。

    背景图循环为整段视频，音频决定时长（-shortest），字幕通过 subtitles 滤镜烧录。
    """

    name = "ffmpeg"

    def __init__(self, ffmpeg_binary: str | None = None) -> None:
        super().__init__()
        settings = get_settings()
        self.ffmpeg_binary = ffmpeg_binary or settings.ffmpeg_binary
        self.video_codec = settings.render_video_codec
        self.audio_bitrate = settings.render_audio_bitrate

    async def _initialize(self) -> None:
        await asyncio.to_thread(
            run_ffmpeg, [self.ffmpeg_binary, "-hide_banner", "-version"], "probe ffmpeg"
        )

    async def _render(
        self,
        audio: Path,
        still_image: Path,
        subtitle_document: str,
        style: SubtitleStyle,
    ) -> bytes:
        with tempfile.TemporaryDirectory(prefix="lyricverse_render_") as tmp:
            tmp_dir = Path(tmp)
            subtitle_path = tmp_dir / "lyrics.srt"
            subtitle_path.write_text(subtitle_document, encoding="utf-8")
            output_path = tmp_dir / "output.mp4"

            cmd = self.build_command(audio, still_image, subtitle_path, output_path, style)
            await asyncio.to_thread(run_ffmpeg, cmd, "render lyric video")

            data = output_path.read_bytes()
            logger.info(
                "render_backend.rendered",
                backend=self.name,
                audio=audio.name,
                image=still_image.name,
                output_size=len(data),
            )
            return data

    def build_command(
        self,
        audio: Path,
        still_image: Path,
        subtitle_path: Path,
        output_path: Path,
        style: SubtitleStyle,
    ) -> list[str]:
        subtitle_filter = (
            f"subtitles={escape_filter_path(subtitle_path)}"
            f":force_style='{style.to_force_style()}'"
        )
        return [
            self.ffmpeg_binary,
            "-y",
            "-loop",
            "1",
            "-i",
            still_image.as_posix(),
            "-i",
            audio.as_posix(),
            "-c:v",
            self.video_codec,
            "-tune",
            "stillimage",
            "-c:a",
            "aac",
            "-b:a",
            self.audio_bitrate,
            "-pix_fmt",
            "yuv420p",
            "-shortest",
            "-vf",
            subtitle_filter,
            output_path.as_posix(),
        ]
