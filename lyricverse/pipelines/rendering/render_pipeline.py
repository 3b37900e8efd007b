"""渲染流水线：校验输入、序列化字幕、向后端提交一次渲染。"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog

from lyricverse.domain.errors import BackendFailure, MissingRenderInput
from lyricverse.domain.models.render_style import DEFAULT_SUBTITLE_STYLE, SubtitleStyle
from lyricverse.services.render.backend import ProgressCallback, RenderBackend
from lyricverse.subtitle.codec import serialize_document
from lyricverse.timeline.models import Timeline

logger = structlog.get_logger(__name__)


@dataclass
class RenderResult:
    """一次渲染的输出。"""

    video: bytes
    subtitle_document: str
    line_count: int
    elapsed_ms: float

    def write_to(self, output_path: Path) -> Path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(self.video)
        return output_path


class RenderPipeline:
    """把最终时间线渲染成视频。

    每次调用只提交一次渲染；多个并发渲染之间不做协调，
    由后端自身保证同一实例串行处理。
    """

    def __init__(self, backend: RenderBackend, style: SubtitleStyle = DEFAULT_SUBTITLE_STYLE) -> None:
        self.backend = backend
        self.style = style

    @staticmethod
    def validate(
        audio: Optional[Path],
        still_image: Optional[Path],
        timeline: Optional[Timeline],
    ) -> tuple[Path, Path, Timeline]:
        """检查渲染前置条件，缺少任一输入都不会联系后端。

        Returns:
            校验通过的 (audio, still_image, timeline)

        Raises:
            MissingRenderInput: 缺少音频、背景图或歌词
        """
        if audio is None:
            raise MissingRenderInput("audio")
        if still_image is None:
            raise MissingRenderInput("background")
        if timeline is None or timeline.is_empty:
            raise MissingRenderInput("lyrics")
        return audio, still_image, timeline

    async def render(
        self,
        audio: Optional[Path],
        still_image: Optional[Path],
        timeline: Optional[Timeline],
        progress: Optional[ProgressCallback] = None,
    ) -> RenderResult:
        """渲染歌词视频。

        Args:
            audio: 音频文件路径
            still_image: 背景图路径
            timeline: 已完成同步的时间线
            progress: 可选的进度回调（0.0 - 1.0）

        Returns:
            渲染结果

        Raises:
            MissingRenderInput: 前置条件不满足
            BackendFailure: 后端渲染失败，原始异常保留在 __cause__
        """
        try:
            audio, still_image, timeline = self.validate(audio, still_image, timeline)
        except MissingRenderInput as exc:
            logger.warning("render_pipeline.missing_input", missing=exc.missing)
            raise

        lines = timeline.lines
        subtitle_document = serialize_document(lines)
        logger.info(
            "render_pipeline.submitted",
            backend=self.backend.name,
            line_count=len(lines),
            audio=audio.name,
            image=still_image.name,
        )

        started = time.perf_counter()
        try:
            video = await self.backend.render(
                audio, still_image, subtitle_document, self.style, progress=progress
            )
        except Exception as exc:
            logger.error(
                "render_pipeline.backend_failed",
                backend=self.backend.name,
                error=str(exc),
                exc_info=True,
            )
            raise BackendFailure(str(exc)) from exc

        elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
        logger.info(
            "render_pipeline.completed",
            backend=self.backend.name,
            output_size=len(video),
            elapsed_ms=elapsed_ms,
        )
        return RenderResult(
            video=video,
            subtitle_document=subtitle_document,
            line_count=len(lines),
            elapsed_ms=elapsed_ms,
        )
