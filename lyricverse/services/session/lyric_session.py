"""歌词视频制作会话：串起歌词导入、同步、预览与渲染。

会话只保存在内存中，进程重启或用户重新开始时丢弃。
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import httpx
import structlog

from lyricverse.domain.errors import DegenerateTimeline
from lyricverse.domain.models.song import Song
from lyricverse.infra.config.settings import get_settings
from lyricverse.pipelines.rendering.render_pipeline import RenderPipeline, RenderResult
from lyricverse.services.background.generator import (
    download_background,
    generate_background,
    get_theme,
    scene_prompts,
)
from lyricverse.subtitle.codec import serialize_document
from lyricverse.timeline.models import Timeline
from lyricverse.timeline.sync_engine import SyncEngine
from lyricverse.timeline.tracker import PlaybackTracker

logger = structlog.get_logger(__name__)


@dataclass
class LyricSession:
    song: Song
    timeline: Timeline
    background_url: Optional[str] = None
    background_path: Optional[Path] = None
    finalized: bool = False
    tracker: PlaybackTracker = field(default_factory=PlaybackTracker, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.song.id,
            "title": self.song.title,
            "artist": self.song.artist,
            "duration_ms": self.song.duration_ms,
            "background_url": self.background_url,
            "finalized": self.finalized,
            "lines": self.timeline.to_dicts(),
        }


class SessionNotFound(KeyError):
    """会话不存在。"""


class LyricSessionService:
    def __init__(self, engine: SyncEngine | None = None) -> None:
        self._engine = engine or SyncEngine()
        self._sessions: dict[str, LyricSession] = {}
        self._lock = threading.Lock()

    def create(
        self,
        title: str,
        *,
        artist: str | None = None,
        lyrics_text: str | None = None,
        srt_text: str | None = None,
        duration_ms: int = 0,
        audio_path: Path | None = None,
    ) -> LyricSession:
        """新建会话。提供 srt_text 时时间取自字幕，否则按纯文本歌词导入。"""
        if srt_text:
            timeline = Timeline.from_subtitle_document(srt_text)
        else:
            timeline = Timeline.from_plain_text(lyrics_text or "")
        timeline.audio_duration_ms = duration_ms

        song = Song(title=title, artist=artist, audio_path=audio_path, duration_ms=duration_ms)
        session = LyricSession(song=song, timeline=timeline, finalized=bool(srt_text))
        with self._lock:
            self._sessions[song.id] = session

        logger.info(
            "session.created",
            session_id=song.id,
            source="srt" if srt_text else "text",
            line_count=len(timeline),
        )
        return session

    def get(self, session_id: str) -> LyricSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)
        logger.info("session.discarded", session_id=session_id)

    def mark_line(self, session_id: str, index: int, position_ms: int) -> LyricSession:
        session = self.get(session_id)
        self._engine.mark_line(session.timeline, index, position_ms)
        session.finalized = False
        return session

    def finalize(self, session_id: str, position_ms: int) -> LyricSession:
        session = self.get(session_id)
        self._engine.finalize(session.timeline, position_ms)
        session.finalized = True
        return session

    def auto_sync(self, session_id: str, duration_ms: int | None = None) -> LyricSession:
        session = self.get(session_id)
        total = duration_ms if duration_ms is not None else session.song.duration_ms
        if total <= 0:
            logger.warning("session.auto_sync_without_duration", session_id=session_id)
            raise DegenerateTimeline("cannot auto-sync without a known audio duration")
        self._engine.auto_sync(session.timeline, total)
        if duration_ms is not None:
            session.song.duration_ms = duration_ms
        session.finalized = True
        return session

    def active_line(self, session_id: str, position_ms: int) -> tuple[Optional[int], Optional[dict[str, Any]]]:
        session = self.get(session_id)
        index = session.tracker.active_index(session.timeline, position_ms)
        if index is None:
            return None, None
        return index, session.timeline[index].to_dict()

    def seek(
        self, session_id: str, position_ms: int, delta_ms: int
    ) -> tuple[int, Optional[int], Optional[dict[str, Any]]]:
        """快进/快退预览位置，返回新位置及该位置的当前歌词行。"""
        session = self.get(session_id)
        duration_ms = session.song.duration_ms or session.timeline.total_duration_ms
        position = SyncEngine.seek(position_ms, delta_ms, duration_ms)
        index, line = self.active_line(session_id, position)
        return position, index, line

    def subtitles(self, session_id: str) -> str:
        return serialize_document(self.get(session_id).timeline.lines)

    def scene_prompts(self, session_id: str) -> list[dict[str, Any]]:
        """每行歌词对应的背景场景 prompt。"""
        lines = self.get(session_id).timeline.lines
        return [
            {"index": idx, "text": line.text, "prompt": prompt}
            for idx, (line, prompt) in enumerate(zip(lines, scene_prompts(lines)))
        ]

    async def choose_theme(self, session_id: str, theme_id: str) -> str:
        """为会话生成主题背景图，返回图片 URL。

        Raises:
            KeyError: 主题不存在
        """
        session = self.get(session_id)
        theme = get_theme(theme_id)
        session.background_url = await generate_background(theme.prompt)
        # 新主题替换之前登记或下载的背景图
        session.background_path = None
        logger.info("session.background_chosen", session_id=session_id, theme_id=theme_id)
        return session.background_url

    def attach_media(
        self,
        session_id: str,
        *,
        audio_path: Path | None = None,
        background_path: Path | None = None,
    ) -> LyricSession:
        """登记本地音频与背景图文件，供渲染使用。"""
        session = self.get(session_id)
        if audio_path is not None:
            session.song.audio_path = audio_path
        if background_path is not None:
            session.background_path = background_path
        return session

    async def render(
        self,
        session_id: str,
        pipeline: RenderPipeline,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> RenderResult:
        """渲染会话。未登记本地背景图但已选主题时，先把主题图片下载到本地。

        Raises:
            MissingRenderInput: 缺少音频、背景图或歌词
            BackendFailure: 后端渲染失败
            httpx.HTTPError: 主题背景图下载失败
        """
        session = self.get(session_id)
        if (
            session.background_path is None
            and session.background_url
            and session.song.audio_path is not None
        ):
            target = Path(get_settings().render_output_dir) / "backgrounds" / f"{session_id}.jpg"
            session.background_path = await download_background(
                session.background_url, target, client=client
            )
        return await pipeline.render(
            session.song.audio_path,
            session.background_path,
            session.timeline,
        )
