from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, HTTPException, Path, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field, model_validator

from lyricverse.domain.errors import DegenerateTimeline, IndexOutOfRange
from lyricverse.infra.config.settings import get_settings
from lyricverse.services.session.lyric_session import LyricSessionService, SessionNotFound


logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])
service = LyricSessionService()


class SessionCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=128)
    artist: str | None = None
    lyrics_text: str | None = None
    srt_text: str | None = None
    duration_ms: int = Field(0, ge=0, description="音频总时长（毫秒）")

    @model_validator(mode="after")
    def _require_lyrics(self) -> "SessionCreateRequest":
        if not (self.lyrics_text and self.lyrics_text.strip()) and not self.srt_text:
            raise ValueError("lyrics_text 或 srt_text 至少提供一个")
        return self


class LineResponse(BaseModel):
    id: str
    text: str
    start_ms: int
    end_ms: int


class SessionResponse(BaseModel):
    id: str
    title: str
    artist: str | None = None
    duration_ms: int
    background_url: str | None = None
    finalized: bool
    lines: list[LineResponse]


class PositionRequest(BaseModel):
    position_ms: int = Field(..., ge=0, description="当前播放位置（毫秒）")


class AutoSyncRequest(BaseModel):
    duration_ms: int | None = Field(None, ge=0, description="覆盖会话中的音频总时长")


class ActiveLineResponse(BaseModel):
    index: int | None = None
    line: LineResponse | None = None


class SeekRequest(BaseModel):
    position_ms: int = Field(..., ge=0, description="当前播放位置（毫秒）")
    delta_ms: int = Field(..., description="快进为正，快退为负")


class SeekResponse(ActiveLineResponse):
    position_ms: int


class ScenePromptResponse(BaseModel):
    index: int
    text: str
    prompt: str


class BackgroundRequest(BaseModel):
    theme_id: str = Field(default_factory=lambda: get_settings().default_theme_id)


class BackgroundResponse(BaseModel):
    background_url: str


def get_session_or_404(session_id: str) -> Any:
    try:
        return service.get(session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=404, detail="session not found") from exc


@router.post("", status_code=201, response_model=SessionResponse)
async def create_session(payload: SessionCreateRequest) -> dict[str, Any]:
    session = service.create(
        payload.title,
        artist=payload.artist,
        lyrics_text=payload.lyrics_text,
        srt_text=payload.srt_text,
        duration_ms=payload.duration_ms,
    )
    return session.to_dict()


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: Annotated[str, Path(description="会话 ID")]) -> dict[str, Any]:
    return get_session_or_404(session_id).to_dict()


@router.delete("/{session_id}", status_code=204)
async def discard_session(session_id: Annotated[str, Path()]) -> None:
    get_session_or_404(session_id)
    service.discard(session_id)


@router.post("/{session_id}/lines/{index}/mark", response_model=SessionResponse)
async def mark_line(
    session_id: Annotated[str, Path()],
    index: Annotated[int, Path(description="歌词行索引（从 0 开始）")],
    body: PositionRequest,
) -> dict[str, Any]:
    get_session_or_404(session_id)
    try:
        session = service.mark_line(session_id, index, body.position_ms)
    except IndexOutOfRange as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return session.to_dict()


@router.post("/{session_id}/finalize", response_model=SessionResponse)
async def finalize(session_id: Annotated[str, Path()], body: PositionRequest) -> dict[str, Any]:
    get_session_or_404(session_id)
    try:
        session = service.finalize(session_id, body.position_ms)
    except IndexOutOfRange as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return session.to_dict()


@router.post("/{session_id}/auto-sync", response_model=SessionResponse)
async def auto_sync(session_id: Annotated[str, Path()], body: AutoSyncRequest) -> dict[str, Any]:
    get_session_or_404(session_id)
    try:
        session = service.auto_sync(session_id, body.duration_ms)
    except DegenerateTimeline as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return session.to_dict()


@router.get("/{session_id}/active", response_model=ActiveLineResponse)
async def active_line(
    session_id: Annotated[str, Path()],
    position_ms: Annotated[int, Query(ge=0)],
) -> dict[str, Any]:
    get_session_or_404(session_id)
    index, line = service.active_line(session_id, position_ms)
    return {"index": index, "line": line}


@router.get("/{session_id}/subtitles.srt", response_class=PlainTextResponse)
async def download_subtitles(session_id: Annotated[str, Path()]) -> str:
    get_session_or_404(session_id)
    return service.subtitles(session_id)


@router.post("/{session_id}/background", response_model=BackgroundResponse)
async def choose_background(
    session_id: Annotated[str, Path()],
    body: BackgroundRequest,
) -> dict[str, Any]:
    get_session_or_404(session_id)
    try:
        url = await service.choose_theme(session_id, body.theme_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"theme not found: {body.theme_id}") from exc
    return {"background_url": url}


@router.post("/{session_id}/seek", response_model=SeekResponse)
async def seek(session_id: Annotated[str, Path()], body: SeekRequest) -> dict[str, Any]:
    get_session_or_404(session_id)
    position, index, line = service.seek(session_id, body.position_ms, body.delta_ms)
    return {"position_ms": position, "index": index, "line": line}


@router.get("/{session_id}/scene-prompts", response_model=list[ScenePromptResponse])
async def list_scene_prompts(session_id: Annotated[str, Path()]) -> list[dict[str, Any]]:
    get_session_or_404(session_id)
    return service.scene_prompts(session_id)
