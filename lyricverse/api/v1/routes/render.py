from __future__ import annotations

from functools import lru_cache
from pathlib import Path as FilePath
from typing import Annotated

import httpx
import structlog
from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import BaseModel

from lyricverse.api.v1.routes.sessions import get_session_or_404, service
from lyricverse.domain.errors import BackendFailure, MissingRenderInput
from lyricverse.infra.config.settings import get_settings
from lyricverse.pipelines.rendering.render_pipeline import RenderPipeline
from lyricverse.services.render.backend import FFmpegRenderBackend, RenderBackend


logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/v1/sessions/{session_id}/render", tags=["render"])


@lru_cache()
def get_render_backend() -> RenderBackend:
    """进程内共享的渲染后端，同一时间只渲染一个视频。"""
    return FFmpegRenderBackend()


class RenderRequest(BaseModel):
    audio_path: str | None = None
    background_path: str | None = None


class RenderResponse(BaseModel):
    session_id: str
    output_path: str
    line_count: int
    elapsed_ms: float


@router.post("", response_model=RenderResponse)
async def render_session(
    session_id: Annotated[str, Path(description="会话 ID")],
    body: RenderRequest,
    backend: Annotated[RenderBackend, Depends(get_render_backend)],
) -> RenderResponse:
    get_session_or_404(session_id)
    service.attach_media(
        session_id,
        audio_path=FilePath(body.audio_path) if body.audio_path else None,
        background_path=FilePath(body.background_path) if body.background_path else None,
    )

    try:
        result = await service.render(session_id, RenderPipeline(backend))
    except MissingRenderInput as exc:
        raise HTTPException(status_code=400, detail=f"missing {exc.missing}") from exc
    except BackendFailure as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except httpx.HTTPError as exc:
        raise HTTPException(status_code=502, detail=f"background download failed: {exc}") from exc

    output_path = FilePath(get_settings().render_output_dir) / f"{session_id}.mp4"
    result.write_to(output_path)
    logger.info("render.api.completed", session_id=session_id, output=output_path.as_posix())
    return RenderResponse(
        session_id=session_id,
        output_path=output_path.as_posix(),
        line_count=result.line_count,
        elapsed_ms=result.elapsed_ms,
    )
