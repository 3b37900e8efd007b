from __future__ import annotations

from fastapi import FastAPI

from lyricverse.api.v1.routes import render, sessions, themes
from lyricverse.infra.config.settings import get_settings
from lyricverse.infra.observability.logging_config import configure_logging

# 配置日志（需要在应用启动前）
configure_logging()

app = FastAPI(title="LyricVerse 歌词视频 API")
app.include_router(sessions.router)
app.include_router(render.router)
app.include_router(themes.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


@app.on_event("startup")
async def warm_up_render_backend() -> None:
    """非开发环境下提前初始化渲染后端，首个渲染请求再等待其完成。"""

    if get_settings().environment != "dev":
        render.get_render_backend().start_initialize()
