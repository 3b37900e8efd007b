"""集中化配置管理。"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Literal["dev", "staging", "prod"] = "dev"

    # FFmpeg 可执行文件
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"

    # 渲染输出
    render_output_dir: str = "artifacts/renders"
    render_video_codec: str = "libx264"
    render_audio_bitrate: str = "192k"

    # 日志
    log_dir: str = "logs"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # 背景图
    background_download_timeout_s: float = 30.0
    default_theme_id: str = "abstract"


@lru_cache()
def get_settings() -> AppSettings:
    return AppSettings()
