"""歌曲与背景主题模型。"""

from __future__ import annotations

from pathlib import Path
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class Song(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str = Field(..., min_length=1, max_length=128)
    artist: Optional[str] = None
    audio_path: Optional[Path] = None
    duration_ms: int = Field(0, ge=0)


class ThemeOption(BaseModel):
    """背景主题：prompt 交给背景图生成器。"""

    id: str
    name: str
    description: str
    prompt: str
