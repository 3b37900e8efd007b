from __future__ import annotations

from fastapi import APIRouter

from lyricverse.domain.models.song import ThemeOption
from lyricverse.services.background.generator import THEMES


router = APIRouter(prefix="/api/v1/themes", tags=["themes"])


@router.get("", response_model=list[ThemeOption])
async def list_themes() -> list[ThemeOption]:
    """背景主题列表。"""
    return THEMES
