"""背景图生成

主题目录与背景图生成器。生成器目前是占位实现：根据 prompt 关键词
返回对应的图库图片 URL，接口与真实的图像生成服务保持一致。

使用方式：
    url = await generate_background(get_theme("neon").prompt)
    path = await download_background(url, Path("artifacts/bg.jpg"))
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Sequence

import httpx
import structlog

from lyricverse.domain.models.song import ThemeOption
from lyricverse.infra.config.settings import get_settings
from lyricverse.timeline.models import LyricLine

logger = structlog.get_logger(__name__)

_UNSPLASH = "https://images.unsplash.com/{photo}?q=80&w=1000&auto=format&fit=crop"

THEMES: list[ThemeOption] = [
    ThemeOption(
        id="abstract",
        name="Abstract Waves",
        description="Colorful flowing waves and abstract shapes",
        prompt="Abstract flowing colorful waves with purple and blue colors, music visualization",
    ),
    ThemeOption(
        id="neon",
        name="Neon City",
        description="Vibrant neon cityscape with glowing elements",
        prompt="Cyberpunk neon city at night with glowing signs and rain, synthwave aesthetic",
    ),
    ThemeOption(
        id="nature",
        name="Nature Elements",
        description="Serene natural landscapes and elements",
        prompt="Beautiful serene forest with sunlight through trees, flowing water and mist",
    ),
    ThemeOption(
        id="space",
        name="Cosmic Journey",
        description="Space and galaxy visuals with cosmic elements",
        prompt="Deep space nebula with stars and colorful cosmic clouds, galaxy exploration",
    ),
    ThemeOption(
        id="minimal",
        name="Minimalist",
        description="Clean, simple backgrounds with subtle animations",
        prompt="Minimalist geometric shapes with subtle gradient movement, clean design",
    ),
]

# (关键词, 图片) 按顺序匹配，第一个命中的生效
_KEYWORD_PHOTOS: list[tuple[tuple[str, ...], str]] = [
    (("abstract", "waves"), "photo-1550684376-efcbd6e3f031"),
    (("cyberpunk", "neon"), "photo-1563089145-599997674d42"),
    (("forest", "nature"), "photo-1441974231531-c6227db76b6e"),
    (("space", "galaxy"), "photo-1462332420958-a05d1e002413"),
    (("minimalist", "geometric"), "photo-1553949345-eb786bb3f7ba"),
]
_FALLBACK_PHOTO = "photo-1579546929518-9e396f3cc809"

_SCENE_PROMPTS: list[tuple[tuple[str, ...], str]] = [
    (("love", "heart"), "Abstract flowing waves with warm red and pink colors, romantic atmosphere"),
    (("sky", "stars"), "Space scene with glowing stars and cosmic clouds"),
    (("city", "street"), "Cyberpunk neon city at night with glowing signs"),
    (("nature", "tree"), "Serene forest scene with sunlight and mist"),
]
_DEFAULT_SCENE_PROMPT = "Abstract colorful waves with dynamic movement"


def get_theme(theme_id: str) -> ThemeOption:
    """按 ID 查找主题。

    Raises:
        KeyError: 主题不存在
    """
    for theme in THEMES:
        if theme.id == theme_id:
            return theme
    raise KeyError(theme_id)


async def generate_background(prompt: str, *, latency_s: float = 0.0) -> str:
    """根据 prompt 生成背景图，返回图片 URL。"""
    logger.info("background.generate", prompt=prompt)
    if latency_s:
        await asyncio.sleep(latency_s)

    lowered = prompt.lower()
    photo = next(
        (photo for keywords, photo in _KEYWORD_PHOTOS if any(k in lowered for k in keywords)),
        _FALLBACK_PHOTO,
    )
    url = _UNSPLASH.format(photo=photo)
    logger.info("background.generated", url=url)
    return url


def scene_prompts(lines: Sequence[LyricLine]) -> list[str]:
    """为每行歌词挑选场景 prompt。"""
    prompts = []
    for line in lines:
        words = line.text.lower()
        prompts.append(
            next(
                (prompt for keywords, prompt in _SCENE_PROMPTS if any(k in words for k in keywords)),
                _DEFAULT_SCENE_PROMPT,
            )
        )
    return prompts


async def download_background(
    url: str,
    target: Path,
    *,
    client: httpx.AsyncClient | None = None,
) -> Path:
    """下载背景图到本地文件。

    Raises:
        httpx.HTTPError: 请求失败或返回非 2xx
    """
    timeout = get_settings().background_download_timeout_s
    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
    try:
        response = await http.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error("background.download_failed", url=url, error=str(exc))
        raise
    finally:
        if owns_client:
            await http.aclose()

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(response.content)
    logger.info("background.downloaded", url=url, path=target.as_posix(), size=len(response.content))
    return target
