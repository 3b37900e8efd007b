"""背景图生成器单元测试。"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from lyricverse.domain.models.song import ThemeOption
from lyricverse.services.background.generator import (
    THEMES,
    download_background,
    generate_background,
    get_theme,
    scene_prompts,
)
from lyricverse.timeline.models import LyricLine


class TestGenerateBackground:
    @pytest.mark.parametrize("theme", THEMES, ids=lambda theme: theme.id)
    async def test_each_theme_gets_its_own_image(self, theme: ThemeOption) -> None:
        url = await generate_background(theme.prompt)
        assert url.startswith("https://images.unsplash.com/")

    async def test_theme_urls_are_distinct(self) -> None:
        urls = {await generate_background(theme.prompt) for theme in THEMES}
        assert len(urls) == len(THEMES)

    async def test_unknown_prompt_falls_back(self) -> None:
        url = await generate_background("a bowl of soup")
        assert "photo-1579546929518-9e396f3cc809" in url


def test_get_theme() -> None:
    assert get_theme("neon").name == "Neon City"
    with pytest.raises(KeyError):
        get_theme("missing")


def test_scene_prompts() -> None:
    lines = [
        LyricLine("a", "All my love", 0, 0),
        LyricLine("b", "Under the STARS tonight", 0, 0),
        LyricLine("c", "Nothing special", 0, 0),
    ]
    prompts = scene_prompts(lines)

    assert "romantic" in prompts[0]
    assert "stars" in prompts[1]
    assert prompts[2] == "Abstract colorful waves with dynamic movement"


async def test_download_background(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "images.example.com"
        return httpx.Response(200, content=b"\xff\xd8jpeg")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        path = await download_background(
            "https://images.example.com/bg.jpg", tmp_path / "bg" / "bg.jpg", client=client
        )

    assert path.read_bytes() == b"\xff\xd8jpeg"


async def test_download_background_raises_on_error(tmp_path: Path) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await download_background("https://images.example.com/x.jpg", tmp_path / "x.jpg", client=client)

    assert not (tmp_path / "x.jpg").exists()
