"""歌词会话流程集成测试：导入 → 同步 → 预览 → 渲染。"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx
import pytest

from lyricverse.domain.errors import DegenerateTimeline, MissingRenderInput
from lyricverse.infra.config.settings import get_settings
from lyricverse.pipelines.rendering.render_pipeline import RenderPipeline
from lyricverse.services.session.lyric_session import LyricSessionService, SessionNotFound
from lyricverse.subtitle.codec import parse_document


LYRICS = """I remember all the nights
Of the times we spent, just you and me

Dancing under city lights
"""


@pytest.fixture
def service() -> LyricSessionService:
    return LyricSessionService()


def test_manual_marking_workflow(service: LyricSessionService) -> None:
    session = service.create("Memories", artist="Demo", lyrics_text=LYRICS, duration_ms=12_000)
    assert len(session.timeline) == 3
    assert session.finalized is False

    for index, position in enumerate([500, 4000, 8200]):
        service.mark_line(session.song.id, index, position)
    assert session.finalized is False
    # finalize 前最后一行结束时间仍是旧值
    assert service.active_line(session.song.id, 9000) == (None, None)

    service.finalize(session.song.id, 11_500)
    assert session.finalized is True

    index, line = service.active_line(session.song.id, 9000)
    assert index == 2
    assert line is not None and line["text"] == "Dancing under city lights"

    srt = service.subtitles(session.song.id)
    assert [(l.start_ms, l.end_ms) for l in parse_document(srt)] == [
        (500, 4000),
        (4000, 8200),
        (8200, 11_500),
    ]


def test_auto_sync_uses_song_duration(service: LyricSessionService) -> None:
    session = service.create("Memories", lyrics_text=LYRICS, duration_ms=15_000)
    service.auto_sync(session.song.id)

    lines = session.timeline.lines
    assert lines[0].start_ms == 0
    assert lines[-1].end_ms == 15_000
    assert session.finalized is True


def test_auto_sync_override_updates_duration(service: LyricSessionService) -> None:
    session = service.create("Memories", lyrics_text=LYRICS)
    service.auto_sync(session.song.id, duration_ms=9000)

    assert session.song.duration_ms == 9000
    assert session.timeline.lines[-1].end_ms == 9000


def test_auto_sync_degenerate(service: LyricSessionService) -> None:
    session = service.create("Empty", lyrics_text="")
    with pytest.raises(DegenerateTimeline):
        service.auto_sync(session.song.id, duration_ms=1000)


def test_import_from_srt(service: LyricSessionService) -> None:
    srt = "1\n00:00:01,000 --> 00:00:02,000\nHi\n\n2\n00:00:02,000 --> 00:00:03,500\nThere\n"
    session = service.create("Imported", srt_text=srt)

    assert session.finalized is True
    assert [line.text for line in session.timeline] == ["Hi", "There"]


def test_unknown_session(service: LyricSessionService) -> None:
    with pytest.raises(SessionNotFound):
        service.get("missing")


def test_discard(service: LyricSessionService) -> None:
    session = service.create("Bye", lyrics_text="one line")
    service.discard(session.song.id)
    with pytest.raises(SessionNotFound):
        service.get(session.song.id)


async def test_choose_theme(service: LyricSessionService) -> None:
    session = service.create("Themed", lyrics_text=LYRICS)
    url = await service.choose_theme(session.song.id, "space")
    assert session.background_url == url
    with pytest.raises(KeyError):
        await service.choose_theme(session.song.id, "nope")


async def test_render_requires_background(service: LyricSessionService, fake_backend: Any) -> None:
    session = service.create("Render", lyrics_text=LYRICS, duration_ms=6000)
    service.auto_sync(session.song.id)
    service.attach_media(session.song.id, audio_path=Path("song.mp3"))

    with pytest.raises(MissingRenderInput) as exc_info:
        await service.render(session.song.id, RenderPipeline(fake_backend))

    assert exc_info.value.missing == "background"
    assert fake_backend.calls == []


async def test_render_submits_timeline(service: LyricSessionService, fake_backend: Any) -> None:
    session = service.create("Render", lyrics_text=LYRICS, duration_ms=6000)
    service.auto_sync(session.song.id)
    service.attach_media(
        session.song.id, audio_path=Path("song.mp3"), background_path=Path("bg.jpg")
    )

    result = await service.render(session.song.id, RenderPipeline(fake_backend))

    assert result.line_count == 3
    assert fake_backend.calls[0]["subtitle_document"] == service.subtitles(session.song.id)


def test_auto_sync_requires_known_duration(service: LyricSessionService) -> None:
    session = service.create("No duration", lyrics_text="a b\nc d e")

    with pytest.raises(DegenerateTimeline):
        service.auto_sync(session.song.id)

    assert [(line.start_ms, line.end_ms) for line in session.timeline] == [(0, 0), (0, 0)]
    assert session.finalized is False


async def test_render_downloads_chosen_theme(
    service: LyricSessionService,
    fake_backend: Any,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """选了主题但没有本地背景图时，渲染前先下载主题图片。"""
    monkeypatch.setattr(get_settings(), "render_output_dir", str(tmp_path))
    session = service.create("Themed render", lyrics_text=LYRICS, duration_ms=6000)
    service.auto_sync(session.song.id)
    await service.choose_theme(session.song.id, "neon")
    service.attach_media(session.song.id, audio_path=Path("song.mp3"))

    hosts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        return httpx.Response(200, content=b"\xff\xd8neon")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        result = await service.render(session.song.id, RenderPipeline(fake_backend), client=client)

    target = tmp_path / "backgrounds" / f"{session.song.id}.jpg"
    assert hosts == ["images.unsplash.com"]
    assert target.read_bytes() == b"\xff\xd8neon"
    assert session.background_path == target
    assert fake_backend.calls[0]["still_image"] == target
    assert result.line_count == 3


async def test_render_without_audio_skips_download(
    service: LyricSessionService, fake_backend: Any
) -> None:
    session = service.create("No audio", lyrics_text=LYRICS, duration_ms=6000)
    await service.choose_theme(session.song.id, "space")

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("background fetched before audio was attached")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(MissingRenderInput) as exc_info:
            await service.render(session.song.id, RenderPipeline(fake_backend), client=client)

    assert exc_info.value.missing == "audio"


def test_seek_clamps_and_resolves_line(service: LyricSessionService) -> None:
    session = service.create("Seek", lyrics_text="one two\nthree four five\nsix", duration_ms=6000)
    service.auto_sync(session.song.id)

    position, index, line = service.seek(session.song.id, 5500, 10_000)
    assert (position, index) == (6000, 2)
    assert line is not None and line["text"] == "six"

    position, index, _ = service.seek(session.song.id, 1000, -5000)
    assert (position, index) == (0, 0)


def test_scene_prompts_per_line(service: LyricSessionService) -> None:
    session = service.create("Scenes", lyrics_text="All my love\nUnder the stars\nNothing here")

    prompts = service.scene_prompts(session.song.id)

    assert [item["index"] for item in prompts] == [0, 1, 2]
    assert prompts[1]["text"] == "Under the stars"
    assert "stars" in prompts[1]["prompt"]
    assert prompts[2]["prompt"] == "Abstract colorful waves with dynamic movement"
