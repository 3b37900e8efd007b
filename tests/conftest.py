#!/usr/bin/env python
"""Pytest fixtures for lyricverse."""
# ruff: noqa: E402

import os
import sys
import tempfile
from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# 日志写到临时目录，避免污染工作区
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="lyricverse_logs_"))

from lyricverse.api.main import app
from lyricverse.domain.models.render_style import SubtitleStyle
from lyricverse.services.render.backend import RenderBackend
from lyricverse.timeline.models import LyricLine, Timeline


class FakeRenderBackend(RenderBackend):
    """记录调用的内存渲染后端。"""

    name = "fake"

    def __init__(self, *, fail_with: Exception | None = None, output: bytes = b"FAKE-MP4") -> None:
        super().__init__()
        self.fail_with = fail_with
        self.output = output
        self.initialize_calls = 0
        self.calls: list[dict[str, Any]] = []

    async def _initialize(self) -> None:
        self.initialize_calls += 1

    async def _render(
        self,
        audio: Path,
        still_image: Path,
        subtitle_document: str,
        style: SubtitleStyle,
    ) -> bytes:
        self.calls.append(
            {
                "audio": audio,
                "still_image": still_image,
                "subtitle_document": subtitle_document,
                "style": style,
            }
        )
        if self.fail_with is not None:
            raise self.fail_with
        return self.output


@pytest.fixture
def fake_backend() -> FakeRenderBackend:
    return FakeRenderBackend()


@pytest.fixture
async def app_client() -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def timeline_factory() -> Callable[..., Timeline]:
    """按 (start_ms, end_ms) 区间创建时间线的工厂函数。"""

    def _create(
        intervals: list[tuple[int, int]],
        texts: list[str] | None = None,
    ) -> Timeline:
        texts = texts or [f"第{idx + 1}句" for idx in range(len(intervals))]
        return Timeline(
            [
                LyricLine(id=f"line-{idx}", text=text, start_ms=start, end_ms=end)
                for idx, ((start, end), text) in enumerate(zip(intervals, texts))
            ]
        )

    return _create


@pytest.fixture
def fake_backend_cls() -> type[FakeRenderBackend]:
    """用于构造自定义行为（失败、慢速）的假后端。"""
    return FakeRenderBackend
