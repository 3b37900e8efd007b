"""歌词视频领域异常。"""

from __future__ import annotations

from typing import Literal

RenderInput = Literal["audio", "background", "lyrics"]


class LyricVideoError(Exception):
    """所有歌词视频错误的基类。"""


class MalformedTimestamp(LyricVideoError, ValueError):
    """单个 SRT 时间戳无法解析。"""

    def __init__(self, token: str) -> None:
        super().__init__(f"malformed timestamp: {token!r}")
        self.token = token


class DegenerateTimeline(LyricVideoError):
    """自动同步时所有歌词行的总词数为 0。"""


class IndexOutOfRange(LyricVideoError, IndexError):
    """歌词行索引超出时间线范围。"""

    def __init__(self, index: int, length: int) -> None:
        super().__init__(f"line index {index} out of range for timeline of {length} lines")
        self.index = index
        self.length = length


class MissingRenderInput(LyricVideoError):
    """渲染前缺少音频、背景图或歌词。"""

    def __init__(self, missing: RenderInput) -> None:
        super().__init__(f"render input missing: {missing}")
        self.missing = missing


class BackendFailure(LyricVideoError):
    """渲染后端执行失败，原始异常通过 __cause__ 保留。"""
