"""时间线数据模型"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace as dc_replace
from typing import Any, Iterator, List

from lyricverse.domain.errors import IndexOutOfRange


def line_id_for(index: int) -> str:
    """按序生成歌词行 ID。"""
    return f"line-{index}"


@dataclass(frozen=True)
class LyricLine:
    """歌词行

    不可变值对象：修改时间通过 with_times 生成新对象，ID 保持不变。
    """

    id: str
    text: str
    start_ms: int = 0
    end_ms: int = 0

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    def with_times(self, start_ms: int | None = None, end_ms: int | None = None) -> "LyricLine":
        """返回替换了起止时间的新歌词行。"""
        return dc_replace(
            self,
            start_ms=self.start_ms if start_ms is None else start_ms,
            end_ms=self.end_ms if end_ms is None else end_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "start_ms": self.start_ms,
            "end_ms": self.end_ms,
        }


@dataclass
class Timeline:
    """完整时间线

    有序的歌词行序列，顺序即阅读顺序。整行替换在锁内完成，
    读线程拿到的要么是旧行要么是新行，不会看到半更新的起止时间。
    """

    _lines: List[LyricLine] = field(default_factory=list)
    audio_duration_ms: int = 0
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @classmethod
    def from_plain_text(cls, text: str) -> "Timeline":
        from lyricverse.subtitle.codec import parse_plain_text

        return cls(parse_plain_text(text))

    @classmethod
    def from_subtitle_document(cls, text: str) -> "Timeline":
        from lyricverse.subtitle.codec import parse_document

        return cls(parse_document(text))

    def __len__(self) -> int:
        return len(self._lines)

    def __getitem__(self, index: int) -> LyricLine:
        with self._lock:
            return self._lines[index]

    def __iter__(self) -> Iterator[LyricLine]:
        return iter(self.lines)

    @property
    def lines(self) -> list[LyricLine]:
        """当前歌词行的快照。"""
        with self._lock:
            return list(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def total_duration_ms(self) -> int:
        with self._lock:
            if not self._lines:
                return 0
            return max(line.end_ms for line in self._lines)

    @property
    def lock(self) -> threading.RLock:
        """批量修改时持有的锁。"""
        return self._lock

    def replace(self, index: int, line: LyricLine) -> None:
        """原地替换第 index 行。

        Raises:
            IndexOutOfRange: index 不在 [0, len) 内
        """
        with self._lock:
            if not 0 <= index < len(self._lines):
                raise IndexOutOfRange(index, len(self._lines))
            self._lines[index] = line

    def to_dicts(self) -> list[dict[str, Any]]:
        return [line.to_dict() for line in self.lines]
