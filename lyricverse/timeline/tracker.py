"""播放位置到当前歌词行的解析。"""

from __future__ import annotations

from typing import Optional, Sequence

from lyricverse.timeline.models import LyricLine, Timeline


def _contains(line: LyricLine, position_ms: float) -> bool:
    # 未同步或结束时间过期的行（end <= start）不参与匹配
    return line.end_ms > line.start_ms and line.start_ms <= position_ms <= line.end_ms


def find_active_index(lines: Sequence[LyricLine], position_ms: float) -> Optional[int]:
    """返回包含 position_ms 的第一行索引；共享边界处较小的索引优先。"""
    for idx, line in enumerate(lines):
        if _contains(line, position_ms):
            return idx
    return None


class PlaybackTracker:
    """在播放过程中高频解析当前歌词行。

    记住上一次命中的索引，播放位置前进时从该索引向后查找；
    位置回退（seek）或向后查找未命中时退回全量扫描。
    """

    def __init__(self) -> None:
        self._last_index: Optional[int] = None
        self._last_position: Optional[float] = None

    def reset(self) -> None:
        self._last_index = None
        self._last_position = None

    def active_index(self, timeline: Timeline, position_ms: float) -> Optional[int]:
        with timeline.lock:
            result = self._forward_search(timeline, position_ms)
            if result is None:
                result = find_active_index(timeline.lines, position_ms)

        self._last_index = result
        self._last_position = position_ms
        return result

    def active_line(self, timeline: Timeline, position_ms: float) -> Optional[LyricLine]:
        index = self.active_index(timeline, position_ms)
        return None if index is None else timeline[index]

    def _forward_search(self, timeline: Timeline, position_ms: float) -> Optional[int]:
        # 调用方持有 timeline.lock
        if self._last_index is None or self._last_position is None:
            return None
        if position_ms < self._last_position or self._last_index >= len(timeline):
            return None

        # 上一命中行的前一行仍可能在共享边界上包含该位置
        begin = max(0, self._last_index - 1)
        for idx in range(begin, len(timeline)):
            line = timeline[idx]
            if _contains(line, position_ms):
                return idx
            if line.end_ms > line.start_ms and line.start_ms > position_ms:
                break
        return None
