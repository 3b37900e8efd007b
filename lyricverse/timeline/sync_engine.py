"""歌词时间同步：手动打点与按词数比例自动分配。"""

from __future__ import annotations

import structlog

from lyricverse.domain.errors import DegenerateTimeline, IndexOutOfRange
from lyricverse.timeline.models import LyricLine, Timeline

logger = structlog.get_logger(__name__)


def word_count(text: str) -> int:
    """按空白分隔统计词数。"""
    return len(text.split())


class SyncEngine:
    """为时间线分配起止时间。

    当前播放位置与音频总时长由调用方传入，引擎本身无状态。
    """

    def mark_line(self, timeline: Timeline, index: int, position_ms: int) -> Timeline:
        """在当前播放位置标记第 index 行的开始。

        同时把上一行的结束时间接到该位置，保证相邻行首尾相连。
        本行的结束时间保持不变，直到下一次打点或 finalize。

        Raises:
            IndexOutOfRange: index 超出范围
            ValueError: position_ms 为负数
        """
        _check_position(position_ms)
        with timeline.lock:
            if not 0 <= index < len(timeline):
                raise IndexOutOfRange(index, len(timeline))
            timeline.replace(index, timeline[index].with_times(start_ms=position_ms))
            if index > 0:
                timeline.replace(index - 1, timeline[index - 1].with_times(end_ms=position_ms))

        logger.debug("sync.mark_line", index=index, position_ms=position_ms)
        return timeline

    def finalize(self, timeline: Timeline, position_ms: int) -> Timeline:
        """设置最后一行的结束时间。

        Raises:
            IndexOutOfRange: 时间线为空
        """
        _check_position(position_ms)
        with timeline.lock:
            last = len(timeline) - 1
            if last < 0:
                raise IndexOutOfRange(0, 0)
            timeline.replace(last, timeline[last].with_times(end_ms=position_ms))

        logger.info("sync.finalized", line_count=len(timeline), end_ms=position_ms)
        return timeline

    def auto_sync(self, timeline: Timeline, total_duration_ms: int) -> Timeline:
        """按每行词数比例把 [0, total_duration_ms] 切分给各行。

        游标以浮点累加，每个边界单独取整，因此误差不会累积，
        最后一行的结束时间恰好等于 total_duration_ms。

        Raises:
            DegenerateTimeline: 总词数为 0，时间线保持不变
            ValueError: total_duration_ms 为负数
        """
        _check_position(total_duration_ms)
        with timeline.lock:
            snapshot = timeline.lines
            counts = [word_count(line.text) for line in snapshot]
            total_words = sum(counts)
            if total_words == 0:
                logger.warning("sync.auto_sync_degenerate", line_count=len(snapshot))
                raise DegenerateTimeline(
                    f"cannot auto-sync {len(snapshot)} lines with zero words"
                )

            ms_per_word = total_duration_ms / total_words
            cursor = 0.0
            synced: list[LyricLine] = []
            for line, count in zip(snapshot, counts):
                start_ms = round(cursor)
                cursor += count * ms_per_word
                synced.append(line.with_times(start_ms=start_ms, end_ms=round(cursor)))

            # 浮点累加可能与总时长差 1ms 以内，末尾对齐到总时长
            synced[-1] = synced[-1].with_times(end_ms=total_duration_ms)

            for idx, line in enumerate(synced):
                timeline.replace(idx, line)
            timeline.audio_duration_ms = total_duration_ms

        logger.info(
            "sync.auto_synced",
            line_count=len(synced),
            total_words=total_words,
            total_duration_ms=total_duration_ms,
            ms_per_word=round(ms_per_word, 2),
        )
        return timeline

    @staticmethod
    def seek(position_ms: int, delta_ms: int, duration_ms: int) -> int:
        """快进/快退后的播放位置，限制在 [0, duration_ms] 内。"""
        return max(0, min(duration_ms, position_ms + delta_ms))


def _check_position(position_ms: int) -> None:
    if position_ms < 0:
        raise ValueError(f"position must be non-negative, got {position_ms}")
