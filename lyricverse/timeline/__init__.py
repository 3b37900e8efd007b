"""歌词时间线模块

提供时间线数据结构、手动/自动同步与播放定位。
"""

from lyricverse.timeline.models import LyricLine, Timeline
from lyricverse.timeline.sync_engine import SyncEngine, word_count
from lyricverse.timeline.tracker import PlaybackTracker, find_active_index

__all__ = [
    "LyricLine",
    "Timeline",
    "SyncEngine",
    "word_count",
    "PlaybackTracker",
    "find_active_index",
]
