"""LyricVerse：歌词时间线同步与歌词视频渲染。"""

__version__ = "0.1.0"
