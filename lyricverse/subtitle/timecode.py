"""SRT 时间戳编解码。"""

from __future__ import annotations

import re

from lyricverse.domain.errors import MalformedTimestamp

# HH:MM:SS,mmm 或 HH:MM:SS.mmm，小时位数不限
_TIMESTAMP_RE = re.compile(r"^(\d+):(\d+):(\d+)[,.](\d+)$")


def format_timestamp(ms: int) -> str:
    """将毫秒转换为 SRT 时间戳格式 (HH:MM:SS,mmm)。

    Args:
        ms: 非负毫秒数

    Returns:
        SRT 格式时间戳，小时可超过 99

    Raises:
        ValueError: ms 为负数

    Example:
        >>> format_timestamp(1500)
        '00:00:01,500'
        >>> format_timestamp(360_000_000)
        '100:00:00,000'
    """
    if ms < 0:
        raise ValueError(f"timestamp must be non-negative, got {ms}")
    seconds, milli = divmod(int(ms), 1000)
    minutes, sec = divmod(seconds, 60)
    hours, minute = divmod(minutes, 60)
    return f"{hours:02d}:{minute:02d}:{sec:02d},{milli:03d}"


def parse_timestamp(timestamp: str) -> int:
    """解析 SRT 时间戳为毫秒。

    小数分隔符接受 "," 或 "."。小数部分按十进制小数理解：
    "01.5" 为 1500 毫秒，超过 3 位的部分截断。

    Args:
        timestamp: SRT 格式时间戳 (HH:MM:SS,mmm)

    Returns:
        毫秒数

    Raises:
        MalformedTimestamp: 不是三段冒号分隔的数字加小数部分
    """
    match = _TIMESTAMP_RE.match(timestamp.strip())
    if match is None:
        raise MalformedTimestamp(timestamp)
    h, m, s, frac = match.groups()
    milliseconds = int(frac[:3].ljust(3, "0"))
    return int(h) * 3_600_000 + int(m) * 60_000 + int(s) * 1000 + milliseconds


def format_clock(ms: int | float) -> str:
    """将毫秒转换为播放器显示用的 MM:SS 格式。

    Example:
        >>> format_clock(83_450)
        '01:23'
    """
    total_seconds = int(max(0, ms) // 1000)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"
