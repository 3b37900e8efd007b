"""SRT 字幕编解码

支持:
- 解析 SRT 文档为歌词行（容忍单个损坏的字幕块）
- 解析纯文本歌词
- 将歌词行序列化为 SRT 文档
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Sequence

import structlog

from lyricverse.domain.errors import MalformedTimestamp
from lyricverse.subtitle.timecode import format_timestamp, parse_timestamp
from lyricverse.timeline.models import LyricLine, line_id_for

logger = structlog.get_logger(__name__)

TIMING_SEPARATOR = "-->"

# 一个或多个空行（可含空白字符）
_BLOCK_SPLIT_RE = re.compile(r"\n\s*\n")


def parse_document(content: str) -> list[LyricLine]:
    """解析 SRT 文档。

    损坏的字幕块（缺少时间行、时间戳无法解析、文本为空）会被跳过，
    不会导致整个文档失败。

    Args:
        content: SRT 文档文本

    Returns:
        歌词行列表，没有有效字幕块时返回空列表
    """
    normalized = content.replace("\r\n", "\n").replace("\r", "\n")
    lines: list[LyricLine] = []
    skipped = 0

    for block in _BLOCK_SPLIT_RE.split(normalized.strip()):
        parsed = _parse_block(block, len(lines))
        if parsed is None:
            skipped += 1
            continue
        lines.append(parsed)

    logger.debug("subtitle.parse_document", line_count=len(lines), skipped_blocks=skipped)
    return lines


def _parse_block(block: str, index: int) -> LyricLine | None:
    parts = [part.strip() for part in block.strip().split("\n")]
    if len(parts) < 2:
        return None

    timing_pos = next((i for i, part in enumerate(parts) if TIMING_SEPARATOR in part), None)
    if timing_pos is None:
        logger.debug("subtitle.block_without_timing", block=block[:80])
        return None

    start_str, _, end_str = parts[timing_pos].partition(TIMING_SEPARATOR)
    try:
        start_ms = parse_timestamp(start_str.strip())
        end_ms = parse_timestamp(end_str.strip())
    except MalformedTimestamp as exc:
        logger.debug("subtitle.malformed_timestamp", token=exc.token)
        return None

    text = " ".join(part for part in parts[timing_pos + 1 :] if part)
    if not text:
        return None

    return LyricLine(id=line_id_for(index), text=text, start_ms=start_ms, end_ms=end_ms)


def parse_plain_text(content: str) -> list[LyricLine]:
    """解析纯文本歌词：每个非空行一条歌词，时间均为 0。"""
    texts = [raw.strip() for raw in content.splitlines() if raw.strip()]
    return [LyricLine(id=line_id_for(idx), text=text) for idx, text in enumerate(texts)]


def serialize_document(lines: Sequence[LyricLine]) -> str:
    """将歌词行序列化为 SRT 文档。

    Example:
        >>> serialize_document([LyricLine("line-0", "Hello", 0, 2000)])
        '1\\n00:00:00,000 --> 00:00:02,000\\nHello\\n'
    """
    blocks = []
    for idx, line in enumerate(lines, start=1):
        start_time = format_timestamp(line.start_ms)
        end_time = format_timestamp(line.end_ms)
        blocks.append(f"{idx}\n{start_time} {TIMING_SEPARATOR} {end_time}\n{line.text}\n")
    return "\n".join(blocks)


def write_srt(lines: Sequence[LyricLine], output_path: Path) -> Path:
    """生成 SRT 字幕文件。

    Args:
        lines: 字幕行序列
        output_path: 输出文件路径

    Returns:
        输出文件路径
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(serialize_document(lines), encoding="utf-8")

    logger.info(
        "subtitle.srt_written",
        output=output_path.as_posix(),
        file_size=output_path.stat().st_size,
        line_count=len(lines),
    )
    return output_path


def read_srt(srt_path: Path) -> list[LyricLine]:
    """读取并解析 SRT 字幕文件。"""
    return parse_document(srt_path.read_text(encoding="utf-8-sig"))
