"""命令行入口：生成 SRT 字幕或直接渲染歌词视频。

    lyricverse srt lyrics.txt --duration-ms 180000 -o lyrics.srt
    lyricverse render lyrics.srt --audio song.mp3 --image bg.jpg -o out.mp4
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Sequence

import structlog

from lyricverse.domain.errors import LyricVideoError
from lyricverse.infra.observability.logging_config import configure_logging
from lyricverse.pipelines.rendering.render_pipeline import RenderPipeline
from lyricverse.services.render.backend import FFmpegRenderBackend
from lyricverse.subtitle.codec import write_srt
from lyricverse.timeline.models import Timeline
from lyricverse.timeline.sync_engine import SyncEngine
from lyricverse.video.utils import get_media_duration_ms

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lyricverse", description="歌词字幕与歌词视频生成")
    sub = parser.add_subparsers(dest="command", required=True)

    srt = sub.add_parser("srt", help="按词数比例自动同步纯文本歌词并输出 SRT")
    srt.add_argument("lyrics", type=Path, help="纯文本歌词文件（每行一句）")
    srt.add_argument("--duration-ms", type=int, help="音频总时长（毫秒）")
    srt.add_argument("--audio", type=Path, help="用 ffprobe 读取时长的音频文件")
    srt.add_argument("-o", "--output", type=Path, default=Path("lyrics.srt"), help="输出 SRT 路径")

    render = sub.add_parser("render", help="渲染静态背景 + 烧录字幕的歌词视频")
    render.add_argument("lyrics", type=Path, help="SRT 字幕或纯文本歌词文件")
    render.add_argument("--audio", type=Path, required=True, help="音频文件")
    render.add_argument("--image", type=Path, required=True, help="背景图文件")
    render.add_argument("--duration-ms", type=int, help="纯文本歌词自动同步时使用的总时长")
    render.add_argument("-o", "--output", type=Path, default=Path("output.mp4"), help="输出视频路径")
    return parser


def load_timeline(path: Path) -> Timeline:
    """按扩展名加载：.srt 取字幕时间，其余按纯文本歌词处理。"""
    content = path.read_text(encoding="utf-8-sig")
    if path.suffix.lower() == ".srt":
        return Timeline.from_subtitle_document(content)
    return Timeline.from_plain_text(content)


def resolve_duration(duration_ms: int | None, audio: Path | None) -> int:
    if duration_ms:
        return duration_ms
    if audio is not None:
        probed = get_media_duration_ms(audio)
        if probed is not None:
            return probed
    raise SystemExit("无法确定音频时长：请提供 --duration-ms 或可被 ffprobe 读取的 --audio")


def cmd_srt(args: argparse.Namespace) -> int:
    timeline = load_timeline(args.lyrics)
    SyncEngine().auto_sync(timeline, resolve_duration(args.duration_ms, args.audio))
    write_srt(timeline.lines, args.output)
    print(f"字幕已生成：{args.output}（{len(timeline)} 行）")
    return 0


def cmd_render(args: argparse.Namespace) -> int:
    timeline = load_timeline(args.lyrics)
    if args.lyrics.suffix.lower() != ".srt" and not timeline.is_empty:
        SyncEngine().auto_sync(timeline, resolve_duration(args.duration_ms, args.audio))

    pipeline = RenderPipeline(FFmpegRenderBackend())
    result = asyncio.run(pipeline.render(args.audio, args.image, timeline))
    result.write_to(args.output)
    print(f"视频已生成：{args.output}（耗时 {result.elapsed_ms / 1000:.1f}s）")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    handler = cmd_srt if args.command == "srt" else cmd_render
    try:
        return handler(args)
    except LyricVideoError as exc:
        logger.error("cli.failed", command=args.command, error=str(exc))
        print(f"失败：{exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
