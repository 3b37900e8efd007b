"""structlog 初始化：控制台 + 滚动 JSON 文件。"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog

from lyricverse.infra.config.settings import get_settings

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

_PRE_CHAIN: list[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
]


def _formatter(renderer: Any) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_PRE_CHAIN,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )


def _rotating(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def configure_logging() -> None:
    """重建 root logger 的 handlers，可重复调用。

    - stdout：终端下彩色，管道/容器内输出 JSON
    - {log_dir}/app.log：按配置级别记录的 JSON
    - {log_dir}/error.log：WARNING 及以上
    """
    settings = get_settings()
    level = logging.getLevelName(settings.log_level)
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    interactive = sys.stdout.isatty()
    json_formatter = _formatter(structlog.processors.JSONRenderer(ensure_ascii=False))
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(
        _formatter(structlog.dev.ConsoleRenderer(colors=True)) if interactive else json_formatter
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    for handler in (
        console,
        _rotating(log_dir / "app.log", level, json_formatter),
        _rotating(log_dir / "error.log", logging.WARNING, json_formatter),
    ):
        root.addHandler(handler)

    structlog.configure(
        processors=[*_PRE_CHAIN, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    structlog.get_logger(__name__).info(
        "logging.configured",
        log_dir=str(log_dir.resolve()),
        level=settings.log_level,
        console="color" if interactive else "json",
    )
