"""字幕烧录样式模型。"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SubtitleStyle(BaseModel):
    """描述烧录字幕的固定样式（颜色为 ASS &HAABBGGRR 格式）。"""

    model_config = ConfigDict(frozen=True)

    font_name: str = "Arial"
    font_size: int = Field(24, ge=1)
    primary_color: str = "&H00FFFFFF"  # 白色
    outline_color: str = "&H00000000"  # 黑色边框
    back_color: str = "&H80000000"  # 半透明黑底
    border_style: int = 4
    outline_width: int = 1
    shadow: int = 0
    margin_v: int = Field(30, ge=0)  # 底部边距（像素）

    def to_force_style(self) -> str:
        """生成 FFmpeg subtitles 滤镜的 force_style 参数。"""

        return (
            f"FontName={self.font_name},"
            f"FontSize={self.font_size},"
            f"PrimaryColour={self.primary_color},"
            f"OutlineColour={self.outline_color},"
            f"BackColour={self.back_color},"
            f"BorderStyle={self.border_style},"
            f"Outline={self.outline_width},"
            f"Shadow={self.shadow},"
            f"MarginV={self.margin_v}"
        )


DEFAULT_SUBTITLE_STYLE = SubtitleStyle()
