"""
栅格化 - 可视树 → 位图（Pillow）

职责：
1. 按固定倍率（默认 2.0 × 96px/inch）绘制整棵可视树
2. 字体按配置的字体目录查找，找不到时使用 Pillow 内置字体
3. 空占位绘制为点状填写线，占位图形绘制为带叉框

依赖：
- Pillow: 绘制与图片解码

测试要点：
- test_capture_a4_size: A4 位图尺寸
- test_capture_multipage_height: 多页高度
- test_capture_empty_tree_raises: 空目标
- test_capture_does_not_mutate_tree: 不修改输入
"""

from __future__ import annotations

import io
import logging
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError

from ..config import get_config
from ..interfaces import CaptureError, IRasterizer
from ..models import NodeStyle, VisualNode, VisualTree

logger = logging.getLogger(__name__)

CSS_DPI = 96
MM_PER_INCH = 25.4
PT_TO_MM = 25.4 / 72
PAD_MM = 1.2


def _hex_to_rgb(color: str) -> tuple[int, int, int]:
    color = color.lstrip("#")
    return int(color[0:2], 16), int(color[2:4], 16), int(color[4:6], 16)


def _blend(color: str, opacity: float) -> tuple[int, int, int]:
    """与白底混合（近似透明度）"""
    r, g, b = _hex_to_rgb(color)
    return tuple(round(255 - (255 - c) * opacity) for c in (r, g, b))


class Rasterizer(IRasterizer):
    """栅格化器实现"""

    def __init__(self, scale: float | None = None, font_dirs: list[Path] | None = None,
                 families: dict[str, str] | None = None):
        config = get_config()
        self.scale = scale if scale is not None else config.export.scale
        self.font_dirs = font_dirs if font_dirs is not None else config.fonts.font_dirs
        self.families = families if families is not None else config.fonts.families
        self.px_per_mm = self.scale * CSS_DPI / MM_PER_INCH
        self._fonts: dict[tuple[str, int], ImageFont.ImageFont | ImageFont.FreeTypeFont] = {}

    def bitmap_size(self, tree: VisualTree) -> tuple[int, int]:
        return round(tree.page_width * self.px_per_mm), round(tree.total_height * self.px_per_mm)

    def capture(self, tree: VisualTree) -> Image.Image:
        """绘制整棵可视树（多页时纵向拼接）"""
        if tree is None or not tree.nodes:
            raise CaptureError("捕获目标为空：没有可渲染的预览")

        width, height = self.bitmap_size(tree)
        bitmap = Image.new("RGB", (width, height), "white")
        draw = ImageDraw.Draw(bitmap)

        for node in tree.nodes:
            if node.kind == "box":
                self._draw_box(draw, node)
            elif node.kind == "line":
                self._draw_line(draw, node)
            elif node.kind == "text":
                self._draw_text(draw, node)
            elif node.kind == "image":
                self._draw_image(bitmap, node)
            elif node.kind == "placeholder":
                self._draw_placeholder(draw, node)

        logger.debug(f"栅格化完成: {tree.document_type}/{tree.template_id} {width}x{height}px")
        return bitmap

    # ------------------------------------------------------------------

    def _px(self, mm: float) -> int:
        return round(mm * self.px_per_mm)

    def _rect(self, node: VisualNode) -> tuple[int, int, int, int]:
        x0, y0 = self._px(node.x), self._px(node.y)
        return x0, y0, x0 + max(self._px(node.w), 1), y0 + max(self._px(node.h), 1)

    def _stroke(self, style: NodeStyle) -> int:
        return max(1, self._px(style.border_width))

    def _font(self, family: str, size_px: int):
        key = (family, size_px)
        if key not in self._fonts:
            self._fonts[key] = self._load_font(family, size_px)
        return self._fonts[key]

    def _load_font(self, family: str, size_px: int):
        filename = self.families.get(family)
        if filename:
            for font_dir in self.font_dirs:
                path = Path(font_dir) / filename
                if path.exists():
                    return ImageFont.truetype(str(path), size_px)
            try:
                return ImageFont.truetype(filename, size_px)
            except OSError:
                logger.debug(f"系统中未找到字体 {family}({filename})，使用内置字体")
        return ImageFont.load_default(size=size_px)

    def _dashed(self, draw: ImageDraw.ImageDraw, start: tuple[int, int], end: tuple[int, int],
                fill, width: int, dash: int, gap: int) -> None:
        (x0, y0), (x1, y1) = start, end
        length = max(abs(x1 - x0), abs(y1 - y0))
        if length == 0:
            return
        dash = max(dash, 1)
        step = max(dash + gap, 2)
        for offset in range(0, length, step):
            seg_end = min(offset + dash, length)
            sx = x0 + (x1 - x0) * offset / length
            sy = y0 + (y1 - y0) * offset / length
            ex = x0 + (x1 - x0) * seg_end / length
            ey = y0 + (y1 - y0) * seg_end / length
            draw.line([(sx, sy), (ex, ey)], fill=fill, width=width)

    def _draw_box(self, draw: ImageDraw.ImageDraw, node: VisualNode) -> None:
        s = node.style
        outline = _hex_to_rgb(s.border_color) if s.border_color and s.border_width else None
        fill = _hex_to_rgb(s.fill) if s.fill else None
        draw.rectangle(self._rect(node), fill=fill, outline=outline,
                       width=self._stroke(s) if outline else 0)

    def _draw_line(self, draw: ImageDraw.ImageDraw, node: VisualNode) -> None:
        s = node.style
        color = _hex_to_rgb(s.border_color or s.color)
        start = (self._px(node.x), self._px(node.y))
        end = (self._px(node.x + node.w), self._px(node.y + node.h))
        if s.dashed:
            self._dashed(draw, start, end, color, self._stroke(s), self._px(3), self._px(2))
        else:
            draw.line([start, end], fill=color, width=self._stroke(s))

    def _draw_text(self, draw: ImageDraw.ImageDraw, node: VisualNode) -> None:
        s = node.style
        x0, y0, x1, y1 = self._rect(node)
        if s.fill:
            draw.rectangle((x0, y0, x1, y1), fill=_hex_to_rgb(s.fill))
        if s.border_color and s.border_width and not node.empty:
            draw.rectangle((x0, y0, x1, y1), outline=_hex_to_rgb(s.border_color), width=self._stroke(s))

        pad = self._px(PAD_MM)
        if node.empty:
            color = _hex_to_rgb(s.border_color or "#9CA3AF")
            baseline = y1 - pad
            self._dashed(draw, (x0 + pad, baseline), (x1 - pad, baseline), color, 1, self._px(0.4), self._px(0.6))
            return
        if not node.text:
            return

        font = self._font(s.font_family, max(1, self._px(s.font_size * PT_TO_MM)))
        fill = _blend(s.color, s.opacity)
        left, top, right, _ = draw.multiline_textbbox((0, 0), node.text, font=font, align=s.align)
        text_w = right - left
        if s.align == "center":
            x = x0 + (x1 - x0 - text_w) / 2
        elif s.align == "right":
            x = x1 - pad - text_w
        else:
            x = x0 + pad
        draw.multiline_text(
            (x, y0 + pad - top), node.text, font=font, fill=fill, align=s.align,
            stroke_width=1 if s.bold else 0, stroke_fill=fill,
        )

    def _draw_image(self, bitmap: Image.Image, node: VisualNode) -> None:
        try:
            with Image.open(io.BytesIO(node.image or b"")) as src:
                src.load()
                img = src.convert("RGBA")
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise CaptureError(f"图片 {node.field} 无法解码: {e}") from e

        x0, y0, x1, y1 = self._rect(node)
        fitted = ImageOps.contain(img, (max(1, x1 - x0), max(1, y1 - y0)))
        ox = x0 + (x1 - x0 - fitted.width) // 2
        oy = y0 + (y1 - y0 - fitted.height) // 2
        bitmap.paste(fitted, (ox, oy), fitted)

    def _draw_placeholder(self, draw: ImageDraw.ImageDraw, node: VisualNode) -> None:
        s = node.style
        color = _hex_to_rgb(s.border_color or "#9CA3AF")
        x0, y0, x1, y1 = self._rect(node)
        draw.rectangle((x0, y0, x1, y1), fill=(243, 244, 246), outline=color, width=self._stroke(s))
        draw.line([(x0, y0), (x1, y1)], fill=(209, 213, 219), width=1)
        draw.line([(x0, y1), (x1, y0)], fill=(209, 213, 219), width=1)
        if node.label:
            font = self._font(s.font_family, max(1, self._px(s.font_size * PT_TO_MM)))
            left, top, right, bottom = draw.textbbox((0, 0), node.label, font=font)
            tx = (x0 + x1 - (right - left)) / 2 - left
            ty = (y0 + y1 - (bottom - top)) / 2 - top
            draw.text((tx, ty), node.label, font=font, fill=_hex_to_rgb(s.color))
