"""
样式解析 - 角色 + 模板描述 → 节点样式

渲染期一次性确定所有样式（字号/颜色/边框/字体），
输出的可视树不再需要运行期样式修补。

测试要点：
- test_resolve_style_pure: 同输入同输出
- test_layout_scales_font: compact 版式缩小字号
- test_bengali_font_selected: 孟加拉文字使用孟加拉字体
"""

from __future__ import annotations

import re
from typing import Any

from ..models import NodeStyle, TemplateDescriptor

_BENGALI_CHARS = re.compile(r"[ঀ-৿]")

# 角色基础样式（字号单位 pt，边框单位 mm）
_BASE: dict[str, dict[str, Any]] = {
    "header.band": {"fill": "primary"},
    "header.school": {"font_size": 16, "bold": True, "align": "center", "color": "#FFFFFF"},
    "header.address": {"font_size": 9, "align": "center", "color": "#FFFFFF"},
    "title": {"font_size": 14, "bold": True, "align": "center", "color": "primary",
              "border_color": "secondary", "border_width": 0.6},
    "subtitle": {"font_size": 11, "align": "center", "color": "#374151"},
    "label": {"font_size": 9, "bold": True, "color": "#374151"},
    "value": {"font_size": 10, "color": "#111827"},
    "value.empty": {"font_size": 10, "color": "#9CA3AF", "border_color": "#9CA3AF",
                    "border_width": 0.2, "dashed": True},
    "section.title": {"font_size": 11, "bold": True, "color": "primary",
                      "border_color": "primary", "border_width": 0.3},
    "table.header": {"font_size": 9, "bold": True, "color": "#FFFFFF", "fill": "primary",
                     "border_color": "primary", "border_width": 0.2},
    "table.cell": {"font_size": 9, "border_color": "#D1D5DB", "border_width": 0.2},
    "summary.label": {"font_size": 9, "bold": True, "color": "#374151", "fill": "#F3F4F6",
                      "border_color": "#D1D5DB", "border_width": 0.2},
    "summary.value": {"font_size": 10, "bold": True, "color": "accent",
                      "border_color": "#D1D5DB", "border_width": 0.2},
    "paragraph": {"font_size": 10},
    "list.item": {"font_size": 10},
    "signature": {"font_size": 9, "align": "center", "color": "#374151"},
    "signature.line": {"border_color": "#111827", "border_width": 0.3},
    "footer": {"font_size": 8, "align": "center", "color": "#6B7280"},
    "watermark": {"font_size": 60, "bold": True, "align": "center", "color": "primary",
                  "opacity": 0.08},
    "qr": {"font_size": 7, "align": "center", "color": "#6B7280",
           "border_color": "#111827", "border_width": 0.3},
    "photo": {"font_size": 8, "align": "center", "color": "#6B7280",
              "border_color": "secondary", "border_width": 0.4},
    "logo": {"font_size": 7, "align": "center", "color": "#FFFFFF",
             "border_color": "#FFFFFF", "border_width": 0.3},
    "panel.border": {"border_color": "primary", "border_width": 0.5},
    "cut_line": {"border_color": "#6B7280", "border_width": 0.3, "dashed": True},
}

# 版式调整
_LAYOUT_FONT_SCALE = {
    "traditional": 1.0,
    "modern": 1.0,
    "compact": 0.85,
    "premium": 1.1,
}


def has_bengali(text: str | None) -> bool:
    """文本是否包含孟加拉字符"""
    return bool(text) and bool(_BENGALI_CHARS.search(text))


def _color(value: str | None, descriptor: TemplateDescriptor) -> str | None:
    if value in ("primary", "secondary", "accent"):
        return getattr(descriptor.design.colors, value)
    return value


def resolve_style(role: str, descriptor: TemplateDescriptor, bengali: bool = False) -> NodeStyle:
    """
    解析节点样式（纯函数）

    Args:
        role: 节点角色（如 "label" / "table.header"）
        descriptor: 模板描述
        bengali: 文本含孟加拉字符时使用孟加拉字体

    Returns:
        NodeStyle
    """
    base = dict(_BASE.get(role, {}))
    layout = descriptor.design.layout
    fonts = descriptor.design.fonts

    # 模板语言为 bn 时全部使用孟加拉字体
    use_bengali = bengali or descriptor.design.language == "bn"
    base["font_family"] = fonts.bengali if use_bengali else fonts.english

    size = base.get("font_size", NodeStyle().font_size)
    base["font_size"] = round(size * _LAYOUT_FONT_SCALE.get(layout, 1.0), 2)

    if layout == "modern" and role == "title":
        base["border_width"] = 0.0
        base["fill"] = "#F9FAFB"
    elif layout == "premium" and role in ("header.band", "table.header"):
        base["border_color"] = "secondary"
        base["border_width"] = 0.8
    elif layout == "traditional" and role == "panel.border":
        base["border_width"] = 0.8

    for key in ("color", "fill", "border_color"):
        if key in base:
            base[key] = _color(base[key], descriptor)

    return NodeStyle(**base)
