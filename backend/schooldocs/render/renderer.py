"""
模板渲染器 - 文档模型 + 模板描述 → 可视树

职责：
1. 按文档类型的 sections 布局（字段网格/表格/段落/列表/汇总）
2. 按模板描述输出装饰（页眉/标题/水印/二维码占位/签名/页脚）
3. 缺失字段输出空占位节点；图片无法解码输出占位图形
4. landscape_dual：左右两个相同面板 + 虚线裁切线；面板超出单页时等比缩放到一页内

纯函数：不做文件/网络IO，不修改输入，同输入得到相等的可视树。

测试要点：
- test_required_fields_rendered: 必填字段均为非空文字节点
- test_absent_field_placeholder: 缺失字段空占位
- test_watermark_omitted: 关闭水印不输出节点
- test_dual_panels_identical: 双联面板内容一致
- test_dual_fits_single_page: 双联只占一页
- test_broken_image_placeholder: 损坏图片占位
- test_render_is_pure: 纯函数
"""

from __future__ import annotations

import datetime as dt
import logging
import math
import textwrap
from typing import Any

from ..config import DocumentTypeSpec, SectionSpec, get_config, get_message, load_spec, localize
from ..interfaces import ITemplateRenderer
from ..models import (
    DocumentModel,
    Orientation,
    TemplateDescriptor,
    TemplateType,
    VisualNode,
    VisualTree,
)
from .derivation import DERIVED_LABELS, DerivationEngine, DerivedValues
from .images import decode_image
from .styles import has_bengali, resolve_style

logger = logging.getLogger(__name__)

PT_TO_MM = 25.4 / 72
LINE_SPACING = 1.35
PAD = 1.2            # 单元格内边距(mm)
SECTION_GAP = 4.0

PAGE_SIZES_MM: dict[str, tuple[float, float]] = {
    "A4": (210.0, 297.0),
    "A5": (148.0, 210.0),
    "LETTER": (215.9, 279.4),
    "LEGAL": (215.9, 355.6),
}

# 表格列宽权重
_COLUMN_WEIGHTS = {
    "no": 0.5,
    "name": 2.5,
    "question": 5.0,
    "description": 3.0,
    "category": 1.5,
    "date": 1.4,
}


def page_size_mm(page_format: str, orientation: Orientation) -> tuple[float, float]:
    """纸张尺寸(mm)，按方向返回 (宽, 高)；未知格式按 A4 布局"""
    w, h = PAGE_SIZES_MM.get(page_format.upper(), PAGE_SIZES_MM["A4"])
    if orientation == Orientation.LANDSCAPE:
        return max(w, h), min(w, h)
    return min(w, h), max(w, h)


def line_height(font_size: float) -> float:
    return font_size * PT_TO_MM * LINE_SPACING


def wrap_text(text: str, width: float, font_size: float, bengali: bool = False) -> list[str]:
    """按估算字宽折行（不依赖字体文件）"""
    char_w = font_size * PT_TO_MM * (0.6 if bengali else 0.5)
    per_line = max(1, int(width / char_w))
    lines: list[str] = []
    for para in text.splitlines() or [""]:
        lines.extend(textwrap.wrap(para, per_line) or [""])
    return lines


def display_value(value: Any) -> str | None:
    """字段值 → 展示文字；缺失返回 None"""
    if value is None:
        return None
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else f"{value:g}"
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        items = [display_value(v) for v in value]
        joined = ", ".join(i for i in items if i)
        return joined or None
    text = str(value).strip()
    return text or None


class _PanelBuilder:
    """单面板布局（纵向连续坐标，跨页时整行下移）"""

    def __init__(
        self,
        model: DocumentModel,
        descriptor: TemplateDescriptor,
        type_spec: DocumentTypeSpec,
        derived: DerivedValues,
        x: float,
        width: float,
        page_height: float,
        margin: float,
        max_image_kb: int | None,
        paginate: bool = True,
    ):
        self.model = model
        self.descriptor = descriptor
        self.type_spec = type_spec
        self.derived = derived
        self.x = x
        self.width = width
        self.page_height = page_height
        self.margin = margin
        self.max_image_kb = max_image_kb
        self.paginate = paginate
        self.language = descriptor.design.language
        self.elements = descriptor.elements
        self.nodes: list[VisualNode] = []
        self.y = margin

    # ------------------------------------------------------------------
    # 基础节点
    # ------------------------------------------------------------------

    def _node(self, kind: str, x: float, y: float, w: float, h: float, role: str, **kwargs) -> VisualNode:
        text = kwargs.get("text")
        style = resolve_style(role, self.descriptor, bengali=has_bengali(text))
        return VisualNode(kind=kind, x=x, y=y, w=w, h=h, role=role, style=style, **kwargs)

    def _text(
        self,
        text: str | None,
        x: float,
        y: float,
        w: float,
        role: str,
        field: str | None = None,
        layer: str = "content",
    ) -> VisualNode:
        """文字节点；text 为 None 时输出空占位"""
        empty = text is None
        if empty and role == "value":
            role = "value.empty"
        style = resolve_style(role, self.descriptor, bengali=has_bengali(text))
        lines = wrap_text(text or "", w - 2 * PAD, style.font_size, has_bengali(text))
        h = len(lines) * line_height(style.font_size) + 2 * PAD
        return VisualNode(
            kind="text",
            x=x,
            y=y,
            w=w,
            h=h,
            text="" if empty else "\n".join(lines),
            field=field,
            empty=empty,
            layer=layer,
            role=role,
            style=style,
        )

    def _image_slot(self, asset: str, x: float, y: float, w: float, h: float, role: str, label: str) -> VisualNode:
        """图片位：可解码输出图片节点，否则输出占位图形"""
        data = self.model.assets.get(asset)
        if decode_image(data, asset, self.max_image_kb) is not None:
            return self._node("image", x, y, w, h, role, image=data, field=asset, layer="decoration")
        if data:
            logger.warning(f"图片 {asset} 无法解码，已替换为占位")
        return self._node("placeholder", x, y, w, h, role, label=label, field=asset, layer="decoration")

    def _reserve(self, height: float) -> float:
        """为一行预留空间，跨页时移到下一页顶部"""
        if not self.paginate:
            return self.y
        usable = self.page_height - 2 * self.margin
        page_index = math.floor(self.y / self.page_height)
        page_bottom = (page_index + 1) * self.page_height - self.margin
        if self.y + height > page_bottom and height <= usable:
            self.y = (page_index + 1) * self.page_height + self.margin
        return self.y

    def _place_row(self, row: list[VisualNode], height: float, gap: float = 0.0) -> None:
        """整行放置：统一行高，必要时整体下移"""
        top = self.y
        new_top = self._reserve(height)
        dy = new_top - top
        for node in row:
            update = {"h": height}
            if dy:
                update["y"] = node.y + dy
            self.nodes.append(node.model_copy(update=update))
        self.y = new_top + height + gap

    def _label(self, name: str, rule_labels: dict[str, Any] | None = None) -> str:
        rule = (rule_labels or self.type_spec.fields).get(name)
        if rule is not None:
            return rule.label_for(self.language, name)
        if name in DERIVED_LABELS:
            return localize(DERIVED_LABELS[name], self.language)
        return name

    # ------------------------------------------------------------------
    # 装饰
    # ------------------------------------------------------------------

    def header(self) -> None:
        top = self.y
        header_nodes: list[VisualNode] = []
        logo_w = 16.0 if self.elements.show_logo else 0.0
        text_x = self.x + logo_w + 6
        text_w = self.width - 2 * (logo_w + 6)

        if self.elements.show_logo:
            header_nodes.append(
                self._image_slot("logo", self.x + 3, top + 3, logo_w, logo_w, "logo", "LOGO")
            )

        y = top + 3
        for i, name in enumerate(self.type_spec.header_fields):
            role = "header.school" if i == 0 else "header.address"
            node = self._text(display_value(self.model.get(name)), text_x, y, text_w, role, field=name)
            header_nodes.append(node)
            y = node.bottom

        band_h = max(logo_w + 6, y - top + 3, 14.0)
        band = self._node("box", self.x, top, self.width, band_h, "header.band", layer="decoration")
        self.nodes.append(band)
        self.nodes.extend(header_nodes)
        self.y = top + band_h + SECTION_GAP

    def title(self) -> None:
        qr_w = 18.0 if self.elements.show_qr else 0.0
        title_w = self.width - (qr_w + 4 if qr_w else 0)
        title = self._text(localize(self.type_spec.title, self.language), self.x, self.y, title_w, "title")
        row = [title]
        height = title.h
        if self.type_spec.subtitle_field:
            name = self.type_spec.subtitle_field
            sub = self._text(display_value(self.model.get(name)), self.x, title.bottom, title_w, "subtitle", field=name)
            row.append(sub)
            height = sub.bottom - self.y
        if qr_w:
            row.append(self._node(
                "placeholder", self.x + self.width - qr_w, self.y, qr_w, qr_w, "qr",
                label="QR", layer="decoration",
            ))
            height = max(height, qr_w)
        for node in row:
            self.nodes.append(node)
        self.y += height + SECTION_GAP

    def signatures(self) -> None:
        if not self.elements.show_signatures or not self.type_spec.signatures:
            return
        count = len(self.type_spec.signatures)
        col_w = self.width / count
        self.y += 8.0
        top = self._reserve(22.0)
        signature_data = self.model.assets.get("signature")
        for i, label in enumerate(self.type_spec.signatures):
            col_x = self.x + i * col_w
            if i == count - 1 and signature_data:
                self.nodes.append(self._image_slot(
                    "signature", col_x + col_w / 2 - 15, top, 30, 10, "signature", "SIGN"
                ))
            self.nodes.append(self._node(
                "line", col_x + 6, top + 12, col_w - 12, 0, "signature.line", layer="decoration"
            ))
            self.nodes.append(self._text(localize(label, self.language), col_x, top + 13, col_w, "signature"))
        self.y = top + 22.0

    def footer(self) -> None:
        if not self.elements.show_footer or not self.type_spec.footer:
            return
        self.y += 2.0
        node = self._text(localize(self.type_spec.footer, self.language), self.x, self.y, self.width, "footer")
        self._place_row([node], node.h)

    def watermark(self) -> None:
        """水印置于最底层（列表首位）"""
        if not self.elements.show_watermark:
            return
        names = self.type_spec.header_fields
        text = display_value(self.model.get(names[0])) if names else None
        text = text or localize(self.type_spec.title, self.language)
        first_page_bottom = min(self.y, self.page_height - self.margin) if self.paginate else self.y
        mid = (self.margin + first_page_bottom) / 2
        node = self._text(text, self.x, mid - 15, self.width, "watermark", layer="watermark")
        self.nodes.insert(0, node)

    # ------------------------------------------------------------------
    # 分区
    # ------------------------------------------------------------------

    def section(self, section: SectionSpec) -> None:
        if section.title and section.kind != "fields":
            node = self._text(localize(section.title, self.language), self.x, self.y, self.width, "section.title")
            self._place_row([node], node.h, gap=1.5)

        handler = getattr(self, f"_section_{section.kind}")
        handler(section)
        self.y += SECTION_GAP

    def _pairs(self, pairs: list[tuple[str, str | None, str | None]], x: float, width: float,
               label_role: str = "label", value_role: str = "value") -> None:
        """两列「标签: 值」网格"""
        col_w = width / 2
        label_w = col_w * 0.38
        for start in range(0, len(pairs), 2):
            row: list[VisualNode] = []
            for offset, (label, value, field) in enumerate(pairs[start:start + 2]):
                cx = x + offset * col_w
                row.append(self._text(label, cx, self.y, label_w, label_role))
                row.append(self._text(value, cx + label_w, self.y, col_w - label_w, value_role, field=field))
            self._place_row(row, max(n.h for n in row), gap=1.0)

    def _section_fields(self, section: SectionSpec) -> None:
        pairs = [
            (self._label(name), display_value(self.model.get(name)), name)
            for name in section.fields
        ]
        if not section.photo:
            self._pairs(pairs, self.x, self.width)
            return

        photo_w, photo_h = 28.0, 34.0
        top = self._reserve(photo_h)
        self.nodes.append(self._image_slot(
            section.photo, self.x + self.width - photo_w, top, photo_w, photo_h, "photo", "PHOTO"
        ))
        self._pairs(pairs, self.x, self.width - photo_w - 4)
        self.y = max(self.y, top + photo_h + 1.0)

    def _section_table(self, section: SectionSpec) -> None:
        name = section.field
        rule = self.type_spec.fields[name]
        rows = [r for r in (self.model.get(name) or []) if isinstance(r, dict)]
        derived_rows = self.derived.rows.get(name, [])

        weights = [_COLUMN_WEIGHTS.get(c, 1.0) for c in section.columns]
        unit = self.width / sum(weights)
        widths = [w * unit for w in weights]

        header: list[VisualNode] = []
        cx = self.x
        for column, w in zip(section.columns, widths):
            header.append(self._text(self._label(column, rule.item_fields), cx, self.y, w, "table.header"))
            cx += w
        self._place_row(header, max(n.h for n in header))

        if not rows:
            node = self._text(None, self.x, self.y, self.width, "table.cell", field=name)
            self._place_row([node], node.h)
            return

        for index, row in enumerate(rows):
            extra = derived_rows[index] if index < len(derived_rows) else {}
            cells: list[VisualNode] = []
            cx = self.x
            for column, w in zip(section.columns, widths):
                value = extra.get(column) if column in extra else display_value(row.get(column))
                cells.append(self._text(value, cx, self.y, w, "table.cell", field=f"{name}.{index}.{column}"))
                cx += w
            self._place_row(cells, max(n.h for n in cells))

    def _section_paragraph(self, section: SectionSpec) -> None:
        value = display_value(self.model.get(section.field))
        node = self._text(value, self.x, self.y, self.width, "paragraph", field=section.field)
        if node.empty:
            node = node.model_copy(update={"role": "value.empty", "style": resolve_style("value.empty", self.descriptor)})
        self._place_row([node], node.h)

    def _section_list(self, section: SectionSpec) -> None:
        items = [display_value(v) for v in (self.model.get(section.field) or [])]
        items = [i for i in items if i]
        if not items:
            node = self._text(None, self.x, self.y, self.width, "value", field=section.field)
            self._place_row([node], node.h)
            return
        for index, item in enumerate(items):
            node = self._text(f"{index + 1}. {item}", self.x + 4, self.y, self.width - 4, "list.item",
                              field=f"{section.field}.{index}")
            self._place_row([node], node.h, gap=0.5)

    def _section_summary(self, section: SectionSpec) -> None:
        pairs = []
        for item in section.items:
            value = self.derived.summary.get(item)
            if item == "result" and self.derived.passed is not None:
                key = "pass" if self.derived.passed else "fail"
                value = localize({"en": get_message(key, "en"), "bn": get_message(key, "bn")}, self.language)
            pairs.append((self._label(item), value, None))
        self._pairs(pairs, self.x, self.width, "summary.label", "summary.value")

    # ------------------------------------------------------------------

    def build(self) -> list[VisualNode]:
        self.header()
        self.title()
        for section in self.type_spec.sections:
            self.section(section)
        self.signatures()
        self.footer()
        self.watermark()
        return self.nodes


class TemplateRenderer(ITemplateRenderer):
    """模板渲染器实现"""

    def __init__(self, margin_mm: float | None = None, max_image_kb: int | None = None):
        config = get_config()
        self.margin = margin_mm if margin_mm is not None else config.render.margin_mm
        self.max_image_kb = max_image_kb if max_image_kb is not None else config.images.max_image_kb
        self.derivation = DerivationEngine()

    def render(
        self,
        model: DocumentModel,
        descriptor: TemplateDescriptor,
        type_spec: DocumentTypeSpec | None = None,
    ) -> VisualTree:
        type_spec = type_spec or load_spec().get_document_type(model.document_type)
        if not descriptor.applies_to(model.document_type):
            logger.debug(f"模板 {descriptor.id} 未声明适用于 {model.document_type}，按通用模板渲染")

        orientation = descriptor.orientation
        page_w, page_h = page_size_mm(descriptor.page_format, orientation)
        derived = self.derivation.compute(model, type_spec)

        panels = descriptor.panel_count
        gap = 2 * self.margin if panels > 1 else 0.0
        panel_w = (page_w - 2 * self.margin - gap * (panels - 1)) / panels
        dual = descriptor.template_type == TemplateType.LANDSCAPE_DUAL

        builder = _PanelBuilder(
            model, descriptor, type_spec, derived,
            x=self.margin,
            width=panel_w,
            page_height=page_h,
            margin=self.margin,
            max_image_kb=self.max_image_kb,
            paginate=not dual,
        )
        panel_nodes = builder.build()
        content_bottom = max((n.bottom for n in panel_nodes), default=self.margin)

        nodes = list(panel_nodes)
        content_height = max(content_bottom + self.margin, page_h)
        if dual:
            panel_nodes, content_bottom = self._fit_panel(panel_nodes, panel_w, content_bottom, page_h)
            nodes = self._dual(panel_nodes, descriptor, panel_w + gap, content_bottom, page_w)
            content_height = page_h

        return VisualTree(
            document_type=model.document_type,
            template_id=descriptor.id,
            orientation=orientation,
            page_width=page_w,
            page_height=page_h,
            content_height=content_height,
            nodes=nodes,
        )

    def _fit_panel(
        self,
        panel_nodes: list[VisualNode],
        panel_w: float,
        content_bottom: float,
        page_h: float,
    ) -> tuple[list[VisualNode], float]:
        """双联面板超出单页时等比缩放（几何与字号），缩放后在面板位内水平居中"""
        available = page_h - 2 * self.margin
        used = content_bottom - self.margin
        if used <= available:
            return panel_nodes, content_bottom

        factor = available / used
        dx = panel_w * (1 - factor) / 2
        logger.debug(f"双联面板高 {used:.1f}mm 超出 {available:.1f}mm，缩放 {factor:.3f}")

        fitted: list[VisualNode] = []
        for node in panel_nodes:
            style = node.style.model_copy(update={
                "font_size": round(node.style.font_size * factor, 2),
                "border_width": node.style.border_width * factor,
            })
            fitted.append(node.model_copy(update={
                "x": self.margin + dx + (node.x - self.margin) * factor,
                "y": self.margin + (node.y - self.margin) * factor,
                "w": node.w * factor,
                "h": node.h * factor,
                "style": style,
            }))
        return fitted, self.margin + used * factor

    def _dual(
        self,
        panel_nodes: list[VisualNode],
        descriptor: TemplateDescriptor,
        offset: float,
        content_bottom: float,
        page_w: float,
    ) -> list[VisualNode]:
        """双联：复制面板 + 边框 + 中间虚线裁切线"""
        nodes: list[VisualNode] = []
        border_style = resolve_style("panel.border", descriptor)
        for panel in range(2):
            dx = offset * panel
            nodes.append(VisualNode(
                kind="box",
                x=self.margin - 2 + dx,
                y=self.margin - 2,
                w=offset - 2 * self.margin + 4,
                h=content_bottom - self.margin + 4,
                layer="decoration",
                role="panel.border",
                panel=panel,
                style=border_style,
            ))
            for node in panel_nodes:
                nodes.append(node if panel == 0 else node.model_copy(update={"x": node.x + dx, "panel": panel}))

        nodes.append(VisualNode(
            kind="line",
            x=page_w / 2,
            y=self.margin / 2,
            w=0,
            h=content_bottom,
            layer="decoration",
            role="cut_line",
            style=resolve_style("cut_line", descriptor),
        ))
        return nodes


def render(
    model: DocumentModel,
    descriptor: TemplateDescriptor,
    type_spec: DocumentTypeSpec | None = None,
) -> VisualTree:
    """渲染文档（便捷函数）"""
    return TemplateRenderer().render(model, descriptor, type_spec)
