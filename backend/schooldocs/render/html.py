"""
实时预览 - 可视树 → HTML（Jinja2）

预览只是派生数据：由会话在模型 revision 或模板描述变化时重新计算，
不持久化。节点按毫米绝对定位，与位图/PDF 使用同一棵可视树。
"""

from __future__ import annotations

import base64
import io
from dataclasses import dataclass
from functools import lru_cache

from jinja2 import Environment, FileSystemLoader
from PIL import Image, UnidentifiedImageError

from ..config.spec_loader import RESOURCES_DIR
from ..models import DocumentModel, TemplateDescriptor, VisualNode, VisualTree

TEMPLATES_DIR = RESOURCES_DIR / "templates"
PREVIEW_TEMPLATE = "preview.html.j2"


@dataclass(frozen=True)
class RenderedPreview:
    """预览结果（可视树 + HTML），携带生成它的模型与模板描述"""
    tree: VisualTree
    html: str
    model: DocumentModel
    descriptor: TemplateDescriptor

    @property
    def model_revision(self) -> int:
        return self.model.revision

    @property
    def descriptor_id(self) -> str:
        return self.descriptor.id


@lru_cache(maxsize=1)
def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def _data_uri(data: bytes) -> str:
    mime = "image/png"
    try:
        with Image.open(io.BytesIO(data)) as img:
            mime = Image.MIME.get(img.format or "", mime)
    except (UnidentifiedImageError, OSError):
        pass
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def _css(node: VisualNode) -> str:
    s = node.style
    rules = [
        f"left:{node.x:.2f}mm",
        f"top:{node.y:.2f}mm",
        f"width:{max(node.w, 0.1):.2f}mm",
        f"height:{max(node.h, 0.1):.2f}mm",
        f"font-family:'{s.font_family}'",
        f"font-size:{s.font_size}pt",
        f"color:{s.color}",
        f"text-align:{s.align}",
        f"opacity:{s.opacity}",
    ]
    if s.bold:
        rules.append("font-weight:bold")
    if s.fill:
        rules.append(f"background:{s.fill}")
    if s.border_color and s.border_width:
        line = "dashed" if s.dashed else "solid"
        border = f"{s.border_width}mm {line} {s.border_color}"
        if node.kind == "line":
            rules.append(f"border-{'left' if node.w == 0 else 'top'}:{border}")
        else:
            rules.append(f"border:{border}")
    if node.layer == "watermark":
        rules.append("transform:rotate(-30deg)")
    return ";".join(rules)


def render_html(tree: VisualTree, lang: str = "en") -> str:
    """可视树 → 预览 HTML"""
    nodes = []
    for node in tree.nodes:
        item = {
            "kind": node.kind,
            "layer": node.layer,
            "role": node.role,
            "field": node.field,
            "text": node.text or "",
            "label": node.label,
            "empty": node.empty,
            "css": _css(node),
        }
        if node.kind == "image" and node.image:
            item["src"] = _data_uri(node.image)
        nodes.append(item)

    template = _environment().get_template(PREVIEW_TEMPLATE)
    return template.render(tree=tree, nodes=nodes, lang=lang)
