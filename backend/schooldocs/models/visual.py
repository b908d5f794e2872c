"""
可视树模型 - 渲染器输出

所有几何量单位为毫米，坐标原点在左上角，纵向为连续坐标：
内容高度超过一页时按页高切分为多页。
"""

from __future__ import annotations

import math
from typing import Literal

from pydantic import BaseModel, Field

from .template import Orientation

NodeKind = Literal["box", "text", "image", "placeholder", "line"]
Layer = Literal["content", "decoration", "watermark"]


class NodeStyle(BaseModel):
    """已解析样式（渲染时确定，不再运行期修补）"""
    font_family: str = "Arial"
    font_size: float = 10.0          # pt
    bold: bool = False
    color: str = "#111827"
    fill: str | None = None
    border_color: str | None = None
    border_width: float = 0.0        # mm
    dashed: bool = False
    align: Literal["left", "center", "right"] = "left"
    opacity: float = 1.0

    model_config = {"frozen": True}


class VisualNode(BaseModel):
    """可视节点"""
    kind: NodeKind
    x: float
    y: float
    w: float
    h: float
    text: str | None = None
    field: str | None = Field(None, description="来源字段名")
    empty: bool = Field(False, description="字段缺失时的空占位")
    image: bytes | None = None
    label: str | None = Field(None, description="占位图标文字")
    layer: Layer = "content"
    role: str = ""
    panel: int = 0
    style: NodeStyle = Field(default_factory=NodeStyle)

    @property
    def bottom(self) -> float:
        return self.y + self.h


class VisualTree(BaseModel):
    """渲染结果"""
    document_type: str
    template_id: str
    orientation: Orientation
    page_width: float
    page_height: float
    content_height: float
    nodes: list[VisualNode] = Field(default_factory=list)

    @property
    def page_count(self) -> int:
        return max(1, math.ceil(self.content_height / self.page_height - 1e-6))

    @property
    def total_height(self) -> float:
        return self.page_count * self.page_height

    def texts(self) -> list[str]:
        """所有非空文字"""
        return [n.text for n in self.nodes if n.kind == "text" and n.text]

    def find(self, field: str) -> list[VisualNode]:
        """按来源字段查找节点"""
        return [n for n in self.nodes if n.field == field]

    def nodes_in_layer(self, layer: Layer) -> list[VisualNode]:
        return [n for n in self.nodes if n.layer == layer]

    def nodes_with_role(self, role: str) -> list[VisualNode]:
        return [n for n in self.nodes if n.role == role]
