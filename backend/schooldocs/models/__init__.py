"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- DocumentModel: 表单数据+图片资源
- TemplateDescriptor: 版式与样式参数
- VisualTree: 渲染结果（定位节点）
- ExportJob / ExportedArtifact: 导出状态与产物
"""

from .document import DocumentModel
from .export import (
    ExportedArtifact,
    ExportJob,
    ExportNotice,
    ExportProgress,
    ExportState,
    GeneratedDocumentRecord,
    PdfInfo,
)
from .template import (
    Orientation,
    TemplateColors,
    TemplateDescriptor,
    TemplateDesign,
    TemplateElements,
    TemplateFonts,
    TemplateType,
)
from .visual import NodeStyle, VisualNode, VisualTree

__all__ = [
    "DocumentModel",
    "TemplateDescriptor",
    "TemplateDesign",
    "TemplateColors",
    "TemplateFonts",
    "TemplateElements",
    "TemplateType",
    "Orientation",
    "VisualTree",
    "VisualNode",
    "NodeStyle",
    "ExportState",
    "ExportProgress",
    "ExportJob",
    "ExportedArtifact",
    "ExportNotice",
    "PdfInfo",
    "GeneratedDocumentRecord",
]
