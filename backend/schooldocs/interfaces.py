"""
模块接口契约 - 定义各模块的抽象接口

设计原则：
1. 模块间通过接口通信，不直接依赖具体实现
2. 每个接口定义清晰的输入输出类型
3. 便于单元测试和mock替换

使用方式：
    from schooldocs.interfaces import IRasterizer

    class MyRasterizer(IRasterizer):
        def capture(self, tree: VisualTree) -> Image.Image:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from PIL import Image

    from .forms.validation import ValidationReport
    from .models import (
        DocumentModel,
        GeneratedDocumentRecord,
        PdfInfo,
        TemplateDescriptor,
        VisualTree,
    )


# ============================================================================
# 渲染模块接口
# ============================================================================

class ITemplateRenderer(ABC):
    """模板渲染器接口 - 文档模型 → 可视树"""

    @abstractmethod
    def render(self, model: DocumentModel, descriptor: TemplateDescriptor) -> VisualTree:
        """
        渲染文档（纯函数，不做IO，不修改输入）

        Args:
            model: 文档模型
            descriptor: 模板描述

        Returns:
            定位完成的可视树；缺失字段渲染为空占位
        """
        ...


# ============================================================================
# 导出模块接口
# ============================================================================

class IRasterizer(ABC):
    """栅格化接口 - 可视树 → 位图"""

    @abstractmethod
    def capture(self, tree: VisualTree) -> Image.Image:
        """
        按固定倍率栅格化

        Raises:
            CaptureError: 捕获目标缺失或图片资源无法解码
        """
        ...


class IPDFEncoder(ABC):
    """PDF编码器接口"""

    @abstractmethod
    def encode(
        self,
        bitmap: Image.Image,
        tree: VisualTree,
        descriptor: TemplateDescriptor,
    ) -> bytes:
        """
        将位图嵌入PDF，页面尺寸/方向取自模板描述

        Raises:
            EncodeError: 不支持的纸张格式/方向不一致
        """
        ...

    @abstractmethod
    def inspect(self, data: bytes) -> PdfInfo:
        """读取PDF页数/页面尺寸/内嵌图片尺寸"""
        ...


# ============================================================================
# 模板目录与记录接口
# ============================================================================

class ITemplateSource(ABC):
    """模板来源接口（远端目录）"""

    @abstractmethod
    def list_templates(self) -> list[dict[str, Any]]:
        """
        列出模板原始数据

        Raises:
            TemplateFetchError: 网络或数据格式错误
        """
        ...


class IRecordSink(ABC):
    """生成记录提交接口"""

    @abstractmethod
    def submit_record(self, record: GeneratedDocumentRecord) -> None:
        """
        提交生成记录

        Raises:
            RecordSubmitError: 提交失败
        """
        ...


# ============================================================================
# 异常定义
# ============================================================================

class SchoolDocsError(Exception):
    """基础异常"""
    pass


class SpecError(SchoolDocsError):
    """文档规范错误"""
    pass


class DocumentValidationError(SchoolDocsError):
    """表单校验未通过（阻止导出）"""

    def __init__(self, message: str, report: ValidationReport | None = None):
        super().__init__(message)
        self.report = report


class UnknownFieldError(SchoolDocsError, KeyError):
    """文档类型未定义的字段"""
    pass


class RenderError(SchoolDocsError):
    """渲染错误"""
    pass


class ExportError(SchoolDocsError):
    """导出错误"""
    pass


class CaptureError(ExportError):
    """栅格化捕获错误"""
    pass


class EncodeError(ExportError):
    """PDF编码错误"""
    pass


class TemplateFetchError(SchoolDocsError):
    """远端模板获取错误"""
    pass


class RecordSubmitError(SchoolDocsError):
    """生成记录提交错误"""
    pass
