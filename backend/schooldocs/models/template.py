"""
模板描述模型 - 版式变体+样式参数

JSON 字段为 camelCase（templateType/showLogo...），与远端模板目录一致；
Python 侧使用 snake_case。渲染期只读。
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class TemplateType(str, Enum):
    """版式变体"""
    PORTRAIT_SINGLE = "portrait_single"
    LANDSCAPE_SINGLE = "landscape_single"
    LANDSCAPE_DUAL = "landscape_dual"


class Orientation(str, Enum):
    """纸张方向"""
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class TemplateColors(BaseModel):
    model_config = _CAMEL

    primary: str = Field("#1E3A8A", pattern=HEX_COLOR)
    secondary: str = Field("#F59E0B", pattern=HEX_COLOR)
    accent: str = Field("#059669", pattern=HEX_COLOR)


class TemplateFonts(BaseModel):
    model_config = _CAMEL

    bengali: str = "SolaimanLipi"
    english: str = "Arial"


class TemplateElements(BaseModel):
    """可选装饰元素开关（关闭即不输出节点）"""
    model_config = _CAMEL

    show_logo: bool = True
    show_watermark: bool = False
    show_qr: bool = Field(False, alias="showQR")
    show_signatures: bool = True
    show_footer: bool = True


class TemplateDesign(BaseModel):
    model_config = _CAMEL

    layout: Literal["traditional", "modern", "compact", "premium"] = "traditional"
    language: Literal["en", "bn", "both"] = "en"
    colors: TemplateColors = Field(default_factory=TemplateColors)
    fonts: TemplateFonts = Field(default_factory=TemplateFonts)
    elements: TemplateElements = Field(default_factory=TemplateElements)


class TemplateDescriptor(BaseModel):
    """模板描述"""
    model_config = _CAMEL

    id: str = Field(..., min_length=1)
    name: str = ""
    description: str = ""
    template_type: TemplateType = TemplateType.PORTRAIT_SINGLE
    page_format: str = "A4"
    document_types: list[str] = Field(default_factory=list, description="适用文档类型，空表示通用")
    design: TemplateDesign = Field(default_factory=TemplateDesign)
    version: str | None = None

    @property
    def orientation(self) -> Orientation:
        if self.template_type == TemplateType.PORTRAIT_SINGLE:
            return Orientation.PORTRAIT
        return Orientation.LANDSCAPE

    @property
    def panel_count(self) -> int:
        return 2 if self.template_type == TemplateType.LANDSCAPE_DUAL else 1

    @property
    def elements(self) -> TemplateElements:
        return self.design.elements

    def applies_to(self, document_type: str) -> bool:
        return not self.document_types or document_type in self.document_types

    def with_template_type(self, template_type: TemplateType | str) -> TemplateDescriptor:
        """切换版式，其余样式不变"""
        return self.model_copy(update={"template_type": TemplateType(template_type)})

    def with_elements(self, **toggles: bool) -> TemplateDescriptor:
        """修改装饰元素开关（返回新实例）"""
        elements = self.design.elements.model_copy(update=toggles)
        design = self.design.model_copy(update={"elements": elements})
        return self.model_copy(update={"design": design})

    def with_design(self, **changes) -> TemplateDescriptor:
        design = self.design.model_copy(update=changes)
        return self.model_copy(update={"design": design})
