"""
规范加载器 - 读取 resources/document_spec.yaml

职责：
- 解析文档类型规范（字段规则/分步/版面分区/文件名规则）
- 提供内置模板集合的原始数据
- 加载时做一致性校验（必填字段必须出现在版面中）
- 缓存加载结果（避免重复解析）

使用方式：
    spec = load_spec()
    admit = spec.get_document_type("admit_card")
    admit.required_fields()  # ["studentName", "rollNumber", "className"]
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from ..interfaces import SpecError

RESOURCES_DIR = Path(__file__).resolve().parent.parent / "resources"
DEFAULT_SPEC_PATH = RESOURCES_DIR / "document_spec.yaml"

FieldType = Literal["str", "int", "float", "money", "date", "enum", "list", "str_list"]


def localize(text: dict[str, str] | None, language: str) -> str:
    """按语言取文本；both 时输出「বাংলা / English」"""
    if not text:
        return ""
    en = text.get("en", "")
    bn = text.get("bn", "")
    if language == "both":
        if en and bn and en != bn:
            return f"{bn} / {en}"
        return bn or en
    if language == "bn":
        return bn or en
    return en or bn


class FieldRule(BaseModel):
    """单个字段的声明式校验规则"""
    type: FieldType = "str"
    required: bool = False
    min_length: int | None = None
    max_length: int | None = None
    min: float | None = None
    max: float | None = None
    choices: list[str] | None = None
    min_items: int | None = None
    max_field: str | None = Field(None, description="同一条目内的上限字段")
    label: dict[str, str] = Field(default_factory=dict)
    item_fields: dict[str, FieldRule] = Field(default_factory=dict)

    @property
    def is_numeric(self) -> bool:
        return self.type in ("int", "float", "money")

    @property
    def is_collection(self) -> bool:
        return self.type in ("list", "str_list")

    def label_for(self, language: str, fallback: str = "") -> str:
        return localize(self.label, language) or fallback


class StepSpec(BaseModel):
    """表单分步"""
    name: str
    label: dict[str, str] = Field(default_factory=dict)
    fields: list[str] = Field(default_factory=list)


class SectionSpec(BaseModel):
    """版面分区"""
    kind: Literal["fields", "table", "paragraph", "list", "summary"]
    fields: list[str] = Field(default_factory=list)
    field: str | None = None
    title: dict[str, str] | None = None
    columns: list[str] = Field(default_factory=list)
    items: list[str] = Field(default_factory=list)
    photo: str | None = None

    def referenced_fields(self) -> list[str]:
        names = list(self.fields)
        if self.field:
            names.append(self.field)
        return names


class DocumentTypeSpec(BaseModel):
    """单个文档类型的完整规范"""
    name: str = ""
    title: dict[str, str] = Field(default_factory=dict)
    header_fields: list[str] = Field(default_factory=list)
    subtitle_field: str | None = None
    date_field: str | None = None
    filename: list[str] = Field(default_factory=list)
    fields: dict[str, FieldRule] = Field(default_factory=dict)
    steps: list[StepSpec] = Field(default_factory=list)
    sections: list[SectionSpec] = Field(default_factory=list)
    signatures: list[dict[str, str]] = Field(default_factory=list)
    footer: dict[str, str] | None = None

    @model_validator(mode="after")
    def _check_references(self) -> DocumentTypeSpec:
        known = set(self.fields)
        for step in self.steps:
            unknown = [f for f in step.fields if f not in known]
            if unknown:
                raise ValueError(f"步骤 {step.name} 引用了未定义字段: {unknown}")
        for section in self.sections:
            unknown = [f for f in section.referenced_fields() if f not in known]
            if unknown:
                raise ValueError(f"版面分区引用了未定义字段: {unknown}")
        shown = self.displayed_fields()
        hidden = [f for f in self.required_fields() if f not in shown]
        if hidden:
            raise ValueError(f"必填字段未出现在版面中: {hidden}")
        return self

    def required_fields(self) -> list[str]:
        return [name for name, rule in self.fields.items() if rule.required]

    def displayed_fields(self) -> set[str]:
        shown = set(self.header_fields)
        if self.subtitle_field:
            shown.add(self.subtitle_field)
        for section in self.sections:
            shown.update(section.referenced_fields())
        return shown

    def get_rule(self, name: str) -> FieldRule | None:
        return self.fields.get(name)


class DocumentSpec(BaseModel):
    """文档规范（document_spec.yaml 的结构化表示）"""
    schema_version: str

    document_types: dict[str, DocumentTypeSpec] = Field(default_factory=dict)

    # 内置模板（原始数据，由 catalog.builtin 解析）
    builtin_templates: dict[str, Any] = Field(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        for name, doc_type in self.document_types.items():
            doc_type.name = name

    def get_document_type(self, name: str) -> DocumentTypeSpec:
        """获取文档类型规范"""
        try:
            return self.document_types[name]
        except KeyError:
            raise SpecError(f"未知文档类型: {name}") from None

    def document_type_names(self) -> list[str]:
        return list(self.document_types)

    def get_builtin_templates(self) -> dict[str, Any]:
        """获取内置模板原始配置"""
        return self.builtin_templates


class SpecLoader:
    """规范加载器（单例模式+缓存）"""

    _instance: SpecLoader | None = None

    def __new__(cls) -> SpecLoader:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    @lru_cache(maxsize=4)
    def load(cls, spec_path: str | Path = DEFAULT_SPEC_PATH) -> DocumentSpec:
        """加载并缓存规范"""
        path = Path(spec_path)
        if not path.exists():
            raise FileNotFoundError(f"规范文件不存在: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        try:
            return DocumentSpec(**data)
        except ValidationError as e:
            raise SpecError(f"规范文件无效: {path}: {e}") from e

    @classmethod
    def reload(cls, spec_path: str | Path = DEFAULT_SPEC_PATH) -> DocumentSpec:
        """强制重新加载（清除缓存）"""
        cls.load.cache_clear()
        return cls.load(spec_path)


# 便捷函数
def load_spec(spec_path: str | Path = DEFAULT_SPEC_PATH) -> DocumentSpec:
    """加载文档规范"""
    return SpecLoader.load(spec_path)
