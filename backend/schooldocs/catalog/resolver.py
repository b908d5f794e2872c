"""
模板目录 - 远端优先、内置兜底的两级解析

规则：
1. 远端可用：远端模板按远端顺序在前，同 id 以远端为准，
   未被覆盖的内置模板追加在后（source="merged"）
2. 远端条目无效：跳过并告警，不影响其余条目
3. 远端不可用/未配置：只用内置集合（source="builtin"）

测试要点：
- test_resolve_builtin_without_remote: 无远端
- test_remote_overrides_builtin: 同 id 远端优先
- test_network_error_falls_back: 网络错误兜底
- test_invalid_remote_entry_skipped: 无效条目跳过
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

from pydantic import ValidationError

from ..interfaces import ITemplateSource, TemplateFetchError
from ..models import TemplateDescriptor, TemplateType
from .builtin import BuiltinTemplateSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogResult:
    """模板解析结果"""
    templates: list[TemplateDescriptor] = field(default_factory=list)
    source: Literal["builtin", "merged"] = "builtin"
    version: str = ""

    def ids(self) -> list[str]:
        return [t.id for t in self.templates]


class TemplateCatalog:
    """模板目录"""

    def __init__(self, remote: ITemplateSource | None = None, builtin: BuiltinTemplateSet | None = None):
        self.remote = remote
        self.builtin = builtin or BuiltinTemplateSet.from_spec()

    def _fetch_remote(self) -> list[TemplateDescriptor] | None:
        if self.remote is None:
            return None
        try:
            raw = self.remote.list_templates()
        except TemplateFetchError as e:
            logger.warning(f"远端模板目录不可用，使用内置模板 {self.builtin.version}: {e}")
            return None

        templates = []
        for index, item in enumerate(raw):
            try:
                templates.append(TemplateDescriptor.model_validate(item))
            except ValidationError as e:
                logger.warning(f"跳过无效的远端模板 #{index}: {e.error_count()} 个错误")
        return templates

    def resolve(self, document_type: str | None = None) -> CatalogResult:
        """解析可用模板（可按文档类型过滤）"""
        remote = self._fetch_remote()
        if remote is None:
            templates = list(self.builtin.templates)
            source = "builtin"
        else:
            remote_ids = {t.id for t in remote}
            merged: list[TemplateDescriptor] = []
            seen: set[str] = set()
            for template in remote:
                if template.id in seen:
                    continue
                seen.add(template.id)
                merged.append(template)
            merged.extend(t for t in self.builtin.templates if t.id not in remote_ids)
            templates = merged
            source = "merged"

        if document_type is not None:
            templates = [t for t in templates if t.applies_to(document_type)]
        return CatalogResult(templates=templates, source=source, version=self.builtin.version)

    def get(self, template_id: str, document_type: str | None = None) -> TemplateDescriptor:
        """按 id 获取模板"""
        for template in self.resolve(document_type).templates:
            if template.id == template_id:
                return template
        raise KeyError(f"未知模板: {template_id}")

    def default_for(
        self,
        document_type: str,
        template_type: TemplateType | str = TemplateType.PORTRAIT_SINGLE,
    ) -> TemplateDescriptor:
        """
        文档类型的默认模板

        优先专用模板（document_types 含该类型），其次通用模板；
        没有该版式的模板时，取第一个可用模板并切换版式。
        """
        template_type = TemplateType(template_type)
        candidates = self.resolve(document_type).templates
        if not candidates:
            raise KeyError(f"没有适用于 {document_type} 的模板")

        dedicated = [t for t in candidates if t.document_types]
        for group in (dedicated, candidates):
            for template in group:
                if template.template_type == template_type:
                    return template
        return candidates[0].with_template_type(template_type)
