"""
内置模板集合 - 远端目录不可用时的兜底

数据来自 document_spec.yaml 的 builtin_templates，带版本号。
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..config import DocumentSpec, load_spec
from ..interfaces import SpecError
from ..models import TemplateDescriptor


@dataclass(frozen=True)
class BuiltinTemplateSet:
    """版本化的内置模板集合"""
    version: str
    templates: list[TemplateDescriptor] = field(default_factory=list)

    @classmethod
    def from_spec(cls, spec: DocumentSpec | None = None) -> BuiltinTemplateSet:
        spec = spec or load_spec()
        raw = spec.get_builtin_templates()
        version = str(raw.get("version", "0"))
        try:
            templates = [
                TemplateDescriptor.model_validate({**item, "version": version})
                for item in raw.get("templates", [])
            ]
        except ValueError as e:
            raise SpecError(f"内置模板无效: {e}") from e
        return cls(version=version, templates=templates)

    def ids(self) -> list[str]:
        return [t.id for t in self.templates]

    def get(self, template_id: str) -> TemplateDescriptor | None:
        for template in self.templates:
            if template.id == template_id:
                return template
        return None
