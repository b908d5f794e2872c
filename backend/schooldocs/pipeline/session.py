"""
文档会话 - 单用户单文档的编辑/预览/导出入口

职责：
1. 持有文档模型与模板描述，逐字段更新
2. 校验结果与预览随模型 revision / 模板描述变化自动重算
3. 分步导航（完成状态由校验结果推导）
4. 校验通过后交给导出执行器

测试要点：
- test_scenario_export_portrait: 最小必填字段导出纵向A4
- test_switch_to_landscape_dual: 切换版式只改变方向与布局
- test_invalid_blocks_export: 校验未通过阻止导出
- test_preview_recomputed_on_change: 预览随修改重算
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Any

from ..catalog import RemoteTemplateSource, TemplateCatalog
from ..config import DocumentSpec, get_config, load_spec
from ..forms import FormValidator, StepNavigator, ValidationReport
from ..interfaces import DocumentValidationError, ITemplateRenderer, UnknownFieldError
from ..models import DocumentModel, ExportedArtifact, TemplateDescriptor, TemplateType
from ..render import RenderedPreview, TemplateRenderer, render_html
from .executor import ExportExecutor

logger = logging.getLogger(__name__)

TEMPLATE_TYPE_KEY = "templateType"
ASSET_NAMES = ("photo", "logo", "signature")


class DocumentSession:
    """文档会话"""

    def __init__(
        self,
        document_type: str,
        descriptor: TemplateDescriptor | str | None = None,
        values: dict[str, Any] | None = None,
        assets: dict[str, bytes] | None = None,
        *,
        spec: DocumentSpec | None = None,
        catalog: TemplateCatalog | None = None,
        renderer: ITemplateRenderer | None = None,
        executor: ExportExecutor | None = None,
        locale: str | None = None,
    ):
        config = get_config()
        self.spec = spec or load_spec()
        self.type_spec = self.spec.get_document_type(document_type)
        self.locale = locale or config.render.locale
        self.catalog = catalog or TemplateCatalog(
            remote=RemoteTemplateSource() if config.catalog.base_url else None,
        )

        if descriptor is None:
            descriptor = self.catalog.default_for(document_type)
        elif isinstance(descriptor, str):
            descriptor = self.catalog.get(descriptor, document_type)
        self.descriptor: TemplateDescriptor = descriptor

        self.validator = FormValidator(self.type_spec, self.locale)
        self.renderer = renderer or TemplateRenderer()
        self.executor = executor or ExportExecutor(spec=self.spec, locale=self.locale)
        self.model = DocumentModel(document_type=document_type)
        self.navigator = StepNavigator(self.type_spec, lambda: self.report)

        self._report: ValidationReport | None = None
        self._report_revision = -1
        self._preview: RenderedPreview | None = None

        if values:
            self.update(**values)
        for name, data in (assets or {}).items():
            self.set_asset(name, data)

    # ------------------------------------------------------------------
    # 编辑
    # ------------------------------------------------------------------

    def set_field(self, name: str, value: Any) -> None:
        """更新单个字段（templateType 切换版式）"""
        if name == TEMPLATE_TYPE_KEY:
            self.select_template_type(value)
            return
        self.validator.check_field(name)
        self.model = self.model.with_value(name, value)

    def update(self, **values: Any) -> None:
        """批量更新字段"""
        template_type = values.pop(TEMPLATE_TYPE_KEY, None)
        for name in values:
            self.validator.check_field(name)
        if values:
            self.model = self.model.with_values(**values)
        if template_type is not None:
            self.select_template_type(template_type)

    def clear_field(self, name: str) -> None:
        self.validator.check_field(name)
        self.model = self.model.without_value(name)

    def set_asset(self, name: str, data: bytes | None) -> None:
        """设置图片资源（photo/logo/signature），None 清除"""
        if name not in ASSET_NAMES:
            raise UnknownFieldError(f"未知图片资源: {name}")
        self.model = self.model.with_asset(name, data)

    def select_template(self, template: TemplateDescriptor | str) -> None:
        if isinstance(template, str):
            template = self.catalog.get(template, self.model.document_type)
        self.descriptor = template

    def select_template_type(self, template_type: TemplateType | str) -> None:
        """切换版式（样式与字段值不变）"""
        self.descriptor = self.descriptor.with_template_type(template_type)

    def set_elements(self, **toggles: bool) -> None:
        """切换装饰元素（show_watermark/show_qr/...）"""
        self.descriptor = self.descriptor.with_elements(**toggles)

    # ------------------------------------------------------------------
    # 派生
    # ------------------------------------------------------------------

    @property
    def report(self) -> ValidationReport:
        """当前校验结果（按 revision 缓存）"""
        if self._report is None or self._report_revision != self.model.revision:
            self._report = self.validator.validate(self.model)
            self._report_revision = self.model.revision
        return self._report

    @property
    def can_export(self) -> bool:
        return self.report.can_export

    @property
    def preview(self) -> RenderedPreview:
        """当前预览（模型或模板描述变化时重算）"""
        cached = self._preview
        if (
            cached is None
            or cached.model_revision != self.model.revision
            or cached.descriptor != self.descriptor
        ):
            tree = self.renderer.render(self.model, self.descriptor, self.type_spec)
            language = self.descriptor.design.language
            html = render_html(tree, lang="bn" if language == "both" else language)
            self._preview = RenderedPreview(tree=tree, html=html, model=self.model, descriptor=self.descriptor)
            logger.debug(f"预览已重算: {self.model.document_type} rev={self.model.revision}")
        return self._preview

    # ------------------------------------------------------------------
    # 导出
    # ------------------------------------------------------------------

    def _require_valid(self) -> None:
        report = self.report
        if not report.can_export:
            fields = ", ".join(sorted(report.errors))
            raise DocumentValidationError(f"表单校验未通过，无法导出: {fields}", report)

    def export(self) -> ExportedArtifact | None:
        """
        导出当前预览

        Returns:
            导出产物；已有导出在进行时返回 None

        Raises:
            DocumentValidationError: 表单校验未通过
            ExportError: 捕获/编码失败
        """
        self._require_valid()
        return self.executor.export(self.preview)

    def export_async(self) -> Future | None:
        self._require_valid()
        return self.executor.export_async(self.preview)
