"""
数据模型单元测试

每个模块完成后必须运行：pytest tests/unit/test_models.py -v
"""

import pytest
from pydantic import ValidationError

from schooldocs.models import (
    DocumentModel,
    ExportedArtifact,
    ExportJob,
    ExportNotice,
    ExportState,
    GeneratedDocumentRecord,
    Orientation,
    PdfInfo,
    TemplateDescriptor,
    TemplateType,
    VisualNode,
    VisualTree,
)


class TestDocumentModel:
    """文档模型测试"""

    def test_with_value_returns_new_instance(self, admit_model: DocumentModel):
        """测试更新返回新实例并递增 revision"""
        updated = admit_model.with_value("section", "B")
        assert updated is not admit_model
        assert updated.get("section") == "B"
        assert admit_model.get("section") is None
        assert updated.revision == admit_model.revision + 1

    def test_without_value(self, admit_model: DocumentModel):
        updated = admit_model.without_value("className")
        assert "className" not in updated.values
        assert updated.revision == admit_model.revision + 1

    def test_with_asset(self, admit_model: DocumentModel, png_bytes: bytes):
        with_photo = admit_model.with_asset("photo", png_bytes)
        assert with_photo.assets["photo"] == png_bytes
        assert "photo" not in with_photo.with_asset("photo", None).assets

    def test_frozen(self, admit_model: DocumentModel):
        with pytest.raises(ValidationError):
            admit_model.revision = 5


class TestTemplateDescriptor:
    """模板描述测试"""

    def test_parse_camel_case_payload(self):
        """测试解析远端 camelCase 数据"""
        descriptor = TemplateDescriptor.model_validate({
            "id": "remote-1",
            "templateType": "landscape_dual",
            "documentTypes": ["admit_card"],
            "design": {
                "layout": "compact",
                "language": "bn",
                "elements": {"showWatermark": True, "showQR": True},
            },
        })
        assert descriptor.template_type == TemplateType.LANDSCAPE_DUAL
        assert descriptor.elements.show_watermark is True
        assert descriptor.elements.show_qr is True
        assert descriptor.design.language == "bn"

    @pytest.mark.parametrize(
        "template_type,orientation,panels",
        [
            ("portrait_single", Orientation.PORTRAIT, 1),
            ("landscape_single", Orientation.LANDSCAPE, 1),
            ("landscape_dual", Orientation.LANDSCAPE, 2),
        ],
    )
    def test_orientation_derived(self, template_type, orientation, panels):
        """测试方向由版式推导"""
        descriptor = TemplateDescriptor(id="t", template_type=template_type)
        assert descriptor.orientation == orientation
        assert descriptor.panel_count == panels

    def test_with_template_type_keeps_design(self, portrait_descriptor: TemplateDescriptor):
        """测试切换版式不改变样式"""
        switched = portrait_descriptor.with_template_type("landscape_dual")
        assert switched.orientation == Orientation.LANDSCAPE
        assert switched.design == portrait_descriptor.design
        assert portrait_descriptor.template_type == TemplateType.PORTRAIT_SINGLE

    def test_with_elements(self, portrait_descriptor: TemplateDescriptor):
        toggled = portrait_descriptor.with_elements(show_watermark=False)
        assert toggled.elements.show_watermark is False
        assert portrait_descriptor.elements.show_watermark is True

    def test_invalid_color_rejected(self):
        with pytest.raises(ValidationError):
            TemplateDescriptor.model_validate({"id": "x", "design": {"colors": {"primary": "blue"}}})

    def test_applies_to(self, portrait_descriptor, standard_descriptor):
        assert portrait_descriptor.applies_to("admit_card")
        assert not portrait_descriptor.applies_to("marksheet")
        assert standard_descriptor.applies_to("marksheet")

    def test_with_design(self, portrait_descriptor: TemplateDescriptor):
        changed = portrait_descriptor.with_design(language="en", layout="compact")
        assert changed.design.language == "en"
        assert changed.design.layout == "compact"
        assert changed.elements == portrait_descriptor.elements


class TestVisualTree:
    """可视树测试"""

    def _tree(self, content_height: float) -> VisualTree:
        return VisualTree(
            document_type="admit_card",
            template_id="t",
            orientation=Orientation.PORTRAIT,
            page_width=210,
            page_height=297,
            content_height=content_height,
            nodes=[
                VisualNode(kind="text", x=0, y=0, w=10, h=5, text="A", field="studentName"),
                VisualNode(kind="text", x=0, y=5, w=10, h=5, text="", empty=True, field="section"),
            ],
        )

    def test_page_count(self):
        assert self._tree(297).page_count == 1
        assert self._tree(300).page_count == 2
        assert self._tree(300).total_height == 594

    def test_texts_skip_empty(self):
        assert self._tree(297).texts() == ["A"]

    def test_find(self):
        assert self._tree(297).find("section")[0].empty is True


class TestExportJob:
    """导出任务测试"""

    def test_mark_ready(self):
        job = ExportJob(job_id="j1", document_type="admit_card", template_id="t")
        job.mark_state(ExportState.CAPTURING)
        job.mark_state(ExportState.ENCODING)
        job.mark_ready("admit-card-1.pdf")
        assert job.state == ExportState.READY
        assert job.progress.percent == 100
        assert job.started_at is not None
        assert job.transitions == [
            ExportState.IDLE,
            ExportState.CAPTURING,
            ExportState.ENCODING,
            ExportState.READY,
        ]

    def test_mark_failed(self):
        job = ExportJob(job_id="j1", document_type="admit_card", template_id="t")
        job.mark_failed("boom")
        assert job.state == ExportState.FAILED
        assert job.errors == ["boom"]

    def test_add_flag_deduplicates(self):
        job = ExportJob(job_id="j1", document_type="admit_card", template_id="t")
        job.add_flag("记录提交失败")
        job.add_flag("记录提交失败")
        assert job.flags == ["记录提交失败"]


class TestExportModels:
    """导出产物/通知/检查结果测试"""

    def test_artifact_save(self, temp_dir):
        artifact = ExportedArtifact(
            filename="admit-card-1.pdf",
            data=b"%PDF-1.4",
            page_count=1,
            orientation=Orientation.PORTRAIT,
            page_size=(595.0, 842.0),
            image_size=(1587, 2245),
            document_type="admit_card",
            template_id="t",
            job_id="j1",
        )
        path = artifact.save(temp_dir / "out")
        assert path.read_bytes() == b"%PDF-1.4"
        assert artifact.saved_path == path
        assert artifact.size_bytes == 8

    def test_notice_dismiss(self):
        notice = ExportNotice(title="t", message="m")
        assert notice.retryable is True
        notice.dismiss()
        assert notice.dismissed is True

    def test_pdf_info_orientation(self):
        assert PdfInfo(page_count=1, page_sizes=[(842.0, 595.0)]).is_landscape
        assert PdfInfo(page_count=1, page_sizes=[(595.0, 842.0)]).is_portrait

    def test_record_serialized_camel_case(self):
        record = GeneratedDocumentRecord(
            document_type="admit_card",
            template_id="classic-portrait",
            filename="admit-card-1.pdf",
            page_count=1,
            orientation=Orientation.PORTRAIT,
        )
        payload = record.model_dump(mode="json", by_alias=True)
        assert payload["documentType"] == "admit_card"
        assert payload["templateId"] == "classic-portrait"
        assert payload["orientation"] == "portrait"

