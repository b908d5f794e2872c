"""
PDF编码引擎单元测试

每个模块完成后必须运行：pytest tests/unit/test_pdf_engine.py -v
"""

import pytest

from schooldocs.export import PDFEncoder, Rasterizer, inspect_pdf, page_size_pt
from schooldocs.interfaces import EncodeError
from schooldocs.models import DocumentModel, Orientation
from schooldocs.render import TemplateRenderer


@pytest.fixture
def rasterizer() -> Rasterizer:
    return Rasterizer(scale=1.0)


def _encode(model, descriptor, rasterizer, **kwargs):
    tree = TemplateRenderer().render(model, descriptor)
    bitmap = rasterizer.capture(tree)
    data = PDFEncoder(**kwargs).encode(bitmap, tree, descriptor)
    return tree, bitmap, data


class TestPageSize:
    """纸张尺寸测试"""

    def test_a4_portrait(self):
        w, h = page_size_pt("A4", Orientation.PORTRAIT)
        assert (round(w), round(h)) == (595, 842)

    def test_a4_landscape(self):
        w, h = page_size_pt("a4", Orientation.LANDSCAPE)
        assert w > h

    def test_unsupported_format_raises(self):
        with pytest.raises(EncodeError):
            page_size_pt("B5", Orientation.PORTRAIT)


class TestPDFEncoder:
    """PDF编码测试"""

    def test_encode_portrait_a4(self, admit_model, portrait_descriptor, rasterizer):
        """测试纵向A4"""
        _, bitmap, data = _encode(admit_model, portrait_descriptor, rasterizer)
        assert data.startswith(b"%PDF")

        info = inspect_pdf(data)
        assert info.page_count == 1
        assert info.is_portrait
        assert info.page_sizes[0] == pytest.approx((595.27, 841.89), abs=0.1)
        assert info.image_sizes[0] == bitmap.size

    def test_encode_landscape_page(self, admit_model, dual_descriptor, rasterizer):
        """测试横向页宽大于页高"""
        _, _, data = _encode(admit_model, dual_descriptor, rasterizer)
        info = inspect_pdf(data)
        assert info.page_count == 1
        assert info.is_landscape

    def test_text_layer_extractable(self, admit_model, portrait_descriptor, rasterizer):
        """测试文字层可提取"""
        _, _, data = _encode(admit_model, portrait_descriptor, rasterizer)
        text = inspect_pdf(data).text
        assert "Rahim Uddin" in text
        assert "123456" in text

    def test_text_layer_disabled(self, admit_model, portrait_descriptor, rasterizer):
        _, _, data = _encode(admit_model, portrait_descriptor, rasterizer, text_layer=False)
        assert inspect_pdf(data).text.strip() == ""

    def test_multipage(self, standard_descriptor, rasterizer):
        model = DocumentModel(
            document_type="exam_paper",
            values={
                "schoolName": "Dhaka Model High School",
                "subject": "General Science",
                "className": "8",
                "duration": "3 hours",
                "questions": [{"question": f"Question number {i + 1}", "marks": 1} for i in range(80)],
            },
        )
        tree, _, data = _encode(model, standard_descriptor, rasterizer)
        info = inspect_pdf(data)
        assert tree.page_count >= 2
        assert info.page_count == tree.page_count
        assert len(info.image_sizes) == tree.page_count

    def test_orientation_mismatch_raises(self, admit_model, portrait_descriptor, landscape_descriptor, rasterizer):
        """测试方向不一致"""
        tree = TemplateRenderer().render(admit_model, portrait_descriptor)
        bitmap = rasterizer.capture(tree)
        with pytest.raises(EncodeError):
            PDFEncoder().encode(bitmap, tree, landscape_descriptor)

    def test_unsupported_descriptor_format(self, admit_model, portrait_descriptor, rasterizer):
        descriptor = portrait_descriptor.model_copy(update={"page_format": "B5"})
        tree = TemplateRenderer().render(admit_model, descriptor)
        bitmap = rasterizer.capture(tree)
        with pytest.raises(EncodeError):
            PDFEncoder().encode(bitmap, tree, descriptor)

    def test_missing_text_layer_font_falls_back(self, temp_dir):
        encoder = PDFEncoder(text_layer_font=temp_dir / "missing.ttf")
        assert encoder.font_name == "Helvetica"

    def test_inspect_invalid_pdf(self):
        with pytest.raises(EncodeError):
            inspect_pdf(b"not a pdf")
