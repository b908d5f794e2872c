"""
PDF编码引擎 - 位图 → PDF（reportlab），PDF检查（pdfplumber）

职责：
1. 按模板描述确定页面尺寸与方向（A4/A5/LETTER/LEGAL）
2. 位图按页切片后整页嵌入
3. 叠加不可见文字层（渲染模式3），PDF 中可检索字段文字
4. PDF检查：页数/页面尺寸/内嵌图片尺寸/文字

依赖：
- reportlab: PDF生成
- pdfplumber: PDF读取

测试要点：
- test_encode_portrait_a4: 纵向A4
- test_encode_landscape_page: 横向页宽大于页高
- test_unsupported_format_raises: 不支持的纸张格式
- test_orientation_mismatch_raises: 方向不一致
- test_text_layer_extractable: 文字层可提取
"""

from __future__ import annotations

import io
import logging
import math
from pathlib import Path

import pdfplumber
from PIL import Image
from reportlab.lib.pagesizes import A4, A5, LEGAL, LETTER, landscape, portrait
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from ..config import get_config
from ..interfaces import EncodeError, IPDFEncoder
from ..models import Orientation, PdfInfo, TemplateDescriptor, VisualTree

logger = logging.getLogger(__name__)

PAGE_FORMATS: dict[str, tuple[float, float]] = {
    "A4": A4,
    "A5": A5,
    "LETTER": LETTER,
    "LEGAL": LEGAL,
}

PT_TO_MM = 25.4 / 72
PAD_MM = 1.2
TEXT_LAYER_FONT = "Helvetica"
_TTF_NAME = "SchoolDocsTextLayer"


def page_size_pt(page_format: str, orientation: Orientation) -> tuple[float, float]:
    """纸张尺寸(pt)"""
    size = PAGE_FORMATS.get(page_format.upper())
    if size is None:
        raise EncodeError(f"不支持的纸张格式: {page_format}")
    return landscape(size) if orientation == Orientation.LANDSCAPE else portrait(size)


def inspect_pdf(data: bytes) -> PdfInfo:
    """读取PDF页数/页面尺寸/内嵌图片尺寸/文字"""
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            page_sizes = []
            image_sizes = []
            texts = []
            for page in pdf.pages:
                page_sizes.append((float(page.width), float(page.height)))
                for img in page.images:
                    w, h = img.get("srcsize", (0, 0))
                    image_sizes.append((int(w), int(h)))
                texts.append(page.extract_text() or "")
            return PdfInfo(
                page_count=len(pdf.pages),
                page_sizes=page_sizes,
                image_sizes=image_sizes,
                text="\n".join(texts),
            )
    except Exception as e:
        raise EncodeError(f"PDF检查失败: {e}") from e


class PDFEncoder(IPDFEncoder):
    """PDF编码器实现"""

    def __init__(self, text_layer: bool | None = None, text_layer_font: Path | None = None):
        config = get_config()
        self.text_layer = text_layer if text_layer is not None else config.export.text_layer
        self.font_name = self._register_font(text_layer_font or config.export.text_layer_font)

    @staticmethod
    def _register_font(path: Path | None) -> str:
        """注册文字层字体（未配置或不存在时使用 Helvetica）"""
        if path is None:
            return TEXT_LAYER_FONT
        if not Path(path).exists():
            logger.warning(f"文字层字体不存在，使用 {TEXT_LAYER_FONT}: {path}")
            return TEXT_LAYER_FONT
        if _TTF_NAME not in pdfmetrics.getRegisteredFontNames():
            pdfmetrics.registerFont(TTFont(_TTF_NAME, str(path)))
        return _TTF_NAME

    def encode(self, bitmap: Image.Image, tree: VisualTree, descriptor: TemplateDescriptor) -> bytes:
        """位图嵌入PDF，返回PDF字节"""
        if tree.orientation != descriptor.orientation:
            raise EncodeError(
                f"方向不一致: 可视树为 {tree.orientation.value}，模板为 {descriptor.orientation.value}"
            )
        page_w, page_h = page_size_pt(descriptor.page_format, descriptor.orientation)

        try:
            buffer = io.BytesIO()
            pdf = canvas.Canvas(buffer, pagesize=(page_w, page_h))
            pdf.setTitle(f"{tree.document_type} ({tree.template_id})")

            for index, page in enumerate(self._slice_pages(bitmap, tree)):
                pdf.drawImage(ImageReader(page), 0, 0, width=page_w, height=page_h)
                if self.text_layer:
                    self._draw_text_layer(pdf, tree, index, page_h)
                pdf.showPage()

            pdf.save()
            return buffer.getvalue()
        except EncodeError:
            raise
        except Exception as e:
            raise EncodeError(f"PDF编码失败: {e}") from e

    def inspect(self, data: bytes) -> PdfInfo:
        return inspect_pdf(data)

    def _slice_pages(self, bitmap: Image.Image, tree: VisualTree) -> list[Image.Image]:
        """按页高切分位图"""
        count = tree.page_count
        pages = []
        for index in range(count):
            top = round(index * bitmap.height / count)
            bottom = round((index + 1) * bitmap.height / count)
            if top >= bitmap.height:
                raise EncodeError(f"位图高度不足: 第 {index + 1} 页超出位图范围")
            pages.append(bitmap.crop((0, top, bitmap.width, bottom)))
        return pages

    def _printable(self, text: str) -> str:
        if self.font_name != TEXT_LAYER_FONT:
            return text
        # 标准字体只覆盖 Latin-1
        return text.encode("latin-1", "ignore").decode("latin-1")

    def _draw_text_layer(self, pdf: canvas.Canvas, tree: VisualTree, page_index: int, page_h: float) -> None:
        """不可见文字层（渲染模式3，水印不写入）"""
        for node in tree.nodes:
            if node.kind != "text" or not node.text or node.layer == "watermark":
                continue
            if math.floor(node.y / tree.page_height) != page_index:
                continue
            size = node.style.font_size
            leading = size * 1.35
            local_y = node.y - page_index * tree.page_height
            baseline = page_h - (local_y + PAD_MM + size * PT_TO_MM) * mm

            text_obj = pdf.beginText()
            text_obj.setTextRenderMode(3)
            text_obj.setFont(self.font_name, size, leading)
            text_obj.setTextOrigin((node.x + PAD_MM) * mm, baseline)
            for line in node.text.split("\n"):
                printable = self._printable(line)
                if printable.strip():
                    text_obj.textLine(printable)
                else:
                    text_obj.moveCursor(0, leading)
            pdf.drawText(text_obj)
