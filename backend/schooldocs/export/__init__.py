"""
导出层 - 位图捕获与PDF编码

包含：
- Rasterizer: 可视树 → 位图
- PDFEncoder: 位图 → PDF；inspect_pdf: PDF检查
- build_filename: 确定性文件名
"""

from .naming import build_filename, slugify
from .pdf_engine import PAGE_FORMATS, PDFEncoder, inspect_pdf, page_size_pt
from .rasterizer import Rasterizer

__all__ = [
    "Rasterizer",
    "PDFEncoder",
    "inspect_pdf",
    "page_size_pt",
    "PAGE_FORMATS",
    "build_filename",
    "slugify",
]
