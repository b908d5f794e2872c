"""
渲染层 - 文档模型 → 可视树 → 预览HTML

包含：
- TemplateRenderer / render: 布局与装饰
- resolve_style: 纯函数样式解析
- DerivationEngine: 成绩/金额/年份派生
- render_html / RenderedPreview: 实时预览
"""

from .derivation import DerivationEngine, DerivedValues, parse_money, to_ascii_digits
from .html import RenderedPreview, render_html
from .renderer import TemplateRenderer, page_size_mm, render
from .styles import resolve_style

__all__ = [
    "TemplateRenderer",
    "render",
    "page_size_mm",
    "resolve_style",
    "DerivationEngine",
    "DerivedValues",
    "parse_money",
    "to_ascii_digits",
    "RenderedPreview",
    "render_html",
]
