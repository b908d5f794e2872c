"""
导出文件名 - 按文档类型的 filename 规则确定性生成

例：["admit-card", "{rollNumber}", "{year}"] → admit-card-123456-2025.pdf
空片段跳过，非安全字符替换为连字符。
"""

from __future__ import annotations

import re
import unicodedata

from ..config import DocumentTypeSpec
from ..models import DocumentModel
from ..render.derivation import DerivationEngine, to_ascii_digits
from ..render.renderer import display_value

_PLACEHOLDER = re.compile(r"\{(\w+)\}")
_UNSAFE = re.compile(r"[^A-Za-z0-9]+")


def slugify(value: str) -> str:
    """转为文件名安全片段（ASCII 小写，连字符分隔）"""
    value = unicodedata.normalize("NFKD", to_ascii_digits(value))
    value = value.encode("ascii", "ignore").decode("ascii")
    return _UNSAFE.sub("-", value).strip("-").lower()


def build_filename(model: DocumentModel, type_spec: DocumentTypeSpec, extension: str = "pdf") -> str:
    """生成导出文件名（同一模型总是得到相同文件名）"""
    year = DerivationEngine().derive_year(model, type_spec)

    def substitute(match: re.Match) -> str:
        name = match.group(1)
        if name == "year":
            return str(year) if year is not None else ""
        return display_value(model.get(name)) or ""

    parts = []
    for part in type_spec.filename:
        slug = slugify(_PLACEHOLDER.sub(substitute, part))
        if slug:
            parts.append(slug)
    if not parts:
        parts.append(slugify(model.document_type) or "document")
    return f"{'-'.join(parts)}.{extension}"
