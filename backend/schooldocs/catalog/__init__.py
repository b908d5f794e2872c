"""
模板目录层 - 内置模板集合 + 远端目录 + 生成记录
"""

from .builtin import BuiltinTemplateSet
from .remote import RecordClient, RemoteTemplateSource
from .resolver import CatalogResult, TemplateCatalog

__all__ = [
    "BuiltinTemplateSet",
    "RemoteTemplateSource",
    "RecordClient",
    "TemplateCatalog",
    "CatalogResult",
]
