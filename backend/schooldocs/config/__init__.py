"""
配置层 - 加载文档规范与运行期配置

职责：
- 加载 resources/document_spec.yaml（文档类型规范+内置模板）
- 加载 config/schooldocs.yaml（运行期参数）
- 提供类型安全的配置访问接口
"""

from .messages import get_message, load_messages
from .runtime_config import RuntimeConfig, configure_logging, get_config, reload_config
from .spec_loader import (
    DocumentSpec,
    DocumentTypeSpec,
    FieldRule,
    SectionSpec,
    SpecLoader,
    StepSpec,
    load_spec,
    localize,
)

__all__ = [
    "SpecLoader",
    "DocumentSpec",
    "DocumentTypeSpec",
    "FieldRule",
    "SectionSpec",
    "StepSpec",
    "load_spec",
    "localize",
    "RuntimeConfig",
    "configure_logging",
    "get_config",
    "reload_config",
    "get_message",
    "load_messages",
]
