"""
流水线层 - 会话与导出编排

包含：
- DocumentSession: 编辑/预览/导出入口
- ExportExecutor: 导出状态机
- EXPORT_STAGES: 导出阶段定义
"""

from .executor import ExportExecutor
from .session import DocumentSession
from .stages import EXPORT_STAGES, ExportStage, StageEnum

__all__ = [
    "DocumentSession",
    "ExportExecutor",
    "ExportStage",
    "StageEnum",
    "EXPORT_STAGES",
]
