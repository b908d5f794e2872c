"""
导出阶段定义

职责：
1. 定义导出各阶段的名称、进度区间与对应状态
2. 阶段顺序即导出顺序

测试要点：
- test_stage_progress_ranges: 进度区间连续
- test_stages_cover_export_states: 覆盖导出状态
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..models import ExportState


class StageEnum(str, Enum):
    """导出阶段枚举"""
    CAPTURE = "CAPTURE"
    ENCODE = "ENCODE"
    FINALIZE = "FINALIZE"


@dataclass
class ExportStage:
    """导出阶段"""
    name: str
    state: ExportState
    progress_start: int  # 进度起点（0-100）
    progress_end: int    # 进度终点


# 导出流水线各阶段配置（FINALIZE 在 ENCODING 状态内完成）
EXPORT_STAGES: list[ExportStage] = [
    ExportStage(StageEnum.CAPTURE.value, ExportState.CAPTURING, 0, 45),
    ExportStage(StageEnum.ENCODE.value, ExportState.ENCODING, 45, 90),
    ExportStage(StageEnum.FINALIZE.value, ExportState.ENCODING, 90, 100),
]
