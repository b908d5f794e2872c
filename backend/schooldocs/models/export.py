"""
导出模型 - 导出任务状态与产物

状态机：IDLE → CAPTURING → ENCODING → READY → IDLE
                    ↘（任一步异常）FAILED → IDLE
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .template import Orientation


class ExportState(str, Enum):
    """导出状态枚举"""
    IDLE = "idle"
    CAPTURING = "capturing"
    ENCODING = "encoding"
    READY = "ready"
    FAILED = "failed"


class ExportProgress(BaseModel):
    """导出进度"""
    stage: str = "IDLE"
    percent: int = 0
    message: str = ""


class ExportJob(BaseModel):
    """单次导出任务"""
    job_id: str = Field(..., description="UUID")
    document_type: str
    template_id: str

    state: ExportState = ExportState.IDLE
    transitions: list[ExportState] = Field(default_factory=lambda: [ExportState.IDLE])
    progress: ExportProgress = Field(default_factory=ExportProgress)

    filename: str | None = None
    flags: list[str] = Field(default_factory=list, description="告警标记")
    errors: list[str] = Field(default_factory=list, description="错误信息")

    created_at: datetime = Field(default_factory=datetime.now)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def mark_state(self, state: ExportState) -> None:
        """记录状态迁移"""
        if state == ExportState.CAPTURING and self.started_at is None:
            self.started_at = datetime.now()
        self.state = state
        self.transitions.append(state)
        self.progress.stage = state.name

    def mark_ready(self, filename: str) -> None:
        """标记为产物就绪"""
        self.filename = filename
        self.finished_at = datetime.now()
        self.progress.percent = 100
        self.mark_state(ExportState.READY)

    def mark_failed(self, error: str) -> None:
        """标记为失败"""
        self.finished_at = datetime.now()
        self.errors.append(error)
        self.mark_state(ExportState.FAILED)

    def add_flag(self, flag: str) -> None:
        """添加告警标记（不中断）"""
        if flag not in self.flags:
            self.flags.append(flag)


class ExportedArtifact(BaseModel):
    """导出产物（与文档模型无后续关联）"""
    filename: str
    data: bytes = Field(repr=False)
    page_count: int
    orientation: Orientation
    page_size: tuple[float, float] = Field(..., description="页面尺寸(pt)")
    image_size: tuple[int, int] = Field(..., description="位图尺寸(px)")
    document_type: str
    template_id: str
    job_id: str
    created_at: datetime = Field(default_factory=datetime.now)
    saved_path: Path | None = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    def save(self, directory: Path) -> Path:
        """写出PDF文件"""
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.filename
        path.write_bytes(self.data)
        self.saved_path = path
        return path


class ExportNotice(BaseModel):
    """导出失败通知（可关闭，可重试）"""
    title: str
    message: str
    detail: str = ""
    retryable: bool = True
    dismissed: bool = False

    def dismiss(self) -> None:
        self.dismissed = True


class PdfInfo(BaseModel):
    """PDF检查结果"""
    page_count: int
    page_sizes: list[tuple[float, float]] = Field(default_factory=list)
    image_sizes: list[tuple[int, int]] = Field(default_factory=list)
    text: str = ""

    @property
    def is_landscape(self) -> bool:
        return all(w > h for w, h in self.page_sizes)

    @property
    def is_portrait(self) -> bool:
        return all(h > w for w, h in self.page_sizes)


class GeneratedDocumentRecord(BaseModel):
    """生成记录（提交给持久化接口的元数据）"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    document_type: str
    template_id: str
    filename: str
    page_count: int
    orientation: Orientation
    fields: dict[str, str] = Field(default_factory=dict, description="标识字段")
    generated_at: datetime = Field(default_factory=datetime.now)
