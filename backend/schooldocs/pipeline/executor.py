"""
导出执行器 - 预览 → 位图 → PDF 的状态机

状态：IDLE → CAPTURING → ENCODING → READY → IDLE
      任一步异常：→ FAILED → IDLE（保留一条可关闭的失败通知）

职责：
1. 按阶段执行导出（捕获/编码/收尾）并记录状态迁移
2. 同一时间只允许一个导出在进行，重复触发直接忽略
3. 失败时生成本地化通知，异常抛给调用方（同步）或设置到 future（异步）
4. 收尾：检查PDF、按配置落盘、提交生成记录（提交失败只记标记）

测试要点：
- test_export_state_transitions: 状态迁移
- test_duplicate_trigger_collapsed: 重复触发
- test_failure_returns_to_idle: 失败回到 IDLE 并生成通知
- test_export_twice_independent: 重复导出互相独立
"""

from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from ..catalog import RecordClient
from ..config import DocumentSpec, get_config, get_message, load_spec
from ..export import PDFEncoder, Rasterizer, build_filename
from ..interfaces import (
    CaptureError,
    EncodeError,
    ExportError,
    IPDFEncoder,
    IRasterizer,
    IRecordSink,
    RecordSubmitError,
)
from ..models import (
    ExportedArtifact,
    ExportJob,
    ExportNotice,
    ExportState,
    GeneratedDocumentRecord,
    Orientation,
)
from ..render.renderer import display_value
from .stages import EXPORT_STAGES, ExportStage, StageEnum

if TYPE_CHECKING:
    from ..render.html import RenderedPreview

logger = logging.getLogger(__name__)


class ExportExecutor:
    """导出执行器"""

    def __init__(
        self,
        rasterizer: IRasterizer | None = None,
        encoder: IPDFEncoder | None = None,
        record_sink: IRecordSink | None = None,
        output_dir: Path | None = None,
        locale: str | None = None,
        spec: DocumentSpec | None = None,
        on_state: Callable[[ExportState], None] | None = None,
    ):
        self.config = get_config()
        self.spec = spec or load_spec()
        self.rasterizer = rasterizer or Rasterizer()
        self.encoder = encoder or PDFEncoder()
        self.record_sink = record_sink if record_sink is not None else self._default_record_sink()
        self.output_dir = output_dir if output_dir is not None else self.config.export.output_dir
        self.locale = locale or self.config.render.locale
        self.on_state = on_state

        self._lock = threading.Lock()
        self._pool: ThreadPoolExecutor | None = None
        self._state = ExportState.IDLE

        self.jobs: list[ExportJob] = []
        self.notice: ExportNotice | None = None
        self.last_artifact: ExportedArtifact | None = None

    def _default_record_sink(self) -> IRecordSink | None:
        if not self.config.catalog.base_url:
            return None
        return RecordClient()

    # ------------------------------------------------------------------
    # 状态
    # ------------------------------------------------------------------

    @property
    def state(self) -> ExportState:
        return self._state

    @property
    def can_trigger(self) -> bool:
        """当前是否可以触发导出"""
        return not self._lock.locked()

    @property
    def last_job(self) -> ExportJob | None:
        return self.jobs[-1] if self.jobs else None

    def _transition(self, job: ExportJob, state: ExportState) -> None:
        self._state = state
        job.mark_state(state)
        if self.on_state:
            self.on_state(state)

    def dismiss_notice(self) -> None:
        if self.notice:
            self.notice.dismiss()

    # ------------------------------------------------------------------
    # 触发
    # ------------------------------------------------------------------

    def export(self, preview: RenderedPreview) -> ExportedArtifact | None:
        """
        同步导出当前预览

        Returns:
            导出产物；已有导出在进行时返回 None

        Raises:
            ExportError: 捕获/编码失败（状态已回到 IDLE）
        """
        if not self._lock.acquire(blocking=False):
            logger.info("已有导出在进行，忽略本次触发")
            return None
        try:
            return self._run(preview)
        finally:
            self._lock.release()

    def export_async(self, preview: RenderedPreview) -> Future | None:
        """在单工作线程中导出；已有导出在进行时返回 None"""
        if not self._lock.acquire(blocking=False):
            logger.info("已有导出在进行，忽略本次触发")
            return None
        try:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self.config.export.max_workers,
                    thread_name_prefix="schooldocs-export",
                )
            return self._pool.submit(self._run_and_release, preview)
        except RuntimeError:
            self._lock.release()
            raise

    def _run_and_release(self, preview: RenderedPreview) -> ExportedArtifact:
        try:
            return self._run(preview)
        finally:
            self._lock.release()

    def shutdown(self, wait: bool = True) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=wait)
            self._pool = None

    # ------------------------------------------------------------------
    # 执行
    # ------------------------------------------------------------------

    def _run(self, preview: RenderedPreview) -> ExportedArtifact:
        descriptor = preview.descriptor
        job = ExportJob(
            job_id=str(uuid.uuid4()),
            document_type=preview.model.document_type,
            template_id=descriptor.id,
        )
        self.jobs.append(job)
        self.notice = None
        context: dict[str, Any] = {"preview": preview}

        logger.info(f"[{job.job_id}] 开始导出: {job.document_type}/{job.template_id}")
        try:
            for stage in EXPORT_STAGES:
                self._execute_stage(job, stage, context)
        except ExportError as e:
            self._fail(job, e)
            raise
        except Exception as e:
            error = ExportError(f"导出失败: {e}")
            self._fail(job, error)
            raise error from e

        artifact: ExportedArtifact = context["artifact"]
        job.mark_ready(artifact.filename)
        self._state = ExportState.READY
        if self.on_state:
            self.on_state(ExportState.READY)
        self.last_artifact = artifact
        logger.info(f"[{job.job_id}] 导出完成: {artifact.filename} ({artifact.page_count}页)")

        self._transition(job, ExportState.IDLE)
        return artifact

    def _fail(self, job: ExportJob, error: Exception) -> None:
        logger.error(f"[{job.job_id}] 导出失败: {error}")
        job.mark_failed(str(error))
        self._state = ExportState.FAILED
        if self.on_state:
            self.on_state(ExportState.FAILED)
        self.notice = ExportNotice(
            title=get_message("export_failed_title", self.locale),
            message=get_message("export_failed", self.locale),
            detail=str(error),
        )
        self._transition(job, ExportState.IDLE)

    def _execute_stage(self, job: ExportJob, stage: ExportStage, context: dict[str, Any]) -> None:
        """执行单个阶段"""
        if job.state != stage.state:
            self._transition(job, stage.state)
        job.progress.percent = stage.progress_start
        logger.debug(f"[{job.job_id}] 开始阶段: {stage.name}")

        if stage.name == StageEnum.CAPTURE.value:
            self._stage_capture(job, context)
        elif stage.name == StageEnum.ENCODE.value:
            self._stage_encode(job, context)
        elif stage.name == StageEnum.FINALIZE.value:
            self._stage_finalize(job, context)

        job.progress.percent = stage.progress_end

    def _stage_capture(self, job: ExportJob, context: dict[str, Any]) -> None:
        """可视树 → 位图"""
        preview: RenderedPreview = context["preview"]
        try:
            context["bitmap"] = self.rasterizer.capture(preview.tree)
        except CaptureError:
            raise
        except Exception as e:
            raise CaptureError(f"位图捕获失败: {e}") from e

    def _stage_encode(self, job: ExportJob, context: dict[str, Any]) -> None:
        """位图 → PDF"""
        preview: RenderedPreview = context["preview"]
        try:
            context["pdf"] = self.encoder.encode(context["bitmap"], preview.tree, preview.descriptor)
        except EncodeError:
            raise
        except Exception as e:
            raise EncodeError(f"PDF编码失败: {e}") from e

    def _stage_finalize(self, job: ExportJob, context: dict[str, Any]) -> None:
        """检查PDF、生成文件名、落盘、提交记录"""
        preview: RenderedPreview = context["preview"]
        model = preview.model
        descriptor = preview.descriptor
        type_spec = self.spec.get_document_type(model.document_type)
        data: bytes = context["pdf"]

        info = self.encoder.inspect(data)
        page_w, page_h = info.page_sizes[0]
        expected = descriptor.orientation
        actual = Orientation.LANDSCAPE if page_w > page_h else Orientation.PORTRAIT
        if actual != expected:
            raise EncodeError(f"PDF方向与模板不一致: {actual.value} != {expected.value}")

        bitmap = context["bitmap"]
        artifact = ExportedArtifact(
            filename=build_filename(model, type_spec),
            data=data,
            page_count=info.page_count,
            orientation=expected,
            page_size=(page_w, page_h),
            image_size=bitmap.size,
            document_type=model.document_type,
            template_id=descriptor.id,
            job_id=job.job_id,
        )

        if self.output_dir:
            try:
                path = artifact.save(Path(self.output_dir))
                logger.info(f"[{job.job_id}] 已保存: {path}")
            except OSError as e:
                logger.warning(f"[{job.job_id}] 保存失败: {e}")
                job.add_flag("保存失败")

        if self.record_sink is not None:
            record = GeneratedDocumentRecord(
                document_type=model.document_type,
                template_id=descriptor.id,
                filename=artifact.filename,
                page_count=artifact.page_count,
                orientation=artifact.orientation,
                fields={
                    name: display_value(model.get(name)) or ""
                    for name in type_spec.required_fields()
                    if not type_spec.fields[name].is_collection
                },
            )
            try:
                self.record_sink.submit_record(record)
            except RecordSubmitError as e:
                logger.warning(f"[{job.job_id}] {e}")
                job.add_flag("记录提交失败")

        context["artifact"] = artifact
