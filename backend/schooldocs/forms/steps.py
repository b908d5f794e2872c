"""
分步导航 - info → setup → content → preview

步骤完成状态不单独存储，每次从当前校验结果推导；
允许任意跳转，不做撤销/重做。
"""

from __future__ import annotations

from typing import Callable

from ..config import DocumentTypeSpec, StepSpec, localize
from .validation import ValidationReport


class StepNavigator:
    """表单分步导航器"""

    def __init__(
        self,
        type_spec: DocumentTypeSpec,
        report_provider: Callable[[], ValidationReport],
    ):
        if not type_spec.steps:
            raise ValueError(f"文档类型 {type_spec.name} 未定义步骤")
        self.type_spec = type_spec
        self._report = report_provider
        self._index = 0

    @property
    def steps(self) -> list[StepSpec]:
        return self.type_spec.steps

    @property
    def step_names(self) -> list[str]:
        return [s.name for s in self.steps]

    @property
    def current(self) -> StepSpec:
        return self.steps[self._index]

    @property
    def index(self) -> int:
        return self._index

    @property
    def is_first(self) -> bool:
        return self._index == 0

    @property
    def is_last(self) -> bool:
        return self._index == len(self.steps) - 1

    def goto(self, name: str) -> StepSpec:
        """跳转到任意步骤"""
        try:
            self._index = self.step_names.index(name)
        except ValueError:
            raise KeyError(f"未知步骤: {name}") from None
        return self.current

    def next(self) -> StepSpec:
        self._index = min(self._index + 1, len(self.steps) - 1)
        return self.current

    def previous(self) -> StepSpec:
        self._index = max(self._index - 1, 0)
        return self.current

    def _step(self, name: str) -> StepSpec:
        for step in self.steps:
            if step.name == name:
                return step
        raise KeyError(f"未知步骤: {name}")

    def is_complete(self, name: str) -> bool:
        """
        步骤是否完成

        有字段的步骤：所有字段无错误且必填字段均已填写；
        无字段的步骤（预览）：整份表单可导出。
        """
        step = self._step(name)
        report = self._report()
        if not step.fields:
            return report.can_export
        for field_name in step.fields:
            if not report.field_ok(field_name):
                return False
            rule = self.type_spec.fields[field_name]
            if rule.required and field_name not in report.present:
                return False
        return True

    def completed_steps(self) -> list[str]:
        return [name for name in self.step_names if self.is_complete(name)]

    @property
    def progress(self) -> float:
        """完成比例（0.0 ~ 1.0）"""
        return len(self.completed_steps()) / len(self.steps)

    def label(self, name: str, language: str = "en") -> str:
        return localize(self._step(name).label, language) or name
