"""
表单校验 - 声明式规则 → pydantic 模型 → 逐字段本地化错误

职责：
1. 把 document_spec.yaml 的字段规则编译为 pydantic 模型（create_model）
2. 输入归一化（去空白、空串视为缺失、孟加拉数字转阿拉伯数字）
3. 把 pydantic 错误映射为字段级本地化提示
4. 同条目跨字段规则（如 obtainedMarks ≤ fullMarks）
5. can_export：全部字段通过才允许导出

测试要点：
- test_required_fields_block_export: 必填缺失阻止导出
- test_min_length_message_localized: 本地化提示
- test_bengali_digits_accepted: 孟加拉数字
- test_item_cross_field_rule: 条目跨字段规则
- test_unknown_field_rejected: 未定义字段
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, Field, ValidationError, create_model

from ..config import DocumentTypeSpec, FieldRule, get_message
from ..interfaces import UnknownFieldError
from ..models import DocumentModel
from ..render.derivation import parse_money, to_ascii_digits

# 直接使用 pydantic 错误类型作为提示键
_DIRECT_MESSAGE_TYPES = {
    "missing",
    "string_too_short",
    "string_too_long",
    "too_short",
    "greater_than_equal",
    "less_than_equal",
    "literal_error",
}


@dataclass
class FieldError:
    """字段错误"""
    field: str          # 如 "studentName" / "subjects.0.obtainedMarks"
    code: str
    message: str


@dataclass
class ValidationReport:
    """校验结果"""
    document_type: str
    errors: dict[str, list[FieldError]] = field(default_factory=dict)
    cleaned: dict[str, Any] = field(default_factory=dict)
    present: set[str] = field(default_factory=set)

    @property
    def can_export(self) -> bool:
        return not self.errors

    def field_ok(self, name: str) -> bool:
        """字段（含其条目）是否无错误"""
        prefix = f"{name}."
        return not any(key == name or key.startswith(prefix) for key in self.errors)

    def messages_for(self, name: str) -> list[str]:
        return [e.message for e in self.errors.get(name, [])]

    def all_errors(self) -> list[FieldError]:
        return [e for errs in self.errors.values() for e in errs]

    def add(self, error: FieldError) -> None:
        self.errors.setdefault(error.field, []).append(error)


def _ascii_number(value: Any) -> Any:
    if isinstance(value, str):
        return to_ascii_digits(value).replace(",", "").strip()
    return value


def _int_bound(value: float | None) -> int | None:
    return None if value is None else int(value)


def _money(value: Any) -> Any:
    if isinstance(value, str):
        parsed = parse_money(value)
        return value if parsed is None else parsed
    return value


def _annotation_for(rule: FieldRule, name: str, item_models: dict[str, type[BaseModel]]) -> Any:
    """字段规则 → pydantic 注解"""
    if rule.type == "str":
        return Annotated[str, Field(min_length=rule.min_length, max_length=rule.max_length)]
    if rule.type == "int":
        return Annotated[int, BeforeValidator(_ascii_number), Field(ge=_int_bound(rule.min), le=_int_bound(rule.max))]
    if rule.type == "float":
        return Annotated[float, BeforeValidator(_ascii_number), Field(ge=rule.min, le=rule.max)]
    if rule.type == "money":
        return Annotated[float, BeforeValidator(_money), Field(ge=rule.min, le=rule.max)]
    if rule.type == "date":
        return dt.date
    if rule.type == "enum":
        return Literal[tuple(rule.choices or ())]
    if rule.type == "str_list":
        return Annotated[list[str], Field(min_length=rule.min_items)]
    if rule.type == "list":
        return Annotated[list[item_models[name]], Field(min_length=rule.min_items)]
    raise ValueError(f"不支持的字段类型: {rule.type}")


def _build_model(model_name: str, rules: dict[str, FieldRule]) -> type[BaseModel]:
    item_models = {
        name: _build_model(f"{model_name}_{name}", rule.item_fields)
        for name, rule in rules.items()
        if rule.type == "list"
    }
    definitions: dict[str, Any] = {}
    for name, rule in rules.items():
        annotation = _annotation_for(rule, name, item_models)
        if rule.required:
            definitions[name] = (annotation, ...)
        else:
            definitions[name] = (annotation | None, None)
    return create_model(model_name, **definitions)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _normalize(value: Any, rule: FieldRule) -> Any:
    """归一化单个字段值，返回 None 表示缺失"""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    if rule.type == "str_list" and isinstance(value, (list, tuple)):
        items = [v.strip() if isinstance(v, str) else v for v in value]
        return [v for v in items if not _is_blank(v)]
    if rule.type == "list" and isinstance(value, (list, tuple)):
        rows = []
        for row in value:
            if not isinstance(row, dict):
                rows.append(row)
                continue
            cleaned = {
                k: _normalize(v, rule.item_fields.get(k, FieldRule()))
                for k, v in row.items()
            }
            cleaned = {k: v for k, v in cleaned.items() if v is not None}
            if cleaned:
                rows.append(cleaned)
        return rows
    return value


def _format_ctx(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


class FormValidator:
    """按文档类型校验表单"""

    def __init__(self, type_spec: DocumentTypeSpec, locale: str = "en"):
        self.type_spec = type_spec
        self.locale = locale
        self._model = _build_model(f"{type_spec.name or 'document'}_form", type_spec.fields)

    def check_field(self, name: str) -> FieldRule:
        """字段必须在文档类型中定义"""
        rule = self.type_spec.get_rule(name)
        if rule is None:
            raise UnknownFieldError(f"{self.type_spec.name} 未定义字段: {name}")
        return rule

    def validate(self, model: DocumentModel) -> ValidationReport:
        """校验整份文档"""
        report = ValidationReport(document_type=self.type_spec.name)

        normalized: dict[str, Any] = {}
        for name, value in model.values.items():
            rule = self.check_field(name)
            value = _normalize(value, rule)
            if value is not None:
                normalized[name] = value
                report.present.add(name)

        try:
            validated = self._model(**normalized)
        except ValidationError as e:
            for err in e.errors():
                report.add(self._to_field_error(err))
            report.cleaned = normalized
        else:
            report.cleaned = validated.model_dump(exclude_none=True)

        self._check_item_limits(normalized, report)
        return report

    def _rule_at(self, loc: tuple) -> tuple[FieldRule | None, str]:
        """沿 loc 找到最深一层具名字段的规则"""
        rules = self.type_spec.fields
        rule: FieldRule | None = None
        name = ""
        for part in loc:
            if isinstance(part, str) and part in rules:
                rule = rules[part]
                name = part
                rules = rule.item_fields
        return rule, name

    def _to_field_error(self, err: dict[str, Any]) -> FieldError:
        loc = tuple(p for p in err["loc"] if not (isinstance(p, str) and p.startswith("function-")))
        key = ".".join(str(p) for p in loc)
        rule, name = self._rule_at(loc)
        label = rule.label_for(self.locale, name) if rule else key

        etype = err["type"]
        if etype in _DIRECT_MESSAGE_TYPES:
            code = etype
        elif rule is not None and rule.is_numeric:
            code = "not_a_number"
        elif rule is not None and rule.type == "date":
            code = "not_a_date"
        else:
            code = "invalid"

        ctx = {k: _format_ctx(v) for k, v in (err.get("ctx") or {}).items()}
        message = get_message(code, self.locale, label=label, **ctx)
        return FieldError(field=key, code=code, message=message)

    def _check_item_limits(self, values: dict[str, Any], report: ValidationReport) -> None:
        """条目内 max_field 规则"""
        for list_name, list_rule in self.type_spec.fields.items():
            if list_rule.type != "list":
                continue
            rows = values.get(list_name)
            if not isinstance(rows, list):
                continue
            for index, row in enumerate(rows):
                if not isinstance(row, dict):
                    continue
                for item_name, item_rule in list_rule.item_fields.items():
                    if not item_rule.max_field:
                        continue
                    key = f"{list_name}.{index}.{item_name}"
                    if key in report.errors:
                        continue
                    value = _as_float(row.get(item_name))
                    limit = _as_float(row.get(item_rule.max_field))
                    if value is None or limit is None or value <= limit:
                        continue
                    other_rule = list_rule.item_fields.get(item_rule.max_field)
                    other = other_rule.label_for(self.locale, item_rule.max_field) if other_rule else item_rule.max_field
                    label = item_rule.label_for(self.locale, item_name)
                    report.add(FieldError(
                        field=key,
                        code="max_field",
                        message=get_message("max_field", self.locale, label=label, other=other),
                    ))


def _as_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(_ascii_number(value))
    except (TypeError, ValueError):
        return None
