"""
派生字段引擎 - 计算展示用派生值

职责：
1. 成绩：按 NCTB 规则计算科目等级/GPA、总分、百分比、总GPA
2. 支出：金额解析（孟加拉数字/千分位/货币符号）与合计
3. 试卷：总分、题数
4. 年份：文件名用的年份（显式字段优先，其次日期字段）

派生计算对未通过校验的输入保持宽容（解析失败即跳过），
预览在编辑过程中随时可渲染。

测试要点：
- test_grade_boundaries: 等级分界
- test_fourth_subject_rule: 第四科目规则
- test_failed_subject_zeroes_gpa: 不及格科目
- test_parse_money_bengali: 孟加拉数字金额
- test_derive_year: 年份派生
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from ..config import DocumentTypeSpec
from ..models import DocumentModel

_BENGALI_DIGITS = str.maketrans("০১২৩৪৫৬৭৮৯", "0123456789")
_CURRENCY = re.compile(r"(৳|tk\.?|bdt|taka|টাকা)", re.IGNORECASE)
_YEAR = re.compile(r"(19|20)\d{2}")

# 派生列/汇总项标签
DERIVED_LABELS: dict[str, dict[str, str]] = {
    "no": {"en": "No.", "bn": "নং"},
    "grade": {"en": "Grade", "bn": "গ্রেড"},
    "gpa": {"en": "GPA", "bn": "জিপিএ"},
    "totalMarks": {"en": "Total Marks", "bn": "মোট নম্বর"},
    "percentage": {"en": "Percentage", "bn": "শতকরা"},
    "letterGrade": {"en": "Letter Grade", "bn": "লেটার গ্রেড"},
    "result": {"en": "Result", "bn": "ফলাফল"},
    "totalExpense": {"en": "Total Expense", "bn": "মোট ব্যয়"},
    "itemCount": {"en": "Entries", "bn": "এন্ট্রি"},
    "questionCount": {"en": "Questions", "bn": "প্রশ্ন সংখ্যা"},
}

FOURTH_SUBJECT = "fourth_subject"


def to_ascii_digits(text: str) -> str:
    """孟加拉数字 → 阿拉伯数字"""
    return text.translate(_BENGALI_DIGITS)


def parse_number(value: Any) -> float | None:
    """宽松数字解析，失败返回 None"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(to_ascii_digits(str(value)).replace(",", "").strip())
    except ValueError:
        return None


def parse_money(value: Any) -> float | None:
    """金额解析：支持 ৳/Tk/BDT、千分位、孟加拉数字"""
    if isinstance(value, str):
        value = _CURRENCY.sub("", value).replace(" ", "")
    return parse_number(value)


def format_number(value: float, decimals: int = 2) -> str:
    """整数不带小数位"""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.{decimals}f}"


def format_money(value: float) -> str:
    return f"{value:,.2f}"


@dataclass(frozen=True)
class Grade:
    """NCTB 等级"""
    gpa: float
    letter: str
    letter_bn: str


_GRADE_TABLE: list[tuple[float, Grade]] = [
    (80, Grade(5.0, "A+", "এ প্লাস")),
    (70, Grade(4.0, "A", "এ")),
    (60, Grade(3.5, "A-", "এ মাইনাস")),
    (50, Grade(3.0, "B", "বি")),
    (40, Grade(2.0, "C", "সি")),
    (33, Grade(1.0, "D", "ডি")),
]
FAIL_GRADE = Grade(0.0, "F", "অকৃতকার্য")


def grade_for_percentage(percentage: float) -> Grade:
    for threshold, grade in _GRADE_TABLE:
        if percentage >= threshold:
            return grade
    return FAIL_GRADE


def grade_for_gpa(gpa: float) -> Grade:
    """总GPA → 字母等级（5.00 才是 A+）"""
    for _, grade in _GRADE_TABLE:
        if gpa >= grade.gpa:
            return Grade(gpa, grade.letter, grade.letter_bn)
    return FAIL_GRADE


def subject_grade(obtained: float, full: float) -> Grade:
    if full <= 0:
        return FAIL_GRADE
    return grade_for_percentage(obtained / full * 100)


def overall_grade(subjects: list[tuple[float, float, str]]) -> tuple[Grade, bool]:
    """
    总评等级

    Args:
        subjects: (obtained, full, category) 列表

    Returns:
        (等级, 是否有不及格科目)；第四科目 GPA < 2.0 时不计入，
        其他科目不及格时总评为 F
    """
    points: list[float] = []
    failed = False
    for obtained, full, category in subjects:
        grade = subject_grade(obtained, full)
        if category == FOURTH_SUBJECT:
            if grade.gpa >= 2.0:
                points.append(grade.gpa)
            continue
        if grade.gpa == 0:
            failed = True
        points.append(grade.gpa)

    if failed or not points:
        return FAIL_GRADE, failed

    average = round(sum(points) / len(points), 2)
    return grade_for_gpa(average), False


@dataclass
class DerivedValues:
    """派生结果"""
    summary: dict[str, str] = field(default_factory=dict)
    rows: dict[str, list[dict[str, str]]] = field(default_factory=dict)
    year: int | None = None
    passed: bool | None = None


class DerivationEngine:
    """派生字段计算引擎"""

    def compute(self, model: DocumentModel, type_spec: DocumentTypeSpec) -> DerivedValues:
        """计算所有派生字段"""
        derived = DerivedValues(year=self.derive_year(model, type_spec))

        for name, rule in type_spec.fields.items():
            if rule.type != "list":
                continue
            rows = [r for r in (model.get(name) or []) if isinstance(r, dict)]
            item_names = set(rule.item_fields)

            if {"obtainedMarks", "fullMarks"} <= item_names:
                self._derive_marks(rows, name, derived)
            elif "amount" in item_names:
                self._derive_expenses(rows, name, derived)
            elif "marks" in item_names:
                self._derive_questions(rows, name, derived)
            else:
                derived.rows[name] = [{"no": str(i + 1)} for i in range(len(rows))]

        return derived

    def derive_year(self, model: DocumentModel, type_spec: DocumentTypeSpec) -> int | None:
        """年份：academicYear/year 字段优先，其次日期字段"""
        for key in ("academicYear", "year"):
            number = parse_number(model.get(key))
            if number is not None and number.is_integer():
                return int(number)
        if type_spec.date_field:
            raw = model.get(type_spec.date_field)
            if raw is not None:
                match = _YEAR.search(to_ascii_digits(str(raw)))
                if match:
                    return int(match.group(0))
        return None

    def _derive_marks(self, rows: list[dict], name: str, derived: DerivedValues) -> None:
        row_values: list[dict[str, str]] = []
        scored: list[tuple[float, float, str]] = []
        total_obtained = 0.0
        total_full = 0.0

        for index, row in enumerate(rows):
            obtained = parse_number(row.get("obtainedMarks"))
            full = parse_number(row.get("fullMarks"))
            values = {"no": str(index + 1)}
            if obtained is not None and full is not None and full > 0:
                grade = subject_grade(obtained, full)
                values["grade"] = grade.letter
                values["gpa"] = f"{grade.gpa:.2f}"
                scored.append((obtained, full, row.get("category") or "compulsory"))
                total_obtained += obtained
                total_full += full
            row_values.append(values)
        derived.rows[name] = row_values

        if not scored or total_full <= 0:
            return
        grade, failed = overall_grade(scored)
        derived.passed = not failed and grade.gpa > 0
        derived.summary.update({
            "totalMarks": f"{format_number(total_obtained)} / {format_number(total_full)}",
            "percentage": f"{total_obtained / total_full * 100:.2f}%",
            "gpa": f"{grade.gpa:.2f}",
            "letterGrade": grade.letter,
        })

    def _derive_expenses(self, rows: list[dict], name: str, derived: DerivedValues) -> None:
        total = 0.0
        row_values = []
        for index, row in enumerate(rows):
            amount = parse_money(row.get("amount"))
            values = {"no": str(index + 1)}
            if amount is not None:
                total += amount
                values["amount"] = format_money(amount)
            row_values.append(values)
        derived.rows[name] = row_values
        derived.summary.update({
            "totalExpense": format_money(total),
            "itemCount": str(len(rows)),
        })

    def _derive_questions(self, rows: list[dict], name: str, derived: DerivedValues) -> None:
        total = 0.0
        for row in rows:
            marks = parse_number(row.get("marks"))
            if marks is not None:
                total += marks
        derived.rows[name] = [{"no": str(i + 1)} for i in range(len(rows))]
        derived.summary.update({
            "totalMarks": format_number(total),
            "questionCount": str(len(rows)),
        })
