"""
派生字段单元测试

每个模块完成后必须运行：pytest tests/unit/test_derivation.py -v
"""

import pytest

from schooldocs.models import DocumentModel
from schooldocs.render.derivation import (
    DerivationEngine,
    grade_for_percentage,
    overall_grade,
    parse_money,
    parse_number,
    to_ascii_digits,
)


class TestNumberParsing:
    """数字/金额解析测试"""

    def test_to_ascii_digits(self):
        assert to_ascii_digits("রোল ১২৩৪৫৬") == "রোল 123456"

    def test_parse_number_bengali(self):
        assert parse_number("৮৫") == 85.0
        assert parse_number("abc") is None
        assert parse_number(None) is None

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("৳ ১২,৫০০", 12500.0),
            ("Tk. 2,500.50", 2500.5),
            ("BDT 300", 300.0),
            (450, 450.0),
            ("", None),
            ("taka", None),
        ],
    )
    def test_parse_money(self, raw, expected):
        assert parse_money(raw) == expected


class TestGrading:
    """NCTB 等级测试"""

    @pytest.mark.parametrize(
        "percentage,letter,gpa",
        [
            (100, "A+", 5.0),
            (80, "A+", 5.0),
            (79.99, "A", 4.0),
            (70, "A", 4.0),
            (60, "A-", 3.5),
            (50, "B", 3.0),
            (40, "C", 2.0),
            (33, "D", 1.0),
            (32.9, "F", 0.0),
            (0, "F", 0.0),
        ],
    )
    def test_grade_boundaries(self, percentage, letter, gpa):
        """测试等级分界"""
        grade = grade_for_percentage(percentage)
        assert grade.letter == letter
        assert grade.gpa == gpa

    def test_failed_grade_bengali_name(self):
        assert grade_for_percentage(10).letter_bn == "অকৃতকার্য"

    def test_overall_average(self):
        """测试总GPA取平均"""
        grade, failed = overall_grade([(85, 100, "compulsory"), (75, 100, "compulsory")])
        assert not failed
        assert grade.gpa == 4.5
        assert grade.letter == "A"

    def test_overall_all_a_plus(self):
        grade, _ = overall_grade([(85, 100, "compulsory"), (90, 100, "compulsory")])
        assert grade.gpa == 5.0
        assert grade.letter == "A+"

    def test_fourth_subject_rule(self):
        """测试第四科目 GPA < 2.0 时不计入"""
        low, _ = overall_grade([
            (85, 100, "compulsory"),
            (75, 100, "compulsory"),
            (35, 100, "fourth_subject"),
        ])
        counted, _ = overall_grade([
            (85, 100, "compulsory"),
            (75, 100, "compulsory"),
            (45, 100, "fourth_subject"),
        ])
        assert low.gpa == 4.5
        assert counted.gpa == pytest.approx(3.67)
        assert counted.letter == "A-"

    def test_failed_fourth_subject_does_not_fail(self):
        grade, failed = overall_grade([(85, 100, "compulsory"), (10, 100, "fourth_subject")])
        assert not failed
        assert grade.gpa == 5.0

    def test_failed_subject_zeroes_gpa(self):
        """测试非第四科目不及格时总评为 F"""
        grade, failed = overall_grade([(95, 100, "compulsory"), (20, 100, "compulsory")])
        assert failed
        assert grade.gpa == 0.0
        assert grade.letter == "F"


class TestDerivationEngine:
    """派生字段引擎测试"""

    @pytest.fixture
    def engine(self) -> DerivationEngine:
        return DerivationEngine()

    def test_marksheet_summary(self, engine, spec, marksheet_model):
        """测试成绩单汇总"""
        derived = engine.compute(marksheet_model, spec.get_document_type("marksheet"))
        assert derived.summary["totalMarks"] == "262 / 300"
        assert derived.summary["percentage"] == "87.33%"
        assert derived.summary["gpa"] == "5.00"
        assert derived.summary["letterGrade"] == "A+"
        assert derived.passed is True
        assert derived.rows["subjects"][0] == {"no": "1", "grade": "A+", "gpa": "5.00"}

    def test_marksheet_failed(self, engine, spec, marksheet_model):
        subjects = list(marksheet_model.get("subjects"))
        subjects[1] = {**subjects[1], "obtainedMarks": 20}
        derived = engine.compute(
            marksheet_model.with_value("subjects", subjects),
            spec.get_document_type("marksheet"),
        )
        assert derived.passed is False
        assert derived.summary["letterGrade"] == "F"
        assert derived.rows["subjects"][1]["grade"] == "F"

    def test_incomplete_rows_tolerated(self, engine, spec):
        """测试编辑中未完成的行不影响派生"""
        model = DocumentModel(
            document_type="marksheet",
            values={"subjects": [{"name": "Bangla"}, {"name": "Math", "fullMarks": "১০০", "obtainedMarks": "৭০"}]},
        )
        derived = engine.compute(model, spec.get_document_type("marksheet"))
        assert derived.rows["subjects"][0] == {"no": "1"}
        assert derived.rows["subjects"][1]["grade"] == "A"
        assert derived.summary["totalMarks"] == "70 / 100"

    def test_non_positive_full_marks_skipped(self, engine, spec):
        """测试编辑中的非正满分行不参与计算"""
        model = DocumentModel(
            document_type="marksheet",
            values={"subjects": [
                {"name": "Bangla", "fullMarks": 100, "obtainedMarks": 50},
                {"name": "Math", "fullMarks": -100, "obtainedMarks": 10},
            ]},
        )
        derived = engine.compute(model, spec.get_document_type("marksheet"))
        assert derived.rows["subjects"][1] == {"no": "2"}
        assert derived.summary["totalMarks"] == "50 / 100"
        assert derived.summary["percentage"] == "50.00%"

    def test_zero_full_marks_without_summary(self, engine, spec):
        model = DocumentModel(
            document_type="marksheet",
            values={"subjects": [{"name": "Bangla", "fullMarks": 0, "obtainedMarks": 0}]},
        )
        derived = engine.compute(model, spec.get_document_type("marksheet"))
        assert "percentage" not in derived.summary
        assert derived.passed is None

    def test_expense_total(self, engine, spec, expense_model):
        """测试支出合计（孟加拉数字金额）"""
        derived = engine.compute(expense_model, spec.get_document_type("expense_sheet"))
        assert derived.summary["totalExpense"] == "15,000.50"
        assert derived.summary["itemCount"] == "2"
        assert derived.rows["expenseItems"][0]["amount"] == "12,500.00"

    def test_exam_paper_total(self, engine, spec):
        model = DocumentModel(
            document_type="exam_paper",
            values={"questions": [{"question": "Define GPA", "marks": 5}, {"question": "Explain", "marks": "১০"}]},
        )
        derived = engine.compute(model, spec.get_document_type("exam_paper"))
        assert derived.summary["totalMarks"] == "15"
        assert derived.summary["questionCount"] == "2"

    def test_derive_year(self, engine, admit_spec, admit_model):
        """测试年份派生：显式字段优先，其次日期字段"""
        assert engine.derive_year(admit_model, admit_spec) is None
        assert engine.derive_year(admit_model.with_value("examDate", "2025-02-10"), admit_spec) == 2025
        assert engine.derive_year(
            admit_model.with_values(examDate="2025-02-10", academicYear="২০২৪"), admit_spec
        ) == 2024
