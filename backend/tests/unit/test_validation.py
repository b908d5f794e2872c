"""
表单校验单元测试

每个模块完成后必须运行：pytest tests/unit/test_validation.py -v
"""

import datetime as dt

import pytest

from schooldocs.forms import FormValidator
from schooldocs.interfaces import UnknownFieldError
from schooldocs.models import DocumentModel


@pytest.fixture
def admit_validator(admit_spec) -> FormValidator:
    return FormValidator(admit_spec)


@pytest.fixture
def marksheet_validator(marksheet_spec) -> FormValidator:
    return FormValidator(marksheet_spec)


class TestRequiredFields:
    """必填字段测试"""

    def test_minimal_admit_card_exportable(self, admit_validator, admit_model):
        """测试只填必填字段即可导出"""
        report = admit_validator.validate(admit_model)
        assert report.can_export
        assert report.present == {"studentName", "rollNumber", "className"}

    def test_required_fields_block_export(self, admit_validator, admit_model):
        """测试必填缺失阻止导出"""
        report = admit_validator.validate(admit_model.without_value("studentName"))
        assert not report.can_export
        assert report.messages_for("studentName") == ["Name is required"]
        assert report.errors["studentName"][0].code == "missing"

    def test_blank_string_counts_as_missing(self, admit_validator, admit_model):
        """测试空白字符串视为缺失"""
        report = admit_validator.validate(admit_model.with_value("rollNumber", "   "))
        assert report.errors["rollNumber"][0].code == "missing"
        assert "rollNumber" not in report.present

    def test_whitespace_trimmed(self, admit_validator, admit_model):
        report = admit_validator.validate(admit_model.with_value("studentName", "  Rahim Uddin  "))
        assert report.can_export
        assert report.cleaned["studentName"] == "Rahim Uddin"

    def test_empty_model_reports_every_required_field(self, admit_validator):
        report = admit_validator.validate(DocumentModel(document_type="admit_card"))
        assert set(report.errors) == {"studentName", "rollNumber", "className"}


class TestFieldRules:
    """字段规则与本地化提示测试"""

    def test_min_length_message_localized(self, admit_validator, admit_model):
        """测试最小长度提示"""
        report = admit_validator.validate(admit_model.with_value("studentName", "R"))
        error = report.errors["studentName"][0]
        assert error.code == "string_too_short"
        assert error.message == "Name must be at least 2 characters"

    def test_bengali_locale(self, admit_spec, admit_model):
        """测试孟加拉语提示"""
        validator = FormValidator(admit_spec, locale="bn")
        report = validator.validate(admit_model.without_value("studentName"))
        assert report.messages_for("studentName") == ["নাম প্রয়োজন"]

    def test_bengali_digits_accepted(self, admit_validator, admit_model):
        """测试孟加拉数字"""
        report = admit_validator.validate(admit_model.with_value("academicYear", "২০২৫"))
        assert report.can_export
        assert report.cleaned["academicYear"] == 2025

    def test_range_message(self, admit_validator, admit_model):
        report = admit_validator.validate(admit_model.with_value("academicYear", 1999))
        error = report.errors["academicYear"][0]
        assert error.code == "greater_than_equal"
        assert error.message == "Year must be at least 2000"

    def test_not_a_number(self, admit_validator, admit_model):
        report = admit_validator.validate(admit_model.with_value("academicYear", "abc"))
        error = report.errors["academicYear"][0]
        assert error.code == "not_a_number"
        assert error.message == "Year must be a number"

    def test_date_parsing(self, admit_validator, admit_model):
        """测试日期字段"""
        valid = admit_validator.validate(admit_model.with_value("examDate", "2025-02-10"))
        assert valid.cleaned["examDate"] == dt.date(2025, 2, 10)

        invalid = admit_validator.validate(admit_model.with_value("examDate", "tenth of Feb"))
        assert invalid.errors["examDate"][0].code == "not_a_date"

    def test_unknown_field_rejected(self, admit_validator, admit_model):
        """测试未定义字段"""
        with pytest.raises(UnknownFieldError):
            admit_validator.validate(admit_model.with_value("favouriteColour", "blue"))

    def test_unknown_field_is_key_error(self, admit_validator):
        with pytest.raises(KeyError):
            admit_validator.check_field("favouriteColour")

    def test_check_field_returns_rule(self, admit_validator):
        assert admit_validator.check_field("examDate").type == "date"


class TestListFields:
    """列表字段（科目/支出条目）测试"""

    def test_marksheet_valid(self, marksheet_validator, marksheet_model):
        assert marksheet_validator.validate(marksheet_model).can_export

    def test_item_cross_field_rule(self, marksheet_validator, marksheet_model):
        """测试条目跨字段规则：obtainedMarks ≤ fullMarks"""
        subjects = list(marksheet_model.get("subjects"))
        subjects[0] = {**subjects[0], "obtainedMarks": 120}
        report = marksheet_validator.validate(marksheet_model.with_value("subjects", subjects))

        error = report.errors["subjects.0.obtainedMarks"][0]
        assert error.code == "max_field"
        assert error.message == "Obtained cannot exceed Full Marks"
        assert not report.field_ok("subjects")
        assert report.field_ok("studentName")

    def test_enum_choice(self, marksheet_validator, marksheet_model):
        subjects = list(marksheet_model.get("subjects"))
        subjects[2] = {**subjects[2], "category": "elective"}
        report = marksheet_validator.validate(marksheet_model.with_value("subjects", subjects))
        assert report.errors["subjects.2.category"][0].code == "literal_error"

    def test_empty_list_too_short(self, marksheet_validator, marksheet_model):
        report = marksheet_validator.validate(marksheet_model.with_value("subjects", []))
        assert report.errors["subjects"][0].code == "too_short"

    def test_bengali_money_accepted(self, spec, expense_model):
        """测试孟加拉数字金额"""
        validator = FormValidator(spec.get_document_type("expense_sheet"))
        report = validator.validate(expense_model)
        assert report.can_export
        assert report.cleaned["expenseItems"][0]["amount"] == 12500.0
        assert report.cleaned["expenseItems"][1]["amount"] == 2500.5

    def test_negative_money_rejected(self, spec, expense_model):
        validator = FormValidator(spec.get_document_type("expense_sheet"))
        items = list(expense_model.get("expenseItems"))
        items[1] = {**items[1], "amount": "-5"}
        report = validator.validate(expense_model.with_value("expenseItems", items))
        assert report.errors["expenseItems.1.amount"][0].code == "greater_than_equal"
