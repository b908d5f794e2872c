"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(spec, admit_model):
        assert spec.schema_version == "1.0"
"""

from __future__ import annotations

import io
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from PIL import Image

from schooldocs.catalog import TemplateCatalog
from schooldocs.config import DocumentSpec, DocumentTypeSpec, RuntimeConfig, load_spec
from schooldocs.config import runtime_config as runtime_config_module
from schooldocs.models import DocumentModel, TemplateDescriptor


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def default_runtime_config(monkeypatch) -> RuntimeConfig:
    """每个测试使用默认运行期配置（不读取工作目录下的配置文件）"""
    config = RuntimeConfig()
    monkeypatch.setattr(runtime_config_module, "_config", config)
    return config


@pytest.fixture(scope="session")
def spec() -> DocumentSpec:
    """加载文档规范（会话级别缓存）"""
    return load_spec()


@pytest.fixture
def runtime_config() -> RuntimeConfig:
    """运行期配置"""
    return RuntimeConfig()


@pytest.fixture
def admit_spec(spec: DocumentSpec) -> DocumentTypeSpec:
    return spec.get_document_type("admit_card")


@pytest.fixture
def marksheet_spec(spec: DocumentSpec) -> DocumentTypeSpec:
    return spec.get_document_type("marksheet")


# ============================================================================
# 模板 Fixtures
# ============================================================================

@pytest.fixture
def catalog() -> TemplateCatalog:
    """仅内置模板的目录"""
    return TemplateCatalog()


@pytest.fixture
def portrait_descriptor(catalog: TemplateCatalog) -> TemplateDescriptor:
    """classic-portrait（水印/二维码开启）"""
    return catalog.get("classic-portrait")


@pytest.fixture
def landscape_descriptor(catalog: TemplateCatalog) -> TemplateDescriptor:
    return catalog.get("standard-landscape")


@pytest.fixture
def dual_descriptor(catalog: TemplateCatalog) -> TemplateDescriptor:
    return catalog.get("efficient-landscape")


@pytest.fixture
def standard_descriptor(catalog: TemplateCatalog) -> TemplateDescriptor:
    return catalog.get("standard-portrait")


# ============================================================================
# 数据模型 Fixtures
# ============================================================================

@pytest.fixture
def admit_model() -> DocumentModel:
    """只填必填字段的准考证"""
    return DocumentModel(
        document_type="admit_card",
        values={"studentName": "Rahim Uddin", "rollNumber": "123456", "className": "10"},
    )


@pytest.fixture
def full_admit_model(admit_model: DocumentModel) -> DocumentModel:
    """完整准考证"""
    return admit_model.with_values(
        schoolName="Dhaka Model High School",
        schoolAddress="Mirpur, Dhaka",
        studentNameBn="রহিম উদ্দিন",
        section="A",
        examType="SSC Test Examination",
        examCenter="Dhaka Model High School",
        examDate="2025-02-10",
        academicYear=2025,
        subjects=[
            {"code": "101", "name": "Bangla 1st Paper", "date": "2025-02-10", "time": "10:00"},
            {"code": "107", "name": "English 1st Paper", "date": "2025-02-12", "time": "10:00"},
        ],
    )


@pytest.fixture
def marksheet_model() -> DocumentModel:
    """成绩单（全部 A+ 以上）"""
    return DocumentModel(
        document_type="marksheet",
        values={
            "schoolName": "Dhaka Model High School",
            "studentName": "Rahim Uddin",
            "rollNumber": "12",
            "className": "9",
            "examType": "Half Yearly",
            "academicYear": 2025,
            "subjects": [
                {"name": "Bangla", "fullMarks": 100, "obtainedMarks": 85, "category": "compulsory"},
                {"name": "English", "fullMarks": 100, "obtainedMarks": 82, "category": "compulsory"},
                {"name": "Mathematics", "fullMarks": 100, "obtainedMarks": 95, "category": "compulsory"},
            ],
        },
    )


@pytest.fixture
def expense_model() -> DocumentModel:
    """支出表（金额含孟加拉数字与千分位）"""
    return DocumentModel(
        document_type="expense_sheet",
        values={
            "reportTitle": "Monthly Expense Report",
            "reportPeriod": "January 2025",
            "startDate": "2025-01-01",
            "endDate": "2025-01-31",
            "schoolName": "Dhaka Model High School",
            "expenseItems": [
                {"category": "Utilities", "description": "Electricity bill", "amount": "৳ ১২,৫০০"},
                {"category": "Stationery", "description": "Exam papers", "amount": "2,500.50"},
            ],
        },
    )


# ============================================================================
# 文件 Fixtures
# ============================================================================

@pytest.fixture
def png_bytes() -> bytes:
    """有效的 PNG 图片"""
    buffer = io.BytesIO()
    Image.new("RGB", (60, 80), (30, 58, 138)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
