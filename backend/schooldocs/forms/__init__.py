"""
表单层 - 字段校验与分步导航
"""

from .steps import StepNavigator
from .validation import FieldError, FormValidator, ValidationReport

__all__ = [
    "FormValidator",
    "ValidationReport",
    "FieldError",
    "StepNavigator",
]
