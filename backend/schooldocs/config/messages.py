"""
本地化提示 - 读取 resources/messages.yaml

所有用户可见的提示（字段错误/导出失败通知）都从这里取，
缺失的语言回退到英文，缺失的键原样返回。
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import yaml

from .spec_loader import RESOURCES_DIR

DEFAULT_LOCALE = "en"


@lru_cache(maxsize=1)
def load_messages() -> dict[str, dict[str, str]]:
    """加载提示文本"""
    with open(RESOURCES_DIR / "messages.yaml", "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_message(key: str, locale: str = DEFAULT_LOCALE, **params: Any) -> str:
    """取本地化提示并插值"""
    messages = load_messages()
    template = messages.get(locale, {}).get(key) or messages.get(DEFAULT_LOCALE, {}).get(key)
    if template is None:
        return key
    try:
        return template.format(**params)
    except (KeyError, IndexError):
        return template
