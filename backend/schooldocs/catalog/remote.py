"""
远端接口 - 模板目录与生成记录（REST JSON）

GET  {base_url}{templates_path}   → 模板 JSON 列表
POST {base_url}{records_path}     ← GeneratedDocumentRecord
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from ..config import get_config
from ..interfaces import IRecordSink, ITemplateSource, RecordSubmitError, TemplateFetchError
from ..models import GeneratedDocumentRecord

logger = logging.getLogger(__name__)


class _RestClient:
    """REST 客户端基类"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        config = get_config()
        self.base_url = (base_url or config.catalog.base_url or "").rstrip("/")
        self.timeout = timeout if timeout is not None else config.catalog.timeout_sec
        self.session = session or requests.Session()
        self.config = config

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"


class RemoteTemplateSource(_RestClient, ITemplateSource):
    """远端模板目录"""

    def __init__(self, *args, templates_path: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.templates_path = templates_path or self.config.catalog.templates_path

    def list_templates(self) -> list[dict[str, Any]]:
        if not self.configured:
            raise TemplateFetchError("未配置远端模板目录地址")

        url = self._url(self.templates_path)
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise TemplateFetchError(f"获取远端模板失败: {url}: {e}") from e
        except ValueError as e:
            raise TemplateFetchError(f"远端模板数据不是有效JSON: {url}") from e

        # 兼容 {"templates": [...]} 包装
        if isinstance(payload, dict):
            payload = payload.get("templates")
        if not isinstance(payload, list):
            raise TemplateFetchError(f"远端模板数据格式错误: {url}")
        return payload


class RecordClient(_RestClient, IRecordSink):
    """生成记录提交"""

    def __init__(self, *args, records_path: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.records_path = records_path or self.config.catalog.records_path

    def submit_record(self, record: GeneratedDocumentRecord) -> None:
        if not self.configured:
            raise RecordSubmitError("未配置生成记录接口地址")

        url = self._url(self.records_path)
        try:
            response = self.session.post(
                url,
                json=record.model_dump(mode="json", by_alias=True),
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise RecordSubmitError(f"提交生成记录失败: {url}: {e}") from e
        logger.info(f"生成记录已提交: {record.filename}")
