"""
文档模型 - 单份文档实例的结构化数据

表单逐字段更新，每次更新返回新实例并递增 revision，
预览缓存以 revision 判断是否需要重新渲染。
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class DocumentModel(BaseModel):
    """文档实例（表单数据+用户上传图片）"""
    document_type: str = Field(..., description="文档类型(admit_card/marksheet/...)")
    values: dict[str, Any] = Field(default_factory=dict, description="字段值")
    assets: dict[str, bytes] = Field(default_factory=dict, description="图片原始字节(photo/logo/signature)")
    revision: int = 0

    model_config = {"frozen": True}

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def with_value(self, name: str, value: Any) -> DocumentModel:
        """更新单个字段"""
        return self.with_values(**{name: value})

    def with_values(self, **values: Any) -> DocumentModel:
        """批量更新字段"""
        merged = {**self.values, **values}
        return self.model_copy(update={"values": merged, "revision": self.revision + 1})

    def without_value(self, name: str) -> DocumentModel:
        """清除字段"""
        remaining = {k: v for k, v in self.values.items() if k != name}
        return self.model_copy(update={"values": remaining, "revision": self.revision + 1})

    def with_asset(self, name: str, data: bytes | None) -> DocumentModel:
        """设置/清除图片资源"""
        assets = dict(self.assets)
        if data is None:
            assets.pop(name, None)
        else:
            assets[name] = data
        return self.model_copy(update={"assets": assets, "revision": self.revision + 1})
