"""
运行期配置 - 读取 config/schooldocs.yaml

职责：
- 加载渲染/导出/字体/模板目录等运行参数
- 提供环境变量覆盖机制（SCHOOLDOCS_ 前缀）
- 类型安全的配置访问
- 日志初始化
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class RenderConfig(BaseModel):
    """渲染配置"""

    locale: str = "en"
    margin_mm: float = 12.0


class ExportConfig(BaseModel):
    """导出配置"""

    scale: float = 2.0
    page_format: str = "A4"
    output_dir: Path | None = None
    text_layer: bool = True
    text_layer_font: Path | None = None
    max_workers: int = 1


class ImageConfig(BaseModel):
    """用户上传图片限制（仅提示，不做缩放）"""

    max_image_kb: int = 512


class FontConfig(BaseModel):
    """字体配置：字体族名 -> 字体文件名"""

    font_dirs: list[Path] = Field(default_factory=list)
    families: dict[str, str] = Field(
        default_factory=lambda: {
            "SolaimanLipi": "SolaimanLipi.ttf",
            "Kalpurush": "kalpurush.ttf",
            "Nikosh": "Nikosh.ttf",
            "Arial": "Arial.ttf",
            "Times New Roman": "Times New Roman.ttf",
            "Georgia": "Georgia.ttf",
        }
    )


class CatalogConfig(BaseModel):
    """远端模板目录/生成记录接口"""

    base_url: str | None = None
    templates_path: str = "/api/document-templates"
    records_path: str = "/api/generated-documents"
    timeout_sec: float = 10.0


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_to_file: bool = False
    log_file: Path = Path("logs/schooldocs.log")


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    config_path: Path = Path("config/schooldocs.yaml")

    render: RenderConfig = Field(default_factory=RenderConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    images: ImageConfig = Field(default_factory=ImageConfig)
    fonts: FontConfig = Field(default_factory=FontConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "SCHOOLDOCS_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        config = cls(
            config_path=path,
            render=RenderConfig(**cls._extract(data, "render")),
            export=ExportConfig(**cls._extract(data, "export")),
            images=ImageConfig(**cls._extract(data, "images")),
            fonts=FontConfig(**cls._extract(data, "fonts")),
            catalog=CatalogConfig(**cls._extract(data, "catalog")),
            logging=LoggingConfig(**cls._extract(data, "logging")),
        )

        config._resolve_paths(base_dir=path.parent)
        return config

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置（支持 {default: x} 写法）"""
        section = data.get(key) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            else:
                result[k] = v
        return result

    def _resolve_paths(self, base_dir: Path) -> None:
        """解析相对路径配置为绝对路径（基于配置文件所在目录）"""
        self.fonts.font_dirs = [
            d if d.is_absolute() else (base_dir / d).resolve() for d in self.fonts.font_dirs
        ]
        if self.export.output_dir and not self.export.output_dir.is_absolute():
            self.export.output_dir = (base_dir / self.export.output_dir).resolve()
        if self.export.text_layer_font and not self.export.text_layer_font.is_absolute():
            self.export.text_layer_font = (base_dir / self.export.text_layer_font).resolve()


def configure_logging(config: RuntimeConfig | None = None) -> None:
    """按配置初始化根日志"""
    config = config or get_config()
    level = getattr(logging, config.logging.log_level.upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.logging.log_to_file:
        config.logging.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(config.logging.log_file, encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


# 全局配置实例
_config: RuntimeConfig | None = None


def get_config() -> RuntimeConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        _config = RuntimeConfig.from_yaml(Path("config/schooldocs.yaml"))
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """重新加载配置"""
    global _config
    path = yaml_path or "config/schooldocs.yaml"
    _config = RuntimeConfig.from_yaml(path)
    return _config
