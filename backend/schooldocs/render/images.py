"""
图片资源 - 用户上传图片的解码与检查

无法解码的图片返回 None，由渲染器输出占位节点；
超出大小提示只记日志，不缩放、不拒绝。
"""

from __future__ import annotations

import io
import logging

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


def decode_image(data: bytes | None, name: str = "image", max_kb: int | None = None) -> Image.Image | None:
    """
    解码图片字节

    Returns:
        已完全加载的 PIL 图片；数据为空或无法解码时返回 None
    """
    if not data:
        return None

    if max_kb is not None and len(data) > max_kb * 1024:
        logger.warning(f"图片 {name} 超出建议大小: {len(data) // 1024}KB > {max_kb}KB")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.copy()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.debug(f"图片 {name} 无法解码，使用占位: {e}")
        return None
