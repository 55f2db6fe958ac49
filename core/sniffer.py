"""
图片字节嗅探模块

仅用于代理 info 操作的 Content-Type 信任边界：
上游没有给出可用的 image/* 类型时，用 Pillow 识别前若干字节。
"""
import io
from typing import NamedTuple, Optional
from loguru import logger
from PIL import Image, UnidentifiedImageError

from core.classifier import FORMAT_TO_MIME
from core.models import ImageFormat

# Pillow 格式名 -> ImageFormat
PIL_FORMATS = {
    "JPEG": ImageFormat.JPEG,
    "MPO": ImageFormat.JPEG,
    "PNG": ImageFormat.PNG,
    "GIF": ImageFormat.GIF,
    "WEBP": ImageFormat.WEBP,
    "BMP": ImageFormat.BMP,
    "DIB": ImageFormat.BMP,
    "ICO": ImageFormat.ICO,
    "TIFF": ImageFormat.TIFF,
    "AVIF": ImageFormat.AVIF,
    "HEIF": ImageFormat.HEIF,
}


class SniffResult(NamedTuple):
    format: ImageFormat
    mime_type: Optional[str]
    width: Optional[int] = None
    height: Optional[int] = None


def _looks_like_svg(data: bytes) -> bool:
    head = data[:1024].lstrip().lower()
    return head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in head)


def sniff_image(data: bytes) -> Optional[SniffResult]:
    """
    识别图片字节

    Args:
        data: 图片数据（可以只是开头部分）

    Returns:
        SniffResult；无法识别时返回 None
    """
    if not data:
        return None

    if _looks_like_svg(data):
        return SniffResult(ImageFormat.SVG, FORMAT_TO_MIME[ImageFormat.SVG])

    try:
        # Image.open 只解析头部，截断数据也能拿到格式和尺寸
        with Image.open(io.BytesIO(data)) as img:
            fmt = PIL_FORMATS.get((img.format or "").upper(), ImageFormat.UNKNOWN)
            width, height = img.size
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.debug(f"Image sniff failed: {e}")
        return None

    mime = FORMAT_TO_MIME.get(fmt)
    return SniffResult(fmt, mime, width or None, height or None)
