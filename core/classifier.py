"""
图片格式分类模块

纯查表：扩展名优先，其次声明的 MIME 类型，都无法识别时返回 unknown。
不在提取路径上做字节嗅探。
"""
import posixpath
from typing import Dict, Optional, Tuple
from urllib.parse import urlparse

from core.models import ImageFormat

MIME_TO_FORMAT: Dict[str, ImageFormat] = {
    "image/jpeg": ImageFormat.JPEG,
    "image/jpg": ImageFormat.JPG,
    "image/pjpeg": ImageFormat.JPEG,
    "image/png": ImageFormat.PNG,
    "image/gif": ImageFormat.GIF,
    "image/webp": ImageFormat.WEBP,
    "image/svg+xml": ImageFormat.SVG,
    "image/avif": ImageFormat.AVIF,
    "image/bmp": ImageFormat.BMP,
    "image/x-icon": ImageFormat.ICO,
    "image/vnd.microsoft.icon": ImageFormat.ICO,
    "image/tiff": ImageFormat.TIFF,
    "image/heic": ImageFormat.HEIC,
    "image/heif": ImageFormat.HEIF,
}

FORMAT_TO_MIME: Dict[ImageFormat, str] = {
    ImageFormat.JPEG: "image/jpeg",
    ImageFormat.JPG: "image/jpeg",
    ImageFormat.PNG: "image/png",
    ImageFormat.GIF: "image/gif",
    ImageFormat.WEBP: "image/webp",
    ImageFormat.SVG: "image/svg+xml",
    ImageFormat.AVIF: "image/avif",
    ImageFormat.BMP: "image/bmp",
    ImageFormat.ICO: "image/x-icon",
    ImageFormat.TIFF: "image/tiff",
    ImageFormat.HEIC: "image/heic",
    ImageFormat.HEIF: "image/heif",
}

EXTENSION_TO_FORMAT: Dict[str, ImageFormat] = {
    "jpeg": ImageFormat.JPEG,
    "jpg": ImageFormat.JPG,
    "png": ImageFormat.PNG,
    "gif": ImageFormat.GIF,
    "webp": ImageFormat.WEBP,
    "svg": ImageFormat.SVG,
    "avif": ImageFormat.AVIF,
    "bmp": ImageFormat.BMP,
    "ico": ImageFormat.ICO,
    "tiff": ImageFormat.TIFF,
    "tif": ImageFormat.TIFF,
    "heic": ImageFormat.HEIC,
    "heif": ImageFormat.HEIF,
}

FONT_EXTENSIONS = frozenset({"woff", "woff2", "eot", "ttf", "otf"})


def extension_of(url: str) -> str:
    """URL 路径的小写扩展名（忽略查询串与片段），没有则返回空串"""
    if url.startswith("data:"):
        return ""
    try:
        path = urlparse(url).path
    except ValueError:
        return ""
    return posixpath.splitext(path)[1].lstrip(".").lower()


def normalize_mime(mime: Optional[str]) -> Optional[str]:
    """去掉参数并转小写：'Image/PNG; q=1' -> 'image/png'"""
    if not mime:
        return None
    value = mime.split(";", 1)[0].strip().lower()
    return value or None


def data_uri_mime(url: str) -> Optional[str]:
    """data:image/png;base64,... -> image/png"""
    if not url.startswith("data:"):
        return None
    header = url[5:].split(",", 1)[0]
    return normalize_mime(header)


def format_from_mime(mime: Optional[str]) -> ImageFormat:
    return MIME_TO_FORMAT.get(normalize_mime(mime) or "", ImageFormat.UNKNOWN)


def classify(url: str, declared_mime: Optional[str] = None) -> Tuple[ImageFormat, Optional[str]]:
    """
    判断图片格式

    Args:
        url: 已解析的URL
        declared_mime: 标记中声明的 MIME 类型（可选）

    Returns:
        (format, mime_type)；都无法识别时为 (unknown, 声明的MIME或None)
    """
    fmt = EXTENSION_TO_FORMAT.get(extension_of(url))
    if fmt is not None:
        return fmt, FORMAT_TO_MIME[fmt]

    mime = normalize_mime(declared_mime) or data_uri_mime(url)
    if mime and mime in MIME_TO_FORMAT:
        return MIME_TO_FORMAT[mime], mime

    return ImageFormat.UNKNOWN, mime


def is_font_url(url: str) -> bool:
    return extension_of(url) in FONT_EXTENSIONS
