"""
数据模型模块

- ImageFormat: 规范化图片格式枚举
- SourceType: 图片来源（扫描站点）枚举
- ImageRecord: 提取结果的基本单元
- ExtractRequest: 提取请求边界校验
"""
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class ImageFormat(str, Enum):
    """图片格式"""
    JPEG = "jpeg"
    JPG = "jpg"
    PNG = "png"
    GIF = "gif"
    WEBP = "webp"
    SVG = "svg"
    AVIF = "avif"
    BMP = "bmp"
    ICO = "ico"
    TIFF = "tiff"
    HEIC = "heic"
    HEIF = "heif"
    UNKNOWN = "unknown"


class SourceType(str, Enum):
    """图片来源类型"""
    IMG = "img"
    PICTURE = "picture"
    BACKGROUND = "background"
    SVG = "svg"
    LINK = "link"
    META = "meta"
    JSONLD = "jsonld"
    CANVAS = "canvas"
    IFRAME = "iframe"
    OTHER = "other"


class ImageRecord(BaseModel):
    """
    图片记录

    对外序列化使用 camelCase 字段名（by_alias=True），内部使用 snake_case。
    aspect_ratio 在宽高都为正数时自动计算。
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str
    filename: str = "image"
    width: Optional[int] = None
    height: Optional[int] = None
    size: Optional[int] = Field(default=None, ge=0)
    mime_type: Optional[str] = None
    declared_type: Optional[str] = None
    format: ImageFormat = ImageFormat.UNKNOWN
    alt: Optional[str] = None
    source_type: SourceType = SourceType.IMG
    is_lazy_loaded: bool = False
    is_responsive: bool = False
    data_src: Optional[str] = None
    original_element: Optional[str] = None
    aspect_ratio: Optional[float] = None
    selected: bool = True

    @field_validator("url")
    @classmethod
    def _url_not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("url must not be empty")
        return value

    @field_validator("filename")
    @classmethod
    def _filename_fallback(cls, value: str) -> str:
        return value or "image"

    @field_validator("width", "height")
    @classmethod
    def _positive_dimension(cls, value: Optional[int]) -> Optional[int]:
        if value is None or value <= 0:
            return None
        return value

    @model_validator(mode="after")
    def _derive_aspect_ratio(self) -> "ImageRecord":
        if self.aspect_ratio is None and self.width and self.height:
            self.aspect_ratio = self.width / self.height
        return self

    @property
    def is_data_uri(self) -> bool:
        return self.url.startswith("data:")

    def to_dict(self) -> dict:
        """序列化为对外格式（camelCase，去掉空字段）"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ExtractRequest(BaseModel):
    """提取请求体"""
    url: str = Field(min_length=1)
