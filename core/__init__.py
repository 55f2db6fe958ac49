"""
核心模块

包含基础组件：
- models: 图片记录数据模型
- errors: 错误分类
- url_resolver: URL 解析与规范化
- classifier: 图片格式识别
- deduplicator: 图片去重器
- rate_limiter: 出站请求限速器
- enricher: 元数据补全
- sniffer: 图片字节嗅探
- base: HTTP 客户端基类
"""
from .models import ImageFormat, ImageRecord, SourceType
from .errors import (
    ExtractorError,
    InvalidUrlError,
    DomainNotAllowedError,
    NetworkUnreachableError,
    RequestTimeoutError,
    UpstreamFailureError,
    NotAnImageError,
)
from .deduplicator import ImageDeduplicator, deduplicate
from .rate_limiter import RateLimiter

__all__ = [
    'ImageFormat',
    'ImageRecord',
    'SourceType',
    'ExtractorError',
    'InvalidUrlError',
    'DomainNotAllowedError',
    'NetworkUnreachableError',
    'RequestTimeoutError',
    'UpstreamFailureError',
    'NotAnImageError',
    'ImageDeduplicator',
    'deduplicate',
    'RateLimiter',
]
