"""
异常定义模块

提取流水线与图片代理共用的错误分类：
- InvalidUrlError: 输入 URL 无效（在任何网络活动之前拒绝）
- DomainNotAllowedError: 域名不在代理白名单中
- NetworkUnreachableError: DNS / 连接失败
- RequestTimeoutError: 出站请求超时
- UpstreamFailureError: 上游返回非 2xx
- NotAnImageError: 上游 Content-Type 不是 image/*
"""
from typing import Optional


class ExtractorError(Exception):
    """所有领域错误的基类"""


class InvalidUrlError(ExtractorError):
    """URL 语法错误或协议不受支持"""

    def __init__(self, url: str, reason: str = "invalid URL"):
        super().__init__(f"{reason}: {url!r}")
        self.url = url
        self.reason = reason


class DomainNotAllowedError(ExtractorError):
    """域名不在白名单中"""

    def __init__(self, host: str):
        super().__init__(f"domain not allowed: {host}")
        self.host = host


class NetworkUnreachableError(ExtractorError):
    """DNS 解析或连接失败"""

    def __init__(self, url: str, detail: str = ""):
        super().__init__(f"network unreachable: {url} {detail}".rstrip())
        self.url = url


class RequestTimeoutError(ExtractorError):
    """请求超时"""

    def __init__(self, url: str, timeout: Optional[float] = None):
        message = f"request timed out: {url}"
        if timeout is not None:
            message += f" (after {timeout:g}s)"
        super().__init__(message)
        self.url = url
        self.timeout = timeout


class UpstreamFailureError(ExtractorError):
    """上游返回失败状态码"""

    def __init__(self, url: str, status: Optional[int] = None, reason: str = ""):
        message = f"upstream failure for {url}"
        if status is not None:
            message += f": HTTP {status}"
        if reason:
            message += f" {reason}"
        super().__init__(message)
        self.url = url
        self.status = status


class NotAnImageError(UpstreamFailureError):
    """上游响应不是图片"""

    def __init__(self, url: str, content_type: Optional[str] = None):
        super().__init__(url, reason=f"content-type {content_type!r} is not an image")
        self.content_type = content_type
