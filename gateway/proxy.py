"""
图片代理模块

- ImageProxy.open(): 校验URL -> 获取上游 -> 要求 image/* -> 以字节流形式转交调用方
- ImageProxy.info(): 只做元数据探测（HEAD），必要时用 Pillow 嗅探开头的字节

转发过程不在内存中缓冲完整响应体；调用方每消费一块才向上游读取下一块。
"""
import asyncio
import aiohttp
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from urllib.parse import urlparse
from loguru import logger
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from config import Config
from core.base import IMAGE_ACCEPT, BaseClient, translate_client_error
from core.classifier import classify, format_from_mime, normalize_mime
from core.enricher import is_content_encoded, parse_content_length
from core.errors import (
    DomainNotAllowedError,
    ExtractorError,
    InvalidUrlError,
    NotAnImageError,
    UpstreamFailureError,
)
from core.models import ImageFormat
from core.sniffer import sniff_image


class ImageInfo(BaseModel):
    """info 操作的结果"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str
    mime_type: Optional[str] = None
    format: ImageFormat = ImageFormat.UNKNOWN
    size: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ProxiedImage:
    """
    已通过校验的上游图片响应，按块读取

    产出的是解压后的字节；上游使用了 Content-Encoding 时，
    其 Content-Length 是压缩后的长度，不能转发给下游，content_length 为 None。
    """

    def __init__(self, url: str, response: aiohttp.ClientResponse, content_type: str, chunk_size: int):
        self.url = url
        self.content_type = content_type
        self.content_length = None
        if not is_content_encoded(response.headers):
            self.content_length = parse_content_length(response.headers.get("Content-Length"))
        self.chunk_size = chunk_size
        self._response = response
        self.bytes_relayed = 0

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        """逐块产出上游数据；上游读错误转换为领域异常"""
        try:
            async for chunk in self._response.content.iter_chunked(self.chunk_size):
                self.bytes_relayed += len(chunk)
                yield chunk
        except ExtractorError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise translate_client_error(self.url, e) from e


class ImageProxy(BaseClient):
    """
    图片代理

    Example:
        async with ImageProxy(config) as proxy:
            async with proxy.open(url) as image:
                async for chunk in image.iter_chunks():
                    ...
    """

    def __init__(self, config: Config, session: Optional[aiohttp.ClientSession] = None):
        super().__init__(config, session)
        self.proxy_config = config.proxy
        self.stats.update({
            "proxied": 0,
            "rejected": 0,
            "info_requests": 0,
            "sniffed": 0,
        })

    # ========================================================================
    # 校验
    # ========================================================================

    def validate_url(self, url: Optional[str]) -> str:
        """
        校验代理目标

        Raises:
            InvalidUrlError: 缺失、无法解析或非 http(s) 协议
            DomainNotAllowedError: 配置了白名单且域名不在其中
        """
        if not url or not url.strip():
            raise InvalidUrlError(str(url), "missing URL parameter")
        url = url.strip()
        try:
            parsed = urlparse(url)
            parsed.port
        except ValueError:
            raise InvalidUrlError(url, "invalid URL format")
        if parsed.scheme.lower() not in ("http", "https"):
            raise InvalidUrlError(url, "invalid URL protocol, only HTTP and HTTPS are supported")
        host = (parsed.hostname or "").lower()
        if not host:
            raise InvalidUrlError(url, "invalid URL format")

        allowed = [d.lower().lstrip(".") for d in self.proxy_config.allowed_domains]
        if allowed and not any(host == d or host.endswith(f".{d}") for d in allowed):
            raise DomainNotAllowedError(host)
        return url

    @staticmethod
    def _origin(url: str) -> str:
        parsed = urlparse(url)
        return f"{parsed.scheme}://{parsed.netloc}/"

    # ========================================================================
    # 代理
    # ========================================================================

    @asynccontextmanager
    async def open(self, url: str, referer: Optional[str] = None) -> AsyncIterator[ProxiedImage]:
        """
        打开上游图片流

        Args:
            url: 图片URL
            referer: 原始页面URL，缺省时使用图片自身的源站

        Yields:
            ProxiedImage（退出上下文时释放上游连接）

        Raises:
            InvalidUrlError / DomainNotAllowedError: 校验失败，不发起请求
            UpstreamFailureError: 上游非 2xx
            NotAnImageError: 上游 Content-Type 不是 image/*
            NetworkUnreachableError / RequestTimeoutError: 网络问题
        """
        url = self.validate_url(url)
        if self.session is None:
            await self.init()

        timeout = self.proxy_config.timeout
        headers = self.get_headers(accept=IMAGE_ACCEPT, referer=referer or self._origin(url))
        headers["Accept-Encoding"] = "identity"
        try:
            response = await self.session.get(
                url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=timeout),
                allow_redirects=True,
            )
        except Exception as e:
            self.stats["requests_failed"] += 1
            error = translate_client_error(url, e, timeout)
            logger.error(f"❌ Image proxy error for {url}: {error}")
            raise error from e

        self.stats["requests"] += 1
        try:
            if not 200 <= response.status < 300:
                self.stats["rejected"] += 1
                raise UpstreamFailureError(url, response.status, response.reason or "")

            content_type = response.headers.get("Content-Type") or ""
            if not content_type.strip().lower().startswith("image/"):
                self.stats["rejected"] += 1
                raise NotAnImageError(url, content_type or None)

            self.stats["proxied"] += 1
            yield ProxiedImage(url, response, content_type, self.proxy_config.chunk_size)
        finally:
            response.release()

    # ========================================================================
    # 信息
    # ========================================================================

    async def info(self, url: str) -> ImageInfo:
        """
        获取图片信息（不转发字节）

        HEAD 返回可用的 image/* 类型时直接给出格式与大小；
        否则读取开头的若干字节用 Pillow 识别，仍无法识别则视为不是图片。
        """
        url = self.validate_url(url)
        if self.session is None:
            await self.init()
        self.stats["info_requests"] += 1

        timeout = self.config.crawler.metadata_timeout
        try:
            async with self.session.head(
                url,
                headers=self.get_headers(accept=IMAGE_ACCEPT),
                timeout=aiohttp.ClientTimeout(total=timeout),
                allow_redirects=True,
            ) as response:
                if not 200 <= response.status < 300:
                    raise UpstreamFailureError(url, response.status, response.reason or "")
                mime = normalize_mime(response.headers.get("Content-Type"))
                size = parse_content_length(response.headers.get("Content-Length"))
        except ExtractorError:
            raise
        except Exception as e:
            raise translate_client_error(url, e, timeout) from e

        if mime and mime.startswith("image/"):
            fmt = format_from_mime(mime)
            if fmt == ImageFormat.UNKNOWN:
                fmt = classify(url)[0]
            return ImageInfo(url=url, mime_type=mime, format=fmt, size=size)

        sniffed = await self._sniff(url)
        if sniffed is None:
            raise NotAnImageError(url, mime)
        return ImageInfo(
            url=url,
            mime_type=sniffed.mime_type,
            format=sniffed.format,
            size=size,
            width=sniffed.width,
            height=sniffed.height,
        )

    async def _sniff(self, url: str):
        """
        用 Range 请求读取开头的字节并识别

        上游可能分多次到达，持续读取直到 limit 字节或 EOF。
        """
        limit = self.proxy_config.sniff_bytes
        timeout = self.config.crawler.metadata_timeout
        headers = self.get_headers(accept=IMAGE_ACCEPT)
        headers["Range"] = f"bytes=0-{limit - 1}"
        headers["Accept-Encoding"] = "identity"
        try:
            async with self.session.get(
                url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=timeout),
                allow_redirects=True,
            ) as response:
                if not 200 <= response.status < 300:
                    raise UpstreamFailureError(url, response.status, response.reason or "")
                buffer = bytearray()
                async for chunk in response.content.iter_chunked(limit):
                    buffer.extend(chunk)
                    if len(buffer) >= limit:
                        break
                data = bytes(buffer[:limit])
        except ExtractorError:
            raise
        except Exception as e:
            raise translate_client_error(url, e, timeout) from e

        self.stats["sniffed"] += 1
        return sniff_image(data)
