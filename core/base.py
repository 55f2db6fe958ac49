"""
HTTP 客户端基类模块

提取驱动与图片代理的公共基类：
- HTTP Session 管理（可注入外部 session）
- 浏览器风格请求头
- aiohttp 异常到领域异常的转换
- 异步上下文管理
"""
import asyncio
import aiohttp
from typing import Any, Dict, Optional
from loguru import logger
from fake_useragent import UserAgent

from config import Config
from core.errors import (
    ExtractorError,
    InvalidUrlError,
    NetworkUnreachableError,
    RequestTimeoutError,
    UpstreamFailureError,
)

HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"
IMAGE_ACCEPT = "image/webp,image/avif,image/apng,image/*,*/*;q=0.8"


def translate_client_error(url: str, error: BaseException, timeout: Optional[float] = None) -> ExtractorError:
    """
    将 aiohttp / asyncio 异常转换为领域异常

    Args:
        url: 请求的URL
        error: 原始异常
        timeout: 本次请求的超时设置（用于错误信息）

    Returns:
        对应的 ExtractorError 子类实例
    """
    if isinstance(error, ExtractorError):
        return error
    # ServerTimeoutError 同时是 ClientError 与 TimeoutError，需要先判断
    if isinstance(error, asyncio.TimeoutError):
        return RequestTimeoutError(url, timeout)
    if isinstance(error, aiohttp.InvalidURL):
        return InvalidUrlError(url, "invalid URL format")
    if isinstance(error, aiohttp.ClientResponseError):
        return UpstreamFailureError(url, error.status, error.message or "")
    if isinstance(error, (aiohttp.ClientConnectionError, OSError)):
        return NetworkUnreachableError(url, str(error))
    if isinstance(error, aiohttp.ClientError):
        return NetworkUnreachableError(url, str(error))
    return UpstreamFailureError(url, reason=str(error))


class BaseClient:
    """
    HTTP 客户端基类

    传入 session 时复用（不负责关闭）；否则在 init() 中自行创建并在 close() 中关闭。
    """

    def __init__(self, config: Config, session: Optional[aiohttp.ClientSession] = None):
        """
        初始化客户端

        Args:
            config: 配置对象
            session: 可选的共享 aiohttp 会话
        """
        self.config = config
        self.session = session
        self._owns_session = session is None
        self.ua = UserAgent()

        self.stats: Dict[str, Any] = {
            "requests": 0,
            "requests_failed": 0,
        }

    async def __aenter__(self):
        """异步上下文管理器入口"""
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()

    async def init(self):
        """初始化HTTP会话"""
        if self.session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.crawler.page_timeout)
            self.session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
            logger.debug(f"{type(self).__name__} session initialized")

    async def close(self):
        """关闭会话（只关闭自己创建的）"""
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None
        logger.debug(f"📊 {type(self).__name__} stats: {self.get_stats()}")

    def user_agent(self) -> str:
        return self.ua.random if self.config.crawler.rotate_user_agent else self.ua.chrome

    def get_headers(self, accept: str = HTML_ACCEPT, referer: Optional[str] = None) -> Dict[str, str]:
        """
        获取请求头

        Args:
            accept: Accept 请求头
            referer: 可选的 Referer
        """
        headers = {
            "User-Agent": self.user_agent(),
            "Accept": accept,
            "Accept-Language": self.config.crawler.accept_language,
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }
        if referer:
            headers["Referer"] = referer
        return headers

    def get_stats(self) -> Dict[str, Any]:
        """获取统计信息"""
        return self.stats.copy()
