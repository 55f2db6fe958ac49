"""
爬虫基类模块

包含爬虫的抽象基类：
- BaseSpider: 在 BaseClient 之上提供受限速、可重试的页面获取
"""
import aiohttp
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from loguru import logger
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import Config
from core.base import HTML_ACCEPT, BaseClient, translate_client_error
from core.errors import (
    ExtractorError,
    NetworkUnreachableError,
    RequestTimeoutError,
    UpstreamFailureError,
)
from core.rate_limiter import RateLimiter

# 只对瞬时网络错误重试；上游明确拒绝（非 2xx）不重试
RETRYABLE_ERRORS = (NetworkUnreachableError, RequestTimeoutError)


class BaseSpider(BaseClient, ABC):
    """
    爬虫基类

    所有爬虫的公共基类，提供：
    - HTTP Session 管理（继承 BaseClient）
    - 页面获取（限速 + tenacity 重试）
    - 统计信息

    子类需要实现:
    - get_statistics(): 获取统计信息
    """

    def __init__(
        self,
        config: Config,
        rate_limiter: RateLimiter,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        初始化爬虫

        Args:
            config: 配置对象
            rate_limiter: 进程级限速器（由调用方持有）
            session: 可选的共享 aiohttp 会话
        """
        super().__init__(config, session)
        self.rate_limiter = rate_limiter
        self.stats.update({
            "pages_fetched": 0,
            "page_retries": 0,
        })

    def _log_retry(self, retry_state):
        self.stats["page_retries"] += 1
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(f"🔁 Retrying page fetch (attempt {retry_state.attempt_number}): {error}")

    async def fetch_page(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        """
        获取页面内容

        Args:
            url: 页面URL
            headers: 可选的额外请求头

        Returns:
            HTML内容

        Raises:
            UpstreamFailureError: 非 2xx 响应
            NetworkUnreachableError: DNS / 连接失败（重试后）
            RequestTimeoutError: 超时（重试后）
        """
        crawler = self.config.crawler
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, crawler.max_retries)),
            wait=wait_exponential(multiplier=crawler.retry_delay, max=10),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._fetch_page_once(url, headers)

    async def _fetch_page_once(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        await self.rate_limiter.acquire()
        self.stats["requests"] += 1

        request_headers = self.get_headers(accept=HTML_ACCEPT)
        if headers:
            request_headers.update(headers)

        page_timeout = self.config.crawler.page_timeout
        try:
            logger.debug(f"📄 获取页面: {url}")
            async with self.session.get(
                url,
                headers=request_headers,
                timeout=aiohttp.ClientTimeout(total=page_timeout),
                allow_redirects=True,
            ) as response:
                if not 200 <= response.status < 300:
                    raise UpstreamFailureError(url, response.status, response.reason or "")
                html = await response.text(errors="replace")
                self.stats["pages_fetched"] += 1
                return html
        except ExtractorError as e:
            self.stats["requests_failed"] += 1
            logger.warning(f"⚠️  获取失败 {url}: {e}")
            raise
        except Exception as e:
            self.stats["requests_failed"] += 1
            error = translate_client_error(url, e, page_timeout)
            logger.error(f"❌ 获取出错 {url}: {error}")
            raise error from e

    @abstractmethod
    def get_statistics(self) -> Dict[str, Any]:
        """
        获取统计信息

        子类必须实现此方法
        """
