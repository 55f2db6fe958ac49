"""
网页图片提取爬虫

控制流：页面URL -> 获取页面 -> 扫描标记 -> 去重 -> 补全前 N 条元数据 -> 返回
除页面获取失败与输入校验失败外，单个候选的问题都在本地吸收。
"""
import aiohttp
from typing import Any, Dict, List, Optional
from loguru import logger

from config import Config
from core.deduplicator import ImageDeduplicator
from core.enricher import MetadataEnricher
from core.models import ImageRecord
from core.rate_limiter import RateLimiter
from core.url_resolver import normalize_page_url
from parsers.image_parser import ImageParser
from spiders.base import BaseSpider


class ImageSpider(BaseSpider):
    """
    网页图片提取爬虫

    每次 extract() 都是无状态的：去重器和记录列表只在本次请求内存在，
    只有注入的 RateLimiter 在请求之间共享。

    Example:
        limiter = RateLimiter.from_config(config.rate_limit)
        async with ImageSpider(config, limiter) as spider:
            images = await spider.extract("https://example.com/")
    """

    def __init__(
        self,
        config: Config,
        rate_limiter: RateLimiter,
        session: Optional[aiohttp.ClientSession] = None,
        parser: Optional[ImageParser] = None,
    ):
        super().__init__(config, rate_limiter, session)
        self.parser = parser or ImageParser(config.extractor)
        self.enricher: Optional[MetadataEnricher] = None
        self.deduplicator = ImageDeduplicator()

        self.stats.update({
            "extractions": 0,
            "images_found": 0,
            "images_unique": 0,
            "images_enriched": 0,
        })

    async def init(self):
        await super().init()
        self.enricher = MetadataEnricher(self.config, self.rate_limiter, session=self.session)

    async def extract(self, page_url: str, enrich: Optional[bool] = None) -> List[ImageRecord]:
        """
        提取页面中的图片

        Args:
            page_url: 页面URL（没有协议时补 https://）
            enrich: 是否补全元数据，默认取配置

        Returns:
            去重后的图片记录；没有图片时返回空列表

        Raises:
            InvalidUrlError: 输入不是可解析的URL（不发起任何网络请求）
            UpstreamFailureError: 页面本身获取失败
            NetworkUnreachableError / RequestTimeoutError: 页面无法连接或超时
        """
        url = normalize_page_url(page_url)
        if self.session is None:
            await self.init()

        logger.info(f"🚀 Starting extraction from URL: {url}")
        self.stats["extractions"] += 1

        html = await self.fetch_page(url)
        candidates = self.parser.parse(html, url)
        self.stats["images_found"] += len(candidates)

        unique = self.deduplicator.deduplicate(candidates)
        self.stats["images_unique"] += len(unique)

        if enrich is None:
            enrich = self.config.extractor.enable_enrichment
        if enrich and unique:
            limit = max(0, self.config.extractor.max_enriched_images)
            head, tail = unique[:limit], unique[limit:]
            if self.enricher is None:
                self.enricher = MetadataEnricher(self.config, self.rate_limiter, session=self.session)
            head = await self.enricher.enrich(head)
            self.stats["images_enriched"] += len(head)
            unique = head + tail

        logger.success(f"✅ Extracted {len(unique)} images from {url} ({len(candidates)} candidates)")
        return unique

    def get_statistics(self) -> Dict[str, Any]:
        """获取统计信息"""
        stats = self.get_stats()
        stats["scan"] = dict(self.parser.last_stats)
        stats["dedup"] = self.deduplicator.get_stats()
        if self.enricher is not None:
            stats["enrichment"] = self.enricher.get_stats()
        stats["rate_limit"] = self.rate_limiter.get_stats()
        return stats

    async def close(self):
        await super().close()
        logger.info(f"📊 爬虫统计: {self.get_statistics()}")
