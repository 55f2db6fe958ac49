"""
图片元数据补全模块

对去重后的前 N 条记录做有界并发的网络探测，补全 size / mimeType。
- 先发 HEAD，失败后回退为完整 GET 并以收到的字节数作为 size
- 两次都失败的记录原样返回，不会被丢弃
- data URI 不发起任何网络请求
"""
import asyncio
import aiohttp
from typing import List, Optional
from loguru import logger

from config import Config
from core.base import IMAGE_ACCEPT, BaseClient, translate_client_error
from core.classifier import normalize_mime
from core.errors import ExtractorError, UpstreamFailureError
from core.models import ImageRecord
from core.rate_limiter import RateLimiter

READ_CHUNK_SIZE = 64 * 1024


def parse_content_length(value: Optional[str]) -> Optional[int]:
    """Content-Length -> 非负整数；缺失或非法返回 None"""
    if value is None:
        return None
    try:
        length = int(str(value).strip())
    except ValueError:
        return None
    return length if length >= 0 else None


def is_content_encoded(headers) -> bool:
    """
    响应体是否经过传输压缩（gzip / br 等）

    aiohttp 会自动解压，此时 Content-Length 是压缩后的长度，与读到的字节数不一致。
    """
    encoding = (headers.get("Content-Encoding") or "").strip().lower()
    return encoding not in ("", "identity")


class MetadataEnricher(BaseClient):
    """
    元数据补全器

    按固定大小分批并发探测（默认每批 5 个），批次之间短暂停顿，
    整批完成（成功或失败）后才开始下一批；外部取消会中止当前批次。

    Example:
        enricher = MetadataEnricher(config, rate_limiter, session=session)
        records = await enricher.enrich(records)
    """

    def __init__(
        self,
        config: Config,
        rate_limiter: RateLimiter,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        super().__init__(config, session)
        self.rate_limiter = rate_limiter
        self.extractor_config = config.extractor
        self.probe_timeout = config.crawler.metadata_timeout
        self.stats.update({
            "enriched": 0,
            "head_success": 0,
            "get_fallback": 0,
            "unchanged": 0,
            "skipped_data_uri": 0,
        })

    async def enrich(self, records: List[ImageRecord]) -> List[ImageRecord]:
        """
        补全一组记录

        Args:
            records: 待补全记录（调用方负责截取前 N 条）

        Returns:
            同样长度、同样顺序的记录列表
        """
        if not records:
            return []

        batch_size = max(1, self.extractor_config.batch_size)
        result: List[ImageRecord] = []

        for start in range(0, len(records), batch_size):
            batch = records[start:start + batch_size]
            batch_results = await asyncio.gather(
                *[self.enrich_one(record) for record in batch]
            )
            result.extend(batch_results)

            # 批次间隔，避免对同一主机突发请求
            if start + batch_size < len(records):
                await asyncio.sleep(self.extractor_config.batch_delay)

        logger.debug(f"Enriched {len(result)} records: {self.get_stats()}")
        return result

    async def enrich_one(self, record: ImageRecord) -> ImageRecord:
        """补全单条记录；任何探测失败都返回原记录"""
        if record.is_data_uri:
            self.stats["skipped_data_uri"] += 1
            return record

        try:
            size, mime = await self._probe_head(record.url)
            self.stats["head_success"] += 1
        except ExtractorError as head_error:
            logger.debug(f"HEAD failed for {record.url}: {head_error}, attempting GET")
            try:
                size, mime = await self._probe_get(record.url)
                self.stats["get_fallback"] += 1
            except ExtractorError as get_error:
                self.stats["unchanged"] += 1
                logger.debug(f"Metadata probe failed for {record.url}: {get_error}")
                return record

        self.stats["enriched"] += 1
        return self._apply(record, size, mime)

    @staticmethod
    def _apply(record: ImageRecord, size: Optional[int], mime: Optional[str]) -> ImageRecord:
        """只增加 size / mimeType，不移除任何已有字段"""
        update = {}
        if size is not None and size >= 0:
            update["size"] = size
        if mime and mime.startswith("image/"):
            update["mime_type"] = mime
        if not update:
            return record
        return record.model_copy(update=update)

    async def _probe_head(self, url: str):
        """HEAD 探测：返回 (size, mime)"""
        await self.rate_limiter.acquire()
        self.stats["requests"] += 1
        timeout = aiohttp.ClientTimeout(total=self.probe_timeout)
        try:
            async with self.session.head(
                url,
                headers=self.get_headers(accept="image/*"),
                timeout=timeout,
                allow_redirects=True,
            ) as response:
                if not 200 <= response.status < 300:
                    raise UpstreamFailureError(url, response.status)
                return (
                    parse_content_length(response.headers.get("Content-Length")),
                    normalize_mime(response.headers.get("Content-Type")),
                )
        except ExtractorError:
            self.stats["requests_failed"] += 1
            raise
        except Exception as e:
            self.stats["requests_failed"] += 1
            raise translate_client_error(url, e, self.probe_timeout) from e

    async def _probe_get(self, url: str):
        """
        GET 回退：逐块读取并计数，不在内存中保留整个响应体

        请求不压缩的响应体，使计数与 HEAD 的 Content-Length 口径一致；
        上游仍然压缩时以 Content-Length（压缩后的传输长度）为准。
        """
        await self.rate_limiter.acquire()
        self.stats["requests"] += 1
        timeout = aiohttp.ClientTimeout(total=self.probe_timeout)
        headers = self.get_headers(accept=IMAGE_ACCEPT)
        headers["Accept-Encoding"] = "identity"
        try:
            async with self.session.get(
                url,
                headers=headers,
                timeout=timeout,
                allow_redirects=True,
            ) as response:
                if not 200 <= response.status < 300:
                    raise UpstreamFailureError(url, response.status)
                mime = normalize_mime(response.headers.get("Content-Type"))
                if is_content_encoded(response.headers):
                    return parse_content_length(response.headers.get("Content-Length")), mime
                size = 0
                async for chunk in response.content.iter_chunked(READ_CHUNK_SIZE):
                    size += len(chunk)
                return size, mime
        except ExtractorError:
            self.stats["requests_failed"] += 1
            raise
        except Exception as e:
            self.stats["requests_failed"] += 1
            raise translate_client_error(url, e, self.probe_timeout) from e
