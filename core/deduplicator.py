"""
图片去重模块

按解析后的 URL 去重：大小写敏感、不做解析之外的任何规范化，
保留首次出现的记录并维持原始发现顺序。
"""
from typing import Iterable, List, Set
from loguru import logger

from core.models import ImageRecord


def deduplicate(records: Iterable[ImageRecord]) -> List[ImageRecord]:
    """纯函数形式：每个 url 只保留第一条记录"""
    seen: Set[str] = set()
    unique = []
    for record in records:
        if record.url in seen:
            continue
        seen.add(record.url)
        unique.append(record)
    return unique


class ImageDeduplicator:
    """
    图片去重器（带统计）

    每次 deduplicate() 调用互相独立（一次提取一次调用），
    统计在多次调用之间累计，供关闭时输出。
    """

    def __init__(self):
        self.stats = {
            "batches": 0,
            "total_checked": 0,
            "duplicates_found": 0,
            "unique_images": 0
        }

    def deduplicate(self, records: Iterable[ImageRecord]) -> List[ImageRecord]:
        """
        对一次提取的候选记录去重

        Args:
            records: 按发现顺序排列的候选记录

        Returns:
            去重后的记录列表（顺序稳定）
        """
        records = list(records)
        unique = deduplicate(records)
        duplicates = len(records) - len(unique)

        self.stats["batches"] += 1
        self.stats["total_checked"] += len(records)
        self.stats["duplicates_found"] += duplicates
        self.stats["unique_images"] += len(unique)
        if duplicates:
            logger.debug(f"Dropped {duplicates} duplicate image URLs out of {len(records)}")
        return unique

    def get_stats(self) -> dict:
        """获取去重统计"""
        stats = self.stats.copy()
        if stats["total_checked"] > 0:
            stats["duplicate_rate"] = stats["duplicates_found"] / stats["total_checked"]
        else:
            stats["duplicate_rate"] = 0.0
        return stats

    def clear(self):
        """清空统计"""
        self.stats = {
            "batches": 0,
            "total_checked": 0,
            "duplicates_found": 0,
            "unique_images": 0
        }
        logger.debug("Deduplicator cleared")
