"""
爬虫模块

包含爬虫类：
- BaseSpider: 爬虫基类（限速 + 重试的页面获取）
- ImageSpider: 网页图片提取爬虫
"""
from spiders.base import BaseSpider
from spiders.image_spider import ImageSpider

__all__ = [
    'BaseSpider',
    'ImageSpider',
]
