"""
解析器模块

包含页面解析器：
- BaseParser: 解析器基类
- ImageParser: 图片候选扫描器
- css / jsonld: 样式与结构化数据中的图片引用
"""
from parsers.base import BaseParser
from parsers.image_parser import ImageParser

__all__ = ['BaseParser', 'ImageParser']
