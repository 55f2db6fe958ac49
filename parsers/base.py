"""
解析器基类模块

包含解析器的抽象基类：
- BaseParser: 解析器基类，提供 srcset 拆分、尺寸解析、片段截断等公共功能
"""
import re
import hashlib
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple

# originalElement / SVG 片段的长度上限
SNIPPET_MAX_LENGTH = 300

_LEADING_INT_RE = re.compile(r"^\s*\+?(\d+)")


class BaseParser(ABC):
    """
    解析器基类

    所有解析器的公共基类，提供：
    - srcset 拆分
    - 宽高解析
    - 原始片段截断
    - 稳定哈希

    子类需要实现:
    - parse(): 解析页面的主方法
    """

    def __init__(self, parser_config=None):
        """
        初始化解析器

        Args:
            parser_config: ExtractorConfig，可选
        """
        self._config = parser_config
        self.snippet_max_length = (
            parser_config.snippet_max_length if parser_config else SNIPPET_MAX_LENGTH
        )

    @abstractmethod
    def parse(self, html: str, page_url: str) -> List[Any]:
        """解析页面"""

    @staticmethod
    def split_srcset(value: Optional[str]) -> List[str]:
        """
        拆分 srcset

        "a.jpg 1x, b.jpg 2x" -> ["a.jpg", "b.jpg"]，描述符被丢弃
        """
        if not value:
            return []
        urls = []
        for part in value.split(","):
            tokens = part.strip().split()
            if tokens:
                urls.append(tokens[0])
        return urls

    @staticmethod
    def parse_int(value: Any) -> Optional[int]:
        """
        解析宽高等整数属性

        取开头的数字部分（"300px" -> 300）；百分比、空值或解析失败返回 None
        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value if value > 0 else None
        if isinstance(value, float):
            return int(value) if value >= 1 else None
        text = str(value)
        if "%" in text:
            return None
        match = _LEADING_INT_RE.match(text)
        if not match:
            return None
        number = int(match.group(1))
        return number if number > 0 else None

    @staticmethod
    def parse_sizes(value: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
        """解析 <link sizes="32x32">，多个尺寸时取第一个"""
        if not value:
            return None, None
        first = value.strip().split()[0] if value.strip() else ""
        if "x" not in first.lower():
            return None, None
        w, _, h = first.lower().partition("x")
        return BaseParser.parse_int(w), BaseParser.parse_int(h)

    @staticmethod
    def parse_viewbox(value: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
        """viewBox="0 0 24 24" -> (24, 24)"""
        if not value:
            return None, None
        parts = re.split(r"[\s,]+", value.strip())
        if len(parts) != 4:
            return None, None
        try:
            width = round(float(parts[2]))
            height = round(float(parts[3]))
        except ValueError:
            return None, None
        return (width if width > 0 else None), (height if height > 0 else None)

    def bound_snippet(self, markup: Optional[str]) -> Optional[str]:
        """截断原始标记片段"""
        if not markup:
            return None
        return markup[:self.snippet_max_length]

    @staticmethod
    def stable_hash(text: str, length: int = 12) -> str:
        """对标记计算稳定哈希（跨多次扫描保持一致）"""
        return hashlib.md5(text.encode("utf-8")).hexdigest()[:length]
