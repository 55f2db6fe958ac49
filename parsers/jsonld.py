"""
JSON-LD 图片提取

递归遍历对象图，查找 image / thumbnail / logo / photo / primaryImageOfPage 属性。
支持的形态：字符串、字符串数组、对象数组、单个 {url, width, height} 对象。
"""
import json
from typing import Any, List, NamedTuple, Optional

IMAGE_PROPERTIES = ("image", "thumbnail", "logo", "photo", "primaryImageOfPage")

# 防止病态嵌套
MAX_DEPTH = 32


class JsonLdImage(NamedTuple):
    url: str
    width: Any = None
    height: Any = None


def parse_jsonld(text: Optional[str]) -> Any:
    """解析 JSON-LD 文本；格式错误时抛出 ValueError（json.JSONDecodeError）"""
    if not text or not text.strip():
        raise ValueError("empty JSON-LD block")
    return json.loads(text)


def _from_value(value: Any) -> List[JsonLdImage]:
    if isinstance(value, str):
        return [JsonLdImage(value)] if value.strip() else []
    if isinstance(value, dict):
        url = value.get("url") or value.get("contentUrl")
        if isinstance(url, str) and url.strip():
            return [JsonLdImage(url, value.get("width"), value.get("height"))]
        return []
    if isinstance(value, list):
        found = []
        for item in value:
            if isinstance(item, (str, dict)):
                found.extend(_from_value(item))
        return found
    return []


def find_jsonld_images(data: Any) -> List[JsonLdImage]:
    """
    在 JSON-LD 对象图中查找图片

    Args:
        data: json.loads 的结果

    Returns:
        按遍历顺序排列的图片引用（未去重）
    """
    found: List[JsonLdImage] = []

    def walk(node: Any, depth: int):
        if depth > MAX_DEPTH:
            return
        if isinstance(node, list):
            for item in node:
                walk(item, depth + 1)
            return
        if not isinstance(node, dict):
            return

        for prop in IMAGE_PROPERTIES:
            if node.get(prop):
                found.extend(_from_value(node[prop]))

        for value in node.values():
            if isinstance(value, (dict, list)):
                walk(value, depth + 1)

    walk(data, 0)
    return found
