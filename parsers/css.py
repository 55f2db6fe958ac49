"""
CSS url() 提取
"""
import re
from typing import List

from core.classifier import is_font_url

CSS_URL_RE = re.compile(r"""url\(\s*(['"]?)(.*?)\1\s*\)""", re.IGNORECASE | re.DOTALL)
BACKGROUND_DECL_RE = re.compile(r"background(?:-image)?\s*:\s*([^;{}]*)", re.IGNORECASE)


def extract_css_urls(text: str) -> List[str]:
    """提取文本中所有 url(...) 的值（按出现顺序，未去重）"""
    if not text:
        return []
    urls = []
    for match in CSS_URL_RE.finditer(text):
        value = match.group(2).strip()
        if value:
            urls.append(value)
    return urls


def extract_background_urls(style: str) -> List[str]:
    """
    从 style 属性中提取背景图

    只看 background / background-image 声明，data: 一律丢弃
    """
    if not style:
        return []
    urls = []
    for decl in BACKGROUND_DECL_RE.finditer(style):
        for value in extract_css_urls(decl.group(1)):
            if not value.lower().startswith("data:"):
                urls.append(value)
    return urls


def extract_stylesheet_urls(css: str) -> List[str]:
    """
    从 <style> 块提取图片 URL

    排除字体文件与 data: URI
    """
    urls = []
    for value in extract_css_urls(css):
        if value.lower().startswith("data:"):
            continue
        if is_font_url(value):
            continue
        urls.append(value)
    return urls
