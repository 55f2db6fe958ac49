"""
URL解析模块

- resolve_url: (基础URL, 候选字符串) -> 绝对URL 或 拒绝原因
- is_acceptable_url: 下游接受条件（http/https 或 data URI）
- filename_from_url: 从 URL 推导文件名
- normalize_page_url: 校验并规范化待提取页面的 URL
"""
import re
import posixpath
from typing import NamedTuple, Optional
from urllib.parse import urljoin, urlparse, unquote

from core.errors import InvalidUrlError

ABSOLUTE_PREFIXES = ("http://", "https://", "data:")
HTTP_URL_RE = re.compile(r"^https?://", re.IGNORECASE)

DATA_URI_FILENAME = "data-image"
FALLBACK_FILENAME = "image"


class Resolution(NamedTuple):
    """解析结果：url 与 reason 二者有且只有一个非空"""
    url: Optional[str]
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.url is not None


def resolve_url(base: str, candidate: Optional[str]) -> Resolution:
    """
    将候选字符串解析为绝对URL

    Args:
        base: 基础URL（通常是页面URL）
        candidate: 标记中出现的原始字符串

    Returns:
        Resolution；解析失败时 url 为 None 并给出原因，不抛异常
    """
    if candidate is None:
        return Resolution(None, "empty")
    value = candidate.strip()
    if not value:
        return Resolution(None, "empty")

    # 已是绝对地址或 data URI，原样返回（长度策略由调用方处理）
    if value.startswith(ABSOLUTE_PREFIXES):
        return Resolution(value)

    try:
        resolved = urljoin(base, value)
        # urljoin 对部分非法引用不会报错，补一次解析以暴露 ValueError（如非法 IPv6）
        parsed = urlparse(resolved)
        parsed.port
    except ValueError as e:
        return Resolution(None, f"malformed reference: {e}")

    if not resolved:
        return Resolution(None, "empty")
    if not is_acceptable_url(resolved):
        return Resolution(None, f"unsupported scheme: {parsed.scheme or 'none'}")
    return Resolution(resolved)


def is_acceptable_url(url: str) -> bool:
    """下游只接受 http(s) URL 或 data URI"""
    if not url:
        return False
    if url.startswith("data:"):
        return True
    if not HTTP_URL_RE.match(url):
        return False
    try:
        return bool(urlparse(url).netloc)
    except ValueError:
        return False


def filename_from_url(url: str) -> str:
    """
    从URL提取文件名

    data URI 返回 "data-image"；路径为空时返回 "image"
    """
    if url.startswith("data:"):
        return DATA_URI_FILENAME
    try:
        path = urlparse(url).path
    except ValueError:
        return FALLBACK_FILENAME
    name = posixpath.basename(unquote(path))
    if not name.strip():
        return FALLBACK_FILENAME
    return name


def normalize_page_url(url: Optional[str]) -> str:
    """
    校验待提取页面的URL

    没有协议时补 https://；非 http(s) 协议或缺少主机名时抛出 InvalidUrlError。
    """
    if url is None or not str(url).strip():
        raise InvalidUrlError(str(url), "empty URL")
    value = str(url).strip()
    if "://" not in value:
        if ":" in value.split("/", 1)[0] and not re.match(r"^[\w.-]+:\d+", value):
            # 形如 mailto:x / javascript:x 的非网络协议
            raise InvalidUrlError(value, "unsupported scheme")
        value = f"https://{value}"
    try:
        parsed = urlparse(value)
        parsed.port
    except ValueError:
        raise InvalidUrlError(value, "invalid URL format")
    if parsed.scheme.lower() not in ("http", "https"):
        raise InvalidUrlError(value, "unsupported scheme")
    if not parsed.hostname:
        raise InvalidUrlError(value, "missing host")
    if any(ch.isspace() for ch in parsed.netloc):
        raise InvalidUrlError(value, "invalid URL format")
    return value
