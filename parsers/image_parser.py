"""
页面图片解析器

遍历 HTML 文档树与内嵌样式，按来源类型分派到各个处理器，产出候选图片记录。
每个处理器独立容错：某个处理器失败只会丢弃它自己的结果，其它处理器照常执行。
"""
from typing import Callable, Dict, List, Optional
from urllib.parse import urldefrag, urljoin, urlparse
from bs4 import BeautifulSoup
from bs4.element import Tag
from loguru import logger
from pydantic import ValidationError

from core.classifier import FORMAT_TO_MIME, classify
from core.models import ImageFormat, ImageRecord, SourceType
from core.url_resolver import filename_from_url, resolve_url
from parsers.base import BaseParser
from parsers.css import extract_background_urls, extract_stylesheet_urls
from parsers.jsonld import find_jsonld_images, parse_jsonld

# <img> 上的单值懒加载属性
LAZY_IMG_ATTRIBUTES = (
    "data-src",
    "data-lazy-src",
    "data-original",
    "data-original-src",
    "data-fallback-src",
    "data-lazy",
)

# <img> 上的 srcset 形态属性
SRCSET_IMG_ATTRIBUTES = ("srcset", "data-srcset", "data-lazy-srcset")

# 任意元素上检查的厂商懒加载属性（固定表）
DATA_ATTRIBUTES = (
    "data-src",
    "data-original",
    "data-lazy",
    "data-lazy-src",
    "data-bg",
    "data-background",
    "data-background-image",
    "data-srcset",
    "data-original-set",
    "data-lazy-srcset",
    "data-full-size-src",
    "data-high-res-src",
    "data-medium-src",
    "data-low-src",
    "data-zoom-image",
    "data-hi-res",
)
BACKGROUND_DATA_ATTRIBUTES = frozenset({"data-bg", "data-background", "data-background-image"})

# 社交预览等图片 meta
META_IMAGE_KEYS = frozenset({
    "og:image",
    "og:image:url",
    "og:image:secure_url",
    "twitter:image",
    "twitter:image:src",
    "thumbnail",
    "image",
    "msapplication-tileimage",
    "msapplication-square150x150logo",
})

# iframe 图片托管关键词（启发式白名单）
IFRAME_IMAGE_KEYWORDS = (
    "image",
    "photo",
    "gallery",
    "flickr",
    "imgur",
    "instagram",
    "pinterest",
    "unsplash",
)

# <link rel> 中视为图片的取值
LINK_IMAGE_RELS = ("icon", "image_src")


def is_srcset_attribute(name: str) -> bool:
    return "srcset" in name or name.endswith("-set")


class ScanContext:
    """单次扫描的状态（只在一个请求内使用）"""

    def __init__(self, page_url: str, base_url: str):
        self.page_url = page_url
        self.base_url = base_url
        self.records: List[ImageRecord] = []
        self.stats = {
            "candidates": 0,
            "accepted": 0,
            "rejected": 0,
            "handler_errors": 0,
        }
        self.rejections: Dict[str, int] = {}

    def reject(self, reason: str):
        self.stats["rejected"] += 1
        key = reason.split(":", 1)[0]
        self.rejections[key] = self.rejections.get(key, 0) + 1


class ImageParser(BaseParser):
    """
    页面图片解析器

    继承 BaseParser，按来源类型分派：
    - img / picture / source / video
    - style 属性、<style> 块中的背景图
    - link / meta / 内联 svg / canvas / iframe
    - JSON-LD 与通用 data-* 懒加载属性

    Example:
        parser = ImageParser(config.extractor)
        records = parser.parse(html, "https://example.com/page")
    """

    def __init__(self, parser_config=None):
        super().__init__(parser_config)
        self.max_data_uri_length = (
            parser_config.max_data_uri_length if parser_config else 500
        )
        self.last_stats: Dict[str, int] = {}

        self.handlers: List[tuple] = [
            ("img", self._scan_img_elements),
            ("picture", self._scan_picture_elements),
            ("video", self._scan_video_elements),
            ("style_attribute", self._scan_style_attributes),
            ("style_block", self._scan_style_blocks),
            ("link", self._scan_link_elements),
            ("meta", self._scan_meta_elements),
            ("svg", self._scan_svg_elements),
            ("canvas", self._scan_canvas_elements),
            ("iframe", self._scan_iframe_elements),
            ("jsonld", self._scan_jsonld_scripts),
            ("data_attributes", self._scan_data_attributes),
        ]

    # ========================================================================
    # 入口
    # ========================================================================

    def parse(self, html: str, page_url: str) -> List[ImageRecord]:
        """
        解析页面中的所有候选图片

        Args:
            html: 页面 HTML
            page_url: 页面 URL（绝对地址）

        Returns:
            候选记录列表（按发现顺序，未去重）
        """
        soup = BeautifulSoup(html or "", "lxml")
        ctx = ScanContext(page_url, self._base_url(soup, page_url))

        for name, handler in self.handlers:
            ctx.records.extend(self._run_handler(name, handler, soup, ctx))

        ctx.stats["accepted"] = len(ctx.records)
        self.last_stats = {**ctx.stats, **{f"rejected_{k}": v for k, v in ctx.rejections.items()}}
        logger.debug(f"🔍 Scanned {page_url}: {self.last_stats}")
        return ctx.records

    def _run_handler(
        self,
        name: str,
        handler: Callable[[BeautifulSoup, ScanContext], List[ImageRecord]],
        soup: BeautifulSoup,
        ctx: ScanContext,
    ) -> List[ImageRecord]:
        """在处理器边界捕获异常，失败的处理器贡献空结果"""
        try:
            return handler(soup, ctx)
        except Exception as e:
            ctx.stats["handler_errors"] += 1
            logger.warning(f"⚠️  Image handler '{name}' failed on {ctx.page_url}: {e}")
            return []

    @staticmethod
    def _base_url(soup: BeautifulSoup, page_url: str) -> str:
        """<base href> 存在时以它为相对地址基准"""
        base = soup.find("base", href=True)
        if base is None:
            return page_url
        try:
            return urljoin(page_url, base["href"].strip())
        except ValueError:
            return page_url

    # ========================================================================
    # 候选记录汇聚点：解析 URL -> 分类 -> 构建记录
    # ========================================================================

    def _make_record(
        self,
        ctx: ScanContext,
        raw_url: Optional[str],
        source_type: SourceType,
        *,
        alt: Optional[str] = None,
        width=None,
        height=None,
        is_lazy_loaded: bool = False,
        is_responsive: bool = False,
        data_src: Optional[str] = None,
        original_element: Optional[str] = None,
        declared_type: Optional[str] = None,
    ) -> Optional[ImageRecord]:
        ctx.stats["candidates"] += 1

        resolution = resolve_url(ctx.base_url, raw_url)
        if not resolution.ok:
            ctx.reject(resolution.reason or "unresolvable")
            return None
        url = resolution.url

        if url.startswith("data:"):
            if len(url) > self.max_data_uri_length:
                ctx.reject("data_uri_too_long")
                return None
            if not url[5:].lower().startswith("image/"):
                ctx.reject("data_uri_not_image")
                return None

        fmt, mime_type = classify(url, declared_type)

        try:
            return ImageRecord(
                url=url,
                filename=filename_from_url(url),
                width=self.parse_int(width),
                height=self.parse_int(height),
                mime_type=mime_type,
                declared_type=declared_type or None,
                format=fmt,
                alt=alt or None,
                source_type=source_type,
                is_lazy_loaded=is_lazy_loaded,
                is_responsive=is_responsive,
                data_src=data_src or None,
                original_element=self.bound_snippet(original_element),
            )
        except ValidationError as e:
            ctx.reject("invalid_record")
            logger.debug(f"Invalid image record for {url[:120]}: {e}")
            return None

    @staticmethod
    def _element_markup(tag: Tag) -> str:
        """只序列化开始标签，避免把整棵子树转成字符串"""
        parts = []
        for key, value in tag.attrs.items():
            if isinstance(value, list):
                value = " ".join(value)
            parts.append(f'{key}="{value}"')
        attrs = " " + " ".join(parts) if parts else ""
        return f"<{tag.name}{attrs}>"

    def _collect(self, ctx: ScanContext, raw_urls: List[str], source_type: SourceType, **fields) -> List[ImageRecord]:
        records = []
        for raw_url in raw_urls:
            record = self._make_record(ctx, raw_url, source_type, **fields)
            if record is not None:
                records.append(record)
        return records

    # ========================================================================
    # 各来源处理器
    # ========================================================================

    def _process_img(self, img: Tag, ctx: ScanContext) -> List[ImageRecord]:
        """单个 <img>：src、懒加载属性与 srcset 全部收集"""
        lazy_values = [img.get(attr) for attr in LAZY_IMG_ATTRIBUTES if img.get(attr)]
        srcset_values = {attr: img.get(attr) for attr in SRCSET_IMG_ATTRIBUTES if img.get(attr)}
        loading = (img.get("loading") or "").strip().lower()

        is_lazy = bool(lazy_values) or "data-srcset" in srcset_values or "data-lazy-srcset" in srcset_values or loading == "lazy"
        data_src = lazy_values[0] if lazy_values else srcset_values.get("data-srcset")
        common = dict(
            alt=img.get("alt"),
            width=img.get("width"),
            height=img.get("height"),
            is_lazy_loaded=is_lazy,
            is_responsive=bool(srcset_values),
            data_src=data_src,
            original_element=str(img),
        )

        sources = []
        if img.get("src"):
            sources.append(img.get("src"))
        sources.extend(lazy_values)
        for value in srcset_values.values():
            sources.extend(self.split_srcset(value))

        return self._collect(ctx, sources, SourceType.IMG, **common)

    def _scan_img_elements(self, soup: BeautifulSoup, ctx: ScanContext) -> List[ImageRecord]:
        records = []
        for img in soup.find_all("img"):
            try:
                records.extend(self._process_img(img, ctx))
            except Exception as e:
                ctx.stats["handler_errors"] += 1
                logger.debug(f"Skipping <img>: {e}")
        return records

    def _process_source(self, source: Tag, ctx: ScanContext, source_type: SourceType) -> List[ImageRecord]:
        """<source>：srcset 全部条目，type / media 作为格式 / 响应式提示"""
        entries = self.split_srcset(source.get("srcset"))
        media = source.get("media")
        declared = source.get("type")
        common = dict(
            declared_type=declared,
            is_responsive=bool(media) or len(entries) > 1,
            original_element=str(source),
        )
        records = self._collect(ctx, entries, source_type, **common)

        single = source.get("src") or source.get("data-src")
        if single:
            records.extend(self._collect(
                ctx, [single], source_type,
                is_lazy_loaded=bool(source.get("data-src")) and not source.get("src"),
                data_src=source.get("data-src"),
                **common,
            ))
        return records

    def _scan_picture_elements(self, soup: BeautifulSoup, ctx: ScanContext) -> List[ImageRecord]:
        records = []
        for picture in soup.find_all("picture"):
            fallback = picture.find("img")
            if fallback is not None:
                records.extend(self._process_img(fallback, ctx))
            for source in picture.find_all("source"):
                records.extend(self._process_source(source, ctx, SourceType.PICTURE))
        return records

    def _scan_video_elements(self, soup: BeautifulSoup, ctx: ScanContext) -> List[ImageRecord]:
        """<video poster> 与 <video><source>，只保留能识别出图片格式的条目"""
        records = []
        for video in soup.find_all("video"):
            if video.get("poster"):
                records.extend(self._collect(
                    ctx, [video["poster"]], SourceType.OTHER,
                    width=video.get("width"), height=video.get("height"),
                    original_element=self._element_markup(video),
                ))
            for source in video.find_all("source"):
                candidates = self._process_source(source, ctx, SourceType.OTHER)
                records.extend(r for r in candidates if r.format != ImageFormat.UNKNOWN)
        return records

    def _scan_style_attributes(self, soup: BeautifulSoup, ctx: ScanContext) -> List[ImageRecord]:
        records = []
        for element in soup.find_all(style=True):
            style = element.get("style") or ""
            if "background" not in style.lower():
                continue
            urls = extract_background_urls(style)
            records.extend(self._collect(
                ctx, urls, SourceType.BACKGROUND, original_element=self._element_markup(element)
            ))
        return records

    def _scan_style_blocks(self, soup: BeautifulSoup, ctx: ScanContext) -> List[ImageRecord]:
        records = []
        for style in soup.find_all("style"):
            css = style.string if style.string is not None else style.get_text()
            records.extend(self._collect(ctx, extract_stylesheet_urls(css), SourceType.BACKGROUND))
        return records

    def _scan_link_elements(self, soup: BeautifulSoup, ctx: ScanContext) -> List[ImageRecord]:
        records = []
        for link in soup.find_all("link", href=True):
            href = link["href"]
            rel = link.get("rel") or []
            if isinstance(rel, str):
                rel = rel.split()
            rel_text = " ".join(rel).lower()
            declared = link.get("type")

            resolution = resolve_url(ctx.base_url, href)
            known_ext = resolution.ok and classify(resolution.url)[0] != ImageFormat.UNKNOWN
            is_icon = any(token in rel_text for token in LINK_IMAGE_RELS)
            is_image_type = bool(declared) and declared.strip().lower().startswith("image/")
            if not (known_ext or is_icon or is_image_type):
                continue

            width, height = self.parse_sizes(link.get("sizes"))
            records.extend(self._collect(
                ctx, [href], SourceType.LINK,
                width=width, height=height,
                declared_type=declared,
                original_element=str(link),
            ))
        return records

    def _scan_meta_elements(self, soup: BeautifulSoup, ctx: ScanContext) -> List[ImageRecord]:
        records = []
        for meta in soup.find_all("meta", content=True):
            key = (meta.get("property") or meta.get("name") or meta.get("itemprop") or "").strip().lower()
            if key not in META_IMAGE_KEYS:
                continue
            records.extend(self._collect(
                ctx, [meta["content"]], SourceType.META, original_element=str(meta)
            ))
        return records

    def _scan_svg_elements(self, soup: BeautifulSoup, ctx: ScanContext) -> List[ImageRecord]:
        """
        内联 <svg>

        没有 URL，用序列化标记的哈希合成 pageUrl#svg-<hash>，
        同一页面多次扫描得到相同的标识。
        """
        records = []
        page = urldefrag(ctx.page_url)[0]
        for svg in soup.find_all("svg"):
            if svg.find_parent("svg") is not None:
                continue
            markup = str(svg)
            svg_id = f"svg-{self.stable_hash(markup)}"

            width = self.parse_int(svg.get("width"))
            height = self.parse_int(svg.get("height"))
            if width is None or height is None:
                vb_width, vb_height = self.parse_viewbox(svg.get("viewbox") or svg.get("viewBox"))
                width = width or vb_width
                height = height or vb_height

            try:
                records.append(ImageRecord(
                    url=f"{page}#{svg_id}",
                    filename=f"{svg_id}.svg",
                    width=width,
                    height=height,
                    mime_type=FORMAT_TO_MIME[ImageFormat.SVG],
                    format=ImageFormat.SVG,
                    source_type=SourceType.SVG,
                    alt=(svg.find("title").get_text(strip=True) if svg.find("title") else None) or None,
                    original_element=self.bound_snippet(markup),
                ))
            except ValidationError as e:
                ctx.reject("invalid_record")
                logger.debug(f"Invalid inline SVG record: {e}")
        return records

    def _scan_canvas_elements(self, soup: BeautifulSoup, ctx: ScanContext) -> List[ImageRecord]:
        records = []
        for canvas in soup.find_all("canvas"):
            common = dict(width=canvas.get("width"), height=canvas.get("height"), original_element=self._element_markup(canvas))
            if canvas.get("data-src"):
                records.extend(self._collect(
                    ctx, [canvas["data-src"]], SourceType.CANVAS,
                    is_lazy_loaded=True, data_src=canvas["data-src"], **common
                ))
            if canvas.get("src"):
                records.extend(self._collect(ctx, [canvas["src"]], SourceType.CANVAS, **common))
        return records

    def _process_iframe(self, iframe: Tag, ctx: ScanContext) -> List[ImageRecord]:
        """只保留指向图片托管服务的 iframe"""
        resolution = resolve_url(ctx.base_url, iframe["src"])
        if not resolution.ok or resolution.url.startswith("data:"):
            return []
        parsed = urlparse(resolution.url)
        haystack = f"{parsed.netloc}{parsed.path}".lower()
        if not any(keyword in haystack for keyword in IFRAME_IMAGE_KEYWORDS):
            return []
        return self._collect(
            ctx, [iframe["src"]], SourceType.IFRAME,
            width=iframe.get("width"), height=iframe.get("height"),
            original_element=self._element_markup(iframe),
        )

    def _scan_iframe_elements(self, soup: BeautifulSoup, ctx: ScanContext) -> List[ImageRecord]:
        records = []
        for iframe in soup.find_all("iframe", src=True):
            try:
                records.extend(self._process_iframe(iframe, ctx))
            except Exception as e:
                ctx.stats["handler_errors"] += 1
                logger.debug(f"Skipping <iframe>: {e}")
        return records

    def _scan_jsonld_scripts(self, soup: BeautifulSoup, ctx: ScanContext) -> List[ImageRecord]:
        records = []
        for script in soup.find_all("script", type=True):
            if script["type"].strip().lower() != "application/ld+json":
                continue
            try:
                data = parse_jsonld(script.string if script.string is not None else script.get_text())
            except ValueError as e:
                # JSON 格式错误：忽略该块
                ctx.reject("malformed_jsonld")
                logger.debug(f"Ignoring malformed JSON-LD on {ctx.page_url}: {e}")
                continue
            for image in find_jsonld_images(data):
                records.extend(self._collect(
                    ctx, [image.url], SourceType.JSONLD,
                    width=image.width, height=image.height,
                ))
        return records

    def _scan_data_attributes(self, soup: BeautifulSoup, ctx: ScanContext) -> List[ImageRecord]:
        """通用兜底：每个元素检查固定的 data-* 属性表"""
        records = []
        for element in soup.find_all(True):
            attrs = element.attrs
            if not attrs:
                continue
            for attr in DATA_ATTRIBUTES:
                value = attrs.get(attr)
                if isinstance(value, list):
                    value = " ".join(value)
                if not value or value.strip().lower().startswith("data:"):
                    continue
                source_type = SourceType.BACKGROUND if attr in BACKGROUND_DATA_ATTRIBUTES else SourceType.OTHER
                urls = self.split_srcset(value) if is_srcset_attribute(attr) else [value]
                records.extend(self._collect(
                    ctx, urls, source_type,
                    is_lazy_loaded=True, data_src=value,
                    original_element=self._element_markup(element),
                ))
        return records
